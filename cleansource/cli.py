"""CLI entry point: cleansource.

Subcommands:
    cleansource fingerprint /path/to/src      # Write fingerprints.wfp
    cleansource deps /path/to/src [--json]    # Detect build tools, list dependencies
    cleansource scan /path/to/src             # Both, plus dependencies.json
"""

from __future__ import annotations

import json
from pathlib import Path

import click
from pydantic import ValidationError

from cleansource.core.config import ScanConfig
from cleansource.core.logging import setup_logging
from cleansource.exceptions import ScanError


_SCAN_OPTIONS = [
    click.option(
        "-o",
        "--output-dir",
        type=click.Path(file_okay=False, path_type=Path),
        default=None,
        help="Directory for generated artifacts (default: parent of ROOT)",
    ),
    click.option("-t", "--threads", type=int, default=None, help="Fingerprint worker threads (1-60)"),
    click.option(
        "--invoke-tools/--no-invoke-tools",
        default=False,
        help="Run mvn/pip/go/pipenv to enrich manifest data",
    ),
    click.option("--maven-path", default=None, help="Path to the mvn executable"),
    click.option("--gradle-path", default=None, help="Path to the gradle executable"),
    click.option("--pip-path", default=None, help="Path to the pip executable"),
    click.option("--requirements", default=None, help="Path to a requirements file"),
    click.option("--npm-path", default=None, help="Path to the npm executable"),
    click.option("--go-path", default=None, help="Path to the go executable"),
    click.option("--pipenv-path", default=None, help="Path to the pipenv executable"),
]


def _scan_options(func):
    """Options shared by every subcommand that builds a ScanConfig."""
    for option in reversed(_SCAN_OPTIONS):
        func = option(func)
    return func


def _build_config(root: Path, opts: dict, build_depend: bool = True) -> ScanConfig:
    values = {
        "task_dir": root,
        "to_path": opts["output_dir"],
        "build_depend": build_depend,
        "invoke_tools": opts["invoke_tools"],
        "maven_path": opts["maven_path"],
        "gradle_path": opts["gradle_path"],
        "pip_path": opts["pip_path"],
        "pip_requirements_path": opts["requirements"],
        "npm_path": opts["npm_path"],
        "go_path": opts["go_path"],
        "pipenv_path": opts["pipenv_path"],
    }
    if opts["threads"] is not None:
        values["thread_num"] = opts["threads"]
    try:
        return ScanConfig(**values)
    except ValidationError as e:
        messages = "; ".join(err["msg"] for err in e.errors())
        raise click.BadParameter(messages) from e


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """CleanSource: source fingerprinting and dependency detection."""
    setup_logging("DEBUG" if verbose else None)


@main.command("fingerprint")
@click.argument("root", type=click.Path(path_type=Path))
@_scan_options
def fingerprint(root: Path, **opts) -> None:
    """Write the fingerprint file for ROOT."""
    from cleansource.engines.fingerprint import FingerprintEngine

    config = _build_config(root, opts, build_depend=False)
    try:
        wfp = FingerprintEngine(config).generate(root)
    except ScanError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f"Fingerprints written to {wfp}")


@main.command("deps")
@click.argument("root", type=click.Path(path_type=Path))
@click.option("--json", "as_json", is_flag=True, help="Print dependency roots as JSON")
@_scan_options
def deps(root: Path, as_json: bool, **opts) -> None:
    """Detect build tools under ROOT and list their dependencies."""
    from cleansource.engines.dependency_scanner import BuildToolResolver

    if not root.is_dir():
        raise click.ClickException(f"scan directory not found: {root}")

    config = _build_config(root, opts)
    roots = BuildToolResolver(config).resolve(root)

    if as_json:
        click.echo(json.dumps([r.to_dict() for r in roots], indent=2))
        return

    if not roots:
        click.echo("No supported build files found.")
        return

    for dep_root in roots:
        click.echo(
            f"{dep_root.build_tool}: {dep_root.project_name} {dep_root.project_version}"
            f" ({len(dep_root.dependencies)} dependencies)"
        )
        for dep in dep_root.dependencies:
            name = f"{dep.group}:{dep.name}" if dep.group else dep.name
            scope = f" [{dep.scope}]" if dep.scope else ""
            click.echo(f"  {name:<40s} {dep.version}{scope}")


@main.command("scan")
@click.argument("root", type=click.Path(path_type=Path))
@click.option("--no-deps", is_flag=True, help="Skip dependency detection")
@_scan_options
def scan(root: Path, no_deps: bool, **opts) -> None:
    """Fingerprint ROOT and write dependencies.json next to the fingerprint file."""
    from cleansource.app import ScanApplication

    config = _build_config(root, opts, build_depend=not no_deps)
    try:
        output = ScanApplication(config).run()
    except ScanError as e:
        raise click.ClickException(str(e)) from e

    if output is None:
        click.echo("Scan directory is empty, nothing to do.")
        return

    click.echo(f"Directory size: {output.dir_size} bytes")
    click.echo(f"Fingerprints:   {output.wfp_file}")
    if output.dependency_file is not None:
        total = sum(len(r.dependencies) for r in output.dependency_roots)
        click.echo(
            f"Dependencies:   {output.dependency_file}"
            f" ({len(output.dependency_roots)} roots, {total} dependencies)"
        )


if __name__ == "__main__":
    main()
