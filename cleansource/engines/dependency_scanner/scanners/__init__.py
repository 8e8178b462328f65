"""Ecosystem scanners: auto-registered on import.

Import order is registration order, which is the order the resolver runs
them in.
"""

from cleansource.engines.dependency_scanner.scanners import (
    maven,  # noqa: F401
    gradle,  # noqa: F401
    pip,  # noqa: F401
    pipenv,  # noqa: F401
    npm,  # noqa: F401
    go_mod,  # noqa: F401
)
