"""Tests for the fingerprint engine."""

from __future__ import annotations

import hashlib
import os
import sys
from collections import Counter
from unittest.mock import patch

import pytest
from structlog.testing import capture_logs

from cleansource.core.config import ScanConfig
from cleansource.engines.fingerprint import WFP_FILENAME, FileRecord, FingerprintEngine
from cleansource.engines.fingerprint.digest import digest_file
from cleansource.engines.fingerprint.skip import MAX_FILE_SIZE
from cleansource.exceptions import FingerprintWriteError, ScanDirectoryNotFoundError


def _write(root, rel, content: bytes):
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def _md5(content: bytes) -> str:
    return hashlib.md5(content).hexdigest()


def _records(wfp) -> Counter:
    lines = wfp.read_text(encoding="utf-8").splitlines()
    return Counter(FileRecord.from_line(line) for line in lines)


# ── FileRecord ───────────────────────────────────────────────────────────


class TestFileRecord:
    def test_to_line(self):
        rec = FileRecord(path="src/a.py", digest="abc123", size=42)
        assert rec.to_line() == "file=src/a.py,hash=abc123,size=42"

    def test_from_line_with_comma_in_path(self):
        rec = FileRecord.from_line("file=docs/a,b.txt,hash=ff00,size=7\n")
        assert rec == FileRecord(path="docs/a,b.txt", digest="ff00", size=7)

    def test_from_line_malformed(self):
        with pytest.raises(ValueError):
            FileRecord.from_line("garbage")


# ── digest_file ──────────────────────────────────────────────────────────


class TestDigestFile:
    def test_md5_and_size(self, tmp_path):
        path = _write(tmp_path, "a.txt", b"hello world")
        assert digest_file(path) == (_md5(b"hello world"), 11)

    def test_empty_file_returns_none(self, tmp_path):
        path = _write(tmp_path, "empty.txt", b"")
        assert digest_file(path) is None

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(OSError):
            digest_file(tmp_path / "nope.txt")


# ── FingerprintEngine ────────────────────────────────────────────────────


class TestFingerprintEngine:
    def test_records_match_eligible_files(self, src_dir, config):
        files = {
            "main.py": b"print('hi')\n",
            "pkg/util.py": b"def f():\n    return 1\n",
            "pkg/deep/data.json": b'{"a": 1}',
        }
        for rel, content in files.items():
            _write(src_dir, rel, content)

        wfp = FingerprintEngine(config).generate(src_dir)

        expected = Counter(
            FileRecord(path=rel, digest=_md5(content), size=len(content))
            for rel, content in files.items()
        )
        assert wfp == config.to_path / WFP_FILENAME
        assert _records(wfp) == expected

    def test_output_dir_created(self, src_dir, config):
        _write(src_dir, "a.txt", b"x")
        assert not config.to_path.exists()
        wfp = FingerprintEngine(config).generate(src_dir)
        assert wfp.is_file()

    def test_idempotent(self, src_dir, config):
        for i in range(20):
            _write(src_dir, f"dir{i % 3}/file{i}.txt", f"content {i}".encode())

        engine = FingerprintEngine(config)
        first = _records(engine.generate(src_dir))
        second = _records(engine.generate(src_dir))
        assert first == second
        assert sum(first.values()) == 20

    def test_no_duplicate_paths(self, src_dir, config):
        for i in range(50):
            _write(src_dir, f"f{i}.txt", b"same content")
        records = _records(FingerprintEngine(config).generate(src_dir))
        paths = [r.path for r in records.elements()]
        assert len(paths) == len(set(paths)) == 50

    def test_empty_directory_gives_empty_artifact(self, src_dir, config):
        wfp = FingerprintEngine(config).generate(src_dir)
        assert wfp.is_file()
        assert wfp.read_text() == ""

    def test_missing_root_raises_before_writing(self, tmp_path, config):
        with pytest.raises(ScanDirectoryNotFoundError):
            FingerprintEngine(config).generate(tmp_path / "missing")
        assert not (config.to_path / WFP_FILENAME).exists()

    def test_root_is_a_file(self, tmp_path, config):
        path = _write(tmp_path, "file.txt", b"x")
        with pytest.raises(ScanDirectoryNotFoundError):
            FingerprintEngine(config).generate(path)

    def test_artifact_inside_root_is_excluded(self, src_dir):
        _write(src_dir, "a.txt", b"a")
        config = ScanConfig(task_dir=src_dir, to_path=src_dir, thread_num=2)
        engine = FingerprintEngine(config)
        engine.generate(src_dir)
        # second run sees the first run's artifact on disk
        records = _records(engine.generate(src_dir))
        assert [r.path for r in records] == ["a.txt"]

    def test_zero_byte_files_skipped(self, src_dir, config):
        _write(src_dir, "empty.txt", b"")
        _write(src_dir, "full.txt", b"data")
        records = _records(FingerprintEngine(config).generate(src_dir))
        assert [r.path for r in records] == ["full.txt"]

    def test_skip_rules_applied(self, src_dir, config):
        _write(src_dir, "keep.py", b"keep")
        _write(src_dir, ".env", b"SECRET=1")
        _write(src_dir, ".git/config", b"[core]")
        _write(src_dir, "node_modules/x/index.js", b"module.exports = 1")
        _write(src_dir, "target/app.txt", b"built")
        _write(src_dir, "lib/app.jar", b"PK")
        _write(src_dir, "big.txt", b"x" * (MAX_FILE_SIZE + 1))

        records = _records(FingerprintEngine(config).generate(src_dir))
        assert [r.path for r in records] == ["keep.py"]

    def test_root_under_skip_dir_name(self, tmp_path):
        root = tmp_path / "build" / "project"
        _write(root, "main.c", b"int main(){}")
        config = ScanConfig(task_dir=root, to_path=tmp_path / "out", thread_num=2)
        records = _records(FingerprintEngine(config).generate(root))
        assert [r.path for r in records] == ["main.c"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlinks_not_followed(self, src_dir, config):
        target = _write(src_dir, "real.txt", b"real")
        os.symlink(target, src_dir / "link.txt")
        records = _records(FingerprintEngine(config).generate(src_dir))
        assert [r.path for r in records] == ["real.txt"]

    def test_unreadable_file_logged_and_skipped(self, src_dir, config):
        _write(src_dir, "ok.txt", b"ok")
        _write(src_dir, "bad.txt", b"bad")

        def _flaky(path):
            if path.name == "bad.txt":
                raise PermissionError("denied")
            return digest_file(path)

        with (
            patch("cleansource.engines.fingerprint.engine.digest_file", side_effect=_flaky),
            capture_logs() as logs,
        ):
            records = _records(FingerprintEngine(config).generate(src_dir))

        assert [r.path for r in records] == ["ok.txt"]
        failures = [e for e in logs if e["event"] == "fingerprint.read_failed"]
        assert len(failures) == 1
        assert failures[0]["path"] == "bad.txt"

    def test_unwritable_output_raises(self, tmp_path, src_dir):
        _write(src_dir, "a.txt", b"a")
        blocker = _write(tmp_path, "blocker", b"not a dir")
        config = ScanConfig(task_dir=src_dir, to_path=blocker, thread_num=2)
        with pytest.raises(FingerprintWriteError):
            FingerprintEngine(config).generate(src_dir)

    def test_write_failure_removes_partial_artifact(self, src_dir, config):
        for i in range(5):
            _write(src_dir, f"f{i}.txt", b"data")

        with patch.object(FileRecord, "to_line", side_effect=OSError("disk full")):
            with pytest.raises(FingerprintWriteError):
                FingerprintEngine(config).generate(src_dir)

        assert not (config.to_path / WFP_FILENAME).exists()

    def test_writer_failure_with_full_queue_raises(self, src_dir, tmp_path):
        for i in range(300):
            _write(src_dir, f"z/f{i}.txt", b"data")
        config = ScanConfig(task_dir=src_dir, to_path=tmp_path / "out", thread_num=1)

        with patch.object(FileRecord, "to_line", side_effect=ValueError("bad record")):
            with pytest.raises(FingerprintWriteError):
                FingerprintEngine(config).generate(src_dir)

        assert not (config.to_path / WFP_FILENAME).exists()

    def test_digest_crash_removes_partial_artifact(self, src_dir, config):
        _write(src_dir, "a.txt", b"a")
        with patch(
            "cleansource.engines.fingerprint.engine.digest_file",
            side_effect=RuntimeError("boom"),
        ):
            with pytest.raises(RuntimeError):
                FingerprintEngine(config).generate(src_dir)

        assert not (config.to_path / WFP_FILENAME).exists()

    @pytest.mark.skipif(sys.platform != "linux", reason="needs arbitrary bytes in file names")
    def test_non_utf8_file_name_written_verbatim(self, src_dir, tmp_path):
        with open(os.path.join(os.fsencode(src_dir), b"bad\xff.txt"), "wb") as fh:
            fh.write(b"odd")
        for i in range(300):
            _write(src_dir, f"z/f{i}.txt", b"data")
        config = ScanConfig(task_dir=src_dir, to_path=tmp_path / "out", thread_num=1)

        wfp = FingerprintEngine(config).generate(src_dir)

        lines = wfp.read_bytes().splitlines()
        assert len(lines) == 301
        expected = b"file=bad\xff.txt,hash=" + _md5(b"odd").encode() + b",size=3"
        assert expected in lines

    def test_many_files_with_single_thread(self, src_dir, tmp_path):
        # more files than the queue bound
        for i in range(250):
            _write(src_dir, f"d{i % 10}/f{i}.txt", f"{i}".encode())
        config = ScanConfig(task_dir=src_dir, to_path=tmp_path / "out", thread_num=1)
        records = _records(FingerprintEngine(config).generate(src_dir))
        assert sum(records.values()) == 250

    def test_lifecycle_events_logged(self, src_dir, config):
        _write(src_dir, "a.txt", b"a")
        with capture_logs() as logs:
            FingerprintEngine(config).generate(src_dir)
        events = [e["event"] for e in logs]
        assert "fingerprint.started" in events
        completed = [e for e in logs if e["event"] == "fingerprint.completed"]
        assert completed[0]["records_written"] == 1
