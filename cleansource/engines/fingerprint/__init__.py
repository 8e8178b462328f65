"""Fingerprint engine: per-file content digests for a source tree."""

from cleansource.engines.fingerprint.engine import WFP_FILENAME, FingerprintEngine
from cleansource.engines.fingerprint.models import FileRecord
from cleansource.engines.fingerprint.skip import should_skip

__all__ = ["WFP_FILENAME", "FileRecord", "FingerprintEngine", "should_skip"]
