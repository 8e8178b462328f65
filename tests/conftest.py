"""Shared pytest fixtures for CleanSource tests."""

import logging

import pytest
import structlog

from cleansource.core.config import ScanConfig


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    # CLI tests configure stdlib handlers bound to CliRunner's streams
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def src_dir(tmp_path):
    path = tmp_path / "src"
    path.mkdir()
    return path


@pytest.fixture
def out_dir(tmp_path):
    return tmp_path / "out"


@pytest.fixture
def config(src_dir, out_dir):
    return ScanConfig(task_dir=src_dir, to_path=out_dir, thread_num=4)


@pytest.fixture
def log():
    return structlog.get_logger("cleansource.test")
