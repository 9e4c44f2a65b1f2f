"""Shared test configuration and fixtures."""

import logging

import pytest

from romcomp.cli import cleanup_logging
from romcomp.config import RomcompConfig


@pytest.fixture(scope="function", autouse=True)
def cleanup_logging_handlers():
    """Automatically cleanup logging handlers after each test to prevent ResourceWarnings."""
    yield
    cleanup_logging()


@pytest.fixture(scope="function", autouse=True)
def reset_logging():
    """Reset logging configuration after each test."""
    yield
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)
    root_logger.setLevel(logging.WARNING)


@pytest.fixture
def config(tmp_path):
    """Fast-polling config with a private scratch directory."""
    return RomcompConfig(
        threads=2,
        poll_interval=0.01,
        chunk_size=4096,
        scratch_dir=tmp_path / "scratch",
    )
