"""Shared fixtures for the pipeline tests."""

from pathlib import Path

import pytest

from config import Config
from database import ReportStore


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        gemini_api_key="test-gemini-key",
        youtube_api_key="test-youtube-key",
        db_path=tmp_path / "reports.db",
        log_dir=tmp_path / "log",
    )


@pytest.fixture
def store(tmp_path: Path):
    with ReportStore(tmp_path / "reports.db") as s:
        yield s
