"""Tests for runtime config — env-driven settings."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ncsum.config import NcsumConfig


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's .env and NCSUM_* variables out of these tests."""
    monkeypatch.chdir(tmp_path)
    for name in ("ALGORITHM", "CHUNK_SIZE", "QUARANTINE_DIR", "JOBS", "LOG_LEVEL"):
        monkeypatch.delenv(f"NCSUM_{name}", raising=False)


class TestNcsumConfig:
    def test_defaults(self):
        config = NcsumConfig()
        assert config.algorithm == "md5"
        assert config.chunk_size == 1024 * 1024
        assert config.quarantine_dir == "mismatches"
        assert config.jobs == 1
        assert config.log_level == "WARNING"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("NCSUM_ALGORITHM", "SHA256")
        monkeypatch.setenv("NCSUM_JOBS", "4")
        config = NcsumConfig()
        assert config.algorithm == "sha256"
        assert config.jobs == 4

    def test_dotenv_file(self, tmp_path: Path):
        (tmp_path / ".env").write_text("NCSUM_QUARANTINE_DIR=bad\n")
        assert NcsumConfig().quarantine_dir == "bad"

    def test_log_level_normalized(self):
        assert NcsumConfig(log_level="debug").log_level == "DEBUG"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"algorithm": "no-such-hash"},
            {"algorithm": "shake_128"},
            {"chunk_size": 0},
            {"jobs": 0},
            {"quarantine_dir": "../elsewhere"},
            {"quarantine_dir": ""},
            {"log_level": "chatty"},
        ],
    )
    def test_invalid_values(self, overrides: dict):
        with pytest.raises(ValidationError):
            NcsumConfig(**overrides)
