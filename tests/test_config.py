"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from iso_creator.config import Settings, get_settings, print_settings_json


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        env = {k: v for k, v in os.environ.items() if not k.startswith("ISO_CREATOR_")}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert (
            settings.artifacts_dir
            == Path.home() / ".local" / "share" / "iso-creator" / "artifacts"
        )
        assert settings.work_dir is None
        assert settings.storage_url is None
        assert settings.log_level == "INFO"
        assert settings.max_concurrent_builds == 2
        assert settings.status_poll_interval == 0.5
        assert settings.tool_timeout == 3600
        assert settings.upload_timeout == 3600
        assert settings.keep_build_dir is False

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "ISO_CREATOR_LOG_LEVEL": "DEBUG",
                "ISO_CREATOR_MAX_CONCURRENT_BUILDS": "4",
                "ISO_CREATOR_STORAGE_URL": "https://storage.example.com",
                "ISO_CREATOR_KEEP_BUILD_DIR": "true",
            },
        ):
            settings = Settings()
            assert settings.log_level == "DEBUG"
            assert settings.max_concurrent_builds == 4
            assert settings.storage_url == "https://storage.example.com"
            assert settings.keep_build_dir is True

    def test_work_dir_from_env(self, tmp_path: Path) -> None:
        """Work dir should be configurable via env."""
        with patch.dict(os.environ, {"ISO_CREATOR_WORK_DIR": str(tmp_path)}):
            assert Settings().work_dir == tmp_path

    def test_max_concurrent_builds_bounds(self) -> None:
        """max_concurrent_builds must be between 1 and 32."""
        with pytest.raises(ValidationError):
            Settings(max_concurrent_builds=0)
        with pytest.raises(ValidationError):
            Settings(max_concurrent_builds=33)

    def test_poll_interval_must_be_positive(self) -> None:
        """status_poll_interval must be greater than zero."""
        with pytest.raises(ValidationError):
            Settings(status_poll_interval=0)


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        assert isinstance(get_settings(), Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        parsed = json.loads(print_settings_json(Settings()))
        assert "work_dir" in parsed
        assert "artifacts_dir" in parsed
        assert "max_concurrent_builds" in parsed

    def test_storage_token_is_hidden(self) -> None:
        """The storage token never appears in rendered settings."""
        rendered = print_settings_json(Settings(storage_token="s3cret"))
        assert "s3cret" not in rendered
        assert "storage_token" not in json.loads(rendered)

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        parsed = json.loads(print_settings_json())
        assert "artifacts_dir" in parsed
