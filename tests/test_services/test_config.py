"""Tests for application configuration."""

from __future__ import annotations

import pytest

from backend.config import Settings


class TestSettings:
    def test_default_settings(self) -> None:
        s = Settings(_env_file=None)
        assert s.secret_key == "change-me-in-production"
        assert s.debug is False
        assert s.port == 8000
        assert s.drive_root_folder_name == "AI-IDE Projects"
        assert s.max_projects_listed == 50

    def test_settings_from_fixture(self, test_settings: Settings) -> None:
        assert test_settings.secret_key == "test-secret-key-with-at-least-32-characters"
        assert test_settings.debug is True


class TestRuntimeSecurity:
    def test_debug_skips_validation(self) -> None:
        Settings(_env_file=None, debug=True).validate_runtime_security()

    def test_default_secret_rejected(self) -> None:
        s = Settings(_env_file=None, drive_client_id="id", drive_client_secret="secret")
        with pytest.raises(ValueError, match="SECRET_KEY"):
            s.validate_runtime_security()

    def test_missing_drive_client_rejected(self) -> None:
        s = Settings(_env_file=None, secret_key="k" * 40)
        with pytest.raises(ValueError, match="DRIVE_CLIENT_ID"):
            s.validate_runtime_security()

    def test_secure_configuration_passes(self) -> None:
        s = Settings(
            _env_file=None,
            secret_key="k" * 40,
            drive_client_id="client",
            drive_client_secret="secret",
        )
        s.validate_runtime_security()
