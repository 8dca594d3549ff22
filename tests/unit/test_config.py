"""Tests for RookerySettings — env-driven settings."""

from __future__ import annotations

import sys
from pathlib import Path

from rookery import __version__
from rookery.config import RookerySettings


class TestRookerySettings:
    def test_defaults(self):
        settings = RookerySettings(_env_file=None)
        assert settings.environment == "development"
        assert settings.log_level == "INFO"
        assert settings.debug is False
        assert settings.framework_name == "rookery"
        assert settings.framework_version == __version__
        assert settings.runtime_name == "python"
        assert settings.source_suffixes == [".py"]
        assert settings.python_executable == sys.executable
        assert settings.syntax_check_timeout == 30.0
        assert settings.enforce_file_permissions is True
        assert settings.strict_dependencies is False

    def test_is_production(self):
        assert RookerySettings(_env_file=None).is_production is False
        assert RookerySettings(_env_file=None, environment="production").is_production is True

    def test_default_paths(self, tmp_path: Path):
        settings = RookerySettings(_env_file=None, project_root=tmp_path)
        assert settings.resolved_extensions_path == tmp_path / "extensions"
        assert settings.resolved_config_path == tmp_path / "extensions" / "extensions.json"

    def test_explicit_paths(self, tmp_path: Path):
        settings = RookerySettings(
            _env_file=None,
            extensions_path=tmp_path / "plugins",
            config_path=tmp_path / "etc" / "ext.json",
        )
        assert settings.resolved_extensions_path == tmp_path / "plugins"
        assert settings.resolved_config_path == tmp_path / "etc" / "ext.json"

    def test_config_path_follows_extensions_path(self, tmp_path: Path):
        settings = RookerySettings(_env_file=None, extensions_path=tmp_path / "plugins")
        assert settings.resolved_config_path == tmp_path / "plugins" / "extensions.json"

    def test_env_override(self, monkeypatch, tmp_path: Path):
        monkeypatch.setenv("ROOKERY_ENVIRONMENT", "production")
        monkeypatch.setenv("ROOKERY_EXTENSIONS_PATH", str(tmp_path / "ext"))
        monkeypatch.setenv("ROOKERY_ENFORCE_FILE_PERMISSIONS", "false")
        monkeypatch.setenv("ROOKERY_SYNTAX_CHECK_TIMEOUT", "2.5")
        settings = RookerySettings(_env_file=None)
        assert settings.environment == "production"
        assert settings.resolved_extensions_path == tmp_path / "ext"
        assert settings.enforce_file_permissions is False
        assert settings.syntax_check_timeout == 2.5

    def test_list_from_env_json(self, monkeypatch):
        monkeypatch.setenv("ROOKERY_SOURCE_SUFFIXES", '[".py", ".pyi"]')
        assert RookerySettings(_env_file=None).source_suffixes == [".py", ".pyi"]

    def test_dotenv_file(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("ROOKERY_LOG_LEVEL=DEBUG\nROOKERY_STRICT_DEPENDENCIES=true\n")
        settings = RookerySettings(_env_file=env_file)
        assert settings.log_level == "DEBUG"
        assert settings.strict_dependencies is True

    def test_unrelated_env_ignored(self, monkeypatch):
        monkeypatch.setenv("ROOKERY_NOT_A_SETTING", "x")
        RookerySettings(_env_file=None)
