"""Runtime settings — env-driven, passed explicitly to every component.

Where extensions live, where ``extensions.json`` is kept, which
environment is active and how strictly admission is enforced.  Any field
can be overridden with a ``ROOKERY_<FIELD>`` variable, either exported or
listed in the project's ``.env``.

Construct a ``RookerySettings`` once at process start (or per test) and
hand it to ``ExtensionValidator``, ``ExtensionConfigStore`` and
``ExtensionManager``.
"""

from __future__ import annotations

import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rookery import __version__


class RookerySettings(BaseSettings):
    """Extension subsystem configuration with environment variable overrides.

    All settings can be overridden via ROOKERY_* environment variables
    or a .env file in the working directory.

    Examples
    --------
    Override via environment::

        export ROOKERY_ENVIRONMENT=production
        export ROOKERY_EXTENSIONS_PATH=/srv/app/extensions
        export ROOKERY_ENFORCE_FILE_PERMISSIONS=false

    Or construct directly in tests::

        settings = RookerySettings(project_root=tmp_path, environment="production")
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="ROOKERY_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Storage paths.  ``extensions_path`` and ``config_path`` default to
    # locations under ``project_root`` when left unset.
    project_root: Path = Path(".")
    extensions_path: Path | None = None
    config_path: Path | None = None

    # Host identity used when evaluating manifest ``engines`` constraints
    framework_name: str = "rookery"
    framework_version: str = __version__
    runtime_name: str = "python"

    # Validation policy
    source_suffixes: list[str] = Field(default_factory=lambda: [".py"])
    python_executable: str = Field(default_factory=lambda: sys.executable)
    syntax_check_timeout: float = 30.0
    enforce_file_permissions: bool = True
    strict_dependencies: bool = False

    # Authors whose extensions are classified as ``core``
    core_authors: list[str] = Field(
        default_factory=lambda: ["rookery team", "rookery", "core"]
    )

    # Registry defaults written into a freshly created config document
    registry_url: str = "https://registry.rookery.dev"
    auto_update: bool = False
    check_updates: bool = True

    @property
    def resolved_extensions_path(self) -> Path:
        """Directory scanned for extension packages."""
        if self.extensions_path is not None:
            return self.extensions_path
        return self.project_root / "extensions"

    @property
    def resolved_config_path(self) -> Path:
        """Location of the JSON configuration document."""
        if self.config_path is not None:
            return self.config_path
        return self.resolved_extensions_path / "extensions.json"

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"
