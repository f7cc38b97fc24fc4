"""User configuration for winstall."""

from __future__ import annotations

import json
import os
import shutil
from importlib import resources
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

# Default configuration location
CONFIG_DIR = Path.home() / ".winstall"
CONFIG_FILE = "config.json"

# Environment variable overriding the catalog location
CATALOG_ENV_VAR = "WINSTALL_CATALOG"


class Settings(BaseModel):
    """Tunable settings, stored as camelCase JSON."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    catalog_path: Path = Field(default=CONFIG_DIR / "catalog.json", alias="catalogPath")
    log_path: Path = Field(default=CONFIG_DIR / "install.log", alias="logPath")
    page_size: int = Field(default=10, alias="pageSize", ge=1)
    install_pause_seconds: float = Field(default=2.0, alias="installPauseSeconds", ge=0)
    http_timeout: float = Field(default=20.0, alias="httpTimeout", gt=0)
    download_timeout: float = Field(default=300.0, alias="downloadTimeout", gt=0)
    github_api_url: str = Field(default="https://api.github.com", alias="githubApiUrl")
    github_max_attempts: int = Field(default=4, alias="githubMaxAttempts", ge=1)
    github_backoff_seconds: float = Field(default=1.0, alias="githubBackoffSeconds", ge=0)
    github_search_limit: int = Field(default=10, alias="githubSearchLimit", ge=1, le=100)
    release_install_root: Path = Field(
        default=Path.home() / "Programs", alias="releaseInstallRoot"
    )
    export_path: Path = Field(
        default=Path.home() / "Desktop" / "installed_software.json", alias="exportPath"
    )


def get_config_path(config_dir: Path | None = None) -> Path:
    """Path of the settings file."""
    return (config_dir or CONFIG_DIR) / CONFIG_FILE


def load_settings(path: Path | None = None, apply_env: bool = True) -> Settings:
    """Load settings from disk.

    Args:
        path: Settings file. Defaults to ~/.winstall/config.json.
        apply_env: Apply the WINSTALL_CATALOG override. Disabled when the
            settings are about to be written back.

    Returns:
        Settings, with defaults for anything not on disk.

    Raises:
        pydantic.ValidationError: If the file holds invalid values.
        json.JSONDecodeError: If the file is not JSON.
    """
    path = path or get_config_path()
    settings = Settings()
    if path.exists():
        settings = Settings.model_validate(json.loads(path.read_text()))

    override = os.environ.get(CATALOG_ENV_VAR) if apply_env else None
    if override:
        settings.catalog_path = Path(override).expanduser()
    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save settings to disk.

    Args:
        settings: Settings to save.
        path: Settings file. Defaults to ~/.winstall/config.json.

    Returns:
        The path written.
    """
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    data = settings.model_dump(by_alias=True, mode="json")
    path.write_text(json.dumps(data, indent=2))
    return path


def bundled_catalog_path() -> Path:
    """Path of the starter catalog shipped with the package."""
    return Path(str(resources.files("winstall") / "data" / "catalog.json"))


def ensure_catalog(settings: Settings) -> Path:
    """Make sure the configured catalog exists.

    Copies the bundled starter catalog to the configured location on first
    run so later merges are written to the user's copy.

    Returns:
        The catalog path from settings.
    """
    path = settings.catalog_path
    if not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(bundled_catalog_path(), path)
    return path
