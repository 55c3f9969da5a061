"""Journal archive application configuration.

Loads settings from two YAML files:
  * journal.settings.yaml: non-secret configuration
  * journal.secrets.yaml: secrets (never committed)

Either path can be overridden with ``JOURNAL_SETTINGS_FILE`` /
``JOURNAL_SECRETS_FILE``.  ``DOCUMENT_STORAGE_PATH`` overrides the journal
storage root and ``APP_ENV`` overrides ``server.environment``.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

SETTINGS_FILE = Path("journal.settings.yaml")
SECRETS_FILE  = Path("journal.secrets.yaml")

MEMORY_DATABASE = ":memory:"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with path.open(encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def _path_base(settings_path: Path) -> Path:
    """Directory that relative paths in the settings file resolve against.

    A settings file kept in ``<project>/config/`` resolves from the project
    root; any other layout resolves from the settings file's own directory.
    """
    settings_dir = settings_path.parent
    if settings_dir.name == "config":
        return settings_dir.parent
    return settings_dir


def _resolve(base: Path, value: str) -> str:
    path = Path(value)
    if path.is_absolute():
        return str(path)
    return str(base / path)


# ---------------------------------------------------------------------------
# Secrets models
# ---------------------------------------------------------------------------


class AwsSecrets(BaseModel):
    access_key_id:     Optional[str] = None
    secret_access_key: Optional[str] = None
    session_token:     Optional[str] = None


class GoogleSecrets(BaseModel):
    client_id:     Optional[str] = None
    client_secret: Optional[str] = None
    refresh_token: Optional[str] = None


class Secrets(BaseModel):
    aws:    AwsSecrets    = Field(default_factory=AwsSecrets)
    google: GoogleSecrets = Field(default_factory=GoogleSecrets)


# ---------------------------------------------------------------------------
# Settings models
# ---------------------------------------------------------------------------


class ServerSettings(BaseModel):
    host:            str  = "0.0.0.0"
    port:            int  = 5000
    environment:     Literal["development", "production", "test"] = "development"
    allowed_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


class LoggingSettings(BaseModel):
    level: str = "info"


class StorageSettings(BaseModel):
    """Local staging directories and the remote key namespace."""
    root:             str       = "uploads/journals"
    submissions_root: str       = "uploads/submissions"
    base_dir:         str       = "."
    temp_dir:         str       = "tmp/downloads"
    key_prefix:       str       = "journal-archive"
    # Extra directories searched by the download resolver for files written
    # by older path layouts.
    legacy_roots:     List[str] = Field(default_factory=list)


class IntakeSettings(BaseModel):
    max_file_size_bytes: int = 50 * 1024 * 1024
    min_abstract_length: int = 50


class ObjectStoreSettings(BaseModel):
    """S3-compatible primary object store."""
    enabled:         bool          = True
    bucket:          str           = ""
    region:          str           = "us-east-1"
    endpoint_url:    Optional[str] = None
    public_base_url: Optional[str] = None
    public_read:     bool          = True


class DriveSettings(BaseModel):
    """Optional secondary provider (Google Drive)."""
    enabled:   bool = False
    folder_id: str  = ""


class DatabaseSettings(BaseModel):
    path: str = "journal_archive.duckdb"


class DownloadSettings(BaseModel):
    http_timeout_seconds: float = 30.0


class AppConfig(BaseModel):
    server:       ServerSettings      = Field(default_factory=ServerSettings)
    logging:      LoggingSettings     = Field(default_factory=LoggingSettings)
    storage:      StorageSettings     = Field(default_factory=StorageSettings)
    intake:       IntakeSettings      = Field(default_factory=IntakeSettings)
    object_store: ObjectStoreSettings = Field(default_factory=ObjectStoreSettings)
    drive:        DriveSettings       = Field(default_factory=DriveSettings)
    database:     DatabaseSettings    = Field(default_factory=DatabaseSettings)
    download:     DownloadSettings    = Field(default_factory=DownloadSettings)
    secrets:      Secrets             = Field(default_factory=Secrets)


# ---------------------------------------------------------------------------
# Environment overrides and path resolution
# ---------------------------------------------------------------------------


def _apply_env_overrides(data: Dict[str, Any]) -> None:
    storage_path = os.environ.get("DOCUMENT_STORAGE_PATH")
    if storage_path:
        data.setdefault("storage", {})["root"] = storage_path
        logger.info("Storage root overridden by DOCUMENT_STORAGE_PATH: %s", storage_path)

    app_env = os.environ.get("APP_ENV")
    if app_env:
        data.setdefault("server", {})["environment"] = app_env


def _resolve_paths(config: AppConfig, base: Path) -> None:
    storage = config.storage
    storage.base_dir = _resolve(base, storage.base_dir)
    storage.root = _resolve(base, storage.root)
    storage.submissions_root = _resolve(base, storage.submissions_root)
    storage.temp_dir = _resolve(base, storage.temp_dir)
    storage.legacy_roots = [_resolve(base, p) for p in storage.legacy_roots]

    if config.database.path != MEMORY_DATABASE:
        config.database.path = _resolve(base, config.database.path)


# ---------------------------------------------------------------------------
# Public loader
# ---------------------------------------------------------------------------


def load_config(
    settings_path: Optional[Path] = None,
    secrets_path: Optional[Path] = None,
) -> AppConfig:
    """Load and merge settings + secrets into a single *AppConfig* object."""
    settings_path = Path(
        settings_path or os.environ.get("JOURNAL_SETTINGS_FILE") or SETTINGS_FILE
    )
    if secrets_path is None:
        env_secrets = os.environ.get("JOURNAL_SECRETS_FILE")
        secrets_path = Path(env_secrets) if env_secrets else settings_path.parent / SECRETS_FILE.name

    settings_data = _load_yaml(settings_path)
    secrets_data  = _load_yaml(Path(secrets_path))

    # Secrets live under the "secrets" key in AppConfig
    settings_data["secrets"] = secrets_data
    _apply_env_overrides(settings_data)

    config = AppConfig(**settings_data)
    _resolve_paths(config, _path_base(settings_path))

    logger.info(
        "Config loaded (env=%s, storage.root=%s, object_store.enabled=%s, drive.enabled=%s)",
        config.server.environment,
        config.storage.root,
        config.object_store.enabled,
        config.drive.enabled,
    )
    return config


_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Return the process-wide config, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[AppConfig]) -> None:
    """Set (or clear) the process-wide config."""
    global _config
    _config = config
