"""
Configuration management with schema validation.
Single source of truth for QueueTicket settings.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .exceptions import ConfigError

# Load environment variables
load_dotenv()

CONFIG_DIR = Path(os.getenv("QTICKET_CONFIG_DIR", "config"))
SETTINGS_FILE = CONFIG_DIR / "settings.yaml"


class AppSettings(BaseModel):
    name: str = "QueueTicket"
    version: str = "1.0.0"
    environment: str = "development"


class ServerSettings(BaseModel):
    host: str = "127.0.0.1"
    port: int = 3000
    data_dir: str = "."
    auth_file: str = "queue-auth.json"
    backup_dir: str = "queue-backups"
    static_dir: str = "static"
    default_document: str = "index.html"

    def auth_path(self) -> Path:
        return Path(self.data_dir) / self.auth_file

    def backup_path(self) -> Path:
        return Path(self.data_dir) / self.backup_dir


class SessionSettings(BaseModel):
    max_age_hours: float = Field(default=8, gt=0)
    # Signs the session cookie; a random per-process key is used when empty
    secret_key: str = ""


class DisplaySettings(BaseModel):
    poll_interval_seconds: float = Field(default=5, gt=0)
    link_base_url: str = "http://localhost:3000"


class CleanupSettings(BaseModel):
    enabled: bool = True
    interval_hours: int = Field(default=24, ge=1)
    max_inactive_days: float = Field(default=1, gt=0)
    run_on_start: bool = True


class RemoteSettings(BaseModel):
    """Mirror target for client-side storage (the file server)."""
    enabled: bool = False
    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 5.0
    local_dir: str = ".qticket"


class LoggingSettings(BaseModel):
    level: str = "INFO"
    format: str = "json"
    file_path: Optional[str] = "logs/qticket.log"
    max_bytes: int = 10485760
    backup_count: int = 5


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)
    cleanup: CleanupSettings = Field(default_factory=CleanupSettings)
    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigManager:
    """Singleton configuration manager"""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(ConfigManager, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self.settings_path = SETTINGS_FILE
        self._settings: Optional[Settings] = None
        self._initialized = True

    def _substitute_env_vars(self, value: Any) -> Any:
        """Recursively substitute ${VAR} and ${VAR:default} references"""
        if isinstance(value, str):
            if value.startswith("${") and value.endswith("}"):
                var_expr = value[2:-1]
                if ":" in var_expr:
                    var_name, default = var_expr.split(":", 1)
                    return os.getenv(var_name.strip(), default.strip())
                return os.getenv(var_expr, value)
        elif isinstance(value, dict):
            return {k: self._substitute_env_vars(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [self._substitute_env_vars(item) for item in value]
        return value

    def load_settings(self, path: Optional[Path] = None) -> Settings:
        """Load and validate settings.yaml; defaults apply when the file is missing"""
        settings_path = Path(path) if path else self.settings_path
        if not settings_path.exists():
            self._settings = Settings()
            return self._settings

        try:
            with open(settings_path, "r", encoding="utf-8") as f:
                raw_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to read settings from {settings_path}: {e}")

        processed_data = self._substitute_env_vars(raw_data)
        try:
            self._settings = Settings(**processed_data)
        except ValueError as e:
            raise ConfigError(f"Invalid settings in {settings_path}: {e}")
        return self._settings

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            return self.load_settings()
        return self._settings

    def reset(self) -> None:
        """Forget cached settings (tests, reloads)"""
        self._settings = None


# Global instance
config_manager = ConfigManager()
