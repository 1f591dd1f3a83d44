"""Application configuration utilities."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

ENV_OVERRIDES = {
    "BABYLOG_DATABASE_PATH": "database_path",
    "BABYLOG_STORAGE_BACKEND": "storage_backend",
    "BABYLOG_REMOTE_URL": "remote_base_url",
    "BABYLOG_LOG_LEVEL": "log_level",
}


class AppConfig(BaseModel):
    """Strongly typed configuration loaded from config.json and the environment."""

    database_path: str = Field(default="./data/babylog.db")
    storage_backend: Literal["sqlite", "remote"] = Field(default="sqlite")
    remote_base_url: Optional[str] = Field(default=None)
    remote_timeout: float = Field(default=15.0)
    min_family_code_length: int = Field(default=4)
    strict_checklists: bool = Field(default=False)
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]
    )
    log_level: str = Field(default="INFO")

    @property
    def resolved_database_path(self) -> Path:
        """Return the absolute path for the SQLite database file."""
        path = Path(self.database_path)
        if path.is_absolute():
            return path
        return (Path(__file__).resolve().parents[1] / path).resolve()


def _config_path() -> Path:
    override = os.getenv("BABYLOG_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parents[1] / "config.json"


def load_config() -> AppConfig:
    """Load configuration from config.json, then apply BABYLOG_* environment overrides.

    A missing config.json is not an error; every field has a default.
    """

    config_file = _config_path()
    contents: Dict[str, Any] = {}
    if config_file.exists():
        contents = json.loads(config_file.read_text())
    for env_name, field in ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            contents[field] = value
    return AppConfig(**contents)


CONFIG = load_config()
