"""Configuration utilities for the consultant service mock.

This module loads application configuration with the following rules:
- Primary source: `consultant_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce allowed values and required fields.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONSULTANT_CONFIG = Path("consultant_config.json")
DATA_DIR = Path(__file__).resolve().parent / "data"

# Seed files shipped for each API variant
DEFAULT_SEED_FILES = {
    "snake": DATA_DIR / "db.json",
    "envelope": DATA_DIR / "db_envelope.json",
}

logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class StoreConfig(BaseModel):
    backend: str = Field(default="json")
    path: Optional[str] = None
    dsn: str = Field(default="sqlite+pysqlite:///:memory:")

    @field_validator("backend")
    @classmethod
    def backend_must_be_allowed(cls, v: str) -> str:
        allowed = {"json", "memory", "sql"}
        if v not in allowed:
            raise ValueError(f"store.backend must be one of {sorted(allowed)}")
        return v

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("store.dsn must be a non-empty string")
        return v


class ApiConfig(BaseModel):
    variant: str = Field(default="snake")  # snake (Variant A) or envelope (Variant B)
    prefix: str = Field(default="/consultant-service/v1")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"])
    port: int = Field(default=3000, gt=0, lt=65536)

    @field_validator("variant")
    @classmethod
    def variant_must_be_allowed(cls, v: str) -> str:
        allowed = {"snake", "envelope"}
        if v not in allowed:
            raise ValueError(f"api.variant must be one of {sorted(allowed)}")
        return v

    @field_validator("prefix")
    @classmethod
    def prefix_must_be_rooted(cls, v: str) -> str:
        if not v.startswith("/") or v.endswith("/"):
            raise ValueError("api.prefix must start with '/' and not end with '/'")
        return v


class AuthConfig(BaseModel):
    # Returned by the stub login; never checked against incoming credentials
    stub_token: str = Field(default="mock-access-token", min_length=1)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")

    @field_validator("level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR"}
        level = str(v).strip().upper()
        if level not in allowed:
            raise ValueError(f"logging.level must be one of {sorted(allowed)}")
        return level


class AppConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def seed_path(self) -> Path:
        """Return the JSON document file the `memory` and `sql` stores seed from."""
        if self.store.path:
            return Path(self.store.path)
        return DEFAULT_SEED_FILES[self.api.variant]

    def store_path(self) -> Path:
        """Return the file backing the `json` store.

        Defaults to a working-directory copy named after the variant's seed
        file, so the shipped seeds are never rewritten.
        """
        if self.store.path:
            return Path(self.store.path)
        return Path(DEFAULT_SEED_FILES[self.api.variant].name)


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) consultant_config.json at project root
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONSULTANT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        if isinstance(cur, list):
            return ",".join(str(item) for item in cur)
        return str(cur) if cur is not None else default

    # Store
    backend = _env("CONSULTANT_STORE_BACKEND") or _read_config_file("store.backend") or _base("store.backend", "json")
    store_path = _env("CONSULTANT_STORE_PATH") or _read_config_file("store.path") or _base("store.path")
    dsn = _env("DATABASE_URL") or _read_config_file("database.url") or _base("store.dsn", "sqlite+pysqlite:///:memory:")

    # API surface
    variant = _env("CONSULTANT_API_VARIANT") or _read_config_file("api.variant") or _base("api.variant", "snake")
    prefix = _env("CONSULTANT_API_PREFIX") or _read_config_file("api.prefix") or _base("api.prefix", "/consultant-service/v1")
    origins_text = _env("CONSULTANT_CORS_ORIGINS") or _read_config_file("api.cors_origins") or _base("api.cors_origins", "*")
    port_text = _env("PORT") or _read_config_file("api.port") or _base("api.port", "3000")

    # Stub auth
    stub_token = _env("CONSULTANT_STUB_TOKEN") or _read_config_file("auth.stub_token") or _base("auth.stub_token", "mock-access-token")

    log_level = _env("CONSULTANT_LOG_LEVEL") or _read_config_file("logging.level") or _base("logging.level", "INFO")

    try:
        cfg = AppConfig(
            store=StoreConfig(backend=str(backend).strip(), path=store_path, dsn=dsn),
            api=ApiConfig(
                variant=str(variant).strip(),
                prefix=str(prefix).strip(),
                cors_origins=[o.strip() for o in str(origins_text).split(",") if o.strip()],
                port=int(str(port_text).strip()),
            ),
            auth=AuthConfig(stub_token=str(stub_token)),
            logging=LoggingConfig(level=str(log_level)),
        )
        return cfg
    except (PydanticValidationError, ValueError) as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "ApiConfig",
    "AuthConfig",
    "LoggingConfig",
    "StoreConfig",
    "DEFAULT_SEED_FILES",
    "load_config",
]
