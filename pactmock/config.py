"""Configuration utilities for the contract harness.

This module loads configuration with the following rules:
- Primary source: `pact_config.json` at the project root.
- Overrides: environment variables, then optional text files under `config/`.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_PACT_CONFIG = Path("pact_config.json")
logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
FILE_WRITE_MODES = ("overwrite", "merge")


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    bind_timeout: float = Field(default=5.0, gt=0)

    @field_validator("host")
    @classmethod
    def host_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("server.host must be a non-empty string")
        return v.strip()


class ContractConfig(BaseModel):
    pact_dir: str = "pacts"
    file_write_mode: str = "overwrite"

    @field_validator("file_write_mode")
    @classmethod
    def mode_must_be_allowed(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in FILE_WRITE_MODES:
            raise ValueError(f"contract.file_write_mode must be one of {list(FILE_WRITE_MODES)}")
        return v


class PactConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    contract: ContractConfig = Field(default_factory=ContractConfig)
    log_level: str = "INFO"
    provider: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def level_must_be_known(cls, v: str) -> str:
        v = v.strip().upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {list(LOG_LEVELS)}")
        return v

    @field_validator("provider")
    @classmethod
    def blank_provider_is_unset(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:  # pragma: no cover
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> PactConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) pact_config.json at project root (primary base)
    4) Safe defaults for local runs
    """

    base = _read_json_file(ROOT_PACT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    host = _env("PACT_HOST") or _read_config_file("server.host") or _base("server.host", "127.0.0.1")
    bind_timeout_text = _env("PACT_BIND_TIMEOUT") or _read_config_file("server.bind_timeout") or _base("server.bind_timeout", "5")

    pact_dir = _env("PACT_DIR") or _read_config_file("contract.pact_dir") or _base("contract.pact_dir", "pacts")
    write_mode = _env("PACT_FILE_WRITE_MODE") or _read_config_file("contract.file_write_mode") or _base("contract.file_write_mode", "overwrite")

    log_level = _env("PACT_LOG_LEVEL") or _read_config_file("log_level") or _base("log_level", "INFO")
    provider = _env("PACT_PROVIDER") or _read_config_file("provider") or _base("provider")

    try:
        return PactConfig(
            server=ServerConfig(host=host, bind_timeout=float(str(bind_timeout_text).strip())),
            contract=ContractConfig(pact_dir=pact_dir, file_write_mode=write_mode),
            log_level=log_level,
            provider=provider,
        )
    except ValueError as e:
        # PydanticValidationError is a ValueError; float() parse failures land here too
        logger.error("Invalid pact configuration: %s", e)
        raise


def resolve_provider_name(default: str, config: Optional[PactConfig] = None) -> str:
    """Return the configured provider override, else `default`."""
    cfg = config if config is not None else load_config()
    return cfg.provider or default


__all__ = [
    "PactConfig",
    "ServerConfig",
    "ContractConfig",
    "LOG_LEVELS",
    "FILE_WRITE_MODES",
    "PydanticValidationError",
    "load_config",
    "resolve_provider_name",
]
