from __future__ import annotations
"""
escrow_ledger.config: configuration for the escrow ledger host.

Covers:
- The custody account that holds deposited value between create and release
- Record store backend selection and size caps
- Request limits (recipients per escrow)
- Logging defaults

Environment overrides (all optional; sensible defaults provided):

  ESCROW_CUSTODY_ACCOUNT=escrow:custody

  # Record store
  ESCROW_STORE_BACKEND=memory          # memory | sqlite
  ESCROW_STORE_PATH=escrow_ledger.db
  ESCROW_STORE_MAX_KEY_BYTES=256
  ESCROW_STORE_MAX_VALUE_BYTES=131072

  # Limits
  ESCROW_MAX_RECIPIENTS=64

  # Logging
  ESCROW_LOG_LEVEL=INFO
  ESCROW_LOG_FORMAT=text               # text | json

You can also load from a JSON or YAML file via `ESCROW_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


from dataclasses import dataclass, asdict, field
from functools import lru_cache
from typing import Any, Dict, Optional
import json
import os
from pathlib import Path

import yaml

from .model.escrow import MAX_NAME_BYTES

# Smallest key cap that fits a balance key carrying two maximal names.
MIN_KEY_BYTES = 2 * MAX_NAME_BYTES + 16


# -------------------------- Data classes --------------------------


@dataclass
class StoreConfig:
    """Record store backend and caps."""
    backend: str = "memory"
    path: str = "escrow_ledger.db"
    max_key_bytes: int = 256
    max_value_bytes: int = 131_072   # 128 KiB

    def validate(self) -> None:
        if self.backend not in ("memory", "sqlite"):
            raise ValueError(f"store.backend must be 'memory' or 'sqlite' (got {self.backend!r}).")
        if self.backend == "sqlite" and not self.path:
            raise ValueError("store.path is required for the sqlite backend.")
        if self.max_key_bytes <= 0 or self.max_value_bytes <= 0:
            raise ValueError("store size caps must be positive.")
        if self.max_key_bytes < MIN_KEY_BYTES:
            raise ValueError(f"store.max_key_bytes must be at least {MIN_KEY_BYTES} (got {self.max_key_bytes}).")


@dataclass
class Limits:
    """Request limits enforced by the ledger."""
    max_recipients: int = 64

    def validate(self) -> None:
        if self.max_recipients <= 0:
            raise ValueError(f"max_recipients must be positive (got {self.max_recipients}).")


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = False

    def validate(self) -> None:
        if self.level.upper() not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG", "NOTSET"):
            raise ValueError(f"unknown log level {self.level!r}.")


@dataclass
class EscrowConfig:
    """Top-level configuration container."""
    custody_account: str = "escrow:custody"
    store: StoreConfig = field(default_factory=StoreConfig)
    limits: Limits = field(default_factory=Limits)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        if not self.custody_account:
            raise ValueError("custody_account must be non-empty.")
        if len(self.custody_account.encode("utf-8")) > MAX_NAME_BYTES:
            raise ValueError(f"custody_account exceeds {MAX_NAME_BYTES} bytes.")
        self.store.validate()
        self.limits.validate()
        self.logging.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ValueError(f"Invalid int for {name}: {v!r}") from e


def _getenv_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    return v.strip()


def from_env(base: Optional[EscrowConfig] = None, prefix: str = "ESCROW_") -> EscrowConfig:
    """
    Build an EscrowConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or EscrowConfig()

    log_format = _getenv_str(f"{prefix}LOG_FORMAT", "json" if cfg.logging.json else "text").lower()

    new_cfg = EscrowConfig(
        custody_account=_getenv_str(f"{prefix}CUSTODY_ACCOUNT", cfg.custody_account),
        store=StoreConfig(
            backend=_getenv_str(f"{prefix}STORE_BACKEND", cfg.store.backend).lower(),
            path=_getenv_str(f"{prefix}STORE_PATH", cfg.store.path),
            max_key_bytes=_getenv_int(f"{prefix}STORE_MAX_KEY_BYTES", cfg.store.max_key_bytes),
            max_value_bytes=_getenv_int(f"{prefix}STORE_MAX_VALUE_BYTES", cfg.store.max_value_bytes),
        ),
        limits=Limits(
            max_recipients=_getenv_int(f"{prefix}MAX_RECIPIENTS", cfg.limits.max_recipients),
        ),
        logging=LoggingConfig(
            level=_getenv_str(f"{prefix}LOG_LEVEL", cfg.logging.level).upper(),
            json=(log_format == "json"),
        ),
    )
    new_cfg.validate()
    return new_cfg


def from_file(path: str | os.PathLike[str]) -> EscrowConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")

    store = data.get("store", {})
    limits = data.get("limits", {})
    logging_ = data.get("logging", {})

    cfg = EscrowConfig(
        custody_account=data.get("custody_account", EscrowConfig().custody_account),
        store=StoreConfig(
            backend=store.get("backend", StoreConfig().backend),
            path=store.get("path", StoreConfig().path),
            max_key_bytes=int(store.get("max_key_bytes", StoreConfig().max_key_bytes)),
            max_value_bytes=int(store.get("max_value_bytes", StoreConfig().max_value_bytes)),
        ),
        limits=Limits(
            max_recipients=int(limits.get("max_recipients", Limits().max_recipients)),
        ),
        logging=LoggingConfig(
            level=str(logging_.get("level", LoggingConfig().level)).upper(),
            json=bool(logging_.get("json", LoggingConfig().json)),
        ),
    )
    cfg.validate()
    return cfg


@lru_cache(maxsize=1)
def load_config() -> EscrowConfig:
    """
    Defaults → optional ESCROW_CONFIG_FILE → environment. Cached; call
    `load_config.cache_clear()` after changing the environment in tests.
    """
    cfg_file = os.getenv("ESCROW_CONFIG_FILE")
    base = from_file(cfg_file) if cfg_file else EscrowConfig()
    return from_env(base)


__all__ = [
    "MIN_KEY_BYTES",
    "StoreConfig",
    "Limits",
    "LoggingConfig",
    "EscrowConfig",
    "from_env",
    "from_file",
    "load_config",
]
