# src/taskos/config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import yaml

Json = Dict[str, Any]

DEFAULT_RPC_URL = "https://fullnode.testnet.sui.io:443"
DEFAULT_AGGREGATOR_URL = "https://aggregator.walrus-testnet.walrus.space"
DEFAULT_PUBLISHER_URL = "https://publisher.walrus-testnet.walrus.space"

_ALLOWED_MODES = {"dev", "testnet", "prod"}


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_float(v: Any, default: float) -> float:
    try:
        return float(v)
    except Exception:
        return float(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v).strip()
    return s if s else str(default)


@dataclass(frozen=True)
class TaskosConfig:
    """Process-wide configuration, built once at start and passed by reference."""

    # Ledger identifiers. Empty means "not configured yet".
    package_id: str
    registry_id: str
    # Shared Version object every task_manage entry function takes first.
    version_id: str

    rpc_url: str
    rpc_timeout_s: float

    aggregator_url: str
    publisher_url: str
    storage_timeout_s: float
    storage_retries: int
    store_epochs: int

    mode: str  # "dev" | "testnet" | "prod"
    log_level: str

    api_host: str
    api_port: int

    @property
    def has_package(self) -> bool:
        return bool(self.package_id.strip())

    @property
    def has_version(self) -> bool:
        return bool(self.version_id.strip())

    @property
    def has_registry(self) -> bool:
        return bool(self.registry_id.strip())

    def move_target(self, module: str, function: str) -> str:
        return f"{self.package_id.strip()}::{module}::{function}"

    def to_json(self) -> Json:
        return {
            "package_id": self.package_id,
            "registry_id": self.registry_id,
            "version_id": self.version_id,
            "rpc_url": self.rpc_url,
            "rpc_timeout_s": self.rpc_timeout_s,
            "aggregator_url": self.aggregator_url,
            "publisher_url": self.publisher_url,
            "storage_timeout_s": self.storage_timeout_s,
            "storage_retries": self.storage_retries,
            "store_epochs": self.store_epochs,
            "mode": self.mode,
            "log_level": self.log_level,
            "api_host": self.api_host,
            "api_port": self.api_port,
        }


def default_config() -> TaskosConfig:
    return TaskosConfig(
        package_id="",
        registry_id="",
        version_id="",
        rpc_url=DEFAULT_RPC_URL,
        rpc_timeout_s=15.0,
        aggregator_url=DEFAULT_AGGREGATOR_URL,
        publisher_url=DEFAULT_PUBLISHER_URL,
        storage_timeout_s=30.0,
        storage_retries=3,
        store_epochs=3,
        mode="prod",
        log_level="INFO",
        api_host="127.0.0.1",
        api_port=8080,
    )


def _validate_url(name: str, url: str) -> None:
    parsed = urlparse(url)
    if (parsed.scheme or "").lower() not in {"http", "https"}:
        raise ValueError(f"{name} must be an http(s) URL; got: {url!r}")
    if not parsed.hostname:
        raise ValueError(f"{name} must include a hostname; got: {url!r}")


def validate_config(cfg: TaskosConfig) -> None:
    """Fail-fast validation for operator config.

    Missing package/registry ids are NOT errors here: reads degrade to an
    empty result and writes fail with ConfigurationError at call time.
    """
    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    _validate_url("rpc_url", cfg.rpc_url)
    _validate_url("aggregator_url", cfg.aggregator_url)
    _validate_url("publisher_url", cfg.publisher_url)

    if float(cfg.rpc_timeout_s) <= 0:
        raise ValueError(f"rpc_timeout_s must be > 0; got: {cfg.rpc_timeout_s}")
    if float(cfg.storage_timeout_s) <= 0:
        raise ValueError(f"storage_timeout_s must be > 0; got: {cfg.storage_timeout_s}")
    if int(cfg.storage_retries) <= 0:
        raise ValueError(f"storage_retries must be > 0; got: {cfg.storage_retries}")
    if int(cfg.store_epochs) <= 0:
        raise ValueError(f"store_epochs must be > 0; got: {cfg.store_epochs}")
    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def config_from_mapping(raw: Mapping[str, Any], *, base: Optional[TaskosConfig] = None) -> TaskosConfig:
    d = base or default_config()
    return TaskosConfig(
        package_id=str(raw.get("package_id") or d.package_id).strip(),
        registry_id=str(raw.get("registry_id") or d.registry_id).strip(),
        version_id=str(raw.get("version_id") or d.version_id).strip(),
        rpc_url=_as_str(raw.get("rpc_url"), d.rpc_url).rstrip("/"),
        rpc_timeout_s=_as_float(raw.get("rpc_timeout_s"), d.rpc_timeout_s),
        aggregator_url=_as_str(raw.get("aggregator_url"), d.aggregator_url).rstrip("/"),
        publisher_url=_as_str(raw.get("publisher_url"), d.publisher_url).rstrip("/"),
        storage_timeout_s=_as_float(raw.get("storage_timeout_s"), d.storage_timeout_s),
        storage_retries=_as_int(raw.get("storage_retries"), d.storage_retries),
        store_epochs=_as_int(raw.get("store_epochs"), d.store_epochs),
        mode=_as_str(raw.get("mode"), d.mode).lower(),
        log_level=_as_str(raw.get("log_level"), d.log_level).upper(),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
    )


def read_config_file(path: str) -> TaskosConfig:
    """Read a JSON or YAML config file (chosen by suffix) over the defaults."""
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        try:
            raw = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ValueError(f"invalid YAML in {path}: {e}") from e
    else:
        raw = json.loads(text)
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValueError("taskos config must be a mapping")

    cfg = config_from_mapping(raw)
    validate_config(cfg)
    return cfg


_ENV_KEYS = {
    "package_id": "TASKOS_PACKAGE_ID",
    "registry_id": "TASKOS_REGISTRY_ID",
    "version_id": "TASKOS_VERSION_ID",
    "rpc_url": "TASKOS_RPC_URL",
    "rpc_timeout_s": "TASKOS_RPC_TIMEOUT_S",
    "aggregator_url": "TASKOS_WALRUS_AGGREGATOR",
    "publisher_url": "TASKOS_WALRUS_PUBLISHER",
    "storage_timeout_s": "TASKOS_STORAGE_TIMEOUT_S",
    "storage_retries": "TASKOS_STORAGE_RETRIES",
    "store_epochs": "TASKOS_STORE_EPOCHS",
    "mode": "TASKOS_MODE",
    "log_level": "TASKOS_LOG_LEVEL",
    "api_host": "TASKOS_API_HOST",
    "api_port": "TASKOS_API_PORT",
}


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> TaskosConfig:
    env = os.environ if environ is None else environ
    raw = {field: env.get(key) for field, key in _ENV_KEYS.items()}
    cfg = config_from_mapping(raw)
    validate_config(cfg)
    return cfg


def load_config(*, config_path: Optional[str] = None) -> TaskosConfig:
    """The only place that reads the process environment for settings."""
    p = config_path or os.environ.get("TASKOS_CONFIG_PATH")
    if p:
        return read_config_file(p)
    return config_from_env()


def with_overrides(cfg: TaskosConfig, **changes: Any) -> TaskosConfig:
    out = replace(cfg, **changes)
    validate_config(out)
    return out
