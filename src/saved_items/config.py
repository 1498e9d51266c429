from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any


@dataclass(slots=True)
class StoreConfig:
    state_dir: str = ".saved-items"
    cookie_file: str = "cookies.json"
    local_file: str = "local_storage.json"
    keys_blob: str = "saved_keys_v1"
    cache_blob: str = "saved_record_cache_v1"
    legacy_blob: str = "saved_items"
    max_key_bytes: int = 3500
    key_max_age_seconds: int = 60 * 60 * 24 * 365

    @property
    def cookie_path(self) -> Path:
        return Path(self.state_dir).expanduser() / self.cookie_file

    @property
    def local_path(self) -> Path:
        return Path(self.state_dir).expanduser() / self.local_file


@dataclass(slots=True)
class RemoteConfig:
    base_url: str = "http://localhost:8080/v1"
    token: str | None = None
    timeout_seconds: float = 12.0
    retry_max: int = 1
    retry_backoff_seconds: float = 0.5


@dataclass(slots=True)
class CatalogConfig:
    base_url: str = "http://localhost:8080/v1"
    timeout_seconds: float = 10.0
    max_concurrency: int = 8


@dataclass(slots=True)
class AppConfig:
    store: StoreConfig = field(default_factory=StoreConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    user_agent: str = "saved-items/0.1"
    log_level: str = "WARNING"


def _merge(default: Any, override: Any) -> Any:
    if isinstance(default, dict) and isinstance(override, dict):
        merged: dict[str, Any] = {**default}
        for key, value in override.items():
            merged[key] = _merge(default.get(key), value)
        return merged
    return override if override is not None else default


def load_config(path: Path) -> AppConfig:
    data: dict[str, Any] = {}
    if path.exists():
        data = _read_toml(path)

    defaults = AppConfig()
    merged = _merge(_as_dict(defaults), data)

    config = AppConfig(
        store=StoreConfig(**merged.get("store", {})),
        remote=RemoteConfig(**merged.get("remote", {})),
        catalog=CatalogConfig(**merged.get("catalog", {})),
        user_agent=merged.get("user_agent", "saved-items/0.1"),
        log_level=merged.get("log_level", "WARNING"),
    )

    if env_base := os.getenv("SAVED_ITEMS_API_BASE_URL"):
        base = env_base.strip().rstrip("/")
        config.remote.base_url = base
        config.catalog.base_url = base
    if env_token := os.getenv("SAVED_ITEMS_TOKEN"):
        token = env_token.strip()
        if token.lower().startswith("bearer "):
            token = token[7:].strip()
        config.remote.token = token or None
    if env_level := os.getenv("SAVED_ITEMS_LOG_LEVEL"):
        config.log_level = env_level

    config.log_level = config.log_level.upper()
    config.catalog.max_concurrency = max(1, config.catalog.max_concurrency)
    return config


def config_path(cli_path: str | None) -> Path:
    if cli_path:
        return Path(cli_path).expanduser()
    if env_path := os.getenv("SAVED_ITEMS_CONFIG"):
        return Path(env_path).expanduser()
    return Path("saved-items.toml")


def _read_toml(path: Path) -> dict[str, Any]:
    import tomllib

    with path.open("rb") as handle:
        return tomllib.load(handle)


def _as_dict(config: AppConfig) -> dict[str, Any]:
    return {
        "user_agent": config.user_agent,
        "log_level": config.log_level,
        "store": {
            "state_dir": config.store.state_dir,
            "cookie_file": config.store.cookie_file,
            "local_file": config.store.local_file,
            "keys_blob": config.store.keys_blob,
            "cache_blob": config.store.cache_blob,
            "legacy_blob": config.store.legacy_blob,
            "max_key_bytes": config.store.max_key_bytes,
            "key_max_age_seconds": config.store.key_max_age_seconds,
        },
        "remote": {
            "base_url": config.remote.base_url,
            "token": config.remote.token,
            "timeout_seconds": config.remote.timeout_seconds,
            "retry_max": config.remote.retry_max,
            "retry_backoff_seconds": config.remote.retry_backoff_seconds,
        },
        "catalog": {
            "base_url": config.catalog.base_url,
            "timeout_seconds": config.catalog.timeout_seconds,
            "max_concurrency": config.catalog.max_concurrency,
        },
    }
