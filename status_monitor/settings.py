from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any


_TRUE = frozenset({"1", "true", "yes", "on"})
_FALSE = frozenset({"0", "false", "no", "off"})


def _env(name: str) -> str | None:
    # Unset and blank both mean "use the default".
    raw = (os.getenv(name) or "").strip()
    return raw or None


def _env_str(name: str, default: str) -> str:
    return _env(name) or default


def _env_bool(name: str, default: bool) -> bool:
    raw = (_env(name) or "").lower()
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    return default


def _env_number(name: str, default: float, cast: type) -> Any:
    raw = _env(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    # Persistence backend: file | sqlite | memory
    store_kind: str = field(default_factory=lambda: _env_str("STATUS_MONITOR_STORE", "file"))
    data_dir: str = field(default_factory=lambda: _env_str("STATUS_MONITOR_DATA_DIR", "./data"))
    db_path: str = field(default_factory=lambda: _env_str("STATUS_MONITOR_DB_PATH", "./data/status-monitor.db"))

    # sha256 hex digest of the admin password. Empty rejects every admin write.
    admin_password_hash: str = field(default_factory=lambda: _env("ADMIN_PASSWORD_HASH") or "")

    tick_interval_seconds: int = field(
        default_factory=lambda: max(1, _env_number("STATUS_MONITOR_TICK_INTERVAL_SECONDS", 300, int))
    )
    probe_timeout_seconds: float = field(
        default_factory=lambda: max(0.1, _env_number("STATUS_MONITOR_PROBE_TIMEOUT_SECONDS", 8.0, float))
    )
    scheduler_enabled: bool = field(default_factory=lambda: _env_bool("STATUS_MONITOR_SCHEDULER_ENABLED", True))

    # Optional YAML file replacing the built-in default configuration.
    default_config_path: str = field(default_factory=lambda: _env("STATUS_MONITOR_DEFAULT_CONFIG") or "")

    host: str = field(default_factory=lambda: _env_str("STATUS_MONITOR_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_number("STATUS_MONITOR_PORT", 8080, int))
    log_level: str = field(default_factory=lambda: _env_str("LOG_LEVEL", "INFO"))
