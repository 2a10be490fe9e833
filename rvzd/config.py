from __future__ import annotations

import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "rvzd.toml"


def default_config_path() -> Path:
    """Config location: $RVZD_HOME/rvzd.toml, else ~/.rvzd/rvzd.toml."""
    home = os.environ.get("RVZD_HOME")
    base = Path(home) if home else Path.home() / ".rvzd"
    return base / CONFIG_FILENAME


def ensure_config_dir(config_path: str) -> None:
    cfg_dir = os.path.dirname(config_path)
    if not cfg_dir:
        return
    Path(cfg_dir).mkdir(parents=True, exist_ok=True)
    try:
        os.chmod(cfg_dir, 0o700)
    except OSError:
        # Not every filesystem honours modes.
        pass


@dataclass(frozen=True)
class HubRuntimeConfig:
    config_path: str | None = None
    host: str = "0.0.0.0"
    port: int = 8443
    cert_file: str | None = None
    key_file: str | None = None
    health_path: str = "/"
    stats_path: str | None = "/stats"
    ping_interval_s: float = 20.0
    ping_timeout_s: float = 20.0
    max_message_bytes: int = 64 * 1024
    outbox_max: int = 256
    log_level: str = "INFO"
    log_ws_level: str = "WARNING"
    log_console: bool = True
    log_file: str | None = None
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    log_datefmt: str | None = None


_LOGGING_KEYS = {
    "level": "log_level",
    "ws_level": "log_ws_level",
    "console": "log_console",
    "file": "log_file",
    "format": "log_format",
    "datefmt": "log_datefmt",
}

# Keys where an empty string in TOML means "unset".
_OPTIONAL_KEYS = ("cert_file", "key_file", "stats_path", "log_file", "log_datefmt")


def load_toml(path: str) -> dict:
    import tomllib

    with open(path, "rb") as f:
        return tomllib.load(f)


def apply_config_data(cfg: HubRuntimeConfig, data: Any) -> HubRuntimeConfig:
    if not isinstance(data, dict):
        return cfg

    hub = data.get("hub")
    if isinstance(hub, dict):
        data = {**data, **hub}

    log_table = data.get("logging")
    if isinstance(log_table, dict):
        mapped = {
            target: log_table[key]
            for key, target in _LOGGING_KEYS.items()
            if key in log_table
        }
        data = {**data, **mapped}

    allowed = set(asdict(cfg).keys())
    # This identifies where to reload from; do not let the file override it.
    allowed.discard("config_path")
    updates = {k: v for k, v in data.items() if k in allowed}

    for key in _OPTIONAL_KEYS:
        if key in updates and updates[key] == "":
            updates[key] = None

    if "port" in updates:
        updates["port"] = int(updates["port"])
    for key in ("ping_interval_s", "ping_timeout_s"):
        if key in updates:
            updates[key] = float(updates[key])
    for key in ("max_message_bytes", "outbox_max"):
        if key in updates:
            updates[key] = int(updates[key])

    return replace(cfg, **updates) if updates else cfg


def load_config_file(cfg: HubRuntimeConfig, path: str) -> HubRuntimeConfig:
    return apply_config_data(replace(cfg, config_path=path), load_toml(path))
