import logging
import os
import shutil
from functools import lru_cache
from pathlib import Path

import yaml

from . import paths

DEFAULTS = {
    "store_path": None,
    "default_ttl": 3600,
    "busy_retries": 3,
    "busy_timeout_ms": 5000,
    "session_prefix": "jat-",
    "output_bytes": 3000,
    "tracker_command": "bd",
    "log_level": "WARNING",
}


def get_default_config_path() -> Path:
    return paths.package_root() / "config.yaml"


def config_file() -> Path:
    """Return config file path in .hive/"""
    return paths.dot_hive() / "config.yaml"


def clear_cache():
    load_config.cache_clear()


@lru_cache(maxsize=1)
def load_config() -> dict:
    """Load config.yaml merged over DEFAULTS; a missing file yields the defaults."""
    cfg = dict(DEFAULTS)
    path = config_file()
    if not path.exists():
        return cfg
    with open(path) as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config at {path} must be a mapping")
    cfg.update({k: v for k, v in loaded.items() if v is not None})
    return cfg


def get(key: str):
    return load_config().get(key, DEFAULTS.get(key))


def init_config() -> Path:
    """Initialize .hive/config.yaml from defaults if missing."""
    target = config_file()
    if target.exists():
        return target

    target.parent.mkdir(parents=True, exist_ok=True)

    default_config_path = get_default_config_path()
    if not default_config_path.exists():
        raise FileNotFoundError(f"Default config not found at {default_config_path}")

    shutil.copy(default_config_path, target)
    clear_cache()
    return target


def configure_logging(level: str | None = None) -> None:
    """Set the root hive log level from argument, HIVE_LOG_LEVEL, or config."""
    name = (level or os.environ.get("HIVE_LOG_LEVEL") or get("log_level") or "WARNING").upper()
    numeric = logging.getLevelName(name)
    if not isinstance(numeric, int):
        numeric = logging.WARNING
    logging.basicConfig(level=numeric, format="[hive] %(levelname)s %(name)s: %(message)s")
    logging.getLogger("hive").setLevel(numeric)
