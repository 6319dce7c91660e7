# histdb/services/config_svc.py
from __future__ import annotations

import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULTS = {
    "db_path": None,
    "default_limit": 100,
    "stats_days": 30,
    "log_level": "WARNING",
    # variables exported by the shell hook for the current session
    "salt_env": "SDBH_SALT",
    "ppid_env": "SDBH_PPID",
}


def config_path() -> str:
    env = os.environ.get("SDBH_CONFIG")
    if env:
        return os.path.expanduser(env)
    return os.path.join(os.path.expanduser("~"), ".config", "sdbh", "config.yaml")


def _read_config_yaml(path: str) -> dict:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"ignoring unreadable config {path}: {e}")
        return {}
    if not isinstance(cfg, dict):
        logger.warning(f"ignoring config {path}: top level is not a mapping")
        return {}
    return cfg


def _to_int(v, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


def get_config(path: str | None = None) -> dict:
    cfg = _read_config_yaml(path or config_path())

    db_path = cfg.get("db_path")
    out = {
        "db_path": db_path.strip() if isinstance(db_path, str) and db_path.strip() else None,
        "default_limit": _to_int(cfg.get("default_limit"), DEFAULTS["default_limit"]),
        "stats_days": _to_int(cfg.get("stats_days"), DEFAULTS["stats_days"]),
        "log_level": str(cfg.get("log_level") or DEFAULTS["log_level"]).upper(),
        "salt_env": str(cfg.get("salt_env") or DEFAULTS["salt_env"]),
        "ppid_env": str(cfg.get("ppid_env") or DEFAULTS["ppid_env"]),
    }
    return out
