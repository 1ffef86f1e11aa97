# tracker/services/config_svc.py
from __future__ import annotations

import logging
import os

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "app_config.yaml"

DEFAULTS = {
    "databaseDriver": "sqlite",
    "databaseFile": "timetracking.db",
}


def read_config(path: str = DEFAULT_CONFIG_PATH) -> dict:
    if not os.path.exists(path):
        return {}
    with open(path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError(f"config file {path} must contain a mapping")
    return cfg


def write_config(cfg: dict, path: str = DEFAULT_CONFIG_PATH) -> None:
    with open(path, "w", encoding="utf-8") as f:
        yaml.safe_dump(cfg, f, default_flow_style=False, sort_keys=True)


def ensure_config(path: str = DEFAULT_CONFIG_PATH) -> dict:
    """Read the config, filling defaults for missing keys (existing values win).

    When no driver is configured the file is (re)written with the defaults.
    """
    cfg = read_config(path)
    missing_driver = not str(cfg.get("databaseDriver") or "").strip()
    out = {**DEFAULTS, **{k: v for k, v in cfg.items() if v not in (None, "")}}
    if missing_driver:
        write_config(out, path)
        logger.info("Configuration file %s created/updated", path)
    return out
