"""
Load config from config.yaml with optional env overrides.
Single source of truth for DB path, archive dir, pair list, poll cadence, and API bind.
"""
from __future__ import annotations

import os
from pathlib import Path
from typing import List

import yaml

# Defaults if no YAML or env
_DEFAULTS = {
    "db": {
        "path": "kraken.db",
        "busy_timeout_ms": 5000,
    },
    "archive": {"dir": "archives"},
    "poll": {
        "pairs": ["BTCEUR", "ETHEUR", "DOGEEUR", "PEPEEUR", "XLMEUR", "XRPEUR"],
        "interval_seconds": 300,
        "cycle_timeout_s": 60.0,
    },
    "kraken": {
        "base_url": "https://api.kraken.com",
        "timeout_s": 15.0,
    },
    "api": {"host": "127.0.0.1", "port": 4242},
    "alerts": {"escalate_after": 3},
}


def _config_yaml_path() -> Path:
    """KRAKEN_TICKER_CONFIG if set, else config.yaml at repo root (parent of package dir)."""
    override = os.environ.get("KRAKEN_TICKER_CONFIG")
    if override:
        return Path(override)
    return Path(__file__).resolve().parent.parent / "config.yaml"


def _load_yaml() -> dict:
    config_path = _config_yaml_path()
    if not config_path.exists():
        return {}
    with open(config_path, encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = v
    return out


def _env_overrides() -> dict:
    overrides: dict = {}
    path = os.environ.get("KRAKEN_TICKER_DB_PATH")
    if path:
        overrides.setdefault("db", {})["path"] = path
    archive_dir = os.environ.get("KRAKEN_TICKER_ARCHIVE_DIR")
    if archive_dir:
        overrides.setdefault("archive", {})["dir"] = archive_dir
    pairs = os.environ.get("KRAKEN_TICKER_PAIRS")
    if pairs:
        overrides.setdefault("poll", {})["pairs"] = [p.strip() for p in pairs.split(",") if p.strip()]
    interval = os.environ.get("KRAKEN_TICKER_INTERVAL")
    if interval:
        overrides.setdefault("poll", {})["interval_seconds"] = float(interval)
    return overrides


def get_config() -> dict:
    """Return merged config: defaults <- config.yaml <- env."""
    merged = _deep_merge(_DEFAULTS, _load_yaml())
    merged = _deep_merge(merged, _env_overrides())
    return merged


# Convenience accessors
def db_path() -> str:
    return str(get_config()["db"]["path"])


def db_busy_timeout_ms() -> int:
    return int(get_config()["db"]["busy_timeout_ms"])


def archive_dir() -> str:
    return str(get_config()["archive"]["dir"])


def poll_pairs() -> List[str]:
    return [str(p).strip() for p in get_config()["poll"]["pairs"] if str(p).strip()]


def poll_interval_seconds() -> float:
    return float(get_config()["poll"]["interval_seconds"])


def cycle_timeout_s() -> float:
    return float(get_config()["poll"]["cycle_timeout_s"])


def kraken_base_url() -> str:
    return str(get_config()["kraken"]["base_url"]).rstrip("/")


def kraken_timeout_s() -> float:
    return float(get_config()["kraken"]["timeout_s"])


def api_host() -> str:
    return str(get_config()["api"]["host"])


def api_port() -> int:
    return int(get_config()["api"]["port"])


def escalate_after() -> int:
    return max(1, int(get_config()["alerts"]["escalate_after"]))
