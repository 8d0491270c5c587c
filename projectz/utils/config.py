# Rev 0.2.0
# projectz/utils/config.py
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from .paths import DB_PATH, config_dir

log = logging.getLogger(__name__)

SETTINGS_FILENAME = "settings.json"

_DEFAULTS: Dict[str, Any] = {
    "main_window": {
        "width": 720,
        "height": 540,
    },
    "list": {
        "ordering": "by_priority",
    },
    "database": {
        "path": None,          # None → DB_PATH
        "seed_count": 8,       # demo rows inserted on first run; 0 disables
        "debug": False,        # erase + recreate on schema change (never in production)
    },
}

_TRUTHY = {"1", "true", "yes", "on"}


def settings_file() -> Path:
    return config_dir() / SETTINGS_FILENAME


def _merge(defaults: Dict[str, Any], loaded: Dict[str, Any]) -> Dict[str, Any]:
    out = {k: (dict(v) if isinstance(v, dict) else v) for k, v in defaults.items()}
    for k, v in loaded.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k].update(v)
        else:
            out[k] = v
    return out


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    path = path or settings_file()
    if path.exists():
        try:
            return _merge(_DEFAULTS, json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError):
            log.warning("Unreadable settings file %s; using defaults", path, exc_info=True)
    return _merge(_DEFAULTS, {})


def save_settings(data: Dict[str, Any], path: Optional[Path] = None) -> bool:
    """Writes settings; a failed write is logged and reported as False."""
    path = path or settings_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError:
        log.error("Could not save settings to %s", path, exc_info=True)
        return False
    return True


@dataclass(frozen=True)
class StoreConfig:
    """How the store is opened: DB location, debug erase policy, demo seeding."""
    path: Path
    erase_on_schema_change: bool = False
    seed_count: int = 0

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], env: Mapping[str, str] = os.environ) -> "StoreConfig":
        section = settings.get("database") or {}
        raw_path = env.get("PROJECTZ_DB") or section.get("path") or DB_PATH
        if "PROJECTZ_DEBUG" in env:
            debug = env["PROJECTZ_DEBUG"].strip().lower() in _TRUTHY
        else:
            debug = bool(section.get("debug", False))
        return cls(
            path=Path(raw_path).expanduser(),
            erase_on_schema_change=debug,
            seed_count=max(0, int(section.get("seed_count", 0) or 0)),
        )
