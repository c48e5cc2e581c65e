#!/usr/bin/env python3
"""plan-sync workspace configuration. Zero external deps.

An optional ``plan-sync.json`` at the workspace root overrides defaults:

    {
      "default_swarm": "mega",
      "render_timestamp": true,
      "sync_worker": {"debounce_ms": 300, "poll_interval_ms": 2000}
    }

Environment:
    PLAN_SYNC_WORKSPACE   default workspace root for the CLI and MCP server
    PLAN_SYNC_LOG_LEVEL   log level for all components (see observability)
"""

from __future__ import annotations

import copy
import json
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from observability import get_logger  # noqa: E402

_log = get_logger("plan_config")

CONFIG_FILE = "plan-sync.json"
WORKSPACE_ENV = "PLAN_SYNC_WORKSPACE"

DEFAULT_CONFIG = {
    "default_swarm": "default-swarm",
    "render_timestamp": True,
    "sync_worker": {
        "debounce_ms": 300,
        "poll_interval_ms": 2000,
    },
}


def _merge(base: dict, override: dict, path: str, prefix: str = "") -> dict:
    """Merge ``override`` into ``base``; values whose type differs from the default are dropped."""
    for key, value in override.items():
        default = base.get(key)
        if isinstance(value, dict) and isinstance(default, dict):
            _merge(default, value, path, f"{prefix}{key}.")
        elif key in base and type(value) is not type(default):
            _log.warning("config_load_failed", path=path,
                         error=f"{prefix}{key} must be {type(default).__name__}, "
                               f"got {type(value).__name__}; using default")
        else:
            base[key] = value
    return base


def load_config(root: str) -> dict:
    """Load plan-sync.json merged over DEFAULT_CONFIG. Defaults if missing/unreadable."""
    config = copy.deepcopy(DEFAULT_CONFIG)
    path = os.path.join(root, CONFIG_FILE)
    if not os.path.isfile(path):
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as exc:
        _log.warning("config_load_failed", path=path, error=str(exc))
        return config
    if not isinstance(data, dict):
        _log.warning("config_load_failed", path=path, error="top-level value is not an object")
        return config
    return _merge(config, data, path)


def workspace_root(explicit: str | None = None) -> str:
    """Resolve the workspace root: explicit argument, then PLAN_SYNC_WORKSPACE, then cwd."""
    return os.path.abspath(explicit or os.environ.get(WORKSPACE_ENV, "."))
