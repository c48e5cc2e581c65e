#!/usr/bin/env python3
"""plan.json / plan.md persistence for a workspace root.

Reads never raise: a missing, undecodable, or schema-invalid plan.json reads
as None. Writes validate first and go through a temp file in the same
directory followed by os.replace, so readers see either the old or the
new file, never a partial one.

As library:
    from plan_store import read_canonical, save_plan
    plan = read_canonical(root)     # dict or None
    save_plan(root, plan)           # writes plan.json + plan.md, raises on invalid plan
"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timezone

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from observability import get_logger, metrics  # noqa: E402
from plan_config import load_config  # noqa: E402
from plan_markdown import derive  # noqa: E402
from plan_schema import PLAN_JSON, PLAN_MD, ensure_valid, validate_plan  # noqa: E402

_log = get_logger("plan_store")


def plan_json_path(root: str) -> str:
    return os.path.join(root, PLAN_JSON)


def plan_md_path(root: str) -> str:
    return os.path.join(root, PLAN_MD)


def _read_text(path: str) -> str | None:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except FileNotFoundError:
        return None


def _atomic_write(path: str, text: str) -> None:
    """Write text to a sibling temp file, then replace ``path`` in one step."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    tmp_path = f"{path}.tmp.{os.getpid()}"
    try:
        with open(tmp_path, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def _utc_now() -> str:
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def read_canonical(root: str) -> dict | None:
    """Parse and validate plan.json. Returns None when missing or invalid."""
    path = plan_json_path(root)
    try:
        text = _read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        _log.warning("plan_json_unreadable", path=path, error=str(exc))
        metrics.inc("plan_json_invalid")
        return None
    if text is None:
        return None
    try:
        plan = json.loads(text)
    except (ValueError, RecursionError) as exc:
        _log.warning("plan_json_invalid", path=path, error=f"Invalid JSON: {exc}")
        metrics.inc("plan_json_invalid")
        return None
    errors = validate_plan(plan)
    if errors:
        _log.warning("plan_json_invalid", path=path, error=errors[0], error_count=len(errors))
        metrics.inc("plan_json_invalid")
        return None
    return plan


def read_rendering(root: str) -> str | None:
    """Raw plan.md text, or None if absent or not valid UTF-8."""
    path = plan_md_path(root)
    try:
        return _read_text(path)
    except (OSError, UnicodeDecodeError) as exc:
        _log.warning("plan_md_unreadable", path=path, error=str(exc))
        return None


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def write_canonical(root: str, plan: dict) -> None:
    """Validate and atomically write plan.json. Raises PlanValidationError."""
    ensure_valid(plan)
    text = json.dumps(plan, indent=2, ensure_ascii=False) + "\n"
    _atomic_write(plan_json_path(root), text)


def write_rendering(root: str, text: str) -> None:
    """Atomically write plan.md."""
    _atomic_write(plan_md_path(root), text)


def render(root: str, plan: dict) -> str:
    """Derive plan.md text, stamped with the current time unless disabled in config."""
    stamp = _utc_now() if load_config(root).get("render_timestamp", True) else None
    return derive(plan, generated_at=stamp)


def save_plan(root: str, plan: dict) -> None:
    """Persist plan.json, then re-derive plan.md with a fresh PLAN_HASH.

    Validation happens before anything touches disk.
    """
    write_canonical(root, plan)
    write_rendering(root, render(root, plan))
    metrics.inc("plan_saved")
    _log.debug("plan_saved", root=root, title=plan.get("title"))
