#!/usr/bin/env python3
"""Legacy plan.md -> plan dict migration. Pure function, no I/O.

Recognized legacy layout:

    # Ship v2
    Swarm: mega
    Phase: 2 [IN PROGRESS]

    ## Phase 1: Setup [COMPLETE]
    - [x] 1.1: Scaffold repo [SMALL]
    - [ ] 1.2: Wire CI [MEDIUM] (depends: 1.1)
    - [BLOCKED] 1.3: Deploy preview - waiting on creds [LARGE]

Known quirk, kept for compatibility with existing files: on [BLOCKED] lines
the reason after " - " keeps the trailing size tag verbatim ("waiting on
creds [LARGE]") and the task size falls back to small.

Usage:
    python3 scripts/legacy_migration.py path/to/plan.md [--swarm ID]

As library:
    from legacy_migration import migrate
    plan = migrate(text)
    plan["migration_status"]    # "migrated" or "migration_failed"
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from plan_schema import SCHEMA_VERSION, TASK_SIZES  # noqa: E402

DEFAULT_TITLE = "Untitled Plan"
DEFAULT_SWARM = "default-swarm"

_PHASE_RE = re.compile(
    r"^##\s*Phase\s+(\d+)(?::\s*([^\[]+))?\s*(?:\[([^\]]+)\])?", re.IGNORECASE,
)
_TASK_RE = re.compile(r"^-\s*\[([^\]]+)\]\s+(\d+\.\d+):\s*(.*)$")
_CURRENT_RE = re.compile(r"\s*(?:←|<-)\s*CURRENT\s*$", re.IGNORECASE)
_DEPENDS_RE = re.compile(r"\s*\(depends:\s*([^)]*)\)\s*$", re.IGNORECASE)
_SIZED_RE = re.compile(r"^(.+?)(?:\s*\[(\w+)\])?$")
_BLOCKED_RE = re.compile(r"^(.+?)(?:\s*\[(\w+)\])?(?:\s+-\s+(.+))?$")
_CURRENT_PHASE_RE = re.compile(r"^Phase:\s*(\d+)", re.IGNORECASE)

_PHASE_STATUS_MAP = {
    "complete": "complete",
    "completed": "complete",
    "in progress": "in_progress",
    "in_progress": "in_progress",
    "inprogress": "in_progress",
    "pending": "pending",
    "blocked": "blocked",
}


def _to_int(text: str) -> int | None:
    """int() for a matched digit run; None when it is too long to convert."""
    try:
        return int(text)
    except ValueError:
        return None


def _failed_plan(title: str, swarm: str, current_phase: int) -> dict:
    return {
        "schema_version": SCHEMA_VERSION,
        "title": title,
        "swarm": swarm,
        "current_phase": current_phase,
        "phases": [{
            "id": 1,
            "name": "Migration Failed",
            "status": "blocked",
            "tasks": [{
                "id": "1.1",
                "phase": 1,
                "status": "blocked",
                "size": "large",
                "description": "Review and restructure plan manually",
                "depends": [],
                "files_touched": [],
                "blocked_reason": "Legacy plan could not be parsed automatically",
            }],
        }],
        "migration_status": "migration_failed",
    }


def _parse_task(match: re.Match, phase_id: int) -> dict:
    checkbox = match.group(1).strip().lower()
    task_id = match.group(2)
    body = match.group(3).strip()

    status = "pending"
    if checkbox == "x":
        status = "completed"
    elif checkbox == "blocked":
        status = "blocked"

    # Suffixes written by plan.md derivation, outermost first
    if _CURRENT_RE.search(body):
        body = _CURRENT_RE.sub("", body)
        if status == "pending":
            status = "in_progress"

    depends: list[str] = []
    dep_match = _DEPENDS_RE.search(body)
    if dep_match:
        depends = [d.strip() for d in dep_match.group(1).split(",") if d.strip()]
        body = body[:dep_match.start()].strip()

    description, size_text, reason = body, None, None
    if body:
        if status == "blocked":
            m = _BLOCKED_RE.match(body)
            description, size_text, reason = m.group(1), m.group(2), m.group(3)
        else:
            m = _SIZED_RE.match(body)
            description, size_text = m.group(1), m.group(2)

    size = (size_text or "").lower()
    task = {
        "id": task_id,
        "phase": phase_id,
        "status": status,
        "size": size if size in TASK_SIZES else "small",
        "description": description.strip() or f"Task {task_id}",
        "depends": depends,
        "files_touched": [],
    }
    if reason and reason.strip():
        task["blocked_reason"] = reason.strip()
    return task


def migrate(text: str, swarm_id: str | None = None) -> dict:
    """Recover a plan dict from legacy plan.md text. Never raises.

    Returns a placeholder plan with migration_status "migration_failed"
    when no phase heading is recognized.
    """
    title = DEFAULT_TITLE
    title_seen = False
    swarm = swarm_id or DEFAULT_SWARM
    current_phase = 1
    phases: dict[int, dict] = {}
    seen_tasks: set[str] = set()
    phase = None

    for line in (text or "").splitlines():
        stripped = line.strip()

        if not title_seen and stripped.startswith("# "):
            title_seen = True
            title = stripped[2:].strip() or DEFAULT_TITLE
            continue

        if stripped.startswith("Swarm:"):
            value = stripped[len("Swarm:"):].strip()
            if value:
                swarm = value
            continue

        if stripped.startswith("Phase:"):
            m = _CURRENT_PHASE_RE.match(stripped)
            value = _to_int(m.group(1)) if m else None
            if value is not None:
                current_phase = max(1, value)
            continue

        phase_match = _PHASE_RE.match(stripped)
        if phase_match:
            phase_id = _to_int(phase_match.group(1))
            if phase_id is None or phase_id < 1:
                phase = None
                continue
            if phase_id in phases:
                # Repeated heading: keep appending to the first phase with this id
                phase = phases[phase_id]
                continue
            name = (phase_match.group(2) or "").strip() or f"Phase {phase_id}"
            status_text = (phase_match.group(3) or "pending").strip().lower()
            phase = {
                "id": phase_id,
                "name": name,
                "status": _PHASE_STATUS_MAP.get(status_text, "pending"),
                "tasks": [],
            }
            phases[phase_id] = phase
            continue

        task_match = _TASK_RE.match(stripped)
        if task_match and phase is not None:
            task = _parse_task(task_match, phase["id"])
            if task["id"] in seen_tasks:
                continue
            seen_tasks.add(task["id"])
            phase["tasks"].append(task)

    if not phases:
        return _failed_plan(title, swarm, current_phase)

    return {
        "schema_version": SCHEMA_VERSION,
        "title": title,
        "swarm": swarm,
        "current_phase": current_phase,
        "phases": [phases[pid] for pid in sorted(phases)],
        "migration_status": "migrated",
    }


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Convert a legacy plan.md to plan.json content")
    parser.add_argument("file", help="Path to legacy plan.md")
    parser.add_argument("--swarm", default=None, help="Swarm id when the file has no 'Swarm:' line")
    args = parser.parse_args()

    with open(args.file, "r", encoding="utf-8") as f:
        plan = migrate(f.read(), args.swarm)
    print(json.dumps(plan, indent=2, ensure_ascii=False))


if __name__ == "__main__":
    main()
