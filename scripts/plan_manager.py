#!/usr/bin/env python3
"""Plan loading with auto-heal, strict reads, and task status updates.

load_plan() reconciles plan.json and plan.md on every call:

    plan.json      plan.md              action
    -----------    -----------------    ------------------------------------------
    valid          missing / stale      re-derive plan.md, return plan.json
    valid          fresh (hash match)   no write, return plan.json
    invalid/none   has content          migrate plan.md, write both, return result
    invalid/none   missing / empty      return None

plan.json is the source of truth; plan.md is a derived cache keyed by the
PLAN_HASH marker. Failing to rewrite plan.md never fails the load.

As library:
    from plan_manager import load_plan, update_task_status
    plan = load_plan(root)
    plan = update_task_status(root, "1.2", "completed")
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from legacy_migration import migrate  # noqa: E402
from observability import get_logger, metrics, timed  # noqa: E402
from plan_config import load_config  # noqa: E402
from plan_hash import is_stale  # noqa: E402
from plan_schema import (  # noqa: E402
    TASK_STATUSES,
    PlanNotFoundError,
    PlanValidationError,
    TaskNotFoundError,
    find_task,
)
from plan_store import (  # noqa: E402
    read_canonical,
    read_rendering,
    render,
    save_plan,
    write_rendering,
)

_log = get_logger("plan_manager")


def load_plan_json_only(root: str) -> dict | None:
    """Strict read of plan.json: no migration, no writes. None if missing or invalid."""
    return read_canonical(root)


def _regenerate_markdown(root: str, plan: dict) -> None:
    try:
        write_rendering(root, render(root, plan))
    except OSError as exc:
        metrics.inc("plan_md_regenerate_failed")
        _log.warning("plan_md_regenerate_failed", root=root, error=str(exc))
        return
    metrics.inc("plan_md_regenerated")
    _log.info("plan_md_regenerated", root=root)


def _migrate_from_markdown(root: str, rendering: str) -> dict:
    swarm = load_config(root).get("default_swarm")
    plan = migrate(rendering, swarm if isinstance(swarm, str) else None)
    status = plan.get("migration_status")
    metrics.inc("plan_migration_failed" if status == "migration_failed" else "plan_migrated")
    _log.info("plan_migrated", root=root, status=status, phases=len(plan["phases"]))
    try:
        save_plan(root, plan)
    except (OSError, PlanValidationError) as exc:
        _log.error("plan_migration_save_failed", root=root, error=str(exc))
    return plan


def load_plan(root: str) -> dict | None:
    """Load the plan for ``root``, healing plan.md / plan.json as needed.

    Returns None when neither file yields a plan.
    """
    with timed("plan_load", _log):
        plan = read_canonical(root)
        rendering = read_rendering(root)

        if plan is not None:
            if is_stale(plan, rendering):
                _regenerate_markdown(root, plan)
            return plan

        if rendering is None or not rendering.strip():
            return None
        return _migrate_from_markdown(root, rendering)


def update_task_status(root: str, task_id: str, status: str) -> dict:
    """Load, set one task's status, save (plan.json + plan.md), return the plan.

    Raises PlanNotFoundError, TaskNotFoundError, or PlanValidationError.
    """
    if status not in TASK_STATUSES:
        raise PlanValidationError([
            f"Invalid task status {status!r} (must be one of: {', '.join(TASK_STATUSES)})"
        ])

    plan = load_plan(root)
    if plan is None:
        raise PlanNotFoundError(f"Plan not found in directory: {root}")

    task = find_task(plan, task_id)
    if task is None:
        raise TaskNotFoundError(f"Task not found: {task_id}")

    previous = task.get("status")
    task["status"] = status
    save_plan(root, plan)
    _log.info("task_status_updated", root=root, task=task_id, previous=previous, status=status)
    return plan
