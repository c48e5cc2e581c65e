#!/usr/bin/env python3
"""Plan document schema: constants, validation, and task-id ordering.

A plan is a plain dict shaped exactly like plan.json:

    {
      "schema_version": "1.0.0",
      "title": "Ship v2",
      "swarm": "mega",
      "current_phase": 1,
      "phases": [
        {"id": 1, "name": "Setup", "status": "in_progress",
         "tasks": [{"id": "1.1", "phase": 1, "status": "pending",
                    "size": "small", "description": "Scaffold repo",
                    "depends": [], "files_touched": []}]}
      ],
      "migration_status": "migrated"        # optional
    }

Optional task fields: blocked_reason, acceptance, evidence_path.

As library:
    from plan_schema import validate_plan, ensure_valid, task_id_key
    errors = validate_plan(plan)            # [] when valid
    ensure_valid(plan)                      # raises PlanValidationError
    sorted(ids, key=task_id_key)            # "1.9" < "1.10"
"""

from __future__ import annotations

import re
from collections.abc import Iterator

SCHEMA_VERSION = "1.0.0"

PLAN_JSON = "plan.json"
PLAN_MD = "plan.md"

PHASE_STATUSES = ("complete", "in_progress", "pending", "blocked")
TASK_STATUSES = ("pending", "in_progress", "completed", "blocked")
TASK_SIZES = ("small", "medium", "large")
MIGRATION_STATUSES = ("migrated", "migration_failed")

_TASK_ID_RE = re.compile(r"^\d+\.\d+$")

_PLAN_FIELDS = ("schema_version", "title", "swarm", "current_phase", "phases")
_OPTIONAL_TASK_STRINGS = ("blocked_reason", "acceptance", "evidence_path")


class PlanValidationError(ValueError):
    """Raised when a plan fails schema validation. ``errors`` lists every violation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        first = self.errors[0] if self.errors else "unknown error"
        super().__init__(f"Plan validation failed: {first}")


class PlanNotFoundError(LookupError):
    """No plan could be loaded for a workspace root."""


class TaskNotFoundError(LookupError):
    """A task id is not present in the loaded plan."""


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def task_id_key(task_id: str) -> tuple:
    """Natural numeric sort key for dotted ids: "1.2" < "1.10" < "2.1".

    Non-numeric segments sort after every numeric one (then by text) so a
    malformed id never raises during rendering. Numeric segments compare
    by digit count, then digits, so arbitrarily long runs need no int().
    """
    key = []
    for part in str(task_id).split("."):
        if part.isascii() and part.isdigit():
            digits = part.lstrip("0")
            key.append((0, len(digits), digits))
        else:
            key.append((1, 0, part))
    return tuple(key)


def compare_task_ids(a: str, b: str) -> int:
    """Negative, zero, or positive like a classic comparator.

    Missing trailing segments count as zero, so "1" == "1.0".
    """
    ka, kb = list(task_id_key(a)), list(task_id_key(b))
    width = max(len(ka), len(kb))
    ka += [(0, 0, "")] * (width - len(ka))
    kb += [(0, 0, "")] * (width - len(kb))
    return (ka > kb) - (ka < kb)


# ---------------------------------------------------------------------------
# Traversal helpers
# ---------------------------------------------------------------------------

def iter_tasks(plan: dict) -> Iterator[tuple[dict, dict]]:
    """Yield (phase, task) pairs in document order."""
    for phase in plan.get("phases", []):
        for task in phase.get("tasks", []):
            yield phase, task


def find_phase(plan: dict, phase_id: int) -> dict | None:
    for phase in plan.get("phases", []):
        if phase.get("id") == phase_id:
            return phase
    return None


def find_task(plan: dict, task_id: str) -> dict | None:
    for _phase, task in iter_tasks(plan):
        if task.get("id") == task_id:
            return task
    return None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _check_str_list(value, label: str, errors: list[str]) -> None:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        errors.append(f"{label} must be a list of strings")


def _validate_task(task, phase_id, label: str, errors: list[str]) -> None:
    if not isinstance(task, dict):
        errors.append(f"{label} must be an object")
        return
    task_id = task.get("id")
    if not isinstance(task_id, str) or not _TASK_ID_RE.match(task_id):
        errors.append(f"{label}: invalid task id {task_id!r} (expected N.M)")
    if task.get("phase") != phase_id or not _is_int(task.get("phase")):
        errors.append(f"{label}: phase {task.get('phase')!r} does not match parent phase {phase_id!r}")
    if task.get("status") not in TASK_STATUSES:
        errors.append(f"{label}: invalid status {task.get('status')!r}")
    if task.get("size") not in TASK_SIZES:
        errors.append(f"{label}: invalid size {task.get('size')!r}")
    description = task.get("description")
    if not isinstance(description, str) or not description.strip():
        errors.append(f"{label}: description must be a non-empty string")
    _check_str_list(task.get("depends"), f"{label}.depends", errors)
    _check_str_list(task.get("files_touched"), f"{label}.files_touched", errors)
    for field in _OPTIONAL_TASK_STRINGS:
        if field in task and task[field] is not None and not isinstance(task[field], str):
            errors.append(f"{label}.{field} must be a string")


def validate_plan(plan) -> list[str]:
    """Validate a plan dict. Returns list of error strings (empty = valid)."""
    if not isinstance(plan, dict):
        return ["Plan must be a JSON object"]

    errors: list[str] = []
    for field in _PLAN_FIELDS:
        if field not in plan:
            errors.append(f"Missing required field: {field}")

    if "schema_version" in plan and plan["schema_version"] != SCHEMA_VERSION:
        errors.append(
            f"Unsupported schema_version {plan['schema_version']!r} (expected {SCHEMA_VERSION!r})"
        )
    title = plan.get("title")
    if "title" in plan and (not isinstance(title, str) or not title.strip()):
        errors.append("title must be a non-empty string")
    if "swarm" in plan and not isinstance(plan["swarm"], str):
        errors.append("swarm must be a string")
    if "current_phase" in plan and (not _is_int(plan["current_phase"]) or plan["current_phase"] < 1):
        errors.append(f"current_phase must be a positive integer, got {plan['current_phase']!r}")
    status = plan.get("migration_status")
    if status is not None and status not in MIGRATION_STATUSES:
        errors.append(f"Invalid migration_status {status!r}")

    phases = plan.get("phases")
    if "phases" in plan and not isinstance(phases, list):
        errors.append("phases must be a list")
        return errors

    seen_phases: set[int] = set()
    seen_tasks: set[str] = set()
    for i, phase in enumerate(phases or []):
        label = f"phases[{i}]"
        if not isinstance(phase, dict):
            errors.append(f"{label} must be an object")
            continue
        phase_id = phase.get("id")
        if not _is_int(phase_id) or phase_id < 1:
            errors.append(f"{label}: id must be a positive integer, got {phase_id!r}")
        elif phase_id in seen_phases:
            errors.append(f"{label}: duplicate phase id {phase_id}")
        else:
            seen_phases.add(phase_id)
        if not isinstance(phase.get("name"), str):
            errors.append(f"{label}: name must be a string")
        if phase.get("status") not in PHASE_STATUSES:
            errors.append(f"{label}: invalid status {phase.get('status')!r}")
        tasks = phase.get("tasks")
        if not isinstance(tasks, list):
            errors.append(f"{label}: tasks must be a list")
            continue
        for j, task in enumerate(tasks):
            _validate_task(task, phase_id, f"{label}.tasks[{j}]", errors)
            task_id = task.get("id") if isinstance(task, dict) else None
            if isinstance(task_id, str):
                if task_id in seen_tasks:
                    errors.append(f"{label}.tasks[{j}]: duplicate task id {task_id}")
                seen_tasks.add(task_id)

    return errors


def ensure_valid(plan) -> dict:
    """Return ``plan`` unchanged, or raise PlanValidationError."""
    errors = validate_plan(plan)
    if errors:
        raise PlanValidationError(errors)
    return plan
