#!/usr/bin/env python3
"""plan.md derivation: plan dict -> deterministic Markdown view.

Output layout:

    # Ship v2
    Swarm: mega
    Phase: 1 [IN PROGRESS] | Updated: 2026-02-21T10:00:00.000Z

    ---
    ## Phase 1: Setup [IN PROGRESS]
    - [x] 1.1: Scaffold repo [SMALL]
    - [ ] 1.2: Wire CI [MEDIUM] (depends: 1.1) ← CURRENT
    - [BLOCKED] 1.3: Deploy preview - waiting on creds [LARGE]

    <!-- PLAN_HASH: ... -->

Phases are sorted by id and tasks/dependencies by natural numeric id, so
the output never depends on the order of the input collections. Without
``generated_at`` the output is a pure function of the plan.
"""

from __future__ import annotations

import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from plan_hash import fingerprint, hash_marker  # noqa: E402
from plan_schema import find_phase, task_id_key  # noqa: E402

STATUS_LABELS = {
    "pending": "PENDING",
    "in_progress": "IN PROGRESS",
    "complete": "COMPLETE",
    "blocked": "BLOCKED",
}

CURRENT_MARKER = "← CURRENT"
PHASE_SEPARATOR = "---"


def status_label(status: str | None) -> str:
    return STATUS_LABELS.get(status, "PENDING")


def format_task_line(task: dict, current: bool = False) -> str:
    """Render one checkbox line for a task."""
    status = task.get("status")
    if status == "completed":
        line = f"- [x] {task['id']}: {task['description']}"
    elif status == "blocked":
        line = f"- [BLOCKED] {task['id']}: {task['description']}"
        if task.get("blocked_reason"):
            line += f" - {task['blocked_reason']}"
    else:
        line = f"- [ ] {task['id']}: {task['description']}"

    line += f" [{str(task.get('size', 'small')).upper()}]"

    depends = task.get("depends") or []
    if depends:
        line += f" (depends: {', '.join(sorted(depends, key=task_id_key))})"
    if current:
        line += f" {CURRENT_MARKER}"
    return line


def _format_phase(plan: dict, phase: dict) -> list[str]:
    lines = [f"## Phase {phase['id']}: {phase.get('name', '')} [{status_label(phase.get('status'))}]"]
    in_current_phase = phase.get("id") == plan.get("current_phase")
    current_marked = False
    for task in sorted(phase.get("tasks", []), key=lambda t: task_id_key(t["id"])):
        current = (
            in_current_phase
            and not current_marked
            and task.get("status") == "in_progress"
        )
        if current:
            current_marked = True
        lines.append(format_task_line(task, current=current))
    return lines


def derive(plan: dict, generated_at: str | None = None) -> str:
    """Render plan.md text for ``plan``, ending with its PLAN_HASH marker.

    ``generated_at`` adds an ``| Updated: ...`` stamp to the phase line; the
    stamp does not take part in the fingerprint.
    """
    current = find_phase(plan, plan.get("current_phase"))
    phase_line = f"Phase: {plan.get('current_phase')} [{status_label(current.get('status') if current else None)}]"
    if generated_at:
        phase_line += f" | Updated: {generated_at}"

    lines = [
        f"# {plan.get('title', '')}",
        f"Swarm: {plan.get('swarm', '')}",
        phase_line,
    ]
    for phase in sorted(plan.get("phases", []), key=lambda p: p["id"]):
        lines.append("")
        lines.append(PHASE_SEPARATOR)
        lines.extend(_format_phase(plan, phase))

    lines.append("")
    lines.append(hash_marker(fingerprint(plan)))
    return "\n".join(lines) + "\n"
