#!/usr/bin/env python3
"""Read-side plan views for command surfaces (CLI, MCP server).

get_plan_data() never writes: it reads plan.json strictly and falls back
to the raw plan.md text for workspaces that only have a legacy plan.
sync_report() is the one entry point here that runs the auto-heal load.
"""

from __future__ import annotations

import os
import re
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from plan_manager import load_plan, load_plan_json_only  # noqa: E402
from plan_markdown import PHASE_SEPARATOR, derive  # noqa: E402
from plan_schema import find_phase  # noqa: E402
from plan_store import read_rendering  # noqa: E402

NO_PLAN_MESSAGE = "No active plan found."

_PHASE_HEADING_RE = re.compile(r"^## Phase (\d+)")


def _parse_phase_arg(phase) -> int | None:
    if isinstance(phase, int) and not isinstance(phase, bool):
        return phase
    try:
        return int(str(phase).strip())
    except ValueError:
        return None


def extract_phase_markdown(markdown: str, phase_id: int) -> str | None:
    """Cut the ``## Phase N`` section out of plan.md text, or None if absent."""
    section: list[str] = []
    in_phase = False
    for line in markdown.splitlines():
        m = _PHASE_HEADING_RE.match(line)
        if m:
            if (m.group(1).lstrip("0") or "0") == str(phase_id):
                in_phase = True
                section.append(line)
                continue
            if in_phase:
                break
        if in_phase:
            if line.strip() == PHASE_SEPARATOR or line.lstrip().startswith("<!--"):
                break
            section.append(line)
    return "\n".join(section).strip() if section else None


def get_plan_data(root: str, phase=None) -> dict:
    """Plan text plus an optional single-phase view.

    Keys: has_plan, full_markdown, requested_phase, phase_markdown,
    error_message, is_legacy.
    """
    data = {
        "has_plan": False,
        "full_markdown": "",
        "requested_phase": None,
        "phase_markdown": None,
        "error_message": None,
        "is_legacy": False,
    }

    plan = load_plan_json_only(root)
    if plan is not None:
        data["full_markdown"] = derive(plan)
    else:
        legacy = read_rendering(root)
        data["is_legacy"] = True
        if not legacy or not legacy.strip():
            return data
        data["full_markdown"] = legacy
    data["has_plan"] = True

    if phase is None or phase == "":
        return data

    phase_id = _parse_phase_arg(phase)
    if phase_id is None:
        data["error_message"] = f"Invalid phase number: {phase}"
        return data
    data["requested_phase"] = phase_id

    if plan is not None and find_phase(plan, phase_id) is None:
        data["error_message"] = f"Phase {phase_id} not found in plan."
        return data

    data["phase_markdown"] = extract_phase_markdown(data["full_markdown"], phase_id)
    if data["phase_markdown"] is None:
        data["error_message"] = f"Phase {phase_id} not found in plan."
    return data


def format_plan_markdown(data: dict) -> str:
    if not data["has_plan"]:
        return NO_PLAN_MESSAGE
    if data["error_message"] is not None:
        return data["error_message"]
    if data["requested_phase"] is not None and data["phase_markdown"]:
        return data["phase_markdown"]
    return data["full_markdown"]


def show_plan(root: str, phase=None) -> str:
    return format_plan_markdown(get_plan_data(root, phase))


def sync_report(root: str) -> str:
    """Run the auto-heal load and report the synchronized plan as Markdown."""
    plan = load_plan(root)
    if plan is None:
        return f"## Plan Sync Report\n\n{NO_PLAN_MESSAGE} Nothing to sync."

    lines = [
        "## Plan Sync Report",
        "",
        "**Status**: Synced",
        "",
        "plan.json and plan.md are synchronized.",
    ]
    if plan.get("migration_status") == "migration_failed":
        lines += ["", "**Warning**: plan.md could not be migrated; review the plan manually."]
    lines += ["", "### Current Plan", "", derive(plan)]
    return "\n".join(lines)
