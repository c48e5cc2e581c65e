#!/usr/bin/env python3
"""plan-sync MCP Server: plan.json / plan.md access for coding agents.

Exposes the plan sync engine as a Model Context Protocol server so an
orchestrating agent can read the plan and move tasks through their
lifecycle without touching the files directly.

Resources (read-only, no side effects):
    plan-sync://plan       — plan.json content (strict read, no healing)
    plan-sync://markdown   — plan view derived from plan.json, or legacy plan.md

Tools (3):
    show_plan            — Plan or single-phase Markdown view
    sync_plan            — Auto-heal plan.json / plan.md and report
    update_task_status   — Set a task's status (plan.json + plan.md rewritten)

Transport:
    stdio (default)
    http  (SSE, for remote / multi-client)

Usage:
    python3 mcp_server.py
    python3 mcp_server.py --transport http --port 8766
    PLAN_SYNC_WORKSPACE=/path/to/.swarm python3 mcp_server.py
"""

from __future__ import annotations

import json
import os
import sys

# Add scripts/ to path for plan-sync imports
SCRIPT_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "scripts")
sys.path.insert(0, SCRIPT_DIR)

from fastmcp import FastMCP  # noqa: E402

from observability import get_logger, metrics  # noqa: E402
from plan_config import workspace_root  # noqa: E402
from plan_manager import load_plan_json_only, update_task_status as _update_task_status  # noqa: E402
from plan_schema import PlanValidationError  # noqa: E402
from plan_service import get_plan_data, show_plan as _show_plan, sync_report  # noqa: E402

_log = get_logger("mcp_server")

# ---------------------------------------------------------------------------
# Server setup
# ---------------------------------------------------------------------------

mcp = FastMCP(
    name="plan-sync",
    instructions=(
        "plan-sync: the task plan for this workspace. plan.json is the source of truth; "
        "plan.md is derived from it. Use show_plan to read, update_task_status to change "
        "a task's status, and sync_plan after editing plan.json by hand."
    ),
)


def _workspace() -> str:
    return workspace_root()


def _error(message: str) -> str:
    return json.dumps({"error": message})


# ---------------------------------------------------------------------------
# Resources (read-only)
# ---------------------------------------------------------------------------

@mcp.resource("plan-sync://plan")
def get_plan() -> str:
    """plan.json content. Empty object when there is no valid plan.json."""
    plan = load_plan_json_only(_workspace())
    return json.dumps(plan or {}, indent=2, ensure_ascii=False)


@mcp.resource("plan-sync://markdown")
def get_markdown() -> str:
    """Plan Markdown, derived from plan.json or read from a legacy plan.md."""
    data = get_plan_data(_workspace())
    return data["full_markdown"] if data["has_plan"] else ""


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@mcp.tool
def show_plan(phase: str = "") -> str:
    """Show the plan as Markdown.

    Args:
        phase: Optional phase number; empty for the whole plan.

    Returns:
        Markdown text, or a short message when there is no plan / phase.
    """
    metrics.inc("mcp_show_plan")
    return _show_plan(_workspace(), phase or None)


@mcp.tool
def sync_plan() -> str:
    """Reconcile plan.json and plan.md (regenerate or migrate as needed).

    Returns:
        Markdown sync report including the current plan.
    """
    metrics.inc("mcp_sync_plan")
    return sync_report(_workspace())


@mcp.tool
def update_task_status(task_id: str, status: str) -> str:
    """Set a task's status and rewrite plan.json and plan.md.

    Args:
        task_id: Task id such as "1.2".
        status: One of pending, in_progress, completed, blocked.

    Returns:
        JSON with the task id, new status and current phase, or an error.
    """
    ws = _workspace()
    try:
        plan = _update_task_status(ws, task_id, status)
    except (LookupError, PlanValidationError, OSError) as exc:
        _log.warning("mcp_update_rejected", task=task_id, status=status, error=str(exc))
        return _error(str(exc))
    metrics.inc("mcp_task_updates")
    return json.dumps({
        "task_id": task_id,
        "status": status,
        "current_phase": plan["current_phase"],
    }, indent=2)


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Entry point for the MCP server (used by console_scripts and __main__)."""
    import argparse

    parser = argparse.ArgumentParser(description="plan-sync MCP Server")
    parser.add_argument("--transport", choices=["stdio", "http"], default="stdio",
                        help="Transport protocol (default: stdio)")
    parser.add_argument("--port", type=int, default=8766,
                        help="HTTP port (only used with --transport http)")
    args = parser.parse_args()

    _log.info("mcp_server_start", transport=args.transport, workspace=_workspace())

    if args.transport == "http":
        mcp.run(transport="sse", port=args.port)
    else:
        mcp.run()


if __name__ == "__main__":
    main()
