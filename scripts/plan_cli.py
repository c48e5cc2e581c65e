#!/usr/bin/env python3
"""plan-sync command line.

Usage:
    plan-sync show [PHASE]                  # plan.md view (read-only)
    plan-sync sync                          # auto-heal plan.json / plan.md
    plan-sync update 1.2 completed          # set a task's status
    plan-sync migrate [--swarm ID]          # print plan.json recovered from plan.md
    plan-sync watch                         # keep plan.md in sync until Ctrl-C

    --root PATH   workspace root (default: $PLAN_SYNC_WORKSPACE or cwd)

Exit codes: 0 = success, 1 = error
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import time

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from legacy_migration import migrate  # noqa: E402
from observability import get_logger  # noqa: E402
from plan_config import load_config, workspace_root  # noqa: E402
from plan_manager import update_task_status  # noqa: E402
from plan_schema import TASK_STATUSES, PlanValidationError  # noqa: E402
from plan_service import show_plan, sync_report  # noqa: E402
from plan_store import read_rendering  # noqa: E402
from plan_sync_worker import PlanSyncWorker  # noqa: E402

_log = get_logger("plan_cli")


def cmd_show(root: str, args) -> int:
    print(show_plan(root, args.phase))
    return 0


def cmd_sync(root: str, args) -> int:
    print(sync_report(root))
    return 0


def cmd_update(root: str, args) -> int:
    try:
        plan = update_task_status(root, args.task_id, args.status)
    except (LookupError, PlanValidationError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Task {args.task_id} -> {args.status} ({plan['title']})")
    return 0


def cmd_migrate(root: str, args) -> int:
    text = read_rendering(root)
    if text is None:
        print(f"Error: no plan.md in {root}", file=sys.stderr)
        return 1
    swarm = args.swarm or load_config(root).get("default_swarm")
    print(json.dumps(migrate(text, swarm), indent=2, ensure_ascii=False))
    return 0


def cmd_watch(root: str, args) -> int:
    worker = PlanSyncWorker(root)
    worker.sync_now()
    worker.start()
    print(f"Watching {root} (Ctrl-C to stop)")
    try:
        while worker.is_running():
            time.sleep(0.5)
    except KeyboardInterrupt:
        pass
    finally:
        worker.dispose()
    return 0


COMMANDS = {
    "show": cmd_show,
    "sync": cmd_sync,
    "update": cmd_update,
    "migrate": cmd_migrate,
    "watch": cmd_watch,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="plan-sync", description="plan.json / plan.md sync engine")
    parser.add_argument("--root", default=None, help="Workspace root (default: $PLAN_SYNC_WORKSPACE or cwd)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_show = sub.add_parser("show", help="Show the plan or one phase")
    p_show.add_argument("phase", nargs="?", default=None)

    sub.add_parser("sync", help="Reconcile plan.json and plan.md")

    p_update = sub.add_parser("update", help="Set a task's status")
    p_update.add_argument("task_id")
    p_update.add_argument("status", choices=TASK_STATUSES)

    p_migrate = sub.add_parser("migrate", help="Print plan.json recovered from plan.md (no writes)")
    p_migrate.add_argument("--swarm", default=None)

    sub.add_parser("watch", help="Keep plan.md in sync with plan.json")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    root = workspace_root(args.root)
    _log.debug("cli_command", command=args.command, root=root)
    return COMMANDS[args.command](root, args)


if __name__ == "__main__":
    sys.exit(main())
