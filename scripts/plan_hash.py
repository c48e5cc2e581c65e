#!/usr/bin/env python3
"""Plan fingerprinting for plan.md staleness detection. Zero external deps.

plan.md carries a trailing marker comment with the SHA-256 digest of the
plan it was derived from:

    <!-- PLAN_HASH: 3f5a...e1 -->

Comparing that digest with the digest of the current plan.json tells the
loader whether plan.md needs regeneration, without diffing content.
"""

from __future__ import annotations

import hashlib
import json
import os
import re
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from plan_schema import task_id_key  # noqa: E402

_HASH_MARKER_RE = re.compile(r"<!--\s*PLAN_HASH:\s*(\S+)\s*-->")


def _canonical_content(plan: dict) -> dict:
    """Order-independent view of the plan; collections are sorted the way plan.md renders them."""
    phases = []
    for phase in sorted(plan.get("phases", []), key=lambda p: p.get("id", 0)):
        tasks = []
        for task in sorted(phase.get("tasks", []), key=lambda t: task_id_key(t.get("id", ""))):
            tasks.append({
                "id": task.get("id"),
                "phase": task.get("phase"),
                "status": task.get("status"),
                "size": task.get("size"),
                "description": task.get("description"),
                "depends": sorted(task.get("depends", []), key=task_id_key),
                "files_touched": sorted(task.get("files_touched", [])),
                "blocked_reason": task.get("blocked_reason"),
                "acceptance": task.get("acceptance"),
                "evidence_path": task.get("evidence_path"),
            })
        phases.append({
            "id": phase.get("id"),
            "name": phase.get("name"),
            "status": phase.get("status"),
            "tasks": tasks,
        })
    return {
        "schema_version": plan.get("schema_version"),
        "title": plan.get("title"),
        "swarm": plan.get("swarm"),
        "current_phase": plan.get("current_phase"),
        "migration_status": plan.get("migration_status"),
        "phases": phases,
    }


def fingerprint(plan: dict) -> str:
    """Deterministic SHA-256 hex digest of the plan's canonical content."""
    canon = json.dumps(
        _canonical_content(plan), sort_keys=True, separators=(",", ":"), ensure_ascii=False,
    )
    return hashlib.sha256(canon.encode("utf-8")).hexdigest()


def hash_marker(digest: str) -> str:
    return f"<!-- PLAN_HASH: {digest} -->"


def extract_embedded(rendering: str | None) -> str | None:
    """Return the digest embedded in plan.md, or None if there is no marker.

    The last marker wins; older renderings that put it on the first line
    are matched too.
    """
    if not rendering:
        return None
    matches = _HASH_MARKER_RE.findall(rendering)
    return matches[-1] if matches else None


def is_stale(plan: dict, rendering: str | None) -> bool:
    """True when plan.md is missing, carries no digest, or carries a different one."""
    if rendering is None:
        return True
    embedded = extract_embedded(rendering)
    if embedded is None:
        return True
    return embedded != fingerprint(plan)
