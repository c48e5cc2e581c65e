#!/usr/bin/env python3
"""Tests for plan_markdown.py — deterministic plan.md derivation."""

import os
import re
import sys
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))
from plan_hash import extract_embedded, fingerprint
from plan_markdown import derive, format_task_line


def task(task_id, status="pending", size="small", description=None, depends=None, **extra):
    phase = int(task_id.split(".")[0])
    t = {
        "id": task_id,
        "phase": phase,
        "status": status,
        "size": size,
        "description": description or f"Task {task_id}",
        "depends": depends or [],
        "files_touched": [],
    }
    t.update(extra)
    return t


def plan_with(phases, current_phase=1):
    return {
        "schema_version": "1.0.0",
        "title": "Render Plan",
        "swarm": "render-swarm",
        "current_phase": current_phase,
        "phases": phases,
    }


def task_lines(markdown):
    return [line for line in markdown.splitlines() if line.startswith("- [")]


class TestDeriveStructure(unittest.TestCase):
    def test_header_lines(self):
        md = derive(plan_with([{"id": 1, "name": "Setup", "status": "in_progress", "tasks": []}]))
        lines = md.splitlines()
        self.assertEqual(lines[0], "# Render Plan")
        self.assertEqual(lines[1], "Swarm: render-swarm")
        self.assertEqual(lines[2], "Phase: 1 [IN PROGRESS]")

    def test_timestamp_on_phase_line(self):
        plan = plan_with([{"id": 1, "name": "Setup", "status": "pending", "tasks": []}])
        md = derive(plan, generated_at="2026-01-01T00:00:00.000Z")
        self.assertIn("Phase: 1 [PENDING] | Updated: 2026-01-01T00:00:00.000Z", md)

    def test_unknown_current_phase_renders_pending(self):
        plan = plan_with([{"id": 1, "name": "Setup", "status": "complete", "tasks": []}], current_phase=7)
        self.assertIn("Phase: 7 [PENDING]", derive(plan))

    def test_phase_headings_and_separators(self):
        plan = plan_with([
            {"id": 1, "name": "Setup", "status": "complete", "tasks": [task("1.1", "completed")]},
            {"id": 2, "name": "Build", "status": "pending", "tasks": [task("2.1")]},
        ])
        md = derive(plan)
        self.assertIn("## Phase 1: Setup [COMPLETE]", md)
        self.assertIn("## Phase 2: Build [PENDING]", md)
        self.assertEqual(md.count("\n---\n"), 2)
        self.assertIn("- [x] 1.1: Task 1.1 [SMALL]\n\n---\n## Phase 2: Build [PENDING]\n", md)

    def test_trailing_hash_marker(self):
        plan = plan_with([{"id": 1, "name": "Setup", "status": "pending", "tasks": [task("1.1")]}])
        md = derive(plan)
        self.assertTrue(md.endswith(f"<!-- PLAN_HASH: {fingerprint(plan)} -->\n"))
        self.assertEqual(extract_embedded(md), fingerprint(plan))


class TestTaskLines(unittest.TestCase):
    def test_completed(self):
        self.assertEqual(format_task_line(task("1.1", "completed")), "- [x] 1.1: Task 1.1 [SMALL]")

    def test_pending_and_in_progress_use_empty_box(self):
        self.assertEqual(format_task_line(task("1.1")), "- [ ] 1.1: Task 1.1 [SMALL]")
        self.assertEqual(format_task_line(task("1.2", "in_progress")), "- [ ] 1.2: Task 1.2 [SMALL]")

    def test_blocked_with_reason(self):
        line = format_task_line(task("1.3", "blocked", "medium", blocked_reason="waiting on API"))
        self.assertEqual(line, "- [BLOCKED] 1.3: Task 1.3 - waiting on API [MEDIUM]")

    def test_blocked_without_reason(self):
        self.assertEqual(format_task_line(task("1.3", "blocked")), "- [BLOCKED] 1.3: Task 1.3 [SMALL]")

    def test_sizes_uppercase(self):
        self.assertIn("[MEDIUM]", format_task_line(task("1.1", size="medium")))
        self.assertIn("[LARGE]", format_task_line(task("1.1", size="large")))

    def test_dependencies_natural_order(self):
        line = format_task_line(task("1.12", depends=["1.10", "1.2", "1.9"]))
        self.assertTrue(line.endswith("[SMALL] (depends: 1.2, 1.9, 1.10)"))


class TestCurrentMarker(unittest.TestCase):
    def test_in_progress_task_in_current_phase_marked(self):
        plan = plan_with([
            {"id": 1, "name": "A", "status": "in_progress",
             "tasks": [task("1.1", "completed"), task("1.2", "in_progress", depends=["1.1"])]},
        ])
        lines = task_lines(derive(plan))
        self.assertEqual(lines[1], "- [ ] 1.2: Task 1.2 [SMALL] (depends: 1.1) ← CURRENT")

    def test_only_first_in_progress_marked(self):
        plan = plan_with([
            {"id": 1, "name": "A", "status": "in_progress",
             "tasks": [task("1.10", "in_progress"), task("1.2", "in_progress")]},
        ])
        md = derive(plan)
        self.assertEqual(md.count("← CURRENT"), 1)
        self.assertIn("1.2: Task 1.2 [SMALL] ← CURRENT", md)

    def test_in_progress_outside_current_phase_not_marked(self):
        plan = plan_with([
            {"id": 1, "name": "A", "status": "complete", "tasks": [task("1.1", "completed")]},
            {"id": 2, "name": "B", "status": "in_progress", "tasks": [task("2.1", "in_progress")]},
        ], current_phase=1)
        self.assertNotIn("CURRENT", derive(plan))


class TestDeterminism(unittest.TestCase):
    def test_idempotent(self):
        plan = plan_with([
            {"id": 1, "name": "A", "status": "in_progress",
             "tasks": [task("1.1", "completed"), task("1.2", "blocked", blocked_reason="x")]},
        ])
        first = derive(plan)
        for _ in range(5):
            self.assertEqual(derive(plan), first)

    def test_tasks_in_natural_order(self):
        plan = plan_with([
            {"id": 1, "name": "A", "status": "pending",
             "tasks": [task(i) for i in ["1.10", "1.2", "1.1", "1.11", "1.9"]]},
        ])
        ids = [re.search(r"(\d+\.\d+):", line).group(1) for line in task_lines(derive(plan))]
        self.assertEqual(ids, ["1.1", "1.2", "1.9", "1.10", "1.11"])

    def test_phases_sorted_by_id(self):
        plan = plan_with([
            {"id": 3, "name": "C", "status": "pending", "tasks": []},
            {"id": 1, "name": "A", "status": "pending", "tasks": []},
            {"id": 2, "name": "B", "status": "pending", "tasks": []},
        ])
        headings = [line for line in derive(plan).splitlines() if line.startswith("## Phase")]
        self.assertEqual(headings, [
            "## Phase 1: A [PENDING]",
            "## Phase 2: B [PENDING]",
            "## Phase 3: C [PENDING]",
        ])

    def test_input_order_does_not_matter(self):
        phases = [
            {"id": 2, "name": "B", "status": "pending", "tasks": [task("2.2"), task("2.1")]},
            {"id": 1, "name": "A", "status": "pending", "tasks": [task("1.3"), task("1.1")]},
        ]
        reordered = [
            {"id": 1, "name": "A", "status": "pending", "tasks": [task("1.1"), task("1.3")]},
            {"id": 2, "name": "B", "status": "pending", "tasks": [task("2.1"), task("2.2")]},
        ]
        self.assertEqual(derive(plan_with(phases)), derive(plan_with(reordered)))


if __name__ == "__main__":
    unittest.main()
