#!/usr/bin/env python3
"""Tests for plan_service.py — show/sync views used by the CLI and MCP server."""

import json
import os
import shutil
import sys
import tempfile
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "scripts"))
from plan_service import (
    NO_PLAN_MESSAGE,
    extract_phase_markdown,
    format_plan_markdown,
    get_plan_data,
    show_plan,
    sync_report,
)

LEGACY_MD = """# Legacy Plan
Swarm: legacy
Phase: 1

## Phase 1: Setup [COMPLETE]
- [x] 1.1: Scaffold [SMALL]

## Phase 2: Build [PENDING]
- [ ] 2.1: Implement [LARGE]
"""


def make_plan():
    return {
        "schema_version": "1.0.0",
        "title": "Service Plan",
        "swarm": "svc",
        "current_phase": 2,
        "phases": [
            {"id": 1, "name": "Setup", "status": "complete", "tasks": [
                {"id": "1.1", "phase": 1, "status": "completed", "size": "small",
                 "description": "Scaffold", "depends": [], "files_touched": []},
            ]},
            {"id": 2, "name": "Build", "status": "in_progress", "tasks": [
                {"id": "2.1", "phase": 2, "status": "in_progress", "size": "large",
                 "description": "Implement", "depends": ["1.1"], "files_touched": []},
            ]},
        ],
    }


class ServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.td = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.td, ignore_errors=True)

    def write(self, name, content):
        with open(os.path.join(self.td, name), "w", encoding="utf-8") as f:
            f.write(content)


class TestExtractPhaseMarkdown(unittest.TestCase):
    def test_section_between_headings(self):
        section = extract_phase_markdown(LEGACY_MD, 1)
        self.assertEqual(section, "## Phase 1: Setup [COMPLETE]\n- [x] 1.1: Scaffold [SMALL]")

    def test_last_section_stops_at_hash_marker(self):
        md = LEGACY_MD + "\n<!-- PLAN_HASH: abc -->\n"
        self.assertEqual(extract_phase_markdown(md, 2), "## Phase 2: Build [PENDING]\n- [ ] 2.1: Implement [LARGE]")

    def test_stops_at_separator(self):
        md = "## Phase 1: A [PENDING]\n- [ ] 1.1: One\n\n---\n## Phase 2: B [PENDING]\n"
        self.assertEqual(extract_phase_markdown(md, 1), "## Phase 1: A [PENDING]\n- [ ] 1.1: One")

    def test_oversized_heading_skipped(self):
        md = "## Phase " + "9" * 5000 + ": Huge\n- [ ] 9.1: x\n" + LEGACY_MD
        self.assertEqual(extract_phase_markdown(md, 1), "## Phase 1: Setup [COMPLETE]\n- [x] 1.1: Scaffold [SMALL]")

    def test_missing_phase(self):
        self.assertIsNone(extract_phase_markdown(LEGACY_MD, 9))


class TestGetPlanData(ServiceTestCase):
    def test_no_plan(self):
        data = get_plan_data(self.td)
        self.assertFalse(data["has_plan"])
        self.assertEqual(format_plan_markdown(data), NO_PLAN_MESSAGE)

    def test_canonical_plan(self):
        self.write("plan.json", json.dumps(make_plan()))
        data = get_plan_data(self.td)
        self.assertTrue(data["has_plan"])
        self.assertFalse(data["is_legacy"])
        self.assertIn("# Service Plan", data["full_markdown"])
        self.assertIn("← CURRENT", data["full_markdown"])

    def test_read_only(self):
        self.write("plan.json", json.dumps(make_plan()))
        get_plan_data(self.td)
        self.assertEqual(os.listdir(self.td), ["plan.json"])

    def test_legacy_fallback(self):
        self.write("plan.md", LEGACY_MD)
        data = get_plan_data(self.td)
        self.assertTrue(data["has_plan"])
        self.assertTrue(data["is_legacy"])
        self.assertEqual(data["full_markdown"], LEGACY_MD)
        self.assertFalse(os.path.exists(os.path.join(self.td, "plan.json")))

    def test_phase_view(self):
        self.write("plan.json", json.dumps(make_plan()))
        data = get_plan_data(self.td, "2")
        self.assertEqual(data["requested_phase"], 2)
        self.assertTrue(data["phase_markdown"].startswith("## Phase 2: Build [IN PROGRESS]"))
        self.assertIn("2.1: Implement", data["phase_markdown"])
        self.assertNotIn("1.1", data["phase_markdown"].replace("depends: 1.1", ""))

    def test_invalid_phase_number(self):
        self.write("plan.json", json.dumps(make_plan()))
        data = get_plan_data(self.td, "two")
        self.assertEqual(data["error_message"], "Invalid phase number: two")

    def test_unknown_phase(self):
        self.write("plan.json", json.dumps(make_plan()))
        self.assertEqual(show_plan(self.td, 7), "Phase 7 not found in plan.")

    def test_unknown_phase_legacy(self):
        self.write("plan.md", LEGACY_MD)
        self.assertEqual(show_plan(self.td, 5), "Phase 5 not found in plan.")

    def test_show_full_plan(self):
        self.write("plan.json", json.dumps(make_plan()))
        self.assertTrue(show_plan(self.td).startswith("# Service Plan"))


class TestSyncReport(ServiceTestCase):
    def test_no_plan(self):
        report = sync_report(self.td)
        self.assertIn(NO_PLAN_MESSAGE, report)
        self.assertIn("Nothing to sync", report)

    def test_heals_and_reports(self):
        self.write("plan.json", json.dumps(make_plan()))
        report = sync_report(self.td)
        self.assertIn("**Status**: Synced", report)
        self.assertIn("# Service Plan", report)
        self.assertTrue(os.path.exists(os.path.join(self.td, "plan.md")))

    def test_migrates_legacy(self):
        self.write("plan.md", LEGACY_MD)
        report = sync_report(self.td)
        self.assertIn("# Legacy Plan", report)
        self.assertTrue(os.path.exists(os.path.join(self.td, "plan.json")))

    def test_warns_on_failed_migration(self):
        self.write("plan.md", "just some prose\n")
        self.assertIn("**Warning**", sync_report(self.td))


if __name__ == "__main__":
    unittest.main()
