#!/usr/bin/env python3
"""Background worker that keeps plan.md in sync while plan.json is edited.

Polls plan.json (mtime + size), debounces bursts of changes, and runs the
auto-heal load. A sync requested while another is in flight runs once
after it finishes. Zero external deps (threading only).

Usage:
    worker = PlanSyncWorker(root, on_sync_complete=lambda ok, err: ...)
    worker.start()
    ...
    worker.dispose()
"""

from __future__ import annotations

import os
import sys
import threading
from collections.abc import Callable

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
from observability import get_logger, metrics  # noqa: E402
from plan_config import load_config  # noqa: E402
from plan_manager import load_plan  # noqa: E402
from plan_store import plan_json_path  # noqa: E402

_log = get_logger("plan_sync_worker")

STOPPED = "stopped"
STARTING = "starting"
RUNNING = "running"
STOPPING = "stopping"

SyncCallback = Callable[[bool, "BaseException | None"], None]


class PlanSyncWorker:
    """Polling plan.json watcher.

    Parameters:
        root: Workspace root holding plan.json / plan.md.
        debounce_ms: Quiet period after a change before syncing.
        poll_interval_ms: Interval between plan.json stat checks.
        on_sync_complete: Called with (success, error) after every sync.

    Unset timings come from the workspace config (sync_worker section).
    """

    def __init__(
        self,
        root: str,
        debounce_ms: int | None = None,
        poll_interval_ms: int | None = None,
        on_sync_complete: SyncCallback | None = None,
    ) -> None:
        self.root = os.path.abspath(root)
        worker_cfg = load_config(self.root).get("sync_worker", {})
        self.debounce_ms = debounce_ms if debounce_ms is not None else worker_cfg.get("debounce_ms", 300)
        self.poll_interval_ms = (
            poll_interval_ms if poll_interval_ms is not None
            else worker_cfg.get("poll_interval_ms", 2000)
        )
        self.on_sync_complete = on_sync_complete

        self._status = STOPPED
        self._disposed = False
        self._last_stat: tuple[int, int] | None = None
        self._stop_event = threading.Event()
        self._poll_thread: threading.Thread | None = None
        self._debounce_timer: threading.Timer | None = None
        self._state_lock = threading.Lock()
        self._syncing = False
        self._pending_sync = False

    # -- lifecycle ---------------------------------------------------------

    @property
    def status(self) -> str:
        return self._status

    def is_running(self) -> bool:
        return self._status == RUNNING

    def start(self) -> None:
        if self._disposed:
            _log.warning("worker_start_rejected", root=self.root, reason="disposed")
            return
        if self._status in (RUNNING, STARTING):
            return

        self._status = STARTING
        self._last_stat = self._stat()
        self._stop_event.clear()
        self._poll_thread = threading.Thread(
            target=self._poll_loop, name="plan-sync-poll", daemon=True,
        )
        self._status = RUNNING
        self._poll_thread.start()
        _log.info("worker_started", root=self.root, poll_interval_ms=self.poll_interval_ms)

    def stop(self) -> None:
        if self._status in (STOPPED, STOPPING):
            return
        self._status = STOPPING
        self._stop_event.set()
        self._cancel_debounce()
        thread = self._poll_thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=max(1.0, self.poll_interval_ms / 1000 * 2))
        self._poll_thread = None
        self._status = STOPPED
        _log.info("worker_stopped", root=self.root)

    def dispose(self) -> None:
        """Stop and forbid any later start()."""
        self.stop()
        self._disposed = True
        self._last_stat = None

    # -- change detection --------------------------------------------------

    def _stat(self) -> tuple[int, int] | None:
        try:
            st = os.stat(plan_json_path(self.root))
        except OSError:
            return None
        return (st.st_mtime_ns, st.st_size)

    def _poll_loop(self) -> None:
        interval = self.poll_interval_ms / 1000
        while not self._stop_event.wait(interval):
            self.poll_check()

    def poll_check(self) -> bool:
        """Compare plan.json against the last seen stat; schedule a sync on change."""
        if self._status != RUNNING:
            return False
        current = self._stat()
        if current is None:
            if self._last_stat is not None:
                _log.info("plan_json_deleted", root=self.root)
            self._last_stat = None
            return False
        if current == self._last_stat:
            return False
        self._last_stat = current
        self._schedule_sync()
        return True

    def _schedule_sync(self) -> None:
        with self._state_lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
            timer = threading.Timer(self.debounce_ms / 1000, self._debounce_fired)
            timer.daemon = True
            self._debounce_timer = timer
        timer.start()

    def _cancel_debounce(self) -> None:
        with self._state_lock:
            if self._debounce_timer is not None:
                self._debounce_timer.cancel()
                self._debounce_timer = None

    def _debounce_fired(self) -> None:
        with self._state_lock:
            self._debounce_timer = None
        if self._status != RUNNING:
            return
        self.trigger_sync()

    # -- syncing -----------------------------------------------------------

    def trigger_sync(self) -> None:
        """Run a sync now, or mark one pending if a sync is in flight."""
        with self._state_lock:
            if self._syncing:
                self._pending_sync = True
                _log.debug("sync_pending", root=self.root)
                return
            self._syncing = True

        while True:
            self._execute_sync()
            with self._state_lock:
                if self._pending_sync and not self._disposed:
                    self._pending_sync = False
                    continue
                self._syncing = False
                return

    def sync_now(self) -> bool:
        """Synchronous auto-heal load. Returns True on success."""
        return self._execute_sync()

    def _execute_sync(self) -> bool:
        try:
            plan = load_plan(self.root)
        except Exception as exc:
            metrics.inc("plan_sync_failed")
            _log.error("sync_failed", root=self.root, error=str(exc), exc=exc)
            self._safe_callback(False, exc)
            return False

        metrics.inc("plan_sync_completed")
        if plan is None:
            _log.info("sync_no_plan", root=self.root)
        else:
            _log.info("sync_complete", root=self.root, title=plan.get("title"),
                      phase=plan.get("current_phase"))
        self._safe_callback(True, None)
        return True

    def _safe_callback(self, success: bool, error: BaseException | None) -> None:
        if self.on_sync_complete is None:
            return
        try:
            self.on_sync_complete(success, error)
        except Exception as exc:
            _log.warning("sync_callback_failed", root=self.root, error=str(exc))
