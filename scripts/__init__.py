# plan-sync — plan.json / plan.md synchronization engine
# Package: plan_sync (maps to scripts/ via pyproject.toml package-dir)

"""plan-sync: keeps a task plan consistent across plan.json and plan.md.

Core modules:
    plan_schema       — Plan constants, validation, natural task-id ordering
    plan_hash         — PLAN_HASH fingerprint and staleness check
    plan_markdown     — Deterministic plan.md derivation
    legacy_migration  — Legacy plan.md -> plan.json recovery
    plan_store        — Atomic plan.json / plan.md persistence
    plan_manager      — Auto-heal load, strict load, task status updates
    plan_service      — Read-side views and sync report
    plan_sync_worker  — Background plan.json poller
    plan_config       — plan-sync.json workspace config
    observability     — Structured JSON logging + metrics
    plan_cli          — plan-sync command line
"""

__version__ = "1.0.0"
