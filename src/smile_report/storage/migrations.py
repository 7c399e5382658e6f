"""Idempotent database schema creation."""

from __future__ import annotations

from pathlib import Path

import aiosqlite

AUDITS_TABLE = """
CREATE TABLE IF NOT EXISTS audits (
    session_id TEXT PRIMARY KEY,
    created_at TEXT NOT NULL,
    final_outcome TEXT NOT NULL,
    report_delivered INTEGER NOT NULL,
    scenario_id TEXT NOT NULL,
    confidence TEXT NOT NULL,
    tone TEXT NOT NULL,
    record TEXT NOT NULL
)
"""

AUDITS_CREATED_INDEX = """
CREATE INDEX IF NOT EXISTS idx_audits_created_at ON audits(created_at)
"""

AUDITS_OUTCOME_INDEX = """
CREATE INDEX IF NOT EXISTS idx_audits_outcome ON audits(final_outcome)
"""


async def initialize_audit_db(db_path: str) -> None:
    if db_path != ":memory:":
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
    async with aiosqlite.connect(db_path) as db:
        await db.execute(AUDITS_TABLE)
        await db.execute(AUDITS_CREATED_INDEX)
        await db.execute(AUDITS_OUTCOME_INDEX)
        await db.commit()
