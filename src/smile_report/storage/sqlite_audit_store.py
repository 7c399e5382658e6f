"""SQLite-backed, write-once audit record store."""

from __future__ import annotations

import json

import aiosqlite

from smile_report.exceptions import AuditStoreError
from smile_report.models.domain import AuditRecord
from smile_report.models.serialization import to_jsonable
from smile_report.observability.logger import get_logger
from smile_report.storage.migrations import initialize_audit_db

logger = get_logger("sqlite_audit_store")


class SQLiteAuditStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_audit_db(self._db_path)

    async def save_audit(self, record: AuditRecord) -> None:
        """Insert a new audit; an existing session id is never overwritten."""
        payload = json.dumps(to_jsonable(record))
        async with aiosqlite.connect(self._db_path) as db:
            try:
                await db.execute(
                    "INSERT INTO audits "
                    "(session_id, created_at, final_outcome, report_delivered, scenario_id, confidence, tone, record) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                    (
                        record.session_id,
                        record.created_at.isoformat(),
                        record.final_outcome.value,
                        int(record.report_delivered),
                        record.scenario_match.matched_scenario,
                        record.scenario_match.confidence.value,
                        record.tone_selection.selected_tone,
                        payload,
                    ),
                )
            except aiosqlite.IntegrityError as e:
                raise AuditStoreError(f"Audit for session {record.session_id} already exists") from e
            await db.commit()
        logger.info("audit_saved", session_id=record.session_id, outcome=record.final_outcome.value)

    async def get_audit(self, session_id: str) -> dict | None:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute("SELECT record FROM audits WHERE session_id = ?", (session_id,)) as cursor:
                row = await cursor.fetchone()
                return json.loads(row[0]) if row else None

    async def get_recent_audits(self, limit: int = 100) -> list[dict]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT session_id, created_at, final_outcome, report_delivered, scenario_id, confidence, tone "
                "FROM audits ORDER BY created_at DESC LIMIT ?",
                (limit,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [{**dict(row), "report_delivered": bool(row["report_delivered"])} for row in rows]

    async def count_by_outcome(self) -> dict[str, int]:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT final_outcome, COUNT(*) FROM audits GROUP BY final_outcome"
            ) as cursor:
                rows = await cursor.fetchall()
                return {outcome: count for outcome, count in rows}
