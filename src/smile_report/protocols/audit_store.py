"""Protocol for audit record persistence."""

from __future__ import annotations

from typing import Protocol

from smile_report.models.domain import AuditRecord


class AuditStore(Protocol):
    async def save_audit(self, record: AuditRecord) -> None: ...

    async def get_audit(self, session_id: str) -> dict | None: ...
