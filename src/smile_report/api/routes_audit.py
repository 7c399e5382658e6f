"""Audit record lookup."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from smile_report.api.dependencies import get_audit_store
from smile_report.api.rate_limiter import rate_limit
from smile_report.storage.sqlite_audit_store import SQLiteAuditStore

router = APIRouter(prefix="/audits")


def _require_store(store: SQLiteAuditStore | None) -> SQLiteAuditStore:
    if store is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Audit persistence disabled")
    return store


@router.get("")
async def list_audits(
    limit: int = Query(20, ge=1, le=500),
    store: SQLiteAuditStore | None = Depends(get_audit_store),
    _auth: dict = Depends(rate_limit),
) -> list[dict]:
    return await _require_store(store).get_recent_audits(limit)


@router.get("/{session_id}")
async def get_audit(
    session_id: str,
    store: SQLiteAuditStore | None = Depends(get_audit_store),
    _auth: dict = Depends(rate_limit),
) -> dict:
    record = await _require_store(store).get_audit(session_id)
    if record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"No audit for session {session_id}")
    return record
