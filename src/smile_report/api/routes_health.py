"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from smile_report.api.dependencies import get_audit_store, get_rules
from smile_report.config.rules import RuleSet
from smile_report.models.schemas import HealthResponse
from smile_report.storage.sqlite_audit_store import SQLiteAuditStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    rules: RuleSet = Depends(get_rules),
    store: SQLiteAuditStore | None = Depends(get_audit_store),
) -> HealthResponse:
    counts = await store.count_by_outcome() if store is not None else {}
    return HealthResponse(status="ok", rule_versions=rules.versions, audits_by_outcome=counts)
