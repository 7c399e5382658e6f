"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from smile_report.config.rules import RuleSet
from smile_report.config.settings import Settings
from smile_report.pipeline.report_pipeline import ReportPipeline
from smile_report.storage.sqlite_audit_store import SQLiteAuditStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_rules(request: Request) -> RuleSet:
    return request.app.state.rules


def get_pipeline(request: Request) -> ReportPipeline:
    return request.app.state.pipeline


def get_audit_store(request: Request) -> SQLiteAuditStore | None:
    return request.app.state.audit_store
