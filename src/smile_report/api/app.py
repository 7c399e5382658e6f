"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from smile_report.api.auth import router as auth_router
from smile_report.api.middleware import RequestTimingMiddleware
from smile_report.api.rate_limiter import SlidingWindowRateLimiter
from smile_report.api.routes_audit import router as audit_router
from smile_report.api.routes_health import router as health_router
from smile_report.api.routes_report import router as report_router
from smile_report.config.rules import load_rule_set
from smile_report.config.settings import Settings
from smile_report.content.file_store import FileContentStore
from smile_report.generation.gemini_provider import GeminiProvider
from smile_report.observability.logger import get_logger, setup_logging
from smile_report.pipeline.report_pipeline import ReportPipeline
from smile_report.storage.sqlite_audit_store import SQLiteAuditStore
from smile_report.tone.tone_selector import ToneSelector

logger = get_logger("app")


def create_app(settings: Settings | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        s = settings or Settings()
        setup_logging(s.log_level, s.log_json)

        # Rule tables fail fast here, never per request
        rules = load_rule_set(s.rules_dir)
        tones = ToneSelector(rules.tones)
        content_store = FileContentStore(
            s.content_dir,
            fallback_chain=tones.get_fallback_chain,
            default_language=s.default_language,
            timeout_s=s.content_timeout_s,
        )

        llm = None
        if s.llm_evaluator_enabled and s.google_api_key:
            llm = GeminiProvider(api_key=s.google_api_key, model=s.gemini_model)
        elif s.llm_evaluator_enabled:
            logger.warning("llm_provider_missing", detail="evaluator enabled without google_api_key")

        audit_store = None
        if s.persist_audits:
            audit_store = SQLiteAuditStore(s.sqlite_audit_db_path)
            await audit_store.initialize()

        app.state.settings = s
        app.state.rules = rules
        app.state.audit_store = audit_store
        app.state.rate_limiter = SlidingWindowRateLimiter()
        app.state.pipeline = ReportPipeline.from_rules(s, rules, content_store, llm=llm, audit_store=audit_store)

        logger.info(
            "startup_complete",
            rule_versions=rules.versions,
            llm_enabled=llm is not None,
            persist_audits=audit_store is not None,
        )
        yield
        logger.info("shutdown_complete")

    app = FastAPI(
        title="Smile Report Engine",
        version="1.0.0",
        description="Rule-driven, QA-gated patient report generation",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(auth_router)
    app.include_router(report_router, tags=["report"])
    app.include_router(audit_router, tags=["audit"])
    return app
