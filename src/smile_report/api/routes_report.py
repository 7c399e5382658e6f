"""Report generation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from smile_report.api.dependencies import get_pipeline
from smile_report.api.rate_limiter import rate_limit
from smile_report.models.domain import PipelineResult, QAOutcome, QuickResult
from smile_report.models.schemas import QuickResponse, ReportOut, ReportRequest, ReportResponse
from smile_report.models.serialization import to_jsonable
from smile_report.pipeline.report_pipeline import ReportPipeline

router = APIRouter()


def to_report_response(result: PipelineResult) -> ReportResponse:
    audit = result.audit
    match = audit.scenario_match
    report = ReportOut.model_validate(to_jsonable(result.report)) if result.report is not None else None
    return ReportResponse(
        session_id=audit.session_id,
        success=result.success,
        outcome=result.outcome.value,
        requires_review=result.outcome == QAOutcome.FLAG,
        scenario=match.matched_scenario,
        confidence=match.confidence.value,
        tone=audit.tone_selection.selected_tone,
        fallback_used=match.fallback_used,
        reasons=result.reasons,
        report=report,
        error=result.error,
    )


def to_quick_response(result: QuickResult) -> QuickResponse:
    return QuickResponse.model_validate(to_jsonable(result))


@router.post("/report", response_model=ReportResponse)
async def create_report(
    request: ReportRequest,
    pipeline: ReportPipeline = Depends(get_pipeline),
    _auth: dict = Depends(rate_limit),
) -> ReportResponse:
    # BLOCK is a normal outcome, reported with 200 and success=false
    result = await pipeline.run(request.to_intake())
    return to_report_response(result)


@router.post("/report/quick", response_model=QuickResponse)
async def quick_report(
    request: ReportRequest,
    pipeline: ReportPipeline = Depends(get_pipeline),
    _auth: dict = Depends(rate_limit),
) -> QuickResponse:
    return to_quick_response(await pipeline.run_quick(request.to_intake()))
