"""End-to-end pipeline runs against the bundled rules and content library."""

import json
from dataclasses import FrozenInstanceError

import pytest

from smile_report.models.domain import Confidence, IntakeData, QAOutcome, QuestionAnswer
from smile_report.models.serialization import to_jsonable
from smile_report.pipeline.report_pipeline import PIPELINE_ERROR, VALIDATION_ERROR, ReportPipeline
from smile_report.storage.sqlite_audit_store import SQLiteAuditStore


@pytest.fixture
async def audit_store(settings):
    store = SQLiteAuditStore(settings.sqlite_audit_db_path)
    await store.initialize()
    return store


@pytest.fixture
def pipeline(settings, rules, file_store, audit_store):
    return ReportPipeline.from_rules(settings, rules, file_store, audit_store=audit_store)


@pytest.mark.asyncio
async def test_single_missing_tooth_passes(pipeline, sample_intake_1):
    result = await pipeline.run(sample_intake_1)

    assert result.success
    assert result.outcome == QAOutcome.PASS
    report = result.report
    assert report.scenario_id == "S02"
    assert report.tone == "TP-02"
    assert report.confidence == Confidence.HIGH
    numbers = [s.section_number for s in report.sections]
    assert numbers == sorted(numbers)
    assert {1, 2, 3, 4, 10, 11} <= set(numbers)
    assert "upper front tooth" in report.section(3).content
    assert result.audit.report_delivered


@pytest.mark.asyncio
async def test_urgent_pain_withholds_treatment_sections(pipeline, sample_intake_2):
    result = await pipeline.run(sample_intake_2)

    assert result.outcome != QAOutcome.BLOCK
    report = result.report
    assert report.scenario_id == "S12"
    assert report.tone == "TP-04"
    # sections 7 and 8 have nothing selected for this intake
    assert set(report.suppressed_sections) == {5, 6, 9}
    assert all(s.section_number not in {5, 6, 7, 8, 9} for s in report.sections)
    assert report.warnings_included
    assert "A_WARN_ACTIVE_SYMPTOMS" in report.section(0).sources


@pytest.mark.asyncio
async def test_premium_aesthetic_delivers(pipeline, sample_intake_3):
    result = await pipeline.run(sample_intake_3)
    assert result.success
    assert result.report.scenario_id == "S11"
    assert result.report.tone == "TP-03"


@pytest.mark.asyncio
async def test_minimal_intake_uses_fallbacks(pipeline, minimal_intake):
    result = await pipeline.run(minimal_intake)
    assert result.outcome != QAOutcome.BLOCK
    assert result.audit.driver_state.fallbacks_applied
    assert result.report.confidence == Confidence.MEDIUM


@pytest.mark.asyncio
async def test_invalid_intake_blocks_without_raising(pipeline, audit_store):
    intake = IntakeData(session_id="invalid-1", answers=[])
    result = await pipeline.run(intake)

    assert not result.success
    assert result.outcome == QAOutcome.BLOCK
    assert result.report is None
    assert result.error.startswith("Input validation failed")
    assert result.audit.scenario_match.matched_scenario == VALIDATION_ERROR
    assert result.audit.decision_trace.events[0].stage == "input_validation"

    stored = await audit_store.get_audit("invalid-1")
    assert stored["final_outcome"] == "BLOCK"
    assert stored["report_delivered"] is False


@pytest.mark.asyncio
async def test_stage_failure_blocks(pipeline, sample_intake_1, monkeypatch):
    def explode(state):
        raise RuntimeError("scoring table corrupted")

    monkeypatch.setattr(pipeline._scorer, "score", explode)
    result = await pipeline.run(sample_intake_1)

    assert result.outcome == QAOutcome.BLOCK
    assert result.audit.scenario_match.matched_scenario == PIPELINE_ERROR
    assert result.error == "scoring table corrupted"
    failed = result.audit.decision_trace.events[-1]
    assert failed.stage == "scenario_scoring"
    assert failed.output["type"] == "RuntimeError"


@pytest.mark.asyncio
async def test_trace_covers_every_stage(pipeline, sample_intake_1):
    result = await pipeline.run(sample_intake_1)
    stages = [e.stage for e in result.audit.decision_trace.events]
    assert stages == [
        "input_validation",
        "tag_extraction",
        "driver_derivation",
        "scenario_scoring",
        "tone_selection",
        "content_selection",
        "scenario_content_load",
        "composition",
        "qa_gate",
    ]
    assert result.audit.decision_trace.final_outcome == result.outcome


@pytest.mark.asyncio
async def test_audit_persisted_once(pipeline, audit_store, sample_intake_3):
    first = await pipeline.run(sample_intake_3)
    # a second run with the same session id still returns; the stored record is unchanged
    second = await pipeline.run(sample_intake_3)
    assert second.outcome == first.outcome

    counts = await audit_store.count_by_outcome()
    assert sum(counts.values()) == 1


@pytest.mark.asyncio
async def test_run_quick(pipeline, sample_intake_2):
    quick = await pipeline.run_quick(sample_intake_2)
    assert quick.valid
    assert quick.scenario == "S12"
    assert quick.tone == "TP-04"
    assert quick.drivers["clinical_priority"] == "urgent"


@pytest.mark.asyncio
async def test_run_quick_invalid(pipeline):
    intake = IntakeData(session_id="quick-bad", answers=[QuestionAnswer("Q5", "not_an_option")])
    quick = await pipeline.run_quick(intake)
    assert not quick.valid
    assert quick.scenario is None
    assert quick.errors


@pytest.mark.asyncio
async def test_run_quick_contains_stage_errors(pipeline, sample_intake_1, monkeypatch):
    def explode(state):
        raise RuntimeError("tone table corrupted")

    monkeypatch.setattr(pipeline._tones, "select", explode)
    quick = await pipeline.run_quick(sample_intake_1)
    assert not quick.valid
    assert quick.errors == ["tone table corrupted"]


class UnreliableStore:
    def __init__(self, inner, failing):
        self.inner = inner
        self.failing = set(failing)

    async def get_content(self, content_id, tone, language="en"):
        if content_id in self.failing:
            raise ConnectionError("content backend unavailable")
        return await self.inner.get_content(content_id, tone, language)


@pytest.mark.asyncio
async def test_store_error_degrades_section_instead_of_blocking(settings, rules, file_store, sample_intake_1):
    store = UnreliableStore(file_store, {"TM_BUDGET_FLEXIBLE"})
    result = await ReportPipeline.from_rules(settings, rules, store).run(sample_intake_1)

    assert result.outcome != QAOutcome.BLOCK
    assert result.error is None
    assert result.report.scenario_id == "S02"
    assert "TM_BUDGET_FLEXIBLE" not in result.report.section(9).sources


@pytest.mark.asyncio
async def test_scenario_load_error_is_not_fatal(settings, rules, file_store, sample_intake_1):
    store = UnreliableStore(file_store, {"S02"})
    result = await ReportPipeline.from_rules(settings, rules, store).run(sample_intake_1)

    assert result.audit.scenario_match.matched_scenario == "S02"
    load = next(e for e in result.audit.decision_trace.events if e.stage == "scenario_content_load")
    assert load.output == {"loaded": False}
    assert result.audit.decision_trace.events[-1].stage == "qa_gate"


@pytest.mark.asyncio
async def test_repeated_runs_are_identical(settings, rules, file_store, sample_intake_1):
    pipeline = ReportPipeline.from_rules(settings, rules, file_store)
    first = (await pipeline.run(sample_intake_1)).audit
    second = (await pipeline.run(sample_intake_1)).audit

    def dump(audit):
        return json.dumps(
            to_jsonable([audit.driver_state, audit.scenario_match, audit.content_selections]), sort_keys=True
        )

    assert dump(first) == dump(second)


@pytest.mark.asyncio
async def test_audit_record_is_immutable(pipeline, sample_intake_3):
    result = await pipeline.run(sample_intake_3)
    with pytest.raises(FrozenInstanceError):
        result.audit.final_outcome = QAOutcome.BLOCK
