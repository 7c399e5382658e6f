"""Tests for decision tracing and payload sanitization."""

import pytest

from smile_report.models.domain import Confidence, QAOutcome, ScenarioMatchResult
from smile_report.observability.tracing import MAX_STRING, REDACTED, TraceCollector, sanitize


def test_sanitize_redacts_sensitive_keys():
    data = sanitize({"api_key": "abc", "nested": {"jwt_token": "xyz", "answer": "yes"}, "Password": 1})
    assert data["api_key"] == REDACTED
    assert data["Password"] == REDACTED
    assert data["nested"] == {"jwt_token": REDACTED, "answer": "yes"}


def test_sanitize_truncates_long_strings():
    data = sanitize({"text": "x" * (MAX_STRING + 50)})
    assert data["text"].endswith("...[truncated]")
    assert len(data["text"]) == MAX_STRING + len("...[truncated]")


def test_sanitize_bounds_payload_size():
    data = sanitize({"items": ["y" * 900 for _ in range(20)]})
    assert data["_truncated"] is True
    assert data["_size"] > 10000


def test_sanitize_converts_domain_objects():
    match = ScenarioMatchResult("t", "S00", Confidence.FALLBACK, float("-inf"), [], True, "no match")
    data = sanitize(match)
    assert data["confidence"] == "FALLBACK"
    assert data["score"] is None


def test_collector_records_in_order():
    collector = TraceCollector("trace-1")
    collector.record("intake", "validate", {"answers": 3}, {"valid": True}, 1.23456)
    with collector.stage("extraction", "extract_tags", {"answers": 3}) as timer:
        timer.output = {"tags": 5}

    events = collector.events
    assert [e.stage for e in events] == ["intake", "extraction"]
    assert events[0].duration_ms == 1.235
    assert events[1].output == {"tags": 5}
    assert events[1].duration_ms >= 0


def test_stage_records_error_and_reraises():
    collector = TraceCollector("trace-2")
    with pytest.raises(ValueError):
        with collector.stage("scoring", "match"):
            raise ValueError("boom")
    assert collector.events[0].output == {"error": "boom", "type": "ValueError"}


def test_events_are_a_copy():
    collector = TraceCollector("trace-3")
    collector.record("intake", "validate", None, None)
    collector.events.clear()
    assert len(collector.events) == 1


def test_get_trace():
    collector = TraceCollector("trace-4")
    collector.start_stage("tone", "select").complete({"tone": "TP-01"})
    trace = collector.get_trace(QAOutcome.PASS)
    assert trace.session_id == "trace-4"
    assert trace.final_outcome == QAOutcome.PASS
    assert trace.completed_at >= trace.started_at
    assert trace.events[0].output == {"tone": "TP-01"}
