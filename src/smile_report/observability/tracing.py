"""Per-run decision trace: an append-only list of sanitized stage events."""

from __future__ import annotations

import json
import time
from contextlib import contextmanager
from datetime import datetime, timezone

from smile_report.models.domain import DecisionTrace, QAOutcome, TraceEvent
from smile_report.models.serialization import to_jsonable

SENSITIVE_KEYS = ("password", "token", "secret", "api_key")
MAX_STRING = 1000
MAX_PAYLOAD = 10000
REDACTED = "[REDACTED]"


def sanitize(value: object) -> object:
    """Redact sensitive keys and bound the size of a trace payload."""
    try:
        data = _walk(to_jsonable(value))
        size = len(json.dumps(data))
    except (TypeError, ValueError) as e:
        return {"_error": f"unserializable: {e}"}
    if size > MAX_PAYLOAD:
        return {"_truncated": True, "_size": size}
    return data


def _walk(value: object) -> object:
    if isinstance(value, dict):
        return {
            k: REDACTED if any(s in str(k).lower() for s in SENSITIVE_KEYS) else _walk(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_walk(v) for v in value]
    if isinstance(value, str) and len(value) > MAX_STRING:
        return value[:MAX_STRING] + "...[truncated]"
    return value


class StageTimer:
    def __init__(self, collector: TraceCollector, stage: str, action: str, input: object = None) -> None:
        self._collector = collector
        self.stage = stage
        self.action = action
        self.input = input
        self.output: object = None
        self._start = time.monotonic()

    def complete(self, output: object = None) -> TraceEvent:
        if output is not None:
            self.output = output
        duration = (time.monotonic() - self._start) * 1000
        return self._collector.record(self.stage, self.action, self.input, self.output, duration)


class TraceCollector:
    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.started_at = datetime.now(timezone.utc)
        self._events: list[TraceEvent] = []

    @property
    def events(self) -> list[TraceEvent]:
        return list(self._events)

    def record(
        self, stage: str, action: str, input: object, output: object, duration_ms: float = 0.0
    ) -> TraceEvent:
        event = TraceEvent(
            stage=stage,
            action=action,
            input=sanitize(input),
            output=sanitize(output),
            duration_ms=round(duration_ms, 3),
            timestamp=datetime.now(timezone.utc),
        )
        self._events.append(event)
        return event

    def start_stage(self, stage: str, action: str, input: object = None) -> StageTimer:
        return StageTimer(self, stage, action, input)

    @contextmanager
    def stage(self, stage: str, action: str, input: object = None):
        """Record the stage on exit; a raised error is recorded as the output."""
        timer = self.start_stage(stage, action, input)
        try:
            yield timer
        except Exception as e:
            timer.complete({"error": str(e), "type": type(e).__name__})
            raise
        else:
            timer.complete()

    def get_trace(self, final_outcome: QAOutcome) -> DecisionTrace:
        return DecisionTrace(
            session_id=self.session_id,
            started_at=self.started_at,
            completed_at=datetime.now(timezone.utc),
            events=list(self._events),
            final_outcome=final_outcome,
        )
