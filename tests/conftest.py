"""Shared test fixtures."""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from smile_report import samples
from smile_report.config.rules import load_rule_set
from smile_report.config.settings import Settings
from smile_report.content.file_store import FileContentStore
from smile_report.content.memory_store import InMemoryContentStore
from smile_report.derivation.driver_deriver import DriverDeriver
from smile_report.extraction.tag_extractor import TagExtractor
from smile_report.models.domain import DriverId, DriverState, DriverValue, IntakeData, QuestionAnswer
from smile_report.tone.tone_selector import ToneSelector


@pytest.fixture
def settings():
    """Test settings with temp paths and no LLM."""
    tmp = tempfile.mkdtemp()
    return Settings(
        google_api_key="",
        llm_evaluator_enabled=False,
        sqlite_audit_db_path=str(Path(tmp) / "test_audits.db"),
        log_json=False,
    )


@pytest.fixture(scope="session")
def rules():
    return load_rule_set(Settings().rules_dir)


@pytest.fixture
def tone_selector(rules):
    return ToneSelector(rules.tones)


@pytest.fixture
def file_store(rules):
    settings = Settings()
    return FileContentStore(settings.content_dir, fallback_chain=ToneSelector(rules.tones).get_fallback_chain)


@pytest.fixture
def memory_store(tone_selector):
    store = InMemoryContentStore(fallback_chain=tone_selector.get_fallback_chain)
    store.put("STATIC_DISCLAIMER", "TP-01", "Informational only. " * 20)
    return store


@pytest.fixture
def sample_intake_1():
    return samples.single_missing_front_tooth()


@pytest.fixture
def sample_intake_2():
    return samples.urgent_pain()


@pytest.fixture
def sample_intake_3():
    return samples.premium_aesthetic()


@pytest.fixture
def minimal_intake():
    return samples.minimal()


@pytest.fixture
def derive_state(rules):
    """Run tag extraction and driver derivation for an intake."""
    extractor = TagExtractor(rules.tag_extraction, rules.questions)
    deriver = DriverDeriver(rules.drivers)

    def _derive(intake: IntakeData) -> DriverState:
        return deriver.derive(extractor.extract(intake))

    return _derive


@pytest.fixture
def make_state(rules):
    """Build a DriverState from explicit values; unspecified drivers use their fallback."""

    def _make(session_id: str = "state-test", **values: str) -> DriverState:
        drivers = {}
        for driver_id in DriverId:
            definition = rules.drivers.drivers[driver_id]
            value = values.get(driver_id.value, definition.fallback.value)
            drivers[driver_id] = DriverValue(
                driver_id=driver_id,
                layer=definition.layer,
                value=value,
                source="derived" if driver_id.value in values else "fallback",
                source_tags=(),
                confidence=0.7,
            )
        return DriverState(session_id=session_id, drivers=drivers)

    return _make


@pytest.fixture
def make_intake():
    def _make(session_id: str, answers: dict, **kwargs) -> IntakeData:
        return IntakeData(
            session_id=session_id,
            answers=[QuestionAnswer(qid, value) for qid, value in answers.items()],
            **kwargs,
        )

    return _make
