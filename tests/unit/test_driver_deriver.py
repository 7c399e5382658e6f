"""Tests for driver derivation."""

from smile_report.derivation.driver_deriver import FALLBACK_CONFIDENCE, DriverDeriver, derived_confidence
from smile_report.models.domain import DriverId, Layer, TagExtractionResult


def test_every_driver_has_a_value(derive_state, sample_intake_1):
    state = derive_state(sample_intake_1)
    assert set(state.drivers) == set(DriverId)
    assert len(state.drivers) == 18


def test_sample_drivers(derive_state, sample_intake_1):
    state = derive_state(sample_intake_1)
    assert state.value(DriverId.CLINICAL_PRIORITY) == "elective"
    assert state.value(DriverId.MOUTH_SITUATION) == "single_missing_tooth"
    assert state.value("anxiety_level") == "mild"
    assert state.drivers[DriverId.ANXIETY_LEVEL].layer == Layer.L3


def test_minimal_intake_uses_fallbacks(derive_state, minimal_intake):
    state = derive_state(minimal_intake)
    assert DriverId.ANXIETY_LEVEL in state.fallbacks_applied
    fallback = state.drivers[DriverId.BUDGET_TYPE]
    assert fallback.source == "fallback"
    assert fallback.value == "unknown"
    assert fallback.confidence == FALLBACK_CONFIDENCE
    assert state.value(DriverId.MOUTH_SITUATION) == "single_missing_tooth"


def test_urgent_priority_wins_conflict(derive_state, sample_intake_2):
    state = derive_state(sample_intake_2)
    assert state.value(DriverId.CLINICAL_PRIORITY) == "urgent"
    conflict = next(c for c in state.conflicts if c.driver_id == DriverId.CLINICAL_PRIORITY)
    assert conflict.resolved_value == "urgent"
    assert "semi_urgent" in conflict.conflicting_values


def test_no_tags_falls_back_everywhere(rules):
    state = DriverDeriver(rules.drivers).derive(TagExtractionResult("none", [], []))
    assert len(state.fallbacks_applied) == len(DriverId)
    assert state.value(DriverId.CLINICAL_PRIORITY) == "unknown"


def test_derived_confidence_is_capped():
    assert derived_confidence(1) == 0.7
    assert derived_confidence(5) == 1.0


def test_layer_and_safety_lookup(rules):
    deriver = DriverDeriver(rules.drivers)
    assert deriver.layer_of(DriverId.CLINICAL_PRIORITY) == "L1"
    assert deriver.is_safety_critical(DriverId.CLINICAL_PRIORITY)
