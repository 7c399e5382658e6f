"""Tests for tone selection."""

from smile_report.models.domain import DriverId


def test_severe_anxiety_selects_stability_frame(tone_selector, make_state):
    result = tone_selector.select(make_state(anxiety_level="severe", expectation_risk="high"))
    assert result.selected_tone == "TP-04"
    assert result.reason == "Triggered by anxiety_level=severe"
    assert result.evaluated_triggers[-1].trigger_driver == DriverId.ANXIETY_LEVEL.value


def test_priority_order_is_first_match(tone_selector, make_state):
    result = tone_selector.select(make_state(expectation_risk="high", anxiety_level="mild"))
    assert result.selected_tone == "TP-05"


def test_sample_tones(tone_selector, derive_state, sample_intake_1, sample_intake_2):
    assert tone_selector.select(derive_state(sample_intake_1)).selected_tone == "TP-02"
    assert tone_selector.select(derive_state(sample_intake_2)).selected_tone == "TP-04"


def test_default_tone_when_nothing_triggers(tone_selector, make_state):
    result = tone_selector.select(make_state())
    assert result.selected_tone == tone_selector.default_tone == "TP-01"
    assert result.reason == "No tone triggers matched, using default tone"
    assert all(not t.matched for t in result.evaluated_triggers)


def test_section_override(tone_selector):
    assert tone_selector.get_tone_for_section(11, "TP-02") == "TP-06"
    assert tone_selector.get_tone_for_section(3, "TP-02") == "TP-02"


def test_fallback_chain(tone_selector):
    assert tone_selector.get_fallback_chain("TP-04") == ["TP-02", "TP-01"]
    assert tone_selector.get_fallback_chain("TP-99") == []


def test_banned_phrases_match_whole_words(tone_selector):
    assert tone_selector.is_phrase_banned("This may be Painful for a moment.", "TP-04")
    assert not tone_selector.is_phrase_banned("The procedure is painless.", "TP-04")
    assert not tone_selector.is_phrase_banned("This may be painful.", "TP-01")


def test_tone_name(tone_selector):
    assert tone_selector.get_tone_name("TP-06") == "Autonomy-Respecting"
    assert tone_selector.get_tone_name("TP-99") == "TP-99"
