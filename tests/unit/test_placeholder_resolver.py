"""Tests for placeholder resolution."""

from smile_report.composition.placeholder_resolver import PlaceholderContext, PlaceholderResolver
from smile_report.models.domain import IntakeData


def context(metadata=None, calculated=None, custom=None):
    intake = IntakeData(session_id="ph", answers=[], metadata=metadata or {})
    return PlaceholderContext(intake=intake, calculated=calculated or {}, custom=custom or {})


def test_metadata_takes_precedence():
    resolver = PlaceholderResolver()
    result = resolver.resolve(
        "Hello {{PATIENT_NAME}}",
        context(metadata={"patient_name": "John"}, custom={"PATIENT_NAME": "Someone"}),
    )
    assert result.content == "Hello John"
    assert result.resolved[0].source == "intake"
    assert result.unresolved == []


def test_calculated_then_custom_then_definition():
    resolver = PlaceholderResolver()
    ctx = context(calculated={"ESTIMATED_VISITS": "3-5 appointments"}, custom={"CLINIC_NAME": "Smile Dental"})
    result = resolver.resolve(
        "{{ESTIMATED_VISITS}} at {{CLINIC_NAME}} for {{SPECIAL}}",
        ctx,
        definitions={"SPECIAL": "your case"},
    )
    assert result.content == "3-5 appointments at Smile Dental for your case"
    assert [r.source for r in result.resolved] == ["calculated", "custom", "fallback"]


def test_default_fallbacks():
    result = PlaceholderResolver().resolve("Near {{TOOTH_LOCATION}}", context())
    assert result.content == "Near the affected area"


def test_empty_values_are_skipped():
    result = PlaceholderResolver().resolve("{{PATIENT_NAME}}", context(metadata={"patient_name": ""}))
    assert result.content == "you"


def test_unresolved_left_verbatim():
    result = PlaceholderResolver().resolve("Cost {{PRICE_RANGE}} and {{PRICE_RANGE}}", context())
    assert result.content == "Cost {{PRICE_RANGE}} and {{PRICE_RANGE}}"
    assert result.unresolved == ["PRICE_RANGE", "PRICE_RANGE"]


def test_lowercase_tokens_are_not_placeholders():
    result = PlaceholderResolver().resolve("{{patient_name}}", context())
    assert result.content == "{{patient_name}}"
    assert result.unresolved == []


def test_extract_and_validate():
    resolver = PlaceholderResolver()
    text = "{{PATIENT_NAME}} {{UNKNOWN_THING}} {{PATIENT_NAME}}"
    assert resolver.extract_placeholders(text) == ["PATIENT_NAME", "UNKNOWN_THING"]
    assert resolver.validate_placeholders(text, context()) == ["UNKNOWN_THING"]


def test_custom_default_fallback():
    resolver = PlaceholderResolver(fallbacks={"PRICE_RANGE": "a range discussed at consultation"})
    resolver.set_default_fallback("CLINIC_NAME", "our clinic")
    assert resolver.get_default_fallbacks()["CLINIC_NAME"] == "our clinic"
    assert resolver.resolve("{{PRICE_RANGE}}", context()).content == "a range discussed at consultation"
