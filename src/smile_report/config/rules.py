"""Versioned rule tables, validated once at startup into immutable models.

Every table is a JSON document with a ``version`` field. Schema errors and
dangling cross-references (unknown driver, tone, question or scenario ids)
raise ConfigurationError so a bad deploy fails at process start instead of
per request.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from smile_report.exceptions import ConfigurationError
from smile_report.models.domain import Confidence, ContentType, DriverId, Layer
from smile_report.observability.logger import get_logger

logger = get_logger("rules")

_RANGE_RE = re.compile(r"^(\d+)-(\d+)$")


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


# --- Questions ---


class ConditionalRule(_Frozen):
    question_id: str
    values: list[str]


class QuestionDefinition(_Frozen):
    name: str
    values: list[str] = []
    numeric_min: int | None = None
    numeric_max: int | None = None
    multi_select: bool = False
    required: bool = False
    critical: bool = False
    conditional_on: ConditionalRule | None = None

    @property
    def is_numeric(self) -> bool:
        return self.numeric_min is not None and self.numeric_max is not None


class QuestionTable(_Frozen):
    version: str
    questions: dict[str, QuestionDefinition]

    @model_validator(mode="after")
    def _check_conditionals(self) -> QuestionTable:
        for qid, q in self.questions.items():
            if q.conditional_on and q.conditional_on.question_id not in self.questions:
                raise ValueError(f"{qid} depends on unknown question {q.conditional_on.question_id}")
            if not q.values and not q.is_numeric:
                raise ValueError(f"{qid} declares neither values nor a numeric range")
        return self


# --- Tag extraction ---


class TagQuestionRule(_Frozen):
    type: Literal["single", "multi", "numeric_range"] = "single"
    mappings: dict[str, list[str]] = {}
    ranges: dict[str, list[str]] = {}

    @model_validator(mode="after")
    def _check_ranges(self) -> TagQuestionRule:
        if self.type == "numeric_range" and not self.ranges:
            raise ValueError("numeric_range rule requires ranges")
        bounds = []
        for key in self.ranges:
            m = _RANGE_RE.match(key)
            if not m:
                raise ValueError(f"range key '{key}' must look like 'min-max'")
            lo, hi = int(m.group(1)), int(m.group(2))
            if lo > hi:
                raise ValueError(f"range '{key}' has min greater than max")
            bounds.append((lo, hi, key))
        bounds.sort()
        for (_, prev_hi, prev_key), (lo, _, key) in zip(bounds, bounds[1:]):
            if lo <= prev_hi:
                raise ValueError(f"ranges '{prev_key}' and '{key}' overlap")
        return self

    def parsed_ranges(self) -> list[tuple[int, int, list[str]]]:
        out = []
        for key, tags in self.ranges.items():
            lo, hi = (int(p) for p in _RANGE_RE.match(key).groups())
            out.append((lo, hi, tags))
        return sorted(out, key=lambda r: r[0])


class TagExtractionTable(_Frozen):
    version: str
    questions: dict[str, TagQuestionRule]


# --- Drivers ---


class DriverRule(_Frozen):
    tags: list[str] | None = None
    tags_all: list[str] | None = None
    tags_any: list[str] | None = None
    value: str
    priority: int
    additive: bool = False

    @model_validator(mode="after")
    def _one_shape(self) -> DriverRule:
        shapes = [s for s in (self.tags, self.tags_all, self.tags_any) if s is not None]
        if len(shapes) != 1:
            raise ValueError("driver rule needs exactly one of tags, tags_all, tags_any")
        if not shapes[0]:
            raise ValueError("driver rule tag list must not be empty")
        return self


class DriverFallback(_Frozen):
    value: str
    reason: str


class DriverDefinition(_Frozen):
    layer: Layer
    safety_critical: bool = False
    values: list[str]
    rules: list[DriverRule]
    fallback: DriverFallback

    @model_validator(mode="after")
    def _check_values(self) -> DriverDefinition:
        allowed = set(self.values)
        for rule in self.rules:
            if rule.value not in allowed:
                raise ValueError(f"rule value '{rule.value}' not in {sorted(allowed)}")
        if self.fallback.value not in allowed:
            raise ValueError(f"fallback value '{self.fallback.value}' not in {sorted(allowed)}")
        return self


class DriverTable(_Frozen):
    version: str
    drivers: dict[DriverId, DriverDefinition]

    @field_validator("drivers")
    @classmethod
    def _all_drivers(cls, v: dict[DriverId, DriverDefinition]) -> dict[DriverId, DriverDefinition]:
        missing = [d.value for d in DriverId if d not in v]
        if missing:
            raise ValueError(f"drivers not configured: {missing}")
        return v


# --- Scenarios ---


class ScenarioProfile(_Frozen):
    name: str
    description: str = ""
    required_drivers: dict[DriverId, list[str]] = {}
    strong_drivers: dict[DriverId, list[str]] = {}
    supporting_drivers: dict[DriverId, list[str]] = {}
    excluding_drivers: dict[DriverId, list[str]] = {}
    is_fallback: bool = False
    is_safety_scenario: bool = False
    preferred_tags: list[str] = []


class ScoringWeights(_Frozen):
    strong_weight: float
    supporting_weight: float


class ConfidenceThresholds(_Frozen):
    HIGH: float
    MEDIUM: float
    LOW: float
    FALLBACK: float

    @model_validator(mode="after")
    def _descending(self) -> ConfidenceThresholds:
        if not (self.HIGH >= self.MEDIUM >= self.LOW >= self.FALLBACK):
            raise ValueError("confidence thresholds must be non-increasing HIGH > MEDIUM > LOW > FALLBACK")
        return self

    def band(self, score: float) -> Confidence:
        if score >= self.HIGH:
            return Confidence.HIGH
        if score >= self.MEDIUM:
            return Confidence.MEDIUM
        if score >= self.LOW:
            return Confidence.LOW
        return Confidence.FALLBACK


class ScenarioTable(_Frozen):
    version: str
    scoring: ScoringWeights
    confidence_thresholds: ConfidenceThresholds
    safety_scenario: str
    generic_fallback: str
    priority_order: list[str]
    archetype_map: dict[str, str]
    scenarios: dict[str, ScenarioProfile]

    @model_validator(mode="after")
    def _check_refs(self) -> ScenarioTable:
        known = set(self.scenarios)
        for sid in [self.safety_scenario, self.generic_fallback, *self.priority_order, *self.archetype_map.values()]:
            if sid not in known:
                raise ValueError(f"unknown scenario id '{sid}'")
        return self


# --- Tones ---


class ToneProfile(_Frozen):
    name: str
    description: str = ""
    triggers: dict[DriverId, list[str]] = {}
    banned_lexical_set: list[str] = []
    fallback_chain: list[str] = []


class ToneTable(_Frozen):
    version: str
    default_tone: str
    priority_order: list[str]
    section_overrides: dict[int, str] = {}
    tones: dict[str, ToneProfile]

    @model_validator(mode="after")
    def _check_refs(self) -> ToneTable:
        known = set(self.tones)
        refs = [self.default_tone, *self.priority_order, *self.section_overrides.values()]
        for tone in self.tones.values():
            refs.extend(tone.fallback_chain)
        for tid in refs:
            if tid not in known:
                raise ValueError(f"unknown tone id '{tid}'")
        return self


# --- Content selection ---


class SectionConfig(_Frozen):
    name: str
    required: bool = False
    suppressible: bool = False


class SuppressionRule(_Frozen):
    blocked_blocks: list[str] = []
    blocked_sections: list[int] = []


class BlockTrigger(_Frozen):
    driver: DriverId
    values: list[str]
    section: int | None = None
    priority: int = 0


class ModuleTrigger(_Frozen):
    sections: list[int]
    driver: DriverId | None = None
    values: list[str] = []
    tag: str | None = None
    priority: int = 2

    @model_validator(mode="after")
    def _has_trigger(self) -> ModuleTrigger:
        if self.driver is None and self.tag is None:
            raise ValueError("module needs a driver or tag trigger")
        return self


class StaticSelection(_Frozen):
    content_id: str
    section: int
    priority: int = 0
    tone: str | None = None


class ScenarioSelection(_Frozen):
    section: int
    priority: int


class ContentSelectionTable(_Frozen):
    version: str
    warnings_section: int
    scenario_selection: ScenarioSelection
    sections: dict[int, SectionConfig]
    suppression_rules: dict[str, SuppressionRule]
    a_blocks: dict[str, BlockTrigger]
    b_blocks: dict[str, BlockTrigger]
    modules: dict[str, ModuleTrigger]
    static: list[StaticSelection]

    @model_validator(mode="after")
    def _check_refs(self) -> ContentSelectionTable:
        for key in self.suppression_rules:
            driver, _, value = key.partition(":")
            if not value:
                raise ValueError(f"suppression key '{key}' must be 'driver:value'")
            DriverId(driver)
        sections = set(self.sections)
        for block_id, trigger in self.b_blocks.items():
            if trigger.section not in sections:
                raise ValueError(f"{block_id} targets unknown section {trigger.section}")
        for module_id, module in self.modules.items():
            if not set(module.sections) <= sections:
                raise ValueError(f"{module_id} targets unknown sections {module.sections}")
        return self


# --- Composition ---


class SectionComposition(_Frozen):
    order: list[ContentType]
    scenario_sections: list[str] = []
    tone_override: str | None = None
    max_cardinality: dict[ContentType, int] = {}


class CompositionTable(_Frozen):
    version: str
    uncertainty_sections: list[int]
    uncertainty_language: dict[Confidence, list[str]]
    treatment_block_trigger: str
    treatment_sections: list[int]
    sections: dict[int, SectionComposition]
    scenario_headers: list[tuple[str, str]]


@dataclass(frozen=True)
class RuleSet:
    questions: QuestionTable
    tag_extraction: TagExtractionTable
    drivers: DriverTable
    scenarios: ScenarioTable
    tones: ToneTable
    content: ContentSelectionTable
    composition: CompositionTable

    @property
    def versions(self) -> dict[str, str]:
        return {
            "questions": self.questions.version,
            "tag_extraction": self.tag_extraction.version,
            "drivers": self.drivers.version,
            "scenarios": self.scenarios.version,
            "tones": self.tones.version,
            "content": self.content.version,
            "composition": self.composition.version,
        }


_TABLES: dict[str, tuple[str, type[BaseModel]]] = {
    "questions": ("questions.json", QuestionTable),
    "tag_extraction": ("tag_extraction.json", TagExtractionTable),
    "drivers": ("driver_derivation.json", DriverTable),
    "scenarios": ("scenario_profiles.json", ScenarioTable),
    "tones": ("tone_profiles.json", ToneTable),
    "content": ("content_selection.json", ContentSelectionTable),
    "composition": ("composition.json", CompositionTable),
}


def _load_table(path: Path, model: type[BaseModel]) -> BaseModel:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Rule table not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Rule table {path.name} is not valid JSON: {e}") from e
    try:
        return model.model_validate(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Rule table {path.name} failed schema validation: {e}") from e


def _check_cross_references(rules: RuleSet) -> None:
    for qid in rules.tag_extraction.questions:
        if qid not in rules.questions.questions:
            raise ConfigurationError(f"Tag rules reference unknown question '{qid}'")

    driver_values = {d: set(defn.values) for d, defn in rules.drivers.drivers.items()}

    def _check_values(owner: str, criteria: dict[DriverId, list[str]]) -> None:
        for driver_id, values in criteria.items():
            unknown = set(values) - driver_values[driver_id]
            if unknown:
                raise ConfigurationError(
                    f"{owner} references unknown {driver_id.value} values {sorted(unknown)}"
                )

    for sid, profile in rules.scenarios.scenarios.items():
        for criteria in (
            profile.required_drivers,
            profile.strong_drivers,
            profile.supporting_drivers,
            profile.excluding_drivers,
        ):
            _check_values(f"Scenario {sid}", criteria)

    for tid, tone in rules.tones.tones.items():
        _check_values(f"Tone {tid}", tone.triggers)

    for block_id, trigger in {**rules.content.a_blocks, **rules.content.b_blocks}.items():
        _check_values(block_id, {trigger.driver: trigger.values})
    for module_id, module in rules.content.modules.items():
        if module.driver is not None:
            _check_values(module_id, {module.driver: module.values})
    for key in rules.content.suppression_rules:
        driver, _, value = key.partition(":")
        _check_values(f"Suppression rule {key}", {DriverId(driver): [value]})

    tones = set(rules.tones.tones)
    pinned = [s.tone for s in rules.content.static if s.tone]
    pinned += [c.tone_override for c in rules.composition.sections.values() if c.tone_override]
    for tone_id in pinned:
        if tone_id not in tones:
            raise ConfigurationError(f"Unknown tone '{tone_id}' pinned in content rules")

    for situation in rules.scenarios.archetype_map:
        if situation not in driver_values[DriverId.MOUTH_SITUATION]:
            raise ConfigurationError(f"Archetype map key '{situation}' is not a mouth_situation value")


def load_rule_set(rules_dir: str | Path) -> RuleSet:
    """Load and validate every rule table from ``rules_dir``."""
    base = Path(rules_dir)
    tables = {name: _load_table(base / filename, model) for name, (filename, model) in _TABLES.items()}
    rules = RuleSet(**tables)
    _check_cross_references(rules)
    logger.info("rules_loaded", rules_dir=str(base), **rules.versions)
    return rules
