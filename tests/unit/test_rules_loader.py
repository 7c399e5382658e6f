"""Tests for rule table loading and validation."""

import json
import shutil

import pytest

from smile_report.config.rules import load_rule_set
from smile_report.config.settings import Settings
from smile_report.exceptions import ConfigurationError


@pytest.fixture
def rules_copy(tmp_path):
    target = tmp_path / "rules"
    shutil.copytree(Settings().rules_dir, target)
    return target


def edit(path, mutate):
    data = json.loads(path.read_text(encoding="utf-8"))
    mutate(data)
    path.write_text(json.dumps(data), encoding="utf-8")


def test_bundled_rules_load(rules):
    assert set(rules.versions) == {
        "questions", "tag_extraction", "drivers", "scenarios", "tones", "content", "composition",
    }
    assert len(rules.scenarios.scenarios) == 18
    assert rules.scenarios.safety_scenario == "S12"


def test_missing_table(rules_copy):
    (rules_copy / "tone_profiles.json").unlink()
    with pytest.raises(ConfigurationError, match="not found"):
        load_rule_set(rules_copy)


def test_invalid_json(rules_copy):
    (rules_copy / "questions.json").write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_rule_set(rules_copy)


def test_unknown_driver_value_in_scenario(rules_copy):
    edit(
        rules_copy / "scenario_profiles.json",
        lambda d: d["scenarios"]["S02"]["strong_drivers"].update({"profile_type": ["heroic"]}),
    )
    with pytest.raises(ConfigurationError, match="heroic"):
        load_rule_set(rules_copy)


def test_unknown_scenario_in_priority_order(rules_copy):
    edit(rules_copy / "scenario_profiles.json", lambda d: d["priority_order"].append("S99"))
    with pytest.raises(ConfigurationError):
        load_rule_set(rules_copy)


def test_overlapping_numeric_ranges_rejected(rules_copy):
    edit(
        rules_copy / "tag_extraction.json",
        lambda d: d["questions"]["Q2"]["ranges"].update({"4-6": ["satisfaction_moderate"]}),
    )
    with pytest.raises(ConfigurationError):
        load_rule_set(rules_copy)


def test_pinned_tone_must_exist(rules_copy):
    edit(rules_copy / "composition.json", lambda d: d["sections"]["11"].update({"tone_override": "TP-99"}))
    with pytest.raises(ConfigurationError, match="TP-99"):
        load_rule_set(rules_copy)
