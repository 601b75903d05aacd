"""
Tests for loading and validating extraction rules.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from autobook.core.errors import RulesConfigError
from autobook.services.extraction import ExtractionRules, load_rules


def test_defaults():
    rules = ExtractionRules()

    assert "支付" in rules.noise_terms
    assert "原价" in rules.distractor_terms
    assert rules.fraction_digits == 2
    assert rules.unknown_merchant == "未知商户"
    assert rules.rule_type == "自动提取"


def test_rules_are_immutable():
    rules = ExtractionRules()
    with pytest.raises(ValidationError):
        rules.noise_terms = ("foo",)


def test_invalid_pattern_rejected():
    with pytest.raises(ValidationError):
        ExtractionRules(anchor_patterns=["(unclosed"])


def test_empty_anchor_patterns_rejected():
    with pytest.raises(ValidationError):
        ExtractionRules(anchor_patterns=[])


def test_from_json_file_keeps_unlisted_defaults(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"distractor_terms": ["was", "save"]}), encoding="utf-8")

    rules = ExtractionRules.from_file(path)

    assert rules.distractor_terms == ("was", "save")
    assert "支付" in rules.noise_terms


def test_from_yaml_file(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text(
        "noise_terms:\n  - 支付\n  - 云闪付\nanchor_patterns:\n  - '\\d{1,2}月\\d{1,2}日'\n",
        encoding="utf-8",
    )

    rules = ExtractionRules.from_file(path)

    assert rules.noise_terms == ("支付", "云闪付")
    assert rules.anchor_patterns == (r"\d{1,2}月\d{1,2}日",)
    assert rules.anchor_re.search("10月25日")


def test_missing_file(tmp_path):
    with pytest.raises(RulesConfigError):
        ExtractionRules.from_file(tmp_path / "nope.json")


def test_malformed_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(RulesConfigError):
        ExtractionRules.from_file(path)


def test_bad_pattern_in_file(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({"amount_pattern": "(\\d+"}), encoding="utf-8")
    with pytest.raises(RulesConfigError):
        ExtractionRules.from_file(path)


def test_non_mapping_file(tmp_path):
    path = tmp_path / "rules.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(RulesConfigError):
        ExtractionRules.from_file(path)


def test_load_rules_without_path_uses_defaults():
    rules = load_rules(None)
    assert rules.noise_terms == ExtractionRules().noise_terms
    assert rules.anchor_patterns == ExtractionRules().anchor_patterns


def test_example_rules_file_matches_defaults():
    path = Path(__file__).parent.parent / "config" / "extraction_rules.example.yaml"
    rules = ExtractionRules.from_file(path)
    defaults = ExtractionRules()

    assert rules.noise_terms == defaults.noise_terms
    assert rules.distractor_terms == defaults.distractor_terms
    assert rules.anchor_patterns == defaults.anchor_patterns
    assert rules.fraction_digits == defaults.fraction_digits
    assert rules.transaction_keyword == defaults.transaction_keyword
    assert rules.unknown_merchant == defaults.unknown_merchant


def test_copied_rules_use_updated_patterns():
    rules = ExtractionRules()
    three_digits = rules.model_copy(update={"fraction_digits": 3, "anchor_patterns": (r"前天",)})

    assert rules.amount_re.search("25.50")
    assert three_digits.amount_re.search("25.50") is None
    assert three_digits.amount_re.search("25.500").group(1) == "25.500"
    assert three_digits.anchor_re.search("前天 08:00")
    assert three_digits.anchor_re.search("10月25日") is None
