"""
tests/test_skip.py
Unit tests for fieldgen.skip.

Tests cover:
- Evaluation order: field id, then type id, then patterns
- Disabled rules match but never skip
- Glob and /regex/ patterns
- The implicit "unbound" skip
- Parsing skip sections from configuration
"""

from __future__ import annotations

import logging
import re

import pytest

from conftest import EPIC_TYPE, SELECT_TYPE, TEXT_TYPE, make_field
from fieldgen.models import SkipRule, SkipRuleKind, SkipSettings
from fieldgen.skip import SkipEvaluator, build_skip_rules, compile_type_pattern


def _rule(kind: SkipRuleKind, value: str, enabled: bool = True) -> SkipRule:
    return SkipRule(kind=kind, value=value, enabled=enabled)


# ===========================================================================
# compile_type_pattern
# ===========================================================================


class TestCompileTypePattern:
    """Glob vs. /regex/ syntax."""

    def test_glob_matches_whole_type(self) -> None:
        compiled = compile_type_pattern("com.pyxis.greenhopper.jira:*")
        assert compiled.fullmatch(EPIC_TYPE)
        assert not compiled.fullmatch(TEXT_TYPE)

    def test_glob_is_case_sensitive(self) -> None:
        compiled = compile_type_pattern("com.PYXIS.*")
        assert not compiled.fullmatch(EPIC_TYPE)

    def test_regex_between_slashes(self) -> None:
        compiled = compile_type_pattern(r"/.*:(select|multiselect)/")
        assert compiled.fullmatch(SELECT_TYPE)
        assert not compiled.fullmatch(TEXT_TYPE)

    def test_invalid_regex_raises(self) -> None:
        with pytest.raises(re.error):
            compile_type_pattern("/[unclosed/")


# ===========================================================================
# SkipEvaluator
# ===========================================================================


class TestSkipEvaluator:
    """Decisions for individual fields."""

    def test_no_rules_bound_field_is_kept(self) -> None:
        decision = SkipEvaluator().should_skip(make_field("customfield_1", "A"), bound=True)
        assert decision.skip is False

    def test_unbound_field_is_skipped_implicitly(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="fieldgen"):
            decision = SkipEvaluator().should_skip(make_field("customfield_1", "A"), bound=False)
        assert decision.skip is True
        assert decision.reason == "unbound"
        assert decision.explicit is False
        assert "customfield_1" in caplog.text

    def test_field_rule_skips(self) -> None:
        evaluator = SkipEvaluator([_rule(SkipRuleKind.FIELD, "customfield_1")])
        decision = evaluator.should_skip(make_field("customfield_1", "A"), bound=True)
        assert decision.skip is True
        assert decision.explicit is True
        assert "customfield_1" in decision.reason

    def test_type_rule_skips(self) -> None:
        evaluator = SkipEvaluator([_rule(SkipRuleKind.TYPE, SELECT_TYPE)])
        decision = evaluator.should_skip(
            make_field("customfield_1", "A", SELECT_TYPE), bound=True
        )
        assert decision.skip is True
        assert decision.reason.startswith("type rule")

    def test_pattern_rule_skips(self) -> None:
        evaluator = SkipEvaluator([_rule(SkipRuleKind.TYPE_PATTERN, "com.pyxis.*")])
        decision = evaluator.should_skip(
            make_field("customfield_1", "Epic", EPIC_TYPE), bound=True
        )
        assert decision.skip is True
        assert decision.reason.startswith("type_pattern rule")

    def test_explicit_skip_wins_over_unbound(self) -> None:
        evaluator = SkipEvaluator([_rule(SkipRuleKind.FIELD, "customfield_1")])
        decision = evaluator.should_skip(make_field("customfield_1", "A"), bound=False)
        assert decision.explicit is True
        assert decision.reason != "unbound"

    def test_disabled_field_rule_shields_from_pattern(self) -> None:
        evaluator = SkipEvaluator([
            _rule(SkipRuleKind.TYPE_PATTERN, "com.pyxis.*"),
            _rule(SkipRuleKind.FIELD, "customfield_1", enabled=False),
        ])
        shielded = evaluator.should_skip(
            make_field("customfield_1", "Epic", EPIC_TYPE), bound=True
        )
        other = evaluator.should_skip(
            make_field("customfield_2", "Other Epic", EPIC_TYPE), bound=True
        )
        assert shielded.skip is False
        assert other.skip is True

    def test_disabled_type_rule_shields_from_pattern(self) -> None:
        evaluator = SkipEvaluator([
            _rule(SkipRuleKind.TYPE, EPIC_TYPE, enabled=False),
            _rule(SkipRuleKind.TYPE_PATTERN, "com.pyxis.*"),
        ])
        decision = evaluator.should_skip(
            make_field("customfield_1", "Epic", EPIC_TYPE), bound=True
        )
        assert decision.skip is False

    def test_disabled_rule_does_not_shield_from_unbound(self) -> None:
        evaluator = SkipEvaluator([_rule(SkipRuleKind.FIELD, "customfield_1", enabled=False)])
        decision = evaluator.should_skip(make_field("customfield_1", "A"), bound=False)
        assert decision.skip is True
        assert decision.reason == "unbound"

    def test_first_matching_pattern_decides(self) -> None:
        evaluator = SkipEvaluator([
            _rule(SkipRuleKind.TYPE_PATTERN, "com.pyxis.*", enabled=False),
            _rule(SkipRuleKind.TYPE_PATTERN, "*greenhopper*"),
        ])
        decision = evaluator.should_skip(
            make_field("customfield_1", "Epic", EPIC_TYPE), bound=True
        )
        assert decision.skip is False

    def test_rules_listed_in_evaluation_order(self) -> None:
        pattern = _rule(SkipRuleKind.TYPE_PATTERN, "a*")
        type_rule = _rule(SkipRuleKind.TYPE, "b")
        field_rule = _rule(SkipRuleKind.FIELD, "customfield_1")
        evaluator = SkipEvaluator([pattern, type_rule, field_rule])
        assert evaluator.rules == [field_rule, type_rule, pattern]


# ===========================================================================
# build_skip_rules
# ===========================================================================


class TestBuildSkipRules:
    """Parsing the skip section."""

    def test_mapping_toggles(self) -> None:
        rules, result = build_skip_rules(SkipSettings(
            fields={"customfield_1": True, "customfield_2": False},
            types={SELECT_TYPE: True},
            type_patterns={"/.*epic.*/": True},
        ))
        assert result.is_valid
        assert [(r.kind, r.value, r.enabled) for r in rules] == [
            ("field", "customfield_1", True),
            ("field", "customfield_2", False),
            ("type", SELECT_TYPE, True),
            ("type_pattern", "/.*epic.*/", True),
        ]

    def test_list_means_enabled(self) -> None:
        rules, result = build_skip_rules(SkipSettings(fields=["customfield_1"]))
        assert result.is_valid
        assert rules == [_rule(SkipRuleKind.FIELD, "customfield_1")]

    def test_none_sections_are_empty(self) -> None:
        rules, result = build_skip_rules(SkipSettings(fields=None, types=None))
        assert rules == []
        assert result.is_valid

    def test_non_boolean_toggle_is_an_error(self) -> None:
        rules, result = build_skip_rules(SkipSettings(fields={"customfield_1": "yes"}))
        assert rules == []
        assert result.codes() == ["SKIP_TOGGLE_INVALID"]

    def test_invalid_section_is_an_error(self) -> None:
        _, result = build_skip_rules(SkipSettings(types="com.example:thing"))
        assert result.codes() == ["SKIP_SECTION_INVALID"]

    def test_bad_regex_is_dropped_others_kept(self) -> None:
        rules, result = build_skip_rules(SkipSettings(
            type_patterns={"/[unclosed/": True, "com.pyxis.*": True},
        ))
        assert result.codes() == ["SKIP_PATTERN_INVALID"]
        assert [r.value for r in rules] == ["com.pyxis.*"]
