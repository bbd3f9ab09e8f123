# File: fieldgen/skip.py
"""
fieldgen - Skip Evaluator
==========================
Decides whether generation of a field is suppressed.

Evaluation order, first *matching* rule decides:

    1. exact field-id rule
    2. exact type-id rule
    3. first type-id pattern that matches

A disabled rule still matches (and so ends the evaluation) but never skips.
A disabled field-id rule therefore keeps a field in even when its type
would be skipped by a pattern.  When no rule skips and the field has no
template binding, the result is the implicit ``unbound`` skip.

Patterns are case-sensitive globs (``fnmatch``) unless written as
``/regex/``, which is matched with ``re.fullmatch``.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from fieldgen.models import (
    UNBOUND_REASON,
    FieldDescriptor,
    SkipReason,
    SkipRule,
    SkipRuleKind,
    SkipSettings,
)
from fieldgen.validators import ValidationResult

logger: logging.Logger = logging.getLogger("fieldgen.skip")

_NO_SKIP: SkipReason = SkipReason(skip=False)


def compile_type_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a skip pattern into a regular expression.

    Raises ``re.error`` for an invalid ``/regex/`` pattern.
    """
    if len(pattern) >= 2 and pattern.startswith("/") and pattern.endswith("/"):
        return re.compile(pattern[1:-1])
    return re.compile(fnmatch.translate(pattern))


class SkipEvaluator:
    """Evaluates field-id, type-id and pattern skip rules in order."""

    def __init__(self, rules: Iterable[SkipRule] = ()) -> None:
        self._field_rules: Dict[str, SkipRule] = {}
        self._type_rules: Dict[str, SkipRule] = {}
        self._pattern_rules: List[Tuple[SkipRule, re.Pattern[str]]] = []

        for rule in rules:
            if rule.kind == SkipRuleKind.FIELD:
                self._field_rules.setdefault(rule.value, rule)
            elif rule.kind == SkipRuleKind.TYPE:
                self._type_rules.setdefault(rule.value, rule)
            else:
                self._pattern_rules.append((rule, compile_type_pattern(rule.value)))

    def _match(self, descriptor: FieldDescriptor) -> Optional[SkipRule]:
        rule: Optional[SkipRule] = self._field_rules.get(descriptor.id)
        if rule is not None:
            return rule

        if descriptor.type_id:
            rule = self._type_rules.get(descriptor.type_id)
            if rule is not None:
                return rule

            for candidate, compiled in self._pattern_rules:
                if compiled.fullmatch(descriptor.type_id):
                    return candidate

        return None

    def should_skip(self, descriptor: FieldDescriptor, bound: bool) -> SkipReason:
        rule: Optional[SkipRule] = self._match(descriptor)

        if rule is not None and rule.enabled:
            reason: str = f"{rule.kind} rule '{rule.value}'"
            logger.info("Skipping %s (%s): %s.", descriptor.id, descriptor.name, reason)
            return SkipReason(skip=True, reason=reason, explicit=True)

        if rule is not None:
            logger.debug(
                "%s matched disabled %s rule '%s'; not skipped.",
                descriptor.id,
                rule.kind,
                rule.value,
            )

        if not bound:
            logger.warning(
                "Skipping %s (%s): no template bound to the field or its type %s.",
                descriptor.id,
                descriptor.name,
                descriptor.type_id or "<none>",
            )
            return SkipReason(skip=True, reason=UNBOUND_REASON, explicit=False)

        return _NO_SKIP

    @property
    def rules(self) -> List[SkipRule]:
        return (
            list(self._field_rules.values())
            + list(self._type_rules.values())
            + [rule for rule, _ in self._pattern_rules]
        )

    def __repr__(self) -> str:
        return (
            f"<SkipEvaluator {len(self._field_rules)} field, "
            f"{len(self._type_rules)} type, {len(self._pattern_rules)} pattern rule(s)>"
        )


# ---------------------------------------------------------------------------
# Building rules from configuration
# ---------------------------------------------------------------------------


def _iter_toggles(
    section: str, raw: Any, result: ValidationResult
) -> Iterable[Tuple[str, bool]]:
    if raw is None:
        return
    if isinstance(raw, list):
        for value in raw:
            yield str(value), True
        return
    if not isinstance(raw, dict):
        result.add_error(
            "SKIP_SECTION_INVALID",
            f"skip.{section} must be a mapping or a list, got {type(raw).__name__}.",
            {"section": section},
        )
        return
    for value, toggle in raw.items():
        if not isinstance(toggle, bool):
            result.add_error(
                "SKIP_TOGGLE_INVALID",
                f"skip.{section}.{value} must be true or false, got {toggle!r}.",
                {"section": section, "value": value},
            )
            continue
        yield str(value), toggle


def build_skip_rules(settings: SkipSettings) -> Tuple[List[SkipRule], ValidationResult]:
    """Parse skip declarations, reporting and dropping invalid ones."""
    result: ValidationResult = ValidationResult()
    rules: List[SkipRule] = []

    for value, enabled in _iter_toggles("fields", settings.fields, result):
        rules.append(SkipRule(kind=SkipRuleKind.FIELD, value=value, enabled=enabled))

    for value, enabled in _iter_toggles("types", settings.types, result):
        rules.append(SkipRule(kind=SkipRuleKind.TYPE, value=value, enabled=enabled))

    for value, enabled in _iter_toggles("type_patterns", settings.type_patterns, result):
        try:
            compile_type_pattern(value)
        except re.error as exc:
            result.add_error(
                "SKIP_PATTERN_INVALID",
                f"Skip pattern '{value}' is not a valid regular expression: {exc}",
                {"pattern": value},
            )
            continue
        rules.append(SkipRule(kind=SkipRuleKind.TYPE_PATTERN, value=value, enabled=enabled))

    logger.debug("Parsed %d skip rule(s).", len(rules))
    return rules, result


__all__: List[str] = ["SkipEvaluator", "build_skip_rules", "compile_type_pattern"]
