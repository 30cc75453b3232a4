"""Conditional rule resolution.

Rules hang off a trigger question. When the trigger's answer passes the
rule's comparison, the rule acts on its target questions:

- hide / disable: the targets' answers are dropped before scoring
- zero_weight / change_weight: the targets keep their answers but score
  with an overridden multiplier

Dropping an answer can un-trigger other rules, so hiding is repeated until
nothing changes, up to MAX_RULE_ITERATIONS passes. Hitting the cap just
stops propagation.
"""

import json
import operator
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional

from move_improve.core.decision.normalize import parse_number
from move_improve.core.decision.types import MAX_RULE_ITERATIONS, ResponseSet
from move_improve.core.logging import get_logger
from move_improve.core.schemas_questionnaire import ConditionalRule, RuleAction, RuleOperator

logger = get_logger(__name__)

HIDING_ACTIONS = frozenset({RuleAction.HIDE, RuleAction.DISABLE})
WEIGHT_ACTIONS = frozenset({RuleAction.ZERO_WEIGHT, RuleAction.CHANGE_WEIGHT})

_NUMERIC_COMPARISONS: dict[RuleOperator, Callable[[float, float], bool]] = {
    RuleOperator.LT: operator.lt,
    RuleOperator.GT: operator.gt,
    RuleOperator.LE: operator.le,
    RuleOperator.GE: operator.ge,
}


@dataclass(frozen=True)
class RuleResolution:
    """Outcome of resolving rules against one response set."""

    responses: dict[str, Optional[str]]
    weight_overrides: dict[str, float] = field(default_factory=dict)
    iterations: int = 0
    capped: bool = False


def group_rules_by_trigger(
    rules: Iterable[ConditionalRule],
) -> dict[str, tuple[ConditionalRule, ...]]:
    """Group active rules by trigger question id, keeping configuration order."""
    grouped: dict[str, list[ConditionalRule]] = {}
    for rule in rules:
        if not rule.is_active:
            continue
        grouped.setdefault(rule.trigger_question_id, []).append(rule)
    return {trigger: tuple(group) for trigger, group in grouped.items()}


def evaluate_condition(rule: ConditionalRule, value: str) -> bool:
    """
    Test a trigger answer against a rule.

    Numeric operators compare as floats and fail on non-numeric operands.
    `in` reads the rule value as a JSON array; malformed JSON fails.
    """
    expected = rule.comparison_value

    if rule.operator == RuleOperator.EQ:
        return value == expected
    if rule.operator == RuleOperator.NE:
        return value != expected

    if rule.operator in _NUMERIC_COMPARISONS:
        left = parse_number(value)
        right = parse_number(expected)
        if left is None or right is None:
            logger.debug(
                f"Rule {rule.id}: non-numeric operand ({value!r} {rule.operator.value} {expected!r})"
            )
            return False
        return _NUMERIC_COMPARISONS[rule.operator](left, right)

    if rule.operator == RuleOperator.CONTAINS:
        return expected in value

    if rule.operator == RuleOperator.IN:
        try:
            candidates = json.loads(expected)
        except json.JSONDecodeError:
            logger.debug(f"Rule {rule.id}: 'in' value is not valid JSON: {expected!r}")
            return False
        return isinstance(candidates, list) and value in candidates

    return False


def _hide_pass(
    responses: dict[str, Optional[str]],
    rules_by_trigger: Mapping[str, tuple[ConditionalRule, ...]],
) -> tuple[dict[str, Optional[str]], bool]:
    """Run one pass over all triggers. Returns a new dict and whether anything was dropped."""
    working = dict(responses)
    removed = False

    for trigger_id, rules in rules_by_trigger.items():
        trigger_value = working.get(trigger_id)
        if trigger_value is None:
            continue

        for rule in rules:
            if rule.action not in HIDING_ACTIONS:
                continue
            if not evaluate_condition(rule, trigger_value):
                continue
            for target_id in rule.target_question_ids:
                if target_id in working:
                    del working[target_id]
                    removed = True

    return working, removed


def collect_weight_overrides(
    responses: ResponseSet,
    rules: Iterable[ConditionalRule],
) -> dict[str, float]:
    """
    Collect multiplier overrides from triggered weight rules.

    Rules are applied in configuration order, so a later rule targeting the
    same question wins.
    """
    overrides: dict[str, float] = {}

    for rule in rules:
        if not rule.is_active or rule.action not in WEIGHT_ACTIONS:
            continue

        trigger_value = responses.get(rule.trigger_question_id)
        if trigger_value is None or not evaluate_condition(rule, trigger_value):
            continue

        if rule.action == RuleAction.ZERO_WEIGHT:
            weight = 0.0
        elif rule.weight_override is None:
            logger.debug(f"Rule {rule.id}: change_weight without weight_override, ignored")
            continue
        else:
            weight = rule.weight_override

        for target_id in rule.target_question_ids:
            overrides[target_id] = weight

    return overrides


def resolve_conditional_rules(
    responses: ResponseSet,
    rules: Iterable[ConditionalRule],
    rules_by_trigger: Mapping[str, tuple[ConditionalRule, ...]] | None = None,
    max_iterations: int = MAX_RULE_ITERATIONS,
) -> RuleResolution:
    """
    Resolve conditional rules against a response set.

    The input mapping is never modified.

    Args:
        responses: Raw answers keyed by question id
        rules: Rules in configuration order
        rules_by_trigger: Pre-grouped active rules (built from `rules` if omitted)
        max_iterations: Pass limit for hide/disable propagation

    Returns:
        RuleResolution with the pruned responses and weight overrides
    """
    rules = tuple(rules)
    if rules_by_trigger is None:
        rules_by_trigger = group_rules_by_trigger(rules)

    current = dict(responses)
    iterations = 0
    changed = True

    while changed and iterations < max_iterations:
        iterations += 1
        current, changed = _hide_pass(current, rules_by_trigger)

    if changed:
        logger.debug(f"Rule propagation stopped at the {max_iterations}-pass limit")

    return RuleResolution(
        responses=current,
        weight_overrides=collect_weight_overrides(current, rules),
        iterations=iterations,
        capped=changed,
    )
