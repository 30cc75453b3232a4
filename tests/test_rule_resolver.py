"""Tests for conditional rule resolution in move_improve/core/decision/rules.py.

Tests coverage:
- evaluate_condition() - every operator, including malformed operands
- resolve_conditional_rules() - hiding, chained propagation, iteration cap,
  idempotence, input immutability
- collect_weight_overrides() - zero_weight / change_weight ordering
"""

import pytest

from move_improve.core.decision.rules import (
    collect_weight_overrides,
    evaluate_condition,
    group_rules_by_trigger,
    resolve_conditional_rules,
)
from tests.fixtures_questionnaire import make_rule


def rule_with(operator: str, value):
    return make_rule("r", "trigger", operator, value, "hide", ["target"])


class TestEvaluateCondition:
    @pytest.mark.parametrize(
        "operator,value,answer,expected",
        [
            ("==", "yes", "yes", True),
            ("==", "yes", "Yes", False),
            ("!=", "yes", "no", True),
            ("!=", "yes", "yes", False),
            ("<", "5", "3", True),
            ("<", "5", "5", False),
            (">", "5", "7.5", True),
            ("<=", "5", "5", True),
            (">=", "5", "4.99", False),
            (">=", 5, "5", True),
            ("contains", "school", "bad school district", True),
            ("contains", "school", "commute", False),
            ("in", '["a", "b"]', "b", True),
            ("in", '["a", "b"]', "c", False),
        ],
    )
    def test_operators(self, operator, value, answer, expected):
        assert evaluate_condition(rule_with(operator, value), answer) is expected

    def test_numeric_operator_with_non_numeric_answer_is_false(self):
        assert evaluate_condition(rule_with("<", "5"), "lots") is False
        assert evaluate_condition(rule_with(">=", "five"), "7") is False

    def test_in_with_malformed_json_is_false(self):
        assert evaluate_condition(rule_with("in", "[a, b"), "a") is False

    def test_in_with_non_list_json_is_false(self):
        assert evaluate_condition(rule_with("in", '{"a": 1}'), "a") is False


class TestResolveConditionalRules:
    def test_hide_removes_targets(self):
        rules = [make_rule("r1", "q1", "==", "no", "hide", ["q2", "q3"])]
        responses = {"q1": "no", "q2": "5", "q3": "yes", "q4": "1"}

        resolution = resolve_conditional_rules(responses, rules)

        assert resolution.responses == {"q1": "no", "q4": "1"}
        assert resolution.capped is False

    def test_disable_behaves_like_hide(self):
        rules = [make_rule("r1", "q1", "==", "no", "disable", ["q2"])]
        resolution = resolve_conditional_rules({"q1": "no", "q2": "5"}, rules)
        assert "q2" not in resolution.responses

    def test_untriggered_rule_keeps_targets(self):
        rules = [make_rule("r1", "q1", "==", "no", "hide", ["q2"])]
        resolution = resolve_conditional_rules({"q1": "yes", "q2": "5"}, rules)
        assert resolution.responses == {"q1": "yes", "q2": "5"}

    def test_missing_trigger_is_skipped(self):
        rules = [make_rule("r1", "q1", "!=", "anything", "hide", ["q2"])]
        resolution = resolve_conditional_rules({"q2": "5"}, rules)
        assert resolution.responses == {"q2": "5"}

    def test_none_trigger_is_skipped(self):
        rules = [make_rule("r1", "q1", "!=", "anything", "hide", ["q2"])]
        resolution = resolve_conditional_rules({"q1": None, "q2": "5"}, rules)
        assert resolution.responses == {"q1": None, "q2": "5"}

    def test_inactive_rule_is_ignored(self):
        rules = [make_rule("r1", "q1", "==", "no", "hide", ["q2"], is_active=False)]
        resolution = resolve_conditional_rules({"q1": "no", "q2": "5"}, rules)
        assert resolution.responses == {"q1": "no", "q2": "5"}

    def test_removal_propagates_through_chained_rules(self):
        # q3's rule is grouped before q1's, so it fires before q1 hides q3
        rules = [
            make_rule("r-late", "q3", "==", "yes", "hide", ["q4"]),
            make_rule("r-early", "q1", "==", "no", "hide", ["q3"]),
            make_rule("r-reveal", "q4", "==", "x", "hide", ["q5"]),
        ]
        responses = {"q1": "no", "q3": "yes", "q4": "x", "q5": "1"}

        resolution = resolve_conditional_rules(responses, rules)

        # q4 is gone before its own rule runs, so q5 survives
        assert resolution.responses == {"q1": "no", "q5": "1"}
        assert resolution.iterations == 2

    def test_does_not_mutate_input(self):
        rules = [make_rule("r1", "q1", "==", "no", "hide", ["q2"])]
        responses = {"q1": "no", "q2": "5"}

        resolve_conditional_rules(responses, rules)

        assert responses == {"q1": "no", "q2": "5"}

    def test_resolution_is_idempotent(self):
        rules = [
            make_rule("r1", "q1", "==", "no", "hide", ["q2"]),
            make_rule("r2", "q2", "==", "5", "hide", ["q3"]),
            make_rule("r3", "q4", ">", "3", "hide", ["q5"]),
        ]
        responses = {"q1": "no", "q2": "5", "q3": "a", "q4": "7", "q5": "b"}

        first = resolve_conditional_rules(responses, rules)
        second = resolve_conditional_rules(first.responses, rules)

        assert second.responses == first.responses
        assert second.iterations == 1

    def test_iteration_cap_stops_propagation_without_error(self):
        rules = [make_rule("r1", "q1", "==", "on", "hide", ["q2"])]

        resolution = resolve_conditional_rules(
            {"q1": "on", "q2": "on"}, rules, max_iterations=1
        )

        assert resolution.iterations == 1
        assert resolution.capped is True
        assert resolution.responses == {"q1": "on"}

    def test_default_cap_is_never_reached_by_hide_chains(self):
        rules = [
            make_rule(f"r{i}", f"q{i + 1}", "==", "on", "hide", [f"q{i}"])
            for i in range(1, 15)
        ]
        responses = {f"q{i}": "on" for i in range(1, 16)}

        resolution = resolve_conditional_rules(responses, rules)

        assert resolution.capped is False
        assert resolution.responses == {"q15": "on"}

    def test_cyclic_rules_terminate(self):
        rules = [
            make_rule("r1", "a", "==", "1", "hide", ["b"]),
            make_rule("r2", "b", "==", "1", "hide", ["a"]),
        ]
        resolution = resolve_conditional_rules({"a": "1", "b": "1"}, rules)

        # a's rule runs first and removes b before b's rule is reached
        assert resolution.responses == {"a": "1"}

    def test_weight_rules_do_not_remove_answers(self):
        rules = [
            make_rule("r1", "q1", "==", "no", "zero_weight", ["q2"]),
            make_rule("r2", "q1", "==", "no", "change_weight", ["q3"], weight_override=2.0),
        ]
        resolution = resolve_conditional_rules({"q1": "no", "q2": "5", "q3": "7"}, rules)

        assert resolution.responses == {"q1": "no", "q2": "5", "q3": "7"}
        assert resolution.weight_overrides == {"q2": 0.0, "q3": 2.0}


class TestCollectWeightOverrides:
    def test_later_rule_wins(self):
        rules = [
            make_rule("r1", "q1", "==", "no", "change_weight", ["q2"], weight_override=2.0),
            make_rule("r2", "q1", "==", "no", "zero_weight", ["q2"]),
        ]
        assert collect_weight_overrides({"q1": "no"}, rules) == {"q2": 0.0}

    def test_change_weight_without_override_is_ignored(self):
        rules = [make_rule("r1", "q1", "==", "no", "change_weight", ["q2"])]
        assert collect_weight_overrides({"q1": "no"}, rules) == {}

    def test_hidden_trigger_does_not_apply_overrides(self):
        rules = [
            make_rule("r1", "q0", "==", "skip", "hide", ["q1"]),
            make_rule("r2", "q1", "==", "no", "zero_weight", ["q2"]),
        ]
        resolution = resolve_conditional_rules({"q0": "skip", "q1": "no", "q2": "4"}, rules)
        assert resolution.weight_overrides == {}


def test_group_rules_by_trigger_keeps_order_and_skips_inactive():
    rules = [
        make_rule("r1", "q1", "==", "a", "hide", ["x"]),
        make_rule("r2", "q2", "==", "a", "hide", ["y"]),
        make_rule("r3", "q1", "==", "b", "hide", ["z"]),
        make_rule("r4", "q1", "==", "c", "hide", ["w"], is_active=False),
    ]
    grouped = group_rules_by_trigger(rules)

    assert list(grouped) == ["q1", "q2"]
    assert [r.id for r in grouped["q1"]] == ["r1", "r3"]
