"""Tests for building configuration snapshots from raw store rows."""

import copy

import pytest

from move_improve.core.decision import Decision, LeanStrength, compute_decision
from move_improve.core.schemas_questionnaire import (
    DropdownQuestion,
    NumericQuestion,
    QuestionType,
    ScaleQuestion,
    TextQuestion,
    YesNoQuestion,
)
from move_improve.core.snapshot_builder import (
    ConfigurationIntegrityError,
    build_snapshot,
    canonical_question_type,
)
from tests.fixtures_questionnaire import (
    CATEGORY_ROWS,
    QUESTION_ROWS,
    RULE_ROWS,
    SCORING_CONFIG_ROW,
    SCORING_ROWS,
    VERSION_ROW,
)


@pytest.fixture
def rows():
    """Deep copies of the fixture rows, safe to edit per test."""
    return {
        "version_row": copy.deepcopy(VERSION_ROW),
        "category_rows": copy.deepcopy(CATEGORY_ROWS),
        "question_rows": copy.deepcopy(QUESTION_ROWS),
        "scoring_rows": copy.deepcopy(SCORING_ROWS),
        "rule_rows": copy.deepcopy(RULE_ROWS),
        "scoring_config_row": copy.deepcopy(SCORING_CONFIG_ROW),
    }


class TestBuildSnapshot:
    def test_builds_from_fixture_rows(self, rows):
        snapshot = build_snapshot(**rows)

        assert snapshot.version == 3
        assert snapshot.is_active is True
        assert [c.id for c in snapshot.categories] == ["cat-location", "cat-finance"]
        assert snapshot.categories[1].default_weight == 1.5

    def test_question_type_aliases(self, rows):
        snapshot = build_snapshot(**rows)
        by_id = {q.id: q for q in snapshot.questions}

        assert isinstance(by_id["q-safety"], ScaleQuestion)
        assert isinstance(by_id["q-open"], YesNoQuestion)
        assert isinstance(by_id["q-budget"], NumericQuestion)
        assert isinstance(by_id["q-financing"], DropdownQuestion)

    def test_json_string_options_with_camel_case_fields(self, rows):
        snapshot = build_snapshot(**rows)
        financing = next(q for q in snapshot.questions if q.id == "q-financing")

        cash = financing.find_option("cash")
        assert cash.score_impact.improve == 0.8
        assert cash.score_impact.move == 0.4
        assert financing.find_option("heloc").score_impact is None
        assert financing.find_option("unsure").is_na is True

    def test_scoring_decimals_and_missing_multiplier(self, rows):
        snapshot = build_snapshot(**rows)

        safety = snapshot.scoring_by_question["q-safety"]
        budget = snapshot.scoring_by_question["q-budget"]
        assert safety.improve_weight == 1.0
        assert budget.multiplier == 1.0
        assert budget.reverse_scored is True

    def test_scoring_config_decimals(self, rows):
        config = build_snapshot(**rows).scoring_config

        assert config.neutral_zone_min == -0.15
        assert config.strong_lean_threshold == 0.6
        assert config.equal_weighting is False

    def test_legacy_rule_columns(self, rows):
        rule = build_snapshot(**rows).conditional_rules[0]

        assert rule.trigger_question_id == "q-open"
        assert rule.target_question_ids == ("q-financing",)
        assert rule.comparison_value == "no"

    def test_legacy_target_is_not_duplicated(self, rows):
        rows["rule_rows"][0]["target_question_ids"] = ["q-financing", "q-budget"]

        rule = build_snapshot(**rows).conditional_rules[0]

        assert rule.target_question_ids == ("q-financing", "q-budget")

    def test_snapshot_scores_end_to_end(self, rows):
        snapshot = build_snapshot(**rows)

        output = compute_decision(
            snapshot,
            {"q-safety": "10", "q-open": "no", "q-budget": "20", "q-financing": "cash"},
        )

        # q-financing hidden by rule-1; q-budget reverse scored
        assert output.category_breakdown["cat-finance"].count == 1
        assert output.improve_score == pytest.approx(0.08)
        assert output.move_score == pytest.approx(-0.26)
        assert output.decision_index == pytest.approx(0.34)
        assert output.decision == Decision.IMPROVE
        assert output.lean == LeanStrength.MODERATE


class TestIntegrityErrors:
    def test_missing_scoring_config(self, rows):
        rows["scoring_config_row"] = None

        with pytest.raises(ConfigurationIntegrityError, match="No scoring config"):
            build_snapshot(**rows)

    def test_question_in_unknown_category(self, rows):
        rows["question_rows"][0]["category_id"] = "cat-missing"

        with pytest.raises(ConfigurationIntegrityError, match="cat-missing"):
            build_snapshot(**rows)

    def test_scoring_for_unknown_question(self, rows):
        rows["scoring_rows"].append({"question_id": "q-ghost", "improve_weight": 1})

        with pytest.raises(ConfigurationIntegrityError, match="q-ghost"):
            build_snapshot(**rows)

    def test_inconsistent_thresholds(self, rows):
        rows["scoring_config_row"]["moderate_lean_threshold"] = "0.9"

        with pytest.raises(ConfigurationIntegrityError):
            build_snapshot(**rows)

    def test_inverted_neutral_zone(self, rows):
        rows["scoring_config_row"]["neutral_zone_min"] = "0.5"

        with pytest.raises(ConfigurationIntegrityError):
            build_snapshot(**rows)

    def test_scale_without_bounds(self, rows):
        rows["question_rows"][0]["scale_max"] = None

        with pytest.raises(ConfigurationIntegrityError):
            build_snapshot(**rows)

    def test_malformed_options_json(self, rows):
        rows["question_rows"][3]["options"] = "[{not json"

        with pytest.raises(ConfigurationIntegrityError, match="not valid JSON"):
            build_snapshot(**rows)

    def test_row_missing_id(self, rows):
        del rows["category_rows"][0]["id"]

        with pytest.raises(ConfigurationIntegrityError, match="Malformed"):
            build_snapshot(**rows)

    def test_duplicate_question_ids(self, rows):
        rows["question_rows"].append(copy.deepcopy(rows["question_rows"][0]))

        with pytest.raises(ConfigurationIntegrityError, match="Duplicate question"):
            build_snapshot(**rows)


class TestCanonicalQuestionType:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("yesno", QuestionType.YES_NO),
            ("Yes_No", QuestionType.YES_NO),
            ("numeric_input", QuestionType.NUMERIC),
            ("text_input", QuestionType.TEXT),
            (" scale ", QuestionType.SCALE),
            ("multiple_choice", QuestionType.MULTIPLE_CHOICE),
        ],
    )
    def test_aliases(self, raw, expected):
        assert canonical_question_type(raw) == expected

    def test_unknown_type_scores_as_text(self, rows):
        rows["question_rows"][1]["type"] = "slider"

        snapshot = build_snapshot(**rows)
        question = next(q for q in snapshot.questions if q.id == "q-open")

        assert isinstance(question, TextQuestion)
        assert canonical_question_type(None) == QuestionType.TEXT
