"""Category aggregation.

Each answered question contributes

    improve = score * improve_weight * multiplier
    move    = score * move_weight * multiplier

where score is the normalized, reverse-adjusted answer. A category's
improve/move values are the sums divided by the number of counted
questions (floored at 1). The category weight is carried through
unapplied; composite scoring uses it.
"""

from typing import Iterable, Mapping

from move_improve.core.decision.normalize import is_na_answer, normalize_answer
from move_improve.core.decision.types import DEFAULT_NA_SENTINEL, CategoryScore, ResponseSet
from move_improve.core.schemas_questionnaire import (
    Category,
    NAHandling,
    Question,
    ScoringWeights,
)


def score_question(question: Question, raw: str, scoring: ScoringWeights) -> float:
    """Normalize an answer and apply reverse scoring."""
    normalized = normalize_answer(question, raw)
    return -normalized if scoring.reverse_scored else normalized


def aggregate_category(
    category: Category,
    questions: Iterable[Question],
    responses: ResponseSet,
    scoring_by_question: Mapping[str, ScoringWeights],
    weight_overrides: Mapping[str, float] | None = None,
    na_handling: NAHandling = NAHandling.EXCLUDE_FROM_DENOMINATOR,
    na_sentinel: str = DEFAULT_NA_SENTINEL,
) -> CategoryScore:
    """
    Aggregate one category's answered questions.

    Questions without scoring weights or without an answer are skipped.
    NA answers are skipped too, unless na_handling is treat_as_neutral, in
    which case an NA answer present in the response set (the sentinel or an
    explicit null) scores 0 but is still counted.

    Args:
        category: The category being scored
        questions: Active questions belonging to the category
        responses: Resolved answers keyed by question id
        scoring_by_question: Scoring weights keyed by question id
        weight_overrides: Multiplier overrides from triggered weight rules
        na_handling: NA policy from the scoring config
        na_sentinel: Answer string meaning NA

    Returns:
        CategoryScore with mean contributions and the counted total
    """
    weight_overrides = weight_overrides or {}
    improve_sum = 0.0
    move_sum = 0.0
    active_count = 0

    for question in questions:
        scoring = scoring_by_question.get(question.id)
        if scoring is None:
            continue

        if question.id not in responses:
            continue
        raw = responses[question.id]

        # An explicit null is NA on eligible questions, unanswered otherwise
        if is_na_answer(question, raw, na_sentinel):
            if na_handling != NAHandling.TREAT_AS_NEUTRAL:
                continue
            score = 0.0
        elif raw is None:
            continue
        else:
            score = score_question(question, raw, scoring)

        multiplier = weight_overrides.get(question.id, scoring.multiplier)
        improve_sum += score * scoring.improve_weight * multiplier
        move_sum += score * scoring.move_weight * multiplier
        active_count += 1

    denominator = max(active_count, 1)

    return CategoryScore(
        improve=improve_sum / denominator,
        move=move_sum / denominator,
        count=active_count,
        weight=category.default_weight,
    )


def aggregate_categories(
    categories: Iterable[Category],
    questions_by_category: Mapping[str, tuple[Question, ...]],
    responses: ResponseSet,
    scoring_by_question: Mapping[str, ScoringWeights],
    weight_overrides: Mapping[str, float] | None = None,
    na_handling: NAHandling = NAHandling.EXCLUDE_FROM_DENOMINATOR,
    na_sentinel: str = DEFAULT_NA_SENTINEL,
) -> dict[str, CategoryScore]:
    """Aggregate every active category, keyed by category id."""
    breakdown: dict[str, CategoryScore] = {}

    for category in categories:
        if not category.is_active:
            continue
        breakdown[category.id] = aggregate_category(
            category=category,
            questions=questions_by_category.get(category.id, ()),
            responses=responses,
            scoring_by_question=scoring_by_question,
            weight_overrides=weight_overrides,
            na_handling=na_handling,
            na_sentinel=na_sentinel,
        )

    return breakdown
