"""Composite scoring and classification.

Category aggregates are combined into one Improve and one Move score.
Empty categories (count == 0) are skipped. With equal weighting the
weighted sums are divided by the number of contributing categories,
otherwise by their total weight; both denominators are floored at 1.

The decision comes from the neutral zone test on the decision index, the
lean from |decision index| against the lean thresholds. The two are
independent and may disagree under some threshold settings.
"""

from dataclasses import dataclass
from typing import Mapping

from move_improve.core.decision.types import (
    SCORE_PRECISION,
    CategoryScore,
    Decision,
    LeanStrength,
)
from move_improve.core.schemas_questionnaire import ScoringConfig


@dataclass(frozen=True)
class CompositeScores:
    improve_score: float
    move_score: float
    decision_index: float
    contributing_categories: int


def round_score(value: float) -> float:
    return round(value, SCORE_PRECISION)


def compute_composite(
    category_scores: Mapping[str, CategoryScore],
    equal_weighting: bool,
) -> CompositeScores:
    """
    Combine category aggregates into rounded composite scores.

    Args:
        category_scores: Category aggregates keyed by category id
        equal_weighting: Divide by category count instead of total weight

    Returns:
        CompositeScores with rounded scores and their difference
    """
    improve_sum = 0.0
    move_sum = 0.0
    total_weight = 0.0
    enabled_count = 0

    for scores in category_scores.values():
        if scores.count == 0:
            continue

        weight = scores.weight
        improve_sum += scores.improve * weight
        move_sum += scores.move * weight
        total_weight += weight
        enabled_count += 1

    if equal_weighting:
        normalizer = max(enabled_count, 1)
    else:
        normalizer = max(total_weight, 1.0)

    improve_score = round_score(improve_sum / normalizer)
    move_score = round_score(move_sum / normalizer)

    return CompositeScores(
        improve_score=improve_score,
        move_score=move_score,
        decision_index=round_score(improve_score - move_score),
        contributing_categories=enabled_count,
    )


def is_in_neutral_zone(decision_index: float, config: ScoringConfig) -> bool:
    """Both neutral zone bounds are inclusive."""
    return config.neutral_zone_min <= decision_index <= config.neutral_zone_max


def determine_decision(decision_index: float, config: ScoringConfig) -> Decision:
    """Unclear inside the neutral zone, otherwise the sign decides."""
    if is_in_neutral_zone(decision_index, config):
        return Decision.UNCLEAR
    return Decision.IMPROVE if decision_index > 0 else Decision.MOVE


def classify_lean(decision_index: float, config: ScoringConfig) -> LeanStrength:
    """Strongest threshold met by |decision_index| wins; meeting a bound exactly counts."""
    magnitude = abs(decision_index)

    if magnitude >= config.strong_lean_threshold:
        return LeanStrength.STRONG
    if magnitude >= config.moderate_lean_threshold:
        return LeanStrength.MODERATE
    if magnitude >= config.slight_lean_threshold:
        return LeanStrength.SLIGHT
    return LeanStrength.UNCLEAR
