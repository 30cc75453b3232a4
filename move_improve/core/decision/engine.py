"""Decision engine orchestration.

This module scores a response set against a configuration snapshot by:
1. Resolving conditional rules (hide/disable, weight overrides)
2. Aggregating normalized answers per category
3. Combining categories into composite Improve/Move scores
4. Classifying the decision and lean strength

Lookup maps are built once per engine; computations never mutate the
snapshot or the caller's responses, so one engine can serve concurrent
calls.
"""

import logging
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Mapping

from move_improve.core.decision.aggregate import aggregate_categories
from move_improve.core.decision.composite import (
    classify_lean,
    compute_composite,
    determine_decision,
    is_in_neutral_zone,
)
from move_improve.core.decision.normalize import is_na_answer
from move_improve.core.decision.rules import group_rules_by_trigger, resolve_conditional_rules
from move_improve.core.decision.types import (
    DEFAULT_NA_SENTINEL,
    DecisionMetadata,
    EngineOutput,
    ResponseSet,
)
from move_improve.core.logging import get_logger, log_with_context
from move_improve.core.schemas_questionnaire import (
    ConfigurationSnapshot,
    Question,
    ScoringWeights,
)

logger = get_logger(__name__)


class DecisionEngine:
    """Scores response sets against one configuration snapshot."""

    def __init__(self, config: ConfigurationSnapshot, na_sentinel: str = DEFAULT_NA_SENTINEL):
        """
        Build lookup maps for a snapshot.

        Args:
            config: Validated configuration snapshot
            na_sentinel: Answer string meaning NA
        """
        self.config = config
        self.na_sentinel = na_sentinel

        self.questions: Mapping[str, Question] = MappingProxyType(
            {q.id: q for q in config.questions}
        )
        self.scoring: Mapping[str, ScoringWeights] = MappingProxyType(
            dict(config.scoring_by_question)
        )

        grouped: dict[str, list[Question]] = {}
        for question in config.questions:
            if question.is_active:
                grouped.setdefault(question.category_id, []).append(question)
        self.questions_by_category: Mapping[str, tuple[Question, ...]] = MappingProxyType(
            {category_id: tuple(qs) for category_id, qs in grouped.items()}
        )

        self.rules = tuple(r for r in config.conditional_rules if r.is_active)
        self.rules_by_trigger = MappingProxyType(group_rules_by_trigger(self.rules))

    def calculate_scores(self, responses: ResponseSet) -> EngineOutput:
        """
        Score a response set.

        Args:
            responses: Raw answers keyed by question id (None = not answered)

        Returns:
            EngineOutput with composite scores, decision, lean and breakdown
        """
        resolution = resolve_conditional_rules(
            responses, self.rules, rules_by_trigger=self.rules_by_trigger
        )
        resolved = resolution.responses
        scoring_config = self.config.scoring_config

        category_breakdown = aggregate_categories(
            categories=self.config.categories,
            questions_by_category=self.questions_by_category,
            responses=resolved,
            scoring_by_question=self.scoring,
            weight_overrides=resolution.weight_overrides,
            na_handling=scoring_config.na_handling,
            na_sentinel=self.na_sentinel,
        )

        composite = compute_composite(category_breakdown, scoring_config.equal_weighting)
        decision_index = composite.decision_index
        decision = determine_decision(decision_index, scoring_config)
        lean = classify_lean(decision_index, scoring_config)

        metadata = DecisionMetadata(
            total_answered=len(resolved),
            na_count=self._count_na(resolved),
            timestamp=datetime.now(UTC).isoformat(),
        )

        log_with_context(
            logger,
            logging.INFO,
            f"Decision computed: {decision.value} ({lean.value})",
            version=self.config.version,
            decision_index=decision_index,
            categories=composite.contributing_categories,
            answered=metadata.total_answered,
            na=metadata.na_count,
            rule_passes=resolution.iterations,
        )

        return EngineOutput(
            improve_score=composite.improve_score,
            move_score=composite.move_score,
            decision_index=decision_index,
            decision=decision,
            lean=lean,
            in_neutral_zone=is_in_neutral_zone(decision_index, scoring_config),
            category_breakdown=category_breakdown,
            metadata=metadata,
        )

    def _count_na(self, responses: ResponseSet) -> int:
        count = 0
        for question_id, raw in responses.items():
            question = self.questions.get(question_id)
            if question is not None and is_na_answer(
                question, raw, self.na_sentinel
            ):
                count += 1
        return count


def compute_decision(
    config: ConfigurationSnapshot,
    responses: ResponseSet,
    na_sentinel: str = DEFAULT_NA_SENTINEL,
) -> EngineOutput:
    """
    Score a response set against a snapshot in one call.

    Args:
        config: Validated configuration snapshot
        responses: Raw answers keyed by question id
        na_sentinel: Answer string meaning NA

    Returns:
        EngineOutput
    """
    return DecisionEngine(config, na_sentinel=na_sentinel).calculate_scores(responses)
