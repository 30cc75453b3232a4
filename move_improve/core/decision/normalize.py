"""Per-question-type normalization of raw answers into [-1, 1].

Scale answers map linearly onto [-1, 1], numeric answers are divided by
100, yes/no is +1/-1 and dropdown options use the mean of their declared
score impacts. Text answers never score. Anything that cannot be read for
the question's type scores 0.
"""

import json
import math

from move_improve.core.decision.types import DEFAULT_NA_SENTINEL
from move_improve.core.logging import get_logger
from move_improve.core.schemas_questionnaire import (
    DropdownQuestion,
    MultipleChoiceQuestion,
    NumericQuestion,
    Question,
    QuestionOption,
    ScaleQuestion,
    TextQuestion,
    YesNoQuestion,
)

logger = get_logger(__name__)

# Numeric answers are read as percentages
NUMERIC_SCALE = 100.0


def clamp(value: float, low: float = -1.0, high: float = 1.0) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def parse_number(raw: str | None) -> float | None:
    """Parse a finite float from a raw answer, or None."""
    if raw is None:
        return None
    try:
        number = float(raw.strip())
    except (AttributeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def is_na_answer(
    question: Question, raw: str | None, na_sentinel: str = DEFAULT_NA_SENTINEL
) -> bool:
    """
    Check if an answer counts as NA for this question.

    Only NA-eligible questions can be answered NA. A missing answer, the
    sentinel, or a dropdown option flagged as NA all qualify.
    """
    if not question.allow_na:
        return False
    if raw is None or raw == na_sentinel:
        return True
    if isinstance(question, DropdownQuestion):
        option = question.find_option(raw)
        return option is not None and option.is_na
    return False


def normalize_answer(question: Question, raw: str) -> float:
    """
    Normalize a raw answer into a signed score.

    Args:
        question: The question being answered
        raw: Raw answer string

    Returns:
        Score in [-1, 1]; 0 when the answer cannot be interpreted
    """
    if isinstance(question, ScaleQuestion):
        return _normalize_scale(question, raw)
    if isinstance(question, NumericQuestion):
        return _normalize_numeric(question, raw)
    if isinstance(question, YesNoQuestion):
        return 1.0 if raw == "yes" else -1.0
    if isinstance(question, DropdownQuestion):
        return _normalize_dropdown(question, raw)
    if isinstance(question, MultipleChoiceQuestion):
        return _normalize_multiple_choice(question, raw)
    if isinstance(question, TextQuestion):
        return 0.0

    logger.debug(f"No normalizer for question {question.id} of type {question.type}")
    return 0.0


def _normalize_scale(question: ScaleQuestion, raw: str) -> float:
    value = parse_number(raw)
    if value is None:
        logger.debug(f"Non-numeric answer {raw!r} for scale question {question.id}")
        return 0.0

    span = question.scale_max - question.scale_min
    if span == 0:
        logger.debug(f"Scale question {question.id} has an empty range")
        return 0.0

    return clamp(2 * (value - question.scale_min) / span - 1)


def _normalize_numeric(question: NumericQuestion, raw: str) -> float:
    value = parse_number(raw)
    if value is None:
        logger.debug(f"Non-numeric answer {raw!r} for numeric question {question.id}")
        return 0.0
    return clamp(value / NUMERIC_SCALE)


def _impact_average(option: QuestionOption) -> float | None:
    if option.score_impact is None:
        return None
    return clamp((option.score_impact.improve + option.score_impact.move) / 2)


def _normalize_dropdown(question: DropdownQuestion, raw: str) -> float:
    option = question.find_option(raw)
    if option is None:
        logger.debug(f"Unknown option {raw!r} for dropdown question {question.id}")
        return 0.0
    impact = _impact_average(option)
    return impact if impact is not None else 0.0


def _split_selection(raw: str) -> list[str]:
    """Read a multiple choice answer as a JSON array or comma-separated values."""
    stripped = raw.strip()
    if stripped.startswith("["):
        try:
            values = json.loads(stripped)
        except json.JSONDecodeError:
            return []
        if isinstance(values, list):
            return [v if isinstance(v, str) else str(v) for v in values]
        return []
    return [part.strip() for part in stripped.split(",") if part.strip()]


def _normalize_multiple_choice(question: MultipleChoiceQuestion, raw: str) -> float:
    impacts = []
    for value in _split_selection(raw):
        option = question.find_option(value)
        if option is None:
            continue
        impact = _impact_average(option)
        if impact is not None:
            impacts.append(impact)

    if not impacts:
        return 0.0
    return clamp(sum(impacts) / len(impacts))
