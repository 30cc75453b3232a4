"""Pydantic models and constants for the decision engine output."""

from enum import Enum
from typing import Mapping, Optional

from pydantic import BaseModel, Field


# Raw answers keyed by question id. None means "no answer provided".
ResponseSet = Mapping[str, Optional[str]]


class Decision(str, Enum):
    """Final recommendation."""

    IMPROVE = "Improve"
    MOVE = "Move"
    UNCLEAR = "Unclear"


class LeanStrength(str, Enum):
    """Confidence label derived from |decision_index|."""

    STRONG = "Strong"
    MODERATE = "Moderate"
    SLIGHT = "Slight"
    UNCLEAR = "Unclear"


class CategoryScore(BaseModel):
    """Aggregate scores for one category."""

    improve: float = Field(..., description="Mean weighted Improve contribution")
    move: float = Field(..., description="Mean weighted Move contribution")
    count: int = Field(..., ge=0, description="Questions counted in the denominator")
    weight: float = Field(..., description="Configured category weight (applied downstream)")


class DecisionMetadata(BaseModel):
    """Bookkeeping about one computation."""

    total_answered: int = Field(..., ge=0, description="Answers left after rule resolution")
    na_count: int = Field(..., ge=0, description="NA answers among them")
    timestamp: str = Field(..., description="ISO-8601 computation time (UTC)")


class EngineOutput(BaseModel):
    """Complete result of scoring one response set."""

    improve_score: float
    move_score: float
    decision_index: float = Field(..., description="improve_score - move_score")
    decision: Decision
    lean: LeanStrength
    in_neutral_zone: bool
    category_breakdown: dict[str, CategoryScore] = Field(
        default_factory=dict, description="Scores keyed by category id"
    )
    metadata: DecisionMetadata


# =============================================================================
# Engine constants
# =============================================================================

DEFAULT_NA_SENTINEL = "NA"

# Rule propagation stops after this many passes even if still changing
MAX_RULE_ITERATIONS = 10

# Decimal places kept on composite scores
SCORE_PRECISION = 4
