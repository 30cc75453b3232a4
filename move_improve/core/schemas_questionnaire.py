"""Pydantic models for the versioned questionnaire configuration.

A ConfigurationSnapshot is the read-only bundle the decision engine scores
against: categories, questions (one model per question type), per-question
scoring weights, conditional rules and the global scoring config for one
questionnaire version.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# =============================================================================
# Enums
# =============================================================================


class QuestionType(str, Enum):
    """Canonical question types."""

    SCALE = "scale"
    DROPDOWN = "dropdown"
    NUMERIC = "numeric"
    YES_NO = "yes_no"
    TEXT = "text"
    MULTIPLE_CHOICE = "multiple_choice"


class RuleOperator(str, Enum):
    """Comparison applied between a trigger answer and a rule's value."""

    EQ = "=="
    NE = "!="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="
    CONTAINS = "contains"
    IN = "in"


class RuleAction(str, Enum):
    """What a triggered rule does to its target questions."""

    HIDE = "hide"
    DISABLE = "disable"
    ZERO_WEIGHT = "zero_weight"
    CHANGE_WEIGHT = "change_weight"


class NAHandling(str, Enum):
    """How NA answers affect category denominators."""

    EXCLUDE_FROM_DENOMINATOR = "exclude_from_denominator"
    TREAT_AS_NEUTRAL = "treat_as_neutral"


# =============================================================================
# Categories
# =============================================================================


class Category(BaseModel):
    """A group of questions scored together."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Category identifier")
    name: str = Field(..., description="Machine name (e.g., 'financial_analysis')")
    label: str = Field(..., description="Display label")
    description: str | None = Field(None, description="Optional description")
    default_weight: float = Field(
        default=1.0, gt=0, description="Importance multiplier applied at composite scoring"
    )
    sort_order: int = Field(default=0, description="Display order")
    is_active: bool = Field(default=True, description="Inactive categories are not scored")


# =============================================================================
# Questions (one model per type)
# =============================================================================


class ScoreImpact(BaseModel):
    """Per-option score impact on both decision axes."""

    model_config = ConfigDict(frozen=True)

    improve: float
    move: float


class QuestionOption(BaseModel):
    """A selectable option of a dropdown or multiple choice question."""

    model_config = ConfigDict(frozen=True)

    value: str
    label: str = ""
    score_impact: Optional[ScoreImpact] = None
    is_na: bool = Field(default=False, description="Selecting this option means NA")

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value_to_str(cls, v: Any) -> str:
        """Option values are compared against raw string answers."""
        return v if isinstance(v, str) else str(v)


class _QuestionBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Question identifier")
    category_id: str = Field(..., description="Owning category")
    text: str = Field(default="", description="Question text")
    allow_na: bool = Field(default=False, description="Whether NA is an accepted answer")
    sort_order: int = Field(default=0, description="Display order")
    is_active: bool = Field(default=True, description="Inactive questions are not scored")


class _OptionQuestion(_QuestionBase):
    options: tuple[QuestionOption, ...] = Field(default=(), description="Selectable options")

    def find_option(self, value: str) -> QuestionOption | None:
        """Return the option whose value matches, if any."""
        for option in self.options:
            if option.value == value:
                return option
        return None


class ScaleQuestion(_QuestionBase):
    type: Literal["scale"] = "scale"
    scale_min: float = Field(..., description="Lowest scale value")
    scale_max: float = Field(..., description="Highest scale value")
    scale_labels: dict[str, str] = Field(default_factory=dict, description="Labels by value")


class DropdownQuestion(_OptionQuestion):
    type: Literal["dropdown"] = "dropdown"


class NumericQuestion(_QuestionBase):
    type: Literal["numeric"] = "numeric"


class YesNoQuestion(_QuestionBase):
    type: Literal["yes_no"] = "yes_no"


class TextQuestion(_QuestionBase):
    type: Literal["text"] = "text"


class MultipleChoiceQuestion(_OptionQuestion):
    type: Literal["multiple_choice"] = "multiple_choice"


Question = Annotated[
    Union[
        ScaleQuestion,
        DropdownQuestion,
        NumericQuestion,
        YesNoQuestion,
        TextQuestion,
        MultipleChoiceQuestion,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Scoring
# =============================================================================


class ScoringWeights(BaseModel):
    """How one question's normalized score feeds both axes."""

    model_config = ConfigDict(frozen=True)

    improve_weight: float = Field(default=0.0, ge=0, description="Weight on the Improve axis")
    move_weight: float = Field(default=0.0, ge=0, description="Weight on the Move axis")
    multiplier: float = Field(default=1.0, description="Extra multiplier on both axes")
    reverse_scored: bool = Field(default=False, description="Negate the normalized score")


class ConditionalRule(BaseModel):
    """A trigger/action pair evaluated against a trigger question's answer."""

    model_config = ConfigDict(frozen=True)

    id: str
    trigger_question_id: str = Field(..., description="Question whose answer is tested")
    operator: RuleOperator
    comparison_value: str = Field(..., description="Right-hand side of the comparison")
    action: RuleAction
    target_question_ids: tuple[str, ...] = Field(default=(), description="Affected questions")
    weight_override: float | None = Field(
        None, description="Replacement multiplier for change_weight rules"
    )
    sort_order: int = 0
    is_active: bool = True

    @field_validator("comparison_value", mode="before")
    @classmethod
    def coerce_comparison_value(cls, v: Any) -> str:
        """Stored values may be numeric; comparisons always start from a string."""
        if v is None:
            return ""
        if isinstance(v, bool):
            return "true" if v else "false"
        return v if isinstance(v, str) else str(v)


class ScoringConfig(BaseModel):
    """Global thresholds and policies for one questionnaire version."""

    model_config = ConfigDict(frozen=True)

    equal_weighting: bool = Field(
        default=False, description="Average categories equally instead of by weight"
    )
    neutral_zone_min: float
    neutral_zone_max: float
    strong_lean_threshold: float
    moderate_lean_threshold: float
    slight_lean_threshold: float = Field(..., ge=0)
    na_handling: NAHandling = NAHandling.EXCLUDE_FROM_DENOMINATOR

    @model_validator(mode="after")
    def check_threshold_order(self) -> "ScoringConfig":
        if self.neutral_zone_min > self.neutral_zone_max:
            raise ValueError(
                f"neutral_zone_min ({self.neutral_zone_min}) exceeds "
                f"neutral_zone_max ({self.neutral_zone_max})"
            )
        if not (
            self.strong_lean_threshold
            >= self.moderate_lean_threshold
            >= self.slight_lean_threshold
        ):
            raise ValueError("Lean thresholds must satisfy strong >= moderate >= slight")
        return self


# =============================================================================
# Snapshot
# =============================================================================


class ConfigurationSnapshot(BaseModel):
    """Immutable configuration for one questionnaire version.

    Referential integrity is checked once here; the engine trusts it.
    """

    model_config = ConfigDict(frozen=True)

    version: int = Field(..., description="Questionnaire version number")
    is_active: bool = Field(default=True, description="Whether this is the active version")
    categories: tuple[Category, ...] = Field(default=())
    questions: tuple[Question, ...] = Field(default=())
    scoring_by_question: dict[str, ScoringWeights] = Field(
        default_factory=dict, description="Scoring weights keyed by question id"
    )
    conditional_rules: tuple[ConditionalRule, ...] = Field(default=())
    scoring_config: ScoringConfig

    @model_validator(mode="after")
    def check_references(self) -> "ConfigurationSnapshot":
        category_ids = [c.id for c in self.categories]
        if len(category_ids) != len(set(category_ids)):
            raise ValueError("Duplicate category ids in snapshot")

        question_ids = [q.id for q in self.questions]
        if len(question_ids) != len(set(question_ids)):
            raise ValueError("Duplicate question ids in snapshot")

        active_categories = {c.id for c in self.categories if c.is_active}
        for question in self.questions:
            if question.category_id not in active_categories:
                raise ValueError(
                    f"Question {question.id} references unknown or inactive "
                    f"category {question.category_id}"
                )

        known_questions = set(question_ids)
        for question_id in self.scoring_by_question:
            if question_id not in known_questions:
                raise ValueError(f"Scoring entry references unknown question {question_id}")

        return self
