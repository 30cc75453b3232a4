"""Move or Improve decision engine.

Turns a questionnaire configuration snapshot plus raw answers into
composite Improve/Move scores, a decision and a lean strength:
- Conditional rules prune or reweight dependent questions
- Answers normalize to [-1, 1] by question type
- Categories average their weighted answers
- Composite scores combine categories by weight (or equally)

Usage:
    from move_improve.core.decision import compute_decision

    output = compute_decision(snapshot, {"q1": "8", "q2": "no"})
    print(f"{output.decision.value} ({output.lean.value})")
"""

from move_improve.core.decision.engine import DecisionEngine, compute_decision
from move_improve.core.decision.types import (
    DEFAULT_NA_SENTINEL,
    MAX_RULE_ITERATIONS,
    CategoryScore,
    Decision,
    DecisionMetadata,
    EngineOutput,
    LeanStrength,
    ResponseSet,
)

__all__ = [
    "compute_decision",
    "DecisionEngine",
    "EngineOutput",
    "CategoryScore",
    "DecisionMetadata",
    "Decision",
    "LeanStrength",
    "ResponseSet",
    "DEFAULT_NA_SENTINEL",
    "MAX_RULE_ITERATIONS",
]
