"""Build validated configuration snapshots from configuration store rows.

Rows come straight from the questionnaire tables and are normalized here:
question type aliases, JSON-encoded option lists, camelCase option fields,
legacy single-target rules and decimal columns returned as strings. Any
integrity problem surfaces as ConfigurationIntegrityError before an engine
is ever built.
"""

import json
from typing import Any

from pydantic import ValidationError

from move_improve.core.logging import get_logger
from move_improve.core.schemas_questionnaire import ConfigurationSnapshot, QuestionType

logger = get_logger(__name__)


class ConfigurationIntegrityError(Exception):
    """Raised when a questionnaire configuration is incomplete or inconsistent."""


class NoActiveConfigurationError(Exception):
    """Raised when no questionnaire version can be selected for scoring."""


QUESTION_TYPE_ALIASES = {
    "scale": QuestionType.SCALE,
    "dropdown": QuestionType.DROPDOWN,
    "numeric": QuestionType.NUMERIC,
    "numeric_input": QuestionType.NUMERIC,
    "yes_no": QuestionType.YES_NO,
    "yesno": QuestionType.YES_NO,
    "text": QuestionType.TEXT,
    "text_input": QuestionType.TEXT,
    "multiple_choice": QuestionType.MULTIPLE_CHOICE,
}


def canonical_question_type(raw_type: Any, question_id: Any = None) -> QuestionType:
    """
    Map a stored question type onto a canonical QuestionType.

    Unknown types become TEXT, which never scores.
    """
    key = str(raw_type or "").strip().lower()
    question_type = QUESTION_TYPE_ALIASES.get(key)
    if question_type is None:
        logger.warning(f"Unknown type {raw_type!r} for question {question_id}, scoring as text")
        return QuestionType.TEXT
    return question_type


def _parse_options(raw_options: Any) -> list[dict]:
    if raw_options is None:
        return []
    if isinstance(raw_options, str):
        try:
            raw_options = json.loads(raw_options)
        except json.JSONDecodeError as e:
            raise ConfigurationIntegrityError(f"Question options are not valid JSON: {e}") from e
    if not isinstance(raw_options, list):
        raise ConfigurationIntegrityError("Question options must be a list")

    options = []
    for option in raw_options:
        impact = option.get("score_impact", option.get("scoreImpact"))
        options.append(
            {
                "value": option.get("value"),
                "label": option.get("label") or "",
                "score_impact": impact,
                "is_na": bool(option.get("is_na", option.get("isNA", False))),
            }
        )
    return options


def _category_from_row(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "name": row.get("name") or "",
        "label": row.get("label") or row.get("name") or "",
        "description": row.get("description"),
        "default_weight": row.get("default_weight", 1.0),
        "sort_order": row.get("sort_order") or 0,
        "is_active": row.get("is_active", True),
    }


def _question_from_row(row: dict) -> dict:
    question_type = canonical_question_type(row.get("type"), row.get("id"))
    question = {
        "id": str(row["id"]),
        "category_id": str(row["category_id"]),
        "type": question_type.value,
        "text": row.get("text") or "",
        "allow_na": bool(row.get("allow_na", False)),
        "sort_order": row.get("sort_order") or 0,
        "is_active": row.get("is_active", True),
    }

    if question_type == QuestionType.SCALE:
        question["scale_min"] = row.get("scale_min")
        question["scale_max"] = row.get("scale_max")
        question["scale_labels"] = row.get("scale_labels") or {}
    elif question_type in (QuestionType.DROPDOWN, QuestionType.MULTIPLE_CHOICE):
        question["options"] = _parse_options(row.get("options"))

    return question


def _scoring_from_row(row: dict) -> dict:
    multiplier = row.get("multiplier")
    return {
        "improve_weight": row.get("improve_weight") or 0.0,
        "move_weight": row.get("move_weight") or 0.0,
        "multiplier": 1.0 if multiplier is None else multiplier,
        "reverse_scored": bool(row.get("reverse_scored", False)),
    }


def _rule_from_row(row: dict) -> dict:
    targets = [str(t) for t in (row.get("target_question_ids") or [])]
    legacy_target = row.get("target_question_id")
    if legacy_target and str(legacy_target) not in targets:
        targets.append(str(legacy_target))

    trigger = row.get("trigger_question_id") or row.get("if_question_id")

    return {
        "id": str(row["id"]),
        "trigger_question_id": str(trigger) if trigger is not None else None,
        "operator": row.get("operator"),
        "comparison_value": row.get("value", row.get("comparison_value")),
        "action": row.get("action"),
        "target_question_ids": targets,
        "weight_override": row.get("weight_override"),
        "sort_order": row.get("sort_order") or 0,
        "is_active": row.get("is_active", True),
    }


def _scoring_config_from_row(row: dict) -> dict:
    return {
        "equal_weighting": bool(row.get("equal_weighting", False)),
        "neutral_zone_min": row.get("neutral_zone_min"),
        "neutral_zone_max": row.get("neutral_zone_max"),
        "strong_lean_threshold": row.get("strong_lean_threshold"),
        "moderate_lean_threshold": row.get("moderate_lean_threshold"),
        "slight_lean_threshold": row.get("slight_lean_threshold"),
        "na_handling": row.get("na_handling") or "exclude_from_denominator",
    }


def build_snapshot(
    version_row: dict,
    category_rows: list[dict],
    question_rows: list[dict],
    scoring_rows: list[dict],
    rule_rows: list[dict],
    scoring_config_row: dict | None,
) -> ConfigurationSnapshot:
    """
    Assemble and validate a configuration snapshot.

    Args:
        version_row: questionnaire_versions row
        category_rows: categories rows for the version
        question_rows: questions rows for the version
        scoring_rows: question_scoring rows (one per scorable question)
        rule_rows: conditional_rules rows for the version
        scoring_config_row: scoring_configs row, or None if missing

    Returns:
        Validated ConfigurationSnapshot

    Raises:
        ConfigurationIntegrityError: If the configuration is missing pieces
            or its references do not line up
    """
    version = version_row.get("version")

    if scoring_config_row is None:
        raise ConfigurationIntegrityError(f"No scoring config found for version {version}")

    try:
        questions = [_question_from_row(row) for row in question_rows]
        payload = {
            "version": version,
            "is_active": version_row.get("is_active", False),
            "categories": [_category_from_row(row) for row in category_rows],
            "questions": questions,
            "scoring_by_question": {
                str(row["question_id"]): _scoring_from_row(row) for row in scoring_rows
            },
            "conditional_rules": [_rule_from_row(row) for row in rule_rows],
            "scoring_config": _scoring_config_from_row(scoring_config_row),
        }
        snapshot = ConfigurationSnapshot.model_validate(payload)
    except (KeyError, AttributeError) as e:
        raise ConfigurationIntegrityError(
            f"Malformed configuration row for version {version}: {e!r}"
        ) from e
    except ValidationError as e:
        raise ConfigurationIntegrityError(
            f"Invalid configuration for version {version}: {e}"
        ) from e

    logger.info(
        f"Built snapshot for version {snapshot.version}: "
        f"{len(snapshot.categories)} categories, {len(snapshot.questions)} questions, "
        f"{len(snapshot.scoring_by_question)} scored, {len(snapshot.conditional_rules)} rules"
    )

    return snapshot
