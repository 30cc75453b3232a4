"""Configuration store reads for questionnaire versions."""

import logging

from move_improve.core.logging import get_logger, log_with_context
from move_improve.core.schemas_questionnaire import ConfigurationSnapshot
from move_improve.core.snapshot_builder import NoActiveConfigurationError, build_snapshot
from move_improve.db.supabase_client import get_supabase

logger = get_logger(__name__)

VERSION_SUMMARY_COLUMNS = "id,version,is_active,created_at,created_by,description"


def get_active_version() -> dict | None:
    """
    Get the active questionnaire version row.

    Returns:
        Version dict or None if no version is active
    """
    supabase = get_supabase()

    response = (
        supabase.table("questionnaire_versions")
        .select("*")
        .eq("is_active", True)
        .limit(1)
        .execute()
    )

    return response.data[0] if response.data else None


def get_version_by_number(version: int) -> dict | None:
    """
    Get a questionnaire version row by its version number.

    Args:
        version: Version number

    Returns:
        Version dict or None if not found
    """
    supabase = get_supabase()

    response = (
        supabase.table("questionnaire_versions")
        .select("*")
        .eq("version", version)
        .limit(1)
        .execute()
    )

    return response.data[0] if response.data else None


def get_latest_version_number() -> int:
    """
    Get the highest version number, or 0 when no versions exist.
    """
    supabase = get_supabase()

    response = (
        supabase.table("questionnaire_versions")
        .select("version")
        .order("version", desc=True)
        .limit(1)
        .execute()
    )

    return response.data[0]["version"] if response.data else 0


def list_versions(limit: int = 20) -> list[dict]:
    """
    List questionnaire versions, newest first.

    Args:
        limit: Maximum versions to return

    Returns:
        List of version summary dicts
    """
    supabase = get_supabase()

    response = (
        supabase.table("questionnaire_versions")
        .select(VERSION_SUMMARY_COLUMNS)
        .order("version", desc=True)
        .limit(limit)
        .execute()
    )

    return response.data or []


def _list_active_rows(table: str, version_id: str) -> list[dict]:
    supabase = get_supabase()

    response = (
        supabase.table(table)
        .select("*")
        .eq("version_id", version_id)
        .eq("is_active", True)
        .order("sort_order", desc=False)
        .execute()
    )

    return response.data or []


def _list_scoring_rows(question_ids: list[str]) -> list[dict]:
    if not question_ids:
        return []

    supabase = get_supabase()

    response = (
        supabase.table("question_scoring")
        .select("*")
        .in_("question_id", question_ids)
        .execute()
    )

    return response.data or []


def _get_scoring_config_row(version_id: str) -> dict | None:
    supabase = get_supabase()

    response = (
        supabase.table("scoring_configs")
        .select("*")
        .eq("version_id", version_id)
        .limit(1)
        .execute()
    )

    return response.data[0] if response.data else None


def load_snapshot_for_version_row(version_row: dict) -> ConfigurationSnapshot:
    """
    Load every configuration table for a version and build its snapshot.

    Only active categories, questions and rules are included, in sort order.

    Args:
        version_row: questionnaire_versions row

    Returns:
        Validated ConfigurationSnapshot

    Raises:
        ConfigurationIntegrityError: If the configuration is incomplete
    """
    version_id = str(version_row["id"])

    categories = _list_active_rows("categories", version_id)
    questions = _list_active_rows("questions", version_id)
    rules = _list_active_rows("conditional_rules", version_id)
    scoring = _list_scoring_rows([str(q["id"]) for q in questions])
    scoring_config = _get_scoring_config_row(version_id)

    log_with_context(
        logger,
        logging.DEBUG,
        "Loaded configuration rows",
        version=version_row.get("version"),
        version_id=version_id,
        categories=len(categories),
        questions=len(questions),
        rules=len(rules),
    )

    return build_snapshot(
        version_row=version_row,
        category_rows=categories,
        question_rows=questions,
        scoring_rows=scoring,
        rule_rows=rules,
        scoring_config_row=scoring_config,
    )


def load_active_snapshot() -> ConfigurationSnapshot:
    """
    Load the snapshot for the active questionnaire version.

    Raises:
        NoActiveConfigurationError: If no version is active
        ConfigurationIntegrityError: If the active configuration is incomplete
    """
    version_row = get_active_version()
    if not version_row:
        raise NoActiveConfigurationError("No active questionnaire version found")
    return load_snapshot_for_version_row(version_row)


def load_snapshot_by_version(version: int) -> ConfigurationSnapshot:
    """
    Load the snapshot for a specific version number.

    Raises:
        NoActiveConfigurationError: If the version does not exist
        ConfigurationIntegrityError: If its configuration is incomplete
    """
    version_row = get_version_by_number(version)
    if not version_row:
        raise NoActiveConfigurationError(f"Version {version} not found")
    return load_snapshot_for_version_row(version_row)
