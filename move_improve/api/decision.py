"""Decision API endpoints.

Scores submitted answers against the active (or a requested) questionnaire
version and lists the versions available to score against.
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from move_improve.core.config import get_settings
from move_improve.core.decision import EngineOutput, compute_decision
from move_improve.core.logging import get_logger
from move_improve.core.snapshot_builder import (
    ConfigurationIntegrityError,
    NoActiveConfigurationError,
)
from move_improve.db.questionnaire_config import (
    get_latest_version_number,
    list_versions,
    load_active_snapshot,
    load_snapshot_by_version,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/decision", tags=["decision"])


# =========================
# Request/Response Models
# =========================


class EvaluateRequest(BaseModel):
    """Answers to score."""

    answers: dict[str, Any] = Field(
        default_factory=dict, description="Raw answers keyed by question id"
    )
    version: int | None = Field(
        None, description="Questionnaire version to score against (default: active)"
    )


class VersionsResponse(BaseModel):
    """Available questionnaire versions."""

    versions: list[dict]
    latest_version: int
    total: int


def _stringify_answer(value: Any) -> str | None:
    """Answers arrive as JSON scalars; the engine reads strings."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    text = value if isinstance(value, str) else str(value)
    return text if text != "" else None


# =========================
# Endpoints
# =========================


@router.post("/evaluate", response_model=EngineOutput)
def evaluate_answers(request: EvaluateRequest) -> EngineOutput:
    """
    Score answers and return the decision.

    Args:
        request: EvaluateRequest with answers and optional version

    Returns:
        EngineOutput

    Raises:
        HTTPException 404: If there is no active configuration or the version is missing
        HTTPException 500: If the configuration is inconsistent or loading fails
    """
    try:
        if request.version is None:
            snapshot = load_active_snapshot()
        else:
            snapshot = load_snapshot_by_version(request.version)

        responses = {
            question_id: _stringify_answer(value)
            for question_id, value in request.answers.items()
        }

        return compute_decision(snapshot, responses, na_sentinel=get_settings().NA_SENTINEL)

    except HTTPException:
        raise
    except NoActiveConfigurationError as e:
        detail = "No active questionnaire configuration" if request.version is None else str(e)
        raise HTTPException(status_code=404, detail=detail) from e
    except ConfigurationIntegrityError as e:
        logger.error(f"Configuration integrity error: {e}")
        raise HTTPException(status_code=500, detail=str(e)) from e
    except Exception as e:
        logger.exception("Failed to evaluate answers")
        raise HTTPException(status_code=500, detail="Failed to evaluate answers") from e


@router.get("/versions", response_model=VersionsResponse)
def get_versions(
    limit: int | None = Query(None, ge=1, le=100, description="Maximum versions to return"),
) -> VersionsResponse:
    """
    List questionnaire versions, newest first.

    Args:
        limit: Page size (defaults to VERSIONS_PAGE_LIMIT)

    Returns:
        VersionsResponse with versions and the latest version number
    """
    try:
        page_limit = limit or get_settings().VERSIONS_PAGE_LIMIT
        versions = list_versions(limit=page_limit)

        return VersionsResponse(
            versions=versions,
            latest_version=get_latest_version_number(),
            total=len(versions),
        )

    except Exception as e:
        logger.exception("Failed to list questionnaire versions")
        raise HTTPException(status_code=500, detail="Failed to list versions") from e
