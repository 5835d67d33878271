"""Moderation router -- text/story/prompt screening, filter admin, and stats.

Prefix: ``/api/moderation``
"""

from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from whatif.auth.models import User
from whatif.config import Settings
from whatif.errors import FilterValidationError
from whatif.moderation.filters import FilterConfiguration
from whatif.moderation.models import ModerationResult, StoryBranch, StoryNode, StoryPayload
from whatif.moderation.moderator import ContentModerator
from whatif.moderation.stats import ModerationStats
from whatif.security.audit_log import FILTERS_RESOURCE, AuditLogger
from web.backend.app.dependencies import get_audit_logger, get_moderator, get_settings, get_stats
from web.backend.app.middleware.auth import get_admin_user
from web.backend.app.models.api import (
    AuditEntryResponse,
    FilterConfigurationResponse,
    FiltersResponse,
    ModerateStoryRequest,
    ModerateTextRequest,
    ModeratePromptRequest,
    ModerationResponse,
    ModerationResultResponse,
    StatsResponse,
    StatsSnapshotResponse,
    UpdateFiltersRequest,
    UpdateFiltersResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/moderation", tags=["moderation"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _result_response(result: ModerationResult) -> ModerationResponse:
    return ModerationResponse(result=ModerationResultResponse(**result.to_dict()))


def _filters_response(filters: FilterConfiguration) -> FilterConfigurationResponse:
    return FilterConfigurationResponse(**filters.to_dict())


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# ---------------------------------------------------------------------------
# Screening endpoints (public)
# ---------------------------------------------------------------------------


@router.post(
    "/moderate/text",
    response_model=ModerationResponse,
    summary="Moderate a piece of text",
)
async def moderate_text(
    body: ModerateTextRequest,
    moderator: ContentModerator = Depends(get_moderator),
    stats: ModerationStats = Depends(get_stats),
    settings: Settings = Depends(get_settings),
):
    """Scan text of the given content type and return the verdict."""
    if not body.content:
        raise _bad_request("Content is required and must be a string")
    if len(body.content) > settings.max_content_length:
        raise _bad_request(
            f"Content too long - maximum {settings.max_content_length:,} characters"
        )

    result = moderator.moderate_text(body.content, body.content_type)
    stats.record(result)
    logger.info(
        "Text content moderated: type=%s length=%d approved=%s flags=%d",
        body.content_type, len(body.content), result.is_approved, len(result.flags),
    )
    return _result_response(result)


@router.post(
    "/moderate/story",
    response_model=ModerationResponse,
    summary="Moderate a whole story",
)
async def moderate_story(
    body: ModerateStoryRequest,
    moderator: ContentModerator = Depends(get_moderator),
    stats: ModerationStats = Depends(get_stats),
):
    """Scan a story's title, description, nodes and branch labels together."""
    if not body.title:
        raise _bad_request("Story title is required")
    if body.nodes is None:
        raise _bad_request("Story nodes are required")

    story = StoryPayload(
        title=body.title,
        description=body.description,
        nodes=[StoryNode(content=n.content, node_type=n.node_type) for n in body.nodes],
        branches=[StoryBranch(label=b.label, branch_type=b.branch_type) for b in body.branches],
    )
    result = moderator.moderate_story(story)
    stats.record(result)
    logger.info(
        "Story content moderated: title=%r nodes=%d branches=%d approved=%s flags=%d",
        body.title[:50], len(story.nodes), len(story.branches), result.is_approved, len(result.flags),
    )
    return _result_response(result)


@router.post(
    "/moderate/prompt",
    response_model=ModerationResponse,
    summary="Moderate an AI 'what if' prompt",
)
async def moderate_prompt(
    body: ModeratePromptRequest,
    moderator: ContentModerator = Depends(get_moderator),
    stats: ModerationStats = Depends(get_stats),
):
    """Scan a prompt and add prompt quality and safety findings."""
    if not body.prompt_text:
        raise _bad_request("Prompt text is required")

    result = moderator.moderate_prompt(body.prompt_text, body.context)
    stats.record(result)
    logger.info(
        "Prompt moderated: length=%d approved=%s flags=%d",
        len(body.prompt_text), result.is_approved, len(result.flags),
    )
    return _result_response(result)


# ---------------------------------------------------------------------------
# Filter configuration
# ---------------------------------------------------------------------------


@router.get(
    "/filters",
    response_model=FiltersResponse,
    summary="Get the current moderation filters",
)
async def get_filters(moderator: ContentModerator = Depends(get_moderator)):
    return FiltersResponse(filters=_filters_response(moderator.get_filters()))


@router.put(
    "/filters",
    response_model=UpdateFiltersResponse,
    summary="Update moderation filters (admin only)",
)
async def update_filters(
    body: UpdateFiltersRequest,
    request: Request,
    user: User = Depends(get_admin_user),
    moderator: ContentModerator = Depends(get_moderator),
    audit: AuditLogger = Depends(get_audit_logger),
):
    """Merge the given keys into the live filter configuration."""
    if not body.filters:
        raise _bad_request("Filters object is required")

    ip_address = request.client.host if request.client else ""
    try:
        updated = moderator.update_filters(body.filters)
    except FilterValidationError as e:
        audit.log_filter_update(
            user.username, body.filters, ip_address=ip_address, success=False, error=str(e)
        )
        raise _bad_request(str(e)) from e

    audit.log_filter_update(user.username, body.filters, ip_address=ip_address)
    logger.info("Moderation filters updated by %s: %s", user.username, sorted(body.filters))
    return UpdateFiltersResponse(
        message="Moderation filters updated successfully",
        filters=_filters_response(updated),
    )


@router.get(
    "/filters/history",
    response_model=list[AuditEntryResponse],
    summary="Audit trail of filter changes (admin only)",
)
async def filter_history(
    limit: int = Query(50, ge=1, le=1000),
    user: User = Depends(get_admin_user),
    audit: AuditLogger = Depends(get_audit_logger),
):
    events = audit.get_events(resource_type=FILTERS_RESOURCE, limit=limit)
    return [AuditEntryResponse(**asdict(e)) for e in events]


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Moderation statistics since startup (admin only)",
)
async def get_moderation_stats(
    user: User = Depends(get_admin_user),
    stats: ModerationStats = Depends(get_stats),
):
    return StatsResponse(stats=StatsSnapshotResponse(**asdict(stats.snapshot())))
