"""Pydantic models for API request/response serialization.

These models mirror the whatif.moderation dataclasses and provide JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Moderation requests
# ---------------------------------------------------------------------------


class ModerateTextRequest(BaseModel):
    """Body of ``POST /moderate/text``."""

    content: str = ""
    content_type: str = Field("story", alias="contentType")

    model_config = {"populate_by_name": True}


class StoryNodeRequest(BaseModel):
    """Mirrors whatif.moderation.models.StoryNode."""

    content: str = ""
    node_type: str = Field("story", alias="nodeType")

    model_config = {"populate_by_name": True}


class StoryBranchRequest(BaseModel):
    """Mirrors whatif.moderation.models.StoryBranch."""

    label: str = ""
    branch_type: str = Field("choice", alias="branchType")

    model_config = {"populate_by_name": True}


class ModerateStoryRequest(BaseModel):
    """Body of ``POST /moderate/story``."""

    title: str = ""
    description: str = ""
    nodes: Optional[list[StoryNodeRequest]] = None
    branches: list[StoryBranchRequest] = Field(default_factory=list)


class ModeratePromptRequest(BaseModel):
    """Body of ``POST /moderate/prompt``."""

    prompt_text: str = Field("", alias="promptText")
    context: Optional[dict[str, Any]] = None

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Moderation responses
# ---------------------------------------------------------------------------


class CategoryResponse(BaseModel):
    """Mirrors whatif.moderation.models.ModerationCategory."""

    name: str
    confidence: float
    severity: str


class FlagResponse(BaseModel):
    """Mirrors whatif.moderation.models.ModerationFlag."""

    type: str
    confidence: float
    description: str
    suggestion: Optional[str] = None


class ModerationResultResponse(BaseModel):
    """Mirrors whatif.moderation.models.ModerationResult."""

    is_approved: bool
    confidence: float
    categories: list[CategoryResponse] = Field(default_factory=list)
    flags: list[FlagResponse] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    requires_review: bool = False
    status: str = "completed"
    error: str = ""


class ModerationResponse(BaseModel):
    success: bool = True
    result: ModerationResultResponse


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


class FilterConfigurationResponse(BaseModel):
    """Mirrors whatif.moderation.filters.FilterConfiguration."""

    enable_violence_filter: bool
    enable_adult_content_filter: bool
    enable_hate_speech_filter: bool
    enable_spam_filter: bool
    enable_copyright_filter: bool
    strict_mode: bool
    custom_blocked_words: list[str] = Field(default_factory=list)
    custom_blocked_phrases: list[str] = Field(default_factory=list)
    allowed_content_types: list[str] = Field(default_factory=list)
    age_restriction: str = "all"


class FiltersResponse(BaseModel):
    success: bool = True
    filters: FilterConfigurationResponse


class UpdateFiltersRequest(BaseModel):
    """Partial filter configuration; only the given keys change."""

    filters: dict[str, Any] = Field(default_factory=dict)


class UpdateFiltersResponse(BaseModel):
    success: bool = True
    message: str = ""
    filters: FilterConfigurationResponse


# ---------------------------------------------------------------------------
# Stats & audit
# ---------------------------------------------------------------------------


class StatsSnapshotResponse(BaseModel):
    """Mirrors whatif.moderation.stats.StatsSnapshot."""

    total_moderated: int = 0
    approved: int = 0
    rejected: int = 0
    pending_review: int = 0
    degraded: int = 0
    flagged_content: int = 0
    categories: dict[str, int] = Field(default_factory=dict)
    average_confidence: float = 0.0
    last_updated: str = ""


class StatsResponse(BaseModel):
    success: bool = True
    stats: StatsSnapshotResponse


class AuditEntryResponse(BaseModel):
    """Mirrors whatif.security.audit_log.AuditEntry."""

    id: str
    timestamp: str
    actor: str
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = Field(default_factory=dict)
    ip_address: str = ""
    success: bool = True
