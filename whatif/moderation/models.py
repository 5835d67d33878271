"""Data models for the content moderation system."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class Severity(str, Enum):
    """How serious a detected category is."""

    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class FlagType(str, Enum):
    """Kinds of reported policy violations."""

    inappropriate = "inappropriate"
    violence = "violence"
    hate_speech = "hate_speech"
    adult_content = "adult_content"
    spam = "spam"
    copyright = "copyright"


class ModerationStatus(str, Enum):
    """Whether the pipeline ran to completion."""

    completed = "completed"
    degraded = "degraded"  # scanning failed, result defaulted to approve


@dataclass
class ModerationCategory:
    """A thematic signal found in the text, reported or not."""

    name: str
    confidence: float
    severity: Severity

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "confidence": self.confidence,
            "severity": self.severity.value,
        }


@dataclass
class ModerationFlag:
    """A reported policy violation."""

    type: FlagType
    confidence: float
    description: str
    suggestion: Optional[str] = None

    def __post_init__(self) -> None:
        self.confidence = min(1.0, max(0.0, self.confidence))

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type.value,
            "confidence": self.confidence,
            "description": self.description,
        }
        if self.suggestion is not None:
            data["suggestion"] = self.suggestion
        return data


@dataclass
class ModerationResult:
    """Verdict for a single moderation call."""

    is_approved: bool = True
    confidence: float = 1.0
    categories: list[ModerationCategory] = field(default_factory=list)
    flags: list[ModerationFlag] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    requires_review: bool = False
    status: ModerationStatus = ModerationStatus.completed
    error: str = ""

    @property
    def degraded(self) -> bool:
        """True when moderation errored and the result is a fail-open default."""
        return self.status == ModerationStatus.degraded

    @property
    def blocked(self) -> bool:
        return not self.is_approved

    def flag_types(self) -> list[FlagType]:
        return [f.type for f in self.flags]

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_approved": self.is_approved,
            "confidence": self.confidence,
            "categories": [c.to_dict() for c in self.categories],
            "flags": [f.to_dict() for f in self.flags],
            "suggestions": list(self.suggestions),
            "requires_review": self.requires_review,
            "status": self.status.value,
            "error": self.error,
        }


@dataclass
class StoryNode:
    """A node of a branching story as submitted for moderation."""

    content: str
    node_type: str = "story"


@dataclass
class StoryBranch:
    """A labelled choice leading from one node to another."""

    label: str
    branch_type: str = "choice"


@dataclass
class StoryPayload:
    """Everything in a story that gets scanned."""

    title: str
    description: str = ""
    nodes: list[StoryNode] = field(default_factory=list)
    branches: list[StoryBranch] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StoryPayload:
        """Build from a plain mapping such as a parsed YAML/JSON story file."""
        nodes = [
            n if isinstance(n, StoryNode) else StoryNode(
                content=n["content"], node_type=n.get("node_type", "story")
            )
            for n in data.get("nodes") or []
        ]
        branches = [
            b if isinstance(b, StoryBranch) else StoryBranch(
                label=b["label"], branch_type=b.get("branch_type", "choice")
            )
            for b in data.get("branches") or []
        ]
        return cls(
            title=data["title"],
            description=data.get("description") or "",
            nodes=nodes,
            branches=branches,
        )

    def full_text(self) -> str:
        """Title, description, node contents and branch labels joined by spaces."""
        parts = [self.title, self.description]
        parts.extend(n.content for n in self.nodes)
        parts.extend(b.label for b in self.branches)
        return " ".join(parts)

    def content_length(self) -> int:
        return sum(len(n.content) for n in self.nodes)
