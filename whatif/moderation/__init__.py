"""Rule-based content moderation for stories, story nodes and "what if" prompts.

The package is organised as:
- ``models``: result value objects (categories, flags, verdict)
- ``rules``: declarative keyword/phrase tables and scoring constants
- ``filters``: the administrator-controlled filter configuration
- ``moderator``: the scanning and aggregation pipeline
- ``stats``: running counters over produced results
"""

from whatif.moderation.filters import AgeRestriction, FilterConfiguration, FilterStore
from whatif.moderation.models import (
    FlagType,
    ModerationCategory,
    ModerationFlag,
    ModerationResult,
    ModerationStatus,
    Severity,
)
from whatif.moderation.moderator import ContentModerator
from whatif.moderation.rules import RuleSet, default_rules, load_rules

__all__ = [
    "AgeRestriction",
    "ContentModerator",
    "FilterConfiguration",
    "FilterStore",
    "FlagType",
    "ModerationCategory",
    "ModerationFlag",
    "ModerationResult",
    "ModerationStatus",
    "RuleSet",
    "Severity",
    "default_rules",
    "load_rules",
]
