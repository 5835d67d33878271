"""Process-wide service instances, exposed as FastAPI dependencies.

Routers receive these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

from __future__ import annotations

import logging
from typing import Optional

from whatif.auth.store import UserStore
from whatif.config import Settings, load_settings
from whatif.moderation.filters import FilterStore
from whatif.moderation.moderator import ContentModerator
from whatif.moderation.rules import default_rules, load_rules
from whatif.moderation.stats import ModerationStats
from whatif.security.audit_log import AuditLogger

logger = logging.getLogger(__name__)

_settings: Optional[Settings] = None
_moderator: Optional[ContentModerator] = None
_stats: Optional[ModerationStats] = None
_audit: Optional[AuditLogger] = None
_user_store: Optional[UserStore] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_moderator() -> ContentModerator:
    """Return the singleton moderator, built from the configured rule file and filter store."""
    global _moderator
    if _moderator is None:
        settings = get_settings()
        rules = load_rules(settings.rules_path) if settings.rules_path else default_rules()
        store = FilterStore(path=settings.filters_path)
        if settings.filters_path:
            logger.info("Persisting moderation filters to %s", settings.filters_path)
        _moderator = ContentModerator(store=store, rules=rules)
    return _moderator


def get_stats() -> ModerationStats:
    global _stats
    if _stats is None:
        _stats = ModerationStats()
    return _stats


def get_audit_logger() -> AuditLogger:
    global _audit
    if _audit is None:
        _audit = AuditLogger(get_settings().audit_dir)
    return _audit


def get_user_store() -> UserStore:
    global _user_store
    if _user_store is None:
        _user_store = UserStore(get_settings().auth_dir)
    return _user_store
