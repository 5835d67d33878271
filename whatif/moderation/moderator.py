"""Content moderation engine for stories, story choices and "what if" prompts.

Text is scanned against the category tables in :mod:`whatif.moderation.rules`
and the administrator's custom blocklists, then the collected flags are
folded into a verdict. A failure inside the scanner never reaches the caller:
the result fails open (approved, queued for review) and is marked
``degraded`` so callers can tell it apart from a clean approval.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from whatif.moderation.filters import FilterConfiguration, FilterStore
from whatif.moderation.models import (
    FlagType,
    ModerationCategory,
    ModerationFlag,
    ModerationResult,
    ModerationStatus,
    StoryPayload,
)
from whatif.moderation.rules import RuleSet, default_rules

logger = logging.getLogger(__name__)


@dataclass
class _Scan:
    """Findings collected while checks run; turned into a result at the end."""

    categories: list[ModerationCategory] = field(default_factory=list)
    flags: list[ModerationFlag] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    rejected: bool = False


class ContentModerator:
    """Stateless moderation pipeline over an injected filter store and rule set."""

    def __init__(self, store: Optional[FilterStore] = None, rules: Optional[RuleSet] = None) -> None:
        self.store = store or FilterStore()
        self.rules = rules or default_rules()

    # -- configuration -------------------------------------------------------

    def get_filters(self) -> FilterConfiguration:
        return self.store.get()

    def update_filters(self, partial: Mapping[str, Any]) -> FilterConfiguration:
        return self.store.update(partial)

    # -- checks --------------------------------------------------------------

    def _check_categories(self, text: str, filters: FilterConfiguration, scan: _Scan) -> None:
        for rule in self.rules.categories:
            if not filters.is_enabled(rule.filter_field):
                continue
            matches = rule.match(text)
            if not matches:
                continue
            confidence = rule.score(matches)
            scan.categories.append(
                ModerationCategory(
                    name=rule.name,
                    confidence=confidence,
                    severity=rule.severity_for(confidence),
                )
            )
            if rule.should_report(confidence, filters):
                scan.flags.append(
                    ModerationFlag(
                        type=rule.flag_type,
                        confidence=confidence,
                        description=rule.description,
                        suggestion=rule.suggestion or None,
                    )
                )

    def _check_custom_filters(self, text: str, filters: FilterConfiguration, scan: _Scan) -> None:
        lowered = text.lower()
        confidence = self.rules.aggregation.custom_term_confidence
        for kind, terms in (
            ("word", filters.custom_blocked_words),
            ("phrase", filters.custom_blocked_phrases),
        ):
            for term in terms:
                if term.lower() in lowered:
                    scan.flags.append(
                        ModerationFlag(
                            type=FlagType.inappropriate,
                            confidence=confidence,
                            description=f"Content contains blocked {kind}: {term}",
                            suggestion="Please remove the blocked content",
                        )
                    )

    def _check_story_structure(self, story: StoryPayload, scan: _Scan) -> None:
        limits = self.rules.story
        if len(story.title) < limits.min_title_length:
            scan.suggestions.append(
                f"Story title should be at least {limits.min_title_length} characters long"
            )
        if not story.nodes:
            scan.suggestions.append("Story should have at least one node")

        total = story.content_length()
        if total < limits.min_content_length:
            scan.suggestions.append("Story content seems too short - consider adding more detail")
        if total > limits.max_content_length:
            scan.suggestions.append("Story content is very long - consider breaking it into chapters")

    def _check_prompt_quality(self, prompt_text: str, scan: _Scan) -> None:
        limits = self.rules.prompt
        if len(prompt_text) < limits.min_length:
            scan.suggestions.append("Prompt is very short - consider adding more context")
        if len(prompt_text) > limits.max_length:
            scan.suggestions.append("Prompt is very long - consider making it more concise")
        if "?" not in prompt_text:
            scan.suggestions.append('Consider formatting as a question for better "What if" prompts')
        if not prompt_text.lower().startswith("what if"):
            scan.suggestions.append('Consider starting with "What if" for better prompt format')

    def _check_prompt_safety(self, prompt_text: str, scan: _Scan) -> None:
        lowered = prompt_text.lower()
        for pattern in self.rules.prompt.harmful_patterns:
            if pattern.lower() in lowered:
                scan.flags.append(
                    ModerationFlag(
                        type=FlagType.inappropriate,
                        confidence=self.rules.prompt.harmful_confidence,
                        description="Prompt may encourage harmful behavior",
                        suggestion="Please revise to avoid harmful content",
                    )
                )

    # -- pipeline ------------------------------------------------------------

    def _scan(self, content: str, content_type: str, filters: FilterConfiguration) -> _Scan:
        scan = _Scan()
        if content_type not in filters.allowed_content_types:
            scan.rejected = True
            scan.flags.append(
                ModerationFlag(
                    type=FlagType.inappropriate,
                    confidence=1.0,
                    description="Content type not allowed",
                    suggestion="Please use an allowed content type",
                )
            )
            return scan

        self._check_categories(content, filters, scan)
        self._check_custom_filters(content, filters, scan)
        return scan

    def _is_approved(self, flags: list[ModerationFlag], filters: FilterConfiguration) -> bool:
        block_above = self.rules.aggregation.inappropriate_block_threshold
        if any(f.type == FlagType.hate_speech for f in flags):
            return False
        if any(f.type == FlagType.inappropriate and f.confidence > block_above for f in flags):
            return False
        if filters.strict_mode and flags:
            return False
        return True

    def _confidence(self, flags: list[ModerationFlag]) -> float:
        if not flags:
            return 1.0
        average = sum(f.confidence for f in flags) / len(flags)
        return max(self.rules.aggregation.confidence_floor, 1.0 - average)

    def _finalize(self, scan: _Scan, filters: FilterConfiguration) -> ModerationResult:
        if scan.rejected:
            return ModerationResult(
                is_approved=False,
                confidence=1.0,
                flags=list(scan.flags),
                suggestions=list(scan.suggestions),
            )

        confidence = self._confidence(scan.flags)
        requires_review = (
            bool(scan.flags)
            or confidence < self.rules.aggregation.review_confidence_threshold
            or bool(scan.suggestions)
        )
        return ModerationResult(
            is_approved=self._is_approved(scan.flags, filters),
            confidence=confidence,
            categories=list(scan.categories),
            flags=list(scan.flags),
            suggestions=list(scan.suggestions),
            requires_review=requires_review,
        )

    @staticmethod
    def _fail_open(what: str, exc: Exception) -> ModerationResult:
        return ModerationResult(
            is_approved=True,
            confidence=0.5,
            suggestions=[f"{what} moderation failed - manual review recommended"],
            requires_review=True,
            status=ModerationStatus.degraded,
            error=f"{type(exc).__name__}: {exc}",
        )

    # -- public API ----------------------------------------------------------

    def moderate_text(
        self,
        content: str,
        content_type: str = "story",
        filters: Optional[FilterConfiguration] = None,
    ) -> ModerationResult:
        """Moderate a piece of text of the given content type."""
        filters = filters or self.store.get()
        try:
            logger.debug("Starting content moderation (type=%s, length=%d)", content_type, len(content))
            result = self._finalize(self._scan(content, content_type, filters), filters)
        except Exception as exc:
            logger.exception("Content moderation failed for %r", str(content)[:100])
            return self._fail_open("Content", exc)

        logger.debug(
            "Content moderation completed: approved=%s confidence=%.2f flags=%d review=%s",
            result.is_approved, result.confidence, len(result.flags), result.requires_review,
        )
        return result

    def moderate_story(
        self,
        story: StoryPayload | Mapping[str, Any],
        filters: Optional[FilterConfiguration] = None,
    ) -> ModerationResult:
        """Moderate a whole story: title, description, node contents and branch labels."""
        filters = filters or self.store.get()
        try:
            if not isinstance(story, StoryPayload):
                story = StoryPayload.from_dict(story)
            scan = self._scan(story.full_text(), "story", filters)
            self._check_story_structure(story, scan)
            return self._finalize(scan, filters)
        except Exception as exc:
            logger.exception("Story moderation failed")
            return self._fail_open("Story", exc)

    def moderate_prompt(
        self,
        prompt_text: str,
        context: Optional[Mapping[str, Any]] = None,
        filters: Optional[FilterConfiguration] = None,
    ) -> ModerationResult:
        """Moderate an AI "what if" prompt, adding quality and safety checks.

        *context* is accepted for callers that pass generation context along;
        the current checks do not use it.
        """
        filters = filters or self.store.get()
        try:
            scan = self._scan(prompt_text, "prompt", filters)
            self._check_prompt_quality(prompt_text, scan)
            # a rejected type keeps its single flag
            if not scan.rejected:
                self._check_prompt_safety(prompt_text, scan)
            return self._finalize(scan, filters)
        except Exception as exc:
            logger.exception("Prompt moderation failed")
            return self._fail_open("Prompt", exc)
