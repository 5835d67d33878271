"""Filter configuration: which checks run and how strictly.

One :class:`FilterStore` owns the live configuration of a running process.
Moderation calls take a snapshot at their start, so an administrator update
never changes a scan that is already in progress.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from whatif.errors import FilterValidationError

logger = logging.getLogger(__name__)


class AgeRestriction(str, Enum):
    """Audience the platform's content is rated for."""

    all = "all"
    teen = "teen"
    mature = "mature"


DEFAULT_CONTENT_TYPES = ["story", "choice", "description", "prompt"]

_BOOL_FIELDS = {
    "enable_violence_filter",
    "enable_adult_content_filter",
    "enable_hate_speech_filter",
    "enable_spam_filter",
    "enable_copyright_filter",
    "strict_mode",
}
_LIST_FIELDS = {"custom_blocked_words", "custom_blocked_phrases", "allowed_content_types"}


@dataclass
class FilterConfiguration:
    """Administrator-controlled moderation settings."""

    enable_violence_filter: bool = True
    enable_adult_content_filter: bool = True
    enable_hate_speech_filter: bool = True
    enable_spam_filter: bool = True
    enable_copyright_filter: bool = True
    strict_mode: bool = False
    custom_blocked_words: list[str] = field(default_factory=list)
    custom_blocked_phrases: list[str] = field(default_factory=list)
    allowed_content_types: list[str] = field(default_factory=lambda: list(DEFAULT_CONTENT_TYPES))
    age_restriction: AgeRestriction = AgeRestriction.all

    def __post_init__(self) -> None:
        if isinstance(self.age_restriction, str):
            self.age_restriction = AgeRestriction(self.age_restriction)

    def is_enabled(self, filter_field: str) -> bool:
        """Look up an ``enable_*`` switch by name; unknown switches count as on."""
        return bool(getattr(self, filter_field, True))

    def copy(self) -> FilterConfiguration:
        return replace(
            self,
            custom_blocked_words=list(self.custom_blocked_words),
            custom_blocked_phrases=list(self.custom_blocked_phrases),
            allowed_content_types=list(self.allowed_content_types),
        )

    def merged(self, partial: Mapping[str, Any]) -> FilterConfiguration:
        """Return a new configuration with *partial* shallow-merged over this one.

        List fields are replaced wholesale, not appended to.
        """
        changes = _validate_partial(partial)
        return replace(self.copy(), **changes)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["age_restriction"] = self.age_restriction.value
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> FilterConfiguration:
        return cls().merged(data)


def _validate_partial(partial: Mapping[str, Any]) -> dict[str, Any]:
    known = {f.name for f in fields(FilterConfiguration)}
    unknown = sorted(set(partial) - known)
    if unknown:
        raise FilterValidationError(f"Unknown filter field(s): {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    for key, value in partial.items():
        if key in _BOOL_FIELDS:
            if not isinstance(value, bool):
                raise FilterValidationError(f"'{key}' must be a boolean")
            changes[key] = value
        elif key in _LIST_FIELDS:
            if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                raise FilterValidationError(f"'{key}' must be a list of strings")
            changes[key] = [v for v in value if v.strip()]
        elif key == "age_restriction":
            try:
                changes[key] = AgeRestriction(value)
            except ValueError:
                allowed = ", ".join(a.value for a in AgeRestriction)
                raise FilterValidationError(
                    f"'age_restriction' must be one of: {allowed}"
                ) from None
    return changes


class FilterStore:
    """Holds the live :class:`FilterConfiguration`.

    Without a *path* the configuration only lives in memory. With one, it is
    loaded from that JSON file on construction and written back on every
    update.
    """

    def __init__(
        self,
        initial: Optional[FilterConfiguration] = None,
        path: Optional[str | Path] = None,
    ) -> None:
        self._path = Path(path) if path else None
        self._current = initial.copy() if initial else FilterConfiguration()
        if self._path is not None and initial is None:
            self._current = self._load()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def _load(self) -> FilterConfiguration:
        if self._path is None or not self._path.exists():
            return FilterConfiguration()
        try:
            data = json.loads(self._path.read_text())
            return FilterConfiguration.from_dict(data if isinstance(data, dict) else {})
        except (json.JSONDecodeError, OSError, FilterValidationError) as exc:
            logger.warning("Ignoring unreadable filter file %s: %s", self._path, exc)
            return FilterConfiguration()

    def _save(self, config: FilterConfiguration) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(config.to_dict(), indent=2))

    def get(self) -> FilterConfiguration:
        """Return a copy of the live configuration."""
        return self._current.copy()

    def update(self, partial: Mapping[str, Any]) -> FilterConfiguration:
        """Merge *partial* into the live configuration and return a copy of the result."""
        updated = self._current.merged(partial)
        self._save(updated)
        self._current = updated
        logger.info("Content moderation filters updated: %s", sorted(partial))
        return updated.copy()

    def reset(self) -> FilterConfiguration:
        """Restore defaults."""
        defaults = FilterConfiguration()
        self._save(defaults)
        self._current = defaults
        logger.info("Content moderation filters reset to defaults")
        return defaults.copy()
