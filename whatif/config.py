"""Runtime settings, read from ``WHATIF_*`` environment variables.

Files written by the service (auth store, audit logs, persisted filters)
live under ``~/.whatif/`` unless ``WHATIF_HOME`` points elsewhere.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

DEFAULT_MAX_CONTENT_LENGTH = 10_000


@dataclass
class Settings:
    """Process-wide settings for the CLI and the web backend."""

    home: Path = field(default_factory=lambda: Path.home() / ".whatif")
    log_level: str = "INFO"
    rules_path: Optional[Path] = None
    filters_path: Optional[Path] = None
    max_content_length: int = DEFAULT_MAX_CONTENT_LENGTH
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @property
    def auth_dir(self) -> Path:
        return self.home / "auth"

    @property
    def audit_dir(self) -> Path:
        return self.home / "audit_logs"

    @property
    def default_filters_path(self) -> Path:
        return self.home / "moderation" / "filters.json"


def _optional_path(value: str) -> Optional[Path]:
    return Path(value).expanduser() if value else None


def load_settings(environ: Optional[dict[str, str]] = None) -> Settings:
    """Build a :class:`Settings` from *environ* (defaults to ``os.environ``)."""
    env = os.environ if environ is None else environ

    home = env.get("WHATIF_HOME", "")
    origins = env.get("WHATIF_CORS_ORIGINS", "*")
    try:
        max_len = int(env.get("WHATIF_MAX_CONTENT_LENGTH", DEFAULT_MAX_CONTENT_LENGTH))
    except ValueError:
        max_len = DEFAULT_MAX_CONTENT_LENGTH

    settings = Settings(
        log_level=env.get("WHATIF_LOG_LEVEL", "INFO").upper(),
        rules_path=_optional_path(env.get("WHATIF_RULES_PATH", "")),
        filters_path=_optional_path(env.get("WHATIF_FILTERS_PATH", "")),
        max_content_length=max_len,
        cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
    )
    if home:
        settings.home = Path(home).expanduser()
    return settings
