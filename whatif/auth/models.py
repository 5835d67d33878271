"""Accounts allowed to call the admin side of the moderation API."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


def _now() -> str:
    return datetime.utcnow().isoformat()


class Role(str, Enum):
    admin = "admin"
    moderator = "moderator"
    author = "author"
    reader = "reader"

    def at_least(self, other: Role) -> bool:
        """True when this role ranks the same as or above *other*."""
        return _RANK.index(self) <= _RANK.index(other)


# highest first
_RANK = [Role.admin, Role.moderator, Role.author, Role.reader]


@dataclass
class User:
    id: str
    username: str
    email: str
    role: Role = Role.reader
    created_at: str = field(default_factory=_now)

    def __post_init__(self) -> None:
        self.role = Role(self.role)


@dataclass
class APIKey:
    """An issued key. Only the SHA-256 hash of the raw key is kept."""

    id: str
    user_id: str
    name: str
    key_hash: str
    prefix: str
    expires_at: str
    created_at: str = field(default_factory=_now)
    last_used: str = ""
