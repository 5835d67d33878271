"""JSON-file account store: users and their API keys.

Both live in ``accounts.json`` under the ``auth`` directory of ``WHATIF_HOME``
(``~/.whatif/auth`` by default)::

    {"users": [...], "api_keys": [...]}
"""

from __future__ import annotations

import hashlib
import json
import logging
import secrets
import uuid
from dataclasses import asdict
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from whatif.auth.models import APIKey, Role, User

logger = logging.getLogger(__name__)

KEY_PREFIX = "wif_"


def hash_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode()).hexdigest()


class UserStore:
    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        base = Path(base_dir) if base_dir is not None else Path.home() / ".whatif" / "auth"
        base.mkdir(parents=True, exist_ok=True)
        self.path = base / "accounts.json"

    def _load(self) -> dict[str, list[dict]]:
        data: dict = {}
        if self.path.exists():
            try:
                data = json.loads(self.path.read_text())
            except (json.JSONDecodeError, OSError) as e:
                logger.warning("Ignoring unreadable account file %s: %s", self.path, e)
        return {
            "users": list(data.get("users", [])),
            "api_keys": list(data.get("api_keys", [])),
        }

    def _save(self, data: dict[str, list[dict]]) -> None:
        self.path.write_text(json.dumps(data, indent=2))

    # -- users ---------------------------------------------------------------

    def create_user(self, username: str, email: str, role: Role = Role.reader) -> User:
        """Add a user. Usernames are unique, ignoring case."""
        data = self._load()
        if any(u["username"].lower() == username.lower() for u in data["users"]):
            raise ValueError(f"User '{username}' already exists")

        user = User(id=str(uuid.uuid4()), username=username, email=email, role=role)
        record = asdict(user)
        record["role"] = user.role.value
        data["users"].append(record)
        self._save(data)
        logger.info("Created user %s (%s)", username, user.role.value)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        for record in self._load()["users"]:
            if record["id"] == user_id:
                return User(**record)
        return None

    # -- API keys ------------------------------------------------------------

    def create_api_key(self, user_id: str, name: str, expires_in_days: int = 90) -> tuple[APIKey, str]:
        """Issue a key for *user_id*; returns the stored record and the raw key."""
        raw_key = KEY_PREFIX + secrets.token_urlsafe(32)
        expires = datetime.utcnow() + timedelta(days=expires_in_days)
        api_key = APIKey(
            id=str(uuid.uuid4()),
            user_id=user_id,
            name=name,
            key_hash=hash_key(raw_key),
            prefix=raw_key[:8],
            expires_at=expires.isoformat(),
        )
        data = self._load()
        data["api_keys"].append(asdict(api_key))
        self._save(data)
        return api_key, raw_key

    def validate_api_key(self, raw_key: str) -> Optional[User]:
        """Return the key's owner, or None for unknown or expired keys."""
        digest = hash_key(raw_key)
        now = datetime.utcnow().isoformat()
        data = self._load()
        for record in data["api_keys"]:
            if record["key_hash"] != digest:
                continue
            if record["expires_at"] < now:
                return None
            record["last_used"] = now
            self._save(data)
            return self.get_user(record["user_id"])
        return None
