"""Audit trail for administrative moderation actions.

Entries are appended as JSON lines to one file per UTC day under
``~/.whatif/audit_logs/``. Filter changes are the main producer; the
admin API reads them back as the filter history.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

FILTERS_RESOURCE = "moderation_filters"


@dataclass
class AuditEntry:
    """A single audit log entry."""

    id: str
    timestamp: str
    actor: str
    action: str
    resource_type: str
    resource_id: str
    details: dict[str, Any] = field(default_factory=dict)
    ip_address: str = ""
    success: bool = True


class AuditLogger:
    """Append-only JSONL audit log."""

    def __init__(self, base_dir: Optional[str | Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".whatif" / "audit_logs"
        self._base_dir.mkdir(parents=True, exist_ok=True)

    def _current_log_file(self) -> Path:
        return self._base_dir / f"{datetime.now(timezone.utc).strftime('%Y-%m-%d')}.jsonl"

    def _read_all_entries(self) -> list[AuditEntry]:
        entries: list[AuditEntry] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            try:
                lines = path.read_text(encoding="utf-8").splitlines()
            except OSError as exc:
                logger.warning("Skipping unreadable audit file %s: %s", path, exc)
                continue
            for line in lines:
                if not line.strip():
                    continue
                try:
                    entries.append(AuditEntry(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Skipping malformed audit line in %s", path.name)
        return entries

    def log_event(
        self,
        actor: str,
        action: str,
        resource_type: str,
        resource_id: str,
        details: Optional[dict[str, Any]] = None,
        ip_address: str = "",
        success: bool = True,
    ) -> AuditEntry:
        """Record an audit event and return the created entry."""
        entry = AuditEntry(
            id=uuid.uuid4().hex[:16],
            timestamp=datetime.now(timezone.utc).isoformat(),
            actor=actor,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
            ip_address=ip_address,
            success=success,
        )
        with self._current_log_file().open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(entry)) + "\n")
        return entry

    def log_filter_update(
        self,
        actor: str,
        changes: dict[str, Any],
        ip_address: str = "",
        success: bool = True,
        error: str = "",
    ) -> AuditEntry:
        """Record an administrator's change to the moderation filters."""
        details: dict[str, Any] = {"changes": changes}
        if error:
            details["error"] = error
        return self.log_event(
            actor=actor,
            action="filters.update",
            resource_type=FILTERS_RESOURCE,
            resource_id="global",
            details=details,
            ip_address=ip_address,
            success=success,
        )

    def get_events(
        self,
        *,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        resource_type: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return filtered audit events, newest first."""
        entries = self._read_all_entries()
        if actor:
            entries = [e for e in entries if e.actor == actor]
        if action:
            entries = [e for e in entries if e.action == action]
        if resource_type:
            entries = [e for e in entries if e.resource_type == resource_type]
        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries[:limit]
