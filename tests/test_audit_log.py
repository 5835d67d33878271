"""Tests for the audit log."""

import tempfile
from pathlib import Path

from whatif.security.audit_log import FILTERS_RESOURCE, AuditLogger


def test_log_and_query_filter_updates():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit = AuditLogger(Path(tmpdir))
        audit.log_filter_update("admin", {"strict_mode": True}, ip_address="10.0.0.1")
        audit.log_filter_update("admin", {"bogus": 1}, success=False, error="Unknown filter field(s): bogus")
        audit.log_event("ops", "rules.reload", "moderation_rules", "default")

        history = audit.get_events(resource_type=FILTERS_RESOURCE)
        assert len(history) == 2
        assert history[0].timestamp >= history[1].timestamp
        failed = [e for e in history if not e.success]
        assert failed[0].details["error"].startswith("Unknown filter field")

        assert len(audit.get_events(actor="ops")) == 1
        assert len(audit.get_events(limit=1)) == 1


def test_skips_malformed_lines():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit = AuditLogger(Path(tmpdir))
        audit.log_filter_update("admin", {"strict_mode": False})
        (Path(tmpdir) / "2000-01-01.jsonl").write_text("not json\n")
        assert len(audit.get_events()) == 1
