"""Tests for the moderation REST API."""

import pytest
from fastapi.testclient import TestClient

from whatif.auth.models import Role
from whatif.auth.store import UserStore
from whatif.config import Settings
from whatif.moderation.moderator import ContentModerator
from whatif.moderation.stats import ModerationStats
from whatif.security.audit_log import AuditLogger
from web.backend.app.dependencies import (
    get_audit_logger,
    get_moderator,
    get_settings,
    get_stats,
    get_user_store,
)
from web.backend.app.main import app


@pytest.fixture()
def api(tmp_path):
    settings = Settings(home=tmp_path, max_content_length=200)
    users = UserStore(settings.auth_dir)
    admin = users.create_user("admin", "admin@example.com", role=Role.admin)
    author = users.create_user("author", "author@example.com", role=Role.author)
    _, admin_key = users.create_api_key(admin.id, "tests")
    _, author_key = users.create_api_key(author.id, "tests")

    moderator = ContentModerator()
    stats = ModerationStats()
    audit = AuditLogger(settings.audit_dir)

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_moderator] = lambda: moderator
    app.dependency_overrides[get_stats] = lambda: stats
    app.dependency_overrides[get_audit_logger] = lambda: audit
    app.dependency_overrides[get_user_store] = lambda: users

    with TestClient(app) as client:
        yield {
            "client": client,
            "users": users,
            "admin": admin,
            "admin_headers": {"X-API-Key": admin_key},
            "author_headers": {"X-API-Key": author_key},
        }
    app.dependency_overrides.clear()


def test_health(api):
    assert api["client"].get("/health").json() == {"status": "healthy"}


# --- screening ---


def test_moderate_clean_text(api):
    resp = api["client"].post(
        "/api/moderation/moderate/text",
        json={"content": "What if the detective discovers a clue?", "content_type": "story"},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["result"]["is_approved"] is True
    assert body["result"]["confidence"] == 1.0
    assert body["result"]["flags"] == []
    assert body["result"]["status"] == "completed"


def test_moderate_hate_speech(api):
    resp = api["client"].post(
        "/api/moderation/moderate/text", json={"content": "I hate you, you racist pig"}
    )
    result = resp.json()["result"]
    assert result["is_approved"] is False
    assert [f["type"] for f in result["flags"]] == ["hate_speech"]
    assert result["categories"][0]["severity"] == "critical"


def test_moderate_text_validation(api):
    client = api["client"]
    assert client.post("/api/moderation/moderate/text", json={}).status_code == 400
    resp = client.post("/api/moderation/moderate/text", json={"content": "x" * 201})
    assert resp.status_code == 400
    assert "too long" in resp.json()["detail"]


def test_camel_case_request_fields(api):
    client = api["client"]
    result = client.post(
        "/api/moderation/moderate/text", json={"content": "hello", "contentType": "advertisement"}
    ).json()["result"]
    assert [f["description"] for f in result["flags"]] == ["Content type not allowed"]

    result = client.post(
        "/api/moderation/moderate/prompt", json={"promptText": "What if the moon vanished?"}
    ).json()["result"]
    assert result["is_approved"] is True
    assert result["suggestions"] == []


def test_disallowed_content_type(api):
    resp = api["client"].post(
        "/api/moderation/moderate/text", json={"content": "hello", "content_type": "banner"}
    )
    result = resp.json()["result"]
    assert result["is_approved"] is False
    assert len(result["flags"]) == 1


def test_moderate_story(api):
    client = api["client"]
    assert client.post("/api/moderation/moderate/story", json={"nodes": []}).status_code == 400
    assert client.post("/api/moderation/moderate/story", json={"title": "Lost"}).status_code == 400

    resp = client.post(
        "/api/moderation/moderate/story",
        json={
            "title": "Lost",
            "description": "A hiker takes a wrong turn.",
            "nodes": [{"content": "The trail forks near the old oak.", "node_type": "start"}],
            "branches": [{"label": "Go left", "branch_type": "choice"}],
        },
    )
    assert resp.status_code == 200
    result = resp.json()["result"]
    assert result["is_approved"] is True
    assert "Story content seems too short - consider adding more detail" in result["suggestions"]
    assert result["requires_review"] is True


def test_moderate_prompt(api):
    client = api["client"]
    assert client.post("/api/moderation/moderate/prompt", json={}).status_code == 400

    resp = client.post(
        "/api/moderation/moderate/prompt", json={"prompt_text": "tell me a story", "context": {"genre": "mystery"}}
    )
    suggestions = resp.json()["result"]["suggestions"]
    assert 'Consider formatting as a question for better "What if" prompts' in suggestions
    assert 'Consider starting with "What if" for better prompt format' in suggestions


# --- filters ---


def test_get_filters_is_public(api):
    resp = api["client"].get("/api/moderation/filters")
    assert resp.status_code == 200
    filters = resp.json()["filters"]
    assert filters["strict_mode"] is False
    assert filters["age_restriction"] == "all"


def test_update_filters_requires_admin(api):
    client = api["client"]
    body = {"filters": {"strict_mode": True}}
    assert client.put("/api/moderation/filters", json=body).status_code == 401
    assert client.put("/api/moderation/filters", json=body, headers={"X-API-Key": "wif_bogus"}).status_code == 401
    assert client.put("/api/moderation/filters", json=body, headers=api["author_headers"]).status_code == 403
    assert client.get("/api/moderation/filters").json()["filters"]["strict_mode"] is False


def test_update_filters_enables_strict_mode(api):
    client = api["client"]
    resp = client.put(
        "/api/moderation/filters", json={"filters": {"strict_mode": True}}, headers=api["admin_headers"]
    )
    assert resp.status_code == 200
    assert resp.json()["filters"]["strict_mode"] is True

    result = client.post(
        "/api/moderation/moderate/text", json={"content": "a fight breaks out"}
    ).json()["result"]
    assert [c["name"] for c in result["categories"]] == ["violence"]
    assert [f["type"] for f in result["flags"]] == ["violence"]
    assert result["is_approved"] is False


def test_update_filters_with_bearer_api_key(api):
    resp = api["client"].put(
        "/api/moderation/filters",
        json={"filters": {"custom_blocked_words": ["zombie"]}},
        headers={"Authorization": f"Bearer {api['admin_headers']['X-API-Key']}"},
    )
    assert resp.status_code == 200
    assert resp.json()["filters"]["custom_blocked_words"] == ["zombie"]


def test_update_filters_validation_is_audited(api):
    client = api["client"]
    headers = api["admin_headers"]
    assert client.put("/api/moderation/filters", json={"filters": {}}, headers=headers).status_code == 400

    resp = client.put("/api/moderation/filters", json={"filters": {"enable_magic": True}}, headers=headers)
    assert resp.status_code == 400
    client.put("/api/moderation/filters", json={"filters": {"age_restriction": "teen"}}, headers=headers)

    history = client.get("/api/moderation/filters/history", headers=headers).json()
    assert len(history) == 2
    assert {e["success"] for e in history} == {True, False}
    assert all(e["actor"] == "admin" for e in history)

    assert client.get("/api/moderation/filters/history", headers=api["author_headers"]).status_code == 403


# --- stats ---


def test_stats(api):
    client = api["client"]
    client.post("/api/moderation/moderate/text", json={"content": "What if the sky turned green?"})
    client.post("/api/moderation/moderate/text", json={"content": "racist hate speech"})

    assert client.get("/api/moderation/stats").status_code == 401
    stats = client.get("/api/moderation/stats", headers=api["admin_headers"]).json()["stats"]
    assert stats["total_moderated"] == 2
    assert stats["approved"] == 1
    assert stats["rejected"] == 1
    assert stats["categories"]["hate_speech"] == 1
