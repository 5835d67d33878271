"""Users, roles and API keys guarding the administrative endpoints."""
