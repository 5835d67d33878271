"""Web surfaces for the What-If moderation service."""
