"""What-If content moderation: rule-based screening for interactive stories and prompts."""

__version__ = "0.1.0"
