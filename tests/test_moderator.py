"""Tests for the content moderation pipeline."""

import pytest

from whatif.moderation.filters import AgeRestriction, FilterConfiguration, FilterStore
from whatif.moderation.models import FlagType, ModerationStatus, Severity, StoryNode, StoryPayload
from whatif.moderation.moderator import ContentModerator
from whatif.moderation.rules import default_rules


def _moderator(**filters) -> ContentModerator:
    return ContentModerator(store=FilterStore(FilterConfiguration(**filters)))


# --- moderate_text ---


def test_clean_text_is_approved():
    result = _moderator().moderate_text("What if the detective discovers a clue?", "story")
    assert result.is_approved
    assert result.flags == []
    assert result.categories == []
    assert result.confidence == 1.0
    assert not result.requires_review
    assert result.status == ModerationStatus.completed


def test_hate_speech_blocks():
    result = _moderator().moderate_text("I hate you, you racist pig", "story")
    assert not result.is_approved
    assert FlagType.hate_speech in result.flag_types()
    category = result.categories[0]
    assert category.name == "hate_speech"
    assert category.severity == Severity.critical
    assert category.confidence == pytest.approx(0.4)
    assert result.confidence == pytest.approx(0.6)
    assert result.requires_review


@pytest.mark.parametrize("term", [p.pattern for p in default_rules().category("hate_speech").keywords])
def test_every_hate_keyword_blocks_with_critical_severity(term):
    result = _moderator().moderate_text(f"They said something {term}.")
    assert not result.is_approved
    assert any(f.type == FlagType.hate_speech for f in result.flags)
    assert any(c.name == "hate_speech" and c.severity == Severity.critical for c in result.categories)


def test_low_violence_recorded_but_not_flagged():
    result = _moderator().moderate_text("a fight breaks out")
    assert [c.name for c in result.categories] == ["violence"]
    assert result.categories[0].severity == Severity.low
    assert result.flags == []
    assert result.is_approved
    assert result.confidence == 1.0


def test_strict_mode_flags_low_confidence_violence():
    moderator = _moderator()
    moderator.update_filters({"strict_mode": True})
    result = moderator.moderate_text("a fight breaks out", "story")
    assert [c.name for c in result.categories] == ["violence"]
    assert result.categories[0].confidence == pytest.approx(0.1)
    assert [f.type for f in result.flags] == [FlagType.violence]
    assert not result.is_approved
    assert result.requires_review


def test_graphic_violence_is_flagged_high_but_approved():
    result = _moderator().moderate_text("graphic violence and brutal murder with blood")
    violence = result.categories[0]
    assert violence.confidence == pytest.approx(0.9)
    assert violence.severity == Severity.high
    assert result.flags[0].type == FlagType.violence
    assert result.is_approved
    assert result.confidence == pytest.approx(0.1)
    assert result.requires_review


def test_adult_content_flag_depends_on_age_restriction():
    text = "nude and naked, sexual content, adult themes"

    everyone = _moderator().moderate_text(text)
    assert FlagType.adult_content in everyone.flag_types()

    mature = _moderator(age_restriction=AgeRestriction.mature).moderate_text(text)
    assert FlagType.adult_content not in mature.flag_types()
    assert any(c.name == "adult_content" for c in mature.categories)


def test_spam_always_flags():
    result = _moderator().moderate_text("click here to buy now")
    assert result.categories[0].name == "spam"
    assert result.categories[0].confidence == pytest.approx(0.4)
    assert result.categories[0].severity == Severity.medium
    assert [f.type for f in result.flags] == [FlagType.spam]
    assert result.is_approved


def test_copyright_has_fixed_confidence():
    result = _moderator().moderate_text("All Rights Reserved")
    assert result.categories[0].name == "copyright"
    assert result.categories[0].confidence == pytest.approx(0.8)
    assert result.flags[0].confidence == pytest.approx(0.8)
    assert result.confidence == pytest.approx(0.2)


def test_disabled_filter_skips_category():
    result = _moderator(enable_hate_speech_filter=False).moderate_text("I hate you, you racist pig")
    assert result.is_approved
    assert result.flags == []


def test_custom_blocked_word_blocks():
    moderator = _moderator()
    moderator.update_filters({"custom_blocked_words": ["dragon"], "custom_blocked_phrases": ["secret ending"]})
    result = moderator.moderate_text("The DRAGON knows the secret ending")
    assert not result.is_approved
    assert [f.description for f in result.flags] == [
        "Content contains blocked word: dragon",
        "Content contains blocked phrase: secret ending",
    ]
    assert all(f.confidence == 1.0 for f in result.flags)
    assert result.confidence == pytest.approx(0.1)


@pytest.mark.parametrize("text", ["", "hate", "What if?", "buy now, click here"])
def test_disallowed_content_type_rejected_with_single_flag(text):
    result = _moderator().moderate_text(text, "advertisement")
    assert not result.is_approved
    assert len(result.flags) == 1
    assert result.flags[0].type == FlagType.inappropriate
    assert result.flags[0].description == "Content type not allowed"
    assert result.categories == []


def test_repeat_calls_give_identical_results():
    moderator = _moderator()
    text = "A brutal murder, a racist insult, and a limited time offer ©"
    assert moderator.moderate_text(text) == moderator.moderate_text(text)


def test_explicit_filters_do_not_touch_store():
    moderator = _moderator()
    result = moderator.moderate_text("a fight breaks out", filters=FilterConfiguration(strict_mode=True))
    assert not result.is_approved
    assert not moderator.get_filters().strict_mode
    assert moderator.moderate_text("a fight breaks out").is_approved


def test_scanner_failure_fails_open():
    result = _moderator().moderate_text(None)
    assert result.is_approved
    assert result.confidence == 0.5
    assert result.requires_review
    assert result.degraded
    assert result.suggestions == ["Content moderation failed - manual review recommended"]
    assert result.error


def test_flag_confidence_stays_in_range():
    result = _moderator(strict_mode=True).moderate_text(
        "kill murder death violence blood gore torture graphic violence hate racist sexist hate speech"
    )
    assert result.flags
    assert all(0.0 <= f.confidence <= 1.0 for f in result.flags)


# --- moderate_story ---


def test_story_structure_suggestions():
    result = _moderator().moderate_story({"title": "Hi", "nodes": [], "branches": []})
    assert result.is_approved
    assert result.flags == []
    assert "Story title should be at least 3 characters long" in result.suggestions
    assert "Story should have at least one node" in result.suggestions
    assert "Story content seems too short - consider adding more detail" in result.suggestions
    assert result.requires_review


def test_story_scans_nodes_and_branch_labels():
    story = {
        "title": "The Lighthouse",
        "description": "A keeper waits for the ships.",
        "nodes": [
            {"content": "The keeper climbs the stairs every night and lights the lamp for sailors.", "node_type": "start"},
        ],
        "branches": [{"label": "Spread hate speech in the village", "branch_type": "choice"}],
    }
    result = _moderator().moderate_story(story)
    assert not result.is_approved
    assert FlagType.hate_speech in result.flag_types()
    assert result.suggestions == []


def test_story_long_content_suggestion():
    story = StoryPayload(title="Epic", nodes=[StoryNode(content="a" * 50_001)])
    result = _moderator().moderate_story(story)
    assert "Story content is very long - consider breaking it into chapters" in result.suggestions


def test_story_with_bad_shape_fails_open():
    result = _moderator().moderate_story({"title": "Broken", "nodes": [{"node_type": "start"}]})
    assert result.degraded
    assert result.is_approved
    assert result.suggestions == ["Story moderation failed - manual review recommended"]


# --- moderate_prompt ---


def test_prompt_format_suggestions():
    result = _moderator().moderate_prompt("tell me a story")
    assert 'Consider formatting as a question for better "What if" prompts' in result.suggestions
    assert 'Consider starting with "What if" for better prompt format' in result.suggestions
    assert result.is_approved
    assert result.requires_review


def test_well_formed_prompt_is_clean():
    result = _moderator().moderate_prompt("What if the moon vanished?")
    assert result.is_approved
    assert result.suggestions == []
    assert not result.requires_review


def test_prompt_length_suggestions():
    assert "Prompt is very short - consider adding more context" in _moderator().moderate_prompt("What if?").suggestions
    long_prompt = "What if " + "the river " * 60 + "?"
    assert "Prompt is very long - consider making it more concise" in _moderator().moderate_prompt(long_prompt).suggestions


def test_harmful_prompt_is_blocked():
    result = _moderator().moderate_prompt("What if I explained how to hurt someone?", context={"genre": "thriller"})
    harmful = [f for f in result.flags if f.type == FlagType.inappropriate]
    assert len(harmful) == 1
    assert harmful[0].confidence == pytest.approx(0.9)
    assert not result.is_approved


def test_prompt_rejected_when_type_not_allowed_still_gets_suggestions():
    moderator = _moderator(allowed_content_types=["story"])
    result = moderator.moderate_prompt("tell me a story")
    assert not result.is_approved
    assert len(result.flags) == 1
    assert result.flags[0].description == "Content type not allowed"
    assert 'Consider formatting as a question for better "What if" prompts' in result.suggestions
    assert 'Consider starting with "What if" for better prompt format' in result.suggestions


def test_rejected_harmful_prompt_keeps_single_flag():
    moderator = _moderator(allowed_content_types=["story"])
    result = moderator.moderate_prompt("What if I explained how to hurt someone?")
    assert [f.description for f in result.flags] == ["Content type not allowed"]


def test_story_rejected_when_type_not_allowed_still_gets_suggestions():
    moderator = _moderator(allowed_content_types=["prompt"])
    result = moderator.moderate_story({"title": "Hi", "nodes": []})
    assert not result.is_approved
    assert len(result.flags) == 1
    assert "Story title should be at least 3 characters long" in result.suggestions
    assert "Story should have at least one node" in result.suggestions


# --- thresholds ---

_VIOLENCE = ["kill", "gore", "torture", "assault", "knife", "bomb", "gun", "war"]
_ADULT = ["nude", "naked", "porn", "romance", "kiss", "touch"]


@pytest.mark.parametrize(
    "count, severity, flagged",
    [
        (3, Severity.low, False),
        (4, Severity.low, False),
        (5, Severity.medium, False),
        (6, Severity.medium, False),
        (7, Severity.high, True),
        (8, Severity.high, True),
    ],
)
def test_violence_keyword_count_bands(count, severity, flagged):
    result = _moderator().moderate_text(" ".join(_VIOLENCE[:count]))
    violence = result.categories[0]
    assert violence.name == "violence"
    assert violence.confidence == pytest.approx(count * 0.1)
    assert violence.severity == severity
    assert (FlagType.violence in result.flag_types()) is flagged
    assert result.is_approved


def test_seven_violence_keywords_match_hit_times_weight():
    result = _moderator().moderate_text("kill gore torture assault knife bomb gun")
    violence = result.categories[0]
    assert violence.confidence == 7 * 0.1
    assert violence.confidence > 0.7
    assert violence.severity == Severity.high
    assert [f.type for f in result.flags] == [FlagType.violence]


@pytest.mark.parametrize("count, flagged", [(5, False), (6, True)])
def test_adult_keyword_count_report_threshold(count, flagged):
    result = _moderator().moderate_text(" ".join(_ADULT[:count]))
    adult = result.categories[0]
    assert adult.name == "adult_content"
    assert adult.severity == Severity.medium
    assert (FlagType.adult_content in result.flag_types()) is flagged


@pytest.mark.parametrize(
    "text, severity",
    [
        ("buy now", Severity.medium),
        ("buy now, click here", Severity.medium),
        ("buy now, click here, act now", Severity.high),
        ("buy now, click here, act now, win big", Severity.high),
    ],
)
def test_spam_severity_bands(text, severity):
    result = _moderator().moderate_text(text)
    spam = result.categories[0]
    assert spam.name == "spam"
    assert spam.severity == severity
    assert [f.type for f in result.flags] == [FlagType.spam]


@pytest.mark.parametrize(
    "title, content_length, expected",
    [
        ("Oak", 50, None),
        ("Ox", 50, "Story title should be at least 3 characters long"),
        ("Oak", 49, "Story content seems too short - consider adding more detail"),
        ("Oak", 50_000, None),
        ("Oak", 50_001, "Story content is very long - consider breaking it into chapters"),
    ],
)
def test_story_limits_are_exclusive(title, content_length, expected):
    story = StoryPayload(title=title, nodes=[StoryNode(content="a" * content_length)])
    result = _moderator().moderate_story(story)
    assert result.suggestions == ([expected] if expected else [])


@pytest.mark.parametrize(
    "prompt, short",
    [("What if x?", False), ("What if?", True)],
)
def test_prompt_min_length_boundary(prompt, short):
    suggestions = _moderator().moderate_prompt(prompt).suggestions
    assert ("Prompt is very short - consider adding more context" in suggestions) is short
