"""Rule tables -- the keyword/phrase lists and scoring constants used by the moderator.

Every category check has the same shape and differs only in the data held by
a :class:`CategoryRule`. The built-in tables come from :func:`default_rules`;
a YAML file with the layout produced by :func:`rules_to_dict` can replace any
section of them (see :func:`load_rules`), which is how tables are localised
or tuned without touching code.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from whatif.errors import RuleLoadError
from whatif.moderation.filters import AgeRestriction, FilterConfiguration
from whatif.moderation.models import FlagType, Severity


@dataclass(frozen=True)
class RulePattern:
    """A term searched for case-insensitively, and what a hit adds to the score."""

    pattern: str
    weight: float


@dataclass
class CategoryRule:
    """Detection table and scoring constants for one category."""

    name: str
    flag_type: FlagType
    filter_field: str
    keywords: list[RulePattern] = field(default_factory=list)
    phrases: list[RulePattern] = field(default_factory=list)
    cap: float = 0.9
    # (threshold, severity) pairs, highest first; confidence must exceed the threshold
    severity_bands: list[tuple[float, Severity]] = field(default_factory=list)
    default_severity: Severity = Severity.low
    report_threshold: Optional[float] = None
    always_report: bool = False
    fixed_confidence: Optional[float] = None
    age_restrictions: list[AgeRestriction] = field(default_factory=list)
    description: str = ""
    suggestion: str = ""

    def match(self, text: str) -> list[RulePattern]:
        """Return every keyword and phrase contained in *text* (each counted once)."""
        lowered = text.lower()
        return [p for p in (*self.keywords, *self.phrases) if p.pattern.lower() in lowered]

    def score(self, matches: list[RulePattern]) -> float:
        """Hit count times weight for each weight group, capped."""
        if self.fixed_confidence is not None:
            return self.fixed_confidence
        hits = Counter(p.weight for p in matches)
        return min(self.cap, sum(weight * count for weight, count in hits.items()))

    def severity_for(self, confidence: float) -> Severity:
        for threshold, severity in self.severity_bands:
            if confidence > threshold:
                return severity
        return self.default_severity

    def should_report(self, confidence: float, filters: FilterConfiguration) -> bool:
        """Decide whether a detected category also becomes a flag."""
        if self.age_restrictions and filters.age_restriction not in self.age_restrictions:
            return False
        if self.always_report or filters.strict_mode:
            return True
        return self.report_threshold is not None and confidence > self.report_threshold


@dataclass
class AggregationPolicy:
    """Constants used to turn flags into the final verdict."""

    inappropriate_block_threshold: float = 0.8
    review_confidence_threshold: float = 0.7
    confidence_floor: float = 0.1
    custom_term_confidence: float = 1.0


@dataclass
class StoryLimits:
    min_title_length: int = 3
    min_content_length: int = 50
    max_content_length: int = 50_000


@dataclass
class PromptLimits:
    min_length: int = 10
    max_length: int = 500
    harmful_patterns: list[str] = field(default_factory=lambda: [
        "how to harm", "how to hurt", "how to kill", "how to destroy",
        "illegal activities", "harmful advice", "dangerous instructions",
    ])
    harmful_confidence: float = 0.9


@dataclass
class RuleSet:
    """All tables and constants the moderator needs."""

    categories: list[CategoryRule] = field(default_factory=list)
    aggregation: AggregationPolicy = field(default_factory=AggregationPolicy)
    story: StoryLimits = field(default_factory=StoryLimits)
    prompt: PromptLimits = field(default_factory=PromptLimits)

    def category(self, name: str) -> Optional[CategoryRule]:
        for rule in self.categories:
            if rule.name == name:
                return rule
        return None


# ---------------------------------------------------------------------------
# Built-in tables
# ---------------------------------------------------------------------------


def _terms(weight: float, *terms: str) -> list[RulePattern]:
    return [RulePattern(pattern=t, weight=weight) for t in terms]


_GRADED = [(0.7, Severity.high), (0.4, Severity.medium)]


def default_rules() -> RuleSet:
    """Return a fresh copy of the built-in rule tables."""
    return RuleSet(categories=[
        CategoryRule(
            name="violence",
            flag_type=FlagType.violence,
            filter_field="enable_violence_filter",
            keywords=_terms(
                0.1,
                "kill", "murder", "death", "violence", "blood", "gore", "torture",
                "assault", "attack", "fight", "war", "battle", "weapon", "gun",
                "knife", "bomb", "explosion", "destruction", "harm", "hurt",
            ),
            phrases=_terms(
                0.3,
                "graphic violence", "explicit violence", "extreme violence",
                "violent death", "brutal murder", "torture scene",
            ),
            cap=0.9,
            severity_bands=list(_GRADED),
            report_threshold=0.7,
            description="Content contains violent themes",
            suggestion="Consider reducing or removing violent content",
        ),
        CategoryRule(
            name="adult_content",
            flag_type=FlagType.adult_content,
            filter_field="enable_adult_content_filter",
            keywords=_terms(
                0.1,
                "sex", "sexual", "nude", "naked", "porn", "adult", "explicit",
                "intimate", "romance", "love", "kiss", "touch", "body",
            ),
            phrases=_terms(
                0.3,
                "sexual content", "adult themes", "mature content", "explicit scenes",
                "romantic scenes", "intimate moments",
            ),
            cap=0.9,
            severity_bands=list(_GRADED),
            report_threshold=0.6,
            age_restrictions=[AgeRestriction.all],
            description="Content may contain adult themes",
            suggestion="Consider adding age restrictions or removing adult content",
        ),
        CategoryRule(
            name="hate_speech",
            flag_type=FlagType.hate_speech,
            filter_field="enable_hate_speech_filter",
            keywords=_terms(
                0.2,
                "hate", "racist", "sexist", "homophobic", "discrimination",
                "prejudice", "bias", "offensive", "insult", "derogatory",
            ),
            phrases=_terms(
                0.4,
                "hate speech", "discriminatory language", "offensive content",
                "derogatory remarks", "prejudiced views",
            ),
            cap=0.95,
            default_severity=Severity.critical,
            always_report=True,
            description="Content may contain hate speech or discriminatory language",
            suggestion="Please remove any hateful or discriminatory content",
        ),
        CategoryRule(
            name="spam",
            flag_type=FlagType.spam,
            filter_field="enable_spam_filter",
            phrases=_terms(
                0.2,
                "buy now", "click here", "free money", "win big", "limited time",
                "act now", "don't miss", "exclusive offer", "guaranteed",
                "no risk", "100% free", "instant", "immediate",
            ),
            cap=0.9,
            severity_bands=[(0.6, Severity.high)],
            default_severity=Severity.medium,
            always_report=True,
            description="Content appears to be spam or promotional",
            suggestion="Please remove promotional or spam content",
        ),
        CategoryRule(
            name="copyright",
            flag_type=FlagType.copyright,
            filter_field="enable_copyright_filter",
            phrases=_terms(
                0.0,
                "copyright", "©", "all rights reserved", "proprietary",
                "trademark", "™", "registered trademark", "®",
            ),
            fixed_confidence=0.8,
            default_severity=Severity.medium,
            always_report=True,
            description="Content may contain copyrighted material",
            suggestion="Please ensure you have rights to use this content",
        ),
    ])


# ---------------------------------------------------------------------------
# YAML (de)serialisation
# ---------------------------------------------------------------------------


def _patterns_to_list(patterns: list[RulePattern]) -> list[dict[str, Any]]:
    return [{"pattern": p.pattern, "weight": p.weight} for p in patterns]


def rules_to_dict(ruleset: RuleSet) -> dict[str, Any]:
    """Serialise *ruleset* into the layout :func:`load_rules` reads."""
    return {
        "categories": [
            {
                "name": r.name,
                "flag_type": r.flag_type.value,
                "filter": r.filter_field,
                "keywords": _patterns_to_list(r.keywords),
                "phrases": _patterns_to_list(r.phrases),
                "cap": r.cap,
                "severity_bands": [[t, s.value] for t, s in r.severity_bands],
                "default_severity": r.default_severity.value,
                "report_threshold": r.report_threshold,
                "always_report": r.always_report,
                "fixed_confidence": r.fixed_confidence,
                "age_restrictions": [a.value for a in r.age_restrictions],
                "description": r.description,
                "suggestion": r.suggestion,
            }
            for r in ruleset.categories
        ],
        "aggregation": {
            "inappropriate_block_threshold": ruleset.aggregation.inappropriate_block_threshold,
            "review_confidence_threshold": ruleset.aggregation.review_confidence_threshold,
            "confidence_floor": ruleset.aggregation.confidence_floor,
            "custom_term_confidence": ruleset.aggregation.custom_term_confidence,
        },
        "story": {
            "min_title_length": ruleset.story.min_title_length,
            "min_content_length": ruleset.story.min_content_length,
            "max_content_length": ruleset.story.max_content_length,
        },
        "prompt": {
            "min_length": ruleset.prompt.min_length,
            "max_length": ruleset.prompt.max_length,
            "harmful_patterns": list(ruleset.prompt.harmful_patterns),
            "harmful_confidence": ruleset.prompt.harmful_confidence,
        },
    }


def _parse_patterns(raw: Any, default_weight: float) -> list[RulePattern]:
    patterns = []
    for item in raw or []:
        if isinstance(item, str):
            patterns.append(RulePattern(pattern=item, weight=default_weight))
        else:
            patterns.append(
                RulePattern(pattern=str(item["pattern"]), weight=float(item.get("weight", default_weight)))
            )
    return patterns


def _parse_category(data: dict[str, Any]) -> CategoryRule:
    name = data["name"]
    fixed = data.get("fixed_confidence")
    threshold = data.get("report_threshold")
    return CategoryRule(
        name=name,
        flag_type=FlagType(data.get("flag_type", name)),
        filter_field=data.get("filter", f"enable_{name}_filter"),
        keywords=_parse_patterns(data.get("keywords"), float(data.get("keyword_weight", 0.1))),
        phrases=_parse_patterns(data.get("phrases"), float(data.get("phrase_weight", 0.3))),
        cap=float(data.get("cap", 0.9)),
        severity_bands=[(float(t), Severity(s)) for t, s in data.get("severity_bands", [])],
        default_severity=Severity(data.get("default_severity", "low")),
        report_threshold=float(threshold) if threshold is not None else None,
        always_report=bool(data.get("always_report", False)),
        fixed_confidence=float(fixed) if fixed is not None else None,
        age_restrictions=[AgeRestriction(a) for a in data.get("age_restrictions", [])],
        description=data.get("description", ""),
        suggestion=data.get("suggestion", ""),
    )


def load_rules(path: str | Path) -> RuleSet:
    """Load rule tables from a YAML file.

    Sections absent from the file keep their built-in values; a
    ``categories`` list, when present, replaces the built-in categories.
    """
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise RuleLoadError(f"Cannot read rule file {path}: {e}") from e
    if not isinstance(data, dict):
        raise RuleLoadError(f"Rule file {path} must contain a mapping")

    ruleset = default_rules()
    try:
        if "categories" in data:
            ruleset.categories = [_parse_category(c) for c in data["categories"] or []]
        if "aggregation" in data:
            ruleset.aggregation = AggregationPolicy(**data["aggregation"])
        if "story" in data:
            ruleset.story = StoryLimits(**data["story"])
        if "prompt" in data:
            ruleset.prompt = PromptLimits(**data["prompt"])
    except (KeyError, TypeError, ValueError) as e:
        raise RuleLoadError(f"Malformed rule file {path}: {e}") from e
    return ruleset
