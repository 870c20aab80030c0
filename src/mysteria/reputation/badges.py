"""Reputation score and badge tiers.

Tier names and labels are shown by the site's badge component; keep them in
sync with it.
"""

from __future__ import annotations

POINTS_PER_APPROVED_COMMENT = 2
POINTS_PER_REPLY = 1
POINTS_PER_CHALLENGE_WIN = 50

# Ascending by threshold.
BADGE_THRESHOLDS: list[dict] = [
    {"level": "newcomer", "min_score": 0, "label_en": "Newcomer", "label_sq": "I ri"},
    {"level": "regular", "min_score": 5, "label_en": "Regular", "label_sq": "I rregullt"},
    {"level": "contributor", "min_score": 10, "label_en": "Contributor", "label_sq": "Kontribues"},
    {"level": "veteran", "min_score": 25, "label_en": "Veteran", "label_sq": "Veteran"},
    {"level": "expert", "min_score": 50, "label_en": "Expert", "label_sq": "Ekspert"},
    {"level": "detective", "min_score": 100, "label_en": "Detective", "label_sq": "Detektiv"},
    {"level": "legend", "min_score": 150, "label_en": "Legend", "label_sq": "Legjendë"},
]

BADGE_LEVELS: list[str] = [tier["level"] for tier in BADGE_THRESHOLDS]


def compute_score(approved_comments: int, total_replies: int, challenge_wins: int) -> int:
    return (
        POINTS_PER_APPROVED_COMMENT * approved_comments
        + POINTS_PER_REPLY * total_replies
        + POINTS_PER_CHALLENGE_WIN * challenge_wins
    )


def resolve_badge(score: int, challenge_wins: int = 0) -> str:
    """Highest tier whose threshold is at or below ``score``.

    A challenge winner holds at least the detective tier whatever the score.
    """
    level = BADGE_THRESHOLDS[0]["level"]
    for tier in BADGE_THRESHOLDS:
        if score >= tier["min_score"]:
            level = tier["level"]
    if challenge_wins > 0 and badge_rank(level) < badge_rank("detective"):
        level = "detective"
    return level


def badge_rank(level: str) -> int:
    """Position of a tier in ascending order; unknown tiers rank lowest."""
    try:
        return BADGE_LEVELS.index(level)
    except ValueError:
        return 0
