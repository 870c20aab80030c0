"""Tests for reputation scoring and badge tiers."""

import pytest

from mysteria.reputation.badges import (
    BADGE_LEVELS,
    BADGE_THRESHOLDS,
    badge_rank,
    compute_score,
    resolve_badge,
)


class TestComputeScore:
    def test_weights(self) -> None:
        assert compute_score(approved_comments=3, total_replies=2, challenge_wins=1) == 3 * 2 + 2 + 50

    def test_zero(self) -> None:
        assert compute_score(0, 0, 0) == 0


class TestResolveBadge:
    @pytest.mark.parametrize(
        ("score", "expected"),
        [
            (0, "newcomer"),
            (4, "newcomer"),
            (5, "regular"),
            (10, "contributor"),
            (24, "contributor"),
            (25, "veteran"),
            (50, "expert"),
            (100, "detective"),
            (149, "detective"),
            (150, "legend"),
            (10_000, "legend"),
        ],
    )
    def test_thresholds(self, score: int, expected: str) -> None:
        assert resolve_badge(score) == expected

    def test_winner_is_at_least_detective(self) -> None:
        assert resolve_badge(50, challenge_wins=1) == "detective"

    def test_winner_keeps_higher_tier(self) -> None:
        assert resolve_badge(200, challenge_wins=1) == "legend"


class TestBadgeTable:
    def test_thresholds_ascending(self) -> None:
        scores = [tier["min_score"] for tier in BADGE_THRESHOLDS]
        assert scores == sorted(scores)

    def test_every_tier_has_both_labels(self) -> None:
        for tier in BADGE_THRESHOLDS:
            assert tier["label_en"]
            assert tier["label_sq"]

    def test_rank_follows_order(self) -> None:
        assert badge_rank("newcomer") < badge_rank("veteran") < badge_rank("legend")
        assert badge_rank("legend") == len(BADGE_LEVELS) - 1

    def test_unknown_rank_is_lowest(self) -> None:
        assert badge_rank("mystery") == 0
