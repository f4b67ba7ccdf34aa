"""Relevance scoring for timeline candidates.

The score is a weighted sum of independent signals:
- recency: hyperbolic decay with post age, strictly decreasing
- affinity: fixed bonus when the author is an accepted connection
- engagement: saturating growth with the post's engagement count
- membership: small bonus per circle/group shared with the viewer, capped

Scores are recomputed for every feed build and never stored as a rank.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone

from timeline.config import Settings, settings
from timeline.core.model import Post, ScoredPost, User


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """Tunable constants for the relevance model."""

    recency_weight: float = 30.0
    recency_half_life_hours: float = 24.0
    affinity_bonus: float = 50.0
    engagement_weight: float = 20.0
    engagement_saturation: float = 25.0
    circle_bonus: float = 3.0
    group_bonus: float = 4.5
    membership_cap: float = 15.0

    def __post_init__(self) -> None:
        for name in (
            "recency_weight",
            "affinity_bonus",
            "engagement_weight",
            "circle_bonus",
            "group_bonus",
            "membership_cap",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")
        if self.recency_half_life_hours <= 0:
            raise ValueError("recency_half_life_hours must be positive")
        if self.engagement_saturation <= 0:
            raise ValueError("engagement_saturation must be positive")

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> ScoringWeights:
        config = config or settings
        return cls(
            recency_weight=config.score_recency_weight,
            recency_half_life_hours=config.score_recency_half_life_hours,
            affinity_bonus=config.score_affinity_bonus,
            engagement_weight=config.score_engagement_weight,
            engagement_saturation=config.score_engagement_saturation,
            circle_bonus=config.score_circle_bonus,
            group_bonus=config.score_group_bonus,
            membership_cap=config.score_membership_cap,
        )


class RelevanceScorer:
    """Computes a non-negative relevance score for (post, viewer, now)."""

    def __init__(self, weights: ScoringWeights | None = None) -> None:
        self.weights = weights or ScoringWeights.from_settings()

    def recency(self, post: Post, now: datetime) -> float:
        """Hyperbolic decay over age.

        Posts dated after `now` (clock skew) keep rising toward twice the
        weight, so fresher still means strictly higher on both sides of zero.
        """
        age_hours = (now - post.created_at).total_seconds() / 3600
        decay = 1.0 / (1.0 + abs(age_hours) / self.weights.recency_half_life_hours)
        if age_hours < 0:
            decay = 2.0 - decay
        return self.weights.recency_weight * decay

    def affinity(self, post: Post, user: User) -> float:
        if user.is_connected_to(post.author_id):
            return self.weights.affinity_bonus
        return 0.0

    def engagement(self, post: Post) -> float:
        count = max(0, post.engagement_count)
        return self.weights.engagement_weight * (
            1.0 - math.exp(-count / self.weights.engagement_saturation)
        )

    def membership(self, post: Post, user: User) -> float:
        shared_circles = len(post.circle_ids & user.circle_ids)
        shared_groups = len(post.group_ids & user.group_ids)
        bonus = (
            shared_circles * self.weights.circle_bonus
            + shared_groups * self.weights.group_bonus
        )
        return min(bonus, self.weights.membership_cap)

    def score(self, post: Post, user: User, now: datetime | None = None) -> float:
        """Score a post for a viewer at a point in time."""
        now = now or datetime.now(timezone.utc)
        return (
            self.recency(post, now)
            + self.affinity(post, user)
            + self.engagement(post)
            + self.membership(post, user)
        )

    def score_all(
        self, posts: Iterable[Post], user: User, now: datetime | None = None
    ) -> list[ScoredPost]:
        now = now or datetime.now(timezone.utc)
        return [ScoredPost(post=post, score=self.score(post, user, now)) for post in posts]


def rank(scored: Iterable[ScoredPost]) -> list[ScoredPost]:
    """Order by score desc, then creation time desc, then id desc.

    The full tie-break makes the order deterministic for identical inputs.
    """
    return sorted(
        scored,
        key=lambda s: (s.score, s.post.created_at, s.post.id),
        reverse=True,
    )
