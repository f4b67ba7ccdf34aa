"""Core timeline types, cursor codec and relevance scoring."""

from timeline.core.cursor import CursorData, decode_cursor, encode_cursor
from timeline.core.model import (
    Connection,
    ConnectionStatus,
    Post,
    PostRef,
    ScoredPost,
    TimelinePage,
    User,
    Visibility,
)
from timeline.core.scoring import RelevanceScorer, ScoringWeights, rank

__all__ = [
    # Model
    "Connection",
    "ConnectionStatus",
    "Post",
    "PostRef",
    "ScoredPost",
    "TimelinePage",
    "User",
    "Visibility",
    # Cursor
    "CursorData",
    "encode_cursor",
    "decode_cursor",
    # Scoring
    "RelevanceScorer",
    "ScoringWeights",
    "rank",
]
