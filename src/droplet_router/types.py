"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

UNCATEGORIZED = "Uncategorized"
HIGH_CONFIDENCE = 0.6


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Best topic for a text fragment and the clamped score behind it."""

    topic: str
    confidence: float
    computed_at: datetime = field(default_factory=utc_now)

    @classmethod
    def uncategorized(cls) -> "ClassificationResult":
        return cls(topic=UNCATEGORIZED, confidence=0.0)

    @property
    def is_uncategorized(self) -> bool:
        return self.topic.lower() == UNCATEGORIZED.lower()

    @property
    def is_high_confidence(self) -> bool:
        return self.confidence >= HIGH_CONFIDENCE


@dataclass(frozen=True, slots=True)
class Bucket:
    """A named routing destination with its keyword set."""

    id: str
    name: str
    keywords: frozenset[str]
    color: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(slots=True)
class Entry:
    """A routed text fragment as recorded by the registry."""

    id: str
    bucket_id: str
    text: str
    topic: str
    confidence: float
    created_at: datetime = field(default_factory=utc_now)

    @property
    def confidence_percentage(self) -> str:
        return f"{self.confidence * 100:.0f}%"


class RoutePath(str, Enum):
    """Which branch of the decision procedure placed a fragment."""

    DIRECT = "direct"
    KEYWORD = "keyword"
    NEW_BUCKET = "new_bucket"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class RoutingDecision:
    """Placement chosen for one fragment."""

    target_bucket_id: str
    is_new_bucket: bool
    classification: ClassificationResult
    bucket: Bucket
    entry_id: str
    path: RoutePath
