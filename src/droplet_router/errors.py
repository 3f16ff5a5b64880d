"""Error taxonomy for classification, registry and routing failures."""

from __future__ import annotations


class DropletRouterError(Exception):
    """Base class for every error raised by this package."""


class ClassificationError(DropletRouterError):
    """Classification could not produce a usable topic."""


class TextTooShort(ClassificationError):
    def __init__(self, length: int, minimum: int) -> None:
        super().__init__(
            f"Text is too short for classification ({length} chars, minimum {minimum})"
        )
        self.length = length
        self.minimum = minimum


class NoTopicMatch(ClassificationError):
    def __init__(self, topic: str, confidence: float, threshold: float) -> None:
        super().__init__(
            f"No topic matched with sufficient confidence "
            f"(best '{topic}' at {confidence:.3f}, threshold {threshold:.3f})"
        )
        self.topic = topic
        self.confidence = confidence
        self.threshold = threshold


class RegistryError(DropletRouterError):
    """A bucket or entry operation was rejected by the registry."""


class DuplicateName(RegistryError):
    def __init__(self, name: str) -> None:
        super().__init__(f"A bucket named '{name}' already exists")
        self.name = name


class InvalidBucketName(RegistryError):
    """Bucket name is empty or longer than the allowed length."""


class InvalidBucket(RegistryError):
    def __init__(self, bucket_id: str) -> None:
        super().__init__(f"Unknown bucket: {bucket_id}")
        self.bucket_id = bucket_id


class InvalidEntry(RegistryError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Unknown entry: {entry_id}")
        self.entry_id = entry_id


class RoutingFailed(DropletRouterError):
    """Routing aborted because a registry call failed."""
