"""Bucket registry contract and an in-memory adapter."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import Protocol

from droplet_router.errors import (
    DuplicateName,
    InvalidBucket,
    InvalidBucketName,
    InvalidEntry,
)
from droplet_router.types import UNCATEGORIZED, Bucket, Entry

logger = logging.getLogger(__name__)

MAX_BUCKET_NAME_LENGTH = 50
FALLBACK_KEYWORDS = ("uncategorized", "other", "misc")
FALLBACK_COLOR = "gray"


class Registry(Protocol):
    """Storage contract the routing engine reads from and writes to."""

    def list_buckets(self) -> list[Bucket]:
        """Return all buckets in creation order."""

    def create_bucket(self, name: str, seed_keywords: Iterable[str], color: str) -> Bucket:
        """Create a bucket; raises `DuplicateName` on a case-insensitive clash."""

    def get_or_create_fallback_bucket(self) -> Bucket:
        """Return the `Uncategorized` bucket, creating it on first use."""

    def record_entry(self, bucket_id: str, text: str, topic: str, confidence: float) -> str:
        """Persist a routed fragment; raises `InvalidBucket` for unknown ids."""

    def move_entry(self, entry_id: str, bucket_id: str, topic: str) -> Entry:
        """Reassign a recorded fragment to another bucket."""


class InMemoryRegistry:
    """Dict-backed registry that lives for the process lifetime.

    Suitable for tests, previews and hosts that persist decisions elsewhere.
    Bucket names are trimmed and must be 1 to 50 characters; keywords are
    stored lowercase. Deleting a bucket deletes its entries.
    """

    def __init__(self) -> None:
        self._buckets: dict[str, Bucket] = {}
        self._entries: dict[str, Entry] = {}

    def list_buckets(self) -> list[Bucket]:
        return list(self._buckets.values())

    def get_bucket(self, bucket_id: str) -> Bucket:
        bucket = self._buckets.get(bucket_id)
        if bucket is None:
            raise InvalidBucket(bucket_id)
        return bucket

    def find_bucket(self, name: str) -> Bucket | None:
        wanted = name.strip().lower()
        return next(
            (bucket for bucket in self._buckets.values() if bucket.name.lower() == wanted),
            None,
        )

    def create_bucket(self, name: str, seed_keywords: Iterable[str], color: str) -> Bucket:
        trimmed = name.strip()
        if not trimmed:
            raise InvalidBucketName("Bucket name must be at least 1 character")
        if len(trimmed) > MAX_BUCKET_NAME_LENGTH:
            raise InvalidBucketName(
                f"Bucket name must be {MAX_BUCKET_NAME_LENGTH} characters or less"
            )
        if self.find_bucket(trimmed) is not None:
            raise DuplicateName(trimmed)

        bucket = Bucket(
            id=str(uuid.uuid4()),
            name=trimmed,
            keywords=frozenset(
                keyword.strip().lower() for keyword in seed_keywords if keyword.strip()
            ),
            color=color,
        )
        self._buckets[bucket.id] = bucket
        logger.info("Created bucket: %s", trimmed)
        return bucket

    def get_or_create_fallback_bucket(self) -> Bucket:
        existing = self.find_bucket(UNCATEGORIZED)
        if existing is not None:
            return existing
        return self.create_bucket(UNCATEGORIZED, FALLBACK_KEYWORDS, FALLBACK_COLOR)

    def delete_bucket(self, bucket_id: str) -> None:
        bucket = self.get_bucket(bucket_id)
        del self._buckets[bucket_id]
        orphaned = [entry.id for entry in self._entries.values() if entry.bucket_id == bucket_id]
        for entry_id in orphaned:
            del self._entries[entry_id]
        logger.info("Deleted bucket: %s (%d entries)", bucket.name, len(orphaned))

    def record_entry(self, bucket_id: str, text: str, topic: str, confidence: float) -> str:
        bucket = self.get_bucket(bucket_id)
        entry = Entry(
            id=str(uuid.uuid4()),
            bucket_id=bucket_id,
            text=text,
            topic=topic,
            confidence=confidence,
        )
        self._entries[entry.id] = entry
        logger.info("Recorded entry in bucket '%s' with confidence %.3f", bucket.name, confidence)
        return entry.id

    def get_entry(self, entry_id: str) -> Entry:
        entry = self._entries.get(entry_id)
        if entry is None:
            raise InvalidEntry(entry_id)
        return entry

    def list_entries(self, bucket_id: str | None = None) -> list[Entry]:
        """Entries newest first, optionally limited to one bucket."""
        if bucket_id is not None:
            self.get_bucket(bucket_id)
        entries = [
            entry
            for entry in self._entries.values()
            if bucket_id is None or entry.bucket_id == bucket_id
        ]
        return list(reversed(entries))

    def move_entry(self, entry_id: str, bucket_id: str, topic: str) -> Entry:
        entry = self.get_entry(entry_id)
        self.get_bucket(bucket_id)
        entry.bucket_id = bucket_id
        entry.topic = topic
        return entry

    def delete_entry(self, entry_id: str) -> None:
        self.get_entry(entry_id)
        del self._entries[entry_id]
