"""Routing decisions: existing bucket, new bucket, or the catch-all."""

from __future__ import annotations

import logging
import random
from collections.abc import Iterator
from contextlib import contextmanager

from droplet_router.cache.result_cache import ResultCache
from droplet_router.classify.classifier import TextClassifier
from droplet_router.classify.similarity import LexicalSimilarityProvider, SimilarityProvider
from droplet_router.config import EngineConfig, RoutingConfig
from droplet_router.errors import RoutingFailed
from droplet_router.obs.tracing import Timer, TraceStore
from droplet_router.routing.registry import InMemoryRegistry, Registry
from droplet_router.types import (
    UNCATEGORIZED,
    Bucket,
    ClassificationResult,
    Entry,
    RoutePath,
    RoutingDecision,
)

logger = logging.getLogger(__name__)

BUCKET_PALETTE = (
    "blue",
    "purple",
    "pink",
    "red",
    "orange",
    "yellow",
    "green",
    "teal",
    "cyan",
    "indigo",
)


class RoutingEngine:
    """Turns a text fragment into a bucket placement.

    Decision order, first match wins:
    1. a bucket whose name equals the classified topic (case-insensitive);
    2. a bucket whose keyword set contains the topic (case-insensitive);
    3. a new bucket named after the topic, when `should_create_new_bucket`;
    4. the lazily created `Uncategorized` bucket.

    Classification never fails a route: the fallback form is always used.
    Any registry failure is re-raised as `RoutingFailed`.
    """

    def __init__(
        self,
        registry: Registry,
        classifier: TextClassifier,
        *,
        config: RoutingConfig | None = None,
        rng: random.Random | None = None,
        trace_store: TraceStore | None = None,
    ) -> None:
        self.registry = registry
        self.classifier = classifier
        self.config = config or RoutingConfig()
        self.rng = rng or random.Random()
        self.trace_store = trace_store

    @property
    def auto_create_buckets(self) -> bool:
        return self.config.auto_create_buckets

    @auto_create_buckets.setter
    def auto_create_buckets(self, value: bool) -> None:
        self.config.auto_create_buckets = value

    def route(self, text: str) -> RoutingDecision:
        with Timer() as timer:
            with self._registry_call("list buckets"):
                buckets = self.registry.list_buckets()

            classification = self.classifier.classify_with_fallback(
                text, candidate_topics(buckets)
            )
            logger.info(
                "Routing content classified as '%s' with confidence %.3f",
                classification.topic,
                classification.confidence,
            )

            bucket, path = self._select_bucket(classification, buckets)

            with self._registry_call("record entry"):
                entry_id = self.registry.record_entry(
                    bucket.id, text, classification.topic, classification.confidence
                )

            decision = RoutingDecision(
                target_bucket_id=bucket.id,
                is_new_bucket=path is RoutePath.NEW_BUCKET,
                classification=classification,
                bucket=bucket,
                entry_id=entry_id,
                path=path,
            )

        logger.info(
            "Routed entry to bucket '%s' via %s (new: %s)",
            bucket.name,
            path.value,
            decision.is_new_bucket,
        )
        if self.trace_store is not None:
            self.trace_store.record(decision, timer.elapsed_ms)
        return decision

    def should_create_new_bucket(self, topic: str, confidence: float) -> bool:
        return (
            self.config.auto_create_buckets
            and confidence >= self.classifier.minimum_confidence
            and topic.lower() != UNCATEGORIZED.lower()
        )

    def move_entry(self, entry_id: str, bucket_id: str) -> Entry:
        """Reassign an entry; its topic becomes the target bucket's name."""

        with self._registry_call("move entry"):
            target = next(
                (bucket for bucket in self.registry.list_buckets() if bucket.id == bucket_id),
                None,
            )
            if target is None:
                raise RoutingFailed(f"Unknown bucket: {bucket_id}")
            entry = self.registry.move_entry(entry_id, bucket_id, target.name)
        logger.info("Moved entry to bucket '%s'", target.name)
        return entry

    def _select_bucket(
        self, classification: ClassificationResult, buckets: list[Bucket]
    ) -> tuple[Bucket, RoutePath]:
        topic = classification.topic.lower()

        for bucket in buckets:
            if bucket.name.lower() == topic:
                return bucket, RoutePath.DIRECT

        for bucket in buckets:
            if any(keyword.lower() == topic for keyword in bucket.keywords):
                return bucket, RoutePath.KEYWORD

        if self.should_create_new_bucket(classification.topic, classification.confidence):
            with self._registry_call("create bucket"):
                bucket = self.registry.create_bucket(
                    classification.topic,
                    {topic},
                    self._pick_color(),
                )
            return bucket, RoutePath.NEW_BUCKET

        with self._registry_call("get fallback bucket"):
            bucket = self.registry.get_or_create_fallback_bucket()
        return bucket, RoutePath.FALLBACK

    def _pick_color(self) -> str:
        return self.rng.choice(BUCKET_PALETTE)

    @contextmanager
    def _registry_call(self, operation: str) -> Iterator[None]:
        try:
            yield
        except RoutingFailed:
            raise
        except Exception as exc:
            logger.error("Routing failed during %s: %s", operation, exc)
            raise RoutingFailed(f"Routing failed during {operation}: {exc}") from exc


def build_routing_engine(
    config: EngineConfig | None = None,
    *,
    provider: SimilarityProvider | None = None,
    registry: Registry | None = None,
    rng: random.Random | None = None,
    trace_store: TraceStore | None = None,
) -> RoutingEngine:
    """Wire cache, classifier and engine around one shared `EngineConfig`."""

    config = config or EngineConfig()
    classifier = TextClassifier(
        provider or LexicalSimilarityProvider(),
        config=config.classifier,
        cache=ResultCache(config.cache),
    )
    return RoutingEngine(
        registry if registry is not None else InMemoryRegistry(),
        classifier,
        config=config.routing,
        rng=rng,
        trace_store=trace_store,
    )


def candidate_topics(buckets: list[Bucket]) -> list[str]:
    """Bucket names each followed by that bucket's keywords, sorted."""

    topics: list[str] = []
    for bucket in buckets:
        topics.append(bucket.name)
        topics.extend(sorted(bucket.keywords))
    return topics
