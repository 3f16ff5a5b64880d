"""Configuration models for the classification and routing engine."""

from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field


class ClassifierConfig(BaseModel):
    """Configures the confidence threshold and input length gate."""

    model_config = ConfigDict(validate_assignment=True)

    minimum_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    min_text_length: int = Field(default=3, ge=1)


class CacheConfig(BaseModel):
    """Configures the two eviction bounds of the result cache."""

    model_config = ConfigDict(validate_assignment=True)

    entry_limit: int = Field(default=1000, ge=2)
    memory_limit_bytes: int = Field(default=50 * 1024 * 1024, gt=0)


class RoutingConfig(BaseModel):
    """Configures bucket synthesis for unmatched topics."""

    model_config = ConfigDict(validate_assignment=True)

    auto_create_buckets: bool = True


class EngineConfig(BaseModel):
    """Bundles every runtime knob of one engine instance.

    The engine holds references to the nested models, so runtime changes go
    through their fields: a host may flip `routing.auto_create_buckets` or
    move `classifier.minimum_confidence` between calls and the next call
    sees the new value. Replacing a whole section would not reach the
    engine, so the sections themselves are frozen.
    """

    model_config = ConfigDict(validate_assignment=True)

    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig, frozen=True)
    cache: CacheConfig = Field(default_factory=CacheConfig, frozen=True)
    routing: RoutingConfig = Field(default_factory=RoutingConfig, frozen=True)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        classifier = ClassifierConfig()
        cache = CacheConfig()
        routing = RoutingConfig()

        min_confidence = os.getenv("DROPLET_MIN_CONFIDENCE")
        if min_confidence:
            classifier.minimum_confidence = float(min_confidence)

        auto_create = os.getenv("DROPLET_AUTO_CREATE")
        if auto_create:
            routing.auto_create_buckets = auto_create.strip().lower() in {"1", "true", "yes", "on"}

        entry_limit = os.getenv("DROPLET_CACHE_ENTRIES")
        if entry_limit:
            cache.entry_limit = int(entry_limit)

        memory_limit = os.getenv("DROPLET_CACHE_MEMORY_BYTES")
        if memory_limit:
            cache.memory_limit_bytes = int(memory_limit)

        return cls(classifier=classifier, cache=cache, routing=routing)
