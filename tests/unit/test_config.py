import pytest
from pydantic import ValidationError

from droplet_router.config import CacheConfig, ClassifierConfig, EngineConfig, RoutingConfig


def test_defaults() -> None:
    config = EngineConfig()

    assert config.classifier.minimum_confidence == 0.6
    assert config.classifier.min_text_length == 3
    assert config.routing.auto_create_buckets is True
    assert config.cache.entry_limit == 1000
    assert config.cache.memory_limit_bytes == 50 * 1024 * 1024


def test_assignment_is_validated() -> None:
    config = CacheConfig()

    with pytest.raises(ValidationError):
        config.entry_limit = 1

    assert config.entry_limit == 1000


def test_sections_cannot_be_replaced_but_their_fields_can() -> None:
    config = EngineConfig()
    classifier = config.classifier

    with pytest.raises(ValidationError):
        config.classifier = ClassifierConfig(minimum_confidence=0.8)
    with pytest.raises(ValidationError):
        config.routing = RoutingConfig(auto_create_buckets=False)

    config.classifier.minimum_confidence = 0.8

    assert config.classifier is classifier
    assert config.classifier.minimum_confidence == 0.8


def test_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DROPLET_MIN_CONFIDENCE", "0.75")
    monkeypatch.setenv("DROPLET_AUTO_CREATE", "false")
    monkeypatch.setenv("DROPLET_CACHE_ENTRIES", "64")
    monkeypatch.setenv("DROPLET_CACHE_MEMORY_BYTES", "4096")

    config = EngineConfig.from_env()

    assert config.classifier.minimum_confidence == 0.75
    assert config.routing.auto_create_buckets is False
    assert config.cache.entry_limit == 64
    assert config.cache.memory_limit_bytes == 4096
