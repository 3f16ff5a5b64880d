"""Droplet router package."""

from .config import CacheConfig, ClassifierConfig, EngineConfig, RoutingConfig

__all__ = ["CacheConfig", "ClassifierConfig", "EngineConfig", "RoutingConfig"]
