"""Composite-score topic classifier with result caching."""

from __future__ import annotations

import logging
import math
from collections import Counter
from collections.abc import Sequence

from droplet_router.cache.result_cache import ResultCache, cache_key
from droplet_router.classify.similarity import SimilarityProvider
from droplet_router.config import ClassifierConfig
from droplet_router.errors import ClassificationError, NoTopicMatch, TextTooShort
from droplet_router.obs.tracing import Timer
from droplet_router.types import UNCATEGORIZED, ClassificationResult

logger = logging.getLogger(__name__)

CONTAINMENT_WEIGHT = 0.6
TOKEN_SIMILARITY_WEIGHT = 0.1
SENTENCE_SIMILARITY_WEIGHT = 0.3
TOPIC_SENTENCE_TEMPLATE = "This is about {topic}"


class TextClassifier:
    """Picks the best candidate topic for a short text fragment.

    Scoring per candidate topic:
    1. Containment: `CONTAINMENT_WEIGHT` when the lowercase topic occurs in the
       lowercase text.
    2. Token similarity: for every content token of the text,
       `TOKEN_SIMILARITY_WEIGHT * max(0, 1 - word_distance(token, topic))`.
       This term is not normalized, so long texts can saturate it.
    3. Sentence similarity: `SENTENCE_SIMILARITY_WEIGHT * max(0, 1 - d)` where
       `d` is the sentence distance between the text and
       "This is about {topic}".
    4. The sum is clamped to `[0, 1]`.

    The strictly highest score wins; ties keep the earlier candidate.

    Results are memoized by the exact text. Only results that `classify`
    actually returns are stored, so a `NoTopicMatch` leaves the cache as it
    was. The threshold is re-checked on cache hits so that a raised
    `minimum_confidence` applies to previously seen text as well.
    """

    def __init__(
        self,
        provider: SimilarityProvider,
        *,
        config: ClassifierConfig | None = None,
        cache: ResultCache | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or ClassifierConfig()
        self.cache = cache if cache is not None else ResultCache()

    @property
    def minimum_confidence(self) -> float:
        return self.config.minimum_confidence

    @minimum_confidence.setter
    def minimum_confidence(self, value: float) -> None:
        self.config.minimum_confidence = value

    def classify(self, text: str, known_topics: Sequence[str]) -> ClassificationResult:
        """Classify `text` against `known_topics`.

        Raises:
            TextTooShort: `text` is shorter than `min_text_length`.
            NoTopicMatch: the best score is below `minimum_confidence`.
        """

        if len(text) < self.config.min_text_length:
            logger.warning("Text too short for classification: %d chars", len(text))
            raise TextTooShort(len(text), self.config.min_text_length)

        key = cache_key(text)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for classification")
            self._check_threshold(cached, allow_sentinel=True)
            return cached

        if not known_topics:
            result = ClassificationResult.uncategorized()
            self.cache.put(key, result)
            return result

        with Timer() as timer:
            result = self._score_topics(text, known_topics)
        logger.debug(
            "Scored %d topics in %.2fms", len(known_topics), timer.elapsed_ms
        )

        self._check_threshold(result)
        self.cache.put(key, result)
        logger.info("Classified as '%s' with confidence %.3f", result.topic, result.confidence)
        return result

    def classify_with_fallback(
        self, text: str, known_topics: Sequence[str]
    ) -> ClassificationResult:
        """Like `classify`, but returns `Uncategorized`/0.0 instead of raising."""

        try:
            return self.classify(text, known_topics)
        except ClassificationError as exc:
            logger.info("Classification fallback to %s: %s", UNCATEGORIZED, exc)
        except Exception:
            logger.warning(
                "Similarity provider failed, falling back to %s", UNCATEGORIZED, exc_info=True
            )
        return ClassificationResult.uncategorized()

    def suggest_topic(self, text: str) -> str:
        """Most frequent noun longer than three characters, capitalized."""

        nouns = Counter(noun for noun in self.provider.extract_nouns(text) if len(noun) > 3)
        if not nouns:
            return UNCATEGORIZED
        noun, _ = nouns.most_common(1)[0]
        return noun.capitalize()

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Classification cache cleared")

    def _check_threshold(
        self, result: ClassificationResult, *, allow_sentinel: bool = False
    ) -> None:
        # A cached empty-candidate sentinel was a successful result when stored.
        if allow_sentinel and result.is_uncategorized and result.confidence == 0.0:
            return
        threshold = self.config.minimum_confidence
        if result.confidence < threshold:
            logger.info(
                "Classification confidence %.3f below threshold %.3f",
                result.confidence,
                threshold,
            )
            raise NoTopicMatch(result.topic, result.confidence, threshold)

    def _score_topics(self, text: str, topics: Sequence[str]) -> ClassificationResult:
        lowered = text.lower()
        tokens = self.provider.extract_content_tokens(text)

        best_topic = UNCATEGORIZED
        best_score = 0.0
        for topic in topics:
            score = self._score(text, lowered, tokens, topic)
            if score > best_score:
                best_score = score
                best_topic = topic

        return ClassificationResult(topic=best_topic, confidence=best_score)

    def _score(self, text: str, lowered: str, tokens: list[str], topic: str) -> float:
        topic_lower = topic.lower()
        score = 0.0

        if topic_lower in lowered:
            score += CONTAINMENT_WEIGHT

        for token in tokens:
            distance = self.provider.word_distance(token, topic_lower)
            score += _similarity(distance) * TOKEN_SIMILARITY_WEIGHT

        topic_sentence = TOPIC_SENTENCE_TEMPLATE.format(topic=topic)
        distance = self.provider.sentence_distance(text, topic_sentence)
        score += _similarity(distance) * SENTENCE_SIMILARITY_WEIGHT

        return min(1.0, max(0.0, score))


def _similarity(distance: float) -> float:
    if not math.isfinite(distance):
        return 0.0
    return max(0.0, 1.0 - distance)
