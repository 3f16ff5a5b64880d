import math

import pytest

from droplet_router.classify.classifier import TextClassifier
from droplet_router.classify.similarity import LexicalSimilarityProvider, SimilarityProvider
from droplet_router.config import ClassifierConfig
from droplet_router.errors import NoTopicMatch, TextTooShort


class CountingProvider(SimilarityProvider):
    """Provider with scripted distances that counts every call."""

    def __init__(
        self,
        *,
        tokens: list[str] | None = None,
        word_distance: float = math.inf,
        sentence_distance: float = math.inf,
    ) -> None:
        self.tokens = tokens or []
        self._word_distance = word_distance
        self._sentence_distance = sentence_distance
        self.calls = 0

    def word_distance(self, token_a: str, token_b: str) -> float:
        self.calls += 1
        return self._word_distance

    def sentence_distance(self, sentence_a: str, sentence_b: str) -> float:
        self.calls += 1
        return self._sentence_distance

    def extract_content_tokens(self, text: str) -> list[str]:
        self.calls += 1
        return list(self.tokens)


class FailingProvider(CountingProvider):
    def sentence_distance(self, sentence_a: str, sentence_b: str) -> float:
        raise RuntimeError("model unavailable")


def test_text_too_short_is_rejected_before_cache() -> None:
    classifier = TextClassifier(CountingProvider())

    with pytest.raises(TextTooShort) as exc_info:
        classifier.classify("ab", ["Bugs"])

    assert exc_info.value.length == 2
    assert len(classifier.cache) == 0


def test_three_characters_is_long_enough() -> None:
    classifier = TextClassifier(CountingProvider())

    result = classifier.classify("abc", [])

    assert result.topic == "Uncategorized"


def test_empty_candidates_short_circuit_and_are_cached() -> None:
    provider = CountingProvider()
    classifier = TextClassifier(provider)

    result = classifier.classify("anything at all", [])

    assert result.topic == "Uncategorized"
    assert result.confidence == 0.0
    assert provider.calls == 0
    assert len(classifier.cache) == 1
    assert classifier.classify("anything at all", []) is result


def test_containment_alone_reaches_default_threshold() -> None:
    classifier = TextClassifier(CountingProvider())

    result = classifier.classify("I need to fix the login bug", ["Bugs", "bug"])

    assert result.topic == "bug"
    assert result.confidence == pytest.approx(0.6)


def test_second_call_is_served_from_cache() -> None:
    provider = CountingProvider(sentence_distance=0.5)
    classifier = TextClassifier(provider)

    first = classifier.classify("Plan the roadmap review", ["roadmap"])
    calls_after_first = provider.calls
    second = classifier.classify("Plan the roadmap review", ["roadmap"])

    assert second is first
    assert provider.calls == calls_after_first


def test_composite_score_adds_containment_tokens_and_sentence() -> None:
    provider = CountingProvider(tokens=["roadmap", "review"], word_distance=0.5, sentence_distance=0.5)
    classifier = TextClassifier(provider)

    result = classifier.classify("Plan the roadmap review", ["roadmap"])

    # 0.6 containment + 2 * 0.5 * 0.1 tokens + 0.5 * 0.3 sentence
    assert result.confidence == pytest.approx(0.85)


def test_token_signal_is_unbounded_until_clamped() -> None:
    tokens = [f"token{i}" for i in range(20)]
    classifier = TextClassifier(
        CountingProvider(tokens=tokens, word_distance=0.0),
        config=ClassifierConfig(minimum_confidence=0.0),
    )

    result = classifier.classify("nothing contained here", ["elsewhere"])

    assert result.confidence == 1.0


def test_non_finite_distances_count_as_zero_similarity() -> None:
    classifier = TextClassifier(
        CountingProvider(tokens=["alpha"], word_distance=math.nan, sentence_distance=math.inf),
        config=ClassifierConfig(minimum_confidence=0.0),
    )

    result = classifier.classify("alpha beta", ["alpha"])

    assert result.confidence == pytest.approx(0.6)


def test_ties_keep_first_candidate() -> None:
    classifier = TextClassifier(CountingProvider())

    result = classifier.classify("alpha and beta go together", ["beta", "alpha"])

    assert result.topic == "beta"


def test_low_score_raises_no_topic_match_and_is_not_cached() -> None:
    classifier = TextClassifier(CountingProvider())

    with pytest.raises(NoTopicMatch) as exc_info:
        classifier.classify("completely unrelated words", ["Bugs"])

    assert exc_info.value.threshold == 0.6
    assert len(classifier.cache) == 0


def test_raising_threshold_applies_to_cached_results() -> None:
    provider = CountingProvider()
    classifier = TextClassifier(provider)
    text = "I need to fix the login bug"

    assert classifier.classify(text, ["bug"]).confidence == pytest.approx(0.6)
    calls = provider.calls

    classifier.minimum_confidence = 0.7
    with pytest.raises(NoTopicMatch):
        classifier.classify(text, ["bug"])

    classifier.minimum_confidence = 0.6
    assert classifier.classify(text, ["bug"]).topic == "bug"
    assert provider.calls == calls


def test_fallback_never_raises() -> None:
    classifier = TextClassifier(CountingProvider())

    short = classifier.classify_with_fallback("ab", ["Bugs"])
    unmatched = classifier.classify_with_fallback("completely unrelated words", ["Bugs"])

    assert (short.topic, short.confidence) == ("Uncategorized", 0.0)
    assert (unmatched.topic, unmatched.confidence) == ("Uncategorized", 0.0)


def test_fallback_absorbs_provider_failures() -> None:
    classifier = TextClassifier(FailingProvider())

    result = classifier.classify_with_fallback("fix the login bug", ["bug"])

    assert result.topic == "Uncategorized"
    assert len(classifier.cache) == 0


def test_invalid_threshold_assignment_is_rejected() -> None:
    classifier = TextClassifier(CountingProvider())

    with pytest.raises(ValueError):
        classifier.minimum_confidence = 1.5

    assert classifier.minimum_confidence == 0.6


def test_suggest_topic_picks_most_frequent_noun() -> None:
    classifier = TextClassifier(LexicalSimilarityProvider())

    assert classifier.suggest_topic("meeting notes about the meeting schedule") == "Meeting"
    assert classifier.suggest_topic("to do it") == "Uncategorized"


def test_clear_cache_forces_recompute() -> None:
    provider = CountingProvider()
    classifier = TextClassifier(provider)
    classifier.classify("fix the login bug", ["bug"])
    calls = provider.calls

    classifier.clear_cache()
    classifier.classify("fix the login bug", ["bug"])

    assert provider.calls > calls
