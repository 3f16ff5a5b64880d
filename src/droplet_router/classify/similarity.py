"""Similarity provider abstractions and concrete backends."""

from __future__ import annotations

import logging
import math
import re
from abc import ABC, abstractmethod
from typing import Any

import numpy as np

logger = logging.getLogger(__name__)

_WORD_PATTERN = re.compile(r"[^\W\d_]+", flags=re.UNICODE)

_STOPWORDS = frozenset(
    {
        "the", "and", "for", "are", "but", "not", "you", "all", "any", "can",
        "her", "was", "one", "our", "out", "his", "has", "had", "how", "its",
        "who", "did", "get", "him", "she", "they", "them", "this", "that",
        "these", "those", "with", "from", "have", "will", "would", "should",
        "could", "into", "about", "there", "their", "what", "when", "where",
        "which", "while", "been", "being", "were", "than", "then", "also",
        "just", "some", "such", "very", "your", "yours", "mine", "over",
        "under", "again", "here", "why", "does", "doing", "each", "few",
        "more", "most", "other", "only", "own", "same", "too", "off",
    }
)

CONTENT_POS = frozenset({"NOUN", "PROPN", "VERB", "ADJ"})
NOUN_POS = frozenset({"NOUN", "PROPN"})


class SimilarityProvider(ABC):
    """Distance and token-extraction signals consumed by the classifier.

    Distances live in `[0, inf)`: smaller means more similar. Returning
    `math.inf` for unknown tokens makes the converted similarity zero.
    """

    @abstractmethod
    def word_distance(self, token_a: str, token_b: str) -> float:
        """Distance between two single words."""

    @abstractmethod
    def sentence_distance(self, sentence_a: str, sentence_b: str) -> float:
        """Distance between two sentences."""

    @abstractmethod
    def extract_content_tokens(self, text: str) -> list[str]:
        """Lowercase nouns, verbs and adjectives longer than two characters."""

    def extract_nouns(self, text: str) -> list[str]:
        """Lowercase nouns; backends without a tagger reuse content tokens."""
        return self.extract_content_tokens(text)


class LexicalSimilarityProvider(SimilarityProvider):
    """Deterministic provider based on character and word overlap.

    There is no model behind it: content tokens are stopword-filtered words,
    word distance is one minus the Jaccard overlap of padded character
    trigrams, and sentence distance is one minus the Jaccard overlap of
    lowercase word sets. Used by tests and offline setups where spaCy models
    are not installed.
    """

    def word_distance(self, token_a: str, token_b: str) -> float:
        grams_a = _char_trigrams(token_a)
        grams_b = _char_trigrams(token_b)
        if not grams_a or not grams_b:
            return math.inf
        return 1.0 - _jaccard(grams_a, grams_b)

    def sentence_distance(self, sentence_a: str, sentence_b: str) -> float:
        words_a = set(_words(sentence_a))
        words_b = set(_words(sentence_b))
        if not words_a or not words_b:
            return math.inf
        return 1.0 - _jaccard(words_a, words_b)

    def extract_content_tokens(self, text: str) -> list[str]:
        return [word for word in _words(text) if len(word) > 2 and word not in _STOPWORDS]


class SpacySimilarityProvider(SimilarityProvider):
    """spaCy tagging and word vectors plus a sentence-transformers encoder.

    Both models load lazily on first use. Pass `nlp` or `encoder` to reuse
    already loaded objects (or stubs in tests). The spaCy model must ship
    static vectors (`en_core_web_md` or `en_core_web_lg`) for word distance
    to be meaningful; tokens without a vector are treated as unknown.
    """

    def __init__(
        self,
        *,
        spacy_model: str = "en_core_web_md",
        sentence_model: str = "all-MiniLM-L6-v2",
        nlp: Any | None = None,
        encoder: Any | None = None,
    ) -> None:
        self.spacy_model = spacy_model
        self.sentence_model = sentence_model
        self._nlp = nlp
        self._encoder = encoder

    @property
    def nlp(self) -> Any:
        if self._nlp is None:
            try:
                import spacy
            except ImportError as exc:
                raise RuntimeError(
                    "spaCy is not available. Install with: pip install 'droplet-router[nlp]'"
                ) from exc
            try:
                self._nlp = spacy.load(self.spacy_model)
            except OSError as exc:
                logger.warning("spaCy model '%s' not found", self.spacy_model)
                raise RuntimeError(
                    f"Install the model with: python -m spacy download {self.spacy_model}"
                ) from exc
            logger.info("Loaded spaCy model: %s", self.spacy_model)
        return self._nlp

    @property
    def encoder(self) -> Any:
        if self._encoder is None:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as exc:
                raise RuntimeError(
                    "sentence-transformers is not available. "
                    "Install with: pip install 'droplet-router[nlp]'"
                ) from exc
            self._encoder = SentenceTransformer(self.sentence_model)
            logger.info("Loaded sentence encoder: %s", self.sentence_model)
        return self._encoder

    def word_distance(self, token_a: str, token_b: str) -> float:
        vector_a = self._word_vector(token_a)
        vector_b = self._word_vector(token_b)
        if vector_a is None or vector_b is None:
            return math.inf
        return _cosine_distance(vector_a, vector_b)

    def sentence_distance(self, sentence_a: str, sentence_b: str) -> float:
        embeddings = np.asarray(self.encoder.encode([sentence_a, sentence_b]), dtype=float)
        return _cosine_distance(embeddings[0], embeddings[1])

    def extract_content_tokens(self, text: str) -> list[str]:
        return self._tagged(text, CONTENT_POS)

    def extract_nouns(self, text: str) -> list[str]:
        return self._tagged(text, NOUN_POS)

    def _tagged(self, text: str, tags: frozenset[str]) -> list[str]:
        doc = self.nlp(text)
        return [
            token.text.lower()
            for token in doc
            if token.pos_ in tags and len(token.text) > 2
        ]

    def _word_vector(self, token: str) -> np.ndarray | None:
        lexeme = self.nlp.vocab[token]
        if not lexeme.has_vector:
            return None
        vector = np.asarray(lexeme.vector, dtype=float)
        if not np.any(vector):
            return None
        return vector


def _words(text: str) -> list[str]:
    return [word.lower() for word in _WORD_PATTERN.findall(text)]


def _char_trigrams(token: str) -> set[str]:
    token = token.strip().lower()
    if not token:
        return set()
    padded = f" {token} "
    return {padded[i : i + 3] for i in range(len(padded) - 2)}


def _jaccard(a: set[str], b: set[str]) -> float:
    return len(a & b) / len(a | b)


def _cosine_distance(a: np.ndarray, b: np.ndarray) -> float:
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return math.inf
    return 1.0 - float(np.dot(a, b)) / norm
