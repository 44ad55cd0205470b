"""Text embedding providers.

The default provider is a feature-hashing encoder: no model, no network, and
bit-identical output for identical text, which keeps retrieval reproducible
without a paid embedding API. An OpenAI-backed provider can be swapped in
through configuration; both expose the same ``embed`` capability.
"""

import logging
import math
import re
from collections import Counter
from typing import Protocol

import numpy as np

from vitalsense.config import ConfigurationError, Settings, settings

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 1536
UNIGRAM_SEEDS = (0, 1, 2)
BIGRAM_WEIGHT = 0.5
MIN_TOKEN_LENGTH = 3
FALLBACK_SCALE = 0.01

_NON_WORD = re.compile(r"[^\w\s]", flags=re.ASCII)


class EmbeddingProvider(Protocol):
    dimension: int

    def embed(self, text: str) -> list[float]: ...


def string_hash(text: str, seed: int = 0) -> int:
    """Rolling ``h * 31 + c`` hash over UTF-16 code units, wrapped to signed 32 bits."""
    h = seed
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code_unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + code_unit) & 0xFFFFFFFF
    return h - 0x100000000 if h >= 0x80000000 else h


def tokenize(text: str) -> list[str]:
    words = _NON_WORD.sub(" ", text.lower()).split()
    return [word for word in words if len(word) >= MIN_TOKEN_LENGTH]


def check_dimension(vector: list[float], expected: int, source: str = "embedding") -> list[float]:
    if len(vector) != expected:
        raise ConfigurationError(f"{source} has dimension {len(vector)}, expected {expected}")
    return vector


class FeatureHashEncoder:
    """Hashed unigram/bigram encoder producing unit-length vectors."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION, rng: np.random.Generator | None = None):
        if dimension <= 0:
            raise ConfigurationError(f"Embedding dimension must be positive, got {dimension}")
        self.dimension = dimension
        self._rng = rng if rng is not None else np.random.default_rng()

    def _index(self, feature: str, seed: int = 0) -> int:
        return abs(string_hash(feature, seed)) % self.dimension

    def encode(self, text: str | None) -> list[float]:
        words = tokenize(text or "")
        vector = np.zeros(self.dimension, dtype=np.float64)

        # Several seeds per token spread collisions over more than one slot.
        for word, freq in Counter(words).items():
            for seed in UNIGRAM_SEEDS:
                vector[self._index(word, seed)] += freq / (seed + 1)

        for left, right in zip(words, words[1:]):
            vector[self._index(f"{left}_{right}")] += BIGRAM_WEIGHT

        # summed left to right in slot order
        magnitude = math.sqrt(sum(x * x for x in vector.tolist()))
        if magnitude > 0:
            return (vector / magnitude).tolist()

        logger.debug("No usable tokens in %r, returning random fallback vector", text)
        return ((self._rng.random(self.dimension) - 0.5) * FALLBACK_SCALE).tolist()

    def embed(self, text: str) -> list[float]:
        return self.encode(text)


class OpenAIEmbeddingProvider:
    """Adapter around an injected llama-index ``OpenAIEmbedding`` client."""

    def __init__(self, client, dimension: int = DEFAULT_DIMENSION):
        self._client = client
        self.dimension = dimension

    def embed(self, text: str) -> list[float]:
        vector = list(self._client.get_text_embedding(text))
        return check_dimension(vector, self.dimension, source="OpenAI embedding")


def _openai_client(config: Settings):
    if not config.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY is missing but EMBEDDING_PROVIDER=openai")
    try:
        from llama_index.embeddings.openai import OpenAIEmbedding
    except ImportError as exc:
        raise ConfigurationError("llama-index-embeddings-openai is not installed") from exc
    return OpenAIEmbedding(model=config.openai_embedding_model, api_key=config.openai_api_key)


def build_embedding_provider(config: Settings | None = None) -> EmbeddingProvider:
    config = config or settings
    provider = config.embedding_provider.lower()
    if provider == "hash":
        return FeatureHashEncoder(dimension=config.embedding_dimension)
    if provider == "openai":
        logger.info("Using OpenAI embeddings (%s)", config.openai_embedding_model)
        return OpenAIEmbeddingProvider(_openai_client(config), dimension=config.embedding_dimension)
    raise ConfigurationError(f"Unknown embedding provider: {config.embedding_provider}")
