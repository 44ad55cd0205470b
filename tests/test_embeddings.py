import math

import numpy as np
import pytest

from vitalsense.config import ConfigurationError, Settings
from vitalsense.services.embeddings import (
    FeatureHashEncoder,
    OpenAIEmbeddingProvider,
    build_embedding_provider,
    check_dimension,
    string_hash,
    tokenize,
)


def test_string_hash_matches_31_multiplier_hash():
    assert string_hash("abc") == 96354
    assert string_hash("hello") == 99162322
    assert string_hash("abc", seed=1) == 29791 + 96354


def test_string_hash_wraps_to_signed_32_bit():
    # well-known string whose 31-multiplier hash is exactly -2**31
    assert string_hash("polygenelubricants") == -(2**31)
    for word in ["cholesterol", "triglycerides_lower", "hemoglobin a1c glycated"]:
        assert -(2**31) <= string_hash(word) < 2**31


def test_tokenize_drops_punctuation_and_short_tokens():
    assert tokenize("HbA1c: 5.7%, HIGH! is on it") == ["hba1c", "high"]
    assert tokenize("Café au lait") == ["caf", "lait"]


def test_encode_is_deterministic_and_unit_length(encoder):
    text = "High LDL cholesterol and low HDL cholesterol"
    first = encoder.encode(text)
    second = FeatureHashEncoder(dimension=1536).encode(text)
    assert first == second
    assert len(first) == 1536
    assert np.linalg.norm(first) == pytest.approx(1.0)


def test_encode_places_unigram_weights_per_seed():
    encoder = FeatureHashEncoder(dimension=1536)
    raw = np.zeros(1536)
    for seed in (0, 1, 2):
        raw[abs(string_hash("glucose", seed)) % 1536] += 2 / (seed + 1)
    raw[abs(string_hash("glucose_glucose")) % 1536] += 0.5
    expected = raw / np.linalg.norm(raw)
    assert encoder.encode("glucose glucose") == pytest.approx(expected.tolist())


def test_encode_normalizes_with_sequential_sum_of_squares():
    encoder = FeatureHashEncoder(dimension=1536)
    raw = [0.0] * 1536
    for word in ("fasting", "glucose", "level"):
        for seed in (0, 1, 2):
            raw[abs(string_hash(word, seed)) % 1536] += 1 / (seed + 1)
    for bigram in ("fasting_glucose", "glucose_level"):
        raw[abs(string_hash(bigram)) % 1536] += 0.5
    magnitude = math.sqrt(sum(x * x for x in raw))
    assert encoder.encode("Fasting glucose level") == [x / magnitude for x in raw]


def test_encode_adds_bigram_feature():
    encoder = FeatureHashEncoder(dimension=1536)
    vector = encoder.encode("fasting glucose")
    assert vector[abs(string_hash("fasting_glucose")) % 1536] > 0


@pytest.mark.parametrize("text", ["", None, "a an to ! ?"])
def test_encode_without_tokens_falls_back_to_small_random_vector(text):
    encoder = FeatureHashEncoder(dimension=64, rng=np.random.default_rng(1))
    vector = encoder.encode(text)
    assert len(vector) == 64
    assert any(v != 0 for v in vector)
    assert max(abs(v) for v in vector) <= 0.005


def test_similar_texts_score_higher_than_unrelated(encoder):
    query = np.array(encoder.encode("ldl cholesterol"))
    related = np.array(encoder.encode("LDL cholesterol builds up in artery walls"))
    unrelated = np.array(encoder.encode("vitamin sunlight exposure bones"))
    assert query @ related > query @ unrelated


def test_invalid_dimension_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        FeatureHashEncoder(dimension=0)
    with pytest.raises(ConfigurationError):
        check_dimension([0.0] * 3, 4)


def test_openai_provider_validates_dimension():
    class FakeClient:
        def __init__(self, size):
            self.size = size

        def get_text_embedding(self, text):
            return [0.1] * self.size

    assert len(OpenAIEmbeddingProvider(FakeClient(8), dimension=8).embed("ldl")) == 8
    with pytest.raises(ConfigurationError):
        OpenAIEmbeddingProvider(FakeClient(7), dimension=8).embed("ldl")


def test_build_embedding_provider_from_settings():
    provider = build_embedding_provider(Settings(embedding_provider="hash", embedding_dimension=256))
    assert isinstance(provider, FeatureHashEncoder)
    assert provider.dimension == 256

    with pytest.raises(ConfigurationError):
        build_embedding_provider(Settings(embedding_provider="openai", openai_api_key=None))
    with pytest.raises(ConfigurationError):
        build_embedding_provider(Settings(embedding_provider="word2vec"))
