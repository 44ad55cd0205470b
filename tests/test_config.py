from vitalsense.config import Settings


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("EMBEDDING_DIMENSION", "256")
    monkeypatch.setenv("TREND_STABLE_THRESHOLD_PERCENT", "2.5")
    config = Settings(_env_file=None)
    assert config.embedding_dimension == 256
    assert config.trend_stable_threshold_percent == 2.5


def test_settings_only_declare_used_fields():
    assert set(Settings.model_fields) == {
        "database_url",
        "allowed_origins",
        "embedding_provider",
        "embedding_dimension",
        "openai_api_key",
        "openai_embedding_model",
        "trend_stable_threshold_percent",
        "knowledge_biomarker_top_k",
        "knowledge_nutrition_top_k",
        "seed_knowledge_on_startup",
    }
