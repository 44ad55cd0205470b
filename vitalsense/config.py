from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(RuntimeError):
    """The service is mis-wired (wrong vector size, unknown provider, missing key)."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite:///./vitalsense.db"
    allowed_origins: str = "http://localhost:5173"

    embedding_provider: str = "hash"
    embedding_dimension: int = 1536
    openai_api_key: str | None = None
    openai_embedding_model: str = "text-embedding-3-small"

    trend_stable_threshold_percent: float = 5.0
    knowledge_biomarker_top_k: int = 3
    knowledge_nutrition_top_k: int = 2
    seed_knowledge_on_startup: bool = True


settings = Settings()
