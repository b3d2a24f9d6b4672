"""Configuration management."""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # API Keys
    gemini_api_key: SecretStr = SecretStr("")
    voyage_api_key: SecretStr = SecretStr("")

    # Neo4j
    neo4j_uri: str = "bolt://localhost:7687"
    neo4j_user: str = "neo4j"
    neo4j_password: SecretStr = SecretStr("password")
    neo4j_max_pool_size: int = 50

    # Embeddings
    embedding_provider: Literal["gemini", "voyage"] = "gemini"
    embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = Field(default=768, gt=0, description="Dimensionality of every stored vector")
    embedding_timeout_seconds: float = 10.0
    embedding_concurrency: int = Field(default=8, ge=1)

    # Retrieval
    keyword_candidate_limit: int = Field(default=5, ge=1)
    semantic_candidate_limit: int = Field(default=5, ge=1)
    search_default_k: int = Field(default=5, ge=1)

    # Chat context assembly
    chat_context_k: int = 3
    chat_history_limit: int = 5
    excerpt_chars: int = 280

    # Generation collaborators
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    reply_model: str = "gemini-2.0-flash"
    analysis_model: str = "gemini-1.5-flash"
    image_model: str = "gemini-2.0-flash-exp-image-generation"
    generation_timeout_seconds: float = 30.0
    # Per enrichment call during a write, capped at half the request timeout
    enrichment_timeout_seconds: float = 12.0
    images_dir: Path = Path("images")

    # App config
    request_timeout_seconds: float = 30.0
    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",  # Ignore extra fields in .env file
    )


settings = Settings()
