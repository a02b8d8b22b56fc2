import os
from typing import Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()  # Load environment variables from .env file


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Database
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: str = "ideavault"
    POSTGRES_PASSWORD: str = "ideavault"
    POSTGRES_DB: str = "ideavault"
    DB_HOST: str = "db"  # Use 'db' for Docker, 'localhost' for local dev
    DB_STATEMENT_TIMEOUT_MS: int = 15000

    # Redis / arq
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Vertex AI
    GOOGLE_CLOUD_PROJECT: Optional[str] = None
    GOOGLE_CLOUD_LOCATION: Optional[str] = None

    # Embeddings
    EMBEDDING_MODEL: str = "text-embedding-005"
    EMBEDDING_DIMENSION: int = 768
    EMBEDDING_TIMEOUT_SECONDS: float = 30.0
    EMBEDDING_MAX_RETRIES: int = 0  # a failed call fails the request or pipeline run
    EMBEDDING_BACKOFF_BASE_SECONDS: float = 1.0
    EMBEDDING_BACKOFF_MAX_SECONDS: float = 16.0
    EMBEDDING_BACKOFF_JITTER_SECONDS: float = 0.5
    EMBEDDING_RATE_LIMIT_PER_SEC: int = 0

    # Text generation (labels and RAG answers)
    GENERATION_MODEL: str = "gemini-2.5-flash"
    GENERATION_TIMEOUT_SECONDS: float = 30.0
    LABEL_SAMPLE_CHARS: int = 200
    LABEL_FALLBACK: str = "Uncategorized"

    # Speech-to-text
    TRANSCRIPTION_TIMEOUT_SECONDS: float = 240.0
    TRANSCRIPTION_LANGUAGE_CODE: str = "en-US"
    TRANSCRIPTION_STUCK_AFTER_MINUTES: int = 30
    TRANSCRIPTION_AUTO_CREATE_CLUSTERS: bool = False

    # Clustering and search cutoffs
    CLUSTER_MATCH_THRESHOLD: float = 0.3
    SEARCH_MIN_SIMILARITY: float = 0.3
    SEARCH_LOW_SIMILARITY: float = 0.5
    SEARCH_TEMPORAL_DEFAULT_SCORE: float = 0.5
    SEARCH_LIMIT: int = 5
    SEARCH_TEMPORAL_LIMIT: int = 10
    RELATED_NOTES_LIMIT: int = 3

    # Audio storage
    AUDIO_UPLOAD_DIR: str = "uploads/audio"
    AUDIO_MAX_UPLOAD_BYTES: int = 25 * 1024 * 1024  # 25MB

    # Auth (tokens are issued by the identity provider)
    ALGORITHM: str = "HS256"
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "change-me")  # should be kept secret

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return (
            f"postgresql://{self.POSTGRES_USER}:{encoded_password}"
            f"@{self.DB_HOST}:5432/{self.POSTGRES_DB}"
        )


settings = Settings()
