"""
Application configuration using Pydantic Settings.
All config is loaded from environment variables / .env file.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    # ── Logging ──────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    # ── Supabase ─────────────────────────────────────────
    SUPABASE_URL: str
    SUPABASE_KEY: str  # service_role key; workers write across users

    # ── Tables / RPCs ────────────────────────────────────
    DOCUMENTS_TABLE: str = "documents"
    LECTURES_TABLE: str = "lectures"
    SLIDE_CHUNKS_TABLE: str = "slide_chunks_knowledge"
    LECTURE_CHUNKS_TABLE: str = "lecture_chunks_knowledge"
    USER_API_KEYS_TABLE: str = "user_api_keys"
    SLIDE_SEARCH_RPC: str = "match_slide_chunks"
    LECTURE_SEARCH_RPC: str = "match_lecture_chunks"
    SEARCH_TOP_K: int = 5

    # ── Storage ──────────────────────────────────────────
    DOCUMENT_BUCKET: str = "documents"
    LECTURE_TEMP_PATH: str = "./tmp/lectures"
    TEMP_AUDIO_MAX_AGE_HOURS: int = 24
    TEMP_CLEANUP_INTERVAL_HOURS: int = 6

    # ── Security ─────────────────────────────────────────
    ENCRYPTION_SECRET_KEY: str  # Fernet key for encrypting BYOK API keys
    VERIFIER_TTL_SECONDS: int = 600  # one-time PKCE verifiers

    # ── LLM (OpenRouter, BYOK-or-shared) ─────────────────
    LLM_PROVIDER: str = "openrouter"  # openrouter | openai
    OPENROUTER_API_KEY: str = ""  # shared fallback key
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    EXTRACTION_MODEL: str = "google/gemini-2.5-flash-lite"
    CHUNKING_MODEL: str = "google/gemini-2.5-flash-lite"
    LLM_TEMPERATURE: float = 0.0

    # ── Embedding ────────────────────────────────────────
    EMBEDDING_MODEL: str = "openai/text-embedding-3-small"
    EMBEDDING_DIMENSIONS: int = 1536
    EMBEDDING_TIMEOUT: int = 60  # HTTP timeout in seconds

    # ── Page extraction ──────────────────────────────────
    PAGE_CONCURRENCY_LIMIT: int = 5
    PAGE_MAX_RETRIES: int = 3  # 4 attempts total
    PAGE_RETRY_BASE_DELAY: float = 2.0  # 2s, 4s, 8s
    PAGE_REQUEST_DELAY: float = 0.5  # courtesy delay after each success
    DOCUMENT_DEBUG_LOG: str = ""  # path; raw extraction output is appended here

    # ── Deduplication ────────────────────────────────────
    JACCARD_SIMILARITY_THRESHOLD: float = 0.9
    COSINE_SIMILARITY_THRESHOLD: float = 0.95

    # ── Transcription (Groq Whisper) ─────────────────────
    GROQ_API_KEY: str = ""
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    TRANSCRIPTION_MODEL: str = "whisper-large-v3-turbo"
    TRANSCRIPTION_LANGUAGE: str = "en"
    MAX_DIRECT_UPLOAD_BYTES: int = 10 * 1024 * 1024  # larger files are chunked
    DIRECT_TRANSCRIPTION_TIMEOUT: int = 300
    CHUNK_TRANSCRIPTION_TIMEOUT: int = 120
    AUDIO_CHUNK_SECONDS: int = 600
    AUDIO_OVERLAP_SECONDS: int = 10
    CHANNEL_PROBE_SECONDS: int = 30

    # ── Lecture chunking ─────────────────────────────────
    TIME_CHUNK_SECONDS: int = 180
    SEMANTIC_CHUNK_ATTEMPTS: int = 3
    ALLOW_LOCAL_STREAMS: bool = False  # dev only: permit localhost stream URLs

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance (singleton)."""
    return Settings()
