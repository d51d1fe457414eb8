"""Configuration module for the SupportBot application."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from urllib.parse import urlparse

from dotenv import load_dotenv

from supportbot.core.exceptions import ConfigurationError

load_dotenv()


def _as_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Config:
    """Runtime configuration with validation."""

    APP_NAME: str
    APP_VERSION: str
    ENV: str
    DEBUG: bool
    DATABASE_URL: str
    GOOGLE_API_KEY: str | None
    GEMINI_API_URL: str
    GEMINI_MODEL: str
    EMBEDDING_MODEL: str
    EMBEDDING_DIMENSIONS: int
    LLM_TEMPERATURE: float
    LLM_TOP_P: float
    LLM_TOP_K: int
    LLM_MAX_OUTPUT_TOKENS: int
    PROVIDER_TIMEOUT_SECONDS: float
    LLM_MAX_RETRIES: int
    LLM_MIN_INTERVAL_SECONDS: float
    SIMILARITY_THRESHOLD_HIGH: float
    SIMILARITY_THRESHOLD_LOW: float
    MAX_RETRIEVAL_RESULTS: int
    MAX_CONTEXT_LENGTH: int
    MAX_HISTORY_TURNS: int
    CACHE_ENABLED: bool
    REDIS_ENABLED: bool
    REDIS_URL: str
    CACHE_RESPONSE_TTL: int
    CACHE_MESSAGE_TTL: int
    MESSAGE_HISTORY_LIMIT: int
    EMBEDDING_BATCH_SIZE: int
    EMBEDDING_ITEM_DELAY_SECONDS: float
    EMBEDDING_BATCH_DELAY_SECONDS: float
    JWT_SECRET: str
    API_HOST: str
    API_PORT: int
    API_PREFIX: str
    LOG_LEVEL: str
    LOG_FILE: str

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"

    @property
    def has_database(self) -> bool:
        return bool(self.DATABASE_URL.strip())


def _build_config(env: str | None = None) -> Config:
    resolved_env = (env or os.getenv("ENV", "development")).strip().lower()
    debug = _as_bool(os.getenv("DEBUG"), default=(resolved_env != "production"))

    config = Config(
        APP_NAME="SupportBot",
        APP_VERSION=os.getenv("APP_VERSION", "1.0.0"),
        ENV=resolved_env,
        DEBUG=debug if resolved_env != "production" else False,
        DATABASE_URL=os.getenv("DATABASE_URL", "sqlite:///./supportbot.db"),
        GOOGLE_API_KEY=os.getenv("GOOGLE_API_KEY") or None,
        GEMINI_API_URL=os.getenv("GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1beta"),
        GEMINI_MODEL=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
        EMBEDDING_MODEL=os.getenv("GOOGLE_EMBEDDING_MODEL", "text-embedding-004"),
        EMBEDDING_DIMENSIONS=int(os.getenv("GOOGLE_EMBEDDING_DIMENSIONS", "768")),
        LLM_TEMPERATURE=float(os.getenv("LLM_TEMPERATURE", "0.7")),
        LLM_TOP_P=float(os.getenv("LLM_TOP_P", "0.8")),
        LLM_TOP_K=int(os.getenv("LLM_TOP_K", "40")),
        LLM_MAX_OUTPUT_TOKENS=int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "1024")),
        PROVIDER_TIMEOUT_SECONDS=float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "10")),
        LLM_MAX_RETRIES=int(os.getenv("LLM_MAX_RETRIES", "1")),
        LLM_MIN_INTERVAL_SECONDS=float(os.getenv("LLM_MIN_INTERVAL_SECONDS", "0.25")),
        SIMILARITY_THRESHOLD_HIGH=float(os.getenv("SIMILARITY_THRESHOLD_HIGH", "0.85")),
        SIMILARITY_THRESHOLD_LOW=float(os.getenv("SIMILARITY_THRESHOLD_LOW", "0.75")),
        MAX_RETRIEVAL_RESULTS=int(os.getenv("MAX_RETRIEVAL_RESULTS", "3")),
        MAX_CONTEXT_LENGTH=int(os.getenv("MAX_CONTEXT_LENGTH", "4000")),
        MAX_HISTORY_TURNS=int(os.getenv("MAX_HISTORY_TURNS", "5")),
        CACHE_ENABLED=_as_bool(os.getenv("CACHE_ENABLED"), default=True),
        REDIS_ENABLED=_as_bool(os.getenv("REDIS_ENABLED"), default=True),
        REDIS_URL=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
        CACHE_RESPONSE_TTL=int(os.getenv("CACHE_RESPONSE_TTL", "86400")),
        CACHE_MESSAGE_TTL=int(os.getenv("CACHE_MESSAGE_TTL", "3600")),
        MESSAGE_HISTORY_LIMIT=int(os.getenv("MESSAGE_HISTORY_LIMIT", "100")),
        EMBEDDING_BATCH_SIZE=int(os.getenv("EMBEDDING_BATCH_SIZE", "10")),
        EMBEDDING_ITEM_DELAY_SECONDS=float(os.getenv("EMBEDDING_ITEM_DELAY_SECONDS", "0.2")),
        EMBEDDING_BATCH_DELAY_SECONDS=float(os.getenv("EMBEDDING_BATCH_DELAY_SECONDS", "1.0")),
        JWT_SECRET=os.getenv("JWT_SECRET", "change_me_jwt_secret"),
        API_HOST=os.getenv("API_HOST", "0.0.0.0"),
        API_PORT=int(os.getenv("API_PORT", "8000")),
        API_PREFIX=os.getenv("API_PREFIX", "/api/v1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO").upper(),
        LOG_FILE=os.getenv("LOG_FILE", "supportbot.log"),
    )
    _validate_config(config)
    return config


def _validate_database_url(database_url: str) -> None:
    if not database_url.strip():
        return
    parsed = urlparse(database_url)
    if parsed.scheme not in {"sqlite", "postgresql", "postgresql+psycopg2"}:
        raise ConfigurationError(
            "DATABASE_URL must use sqlite:// or postgresql:// style URL."
        )
    if parsed.scheme.startswith("postgresql") and not parsed.hostname:
        raise ConfigurationError("PostgreSQL DATABASE_URL is missing hostname.")


def _validate_config(config: Config) -> None:
    _validate_database_url(config.DATABASE_URL)

    for name in ("SIMILARITY_THRESHOLD_HIGH", "SIMILARITY_THRESHOLD_LOW"):
        if not -1.0 <= getattr(config, name) <= 1.0:
            raise ConfigurationError(f"{name} must be within [-1, 1].")
    if config.SIMILARITY_THRESHOLD_LOW > config.SIMILARITY_THRESHOLD_HIGH:
        raise ConfigurationError("SIMILARITY_THRESHOLD_LOW must not exceed SIMILARITY_THRESHOLD_HIGH.")
    if config.EMBEDDING_DIMENSIONS < 1:
        raise ConfigurationError("GOOGLE_EMBEDDING_DIMENSIONS must be >= 1.")
    if config.MAX_RETRIEVAL_RESULTS < 1:
        raise ConfigurationError("MAX_RETRIEVAL_RESULTS must be >= 1.")
    if config.MAX_HISTORY_TURNS < 0:
        raise ConfigurationError("MAX_HISTORY_TURNS must be >= 0.")
    if config.EMBEDDING_BATCH_SIZE < 1:
        raise ConfigurationError("EMBEDDING_BATCH_SIZE must be >= 1.")
    if config.EMBEDDING_ITEM_DELAY_SECONDS < 0 or config.EMBEDDING_BATCH_DELAY_SECONDS < 0:
        raise ConfigurationError("Embedding batch delays must be >= 0.")
    if config.PROVIDER_TIMEOUT_SECONDS <= 0:
        raise ConfigurationError("PROVIDER_TIMEOUT_SECONDS must be > 0.")
    if config.LLM_MAX_RETRIES < 0:
        raise ConfigurationError("LLM_MAX_RETRIES must be >= 0.")
    if config.LLM_MIN_INTERVAL_SECONDS < 0:
        raise ConfigurationError("LLM_MIN_INTERVAL_SECONDS must be >= 0.")
    if min(config.CACHE_RESPONSE_TTL, config.CACHE_MESSAGE_TTL) < 1:
        raise ConfigurationError("Cache TTLs must be >= 1 second.")
    if config.LOG_LEVEL not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        raise ConfigurationError("LOG_LEVEL must be one of DEBUG/INFO/WARNING/ERROR/CRITICAL.")
    if config.is_production and "change_me" in config.JWT_SECRET.lower():
        raise ConfigurationError("Production JWT_SECRET uses a placeholder value.")


@lru_cache(maxsize=8)
def get_config(env: str | None = None) -> Config:
    """Get validated configuration for the requested environment."""
    return _build_config(env)
