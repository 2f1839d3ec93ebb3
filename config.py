"""
QuizRank settings, read from the environment (and .env when present).

See .env.example for every variable.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv(BASE_DIR / ".env")


def _env_int(name: str, default: int) -> int:
    return int(os.environ.get(name, str(default)))


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DATABASE = os.environ.get("DATABASE_URL", str(BASE_DIR / "quizrank.db"))

    # Session security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Leaderboard
    LEADERBOARD_DEFAULT_LIMIT = _env_int("LEADERBOARD_DEFAULT_LIMIT", 100)
    LEADERBOARD_MAX_LIMIT = _env_int("LEADERBOARD_MAX_LIMIT", 500)

    # Ranking: "sync" recomputes inside the submission request,
    # "deferred" hands the full pass to the task backend.
    RANK_RECOMPUTE_MODE = os.environ.get("RANK_RECOMPUTE_MODE", "sync")
    # Periodic full pass (0 = disabled)
    RANK_RECOMPUTE_INTERVAL_MINUTES = _env_int("RANK_RECOMPUTE_INTERVAL_MINUTES", 0)

    # Redis (task queue + rate limiting)
    REDIS_URL = os.environ.get("REDIS_URL", "")

    # Rate limiting (defaults to in-memory; set REDIS_URL for Redis-backed)
    RATELIMIT_STORAGE_URI = os.environ.get("REDIS_URL", "") or "memory://"
    SUBMIT_RATE_LIMIT = os.environ.get("SUBMIT_RATE_LIMIT", "30 per minute")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.RANK_RECOMPUTE_MODE not in ("sync", "deferred"):
            errors.append("RANK_RECOMPUTE_MODE must be 'sync' or 'deferred'.")

        if cls.RANK_RECOMPUTE_MODE == "deferred" and not cls.REDIS_URL:
            errors.append("RANK_RECOMPUTE_MODE=deferred requires REDIS_URL.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True
    RANK_RECOMPUTE_MODE = "sync"
    RANK_RECOMPUTE_INTERVAL_MINUTES = 0


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
