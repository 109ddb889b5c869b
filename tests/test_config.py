"""Tests for gestor.core.config.Settings."""

from typing import Any

import pytest
from pydantic import ValidationError

from gestor.core.config import Settings

# Shared kwargs that satisfy required fields
_BASE: dict[str, Any] = {
    "jwt_secret_key": "a-valid-secret-key-that-is-long-enough-for-testing",
    "database_url": "postgresql+asyncpg://u:p@localhost/db",
}


class TestJwtSecretValidation:
    """Signing secrets must be long enough."""

    def test_short_secret_rejected(self):
        with pytest.raises(ValidationError):
            Settings(**{**_BASE, "jwt_secret_key": "too-short"})

    def test_valid_secret_accepted(self):
        s = Settings(**_BASE)
        assert len(s.jwt_secret_key) >= 32


class TestCommaSeparatedLists:
    """CORS origins, admin e-mails and backup collections parse from strings."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("http://a,http://b", ["http://a", "http://b"]),
            ("http://a , http://b ", ["http://a", "http://b"]),
            ("http://only", ["http://only"]),
            ("", []),
        ],
        ids=["basic", "whitespace", "single", "empty"],
    )
    def test_cors_parsing(self, raw: str, expected: list[str]):
        s = Settings(**_BASE, CORS_ORIGINS=raw)
        assert s.cors_origins == expected

    def test_admin_emails_are_lowercased(self):
        s = Settings(**_BASE, ADMIN_EMAILS="Dona@Confeitaria.com, chef@doces.com")
        assert s.admin_emails == ["dona@confeitaria.com", "chef@doces.com"]

    def test_backup_collections_default(self):
        assert Settings(**_BASE).backup_collections == ["users", "metrics", "performance", "logs"]


class TestProcessedDatabaseUrl:
    """processed_database_url transforms connection strings."""

    @pytest.mark.parametrize(
        "input_url, expected",
        [
            ("postgresql://u:p@host/db", "postgresql+asyncpg://u:p@host/db"),
            ("postgresql+asyncpg://u:p@host/db?sslmode=require", "postgresql+asyncpg://u:p@host/db?ssl=require"),
            ("postgresql+asyncpg://u:p@host/db?sslmode=verify-full", "postgresql+asyncpg://u:p@host/db?ssl=verify-full"),
            ("sqlite+aiosqlite:///./gestor.db", "sqlite+aiosqlite:///./gestor.db"),
        ],
        ids=["scheme", "sslmode-require", "sslmode-verify-full", "sqlite"],
    )
    def test_url_transformation(self, input_url: str, expected: str):
        s = Settings(**{**_BASE, "database_url": input_url})
        assert s.processed_database_url == expected


class TestRedisAvailable:
    """redis_available flag based on credentials."""

    def test_redis_available_when_both_set(self):
        s = Settings(
            **_BASE,
            upstash_redis_rest_url="https://redis.example.com",
            upstash_redis_rest_token="tok",
        )
        assert s.redis_available is True

    @pytest.mark.parametrize("url, token", [("", "tok"), ("https://r.io", ""), ("", "")])
    def test_redis_unavailable_without_both(self, url: str, token: str):
        s = Settings(**_BASE, upstash_redis_rest_url=url, upstash_redis_rest_token=token)
        assert s.redis_available is False


class TestDefaults:
    """Sensible default values."""

    def test_app_name(self):
        assert Settings(**_BASE).app_name == "Gestor Confeitaria"

    def test_metrics_defaults(self):
        s = Settings(**_BASE)
        assert s.metrics_buffer_size == 100
        assert s.metrics_slow_threshold_ms == 5000.0
        assert s.metrics_retention_days == 30

    def test_cache_capacity_default(self):
        assert Settings(**_BASE).cache_max_entries == 1000

    def test_llm_defaults(self):
        s = Settings(**_BASE)
        assert s.default_llm_provider == "gemini"
        assert s.default_llm_model == "gemini-2.5-flash"
