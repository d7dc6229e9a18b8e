"""
Unit tests for dependency injection providers.

Tests cover:
- get_settings() caching behavior
- get_db_engine() and get_session_factory() singletons
"""

import pytest
from sqlalchemy.engine import Engine

from infrastructure.configuration import Settings
from infrastructure.services.providers import (
    get_db_engine,
    get_session_factory,
    get_settings,
)


@pytest.fixture
def fresh_providers(monkeypatch, tmp_path):
    """Point the providers at a temporary database and reset their caches."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'providers.db'}")
    for provider in (get_session_factory, get_db_engine, get_settings):
        provider.cache_clear()
    yield
    for provider in (get_session_factory, get_db_engine, get_settings):
        provider.cache_clear()


class TestGetSettings:
    """Tests for get_settings() provider function."""

    def test_get_settings_returns_settings_instance(self):
        """get_settings() returns a Settings instance."""
        assert isinstance(get_settings(), Settings)

    def test_get_settings_returns_cached_instance(self):
        """get_settings() returns the same instance (caching)."""
        assert get_settings() is get_settings()

    def test_get_settings_cache_can_be_cleared(self):
        """get_settings() cache can be cleared for testing."""
        instance1 = get_settings()
        get_settings.cache_clear()
        instance2 = get_settings()
        assert instance1 is not instance2


class TestDatabaseProviders:
    """Tests for the engine and session factory providers."""

    def test_engine_uses_configured_url(self, fresh_providers, tmp_path):
        engine = get_db_engine()

        assert isinstance(engine, Engine)
        assert str(tmp_path / "providers.db") in str(engine.url)

    def test_engine_is_cached(self, fresh_providers):
        assert get_db_engine() is get_db_engine()

    def test_session_factory_is_bound_to_engine(self, fresh_providers):
        factory = get_session_factory()

        assert factory is get_session_factory()
        assert factory.kw["bind"] is get_db_engine()
