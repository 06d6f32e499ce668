"""Tests for settings loading."""

import pytest

from splitledger.config import DEFAULT_CATEGORIES, load_settings
from splitledger.exceptions import ConfigurationError


@pytest.fixture
def env(tmp_path, monkeypatch):
    """Point the database at a temporary directory."""
    db_path = tmp_path / "nested" / "ledger.db"
    monkeypatch.setenv("DATABASE_PATH", str(db_path))
    monkeypatch.delenv("CATEGORIES", raising=False)
    monkeypatch.delenv("CURRENT_USER_ID", raising=False)
    return db_path


class TestLoadSettings:
    """Environment-driven settings."""

    def test_defaults(self, env):
        """Defaults apply and the database directory is created."""
        settings = load_settings()

        assert settings.database_path == env
        assert env.parent.is_dir()
        assert settings.categories == DEFAULT_CATEGORIES
        assert settings.currency_symbol == "$"

    def test_categories_from_env(self, env, monkeypatch):
        """Categories are read as a JSON list."""
        monkeypatch.setenv("CATEGORIES", '["Rent", "Food"]')

        assert load_settings().categories == ["Rent", "Food"]

    def test_invalid_categories_raise_configuration_error(self, env, monkeypatch):
        """Unparseable values are reported as a configuration error."""
        monkeypatch.setenv("CATEGORIES", "not-a-list")

        with pytest.raises(ConfigurationError, match="Failed to load settings"):
            load_settings()
