"""Configuration management for SplitLedger."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

DEFAULT_CATEGORIES = [
    "Food & Drink",
    "Groceries",
    "Housing",
    "Transportation",
    "Entertainment",
    "Shopping",
    "Utilities",
    "Travel",
    "Other",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # User the CLI acts as when --user is omitted
    current_user_id: str | None = None

    # Display settings
    currency_symbol: str = "$"

    # Expense categories offered when adding expenses
    categories: list[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    # Database path
    database_path: Path = Path.home() / ".splitledger" / "splitledger.db"

    def __init__(self, **kwargs):
        """Initialize settings and create database directory if needed."""
        super().__init__(**kwargs)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


def load_settings() -> Settings:
    """Load application settings from environment variables."""
    try:
        return Settings()
    except Exception as e:
        raise ConfigurationError(
            f"Failed to load settings. Check the values in your .env file "
            f"(DATABASE_PATH, CURRENT_USER_ID, CURRENCY_SYMBOL, CATEGORIES).\n"
            f"Error: {e}"
        ) from e
