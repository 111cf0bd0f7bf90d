"""Application settings and configuration management.

This file implements a centralized configuration system using Pydantic Settings.
It handles environment variables, default values, and configuration validation
for the scoring engine, its CLI and its read-model API.

Key Benefits:
- Type safety: All settings have defined types with validation
- Environment integration: Automatically loads from .env files
- Documentation: Clear descriptions of what each setting controls
- Flexibility: Easy to override for different environments (sandbox vs prod)

For beginners:

Pydantic Settings: A Python library that automatically validates configuration
and loads values from environment variables, .env files, and defaults.

Nested settings: ``scoring`` is a whole model of point values. Override a
single field with a double underscore: SCORING__POINTS_SHUTOUT=2
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .scoring import ScoringRules


class Settings(BaseSettings):
    """Application settings with environment variable support.

    Configuration Sources (in priority order):
    1. Environment variables (highest priority)
    2. .env file values
    3. Default values defined here (lowest priority)

    Example Usage:
    - In code: `settings.database_url`
    - Environment variable: `DATABASE_URL=postgresql://scoring@db/cfb`
    - .env file: `database_url=sqlite:///data/database/dev.db`
    """

    model_config = SettingsConfigDict(
        env_file=".env",  # Load from .env file in project root
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow DATABASE_URL or database_url
        env_nested_delimiter="__",  # SCORING__POINTS_WIN=2
        extra="ignore",  # Unrelated keys in a shared .env are fine
    )

    # API Configuration - FastAPI read-model server
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    sync_api_key: str | None = None  # Bearer token for POST /api/points/calculate

    # Database Configuration - SQLAlchemy connection settings
    database_url: str = "sqlite:///data/database/cfb_fantasy.db"
    database_pool_size: int = 5  # Ignored for SQLite
    database_echo: bool = False  # Log all SQL queries (True for debugging)

    # Logging Configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR
    log_file: Path = Path("data/logs/cfb_fantasy.log")

    # Scoring Configuration
    bracket_format: str = "cfp12_spread"  # Round->week format for new seasons
    scoring: ScoringRules = ScoringRules()  # League-agnostic weekly point values

    # Write retries - transient datastore failures are retried per unit
    write_retry_attempts: int = 3
    write_retry_wait_seconds: float = 0.5

    @property
    def project_root(self) -> Path:
        """Get the project root directory.

        cfb_fantasy/config/settings.py -> cfb_fantasy/config -> cfb_fantasy -> project_root
        """
        return Path(__file__).parent.parent.parent

    @property
    def data_dir(self) -> Path:
        """Directory for the SQLite database file and logs."""
        return self.project_root / "data"


# Global settings instance - read by the CLI and API entry points only.
# Engine components receive their configuration explicitly.
settings = Settings()
