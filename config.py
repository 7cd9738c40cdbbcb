from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, List
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "Ledger API"
    app_version: str = "1.0.0"
    environment: str = "development"
    debug: bool = False

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_per_minute: int = 120

    # CORS settings
    allowed_origins: List[str] = ["*"]
    allowed_methods: List[str] = ["GET", "POST", "OPTIONS"]
    allowed_headers: List[str] = ["*"]

    # Accounts loaded into the ledger at startup, e.g.
    # LEDGER_SEED_ACCOUNTS='{"alice": 100, "bob": 50}'
    seed_accounts: Dict[str, float] = {"alice": 100.0, "bob": 50.0}


# Environment-specific configurations
class DevelopmentSettings(Settings):
    debug: bool = True
    log_level: str = "DEBUG"
    log_format: str = "text"


class ProductionSettings(Settings):
    environment: str = "production"
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: List[str] = []  # Must be specified in production


class TestingSettings(Settings):
    environment: str = "testing"
    debug: bool = True
    log_level: str = "WARNING"  # Reduce noise in tests
    rate_limit_enabled: bool = False


def get_settings_for_environment(env: str = "development") -> Settings:
    """Get settings for specific environment."""
    settings_map = {
        "development": DevelopmentSettings,
        "production": ProductionSettings,
        "testing": TestingSettings,
    }

    settings_class = settings_map.get(env.lower(), Settings)
    return settings_class()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings for the environment named by LEDGER_ENVIRONMENT."""
    return get_settings_for_environment(Settings().environment)
