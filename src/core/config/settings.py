# src/core/config/settings.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from src.core.enums.shortfall_policy import ShortfallPolicy

class Settings(BaseSettings):
    """
    Application settings loaded from environment variables or .env file.
    Includes general app settings, persistence and ledger replay configuration.
    """
    # General App Settings
    APP_NAME: str = "Trade Ledger Engine API"
    APP_VERSION: str = "0.1.0"
    DEBUG_MODE: bool = False # Set to True for development, False for production

    # API Specific Settings
    API_V1_STR: str = "/api/v1"

    # Logging Settings
    LOG_LEVEL: str = "INFO" # e.g., DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Persistence Settings
    DATABASE_URL: str = "sqlite:///./trade_ledger.db"
    DATABASE_ECHO: bool = False

    # Ledger Settings
    DECIMAL_PRECISION: int = 28
    SHORTFALL_POLICY: ShortfallPolicy = ShortfallPolicy.WARN
    REBUILD_MAX_WORKERS: int = 4
    GROUP_LOCK_TIMEOUT_SECONDS: float = 30.0

    # Pydantic-settings configuration
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent.parent / ".env"),
        env_file_encoding='utf-8',
        case_sensitive=False, # Allows env vars like APP_NAME or app_name
        extra='ignore' # Ignore extra environment variables not defined in the model
    )

settings = Settings()
