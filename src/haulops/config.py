"""Configuration management for the HaulOps TMS back office."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Application
    # ==========================================================================
    APP_NAME: str = "HaulOps TMS"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # ==========================================================================
    # Logging
    # ==========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # ==========================================================================
    # Database & Auth
    # ==========================================================================
    DATABASE_URL: str = "sqlite:///data/haulops.db"
    ADMIN_TOKEN: str = Field(default="", description="Bearer token for admin endpoints")

    # ==========================================================================
    # Business Rules
    # ==========================================================================
    # Compliance
    EXPIRING_SOON_DAYS: int = 30  # Badge turns "Expiring" at or below this
    COMPLIANCE_ALERT_DAYS: int = 60  # Default alert window

    # Fuel surcharge (dollars per gallon)
    FUEL_BASE_PRICE: float = 2.50
    FUEL_CURRENT_PRICE: float = 2.90

    # Invoicing
    DEFAULT_PAYMENT_TERMS_DAYS: int = 30

    # ==========================================================================
    # ELD / Telematics
    # ==========================================================================
    ELD_TIMEOUT_SECONDS: float = 15.0
    ELD_LOOKBACK_HOURS: int = 6

    SAMSARA_API_KEY: Optional[str] = None
    SAMSARA_API_BASE_URL: str = "https://api.samsara.com"

    MOTIVE_API_KEY: Optional[str] = Field(default=None, description="Motive (KeepTruckin) API key")
    MOTIVE_API_BASE_URL: str = "https://api.gomotive.com/v1"

    GEOTAB_USERNAME: Optional[str] = None
    GEOTAB_PASSWORD: Optional[str] = None
    GEOTAB_DATABASE: Optional[str] = None
    GEOTAB_SERVER: str = "https://my.geotab.com"

    # ==========================================================================
    # Validation
    # ==========================================================================
    def validate_admin_token(self) -> bool:
        """Check if the admin token is configured."""
        return bool(self.ADMIN_TOKEN)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()


# ==========================================================================
# Reference data
# ==========================================================================
COMPLIANCE_ITEM_TYPES: list[str] = [
    "UCR",
    "Insurance Certificate",
    "DOT Inspection",
    "Driver License",
    "Medical Certificate",
]

# Days until due, keyed by payment terms code
PAYMENT_TERMS_DAYS: dict[str, int] = {
    "net_15": 15,
    "net_30": 30,
    "net_45": 45,
    "net_60": 60,
    "cod": 0,
    "weekly": 7,
}

# DVIR keywords, matched against "category item"
CRITICAL_DEFECT_KEYWORDS: tuple[str, ...] = ("brake", "steering", "tire", "wheel", "suspension")
HIGH_DEFECT_KEYWORDS: tuple[str, ...] = ("light", "signal", "mirror", "horn", "windshield")
