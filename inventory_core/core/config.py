"""
Inventory Core Configuration
Settings for the inventory consistency service
"""
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)

    # Application Info
    APP_NAME: str = "Inventory Core API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Database Configuration
    DATABASE_URL: str = "postgresql+psycopg://inventory@localhost:5432/inventory_db"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20

    # CORS
    CORS_ORIGINS: list = [
        "http://localhost:3000",
    ]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path = Path("logs")
    LOG_FILE: str = "inventory.log"
    ERROR_LOG_FILE: str = "error.log"
    LOG_TO_FILE: bool = True

    # API Configuration
    API_V1_STR: str = "/api/v1"
    DOCS_URL: str = "/docs"
    REDOC_URL: str = "/redoc"
    OPENAPI_URL: str = "/openapi.json"

    # Inventory policy
    ALLOW_NEGATIVE_STOCK: bool = False
    LOW_STOCK_THRESHOLD: int = 10
    EXPIRY_HORIZON_DAYS: int = 30
    NOTIFICATION_RETENTION_DAYS: int = 30
    BATCH_TRACKING_ENABLED: bool = True
    MARGIN_MARKUP: Decimal = Decimal("1.2")
    LOCK_STOCK_ROWS: bool = False

    # Financial Precision
    COST_DECIMAL_PLACES: int = 4
    CURRENCY_DECIMAL_PLACES: int = 2

    # Background sweeps
    ALERT_SWEEP_INTERVAL_SECONDS: int = 3600

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalise_log_level(cls, v: str) -> str:
        return v.upper()

    @field_validator("MARGIN_MARKUP")
    @classmethod
    def markup_not_below_one(cls, v: Decimal) -> Decimal:
        if v < 1:
            raise ValueError("MARGIN_MARKUP must be at least 1")
        return v


@dataclass(frozen=True)
class InventoryPolicy:
    """
    Inventory rules injected into the ledger, batch registry and alert engine.

    Built once from Settings; services never read settings on their own.
    """
    allow_negative_stock: bool = False
    low_stock_threshold: int = 10
    expiry_horizon_days: int = 30
    notification_retention_days: int = 30
    batch_tracking_enabled: bool = True
    margin_markup: Decimal = Decimal("1.2")
    cost_decimal_places: int = 4
    currency_decimal_places: int = 2
    lock_stock_rows: bool = False

    @classmethod
    def from_settings(cls, source: Optional[Settings] = None) -> "InventoryPolicy":
        s = source or settings
        return cls(
            allow_negative_stock=s.ALLOW_NEGATIVE_STOCK,
            low_stock_threshold=s.LOW_STOCK_THRESHOLD,
            expiry_horizon_days=s.EXPIRY_HORIZON_DAYS,
            notification_retention_days=s.NOTIFICATION_RETENTION_DAYS,
            batch_tracking_enabled=s.BATCH_TRACKING_ENABLED,
            margin_markup=s.MARGIN_MARKUP,
            cost_decimal_places=s.COST_DECIMAL_PLACES,
            currency_decimal_places=s.CURRENCY_DECIMAL_PLACES,
            lock_stock_rows=s.LOCK_STOCK_ROWS,
        )

    @property
    def cost_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.cost_decimal_places)

    @property
    def currency_quantum(self) -> Decimal:
        return Decimal(1).scaleb(-self.currency_decimal_places)


# Global settings instance
settings = Settings()
