"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    database_url: str = Field(
        default="sqlite:///./billing.db", alias="DATABASE_URL"
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=True, alias="LOG_JSON")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    invoice_first_row: int = Field(default=354, alias="INVOICE_FIRST_ROW")
    invoice_last_row: int = Field(default=391, alias="INVOICE_LAST_ROW")
    items_total_tolerance: float = Field(
        default=0.01, alias="ITEMS_TOTAL_TOLERANCE"
    )
    default_page_size: int = Field(default=10, alias="DEFAULT_PAGE_SIZE")
    billing_api_url: str = Field(
        default="http://localhost:8000/api", alias="BILLING_API_URL"
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @property
    def allowed_origins(self) -> list[str]:
        """Return the configured CORS origins as a list."""

        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def max_invoices_per_order(self) -> int:
        """Return how many invoice slots an order has."""

        return self.invoice_last_row - self.invoice_first_row + 1


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
