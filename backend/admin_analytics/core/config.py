from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "admin-analytics-api"
    log_level: str = "INFO"
    api_prefix: str = "/api"
    allowed_origins: List[str] = Field(
        default_factory=lambda: [
            "http://localhost:4200",
            "http://127.0.0.1:4200",
        ]
    )

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/admin_console"

    default_currency: str = "USD"
    settings_collection: str = "settings"
    settings_document_id: str = "store"
    currency_field: str = "stripeCurrency"

    # Share of revenue treated as cost when an order records no costPrice.
    profit_cost_ratio: float = 0.7

    activity_fetch_limit: int = 10
    dashboard_activity_items: int = 8
    analytics_activity_items: int = 10
    feed_activity_items: int = 6

    fulfilled_statuses: List[str] = Field(
        default_factory=lambda: ["completed", "delivered", "shipped"]
    )
    trend_status: str = "completed"
    top_products_limit: int = 10

    @field_validator("allowed_origins", "fulfilled_statuses", mode="before")
    @classmethod
    def split_csv(cls, value):
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("profit_cost_ratio")
    @classmethod
    def check_cost_ratio(cls, value: float) -> float:
        if not 0.0 <= value <= 1.0:
            raise ValueError("profit_cost_ratio must be between 0 and 1")
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
