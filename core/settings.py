"""Application settings and shared constants."""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Joinery Ops"
    database_url: str = Field("sqlite+aiosqlite:///./joinery_ops.db")
    log_level: str = Field("INFO")
    log_json: bool = Field(False)
    max_order_item_quantity: float = Field(99999.0)
    default_production_steps: List[str] = Field(
        default_factory=lambda: ["Cutting", "Edging", "Drilling", "Assembly"]
    )
    unavailable_worker_statuses: List[str] = Field(
        default_factory=lambda: ["Sick", "Vacation", "Absent", "Inactive"]
    )
    # scheduling this close to the planned start also orders the missing materials
    auto_order_lead_days: int = Field(2)

    @field_validator("max_order_item_quantity")
    @classmethod
    def validate_max_quantity(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("max_order_item_quantity must be positive")
        return v

    @field_validator("default_production_steps")
    @classmethod
    def validate_steps(cls, v: List[str]) -> List[str]:
        if not v:
            raise ValueError("default_production_steps must not be empty")
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()
