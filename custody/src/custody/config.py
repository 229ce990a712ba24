"""
Configuration management using pydantic-settings.

Nested sections are read from the environment with a ``__`` delimiter, e.g.
``BITGO__ACCESS_TOKEN`` or ``PRICING__SECRET_KEY``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from custody.constants import RATE_REFRESH_INTERVAL

BITCOINAVERAGE_TICKER_URL = "https://apiv2.bitcoinaverage.com/indices/global/ticker/all?crypto=BTC"


class BitGoConfig(BaseModel):
    """
    Connection to a BitGo Express instance.

    Express holds the user keychains and performs passphrase signing for
    recovery sweeps; this process only talks to it over HTTP.
    """

    access_token: str = Field(..., min_length=1)
    environment: Literal["prod", "test"] = "prod"
    express_url: str = "http://127.0.0.1:3080"
    settlement_address: str = Field(
        ..., min_length=1, description="Payout address that receives every settlement"
    )
    timeout: float = Field(default=30.0, gt=0)


class PricingConfig(BaseModel):
    public_key: str = Field(..., min_length=1)
    secret_key: str = Field(..., min_length=1)
    url: str = BITCOINAVERAGE_TICKER_URL
    refresh_interval: float = Field(
        default=RATE_REFRESH_INTERVAL,
        gt=0,
        description="Seconds between rate snapshot refreshes (default: 15 minutes)",
    )
    timeout: float = Field(default=30.0, gt=0)


class CoinbaseConfig(BaseModel):
    widget_code: str = ""


class NotifierConfig(BaseModel):
    # Slack incoming webhook; alerts are only logged when unset
    slack_webhook_url: str | None = None
    channel: str | None = None
    username: str = "custody"
    timeout: float = Field(default=10.0, gt=0)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    bitgo: BitGoConfig | None = None
    pricing: PricingConfig | None = None
    coinbase: CoinbaseConfig = Field(default_factory=CoinbaseConfig)
    notifier: NotifierConfig = Field(default_factory=NotifierConfig)

    log_level: str = "INFO"

    @model_validator(mode="after")
    def validate_log_level(self) -> Settings:
        level = self.log_level.upper()
        if level not in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a loguru level name, got {self.log_level}")
        object.__setattr__(self, "log_level", level)
        return self


def get_settings() -> Settings:
    return Settings()
