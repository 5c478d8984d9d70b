"""Application configuration via pydantic-settings."""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Pipeline settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Core
    env: Literal["development", "staging", "production"] = Field(
        default="development", alias="PENNYTRACE_ENV"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="PENNYTRACE_LOG_LEVEL"
    )

    # Provider credentials
    alpha_vantage_api_key: SecretStr | None = Field(
        default=None,
        alias="ALPHA_VANTAGE_API_KEY",
        description="Alpha Vantage API key (free tier: 5 req/min, 25 req/day)",
    )
    twelve_data_api_key: SecretStr | None = Field(default=None, alias="TWELVE_DATA_API_KEY")
    finnhub_api_key: SecretStr | None = Field(default=None, alias="FINNHUB_API_KEY")
    massive_api_key: SecretStr | None = Field(default=None, alias="MASSIVE_API_KEY")

    # SEC EDGAR requires a descriptive User-Agent, no key
    sec_edgar_user_agent: str = Field(
        default="HistoricalStockData/1.0", alias="SEC_EDGAR_USER_AGENT"
    )

    # Filesystem layout
    penny_stocks_data_path: Path = Field(
        default=Path("../Penny-Stocks-Market-Data"),
        alias="PENNY_STOCKS_DATA_PATH",
        description="Root of the local penny-stock CSV archive",
    )
    cache_dir: Path = Field(default=Path(".cache"), alias="PENNYTRACE_CACHE_DIR")
    output_dir: Path = Field(default=Path("static"), alias="PENNYTRACE_OUTPUT_DIR")
    entities_file: Path | None = Field(
        default=None,
        alias="PENNYTRACE_ENTITIES_FILE",
        description="Override for the bundled entity configuration document",
    )

    # Bounded retry on HTTP 429
    retry_max_attempts: int = Field(default=5, ge=1, alias="PENNYTRACE_RETRY_MAX_ATTEMPTS")
    retry_base_delay: float = Field(default=1.0, ge=0.0, alias="PENNYTRACE_RETRY_BASE_DELAY")

    @field_validator(
        "alpha_vantage_api_key",
        "twelve_data_api_key",
        "finnhub_api_key",
        "massive_api_key",
        mode="before",
    )
    @classmethod
    def blank_key_is_none(cls, v: str | SecretStr | None) -> str | SecretStr | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def consolidated_dir(self) -> Path:
        return self.cache_dir / "consolidated"

    @property
    def normalized_dir(self) -> Path:
        return self.cache_dir / "normalized"

    @property
    def json_output_dir(self) -> Path:
        return self.output_dir / "json"

    @property
    def csv_output_dir(self) -> Path:
        return self.output_dir / "csv"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
