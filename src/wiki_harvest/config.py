# ABOUTME: Application configuration using Pydantic Settings for environment variables
# ABOUTME: Built once by the entry point and passed explicitly to the client and pipeline

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wiki_harvest.core.models import Locale, PipelineOptions


class Config(BaseSettings):
    """Runtime settings read from WIKI_HARVEST_* variables and an optional .env file."""

    model_config = SettingsConfigDict(
        env_prefix="WIKI_HARVEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Content API
    api_base_url: str = Field(
        default="https://sg-wiki-api-static.hoyolab.com/hoyowiki/zzz/wapi/entry_page",
        description="HoyoLab wiki entry_page endpoint",
    )
    request_timeout: float = Field(default=10.0, gt=0, description="Per-request timeout in seconds")
    primary_locale: Locale = Field(default=Locale.JA_JP, description="Locale every record is mapped from")
    secondary_locale: Locale | None = Field(
        default=Locale.EN_US, description="Locale used only for the localized name; failures are tolerated"
    )

    # Batch pipeline
    batch_size: int = Field(default=5, ge=1, description="Entries per batch")
    inter_batch_delay_ms: float = Field(
        default=500.0, ge=0, description="Delay between batches, also the retry backoff unit"
    )
    max_retries_per_item: int = Field(default=3, ge=0, description="Retries after the first attempt")
    min_success_rate: float = Field(default=0.8, ge=0.0, le=1.0, description="Accepted success rate for a run")
    concurrent: bool = Field(default=False, description="Process entries of one batch concurrently")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Minimum level passed to configure_logging"
    )

    log_file: Path | None = Field(default=None, description="Human-readable log path, logs/wiki-harvest.log when unset")

    def pipeline_options(self) -> PipelineOptions:
        """Build the per-run pipeline options from this configuration."""
        return PipelineOptions(
            batch_size=self.batch_size,
            inter_batch_delay_ms=self.inter_batch_delay_ms,
            max_retries_per_item=self.max_retries_per_item,
            min_success_rate=self.min_success_rate,
            concurrent=self.concurrent,
        )


def load_config(**overrides) -> Config:
    """Load configuration from the environment and .env file.

    Keyword overrides take precedence over environment values. Every call
    returns a fresh instance.

    Returns:
        Config: The application configuration
    """
    return Config(**overrides)
