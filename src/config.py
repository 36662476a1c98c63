"""Configuration management using pydantic-settings."""
import logging
import sys
from functools import lru_cache
from typing import Optional

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AggregationSettings(BaseSettings):
    """Market aggregation tuning loaded from environment variables.

    All settings prefixed with AGG_ (e.g., AGG_CPC_PRICE_RATIO=0.05)

    The CPC estimate is only used for products that carry neither a CPC
    override nor any positive keyword CPC:
        estimate = clamp(price * cpc_price_ratio, cpc_min, cpc_max)
    """

    cpc_price_ratio: float = Field(
        default=0.05,
        gt=0,
        le=1,
        description="Fraction of the product price used as the CPC estimate"
    )
    cpc_min: float = Field(
        default=0.5,
        ge=0,
        description="Lower bound for the price-derived CPC estimate"
    )
    cpc_max: float = Field(
        default=5.0,
        gt=0,
        description="Upper bound for the price-derived CPC estimate"
    )

    model_config = SettingsConfigDict(
        env_prefix="AGG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database Configuration
    database_url: str
    db_pool_size: int = 10
    db_max_overflow: int = 10

    # Redis Configuration
    redis_host: str = "redis"
    redis_port: int = 6379
    redis_password: str
    redis_url: Optional[str] = None

    # Queue Configuration
    queue_name: str = "market-recalculation-queue"

    # Worker Configuration
    max_workers: int = 5
    job_timeout: int = 120
    max_tries: int = Field(
        default=3,
        ge=1,
        le=10,
        description="arq attempts per recalculation job (the core itself never retries)"
    )
    log_level: str = "INFO"
    environment: str = "development"

    # Dashboard cache
    dashboard_cache_ttl_seconds: int = Field(
        default=300,
        gt=0,
        le=86400,
        description="TTL of the per-owner dashboard snapshot (default: 5 minutes)"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    def __init__(self, **kwargs):
        """Initialize settings and build derived values."""
        super().__init__(**kwargs)
        # Build Redis URL if not provided
        if not self.redis_url:
            self.redis_url = f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/0"


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()


@lru_cache
def get_aggregation_settings() -> AggregationSettings:
    """Get cached aggregation settings."""
    return AggregationSettings()


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structlog for JSON logging."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
