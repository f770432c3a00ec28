"""Configuration models for the ingestion gateway."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class GatewaySettings(BaseSettings):
    """Startup configuration: where the external providers live and how loud to log.

    Values come from keyword arguments first, then `SOUSTACK_*` environment
    variables, then the defaults below. Module references may be dotted module
    names or paths to `.py` files.
    """

    model_config = SettingsConfigDict(env_prefix="SOUSTACK_", env_file=".env", extra="ignore")

    ingest_module: str = Field(default="soustack_ingest", min_length=1)
    validator_module: str = Field(default="soustack", min_length=1)

    # Distribution names reported by `ingest.meta`.
    ingest_distribution: str = Field(default="soustack-ingest", min_length=1)
    validator_distribution: str = Field(default="soustack", min_length=1)

    log_level: str = Field(default="WARNING")
