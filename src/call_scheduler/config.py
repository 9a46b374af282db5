"""Application configuration."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AirtableSettings(BaseModel):
    """Airtable record store configuration."""

    api_url: str = "https://api.airtable.com/v0"
    api_key: str = ""
    base_id: str = ""

    # Logical table name -> Airtable table name or id
    tasks_table: str = "ScheduledCallTask"
    correlations_table: str = "OutboundCallRequest"
    owners_table: str = "Users"

    timeout_seconds: float = 15.0
    page_size: int = 100

    # Retries for 429 / 5xx / transport errors
    max_retries: int = 3
    retry_base_delay: float = 0.5


class StoreSettings(BaseModel):
    """Record store selection."""

    # airtable, memory
    backend: str = "airtable"

    # Check that a correlation's owner record exists before writing it
    verify_links: bool = True

    airtable: AirtableSettings = Field(default_factory=AirtableSettings)


class VapiSettings(BaseModel):
    """Vapi call platform configuration."""

    api_url: str = "https://api.vapi.ai"
    private_key: str = ""
    timeout_seconds: float = 30.0


class CallProviderSettings(BaseModel):
    """Call placement provider configuration."""

    # vapi, mock
    provider: str = "vapi"
    vapi: VapiSettings = Field(default_factory=VapiSettings)


class SchedulerSettings(BaseModel):
    """Scheduler loop and executor configuration."""

    # Run the polling loop inside the API process
    enabled: bool = True
    poll_interval_seconds: float = 5.0
    max_concurrent_calls: int = 5

    # Random delay before each claim, spreads simultaneous claimers
    claim_jitter_seconds: float = 0.1

    # Executing tasks older than this are reclaimable; 0 disables reclaim
    claim_timeout_seconds: int = 900
    max_attempts: int = 3

    # Hard limit on a single placement request
    placement_timeout_seconds: float = 45.0


class ChatSettings(BaseModel):
    """Chat subsystem delivery configuration."""

    # Empty: results are only logged
    webhook_url: str = ""
    timeout_seconds: float = 10.0


class Settings(BaseSettings):
    """Application settings.

    Loaded from:
    1. Environment variables (OCS_*)
    2. configs/{environment}.yaml
    3. configs/default.yaml
    """

    model_config = SettingsConfigDict(
        env_prefix="OCS_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Instance identification
    instance_id: str = ""

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8080

    # Subsystems
    store: StoreSettings = Field(default_factory=StoreSettings)
    calls: CallProviderSettings = Field(default_factory=CallProviderSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings object loaded from config files and environment.
    """
    import os
    from dynaconf import Dynaconf

    config_dir = Path("configs")
    env = os.getenv("OCS_ENV", "development")

    settings_files = []
    if (config_dir / "default.yaml").exists():
        settings_files.append(str(config_dir / "default.yaml"))
    if (config_dir / f"{env}.yaml").exists():
        settings_files.append(str(config_dir / f"{env}.yaml"))

    dynaconf = Dynaconf(
        envvar_prefix="OCS",
        settings_files=settings_files,
        load_dotenv=True,
    )

    config_dict: dict[str, Any] = {}
    for key in dynaconf.keys():
        if not key.startswith("_"):
            value = dynaconf[key]
            config_dict[key.lower()] = _lower_keys(value)

    config_dict["environment"] = env

    if not config_dict.get("instance_id"):
        config_dict["instance_id"] = _generate_instance_id()

    return Settings(**config_dict)


def _lower_keys(value: Any) -> Any:
    """Lowercase nested mapping keys (env overrides arrive upper-cased)."""
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def _generate_instance_id() -> str:
    """Generate an instance ID from the hostname and process id."""
    import os
    import socket

    return f"{socket.gethostname()}-{os.getpid()}"


def validate_production_settings(settings: Settings) -> list[str]:
    """Validate settings for production readiness.

    Args:
        settings: Application settings to validate.

    Returns:
        List of validation error messages (empty if all valid).
    """
    errors: list[str] = []

    if settings.environment not in ("production", "staging", "prod"):
        return errors

    if settings.store.backend == "memory":
        errors.append("OCS_STORE__BACKEND must not be 'memory' in production")

    if settings.store.backend == "airtable":
        airtable = settings.store.airtable
        if not airtable.api_key:
            errors.append("OCS_STORE__AIRTABLE__API_KEY must be set")
        if not airtable.base_id:
            errors.append("OCS_STORE__AIRTABLE__BASE_ID must be set")

    if settings.calls.provider == "vapi" and not settings.calls.vapi.private_key:
        errors.append("OCS_CALLS__VAPI__PRIVATE_KEY must be set when Vapi is the provider")

    if settings.calls.provider == "mock":
        errors.append("OCS_CALLS__PROVIDER must not be 'mock' in production")

    return errors
