"""Call Provider Factory.

Creates the appropriate call placement provider based on configuration.

Supported providers:
- vapi: Vapi voice-agent platform
- mock: For development and testing
"""

from __future__ import annotations

from call_scheduler.config import get_settings
from call_scheduler.core.logging import get_logger
from call_scheduler.integrations.calls.base import CallPlacementProvider, MockCallProvider

log = get_logger(__name__)


# Singleton instance
_call_provider: CallPlacementProvider | None = None


def get_call_provider() -> CallPlacementProvider:
    """Get the configured call placement provider.

    Returns:
        Provider instance based on config.
    """
    global _call_provider

    if _call_provider is not None:
        return _call_provider

    settings = get_settings()
    calls_config = settings.calls

    provider = calls_config.provider.lower()
    log.info("Initializing call provider", provider=provider)

    if provider == "vapi":
        vapi_config = calls_config.vapi

        if not vapi_config.private_key:
            log.warning("Vapi private key not configured, using mock call provider")
            _call_provider = MockCallProvider()
        else:
            from call_scheduler.integrations.calls.vapi import VapiCallProvider

            _call_provider = VapiCallProvider(
                private_key=vapi_config.private_key,
                api_url=vapi_config.api_url,
                timeout=vapi_config.timeout_seconds,
            )
            log.info("Vapi call provider initialized", api_url=vapi_config.api_url)

    elif provider == "mock":
        _call_provider = MockCallProvider()
        log.info("Mock call provider initialized")

    else:
        log.warning("Unknown call provider, using mock", provider=provider)
        _call_provider = MockCallProvider()

    return _call_provider


def reset_call_provider() -> None:
    """Reset the call provider (for testing)."""
    global _call_provider
    _call_provider = None
