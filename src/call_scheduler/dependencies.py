"""Dependency Injection for the call scheduler.

Provides FastAPI dependency functions for the store, repositories and
services. Everything is built once from settings and shared, so the
background loop, the tick endpoint and the webhook all use the same
instances.

Thread Safety:
    All singleton factories use threading.Lock() to prevent race conditions
    during concurrent initialization. This is safe for both sync and async contexts.

Usage:
    from call_scheduler.dependencies import SchedulerDep

    @router.post("/endpoint")
    async def handler(scheduler: SchedulerDep):
        ...
"""

from __future__ import annotations

import threading
from typing import Annotated

from fastapi import Depends

from call_scheduler.config import Settings, get_settings
from call_scheduler.core.logging import get_logger
from call_scheduler.core.retry import RetryConfig, STORE_RETRY_CONFIG
from call_scheduler.db.repositories.correlations import CorrelationRepository
from call_scheduler.db.repositories.owners import OwnerRepository
from call_scheduler.db.repositories.tasks import TaskRepository
from call_scheduler.db.store import RecordStore
from call_scheduler.integrations.calls.factory import get_call_provider, reset_call_provider
from call_scheduler.integrations.chat.factory import get_chat_sink, reset_chat_sink
from call_scheduler.services.call_executor import CallExecutor, ExecutorConfig
from call_scheduler.services.call_scheduler import CallScheduler, SchedulerConfig
from call_scheduler.services.completion_relay import CompletionRelay

log = get_logger(__name__)


# =============================================================================
# Thread-Safe Singleton Locks
# =============================================================================

_store_lock = threading.Lock()
_scheduler_lock = threading.Lock()
_relay_lock = threading.Lock()


# =============================================================================
# Settings Dependency
# =============================================================================


def get_app_settings() -> Settings:
    """Get application settings.

    Returns cached settings instance.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# =============================================================================
# Record Store Dependencies
# =============================================================================


# Cached instances
_record_store_instance: RecordStore | None = None
_scheduler_instance: CallScheduler | None = None
_relay_instance: CompletionRelay | None = None


def get_record_store() -> RecordStore:
    """Get record store singleton.

    Thread-safe via double-checked locking pattern.

    Returns:
        Airtable store, or the in-memory store when configured
    """
    global _record_store_instance

    if _record_store_instance is None:
        with _store_lock:
            # Double-check after acquiring lock
            if _record_store_instance is None:
                store_config = get_settings().store
                backend = store_config.backend.lower()

                if backend == "memory":
                    from call_scheduler.db.memory import InMemoryRecordStore

                    log.warning("Using in-memory record store, data is not persisted")
                    _record_store_instance = InMemoryRecordStore()
                else:
                    from call_scheduler.db.airtable import AirtableRecordStore

                    airtable = store_config.airtable
                    retry_config = RetryConfig(
                        max_attempts=airtable.max_retries,
                        base_delay=airtable.retry_base_delay,
                        max_delay=STORE_RETRY_CONFIG.max_delay,
                        retryable_exceptions=STORE_RETRY_CONFIG.retryable_exceptions,
                    )
                    _record_store_instance = AirtableRecordStore(
                        api_key=airtable.api_key,
                        base_id=airtable.base_id,
                        api_url=airtable.api_url,
                        timeout=airtable.timeout_seconds,
                        page_size=airtable.page_size,
                        retry_config=retry_config,
                    )
                    log.info("Airtable record store initialized", base_id=airtable.base_id)

    return _record_store_instance


def get_task_repository() -> TaskRepository:
    """Get task repository over the shared store."""
    settings = get_settings()
    return TaskRepository(
        get_record_store(),
        settings.store.airtable.tasks_table,
        claim_timeout_seconds=settings.scheduler.claim_timeout_seconds,
    )


def get_correlation_repository() -> CorrelationRepository:
    """Get correlation repository over the shared store."""
    settings = get_settings()
    return CorrelationRepository(
        get_record_store(),
        settings.store.airtable.correlations_table,
        owners_table=settings.store.airtable.owners_table,
        verify_links=settings.store.verify_links,
    )


TaskRepositoryDep = Annotated[TaskRepository, Depends(get_task_repository)]
CorrelationRepositoryDep = Annotated[
    CorrelationRepository, Depends(get_correlation_repository)
]


# =============================================================================
# Service Dependencies
# =============================================================================


def get_call_scheduler() -> CallScheduler:
    """Get call scheduler singleton.

    Thread-safe via double-checked locking pattern.
    """
    global _scheduler_instance

    if _scheduler_instance is None:
        with _scheduler_lock:
            if _scheduler_instance is None:
                settings = get_settings()
                scheduler_config = settings.scheduler
                executor = CallExecutor(
                    tasks=get_task_repository(),
                    correlations=get_correlation_repository(),
                    provider=get_call_provider(),
                    config=ExecutorConfig(
                        claim_jitter_seconds=scheduler_config.claim_jitter_seconds,
                        max_attempts=scheduler_config.max_attempts,
                        placement_timeout_seconds=scheduler_config.placement_timeout_seconds,
                    ),
                    owners=OwnerRepository(
                        get_record_store(), settings.store.airtable.owners_table
                    ),
                )
                _scheduler_instance = CallScheduler(
                    tasks=get_task_repository(),
                    executor=executor,
                    config=SchedulerConfig(
                        poll_interval_seconds=scheduler_config.poll_interval_seconds,
                        max_concurrent_calls=scheduler_config.max_concurrent_calls,
                    ),
                )

    return _scheduler_instance


def get_completion_relay() -> CompletionRelay:
    """Get completion relay singleton.

    Thread-safe via double-checked locking pattern.
    """
    global _relay_instance

    if _relay_instance is None:
        with _relay_lock:
            if _relay_instance is None:
                _relay_instance = CompletionRelay(
                    correlations=get_correlation_repository(),
                    sink=get_chat_sink(),
                )

    return _relay_instance


SchedulerDep = Annotated[CallScheduler, Depends(get_call_scheduler)]
CompletionRelayDep = Annotated[CompletionRelay, Depends(get_completion_relay)]


# =============================================================================
# Cleanup Functions
# =============================================================================


async def cleanup_dependencies() -> None:
    """Clean up all cached dependencies.

    Call during application shutdown.
    """
    global _record_store_instance, _scheduler_instance, _relay_instance

    if _scheduler_instance is not None:
        try:
            await _scheduler_instance.stop()
        except Exception as e:
            log.warning("Error stopping scheduler during cleanup", error=str(e))
        _scheduler_instance = None

    for name, closer in (
        ("call provider", get_call_provider().close),
        ("chat sink", get_chat_sink().close),
    ):
        try:
            await closer()
        except Exception as e:
            log.warning(f"Error closing {name} during cleanup", error=str(e))

    if _record_store_instance is not None:
        try:
            await _record_store_instance.close()
        except Exception as e:
            log.warning("Error closing record store during cleanup", error=str(e))
        _record_store_instance = None

    _relay_instance = None
    reset_call_provider()
    reset_chat_sink()


def reset_dependencies() -> None:
    """Reset all cached dependencies (for testing).

    Does not clean up resources, just clears references.
    """
    global _record_store_instance, _scheduler_instance, _relay_instance

    _record_store_instance = None
    _scheduler_instance = None
    _relay_instance = None
    reset_call_provider()
    reset_chat_sink()
