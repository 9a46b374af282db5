"""Tests for core helpers: phone numbers, time, retries, errors, config."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from call_scheduler.config import Settings, get_settings, validate_production_settings
from call_scheduler.core.clock import format_timestamp, parse_timestamp
from call_scheduler.core.exceptions import (
    InvalidPhoneNumberError,
    RecordNotFoundError,
    RecordStoreRateLimitError,
    ValidationError,
)
from call_scheduler.core.phone import extract_recipient_name, format_e164
from call_scheduler.core.retry import RetryConfig, retry_async


class TestFormatE164:
    """Test format_e164."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("(555) 123-4567", "+15551234567"),
            ("555.123.4567", "+15551234567"),
            ("15551234567", "+15551234567"),
            ("+1 555 123 4567", "+15551234567"),
            ("+49 170 1234567", "+491701234567"),
        ],
    )
    def test_normalises(self, raw, expected):
        assert format_e164(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "12345", "+49 123"])
    def test_rejects(self, raw):
        with pytest.raises(InvalidPhoneNumberError):
            format_e164(raw)


class TestExtractRecipientName:
    """Test extract_recipient_name."""

    @pytest.mark.parametrize(
        "message,expected",
        [
            ("Call Ali to confirm dinner at 7", "Ali"),
            ("call my friend Maria about the keys", "Maria"),
            ("Remind them to Bob that rent is due", "Bob"),
            ("Grandma, happy birthday!", "Grandma"),
        ],
    )
    def test_extracts(self, message, expected):
        assert extract_recipient_name(message) == expected

    @pytest.mark.parametrize("message", [None, "", "please confirm the booking"])
    def test_no_name(self, message):
        assert extract_recipient_name(message) is None


class TestTimestamps:
    """Test parse_timestamp / format_timestamp."""

    def test_parse_z_suffix(self):
        assert parse_timestamp("2025-03-14T09:30:00.000Z") == datetime(
            2025, 3, 14, 9, 30, tzinfo=timezone.utc
        )

    def test_parse_offset_converts_to_utc(self):
        parsed = parse_timestamp("2025-03-14T10:30:00+01:00")

        assert parsed == datetime(2025, 3, 14, 9, 30, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_parse_naive_is_utc(self):
        assert parse_timestamp(datetime(2025, 3, 14, 9, 30)).tzinfo is not None

    @pytest.mark.parametrize("value", [None, "", "not a date"])
    def test_parse_invalid(self, value):
        assert parse_timestamp(value) is None

    def test_format(self):
        value = datetime(2025, 3, 14, 10, 30, 5, 123456, tzinfo=timezone(timedelta(hours=1)))

        assert format_timestamp(value) == "2025-03-14T09:30:05.123Z"


class TestRetryAsync:
    """Test retry_async."""

    @pytest.mark.asyncio
    async def test_retries_transient_errors(self):
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise RecordStoreRateLimitError("slow down")
            return "ok"

        config = RetryConfig(max_attempts=3, base_delay=0, jitter=0)

        assert await retry_async(flaky, config=config) == "ok"
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        calls = []

        async def broken():
            calls.append(1)
            raise RecordNotFoundError("gone")

        config = RetryConfig(
            max_attempts=3,
            base_delay=0,
            retryable_exceptions=(RecordStoreRateLimitError,),
        )

        with pytest.raises(RecordNotFoundError):
            await retry_async(broken, config=config)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_last_error_raised_when_exhausted(self):
        calls = []

        async def always_limited():
            calls.append(1)
            raise RecordStoreRateLimitError(f"slow down {len(calls)}")

        with pytest.raises(RecordStoreRateLimitError, match="slow down 2"):
            await retry_async(always_limited, config=RetryConfig(max_attempts=2, base_delay=0))
        assert len(calls) == 2

    def test_delay_is_capped(self):
        config = RetryConfig(base_delay=1.0, max_delay=4.0, jitter=0)

        assert config.calculate_delay(1) == 1.0
        assert config.calculate_delay(3) == 4.0
        assert config.calculate_delay(10) == 4.0


class TestExceptions:
    """Test the error hierarchy."""

    def test_to_dict(self):
        error = ValidationError("Missing required fields", details={"missing": ["message"]})

        assert error.to_dict() == {
            "error": "VALIDATION_ERROR",
            "message": "Missing required fields",
            "details": {"missing": ["message"]},
        }
        assert error.status_code == 400


class TestSettings:
    """Test configuration loading."""

    def test_test_environment(self):
        settings = get_settings()

        assert settings.environment == "test"
        assert settings.store.backend == "memory"
        assert settings.calls.provider == "mock"
        assert settings.scheduler.enabled is False
        assert settings.scheduler.claim_timeout_seconds == 900
        assert settings.store.airtable.tasks_table == "ScheduledCallTask"

    def test_development_is_not_validated(self):
        assert validate_production_settings(Settings(environment="development")) == []

    def test_production_problems(self):
        settings = Settings(
            environment="production",
            store={"backend": "airtable"},
            calls={"provider": "vapi"},
        )

        problems = validate_production_settings(settings)

        assert "OCS_STORE__AIRTABLE__API_KEY must be set" in problems
        assert "OCS_STORE__AIRTABLE__BASE_ID must be set" in problems
        assert any("VAPI__PRIVATE_KEY" in p for p in problems)

    def test_production_memory_store_rejected(self):
        settings = Settings(environment="production", store={"backend": "memory"})

        assert any("memory" in p for p in validate_production_settings(settings))
