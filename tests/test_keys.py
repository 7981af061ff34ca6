"""Tests for PostHog key and Sentry DSN validation."""

import pytest

from zktelemetry.environment import EnvReader
from zktelemetry.errors import ConfigError
from zktelemetry.keys import (
    POSTHOG_KEY_ENV,
    SENTRY_DSN_ENV,
    TelemetryKeys,
    posthog_key,
    sentry_dsn,
    with_explicit_keys,
)


class TestPostHogKey:
    def test_valid_key(self):
        assert posthog_key(EnvReader({POSTHOG_KEY_ENV: "phc_abc123"})) == "phc_abc123"

    def test_missing_prefix_rejected(self):
        with pytest.raises(ConfigError, match="phc_"):
            posthog_key(EnvReader({POSTHOG_KEY_ENV: "abc123"}))

    @pytest.mark.parametrize("value", ["", "   ", "\t\n"])
    def test_blank_is_absent(self, value):
        assert posthog_key(EnvReader({POSTHOG_KEY_ENV: value})) is None

    def test_unset_is_absent(self):
        assert posthog_key(EnvReader({})) is None

    def test_error_names_variable(self):
        with pytest.raises(ConfigError) as exc_info:
            posthog_key(EnvReader({POSTHOG_KEY_ENV: "bad"}))
        assert exc_info.value.context["variable"] == POSTHOG_KEY_ENV


class TestSentryDsn:
    @pytest.mark.parametrize("dsn", ["https://x@sentry.io/1", "http://key@sentry.io/123"])
    def test_valid_dsn(self, dsn):
        assert sentry_dsn(EnvReader({SENTRY_DSN_ENV: dsn})) == dsn

    @pytest.mark.parametrize("dsn", ["ftp://x", "https://x@other.io/1", "invalid_dsn", "x@sentry.io"])
    def test_invalid_dsn_rejected(self, dsn):
        with pytest.raises(ConfigError, match="Invalid Sentry DSN"):
            sentry_dsn(EnvReader({SENTRY_DSN_ENV: dsn}))

    def test_blank_is_absent(self):
        assert sentry_dsn(EnvReader({SENTRY_DSN_ENV: "  "})) is None


class TestTelemetryKeys:
    def test_from_env(self):
        keys = TelemetryKeys.from_env(EnvReader({
            POSTHOG_KEY_ENV: "phc_testkey123",
            SENTRY_DSN_ENV: "https://test@sentry.io/123",
        }))
        assert keys.posthog_key == "phc_testkey123"
        assert keys.sentry_dsn == "https://test@sentry.io/123"

    def test_from_process_env(self, monkeypatch):
        monkeypatch.setenv(POSTHOG_KEY_ENV, "phc_fromenv")
        keys = TelemetryKeys.from_env()
        assert keys.posthog_key == "phc_fromenv"
        assert keys.sentry_dsn is None

    def test_from_env_propagates_invalid(self):
        with pytest.raises(ConfigError):
            TelemetryKeys.from_env(EnvReader({SENTRY_DSN_ENV: "ftp://x"}))

    def test_with_keys_valid(self):
        keys = TelemetryKeys.with_keys("phc_validkey123", "https://key@sentry.io/123")
        assert keys == TelemetryKeys("phc_validkey123", "https://key@sentry.io/123")

    def test_with_keys_none(self):
        assert TelemetryKeys.with_keys() == TelemetryKeys(None, None)

    def test_with_keys_invalid_posthog(self):
        with pytest.raises(ConfigError):
            TelemetryKeys.with_keys("invalid_key", None)

    def test_with_keys_invalid_sentry(self):
        with pytest.raises(ConfigError):
            TelemetryKeys.with_keys(None, "invalid_dsn")

    def test_with_keys_ignores_environment(self, monkeypatch):
        monkeypatch.setenv(POSTHOG_KEY_ENV, "not-a-key")
        assert with_explicit_keys("phc_abc", None).posthog_key == "phc_abc"
