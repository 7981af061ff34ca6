"""Telemetry key management for PostHog and Sentry.

Keys are read from the environment on every process start and are
never persisted. A malformed key is rejected here, before any collector
client is built, so it never reaches the network.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from zktelemetry.environment import EnvReader
from zktelemetry.errors import ConfigError

logger = logging.getLogger("zktelemetry.keys")

POSTHOG_KEY_ENV = "ANVIL_POSTHOG_KEY"
SENTRY_DSN_ENV = "ANVIL_SENTRY_DSN"

POSTHOG_KEY_PREFIX = "phc_"
SENTRY_DSN_SCHEME = "http"
SENTRY_DSN_DOMAIN = "@sentry.io"


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value


def validate_posthog_key(key: Optional[str]) -> Optional[str]:
    """Return the key unchanged, None for a blank key, or raise ConfigError."""
    key = _blank_to_none(key)
    if key is None:
        return None
    if not key.startswith(POSTHOG_KEY_PREFIX):
        raise ConfigError(
            f"Invalid PostHog key format. Must start with '{POSTHOG_KEY_PREFIX}'",
            context={"variable": POSTHOG_KEY_ENV},
        )
    return key


def validate_sentry_dsn(dsn: Optional[str]) -> Optional[str]:
    """Return the DSN unchanged, None for a blank DSN, or raise ConfigError."""
    dsn = _blank_to_none(dsn)
    if dsn is None:
        return None
    if not dsn.startswith(SENTRY_DSN_SCHEME) or SENTRY_DSN_DOMAIN not in dsn:
        raise ConfigError(
            "Invalid Sentry DSN format",
            context={"variable": SENTRY_DSN_ENV},
        )
    return dsn


def posthog_key(env: Optional[EnvReader] = None) -> Optional[str]:
    """Read the PostHog project key from the environment."""
    env = env or EnvReader()
    return validate_posthog_key(env.get(POSTHOG_KEY_ENV))


def sentry_dsn(env: Optional[EnvReader] = None) -> Optional[str]:
    """Read the Sentry DSN from the environment."""
    env = env or EnvReader()
    return validate_sentry_dsn(env.get(SENTRY_DSN_ENV))


@dataclass(frozen=True)
class TelemetryKeys:
    """API keys for the two collectors. Either may be absent."""

    posthog_key: Optional[str] = None
    sentry_dsn: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[EnvReader] = None) -> "TelemetryKeys":
        env = env or EnvReader()
        keys = cls(posthog_key=posthog_key(env), sentry_dsn=sentry_dsn(env))
        logger.debug(
            "Keys from environment: posthog=%s sentry=%s",
            keys.posthog_key is not None,
            keys.sentry_dsn is not None,
        )
        return keys

    @classmethod
    def with_keys(
        cls,
        posthog_key: Optional[str] = None,
        sentry_dsn: Optional[str] = None,
    ) -> "TelemetryKeys":
        """Validate caller-supplied keys without touching the environment."""
        return cls(
            posthog_key=validate_posthog_key(posthog_key),
            sentry_dsn=validate_sentry_dsn(sentry_dsn),
        )


with_explicit_keys = TelemetryKeys.with_keys
