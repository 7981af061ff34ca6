"""Collector clients - thin wrappers over the PostHog and Sentry SDKs."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from zktelemetry.errors import PostHogError, SentryError

logger = logging.getLogger("zktelemetry.clients")

# Seconds; a CLI must never hang on exit waiting for a collector
SHUTDOWN_TIMEOUT = 2.0


class PostHogAnalytics:
    """Analytics collector backed by ``posthog.Posthog``."""

    def __init__(self, api_key: str, host: Optional[str] = None):
        try:
            from posthog import Posthog

            kwargs: dict[str, Any] = {}
            if host:
                kwargs["host"] = host
            self._client = Posthog(api_key, **kwargs)
        except Exception as e:
            raise PostHogError(f"Failed to create PostHog client: {e}") from e
        logger.debug("PostHog client initialized")

    def capture(self, distinct_id: str, event: str, properties: Mapping[str, Any]) -> None:
        self._client.capture(
            event=event,
            distinct_id=distinct_id,
            properties=dict(properties),
        )

    def close(self) -> None:
        """Flush queued events and stop the sender thread."""
        self._client.shutdown()


class SentryReporter:
    """Error-reporting collector backed by the global ``sentry_sdk`` client."""

    def __init__(self, dsn: str, release: str, tags: Optional[Mapping[str, str]] = None):
        try:
            import sentry_sdk

            # Reports carry the error and its stack only, never frame locals or source lines
            sentry_sdk.init(
                dsn=dsn,
                release=release,
                include_local_variables=False,
                include_source_context=False,
                send_default_pii=False,
            )
            for key, value in (tags or {}).items():
                sentry_sdk.set_tag(key, value)
        except Exception as e:
            raise SentryError(f"Failed to initialize Sentry: {e}") from e
        self._sdk = sentry_sdk
        logger.debug("Sentry client initialized (release %s)", release)

    def capture(self, error: Any) -> None:
        if isinstance(error, BaseException):
            self._sdk.capture_exception(error)
        else:
            self._sdk.capture_message(str(error), level="error")

    def close(self, timeout: float = SHUTDOWN_TIMEOUT) -> None:
        """Flush pending reports and release the client."""
        self._sdk.flush(timeout=timeout)
        self._sdk.get_client().close(timeout=timeout)
