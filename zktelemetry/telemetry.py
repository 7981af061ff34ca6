"""Telemetry facade - consent-guarded forwarding to PostHog and Sentry."""
from __future__ import annotations

import atexit
import json
import logging
import sys
from typing import Any, Callable, Mapping, Optional

from zktelemetry.clients import PostHogAnalytics, SentryReporter
from zktelemetry.config import ConsentRecord, ConsentStore, PathLike
from zktelemetry.errors import SendError
from zktelemetry.keys import TelemetryKeys

logger = logging.getLogger("zktelemetry.telemetry")

DEFAULT_APP_NAME = "zksync"

# Shared instances, one per application name
_instances: "dict[str, Telemetry]" = {}

AnalyticsFactory = Callable[[str], Any]
ReporterFactory = Callable[[str, str, Mapping[str, str]], Any]


class Telemetry:
    """Opt-in telemetry for a CLI tool, designed for short-lived processes.

    Key constraints:
    - Nothing is constructed or sent unless the stored consent is enabled
    - A client exists only when its key was supplied
    - ``close()`` flushes both clients; it runs on ``with`` exit and at interpreter exit

    Args:
        app_name: Application name, used for the config path and Sentry tags.
        posthog_key: PostHog project key (``phc_...``), or None.
        sentry_dsn: Sentry DSN, or None.
        config_path: Explicit consent record path instead of the OS default.
        store: Consent store to use (defaults to one over the real environment).
        version: Version reported with events (defaults to the installed package version).
        analytics_factory: Builds the analytics client from a key.
        reporter_factory: Builds the error reporter from ``(dsn, release, tags)``.
    """

    def __init__(
        self,
        app_name: str,
        posthog_key: Optional[str] = None,
        sentry_dsn: Optional[str] = None,
        config_path: Optional[PathLike] = None,
        *,
        store: Optional[ConsentStore] = None,
        version: Optional[str] = None,
        analytics_factory: Optional[AnalyticsFactory] = None,
        reporter_factory: Optional[ReporterFactory] = None,
    ):
        self._app_name = app_name
        self._version = version or _get_version()
        self._store = store or ConsentStore()
        self._record = self._store.load_or_create(app_name, config_path)
        self._analytics = None
        self._reporter = None
        self._closed = False

        if self._record.enabled:
            keys = TelemetryKeys.with_keys(posthog_key, sentry_dsn)
            self._setup_clients(
                keys,
                analytics_factory or PostHogAnalytics,
                reporter_factory or SentryReporter,
            )
        else:
            logger.debug("Telemetry disabled, no clients constructed")

    def _setup_clients(
        self,
        keys: TelemetryKeys,
        analytics_factory: AnalyticsFactory,
        reporter_factory: ReporterFactory,
    ) -> None:
        if keys.posthog_key:
            self._analytics = analytics_factory(keys.posthog_key)

        if keys.sentry_dsn:
            tags = {
                "app": self._app_name,
                "version": self._version,
                "platform": platform_name(),
            }
            try:
                self._reporter = reporter_factory(keys.sentry_dsn, self._version, tags)
            except Exception:
                self.close()
                raise

        if self._analytics is not None or self._reporter is not None:
            # Bounded flush on interpreter exit if the owner never closes us
            atexit.register(self.close)

    # ── Properties ──

    @property
    def record(self) -> ConsentRecord:
        return self._record

    @property
    def enabled(self) -> bool:
        return self._record.enabled

    @property
    def instance_id(self) -> str:
        return self._record.instance_id

    # ── Operations ──

    def track_event(self, name: str, properties: Optional[Mapping[str, Any]] = None) -> None:
        """Send a named usage event. A no-op without consent or a PostHog key."""
        if not self._record.enabled or self._analytics is None:
            return

        props = dict(properties or {})
        props["platform"] = platform_name()
        props["version"] = self._version

        try:
            json.dumps(props)
        except (TypeError, ValueError) as e:
            raise SendError(f"Event properties are not JSON-serializable: {e}", event=name) from e

        try:
            self._analytics.capture(self._record.instance_id, name, props)
        except Exception as e:
            raise SendError(f"Failed to send event: {e}", event=name) from e

    def track_error(self, error: Any) -> None:
        """Report an error, fire-and-forget. A no-op without consent or a Sentry DSN."""
        if not self._record.enabled or self._reporter is None:
            return
        try:
            self._reporter.capture(error)
        except Exception:
            logger.debug("Failed to report error to Sentry", exc_info=True)

    def update_consent(self, enabled: bool) -> None:
        """Change and persist the stored decision.

        Clients are only built at construction, so enabling takes effect
        on the next run; disabling takes effect immediately.
        """
        self._store.update_consent(self._record, enabled)

    def close(self) -> None:
        """Flush and release both collector clients. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        atexit.unregister(self.close)

        for client in (self._analytics, self._reporter):
            if client is None:
                continue
            try:
                client.close()
            except Exception:
                logger.debug("Failed to close %s", type(client).__name__, exc_info=True)
        self._analytics = None
        self._reporter = None

    def __enter__(self) -> "Telemetry":
        return self

    def __exit__(self, *args) -> None:
        self.close()


def initialize(
    app_name: str,
    posthog_key: Optional[str] = None,
    sentry_dsn: Optional[str] = None,
    config_path: Optional[PathLike] = None,
    **kwargs: Any,
) -> Telemetry:
    """Create a Telemetry facade; see ``Telemetry`` for the arguments."""
    return Telemetry(app_name, posthog_key, sentry_dsn, config_path, **kwargs)


def platform_name() -> str:
    """Host OS identifier: linux, macos, windows, or the raw sys.platform."""
    if sys.platform.startswith("linux"):
        return "linux"
    if sys.platform == "darwin":
        return "macos"
    if sys.platform in ("win32", "cygwin"):
        return "windows"
    return sys.platform


def _get_version() -> str:
    """Get zktelemetry version safely."""
    try:
        from importlib.metadata import version

        return version("zktelemetry")
    except Exception:
        return "0.0.0"


def get_telemetry(app_name: str = DEFAULT_APP_NAME) -> Telemetry:
    """Get the shared telemetry instance for ``app_name``, keyed from the environment.

    Each application name gets its own instance and consent record.
    """
    telemetry = _instances.get(app_name)
    if telemetry is None:
        keys = TelemetryKeys.from_env()
        telemetry = Telemetry(app_name, keys.posthog_key, keys.sentry_dsn)
        _instances[app_name] = telemetry
    return telemetry


def reset_telemetry() -> None:
    """Close and drop every shared instance (for testing)."""
    while _instances:
        _, telemetry = _instances.popitem()
        telemetry.close()
