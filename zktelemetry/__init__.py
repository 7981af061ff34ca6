"""zktelemetry - opt-in usage and error telemetry for CLI tools, privacy-first."""

from zktelemetry.config import ConsentRecord, ConsentStore, load_or_create, resolve_path, update_consent
from zktelemetry.errors import (
    ConfigError,
    InitializationError,
    InvalidPathError,
    PermissionDeniedError,
    PostHogError,
    SendError,
    SentryError,
    TelemetryEnvironmentError,
    TelemetryError,
)
from zktelemetry.keys import TelemetryKeys, with_explicit_keys
from zktelemetry.telemetry import Telemetry, get_telemetry, initialize

__all__ = [
    "ConfigError",
    "ConsentRecord",
    "ConsentStore",
    "InitializationError",
    "InvalidPathError",
    "PermissionDeniedError",
    "PostHogError",
    "SendError",
    "SentryError",
    "Telemetry",
    "TelemetryEnvironmentError",
    "TelemetryError",
    "TelemetryKeys",
    "get_telemetry",
    "initialize",
    "load_or_create",
    "resolve_path",
    "update_consent",
    "with_explicit_keys",
]
