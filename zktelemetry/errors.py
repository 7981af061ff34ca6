"""Custom exception hierarchy for zktelemetry.

All zktelemetry exceptions derive from TelemetryError. Each exception
carries an optional ``context`` dict with structured metadata (config
path, variable name, collector name, etc.) that the CLI error handler
can render.

Exception hierarchy::

    TelemetryError
    ├── InitializationError
    │   ├── PostHogError
    │   └── SentryError
    ├── ConfigError
    │   ├── InvalidPathError
    │   └── PermissionDeniedError
    ├── SendError
    └── TelemetryEnvironmentError
"""
from __future__ import annotations

from typing import Optional


class TelemetryError(Exception):
    """Base class for all zktelemetry exceptions.

    Args:
        message: Human-readable error description.
        context: Optional dict of structured metadata.
    """

    exit_code: int = 1
    # Next step shown to the user by the CLI, formatted with ``context``
    hint: Optional[str] = None

    def __init__(self, message: str, context: Optional[dict] = None):
        self.context = context or {}
        super().__init__(message)

    def help_text(self) -> Optional[str]:
        if self.hint is None:
            return None
        return self.hint.format(**self.context)


# ── Initialization ─────────────────────────────────────────────────

class InitializationError(TelemetryError):
    """Raised when a collector client cannot be constructed."""

    hint = "Run 'zktelemetry doctor' to check your collector keys."

    def __init__(self, message: str, collector: str = "", context: Optional[dict] = None):
        ctx = {"collector": collector}
        if context:
            ctx.update(context)
        super().__init__(message, context=ctx)


class PostHogError(InitializationError):
    """Raised when the PostHog analytics client fails to start."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, collector="posthog", context=context)


class SentryError(InitializationError):
    """Raised when the Sentry error-reporting client fails to start."""

    def __init__(self, message: str, context: Optional[dict] = None):
        super().__init__(message, collector="sentry", context=context)


# ── Configuration ──────────────────────────────────────────────────

class ConfigError(TelemetryError):
    """Raised when the consent record or a credential is invalid or unusable."""

    hint = (
        "The consent record may be corrupt. Inspect it with "
        "'zktelemetry status' or delete it to be asked again."
    )

    def help_text(self) -> Optional[str]:
        if self.context.get("variable"):
            return f"Check the value of {self.context['variable']}."
        return super().help_text()


class InvalidPathError(ConfigError):
    """Raised when a consent record path cannot be derived or used."""

    hint = "Use a plain application name or pass --config with a file path."

    def __init__(self, message: str, path: str = ""):
        super().__init__(message, context={"path": path})


class PermissionDeniedError(ConfigError):
    """Raised when the consent record cannot be read or written for lack of permission."""

    hint = "Check the permissions of {path} and its directory."

    def __init__(self, path: str, action: str = "write"):
        super().__init__(
            f"Permission denied: cannot {action} {path}",
            context={"path": path, "action": action},
        )


# ── Operation Errors ───────────────────────────────────────────────

class SendError(TelemetryError):
    """Raised when an event cannot be handed to the analytics collector."""

    def __init__(self, message: str, event: str = ""):
        super().__init__(message, context={"event": event})


class TelemetryEnvironmentError(TelemetryError):
    """Raised when the process environment lacks something we need (e.g. a home directory)."""

    hint = "Set HOME (USERPROFILE on Windows) or pass --config."

    def __init__(self, message: str, variable: str = ""):
        super().__init__(message, context={"variable": variable})
