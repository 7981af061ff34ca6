"""Telemetry consent record - opt-in only, decided once per install.

The consent record lives at ``<os-config-dir>/<app>/telemetry.json``
unless the caller supplies an explicit path. It is created on first
run: interactive terminals are asked, everything else (pipes, CI) is
recorded as disabled without prompting. Later runs reuse the record so
the instance id and creation time never change.
"""
from __future__ import annotations

import json
import logging
import os
import re
import sys
import tempfile
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from zktelemetry.environment import EnvReader, is_interactive
from zktelemetry.errors import (
    ConfigError,
    InvalidPathError,
    PermissionDeniedError,
    TelemetryEnvironmentError,
)
from zktelemetry.ui import TerminalIO

logger = logging.getLogger("zktelemetry.config")

CONFIG_FILENAME = "telemetry.json"

# What we collect (shown to users during opt-in prompt)
COLLECTED = [
    "Basic usage statistics",
    "Error reports",
    "Platform information",
]

# What we NEVER collect
NEVER_COLLECTED = [
    "Personal information",
    "Sensitive configuration",
    "Private keys or addresses",
]

PROMPT_QUESTION = "Would you like to enable telemetry?"

PathLike = Union[str, os.PathLike]

# chrono-style timestamps carry nanoseconds and a trailing Z
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: str) -> datetime:
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    text = _FRACTION_RE.sub(r"\1", text)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class ConsentRecord:
    """The persisted telemetry decision plus its identity metadata."""

    enabled: bool
    instance_id: str
    created_at: datetime
    config_path: Optional[Path] = None

    @classmethod
    def new(cls, enabled: bool, config_path: Optional[Path] = None) -> "ConsentRecord":
        """Create a fresh record with a new random instance id."""
        return cls(
            enabled=enabled,
            instance_id=str(uuid.uuid4()),
            created_at=_now(),
            config_path=config_path,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "instance_id": self.instance_id,
            "created_at": self.created_at.isoformat(),
            "config_path": str(self.config_path) if self.config_path is not None else None,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "ConsentRecord":
        """Build a record from its JSON form, raising ConfigError on bad data."""
        if not isinstance(data, dict):
            raise ConfigError("Consent record must be a JSON object")

        enabled = data.get("enabled")
        if not isinstance(enabled, bool):
            raise ConfigError("Consent record field 'enabled' must be a boolean")

        instance_id = data.get("instance_id")
        if not isinstance(instance_id, str) or not instance_id:
            raise ConfigError("Consent record field 'instance_id' must be a non-empty string")

        created_at = data.get("created_at")
        if not isinstance(created_at, str):
            raise ConfigError("Consent record field 'created_at' must be a timestamp string")
        try:
            created = _parse_timestamp(created_at)
        except ValueError as e:
            raise ConfigError(f"Invalid 'created_at' timestamp: {created_at}") from e

        config_path = data.get("config_path")
        if config_path is not None and not isinstance(config_path, str):
            raise ConfigError("Consent record field 'config_path' must be a string or null")

        return cls(
            enabled=enabled,
            instance_id=instance_id,
            created_at=created,
            config_path=Path(config_path) if config_path else None,
        )

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def from_json(cls, text: str) -> "ConsentRecord":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse config: {e}") from e
        return cls.from_dict(data)


class ConsentStore:
    """Loads, creates and updates consent records on disk.

    Args:
        env: Environment reader (defaults to the process environment).
        io: Terminal used for the first-run prompt.
        platform: ``sys.platform``-style string used for path resolution.
    """

    def __init__(
        self,
        env: Optional[EnvReader] = None,
        io: Optional[TerminalIO] = None,
        platform: Optional[str] = None,
    ):
        self._env = env or EnvReader()
        self._io = io or TerminalIO()
        self._platform = platform or sys.platform

    # ── Paths ──

    def _home(self) -> Path:
        home = self._env.get("HOME") or self._env.get("USERPROFILE")
        if home:
            return Path(home)
        try:
            return Path.home()
        except RuntimeError as e:
            raise TelemetryEnvironmentError(
                "Could not determine the home directory", variable="HOME"
            ) from e

    def config_base_dir(self) -> Path:
        """Return the per-user application config directory for this platform."""
        if self._platform.startswith("win"):
            appdata = self._env.get("APPDATA")
            if appdata:
                return Path(appdata)
            return self._home() / "AppData" / "Roaming"
        if self._platform == "darwin":
            return self._home() / "Library" / "Application Support"
        xdg = self._env.get("XDG_CONFIG_HOME")
        if xdg and Path(xdg).is_absolute():
            return Path(xdg)
        return self._home() / ".config"

    def resolve_path(self, app_name: str, override_path: Optional[PathLike] = None) -> Path:
        """Return the override verbatim, or ``<config-dir>/<app_name>/telemetry.json``."""
        if override_path is not None:
            return Path(override_path)
        if not app_name or not app_name.strip():
            raise InvalidPathError("Application name must not be empty")
        if "/" in app_name or "\\" in app_name or app_name in (".", ".."):
            raise InvalidPathError(f"Invalid application name: {app_name!r}", path=app_name)
        return self.config_base_dir() / app_name / CONFIG_FILENAME

    # ── Lifecycle ──

    def load(self, path: Path) -> ConsentRecord:
        """Read an existing record. Malformed content is an error, never a reset."""
        if path.is_dir():
            raise InvalidPathError(f"Config path is a directory: {path}", path=str(path))
        try:
            text = path.read_text(encoding="utf-8")
        except PermissionError as e:
            raise PermissionDeniedError(str(path), action="read") from e
        except OSError as e:
            raise ConfigError(
                f"Failed to open config file: {e}", context={"path": str(path)}
            ) from e

        try:
            record = ConsentRecord.from_json(text)
        except ConfigError as e:
            e.context.setdefault("path", str(path))
            raise
        record.config_path = path
        logger.debug("Loaded consent record from %s", path)
        return record

    def load_or_create(
        self, app_name: str, override_path: Optional[PathLike] = None
    ) -> ConsentRecord:
        """Return the stored record, creating (and maybe prompting for) it on first run."""
        path = self.resolve_path(app_name, override_path)

        if path.exists():
            return self.load(path)

        if not is_interactive(self._env, self._io):
            logger.debug("Non-interactive run, recording telemetry as disabled")
            record = ConsentRecord.new(enabled=False, config_path=path)
        else:
            enabled = self._prompt(app_name)
            record = ConsentRecord.new(enabled=enabled, config_path=path)

        self.save(record)
        logger.info(
            "Created consent record at %s (telemetry %s)",
            path,
            "enabled" if record.enabled else "disabled",
        )
        return record

    def _prompt(self, app_name: str) -> bool:
        io = self._io
        io.write(f"Help us improve {app_name} by sending anonymous usage data.")
        io.write("We collect:")
        for item in COLLECTED:
            io.write(f"  - {item}")
        io.write()
        io.write("We DO NOT collect:")
        for item in NEVER_COLLECTED:
            io.write(f"  - {item}")
        io.write()
        io.write(f"{PROMPT_QUESTION} (y/n)")

        answer = io.readline()
        if answer is None:
            return False
        return answer.strip().lower().startswith("y")

    def update_consent(self, record: ConsentRecord, enabled: bool) -> None:
        """Change the decision and persist it if the record has a path."""
        record.enabled = enabled
        if record.config_path is not None:
            self.save(record)
        logger.info("Telemetry %s", "enabled" if enabled else "disabled")

    def record_decision(
        self, app_name: str, enabled: bool, override_path: Optional[PathLike] = None
    ) -> ConsentRecord:
        """Persist an explicit decision without prompting.

        An existing record keeps its instance id; otherwise a new one is
        created directly with the given decision.
        """
        path = self.resolve_path(app_name, override_path)
        if path.exists():
            record = self.load(path)
            self.update_consent(record, enabled)
            return record

        record = ConsentRecord.new(enabled=enabled, config_path=path)
        self.save(record)
        logger.info(
            "Created consent record at %s (telemetry %s)",
            path,
            "enabled" if enabled else "disabled",
        )
        return record

    def save(self, record: ConsentRecord) -> None:
        """Atomically write the full record to its config path."""
        path = record.config_path
        if path is None:
            raise InvalidPathError("Consent record has no config path")

        # Serialize completely before touching the filesystem
        payload = record.to_json()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except PermissionError as e:
            raise PermissionDeniedError(str(path.parent), action="create") from e
        except OSError as e:
            raise ConfigError(
                f"Failed to create config directory: {e}",
                context={"path": str(path.parent)},
            ) from e

        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except PermissionError as e:
            raise PermissionDeniedError(str(path), action="write") from e
        except OSError as e:
            raise ConfigError(
                f"Failed to write config: {e}", context={"path": str(path)}
            ) from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.debug("Could not remove temporary file %s", tmp_name)

        logger.debug("Saved consent record to %s", path)

    def status(self, app_name: str, override_path: Optional[PathLike] = None) -> dict:
        """Describe the current consent state without creating anything."""
        path = self.resolve_path(app_name, override_path)
        info: dict[str, Any] = {
            "enabled": False,
            "exists": path.exists(),
            "instance_id": None,
            "created_at": None,
            "config_path": str(path),
            "collected": COLLECTED,
            "never_collected": NEVER_COLLECTED,
        }
        if info["exists"]:
            record = self.load(path)
            info["enabled"] = record.enabled
            info["instance_id"] = record.instance_id
            info["created_at"] = record.created_at.isoformat()
        return info


def resolve_path(app_name: str, override_path: Optional[PathLike] = None) -> Path:
    """Resolve the consent record path using the process environment."""
    return ConsentStore().resolve_path(app_name, override_path)


def load_or_create(app_name: str, override_path: Optional[PathLike] = None) -> ConsentRecord:
    """Load or create the consent record using the process environment and terminal."""
    return ConsentStore().load_or_create(app_name, override_path)


def update_consent(record: ConsentRecord, enabled: bool) -> None:
    """Update and persist a consent record."""
    ConsentStore().update_consent(record, enabled)
