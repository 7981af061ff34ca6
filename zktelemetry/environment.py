"""Process environment access and CI detection.

Environment variables are read through an ``EnvReader`` so that the
consent store and key provider can be exercised against a plain dict
in tests instead of the real ``os.environ``.
"""
from __future__ import annotations

import os
from typing import Mapping, Optional

from zktelemetry.ui import TerminalIO

# Presence of any of these marks a CI run, whatever the value
CI_ENV_VARS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "GITHUB_ACTIONS",
    "TEAMCITY_VERSION",
    "TRAVIS",
)


class EnvReader:
    """Read-only view over a mapping of environment variables."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._environ = os.environ if environ is None else environ

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self._environ.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self._environ


def is_ci_environment(env: Optional[EnvReader] = None) -> bool:
    """Check whether a well-known CI variable is set."""
    env = env or EnvReader()
    return any(name in env for name in CI_ENV_VARS)


def is_interactive(env: Optional[EnvReader] = None, io: Optional[TerminalIO] = None) -> bool:
    """A run is interactive when stdin and stdout are terminals and we are not in CI."""
    io = io or TerminalIO()
    return io.is_tty() and not is_ci_environment(env)
