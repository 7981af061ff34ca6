"""Shared fixtures for zktelemetry tests."""
import pytest

from zktelemetry.config import ConsentStore
from zktelemetry.environment import CI_ENV_VARS, EnvReader
from zktelemetry.keys import POSTHOG_KEY_ENV, SENTRY_DSN_ENV

from fakes import FakeAnalytics, FakeReporter, FakeTerminal


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point HOME at a temp dir and clear CI and key variables for every test.

    This ensures tests never touch a real consent record.
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    monkeypatch.delenv("ZKTELEMETRY_DEBUG", raising=False)
    for name in CI_ENV_VARS + (POSTHOG_KEY_ENV, SENTRY_DSN_ENV):
        monkeypatch.delenv(name, raising=False)
    FakeAnalytics.instances.clear()
    FakeReporter.instances.clear()
    return home


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "telemetry.json"


@pytest.fixture
def make_store():
    """Build a ConsentStore over a dict environment and a scripted terminal."""

    def _make(env=None, tty=False, answer=None, platform="linux"):
        terminal = FakeTerminal(tty=tty, answer=answer)
        store = ConsentStore(env=EnvReader(env or {}), io=terminal, platform=platform)
        return store, terminal

    return _make


@pytest.fixture
def enabled_record_path(config_path, make_store):
    """A consent record on disk with telemetry enabled."""
    store, _ = make_store()
    record = store.load_or_create("test-app", config_path)
    store.update_consent(record, True)
    return config_path
