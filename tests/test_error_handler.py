"""Tests for the unified CLI error handler."""
import pytest
import typer

from zktelemetry.error_handler import _debug_mode, handle_errors
from zktelemetry.errors import ConfigError, PermissionDeniedError, TelemetryError


class TestHandleErrorsDecorator:
    def test_passes_through_on_success(self):
        @handle_errors
        def good_func():
            return "ok"

        assert good_func() == "ok"

    def test_catches_config_error(self):
        @handle_errors
        def bad_func():
            raise ConfigError("Failed to parse config", context={"path": "/tmp/t.json"})

        with pytest.raises(typer.Exit) as exc_info:
            bad_func()
        assert exc_info.value.exit_code == 1

    def test_catches_permission_error(self, monkeypatch):
        monkeypatch.setenv("ZKTELEMETRY_DEBUG", "1")

        @handle_errors
        def bad_func():
            raise PermissionDeniedError("/root/telemetry.json")

        with pytest.raises(typer.Exit) as exc_info:
            bad_func()
        assert exc_info.value.exit_code == 1

    def test_catches_generic_telemetry_error(self):
        @handle_errors
        def bad_func():
            raise TelemetryError("generic issue")

        with pytest.raises(typer.Exit) as exc_info:
            bad_func()
        assert exc_info.value.exit_code == 1

    def test_catches_unexpected_error(self):
        @handle_errors
        def crash_func():
            raise RuntimeError("oops")

        with pytest.raises(typer.Exit) as exc_info:
            crash_func()
        assert exc_info.value.exit_code == 1

    def test_catches_keyboard_interrupt(self):
        @handle_errors
        def interrupted():
            raise KeyboardInterrupt()

        with pytest.raises(typer.Exit) as exc_info:
            interrupted()
        assert exc_info.value.exit_code == 130

    def test_exit_passes_through(self):
        @handle_errors
        def exits():
            raise typer.Exit(3)

        with pytest.raises(typer.Exit) as exc_info:
            exits()
        assert exc_info.value.exit_code == 3


class TestDebugMode:
    def test_debug_off_by_default(self, monkeypatch):
        monkeypatch.delenv("ZKTELEMETRY_DEBUG", raising=False)
        assert _debug_mode() is False

    def test_debug_on_with_1(self, monkeypatch):
        monkeypatch.setenv("ZKTELEMETRY_DEBUG", "1")
        assert _debug_mode() is True

    def test_debug_on_with_true(self, monkeypatch):
        monkeypatch.setenv("ZKTELEMETRY_DEBUG", "true")
        assert _debug_mode() is True

    def test_debug_off_with_0(self, monkeypatch):
        monkeypatch.setenv("ZKTELEMETRY_DEBUG", "0")
        assert _debug_mode() is False


class TestRenderedHints:
    def test_permission_hint_names_path(self, capsys):
        @handle_errors
        def bad_func():
            raise PermissionDeniedError("/srv/zk.json")

        with pytest.raises(typer.Exit):
            bad_func()
        out = capsys.readouterr().out
        assert "Permission denied" in out
        assert "permissions of /srv/zk.json" in out

    def test_key_variable_hint(self, capsys):
        @handle_errors
        def bad_func():
            raise ConfigError("Invalid key", context={"variable": "ANVIL_POSTHOG_KEY"})

        with pytest.raises(typer.Exit):
            bad_func()
        assert "Check the value of ANVIL_POSTHOG_KEY" in capsys.readouterr().out

    def test_context_shown_only_in_debug(self, capsys, monkeypatch):
        @handle_errors
        def bad_func():
            raise TelemetryError("boom", context={"path": "/tmp/ctx.json"})

        with pytest.raises(typer.Exit):
            bad_func()
        assert "/tmp/ctx.json" not in capsys.readouterr().out

        monkeypatch.setenv("ZKTELEMETRY_DEBUG", "1")
        with pytest.raises(typer.Exit):
            bad_func()
        assert "/tmp/ctx.json" in capsys.readouterr().out
