#!/usr/bin/env python3
"""
zktelemetry: inspect and change the telemetry consent of a CLI tool.
"""
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.table import Table

from zktelemetry.error_handler import handle_errors
from zktelemetry.telemetry import DEFAULT_APP_NAME
from zktelemetry.ui import ICONS, console, disclosure_panel

app = typer.Typer(
    name="zktelemetry",
    help="Manage anonymous usage telemetry consent.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

APP_OPTION = typer.Option(DEFAULT_APP_NAME, "--app", "-a", help="Application name the consent belongs to")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Explicit consent record path")


@app.callback()
def main_callback():
    """Manage anonymous usage telemetry consent."""
    # Collector keys may live in a local .env during development
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)


@app.command()
@handle_errors
def status(app_name: str = APP_OPTION, config: Optional[Path] = CONFIG_OPTION):
    """Show telemetry status and what's collected."""
    from zktelemetry.config import ConsentStore

    info = ConsentStore().status(app_name, config)

    enabled = info["enabled"]
    if not info["exists"]:
        status_text = "[yellow]not decided[/yellow] (treated as disabled)"
    elif enabled:
        status_text = "[bold green]enabled[/bold green]"
    else:
        status_text = "[bold red]disabled[/bold red]"

    lines = [f"Status: {status_text}"]
    lines.append(f"Consent file: {info['config_path']}")
    if info["instance_id"]:
        lines.append(f"Instance ID: {info['instance_id']}")
        lines.append(f"Decided at: {info['created_at']}")
    lines.append("")
    lines.append("[bold]What we collect:[/bold]")
    for item in info["collected"]:
        lines.append(f"  [green]+[/green] {item}")

    lines.append("")
    lines.append("[bold]What we NEVER collect:[/bold]")
    for item in info["never_collected"]:
        lines.append(f"  [red]-[/red] {item}")

    disclosure_panel("Telemetry", lines, enabled)


@app.command()
@handle_errors
def enable(app_name: str = APP_OPTION, config: Optional[Path] = CONFIG_OPTION):
    """Opt in to anonymous telemetry."""
    from zktelemetry.config import COLLECTED, ConsentStore

    console.print(f"[bold]Telemetry helps improve {app_name} by collecting:[/bold]")
    for item in COLLECTED:
        console.print(f"  [green]+[/green] {item}")
    console.print()

    ConsentStore().record_decision(app_name, True, config)
    console.print("[green]Telemetry enabled.[/green] Thank you!")
    console.print("[dim]Disable anytime: zktelemetry disable[/dim]")


@app.command()
@handle_errors
def disable(app_name: str = APP_OPTION, config: Optional[Path] = CONFIG_OPTION):
    """Opt out of telemetry."""
    from zktelemetry.config import ConsentStore

    ConsentStore().record_decision(app_name, False, config)
    console.print("[yellow]Telemetry disabled.[/yellow] No data will be collected.")


@app.command()
def doctor(app_name: str = APP_OPTION, config: Optional[Path] = CONFIG_OPTION):
    """Run diagnostic checks on the telemetry setup."""
    from zktelemetry.config import ConsentStore
    from zktelemetry.environment import is_ci_environment, is_interactive
    from zktelemetry.errors import TelemetryError
    from zktelemetry.keys import POSTHOG_KEY_ENV, SENTRY_DSN_ENV, posthog_key, sentry_dsn

    # (name, passed, detail)
    checks: list[tuple[str, bool, str]] = []

    store = ConsentStore()
    try:
        info = store.status(app_name, config)
        if info["exists"]:
            state = "enabled" if info["enabled"] else "disabled"
        else:
            state = "not decided"
        checks.append(("Consent record", True, f"{info['config_path']} ({state})"))
    except TelemetryError as e:
        checks.append(("Consent record", False, str(e)))

    checks.append(("Interactive terminal", True, "yes" if is_interactive() else "no"))
    checks.append(("CI environment", True, "detected" if is_ci_environment() else "not detected"))

    for label, env_var, reader in (
        ("PostHog key", POSTHOG_KEY_ENV, posthog_key),
        ("Sentry DSN", SENTRY_DSN_ENV, sentry_dsn),
    ):
        try:
            value = reader()
            checks.append((label, True, f"{env_var} {'set' if value else 'not set'}"))
        except TelemetryError as e:
            checks.append((label, False, f"{env_var}: {e}"))

    table = Table(title="zktelemetry doctor", show_header=True, border_style="cyan")
    table.add_column("Check", min_width=22)
    table.add_column("Status", justify="center", width=6)
    table.add_column("Detail")

    all_ok = True
    for name, passed, detail in checks:
        table.add_row(name, ICONS["ok"] if passed else ICONS["error"], detail)
        all_ok = all_ok and passed

    console.print(table)

    if all_ok:
        console.print("\n[green]All checks passed.[/green]")
    else:
        console.print("\n[yellow]Some checks failed. See details above.[/yellow]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
