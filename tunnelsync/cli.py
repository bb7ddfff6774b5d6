"""CLI interface for tunnelsync - Headless access to the status engine.

Usage:
    tunnelsync-cli statuses
    tunnelsync-cli decode "BAD_CONFIG: port must be numeric"
    tunnelsync-cli classify "Permission denied (publickey)."
    tunnelsync-cli replay CONNECTING CONNECTED RETRYING --settings ~/settings.json
    tunnelsync-cli config export config.yaml
"""

import json
from pathlib import Path
from typing import List, Optional

import typer
from loguru import logger

from tunnelsync import __version__
from tunnelsync.core import status_registry
from tunnelsync.core.config import Config
from tunnelsync.core.logger import configure_cli_logging
from tunnelsync.core.signal_decoder import decode
from tunnelsync.core.subscription_manager import SubscriptionManager
from tunnelsync.core.types import SystemState
from tunnelsync.repositories.settings_repository import SettingsRepository
from tunnelsync.services.notification_service import NotificationPermission
from tunnelsync.services.signal_channel import EventChannel
from tunnelsync.utils.stderr_classifier import classify_stderr

# Create Typer app
app = typer.Typer(
    name="tunnelsync-cli",
    help="tunnelsync headless CLI - Inspect and replay SSH tunnel status signals",
    add_completion=False,
)


class _EchoNotifier:
    """Prints notifications inline with the replay output."""

    def notify(self, title: str, body: str) -> None:
        typer.echo(f"    🔔 {title}: {body}")


def _format_state(raw: str, state: SystemState) -> str:
    line = f"{raw!r:<40} -> {state.status.value:<12} {state.display_info.label}"
    if state.system_error:
        line += f"  [{state.system_error}]"
    return line


def _read_signals(signals: Optional[List[str]], file: Optional[Path]) -> List[str]:
    collected = list(signals or [])
    if file is not None:
        with open(file, "r", encoding="utf-8") as f:
            collected.extend(line.rstrip("\n") for line in f if line.strip())
    return collected


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to configuration file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", "-l", help="Log level for stderr"),
):
    """tunnelsync - SSH tunnel status synchronization."""
    config = Config(config_path)
    configure_cli_logging(log_level or config.get("log_level", "warning"))
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@app.command()
def version():
    """Show version information."""
    typer.echo(f"tunnelsync CLI v{__version__}")


@app.command()
def statuses():
    """List every status code with its label, icon and side-effect class."""
    for code, info, effect_class in status_registry.all_entries():
        view = "connected" if status_registry.is_connected_view(code) else "connect"
        typer.echo(f"{code.value:<14} {info.label:<24} {info.icon.value:<8} {effect_class.value:<18} {view}")


@app.command("decode")
def decode_signal(signal: str = typer.Argument(..., help="Raw status signal")):
    """Decode a raw status signal."""
    code, detail = decode(signal)
    typer.echo(f"Status: {code.value}")
    typer.echo(f"Detail: {detail if detail is not None else '-'}")


@app.command()
def classify(text: str = typer.Argument(..., help="Captured ssh stderr text")):
    """Show the signal the tunnel supervisor emits for ssh stderr output."""
    typer.echo(classify_stderr(text))


@app.command()
def replay(
    ctx: typer.Context,
    signals: Optional[List[str]] = typer.Argument(None, help="Signals in delivery order"),
    file: Optional[Path] = typer.Option(None, "--file", "-f", help="Read signals from a file, one per line"),
    settings: Optional[Path] = typer.Option(
        None, "--settings", "-s", help="User settings file; saved back on a successful connection"
    ),
    notify: Optional[bool] = typer.Option(None, "--notify/--no-notify", help="Emit notifications"),
):
    """Feed signals through the engine and print every state change."""
    config: Config = ctx.obj["config"]
    channel_name = config.get("channel", "tunnel_status")
    if notify is None:
        notify = bool(config.get("notifications_enabled", True))

    try:
        raw_signals = _read_signals(signals, file)
    except OSError as e:
        typer.echo(f"❌ Error: Cannot read signals: {e}", err=True)
        raise typer.Exit(1)

    if not raw_signals:
        typer.echo("❌ Error: No signals given", err=True)
        raise typer.Exit(1)

    persist = None
    user_settings = None
    if settings is not None:
        repository = SettingsRepository(str(settings))
        user_settings, message = repository.load()
        if message:
            typer.echo(f"⚠️  {message}")
            user_settings = None
        else:
            persist = repository.save

    channel = EventChannel()
    manager = SubscriptionManager(
        channel=channel,
        persist=persist,
        notifier=_EchoNotifier(),
        permission=NotificationPermission.fixed(notify),
        channel_name=channel_name,
        persist_in_background=False,
    )
    manager.start(settings=user_settings)

    try:
        for raw in raw_signals:
            channel.emit(channel_name, raw)
            typer.echo(_format_state(raw, manager.state))
    finally:
        manager.stop()

    history = manager.state.history
    typer.echo(f"\nHistory ({len(history)} entries):")
    for entry in history:
        typer.echo(f"  {entry.timestamp}  {entry.status.value}")
    logger.debug(f"[CLI] Replayed {len(raw_signals)} signals")


config_app = typer.Typer(help="Manage configuration")
app.add_typer(config_app, name="config")


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Show current configuration."""
    config: Config = ctx.obj["config"]
    typer.echo(f"Configuration file: {config.config_path}")
    for key, value in config.config_data.items():
        typer.echo(f"  {key}: {value}")


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Configuration key"),
    value: str = typer.Argument(..., help="New value (JSON literals such as true or 3 are parsed)"),
):
    """Set a configuration value and save it."""
    config: Config = ctx.obj["config"]
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    config.set(key, parsed)
    try:
        config.save()
    except OSError as e:
        typer.echo(f"❌ Error: Cannot save configuration: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(f"✅ {key} = {parsed!r}")


@config_app.command("import")
def config_import(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON or YAML file"),
    file_format: Optional[str] = typer.Option(None, "--format", help="json or yaml (default: from suffix)"),
):
    """Import configuration from file."""
    config: Config = ctx.obj["config"]
    if not config.import_config(file, file_format):
        typer.echo("❌ Failed to import configuration", err=True)
        raise typer.Exit(1)
    typer.echo(f"✅ Configuration imported from {file}")


@config_app.command("export")
def config_export(
    ctx: typer.Context,
    file: Path = typer.Argument(..., dir_okay=False, help="Output file"),
    file_format: Optional[str] = typer.Option(None, "--format", help="json or yaml (default: from suffix)"),
):
    """Export configuration to file."""
    config: Config = ctx.obj["config"]
    if not config.export_config(file, file_format):
        typer.echo("❌ Failed to export configuration", err=True)
        raise typer.Exit(1)
    typer.echo(f"✅ Configuration exported to {file}")


if __name__ == "__main__":
    app()
