"""CLI commands for the push notification bridge."""

import asyncio
import json
import signal
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from src.core.config import ensure_default_config, load_settings
from src.core.exceptions import BridgeException, ConfigurationException, MalformedEventException
from src.core.logging import get_logger, setup_logging
from src.events.listener import EventListener
from src.events.models import Event
from src.rules.filters import is_known_operator
from src.rules.store import RuleStore
from src.rules.templates import find_placeholders
from src.webhooks.builder import build
from src.webhooks.dispatcher import NotificationDispatcher
from src.webhooks.sender import WebhookSender

app = typer.Typer(name="tracim-push", help="Tracim event to push notification bridge")
console = Console()
logger = get_logger(__name__)

RulesOption = typer.Option(
    None, "--rules", "-r", help="Rule file or directory (repeatable)"
)
ConfigDirOption = typer.Option(None, "--config-dir", help="Base configuration directory")


def _rule_sources(rules: Optional[list[Path]], config_dir: Optional[Path]) -> list[Path]:
    if rules:
        return rules
    settings = load_settings(config_dir)
    if not settings.notification_config_folder:
        raise ConfigurationException("No rule source given and none configured")
    return [Path(settings.notification_config_folder)]


def _load_store(rules: Optional[list[Path]], config_dir: Optional[Path]) -> RuleStore:
    try:
        sources = _rule_sources(rules, config_dir)
    except BridgeException as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from e

    store = RuleStore.load(sources)
    if not store.sources_loaded:
        console.print("[red]No rule document could be loaded[/red]")
        raise typer.Exit(code=1)
    return store


@app.command()
def version() -> None:
    """Show version."""
    console.print("[bold green]Tracim Push v0.1.0[/bold green]")


@app.command("init-config")
def init_config(config_dir: Optional[Path] = ConfigDirOption) -> None:
    """Create the default config file and rules folder if missing."""
    config_file = ensure_default_config(config_dir)
    console.print(f"[green]✓ Config file: {config_file}[/green]")


@app.command()
def check(
    rules: Optional[list[Path]] = RulesOption,
    config_dir: Optional[Path] = ConfigDirOption,
) -> None:
    """Load rules and report what each event type will do."""
    store = _load_store(rules, config_dir)

    table = Table(title=f"{len(store)} rules")
    table.add_column("Event type", style="cyan")
    table.add_column("Rule")
    table.add_column("Filters")
    table.add_column("Priority", justify="right")

    warnings: list[str] = []
    for rule in store:
        filters = ", ".join(f"{f.key_path} {f.match} {f.value!r}" for f in rule.filters)
        table.add_row(rule.event_type, rule.name, filters or "-", str(rule.notification.priority))

        for event_filter in rule.filters:
            if not is_known_operator(event_filter.match):
                warnings.append(
                    f"{rule.name}: unknown operator {event_filter.match!r}, filter never passes"
                )

        names = {element.name for element in rule.elements}
        template = rule.notification.title + rule.notification.body
        for name in dict.fromkeys(find_placeholders(template)):
            if name not in names:
                warnings.append(f"{rule.name}: placeholder {{{{{name}}}}} has no element")

    console.print(table)
    for path in store.sources_failed:
        console.print(f"[red]✗ Skipped {path}[/red]")
    for warning in warnings:
        console.print(f"[yellow]! {warning}[/yellow]")


@app.command()
def render(
    event_file: Path = typer.Argument(..., help="JSON file with event_type and fields"),
    rules: Optional[list[Path]] = RulesOption,
    config_dir: Optional[Path] = ConfigDirOption,
    strict: bool = typer.Option(False, help="Skip notifications with unresolvable fields"),
) -> None:
    """Show the notifications an event would produce, without sending them."""
    store = _load_store(rules, config_dir)

    try:
        event = Event.from_payload(json.loads(event_file.read_text(encoding="utf-8")))
    except (OSError, json.JSONDecodeError, MalformedEventException) as e:
        console.print(f"[red]Cannot read event: {e}[/red]")
        raise typer.Exit(code=1) from e

    matching = store.lookup(event.event_type)
    if not matching:
        console.print(f"[yellow]No rule for {event.event_type}[/yellow]")
        return

    for rule in matching:
        message = build(rule, event, strict=strict)
        if message is None:
            console.print(f"[dim]{rule.name}: filtered out[/dim]")
            continue
        console.print(f"[bold]{rule.name}[/bold] (priority {message.priority})")
        console.print(f"  {message.title}")
        console.print(f"  {message.body}")


async def _serve(
    store: RuleStore,
    sender: WebhookSender,
    socket_path: str,
    master_socket_path: Optional[str],
    strict: bool,
) -> None:
    stop_event = asyncio.Event()

    def signal_handler() -> None:
        logger.info("shutdown_signal_received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    async with sender:
        dispatcher = NotificationDispatcher(store, sender, strict=strict)
        listener = EventListener(
            socket_path,
            dispatcher.handle_envelope,
            master_socket_path=master_socket_path,
        )
        await listener.serve_until(stop_event)


@app.command()
def run(config_dir: Optional[Path] = ConfigDirOption) -> None:
    """Run the bridge in the foreground until interrupted."""
    try:
        settings = load_settings(config_dir)
        settings.require_runtime()
    except ConfigurationException as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1) from e

    setup_logging(debug=settings.debug, log_level=settings.log_level)

    store = RuleStore.load([settings.notification_config_folder])
    if not store.sources_loaded:
        logger.critical("no_rules_loaded", path=settings.notification_config_folder)
        raise typer.Exit(code=1)

    sender = WebhookSender(url=settings.gotify_url, timeout=settings.webhook_timeout)

    try:
        asyncio.run(
            _serve(
                store,
                sender,
                settings.socket_path,
                settings.master_socket_path or None,
                settings.strict_templates,
            )
        )
    except BridgeException as e:
        logger.critical("bridge_startup_failed", error=e.message, **e.details)
        raise typer.Exit(code=1) from e


if __name__ == "__main__":
    app()
