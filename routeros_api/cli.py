"""Command-line interface for the RouterOS API client.

Provides two operator-facing commands:
- shell: interactive console driving one API session
- run: one-shot command whose replies are printed as a table or JSON

Configuration priority (later overrides earlier):
1. Built-in defaults
2. Config file (--config)
3. Environment variables (ROUTEROS_API_* prefix)
4. Command-line options
"""

import json
from pathlib import Path
from typing import Any

import click
from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt
from rich.table import Table

from routeros_api import __version__
from routeros_api.command import command
from routeros_api.config import Settings, load_settings_from_file, set_settings
from routeros_api.infra.observability.logging import setup_logging
from routeros_api.infra.routeros.exceptions import RouterOSError
from routeros_api.infra.routeros.reply import Reply, ReplyKind
from routeros_api.shell import interactive_client

console = Console(highlight=False)


def load_settings(config_path: str | None, overrides: dict[str, Any]) -> Settings:
    """Load settings from config file or environment, then apply CLI overrides.

    Args:
        config_path: Optional path to config file
        overrides: Option values; None entries are ignored

    Returns:
        Settings instance
    """
    settings = load_settings_from_file(Path(config_path)) if config_path else Settings()

    cli_overrides = {k: v for k, v in overrides.items() if v is not None}
    if cli_overrides:
        settings = Settings(**{**settings.model_dump(), **cli_overrides})
    return settings


def reply_to_dict(reply: Reply) -> dict[str, Any]:
    """JSON-friendly view of a reply."""
    data: dict[str, Any] = {
        "kind": reply.kind.name.lower(),
        "attributes": dict(reply.attributes),
    }
    if reply.tag is not None:
        data["tag"] = reply.tag
    if reply.text:
        data["text"] = list(reply.text)
    return data


def render_rows(replies: tuple[Reply, ...]) -> Table:
    """Build a table with one row per !re reply and one column per attribute."""
    rows = [r for r in replies if r.kind is ReplyKind.ROW]
    columns: list[str] = []
    for row in rows:
        for name in row.attributes:
            if name not in columns:
                columns.append(name)

    table = Table(show_lines=False)
    for name in columns:
        table.add_column(escape(name))
    for row in rows:
        table.add_row(*(escape(row.get(name, "")) for name in columns))
    return table


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=str),
    help="Path to configuration file (YAML or TOML)",
)
@click.option("--host", "-H", help="RouterOS device hostname or IP")
@click.option("--port", type=int, help="API port (default: 8728)")
@click.option("--user", "-u", "username", help="RouterOS username")
@click.option("--password", "-p", help="RouterOS password")
@click.option("--ask-password", is_flag=True, help="Prompt for the password")
@click.option("--conn-timeout", type=float, help="TCP connect timeout in seconds")
@click.option("--cmd-timeout", type=float, help="Seconds to wait for each reply sentence")
@click.option(
    "--login-method",
    type=click.Choice(["challenge", "plain", "auto"]),
    help="Login handshake (challenge: pre-6.43, plain: 6.43+)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    help="Logging level",
)
@click.option("--log-format", type=click.Choice(["json", "text"]), help="Log output format")
@click.option("--debug", is_flag=True, help="Enable debug mode (logs every sentence)")
@click.version_option(__version__, prog_name="routeros-api")
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    ask_password: bool,
    debug: bool,
    **options: Any,
) -> None:
    """RouterOS API client - talk to MikroTik RouterOS devices over TCP 8728."""
    try:
        settings = load_settings(config, {**options, "debug": True if debug else None})
    except (ValueError, FileNotFoundError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(2)

    if ask_password:
        settings = Settings(
            **{**settings.model_dump(), "password": Prompt.ask("Password", password=True)}
        )

    set_settings(settings)
    setup_logging(
        level=settings.log_level,
        json_format=settings.log_format == "json",
        log_file=settings.log_file,
    )

    ctx.ensure_object(dict)
    ctx.obj["settings"] = settings


def _settings_with_host(ctx: click.Context) -> Settings:
    settings: Settings = ctx.obj["settings"]
    if not settings.host:
        console.print("[red]Error: no host given (use --host or ROUTEROS_API_HOST)[/red]")
        ctx.exit(2)
    return settings


@cli.command()
@click.pass_context
def shell(ctx: click.Context) -> None:
    """Open an interactive API console."""
    settings = _settings_with_host(ctx)
    ctx.exit(interactive_client(settings.host, settings=settings, console=console))


@cli.command("run")
@click.argument("command_path")
@click.argument("arguments", nargs=-1)
@click.option("--json", "as_json", is_flag=True, help="Print replies as JSON")
@click.option("--strict", is_flag=True, help="Fail if the command answers with !trap")
@click.pass_context
def run_command(
    ctx: click.Context,
    command_path: str,
    arguments: tuple[str, ...],
    as_json: bool,
    strict: bool,
) -> None:
    """Run one command and print its replies.

    Example: routeros-api -H 192.168.88.1 run /interface/print ?type=ether
    """
    settings = _settings_with_host(ctx)

    try:
        results = command(
            settings.host, [command_path, *arguments], settings=settings, strict=strict
        )
    except (RouterOSError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        ctx.exit(1)

    replies = results[0]
    if as_json:
        click.echo(json.dumps([reply_to_dict(r) for r in replies], indent=2))
        return

    if any(r.kind is ReplyKind.ROW for r in replies):
        console.print(render_rows(replies))
    for trap in (r for r in replies if r.kind is ReplyKind.TRAP):
        console.print(f"[yellow]Trap: {escape(trap.message or 'no message')}[/yellow]")
    console.print(f"[green]✓[/green] {escape(command_path)} done")
