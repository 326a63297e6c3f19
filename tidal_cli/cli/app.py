"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from tidal_cli import __version__
from tidal_cli.api import SessionManager, TrackResolver
from tidal_cli.core import TrackLoader
from tidal_cli.exceptions import TidalCliError
from tidal_cli.models.config import AUDIO_QUALITIES, TidalConfig
from tidal_cli.models.session import DeviceAuthorization
from tidal_cli.storage import ConfigManager, ContentCache
from tidal_cli.utils.formatting import format_size, format_track

from .formatters import (
    print_cache_stats,
    print_config,
    print_search_results,
    print_validation_table,
)

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("tidal_cli")
log.setLevel("INFO")

app = typer.Typer(
    name="tidal-cli",
    help=(
        "Keeps an authenticated TIDAL session alive and a bounded local cache of"
        " transcoded tracks. Use 'tidal-cli <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "tidal-cli"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config() -> TidalConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config()
    except TidalCliError as e:
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1) from e


def _show_verification(grant: DeviceAuthorization) -> None:
    console.print(
        f"\n[bold]Authorize this device:[/bold] [cyan]{grant.verification_url}[/cyan]"
    )
    if grant.user_code:
        console.print(f"[dim]Code: {grant.user_code}[/dim]")
    console.print(
        f"[dim]Waiting up to {grant.expires_in}s for approval...[/dim]\n"
    )


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    clear_cache: bool = typer.Option(
        False, "--clear-cache", help="Remove every cached track and exit."
    ),
):
    """TIDAL session and cache CLI"""
    if version:
        console.print(f"[bold]tidal-cli[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("tidal_cli").setLevel(log_level)

    if clear_cache:
        config = _load_config()
        cache = ContentCache(config.cache_dir, config.cache_capacity_bytes)
        console.print("[cyan]Clearing content cache...[/cyan]")
        removed = asyncio.run(cache.clear())
        console.print(
            f"[green]✓ Cache cleared successfully ({removed} entries removed).[/green]"
        )
        raise typer.Exit()

    if show_config:
        if not CONFIG_FILE.is_file():
            console.print(
                "[red]✗ Config file not found.[/] Run [cyan]tidal-cli init[/cyan]"
                " first."
            )
            raise typer.Exit(code=1)
        config = _load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    client_id: str = typer.Argument(..., help="OAuth client ID."),
    client_secret: str = typer.Argument(..., help="OAuth client secret."),
    quality: str = typer.Option(
        "HIGH",
        "-q",
        "--quality",
        help=f"Stream quality: {', '.join(AUDIO_QUALITIES)}.",
    ),
    cache_capacity_mb: int = typer.Option(
        1024, "--cache-size", help="Cache capacity in megabytes."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Create the configuration file with the OAuth client credentials."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = {
        "client_id": client_id,
        "client_secret": client_secret,
        "audio_quality": quality.upper(),
        "cache_capacity_mb": cache_capacity_mb,
        "credential_path": CONFIG_DIR / "tidal_token.json",
        "cache_dir": CONFIG_DIR / "cache",
    }
    ConfigManager(CONFIG_FILE).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Next, authorize this device: [cyan]tidal-cli login[/cyan]")


@app.command()
def login(
    force: bool = typer.Option(
        False, "--force", "-f", help="Run the device flow even if a session exists."
    ),
):
    """Authorize this device, or verify the stored session."""
    config = _load_config()

    async def _login_async():
        async with SessionManager(config, on_verification=_show_verification) as session:
            if force:
                identity = await session.login()
            else:
                identity = await session.start()
            console.print(
                f"[green]✓ Authenticated[/green] as user [cyan]{identity.user_id}[/cyan]"
                f" ({identity.country_code})."
            )

    asyncio.run(_login_async())


@app.command()
def search(
    query: list[str] = typer.Argument(..., help="Search query."),  # noqa: B008
    limit: int = typer.Option(10, "-l", "--limit", help="Results per category."),
    types: list[str] = typer.Option(  # noqa: B008
        ["tracks"],
        "-t",
        "--type",
        help="Categories to search: tracks, albums, artists, playlists.",
    ),
):
    """Search the TIDAL catalogue."""
    config = _load_config()
    text = " ".join(query)

    async def _search_async():
        async with SessionManager(config, on_verification=_show_verification) as session:
            await session.start()
            resolver = TrackResolver(session)
            results = await resolver.search(text, limit=limit, types=types)
        print_search_results(text, results)

    asyncio.run(_search_async())


@app.command()
def fetch(
    query: list[str] = typer.Argument(..., help="Search query."),  # noqa: B008
):
    """Find the best match for a query and make sure it is in the cache."""
    config = _load_config()
    text = " ".join(query)

    async def _fetch_async():
        cache = ContentCache(config.cache_dir, config.cache_capacity_bytes)
        async with SessionManager(config, on_verification=_show_verification) as session:
            await session.start()
            loader = TrackLoader(TrackResolver(session), cache)
            with console.status(f"[cyan]Loading '{escape(text)}'...[/cyan]"):
                loaded = await loader.load(text)

        if loaded is None:
            console.print("[yellow]No track was found.[/yellow]")
            raise typer.Exit(code=1)

        origin = "cache hit" if loaded.from_cache else "downloaded"
        console.print(
            f"[green]✓[/green] {escape(format_track(loaded.track))} [dim]({origin})[/dim]"
        )
        console.print(str(loaded.path))

    asyncio.run(_fetch_async())


@app.command(name="cache-stats")
def cache_stats():
    """Show usage of the content cache."""
    config = _load_config()
    cache = ContentCache(config.cache_dir, config.cache_capacity_bytes)
    stats = asyncio.run(cache.stats())
    print_cache_stats(stats, config.cache_dir)
    if stats.total_size > stats.capacity:
        console.print(
            f"[yellow]⚠️  Cache exceeds capacity by "
            f"{format_size(stats.total_size - stats.capacity)}; it will shrink on "
            "the next insert.[/yellow]"
        )


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
        print_validation_table(config)
    except TidalCliError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
