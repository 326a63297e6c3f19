"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tidal_cli.models.config import TidalConfig, get_quality_info
from tidal_cli.models.stats import CacheStats
from tidal_cli.utils.formatting import format_duration, format_size


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthError": [
            "• The stored session can no longer be refreshed.",
            "• Run `tidal-cli login` to authorize this device again.",
        ],
        "UnauthorizedError": [
            "• The API rejected the credential even after a refresh.",
            "• Run `tidal-cli login` to authorize this device again.",
        ],
        "DeviceAuthorizationTimeout": [
            "• The login link expired before it was approved.",
            "• Run `tidal-cli login` and approve the device promptly.",
        ],
        "NotAvailable": [
            "• This content may not be available in your region.",
            "• Your subscription tier may not grant access.",
        ],
        "TransientNetworkError": [
            "• A network connection issue occurred.",
            "• The TIDAL API might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
        "UpstreamRejected": [
            "• TIDAL refused the request.",
            "• Run the command with -vv for the full response.",
        ],
        "CapacityExceededError": [
            "• The track is larger than the whole cache.",
            "• Raise `cache_capacity_mb` in the configuration file.",
        ],
        "StorageIOError": [
            "• Check free disk space and permissions of the cache directory.",
        ],
        "TranscodeError": [
            "• Make sure ffmpeg is installed and built with libopus.",
        ],
        "ConfigurationError": [
            "• Run `tidal-cli init <CLIENT_ID> <CLIENT_SECRET>` to create a config.",
            "• Or set TIDAL_CLIENT_ID and TIDAL_CLIENT_SECRET.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "client_secret":
            value = "[hidden]"
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: TidalConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    quality_info = get_quality_info(config.audio_quality)
    credential_state = (
        "[green]present[/green]"
        if Path(config.credential_path).is_file()
        else "[yellow]missing (run login)[/yellow]"
    )

    table.add_row("Client ID:", config.client_id)
    table.add_row("Credential:", f"{credential_state} [dim]{config.credential_path}[/dim]")
    table.add_row("Quality:", f"{config.audio_quality} ({quality_info['name']})")
    table.add_row("Cache Dir:", f"[dim]{config.cache_dir}[/dim]")
    table.add_row("Cache Capacity:", format_size(config.cache_capacity_bytes))

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_search_results(query: str, results: dict[str, list[dict[str, Any]]]):
    """Displays search results, one table per category."""
    console = Console()
    if not any(results.values()):
        console.print(f"[yellow]No results for '{query}'.[/yellow]")
        return

    for category, items in results.items():
        table = Table(title=f"{category.capitalize()} matching '{query}'")
        table.add_column("#", style="dim", justify="right")
        table.add_column("ID", style="dim")
        table.add_column("Title", style="cyan")
        table.add_column("Artist")
        table.add_column("Length", justify="right", style="green")
        for i, item in enumerate(items, 1):
            artist = (item.get("artist") or {}).get("name") or ", ".join(
                a.get("name", "") for a in item.get("artists", [])
            )
            title = item.get("title") or item.get("name") or "Unknown"
            if item.get("allowStreaming") is False:
                title = f"{title} [red](unavailable)[/red]"
            length = format_duration(item["duration"]) if item.get("duration") else ""
            table.add_row(str(i), str(item.get("id", "")), title, artist, length)
        console.print(table)


def print_cache_stats(stats: CacheStats, cache_dir: Path):
    """Displays usage of the content cache."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column()

    color = "green" if stats.usage_ratio < 0.9 else "yellow"
    table.add_row("Entries:", str(stats.entries))
    table.add_row(
        "Used:",
        f"[{color}]{format_size(stats.total_size)}[/{color}] of "
        f"{format_size(stats.capacity)} ({stats.usage_ratio:.0%})",
    )
    table.add_row("Directory:", f"[dim]{cache_dir}[/dim]")

    console.print(Panel(table, title="[bold]Content Cache[/bold]", border_style="cyan"))
