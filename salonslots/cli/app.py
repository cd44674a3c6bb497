"""
Main CLI application using Typer.
"""

import asyncio
from pathlib import Path
from typing import Annotated, Any, Dict, Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..config import AppConfig, load_config
from ..domain.exceptions import SalonSlotsError
from ..factory import build_service, build_store
from ..logging_config import configure_logging
from ..services.availability_service import AvailabilityService

app = typer.Typer(
    name="salonslots",
    help="Look up bookable appointment slots for salon stylists",
    add_completion=False,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    Optional[Path],
    typer.Option("--mock", help="Read records from a JSON file instead of the record store."),
]
DateOption = Annotated[
    Optional[str],
    typer.Option("--date", help="Date to check (YYYY-MM-DD). Defaults to today."),
]


def _load(config_file: Optional[Path], mock: Optional[Path]) -> tuple[AppConfig, AvailabilityService]:
    config = load_config(config_file)
    configure_logging(config.log_level)
    store = build_store(config, mock_data_file=mock)
    return config, build_service(config, store=store)


def _run(call) -> Dict[str, Any]:
    try:
        return asyncio.run(call)
    except SalonSlotsError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _default_date(config: AppConfig, date: Optional[str]) -> str:
    return date or pendulum.now(config.timezone).format("YYYY-MM-DD")


@app.command()
def slots(
    stylist_id: Annotated[str, typer.Argument(help="Stylist id")],
    date: DateOption = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    show_all: Annotated[bool, typer.Option("--all", help="Also list unavailable slots with their reason.")] = False,
    config_file: ConfigOption = None,
    mock: MockOption = None,
):
    """
    Show the slot grid for one stylist.

    Examples:

        salonslots slots 42 --date 2024-11-25 --duration 90
        salonslots slots 42 --mock sample_data.json --all
    """
    try:
        config, service = _load(config_file, mock)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    target = _default_date(config, date)
    result = _run(service.get_availability(stylist_id, target, duration))

    if not result["data"]:
        console.print(f"[yellow]⚠ {result.get('message', 'No slots available.')}[/yellow]")
        return

    stylist = result["stylist"]
    hours = stylist["workingHours"]
    table = Table(
        title=f"{stylist['name']} – {target} ({hours['start']}–{hours['end']})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Time", style="bold")
    table.add_column("Status")

    for slot in result["data"]:
        if slot["available"]:
            table.add_row(slot["time"], "[green]available[/green]")
        elif show_all:
            table.add_row(slot["time"], f"[dim]{slot.get('reason', 'unavailable')}[/dim]")

    console.print()
    console.print(table)
    console.print(f"[bold green]✓ {result['availableCount']} of {result['total']} slot(s) available[/bold green]\n")


@app.command()
def consolidated(
    service_id: Annotated[str, typer.Argument(help="Service id")],
    date: DateOption = None,
    branch: Annotated[Optional[str], typer.Option("--branch", help="Only stylists of this branch")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = None,
):
    """
    Show the merged "no preference" grid for a service.
    """
    try:
        config, service = _load(config_file, mock)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    target = _default_date(config, date)
    result = _run(service.get_consolidated_availability(service_id, target, branch))

    if not result["data"]:
        console.print(f"[yellow]⚠ {result.get('message', 'No slots available.')}[/yellow]")
        return

    table = Table(
        title=f"{result['service']['name']} – {target} ({result['dayOfWeek']})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Time", style="bold")
    table.add_column("Free stylists", justify="right")

    for slot in result["data"]:
        count = slot["availableStylistCount"]
        table.add_row(slot["time"], f"[green]{count}[/green]" if count else "[dim]0[/dim]")

    console.print()
    console.print(table)
    console.print(
        f"[bold green]✓ {result['availableSlots']} of {result['totalSlots']} slot(s) open "
        f"across {result['qualifiedStylistCount']} stylist(s)[/bold green]\n"
    )


@app.command()
def stylists(
    service_id: Annotated[str, typer.Argument(help="Service id")],
    date: DateOption = None,
    branch: Annotated[Optional[str], typer.Option("--branch", help="Only stylists of this branch")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = None,
):
    """
    List stylists with free slots for a service, most available first.
    """
    try:
        config, service = _load(config_file, mock)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    target = _default_date(config, date)
    result = _run(service.get_available_stylists(service_id, target, branch))

    if not result["data"]:
        console.print(f"[yellow]⚠ {result.get('message', 'No stylists available.')}[/yellow]")
        return

    table = Table(title=f"{result['service']['name']} – {target}", show_header=True, header_style="bold cyan")
    table.add_column("Stylist", style="bold yellow")
    table.add_column("Free slots", justify="right")
    table.add_column("First free", style="dim")

    for entry in result["data"]:
        first = next((slot["time"] for slot in entry["slots"] if slot["available"]), "-")
        table.add_row(entry["stylist"]["name"], str(entry["availableCount"]), first)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]salonslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
