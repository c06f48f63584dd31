from __future__ import annotations

import logging

import typer
from rich import print
from rich.markup import escape

from icsio.errors import FetchError, IcsError, SerializationPreconditionError
from icsio.loader import fetch_with_diagnostics, load_file
from icsio.parser import ParseResult
from icsio.serializer import check_serializable, serialize_to_file
from icsio.timeutil import format_ical_datetime

app = typer.Typer(
    name="icsio",
    help="Read, check and re-emit iCalendar files.",
    no_args_is_help=True,
)

_URL_PREFIXES = ("http://", "https://", "webcal://")


def _load(source: str) -> ParseResult:
    try:
        if source.lower().startswith(_URL_PREFIXES):
            return fetch_with_diagnostics(source)
        return load_file(source)
    except FetchError as exc:
        print(f"[red]Fetch failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except IcsError as exc:
        print(f"[red]Parse failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except OSError as exc:
        raise typer.BadParameter(f"Cannot read {source}: {exc.strerror or exc}") from exc
    except UnicodeDecodeError as exc:
        raise typer.BadParameter(f"{source} is not UTF-8 text.") from exc


def _print_diagnostics(result: ParseResult) -> None:
    for diagnostic in result.diagnostics:
        print(f"[yellow]warning[/yellow] {escape(str(diagnostic))}")


@app.callback()
def root(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log parser activity to stderr."),
) -> None:
    """icsio CLI entrypoint."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s %(message)s")


@app.command()
def show(
    source: str = typer.Argument(..., help="Path to an .ics file or an http(s)/webcal URL."),
    warnings: bool = typer.Option(False, "--warnings", help="Also print recovered parse warnings."),
) -> None:
    """Print the calendar header and one line per event."""
    result = _load(source)
    calendar = result.calendar

    print(
        f"[bold]{escape(calendar.x_wr_calname or calendar.name or calendar.prodid)}[/bold] "
        f"version={escape(calendar.version)} events={len(calendar.events)}"
    )
    for event in calendar.events:
        start = format_ical_datetime(event.dtstart) if event.dtstart is not None else "-"
        line = f"- {start} | {event.summary or '-'} | uid={event.uid or '-'}"
        if event.repeat is not None:
            line += f" | repeat={event.repeat.freq}"
        print(escape(line))

    if warnings:
        _print_diagnostics(result)


@app.command()
def check(
    source: str = typer.Argument(..., help="Path to an .ics file or an http(s)/webcal URL."),
) -> None:
    """Exit 0 when the calendar parses and can be re-serialized."""
    result = _load(source)
    _print_diagnostics(result)
    try:
        check_serializable(result.calendar)
    except SerializationPreconditionError as exc:
        print(f"[red]Not serializable:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    print(
        f"[green]OK[/green] events={len(result.calendar.events)} "
        f"warnings={len(result.diagnostics)}"
    )


@app.command()
def export(
    source: str = typer.Argument(..., help="Path to an .ics file or an http(s)/webcal URL."),
    output: str = typer.Argument(..., help="Destination .ics path."),
) -> None:
    """Parse SOURCE and write it back out in canonical form."""
    result = _load(source)
    try:
        target = serialize_to_file(result.calendar, output)
    except SerializationPreconditionError as exc:
        print(f"[red]Export failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc
    except OSError as exc:
        raise typer.BadParameter(f"Cannot write {output}: {exc.strerror or exc}") from exc

    print(f"[green]Exported[/green] {len(result.calendar.events)} event(s) to {escape(str(target))}")


def main() -> None:
    app()
