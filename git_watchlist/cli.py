"""Typer CLI entrypoint for git-watchlist."""

from __future__ import annotations

import enum
import logging
import signal
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import Settings, load_settings, parse_seconds
from .exceptions import ResolutionError, WatchlistError
from .models import CommitDetailOptions
from .repository import resolve
from .store import WatchlistStore, canonical_path
from .triggers import EventTrigger, PollingTrigger, Trigger
from .watch import WatchSession

app = typer.Typer(
    help="Watch the working tree status of many git repositories at once.",
    add_completion=False,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


class WatchMode(str, enum.Enum):
    poll = "poll"
    events = "events"


@dataclass(slots=True)
class AppState:
    settings: Settings
    console: Console
    err_console: Console
    verbose: bool = False


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"git-watchlist {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    database: Optional[Path] = typer.Option(
        None,
        "--database",
        help="Path to the watchlist database (defaults to ~/.config/git-watchlist.sqlite).",
        dir_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the git-watchlist version and exit.",
    ),
) -> None:
    _ = version  # handled via callback
    configure_logging(verbose)
    err_console = Console(stderr=True)
    try:
        settings = load_settings()
    except WatchlistError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc
    if database is not None:
        settings = Settings(
            database=database.expanduser(),
            delay=settings.delay,
            debounce=settings.debounce,
            commit=settings.commit,
        )
    ctx.obj = AppState(settings=settings, console=Console(), err_console=err_console, verbose=verbose)


def _require_state(ctx: typer.Context) -> AppState:
    state = ctx.obj
    if not isinstance(state, AppState):  # pragma: no cover
        raise typer.Exit(1)
    return state


@app.command(help="Add a repository to the watchlist")
def add(
    ctx: typer.Context,
    directory: Optional[Path] = typer.Option(
        None,
        "--directory",
        "-d",
        help="Repository directory. If omitted, the current directory is used.",
        file_okay=False,
    ),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Group name to add the repository to."),
) -> None:
    state = _require_state(ctx)
    try:
        repository = resolve(directory or Path.cwd())
        with WatchlistStore.open(state.settings.database) as store:
            store.register(repository.workdir, group)
    except WatchlistError as exc:
        _fail(state, exc)
    suffix = f" to group [bold]{escape(group)}[/bold]" if group else ""
    state.console.print(f"Added [green]{escape(str(repository.workdir))}[/green]{suffix}")


@app.command(help="Remove a repository and its group memberships from the watchlist")
def rm(
    ctx: typer.Context,
    directory: Optional[Path] = typer.Option(
        None,
        "--directory",
        "-d",
        help="Repository directory. If omitted, the current directory is used.",
        file_okay=False,
    ),
) -> None:
    state = _require_state(ctx)
    target = _registered_path(directory or Path.cwd())
    try:
        with WatchlistStore.open(state.settings.database) as store:
            removed = store.remove(target)
    except WatchlistError as exc:
        _fail(state, exc)
    if not removed:
        state.console.print(f"[yellow]{escape(str(target))} is not on the watchlist.[/yellow]")
        raise typer.Exit(1)
    state.console.print(f"Removed [green]{escape(str(target))}[/green]")


@app.command(help="List registered repositories")
def ls(
    ctx: typer.Context,
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only list repositories in this group."),
) -> None:
    state = _require_state(ctx)
    try:
        with WatchlistStore.open(state.settings.database) as store:
            paths = store.list(group)
            memberships = store.memberships()
    except WatchlistError as exc:
        _fail(state, exc)
    if not paths:
        state.console.print("No repositories registered.")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Path")
    table.add_column("Groups")
    for path in paths:
        table.add_row(escape(str(path)), escape(", ".join(memberships.get(path, []))) or "-")
    state.console.print(table)


@app.command(help="List groups and how many repositories they hold")
def groups(ctx: typer.Context) -> None:
    state = _require_state(ctx)
    try:
        with WatchlistStore.open(state.settings.database) as store:
            rows = store.groups()
    except WatchlistError as exc:
        _fail(state, exc)
    if not rows:
        state.console.print("No groups defined.")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Group")
    table.add_column("Repositories", justify="right")
    for name, count in rows:
        table.add_row(escape(name), str(count))
    state.console.print(table)


@app.command(help="Print the status of watched repositories once")
def status(
    ctx: typer.Context,
    group: Optional[str] = typer.Option(None, "--group", "-g", help="The group to report on. If omitted, all repositories are used."),
    commit: Optional[str] = typer.Option(
        None,
        "--commit",
        "-c",
        help="Last commit details to show: comma separated message, date, hash or all.",
    ),
) -> None:
    state = _require_state(ctx)
    options = _commit_options(state, commit)
    paths = _load_paths(state, group)
    if not paths:
        state.console.print("No repositories registered.")
        return
    session = WatchSession(paths, options, console=state.console)
    session.refresh_all()
    session.render(clear=False)


@app.command(help="Watch over registered repositories")
def watch(
    ctx: typer.Context,
    group: Optional[str] = typer.Option(None, "--group", "-g", help="The group to watch. If omitted, all repositories are used."),
    commit: Optional[str] = typer.Option(
        None,
        "--commit",
        "-c",
        help="Last commit details to show: comma separated message, date, hash or all.",
    ),
    delay: Optional[float] = typer.Option(None, "--delay", "-n", help="Seconds between refreshes in poll mode."),
    mode: WatchMode = typer.Option(WatchMode.poll, "--mode", help="Refresh on a timer or on filesystem events."),
    debounce: Optional[float] = typer.Option(None, "--debounce", help="Seconds to coalesce filesystem events in events mode."),
    polling_observer: bool = typer.Option(
        False,
        "--polling-observer",
        help="Detect filesystem events by stat polling, for filesystems without native notifications.",
    ),
) -> None:
    state = _require_state(ctx)
    options = _commit_options(state, commit)
    try:
        delay_secs = parse_seconds(delay, state.settings.delay, name="--delay")
        debounce_secs = parse_seconds(debounce, state.settings.debounce, name="--debounce")
    except WatchlistError as exc:
        _fail(state, exc)
    paths = _load_paths(state, group)
    if not paths:
        state.console.print("No repositories registered.")
        return

    session = WatchSession(paths, options, console=state.console)
    trigger: Trigger
    if mode is WatchMode.events:
        session.refresh_all()
        trigger = EventTrigger(session.control_directories(), debounce_secs, use_polling=polling_observer)
    else:
        trigger = PollingTrigger(delay_secs)
    install_signal_handlers()
    session.run(trigger)


def install_signal_handlers() -> None:
    def handle_hangup(_: int, __: Any) -> None:
        logger.info("hangup")
        raise SystemExit(129)

    def handle_terminate(_: int, __: Any) -> None:
        logger.info("terminated")
        raise SystemExit(143)

    signal.signal(signal.SIGHUP, handle_hangup)
    signal.signal(signal.SIGTERM, handle_terminate)


def _registered_path(directory: Path) -> Path:
    try:
        return resolve(directory).workdir
    except ResolutionError:
        # the repository may already be gone from disk
        return canonical_path(directory)


def _commit_options(state: AppState, raw: str | None) -> CommitDetailOptions:
    if raw is None:
        return state.settings.commit
    return CommitDetailOptions.parse(raw)


def _load_paths(state: AppState, group: str | None) -> list[Path]:
    try:
        with WatchlistStore.open(state.settings.database) as store:
            return store.list(group)
    except WatchlistError as exc:
        _fail(state, exc)


def _fail(state: AppState, exc: Exception, code: int = 1) -> NoReturn:
    state.err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
    raise typer.Exit(code) from exc


if __name__ == "__main__":
    app()
