"""Turn repository handles into status reports and render them."""

from __future__ import annotations

import logging
from pathlib import Path

from rich.markup import escape

from .exceptions import InspectionError, ResolutionError
from .models import CommitDetailOptions, CommitInfo, StatusReport, printable
from .repository import RepositoryView, Resolution

logger = logging.getLogger(__name__)


def summarize(view: RepositoryView, options: CommitDetailOptions) -> StatusReport:
    """Inspect ``view`` and collect everything ``render_report`` needs.

    Inspection failures are recorded on the report instead of raised so a single
    broken repository does not hide the others.
    """

    path = view.control_directory().parent
    branch = view.head_branch_shorthand()

    status_error = None
    entries = ()
    try:
        entries = tuple(view.working_tree_status(include_untracked=True))
    except InspectionError as exc:
        logger.warning("Status failed for %s: %s", path, exc)
        status_error = str(exc)

    commit: CommitInfo | None = None
    commit_error = None
    if options:
        try:
            commit = view.last_commit()
        except InspectionError as exc:
            logger.warning("Commit lookup failed for %s: %s", path, exc)
            commit_error = str(exc)
        else:
            if commit is None:
                commit_error = "HEAD does not point at a commit"

    return StatusReport(
        path=path,
        branch=branch,
        entries=entries,
        options=options,
        commit=commit,
        status_error=status_error,
        commit_error=commit_error,
    )


def report_for_error(path: Path, error: ResolutionError) -> StatusReport:
    return StatusReport(path=path, resolution_error=error.reason)


def summarize_resolution(resolution: Resolution, options: CommitDetailOptions) -> StatusReport:
    if resolution.repository is None:
        assert resolution.error is not None
        return report_for_error(resolution.path, resolution.error)
    return summarize(resolution.repository, options)


def render_report(report: StatusReport) -> str:
    """Render a report as Rich console markup."""

    path = _text(str(report.path))
    if not report.resolved:
        return "\n".join(
            [
                f"[green]{path}[/green] \\[[bold red]unresolved[/bold red]]",
                _error_line(report.resolution_error or ""),
            ]
        )

    if report.branch is None:
        branch = "[bold red]unknown[/bold red]"
    else:
        branch = f"[bold blue]{_text(report.branch)}[/bold blue]"
    lines = [f"[green]{path}[/green] \\[{branch}]"]

    if report.status_error is not None:
        lines.append(_error_line(report.status_error))
    elif report.entries:
        if report.options:
            lines.append("File status:")
        for entry in report.entries:
            lines.append(f"  {entry.status.describe()} [yellow]{_text(entry.display_path)}[/yellow]")

    if report.options:
        lines.append("Last commit:")
        lines.extend(_commit_lines(report))
    return "\n".join(lines)


def _commit_lines(report: StatusReport) -> list[str]:
    if report.commit is None:
        return [_error_line(report.commit_error or "HEAD does not point at a commit")]
    commit = report.commit
    lines: list[str] = []
    if CommitDetailOptions.MESSAGE in report.options:
        lines += ["  Message:", f"    {_text(commit.summary)}"]
    if CommitDetailOptions.DATE in report.options:
        lines += ["  Date:", f"    {commit.formatted_date}"]
    if CommitDetailOptions.HASH in report.options:
        lines += ["  Hash:", f"    {_text(commit.hash)}"]
    return lines


def _error_line(message: str) -> str:
    return f"  [red]error:[/red] {_text(message)}"


def _text(value: str) -> str:
    return escape(printable(value))


__all__ = ["summarize", "summarize_resolution", "report_for_error", "render_report"]
