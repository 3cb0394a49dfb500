"""Command line interface for inspecting and sending pending submissions."""

from __future__ import annotations

import logging
from typing import Optional

import typer

from surveyor.config import load_config
from surveyor.service import SubmissionService, SurveyorContext
from surveyor.storage import Submission

app = typer.Typer(help="CLI for offline Surveyor submissions")


def _get_service() -> SubmissionService:
    return SubmissionService(SurveyorContext.from_config(load_config()))


@app.callback()
def main() -> None:
    """Surveyor CLI entry point."""
    config = load_config()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.command("pending")
def pending(flow: Optional[str] = typer.Option(None, help="Only this flow uuid")) -> None:
    """
    List pending submissions.

    Shows each pending submission file with its flow and whether the run
    was completed. Files that cannot be read are reported and skipped.

    Example:
        surveyor pending
        surveyor pending --flow 2f0b3c7a-...
        # Output: 3_9a1e..._1.json    2f0b3c7a-...    completed
    """
    service = _get_service()
    layout = service.layout
    paths = layout.list_pending(flow) if flow else layout.list_pending_all()
    if not paths:
        typer.echo("No pending submissions")
        return
    for path in sorted(paths):
        submission = Submission.load(layout, path)
        if submission is None:
            typer.secho(f"{path.name}\tunreadable", fg=typer.colors.RED)
            continue
        state = "completed" if submission.is_completed() else "in progress"
        typer.echo(f"{path.name}\t{submission.flow_uuid}\t{state}")


@app.command("count")
def count(flow_uuid: str) -> None:
    """Print the number of pending submissions for a flow."""
    typer.echo(str(_get_service().count_pending(flow_uuid)))


@app.command("submit")
def submit(flow: Optional[str] = typer.Option(None, help="Only this flow uuid")) -> None:
    """
    Send completed pending submissions to the server.

    Sent submissions are deleted; failed ones stay on disk for the next
    attempt and the command exits with code 1.

    Example:
        surveyor submit
        # Output: Submitting 2 submissions
        #         50%
        #         100%
        #         All submissions sent
    """
    service = _get_service()
    submissions = service.list_completed(flow)
    if not submissions:
        typer.echo("Nothing to submit")
        return

    typer.echo(f"Submitting {len(submissions)} submissions")
    result = service.submit_batch(
        submissions, on_progress=lambda percent: typer.echo(f"{percent}%")
    )
    if result.failed:
        typer.secho(
            f"{result.num_failed} submissions failed to send", fg=typer.colors.RED
        )
        raise typer.Exit(code=1)
    typer.echo("All submissions sent")


@app.command("clear")
def clear(
    flow_uuid: Optional[str] = typer.Argument(None),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete pending submissions for one flow, or for every flow."""
    target = f"flow {flow_uuid}" if flow_uuid else "all flows"
    if not yes and not typer.confirm(f"Delete pending submissions for {target}?"):
        raise typer.Exit(code=1)

    service = _get_service()
    if flow_uuid:
        service.delete_flow_submissions(flow_uuid)
    else:
        service.clear()
    typer.echo(f"Deleted pending submissions for {target}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
