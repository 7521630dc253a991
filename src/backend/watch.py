"""smartdocs-watch: follow a project's pipeline from the terminal."""

from typing import List

import typer

from client import ApiError, SmartDocsClient
from config import configure_logging
from stages import StageState, stage_views
from sync import DEFAULT_POLL_INTERVAL, ProjectSyncLoop
from timestamps import format_timestamp

MARKERS = {
    StageState.COMPLETED: "[x]",
    StageState.ACTIVE: "[>]",
    StageState.FAILED: "[!]",
    StageState.PENDING: "[ ]",
}

app = typer.Typer(
    name="smartdocs-watch",
    help="Follow a SmartDocs project until its pipeline stops.",
    add_completion=False,
)


def render_project(project) -> List[str]:
    """Stepper and lesson list for a fetched project aggregate."""
    lines = [f"{project.title} ({project.status.value})"]
    for view in stage_views(project.status, project.jobs):
        line = f"  {MARKERS[view.state]} {view.stage.label}"
        if view.state == StageState.ACTIVE and view.progress:
            line += f" {view.progress}%"
        if view.state == StageState.FAILED and view.error_message:
            line += f": {view.error_message}"
        lines.append(line)
    if project.error_message:
        lines.append(f"  error: {project.error_message}")
    for lesson in project.lessons:
        lines.append(
            f"  {lesson.order_index + 1}. {lesson.title} "
            f"[{format_timestamp(lesson.start_time)} - {format_timestamp(lesson.end_time)}] "
            f"{len(lesson.frames)} frame(s)"
        )
    return lines


@app.command()
def watch(
    project_id: str = typer.Argument(..., help="Project ID to follow"),
    api: str = typer.Option("http://localhost:8000/api", "--api", help="API base URL"),
    interval: float = typer.Option(DEFAULT_POLL_INTERVAL, "--interval", help="Seconds between polls"),
    log_level: str = typer.Option("WARNING", "--log-level"),
) -> None:
    """Print the project's stepper on every poll until it is idle."""
    configure_logging(log_level)
    client = SmartDocsClient(api)

    def on_update(project) -> None:
        typer.echo("\n".join(render_project(project)))

    def on_error(exc: Exception) -> None:
        typer.echo(f"Error: {exc}", err=True)

    loop = ProjectSyncLoop(
        lambda: client.get_project(project_id),
        on_update=on_update,
        interval=interval,
        on_error=on_error,
    )
    try:
        loop.start()
        loop.wait()
    except KeyboardInterrupt:
        pass
    finally:
        loop.stop()

    if loop.project is None:
        raise typer.Exit(1)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
