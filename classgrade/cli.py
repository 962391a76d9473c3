"""
classgrade CLI Application.

Provides commands to run the API server, prepare the database and grade
a submission from the command line.
"""

import logging
from typing import Annotated

import typer
import uvicorn
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from classgrade.api.app import create_app
from classgrade.config import Settings, get_settings
from classgrade.db.grading import GradingRepository
from classgrade.db.platform import PlatformRepository
from classgrade.db.session import create_db_engine, create_session_factory, init_db
from classgrade.errors import ClassgradeError
from classgrade.grading.ai_client import AIGradingClient
from classgrade.grading.engine import GradingService
from classgrade.models import GradingOutcome
from classgrade.storage import R2FileStorage

# Create Typer app
app = typer.Typer(
    name="classgrade",
    help="Classroom grading backend with AI-assisted PDF grading",
    add_completion=False,
)

console = Console()


def _configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
        force=True,
    )


@app.command()
def serve(
    host: Annotated[str, typer.Option("--host", help="Bind address")] = "0.0.0.0",
    port: Annotated[int, typer.Option("--port", "-p", help="Bind port")] = 3000,
    init: Annotated[
        bool, typer.Option("--init-db/--no-init-db", help="Create missing tables first")
    ] = True,
) -> None:
    """
    Run the HTTP API.
    """
    settings = get_settings()
    _configure_logging(settings)

    engine = create_db_engine(settings.database_url, echo=settings.database_echo)
    if init:
        init_db(engine)

    api = create_app(settings, session_factory=create_session_factory(engine))
    uvicorn.run(api, host=host, port=port, log_config=None)


@app.command("init-db")
def init_database() -> None:
    """
    Create all database tables that do not exist yet.
    """
    settings = get_settings()
    _configure_logging(settings)

    init_db(create_db_engine(settings.database_url, echo=settings.database_echo))
    console.print("[green]✓ Database schema is up to date[/green]")


@app.command()
def grade(
    assignment_id: Annotated[int, typer.Argument(help="Assignment to grade")],
    user_id: Annotated[int, typer.Argument(help="Student whose latest submission is graded")],
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show per-question feedback"),
    ] = False,
) -> None:
    """
    Grade a student's latest submission with the AI model.

    Replaces any existing grades for that submission.
    """
    settings = get_settings()
    _configure_logging(settings)

    try:
        session_factory = create_session_factory(
            create_db_engine(settings.database_url, echo=settings.database_echo)
        )
        service = GradingService(
            repository=GradingRepository(session_factory),
            storage=R2FileStorage.from_settings(settings),
            ai_client=AIGradingClient(settings),
            settings=settings,
        )

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            progress.add_task("Grading submission... (this may take a moment)", total=None)
            outcome = service.grade_submission(assignment_id, user_id)

    except ClassgradeError as e:
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        raise typer.Exit(1)

    _display_outcome(outcome, verbose)


@app.command()
def health() -> None:
    """
    Check if the grading system is operational.

    Verifies configuration, database connectivity and AI API reachability.
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)

    console.print("[bold]classgrade Health Check[/bold]\n")

    console.print("[dim]Checking configuration...[/dim]")
    console.print(f"  AI Base URL: {settings.ai_base_url}")
    console.print(f"  Model: {settings.ai_model}")
    console.print(f"  AI Timeout: {settings.ai_timeout_seconds:g}s")
    console.print(f"  Storage configured: {settings.storage_configured}")

    healthy = True

    console.print("\n[dim]Checking database...[/dim]")
    repository = PlatformRepository(
        create_session_factory(create_db_engine(settings.database_url))
    )
    if repository.ping():
        console.print("[green]✓ Database is reachable[/green]")
    else:
        console.print("[red]✗ Database is not reachable[/red]")
        healthy = False

    console.print("\n[dim]Checking API connectivity...[/dim]")
    if AIGradingClient(settings).health_check():
        console.print("[green]✓ AI API is reachable[/green]")
    else:
        console.print("[red]✗ AI API is not reachable[/red]")
        healthy = False

    if not healthy:
        raise typer.Exit(1)

    console.print("\n[green]All systems operational[/green]")


def _display_outcome(outcome: GradingOutcome, verbose: bool = False) -> None:
    """Display a grading outcome."""
    result = outcome.result
    percentage = (
        float(result.total_score / outcome.max_score * 100) if outcome.max_score else 0.0
    )
    score_color = "green" if percentage >= 70 else "yellow" if percentage >= 50 else "red"
    console.print(
        Panel(
            f"[{score_color}][bold]{result.total_score} / {outcome.max_score}[/bold] "
            f"({percentage:.1f}%)[/{score_color}]",
            title=f"Submission {outcome.submission_id}",
        )
    )

    if outcome.clamped_question_ids:
        console.print(
            "[yellow]⚠ Grades were clamped to max points for questions "
            f"{', '.join(str(q) for q in outcome.clamped_question_ids)}[/yellow]"
        )

    table = Table(title="Grades")
    table.add_column("Question", style="cyan", justify="right")
    table.add_column("Grade", justify="right")
    if verbose:
        table.add_column("Feedback")

    for entry in result.grades:
        row = [str(entry.question_id), str(entry.grade)]
        if verbose:
            row.append(entry.feedback)
        table.add_row(*row)

    console.print(table)
    console.print(Panel(result.overall_feedback, title="Feedback"))


if __name__ == "__main__":
    app()
