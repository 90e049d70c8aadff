"""CLI interface for repograde."""

import asyncio
import json
import logging
from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from repograde.errors import PipelineError
from repograde.grader.grader import SubmissionGrader
from repograde.harvester.harvester import RepositoryHarvester
from repograde.models.model_evaluation import EvaluationRecord
from repograde.models.model_repository import RepositoryReference
from repograde.models.model_rubric import ChallengeRubric
from repograde.pipeline import SubmissionPipeline
from repograde.storage import create_blob_store

app = typer.Typer(
    name="repograde",
    help="repograde - Harvest GitHub repositories and grade them against a challenge rubric",
)

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _get_score_color(score: float, max_score: float) -> str:
    """Get color for score display."""
    ratio = score / max_score if max_score else 0
    if ratio >= 0.7:
        return "green"
    elif ratio >= 0.5:
        return "yellow"
    else:
        return "red"


def _load_rubric(path: Path) -> ChallengeRubric:
    """Read a rubric JSON file, exiting with a readable error if invalid."""
    try:
        return ChallengeRubric.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"[red]Error:[/red] Cannot read rubric {path}: {escape(str(e))}")
        raise typer.Exit(1)
    except ValidationError as e:
        console.print(f"[red]Error:[/red] Invalid rubric {path}: {escape(str(e))}")
        raise typer.Exit(1)


def _print_evaluation(record: EvaluationRecord, criterion_max: int) -> None:
    """Render an evaluation as rich tables."""
    console.print(f"\n[bold]Summary:[/bold] {record.summary}\n")

    table = Table(title="Scores")
    table.add_column("Criterion", style="cyan")
    table.add_column("Score", justify="right")
    for name, score in record.scores.items():
        color = _get_score_color(score, criterion_max)
        table.add_row(name, f"[{color}]{score:g}[/{color}] / {criterion_max}")
    color = _get_score_color(record.overall_score, 100)
    table.add_row("[bold]Overall[/bold]", f"[bold {color}]{record.overall_score:g}[/bold {color}] / 100")
    console.print(table)

    console.print("\n[bold green]Key strengths[/bold green]")
    for item in record.key_strengths:
        console.print(f"  + {item}")
    console.print("\n[bold yellow]Key improvements[/bold yellow]")
    for item in record.key_improvements:
        console.print(f"  - {item}")


@app.command()
def harvest(
    repo_url: str = typer.Argument(..., help="GitHub repository URL"),
    prefix: str = typer.Option(..., "--prefix", "-p", help="Destination storage prefix"),
    backend: str = typer.Option(None, "--backend", help="Storage backend (file, supabase)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Harvest a repository's most relevant files into storage."""
    _configure_logging(verbose)

    async def run():
        harvester = RepositoryHarvester(create_blob_store(backend))
        try:
            return await harvester.harvest(repo_url, prefix)
        finally:
            await harvester.blob_store.aclose()

    try:
        result = asyncio.run(run())
    except (PipelineError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    console.print("\n[bold green]Harvest complete![/bold green]")
    table = Table(title="Harvest Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="magenta")
    table.add_row("Prefix", prefix)
    table.add_row("Files stored", str(result.file_count))
    table.add_row("Total size", f"{result.total_bytes:,} bytes")
    table.add_row("Failed uploads", str(len(result.failed_paths)))
    console.print(table)

    if result.failed_paths:
        console.print(f"\n[yellow]Failed uploads ({len(result.failed_paths)}):[/yellow]")
        for path in result.failed_paths[:5]:
            console.print(f"  [dim]{path}[/dim]")
        if len(result.failed_paths) > 5:
            console.print(f"  [dim]... and {len(result.failed_paths) - 5} more[/dim]")


@app.command()
def grade(
    prefix: str = typer.Argument(..., help="Storage prefix holding the harvested files"),
    rubric: Path = typer.Option(..., "--rubric", "-r", help="Challenge rubric JSON file"),
    owner: str = typer.Option(..., "--owner", help="Repository owner"),
    name: str = typer.Option(..., "--name", help="Repository name"),
    backend: str = typer.Option(None, "--backend", help="Storage backend (file, supabase)"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the evaluation JSON here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Grade a harvested file set against a rubric."""
    _configure_logging(verbose)
    challenge = _load_rubric(rubric)
    repo_ref = RepositoryReference(owner=owner, name=name)

    async def run():
        grader = SubmissionGrader(create_blob_store(backend))
        try:
            return await grader.grade(prefix, challenge, repo_ref), grader.settings
        finally:
            await grader.blob_store.aclose()

    try:
        with console.status(f"Grading {repo_ref.full_name}..."):
            record, settings = asyncio.run(run())
    except (PipelineError, ValueError) as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    _print_evaluation(record, settings.criterion_score_max)
    if output:
        output.write_text(json.dumps(record.to_json_dict(), indent=2), encoding="utf-8")
        console.print(f"\n[green]Wrote evaluation to {output}[/green]")


@app.command()
def evaluate(
    repo_url: str = typer.Argument(..., help="GitHub repository URL"),
    rubric: Path = typer.Option(..., "--rubric", "-r", help="Challenge rubric JSON file"),
    submitter: str = typer.Option(..., "--submitter", help="Submitter id"),
    challenge: str = typer.Option(..., "--challenge", help="Challenge id"),
    backend: str = typer.Option(None, "--backend", help="Storage backend (file, supabase)"),
    output: Path = typer.Option(None, "--output", "-o", help="Write the outcome JSON here"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the full submission pipeline: harvest then grade."""
    _configure_logging(verbose)
    challenge_rubric = _load_rubric(rubric)

    async def run():
        store = create_blob_store(backend)
        grader = SubmissionGrader(store)
        pipeline = SubmissionPipeline(RepositoryHarvester(store), grader)
        try:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Starting...", total=None)

                def on_stage(stage: str):
                    progress.update(task, description=stage)

                outcome = await pipeline.evaluate(
                    repo_url, challenge_rubric, submitter, challenge, on_stage=on_stage
                )
            return outcome, grader.settings
        finally:
            await store.aclose()

    try:
        outcome, settings = asyncio.run(run())
    except ValueError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    if output:
        output.write_text(outcome.model_dump_json(indent=2, by_alias=True), encoding="utf-8")
        console.print(f"[green]Wrote outcome to {output}[/green]")

    if not outcome.success:
        console.print(f"[red]{outcome.message}[/red] [dim]({outcome.error_kind})[/dim]")
        raise typer.Exit(1)

    console.print(f"\n[bold green]Evaluation complete![/bold green] [dim]{outcome.storage_prefix}[/dim]")
    if outcome.harvest:
        console.print(
            f"Harvested {outcome.harvest.file_count} files "
            f"({outcome.harvest.total_bytes:,} bytes)"
        )
    _print_evaluation(outcome.evaluation, settings.criterion_score_max)


@app.command()
def serve(
    host: str = typer.Option("0.0.0.0", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the HTTP service."""
    _configure_logging(verbose)
    from repograde.service.app import run_service

    console.print(f"[bold]Serving repograde on {host}:{port}[/bold]")
    run_service(host=host, port=port)


if __name__ == "__main__":
    app()
