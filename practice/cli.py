"""CLI interface for the practice console."""

from __future__ import annotations

import asyncio
import json
import logging
from collections import Counter
from pathlib import Path
from typing import Optional

import typer

from practice.catalog import ExerciseCatalog
from practice.config import PracticeConfig, load_config
from practice.grading import ExerciseGrader
from sandbox.failures import FailureTally
from store.repository import ProgressStore

app = typer.Typer(help="Practice console CLI")

ConfigOption = typer.Option(None, "--config", help="Path to YAML config")


def _load(config_path: Optional[str]) -> PracticeConfig:
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        typer.secho(f"❌ Config file not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    logging.basicConfig(level=config.log_level, format="%(levelname)s %(name)s: %(message)s")
    return config


def _read_source(path: str) -> str:
    source_path = Path(path)
    if not source_path.exists():
        typer.secho(f"❌ Source file not found: {path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    return source_path.read_text(encoding="utf-8")


def _catalog(config: PracticeConfig) -> ExerciseCatalog:
    try:
        return ExerciseCatalog.from_yaml(config.catalog_path)
    except (FileNotFoundError, ValueError) as e:
        typer.secho(f"❌ Could not load catalog: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


@app.command()
def run(
    files: list[str] = typer.Argument(..., help="JavaScript snippet file(s) to run"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result object"),
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Run snippet files in the sandbox and print their output."""
    config = _load(config_path)
    executor = config.build_executor()
    tally = FailureTally()

    for path in files:
        result = executor.execute_sync(_read_source(path))
        tally.record(result.failure)

        if len(files) > 1:
            typer.secho(f"── {path}", fg=typer.colors.BLUE)
        if as_json:
            typer.echo(json.dumps(result.to_dict(), ensure_ascii=False))
        elif result.ok:
            typer.echo(result.output)
        else:
            typer.secho(f"Error: {result.error}", fg=typer.colors.RED)
        if not as_json:
            typer.echo(f"   ({result.execution_time_ms} ms)")

    if len(files) > 1 and tally.total():
        summary = ", ".join(f"{kind}={count}" for kind, count in tally.most_common())
        typer.secho(f"\n⚠️  {tally.total()} failed: {summary}", fg=typer.colors.YELLOW)
    if tally.total():
        raise typer.Exit(1)


@app.command()
def sanitize(
    file: str = typer.Argument(..., help="JavaScript snippet file"),
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Print a snippet as the sandbox will see it after neutralization."""
    policy = _load(config_path).capability_policy()
    source = _read_source(file)
    typer.echo(policy.sanitize(source))
    violations = policy.violations(source)
    if violations:
        typer.secho(f"Neutralized: {', '.join(violations)}", fg=typer.colors.YELLOW, err=True)


@app.command()
def lessons(config_path: Optional[str] = ConfigOption) -> None:
    """List lessons in catalogue order."""
    catalog = _catalog(_load(config_path))
    for lesson in catalog.lessons():
        typer.echo(f"  {lesson.order:>2}. {lesson.id} — {lesson.title} ({lesson.language}, {lesson.estimated_time} min)")


@app.command()
def exercises(config_path: Optional[str] = ConfigOption) -> None:
    """List practice exercises."""
    catalog = _catalog(_load(config_path))
    for exercise in catalog.exercises():
        marker = "" if exercise.executable else " [view only]"
        typer.echo(f"  {exercise.id}: {exercise.title} ({exercise.language}){marker}")


@app.command()
def check(
    exercise_id: str = typer.Argument(..., help="Exercise ID to check against"),
    file: str = typer.Argument(..., help="JavaScript snippet file"),
    user: Optional[str] = typer.Option(None, "--user", help="Record progress for this user"),
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Run an attempt and compare its output with the exercise's expected output."""
    config = _load(config_path)
    exercise = _catalog(config).get_exercise(exercise_id)
    if exercise is None:
        typer.secho(f"❌ Exercise not found: {exercise_id}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    store = ProgressStore(config.database_path) if user else None
    grader = ExerciseGrader(config.build_executor(), store)
    outcome = asyncio.run(grader.check(exercise, _read_source(file), user_id=user))

    if outcome.error is not None:
        typer.secho(f"Error: {outcome.error}", fg=typer.colors.RED)
    else:
        typer.echo(outcome.output)

    if outcome.correct:
        typer.secho("✅ Correct! Well done.", fg=typer.colors.GREEN)
        return
    typer.secho("❌ Not quite.", fg=typer.colors.YELLOW)
    typer.echo(f"   Expected: {exercise.expected_output}")
    raise typer.Exit(1)


@app.command()
def progress(
    user: str = typer.Argument(..., help="User ID"),
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Show completed lessons and per-exercise attempt counts for a user."""
    config = _load(config_path)
    store = ProgressStore(config.database_path)
    rows = store.get_user_progress(user)
    attempts = store.get_attempts(user)
    if not rows and not attempts:
        typer.secho("No progress recorded.", fg=typer.colors.YELLOW)
        return

    if rows:
        typer.secho("Lessons", bold=True)
    for row in rows:
        status = "✓" if row.completed else "✗"
        score = f"{row.score:.0f}" if row.score is not None else "-"
        typer.echo(f"  {status} {row.lesson_id}  score={score}")

    if attempts:
        typer.secho("Exercises", bold=True)
    totals = Counter(attempt.exercise_id for attempt in attempts)
    solved = Counter(attempt.exercise_id for attempt in attempts if attempt.correct)
    for exercise_id, count in sorted(totals.items()):
        typer.echo(f"  {exercise_id}  attempts={count}  correct={solved[exercise_id]}")


if __name__ == "__main__":
    app()
