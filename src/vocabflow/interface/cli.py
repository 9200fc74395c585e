"""vocabflow CLI: progress, review and configuration commands."""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Annotated

import typer

from vocabflow.application.config import resolve_config
from vocabflow.application.factory import build_ledger
from vocabflow.application.ledger import ProgressLedger

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="vocabflow: guided video vocabulary study with spaced repetition.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)

config_app = typer.Typer(help="Manage vocabflow configuration.")
app.add_typer(config_app, name="config")


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    data_dir: Annotated[
        Path | None, typer.Option(help="Directory holding the progress file.")
    ] = None,
    storage: Annotated[
        str | None, typer.Option(help="Storage backend: json (default) or memory.")
    ] = None,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
):
    """Global settings for vocabflow."""
    ctx.ensure_object(dict)
    ctx.obj["overrides"] = {
        "data_dir": data_dir,
        "storage_backend": storage,
    }
    if verbose >= 2:
        logging.getLogger().setLevel(logging.DEBUG)


def _ledger(ctx: typer.Context) -> ProgressLedger:
    overrides = (ctx.obj or {}).get("overrides", {})
    try:
        config = resolve_config(overrides)
    except ValueError as e:
        _fail(f"Invalid configuration: {e}")
    return build_ledger(config)


def _fail(message: str) -> None:
    typer.secho(message, fg="red", err=True)
    raise typer.Exit(2)


# ---------------------------------------------------------------------------
# Progress commands
# ---------------------------------------------------------------------------


@app.command()
def watch(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Video/question identifier.")],
):
    """Mark a video as [bold green]watched[/bold green]."""
    ledger = _ledger(ctx)
    ledger.mark_item_watched(item_id)
    today = ledger.get_today_progress()
    typer.echo(f"Watched {item_id}. Today: {today.completed}/{today.goal}")


@app.command()
def answer(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Video/question identifier.")],
    letter: Annotated[str, typer.Argument(help="Selected choice: A, B, C or D.")],
    correct: Annotated[
        bool, typer.Option("--correct/--incorrect", help="Whether the answer was right.")
    ] = True,
):
    """Record the answer given for an item's question."""
    ledger = _ledger(ctx)
    try:
        ledger.record_answer(item_id, letter, correct)
    except ValueError as e:
        _fail(str(e))
    if correct:
        typer.secho(f"{item_id}: ({letter.upper()}) correct", fg="green")
    else:
        typer.secho(f"{item_id}: ({letter.upper()}) incorrect", fg="yellow")


@app.command()
def favorite(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Video/question identifier.")],
):
    """Toggle an item in the favorites list."""
    now_favorite = _ledger(ctx).toggle_favorite(item_id)
    typer.echo(f"{item_id} {'added to' if now_favorite else 'removed from'} favorites")


@app.command()
def goal(
    ctx: typer.Context,
    target: Annotated[int, typer.Argument(help="Videos to watch per day.")],
):
    """Set the daily goal."""
    try:
        _ledger(ctx).set_daily_goal(target)
    except ValueError as e:
        _fail(str(e))
    typer.echo(f"Daily goal set to {target}")


@app.command("settings")
def settings_cmd(
    ctx: typer.Context,
    dark_mode: Annotated[
        bool | None, typer.Option("--dark-mode/--light-mode", help="Theme preference.")
    ] = None,
    speed: Annotated[float | None, typer.Option(help="Playback speed, e.g. 1.25.")] = None,
):
    """Show or update playback and theme settings."""
    ledger = _ledger(ctx)
    changes = {"dark_mode": dark_mode, "playback_speed": speed}
    changes = {k: v for k, v in changes.items() if v is not None}
    if speed is not None and speed <= 0:
        _fail(f"Playback speed must be positive, got {speed}")

    settings = ledger.update_settings(**changes) if changes else ledger.get_snapshot().settings
    typer.echo(json.dumps(settings.to_dict(), indent=2))


@app.command()
def status(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """Show streak, today's progress and totals."""
    ledger = _ledger(ctx)
    today = ledger.get_today_progress()
    summary = {
        "streak": ledger.get_streak(),
        "today": {"completed": today.completed, "goal": today.goal},
        "completed": ledger.get_completed_count(),
        "answered": ledger.get_answered_count(),
        "favorites": list(ledger.get_snapshot().favorites),
        "due_reviews": len(ledger.get_review_queue()),
    }

    if json_output:
        typer.echo(json.dumps(summary, indent=2))
        return

    typer.echo(f"Streak: {summary['streak']} day(s)")
    color = "green" if today.completed >= today.goal else "yellow"
    typer.secho(f"Today: {today.completed}/{today.goal}", fg=color)
    typer.echo(f"Completed: {summary['completed']}  Answered: {summary['answered']}")
    typer.echo(f"Favorites: {len(summary['favorites'])}  Due reviews: {summary['due_reviews']}")


@app.command()
def wrong(ctx: typer.Context):
    """List items whose latest answer was wrong."""
    ledger = _ledger(ctx)
    if ledger.get_answered_count() == 0:
        typer.secho("No answers recorded yet.", fg="yellow")
        return

    misses = ledger.get_wrong_answers()
    if not misses:
        typer.secho("All answers correct!", fg="green")
        return

    typer.echo(f"{len(misses)} wrong answer(s):")
    for progress in misses:
        typer.echo(f"  {progress.item_id}  last choice: ({progress.answer_selected})")


# ---------------------------------------------------------------------------
# Spaced repetition
# ---------------------------------------------------------------------------


@app.command()
def review(
    ctx: typer.Context,
    item_id: Annotated[str, typer.Argument(help="Video/question identifier.")],
    quality: Annotated[int, typer.Argument(help="Recall quality 0-5 (5 = perfect).")],
):
    """Grade a review and schedule the next one (SM-2)."""
    try:
        card = _ledger(ctx).record_review(item_id, quality)
    except ValueError as e:
        _fail(str(e))
    typer.echo(
        f"{item_id}: next review {card.next_review_at.date().isoformat()} "
        f"(interval {card.interval}d, ease {card.ease_factor:.2f})"
    )


@app.command()
def queue(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List items due for review today, most overdue first."""
    due = _ledger(ctx).get_review_queue()

    if json_output:
        typer.echo(json.dumps([card.to_dict() for card in due], indent=2))
        return

    if not due:
        typer.secho("Nothing due for review.", fg="green")
        return

    typer.echo(f"Due: {len(due)}")
    for card in due:
        typer.echo(f"  {card.item_id}  due {card.next_review_at.date().isoformat()}")


@app.command()
def reset(
    ctx: typer.Context,
    force: Annotated[
        bool, typer.Option("--force", "-f", help="Bypass confirmation.")
    ] = False,
):
    """Erase all local progress."""
    if not force and not typer.confirm("Erase all progress?"):
        raise typer.Exit(1)
    _ledger(ctx).reset()
    typer.secho("Progress reset.", fg="green")


# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    port: Annotated[int | None, typer.Option(help="Port to bind the server to.")] = None,
    host: Annotated[str | None, typer.Option(help="Host to bind the server to.")] = None,
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the local progress server."""
    import uvicorn

    overrides = (ctx.obj or {}).get("overrides", {})
    config = resolve_config({**overrides, "host": host, "port": port})

    # The server process resolves its own config; hand the CLI overrides over via env.
    os.environ["VOCABFLOW_DATA_DIR"] = str(config.data_dir)
    os.environ["VOCABFLOW_STORAGE_BACKEND"] = config.storage_backend

    logger.info(f"Serving on http://{config.host}:{config.port}")
    uvicorn.run("vocabflow.server:app", host=config.host, port=config.port, reload=reload)


# ---------------------------------------------------------------------------
# Config subgroup
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show(ctx: typer.Context):
    """Display final resolved configuration."""
    config = resolve_config((ctx.obj or {}).get("overrides", {}))
    d = {k: str(v) if isinstance(v, Path) else v for k, v in config.model_dump().items()}
    typer.echo(json.dumps(d, indent=2))
