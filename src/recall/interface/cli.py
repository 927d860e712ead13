"""recall CLI: study, browse and manage a spaced-repetition card collection."""

import asyncio
import json
import logging
import sys
from collections.abc import Coroutine
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer

from recall.application.config import resolve_config
from recall.domain.errors import RecallError
from recall.domain.models import ReviewMode
from recall.infrastructure.clock import SystemClock
from recall.interface._common import (
    _resolve_with_overrides,
    card_summary,
    format_card_line,
    truncate,
)
from recall.main import load_service, setup_collation, setup_logging

# ---------------------------------------------------------------------------
# Root app
# ---------------------------------------------------------------------------

app = typer.Typer(
    help="recall: spaced-repetition flashcards in your terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(help="Manage recall configuration.")
app.add_typer(config_app, name="config")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.WARNING,
    format="%(levelname)s:%(name)s:%(message)s",
    stream=sys.stderr,
)
logger = logging.getLogger(__name__)


class Rating(str, Enum):
    EASY = "easy"
    HARD = "hard"


# ---------------------------------------------------------------------------
# Global callback
# ---------------------------------------------------------------------------


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose", "-v", count=True, help="Increase verbosity. Repeat for more detail."
        ),
    ] = 1,
    data_dir: Annotated[
        Path | None, typer.Option("--data-dir", help="Directory holding cards and progress.")
    ] = None,
):
    """Global settings for recall."""
    setup_collation()
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["data_dir"] = data_dir


def _config(ctx: typer.Context, **overrides: Any):
    obj = ctx.obj or {}
    return _resolve_with_overrides(
        verbose=obj.get("verbose"), data_dir=obj.get("data_dir"), **overrides
    )


def _run(coro: Coroutine[Any, Any, Any]) -> Any:
    """Run a command coroutine, turning domain errors into a clean exit."""
    try:
        return asyncio.run(coro)
    except RecallError as e:
        typer.secho(str(e), fg="red", err=True)
        raise typer.Exit(1) from None
    except ValueError as e:
        typer.secho(f"Configuration error: {e}", fg="red", err=True)
        raise typer.Exit(2) from None


async def _service(config):
    setup_logging(config)
    return await load_service(config)


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    ctx: typer.Context,
    limit: Annotated[
        int | None, typer.Option(help="Stop after this many cards.")
    ] = None,
):
    """[bold green]Study[/bold green] the cards that are due, earliest first."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        reviewed = 0
        while limit is None or reviewed < limit:
            card = service.next_card()
            if card is None:
                typer.secho("No cards due.", fg="green")
                break

            typer.echo(f"\n[{service.due_count()} due] {card.display_title}")
            typer.echo(card.question)
            typer.prompt("Press Enter to show the answer", default="", show_default=False)
            typer.echo(card.answer)

            choice = _ask_rating()
            if choice == "quit":
                break
            await service.rate(card.id, choice == "easy")
            reviewed += 1
            typer.echo(f"Next review in {card.interval}d.")

        typer.echo(f"Reviewed {reviewed} card(s).")

    _run(run())


def _ask_rating() -> str:
    answers = {"e": "easy", "easy": "easy", "h": "hard", "hard": "hard", "q": "quit", "quit": "quit"}
    while True:
        raw = typer.prompt("Rate [e]asy / [h]ard / [q]uit").strip().lower()
        if raw in answers:
            return answers[raw]
        typer.secho("Please answer e, h or q.", fg="yellow")


@app.command()
def rate(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to rate.")],
    rating: Annotated[Rating, typer.Argument(help="easy or hard.")],
):
    """Rate a single card without the interactive loop."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.rate(card_id, rating is Rating.EASY)
        typer.echo(
            f"{card.id}: interval={card.interval}d repetitions={card.repetitions} "
            f"ease={card.ease_factor:.2f}"
        )

    _run(run())


@app.command("skip-day")
def skip_day(ctx: typer.Context):
    """Pull every card one day closer to due (simulates a day passing)."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        await service.skip_day()
        typer.echo(f"Skipped one day. Cards due: {service.due_count()}")

    _run(run())


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------


@app.command()
def due(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List the cards that are due now."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        cards = service.due()
        if json_output:
            typer.echo(json.dumps([card_summary(c) for c in cards], indent=2))
            return
        typer.echo(f"Cards due: {len(cards)}")
        now = SystemClock().now()
        for card in cards:
            typer.echo(format_card_line(card, now))

    _run(run())


@app.command("list")
def list_cards(
    ctx: typer.Context,
    mode: Annotated[
        ReviewMode | None,
        typer.Option(help="Override the configured browsing order."),
    ] = None,
    json_output: Annotated[bool, typer.Option("--json", help="Output as JSON.")] = False,
):
    """List every card in browsing order."""
    config = _config(ctx, review_order=mode)

    async def run():
        service = await _service(config)
        if json_output:
            typer.echo(json.dumps([card_summary(c) for c in service.listing()], indent=2))
            return

        if not service.cards:
            typer.echo("No cards yet.")
            return

        now = SystemClock().now()
        if service.mode is ReviewMode.ALPHABETICAL_CLUSTERED:
            for cluster in service.clusters():
                typer.secho(f"{cluster.letter} ({len(cluster.cards)})", bold=True)
                for card in cluster.cards:
                    typer.echo("  " + format_card_line(card, now))
        else:
            for card in service.listing():
                typer.echo(format_card_line(card, now))

    _run(run())


@app.command()
def show(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to open.")],
):
    """Open a card: print question and answer and mark it as recently seen."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.open_card(card_id)
        typer.secho(card.display_title, bold=True)
        typer.echo(card.question)
        typer.echo("---")
        typer.echo(card.answer)
        if card.audio_file:
            typer.echo(f"Audio: {card.audio_file}")

    _run(run())


@app.command()
def recent(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option(help="Number of cards to show.")] = 20,
):
    """Cards seen most recently."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        cards = service.recent(limit)
        if not cards:
            typer.echo("Nothing reviewed yet.")
        for card in cards:
            typer.echo(f"{card.id}  {truncate(card.question or card.display_title)}")

    _run(run())


@app.command()
def starred(ctx: typer.Context):
    """Starred cards, newest star first."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        cards = service.starred()
        if not cards:
            typer.echo("No starred cards.")
        for card in cards:
            typer.echo(f"{card.id}  {truncate(card.question or card.display_title)}")

    _run(run())


@app.command()
def stats(ctx: typer.Context):
    """Show collection counts."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        s = service.stats()
        typer.echo(f"Cards:   {s.total}")
        typer.echo(f"Due now: {s.due}")
        typer.echo(f"New:     {s.new}")
        typer.echo(f"Starred: {s.starred}")
        typer.echo(f"Pinned:  {s.pinned}")

    _run(run())


# ---------------------------------------------------------------------------
# Organise
# ---------------------------------------------------------------------------


@app.command()
def pin(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to pin or unpin.")],
):
    """Toggle a card's pin. Pinned cards head the manual order."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.toggle_pin(card_id)
        typer.echo(f"{card.id} {'pinned' if card.pinned else 'unpinned'} (position {card.order})")

    _run(run())


@app.command()
def star(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to star or unstar.")],
):
    """Toggle a card's star."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.toggle_star(card_id)
        typer.echo(f"{card.id} {'starred' if card.is_starred else 'unstarred'}")

    _run(run())


@app.command()
def move(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to move.")],
    before: Annotated[
        str | None,
        typer.Option(help="Take this card's position. Omit to move to the end of the group."),
    ] = None,
):
    """Reorder a card within the manual order."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.move(card_id, before)
        typer.echo(f"{card.id} moved to position {card.order}")

    _run(run())


# ---------------------------------------------------------------------------
# Edit
# ---------------------------------------------------------------------------


@app.command()
def add(
    ctx: typer.Context,
    question: Annotated[str, typer.Option(prompt=True, help="Front of the card.")],
    answer: Annotated[str, typer.Option(prompt=True, help="Back of the card.")],
    title: Annotated[str | None, typer.Option(help="Optional list title.")] = None,
    audio: Annotated[str | None, typer.Option(help="Audio file name or URL.")] = None,
):
    """Add a new card, due immediately."""
    question = question.strip()
    answer = answer.strip()
    if not question or not answer:
        typer.secho("Both question and answer are required.", fg="red")
        raise typer.Exit(1)

    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.add_card(question, answer, title=title, audio_file=audio)
        typer.secho(f"Card saved: {card.id}", fg="green")

    _run(run())


@app.command()
def edit(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to edit.")],
    question: Annotated[str | None, typer.Option(help="New question.")] = None,
    answer: Annotated[str | None, typer.Option(help="New answer.")] = None,
    title: Annotated[str | None, typer.Option(help="New title.")] = None,
):
    """Edit a card's content. Its schedule is kept."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        card = await service.update_card(card_id, question=question, answer=answer, title=title)
        typer.secho(f"Card updated: {card.id}", fg="green")

    _run(run())


@app.command()
def delete(
    ctx: typer.Context,
    card_id: Annotated[str, typer.Argument(help="Card to delete.")],
):
    """Delete a card permanently."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        await service.delete_card(card_id)
        typer.echo(f"Deleted {card_id}")

    _run(run())


# ---------------------------------------------------------------------------
# Import / export / generate
# ---------------------------------------------------------------------------


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="JSON file produced by 'recall export'.")],
):
    """Replace the collection with an exported JSON file."""
    try:
        records = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        typer.secho(f"Error importing file: {e}", fg="red")
        raise typer.Exit(1) from None
    if not isinstance(records, list):
        typer.secho("Invalid file: expected a JSON list of cards.", fg="red")
        raise typer.Exit(1)

    config = _config(ctx)

    async def run():
        service = await _service(config)
        await service.import_cards(records)
        typer.secho(f"Imported {len(service.cards)} cards.", fg="green")

    _run(run())


@app.command()
def export(
    ctx: typer.Context,
    path: Annotated[Path, typer.Argument(help="Destination JSON file.")],
):
    """Export every card, with its progress, to a JSON file."""
    config = _config(ctx)

    async def run():
        service = await _service(config)
        records = service.export_cards()
        path.write_text(json.dumps(records, indent=2, ensure_ascii=False), encoding="utf-8")
        typer.echo(f"Exported {len(records)} cards to {path}")

    _run(run())


@app.command()
def generate(
    source: Annotated[Path, typer.Argument(help="Folder of audio + text pairs.")],
    dest: Annotated[
        Path, typer.Option(help="Where cards.json and audio/ are written.")
    ] = Path("content"),
):
    """Build a content feed from lesson001.mp3 + lesson001.txt style pairs."""
    from recall.application.content import build_content_feed

    try:
        result = build_content_feed(source, dest)
    except (FileNotFoundError, ValueError) as e:
        typer.secho(str(e), fg="red")
        raise typer.Exit(1) from None

    for pair in result.incomplete:
        typer.secho(f"Skipped incomplete pair: {pair.name}", fg="yellow")
    typer.secho(f"Generated {len(result.cards)} cards", fg="green")
    typer.echo(f"Cards written to: {result.feed_path}")


# ---------------------------------------------------------------------------
# Config / server
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show():
    """Display final resolved configuration."""
    config = resolve_config()
    d = {
        k: str(v) if isinstance(v, Path) else v
        for k, v in config.model_dump(mode="json").items()
    }
    if d.get("rest_api_key"):
        d["rest_api_key"] = "***"
    typer.echo(json.dumps(d, indent=2))


@app.command()
def serve(
    port: Annotated[int, typer.Option(help="Port to bind the server to.")] = 8787,
    host: Annotated[str, typer.Option(help="Host to bind the server to.")] = "127.0.0.1",
    reload: Annotated[bool, typer.Option(help="Enable auto-reload.")] = False,
):
    """Run the HTTP API."""
    import uvicorn

    uvicorn.run("recall.server:app", host=host, port=port, reload=reload)
