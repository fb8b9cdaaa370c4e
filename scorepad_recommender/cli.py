"""
Scorepad Recommender — CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Execute action against the configured SQLite database.
  5. Report result to stdout.

Install and run::

    pip install -e .
    scorepad-recommender --help
    scorepad-recommender init-db
    scorepad-recommender validate-config
    scorepad-recommender record-session --file session.json
    scorepad-recommender reprocess-history --file history.json
    scorepad-recommender suggest-players --game "Azul" --location "Home" --count 4
    scorepad-recommender suggest-counts --game "Azul"
    scorepad-recommender suggest-locations --game "Azul"
    scorepad-recommender suggest-colors --game "Azul" --player <player-id>
    scorepad-recommender show-weights
    scorepad-recommender reset-stats --yes
"""

from __future__ import annotations

import json
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="scorepad-recommender",
    help="Board-game session recommender — learns who plays what, where and when.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from scorepad_recommender.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from scorepad_recommender.utils.logging import configure_logging
    configure_logging(config.logging)


@contextmanager
def _open_engine(config):
    """Yield a ``RecommendationEngine`` on the configured database."""
    from scorepad_recommender.db.connection import get_connection
    from scorepad_recommender.db.schema import apply_schema
    from scorepad_recommender.service import RecommendationEngine

    with get_connection(
        config.database.db_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)
        yield RecommendationEngine(conn, config)


def _read_json_or_exit(path: str):
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except FileNotFoundError:
        typer.echo(f"[ERROR] File not found: {path}", err=True)
        raise typer.Exit(code=1)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] {path} is not valid JSON: {exc}", err=True)
        raise typer.Exit(code=1)


def _build_context(
    game: Optional[str],
    bgg_id: Optional[str],
    location: Optional[str],
    count: Optional[int],
    mode: Optional[str],
    at: Optional[str],
    known_players: Optional[list[str]] = None,
):
    from scorepad_recommender.models.recommendation import RecommendationContext

    try:
        return RecommendationContext(
            game_name=game,
            external_game_id=bgg_id,
            location_name=location,
            player_count=count,
            scoring_mode=mode,
            timestamp=datetime.fromisoformat(at) if at else None,
            known_player_ids=known_players or [],
        )
    except ValueError as exc:
        typer.echo(f"[ERROR] Invalid context: {exc}", err=True)
        raise typer.Exit(code=1)


_GAME_OPT = typer.Option(None, "--game", help="Game name.")
_BGG_OPT = typer.Option(None, "--bgg-id", help="BoardGameGeek id of the game.")
_LOCATION_OPT = typer.Option(None, "--location", help="Location name.")
_COUNT_OPT = typer.Option(None, "--count", help="Player count.")
_MODE_OPT = typer.Option(None, "--mode", help="Scoring mode, e.g. HIGHEST_WINS.")
_AT_OPT = typer.Option(None, "--at", help="ISO timestamp of the session (default: now).")
_CONFIG_OPT = typer.Option(None, "--config", help="Path to TOML config file.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = typer.Option(
        None,
        "--db-path",
        help="Override DB path from config (e.g. data/db/test.db).",
    ),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Initialize the SQLite database and apply the full schema.

    Re-running against an existing database leaves its data untouched.
    """
    from scorepad_recommender.db.connection import get_connection
    from scorepad_recommender.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = _CONFIG_OPT,
    show_full: bool = typer.Option(False, "--full", help="Print full config as JSON."),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:    {config.database.db_path}")
    typer.echo(f"  List sizes:       {config.relations.default_list_size} / {config.relations.time_list_size}")
    typer.echo(f"  Batch chunk size: {config.training.batch_chunk_size}")
    typer.echo(f"  Time zone:        {config.training.time_zone}")
    typer.echo(f"  Palette colors:   {len(config.colors.palette)}")
    typer.echo(f"  Log level:        {config.logging.level}")
    typer.echo(f"  Debug mode:       {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))


@app.command("record-session")
def record_session(
    file: str = typer.Option(..., "--file", help="JSON file holding one session record."),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Train the model on one finalized session."""
    from pydantic import ValidationError

    from scorepad_recommender.models.session import SessionRecord

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        record = SessionRecord.model_validate(_read_json_or_exit(file))
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid session record: {exc}", err=True)
        raise typer.Exit(code=1)

    with _open_engine(config) as engine:
        mode = engine.record_session_completion(record)

    typer.echo(f"[OK] Session {record.id}: {mode}")


@app.command("reprocess-history")
def reprocess_history(
    file: str = typer.Option(..., "--file", help="JSON file holding a list of session records."),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Replay a session history in chunks, reporting progress."""
    from pydantic import TypeAdapter, ValidationError

    from scorepad_recommender.models.session import SessionRecord

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    try:
        records = TypeAdapter(list[SessionRecord]).validate_python(_read_json_or_exit(file))
    except ValidationError as exc:
        typer.echo(f"[ERROR] Invalid history file: {exc}", err=True)
        raise typer.Exit(code=1)

    with _open_engine(config) as engine:
        summary = engine.reprocess_all_history(
            records, on_progress=lambda pct: typer.echo(f"  progress: {pct}%")
        )

    typer.echo(
        f"[OK] {summary.processed} trained, {summary.skipped} skipped "
        f"of {summary.total} ({summary.chunks_committed} chunks)."
    )


@app.command("suggest-players")
def suggest_players(
    game: Optional[str] = _GAME_OPT,
    bgg_id: Optional[str] = _BGG_OPT,
    location: Optional[str] = _LOCATION_OPT,
    count: Optional[int] = _COUNT_OPT,
    mode: Optional[str] = _MODE_OPT,
    at: Optional[str] = _AT_OPT,
    limit: Optional[int] = typer.Option(None, "--limit", help="Seats to fill."),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Suggest players for a session."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    context = _build_context(game, bgg_id, location, count, mode, at)

    with _open_engine(config) as engine:
        suggestions = engine.suggest_players(context, limit=limit)

    if not suggestions:
        typer.echo("No suggestions yet. Record a few sessions first.")
        return
    for s in suggestions:
        color = f"  {s.suggested_color}" if s.suggested_color else ""
        typer.echo(f"  {s.name:<24} {s.score:8.2f}  [{s.id}]{color}")


@app.command("suggest-counts")
def suggest_counts(
    game: Optional[str] = _GAME_OPT,
    bgg_id: Optional[str] = _BGG_OPT,
    location: Optional[str] = _LOCATION_OPT,
    at: Optional[str] = _AT_OPT,
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Suggest likely player counts."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    context = _build_context(game, bgg_id, location, None, None, at)

    with _open_engine(config) as engine:
        counts = engine.suggest_counts(context)

    typer.echo(", ".join(str(c) for c in counts) if counts else "No suggestions.")


@app.command("suggest-locations")
def suggest_locations(
    game: Optional[str] = _GAME_OPT,
    bgg_id: Optional[str] = _BGG_OPT,
    count: Optional[int] = _COUNT_OPT,
    at: Optional[str] = _AT_OPT,
    player: Optional[list[str]] = typer.Option(
        None, "--player", help="Known player entity id (repeatable)."
    ),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Suggest likely locations."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    context = _build_context(game, bgg_id, None, count, None, at, known_players=player)

    with _open_engine(config) as engine:
        names = engine.suggest_locations(context)

    typer.echo("\n".join(names) if names else "No suggestions.")


@app.command("suggest-colors")
def suggest_colors(
    game: Optional[str] = _GAME_OPT,
    bgg_id: Optional[str] = _BGG_OPT,
    player: Optional[str] = typer.Option(None, "--player", help="Target player entity id."),
    template_color: Optional[list[str]] = typer.Option(
        None, "--template-color", help="Preferred color, in order (repeatable)."
    ),
    exclude: Optional[list[str]] = typer.Option(
        None, "--exclude", help="Color already taken (repeatable)."
    ),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Suggest colors for one player."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    context = _build_context(game, bgg_id, None, None, None, None)

    with _open_engine(config) as engine:
        colors = engine.suggest_colors(
            context,
            color_order_hint=template_color or [],
            target_entity_id=player,
            excluded_colors=exclude or [],
        )

    typer.echo(", ".join(colors) if colors else "No suggestions.")


@app.command("show-weights")
def show_weights(
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Print the effective global factor weights of every domain."""
    from scorepad_recommender.taxonomy.relation_taxonomy import WeightDomain

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    with _open_engine(config) as engine:
        for domain in WeightDomain:
            typer.echo(f"{domain}:")
            for factor, weight in engine.get_weights(domain).items():
                typer.echo(f"  {factor:<16} {weight:.2f}")


@app.command("reset-stats")
def reset_stats(
    yes: bool = typer.Option(False, "--yes", help="Skip the confirmation prompt."),
    config_path: Optional[str] = _CONFIG_OPT,
) -> None:
    """Delete all learned entities, processing logs and weights."""
    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    if not yes:
        typer.confirm("This deletes all learned state. Continue?", abort=True)

    with _open_engine(config) as engine:
        engine.reset_learned_state()

    typer.echo("[OK] Learned state cleared.")


if __name__ == "__main__":
    app()
