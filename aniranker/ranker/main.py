"""Command-line entry point for interactive ranking sessions.

Commands:
    rank     Import a MyAnimeList export and answer pairwise comparisons
    results  Show the final ratings of the saved session
    export   Write the saved session's ratings as MAL XML or JSON
    clear    Delete saved progress

Dependencies:
    - aniranker.ranker.session_service: session orchestration
    - aniranker.common.display: Rich console rendering
    - aniranker.images.jikan_client: optional cover lookups
"""

import asyncio
import sys
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.prompt import Prompt

from aniranker.common.config import Settings
from aniranker.common.display import (
    create_ratings_table,
    failed_badge,
    get_console,
    print_banner,
    render_pair,
    success_badge,
)
from aniranker.common.logging import configure_logging
from aniranker.common.yaml_config import (
    load_jikan_config,
    load_ranking_config,
    load_storage_config,
)
from aniranker.engine.engine import RankingEngine
from aniranker.engine.errors import InsufficientItemsError
from aniranker.images.jikan_client import JikanImageClient, prefetch_upcoming
from aniranker.importer.mal_parser import ListParseError, load_mal_file
from aniranker.ranker.progress_store import ProgressStore
from aniranker.ranker.session_service import SessionService

app = typer.Typer(help="Turn your list into consistent 1-10 ratings, one comparison at a time.")

_ACTIONS = ["1", "2", "s", "u", "r", "q"]


class ExportFormat(str, Enum):
    xml = "xml"
    json = "json"


def _load_settings(config_path: Path | None) -> Settings:
    settings = Settings()
    if config_path is not None:
        settings = settings.model_copy(
            update={
                "ranking": load_ranking_config(config_path),
                "jikan": load_jikan_config(config_path),
                "storage": load_storage_config(config_path),
            }
        )
    configure_logging(settings.log_path, settings.log_level)
    return settings


def _build_service(settings: Settings, progress_path: Path | None) -> SessionService:
    store = ProgressStore(
        path=progress_path or Path(settings.storage.progress_path),
        max_age_days=settings.storage.max_age_days,
    )
    return SessionService(RankingEngine(settings.ranking), store)


ConfigOption = Annotated[
    Path | None, typer.Option("--config", help="YAML file with ranking/jikan/storage sections")
]
ProgressOption = Annotated[
    Path | None, typer.Option("--progress-path", help="Where session progress is saved")
]


@app.command()
def rank(
    file: Annotated[Path, typer.Argument(help="MyAnimeList XML export")],
    use_existing_ratings: Annotated[
        bool,
        typer.Option("--use-existing-ratings", help="Seed the ranking from your current scores"),
    ] = False,
    resume: Annotated[
        bool, typer.Option("--resume/--no-resume", help="Continue saved progress if present")
    ] = True,
    images: Annotated[
        bool, typer.Option("--images", help="Look up cover images for upcoming pairs")
    ] = False,
    config: ConfigOption = None,
    progress_path: ProgressOption = None,
) -> None:
    """Rank a list by answering "which do you prefer" questions."""
    console = get_console()
    settings = _load_settings(config)
    service = _build_service(settings, progress_path)

    print_banner()

    resumed = resume and service.resume()
    if resumed:
        console.print("[info]Resuming saved session[/info]")
    else:
        try:
            parsed = load_mal_file(file)
        except FileNotFoundError:
            console.print(failed_badge(), f"File not found: {file}")
            sys.exit(1)
        except ListParseError as e:
            console.print(failed_badge(), f"Could not read {file}: {e}")
            sys.exit(1)

        try:
            service.start(parsed, use_existing_ratings=use_existing_ratings)
        except InsufficientItemsError as e:
            console.print(f"[warning]{e}[/warning]")
            sys.exit(0)
        console.print(
            f"[dim]Loaded {len(parsed.items)} {parsed.media_type} entries from {file}[/dim]"
        )

    with asyncio.Runner() as runner:
        image_client = JikanImageClient(settings.jikan) if images else None
        try:
            finished = _comparison_loop(service, runner, image_client)
        finally:
            if image_client is not None:
                runner.run(image_client.aclose())

    if not finished:
        console.print("[info]Progress saved. Run the same command to continue.[/info]")
        return

    ranked = service.finish()
    console.print()
    console.print(create_ratings_table(ranked))

    output = file.with_name(f"{file.stem}_ranked.xml")
    output.write_text(service.export_xml(), encoding="utf-8")
    console.print(success_badge(), f"Ranked list written to {output}")


def _comparison_loop(
    service: SessionService,
    runner: asyncio.Runner,
    image_client: JikanImageClient | None,
) -> bool:
    """Prompt until the session completes (True) or the user quits (False)."""
    console = get_console()
    engine = service.engine

    while True:
        state = engine.state
        if state.is_complete or state.current_pair is None:
            return True

        console.print()
        console.print(
            render_pair(
                state.current_pair,
                state.comparisons_done,
                state.total_comparisons,
                engine.get_progress(),
                engine.get_accuracy(),
            )
        )

        if image_client is not None:
            urls = runner.run(prefetch_upcoming(image_client, engine, 6, service.media_type))
            for item in state.current_pair:
                if item.id in urls:
                    console.print(f"[dim]{item.title}: {urls[item.id]}[/dim]")

        action = Prompt.ask("Choice", choices=_ACTIONS, show_choices=False, console=console)
        if action == "1":
            service.choose("left")
        elif action == "2":
            service.choose("right")
        elif action == "s":
            service.skip()
        elif action == "u":
            if not engine.can_undo:
                console.print("[warning]Nothing to undo[/warning]")
            service.undo()
        elif action == "r":
            if not engine.can_redo:
                console.print("[warning]Nothing to redo[/warning]")
            service.redo()
        else:
            service.save()
            return False


@app.command()
def results(
    distribution: Annotated[
        bool, typer.Option("--distribution", help="Spread ratings like a hand-scored list")
    ] = False,
    config: ConfigOption = None,
    progress_path: ProgressOption = None,
) -> None:
    """Show final ratings for the saved session."""
    console = get_console()
    service = _build_service(_load_settings(config), progress_path)

    if not service.resume():
        console.print("[warning]No saved session found.[/warning]")
        sys.exit(1)

    ranked = service.finish("distribution" if distribution else "zscore")
    console.print(create_ratings_table(ranked))


@app.command()
def export(
    output: Annotated[Path, typer.Argument(help="Destination file")],
    fmt: Annotated[
        ExportFormat, typer.Option("--format", help="xml (MAL import) or json")
    ] = ExportFormat.xml,
    config: ConfigOption = None,
    progress_path: ProgressOption = None,
) -> None:
    """Export the saved session's ratings."""
    console = get_console()
    service = _build_service(_load_settings(config), progress_path)

    if not service.resume():
        console.print("[warning]No saved session found.[/warning]")
        sys.exit(1)

    content = service.export_xml() if fmt is ExportFormat.xml else service.export_json()
    output.write_text(content, encoding="utf-8")
    console.print(success_badge(), f"Exported {fmt.value.upper()} to {output}")


@app.command()
def clear(
    config: ConfigOption = None,
    progress_path: ProgressOption = None,
) -> None:
    """Delete saved progress."""
    service = _build_service(_load_settings(config), progress_path)
    service.discard()
    get_console().print("[info]Saved progress cleared.[/info]")


if __name__ == "__main__":
    app()
