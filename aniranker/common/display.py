from rich.columns import Columns
from rich.console import Console, Group
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from aniranker.common.models import Item

INDIGO = "#5C6BC0"
AMBER = "#FFC107"


_aniranker_theme = Theme(
    {
        "primary": INDIGO,
        "accent": AMBER,
        "bold": "bold",
        "success": "green bold",
        "error": "red bold",
        "warning": "yellow bold",
        "info": "blue bold",
    }
)


_console: Console | None = None


def get_theme() -> Theme:
    return _aniranker_theme


def get_console(force_terminal: bool | None = None) -> Console:
    global _console

    if _console is None or force_terminal is not None:
        _console = Console(
            theme=_aniranker_theme,
            force_terminal=force_terminal,
            legacy_windows=False,
        )

    return _console


def print_banner() -> None:
    console = get_console()

    banner_text = Text()
    banner_text.append("aniranker", style=f"bold {INDIGO}")
    banner_text.append("  ·  pairwise ratings for your list", style="dim")

    console.print(Panel(banner_text, border_style=AMBER, padding=(0, 1)))


def render_pair(
    pair: tuple[Item, Item],
    comparisons_done: int,
    total_comparisons: int,
    progress: int,
    accuracy: int,
) -> Group:
    """Build the "which do you prefer" view for one pair."""
    header = Text.assemble(
        ("Progress: ", "info"),
        (f"{comparisons_done} / {total_comparisons}", "bold accent"),
        ("  ", "default"),
        (f"{progress}%", "bold"),
        ("  |  Confidence: ", "info"),
        (f"{accuracy}%", "bold accent"),
    )
    bar = ProgressBar(total=100, completed=progress, complete_style="primary")

    cards = []
    for key, item in zip(("1", "2"), pair, strict=True):
        cards.append(
            Panel(
                Text(item.title, style="bold", justify="center"),
                title=f"[accent]{key}[/accent]",
                border_style=INDIGO,
                width=40,
                padding=(1, 2),
            )
        )

    question = Text("Which do you prefer?", style=f"bold {INDIGO}")
    keys = Text("[1] left  [2] right  [s] skip  [u] undo  [r] redo  [q] save & quit", style="dim")
    return Group(header, bar, Text(), question, Columns(cards, padding=(0, 4)), keys)


def create_ratings_table(items: list[Item], title: str = "Final Ratings") -> Table:
    table = Table(
        title=title,
        title_style=f"bold {INDIGO}",
        border_style=AMBER,
        header_style=f"bold {INDIGO}",
        row_styles=["", "dim"],
        padding=(0, 1),
    )

    table.add_column("Rank", style="bold", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Rating", justify="right")
    table.add_column("Prior", justify="right")
    table.add_column("W-L", justify="right")

    if not items:
        table.add_row("-", "-", "-", "-", "-")
        return table

    for rank, item in enumerate(items, start=1):
        rating = f"{item.rating:.1f}" if item.rating is not None else "-"
        prior = f"{item.prior_rating:g}" if item.prior_rating is not None else "-"
        table.add_row(str(rank), item.title, rating, prior, f"{item.wins}-{item.losses}")

    return table


def success_badge() -> Text:
    return Text("[SUCCESS]", style="success")


def failed_badge() -> Text:
    return Text("[FAILED]", style="error")
