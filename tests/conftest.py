import random
from pathlib import Path

import pytest

from aniranker.common.logging import configure_logging, set_session_id
from aniranker.common.models import ItemSeed
from aniranker.engine.engine import RankingEngine


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path: Path):
    """Keep test runs from writing into data/logs."""
    configure_logging(tmp_path / "logs" / "test.jsonl")
    yield
    set_session_id(None)


@pytest.fixture
def manga_list() -> list[ItemSeed]:
    titles = [
        "Berserk",
        "Vagabond",
        "One Piece",
        "Monster",
        "Fullmetal Alchemist",
        "Slam Dunk",
        "Grand Blue",
        "Oyasumi Punpun",
        "Chainsaw Man",
        "Jujutsu Kaisen",
    ]
    return [
        ItemSeed(id=i, title=title, media_type="manga") for i, title in enumerate(titles, start=1)
    ]


@pytest.fixture
def engine() -> RankingEngine:
    return RankingEngine(rng=random.Random(42))


@pytest.fixture
def make_seeds():
    def _make(count: int, **kwargs) -> list[ItemSeed]:
        return [ItemSeed(id=i, title=f"Item {i}", **kwargs) for i in range(1, count + 1)]

    return _make
