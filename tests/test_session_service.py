"""Tests for the ranking session service."""

import json
import random
from pathlib import Path

import pytest
from lxml import etree

from aniranker.common.models import ItemSeed
from aniranker.engine.engine import RankingEngine
from aniranker.engine.errors import InsufficientItemsError
from aniranker.importer.mal_parser import ParsedList, parse_mal_xml
from aniranker.ranker.progress_store import ProgressStore
from aniranker.ranker.session_service import SessionService


def _export_xml(count: int) -> str:
    entries = "".join(
        f"<anime><series_animedb_id>{i}</series_animedb_id>"
        f"<series_title>Show {i}</series_title><my_score>{i % 10}</my_score>"
        f"<my_status>Completed</my_status><update_on_import>0</update_on_import></anime>"
        for i in range(1, count + 1)
    )
    return (
        "<myanimelist><myinfo><user_export_type>1</user_export_type></myinfo>"
        f"{entries}</myanimelist>"
    )


@pytest.fixture
def store(tmp_path: Path) -> ProgressStore:
    return ProgressStore(tmp_path / "progress.json")


@pytest.fixture
def service(store: ProgressStore) -> SessionService:
    return SessionService(RankingEngine(rng=random.Random(5)), store)


@pytest.fixture
def parsed() -> ParsedList:
    return parse_mal_xml(_export_xml(6))


class TestStart:
    def test_start_saves_progress(self, service, store, parsed) -> None:
        service.start(parsed)

        saved = store.load()
        assert saved is not None
        assert len(saved.items) == 6
        assert saved.view_state == "comparing"
        assert saved.original_xml == parsed.original_xml

    def test_too_few_items(self, service) -> None:
        parsed = ParsedList(
            items=[ItemSeed(id=1, title="Only")], original_xml="", media_type="anime"
        )

        with pytest.raises(InsufficientItemsError) as exc_info:
            service.start(parsed)

        assert exc_info.value.item_count == 1

    def test_existing_ratings_seed_engine(self, service, parsed) -> None:
        service.start(parsed, use_existing_ratings=True)

        strengths = {item.id: item.strength for item in service.engine.items}
        assert strengths[6] > strengths[1]


class TestActions:
    def test_choose_left_records_left_winner(self, service, store, parsed) -> None:
        service.start(parsed)
        left, right = service.engine.get_current_pair()

        assert service.choose("left") is True

        matrix = service.engine.comparison_matrix
        assert matrix.lookup(left.id, right.id).wins == 1
        assert store.load().session_state["comparisons_done"] == 1

    def test_choose_right_records_right_winner(self, service, parsed) -> None:
        service.start(parsed)
        left, right = service.engine.get_current_pair()

        service.choose("right")

        assert service.engine.comparison_matrix.lookup(right.id, left.id).wins == 1

    def test_choose_without_pair(self, service) -> None:
        assert service.choose("left") is False

    def test_undo_and_redo_are_saved(self, service, store, parsed) -> None:
        service.start(parsed)
        service.choose("left")

        service.undo()
        assert store.load().session_state["comparisons_done"] == 0

        service.redo()
        assert store.load().session_state["comparisons_done"] == 1

    def test_skip_keeps_count(self, service, store, parsed) -> None:
        service.start(parsed)

        service.skip()

        assert store.load().session_state["comparisons_done"] == 0


class TestResume:
    def test_resume_restores_session(self, store, parsed) -> None:
        first = SessionService(RankingEngine(rng=random.Random(1)), store)
        first.start(parsed)
        first.choose("left")
        first.choose("right")

        second = SessionService(RankingEngine(rng=random.Random(2)), store)

        assert second.resume() is True
        assert second.engine.state.comparisons_done == 2
        assert second.engine.comparison_matrix == first.engine.comparison_matrix
        assert second.media_type == "anime"

    def test_resume_without_progress(self, service) -> None:
        assert service.resume() is False

    def test_unusable_state_is_discarded(self, service, store, parsed) -> None:
        service.start(parsed)
        saved = store.load()
        broken = saved.model_copy(update={"session_state": {"comparisons_done": "x"}})
        store.save(broken)

        assert service.resume() is False
        assert store.has_progress() is False


class TestFinishAndExport:
    def _complete(self, service: SessionService) -> None:
        while not service.engine.state.is_complete:
            service.choose("left")

    def test_finish_saves_results(self, service, store, parsed) -> None:
        service.start(parsed)
        self._complete(service)

        ranked = service.finish()

        assert len(ranked) == 6
        assert service.ranked_items == ranked
        saved = store.load()
        assert saved.view_state == "results"
        assert [item.id for item in saved.ranked_items] == [item.id for item in ranked]

    def test_new_answer_invalidates_results(self, service, parsed) -> None:
        service.start(parsed)
        service.choose("left")
        service.finish()

        service.choose("left")

        assert service.ranked_items is None

    def test_export_xml_writes_scores(self, service, parsed) -> None:
        service.start(parsed)
        self._complete(service)
        ranked = {item.id: item.rating for item in service.finish()}

        root = etree.fromstring(service.export_xml().encode())

        for node in root.iter("anime"):
            item_id = int(node.findtext("series_animedb_id"))
            assert node.findtext("my_score") == str(int(ranked[item_id] + 0.5))
            assert node.findtext("update_on_import") == "1"

    def test_export_json_without_finish(self, service, parsed) -> None:
        service.start(parsed)
        service.choose("left")

        data = json.loads(service.export_json())

        assert len(data["data"]) == 6

    def test_discard_clears_everything(self, service, store, parsed) -> None:
        service.start(parsed)

        service.discard()

        assert store.has_progress() is False
        assert service.engine.items == []
