from aniranker.engine.engine import RankingEngine
from aniranker.engine.errors import InsufficientItemsError, InvalidStateError, RankingError
from aniranker.engine.history import HistoryManager
from aniranker.engine.matrix import ComparisonMatrix
from aniranker.engine.normalizer import normalize_ratings
from aniranker.engine.scheduler import MatchScheduler, comparisons_per_item, target_comparisons
from aniranker.engine.solver import fit_bradley_terry

__all__ = [
    "ComparisonMatrix",
    "HistoryManager",
    "InsufficientItemsError",
    "InvalidStateError",
    "MatchScheduler",
    "RankingEngine",
    "RankingError",
    "comparisons_per_item",
    "fit_bradley_terry",
    "normalize_ratings",
    "target_comparisons",
]
