from typing import Iterator, Optional, Tuple

from cell_store import CellStore
from constants import MAX_CHAIN_DEPTH
from coordinates import Coordinate, cell_key, decode_label
from dependency_graph import DependencyGraph
from display_cache import DisplayCache
from formula_evaluator import FormulaEvaluator
from selection import SelectionTracker

INVALIDATION_MODES = ("global", "dependents")


class GridEngine:
    """
    The API the viewer talks to: raw content, display text and selection.

    With invalidation="global" (the default) every edit clears the whole
    display cache. With invalidation="dependents" only the edited cell and
    the cells whose last evaluation depended on it are cleared.
    """

    def __init__(self, invalidation: str = "global", max_depth: int = MAX_CHAIN_DEPTH) -> None:
        if invalidation not in INVALIDATION_MODES:
            raise ValueError(f"Unknown invalidation mode {invalidation!r}, expected one of {INVALIDATION_MODES}")
        self.invalidation = invalidation
        self.cache = DisplayCache()
        self.dependencies = DependencyGraph() if invalidation == "dependents" else None
        self.store = CellStore(invalidate=self._invalidate)
        self.evaluator = FormulaEvaluator(self.store, self.cache, max_depth=max_depth,
                                          dependencies=self.dependencies)
        self.selection = SelectionTracker()

    # ------ Cell Content ------
    def get_raw(self, row: int, col: int) -> str:
        return self.store.get_raw(row, col)

    def set_raw(self, row: int, col: int, text: str) -> None:
        self.store.set_raw(row, col, text)

    def display_text(self, row: int, col: int) -> str:
        return self.evaluator.display_text(row, col)

    def is_error(self, row: int, col: int) -> bool:
        """True when the cell's display text is an error marker."""
        self.display_text(row, col)
        entry = self.cache.get(cell_key(row, col))
        return entry is not None and entry.error

    def set_label(self, label: str, text: str) -> None:
        """set_raw addressed by label, e.g. set_label("B1", "=A1+1")."""
        row, col = self._coordinate(label)
        self.set_raw(row, col, text)

    def display_label(self, label: str) -> str:
        return self.display_text(*self._coordinate(label))

    def populated(self) -> Iterator[Tuple[int, int, str]]:
        return self.store.populated()

    # ------ Selection ------
    def select(self, row: int, col: int) -> None:
        self.selection.select(row, col)

    def deselect(self) -> None:
        self.selection.clear()

    def current_selection(self) -> Optional[Coordinate]:
        return self.selection.current()

    # ------ Internals ------
    def _invalidate(self, row: int, col: int) -> None:
        if self.dependencies is None:
            self.cache.clear_all()
        else:
            self.cache.discard(self.dependencies.affected_by(cell_key(row, col)))

    @staticmethod
    def _coordinate(label: str) -> Coordinate:
        coordinate = decode_label(label)
        if coordinate is None:
            raise ValueError(f"Invalid cell label: {label!r}")
        return coordinate
