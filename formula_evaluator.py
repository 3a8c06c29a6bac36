import re
from typing import List, Optional, Set, Tuple

from cell_store import CellStore
from constants import (CHAIN_TOO_DEEP_MARKER, CIRCULAR_REFERENCE_MARKER,
                       GENERIC_ERROR_MARKER, MAX_CHAIN_DEPTH)
from coordinates import REFERENCE_PATTERN, Coordinate, cell_key, decode_label
from dependency_graph import DependencyGraph
from display_cache import CachedDisplay, DisplayCache
from expression import FormulaError, evaluate, format_value, quote_text

NUMBER_PATTERN = re.compile(r'^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$')


class CircularReference(FormulaError):
    def __init__(self) -> None:
        super().__init__(CIRCULAR_REFERENCE_MARKER)


class ChainTooDeep(FormulaError):
    """A formula reference was reached at the recursion limit; it must be evaluated first."""

    def __init__(self, coordinate: Coordinate) -> None:
        super().__init__(CHAIN_TOO_DEEP_MARKER)
        self.coordinate = coordinate


class PropagatedError(FormulaError):
    """A referenced cell evaluated to an error; the referencing cell shows the same marker."""


def substitution_literal(text: str) -> str:
    """
    Expression literal for a referenced cell's text: numbers are inserted as
    numbers, anything else as a quoted string, empty text as 0.
    """
    stripped = text.strip()
    if not stripped:
        return "0"
    if NUMBER_PATTERN.match(stripped):
        if stripped[0] in "+-":
            return f"({stripped})"
        return stripped
    return quote_text(text)


class FormulaEvaluator:
    """
    Computes display text for cells. Literal cells display as stored; cells
    starting with '=' have their reference tokens replaced by the referenced
    cells' values and the result evaluated by the sandboxed expression parser.
    Every result, including error markers, is memoized in the display cache.

    One recursive pass follows at most max_depth formula references. A cell
    reached beyond that is evaluated on its own first and the pass is then
    retried, so a result never depends on which cells were displayed before.
    """

    def __init__(self, store: CellStore, cache: DisplayCache,
                 max_depth: int = MAX_CHAIN_DEPTH,
                 dependencies: Optional[DependencyGraph] = None) -> None:
        self.store = store
        self.cache = cache
        self.max_depth = max_depth
        self.dependencies = dependencies

    def display_text(self, row: int, col: int) -> str:
        """Return the display text for a cell. Never raises."""
        limit = max(1, self.max_depth)
        while True:
            try:
                return self._display(row, col, limit).text
            except RecursionError:
                # Interpreter stack exhausted; retry with shorter passes
                if limit <= 1:
                    return self.cache.put(cell_key(row, col), CHAIN_TOO_DEEP_MARKER, error=True).text
                limit = max(1, limit // 2)

    def _display(self, row: int, col: int, limit: int) -> CachedDisplay:
        pending: List[Coordinate] = [(row, col)]
        while True:
            try:
                entry = self._resolve(*pending[-1], chain=(), limit=limit)
            except ChainTooDeep as e:
                if e.coordinate in pending:
                    # The deepest pending cell leads back to a cell still waiting on it
                    self.cache.put(cell_key(*pending[-1]), CIRCULAR_REFERENCE_MARKER, error=True)
                else:
                    pending.append(e.coordinate)
                continue
            pending.pop()
            if not pending:
                return entry

    def _resolve(self, row: int, col: int, chain: Tuple[str, ...], limit: int) -> CachedDisplay:
        key = cell_key(row, col)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        raw = self.store.get_raw(row, col)
        if not raw.startswith("="):
            if self.dependencies is not None:
                self.dependencies.record(key, set())
            return self.cache.put(key, raw)

        if len(chain) >= limit:
            raise ChainTooDeep((row, col))

        try:
            value = self._evaluate_formula(key, raw[1:], chain + (key,), limit)
            entry = self.cache.put(key, format_value(value))
        except ChainTooDeep:
            # Nothing on the unfinished path is cached
            raise
        except FormulaError as e:
            entry = self.cache.put(key, e.message or GENERIC_ERROR_MARKER, error=True)
        return entry

    def _evaluate_formula(self, key: str, source: str, chain: Tuple[str, ...], limit: int):
        parts = []
        substituted: Set[str] = set()
        referenced: Set[Coordinate] = set()
        last = 0
        try:
            for match in REFERENCE_PATTERN.finditer(source):
                parts.append(source[last:match.start()])
                last = match.end()
                coordinate = decode_label(match.group())
                if coordinate is None:
                    # Malformed reference (e.g. row 0) reads as 0
                    parts.append("0")
                    continue
                ref_key = cell_key(*coordinate)
                referenced.add(coordinate)
                # Tracking is per expression: the same cell twice in one
                # formula is reported as circular too.
                if ref_key in substituted or ref_key in chain:
                    raise CircularReference()
                substituted.add(ref_key)
                parts.append(self._substitute(coordinate, chain, limit))
        finally:
            if self.dependencies is not None:
                self.dependencies.record(key, {cell_key(*c) for c in referenced})
        parts.append(source[last:])
        return evaluate("".join(parts))

    def _substitute(self, coordinate: Coordinate, chain: Tuple[str, ...], limit: int) -> str:
        raw = self.store.get_raw(*coordinate)
        if not raw.startswith("="):
            return substitution_literal(raw)
        entry = self._resolve(coordinate[0], coordinate[1], chain, limit)
        if entry.error:
            if entry.text == CIRCULAR_REFERENCE_MARKER:
                raise CircularReference()
            raise PropagatedError(entry.text)
        return substitution_literal(entry.text)
