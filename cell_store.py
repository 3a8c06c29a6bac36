from typing import Callable, Dict, Iterator, Optional, Tuple

from coordinates import cell_key


class CellStore:
    """
    Sparse holder of raw cell content keyed by cell key.
    Cells never written read as the empty string. Every write calls the
    invalidation hook after the content has been stored.
    """

    def __init__(self, invalidate: Optional[Callable[[int, int], None]] = None) -> None:
        self._cells: Dict[str, str] = {}
        self.invalidate = invalidate

    def get_raw(self, row: int, col: int) -> str:
        return self._cells.get(cell_key(row, col), "")

    def set_raw(self, row: int, col: int, content: str) -> None:
        self._cells[cell_key(row, col)] = content
        if self.invalidate is not None:
            self.invalidate(row, col)

    def populated(self) -> Iterator[Tuple[int, int, str]]:
        """Yield (row, col, content) for every stored non-empty cell."""
        for key, content in self._cells.items():
            if content:
                row, col = key.split(":")
                yield int(row), int(col), content

    def __len__(self) -> int:
        return sum(1 for content in self._cells.values() if content)
