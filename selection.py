from typing import Optional

from coordinates import Coordinate, encode_label


class SelectionTracker:
    """Holds the single selected cell for the viewer. Has no effect on evaluation."""

    def __init__(self) -> None:
        self._current: Optional[Coordinate] = None

    def select(self, row: int, col: int) -> None:
        self._current = (row, col)

    def clear(self) -> None:
        self._current = None

    def current(self) -> Optional[Coordinate]:
        return self._current

    def label(self) -> str:
        """Label of the selected cell, or an empty string when nothing is selected."""
        if self._current is None:
            return ""
        return encode_label(*self._current)
