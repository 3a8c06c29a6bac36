from typing import Optional, Tuple

from constants import CELL_HEIGHT, CELL_WIDTH, OVERSCAN, TOTAL_COLUMNS, TOTAL_ROWS
from coordinates import Coordinate


class Viewport:
    """
    Windowing over a fixed-size grid: which rows and columns are visible for
    the current scroll offset, and where a cell sits on screen.
    All pixel positions are relative to the top-left of the cell area.
    """

    def __init__(self, width: int, height: int,
                 total_rows: int = TOTAL_ROWS, total_cols: int = TOTAL_COLUMNS,
                 cell_width: int = CELL_WIDTH, cell_height: int = CELL_HEIGHT,
                 overscan: int = OVERSCAN) -> None:
        self.total_rows = total_rows
        self.total_cols = total_cols
        self.cell_width = cell_width
        self.cell_height = cell_height
        self.overscan = overscan
        self.width = width
        self.height = height
        self.scroll_x = 0
        self.scroll_y = 0

    def resize(self, width: int, height: int) -> None:
        self.width = max(0, width)
        self.height = max(0, height)
        self.scroll_to(self.scroll_x, self.scroll_y)

    # ------ Scrolling ------
    @property
    def max_scroll_x(self) -> int:
        return max(0, self.total_cols * self.cell_width - self.width)

    @property
    def max_scroll_y(self) -> int:
        return max(0, self.total_rows * self.cell_height - self.height)

    def scroll_to(self, x: int, y: int) -> None:
        self.scroll_x = min(max(0, x), self.max_scroll_x)
        self.scroll_y = min(max(0, y), self.max_scroll_y)

    def scroll_by(self, dx: int, dy: int) -> None:
        self.scroll_to(self.scroll_x + dx, self.scroll_y + dy)

    def scroll_into_view(self, row: int, col: int) -> None:
        """Adjust the scroll offset the least amount that makes the cell fully visible."""
        x, y = self.scroll_x, self.scroll_y
        left = col * self.cell_width
        top = row * self.cell_height
        if left < x:
            x = left
        elif left + self.cell_width > x + self.width:
            x = left + self.cell_width - self.width
        if top < y:
            y = top
        elif top + self.cell_height > y + self.height:
            y = top + self.cell_height - self.height
        self.scroll_to(x, y)

    # ------ Windowing ------
    def visible_rows(self) -> range:
        return self._visible(self.scroll_y, self.height, self.cell_height, self.total_rows)

    def visible_columns(self) -> range:
        return self._visible(self.scroll_x, self.width, self.cell_width, self.total_cols)

    def _visible(self, offset: int, extent: int, size: int, total: int) -> range:
        first = offset // size
        last = -(-(offset + extent) // size)  # ceiling division
        return range(max(0, first - self.overscan), min(total, last + self.overscan))

    def cell_at(self, x: int, y: int) -> Optional[Coordinate]:
        """Cell under a point in the cell area, or None if outside the grid."""
        if x < 0 or y < 0 or x >= self.width or y >= self.height:
            return None
        row = (y + self.scroll_y) // self.cell_height
        col = (x + self.scroll_x) // self.cell_width
        if row >= self.total_rows or col >= self.total_cols:
            return None
        return row, col

    def cell_rect(self, row: int, col: int) -> Tuple[int, int, int, int]:
        """(x, y, width, height) of a cell relative to the cell area."""
        return (col * self.cell_width - self.scroll_x,
                row * self.cell_height - self.scroll_y,
                self.cell_width, self.cell_height)
