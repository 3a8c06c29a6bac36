import pygame
import pyperclip  # for clipboard copy/paste
from typing import Optional

from constants import (
    BACKGROUND_COLOR, CURSOR_BLINK_MS, CURSOR_COLOR, ERROR_TEXT_COLOR, FORMULA_BAR_BG_COLOR,
    FORMULA_BAR_HEIGHT, GRID_COLOR, HEADER_BG_COLOR, HEADER_HEIGHT, HEADER_WIDTH, SCROLL_STEP,
    SELECTED_COLOR, TEXT_COLOR, TEXT_SELECTION_COLOR,
)
from coordinates import column_letters
from grid_engine import GridEngine
from viewport import Viewport

# Top edge of the cell area (below formula bar and column headers)
GRID_TOP = FORMULA_BAR_HEIGHT + HEADER_HEIGHT


# --------------------
# Grid View Class
# --------------------
class GridView:
    """
    Windowed view over a GridEngine. Only the rows and columns inside the
    viewport are drawn, so the full 10,000 x 10,000 grid costs no more than
    the cells on screen.
    """

    def __init__(self, font, width: int, height: int, engine: Optional[GridEngine] = None,
                 viewport: Optional[Viewport] = None):
        self.font = font
        self.engine = engine if engine is not None else GridEngine()
        self.viewport = viewport if viewport is not None else Viewport(width - HEADER_WIDTH, height - GRID_TOP)
        self.width = width
        self.height = height
        self.engine.select(0, 0)

        # ---- Cell Editing State ----
        # When editing is True, the selected cell is being edited.
        self.editing = False
        self.edit_buffer = ""          # The text being edited
        self.edit_cursor_pos = 0       # Cursor position within the edit_buffer (index)
        self.edit_sel_start = None     # If not None, marks one end of a text selection
        self.edit_sel_end = None       # If not None, marks the other end
        self.edit_undo_stack = []      # List of past edit states for undo
        self.edit_redo_stack = []      # List of undone states for redo
        self.cursor_visible = True     # For blinking effect
        self.last_cursor_toggle_time = pygame.time.get_ticks()

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.viewport.resize(width - HEADER_WIDTH, height - GRID_TOP)

    # ------ Selection Helpers ------
    def move_selection(self, d_row: int, d_col: int) -> None:
        """Move the selection, clamped to the grid, and scroll it into view."""
        current = self.engine.current_selection() or (0, 0)
        row = min(max(0, current[0] + d_row), self.viewport.total_rows - 1)
        col = min(max(0, current[1] + d_col), self.viewport.total_cols - 1)
        self.engine.select(row, col)
        self.viewport.scroll_into_view(row, col)

    def page_rows(self) -> int:
        return max(1, self.viewport.height // self.viewport.cell_height)

    # ------ Editing Helper Methods ------
    def start_edit(self, clear=False):
        """
        Begin editing the selected cell.
        If clear is True, the cell is cleared first.
        Otherwise, the current raw content (formula source, not its value) is loaded.
        """
        selected = self.engine.current_selection()
        if selected is None:
            return
        self.editing = True
        if clear:
            self.edit_buffer = ""
        else:
            self.edit_buffer = self.engine.get_raw(*selected)
        self.edit_cursor_pos = len(self.edit_buffer)
        self.edit_sel_start = None
        self.edit_sel_end = None
        self.edit_undo_stack = []
        self.edit_redo_stack = []

    def commit_edit(self):
        """Commit the current edit to the engine and exit editing mode."""
        if self.editing:
            selected = self.engine.current_selection()
            if selected is not None:
                self.engine.set_raw(selected[0], selected[1], self.edit_buffer)
        self.editing = False

    def cancel_edit(self):
        self.editing = False
        self.edit_buffer = ""

    def push_edit_undo(self):
        """Push the current editing state onto the undo stack and clear the redo stack."""
        state = (self.edit_buffer, self.edit_cursor_pos, self.edit_sel_start, self.edit_sel_end)
        self.edit_undo_stack.append(state)
        self.edit_redo_stack.clear()

    def undo_edit(self):
        """Restore the state saved before the last edit operation."""
        if self.edit_undo_stack:
            current_state = (self.edit_buffer, self.edit_cursor_pos, self.edit_sel_start, self.edit_sel_end)
            self.edit_redo_stack.append(current_state)
            prev_state = self.edit_undo_stack.pop()
            self.edit_buffer, self.edit_cursor_pos, self.edit_sel_start, self.edit_sel_end = prev_state

    def redo_edit(self):
        if self.edit_redo_stack:
            state = self.edit_redo_stack.pop()
            self.edit_undo_stack.append((self.edit_buffer, self.edit_cursor_pos,
                                         self.edit_sel_start, self.edit_sel_end))
            self.edit_buffer, self.edit_cursor_pos, self.edit_sel_start, self.edit_sel_end = state

    def has_text_selection(self) -> bool:
        return (self.edit_sel_start is not None and self.edit_sel_end is not None and
                self.edit_sel_start != self.edit_sel_end)

    def selected_text(self) -> str:
        start = min(self.edit_sel_start, self.edit_sel_end)
        end = max(self.edit_sel_start, self.edit_sel_end)
        return self.edit_buffer[start:end]

    def _delete_selection_if_any(self):
        """If text is selected in the editing cell, delete it and update the cursor."""
        if self.has_text_selection():
            start = min(self.edit_sel_start, self.edit_sel_end)
            end = max(self.edit_sel_start, self.edit_sel_end)
            self.edit_buffer = self.edit_buffer[:start] + self.edit_buffer[end:]
            self.edit_cursor_pos = start
        self.edit_sel_start = None
        self.edit_sel_end = None

    def insert_text(self, text: str) -> None:
        self.push_edit_undo()
        self._delete_selection_if_any()
        self.edit_buffer = (self.edit_buffer[:self.edit_cursor_pos] +
                            text +
                            self.edit_buffer[self.edit_cursor_pos:])
        self.edit_cursor_pos += len(text)

    # ------ Clipboard ------
    def copy_to_clipboard(self, text: str) -> None:
        try:
            pyperclip.copy(text)
        except pyperclip.PyperclipException as e:
            print(f"Clipboard unavailable: {e}")

    def paste_from_clipboard(self) -> str:
        try:
            return pyperclip.paste()
        except pyperclip.PyperclipException as e:
            print(f"Clipboard unavailable: {e}")
            return ""

    # ------ Event Handling ------
    def handle_event(self, event: pygame.event.Event):
        # --- Mouse Input ---
        if event.type == pygame.MOUSEBUTTONDOWN:
            if event.button == 1:  # left-click
                x, y = event.pos
                if x >= HEADER_WIDTH and y >= GRID_TOP:
                    # If a cell is currently being edited, commit its changes.
                    self.commit_edit()
                    cell = self.viewport.cell_at(x - HEADER_WIDTH, y - GRID_TOP)
                    if cell is not None:
                        self.engine.select(*cell)
        elif event.type == pygame.MOUSEWHEEL:
            self.viewport.scroll_by(-event.x * SCROLL_STEP * self.viewport.cell_width,
                                    -event.y * SCROLL_STEP * self.viewport.cell_height)
        # --- Keyboard Input ---
        elif event.type == pygame.KEYDOWN:
            ctrl_pressed = event.mod & pygame.KMOD_CTRL
            shift_pressed = event.mod & pygame.KMOD_SHIFT
            if self.editing:
                self._handle_edit_key(event, ctrl_pressed, shift_pressed)
            else:
                self._handle_navigation_key(event, ctrl_pressed)
        elif event.type == pygame.TEXTINPUT:
            # TEXTINPUT is fired for regular character input.
            if not self.editing:
                # When not yet editing, start editing and clear the cell.
                self.start_edit(clear=True)
            if self.editing:
                self.insert_text(event.text)

    def _handle_edit_key(self, event, ctrl_pressed, shift_pressed):
        if ctrl_pressed:
            if event.key == pygame.K_z:
                self.undo_edit()
            elif event.key == pygame.K_y:
                self.redo_edit()
            elif event.key == pygame.K_c:
                if self.has_text_selection():
                    self.copy_to_clipboard(self.selected_text())
            elif event.key == pygame.K_v:
                paste_text = self.paste_from_clipboard()
                if paste_text:
                    self.insert_text(paste_text)
            elif event.key == pygame.K_x:
                if self.has_text_selection():
                    self.copy_to_clipboard(self.selected_text())
                    self.push_edit_undo()
                    self._delete_selection_if_any()
        elif event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            # Enter commits the edit and moves down, like the navigation mode.
            self.commit_edit()
            self.move_selection(1, 0)
        elif event.key == pygame.K_TAB:
            self.commit_edit()
            self.move_selection(0, -1 if shift_pressed else 1)
        elif event.key == pygame.K_ESCAPE:
            self.cancel_edit()
        elif event.key == pygame.K_BACKSPACE:
            self.push_edit_undo()
            if self.has_text_selection():
                self._delete_selection_if_any()
            elif self.edit_cursor_pos > 0:
                self.edit_buffer = (self.edit_buffer[:self.edit_cursor_pos - 1] +
                                    self.edit_buffer[self.edit_cursor_pos:])
                self.edit_cursor_pos -= 1
        elif event.key == pygame.K_DELETE:
            self.push_edit_undo()
            if self.has_text_selection():
                self._delete_selection_if_any()
            elif self.edit_cursor_pos < len(self.edit_buffer):
                self.edit_buffer = (self.edit_buffer[:self.edit_cursor_pos] +
                                    self.edit_buffer[self.edit_cursor_pos + 1:])
        elif event.key in (pygame.K_LEFT, pygame.K_RIGHT, pygame.K_HOME, pygame.K_END):
            if event.key == pygame.K_LEFT:
                target = max(0, self.edit_cursor_pos - 1)
            elif event.key == pygame.K_RIGHT:
                target = min(len(self.edit_buffer), self.edit_cursor_pos + 1)
            elif event.key == pygame.K_HOME:
                target = 0
            else:
                target = len(self.edit_buffer)
            if shift_pressed:
                if self.edit_sel_start is None:
                    self.edit_sel_start = self.edit_cursor_pos
                self.edit_cursor_pos = target
                self.edit_sel_end = target
            else:
                self.edit_cursor_pos = target
                self.edit_sel_start = None
                self.edit_sel_end = None

    def _handle_navigation_key(self, event, ctrl_pressed):
        selected = self.engine.current_selection()
        if ctrl_pressed:
            if selected is None:
                return
            if event.key == pygame.K_c:
                self.copy_to_clipboard(self.engine.get_raw(*selected))
            elif event.key == pygame.K_x:
                self.copy_to_clipboard(self.engine.get_raw(*selected))
                self.engine.set_raw(selected[0], selected[1], "")
            elif event.key == pygame.K_v:
                paste_text = self.paste_from_clipboard()
                if paste_text:
                    self.engine.set_raw(selected[0], selected[1], paste_text)
            return
        if event.key in (pygame.K_RETURN, pygame.K_KP_ENTER):
            self.move_selection(1, 0)
        elif event.key == pygame.K_F2:
            self.start_edit()
        elif event.key == pygame.K_TAB:
            self.move_selection(0, -1 if event.mod & pygame.KMOD_SHIFT else 1)
        elif event.key == pygame.K_LEFT:
            self.move_selection(0, -1)
        elif event.key == pygame.K_RIGHT:
            self.move_selection(0, 1)
        elif event.key == pygame.K_UP:
            self.move_selection(-1, 0)
        elif event.key == pygame.K_DOWN:
            self.move_selection(1, 0)
        elif event.key == pygame.K_PAGEUP:
            self.move_selection(-self.page_rows(), 0)
        elif event.key == pygame.K_PAGEDOWN:
            self.move_selection(self.page_rows(), 0)
        elif event.key in (pygame.K_BACKSPACE, pygame.K_DELETE):
            # Start editing and clear the cell.
            self.start_edit(clear=True)
        elif event.key == pygame.K_ESCAPE:
            self.engine.deselect()

    # ------ Cursor Blinking ------
    def update_cursor(self):
        """Toggle the blinking cursor (only when editing)."""
        if self.editing:
            current_time = pygame.time.get_ticks()
            if current_time - self.last_cursor_toggle_time > CURSOR_BLINK_MS:
                self.cursor_visible = not self.cursor_visible
                self.last_cursor_toggle_time = current_time
        else:
            self.cursor_visible = False

    def get_display_value(self, row: int, col: int) -> str:
        """
        Return the value to display in a cell: the edit buffer for the cell
        being edited, otherwise the engine's display text.
        """
        if self.editing and self.engine.current_selection() == (row, col):
            return self.edit_buffer
        return self.engine.display_text(row, col)

    def formula_bar_text(self) -> str:
        """Selected label and raw content, plus the computed value for formulas."""
        selected = self.engine.current_selection()
        if selected is None:
            return ""
        label = self.engine.selection.label()
        raw = self.edit_buffer if self.editing else self.engine.get_raw(*selected)
        if raw.startswith("=") and not self.editing:
            return f"{label}  {raw}  ->  {self.engine.display_text(*selected)}"
        return f"{label}  {raw}"

    # ------ Drawing ------
    def draw(self, surface: pygame.Surface):
        """Draw the formula bar, headers, visible cells and selection/cursor (when editing)."""
        surface.fill(BACKGROUND_COLOR)
        rows = self.viewport.visible_rows()
        cols = self.viewport.visible_columns()

        # --- Draw Cells ---
        surface.set_clip(pygame.Rect(HEADER_WIDTH, GRID_TOP, self.viewport.width, self.viewport.height))
        for row in rows:
            for col in cols:
                rect = self._screen_rect(row, col)
                pygame.draw.rect(surface, GRID_COLOR, rect, 1)
                display_text = self.get_display_value(row, col)
                if not display_text:
                    continue
                editing_here = self.editing and self.engine.current_selection() == (row, col)
                color = ERROR_TEXT_COLOR if not editing_here and self.engine.is_error(row, col) else TEXT_COLOR
                surface.set_clip(rect.clip(surface.get_clip()))
                text_surface = self.font.render(display_text, True, color)
                surface.blit(text_surface, (rect.x + 5, rect.y + 5))
                surface.set_clip(pygame.Rect(HEADER_WIDTH, GRID_TOP, self.viewport.width, self.viewport.height))

        # --- Highlight Selected Cell ---
        selected = self.engine.current_selection()
        if selected is not None:
            sel_rect = self._screen_rect(*selected)
            pygame.draw.rect(surface, SELECTED_COLOR, sel_rect, 3)
            if self.editing:
                self._draw_edit_cursor(surface, sel_rect)

        # --- Draw Column Headers ---
        surface.set_clip(pygame.Rect(HEADER_WIDTH, FORMULA_BAR_HEIGHT, self.viewport.width, HEADER_HEIGHT))
        for col in cols:
            x, _, w, _ = self.viewport.cell_rect(0, col)
            rect = pygame.Rect(HEADER_WIDTH + x, FORMULA_BAR_HEIGHT, w, HEADER_HEIGHT)
            self._draw_header(surface, rect, column_letters(col))

        # --- Draw Row Headers ---
        surface.set_clip(pygame.Rect(0, GRID_TOP, HEADER_WIDTH, self.viewport.height))
        for row in rows:
            _, y, _, h = self.viewport.cell_rect(row, 0)
            rect = pygame.Rect(0, GRID_TOP + y, HEADER_WIDTH, h)
            self._draw_header(surface, rect, str(row + 1))
        surface.set_clip(None)

        # --- Formula Bar ---
        bar = pygame.Rect(0, 0, self.width, FORMULA_BAR_HEIGHT)
        pygame.draw.rect(surface, FORMULA_BAR_BG_COLOR, bar)
        bar_text = self.font.render(self.formula_bar_text(), True, TEXT_COLOR)
        surface.blit(bar_text, (8, (FORMULA_BAR_HEIGHT - self.font.get_height()) // 2))

    def _screen_rect(self, row: int, col: int) -> pygame.Rect:
        x, y, w, h = self.viewport.cell_rect(row, col)
        return pygame.Rect(HEADER_WIDTH + x, GRID_TOP + y, w, h)

    def _draw_header(self, surface: pygame.Surface, rect: pygame.Rect, text: str):
        pygame.draw.rect(surface, HEADER_BG_COLOR, rect)
        pygame.draw.rect(surface, GRID_COLOR, rect, 1)
        label = self.font.render(text, True, TEXT_COLOR)
        surface.blit(label, label.get_rect(center=rect.center))

    def _draw_edit_cursor(self, surface: pygame.Surface, sel_rect: pygame.Rect):
        cell_x = sel_rect.x + 5
        cell_y = sel_rect.y + 5
        # Draw selection highlight if any
        if self.has_text_selection():
            start = min(self.edit_sel_start, self.edit_sel_end)
            text_before_sel = self.edit_buffer[:start]
            sel_start_x = cell_x + self.font.size(text_before_sel)[0]
            sel_width = self.font.size(self.selected_text())[0]
            selection_rect = pygame.Rect(sel_start_x, cell_y, sel_width, self.font.get_height())
            pygame.draw.rect(surface, TEXT_SELECTION_COLOR, selection_rect)
            text_surface = self.font.render(self.edit_buffer, True, TEXT_COLOR)
            surface.blit(text_surface, (cell_x, cell_y))
        # Draw blinking cursor.
        text_before_cursor = self.edit_buffer[:self.edit_cursor_pos]
        cursor_x = cell_x + self.font.size(text_before_cursor)[0]
        if self.cursor_visible:
            cursor_rect = pygame.Rect(cursor_x, cell_y, 2, self.font.get_height())
            pygame.draw.rect(surface, CURSOR_COLOR, cursor_rect)
