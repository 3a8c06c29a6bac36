# --------------------
# Grid Extent
# --------------------
# Addressable extent of the grid. Only the viewer uses these; the engine
# accepts any non-negative coordinate.
TOTAL_ROWS = 10000
TOTAL_COLUMNS = 10000

CELL_WIDTH = 100
CELL_HEIGHT = 30

# --------------------
# Evaluation Limits
# --------------------
# Longest reference chain (formula -> formula -> ...) followed in one
# recursive pass. Longer chains are evaluated in segments, deepest first.
MAX_CHAIN_DEPTH = 200
# Deepest parenthesis nesting accepted inside one expression.
MAX_NESTING = 100

CIRCULAR_REFERENCE_MARKER = "Circular reference"
GENERIC_ERROR_MARKER = "ERR"
# Shown when a cell cannot be evaluated within the interpreter stack
CHAIN_TOO_DEEP_MARKER = "Reference chain too deep"

# --------------------
# Window Layout
# --------------------
INITIAL_WIDTH, INITIAL_HEIGHT = 1024, 768

HEADER_WIDTH = 60     # For row numbers
HEADER_HEIGHT = 30    # For column headers
FORMULA_BAR_HEIGHT = 34

# Extra rows/columns drawn around the visible window
OVERSCAN = 1

# Colors
BACKGROUND_COLOR = (0, 0, 0)
HEADER_BG_COLOR = (30, 30, 30)
FORMULA_BAR_BG_COLOR = (50, 50, 50)
GRID_COLOR = (90, 90, 90)
SELECTED_COLOR = (255, 255, 255)
TEXT_COLOR = (255, 255, 255)
ERROR_TEXT_COLOR = (255, 110, 110)
CURSOR_COLOR = (255, 255, 255)
TEXT_SELECTION_COLOR = (100, 100, 255)

FONT_SIZE = 18
CURSOR_BLINK_MS = 500
SCROLL_STEP = 3       # Cells per mouse wheel notch
