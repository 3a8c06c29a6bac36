import re
from typing import Optional, Tuple

Coordinate = Tuple[int, int]  # (row, col), both 0-based

LABEL_PATTERN = re.compile(r'([A-Z]+)([0-9]+)')
# Reference tokens inside a formula expression
REFERENCE_PATTERN = re.compile(r'[A-Z]+[0-9]+')


def cell_key(row: int, col: int) -> str:
    """Canonical mapping key for a coordinate."""
    return f"{row}:{col}"


def column_letters(col: int) -> str:
    """Bijective base-26 column name: 0 -> A, 25 -> Z, 26 -> AA."""
    letters = ""
    col += 1
    while col > 0:
        col, digit = divmod(col - 1, 26)
        letters = chr(65 + digit) + letters
    return letters


def encode_label(row: int, col: int) -> str:
    """Return the spreadsheet-style label (e.g. "C7") for a coordinate."""
    return f"{column_letters(col)}{row + 1}"


def decode_label(label: str) -> Optional[Coordinate]:
    """
    Parse a label such as "AB12" into (row, col).
    Returns None if the label is not letters followed by digits, or if the
    row number is 0 (rows are 1-based in labels).
    The configured grid extent is deliberately not checked here.
    """
    match = LABEL_PATTERN.fullmatch(label)
    if not match:
        return None
    letters, digits = match.groups()
    value = 0
    for char in letters:
        value = value * 26 + (ord(char) - 64)
    row = int(digits) - 1
    if row < 0:
        return None
    return row, value - 1
