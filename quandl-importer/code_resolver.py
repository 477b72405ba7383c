# Dataset code inference for the Quandl importer.
#
# A dataset code looks like SOURCE/TABLE (e.g. TAMMER1/SHIBOR). Users either
# select one cell holding the full code, or two adjacent cells holding the
# source and table parts. Anything else falls back to an input prompt.

import re
from typing import Callable, Optional, Sequence

CODE_SEPARATOR = "/"

_SEPARATOR_RUN = re.compile(r"/+")
_WHITESPACE = re.compile(r"\s+")


class Resolved:
    """A dataset code that passed validation."""

    def __init__(self, code: str):
        self.code = code

    def __bool__(self):
        return True

    def __eq__(self, other):
        return isinstance(other, Resolved) and other.code == self.code

    def __hash__(self):
        return hash(self.code)

    def __repr__(self):
        return f"Resolved({self.code!r})"


class _Cancelled:
    """The user gave up on entering a code."""

    def __bool__(self):
        return False

    def __repr__(self):
        return "CANCELLED"


CANCELLED = _Cancelled()


def normalize_code(candidate) -> str:
    """Collapses repeated separators and strips all whitespace."""
    text = _SEPARATOR_RUN.sub(CODE_SEPARATOR, str(candidate))
    return _WHITESPACE.sub("", text)


def is_valid_code(candidate) -> bool:
    """Checks that a candidate has a non-empty source and table segment."""
    if not candidate:
        return False
    segments = normalize_code(candidate).split(CODE_SEPARATOR)
    if len(segments) < 2:
        return False
    return len(segments[0]) > 0 and len(segments[1]) > 0


def _cell_text(value) -> Optional[str]:
    if value is None:
        return None
    # Excel hands back whole numbers as floats
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def infer_code(selection: Sequence[Sequence]) -> Optional[str]:
    """
    Guesses a dataset code from the selected cells.

    Only single-row selections are considered: one cell is taken as the full
    code, two cells as source and table. Returns None otherwise.
    """
    if not selection or len(selection) != 1:
        return None

    row = selection[0]
    if len(row) == 1:
        return _cell_text(row[0])
    if len(row) == 2:
        source_code = _cell_text(row[0]) or ""
        table_code = _cell_text(row[1]) or ""
        return source_code + CODE_SEPARATOR + table_code
    return None


def resolve_code(selection: Sequence[Sequence],
                 prompt_for_code: Callable[[], Optional[str]]):
    """
    Turns the selected cells into a dataset code, asking the user when needed.

    Args:
        selection: rows of cell values from the current selection
        prompt_for_code: returns the text the user typed, or None on cancel

    Returns:
        Resolved(code) once a valid code is known, or CANCELLED if the user
        cancelled the prompt. The prompt is repeated until one of the two
        happens.
    """
    candidate = infer_code(selection)
    if candidate is not None:
        print(f"   Code from selection: {candidate!r}")

    while not is_valid_code(candidate):
        if candidate:
            print(f"   '{candidate}' is not a valid SOURCE/TABLE code")
        candidate = prompt_for_code()
        if candidate is None:
            print("   Code prompt cancelled")
            return CANCELLED

    return Resolved(candidate)

