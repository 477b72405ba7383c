# xlwings - Quandl Dataset Importer
#
# =============================================================================
# SCRIPT FUNCTIONS SUMMARY
# =============================================================================
# @script import_data       - Import the dataset named by the current selection
# @script set_auth_token    - Cache the auth token entered in QUANDL!B8
# @script clear_auth_token  - Forget the cached auth token
#
# =============================================================================
# SELECTION LAYOUTS (import_data)
# =============================================================================
#   One cell   - full code, e.g. TAMMER1/SHIBOR
#   Two cells  - source code and table code side by side, e.g. TAMMER1 | SHIBOR
#   Anything else (or an invalid code) falls back to the code in QUANDL!B2.
#
# Rows are appended to the active sheet below its used range: the column
# names first, then the data.
#
# =============================================================================
# QUANDL SHEET (optional, blank cells are skipped)
# =============================================================================
#   B2 - Dataset code, used when the selection does not name a valid one
#   B3 - trim_start (date)
#   B4 - trim_end (date)
#   B5 - sort_order ("asc" or "desc")
#   B6 - rows (max number of rows)
#   B8 - Auth token for set_auth_token (cleared once cached)
#   D2 - Output: code status (written by import_data)
#   D8 - Output: token status (written by set_auth_token / clear_auth_token)
#
# =============================================================================
# ENVIRONMENT VARIABLES
# =============================================================================
#   QUANDL_API_DOMAIN       - API host (default www.quandl.com)
#   QUANDL_AUTH_TOKEN       - Token used when none is cached
#   QUANDL_REQUEST_TIMEOUT  - HTTP timeout in seconds (default 30)
#

import traceback
from datetime import datetime
from typing import Optional

import pandas as pd
import xlwings as xw
from xlwings import script

import token_cache
from quandl_import import IMPORT_FAILED_MESSAGE, import_dataset

ALERT_TITLE = "Quandl"
PARAMS_SHEET = "QUANDL"
CODE_CELL = "B2"
CODE_STATUS_CELL = "D2"
TOKEN_CELL = "B8"
TOKEN_STATUS_CELL = "D8"
PARAM_CELLS = {
    "trim_start": "B3",
    "trim_end": "B4",
    "sort_order": "B5",
    "rows": "B6",
}


def get_params_sheet(book: xw.Book) -> Optional[xw.Sheet]:
    """Returns the QUANDL sheet, or None when the workbook has none."""
    if PARAMS_SHEET not in [s.name for s in book.sheets]:
        return None
    return book.sheets[PARAMS_SHEET]


def read_input_cell(book: xw.Book, cell: str) -> Optional[str]:
    """
    Returns the text typed into a QUANDL sheet cell.

    None when the sheet is missing or the cell is empty.
    """
    params_sheet = get_params_sheet(book)
    if params_sheet is None:
        return None
    value = params_sheet[cell].value
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or None


def write_status(book: xw.Book, cell: str, message: str, is_error: bool = False) -> None:
    params_sheet = get_params_sheet(book)
    if params_sheet is None:
        return
    params_sheet[cell].value = message
    params_sheet[cell].font.color = '#FF0000' if is_error else '#000000'


def make_alert(book: xw.Book):
    def alert(message: str) -> None:
        book.app.alert(message, title=ALERT_TITLE)
    return alert


def make_code_prompt(book: xw.Book):
    """
    Code prompt backed by QUANDL!B2.

    The cell is read on the first call only; later calls mean the entered code
    was rejected and return None so the import stops.
    """
    state = {"asked": False}

    def prompt_for_code() -> Optional[str]:
        if state["asked"]:
            print(f"   Code in {PARAMS_SHEET}!{CODE_CELL} is not a valid SOURCE/TABLE code")
            write_status(book, CODE_STATUS_CELL,
                         "ERROR: Enter a SOURCE/TABLE code, e.g. TAMMER1/SHIBOR", is_error=True)
            return None
        state["asked"] = True
        code = read_input_cell(book, CODE_CELL)
        if code is None:
            print(f"   No code in {PARAMS_SHEET}!{CODE_CELL}")
            write_status(book, CODE_STATUS_CELL,
                         "ERROR: Select a code or enter one in B2", is_error=True)
        else:
            print(f"   Code from {PARAMS_SHEET}!{CODE_CELL}: {code!r}")
        return code

    return prompt_for_code


def read_selection(book: xw.Book) -> list:
    """Returns the selected cells as a list of rows."""
    selection = book.selection
    if selection is None:
        return [[None]]
    return selection.options(ndim=2).value


def _param_value(value):
    if isinstance(value, (datetime, pd.Timestamp)):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


def read_query_params(book: xw.Book) -> dict:
    """Reads optional query parameters from the QUANDL sheet, if present."""
    params_sheet = get_params_sheet(book)
    if params_sheet is None:
        return {}

    params = {}
    for name, cell in PARAM_CELLS.items():
        value = _param_value(params_sheet[cell].value)
        if value is None or value == "":
            continue
        params[name] = value
        print(f"   {name} ({cell}): {value}")
    return params


@script
def import_data(book: xw.Book):
    """Import the Quandl dataset named by the current selection into the active sheet."""
    print("=" * 60)
    print("QUANDL DATASET IMPORTER")
    print("=" * 60)

    alert = make_alert(book)
    try:
        selection = read_selection(book)
        params = read_query_params(book)
        imported = import_dataset(
            selection,
            make_code_prompt(book),
            alert,
            book.sheets.active,
            params=params,
        )
        if imported:
            write_status(book, CODE_STATUS_CELL, "")
    except Exception as e:
        print(f"\nERROR: {e}")
        print(traceback.format_exc())
        alert(IMPORT_FAILED_MESSAGE)
        return False

    if imported:
        print("\nImport complete")
    print("=" * 60)
    return imported


@script
def set_auth_token(book: xw.Book):
    """Cache the Quandl auth token typed into QUANDL!B8, then clear the cell."""
    print("▶ STARTING set_auth_token ◀")

    try:
        token = read_input_cell(book, TOKEN_CELL)
        if token is None:
            print(f"   No token in {PARAMS_SHEET}!{TOKEN_CELL}, cache unchanged")
            write_status(book, TOKEN_STATUS_CELL, "ERROR: Enter a token in B8", is_error=True)
            make_alert(book)(f"Enter your Quandl auth token in {PARAMS_SHEET}!{TOKEN_CELL} first.")
            return False

        token_cache.save_auth_token(token)
        book.sheets[PARAMS_SHEET][TOKEN_CELL].value = None
        print(f"   Token cached: {token[:6]}...")
        print(f"   Expires after {token_cache.TOKEN_TTL_SECONDS // 3600} hours without use")
        write_status(book, TOKEN_STATUS_CELL, "Token cached")
    except Exception as e:
        print(f"ERROR: Could not cache auth token: {e}")
        print(traceback.format_exc())
        return False

    print("✓ ENDING set_auth_token ✓")
    return True


@script
def clear_auth_token(book: xw.Book):
    """Remove the cached Quandl auth token."""
    print("▶ STARTING clear_auth_token ◀")

    try:
        token_cache.clear_auth_token()
        print("   Cached auth token removed")
        write_status(book, TOKEN_STATUS_CELL, "Token cleared")
        make_alert(book)("Quandl auth token cleared.")
    except Exception as e:
        print(f"ERROR: Could not clear auth token: {e}")
        print(traceback.format_exc())
        return False

    print("✓ ENDING clear_auth_token ✓")
    return True
