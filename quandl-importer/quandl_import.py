# Import flow shared by the xlwings scripts: resolve code, fetch, append.

from typing import Callable, Optional, Sequence

from code_resolver import normalize_code, resolve_code
from quandl_client import dataframe_to_rows, fetch_dataset
from token_cache import TokenCache, get_auth_token

IMPORT_FAILED_MESSAGE = "Quandl import failed."


def next_empty_row(sheet) -> int:
    """First row below the used range, or 1 on an empty sheet."""
    used = sheet.used_range
    if used.row == 1 and used.count == 1 and used.value is None:
        return 1
    return used.last_cell.row + 1


def append_rows(sheet, rows: list) -> int:
    """Writes rows below existing content and returns the first row written."""
    start_row = next_empty_row(sheet)
    sheet.range((start_row, 1)).value = rows
    return start_row


def import_dataset(selection: Sequence[Sequence],
                   prompt_for_code: Callable[[], Optional[str]],
                   alert: Callable[[str], None],
                   sheet,
                   cache: TokenCache = None,
                   params: dict = None) -> bool:
    """
    Imports one dataset into the sheet.

    Returns False when the user cancelled the code prompt; an alert has been
    shown in that case and nothing was written. Fetch errors propagate.
    """
    print("\n[1/3] Resolving dataset code...")
    resolution = resolve_code(selection, prompt_for_code)
    if not resolution:
        print("ERROR: No dataset code, import aborted")
        alert(IMPORT_FAILED_MESSAGE)
        return False

    code = normalize_code(resolution.code)
    print(f"   Dataset code: {code}")

    print("\n[2/3] Downloading dataset...")
    auth_token = get_auth_token(cache)
    if auth_token:
        print(f"   Using auth token: {auth_token[:6]}...")
    else:
        print("   No auth token set, using anonymous access")
    df, meta = fetch_dataset(code, auth_token=auth_token, params=params)
    if meta.get("name"):
        print(f"   Dataset name: {meta['name']}")
    print(f"   Received {len(df):,} rows x {len(df.columns)} columns")

    print("\n[3/3] Appending rows to sheet...")
    rows = dataframe_to_rows(df)
    start_row = append_rows(sheet, rows)
    print(f"   Wrote {len(rows):,} rows starting at row {start_row}")
    return True
