# Quandl v1 datasets API: URL building, fetch and payload parsing.

import os
import urllib.parse
from typing import Optional, Tuple

import pandas as pd
import requests

DEFAULT_API_DOMAIN = "www.quandl.com"
DEFAULT_REQUEST_TIMEOUT = 30


class QuandlError(ValueError):
    """Raised when the API answers with something we cannot import."""


def get_api_domain() -> str:
    domain = os.getenv("QUANDL_API_DOMAIN") or DEFAULT_API_DOMAIN
    return domain.strip().rstrip('/')


def get_request_timeout() -> float:
    raw = os.getenv("QUANDL_REQUEST_TIMEOUT")
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        return float(raw)
    except ValueError:
        print(f"   Warning: Ignoring invalid QUANDL_REQUEST_TIMEOUT '{raw}'")
        return DEFAULT_REQUEST_TIMEOUT


def build_dataset_url(code: str, auth_token: str = None, params: dict = None,
                      domain: str = None) -> str:
    """
    Builds https://<domain>/api/v1/datasets/<code>.json[?params].

    Empty parameter values are dropped. The auth token, when given, is sent as
    the auth_token parameter.
    """
    domain = domain or get_api_domain()
    query = {}
    if auth_token:
        query["auth_token"] = auth_token
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        query[key] = value

    path = urllib.parse.quote(code, safe="/")
    url = f"https://{domain}/api/v1/datasets/{path}.json"
    if query:
        url += "?" + urllib.parse.urlencode(query)
    return url


def _redact(url: str) -> str:
    """Hides the auth token when printing a URL."""
    parts = urllib.parse.urlsplit(url)
    query = urllib.parse.parse_qsl(parts.query)
    safe = [(k, v[:6] + "..." if k == "auth_token" else v) for k, v in query]
    return urllib.parse.urlunsplit(parts._replace(query=urllib.parse.urlencode(safe)))


def parse_dataset(payload) -> Tuple[pd.DataFrame, dict]:
    """
    Converts a datasets JSON payload into a DataFrame plus metadata.

    Columns come from column_names, rows from data.
    """
    if not isinstance(payload, dict):
        raise QuandlError("Invalid response format")
    if payload.get("error"):
        raise QuandlError(str(payload["error"]))

    column_names = payload.get("column_names")
    data = payload.get("data")
    if column_names is None or data is None:
        raise QuandlError("Response has no column_names/data fields")

    df = pd.DataFrame(data, columns=column_names)
    meta = {
        "source_code": payload.get("source_code"),
        "code": payload.get("code"),
        "name": payload.get("name"),
    }
    return df, meta


def fetch_dataset(code: str, auth_token: str = None, params: dict = None,
                  timeout: Optional[float] = None) -> Tuple[pd.DataFrame, dict]:
    """Downloads a dataset and returns (DataFrame, metadata)."""
    api_url = build_dataset_url(code, auth_token=auth_token, params=params)
    print(f"   API URL: {_redact(api_url)}")

    response = requests.get(api_url, timeout=timeout or get_request_timeout())
    print(f"   Response status: {response.status_code}")

    try:
        payload = response.json()
    except ValueError:
        raise QuandlError(f"Response is not JSON (HTTP {response.status_code})")

    if not response.ok:
        message = payload.get("error") if isinstance(payload, dict) else None
        raise QuandlError(f"HTTP {response.status_code}: {message or 'request failed'}")

    return parse_dataset(payload)


def dataframe_to_rows(df: pd.DataFrame) -> list:
    """Header row followed by data rows, with NaN written as empty cells."""
    values = df.astype(object).where(pd.notna(df), None).values.tolist()
    return [df.columns.tolist()] + values
