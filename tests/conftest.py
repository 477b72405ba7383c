"""Test configuration for the Quandl importer.

Puts the `quandl-importer` app directory on sys.path so the script modules
import the same way xlwings loads them, and provides stand-ins for the Excel
objects the import flow touches.
"""
from __future__ import annotations

import pathlib
import sys

import pytest

ROOT = pathlib.Path(__file__).resolve().parent.parent
APP = ROOT / "quandl-importer"

if str(APP) not in sys.path:
    sys.path.insert(0, str(APP))


class FakeCell:
    def __init__(self, row: int):
        self.row = row


class FakeUsedRange:
    def __init__(self, last_row: int, value):
        self.row = 1
        self.count = max(last_row, 1)
        self.value = value
        self.last_cell = FakeCell(max(last_row, 1))


class FakeWriteTarget:
    def __init__(self, sheet: "FakeSheet", address):
        self._sheet = sheet
        self._address = address

    @property
    def value(self):
        return self._sheet.writes.get(self._address)

    @value.setter
    def value(self, rows):
        self._sheet.writes[self._address] = rows
        self._sheet.last_row = self._address[0] + len(rows) - 1


class FakeSheet:
    """Minimal sheet: tracks the last used row and records range writes."""

    def __init__(self, last_row: int = 0):
        self.last_row = last_row
        self.writes = {}

    @property
    def used_range(self):
        if self.last_row == 0:
            return FakeUsedRange(1, None)
        return FakeUsedRange(self.last_row, "existing")

    def range(self, address):
        return FakeWriteTarget(self, address)


class ScriptedPrompt:
    """Prompt collaborator that replays canned answers and counts calls."""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if not self.answers:
            raise AssertionError("prompt called more often than expected")
        return self.answers.pop(0)


class RecordingAlert:
    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)


class FakeResponse:
    def __init__(self, payload=None, status_code=200, text=None):
        self._payload = payload
        self.status_code = status_code
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


SHIBOR_PAYLOAD = {
    "source_code": "TAMMER1",
    "code": "SHIBOR",
    "name": "Shanghai Interbank Offered Rate",
    "column_names": ["Date", "O/N", "1W"],
    "data": [
        ["2014-03-07", 2.713, 4.105],
        ["2014-03-06", 2.628, None],
    ],
}


@pytest.fixture
def sheet():
    return FakeSheet()


@pytest.fixture
def alert():
    return RecordingAlert()


@pytest.fixture
def cache(tmp_path):
    from token_cache import TokenCache
    return TokenCache(path=str(tmp_path / "token_cache.json"))


@pytest.fixture(autouse=True)
def _quandl_env(monkeypatch):
    for name in ("QUANDL_API_DOMAIN", "QUANDL_AUTH_TOKEN", "QUANDL_REQUEST_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)


class RecordedGet:
    """Stand-in for requests.get that records calls."""

    def __init__(self, response):
        self.response = response
        self.calls = []

    def __call__(self, url, timeout=None):
        self.calls.append({"url": url, "timeout": timeout})
        return self.response


@pytest.fixture
def fake_get(monkeypatch):
    import requests

    recorder = RecordedGet(FakeResponse(SHIBOR_PAYLOAD))
    monkeypatch.setattr(requests, "get", recorder)
    return recorder
