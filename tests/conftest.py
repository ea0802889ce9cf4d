"""Shared fixtures: OAuth files and an in-memory Sheets service."""

import json
import re
from typing import Any

import pytest

from ohsheet.session import Session

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"

_A1 = re.compile(
    r"^(?:(?P<sheet>[^!]+)!)?(?P<c1>[A-Z]+)?(?P<r1>\d+)?(?::(?P<c2>[A-Z]+)?(?P<r2>\d+)?)?$"
)


def _col(letters: str) -> int:
    n = 0
    for ch in letters:
        n = n * 26 + (ord(ch) - ord("A") + 1)
    return n - 1


def _letters(col: int) -> str:
    out = ""
    col += 1
    while col:
        col, rem = divmod(col - 1, 26)
        out = chr(ord("A") + rem) + out
    return out


class _Request:
    def __init__(self, fn, error=None):
        self._fn = fn
        self._error = error

    def execute(self):
        if self._error is not None:
            raise self._error
        return self._fn()


class FakeValues:
    """Mimics ``service.spreadsheets().values()`` over an in-memory grid."""

    def __init__(self, service):
        self._svc = service

    def _parse(self, range_: str):
        m = _A1.match(range_)
        assert m, f"unsupported range {range_}"
        sheet = m["sheet"] or "Sheet1"
        c1 = _col(m["c1"]) if m["c1"] else 0
        r1 = int(m["r1"]) - 1 if m["r1"] else 0
        has_end = ":" in range_
        c2 = _col(m["c2"]) if m["c2"] else (None if has_end else c1)
        r2 = int(m["r2"]) - 1 if m["r2"] else (None if has_end else r1)
        return sheet, r1, c1, r2, c2

    def _grid(self, sheet: str) -> dict:
        return self._svc.grid.setdefault(sheet, {})

    def get(self, spreadsheetId, **kwargs):
        range_ = kwargs.pop("range")
        self._svc.calls.append(("get", spreadsheetId, range_, kwargs))

        def run():
            sheet, r1, c1, r2, c2 = self._parse(range_)
            grid = self._grid(sheet)
            last_r = max((r for r, _ in grid), default=-1) if r2 is None else r2
            last_c = max((c for _, c in grid), default=-1) if c2 is None else c2
            rows = []
            for r in range(r1, last_r + 1):
                row = [grid.get((r, c), "") for c in range(c1, last_c + 1)]
                while row and row[-1] == "":
                    row.pop()
                rows.append(row)
            while rows and not rows[-1]:
                rows.pop()
            data = {"range": range_, "majorDimension": "ROWS"}
            if rows:
                data["values"] = rows
            return data

        return _Request(run, self._svc.errors.get("get"))

    def _put(self, sheet, r1, c1, rows):
        grid = self._grid(sheet)
        cells = 0
        for dr, row in enumerate(rows):
            for dc, value in enumerate(row):
                grid[(r1 + dr, c1 + dc)] = value
                cells += 1
        width = max((len(row) for row in rows), default=0)
        written = [row for row in rows if row]
        return {
            "updatedRange": f"{sheet}!{_letters(c1)}{r1 + 1}",
            "updatedRows": len(written),
            "updatedColumns": width,
            "updatedCells": cells,
        }

    def update(self, spreadsheetId, range, valueInputOption, body):
        self._svc.calls.append(("update", spreadsheetId, range, valueInputOption, body))

        def run():
            sheet, r1, c1, _, _ = self._parse(range)
            result = self._put(sheet, r1, c1, body["values"])
            return {"spreadsheetId": spreadsheetId, **result}

        return _Request(run, self._svc.errors.get("update"))

    def append(self, spreadsheetId, range, valueInputOption, insertDataOption, body):
        self._svc.calls.append(("append", spreadsheetId, range, valueInputOption, body))

        def run():
            sheet, r1, c1, _, _ = self._parse(range)
            grid = self._grid(sheet)
            used = [r for r, _ in grid if r >= r1]
            target = max(used) + 1 if used else r1
            result = self._put(sheet, target, c1, body["values"])
            updates = {"spreadsheetId": spreadsheetId, **result}
            return {"spreadsheetId": spreadsheetId, "updates": updates}

        return _Request(run, self._svc.errors.get("append"))

    def clear(self, spreadsheetId, range, body):
        self._svc.calls.append(("clear", spreadsheetId, range))

        def run():
            sheet, r1, c1, r2, c2 = self._parse(range)
            grid = self._grid(sheet)
            for r, c in list(grid):
                if r >= r1 and c >= c1 and (r2 is None or r <= r2) and (c2 is None or c <= c2):
                    del grid[(r, c)]
            return {"spreadsheetId": spreadsheetId, "clearedRange": range}

        return _Request(run, self._svc.errors.get("clear"))


class FakeSpreadsheets:
    def __init__(self, service):
        self._values = FakeValues(service)

    def values(self):
        return self._values


class FakeSheetsService:
    """Stand-in for the Sheets v4 discovery resource."""

    def __init__(self):
        self.grid: dict[str, dict[tuple[int, int], Any]] = {}
        self.calls: list[tuple] = []
        self.errors: dict[str, Exception] = {}
        self._spreadsheets = FakeSpreadsheets(self)

    def spreadsheets(self):
        return self._spreadsheets


@pytest.fixture
def fake_service():
    return FakeSheetsService()


@pytest.fixture
def session(fake_service):
    return Session(fake_service)


@pytest.fixture
def mock_credentials(tmp_path):
    """Create a mock credentials file."""
    creds = {
        "installed": {
            "client_id": "test-client-id.apps.googleusercontent.com",
            "client_secret": "test-client-secret",
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "redirect_uris": ["http://localhost"],
        }
    }
    creds_path = tmp_path / "credentials.json"
    with open(creds_path, "w") as f:
        json.dump(creds, f)
    return creds_path


@pytest.fixture
def mock_token(tmp_path):
    """Create a mock token file."""
    token = {
        "token": "test-access-token",
        "refresh_token": "test-refresh-token",
        "token_uri": "https://oauth2.googleapis.com/token",
        "client_id": "test-client-id.apps.googleusercontent.com",
        "client_secret": "test-client-secret",
        "scopes": [SHEETS_SCOPE],
        "type": "Bearer",
        "expiry": "2099-01-01T00:00:00Z",
    }
    token_path = tmp_path / "token.json"
    with open(token_path, "w") as f:
        json.dump(token, f)
    return token_path
