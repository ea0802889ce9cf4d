"""Reading and writing A1-notation ranges.

Values are submitted with ``RAW`` input semantics by default: strings are
stored as typed, never parsed as numbers, dates or formulas.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from googleapiclient.errors import HttpError

from ohsheet.exceptions import ApiError, TokenError

if TYPE_CHECKING:
    from ohsheet.session import Session

logger = logging.getLogger(__name__)

# A row of cell values, or a rectangular block of rows
Values = Sequence[Any] | Sequence[Sequence[Any]]


@dataclass(frozen=True)
class ValueRange:
    """Cell values read from a range."""

    range: str
    values: list[list[Any]] = field(default_factory=list)
    major_dimension: str = "ROWS"

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> ValueRange:
        return cls(
            range=data.get("range", ""),
            values=data.get("values", []),
            major_dimension=data.get("majorDimension", "ROWS"),
        )

    @property
    def rows(self) -> int:
        return len(self.values)

    @property
    def is_empty(self) -> bool:
        return not any(self.values)


@dataclass(frozen=True)
class UpdateResult:
    """Summary of an update returned by the API."""

    spreadsheet_id: str
    updated_range: str = ""
    updated_rows: int = 0
    updated_columns: int = 0
    updated_cells: int = 0

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> UpdateResult:
        return cls(
            spreadsheet_id=data.get("spreadsheetId", ""),
            updated_range=data.get("updatedRange", ""),
            updated_rows=data.get("updatedRows", 0),
            updated_columns=data.get("updatedColumns", 0),
            updated_cells=data.get("updatedCells", 0),
        )


@dataclass(frozen=True)
class AppendResult:
    """Summary of an append returned by the API."""

    spreadsheet_id: str
    table_range: str | None
    updates: UpdateResult

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> AppendResult:
        return cls(
            spreadsheet_id=data.get("spreadsheetId", ""),
            table_range=data.get("tableRange"),
            updates=UpdateResult.from_response(data.get("updates", {})),
        )


def _is_row(value: Any) -> bool:
    return isinstance(value, Sequence) and not isinstance(value, (str, bytes))


def as_rows(values: Values) -> list[list[Any]]:
    """Normalise a single row or a block of rows to a list of rows.

    Raises:
        ValueError: If rows and scalar cells are mixed.
    """
    items = list(values)
    nested = [_is_row(item) for item in items]
    if items and all(nested):
        return [list(row) for row in items]
    if any(nested):
        raise ValueError("values must be a single row of cells or a sequence of rows")
    return [items]


def _execute(request: Any, operation: str) -> dict[str, Any]:
    """Execute an API request, translating failures to ohsheet errors."""
    try:
        return request.execute()
    except HttpError as e:
        reason = getattr(e, "reason", None) or str(e)
        raise ApiError(f"{operation} failed: {reason}", status=e.resp.status) from e
    except RefreshError as e:
        raise TokenError(f"Failed to refresh token during {operation}: {e}") from e
    except TransportError as e:
        raise ApiError(f"{operation} failed: {e}") from e
    except (httplib2.HttpLib2Error, OSError) as e:
        raise ApiError(f"{operation} failed: {e}") from e


def read(
    session: Session,
    spreadsheet_id: str,
    range_: str,
    value_render_option: str = "FORMATTED_VALUE",
) -> ValueRange:
    """Read values from a range.

    Args:
        session: Connected session.
        spreadsheet_id: Spreadsheet ID.
        range_: A1 notation (e.g., "Sheet1!A1:C10").
        value_render_option: "FORMATTED_VALUE", "UNFORMATTED_VALUE" or "FORMULA".

    Returns:
        ValueRange with the current contents of the range.

    Raises:
        ApiError: If the request fails.
    """
    logger.debug(f"Reading {spreadsheet_id} {range_}")
    request = (
        session.service.spreadsheets()
        .values()
        .get(
            spreadsheetId=spreadsheet_id,
            range=range_,
            valueRenderOption=value_render_option,
        )
    )
    return ValueRange.from_response(_execute(request, "values.get"))


def write(
    session: Session,
    spreadsheet_id: str,
    range_: str,
    values: Values,
    value_input_option: str = "RAW",
) -> UpdateResult:
    """Overwrite a range, starting at its top-left cell.

    Args:
        session: Connected session.
        spreadsheet_id: Spreadsheet ID.
        range_: A1 notation (e.g., "Sheet1!A1").
        values: One row of cells, or a list of rows.
        value_input_option: "RAW" or "USER_ENTERED".

    Returns:
        UpdateResult describing the cells written.

    Raises:
        ApiError: If the request fails.
    """
    rows = as_rows(values)
    logger.debug(f"Writing {len(rows)} row(s) to {spreadsheet_id} {range_}")
    request = (
        session.service.spreadsheets()
        .values()
        .update(
            spreadsheetId=spreadsheet_id,
            range=range_,
            valueInputOption=value_input_option,
            body={"majorDimension": "ROWS", "values": rows},
        )
    )
    return UpdateResult.from_response(_execute(request, "values.update"))


def append(
    session: Session,
    spreadsheet_id: str,
    range_: str,
    values: Values,
    value_input_option: str = "RAW",
) -> AppendResult:
    """Append rows after the last row of the table found at ``range_``.

    Existing cells are never overwritten; new rows are inserted.

    Raises:
        ApiError: If the request fails.
    """
    rows = as_rows(values)
    logger.debug(f"Appending {len(rows)} row(s) to {spreadsheet_id} {range_}")
    request = (
        session.service.spreadsheets()
        .values()
        .append(
            spreadsheetId=spreadsheet_id,
            range=range_,
            valueInputOption=value_input_option,
            insertDataOption="INSERT_ROWS",
            body={"majorDimension": "ROWS", "values": rows},
        )
    )
    return AppendResult.from_response(_execute(request, "values.append"))


def clear(session: Session, spreadsheet_id: str, range_: str) -> str:
    """Clear values (not formatting) from a range.

    Returns:
        The range that was cleared, as reported by the API.
    """
    logger.debug(f"Clearing {spreadsheet_id} {range_}")
    request = (
        session.service.spreadsheets()
        .values()
        .clear(spreadsheetId=spreadsheet_id, range=range_, body={})
    )
    return _execute(request, "values.clear").get("clearedRange", range_)
