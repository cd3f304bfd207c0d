"""Header normalisation for uploaded lead spreadsheets."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from ..config import DEFAULT_HEADER_SYNONYMS
from ..errors import LeadPipelineError
from ..models import SpreadsheetRow

REQUIRED_COLUMNS = ("Number", "Name", "Lead Source")


class SpreadsheetFormatError(LeadPipelineError, ValueError):
    """Raised when an uploaded sheet is empty or lacks required columns."""


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value != value:  # NaN
        return ""
    return str(value).strip()


def normalize_header(cell: Any, synonyms: Optional[Mapping[str, str]] = None) -> str:
    """Map a raw header onto its canonical column name; unknown headers pass through."""

    table = DEFAULT_HEADER_SYNONYMS if synonyms is None else synonyms
    text = _cell_text(cell)
    return table.get(text.lower(), text)


def normalize_sheet(
    cells: Sequence[Sequence[Any]],
    synonyms: Optional[Mapping[str, str]] = None,
) -> List[SpreadsheetRow]:
    """Turn a parsed 2-D grid (header first) into rows keyed by canonical column.

    Rows where both ``Number`` and ``Name`` are blank are treated as trailing
    filler and dropped. ``row_number`` is the 1-based line in the sheet.
    """

    if not cells or not any(_cell_text(cell) for cell in cells[0]):
        raise SpreadsheetFormatError("The uploaded file is empty")

    headers = [normalize_header(cell, synonyms) for cell in cells[0]]
    missing = [column for column in REQUIRED_COLUMNS if column not in headers]
    if missing:
        raise SpreadsheetFormatError(f"Missing required columns: {', '.join(missing)}")

    rows: List[SpreadsheetRow] = []
    for offset, cells_in_row in enumerate(cells[1:], start=2):
        values = {}
        for index, header in enumerate(headers):
            if not header or header in values:
                continue
            values[header] = _cell_text(cells_in_row[index]) if index < len(cells_in_row) else ""
        if not values.get("Number") and not values.get("Name"):
            continue
        rows.append(SpreadsheetRow(row_number=offset, values=values))

    if not rows:
        raise SpreadsheetFormatError("The uploaded file has no lead rows")
    return rows


__all__ = ["REQUIRED_COLUMNS", "SpreadsheetFormatError", "normalize_header", "normalize_sheet"]
