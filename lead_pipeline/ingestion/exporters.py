"""Export of annotated upload previews."""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, MutableMapping, Optional, Union

import pandas as pd

from ..validation import RowValidation, ValidationReport

PathLike = Union[str, Path]

PREVIEW_COLUMNS = [
    "Row",
    "Number",
    "Name",
    "Email",
    "Lead Source",
    "Status",
    "Duplicate Type",
    "Errors",
    "Warnings",
]


def export_validation_report(
    report: ValidationReport,
    path: PathLike,
    *,
    sheet_name: str = "Preview",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write the per-row validation preview to a CSV or Excel file."""

    dataframe = report_to_dataframe(report)
    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    _write_dataframe(dataframe, output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def report_to_dataframe(report: ValidationReport) -> pd.DataFrame:
    """Convert a validation report into a :class:`pandas.DataFrame`, one row per upload row."""

    return pd.DataFrame([_row_to_record(row) for row in report.rows], columns=PREVIEW_COLUMNS)


def _row_to_record(row: RowValidation) -> MutableMapping[str, object]:
    return {
        "Row": row.row_number,
        "Number": row.normalized_phone or row.row.number,
        "Name": row.row.name,
        "Email": row.row.email,
        "Lead Source": row.lead_source or row.row.lead_source,
        "Status": row.status,
        "Duplicate Type": row.duplicate_type or "",
        "Errors": _join_list(row.errors),
        "Warnings": _join_list(row.warnings),
    }


def _join_list(values: Iterable[Optional[str]]) -> str:
    cleaned: List[str] = []
    for value in values:
        if not value:
            continue
        text = str(value).strip()
        if text:
            cleaned.append(text)
    return "; ".join(cleaned)


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xlsx", ".xlsm"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = ["PREVIEW_COLUMNS", "export_validation_report", "report_to_dataframe"]
