"""Utilities for loading lead uploads from spreadsheets."""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, MutableMapping, Optional, Union

import pandas as pd

from ..models import SpreadsheetRow
from .spreadsheet import normalize_sheet

PathLike = Union[str, Path]

_CSV_SUFFIXES = {".csv", ".tsv"}
_EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xltx", ".xltm"}


class UnsupportedFileTypeError(ValueError):
    """Raised when an unsupported file format is passed to the loader."""


def read_cells(
    path: PathLike,
    *,
    sheet_name: Union[str, int] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[List[str]]:
    """Read a CSV/XLSX file into a grid of strings, header row included.

    Every cell is read as text so phone numbers keep their exact digits.
    """

    dataframe = _read_dataframe(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs)
    return [[_clean_text(value) for value in row] for row in dataframe.itertuples(index=False, name=None)]


def load_spreadsheet(
    path: PathLike,
    *,
    synonyms: Optional[Mapping[str, str]] = None,
    sheet_name: Union[str, int] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> List[SpreadsheetRow]:
    """Load an upload and normalise its headers into :class:`SpreadsheetRow` objects."""

    return normalize_sheet(read_cells(path, sheet_name=sheet_name, loader_kwargs=loader_kwargs), synonyms)


def _read_dataframe(
    path: PathLike,
    *,
    sheet_name: Union[str, int] = 0,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> pd.DataFrame:
    loader_kwargs = dict(loader_kwargs or {})
    loader_kwargs.setdefault("header", None)
    loader_kwargs.setdefault("dtype", str)
    loader_kwargs.setdefault("keep_default_na", False)
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in _CSV_SUFFIXES:
        if suffix == ".tsv":
            loader_kwargs.setdefault("sep", "\t")
        loader_kwargs.setdefault("skip_blank_lines", False)
        loader_kwargs.setdefault("encoding", "utf-8-sig")
        try:
            return pd.read_csv(path_obj, **loader_kwargs)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()

    if suffix in _EXCEL_SUFFIXES:
        engine = loader_kwargs.pop("engine", None) or "openpyxl"
        return pd.read_excel(path_obj, sheet_name=sheet_name, engine=engine, **loader_kwargs)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}")


def _clean_text(value: Any) -> str:
    if value is None or pd.isna(value):
        return ""
    return str(value).strip()


__all__ = ["UnsupportedFileTypeError", "load_spreadsheet", "read_cells"]
