"""Spreadsheet intake: loading, header normalisation, and preview export."""

from .exporters import export_validation_report, report_to_dataframe
from .loaders import UnsupportedFileTypeError, load_spreadsheet, read_cells
from .spreadsheet import REQUIRED_COLUMNS, SpreadsheetFormatError, normalize_header, normalize_sheet

__all__ = [
    "REQUIRED_COLUMNS",
    "SpreadsheetFormatError",
    "UnsupportedFileTypeError",
    "export_validation_report",
    "load_spreadsheet",
    "normalize_header",
    "normalize_sheet",
    "read_cells",
    "report_to_dataframe",
]
