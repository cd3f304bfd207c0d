import pandas as pd

from lead_pipeline.duplicates import DuplicateDetector
from lead_pipeline.ingestion.exporters import PREVIEW_COLUMNS, export_validation_report, report_to_dataframe
from lead_pipeline.models import SpreadsheetRow
from lead_pipeline.stores import MemoryRecordStore
from lead_pipeline.validation import BulkValidator


def _build_sample_report():
    store = MemoryRecordStore({"leads": {"LDA3": {"leadId": "LDA3", "phoneNumber": "+919876543210"}}})
    rows = [
        SpreadsheetRow(2, {"Number": "9876543210", "Name": "Asha", "Email": "", "Lead Source": "whatsApp"}),
        SpreadsheetRow(3, {"Number": "12345", "Name": "Ravi", "Email": "ravi@", "Lead Source": "direct"}),
        SpreadsheetRow(4, {"Number": "9123456789", "Name": "Meera", "Email": "", "Lead Source": "Referral"}),
    ]
    return BulkValidator(DuplicateDetector(store)).validate(rows)


def test_report_to_dataframe_has_one_row_per_upload_row():
    dataframe = report_to_dataframe(_build_sample_report())

    assert list(dataframe.columns) == PREVIEW_COLUMNS
    assert list(dataframe["Status"]) == ["duplicate", "error", "ok"]
    assert dataframe.loc[0, "Duplicate Type"] == "leads"
    assert "already exists in leads" in dataframe.loc[0, "Warnings"]
    assert dataframe.loc[1, "Errors"] == (
        "Row 3: Phone number must be exactly 10 digits; Row 3: Invalid email format"
    )
    assert dataframe.loc[2, "Lead Source"] == "referral"


def test_export_validation_report_to_csv_and_excel(tmp_path):
    report = _build_sample_report()

    csv_path = export_validation_report(report, tmp_path / "preview.csv")
    excel_path = export_validation_report(report, tmp_path / "out" / "preview.xlsx")

    csv_frame = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    excel_frame = pd.read_excel(excel_path, dtype=str, keep_default_na=False)

    assert csv_frame.loc[2, "Name"] == "Meera"
    assert excel_frame.loc[1, "Status"] == "error"
    assert excel_frame.loc[0, "Number"] == "9876543210"
