import pytest

from lead_pipeline.ingestion.spreadsheet import SpreadsheetFormatError, normalize_header, normalize_sheet


@pytest.mark.parametrize(
    "header, expected",
    [
        ("Phone", "Number"),
        (" phonenumber ", "Number"),
        ("NUMBER", "Number"),
        ("name", "Name"),
        ("E-mail", "E-mail"),
        ("email", "Email"),
        ("Lead source", "Lead Source"),
        ("leadsource", "Lead Source"),
        ("Source", "Lead Source"),
        ("City", "City"),
    ],
)
def test_normalize_header(header, expected) -> None:
    assert normalize_header(header) == expected


def test_normalize_sheet_maps_rows_and_drops_blank_lines() -> None:
    cells = [
        ["phone", "Name", "Email", "source", "Notes"],
        ["9876543210", "Asha", "asha@example.com", "whatsApp", "met at expo"],
        ["", "", "", "", ""],
        ["9123456789", "Ravi"],
    ]

    rows = normalize_sheet(cells)

    assert [row.row_number for row in rows] == [2, 4]
    assert rows[0].values == {
        "Number": "9876543210",
        "Name": "Asha",
        "Email": "asha@example.com",
        "Lead Source": "whatsApp",
        "Notes": "met at expo",
    }
    assert rows[1].email == ""
    assert rows[1].lead_source == ""


def test_custom_synonyms_replace_the_default_table() -> None:
    rows = normalize_sheet(
        [["Mobile", "Full Name", "Channel"], ["9876543210", "Asha", "referral"]],
        synonyms={"mobile": "Number", "full name": "Name", "channel": "Lead Source"},
    )

    assert rows[0].number == "9876543210"
    assert rows[0].name == "Asha"


@pytest.mark.parametrize("cells", [[], [["", " "]]])
def test_empty_sheet_is_rejected(cells) -> None:
    with pytest.raises(SpreadsheetFormatError, match="The uploaded file is empty"):
        normalize_sheet(cells)


def test_missing_required_columns_are_listed() -> None:
    with pytest.raises(SpreadsheetFormatError, match="Missing required columns: Number, Lead Source"):
        normalize_sheet([["Name", "Email"], ["Asha", "asha@example.com"]])


def test_header_only_sheet_is_rejected() -> None:
    with pytest.raises(SpreadsheetFormatError, match="no lead rows"):
        normalize_sheet([["Number", "Name", "Lead Source"], ["", "", "whatsApp"]])
