import pytest

from lead_pipeline.contact_status import (
    CallOutcome,
    apply_call_outcome,
    next_contact_status,
    rnr_level,
)


@pytest.mark.parametrize(
    "current, connection, expected",
    [
        ("not contact", "connected", "connected"),
        ("not contact", "not connected", "rnr-1"),
        ("rnr-1", "not connected", "rnr-2"),
        ("rnr-6", "not connected", "rnr-7"),
        ("rnr-3", "connected", "connected"),
        ("connected", "not connected", "rnr-1"),
        ("connected", "connected", "connected"),
        ("RNR-2", "not connected", "rnr-3"),
        (None, "not connected", "rnr-1"),
    ],
)
def test_next_contact_status(current, connection, expected) -> None:
    assert next_contact_status(current, connection) == expected


@pytest.mark.parametrize("current", ["not contact", "connected", "rnr-1", "rnr-42", "garbage", "rnr-x", ""])
@pytest.mark.parametrize("connection", ["connected", "not connected"])
def test_state_machine_is_total(current, connection) -> None:
    status = next_contact_status(current, connection)

    assert status == "connected" or rnr_level(status) is not None


def test_rnr_is_unbounded_by_default_and_capped_when_configured() -> None:
    assert next_contact_status("rnr-99", "not connected") == "rnr-100"
    assert next_contact_status("rnr-5", "not connected", rnr_ceiling=6) == "rnr-6"
    assert next_contact_status("rnr-6", "not connected", rnr_ceiling=6) == "rnr-6"


def test_unknown_connection_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown call connection"):
        next_contact_status("not contact", "voicemail")


def test_outcome_defaults_only_apply_to_connected_calls() -> None:
    connected = CallOutcome("connected").resolved()
    missed = CallOutcome("not connected").resolved()

    assert (connected.connect_medium, connected.direction) == ("on call", "outbound")
    assert (missed.connect_medium, missed.direction) == (None, None)


def test_outcome_rejects_unknown_medium() -> None:
    with pytest.raises(ValueError, match="Unknown connect medium"):
        CallOutcome("connected", connect_medium="carrier pigeon").resolved()


def test_apply_connected_call_updates_timestamps_history_and_notes() -> None:
    document = {
        "contactStatus": "rnr-2",
        "kamId": "KAM7",
        "connectHistory": [{"timestamp": 10, "connection": "not connected"}],
        "notes": [],
        "lastTried": 10,
        "lastConnect": 0,
    }

    update = apply_call_outcome(
        document,
        CallOutcome("connected", "on whatsapp", "inbound"),
        timestamp=1_700_000_000,
        note="  Wants resale listings ",
    )

    assert update.previous_status == "rnr-2"
    assert update.new_status == "connected"
    assert update.changes["lastTried"] == 1_700_000_000
    assert update.changes["lastConnect"] == 1_700_000_000
    assert update.changes["connectHistory"][-1] == {
        "timestamp": 1_700_000_000,
        "connection": "connected",
        "connectMedium": "on whatsapp",
        "direction": "inbound",
    }
    assert len(update.changes["connectHistory"]) == 2
    assert update.changes["notes"] == [
        {
            "kamId": "KAM7",
            "note": "Wants resale listings",
            "source": "direct - on whatsapp",
            "timestamp": 1_700_000_000,
            "archive": False,
        }
    ]
    assert document["connectHistory"] == [{"timestamp": 10, "connection": "not connected"}]


def test_apply_missed_call_leaves_last_connect_alone() -> None:
    update = apply_call_outcome(
        {"contactStatus": "not contact"},
        CallOutcome("not connected"),
        timestamp=500,
        history_field="contactHistory",
        note="no answer",
    )

    assert update.new_status == "rnr-1"
    assert "lastConnect" not in update.changes
    assert update.changes["contactHistory"][0]["connection"] == "not connected"
    assert update.note.kam_id == "UNKNOWN"
    assert update.note.source == "direct - unknown"
