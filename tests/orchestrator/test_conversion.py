import pytest

from lead_pipeline.duplicates import DuplicateDetector
from lead_pipeline.errors import DuplicateRecordError, RecordNotFoundError, StoreError
from lead_pipeline.ids import SequentialIdAllocator
from lead_pipeline.orchestrator import ConversionError, LeadConverter
from lead_pipeline.stores import MemoryRecordStore
from lead_pipeline.validation import LeadValidationError

NOW = 1_700_000_500


class FaultyStore(MemoryRecordStore):
    def __init__(self, data=None) -> None:
        super().__init__(data)
        self.fail_agent_create = False
        self.fail_lead_delete = False

    def create(self, collection, doc_id, data):
        if collection == "agents" and self.fail_agent_create:
            raise StoreError("agents write rejected")
        super().create(collection, doc_id, data)

    def delete(self, collection, doc_id):
        if collection == "leads" and self.fail_lead_delete:
            raise StoreError("leads delete rejected")
        return super().delete(collection, doc_id)


def _lead(**overrides):
    lead = {
        "leadId": "LDA7",
        "name": "Asha Rao",
        "phoneNumber": "+919876543210",
        "emailAddress": "asha@example.com",
        "source": "referral",
        "leadStatus": "interested",
        "contactStatus": "connected",
        "connectHistory": [
            {"timestamp": 1_690_000_000_000, "connection": "connected", "connectMedium": "on call", "direction": "outbound"}
        ],
        "notes": [{"kamId": "KAM1", "note": "keen on resale", "source": "direct - on call", "timestamp": 1_690_000_000}],
        "kamId": "KAM1",
        "kamName": "Priya",
        "communityJoined": True,
        "onBroadcast": False,
        "blackListed": False,
        "lastTried": 1_690_000_000_000,
        "lastConnect": 1_690_000_000,
        "added": 1_680_000_000,
        "lastModified": 1_690_000_000,
    }
    lead.update(overrides)
    return lead


def _store(store_cls=MemoryRecordStore, **lead_overrides):
    store = store_cls()
    store.set("admin", "lastCpId", {"count": 545, "prefix": "B", "label": "CP"})
    store.set("admin", "lastLeadId", {"count": 7, "prefix": "A", "label": "LD"})
    store.set("leads", "LDA7", _lead(**lead_overrides))
    return store


def _converter(store) -> LeadConverter:
    return LeadConverter(store, SequentialIdAllocator(store), DuplicateDetector(store), clock=lambda: NOW)


def test_convert_creates_agent_and_removes_lead() -> None:
    store = _store()

    result = _converter(store).convert(
        "LDA7",
        {"firmName": "Rao Realty", "firmSize": "4", "areaOfOperation": ["North Bangalore"], "reraId": "PRM/1"},
    )

    assert result.cp_id == "CPB546"
    assert result.as_dict()["message"] == "Agent CPB546 created successfully"
    assert store.get("leads", "LDA7") is None
    agent = store.get("agents", "CPB546")
    assert agent["cpId"] == "CPB546"
    assert agent["leadId"] == "LDA7"
    assert agent["phoneNumber"] == "+919876543210"
    assert agent["firmName"] == "Rao Realty"
    assert agent["firmSize"] == 4
    assert agent["areaOfOperation"] == ["north bangalore"]
    assert agent["contactStatus"] == "connected"
    assert agent["contactHistory"] == _lead()["connectHistory"]
    assert agent["notes"] == _lead()["notes"]
    assert agent["kamName"] == "Priya"
    assert agent["communityJoined"] is True
    assert agent["source"] == "referral"
    assert agent["verified"] is True
    assert agent["verificationDate"] == NOW
    assert agent["added"] == 1_680_000_000
    assert agent["lastTried"] == 1_690_000_000
    assert agent["noOfInventories"] == 0
    assert agent["paymentHistory"] == []
    assert store.get("admin", "lastCpId")["count"] == 546


def test_missing_required_fields_leave_everything_untouched() -> None:
    store = _store(kamName="", emailAddress="")

    with pytest.raises(LeadValidationError, match="Missing required fields: Email address, KAM"):
        _converter(store).convert("LDA7")

    assert store.get("leads", "LDA7") == _lead(kamName="", emailAddress="")
    assert store.collection("agents") == {}
    assert store.get("admin", "lastCpId")["count"] == 545


def test_verification_details_can_fill_missing_fields() -> None:
    store = _store(kamName="")

    result = _converter(store).convert("LDA7", {"kamName": "Vikram", "businessCategory": "resale, rental"})

    assert result.agent["kamName"] == "Vikram"
    assert result.agent["businessCategory"] == ["resale", "rental"]


def test_unknown_tags_are_rejected() -> None:
    store = _store()

    with pytest.raises(LeadValidationError, match="Unknown area of operation: Mysore"):
        _converter(store).convert("LDA7", {"areaOfOperation": ["Mysore"]})


def test_existing_agent_with_same_number_blocks_conversion() -> None:
    store = _store()
    store.set("agents", "CPB500", {"cpId": "CPB500", "phoneNumber": "9876543210"})

    with pytest.raises(DuplicateRecordError, match="CPB500"):
        _converter(store).convert("LDA7")

    assert store.get("leads", "LDA7") is not None


def test_missing_lead_is_reported() -> None:
    with pytest.raises(RecordNotFoundError, match="leads/LDA404"):
        _converter(_store()).convert("LDA404")


def test_failed_agent_write_leaves_the_lead_untouched() -> None:
    store = _store(FaultyStore)
    store.fail_agent_create = True

    with pytest.raises(ConversionError) as excinfo:
        _converter(store).convert("LDA7")

    assert excinfo.value.cp_id == "CPB546"
    assert not excinfo.value.resumable
    assert store.get("leads", "LDA7") == _lead()
    assert store.collection("agents") == {}
    assert _converter(store).pending() == []


def test_failed_agent_write_adds_no_fields_to_a_sparse_lead() -> None:
    store = _store(FaultyStore)
    sparse = {key: value for key, value in _lead().items() if key != "lastModified"}
    store.set("leads", "LDA7", sparse)
    store.fail_agent_create = True

    with pytest.raises(ConversionError):
        _converter(store).convert("LDA7")

    assert store.get("leads", "LDA7") == sparse


def test_failed_lead_delete_is_resumable() -> None:
    store = _store(FaultyStore)
    store.fail_lead_delete = True
    converter = _converter(store)

    with pytest.raises(ConversionError) as excinfo:
        converter.convert("LDA7")

    assert excinfo.value.resumable
    assert store.get("agents", "CPB546") is not None
    assert [lead["leadId"] for lead in converter.pending()] == ["LDA7"]

    store.fail_lead_delete = False
    results = converter.resume_pending()

    assert [(result.cp_id, result.resumed) for result in results] == [("CPB546", True)]
    assert store.get("leads", "LDA7") is None
    assert store.get("admin", "lastCpId")["count"] == 546


def test_interrupted_conversion_is_rebuilt_under_recorded_id() -> None:
    store = _store()
    store.update(
        "leads",
        "LDA7",
        {"conversion": {"state": "in_progress", "cpId": "CPB546", "started": NOW - 60, "details": {"firmName": "Rao Realty"}}},
    )
    store.set("admin", "lastCpId", {"count": 546, "prefix": "B", "label": "CP"})
    converter = _converter(store)

    result = converter.convert("LDA7")

    assert result.resumed
    assert store.get("leads", "LDA7") is None
    agent = store.get("agents", "CPB546")
    assert agent["firmName"] == "Rao Realty"
    assert agent["verificationDate"] == NOW - 60
    assert "conversion" not in agent
    assert converter.pending() == []
    assert store.get("admin", "lastCpId")["count"] == 546


def test_add_agent_checks_both_stores() -> None:
    store = _store()
    converter = _converter(store)

    with pytest.raises(DuplicateRecordError, match="leads"):
        converter.add_agent(
            {"name": "Asha", "phoneNumber": "9876543210", "emailAddress": "a@example.com", "kamName": "Priya"}
        )

    agent = converter.add_agent(
        {
            "name": "Kiran",
            "phoneNumber": "91 9123456789",
            "emailAddress": "kiran@example.com",
            "kamName": "Priya",
            "firmSize": 12,
            "unknownField": "ignored",
        }
    )

    assert agent["cpId"] == "CPB546"
    assert agent["leadId"] == ""
    assert agent["phoneNumber"] == "+919123456789"
    assert agent["contactStatus"] == "not contact"
    assert "unknownField" not in agent
    assert store.get("agents", "CPB546") == agent


def test_resume_skips_marked_lead_without_lead_id(caplog) -> None:
    store = _store()
    orphan = {key: value for key, value in _lead().items() if key != "leadId"}
    orphan["conversion"] = {"state": "in_progress", "cpId": "CPB546", "started": NOW, "details": {}}
    store.set("leads", "LEGACY1", orphan)
    converter = _converter(store)

    assert converter.resume_pending() == []

    assert store.get("leads", "LEGACY1") == orphan
    assert store.get("agents", "CPB546") is None
    assert "has no leadId" in caplog.text


class RacingStore(MemoryRecordStore):
    """Reports every lead delete as a miss, as if another worker got there first."""

    def delete(self, collection, doc_id):
        super().delete(collection, doc_id)
        return collection != "leads"


def test_retiring_a_lead_that_is_already_gone_is_logged(caplog) -> None:
    caplog.set_level("INFO")
    store = _store(RacingStore)
    store.update(
        "leads",
        "LDA7",
        {"conversion": {"state": "in_progress", "cpId": "CPB546", "started": NOW, "details": {}}},
    )
    store.set("agents", "CPB546", {"cpId": "CPB546", "leadId": "LDA7", "phoneNumber": "+919876543210"})

    result = _converter(store).convert("LDA7")

    assert result.resumed
    assert store.get("leads", "LDA7") is None
    assert "already gone" in caplog.text
    assert "retired after conversion" not in caplog.text
