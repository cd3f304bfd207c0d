import json

import pytest

from lead_pipeline.errors import DocumentExistsError, RecordNotFoundError, StoreError
from lead_pipeline.stores import MemoryRecordStore


def test_documents_are_copied_in_and_out() -> None:
    store = MemoryRecordStore()
    document = {"name": "Asha", "notes": []}
    store.create("leads", "LDA1", document)

    document["notes"].append("mutated")
    fetched = store.get("leads", "LDA1")
    fetched["name"] = "changed"

    assert store.get("leads", "LDA1") == {"name": "Asha", "notes": []}


def test_create_refuses_to_overwrite() -> None:
    store = MemoryRecordStore()
    store.create("leads", "LDA1", {"name": "Asha"})

    with pytest.raises(DocumentExistsError, match="leads/LDA1 already exists"):
        store.create("leads", "LDA1", {"name": "Ravi"})


def test_update_and_increment_require_existing_documents() -> None:
    store = MemoryRecordStore()

    with pytest.raises(RecordNotFoundError):
        store.update("leads", "LDA1", {"name": "Asha"})
    with pytest.raises(RecordNotFoundError):
        store.increment("admin", "lastLeadId", "count")


def test_update_merges_top_level_fields() -> None:
    store = MemoryRecordStore({"leads": {"LDA1": {"name": "Asha", "leadStatus": "not contact yet"}}})

    updated = store.update("leads", "LDA1", {"leadStatus": "interested"})

    assert updated == {"name": "Asha", "leadStatus": "interested"}


def test_queries_and_delete() -> None:
    store = MemoryRecordStore(
        {
            "leads": {
                "LDA1": {"phoneNumber": "+919876543210", "conversion": None},
                "LDA2": {"phoneNumber": "9123456789", "conversion": {"state": "in_progress"}},
            }
        }
    )

    assert store.find("leads", "phoneNumber", "9123456789") == [
        {"phoneNumber": "9123456789", "conversion": {"state": "in_progress"}}
    ]
    assert len(store.find_documents("leads", "conversion")) == 1
    assert store.delete("leads", "LDA1") is True
    assert store.delete("leads", "LDA1") is False
    assert store.find("missing", "phoneNumber", "x") == []


def test_increment_returns_updated_document() -> None:
    store = MemoryRecordStore({"admin": {"lastCpId": {"count": 545, "prefix": "B", "label": "CP"}}})

    assert store.increment("admin", "lastCpId", "count")["count"] == 546
    assert store.increment("admin", "lastCpId", "count", 4)["count"] == 550


def test_snapshot_round_trip(tmp_path) -> None:
    path = tmp_path / "state" / "crm.json"
    store = MemoryRecordStore.from_snapshot(path)
    store.set("admin", "lastLeadId", {"count": 3, "prefix": "A", "label": "LD"})

    store.save_snapshot(path)

    assert json.loads(path.read_text(encoding="utf-8"))["admin"]["lastLeadId"]["count"] == 3
    assert MemoryRecordStore.from_snapshot(path).collection("admin") == {
        "lastLeadId": {"count": 3, "prefix": "A", "label": "LD"}
    }


def test_corrupt_snapshot_raises_store_error(tmp_path) -> None:
    path = tmp_path / "crm.json"
    path.write_text("{broken", encoding="utf-8")

    with pytest.raises(StoreError, match="Could not read snapshot"):
        MemoryRecordStore.from_snapshot(path)
