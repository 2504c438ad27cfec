"""Tests for the persisted mirror log."""

import json
import sqlite3

import pytest

from deception_mirror import database
from deception_mirror.contracts import validate_analysis
from deception_mirror.errors import LogStoreError
from deception_mirror.mirror_log import STORAGE_KEY, MirrorLog, dump_entries, load_entries
from deception_mirror.models import AnalysisResult, LogEntry, Vertical


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "history.db")


@pytest.fixture
def entry_data(analysis_payload):
    def _make(claim="Buying options is always safer than stocks"):
        return {
            "claim": claim,
            "verticals": [Vertical.FINANCE, Vertical.FAMOUS_PERSONAS],
            "result": AnalysisResult(
                deception_analysis=validate_analysis(analysis_payload).value,
                debate="Advocate: yes\nSkeptic: no",
            ),
        }
    return _make


class TestMirrorLog:

    def test_starts_empty(self, db_path):
        log = MirrorLog(db_path)
        assert log.entries == []
        assert len(log) == 0

    def test_add_generates_id_and_timestamp(self, db_path, entry_data):
        log = MirrorLog(db_path)
        entry = log.add(entry_data())

        assert entry.id
        assert entry.timestamp > 1_600_000_000_000  # epoch ms
        assert log.entries == [entry]

    def test_newest_first_and_unique_ids(self, db_path, entry_data):
        log = MirrorLog(db_path)
        first = log.add(entry_data("first"))
        second = log.add(entry_data("second"))

        assert [e.claim for e in log.entries] == ["second", "first"]
        assert first.id != second.id

    def test_persists_across_instances(self, db_path, entry_data):
        entry = MirrorLog(db_path).add(entry_data())
        reloaded = MirrorLog(db_path)
        assert reloaded.entries == [entry]

    def test_delete(self, db_path, entry_data):
        log = MirrorLog(db_path)
        keep = log.add(entry_data("keep"))
        drop = log.add(entry_data("drop"))

        log.delete(drop.id)

        assert log.entries == [keep]
        assert MirrorLog(db_path).entries == [keep]

    def test_delete_unknown_id_is_noop(self, db_path, entry_data):
        log = MirrorLog(db_path)
        entry = log.add(entry_data())
        log.delete("no-such-id")
        assert log.entries == [entry]

    def test_clear(self, db_path, entry_data):
        log = MirrorLog(db_path)
        log.add(entry_data())
        log.add(entry_data())

        log.clear()

        assert log.entries == []
        assert MirrorLog(db_path).entries == []

    def test_snapshot_is_one_json_array_under_fixed_key(self, db_path, entry_data):
        log = MirrorLog(db_path)
        log.add(entry_data())

        stored = json.loads(database.read_value(STORAGE_KEY, db_path))
        assert isinstance(stored, list)
        assert set(stored[0]) == {"id", "claim", "verticals", "result", "timestamp"}
        assert stored[0]["verticals"] == ["Finance", "Famous Personas"]
        assert set(stored[0]["result"]) == {"deceptionAnalysis", "debate"}
        assert stored[0]["result"]["deceptionAnalysis"]["diagnosis"][0]["riskScore"] == 0.8

    def test_export_matches_stored_array(self, db_path, entry_data):
        log = MirrorLog(db_path)
        log.add(entry_data())

        exported = json.loads(log.export_json())
        assert exported == json.loads(database.read_value(STORAGE_KEY, db_path))

    def test_search_by_claim(self, db_path, entry_data):
        log = MirrorLog(db_path)
        log.add(entry_data("Options are safer"))
        log.add(entry_data("I can skip leg day"))

        assert [e.claim for e in log.search("OPTIONS")] == ["Options are safer"]
        assert len(log.search("  ")) == 2

    def test_corrupt_snapshot_loads_empty(self, db_path):
        database.init_db(db_path)
        database.write_value(STORAGE_KEY, "{not json", db_path)

        assert MirrorLog(db_path).entries == []

    def test_storage_failure_raises(self, db_path, entry_data, monkeypatch):
        log = MirrorLog(db_path)

        def broken_write(*args, **kwargs):
            raise sqlite3.OperationalError("database or disk is full")

        monkeypatch.setattr(database, "write_value", broken_write)
        with pytest.raises(LogStoreError):
            log.add(entry_data())
        assert log.entries == []


def test_entry_round_trip(entry_data):
    entry = LogEntry(id="2025-01-01T00:00:00abc", timestamp=1735689600000, **entry_data())
    assert load_entries(dump_entries([entry])) == [entry]
