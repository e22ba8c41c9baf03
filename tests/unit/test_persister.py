"""Tests for LogPersister: idempotent writes and per-record failure isolation."""
from unittest.mock import MagicMock

from sqlmodel import Session, select

from calllog.errors import DuplicateLogError
from calllog.hashing import log_hash
from calllog.models.call_log import CallLog
from calllog.models.user import User
from calllog.sync.persister import LogPersister
from conftest import json_logs


def _user() -> User:
    return User(id=1, username="alice")


class TestPersistToStore:
    def test_persists_all_logs(self, store, alice, engine):
        result = LogPersister(store).persist(alice, json_logs())
        assert result.processed == 2
        assert result.errors == 0
        with Session(engine) as s:
            rows = s.exec(select(CallLog)).all()
        assert len(rows) == 2
        assert all(row.user_id == alice.id for row in rows)

    def test_row_fields(self, store, alice, engine):
        logs = json_logs()
        LogPersister(store).persist(alice, logs[:1])
        with Session(engine) as s:
            row = s.exec(select(CallLog)).one()
        assert row.call_sid == logs[0]["callSid"]
        assert row.user_said == logs[0]["userSaid"]
        assert row.intent == "book_appointment"
        assert row.log_hash == log_hash(logs[0])

    def test_already_stored_log_is_not_an_error(self, store, alice, engine):
        logs = json_logs()
        persister = LogPersister(store)
        persister.persist(alice, logs)
        result = persister.persist(alice, logs)
        assert result.processed == 0
        assert result.errors == 0
        with Session(engine) as s:
            assert len(s.exec(select(CallLog)).all()) == 2

    def test_malformed_record_isolated(self, store, alice, engine):
        """One bad record fails alone; the rest of the batch is written."""
        good = json_logs()
        bad = {"callSid": "CA-bad", "timestamp": "not-a-date", "userSaid": "hi"}
        result = LogPersister(store).persist(alice, [good[0], bad, good[1]])
        assert result.processed == 2
        assert result.errors == 1
        with Session(engine) as s:
            sids = [row.call_sid for row in s.exec(select(CallLog)).all()]
        assert "CA-bad" not in sids
        assert len(sids) == 2

    def test_empty_batch(self, store, alice):
        result = LogPersister(store).persist(alice, [])
        assert (result.processed, result.errors) == (0, 0)


class TestWriteFallback:
    def test_duplicate_error_skips_without_upsert(self):
        store = MagicMock()
        store.create_log.side_effect = DuplicateLogError("abc")
        result = LogPersister(store).persist(_user(), json_logs()[:1])
        assert (result.processed, result.errors) == (0, 0)
        store.upsert_log_by_hash.assert_not_called()

    def test_other_create_error_retries_as_upsert(self):
        store = MagicMock()
        store.create_log.side_effect = RuntimeError("database is locked")
        logs = json_logs()[:1]
        result = LogPersister(store).persist(_user(), logs)
        assert (result.processed, result.errors) == (1, 0)
        store.upsert_log_by_hash.assert_called_once()
        fields = store.upsert_log_by_hash.call_args.args[0]
        assert fields["log_hash"] == log_hash(logs[0])

    def test_failed_upsert_counts_error_and_continues(self):
        store = MagicMock()
        store.create_log.side_effect = [RuntimeError("locked"), None]
        store.upsert_log_by_hash.side_effect = RuntimeError("still locked")
        result = LogPersister(store).persist(_user(), json_logs())
        assert (result.processed, result.errors) == (1, 1)
        assert store.create_log.call_count == 2
