"""Integration tests for /sync and /logs routes."""
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from calllog.api.deps import get_store, get_sync_service
from calllog.api.main import create_app
from calllog.db.store import CallLogStore
from calllog.models.sync import SyncRun
from calllog.sync.service import CallLogSyncService
from conftest import json_logs


@pytest.fixture(name="fetcher")
def fetcher_fixture():
    fetcher = AsyncMock()
    fetcher.fetch_logs_for_user = AsyncMock(side_effect=lambda username: json_logs())
    return fetcher


@pytest.fixture(name="service")
def service_fixture(engine, fetcher):
    return CallLogSyncService(fetcher=fetcher, store=CallLogStore(engine), sync_delay=0)


@pytest.fixture(name="client")
def client_fixture(engine, service):
    app = create_app()
    app.dependency_overrides[get_store] = lambda: CallLogStore(engine)
    app.dependency_overrides[get_sync_service] = lambda: service
    with patch("calllog.api.main.get_engine", return_value=engine):
        with TestClient(app) as c:
            yield c


class TestSyncRoutes:
    def test_sync_user(self, client, alice):
        resp = client.post("/sync/users/alice")
        assert resp.status_code == 200
        body = resp.json()
        assert body["processed"] == 2
        assert body["errors"] == 0
        assert body["skipped"] is False

    def test_sync_user_twice_skips(self, client, alice):
        client.post("/sync/users/alice")
        body = client.post("/sync/users/alice").json()
        assert body["processed"] == 0
        assert body["skipped"] is True

    def test_sync_unknown_user(self, client):
        body = client.post("/sync/users/ghost").json()
        assert body["errors"] == 1
        assert body["message"] == "User not found"

    def test_sync_all_runs_in_background(self, client, service):
        with patch.object(service, "sync_all", new=AsyncMock()) as sync_all:
            resp = client.post("/sync/all")
        assert resp.status_code == 200
        assert "started" in resp.json()["message"].lower()
        sync_all.assert_awaited_once()

    def test_user_status_missing(self, client, alice):
        assert client.get("/sync/users/alice/status").status_code == 404

    def test_user_status_after_sync(self, client, alice):
        client.post("/sync/users/alice")
        resp = client.get("/sync/users/alice/status")
        assert resp.status_code == 200
        assert resp.json()["total_log_count"] == 2

    def test_latest_run_never_run(self, client):
        resp = client.get("/sync/runs/latest")
        assert resp.status_code == 200
        assert resp.json()["status"] == "never_run"

    def test_latest_run(self, client, engine):
        with Session(engine) as s:
            s.add(SyncRun(
                started_at=datetime(2025, 1, 15, 7, 0),
                finished_at=datetime(2025, 1, 15, 7, 1),
                status="success",
                users_total=4,
                logs_processed=9,
            ))
            s.commit()
        body = client.get("/sync/runs/latest").json()
        assert body["status"] == "success"
        assert body["users_total"] == 4
        assert body["logs_processed"] == 9


class TestLogRoutes:
    def test_user_logs_syncs_then_lists(self, client, alice):
        resp = client.get("/logs/alice")
        assert resp.status_code == 200
        body = resp.json()
        assert body["synced"] is True
        assert body["sync_result"]["processed"] == 2
        assert body["stats"]["total_call_logs"] == 2
        timestamps = [log["timestamp"] for log in body["call_logs"]]
        assert timestamps == sorted(timestamps)

    def test_missing_agent_shown_as_unknown(self, client, alice, fetcher):
        fetcher.fetch_logs_for_user.side_effect = lambda username: [
            {"callSid": "CA1", "userSaid": "hi", "timestamp": "2025-01-15T09:00:00Z"}
        ]
        body = client.get("/logs/alice").json()
        assert body["call_logs"][0]["agent"] == "Unknown"

    def test_user_logs_unknown_user(self, client):
        assert client.get("/logs/ghost").status_code == 404

    def test_user_logs_returned_when_sync_raises(self, client, alice, service):
        with patch.object(service, "sync_user", new=AsyncMock(side_effect=RuntimeError("boom"))):
            resp = client.get("/logs/alice")
        assert resp.status_code == 200
        assert resp.json()["synced"] is False
        assert resp.json()["call_logs"] == []

    def test_merged_logs_debug(self, client, alice):
        resp = client.get("/logs/alice/merged")
        assert resp.status_code == 200
        body = resp.json()
        assert body["debug"] is True
        assert len(body["merged_logs"]) == 2
        # Debug view never writes
        assert client.get("/sync/users/alice/status").status_code == 404
