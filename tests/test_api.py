import sys
from datetime import datetime
from io import BytesIO
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from openpyxl import load_workbook

sys.path.append(str(Path(__file__).resolve().parents[1]))

from kpi_backend.application import get_tracker_service, reset_tracker_state
from kpi_backend.core.clock import FixedClock

WORKSPACE = "team@example.com"


@pytest.fixture(autouse=True)
def reset_state(monkeypatch):
    reset_tracker_state()
    monkeypatch.setattr(get_tracker_service(), "clock", FixedClock(datetime(2025, 3, 14, 10, 0)))
    yield
    reset_tracker_state()


@pytest.fixture()
def client(tmp_path, monkeypatch):
    monkeypatch.setenv("EXPORTS_ROOT", str(tmp_path))
    from kpi_backend.app import create_app

    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


def _start(client, tx_id="T1", **overrides):
    payload = {
        "action": "start",
        "agentName": "Alice",
        "workspaceEmail": WORKSPACE,
        "txId": tx_id,
        "typeOfDoc": "Invoice",
        "startTime": "09:00",
    }
    payload.update(overrides)
    response = client.post("/api/transactions", json=payload)
    assert response.status_code == 200, response.text
    return response.json()["transaction"]


def _end(client, transaction_id, end_time, **extra):
    payload = {
        "action": "end",
        "agentName": "Alice",
        "workspaceEmail": WORKSPACE,
        "transactionId": transaction_id,
        "endTime": end_time,
    }
    payload.update(extra)
    return client.post("/api/transactions", json=payload)


def test_login_binds_workspace_cookie(client):
    response = client.post("/api/login", json={"email": " Team@Example.com "})
    assert response.status_code == 200
    assert response.json()["workspaceEmail"] == WORKSPACE
    assert "kpi_email=" in response.headers["set-cookie"]
    assert "httponly" in response.headers["set-cookie"].lower()

    assert client.post("/api/login", json={}).status_code == 400

    created = client.post("/api/agents", json={"name": "Alice"})
    assert created.status_code == 201
    assert created.json()["agent"]["workspaceEmail"] == WORKSPACE

    listed = client.get("/api/agents").json()["agents"]
    assert [agent["name"] for agent in listed] == ["Alice"]


def test_roster_crud(client):
    response = client.post("/api/agents", json={"name": "Alice", "workspaceEmail": WORKSPACE})
    assert response.status_code == 201
    agent_id = response.json()["agent"]["id"]

    duplicate = client.post("/api/agents", json={"name": "Alice", "workspaceEmail": WORKSPACE})
    assert duplicate.status_code == 409

    assert client.post("/api/agents", json={"name": "  ", "workspaceEmail": WORKSPACE}).status_code == 400
    assert client.get("/api/agents").status_code == 400

    other = client.get("/api/agents", params={"email": "other@example.com"}).json()
    assert other == {"agents": []}

    deleted = client.request("DELETE", "/api/agents", json={"id": agent_id, "workspaceEmail": WORKSPACE})
    assert deleted.status_code == 200
    assert client.request("DELETE", "/api/agents", json={"id": agent_id, "workspaceEmail": WORKSPACE}).status_code == 404

    doc_type = client.post("/api/doctypes", json={"name": "Invoice", "workspaceEmail": WORKSPACE})
    assert doc_type.status_code == 201
    assert client.post("/api/doctypes", json={"name": "Invoice", "workspaceEmail": WORKSPACE}).status_code == 409
    listed = client.get("/api/doctypes", params={"email": WORKSPACE}).json()["docTypes"]
    assert [item["name"] for item in listed] == ["Invoice"]

    removed = client.request("DELETE", "/api/doctypes", json={"id": doc_type.json()["docType"]["id"], "workspaceEmail": WORKSPACE})
    assert removed.json() == {"message": "Deleted"}


def test_transaction_lifecycle(client):
    started = client.post(
        "/api/transactions",
        json={
            "action": "start",
            "agentName": "Alice",
            "workspaceEmail": WORKSPACE,
            "txId": "T1",
            "typeOfDoc": "Invoice",
            "startTime": "09:00",
        },
    )
    assert started.json()["message"] == "Transaction #T1 started"
    record = started.json()["transaction"]
    assert record["status"] == "Pending"
    assert record["date"] == "2025-03-14"
    assert record["month"] == "March"
    assert record["endTime"] is None

    active = client.get("/api/transactions/active", params={"name": "alice", "workspaceEmail": WORKSPACE}).json()
    assert active["transaction"]["id"] == record["id"]
    assert active["elapsedMinutes"] == 60
    assert active["elapsed"] == "01:00"

    ended = _end(client, record["id"], "09:45", status="Done")
    assert ended.status_code == 200
    assert ended.json()["message"] == "Done - TAT: 00:45:00"
    assert ended.json()["transaction"]["tatDecimal"] == 0.75
    assert ended.json()["transaction"]["status"] == "Done"

    again = _end(client, record["id"], "10:00")
    assert again.status_code == 400
    assert again.json()["detail"] == "Already ended"

    idle = client.get("/api/transactions/active", params={"name": "Alice", "workspaceEmail": WORKSPACE}).json()
    assert idle == {"transaction": None, "elapsedMinutes": 0, "elapsed": "—"}

    updated = client.post(
        "/api/transactions",
        json={
            "action": "update",
            "agentName": "Alice",
            "workspaceEmail": WORKSPACE,
            "transactionId": record["id"],
            "notes": "rescanned",
            "endTime": "10:15",
        },
    )
    assert updated.json()["message"] == "Updated"
    assert updated.json()["transaction"]["tatMinutes"] == 75
    assert updated.json()["transaction"]["notes"] == "rescanned"

    bad_status = client.post(
        "/api/transactions",
        json={
            "action": "update",
            "agentName": "Alice",
            "workspaceEmail": WORKSPACE,
            "transactionId": record["id"],
            "status": "Archived",
        },
    )
    assert bad_status.status_code == 400

    assert client.request("DELETE", "/api/transactions", json={"id": record["id"], "workspaceEmail": WORKSPACE}).status_code == 200
    assert client.request("DELETE", "/api/transactions", json={"id": record["id"], "workspaceEmail": WORKSPACE}).status_code == 404


def test_post_transaction_rejects_bad_requests(client):
    missing = client.post("/api/transactions", json={"action": "start", "workspaceEmail": WORKSPACE})
    assert missing.status_code == 400

    incomplete = client.post(
        "/api/transactions",
        json={"action": "start", "agentName": "Alice", "workspaceEmail": WORKSPACE, "txId": "T1"},
    )
    assert incomplete.status_code == 400
    assert "typeOfDoc" in incomplete.json()["detail"]

    bad_time = client.post(
        "/api/transactions",
        json={
            "action": "start",
            "agentName": "Alice",
            "workspaceEmail": WORKSPACE,
            "txId": "T1",
            "typeOfDoc": "Invoice",
            "startTime": "25:00",
        },
    )
    assert bad_time.status_code == 400

    unknown = client.post("/api/transactions", json={"action": "pause", "agentName": "Alice", "workspaceEmail": WORKSPACE})
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Invalid action"

    not_found = _end(client, "rec-999999", "10:00")
    assert not_found.status_code == 404


def test_transactions_are_invisible_to_other_workspaces(client):
    record = _start(client, "T1", workspaceEmail="one@example.com")

    hijack = client.post(
        "/api/transactions",
        json={
            "action": "update",
            "agentName": "Alice",
            "workspaceEmail": "two@example.com",
            "transactionId": record["id"],
            "notes": "changed",
        },
    )
    assert hijack.status_code == 404

    client.post("/api/login", json={"email": "two@example.com"})
    ended = client.post(
        "/api/transactions",
        json={"action": "end", "agentName": "Alice", "transactionId": record["id"], "endTime": "10:00"},
    )
    assert ended.status_code == 404
    assert client.request("DELETE", "/api/transactions", json={"id": record["id"]}).status_code == 404

    agent = client.post("/api/agents", json={"name": "Alice", "workspaceEmail": "one@example.com"}).json()["agent"]
    assert client.request("DELETE", "/api/agents", json={"id": agent["id"]}).status_code == 404

    stored = client.get("/api/transactions", params={"workspaceEmail": "one@example.com"}).json()["records"][0]
    assert stored["notes"] == ""
    assert stored["endTime"] is None


def test_list_transactions_filters_and_pages(client):
    _start(client, "T1", date="2025-03-12")
    _start(client, "T2", date="2025-03-13")
    _start(client, "T3", agentName="Bruno", startTime="08:30")

    everything = client.get("/api/transactions", params={"workspaceEmail": WORKSPACE}).json()
    assert everything["total"] == 3
    assert [record["txId"] for record in everything["records"]] == ["T3", "T2", "T1"]

    by_name = client.get("/api/transactions", params={"workspaceEmail": WORKSPACE, "name": "ALICE"}).json()
    assert {record["txId"] for record in by_name["records"]} == {"T1", "T2"}

    ranged = client.get(
        "/api/transactions",
        params={"workspaceEmail": WORKSPACE, "from": "2025-03-13", "to": "2025-03-14", "date": "2025-03-12"},
    ).json()
    assert {record["txId"] for record in ranged["records"]} == {"T2", "T3"}

    paged = client.get("/api/transactions", params={"workspaceEmail": WORKSPACE, "limit": 2, "page": 2}).json()
    assert paged["totalPages"] == 2
    assert paged["page"] == 2
    assert [record["txId"] for record in paged["records"]] == ["T1"]

    assert client.get("/api/transactions").status_code == 400


def test_analytics_json_and_export(client):
    client.post("/api/agents", json={"name": "Alice", "workspaceEmail": WORKSPACE})
    client.post("/api/agents", json={"name": "Bruno", "workspaceEmail": WORKSPACE})
    first = _start(client, "T1")
    _end(client, first["id"], "09:30", status="Done")
    _start(client, "T2", startTime="09:40")

    params = {"workspaceEmail": WORKSPACE, "from": "2025-03-01", "to": "2025-03-14"}
    body = client.get("/api/analytics", params=params).json()
    assert body["from"] == "2025-03-01"
    assert body["to"] == "2025-03-14"
    alice = body["perAgent"][0]
    assert alice["name"] == "Alice"
    assert alice["totalTx"] == 2
    assert alice["ahtMinutes"] == 30
    assert alice["completionRate"] == 50
    assert body["perAgent"][1] == {
        "name": "Bruno",
        "totalTx": 0,
        "done": 0,
        "pending": 0,
        "noDoc": 0,
        "totalMinutes": 0,
        "ahtMinutes": 0,
        "completionRate": 0,
    }
    assert body["perDocType"] == [{"name": "Invoice", "count": 1, "avgTat": 30}]
    assert body["totals"]["completionRate"] == 50

    inverted = client.get("/api/analytics", params={"workspaceEmail": WORKSPACE, "from": "2025-03-14", "to": "2025-03-01"})
    assert inverted.status_code == 400

    export = client.get("/api/analytics/export", params=params)
    assert export.status_code == 200
    workbook = load_workbook(BytesIO(export.content))
    assert workbook.sheetnames == ["Summary", "Agent Stats", "Doc Types", "Daily Trends"]
    assert workbook["Agent Stats"]["A5"].value == "Alice"


def test_eod_summary_and_export(client):
    client.post("/api/agents", json={"name": "Alice", "workspaceEmail": WORKSPACE})
    first = _start(client, "T1")
    _end(client, first["id"], "09:20", status="No Doc")
    _start(client, "T2", date="2025-03-13")

    items = client.get("/api/eod", params={"workspaceEmail": WORKSPACE}).json()["items"]
    assert len(items) == 1
    assert items[0]["name"] == "Alice"
    assert items[0]["noDoc"] == 1
    assert items[0]["totalTransactions"] == 1
    assert items[0]["totalHandlingMinutes"] == 20
    assert items[0]["transactions"][0]["txId"] == "T1"

    export = client.get("/api/eod/export", params={"workspaceEmail": WORKSPACE, "date": "2025-03-14"})
    assert export.status_code == 200
    workbook = load_workbook(BytesIO(export.content))
    assert workbook.sheetnames == ["Summary", "Alice"]
    assert workbook["Summary"]["A1"].value == "Agent Daily Production Report"
