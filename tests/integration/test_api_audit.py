"""Integration tests for GET /admin/logs."""
from datetime import datetime, timedelta

import pytest

from regdesk.models.audit import AuditEntry


@pytest.fixture
def audit_entries(app):
    base = datetime(2025, 2, 1, 9, 0)
    rows = [
        ("create_user", "users", "admin@example.com"),
        ("update_payment", "payments", "admin@example.com"),
        ("update_payment", "payments", "second@example.com"),
        ("update_resolution_status", "due_payments", "admin@example.com"),
    ]
    for minutes, (action, collection, user_id) in enumerate(rows):
        app.state.audit.record(AuditEntry(
            action=action,
            collection=collection,
            record_id=f"r{minutes}",
            user_id=user_id,
            user_email=user_id,
            timestamp=base + timedelta(minutes=minutes),
        ))


class TestAuditLogs:
    def test_limit_returns_newest_first(self, client, admin_headers, audit_entries):
        resp = client.get("/admin/logs", params={"limit": 2}, headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert [e["record_id"] for e in body["data"]] == ["r3", "r2"]

    def test_filters(self, client, admin_headers, audit_entries):
        resp = client.get(
            "/admin/logs",
            params={"action": "update_payment", "userId": "second@example.com"},
            headers=admin_headers,
        )
        data = resp.json()["data"]
        assert len(data) == 1
        assert data[0]["record_id"] == "r2"

    def test_collection_filter(self, client, admin_headers, audit_entries):
        resp = client.get("/admin/logs", params={"collection": "users"}, headers=admin_headers)
        assert [e["action"] for e in resp.json()["data"]] == ["create_user"]

    def test_limit_out_of_range_is_400(self, client, admin_headers):
        resp = client.get("/admin/logs", params={"limit": 0}, headers=admin_headers)
        assert resp.status_code == 400

    def test_requires_admin(self, client):
        assert client.get("/admin/logs").status_code == 401
