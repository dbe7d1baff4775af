"""Integration tests for /admin user, form and payment routes."""
import asyncio
from unittest.mock import call, patch

from fastapi.testclient import TestClient
from sqlmodel import Session

from regdesk.audit.recorder import AuditRecorder
from regdesk.models.records import User


class TestAuth:
    def test_missing_identity_is_401(self, client):
        resp = client.get("/admin/users")
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Unauthorized"}

    def test_non_admin_is_401(self, client):
        resp = client.get("/admin/users", headers={"X-Auth-Request-Email": "student@example.edu"})
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_allow_list_is_case_insensitive(self, client):
        resp = client.get("/admin/users", headers={"X-Auth-Request-Email": "Second@Example.com"})
        assert resp.status_code == 200


class TestReads:
    def test_list_users(self, client, admin_headers, seeded_records):
        resp = client.get("/admin/users", headers=admin_headers)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["count"] == 1
        assert body["data"][0]["email"] == "asha@example.edu"

    def test_get_missing_form_is_404(self, client, admin_headers):
        resp = client.get("/admin/forms/nope", headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Form not found"}


class TestCreate:
    def test_create_payment_notifies_and_audits(self, client, app, admin_headers, seeded_records):
        resp = client.post(
            "/admin/payments",
            json={"owner_id": seeded_records["user"].id, "amount_in_numbers": "500", "transaction_id": "T9"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        payment_id = resp.json()["data"]["id"]
        app.state.notifier.notify.assert_called_once_with("payments", payment_id, "insert")

        entries = app.state.audit.query(action="create_payment")
        assert len(entries) == 1
        assert entries[0].record_id == payment_id
        assert entries[0].user_email == "admin@example.com"

    def test_duplicate_user_email_is_400(self, client, app, admin_headers, seeded_records):
        resp = client.post("/admin/users", json={"email": "asha@example.edu"}, headers=admin_headers)
        assert resp.status_code == 400
        app.state.notifier.notify.assert_not_called()

    def test_missing_required_field_is_400(self, client, admin_headers):
        resp = client.post("/admin/forms", json={"status": "draft"}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Invalid request body"}


class TestUpdatePayment:
    def test_verify_updates_owner_and_syncs_both(self, client, app, engine, admin_headers, seeded_records):
        payment = seeded_records["payment"]
        user = seeded_records["user"]

        resp = client.patch(f"/admin/payments/{payment.id}", json={"status": "verified"}, headers=admin_headers)

        assert resp.status_code == 200
        body = resp.json()
        assert body["data"]["registration_status"] == "Confirmed"
        assert body["changes"]["status"] == {"before": "pending", "after": "verified"}

        with Session(engine) as s:
            assert s.get(User, user.id).payment_done is True

        assert app.state.notifier.notify.call_args_list == [
            call("payments", payment.id, "update"),
            call("users", user.id, "update"),
        ]

        entry = app.state.audit.query(action="update_payment")[0]
        assert entry.collection == "payments"
        assert entry.changes["status"]["after"] == "verified"

    def test_audit_failure_does_not_fail_write(self, client, admin_headers, seeded_records):
        payment = seeded_records["payment"]
        with patch.object(AuditRecorder, "_insert", side_effect=RuntimeError("audit store down")):
            resp = client.patch(
                f"/admin/payments/{payment.id}", json={"transaction_id": "TXN555"}, headers=admin_headers
            )
        assert resp.status_code == 200
        assert resp.json()["data"]["transaction_id"] == "TXN555"

    def test_invalid_status_is_400(self, client, app, admin_headers, seeded_records):
        resp = client.patch(
            f"/admin/payments/{seeded_records['payment'].id}", json={"status": "paid"}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid payment status"
        app.state.notifier.notify.assert_not_called()

    def test_missing_payment_is_404(self, client, admin_headers):
        resp = client.patch("/admin/payments/missing", json={"status": "verified"}, headers=admin_headers)
        assert resp.status_code == 404


class TestUpdateForm:
    def test_null_title_is_400(self, client, app, admin_headers, seeded_records):
        resp = client.patch(
            f"/admin/forms/{seeded_records['form'].id}", json={"title": None}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "title cannot be null"}
        app.state.notifier.notify.assert_not_called()

    def test_null_players_is_400(self, client, admin_headers, seeded_records):
        resp = client.patch(
            f"/admin/forms/{seeded_records['form'].id}", json={"players": None}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_notify_runs_on_event_loop(self, client, app, admin_headers, seeded_records):
        """Sync routes hand notification to the loop so the delivery task can be spawned."""
        loops = []
        app.state.notifier.notify.side_effect = lambda *args: loops.append(asyncio.get_running_loop())

        resp = client.patch(
            f"/admin/forms/{seeded_records['form'].id}", json={"coach_name": "Coach Iyer"}, headers=admin_headers
        )

        assert resp.status_code == 200
        assert len(loops) == 1


class TestUnhandledErrors:
    def test_unexpected_error_is_500_envelope(self, app, admin_headers):
        with patch("regdesk.services.records.list_records", side_effect=RuntimeError("boom")):
            with TestClient(app, raise_server_exceptions=False) as c:
                resp = c.get("/admin/payments", headers=admin_headers)
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "error": "Internal server error"}


class TestHealth:
    def test_health_ok(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["data"] == {"database": True, "sheets_configured": True}
