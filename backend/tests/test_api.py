"""
End-to-end HTTP tests over the FastAPI app with in-memory backends.
"""

import json
import os

import pytest

from app import deps
from app.config import get_settings
from app.main import app
from conftest import FakeGateway

PDF = b"%PDF-1.4\n%fake\n"
MiB = 1024 * 1024


def _upload(api, headers, files, service_id=1, notes=None):
    data = {"service_id": str(service_id)}
    if notes is not None:
        data["notes"] = notes
    return api.post("/api/orders", data=data, files=files, headers=headers)


def _pdf(name="proof.pdf", data=PDF):
    return ("documents", (name, data, "application/pdf"))


@pytest.fixture
def place_order(api, auth_headers, customer):
    def _place(principal=None, service_id=1):
        resp = _upload(api, auth_headers(principal or customer), [_pdf()], service_id=service_id)
        assert resp.status_code == 201, resp.text
        return resp.json()

    return _place


@pytest.fixture
def fresh_settings(monkeypatch):
    """Rebuild cached settings after env changes made inside the test."""
    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


# ============================================================================
# Auth and catalog
# ============================================================================


class TestAuth:

    def test_register_login_me(self, api):
        resp = api.post("/api/auth/register", json={
            "username": "carol", "password": "pa55word", "name": "Carol", "email": "carol@example.com",
        })
        assert resp.status_code == 201
        assert resp.json()["role"] == "user"
        assert "password_hash" not in resp.json()

        resp = api.post("/api/auth/login", data={"username": "carol", "password": "pa55word"})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        me = api.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["username"] == "carol"

    def test_duplicate_username(self, api, customer):
        resp = api.post("/api/auth/register", json={
            "username": "ALICE", "password": "pa55word", "name": "A", "email": "new@example.com",
        })
        assert resp.status_code == 409
        assert resp.json()["error"] == "conflict"

    def test_bad_login(self, api, customer):
        resp = api.post("/api/auth/login", data={"username": "alice", "password": "nope"})
        assert resp.status_code == 401

    def test_requires_token(self, api):
        assert api.get("/api/orders").status_code == 401
        assert api.get("/api/orders", headers={"Authorization": "Bearer junk"}).status_code == 401


class TestCatalog:

    def test_list_and_get(self, api):
        services = api.get("/api/services").json()
        assert len(services) == 8
        assert api.get("/api/services/5").json()["name"] == "Passport"
        assert api.get("/api/services/999").status_code == 404

    def test_category(self, api):
        names = [s["name"] for s in api.get("/api/services/category/Identity").json()]
        assert names == ["Aadhaar Card", "PAN Card"]

    def test_config_and_health(self, api):
        limits = api.get("/api/config").json()
        assert limits["maxFiles"] == 5
        assert limits["maxSizeMb"] == 5
        assert "application/pdf" in limits["acceptedMime"]
        assert api.get("/api/healthz").json()["status"] == "ok"


# ============================================================================
# Orders
# ============================================================================


class TestCreateOrder:

    def test_creates_pending_order(self, api, auth_headers, customer, settings):
        resp = _upload(api, auth_headers(customer), [_pdf()], notes="urgent")
        assert resp.status_code == 201
        body = resp.json()
        assert body["status"] == "pending"
        assert body["payment_status"] == "pending"
        assert body["total_amount"] == 500
        assert body["user_id"] == customer.id
        assert body["notes"] == "urgent"
        assert [d["originalname"] for d in body["documents"]] == ["proof.pdf"]
        assert os.listdir(settings.UPLOAD_DIR) == [body["documents"][0]["filename"]]

    def test_oversize_upload(self, api, auth_headers, customer, order_repo, settings):
        resp = _upload(api, auth_headers(customer), [_pdf("big.pdf", b"x" * (6 * MiB))])
        assert resp.status_code == 413
        assert "big.pdf" in resp.json()["message"]
        assert order_repo.list_all() == []
        assert not os.path.exists(settings.UPLOAD_DIR) or os.listdir(settings.UPLOAD_DIR) == []

    def test_wrong_type(self, api, auth_headers, customer, order_repo):
        files = [("documents", ("notes.txt", b"hello", "text/plain"))]
        resp = _upload(api, auth_headers(customer), files)
        assert resp.status_code == 400
        assert "text/plain" in resp.json()["message"]
        assert order_repo.list_all() == []

    def test_one_bad_file_rejects_batch(self, api, auth_headers, customer, order_repo, settings):
        files = [_pdf(), ("documents", ("notes.txt", b"hello", "text/plain"))]
        assert _upload(api, auth_headers(customer), files).status_code == 400
        assert order_repo.list_all() == []
        assert not os.path.exists(settings.UPLOAD_DIR) or os.listdir(settings.UPLOAD_DIR) == []

    def test_too_many_files(self, api, auth_headers, customer):
        files = [_pdf(f"{i}.pdf") for i in range(6)]
        assert _upload(api, auth_headers(customer), files).status_code == 400

    def test_unknown_service(self, api, auth_headers, customer, order_repo):
        resp = _upload(api, auth_headers(customer), [_pdf()], service_id=42)
        assert resp.status_code == 404
        assert order_repo.list_all() == []

    def test_missing_documents(self, api, auth_headers, customer):
        resp = api.post("/api/orders", data={"service_id": "1"}, headers=auth_headers(customer))
        assert resp.status_code == 400


class TestReadOrders:

    def test_owner_and_admin_can_read(self, api, auth_headers, place_order, customer, admin):
        order = place_order()
        for who in (customer, admin):
            resp = api.get(f"/api/orders/{order['id']}", headers=auth_headers(who))
            assert resp.status_code == 200

    def test_other_user_forbidden(self, api, auth_headers, place_order, other_customer):
        order = place_order()
        resp = api.get(f"/api/orders/{order['id']}", headers=auth_headers(other_customer))
        assert resp.status_code == 403

    def test_unknown_order(self, api, auth_headers, customer):
        assert api.get("/api/orders/999", headers=auth_headers(customer)).status_code == 404

    def test_list_only_own(self, api, auth_headers, place_order, customer, other_customer):
        mine = place_order()
        place_order(other_customer)
        listed = api.get("/api/orders", headers=auth_headers(customer)).json()
        assert [o["id"] for o in listed] == [mine["id"]]


# ============================================================================
# Admin
# ============================================================================


class TestAdmin:

    def test_list_all_requires_admin(self, api, auth_headers, place_order, customer, other_customer, admin):
        place_order()
        place_order(other_customer)
        assert api.get("/api/admin/orders", headers=auth_headers(customer)).status_code == 403
        assert len(api.get("/api/admin/orders", headers=auth_headers(admin)).json()) == 2

    def test_status_flow(self, api, auth_headers, place_order, admin):
        order = place_order()
        url = f"/api/admin/orders/{order['id']}/status"
        resp = api.patch(url, json={"status": "processing"}, headers=auth_headers(admin))
        assert resp.status_code == 200
        assert resp.json()["status"] == "processing"

        resp = api.patch(url, json={"status": "pending"}, headers=auth_headers(admin))
        assert resp.status_code == 409
        body = resp.json()
        assert body["error"] == "invalid_transition"
        assert body["current"] == "processing"
        assert body["allowed"] == ["cancelled", "completed"]

    def test_unknown_status_value(self, api, auth_headers, place_order, admin):
        order = place_order()
        resp = api.patch(
            f"/api/admin/orders/{order['id']}/status", json={"status": "shipped"}, headers=auth_headers(admin)
        )
        assert resp.status_code == 400

    def test_customer_cannot_transition(self, api, auth_headers, place_order, customer):
        order = place_order()
        resp = api.patch(
            f"/api/admin/orders/{order['id']}/status", json={"status": "cancelled"}, headers=auth_headers(customer)
        )
        assert resp.status_code == 403

    def test_manual_payment_override(self, api, auth_headers, place_order, admin):
        order = place_order()
        resp = api.patch(
            f"/api/admin/orders/{order['id']}/payment", json={"status": "completed"}, headers=auth_headers(admin)
        )
        assert resp.status_code == 200
        assert resp.json()["payment_status"] == "completed"


# ============================================================================
# Payments
# ============================================================================


class TestPayNow:

    def test_pay_then_pay_again(self, api, auth_headers, place_order, customer, gateway):
        order = place_order()
        resp = api.post("/api/payment/process", json={"orderId": order["id"]}, headers=auth_headers(customer))
        assert resp.status_code == 200
        assert resp.json()["paymentStatus"] == "completed"
        assert resp.json()["reference"] == "ref_1"

        resp = api.post("/api/payment/process", json={"orderId": order["id"]}, headers=auth_headers(customer))
        assert resp.status_code == 409
        assert resp.json()["error"] == "already_paid"
        assert len(gateway.calls) == 1

    def test_declined(self, api, auth_headers, place_order, customer):
        order = place_order()
        app.dependency_overrides[deps.get_payment_gateway] = lambda: FakeGateway(approved=False)
        resp = api.post("/api/payment/process", json={"orderId": order["id"]}, headers=auth_headers(customer))
        assert resp.status_code == 402
        assert resp.json()["error"] == "payment_declined"
        stored = api.get(f"/api/orders/{order['id']}", headers=auth_headers(customer)).json()
        assert stored["payment_status"] == "pending"

    def test_not_owner(self, api, auth_headers, place_order, other_customer, gateway):
        order = place_order()
        resp = api.post("/api/payment/process", json={"orderId": order["id"]}, headers=auth_headers(other_customer))
        assert resp.status_code == 403
        assert gateway.calls == []


class TestWebhook:

    def test_emulation_mode_accepts_unsigned(self, api, place_order, fresh_settings):
        fresh_settings.delenv("PAYMENT_WEBHOOK_SECRET", raising=False)
        fresh_settings.delenv("PAYMENT_GATEWAY_URL", raising=False)
        fresh_settings.setenv("PAYMENT_GATEWAY_EMULATE", "true")
        order = place_order()
        resp = api.post("/api/payment/webhook", json={"orderId": order["id"], "status": "succeeded"})
        assert resp.status_code == 200
        assert resp.json()["changed"] is True

    def test_rejected_without_secret_outside_emulation(self, api, place_order, fresh_settings):
        fresh_settings.delenv("PAYMENT_WEBHOOK_SECRET", raising=False)
        fresh_settings.setenv("PAYMENT_GATEWAY_EMULATE", "false")
        order = place_order()
        resp = api.post("/api/payment/webhook", json={"orderId": order["id"], "status": "succeeded"})
        assert resp.status_code == 503

    def test_gateway_url_disables_emulation_by_default(self, api, place_order, fresh_settings):
        fresh_settings.setenv("PAYMENT_GATEWAY_URL", "https://pay.example.test/v1/charges")
        fresh_settings.delenv("PAYMENT_GATEWAY_EMULATE", raising=False)
        fresh_settings.delenv("PAYMENT_WEBHOOK_SECRET", raising=False)
        settings = get_settings()
        assert settings.PAYMENT_GATEWAY_EMULATE is False

        order = place_order()
        resp = api.post("/api/payment/webhook", json={"orderId": order["id"], "status": "succeeded"})
        assert resp.status_code == 503
        assert api.get("/api/healthz").json()["paymentsEmulated"] is False

    def test_signed_webhook(self, api, auth_headers, place_order, customer, fresh_settings):
        fresh_settings.setenv("PAYMENT_WEBHOOK_SECRET", "whsec")
        order = place_order()
        body = json.dumps({"orderId": order["id"], "status": "succeeded", "reference": "gw_1"}).encode()
        headers = {"Content-Type": "application/json"}

        assert api.post("/api/payment/webhook", content=body, headers=headers).status_code == 401
        bad = {**headers, "X-Signature": "0" * 64}
        assert api.post("/api/payment/webhook", content=body, headers=bad).status_code == 401

        good = {**headers, "X-Signature": "sha256=" + deps.sign_webhook_body(body, "whsec")}
        first = api.post("/api/payment/webhook", content=body, headers=good)
        second = api.post("/api/payment/webhook", content=body, headers=good)
        assert first.json()["changed"] is True
        assert second.json()["changed"] is False

        stored = api.get(f"/api/orders/{order['id']}", headers=auth_headers(customer)).json()
        assert stored["payment_status"] == "completed"
        assert stored["payment_reference"] == "gw_1"

    def test_unknown_order(self, api, fresh_settings):
        fresh_settings.delenv("PAYMENT_WEBHOOK_SECRET", raising=False)
        fresh_settings.delenv("PAYMENT_GATEWAY_URL", raising=False)
        fresh_settings.setenv("PAYMENT_GATEWAY_EMULATE", "true")
        resp = api.post("/api/payment/webhook", json={"orderId": 999, "status": "succeeded"})
        assert resp.status_code == 404
