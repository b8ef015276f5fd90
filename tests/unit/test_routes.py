"""
Tests for the Flask surface (status + webhook routes).
"""
import base64
import hashlib
import hmac
import json

import pytest

from vip_tagger.app import build_services, create_app


def _sign(body: bytes, secret: str = "s3cr3t") -> str:
    return base64.b64encode(hmac.new(secret.encode(), body, hashlib.sha256).digest()).decode()


@pytest.fixture
def app(config, fake_shopify, sync_tasks):
    services = build_services(config, client=fake_shopify)
    app = create_app(config, services=services, tasks=sync_tasks)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def test_status_reports_threshold(client):
    resp = client.get("/")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["ok"] is True
    assert data["threshold"] == "11000"
    assert data["tag"] == "VIP-Customer"


def test_ping(client):
    resp = client.get("/ping")
    assert resp.status_code == 200
    assert resp.get_json()["msg"] == "pong"


@pytest.mark.parametrize("path", ["/webhooks/orders/paid", "/webhooks/orders/create"])
def test_signed_webhook_is_acked_and_tags(client, fake_shopify, path):
    fake_shopify.add_customer(42, orders=[("paid", "15000")])
    body = json.dumps({"id": 1, "financial_status": "paid", "total_price": "15000", "customer": {"id": 42}}).encode()

    resp = client.post(path, data=body, headers={
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": _sign(body),
    })

    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}
    assert "VIP-Customer" in fake_shopify.customers["42"].tags


def test_bad_signature_is_401(client, fake_shopify, sync_tasks):
    fake_shopify.add_customer(42, orders=[("paid", "15000")])
    body = json.dumps({"id": 1, "financial_status": "paid", "total_price": "15000", "customer": {"id": 42}}).encode()

    resp = client.post("/webhooks/orders/paid", data=body, headers={
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": _sign(body + b" "),
    })

    assert resp.status_code == 401
    assert sync_tasks.submitted == []
    assert fake_shopify.set_tags_calls == []


def test_signature_is_checked_against_raw_bytes(client, fake_shopify):
    fake_shopify.add_customer(42, orders=[("paid", "15000")])
    # odd spacing on purpose: a re-serialized body would not match this signature
    body = b'{ "id":1,  "financial_status":"paid","total_price":"15000","customer":{"id":42} }'

    resp = client.post("/webhooks/orders/paid", data=body, headers={
        "Content-Type": "application/json",
        "X-Shopify-Hmac-Sha256": _sign(body),
    })

    assert resp.status_code == 200


def test_get_on_webhook_not_allowed(client):
    assert client.get("/webhooks/orders/paid").status_code == 405
