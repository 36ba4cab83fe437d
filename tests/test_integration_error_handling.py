"""Integration tests: RFC 7807 responses and request correlation."""

from __future__ import annotations

import logging
from uuid import UUID, uuid4

import pytest
from conftest import bearer, register


@pytest.mark.integration
class TestProblemDetails:
    def test_request_validation_error(self, client) -> None:
        token = register(client, "eve@example.com")["access_token"]
        resp = client.post("/orders", json={"items": "nope"}, headers=bearer(token))
        assert resp.status_code == 422
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["error_code"] == "REQUEST_VALIDATION_ERROR"
        assert body["instance"] == "/orders"
        locations = [error["loc"] for error in body["context"]["errors"]]
        assert ["body", "payment_method"] in locations

    def test_domain_error_shape(self, client) -> None:
        token = register(client, "eve@example.com")["access_token"]
        resp = client.get("/orders/2026-03-0042", headers=bearer(token))
        body = resp.json()
        assert body["status"] == 404
        assert body["type"] == "/errors/not-found"
        assert body["title"] == "Resource Not Found"
        assert body["error_code"] == "ORDER_NOT_FOUND"


@pytest.mark.integration
class TestRequestId:
    def test_generated_when_absent(self, client) -> None:
        resp = client.get("/health")
        UUID(resp.headers["x-request-id"])

    def test_propagated_when_valid(self, client) -> None:
        request_id = str(uuid4())
        resp = client.get("/health", headers={"X-Request-ID": request_id})
        assert resp.headers["x-request-id"] == request_id

    def test_replaced_when_malformed(self, client) -> None:
        resp = client.get("/health", headers={"X-Request-ID": "not-a-uuid"})
        assert resp.headers["x-request-id"] != "not-a-uuid"

    def test_present_on_errors(self, client) -> None:
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert "x-request-id" in resp.headers

    def test_access_log_line(self, client, caplog) -> None:
        token = register(client, "eve@example.com")["access_token"]
        with caplog.at_level(logging.INFO, logger="storefront.infra.fastapi.middleware"):
            client.get("/auth/me", headers=bearer(token))
        completed = [r for r in caplog.records if r.getMessage() == "http_request_completed"]
        assert completed
        record = completed[-1]
        assert record.path == "/auth/me"
        assert record.status_code == 200
        assert record.user_id is not None
