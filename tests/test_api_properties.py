"""
Tests for the REST API.

The app runs in-process through ``fastapi.testclient.TestClient`` with the
oracle served by ``httpx.MockTransport``.
"""

import asyncio
from io import StringIO
from typing import Optional

import httpx
import pytest
from fastapi.testclient import TestClient
from hypothesis import given, settings, HealthCheck
from hypothesis import strategies as st

from nawala_checker import __version__
from nawala_checker.api import create_app
from nawala_checker.audit_logger import AuditLogger
from nawala_checker.config import OracleConfig, PersistenceConfig, SystemConfig
from nawala_checker.models import Summary
from nawala_checker.service import Services, build_services


def make_services(
    blocked: frozenset = frozenset(),
    status_code: int = 200,
    seen: Optional[list] = None,
) -> Services:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        names = request.url.params["domains"].split(",")
        return httpx.Response(status_code, json={n: {"blocked": n in blocked} for n in names})

    config = SystemConfig(
        oracle=OracleConfig(base_url="https://oracle.test"),
        persistence=PersistenceConfig(state_file_path=None, hmac_secret="test-secret"),
    )
    return build_services(
        config,
        logger=AuditLogger(output_stream=StringIO()),
        oracle_transport=httpx.MockTransport(handler),
    )


@pytest.fixture
def client():
    with TestClient(create_app(make_services(blocked=frozenset({"blocked.com"})))) as c:
        yield c


class TestEnvelope:

    def test_index_lists_endpoints(self, client: TestClient) -> None:
        body = client.get("/").json()
        assert body["success"] is True
        assert "timestamp" in body
        assert body["data"]["version"] == __version__
        assert "POST /check" in body["data"]["endpoints"]["Domain Checking"]

    def test_health(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["status"] == "OK"
        assert "timestamp" in body

    def test_unknown_route(self, client: TestClient) -> None:
        response = client.get("/nope")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Endpoint not found"
        assert "timestamp" in body

    def test_malformed_body(self, client: TestClient) -> None:
        response = client.post("/check", json={"domains": "example.com"})
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request")


class TestDomainEndpoints:

    def test_add_get_toggle_delete(self, client: TestClient) -> None:
        created = client.post(
            "/domains",
            json={"name": "Example.COM", "description": "shop", "checkFrequency": "daily"},
        )
        assert created.status_code == 201
        data = created.json()["data"]
        assert data["name"] == "example.com"
        assert data["checkFrequency"] == "daily"
        assert data["isActive"] is True

        assert client.get("/domains/example.com").json()["data"]["description"] == "shop"

        toggled = client.patch("/domains/example.com/toggle")
        assert toggled.json()["data"]["isActive"] is False
        assert client.get("/domains", params={"active": "true"}).json()["count"] == 0
        assert client.get("/domains").json()["count"] == 1

        deleted = client.delete("/domains/example.com")
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Domain deleted successfully"
        assert client.get("/domains/example.com").status_code == 404

    def test_duplicate_rejected(self, client: TestClient) -> None:
        client.post("/domains", json={"name": "example.com"})
        response = client.post("/domains", json={"name": "EXAMPLE.com"})
        assert response.status_code == 400
        assert response.json()["code"] == "duplicate_domain"

    @pytest.mark.parametrize("body,code", [
        ({"name": "not a domain"}, "invalid_format"),
        ({"name": "example.com", "checkFrequency": "monthly"}, "invalid_frequency"),
        ({}, "invalid_request"),
    ])
    def test_bad_input_rejected(self, client: TestClient, body: dict, code: str) -> None:
        response = client.post("/domains", json=body)
        assert response.status_code == 400
        assert response.json()["code"] == code

    def test_missing_domain_is_404(self, client: TestClient) -> None:
        for response in (
            client.get("/domains/missing.com"),
            client.patch("/domains/missing.com/toggle"),
            client.delete("/domains/missing.com"),
        ):
            assert response.status_code == 404
            assert response.json() == {
                "success": False,
                "error": "Domain not found",
                "code": "not_found",
                "timestamp": response.json()["timestamp"],
            }

    def test_stats_is_not_a_domain_name(self, client: TestClient) -> None:
        client.post("/domains", json={"name": "a.com"})
        response = client.get("/domains/stats")
        assert response.status_code == 200
        assert response.json()["data"]["totalDomains"] == 1

    def test_history_after_check(self, client: TestClient) -> None:
        client.post("/domains", json={"name": "blocked.com"})
        client.get("/check/blocked.com")
        history = client.get("/domains/BLOCKED.com/history").json()
        assert history["count"] == 1
        assert history["data"][0]["blocked"] is True
        assert client.get("/domains/unknown.com/history").json()["data"] == []


class TestCheckEndpoints:

    def test_single_check(self, client: TestClient) -> None:
        body = client.get("/check/blocked.com").json()
        assert body["success"] is True
        assert body["data"]["domain"] == "blocked.com"
        assert body["data"]["blocked"] is True

    def test_single_check_invalid(self, client: TestClient) -> None:
        response = client.get("/check/localhost")
        assert response.status_code == 400
        assert response.json()["code"] == "invalid_format"

    def test_batch_check_and_results(self, client: TestClient) -> None:
        response = client.post("/check", json={"domains": ["blocked.com", "ok.com"]})
        assert response.status_code == 200
        summary = response.json()["data"]["summary"]
        assert summary["blockedDomains"] == ["blocked.com"]
        assert summary["unblockedDomains"] == ["ok.com"]

        results = client.get("/results").json()["data"]
        assert results["blocked.com"]["blocked"] is True
        assert results["ok.com"]["blocked"] is False

    def test_empty_batch(self, client: TestClient) -> None:
        response = client.post("/check", json={"domains": []})
        assert response.status_code == 400

    def test_oracle_failure_is_500(self) -> None:
        with TestClient(create_app(make_services(status_code=503))) as c:
            single = c.get("/check/example.com")
            batch = c.post("/check", json={"domains": ["example.com"]})
        for response in (single, batch):
            assert response.status_code == 500
            assert response.json()["code"] == "oracle_request_failed"

    @given(count=st.integers(min_value=9, max_value=12))
    @settings(max_examples=8, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_batch_limit_boundary(self, count: int) -> None:
        """*For any* batch above ten names, 400 and no oracle request."""
        seen: list = []
        names = [f"d{i}.com" for i in range(count)]
        with TestClient(create_app(make_services(seen=seen))) as c:
            response = c.post("/check", json={"domains": names})

        if count <= 10:
            assert response.status_code == 200
            assert len(seen) == 1
        else:
            assert response.status_code == 400
            assert response.json()["code"] == "batch_too_large"
            assert seen == []


class TestReports:

    def test_reports_newest_first(self) -> None:
        services = make_services()

        async def seed() -> None:
            for hour in (10, 11, 12):
                await services.history.save_periodic_report(
                    f"2026-10-19T{hour}:00:00+00:00",
                    1,
                    Summary.from_partition([], ["a.com"]),
                )

        asyncio.run(seed())
        with TestClient(create_app(services)) as c:
            body = c.get("/reports", params={"limit": 2}).json()
            assert c.get("/reports", params={"limit": 0}).status_code == 400

        assert body["count"] == 2
        assert [r["timestamp"][11:13] for r in body["data"]] == ["12", "11"]
