"""
Unit tests for the BFF HTTP service.
"""

import pytest
from fastapi.testclient import TestClient

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_bff.app.main import BffService, create_app
from service_bff.app.resources.paths import skill_path, skills_path
from shared.config import ServiceConfig
from shared.test_helpers import FakeUpstream, TestDataFactory

AUTH = {"Authorization": "Bearer console-token"}


class TestBffService:
    """Test cases for BffService."""

    @pytest.fixture
    def upstream(self):
        fake = FakeUpstream()
        fake.set_directory("acct-1", TestDataFactory.directory_payload("acct-1"))
        return fake

    @pytest.fixture
    def config(self):
        return ServiceConfig("bff", 8080, dispatcher_min_interval_ms=0)

    @pytest.fixture
    def client(self, upstream, config):
        """Create test client backed by the fake upstream."""
        app = create_app(config, http_client=upstream.client())
        with TestClient(app) as client:
            yield client

    def test_service_wiring(self, config):
        service = BffService(config)
        assert service.dispatcher.max_concurrent == 5
        assert service.dispatcher.min_interval == 0
        assert service.resolver.ttl_seconds == 3600

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "bff"
        assert data["status"] == "ok"
        assert data["dependencies"]["dispatcher"] == "ok"

    def test_metrics_endpoint(self, client):
        client.get("/api/v1/account/acct-1/domains/msgHist")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "directory_resolutions_total" in response.text

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"

    def test_get_domains(self, client):
        response = client.get("/api/v1/account/acct-1/domains")
        assert response.status_code == 200
        data = response.json()
        assert data["region"] == {"region": "va", "zone": "z1", "geo": "p-us"}
        services = {row["service"]: row["baseURI"] for row in data["endpoints"]}
        assert services["msgHist"] == "va.msghist.liveperson.net"
        assert services["kb"] == "va.bc-kb.liveperson.net"
        assert "kb" in data["derived_services"]

    def test_get_single_domain(self, client, upstream):
        response = client.get("/api/v1/account/acct-1/domains/accountConfigReadOnly")
        assert response.status_code == 200
        assert response.json()["baseURI"] == "va.ac.liveperson.net"

        client.get("/api/v1/account/acct-1/domains/msgHist")
        assert len(upstream.directory_calls("acct-1")) == 1

    def test_unknown_domain_is_bad_gateway(self, client):
        response = client.get("/api/v1/account/acct-1/domains/noSuchService")
        assert response.status_code == 502
        assert response.json()["code"] == "DOMAIN_NOT_FOUND"

    def test_directory_outage_is_bad_gateway(self, client, upstream):
        upstream.directory_status = 503
        response = client.get("/api/v1/account/acct-1/domains/msgHist")
        assert response.status_code == 502
        assert response.json()["code"] == "DOMAIN_RESOLUTION_ERROR"

    def test_invalidate_domains(self, client, upstream):
        client.get("/api/v1/account/acct-1/domains/msgHist")
        response = client.delete("/api/v1/account/acct-1/domains")
        assert response.status_code == 200
        assert response.json()["invalidated"] is True

        client.get("/api/v1/account/acct-1/domains/msgHist")
        assert len(upstream.directory_calls("acct-1")) == 2

    def test_stats_endpoints(self, client):
        client.get("/api/v1/account/acct-1/domains/msgHist")

        dispatcher_stats = client.get("/api/v1/dispatcher/stats").json()
        assert dispatcher_stats["dispatched"] == 1
        assert dispatcher_stats["max_concurrent"] == 5

        cache_stats = client.get("/api/v1/cache/stats").json()
        assert cache_stats["entries"] == 2

    def test_list_skills_returns_revision(self, client, upstream):
        upstream.route("GET", skills_path("acct-1"), json_body=TestDataFactory.create_test_skills(),
                       headers={"ac-revision": "42"})

        response = client.get("/api/v1/account-config/acct-1/skills", headers=AUTH)

        assert response.status_code == 200
        assert response.headers["ac-revision"] == "42"
        body = response.json()
        assert body["revision"] == "42"
        assert body["data"][0]["name"] == "sales"
        call = upstream.resource_calls()[0]
        assert call.headers["authorization"] == "Bearer console-token"

    def test_missing_authorization_is_unauthorized(self, client, upstream):
        response = client.get("/api/v1/account-config/acct-1/skills")
        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_ERROR"
        assert upstream.requests == []

    def test_create_skill(self, client, upstream):
        upstream.route("POST", skills_path("acct-1"), status_code=201, json_body={"id": 3},
                       headers={"ac-revision": "43"})

        response = client.post("/api/v1/account-config/acct-1/skills", json={"name": "billing"}, headers=AUTH)

        assert response.status_code == 201
        assert response.json()["data"] == {"id": 3}
        assert upstream.resource_calls()[0].body == {"name": "billing"}

    def test_update_skill_forwards_if_match(self, client, upstream):
        upstream.route("PUT", skill_path("acct-1", "1"), json_body={"id": 1}, headers={"ac-revision": "44"})

        response = client.put(
            "/api/v1/account-config/acct-1/skills/1",
            json={"name": "sales"},
            headers={**AUTH, "If-Match": "43"},
        )

        assert response.status_code == 200
        assert response.headers["ac-revision"] == "44"
        assert upstream.resource_calls()[0].headers["if-match"] == "43"

    def test_update_skill_without_if_match(self, client, upstream):
        response = client.put("/api/v1/account-config/acct-1/skills/1", json={"name": "sales"}, headers=AUTH)

        assert response.status_code == 428
        assert response.json()["code"] == "PRECONDITION_REQUIRED"
        assert upstream.requests == []

    def test_delete_skill_without_if_match(self, client, upstream):
        response = client.delete("/api/v1/account-config/acct-1/skills/1", headers=AUTH)

        assert response.status_code == 428
        assert upstream.requests == []

    def test_upstream_conflict_passes_through(self, client, upstream):
        upstream.route("DELETE", skill_path("acct-1", "1"), status_code=409, json_body={"message": "stale"})

        response = client.delete("/api/v1/account-config/acct-1/skills/1", headers={**AUTH, "If-Match": "1"})

        assert response.status_code == 409
        data = response.json()
        assert data["code"] == "UPSTREAM_REQUEST_ERROR"
        assert data["details"]["upstream_body"] == {"message": "stale"}

    def test_list_campaigns(self, client, upstream):
        upstream.route("GET", "/api/account/acct-1/configuration/le-campaigns/campaigns", json_body=[{"id": 1}])

        response = client.get("/api/v1/account-config/acct-1/campaigns?fields=id", headers=AUTH)

        assert response.status_code == 200
        assert response.json()["data"] == [{"id": 1}]
        assert upstream.resource_calls()[0].query == "v=3.4&fields=id"
