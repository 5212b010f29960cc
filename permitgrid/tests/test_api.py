"""API endpoint tests"""

import pytest
from fastapi.testclient import TestClient

from conftest import fixed_clock, make_city, opendata_body, opendata_record
from permitgrid.ingestion.registry import ConnectorRegistry
from permitgrid.main import app
from permitgrid.services.aggregation_service import PermitAggregator
from permitgrid.services.cache import ResultCache


def install(aggregator):
    app.state.aggregator = aggregator
    return TestClient(app)


class TestAPI:
    """Test API endpoints"""

    @pytest.fixture
    def client(self, upstream, test_settings):
        """Test client over two mocked cities, one of them down"""
        upstream.json("alpha.example.ca", opendata_body(opendata_record("A-2"), opendata_record("A-1", "9 Oak Ave")))
        upstream.status("beta.example.ca", 500)
        registry = ConnectorRegistry([make_city("alpha", name="Alpha"), make_city("beta", name="Beta", trust=0.7)])
        aggregator = PermitAggregator(
            registry,
            test_settings,
            transport=upstream.transport,
            clock=fixed_clock,
            cache=ResultCache(ttl=30),
        )
        with install(aggregator) as client:
            yield client
        del app.state.aggregator

    def test_health_check(self, client):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["cities_configured"] == 2
        assert body["cache"]["size"] == 0

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_get_permits(self, client):
        """Aggregate answers 200 even with a failing city"""
        response = client.get("/permits", params={"q": "main"})
        assert response.status_code == 200
        assert response.headers["X-Request-ID"]
        assert "X-API-Latency-Ms" in response.headers

        body = response.json()
        assert body["query"] == "main"
        assert body["totalItems"] == 2
        assert [item["id"] for item in body["aggregatedItems"]] == ["A-1", "A-2"]
        assert [source["outcome"] for source in body["cities"]] == ["success", "failed"]
        assert body["cities"][1]["error"] == "network: HTTP 500"
        assert 0 < body["confidence"] < 1

    def test_city_filter(self, client):
        response = client.get("/permits", params=[("city", "alpha"), ("city", "Atlantis")])
        body = response.json()
        assert [source["cityKey"] for source in body["cities"]] == ["alpha", "Atlantis"]
        assert body["cities"][1]["error"].startswith("configuration:")

    def test_empty_city_param_queries_every_city(self, client):
        response = client.get("/permits?q=main&city=")
        assert response.status_code == 200
        assert [source["cityKey"] for source in response.json()["cities"]] == ["alpha", "beta"]

    def test_smart_fetch(self, client):
        response = client.get("/permits/smart_fetch", params={"q": "oak", "mode": "address"})
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert [item["address"] for item in body["payload"]] == ["9 Oak Ave"]
        assert [entry["ok"] for entry in body["provenance"]] == [True, False]

    def test_smart_fetch_rejects_unknown_mode(self, client):
        response = client.get("/permits/smart_fetch", params={"q": "oak", "mode": "fuzzy"})
        assert response.status_code == 422

    def test_list_cities(self, client):
        response = client.get("/permits/cities")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [city["key"] for city in body["data"]] == ["alpha", "beta"]

    def test_repeat_query_served_from_cache(self, client, upstream):
        client.get("/permits", params={"q": "main"})
        client.get("/permits", params={"q": "main"})
        assert len(upstream.requests) == 2  # one per city, first call only
        assert client.get("/health").json()["cache"]["hits"] == 1

    def test_invalid_endpoint(self, client):
        """Test invalid endpoint returns 404"""
        response = client.get("/invalid")
        assert response.status_code == 404


class TestReadiness:
    def test_empty_registry_not_ready(self, test_settings):
        with install(PermitAggregator(ConnectorRegistry([]), test_settings)) as client:
            response = client.get("/health/ready")
        del app.state.aggregator
        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"
