"""Tests for the scrape trigger and admin endpoints."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from yieldsync.errors import EnumerationFailure
from yieldsync.web.main import create_app


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as c:
        yield c


class TestScrapeAll:
    def test_full_sweep(self, client, services):
        response = client.post("/scrape/all")

        assert response.status_code == 200
        data = response.json()
        assert data["skipped"] is False
        assert data["message"] == "Pool scraping completed successfully"
        assert data["summary"]["total"] == 3
        assert data["summary"]["success"] == 2
        assert data["summary"]["failed"] == 1
        assert "timestamp" in data

        assert services.db.get_pool("lido-steth").apy == 2.91
        assert services.db.get_pool("morpho-usdc").tvl == 1_250_000.0

    def test_already_running(self, client, services):
        with patch.object(services.orchestrator, "sweep_all", AsyncMock(return_value=None)):
            response = client.post("/scrape/all")

        assert response.status_code == 200
        assert response.json()["skipped"] is True

    def test_enumeration_failure_is_500(self, client, services):
        with patch.object(services.orchestrator, "sweep_all", AsyncMock(side_effect=EnumerationFailure("db down"))):
            response = client.post("/scrape/all")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to scrape pools", "message": "db down"}


class TestScrapePool:
    def test_success(self, client):
        response = client.post("/scrape/pool/morpho-usdc")

        assert response.status_code == 200
        data = response.json()
        assert data["poolId"] == "morpho-usdc"
        assert data["apy"] == 4.38
        assert data["tvl"] == 1_250_000.0
        assert "timestamp" in data

    def test_unknown_pool(self, client):
        response = client.post("/scrape/pool/ghost")
        assert response.status_code == 404
        assert response.json()["error"] == "Pool not found"

    def test_no_data_is_404(self, client):
        response = client.post("/scrape/pool/morpho-base-weth")
        assert response.status_code == 404
        assert response.json()["error"] == "Pool not found or no scraper available"

    def test_unexpected_error_is_500(self, client, services):
        with patch.object(services.orchestrator, "sweep_one", AsyncMock(side_effect=RuntimeError("boom"))):
            response = client.post("/scrape/pool/lido-steth")
        assert response.status_code == 500
        assert response.json()["message"] == "boom"


class TestPlatforms:
    def test_lists_sources(self, client):
        data = client.get("/scrapers/platforms").json()
        assert data["platforms"] == ["Lido", "Morpho"]
        assert data["count"] == 2


class TestAdminJobs:
    def test_list_jobs(self, client):
        data = client.get("/admin/jobs").json()
        assert data["count"] == 1
        job = data["jobs"][0]
        assert job["name"] == "pool_data_sync"
        assert job["interval_minutes"] == 5
        assert job["scheduled"] is True
        assert job["next_run"] is not None
        assert job["scheduler_running"] is True

    def test_change_interval_reschedules(self, client, services):
        response = client.patch("/admin/jobs/pool_data_sync", json={"interval_minutes": 15})

        assert response.status_code == 200
        assert response.json()["interval_minutes"] == 15
        assert services.scheduler.job_count("pool_data_sync") == 1
        job = services.scheduler.scheduler.get_job("pool_data_sync")
        assert job.trigger.interval.total_seconds() == 15 * 60

    def test_disable_and_enable(self, client, services):
        data = client.patch("/admin/jobs/pool_data_sync", json={"enabled": False}).json()
        assert data["enabled"] is False
        assert data["scheduled"] is False
        assert services.scheduler.job_count("pool_data_sync") == 0

        data = client.patch("/admin/jobs/pool_data_sync", json={"enabled": True}).json()
        assert data["scheduled"] is True
        assert services.scheduler.job_count("pool_data_sync") == 1

    def test_unknown_job_is_404(self, client):
        response = client.patch("/admin/jobs/nope", json={"interval_minutes": 3})
        assert response.status_code == 404

    @pytest.mark.parametrize("body", [{"interval_minutes": 0}, {"interval_minutes": -5}, {"interval_minutes": "often"}])
    def test_invalid_interval_is_422(self, client, services, body):
        response = client.patch("/admin/jobs/pool_data_sync", json=body)
        assert response.status_code == 422
        assert services.db.get_job_config("pool_data_sync").interval_minutes == 5


class TestAdminCache:
    def test_cache_stats(self, client):
        caches = client.get("/admin/cache").json()["caches"]
        assert [c["name"] for c in caches] == ["Morpho vaults"]
        assert caches[0]["partitions"] == [1, 8453]

    def test_clear(self, client):
        data = client.post("/admin/cache/clear").json()
        assert data["cleared"] == 0

    def test_stats(self, client):
        client.post("/scrape/all")
        data = client.get("/admin/stats").json()
        assert data["pools"]["active_pools"] == 3
        assert data["last_sweep"]["success"] == 2


class TestAdminJobsSchedulerOff:
    @pytest.fixture
    def idle_client(self, services):
        services.config._config["scheduler"]["enabled"] = False
        with TestClient(create_app(services)) as c:
            yield c

    def test_patch_reports_scheduler_off(self, idle_client, services):
        data = idle_client.patch("/admin/jobs/pool_data_sync", json={"interval_minutes": 20}).json()

        assert data["interval_minutes"] == 20
        assert data["scheduled"] is False
        assert data["scheduler_running"] is False
        assert services.db.get_job_config("pool_data_sync").interval_minutes == 20

    def test_interval_validation_message(self, idle_client):
        response = idle_client.patch("/admin/jobs/pool_data_sync", json={"interval_minutes": 0})
        assert response.status_code == 422
        assert response.json() == {
            "error": "Invalid interval",
            "message": "Interval must be at least 1 minute, got 0",
        }
