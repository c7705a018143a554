"""Tests for the job HTTP API."""

from __future__ import annotations

import asyncio

from aiohttp import test_utils

from src.core.config import ApiConfig, KafkaConfig, Settings
from src.core.types import Alert
from src.jobs.api import create_web_app
from src.jobs.manager import JobManager
from src.processor.metrics import ProducerMetrics
from src.producer.base import AlertPublisher


# ── Helpers ─────────────────────────────────────────────────────


class FakePublisher(AlertPublisher):
    """In-memory publisher for testing."""

    def __init__(self) -> None:
        self.sent: list[Alert] = []

    async def publish(self, alert: Alert) -> None:
        self.sent.append(alert)

    async def close(self) -> None:
        pass


def _manager(metrics: ProducerMetrics | None = None) -> JobManager:
    settings = Settings(
        kafka=KafkaConfig(brokers="localhost:9092", topic="alerts.new"),
        api=ApiConfig(stop_grace_secs=0.1),
    )
    return JobManager(
        settings=settings,
        metrics=metrics,
        publisher_factory=lambda cfg: FakePublisher(),
    )


def _client(manager: JobManager, metrics: ProducerMetrics | None = None) -> test_utils.TestClient:
    return test_utils.TestClient(test_utils.TestServer(create_web_app(manager, metrics)))


# ── Generate ────────────────────────────────────────────────────


class TestGenerate:
    async def test_accepts_and_runs(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            resp = await client.post("/api/v1/alerts/generate", json={"burst": 5})
            assert resp.status == 202
            body = await resp.json()
            assert body["status"] in ("pending", "running")

            await manager.wait(body["job_id"], timeout=5.0)
            resp = await client.get(
                "/api/v1/alerts/generate/status", params={"job_id": body["job_id"]}
            )
            assert resp.status == 200
            job = await resp.json()
            assert job["status"] == "completed"
            assert job["alerts_sent"] == 5
            assert job["config"]["burst"] == 5

    async def test_invalid_json(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.post("/api/v1/alerts/generate", data="{not json")
            assert resp.status == 400
            assert "Invalid request body" in (await resp.json())["error"]

    async def test_wrong_field_type(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.post("/api/v1/alerts/generate", json={"burst": "lots"})
            assert resp.status == 400

    async def test_invalid_configuration(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            resp = await client.post(
                "/api/v1/alerts/generate", json={"severity_dist": "HIGH:50"}
            )
            assert resp.status == 400
            assert "Configuration validation failed" in (await resp.json())["error"]
        assert manager.list_jobs() == []

    async def test_nan_rate_rejected(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            resp = await client.post(
                "/api/v1/alerts/generate",
                data='{"rps": NaN, "duration": "1s", "mock": true}',
                headers={"Content-Type": "application/json"},
            )
            assert resp.status == 400
            assert "Invalid request body" in (await resp.json())["error"]
        assert manager.list_jobs() == []

    async def test_non_finite_duration_rejected(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            for duration in ("nan", "inf"):
                resp = await client.post(
                    "/api/v1/alerts/generate", json={"rps": 100, "duration": duration}
                )
                assert resp.status == 400
                assert "Configuration validation failed" in (await resp.json())["error"]
        assert manager.list_jobs() == []

    async def test_invalid_single_severity(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.post(
                "/api/v1/alerts/generate", json={"single_test": True, "severity": "BAD"}
            )
            assert resp.status == 400
            assert "Invalid severity" in (await resp.json())["error"]


# ── Status / list ───────────────────────────────────────────────


class TestQueries:
    async def test_status_requires_job_id(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.get("/api/v1/alerts/generate/status")
            assert resp.status == 400

    async def test_status_unknown_job(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.get("/api/v1/alerts/generate/status", params={"job_id": "x"})
            assert resp.status == 404

    async def test_list_with_filter(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            resp = await client.post("/api/v1/alerts/generate", json={"burst": 1})
            job_id = (await resp.json())["job_id"]
            await manager.wait(job_id, timeout=5.0)

            resp = await client.get("/api/v1/alerts/generate/list")
            body = await resp.json()
            assert body["total"] == 1
            assert body["jobs"][0]["id"] == job_id

            resp = await client.get(
                "/api/v1/alerts/generate/list", params={"status": "running"}
            )
            assert (await resp.json())["total"] == 0

    async def test_list_invalid_status(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.get("/api/v1/alerts/generate/list", params={"status": "bogus"})
            assert resp.status == 400


# ── Stop ────────────────────────────────────────────────────────


class TestStop:
    async def test_stop_running_job(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            resp = await client.post(
                "/api/v1/alerts/generate", json={"rps": 1, "duration": "30s"}
            )
            job_id = (await resp.json())["job_id"]
            await asyncio.sleep(0.05)

            resp = await client.post("/api/v1/alerts/generate/stop", params={"job_id": job_id})
            assert resp.status == 200
            assert (await resp.json())["status"] == "cancelled"

    async def test_stop_finished_job_rejected(self) -> None:
        manager = _manager()
        async with _client(manager) as client:
            resp = await client.post("/api/v1/alerts/generate", json={"burst": 1})
            job_id = (await resp.json())["job_id"]
            await manager.wait(job_id, timeout=5.0)

            resp = await client.post("/api/v1/alerts/generate/stop", params={"job_id": job_id})
            assert resp.status == 400
            assert "not running" in (await resp.json())["error"]

    async def test_stop_unknown_job(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.post("/api/v1/alerts/generate/stop", params={"job_id": "x"})
            assert resp.status == 404


# ── Misc ────────────────────────────────────────────────────────


class TestMisc:
    async def test_health(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.get("/health")
            assert resp.status == 200
            assert await resp.text() == "OK"

    async def test_cors_headers(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.get("/health")
            assert resp.headers["Access-Control-Allow-Origin"] == "*"

    async def test_preflight(self) -> None:
        async with _client(_manager()) as client:
            resp = await client.options("/api/v1/alerts/generate")
            assert resp.status == 200
            assert "POST" in resp.headers["Access-Control-Allow-Methods"]

    async def test_metrics(self) -> None:
        metrics = ProducerMetrics()
        manager = _manager(metrics)
        async with _client(manager, metrics) as client:
            resp = await client.post("/api/v1/alerts/generate", json={"burst": 3})
            await manager.wait((await resp.json())["job_id"], timeout=5.0)

            resp = await client.get("/api/v1/metrics")
            body = await resp.json()
            assert body["published"] == 3
            assert "latency" in body
