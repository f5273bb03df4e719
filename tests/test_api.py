from pathlib import Path

from doubles import FakeDocumentRepository, FakeEngine, FakeJobRepository, FakeNotifier, FakeSleep, ScriptedServiceClient
from fastapi.testclient import TestClient

from crawl_validation_service.config import Settings
from crawl_validation_service.jobs.batch import BatchAggregator
from crawl_validation_service.jobs.manager import JobManager
from crawl_validation_service.jobs.registry import JobRegistry
from crawl_validation_service.main import create_app
from crawl_validation_service.services import Services
from crawl_validation_service.validation.protocol import ValidationProtocol
from crawl_validation_service.validation.queue import ValidationQueue
from crawl_validation_service.validation.retry import TransportRetryPolicy
from crawl_validation_service.validation.snapshot import QueueSnapshotStore
from crawl_validation_service.validation.worker import ValidationWorker


def make_client(tmp_path: Path):
    settings = Settings(data_dir=tmp_path, public_url="http://testserver")
    registry = JobRegistry()
    engine = FakeEngine()
    documents = FakeDocumentRepository()
    manager = JobManager(registry, engine, FakeJobRepository(), documents, FakeNotifier())
    sleep = FakeSleep()
    protocol = ValidationProtocol(ScriptedServiceClient([200]), TransportRetryPolicy(sleep=sleep), sleep=sleep)
    queue = ValidationQueue(QueueSnapshotStore(settings.queue_snapshot_path))
    services = Services(
        settings=settings,
        registry=registry,
        engine=engine,
        manager=manager,
        batches=BatchAggregator(manager),
        queue=queue,
        worker=ValidationWorker(queue, protocol, registry, documents),
    )
    return TestClient(create_app(settings, services)), services, documents


def test_job_lifecycle_endpoints(tmp_path: Path):
    client, services, _ = make_client(tmp_path)

    response = client.post("/api/crawl-jobs", json={"domain": "example.com", "date": "01-05-2024"})
    assert response.status_code == 200
    job = response.json()
    assert job["status"] == "running"
    assert job["url"] == "https://example.com"
    assert services.registry.get(job["job_id"]).scheduled_date.isoformat() == "2024-05-01"

    response = client.post(f"/api/crawl-jobs/{job['job_id']}/pause")
    assert response.json()["status"] == "paused"

    response = client.get(f"/api/crawl-jobs/{job['job_id']}")
    assert response.status_code == 200
    assert response.json()["status"] == "paused"

    response = client.post(f"/api/crawl-jobs/{job['job_id']}/email", json={"email_address": "ops@example.com"})
    assert response.status_code == 200
    assert services.registry.get(job["job_id"]).report_email == "ops@example.com"

    response = client.delete(f"/api/crawl-jobs/{job['job_id']}")
    assert response.json()["status"] == "terminated"
    assert client.get("/api/crawl-jobs").json() == []


def test_unknown_job_is_404(tmp_path: Path):
    client, _, _ = make_client(tmp_path)
    assert client.get("/api/crawl-jobs/missing").status_code == 404
    assert client.post("/api/crawl-jobs/missing/restart").status_code == 404


def test_invalid_date_is_rejected(tmp_path: Path):
    client, _, _ = make_client(tmp_path)
    response = client.post("/api/crawl-jobs", json={"domain": "example.com", "date": "2024-05-01"})
    assert response.status_code == 422


def test_batch_endpoints(tmp_path: Path):
    client, _, _ = make_client(tmp_path)

    response = client.post("/api/batch", json={"domains": ["a.example.com", "b.example.com"]})
    assert response.status_code == 200
    body = response.json()
    assert body["job_count"] == 2
    assert body["report_url"].endswith(f"/api/batch/{body['batch_id']}")

    report = client.get(f"/api/batch/{body['batch_id']}").json()
    assert report["finished"] is False
    assert [member["status"] for member in report["members"]] == ["running", "running"]

    assert client.get("/api/batch/missing").status_code == 404
    assert client.post("/api/batch", json={"domains": []}).status_code == 422


def test_validation_submission_requires_tracked_job(tmp_path: Path):
    client, services, _ = make_client(tmp_path)
    job = client.post("/api/crawl-jobs", json={"domain": "example.com"}).json()

    payload = {
        "uri": "https://example.com/a.pdf",
        "filepath": "/tmp/a.pdf",
        "job_directory": f"/heritrix/jobs/{job['job_id']}/20240101000000/mirror",
        "time": "Mon, 01 Jan 2024 00:00:00 GMT",
    }
    response = client.post("/api/validation", json=payload)
    assert response.status_code == 202
    assert response.json() == {"queue_size": 1}
    assert services.queue.pending()[0].job_id == job["job_id"]

    payload["job_directory"] = "/heritrix/jobs/unknown/20240101000000/mirror"
    assert client.post("/api/validation", json=payload).status_code == 404

    status = client.get("/api/validation/queue").json()
    assert status["queue_size"] == 1
    assert status["running"] is False


def test_office_documents_are_recorded(tmp_path: Path):
    client, _, documents = make_client(tmp_path)

    response = client.post("/api/microsoft_office", json={"file_url": "https://example.com/a.docx"})
    assert response.status_code == 204
    response = client.post("/api/odf", json={"file_url": "https://example.com/a.odt", "last_modified": "today"})
    assert response.status_code == 204

    assert [(doc["url"], doc["kind"]) for doc in documents.documents] == [
        ("https://example.com/a.docx", "microsoft_office"),
        ("https://example.com/a.odt", "odf"),
    ]


def test_health_and_metrics(tmp_path: Path):
    client, services, _ = make_client(tmp_path)

    health = client.get("/api/health").json()
    assert health["engine_available"] is True
    assert health["status"] == "degraded"
    assert health["validation"]["running"] is False

    response = client.get("/metrics")
    assert response.status_code == 200
    assert "crawl_validation_job_transitions_total" in response.text
