from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from bucketsync.api.dependencies import get_application, get_settings
from bucketsync.domain.sync_types import SyncJobStatus
from bucketsync.main import app, create_app


def _client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> TestClient:
    accounts_file = tmp_path / "accounts.json"
    accounts_file.write_text(
        json.dumps(
            [
                {"id": "acc-1", "name": "Photos", "bucketName": "photos"},
                {
                    "id": "acc-ro",
                    "name": "Archive",
                    "bucketName": "archive",
                    "accessMode": "read-only",
                },
            ]
        ),
        encoding="utf-8",
    )
    monkeypatch.setenv("BUCKETSYNC_ACCOUNTS_FILE", str(accounts_file))
    monkeypatch.setenv("BUCKETSYNC_SYNC_SCHEDULER_ENABLED", "false")
    get_application.cache_clear()
    get_settings.cache_clear()
    return TestClient(create_app())


def test_healthz() -> None:
    get_application.cache_clear()
    get_settings.cache_clear()

    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_sync_job_crud(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    with _client(monkeypatch, tmp_path) as client:
        created = client.post(
            "/sync-jobs",
            json={
                "accountId": "acc-1",
                "localPath": str(tmp_path / "Pictures"),
                "remotePath": "backup/",
                "intervalSeconds": 3600,
            },
        )
        assert created.status_code == 201
        body = created.json()
        job_id = body["id"]
        assert body["name"] == "Pictures"
        assert body["bucket"] == "photos"
        assert body["status"] == "idle"
        assert body["nextRun"] is not None

        listed = client.get("/sync-jobs")
        assert listed.status_code == 200
        assert listed.json()["runningJobId"] is None
        assert [job["id"] for job in listed.json()["syncJobs"]] == [job_id]

        patched = client.patch(f"/sync-jobs/{job_id}", json={"name": "Holiday", "mirrorSync": True})
        assert patched.status_code == 200
        assert patched.json()["name"] == "Holiday"
        assert patched.json()["mirrorSync"] is True

        assert client.get(f"/sync-jobs/{job_id}").status_code == 200
        assert client.delete(f"/sync-jobs/{job_id}").status_code == 204
        assert client.get(f"/sync-jobs/{job_id}").status_code == 404


def test_create_sync_job_errors(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    with _client(monkeypatch, tmp_path) as client:
        unknown_account = client.post(
            "/sync-jobs",
            json={"accountId": "missing", "localPath": "/data"},
        )
        bad_direction = client.post(
            "/sync-jobs",
            json={"accountId": "acc-1", "localPath": "/data", "direction": "sideways"},
        )
        unknown_field = client.post(
            "/sync-jobs",
            json={"accountId": "acc-1", "localPath": "/data", "schedule": "daily"},
        )

    assert unknown_account.status_code == 404
    assert bad_direction.status_code == 422
    assert unknown_field.status_code == 422


def test_run_sync_job_returns_accepted_and_records_outcome(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    with _client(monkeypatch, tmp_path) as client:
        job_id = client.post(
            "/sync-jobs",
            json={"accountId": "acc-1", "localPath": "/data", "direction": "download"},
        ).json()["id"]

        started = client.post(f"/sync-jobs/{job_id}/run")
        missing = client.post("/sync-jobs/missing/run")

    assert started.status_code == 202
    assert started.json()["status"] == "running"
    assert missing.status_code in {404, 409}

    job = asyncio.run(get_application().repository.get_job(job_id))
    assert job is not None
    assert job.status is SyncJobStatus.ERROR
    assert job.last_stats is not None
    assert "not supported" in job.last_stats.errors[0]


def test_transfer_endpoints_validate_requests(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    with _client(monkeypatch, tmp_path) as client:
        unknown_source = client.post(
            "/transfers",
            json={
                "type": "copy",
                "sourceAccountId": "missing",
                "objects": [{"key": "a.txt"}],
                "destinations": [{"accountId": "acc-1"}],
            },
        )
        read_only = client.post(
            "/transfers",
            json={
                "type": "copy",
                "sourceAccountId": "acc-1",
                "objects": [{"key": "a.txt"}],
                "destinations": [{"accountId": "acc-ro"}],
            },
        )
        cross_account_move = client.post(
            "/transfers",
            json={
                "type": "move",
                "sourceAccountId": "acc-1",
                "objects": [{"key": "a.txt"}],
                "destinations": [{"accountId": "acc-1", "bucket": "elsewhere"}],
            },
        )
        empty = client.post(
            "/transfers",
            json={"type": "copy", "sourceAccountId": "acc-1", "objects": [], "destinations": []},
        )
        listed = client.get("/transfers")
        cleared = client.delete("/transfers")
        unknown = client.get("/transfers/missing")
        retry_unknown = client.post("/transfers/missing/retry")

    assert unknown_source.status_code == 404
    assert read_only.status_code == 400
    assert cross_account_move.status_code == 400
    assert empty.status_code == 422
    assert listed.json() == {"transfers": []}
    assert cleared.status_code == 200
    assert unknown.status_code == 404
    assert retry_unknown.status_code == 404
