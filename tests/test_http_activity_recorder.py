from __future__ import annotations

import asyncio
import json

import httpx

from bucketsync.domain.entities import Account
from bucketsync.domain.sync_types import ActivityStatus
from bucketsync.infrastructure.activity import HttpActivityRecorder

LOGGED = Account(account_id="acc-1", name="Photos", bucket_name="photos", enable_activity_log=True)
SILENT = Account(account_id="acc-2", name="Quiet", bucket_name="quiet", enable_activity_log=False)


def test_record_posts_entry_for_logged_account() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["payload"] = json.loads(request.content.decode("utf-8"))
        return httpx.Response(204)

    recorder = HttpActivityRecorder(
        webhook_url="https://audit.example.com/activity",
        transport=httpx.MockTransport(handler),
    )
    asyncio.run(
        recorder.record(
            LOGGED,
            "copy",
            path_before="inbox/report.pdf",
            path_after="beta/report.pdf",
            byte_count=1024,
        )
    )

    payload = captured["payload"]
    assert isinstance(payload, dict)
    assert captured["url"] == "https://audit.example.com/activity"
    assert payload["connectionId"] == "acc-1"
    assert payload["bucketName"] == "photos"
    assert payload["actionType"] == "copy"
    assert payload["objectPathAfter"] == "beta/report.pdf"
    assert payload["status"] == "success"
    assert payload["fileSize"] == 1024
    assert "errorMessage" not in payload


def test_record_skips_accounts_without_activity_log() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    recorder = HttpActivityRecorder(
        webhook_url="https://audit.example.com/activity",
        transport=httpx.MockTransport(handler),
    )
    asyncio.run(recorder.record(SILENT, "sync"))

    assert calls == []


def test_record_swallows_webhook_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"detail": "down"})

    recorder = HttpActivityRecorder(
        webhook_url="https://audit.example.com/activity",
        transport=httpx.MockTransport(handler),
    )

    asyncio.run(
        recorder.record(
            LOGGED,
            "sync",
            status=ActivityStatus.FAILED,
            error_message="Local folder missing",
        )
    )
