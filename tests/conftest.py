"""Shared fixtures: a fake Bulk API v2 endpoint and a console-capturing context."""
from __future__ import annotations

import io
import json

import httpx
import pytest

from bulkv2_loaders import config
from bulkv2_loaders.bulk_client import BulkClient
from bulkv2_loaders.common import CommandContext

INSTANCE_URL = "https://example.my.salesforce.com"
JOB_ID = "7505g00000ABCDE"


class FakeBulkApi:
    """Minimal in-memory ingest endpoint; records every request it sees."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.job = {"id": JOB_ID, "state": "Open", "object": "Contact", "operation": "upsert"}
        # states handed out by successive GET job-info calls
        self.check_states: list[str] = []
        self.results = {
            "successfulResults": 'sf__Id,sf__Created,id,name\n003xx1,true,1,Alice\n',
            "failedResults": 'sf__Id,sf__Error,id,name\n,REQUIRED_FIELD_MISSING:Missing,2,Bob\n',
            "unprocessedrecords": "",
        }
        self.fail_paths: dict[str, int] = {}

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client(self) -> BulkClient:
        return BulkClient("token", INSTANCE_URL, api_version="65.0", transport=self.transport)

    def calls(self) -> list[tuple[str, str]]:
        prefix = "/services/data/v65.0/jobs/ingest"
        return [(r.method, r.url.path[len(prefix):]) for r in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        for suffix, code in self.fail_paths.items():
            if path.endswith(suffix):
                return httpx.Response(code, json=[{"errorCode": "INVALIDJOB", "message": "boom"}])

        tail = path.rsplit("/", 1)[-1]
        if request.method == "POST":
            body = json.loads(request.content)
            self.job.update(body)
            return httpx.Response(200, json=self.job)
        if request.method == "PUT":
            return httpx.Response(201)
        if request.method == "PATCH":
            self.job.update(json.loads(request.content))
            return httpx.Response(200, json=self.job)
        if tail in self.results:
            return httpx.Response(200, text=self.results[tail], headers={"Content-Type": "text/csv"})
        if self.check_states:
            self.job["state"] = self.check_states.pop(0)
        return httpx.Response(
            200,
            json={**self.job, "numberRecordsProcessed": 2, "numberRecordsFailed": 1},
        )


@pytest.fixture
def fake_api() -> FakeBulkApi:
    return FakeBulkApi()


@pytest.fixture
def ctx(fake_api) -> CommandContext:
    return CommandContext(
        connect=fake_api.client,
        out=io.StringIO(),
        sleep=lambda seconds: None,
    )


@pytest.fixture
def write_csv(tmp_path):
    def _write(text: str, name: str = "records.csv", encoding: str = "utf-8"):
        p = tmp_path / name
        p.write_bytes(text.encode(encoding))
        return p

    return _write


@pytest.fixture(autouse=True)
def _log_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "LOG_DIR", tmp_path / "logs")
