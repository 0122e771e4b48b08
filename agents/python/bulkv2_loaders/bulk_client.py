from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Dict, List, Optional

import httpx

from . import config


TERMINAL_STATES = frozenset({"JobComplete", "Failed", "Aborted"})


@dataclass(frozen=True)
class JobDescriptor:
    object: str
    operation: str
    external_id_field_name: str | None = None
    assignment_rule_id: str | None = None

    def to_payload(self) -> dict:
        payload = {
            "object": self.object,
            "operation": self.operation,
            "contentType": "CSV",
            "lineEnding": "LF",
        }
        if self.external_id_field_name:
            payload["externalIdFieldName"] = self.external_id_field_name
        if self.assignment_rule_id:
            payload["assignmentRuleId"] = self.assignment_rule_id
        return payload


def records_to_csv(records: List[dict]) -> str:
    """Serialize records; the header is every key in first-seen order."""
    fieldnames: List[str] = []
    for rec in records:
        for k in rec:
            if k not in fieldnames:
                fieldnames.append(k)
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=fieldnames, lineterminator="\n")
    writer.writeheader()
    writer.writerows(records)
    return buf.getvalue()


def _parse_csv_body(text: str) -> List[dict]:
    if not text.strip():
        return []
    return list(csv.DictReader(io.StringIO(text)))


class BulkClient:
    def __init__(
        self,
        access_token: str,
        instance_url: str,
        api_version: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.access_token = access_token
        self.instance_url = instance_url.rstrip("/")
        self.api_version = api_version or config.API_VERSION
        self._transport = transport
        self._headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        base = f"{self.instance_url}/services/data/v{self.api_version}/jobs/ingest"
        return f"{base}/{path.lstrip('/')}" if path else base

    def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {**self._headers, **kwargs.pop("headers", {})}
        with httpx.Client(timeout=config.HTTP_TIMEOUT, headers=headers, transport=self._transport) as client:
            resp = client.request(method, self._url(path), **kwargs)
            resp.raise_for_status()
            return resp

    def create_job(self, descriptor: JobDescriptor) -> "IngestJob":
        """Build a local handle; nothing is sent until ``open()``."""
        return IngestJob(self, descriptor=descriptor)

    def job(self, job_id: str) -> "IngestJob":
        return IngestJob(self, job_id=job_id)


class IngestJob:
    def __init__(
        self,
        client: BulkClient,
        descriptor: JobDescriptor | None = None,
        job_id: str | None = None,
    ):
        self.client = client
        self.descriptor = descriptor
        self.job_info: Dict[str, object] = {"id": job_id} if job_id else {}

    @property
    def id(self) -> Optional[str]:
        return self.job_info.get("id")

    def _require_id(self) -> str:
        if not self.id:
            raise RuntimeError("Job has no id yet; call open() first")
        return self.id

    def open(self) -> dict:
        if self.descriptor is None:
            raise RuntimeError("Cannot open a job without a JobDescriptor")
        resp = self.client.request("POST", "", json=self.descriptor.to_payload())
        self.job_info = resp.json()
        return self.job_info

    def upload_data(self, records: List[dict]) -> None:
        job_id = self._require_id()
        self.client.request(
            "PUT",
            f"{job_id}/batches",
            content=records_to_csv(records).encode("utf-8"),
            headers={"Content-Type": "text/csv"},
        )

    def close(self) -> dict:
        """Mark the upload complete so the service starts processing."""
        job_id = self._require_id()
        resp = self.client.request("PATCH", job_id, json={"state": "UploadComplete"})
        self.job_info = resp.json()
        return self.job_info

    def check(self) -> dict:
        """Refresh the point-in-time snapshot; does not wait for a terminal state."""
        job_id = self._require_id()
        self.job_info = self.client.request("GET", job_id).json()
        return self.job_info

    def get_all_results(self) -> Dict[str, List[dict]]:
        job_id = self._require_id()
        return {
            "successfulResults": _parse_csv_body(self.client.request("GET", f"{job_id}/successfulResults").text),
            "failedResults": _parse_csv_body(self.client.request("GET", f"{job_id}/failedResults").text),
            "unprocessedRecords": _parse_csv_body(self.client.request("GET", f"{job_id}/unprocessedrecords").text),
        }
