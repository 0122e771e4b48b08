from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from . import config
from .bulk_client import TERMINAL_STATES, IngestJob, JobDescriptor
from .common import CommandContext, throw_if_path_doesnt_exist
from .errors import EmptyBatch
from .ingest import read_records


logger = logging.getLogger(__name__)


def _require(name: str, value) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"--{name} is required and cannot be empty")


@dataclass(frozen=True)
class UpsertOptions:
    externalid: str
    csvfile: Path
    sobjecttype: str
    assignmentruleid: str | None = None
    # minutes to poll for a terminal state after close; 0 returns right away
    wait: float = 0

    def __post_init__(self):
        _require("externalid", self.externalid)
        _require("csvfile", self.csvfile)
        _require("sobjecttype", self.sobjecttype)
        if self.wait < 0:
            raise ValueError("--wait must be 0 or more minutes")


@dataclass(frozen=True)
class StatusOptions:
    jobid: str
    showrecords: bool = False

    def __post_init__(self):
        _require("jobid", self.jobid)


def status_hint(job_id: str) -> str:
    return f"Check the job status with: bulkv2 status --jobid {job_id}"


def wait_for_job(
    job: IngestJob,
    minutes: float,
    ctx: CommandContext,
    interval: float | None = None,
) -> dict:
    """
    Poll ``job.check()`` until the job is terminal or ``minutes`` elapse.
    Returns the last snapshot either way; running out of time is not an error.
    """
    if interval is None:
        interval = config.POLL_INTERVAL_SECONDS
    if interval <= 0:
        raise ValueError(f"Poll interval must be greater than 0, got {interval!r}")
    budget = minutes * 60
    attempts = max(1, math.ceil(budget / interval))
    for attempt in range(1, attempts + 1):
        # the last nap only covers what is left of the budget
        ctx.sleep(max(0.0, min(interval, budget - (attempt - 1) * interval)))
        info = job.check()
        state = info.get("state")
        logger.info(f"Job {job.id} poll {attempt}/{attempts}: {state}")
        if state in TERMINAL_STATES:
            return info
    ctx.log(f"⚠️  Job {job.id} is still {job.job_info.get('state')} after {minutes:g} minute(s)")
    return job.job_info


def upsert(options: UpsertOptions, ctx: CommandContext) -> dict:
    """Read the CSV, then open, fill and close an upsert ingest job."""
    ctx.start_spinner("Bulk Upsert")
    throw_if_path_doesnt_exist(options.csvfile)
    conn = ctx.connect()

    records = read_records(options.csvfile)
    if not records:
        raise EmptyBatch(options.csvfile)

    descriptor = JobDescriptor(
        object=options.sobjecttype,
        operation="upsert",
        external_id_field_name=options.externalid,
        assignment_rule_id=options.assignmentruleid,
    )
    job = conn.create_job(descriptor)

    # TODO: abort the job when upload or close fails instead of leaving it Open
    job.open()
    logger.info(f"Opened {descriptor.operation} job {job.id} on {descriptor.object}")
    job.upload_data(records)
    logger.info(f"Uploaded {len(records)} records to job {job.id}")
    job.close()
    logger.info(f"Closed job {job.id}: {job.job_info.get('state')}")
    ctx.stop_spinner(f"Job {job.id} queued with {len(records)} records")

    ctx.log(status_hint(job.id))

    if options.wait > 0:
        ctx.start_spinner(f"Waiting up to {options.wait:g} minute(s) for job {job.id}")
        wait_for_job(job, options.wait, ctx)

    ctx.styled_object(job.job_info)
    return job.job_info


def status(options: StatusOptions, ctx: CommandContext) -> Dict[str, object]:
    """Single snapshot of a job, merged with its result sets when ``showrecords`` is set."""
    ctx.start_spinner("Getting Status")
    conn = ctx.connect()
    job = conn.job(options.jobid)
    job_info = job.check()
    ctx.stop_spinner(f"Job {job.id}: {job_info.get('state')}")
    logger.info(f"Checked job {job.id}: {job_info.get('state')}")

    if not options.showrecords:
        ctx.styled_object(job_info)
        return job_info

    results = job.get_all_results()
    logger.info(
        f"Job {job.id} results: {len(results['successfulResults'])} successful, "
        f"{len(results['failedResults'])} failed, {len(results['unprocessedRecords'])} unprocessed"
    )
    merged = {**job_info, **results}
    ctx.styled_object(merged)
    return merged
