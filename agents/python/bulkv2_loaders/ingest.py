"""
CSV ingestion for bulk jobs.

The file is consumed as a stream: the csv reader pulls buffered chunks from
the open file and rows are appended to the batch as they are parsed. Only
once the reader hits end-of-input is the batch handed back, so callers never
see a partial batch.
"""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Dict, Iterator, List

from .common import throw_if_path_doesnt_exist
from .errors import ParseFailure


logger = logging.getLogger(__name__)

Record = Dict[str, str]
RecordBatch = List[Record]


def _has_stray_quote(raw: str) -> bool:
    """True when a quote appears inside a field that did not open with one."""
    state = "start"
    for ch in raw:
        if state == "quoted":
            if ch == '"':
                state = "after_quote"
        elif state == "after_quote":
            # "" is an escaped quote; strict parsing already rejected anything but a delimiter
            state = "quoted" if ch == '"' else "start"
        elif ch in ",\r\n":
            state = "start"
        elif ch == '"':
            if state == "unquoted":
                return True
            state = "quoted"
        else:
            state = "unquoted"
    return False


def iter_records(path: str | Path) -> Iterator[Record]:
    """Yield one record per non-empty data row; the first non-empty row is the header."""
    src = Path(path)
    # utf-8-sig drops a leading BOM so it never ends up in the first field name
    with src.open(newline="", encoding="utf-8-sig") as f:
        raw_lines: List[str] = []

        def _lines() -> Iterator[str]:
            for line in f:
                raw_lines.append(line)
                yield line

        reader = csv.reader(_lines(), strict=True)
        header: List[str] | None = None
        try:
            for row in reader:
                raw = "".join(raw_lines)
                raw_lines.clear()
                if not row:
                    continue
                if _has_stray_quote(raw):
                    raise ParseFailure(src, reader.line_num, "invalid quote in unquoted field")
                if header is None:
                    header = row
                    continue
                if len(row) != len(header):
                    raise ParseFailure(
                        src,
                        reader.line_num,
                        f"expected {len(header)} columns, got {len(row)}",
                    )
                yield dict(zip(header, row))
        except csv.Error as e:
            raise ParseFailure(src, reader.line_num, str(e)) from e
        except UnicodeDecodeError as e:
            # decoding runs ahead of the reader in chunks, so no line number is reliable
            raise ParseFailure(src, None, f"not valid UTF-8 ({e.reason})") from e


def read_records(path: str | Path) -> RecordBatch:
    """Check the path, then drain the CSV stream into a fully materialized batch."""
    src = throw_if_path_doesnt_exist(path)
    records: RecordBatch = []
    for row in iter_records(src):
        records.append(row)
    logger.info(f"Parsed {len(records)} records from {src}")
    return records
