"""
Helpers shared by every bulkv2 command.

Commands are plain functions that receive a ``CommandContext`` instead of
inheriting from a base command class. The context carries connection
acquisition, console output and the clock used when polling.
"""
from __future__ import annotations

import json
import logging
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, TextIO

from . import auth, config
from .bulk_client import BulkClient
from .errors import PathNotFound


PACKAGE_LOGGER = "bulkv2_loaders"


def configure_logging() -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    if not logger.handlers:
        log_file = config.ensure_log_dir() / "bulkv2.log"
        handler = logging.FileHandler(log_file)
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    return logger


def default_connect() -> BulkClient:
    token, instance_url = auth.get_access_token()
    logging.getLogger(__name__).info(f"Connected to Salesforce instance: {instance_url}")
    return BulkClient(token, instance_url)


def throw_if_path_doesnt_exist(path: str | Path) -> Path:
    p = Path(path)
    if not p.exists():
        raise PathNotFound(p)
    return p


def _format_value(value) -> str:
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return "" if value is None else str(value)


@dataclass
class CommandContext:
    connect: Callable[[], BulkClient] = default_connect
    out: TextIO = field(default_factory=lambda: sys.stdout)
    sleep: Callable[[float], None] = time.sleep
    json_output: bool = False

    def log(self, message: str = "") -> None:
        # --json keeps stdout machine readable
        if not self.json_output:
            print(message, file=self.out)

    def start_spinner(self, label: str) -> None:
        self.log(f"⏳ {label}...")

    def stop_spinner(self, status: str = "done") -> None:
        self.log(f"✓ {status}")

    def styled_object(self, obj: dict) -> None:
        """Print one ``key  value`` line per entry, keys padded to a common width."""
        if not obj:
            return
        width = max(len(str(k)) for k in obj)
        for key, value in obj.items():
            if isinstance(value, list) and value and isinstance(value[0], dict):
                self.log(f"{str(key).ljust(width)}  ({len(value)})")
                for item in value:
                    self.log(f"{'':{width}}  - {json.dumps(item)}")
            else:
                self.log(f"{str(key).ljust(width)}  {_format_value(value)}")
