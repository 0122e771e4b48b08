from __future__ import annotations


class BulkLoaderError(Exception):
    """Base class for failures raised by the loaders themselves.

    Remote failures are not wrapped: they surface as ``httpx.HTTPError``.
    """


class PathNotFound(BulkLoaderError, FileNotFoundError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"No such file or directory: {path}")


class ParseFailure(BulkLoaderError, ValueError):
    def __init__(self, path, line: int | None, reason: str):
        self.path = path
        self.line = line
        self.reason = reason
        where = f"{path}, line {line}" if line is not None else str(path)
        super().__init__(f"{where}: {reason}")


class EmptyBatch(BulkLoaderError, ValueError):
    def __init__(self, path):
        self.path = path
        super().__init__(f"{path} has no data rows; no job was opened")
