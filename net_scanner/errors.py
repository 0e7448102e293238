from __future__ import annotations


class ScanError(Exception):
    """Base class for errors the CLI reports to the user."""


class InvalidFormat(ScanError, ValueError):
    pass


class InvalidRange(ScanError, ValueError):
    pass


class InvalidPortSpec(ScanError, ValueError):
    pass


class ExportFailure(ScanError):
    """
    Writing the report file failed. The scan itself completed and its
    in-memory report is still valid.
    """

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"Could not write {path}: {cause}")
        self.path = path
        self.cause = cause
