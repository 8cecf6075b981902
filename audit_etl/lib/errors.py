"""Fatal error types for the audit ETL.

Only conditions that abort a whole run are modelled as exceptions. Per-file
problems are absorbed by the extractors and surface as manifest statuses.
"""
from __future__ import annotations

from typing import Optional

__all__ = ["AuditEtlError", "ArchiveFormatError", "ArchiveDownloadError"]


class AuditEtlError(Exception):
    """Base class for errors that abort an ETL run."""


class ArchiveFormatError(AuditEtlError):
    """The buffer is not a readable ZIP archive.

    ``payload`` keeps the raw bytes so the run boundary can dump them for
    diagnosis.
    """

    def __init__(self, message: str, payload: Optional[bytes] = None):
        super().__init__(message)
        self.payload = payload


class ArchiveDownloadError(AuditEtlError):
    """The archive could not be retrieved from its URL."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
