"""
Error types for the sync job.

Every failure is terminal for a run. Each error carries a kind and an
optional upstream payload so a single log line is enough to diagnose it.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Stage-level classification of a fatal error."""

    CONFIGURATION = "configuration"
    AUTHENTICATION = "authentication"
    MISSING_SHEET = "missing_sheet"
    FETCH = "fetch"
    EMPTY_DATASET = "empty_dataset"
    PUBLISH = "publish"


class ETLError(Exception):
    """Base error with a kind tag and optional upstream detail."""

    kind: ErrorKind = ErrorKind.FETCH

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        detail: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.detail = detail or {}

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ETLError):
    kind = ErrorKind.CONFIGURATION


class AuthenticationError(ETLError):
    kind = ErrorKind.AUTHENTICATION


class MissingSheetError(ETLError):
    kind = ErrorKind.MISSING_SHEET

    def __init__(self, title: str, available=None):
        super().__init__(
            f"Sheet '{title}' not found in spreadsheet",
            detail={"title": title, "available": list(available or [])},
        )
        self.title = title


class FetchError(ETLError):
    kind = ErrorKind.FETCH

    def __init__(self, message: str, cell_range: Optional[str] = None, detail=None):
        detail = dict(detail or {})
        if cell_range is not None:
            detail.setdefault("range", cell_range)
        super().__init__(message, detail=detail)
        self.range = cell_range


class EmptyDatasetError(ETLError):
    kind = ErrorKind.EMPTY_DATASET


class PublishError(ETLError):
    kind = ErrorKind.PUBLISH
