# src/errors.py

from enum import Enum
from typing import Optional


class FailureKind(Enum):
    TRANSPORT   = "transport"       # connectivity: timeouts, DNS, refused connections
    HTTP_STATUS = "http_status"     # the server answered with a non-2xx status
    UNKNOWN     = "unknown"         # anything else that aborted the cycle


class MonitorError(Exception):
    """Base class for all errors raised by the round monitor."""


class ParseRowError(MonitorError):
    """A single results row could not be parsed. Never aborts the batch."""

    def __init__(self, message: str, row_index: Optional[int] = None):
        super().__init__(message)
        self.row_index = row_index


class FetchError(MonitorError):
    """A fetch cycle failed before anything was persisted."""

    kind: FailureKind = FailureKind.UNKNOWN

    @property
    def retryable(self) -> bool:
        return False


class TransportError(FetchError):
    kind = FailureKind.TRANSPORT

    @property
    def retryable(self) -> bool:
        return True


class HttpStatusError(FetchError):
    kind = FailureKind.HTTP_STATUS

    def __init__(self, status_code: int, url: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(f"HTTP {status_code}: {reason or 'error'} ({url or 'unknown url'})")
        self.status_code = status_code
        self.url = url

    @property
    def retryable(self) -> bool:
        # 5xx and 429 are worth another tick, other 4xx will not fix themselves
        return self.status_code >= 500 or self.status_code == 429


class UnknownFailure(FetchError):
    kind = FailureKind.UNKNOWN
