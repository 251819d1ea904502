"""Error kinds surfaced by the ledger and the user service."""

from __future__ import annotations


class LedgerError(Exception):
    """Base class for all viewerledger errors."""


class StoreError(LedgerError):
    """A database read or write failed."""


class StoreUnavailable(StoreError):
    """No connection could be acquired from the pool."""


class UpstreamUnavailable(LedgerError):
    """The upstream message stream could not be reached or was dropped."""

    kind = "unavailable"


class ServiceError(LedgerError):
    """An error returned to user service callers.

    ``kind`` is the machine-readable error code, ``message`` the
    human-readable text placed in the response.
    """

    kind: str = "internal"
    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(ServiceError):
    kind = "not_found"
    status_code = 404


class Internal(ServiceError):
    kind = "internal"
    status_code = 500


class Unimplemented(ServiceError):
    kind = "unimplemented"
    status_code = 501
