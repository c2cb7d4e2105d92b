"""Exception hierarchy for the object storage client.

Every error raised by the client derives from :class:`COSError`, so callers
can catch the whole family at once or pick out a specific failure.
"""

from __future__ import annotations

from typing import Sequence


class COSError(RuntimeError):
    """Base class for object storage client failures."""


class TransportError(COSError):
    """A request failed at the network level or returned a non-2xx status.

    ``status`` is ``None`` when no response was received.
    """

    def __init__(
        self,
        message: str,
        *,
        method: str | None = None,
        url: str | None = None,
        status: int | None = None,
        reason: str | None = None,
        body: bytes = b"",
    ) -> None:
        super().__init__(message)
        self.method = method
        self.url = url
        self.status = status
        self.reason = reason
        self.body = body

    @property
    def body_text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class AuthExchangeFailed(COSError):
    """The identity service did not hand out a usable token."""


class TopologyFetchFailed(COSError):
    """The endpoint discovery document could not be fetched or parsed."""


class BucketNotFound(COSError):
    def __init__(self, bucket: str) -> None:
        super().__init__(f"Can't find bucket: {bucket}")
        self.bucket = bucket


class LocationParseFailed(COSError):
    def __init__(self, location: str) -> None:
        super().__init__(f"Can't split location constraint: {location!r}")
        self.location = location


class EndpointNotFound(COSError):
    """No public endpoint exists for a deployment type / region pair."""


class ListingFailed(COSError):
    def __init__(self, bucket: str, message: str | None = None) -> None:
        super().__init__(message or f"Error getting bucket contents: bucket={bucket}")
        self.bucket = bucket


class BatchDeleteFailed(COSError):
    """A multi-object delete batch failed.

    Raised by bulk deletion for the lowest-numbered failed batch. Other batches
    ran to completion, so some objects may remain in the bucket.
    """

    def __init__(
        self,
        bucket: str,
        *,
        batch_number: int,
        total_batches: int,
        keys: Sequence[str],
        failed_batches: int = 1,
        key_errors: Sequence[str] = (),
        detail: str = "",
    ) -> None:
        message = (
            f"Error deleting bucket contents: bucket={bucket} batch={batch_number}/{total_batches} "
            f"keys={len(keys)} failed_batches={failed_batches}; some objects may remain"
        )
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
        self.bucket = bucket
        self.batch_number = batch_number
        self.total_batches = total_batches
        self.keys = tuple(keys)
        self.failed_batches = failed_batches
        self.key_errors = tuple(key_errors)


def add_context(error: COSError, context: str) -> COSError:
    """Return a copy of ``error`` with ``context`` prepended to its message.

    The copy keeps the original type and attributes (status, bucket, ...), so
    callers can still catch and inspect it as before.
    """
    wrapped = type(error).__new__(type(error))
    wrapped.__dict__.update(error.__dict__)
    wrapped.args = (f"{context}: {error}",)
    return wrapped
