"""Bounded-concurrency deletion of everything in a bucket.

Objects are listed, split into batches of at most 1000 keys (the service's
multi-object delete ceiling) and deleted by a fixed pool of workers. All
batches run to completion; if any failed, the lowest-numbered failure is
raised so the outcome does not depend on completion order.
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Sequence

from cosclient.errors import BatchDeleteFailed, COSError, ListingFailed
from cosclient.logging_config import get_logger, with_context
from cosclient.storage.models import DeleteResult, ObjectInfo

MAX_BATCH_SIZE = 1000
DEFAULT_WORKERS = 10

logger = get_logger(__name__)


class BulkDeleteState(str, Enum):
    IDLE = "idle"
    LISTING = "listing"
    BATCHING = "batching"
    DRAINING = "draining"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class BulkDeleteReport:
    bucket: str
    objects: int
    batches: int
    elapsed_seconds: float


def partition_keys(keys: Sequence[str], batch_size: int = MAX_BATCH_SIZE) -> list[tuple[str, ...]]:
    if batch_size <= 0 or batch_size > MAX_BATCH_SIZE:
        raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got: {batch_size}")
    return [tuple(keys[start:start + batch_size]) for start in range(0, len(keys), batch_size)]


class BulkDeleteCoordinator:
    def __init__(
        self,
        list_objects: Callable[[str], list[ObjectInfo]],
        delete_objects: Callable[[str, Sequence[str]], DeleteResult],
        batch_size: int = MAX_BATCH_SIZE,
        max_workers: int = DEFAULT_WORKERS,
    ) -> None:
        if max_workers <= 0:
            raise ValueError(f"max_workers must be > 0, got: {max_workers}")
        if batch_size <= 0 or batch_size > MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got: {batch_size}")
        self._list_objects = list_objects
        self._delete_objects = delete_objects
        self._batch_size = batch_size
        self._max_workers = max_workers
        self.state = BulkDeleteState.IDLE

    def delete_all_contents(self, bucket: str) -> BulkDeleteReport:
        log = with_context(logger, bucket=bucket)
        started_at = time.perf_counter()

        self.state = BulkDeleteState.LISTING
        try:
            objects = self._list_objects(bucket)
        except COSError as exc:
            self.state = BulkDeleteState.FAILED
            raise ListingFailed(bucket, f"Error getting bucket contents: bucket={bucket}: {exc}") from exc

        if not objects:
            self.state = BulkDeleteState.DONE
            log.info("Bucket already empty: bucket=%s", bucket)
            return BulkDeleteReport(bucket=bucket, objects=0, batches=0, elapsed_seconds=time.perf_counter() - started_at)

        self.state = BulkDeleteState.BATCHING
        batches = partition_keys([obj.key for obj in objects], self._batch_size)
        log.info(
            "Deleting bucket contents: bucket=%s objects=%s batches=%s workers=%s",
            bucket, len(objects), len(batches), self._max_workers,
        )

        self.state = BulkDeleteState.DRAINING
        with ThreadPoolExecutor(max_workers=self._max_workers, thread_name_prefix="cos-delete") as executor:
            futures: list[Future] = [
                executor.submit(self._delete_batch, bucket, number, len(batches), keys)
                for number, keys in enumerate(batches, start=1)
            ]
            wait(futures)

        failures: list[BatchDeleteFailed] = []
        for future in futures:
            exc = future.exception()
            if exc is None:
                continue
            if not isinstance(exc, BatchDeleteFailed):
                self.state = BulkDeleteState.FAILED
                raise exc
            failures.append(exc)

        elapsed_seconds = time.perf_counter() - started_at
        if failures:
            self.state = BulkDeleteState.FAILED
            first = failures[0]
            log.error(
                "Bulk delete finished with failures: bucket=%s failed_batches=%s batches=%s elapsed_seconds=%.3f",
                bucket, len(failures), len(batches), elapsed_seconds,
            )
            raise BatchDeleteFailed(
                bucket,
                batch_number=first.batch_number,
                total_batches=first.total_batches,
                keys=first.keys,
                failed_batches=len(failures),
                key_errors=first.key_errors,
                detail=str(first.__cause__ or "; ".join(first.key_errors)),
            ) from first.__cause__

        self.state = BulkDeleteState.DONE
        log.info(
            "Bulk delete complete: bucket=%s objects=%s batches=%s elapsed_seconds=%.3f",
            bucket, len(objects), len(batches), elapsed_seconds,
        )
        return BulkDeleteReport(bucket=bucket, objects=len(objects), batches=len(batches), elapsed_seconds=elapsed_seconds)

    def _delete_batch(self, bucket: str, number: int, total: int, keys: tuple[str, ...]) -> DeleteResult:
        try:
            result = self._delete_objects(bucket, keys)
        except COSError as exc:
            logger.warning("Delete batch failed: bucket=%s batch=%s/%s keys=%s error=%s", bucket, number, total, len(keys), exc)
            raise BatchDeleteFailed(bucket, batch_number=number, total_batches=total, keys=keys) from exc

        if result.errors:
            logger.warning(
                "Delete batch reported key errors: bucket=%s batch=%s/%s key_errors=%s",
                bucket, number, total, len(result.errors),
            )
            raise BatchDeleteFailed(
                bucket,
                batch_number=number,
                total_batches=total,
                keys=keys,
                key_errors=[str(error) for error in result.errors],
            )
        logger.debug("Delete batch done: bucket=%s batch=%s/%s keys=%s", bucket, number, total, len(keys))
        return result
