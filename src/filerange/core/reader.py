"""Limiter-gated reading of one work item."""

from __future__ import annotations

from typing import Any, Callable, Iterator, Optional

from filerange.core.errors import OpenError, ReadError
from filerange.core.limiter import ConcurrencyLimiter, shared_limiter
from filerange.core.models import ReadStats, WorkItem, WorkItemState
from filerange.core.policy import ExceptionPolicy, always_rethrow
from filerange.io.sources import RecordReader, RecordSource
from filerange.monitoring.metrics import READ_FAILURES, RECORDS_READ, WORK_ITEMS_FINISHED
from filerange.utils.logging import get_logger

logger = get_logger(__name__)

SourceFactory = Callable[[str], RecordSource[Any]]


class RangeReader:
    """
    Reads work items into records, one permit per open source.

    ``read`` is a generator: the permit is taken when iteration starts and
    given back, together with the source, on every way out of it (exhaustion,
    handled failure, raised failure, or ``close()`` by the consumer).
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        limiter: Optional[ConcurrencyLimiter] = None,
        exception_policy: Optional[ExceptionPolicy] = None,
        stats: Optional[ReadStats] = None,
        permit_timeout: Optional[float] = None,
    ) -> None:
        """
        Args:
            source_factory: Builds a RecordSource for a file path
            limiter: Permit pool (default: process-wide shared limiter)
            exception_policy: Decides if a failure is fatal (default: always)
            stats: Counters updated as items finish
            permit_timeout: Max seconds to wait for a permit (None = forever)
        """
        self.source_factory = source_factory
        self.limiter = limiter or shared_limiter()
        self.exception_policy = exception_policy or always_rethrow
        self.stats = stats or ReadStats()
        self.permit_timeout = permit_timeout

    def read(self, item: WorkItem) -> Iterator[Any]:
        """Yield the records of ``item`` as they are decoded."""
        log = logger.bind(path=item.file.path, start=item.range.start, end=item.range.end)
        self.stats.record_started()
        log.debug("work_item_state", state=WorkItemState.PENDING.value)

        with self.limiter.permit(timeout=self.permit_timeout):
            log.debug("work_item_state", state=WorkItemState.PERMIT_ACQUIRED.value)
            emitted = 0
            state = WorkItemState.FAILED_FATAL
            try:
                reader = self._open(item)
                if reader is None:
                    state = WorkItemState.COMPLETED
                    return
                try:
                    log.debug("work_item_state", state=WorkItemState.READING.value)
                    records = iter(reader)
                    while True:
                        try:
                            record = next(records)
                        except StopIteration:
                            break
                        except Exception as exc:
                            raise ReadError(
                                f"Failed reading {item}: {exc}", item=item
                            ) from exc
                        emitted += 1
                        yield record
                finally:
                    reader.close()
                state = WorkItemState.COMPLETED
            except GeneratorExit:
                log.info("work_item_cancelled", records_emitted=emitted)
                self.stats.record_records(emitted)
                RECORDS_READ.inc(emitted)
                raise
            except (OpenError, ReadError) as error:
                cause = error.__cause__ or error
                stage = "open" if isinstance(error, OpenError) else "read"
                READ_FAILURES.labels(stage=stage, error_type=type(cause).__name__).inc()
                try:
                    fatal = self.exception_policy(item.file, item.range, cause)
                except BaseException as policy_error:
                    log.error(
                        "exception_policy_failed",
                        stage=stage,
                        error=str(cause),
                        policy_error=repr(policy_error),
                    )
                    self._finish(state, emitted, type(policy_error).__name__)
                    raise
                if fatal:
                    log.error(
                        "work_item_failed",
                        stage=stage,
                        error=str(cause),
                        records_emitted=emitted,
                    )
                    self._finish(state, emitted, type(cause).__name__)
                    raise
                log.warning(
                    "work_item_failure_skipped",
                    stage=stage,
                    error=str(cause),
                    records_emitted=emitted,
                )
                state = WorkItemState.FAILED_HANDLED
                self._finish(state, emitted, type(cause).__name__)
                return
            except BaseException as exc:
                log.error("work_item_aborted", error=repr(exc), records_emitted=emitted)
                self._finish(state, emitted, type(exc).__name__)
                raise
            finally:
                if state is WorkItemState.COMPLETED:
                    self._finish(state, emitted)
                    log.debug("work_item_state", state=state.value, records=emitted)

    def _open(self, item: WorkItem) -> Optional[RecordReader[Any]]:
        """
        Build and start the reader for ``item``.

        Returns None for an item that has nothing to read: a non-initial range
        of a file whose source can only be read whole.
        """
        try:
            source = self.source_factory(item.file.path).with_compression(
                item.file.compression
            )
            if item.is_whole_file:
                reader = source.open()
            elif source.splittable:
                reader = source.open(item.range)
            elif item.range.start == 0:
                logger.debug("reading_whole_file", path=item.file.path, source=repr(source))
                reader = source.open()
            else:
                logger.warning(
                    "skipping_unsplittable_range",
                    path=item.file.path,
                    start=item.range.start,
                    end=item.range.end,
                )
                return None
            reader.start()
        except Exception as exc:
            raise OpenError(f"Failed opening {item}: {exc}", item=item) from exc
        logger.debug("work_item_state", path=item.file.path, state=WorkItemState.OPEN.value)
        return reader

    def _finish(self, state: WorkItemState, emitted: int, error_type: str = "") -> None:
        self.stats.record_records(emitted)
        self.stats.record_outcome(state, error_type)
        RECORDS_READ.inc(emitted)
        WORK_ITEMS_FINISHED.labels(outcome=state.value).inc()


__all__ = ["RangeReader", "SourceFactory"]
