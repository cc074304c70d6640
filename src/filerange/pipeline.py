"""Read many files into one stream of records."""

from __future__ import annotations

import queue
import random
import time
from concurrent.futures import Future, ThreadPoolExecutor
from threading import Event
from typing import Any, Iterable, Iterator, List, Optional, Tuple

from filerange.config.config import ReadAllConfig
from filerange.core.constants import QUEUE_POLL_SECONDS
from filerange.core.limiter import ConcurrencyLimiter, shared_limiter
from filerange.core.models import FileHandle, ReadStats, WorkItem
from filerange.core.policy import ExceptionPolicy, always_rethrow
from filerange.core.reader import RangeReader, SourceFactory
from filerange.core.splitter import redistribute, split_into_ranges
from filerange.monitoring.metrics import FILES_SPLIT, RANGES_PRODUCED
from filerange.utils.logging import get_logger, log_context

logger = get_logger(__name__)

_RECORD = "record"
_DONE = "done"
_FAILED = "failed"

_Entry = Tuple[str, Any]


class ReadAllFromFiles:
    """
    Splits files into work items and reads them concurrently.

    Records are yielded in the order they arrive from reader threads; records
    of one work item keep their file order. One ``read`` at a time per
    instance.

    Example:
        pipeline = ReadAllFromFiles(TextLineSource, ReadAllConfig(concurrency_limit=4))
        for line in pipeline.read(match_files("/data/*.log")):
            ...
    """

    def __init__(
        self,
        source_factory: SourceFactory,
        config: Optional[ReadAllConfig] = None,
        exception_policy: Optional[ExceptionPolicy] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Args:
            source_factory: Builds a RecordSource for a file path
            config: Split/concurrency options (defaults if None)
            exception_policy: Decides if a read failure is fatal
            limiter: Permit pool (default: shared limiter for config.concurrency_limit)
            rng: Random source for redistribution
        """
        self.source_factory = source_factory
        self.config = config or ReadAllConfig()
        self.exception_policy = exception_policy or always_rethrow
        self.limiter = limiter or shared_limiter(self.config.concurrency_limit)
        self.stats = ReadStats()
        self._rng = rng
        self._stop = Event()

    def split(self, files: Iterable[FileHandle]) -> Iterator[WorkItem]:
        """
        Turn file handles into work items.

        A file whose record source cannot read sub-ranges gets exactly one
        whole-file item, so it is never read more than once.
        """
        for file in files:
            splittable = file.supports_efficient_seek and self._source_splittable(file)
            if splittable:
                items = list(
                    split_into_ranges(file, self.config.desired_bundle_size_bytes)
                )
            else:
                items = [WorkItem.whole_file(file)]
            FILES_SPLIT.labels(splittable=str(splittable).lower()).inc()
            RANGES_PRODUCED.inc(len(items))
            yield from items

    def read(self, files: Iterable[FileHandle]) -> Iterator[Any]:
        """
        Return an iterator over the records of all ``files``.

        The run is armed when ``read`` is called, so a ``stop()`` issued
        before iteration starts is honoured.

        Raises:
            SourceError: First failure the exception policy declared fatal
        """
        self._stop.clear()
        self.stats = ReadStats()
        reader = RangeReader(
            self.source_factory,
            limiter=self.limiter,
            exception_policy=self.exception_policy,
            stats=self.stats,
        )
        return self._run(reader, files)

    def stop(self) -> None:
        """Ask an in-flight ``read`` to wind down; open sources are closed."""
        self._stop.set()

    def _run(self, reader: RangeReader, files: Iterable[FileHandle]) -> Iterator[Any]:
        items: Iterable[WorkItem]
        if self.config.uses_redistribution:
            items = redistribute(self.split(files), self._rng)
        else:
            items = self.split(files)

        logger.info(
            "read_started",
            redistributed=self.config.uses_redistribution,
            concurrency_limit=self.limiter.limit,
            max_workers=self.config.max_workers,
        )
        started = time.monotonic()
        try:
            yield from self._read_items(reader, items)
        finally:
            logger.info(
                "read_finished",
                duration_seconds=round(time.monotonic() - started, 3),
                started=self.stats.started,
                completed=self.stats.completed,
                failed_handled=self.stats.failed_handled,
                failed_fatal=self.stats.failed_fatal,
                records=self.stats.records,
            )

    def _read_items(self, reader: RangeReader, items: Iterable[WorkItem]) -> Iterator[Any]:
        out: "queue.Queue[_Entry]" = queue.Queue(maxsize=self.config.output_buffer_size)
        pool = ThreadPoolExecutor(
            max_workers=self.config.max_workers, thread_name_prefix="filerange-reader"
        )
        # Items are pulled from ``items`` only as submission slots free up.
        window = self.config.max_workers * 2
        pending: List[Future[None]] = []
        source = iter(items)
        exhausted = False
        in_flight = 0
        try:
            while True:
                while not exhausted and in_flight < window and not self._stop.is_set():
                    item = next(source, None)
                    if item is None:
                        exhausted = True
                        break
                    pending.append(pool.submit(self._drain, reader, item, out))
                    in_flight += 1
                if exhausted and not in_flight:
                    return

                try:
                    kind, payload = out.get(timeout=QUEUE_POLL_SECONDS)
                except queue.Empty:
                    if self._stop.is_set():
                        logger.warning("read_stopped", unfinished=in_flight)
                        return
                    continue
                if kind == _RECORD:
                    yield payload
                elif kind == _DONE:
                    in_flight -= 1
                    pending = [f for f in pending if not f.done()]
                else:
                    raise payload
        finally:
            self._stop.set()
            for future in pending:
                future.cancel()
            pool.shutdown(wait=True)

    def _drain(self, reader: RangeReader, item: WorkItem, out: "queue.Queue[_Entry]") -> None:
        if self._stop.is_set():
            return
        with log_context(work_item=str(item)):
            records = reader.read(item)
            try:
                for record in records:
                    if not self._put(out, (_RECORD, record)):
                        return
            except BaseException as exc:
                # BaseException too: the consumer waits for a terminal entry.
                self._put(out, (_FAILED, exc))
                return
            finally:
                records.close()
        self._put(out, (_DONE, item))

    def _put(self, out: "queue.Queue[_Entry]", entry: _Entry) -> bool:
        while not self._stop.is_set():
            try:
                out.put(entry, timeout=QUEUE_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        return False

    def _source_splittable(self, file: FileHandle) -> bool:
        try:
            source = self.source_factory(file.path).with_compression(file.compression)
        except Exception as exc:
            # The reader hits the same failure and applies the policy to it.
            logger.debug("source_check_failed", path=file.path, error=str(exc))
            return False
        return source.splittable


def read_all(
    files: Iterable[FileHandle],
    source_factory: SourceFactory,
    config: Optional[ReadAllConfig] = None,
    exception_policy: Optional[ExceptionPolicy] = None,
) -> Iterator[Any]:
    """Shortcut for ``ReadAllFromFiles(...).read(files)``."""
    pipeline = ReadAllFromFiles(
        source_factory, config=config, exception_policy=exception_policy
    )
    return pipeline.read(files)


__all__ = ["ReadAllFromFiles", "read_all"]
