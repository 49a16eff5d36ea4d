"""Audit sinks — where decisions go after they are made.

A sink must never change a decision. Write failures are counted and reported
on the ``trustgate.audit.errors`` logger instead of being raised into the
authentication path.
"""

from __future__ import annotations

import asyncio
import logging
import queue
import threading
from pathlib import Path
from typing import Protocol

from trustgate.audit.record import AuditRecord
from trustgate.errors import AuditWriteFailure
from trustgate.policy.models import ConnectionContext, Decision

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("trustgate.audit")
error_logger = logging.getLogger("trustgate.audit.errors")


class AuditSink(Protocol):
    """Protocol for decision audit sinks."""

    def record(self, decision: Decision, context: ConnectionContext) -> None:
        """Record one decision. Must not raise into the caller's auth path."""
        ...


class _FailureCounter:
    def __init__(self) -> None:
        self._failures = 0
        self._failures_lock = threading.Lock()

    @property
    def failures(self) -> int:
        return self._failures

    def _fail(self, message: str, *args: object) -> None:
        with self._failures_lock:
            self._failures += 1
        error_logger.error(message, *args)


class LoggingAuditSink(_FailureCounter):
    """Writes each decision as one line on the ``trustgate.audit`` logger."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        super().__init__()
        self._log = log or audit_logger

    def record(self, decision: Decision, context: ConnectionContext) -> None:
        try:
            line = AuditRecord.from_decision(decision, context).to_line()
            self._log.info(line)
        except Exception as exc:
            self._fail("Audit log write failed: %s", exc)


class FanoutAuditSink(_FailureCounter):
    """Forwards each decision to several sinks; one failing does not stop the rest."""

    def __init__(self, *sinks: AuditSink) -> None:
        super().__init__()
        self._sinks = sinks

    def record(self, decision: Decision, context: ConnectionContext) -> None:
        for sink in self._sinks:
            try:
                sink.record(decision, context)
            except Exception as exc:
                self._fail("Audit sink %s failed: %s", type(sink).__name__, exc)


class SqliteAuditSink(_FailureCounter):
    """Append-only SQLite audit trail written from a background thread.

    ``record()`` only enqueues, so the caller never waits on disk. One worker
    thread drains the queue in arrival order. A full queue, a closed sink, or
    a failed insert counts as a failure.

    Usage:
        with SqliteAuditSink(path) as sink:
            evaluator = PolicyEvaluator(policy, sink=sink)
            ...
    """

    def __init__(self, db_path: str | Path, max_queue: int = 1000) -> None:
        super().__init__()
        self._db_path = Path(db_path)
        self._queue: queue.Queue[AuditRecord | None] = queue.Queue(maxsize=max_queue)
        self._lock = threading.Lock()
        self._closed = False
        self._written = 0
        self._thread = threading.Thread(
            target=self._run,
            name="trustgate-audit-writer",
            daemon=True,
        )

    @property
    def written(self) -> int:
        return self._written

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> SqliteAuditSink:
        self._thread.start()
        return self

    def record(self, decision: Decision, context: ConnectionContext) -> None:
        rec = AuditRecord.from_decision(decision, context)
        with self._lock:
            if self._closed:
                self._fail("Audit sink closed, dropped record: %s", rec.to_line())
                return
            try:
                self._queue.put_nowait(rec)
            except queue.Full:
                self._fail("Audit queue full, dropped record: %s", rec.to_line())

    def close(self, timeout: float = 5.0) -> None:
        """Stop accepting records, write what is queued, and stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True

        if not self._thread.is_alive():
            self._discard_pending("Audit writer not running, dropped record: %s")
            return
        try:
            self._queue.put(None, timeout=timeout)
        except queue.Full:
            error_logger.error("Audit writer did not drain its queue before close")
            self._discard_pending("Audit writer too slow, dropped record: %s")
            return
        self._thread.join(timeout=timeout)
        if self._thread.is_alive():
            error_logger.error(
                "Audit writer still busy after %.1fs with %d record(s) pending",
                timeout,
                self.pending,
            )

    def __enter__(self) -> SqliteAuditSink:
        return self.start()

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _run(self) -> None:
        loop = asyncio.new_event_loop()
        try:
            loop.run_until_complete(self._drain())
        except Exception:
            error_logger.exception("Audit writer stopped unexpectedly")
        finally:
            loop.close()

    async def _drain(self) -> None:
        # Local import: storage.repos imports trustgate.audit
        from trustgate.storage.db import get_db
        from trustgate.storage.repos import AuditRepo

        try:
            db = await get_db(self._db_path)
        except Exception as exc:
            error_logger.error("Cannot open audit database %s: %s", self._db_path, exc)
            self._discard_all("Audit database unavailable, dropped record: %s")
            return

        repo = AuditRepo(db)
        try:
            while True:
                # Only this thread uses the loop, so a blocking get is fine
                rec = self._queue.get()
                if rec is None:
                    break
                try:
                    await repo.append(rec)
                    self._written += 1
                except AuditWriteFailure as exc:
                    self._fail("%s", exc)
                except Exception as exc:
                    self._fail(
                        "Audit write failed for record %s: %r", rec.to_line(), exc
                    )
        finally:
            try:
                await db.close()
            except Exception as exc:
                error_logger.error("Error closing audit database: %s", exc)
        logger.debug("Audit writer stopped after %d record(s)", self._written)

    def _discard_pending(self, message: str) -> None:
        while True:
            try:
                rec = self._queue.get_nowait()
            except queue.Empty:
                return
            if rec is not None:
                self._fail(message, rec.to_line())

    def _discard_all(self, message: str) -> None:
        # Blocks until close() sends the stop marker
        while True:
            rec = self._queue.get()
            if rec is None:
                return
            self._fail(message, rec.to_line())
