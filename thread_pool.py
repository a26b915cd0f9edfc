"""Bounded worker pool for accepted client sockets."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ClientAddress = tuple[str, int]
ClientHandler = Callable[[object, ClientAddress], None]


@dataclass(frozen=True, slots=True)
class _Job:
    connection: object
    address: ClientAddress


_STOP = object()


class ThreadPool:
    """A fixed set of daemon workers pulling accepted connections off a bounded queue.

    ``submit`` never blocks: it returns False when the queue is full or the
    pool is shutting down, and the caller answers the client itself.
    """

    def __init__(self, worker_count: int, queue_size: int, handler: ClientHandler) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")

        self._handler = handler
        self._worker_count = worker_count
        self._jobs: queue.Queue[object] = queue.Queue(maxsize=queue_size)
        self._workers: list[threading.Thread] = []
        self._accepting = True
        self._state_lock = threading.Lock()

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._workers)

    def start(self) -> None:
        self._workers = [
            threading.Thread(target=self._run_worker, name=f"http-worker-{n}", daemon=True)
            for n in range(self._worker_count)
        ]
        for worker in self._workers:
            worker.start()

    def submit(self, connection: object, address: ClientAddress) -> bool:
        with self._state_lock:
            if not self._accepting:
                return False
            try:
                self._jobs.put_nowait(_Job(connection, address))
            except queue.Full:
                return False
        return True

    def shutdown(self, timeout: float = 1.0) -> None:
        with self._state_lock:
            if not self._accepting:
                return
            self._accepting = False

        # Connections nobody picked up yet are closed instead of served.
        self._close_queued_jobs()
        for _ in self._workers:
            try:
                self._jobs.put(_STOP, timeout=timeout)
            except queue.Full:
                logger.warning("Worker queue still full at shutdown; leaving busy workers")
                break
        for worker in self._workers:
            worker.join(timeout=timeout)

    def _close_queued_jobs(self) -> None:
        while True:
            try:
                job = self._jobs.get_nowait()
            except queue.Empty:
                return
            close = getattr(job.connection, "close", None)
            if close is not None:
                try:
                    close()
                except OSError:
                    logger.debug("Error closing queued connection from %s", job.address[0])

    def _run_worker(self) -> None:
        while True:
            job = self._jobs.get()
            if job is _STOP:
                return
            try:
                self._handler(job.connection, job.address)
            except Exception:
                logger.exception("Unhandled error in worker thread")
