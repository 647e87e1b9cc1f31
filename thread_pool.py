"""Bounded worker pool for accepted client sockets."""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

ClientAddress = tuple[str, int]
ClientJob = tuple[object, ClientAddress]
ClientHandler = Callable[[object, ClientAddress], None]

_STOP = None


class ThreadPool:
    """Fixed-size set of worker threads fed from a bounded queue.

    ``submit`` never blocks: when the queue is full it returns False and the
    caller decides how to turn the client away.
    """

    def __init__(
        self,
        worker_count: int,
        queue_size: int,
        handler: ClientHandler,
        *,
        name_prefix: str = "lime-worker",
    ) -> None:
        if worker_count <= 0:
            raise ValueError("worker_count must be positive")
        if queue_size <= 0:
            raise ValueError("queue_size must be positive")

        self._handler = handler
        self._name_prefix = name_prefix
        self._worker_count = worker_count
        self._jobs: queue.Queue[ClientJob | None] = queue.Queue(maxsize=queue_size)
        self._threads: list[threading.Thread] = []
        self._closed = threading.Event()
        self._lock = threading.Lock()

    @property
    def worker_count(self) -> int:
        return self._worker_count

    @property
    def threads(self) -> tuple[threading.Thread, ...]:
        return tuple(self._threads)

    def start(self) -> None:
        with self._lock:
            if self._threads:
                return
            for index in range(self._worker_count):
                worker = threading.Thread(
                    target=self._run_worker,
                    name=f"{self._name_prefix}-{index}",
                    daemon=True,
                )
                self._threads.append(worker)
                worker.start()

    def submit(self, client_socket: object, address: ClientAddress) -> bool:
        if self._closed.is_set():
            return False
        try:
            self._jobs.put_nowait((client_socket, address))
        except queue.Full:
            return False
        return True

    def shutdown(self, *, join_timeout: float = 1.0) -> None:
        with self._lock:
            if self._closed.is_set():
                return
            self._closed.set()

        for _ in self._threads:
            # workers exit on the sentinel once the queued jobs ahead of it are done
            self._jobs.put(_STOP)
        for thread in self._threads:
            thread.join(timeout=join_timeout)

    def _run_worker(self) -> None:
        while True:
            job = self._jobs.get()
            try:
                if job is _STOP:
                    return
                client_socket, address = job
                try:
                    self._handler(client_socket, address)
                except Exception:
                    logger.exception("Unhandled error while serving %s", address)
            finally:
                self._jobs.task_done()
