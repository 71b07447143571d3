"""Fixed-size worker pool fed through a shared job channel."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from scratch_server.domain.connection_id import ConnectionLoggerAdapter
from scratch_server.transport.channel import (
    ChannelClosed,
    Job,
    JobSender,
    SharedReceiver,
    channel,
)

POOL_LOGGER = ConnectionLoggerAdapter(
    logging.getLogger("scratch_server.transport.pool"), {}
)


class PoolCreationError(ValueError):
    """Raised when a pool is requested with fewer than one worker."""

    def __init__(self, size: int) -> None:
        super().__init__(
            f"Failed to create a ThreadPool. Pool size should be >= 1, got {size}."
        )
        self.size = size


class PoolState(Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


def _worker_loop(worker_id: int, receiver: SharedReceiver) -> None:
    POOL_LOGGER.info(
        "Worker %d started",
        worker_id,
        extra={"event": "worker_started", "worker_id": worker_id},
    )
    while True:
        try:
            job = receiver.recv()
        except ChannelClosed:
            POOL_LOGGER.info(
                "Worker %d disconnected; shutting down.",
                worker_id,
                extra={"event": "worker_stopped", "worker_id": worker_id},
            )
            return

        POOL_LOGGER.info(
            "Worker %d got a job; executing.",
            worker_id,
            extra={"event": "job_received", "worker_id": worker_id},
        )
        try:
            job()
        except Exception as error:
            POOL_LOGGER.error(
                "Worker %d terminated by a failing job",
                worker_id,
                extra={
                    "event": "worker_crashed",
                    "worker_id": worker_id,
                    "error_type": type(error).__name__,
                },
                exc_info=True,
            )
            raise


@dataclass
class Worker:
    """A pool thread. ``thread`` is cleared once the worker has been joined."""

    id: int
    thread: Optional[threading.Thread]

    @classmethod
    def spawn(cls, worker_id: int, receiver: SharedReceiver) -> Optional["Worker"]:
        """Start a worker thread, or return None when the thread cannot start."""
        thread = threading.Thread(
            target=_worker_loop,
            args=(worker_id, receiver),
            name=f"worker-{worker_id}",
            daemon=False,
        )
        try:
            thread.start()
        except RuntimeError as error:
            POOL_LOGGER.warning(
                "Worker %d could not be spawned",
                worker_id,
                extra={
                    "event": "worker_spawn_failed",
                    "worker_id": worker_id,
                    "error_type": type(error).__name__,
                },
            )
            return None
        return cls(worker_id, thread)

    def join(self) -> None:
        thread, self.thread = self.thread, None
        if thread is not None:
            thread.join()


class ThreadPool:
    """Owns ``N`` workers and the sending end of their job channel.

    Shutdown closes the channel and joins every worker, so all jobs
    submitted before shutdown finish first. Use the pool as a context
    manager to get that on every exit path::

        with ThreadPool.build(4) as pool:
            pool.execute(job)
    """

    def __init__(self, workers: list[Worker], sender: JobSender) -> None:
        self._workers = workers
        self._sender: Optional[JobSender] = sender
        self._state = PoolState.RUNNING
        self._shutdown_lock = threading.Lock()

    @classmethod
    def build(cls, size: int) -> "ThreadPool":
        """Create a pool with up to ``size`` workers.

        Workers whose thread fails to start are left out, so the pool may
        end up smaller than requested.
        """
        if size < 1:
            raise PoolCreationError(size)

        sender, receiver = channel()
        shared_receiver = SharedReceiver(receiver)
        workers = []
        for worker_id in range(size):
            worker = Worker.spawn(worker_id, shared_receiver)
            if worker is not None:
                workers.append(worker)

        POOL_LOGGER.info(
            "Thread pool started",
            extra={"event": "pool_started", "pool_size": size, "spawned": len(workers)},
        )
        return cls(workers, sender)

    @property
    def state(self) -> PoolState:
        return self._state

    @property
    def workers(self) -> tuple[Worker, ...]:
        return tuple(self._workers)

    @property
    def size(self) -> int:
        return len(self._workers)

    def execute(self, job: Job) -> None:
        """Queue ``job`` for the next free worker.

        Raises ChannelClosed once shutdown has begun.
        """
        sender = self._sender
        if sender is None:
            raise ChannelClosed("Thread pool is shutting down")
        sender.send(job)

    def shutdown(self) -> None:
        """Stop accepting jobs, let workers drain the queue, then join them."""
        with self._shutdown_lock:
            if self._sender is None:
                return
            sender, self._sender = self._sender, None
            self._state = PoolState.DRAINING

        POOL_LOGGER.info(
            "Thread pool draining",
            extra={"event": "pool_draining", "pool_size": len(self._workers)},
        )
        sender.close()

        for worker in self._workers:
            POOL_LOGGER.info(
                "Shutting down worker %d",
                worker.id,
                extra={"event": "worker_joining", "worker_id": worker.id},
            )
            worker.join()

        self._state = PoolState.TERMINATED
        POOL_LOGGER.info("Thread pool terminated", extra={"event": "pool_terminated"})

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, exc_type, exc, traceback) -> None:
        self.shutdown()
