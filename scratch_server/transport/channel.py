"""Unbounded FIFO job channel with a closable sending side."""

import threading
from collections import deque
from typing import Callable, Deque

Job = Callable[[], None]


class ChannelClosed(RuntimeError):
    """Raised when sending on, or receiving from, a closed channel."""


class JobChannel:
    """Unbounded FIFO queue whose closure is observed by receivers.

    Once closed, ``get`` keeps returning queued jobs and raises
    ChannelClosed only after the queue is empty.
    """

    def __init__(self) -> None:
        self._jobs: Deque[Job] = deque()
        self._condition = threading.Condition()
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._condition:
            return self._closed

    def pending(self) -> int:
        with self._condition:
            return len(self._jobs)

    def put(self, job: Job) -> None:
        with self._condition:
            if self._closed:
                raise ChannelClosed("Cannot send on a closed channel")
            self._jobs.append(job)
            self._condition.notify()

    def get(self) -> Job:
        with self._condition:
            while not self._jobs:
                if self._closed:
                    raise ChannelClosed("Channel closed and drained")
                self._condition.wait()
            return self._jobs.popleft()

    def close(self) -> None:
        with self._condition:
            self._closed = True
            self._condition.notify_all()


class JobSender:
    """Producing end of a JobChannel. Closing it closes the channel."""

    def __init__(self, job_channel: JobChannel) -> None:
        self._channel = job_channel

    def send(self, job: Job) -> None:
        self._channel.put(job)

    def close(self) -> None:
        self._channel.close()


class JobReceiver:
    """Consuming end of a JobChannel."""

    def __init__(self, job_channel: JobChannel) -> None:
        self._channel = job_channel

    def recv(self) -> Job:
        """Block until a job arrives; raise ChannelClosed once drained."""
        return self._channel.get()


class SharedReceiver:
    """A JobReceiver guarded by a mutex so only one worker receives at a time.

    The lock covers the receive step only and is released before the
    returned job runs.
    """

    def __init__(self, receiver: JobReceiver) -> None:
        self._receiver = receiver
        self.lock = threading.Lock()

    def recv(self) -> Job:
        with self.lock:
            return self._receiver.recv()


def channel() -> tuple[JobSender, JobReceiver]:
    """Create a connected (sender, receiver) pair."""
    job_channel = JobChannel()
    return JobSender(job_channel), JobReceiver(job_channel)
