"""Producer/consumer streaming pipeline.

A producer runs on its own thread and sends rows into a bounded channel; the
caller drives a consumer on the receiving end. Rows are plain lists of strings
whose positions match the producer's column names.
"""

from __future__ import annotations

import abc
import logging
import queue
import threading
from typing import Iterator, List, Optional, Sequence, Tuple

from .errors import ChannelClosed, RowSchemaError
from .models import Row

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 400

_END = object()


class Sender:
    """Sending end of a bounded row channel."""

    _POLL_SECONDS = 0.1

    def __init__(
        self,
        rows: "queue.Queue[object]",
        disconnected: threading.Event,
        width: Optional[int],
    ) -> None:
        self._rows = rows
        self._disconnected = disconnected
        self._width = width
        self._closed = False

    def _put(self, item: object) -> None:
        # Poll so a producer blocked on a full queue notices a departed receiver.
        while True:
            if self._disconnected.is_set():
                raise ChannelClosed("receiver disconnected")
            try:
                self._rows.put(item, timeout=self._POLL_SECONDS)
                return
            except queue.Full:
                continue

    def send(self, row: Sequence[str]) -> None:
        """Send one row, blocking while the channel is full.

        Raises:
            RowSchemaError: If the row does not match the declared width or
                contains a non-string field.
            ChannelClosed: If the receiver has disconnected.
        """
        if self._closed:
            raise ChannelClosed("sender already closed")
        if self._width is not None and len(row) != self._width:
            raise RowSchemaError(f"Row has {len(row)} fields, expected {self._width}: {list(row)!r}")
        if not all(isinstance(field, str) for field in row):
            raise RowSchemaError(f"Row fields must be strings: {list(row)!r}")
        self._put(list(row))

    def close(self) -> None:
        """Signal end-of-stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._put(_END)
        except ChannelClosed:
            pass


class Receiver:
    """Receiving end of a bounded row channel."""

    def __init__(
        self,
        rows: "queue.Queue[object]",
        disconnected: threading.Event,
        task: Optional[ProducerTask] = None,
    ) -> None:
        self._rows = rows
        self._disconnected = disconnected
        self._task = task
        self._finished = False

    @property
    def task(self) -> Optional[ProducerTask]:
        """Completion handle of the producer feeding this channel, if any."""
        return self._task

    def wait(self, timeout: Optional[float] = None) -> None:
        """Wait for the producer feeding this channel and re-raise its error.

        A channel made by ``channel()`` has no producer task; waiting on it
        returns immediately.
        """
        if self._task is not None:
            self._task.result(timeout)

    def recv(self) -> Optional[Row]:
        """Return the next row, or ``None`` once the sender has closed."""
        if self._finished:
            return None
        item = self._rows.get()
        if item is _END:
            self._finished = True
            return None
        return item  # type: ignore[return-value]

    def __iter__(self) -> Iterator[Row]:
        while True:
            row = self.recv()
            if row is None:
                return
            yield row

    def close(self) -> None:
        """Stop listening; the producer's next send raises ``ChannelClosed``."""
        self._disconnected.set()
        self._finished = True
        while True:
            try:
                self._rows.get_nowait()
            except queue.Empty:
                break


def _bounded_queue(capacity: int) -> Tuple["queue.Queue[object]", threading.Event]:
    if capacity <= 0:
        raise ValueError("Channel capacity must be greater than 0.")
    return queue.Queue(maxsize=capacity), threading.Event()


def channel(capacity: int = DEFAULT_CAPACITY, width: Optional[int] = None) -> Tuple[Sender, Receiver]:
    """Create a bounded FIFO channel of rows.

    ``width`` fixes the number of fields every row must have.
    """
    rows, disconnected = _bounded_queue(capacity)
    return Sender(rows, disconnected, width), Receiver(rows, disconnected)


class Producer(abc.ABC):
    """A unit of work that emits rows, one per logical record."""

    @abc.abstractmethod
    def column_names(self) -> List[str]:
        """Return the fixed column names describing every emitted row."""

    @abc.abstractmethod
    def run(self, sender: Sender) -> None:
        """Send every row on ``sender``. Upstream errors propagate."""


class Consumer(abc.ABC):
    """A sink that reads rows until the channel closes."""

    @abc.abstractmethod
    def consume(self, receiver: Receiver, column_names: List[str]) -> None:
        """Write a header from ``column_names`` and then every received row."""


class ProducerTask:
    """Completion handle for a producer running on a background thread."""

    def __init__(self, producer: Producer, sender: Sender) -> None:
        self._producer = producer
        self._sender = sender
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self._run,
            name=f"producer-{type(producer).__name__}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def _run(self) -> None:
        name = type(self._producer).__name__
        try:
            self._producer.run(self._sender)
        except ChannelClosed:
            logger.debug("Receiver went away; stopping producer", extra={"producer": name})
        except Exception as exc:  # surfaced through result()
            logger.error("Producer %s failed: %s", name, exc, extra={"producer": name})
            self._error = exc
        finally:
            self._sender.close()

    def result(self, timeout: Optional[float] = None) -> None:
        """Wait for the producer and re-raise its error, if any."""
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError(f"Producer {type(self._producer).__name__} is still running")
        if self._error is not None:
            raise self._error


def run_producer(producer: Producer, capacity: int = DEFAULT_CAPACITY) -> Tuple[List[str], Receiver]:
    """Launch ``producer`` on a background thread.

    Returns the producer's column names, read before launch, and the
    receiving end of its channel. The channel is closed when the producer
    finishes, whether or not it succeeded; ``receiver.wait()`` reports how
    it ended.
    """
    column_names = list(producer.column_names())
    rows, disconnected = _bounded_queue(capacity)
    task = ProducerTask(producer, Sender(rows, disconnected, len(column_names)))
    receiver = Receiver(rows, disconnected, task)
    task.start()
    return column_names, receiver
