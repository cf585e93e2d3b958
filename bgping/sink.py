# bgping/sink.py
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, List, Optional, Tuple

logger = logging.getLogger("bgping")


class SinkError(Exception):
    """The event log cannot be written. Always fatal."""


def timestamp(now: Optional[datetime] = None) -> str:
    t = now or datetime.now()
    return f"{t:%Y-%m-%dT%H:%M:%S}_{t.microsecond // 1000:03d}"


def format_record(message: str, ts: str) -> str:
    return f"| {message:<80}| {ts:<26}|\n"


class EventSink(ABC):
    @abstractmethod
    def record(self, message: str, timestamp: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class FileSink(EventSink):
    def __init__(self, path: str):
        self.path = path
        try:
            self._fh = open(path, "w", encoding="utf-8")
        except OSError as e:
            raise SinkError(f"failed to create log {path}: {e}") from e

    @classmethod
    def in_dir(cls, log_dir: str, name: str = "bg-ping.log") -> "FileSink":
        return cls(os.path.join(log_dir, name))

    def record(self, message: str, timestamp: str) -> None:
        try:
            self._fh.write(format_record(message, timestamp))
            self._fh.flush()
            os.fsync(self._fh.fileno())
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            raise SinkError(f"Failed to record event into the log: {e}") from e

    def close(self) -> None:
        self._fh.close()


class MemorySink(EventSink):
    def __init__(self):
        self.records: List[Tuple[str, str]] = []
        self.fail = False

    def record(self, message: str, timestamp: str) -> None:
        if self.fail:
            raise SinkError("sink is broken")
        self.records.append((message, timestamp))

    @property
    def messages(self) -> List[str]:
        return [m for m, _ in self.records]


class Recorder:
    """
    Stamps events with local time and serialises writes from every thread.

    final() writes the closing record and seals the recorder; later
    events are dropped so the closing record stays last in the log. The
    lock is reentrant because signal handlers call in from the main
    thread, possibly while it is already writing.
    """

    def __init__(self, sink: EventSink, clock: Callable[[], datetime] = datetime.now):
        self.sink = sink
        self.clock = clock
        self.sealed = False
        self._lock = threading.RLock()

    def event(self, message: str) -> None:
        with self._lock:
            if self.sealed:
                logger.debug("log closed, dropping: %s", message)
                return
            logger.info(message)
            self.sink.record(message, timestamp(self.clock()))

    def final(self, message: str) -> None:
        with self._lock:
            if self.sealed:
                return
            self.event(message)
            self.sealed = True
