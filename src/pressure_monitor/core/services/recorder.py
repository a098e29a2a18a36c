import datetime
import logging
import queue
import threading
from pathlib import Path
from typing import Iterable, List, Optional, Protocol, TextIO

from pressure_monitor.core.errors import PersistenceError
from pressure_monitor.core.models.pressure_data import ReadingBatch

logger = logging.getLogger(__name__)

FILENAME_FORMAT = "%Y-%m-%d_%H.%M.%S"

_STOP = object()


def session_filename(session_start_time: datetime.datetime) -> str:
    """Log file name for a session, e.g. 2024-05-01_13.37.00.csv"""
    return session_start_time.strftime(FILENAME_FORMAT) + ".csv"


class FileWriter(Protocol):
    """Opens the text stream a session log is appended to."""

    def open_log(self, filename: str) -> TextIO:
        ...


class DirectoryFileWriter:
    """Appends session logs to files inside a directory."""

    def __init__(self, log_dir: Path):
        self.log_dir = Path(log_dir)

    def open_log(self, filename: str) -> TextIO:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        # Append mode: reopening the same session never truncates it
        return open(self.log_dir / filename, 'a', encoding='utf-8')


class SessionLogHandle:
    """
    Log file of one acquisition session.
    Owned by the session that opened it; all file I/O happens on its writer thread.
    """

    def __init__(self, filename: str):
        self.filename = filename
        self.errors: List[PersistenceError] = []
        self.lines_written = 0
        self.closed = False
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        self._stream: Optional[TextIO] = None
        self._drop_warned = False


class Recorder:
    """
    Persists decoded readings, one decimal value per line.

    Writes run on a dedicated thread per handle so slow storage never stalls the
    socket read loop. Persistence failures are logged and kept on the handle;
    they are never raised to the caller.
    """

    def __init__(self, writer: FileWriter):
        self.writer = writer

    def open(self, session_start_time: datetime.datetime) -> SessionLogHandle:
        handle = SessionLogHandle(session_filename(session_start_time))
        handle._thread = threading.Thread(
            target=self._run, args=(handle,), name=f"recorder-{handle.filename}", daemon=True
        )
        handle._thread.start()
        return handle

    def append(self, handle: SessionLogHandle, readings: Iterable[float]) -> None:
        """Queue a batch for writing. Never blocks on storage."""
        if handle.closed:
            logger.warning(f"Dropping readings for closed log {handle.filename}")
            return
        handle._queue.put(ReadingBatch(values=tuple(readings)))

    def close(self, handle: SessionLogHandle, timeout: Optional[float] = None) -> None:
        """Write out pending batches, then flush and close the file. Idempotent."""
        if handle.closed:
            return
        handle.closed = True
        handle._queue.put(_STOP)
        if handle._thread is not None:
            handle._thread.join(timeout)
            if handle._thread.is_alive():
                logger.warning(f"Writer for {handle.filename} did not finish within {timeout}s")

    def _report(self, handle: SessionLogHandle, message: str) -> None:
        error = PersistenceError(message)
        handle.errors.append(error)
        logger.error(f"[Recorder] {error}")

    def _run(self, handle: SessionLogHandle) -> None:
        try:
            handle._stream = self.writer.open_log(handle.filename)
            logger.info(f"Recording session to {handle.filename}")
        except Exception as e:
            self._report(handle, f"Cannot open {handle.filename}: {e}")

        while True:
            item = handle._queue.get()
            if item is _STOP:
                break
            self._write_batch(handle, item)

        if handle._stream is not None:
            try:
                handle._stream.flush()
                handle._stream.close()
                logger.info(f"Closed session log {handle.filename} ({handle.lines_written} readings)")
            except Exception as e:
                self._report(handle, f"Cannot close {handle.filename}: {e}")
            handle._stream = None

    def _write_batch(self, handle: SessionLogHandle, batch: ReadingBatch) -> None:
        if handle._stream is None:
            if not handle._drop_warned:
                logger.warning(f"Log {handle.filename} unavailable, readings are not persisted")
                handle._drop_warned = True
            return
        try:
            handle._stream.write("".join(f"{value}\n" for value in batch.values))
            handle._stream.flush()
            handle.lines_written += len(batch.values)
        except Exception as e:
            self._report(handle, f"Cannot write to {handle.filename}: {e}")
