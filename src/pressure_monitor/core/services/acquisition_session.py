import datetime
import logging
import socket
import threading
from typing import Callable, List, Optional

from pressure_monitor.core.errors import ConnectFailure, FramingError, PressureMonitorError
from pressure_monitor.core.models.connection_state import SessionState
from pressure_monitor.core.models.rolling_buffer import RollingBuffer
from pressure_monitor.core.processing.wire_decoder import DEVICE_PORT, FRAME_SIZE, decode
from pressure_monitor.core.services.recorder import Recorder, SessionLogHandle

logger = logging.getLogger(__name__)

SocketFactory = Callable[..., socket.socket]
StateCallback = Callable[["AcquisitionSession", SessionState, Optional[str]], None]
ReadingsCallback = Callable[["AcquisitionSession", float, List[float]], None]


class AcquisitionSession:
    """
    One TCP connection to the pressure device, from connect to close or failure.

    The read loop runs on its own thread: read a 20-byte frame, decode it, push the
    readings into the rolling buffer, queue them for the recorder, then publish the
    latest value with a buffer snapshot. Sessions are single use.
    """

    def __init__(
        self,
        address: str,
        recorder: Recorder,
        on_state: StateCallback,
        on_readings: ReadingsCallback,
        port: int = DEVICE_PORT,
        buffer: Optional[RollingBuffer] = None,
        connect_timeout: Optional[float] = 5.0,
        read_timeout: Optional[float] = None,
        socket_factory: SocketFactory = socket.create_connection,
        clock: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        self.address = address
        self.port = port
        self.buffer = buffer if buffer is not None else RollingBuffer()
        self.state = SessionState.OPENING
        self.error: Optional[str] = None
        self.frames_received = 0
        self.log_handle: Optional[SessionLogHandle] = None

        self._recorder = recorder
        self._on_state = on_state
        self._on_readings = on_readings
        self._connect_timeout = connect_timeout
        self._read_timeout = read_timeout
        self._socket_factory = socket_factory
        self._clock = clock

        self._sock: Optional[socket.socket] = None
        self._closing = threading.Event()
        # Guards the closing flag against publication and socket hand-over
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    def __repr__(self) -> str:
        return f"AcquisitionSession({self.address}:{self.port}, {self.state.name})"

    def start(self) -> None:
        """Run the session on a dedicated worker thread."""
        if self._thread is not None:
            raise RuntimeError("Session already started; create a new session to reconnect")
        self._thread = threading.Thread(
            target=self.run, name=f"acquisition-{self.address}:{self.port}", daemon=True
        )
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker to exit. Returns True when it has."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def close(self) -> None:
        """
        Request an intentional close. Unblocks a pending read by shutting the socket
        down; no reading is published once this returns.
        """
        with self._lock:
            if self._closing.is_set():
                return
            self._closing.set()
            if not self.state.is_terminal():
                self.state = SessionState.CLOSING
            sock = self._sock
        logger.info(f"Closing session with {self.address}:{self.port}")
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as e:
                # Peer already gone
                logger.debug(f"Socket shutdown for {self.address}: {e}")

    def run(self) -> None:
        """Session body: OPENING -> READING -> CLOSED or FAILED."""
        outcome = SessionState.CLOSED
        reason: Optional[str] = None
        try:
            self._connect()
            if not self._closing.is_set():
                self.log_handle = self._recorder.open(self._clock())
                if self._enter_reading():
                    self._read_loop()
        except (OSError, PressureMonitorError) as e:
            if not self._closing.is_set():
                outcome, reason = SessionState.FAILED, str(e) or e.__class__.__name__
                logger.error(f"Session with {self.address}:{self.port} failed: {reason}")
        except Exception as e:
            outcome, reason = SessionState.FAILED, f"Unexpected error: {e}"
            logger.exception(f"Session with {self.address}:{self.port} crashed")
        finally:
            self._release()
        self._set_state(outcome, reason)

    def _connect(self) -> None:
        try:
            sock = self._socket_factory((self.address, self.port), timeout=self._connect_timeout)
        except OSError as e:
            raise ConnectFailure(f"Cannot connect to {self.address}:{self.port}: {e}") from e
        sock.settimeout(self._read_timeout)
        with self._lock:
            self._sock = sock
        logger.info(f"Connected to pressure device at {self.address}:{self.port}")

    def _enter_reading(self) -> bool:
        with self._lock:
            if self._closing.is_set():
                return False
            self.state = SessionState.READING
            self._on_state(self, SessionState.READING, None)
        return True

    def _read_loop(self) -> None:
        while not self._closing.is_set():
            frame = self._read_frame()
            readings = decode(frame)
            self.buffer.extend(readings)
            self._recorder.append(self.log_handle, readings)
            self.frames_received += 1
            self._publish(readings[-1])

    def _read_frame(self) -> bytes:
        """
        Block until a full frame arrives. TCP may split a frame across reads.

        With the default read_timeout=None a device that goes silent, including
        partway through a frame, blocks here until close() shuts the socket down.
        Set read_timeout in the config to fail such a session instead.
        """
        data = bytearray()
        while len(data) < FRAME_SIZE:
            chunk = self._sock.recv(FRAME_SIZE - len(data))
            if not chunk:
                if data:
                    raise FramingError(
                        f"Connection closed mid-frame ({len(data)} of {FRAME_SIZE} bytes)"
                    )
                raise FramingError("Connection closed by device")
            data.extend(chunk)
        return bytes(data)

    def _publish(self, latest: float) -> None:
        with self._lock:
            if self._closing.is_set():
                return
            self._on_readings(self, latest, self.buffer.snapshot())

    def _set_state(self, state: SessionState, message: Optional[str] = None) -> None:
        self.state = state
        self.error = message
        logger.debug(f"Session {self.address}:{self.port} -> {state.name}")
        self._on_state(self, state, message)

    def _release(self) -> None:
        with self._lock:
            sock, self._sock = self._sock, None
        if sock is not None:
            try:
                sock.close()
            except OSError as e:
                logger.warning(f"Error closing socket to {self.address}: {e}")
        if self.log_handle is not None:
            self._recorder.close(self.log_handle)
