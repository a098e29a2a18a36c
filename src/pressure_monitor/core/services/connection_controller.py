import logging
import socket
import threading
from dataclasses import replace
from typing import List, Optional

from pressure_monitor.core.config_loader import config_loader
from pressure_monitor.core.event_hub import MONITOR_UPDATE, EventHub, event_hub
from pressure_monitor.core.models.config_data import configData
from pressure_monitor.core.models.connection_state import ConnectionState, ConnectionStatus, SessionState
from pressure_monitor.core.models.pressure_data import MonitorSnapshot
from pressure_monitor.core.models.rolling_buffer import DEFAULT_CAPACITY, RollingBuffer
from pressure_monitor.core.processing.wire_decoder import DEVICE_PORT
from pressure_monitor.core.services.acquisition_session import AcquisitionSession, SocketFactory
from pressure_monitor.core.services.recorder import DirectoryFileWriter, Recorder

logger = logging.getLogger(__name__)


class ConnectionController:
    """
    Command surface (connect/disconnect) and observable state of the acquisition core.

    At most one AcquisitionSession exists at a time. Observers read a MonitorSnapshot
    (state, latest reading, history) that is always replaced as a whole, and can
    subscribe to MONITOR_UPDATE on the event hub.
    """

    def __init__(
        self,
        recorder: Recorder,
        port: int = DEVICE_PORT,
        buffer_capacity: int = DEFAULT_CAPACITY,
        connect_timeout: Optional[float] = 5.0,
        read_timeout: Optional[float] = None,
        join_timeout: float = 2.0,
        socket_factory: SocketFactory = socket.create_connection,
        hub: EventHub = event_hub,
    ):
        self.recorder = recorder
        self.port = port
        self.buffer_capacity = buffer_capacity
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.join_timeout = join_timeout
        self.socket_factory = socket_factory
        self._hub = hub

        self._session: Optional[AcquisitionSession] = None
        self._snapshot = MonitorSnapshot()
        # Serializes connect/disconnect
        self._command_lock = threading.RLock()
        # Guards the snapshot swap and its dispatch
        self._state_lock = threading.RLock()

    @classmethod
    def from_config(cls, config: configData, recorder: Recorder, **kwargs) -> "ConnectionController":
        return cls(
            recorder,
            port=config.device_port,
            buffer_capacity=config.buffer_capacity,
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            join_timeout=config.join_timeout,
            **kwargs,
        )

    @property
    def session(self) -> Optional[AcquisitionSession]:
        return self._session

    def get_snapshot(self) -> MonitorSnapshot:
        with self._state_lock:
            return self._snapshot

    def get_state(self) -> ConnectionState:
        return self.get_snapshot().state

    def get_latest(self) -> Optional[float]:
        return self.get_snapshot().latest

    def get_history(self) -> List[float]:
        return list(self.get_snapshot().history)

    def connect(self, address: str) -> bool:
        """
        Start a session with the device at `address`.

        Returns False (and changes nothing) if a session is already connecting or
        connected. Raises ValueError on an empty address.
        """
        address = (address or "").strip()
        if not address:
            raise ValueError("Device address must not be empty")

        with self._command_lock:
            if self.get_state().is_active:
                logger.info(f"Connect to {address} ignored: a session is already active")
                return False

            self._release_finished_session()
            session = AcquisitionSession(
                address,
                self.recorder,
                on_state=self._on_session_state,
                on_readings=self._on_session_readings,
                port=self.port,
                buffer=RollingBuffer(self.buffer_capacity),
                connect_timeout=self.connect_timeout,
                read_timeout=self.read_timeout,
                socket_factory=self.socket_factory,
            )
            with self._state_lock:
                self._session = session
                self._set_snapshot(MonitorSnapshot(state=ConnectionState.connecting()))
            logger.info(f"Connecting to {address}:{self.port}")
            session.start()
            return True

    def disconnect(self) -> bool:
        """
        Close the active session and wait for its teardown. Returns False when there
        was nothing to disconnect.
        """
        with self._command_lock:
            session = self._session
            if session is None:
                return False

            session.close()
            if not session.join(self.join_timeout):
                logger.warning(f"{session} did not stop within {self.join_timeout}s")

            with self._state_lock:
                self._session = None
                self._set_snapshot(replace(self._snapshot, state=ConnectionState.disconnected()))
            logger.info(f"Disconnected from {session.address}:{session.port}")
            return True

    def shutdown(self):
        """Release the socket, the log file and the worker threads."""
        self.disconnect()
        logger.info("ConnectionController stopped")

    def _release_finished_session(self):
        session = self._session
        if session is not None and session.state.is_terminal():
            session.join(self.join_timeout)
            self._session = None

    def _set_snapshot(self, snapshot: MonitorSnapshot):
        # Caller holds _state_lock
        self._snapshot = snapshot
        self._hub.send_all_on_topic(MONITOR_UPDATE, snapshot)

    def _on_session_state(self, session: AcquisitionSession, state: SessionState, message: Optional[str]):
        with self._state_lock:
            if session is not self._session:
                return
            if state is SessionState.READING:
                self._set_snapshot(replace(self._snapshot, state=ConnectionState.connected()))
            elif state is SessionState.FAILED:
                self._set_snapshot(
                    replace(self._snapshot, state=ConnectionState.error(message or "Connection failed"))
                )

    def _on_session_readings(self, session: AcquisitionSession, latest: float, history: List[float]):
        with self._state_lock:
            if session is not self._session:
                return
            if self._snapshot.state.status is not ConnectionStatus.CONNECTED:
                return
            self._set_snapshot(MonitorSnapshot(state=self._snapshot.state, latest=latest, history=tuple(history)))


# Global instance
connection_controller = ConnectionController.from_config(
    config_loader.get_config(),
    Recorder(DirectoryFileWriter(config_loader.get_log_dir())),
)
