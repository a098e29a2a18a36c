import logging
import math
import random
import socket
import threading
import time
from typing import List, Optional

from pressure_monitor.core.processing.wire_decoder import ADC_FULL_SCALE, DEVICE_PORT, SAMPLES_PER_FRAME, encode

logger = logging.getLogger(__name__)


class DeviceEmulator:
    """
    Local TCP server speaking the pressure device wire protocol.

    Streams frames of synthetic ADC codes (sine wave + noise) to every client
    until the client disconnects or the emulator is stopped.
    """

    def __init__(self, host: str = "127.0.0.1", port: int = DEVICE_PORT, interval: float = 0.01,
                 frame_limit: Optional[int] = None):
        self.host = host
        self.port = port
        self.interval = interval
        # Close each client after this many frames (None: stream forever)
        self.frame_limit = frame_limit
        self.running = False
        self._server: Optional[socket.socket] = None
        self._thread: Optional[threading.Thread] = None
        self._clients: List[socket.socket] = []
        self._lock = threading.Lock()

    @property
    def address(self) -> tuple:
        """Bound (host, port); port is resolved when started with port=0."""
        if self._server is None:
            return (self.host, self.port)
        return self._server.getsockname()[:2]

    def start(self):
        if self.running:
            return
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server.bind((self.host, self.port))
        server.listen()
        server.settimeout(0.2)
        self._server = server
        self.running = True
        self._thread = threading.Thread(target=self._accept_loop, name="device-emulator", daemon=True)
        self._thread.start()
        logger.info(f"DeviceEmulator listening on {self.address[0]}:{self.address[1]}")

    def stop(self):
        self.running = False
        if self._thread:
            self._thread.join()
            self._thread = None
        with self._lock:
            clients, self._clients = self._clients, []
        for client in clients:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                logger.debug("Emulator client already disconnected")
            client.close()
        if self._server is not None:
            self._server.close()
            self._server = None
        logger.info("DeviceEmulator stopped")

    def _accept_loop(self):
        while self.running:
            try:
                client, peer = self._server.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logger.error(f"DeviceEmulator accept failed: {e}")
                break
            logger.info(f"DeviceEmulator client connected from {peer[0]}:{peer[1]}")
            with self._lock:
                self._clients.append(client)
            threading.Thread(target=self._stream, args=(client,), daemon=True).start()

    def _stream(self, client: socket.socket):
        start_time = time.time()
        sent = 0
        try:
            while self.running and (self.frame_limit is None or sent < self.frame_limit):
                client.sendall(encode(self._emulate_codes(time.time() - start_time)))
                sent += 1
                time.sleep(self.interval)
        except OSError as e:
            logger.info(f"DeviceEmulator client gone: {e}")
        finally:
            with self._lock:
                if client in self._clients:
                    self._clients.remove(client)
            client.close()

    @staticmethod
    def _emulate_codes(elapsed: float) -> List[int]:
        codes = []
        for i in range(SAMPLES_PER_FRAME):
            phase = elapsed + i * 0.001
            code = 2048 + 1500 * math.sin(phase) + random.uniform(-20, 20)
            codes.append(int(min(max(code, 0), ADC_FULL_SCALE)))
        return codes
