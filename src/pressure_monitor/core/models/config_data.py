from dataclasses import dataclass
from typing import Optional

from pressure_monitor.core.models.rolling_buffer import DEFAULT_CAPACITY
from pressure_monitor.core.processing.wire_decoder import DEVICE_PORT


@dataclass
class configData:
    device_port: int = DEVICE_PORT
    buffer_capacity: int = DEFAULT_CAPACITY
    log_dir: str = "storage/pressure_logs"
    connect_timeout: float = 5.0
    # None blocks until data arrives; a number fails a stalled session
    read_timeout: Optional[float] = None
    # Max wait for a session worker to exit on disconnect
    join_timeout: float = 2.0
    emulation: bool = False
    emulation_host: str = "127.0.0.1"
    emulation_interval: float = 0.01
