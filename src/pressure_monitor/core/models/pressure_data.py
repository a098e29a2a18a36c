"""
Pressure data models.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from pressure_monitor.core.models.connection_state import ConnectionState


@dataclass(frozen=True)
class ReadingBatch:
    """
    One decoded frame of readings (kPa), in wire order.
    """
    values: Tuple[float, ...]


@dataclass(frozen=True)
class MonitorSnapshot:
    """
    Everything an observer sees, published as one unit.
    `history` ends with `latest` whenever a reading has been received.
    """
    state: ConnectionState = field(default_factory=ConnectionState.disconnected)
    latest: Optional[float] = None
    history: Tuple[float, ...] = ()
