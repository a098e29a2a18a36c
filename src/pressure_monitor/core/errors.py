"""Exception taxonomy for the acquisition pipeline."""


class PressureMonitorError(Exception):
    """Base class for all acquisition errors."""


class ConnectFailure(PressureMonitorError):
    """The TCP connection to the device could not be established."""


class FramingError(PressureMonitorError):
    """A read did not yield a complete frame."""


class DecodeError(PressureMonitorError):
    """Malformed input handed to the wire decoder."""


class PersistenceError(PressureMonitorError):
    """A session log file could not be opened, written or closed."""
