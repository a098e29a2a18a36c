"""
Wire format of the pressure device.

A frame is 20 bytes: 10 little-endian signed 16-bit ADC codes.
Each code is converted to kPa with the fixed sensor calibration.
"""
import struct
from typing import List

from pressure_monitor.core.errors import DecodeError

DEVICE_PORT = 9000
SAMPLES_PER_FRAME = 10
FRAME_SIZE = SAMPLES_PER_FRAME * 2

ADC_FULL_SCALE = 4095.0
REFERENCE_VOLTAGE = 3.3
SHUNT_RESISTANCE = 10000.0
SENSOR_GAIN = 2.8889
KPA_SCALE = 1_000_000.0
KPA_OFFSET = 17.0411

_FRAME = struct.Struct(f"<{SAMPLES_PER_FRAME}h")


def calibrate(raw: int) -> float:
    """Convert one ADC code to a pressure in kPa."""
    current = (1 - raw / ADC_FULL_SCALE) * REFERENCE_VOLTAGE / SHUNT_RESISTANCE
    return current * SENSOR_GAIN * KPA_SCALE + KPA_OFFSET


def decode(buffer: bytes) -> List[float]:
    """
    Decode one frame into 10 readings, in wire order.

    Raises:
        DecodeError: if the buffer is not exactly FRAME_SIZE bytes long
    """
    if len(buffer) != FRAME_SIZE:
        raise DecodeError(f"Expected a {FRAME_SIZE}-byte frame, got {len(buffer)} bytes")
    return [calibrate(raw) for raw in _FRAME.unpack(bytes(buffer))]


def encode(raw_values: List[int]) -> bytes:
    """Pack 10 ADC codes into a frame. Used by the device emulator."""
    if len(raw_values) != SAMPLES_PER_FRAME:
        raise ValueError(f"Expected {SAMPLES_PER_FRAME} values, got {len(raw_values)}")
    return _FRAME.pack(*raw_values)
