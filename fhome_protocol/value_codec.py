#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Encoding and decoding of cell values.

All device values travel as lowercase hex strings with a "0x" prefix. The encoders
saturate out-of-range inputs to the nearest valid device value instead of failing, so
decode(encode(x)) == x holds only inside the valid domain of each value kind:

    lighting:      0..100 (percent)  <->  "0x6000".."0x6064"
    temperature:   12.0..28.0 (°C)   <->  "0xa078".."0xa118"
"""

from __future__ import annotations

import math

from .internal_types import *
from .exceptions import ParseError

VALUE_TOGGLE = "0x4001"
"""The value that toggles a binary cell (light, gate, etc.) between on and off."""

LIGHTING_BASE_VALUE = 0x6000
LIGHTING_MIN = 0
LIGHTING_MAX = 100

TEMPERATURE_BASE_VALUE = 0xa078 - 12 * 10
"""The raw value that represents 0 °C. Each 0.1 °C adds one."""

TEMPERATURE_MIN = 12.0
TEMPERATURE_MAX = 28.0

TEMPERATURE_UNIT_SUFFIX = "°C"

def _saturate(value: float, low: float, high: float) -> float:
    """Clamps value to [low, high]. NaN maps to low; infinities map to the nearest bound."""
    if math.isnan(value):
        return low
    return min(max(value, low), high)

def _format_hex(value: int) -> str:
    return f"0x{value:x}"

def _parse_hex(value: str) -> int:
    digits = value[2:] if value.startswith("0x") else value
    try:
        return int(digits, 16)
    except ValueError as e:
        raise ParseError(f"failed to parse int from {value!r}") from e

def encode_toggle() -> str:
    """Returns the value that toggles a binary cell."""
    return VALUE_TOGGLE

def encode_lighting(percent: int) -> str:
    """Encodes a lighting level in percent.

    Examples:
        0 -> "0x6000", 50 -> "0x6032", 100 -> "0x6064", -5 -> "0x6000", 150 -> "0x6064"
        NaN -> "0x6000"
    """
    percent = int(_saturate(float(percent), LIGHTING_MIN, LIGHTING_MAX))
    return _format_hex(LIGHTING_BASE_VALUE + percent)

def decode_lighting(value: str) -> int:
    """Decodes a lighting value into percent. Raises ParseError if value is not hex."""
    return _parse_hex(value) - LIGHTING_BASE_VALUE

def encode_temperature(celsius: float) -> str:
    """Encodes a temperature set point in °C. Fractions are rounded half-up to 0.1 °C. NaN
       encodes as the 12 °C minimum.

    Examples:
        12 -> 40960 + 12 * 10 -> 41080 -> "0xa078"
        25 -> 40960 + 25 * 10 -> 41210 -> "0xa0fa"
        28 -> 40960 + 28 * 10 -> 41240 -> "0xa118"
    """
    celsius = _saturate(float(celsius), TEMPERATURE_MIN, TEMPERATURE_MAX)
    raw = math.floor(TEMPERATURE_BASE_VALUE + celsius * 10 + 0.5)
    return _format_hex(raw)

def decode_temperature(value: str) -> float:
    """Decodes a temperature value into °C.

    Examples:
        "0xa005" -> 0.5, "0xa078" -> 12.0, "0xa118" -> 28.0
    """
    return (_parse_hex(value) - TEMPERATURE_BASE_VALUE) / 10

def decode_temperature_from_display_string(value: str) -> float:
    """Parses a temperature as displayed to users, e.g. "24,0°C" -> 24.0.

    This is not a protocol hex value; it is the "DVS" text the service sends alongside the raw value.
    """
    v = value.strip()
    if v.endswith(TEMPERATURE_UNIT_SUFFIX):
        v = v[:-len(TEMPERATURE_UNIT_SUFFIX)]
    v = v.strip().replace(",", ".")
    try:
        return float(v)
    except ValueError as e:
        raise ParseError(f"failed to parse float from {value!r}") from e
