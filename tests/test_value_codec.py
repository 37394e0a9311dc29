import math

import pytest

from fhome_protocol import ParseError
from fhome_protocol.value_codec import (
    decode_lighting,
    decode_temperature,
    decode_temperature_from_display_string,
    encode_lighting,
    encode_temperature,
    encode_toggle,
)


def test_toggle_value():
    assert encode_toggle() == "0x4001"


@pytest.mark.parametrize("percent, expected", [(0, "0x6000"), (50, "0x6032"), (100, "0x6064")])
def test_encode_lighting(percent, expected):
    assert encode_lighting(percent) == expected


def test_encode_lighting_saturates():
    assert encode_lighting(-5) == "0x6000"
    assert encode_lighting(150) == "0x6064"


def test_lighting_round_trip_within_domain():
    for percent in range(0, 101):
        assert decode_lighting(encode_lighting(percent)) == percent


def test_decode_lighting_accepts_missing_prefix():
    assert decode_lighting("6019") == 25


def test_decode_lighting_rejects_non_hex():
    with pytest.raises(ParseError):
        decode_lighting("0xzz")


def test_parse_error_is_value_error():
    with pytest.raises(ValueError):
        decode_lighting("bogus")


@pytest.mark.parametrize("celsius, expected", [(12.0, "0xa078"), (25.0, "0xa0fa"), (28.0, "0xa118")])
def test_encode_temperature(celsius, expected):
    assert encode_temperature(celsius) == expected


def test_encode_temperature_saturates():
    assert encode_temperature(5.0) == "0xa078"
    assert encode_temperature(35.5) == "0xa118"


def test_encode_temperature_rounds_half_up():
    # 21.25 °C -> 212.5 tenths -> 213 -> 0xa000 + 213
    assert encode_temperature(21.25) == "0xa0d5"
    assert encode_temperature(21.5) == "0xa0d7"


def test_decode_temperature():
    assert decode_temperature("0xa005") == 0.5
    assert decode_temperature("0xa078") == 12.0
    assert decode_temperature("0xa118") == 28.0


def test_temperature_round_trip_within_domain():
    for tenths in range(120, 281):
        celsius = tenths / 10
        assert decode_temperature(encode_temperature(celsius)) == pytest.approx(celsius)


def test_decode_temperature_rejects_non_hex():
    with pytest.raises(ParseError):
        decode_temperature("0x")


def test_decode_temperature_from_display_string():
    assert decode_temperature_from_display_string("24,0°C") == 24.0
    assert decode_temperature_from_display_string("21,5°C") == 21.5
    assert decode_temperature_from_display_string("19.5") == 19.5


def test_decode_temperature_from_display_string_rejects_garbage():
    with pytest.raises(ParseError):
        decode_temperature_from_display_string("warm°C")


def test_encoders_saturate_non_finite_input():
    assert encode_temperature(math.nan) == "0xa078"
    assert encode_temperature(math.inf) == "0xa118"
    assert encode_temperature(-math.inf) == "0xa078"
    assert encode_lighting(math.nan) == "0x6000"
    assert encode_lighting(math.inf) == "0x6064"
    assert encode_lighting(-math.inf) == "0x6000"
