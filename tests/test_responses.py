import pytest

from fhome_protocol import CellValue, DisplayType, FhomeFrame, ParseError, ResourceInfo, parse_cell_values


def test_parse_cell_values_from_push_frame():
    frame = FhomeFrame.from_json_data({
        "action_name": "statustoucheschanged",
        "response": {
            "CV": [
                {"VOI": "260", "II": "0", "DT": "BIT", "DV": "0x4001", "DVS": "On"},
                {"VOI": "261", "II": "1", "DT": "TEMP", "DV": "0xa0fa", "DVS": "25,0°C"},
            ]
        },
    })
    first, second = parse_cell_values(frame)
    assert first.cell_id == 260
    assert first.known_display_type == DisplayType.BIT
    assert first.value == "0x4001"
    assert second.known_display_type == DisplayType.TEMPERATURE
    assert second.temperature == 25.0


def test_parse_cell_values_rejects_other_actions():
    frame = FhomeFrame.from_json_data({"action_name": "touches", "response": {"CV": []}})
    with pytest.raises(ParseError):
        parse_cell_values(frame)


def test_parse_cell_values_requires_response_object():
    frame = FhomeFrame.from_json_data({"action_name": "statustouches", "response": "nope"})
    with pytest.raises(ParseError):
        parse_cell_values(frame)


def test_cell_value_requires_object_id():
    with pytest.raises(ParseError):
        CellValue.from_json_data({"DT": "BIT"})
    with pytest.raises(ParseError):
        CellValue.from_json_data(["VOI"])


def test_temperature_falls_back_to_display_string():
    cell_value = CellValue.from_json_data({"VOI": "7", "DT": "TEMP", "DVS": "21,5°C"})
    assert cell_value.temperature == 21.5


def test_unknown_display_type():
    cell_value = CellValue.from_json_data({"VOI": "7", "DT": "FANCY"})
    assert cell_value.display_type == "FANCY"
    assert cell_value.known_display_type is None


def test_percentage():
    cell_value = CellValue.from_json_data({"VOI": "9", "DT": "PROC", "DV": "0x6064"})
    assert cell_value.percentage == 100


def test_non_numeric_cell_id():
    cell_value = CellValue("abc")
    with pytest.raises(ParseError):
        cell_value.cell_id


def test_resource_info_from_frame():
    frame = FhomeFrame.from_json_data({
        "action_name": "get_my_resources",
        "status": "ok",
        "unique_id_0": "RES-0001",
        "friendly_name_0": "Home",
        "resource_type_0": "fhome",
        "avatar_id_0": "3",
    })
    resource = ResourceInfo.from_frame(frame)
    assert resource.unique_id == "RES-0001"
    assert resource.friendly_name == "Home"
    assert resource.resource_type == "fhome"
    assert resource.avatar_id == "3"


def test_resource_info_requires_unique_id():
    frame = FhomeFrame.from_json_data({"action_name": "get_my_resources", "status": "ok"})
    with pytest.raises(ParseError):
        ResourceInfo.from_frame(frame)
