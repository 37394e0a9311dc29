#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Typed views of the few response payloads that the client itself needs to look inside of.

Configuration documents ("touches", "get_user_config") are returned to callers as decoded
JSON and are not modelled here.
"""

from __future__ import annotations

from enum import Enum

from .internal_types import *
from .constants import ACTION_STATUS_TOUCHES, ACTION_STATUS_TOUCHES_CHANGED
from .exceptions import ParseError
from .fhome_frame import FhomeFrame
from .value_codec import decode_lighting, decode_temperature, decode_temperature_from_display_string

class DisplayType(Enum):
    """How the service displays the value of a cell."""
    BIT = "BIT"
    BYTE = "BYTE"
    TEMPERATURE = "TEMP"
    PERCENTAGE = "PROC"
    RGB = "RGB"

class ResourceInfo:
    """The resource (home controller) returned by get_my_resources. Only the first listed
       resource is used."""

    unique_id: str
    friendly_name: str
    resource_type: str
    avatar_id: str

    def __init__(self, unique_id: str, friendly_name: str="", resource_type: str="", avatar_id: str=""):
        self.unique_id = unique_id
        self.friendly_name = friendly_name
        self.resource_type = resource_type
        self.avatar_id = avatar_id

    @classmethod
    def from_frame(cls, frame: FhomeFrame) -> ResourceInfo:
        """Extracts the first resource from a get_my_resources response.

        Raises ParseError if the response does not name a resource."""
        unique_id = frame.get('unique_id_0')
        if not isinstance(unique_id, str) or unique_id == "":
            raise ParseError(f"get_my_resources response has no unique_id_0: {frame}")
        return cls(
            unique_id,
            friendly_name=str(frame.get('friendly_name_0', "")),
            resource_type=str(frame.get('resource_type_0', "")),
            avatar_id=str(frame.get('avatar_id_0', "")),
          )

    def __str__(self) -> str:
        return f"ResourceInfo(unique_id={self.unique_id!r}, friendly_name={self.friendly_name!r}, resource_type={self.resource_type!r})"

    def __repr__(self) -> str:
        return str(self)

class CellValue:
    """The current value of one cell, as reported by statustouches and statustoucheschanged."""

    object_id: str
    """VOI: the cell ID, as a decimal string"""

    ii: str
    """II: meaning unknown; passed through"""

    display_type: str
    """DT: one of the DisplayType values, or an unknown string"""

    value: str
    """DV: the raw hex value"""

    value_str: str
    """DVS: the value as displayed to users, e.g. 24,0°C or 100%"""

    def __init__(self, object_id: str, ii: str="", display_type: str="", value: str="", value_str: str=""):
        self.object_id = object_id
        self.ii = ii
        self.display_type = display_type
        self.value = value
        self.value_str = value_str

    @classmethod
    def from_json_data(cls, data: Jsonable) -> CellValue:
        if not isinstance(data, dict) or 'VOI' not in data:
            raise ParseError(f"Cell value is not an object with a VOI: {data!r}")
        return cls(
            str(data['VOI']),
            ii=str(data.get('II', "")),
            display_type=str(data.get('DT', "")),
            value=str(data.get('DV', "")),
            value_str=str(data.get('DVS', "")),
          )

    @property
    def cell_id(self) -> int:
        try:
            return int(self.object_id)
        except ValueError as e:
            raise ParseError(f"Cell ID is not an integer: {self.object_id!r}") from e

    @property
    def known_display_type(self) -> Optional[DisplayType]:
        """The display type, or None if the service sent one this package does not know about."""
        try:
            return DisplayType(self.display_type)
        except ValueError:
            return None

    @property
    def percentage(self) -> int:
        """The value of a PROC cell, in percent."""
        return decode_lighting(self.value)

    @property
    def temperature(self) -> float:
        """The value of a TEMP cell, in °C. Uses the display string when the raw value is absent."""
        if self.value == "":
            return decode_temperature_from_display_string(self.value_str)
        return decode_temperature(self.value)

    def __str__(self) -> str:
        return f"id: {self.object_id}, ii: {self.ii}, dt: {self.display_type}, dv: {self.value}, dvs: {self.value_str}"

    def __repr__(self) -> str:
        return f"CellValue({self})"

def parse_cell_values(frame: FhomeFrame) -> List[CellValue]:
    """Extracts the cell values carried in response.CV of a statustouches or
       statustoucheschanged frame.

    Raises ParseError if the frame is of another kind or is malformed.
    """
    if frame.action_name not in (ACTION_STATUS_TOUCHES, ACTION_STATUS_TOUCHES_CHANGED):
        raise ParseError(f"Frame does not carry cell values: {frame}")
    response = frame.get('response')
    if not isinstance(response, dict):
        raise ParseError(f"Frame has no response object: {frame}")
    cell_values = response.get('CV', [])
    if not isinstance(cell_values, list):
        raise ParseError(f"response.CV is not a list: {frame}")
    return [ CellValue.from_json_data(cv) for cv in cell_values ]
