# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Package fhome_protocol implements a client for the F&Home home automation cloud protocol.

F&Home controllers ("resources") are reached through a cloud service over secure WebSockets.
A client logs in to the cloud on one connection, looks up the user's resource, then logs in
to the resource on a second connection. Every message in either direction is a JSON object;
requests carry a random request token that the matching response echoes back. The resource
also pushes unsolicited frames (e.g., "statustoucheschanged") whenever a cell value changes.

Device values (light levels, temperature set points, toggles) are sent as hex strings; see
value_codec for the encodings.

The protocol is not publicly documented by the vendor; it has been reverse-engineered from
the vendor's web application.
"""

from .version import __version__

from .internal_types import Jsonable, JsonableDict

from .exceptions import (
    FhomeError,
    ConnectFailed,
    UnexpectedGreeting,
    AuthenticationFailed,
    NotAuthenticated,
    RemoteError,
    ParseError,
    Cancelled,
    StreamClosed,
  )

from .fhome_frame import FhomeFrame, FhomeRequest
from .fhome_connection import FhomeConnection
from .message_router import MessageRouter, FrameWaiter, FrameSubscriber
from .correlator import RequestCorrelator, TokenGenerator
from .authenticator import Authenticator, AuthState, Session, generate_password_hash
from .responses import ResourceInfo, CellValue, DisplayType, parse_cell_values
from .client import FhomeClient, connect
from .value_codec import (
    encode_toggle,
    encode_lighting,
    decode_lighting,
    encode_temperature,
    decode_temperature,
    decode_temperature_from_display_string,
  )
from .constants import FHOME_URL

__all__ = [
    '__version__',
    'Jsonable', 'JsonableDict',
    'FhomeError', 'ConnectFailed', 'UnexpectedGreeting', 'AuthenticationFailed',
    'NotAuthenticated', 'RemoteError', 'ParseError', 'Cancelled', 'StreamClosed',
    'FhomeFrame', 'FhomeRequest',
    'FhomeConnection',
    'MessageRouter', 'FrameWaiter', 'FrameSubscriber',
    'RequestCorrelator', 'TokenGenerator',
    'Authenticator', 'AuthState', 'Session', 'generate_password_hash',
    'ResourceInfo', 'CellValue', 'DisplayType', 'parse_cell_values',
    'FhomeClient', 'connect',
    'encode_toggle', 'encode_lighting', 'decode_lighting',
    'encode_temperature', 'decode_temperature', 'decode_temperature_from_display_string',
    'FHOME_URL',
]
