#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Abstraction of the JSON frames exchanged with the F&Home service.

Every WebSocket message is a single JSON object. Frames received from the service
share a common envelope:

    action_name     the action the frame answers or announces (e.g., "xevent", "statustoucheschanged")
    request_token   the token of the request this frame answers; absent on pushed frames
    status          "ok", an error description, or absent
    source          the originator of the frame, informational only

Anything else in the frame is action-specific. FhomeFrame keeps the raw bytes so the
action-specific payload can be re-decoded by whoever understands it.
"""

from __future__ import annotations

import json

from .internal_types import *
from .constants import STATUS_OK
from .exceptions import ParseError
from .util import redact_json_data

class FhomeFrame:
    """A decoded frame received from the service. Immutable once created."""

    _raw_data: bytes
    """The raw WebSocket message contents"""

    _json_data: JsonableDict
    """The decoded envelope. Never handed out; use decode() for a private copy."""

    def __init__(self, raw_data: Union[bytes, str]):
        if isinstance(raw_data, str):
            raw_data = raw_data.encode('utf-8')
        assert isinstance(raw_data, bytes)
        try:
            data = json.loads(raw_data)
        except ValueError as e:
            raise ParseError(f"Frame is not valid JSON: {raw_data!r}") from e
        if not isinstance(data, dict):
            raise ParseError(f"Frame is not a JSON object: {raw_data!r}")
        action_name = data.get('action_name')
        if not isinstance(action_name, str):
            raise ParseError(f"Frame has no action_name: {raw_data!r}")
        self._raw_data = raw_data
        self._json_data = data

    @classmethod
    def from_json_data(cls, data: JsonableDict) -> FhomeFrame:
        """Creates a frame from an already-decoded JSON object"""
        return cls(json.dumps(data).encode('utf-8'))

    def __str__(self) -> str:
        return f"FhomeFrame(action_name={self.action_name!r}, request_token={self.request_token!r}, status={self.status!r})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def raw_data(self) -> bytes:
        """The raw message contents, as received"""
        return self._raw_data

    def _get_optional_str(self, name: str) -> Optional[str]:
        value = self._json_data.get(name)
        if value is None:
            return None
        return value if isinstance(value, str) else str(value)

    @property
    def action_name(self) -> str:
        result = self._json_data['action_name']
        assert isinstance(result, str)
        return result

    @property
    def request_token(self) -> Optional[str]:
        """The request token, or None for frames that are not a response to a request"""
        return self._get_optional_str('request_token')

    @property
    def status(self) -> Optional[str]:
        """The status, or None if the frame carries no status"""
        return self._get_optional_str('status')

    @property
    def source(self) -> Optional[str]:
        return self._get_optional_str('source')

    @property
    def has_error_status(self) -> bool:
        """True iff the frame carries a status that is neither "ok" nor empty."""
        status = self.status
        return status is not None and status != "" and status != STATUS_OK

    def get(self, name: str, default: Jsonable=None) -> Jsonable:
        """Returns a top-level field. Container values are returned as copies."""
        value = self._json_data.get(name, default)
        if isinstance(value, (dict, list)):
            value = json.loads(json.dumps(value))
        return value

    def decode(self) -> JsonableDict:
        """Re-decodes the raw frame into a fresh JSON object that the caller may keep or modify."""
        result = json.loads(self._raw_data)
        assert isinstance(result, dict)
        return result

    def is_addressed_to(self, action_name: Optional[str], request_token: Optional[str]) -> bool:
        """True iff this frame should be treated as the answer (or error) for a wait on
           (action_name, request_token).

           A wait with no token accepts any frame whose action matches (or any frame at all
           if action_name is also None). A wait with a token accepts frames carrying that
           token, and token-less frames with the same action name so an error reported
           without a token still reaches the caller.
        """
        if request_token is None:
            return action_name is None or self.action_name == action_name
        frame_token = self.request_token
        if frame_token is None:
            return self.action_name == action_name
        return frame_token == request_token

    def matches(self, action_name: Optional[str], request_token: Optional[str]) -> bool:
        """True iff this frame satisfies a wait on (action_name, request_token).
           A None action_name or request_token is not checked."""
        if action_name is not None and self.action_name != action_name:
            return False
        if request_token is not None and self.request_token != request_token:
            return False
        return True

class FhomeRequest:
    """An outgoing request frame: action name, request token, credentials and action-specific fields."""

    action_name: str
    request_token: str
    fields: JsonableDict

    def __init__(self, action_name: str, request_token: str, **fields: Jsonable):
        self.action_name = action_name
        self.request_token = request_token
        self.fields = dict(fields)

    @classmethod
    def authenticated(
            cls,
            action_name: str,
            request_token: str,
            login: str,
            password_hash: str,
            **fields: Jsonable
          ) -> FhomeRequest:
        """Creates a request carrying the post-login credential pair (email + resource password hash)."""
        return cls(action_name, request_token, login=login, password=password_hash, **fields)

    @property
    def json_data(self) -> JsonableDict:
        result: JsonableDict = { 'action_name': self.action_name }
        result.update(self.fields)
        result['request_token'] = self.request_token
        return result

    def to_json(self) -> str:
        return json.dumps(self.json_data)

    def __str__(self) -> str:
        return f"FhomeRequest({json.dumps(redact_json_data(self.json_data))})"

    def __repr__(self) -> str:
        return str(self)
