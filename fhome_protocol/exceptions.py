#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Exceptions defined by this package"""

from __future__ import annotations

from typing import Optional, TYPE_CHECKING

from requests.structures import CaseInsensitiveDict

if TYPE_CHECKING:
    from .fhome_frame import FhomeFrame

class FhomeError(Exception):
    """Base class for all error exceptions defined by this package."""
    pass

class ConnectFailed(FhomeError):
    """The WebSocket connection or its handshake could not be established."""

    status_code: Optional[int] = None
    """The HTTP status code returned by the service during the handshake, if it got that far."""

    headers: CaseInsensitiveDict[str]
    """The HTTP response headers returned by the service during the handshake, if any."""

    def __init__(self, msg: str, status_code: Optional[int]=None, headers: Optional[CaseInsensitiveDict[str]]=None):
        super().__init__(msg)
        self.status_code = status_code
        self.headers = CaseInsensitiveDict() if headers is None else headers

class UnexpectedGreeting(FhomeError):
    """The first frame received on a new connection was not the expected greeting."""

    frame: Optional[FhomeFrame] = None

    def __init__(self, msg: str, frame: Optional[FhomeFrame]=None):
        super().__init__(msg)
        self.frame = frame

class AuthenticationFailed(FhomeError):
    """A login stage was answered with a non-ok status."""

    action_name: str
    status: Optional[str]

    def __init__(self, action_name: str, status: Optional[str]):
        super().__init__(f"{action_name} failed with status {status!r}")
        self.action_name = action_name
        self.status = status

class NotAuthenticated(FhomeError):
    """An operation was attempted before the login stage it depends on completed."""
    pass

class RemoteError(FhomeError):
    """A correlated response carried a status other than "ok"."""

    status: str
    frame: Optional[FhomeFrame] = None

    def __init__(self, status: str, frame: Optional[FhomeFrame]=None):
        super().__init__(f"message status is {status!r}")
        self.status = status
        self.frame = frame

class ParseError(FhomeError, ValueError):
    """A hex value, display value, frame, or embedded JSON document could not be parsed."""
    pass

class Cancelled(FhomeError):
    """A wait was abandoned because its cancellation signal fired or the client is shutting down."""

    def __init__(self, msg: str="client shutting down"):
        super().__init__(msg)

class StreamClosed(FhomeError):
    """The connection failed or was closed; no further frames will be delivered on it."""

    def __init__(self, msg: str="stream closed"):
        super().__init__(msg)
