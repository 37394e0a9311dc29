#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
FhomeClient -- An F&Home client that can:

  1. Log in to the F&Home cloud and to the user's resource (home controller)
  2. Fetch the system and user configuration documents
  3. Send events (toggle, lighting level, temperature set point) to cells
  4. Receive the status updates that the resource pushes when cell values change
"""

from __future__ import annotations

import asyncio
import json
import random

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    FHOME_URL,
    DEFAULT_HANDSHAKE_TIMEOUT,
    STATUS_OK,
    ACTION_GET_SYSTEM_CONFIG,
    ACTION_GET_USER_CONFIG,
    ACTION_EVENT,
    ACTION_STATUS_TOUCHES,
    EVENT_VALUE_TYPE,
  )
from .exceptions import RemoteError, ParseError, Cancelled
from .fhome_frame import FhomeFrame
from .fhome_connection import ConnectFunc
from .correlator import TokenGenerator
from .authenticator import Authenticator, AuthState, Session
from .responses import ResourceInfo
from .value_codec import encode_toggle, encode_lighting, encode_temperature

class FhomeClient(AsyncContextManager['FhomeClient']):
    """
    A client for the F&Home service. Logging in takes three calls, in order:

        async with FhomeClient() as client:
            await client.open_cloud_session(email, password)
            await client.discover_resource()
            await client.open_resource_session(resource_password)
            await client.toggle(260)

    or, equivalently, one call to connect().

    Every operation after login is a request on the resource connection that waits for the
    response with the same request token. Any number of operations may be in flight at once.
    """

    authenticator: Authenticator

    shutdown_event: asyncio.Event
    """Set by close(). Pending and future waits fail with Cancelled."""

    _closed: bool = False

    def __init__(
            self,
            url: str=FHOME_URL,
            handshake_timeout: float=DEFAULT_HANDSHAKE_TIMEOUT,
            connect_func: Optional[ConnectFunc]=None,
            rng: Optional[random.Random]=None,
          ) -> None:
        """Create a client. No connection is made until open_cloud_session() is called.

        Parameters:
            url:                The service URL. Defaults to the public F&Home endpoint.
            handshake_timeout:  Maximum time (in seconds) allowed for each WebSocket handshake.
            connect_func:       Replaces websockets.connect; used to supply a fake transport in tests.
            rng:                The random number generator used for request tokens. Defaults to
                                  a new, unseeded random.Random.
        """
        self.shutdown_event = asyncio.Event()
        self.authenticator = Authenticator(
            url=url,
            handshake_timeout=handshake_timeout,
            connect_func=connect_func,
            token_generator=TokenGenerator(rng),
            shutdown_event=self.shutdown_event,
          )

    def __str__(self) -> str:
        return f"FhomeClient({self.authenticator.session})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def session(self) -> Session:
        return self.authenticator.session

    @property
    def state(self) -> AuthState:
        return self.authenticator.state

    @property
    def resource(self) -> Optional[ResourceInfo]:
        """The resource found by discover_resource(), or None before that."""
        return self.authenticator.resource

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def open_cloud_session(self, email: str, password: str) -> None:
        """Logs in to the cloud. Raises AuthenticationFailed if the service rejects the credentials."""
        await self.authenticator.open_cloud_session(email, password)

    async def discover_resource(self) -> ResourceInfo:
        """Finds the user's resource. Requires open_cloud_session()."""
        return await self.authenticator.discover_resource()

    async def get_my_resources(self) -> ResourceInfo:
        """Alias for discover_resource()."""
        return await self.discover_resource()

    async def open_resource_session(self, resource_password: str, cancel_event: Optional[asyncio.Event]=None) -> None:
        """Logs in to the resource on a new connection. Requires discover_resource()."""
        await self.authenticator.open_resource_session(resource_password, cancel_event=cancel_event)

    async def close_setup_connection(self) -> None:
        """Closes the connection used for the first two login stages. Not needed after discover_resource()."""
        await self.authenticator.close_setup_connection()

    async def send_action(self, action_name: str, cancel_event: Optional[asyncio.Event]=None, **fields: Jsonable) -> FhomeFrame:
        """Sends an authenticated request and returns the response with the matching action name and
           request token.

        Raises:
            NotAuthenticated:  The resource session has not been opened.
            RemoteError:       The response carried a non-ok status.
            Cancelled:         cancel_event was set, or the client was closed, before the response arrived.
            StreamClosed:      The resource connection failed.
        """
        correlator = self.authenticator.require_resource_session()
        request = self.authenticator.new_request(action_name, **fields)
        return await correlator.transact(request, cancel_event=cancel_event)

    async def get_system_configuration(self, cancel_event: Optional[asyncio.Event]=None) -> JsonableDict:
        """Returns the decoded "touches" response: per-cell display properties set in the configurator app."""
        frame = await self.send_action(ACTION_GET_SYSTEM_CONFIG, cancel_event=cancel_event)
        return frame.decode()

    async def get_user_configuration(self, cancel_event: Optional[asyncio.Event]=None) -> JsonableDict:
        """Returns the user configuration (panels and cells as set in the web or mobile app).

        The service sends it as a JSON document embedded in the "file" field of the response.
        Raises ParseError if that document is missing or malformed.
        """
        frame = await self.send_action(ACTION_GET_USER_CONFIG, cancel_event=cancel_event)
        file_text = frame.get('file')
        if not isinstance(file_text, str):
            raise ParseError(f"{ACTION_GET_USER_CONFIG} response has no file field: {frame}")
        try:
            result = json.loads(file_text)
        except ValueError as e:
            raise ParseError(f"{ACTION_GET_USER_CONFIG} file field is not valid JSON: {e}") from e
        if not isinstance(result, dict):
            raise ParseError(f"{ACTION_GET_USER_CONFIG} file field is not a JSON object")
        return result

    async def send_device_event(self, cell_id: int, value: str, cancel_event: Optional[asyncio.Event]=None) -> None:
        """Sends a hex value (see value_codec) to a cell. Succeeds only if the service acknowledges
           with status "ok"."""
        frame = await self.send_action(
            ACTION_EVENT,
            cancel_event=cancel_event,
            cell_id=str(cell_id),
            value=value,
            type=EVENT_VALUE_TYPE
          )
        if frame.status != STATUS_OK:
            raise RemoteError("" if frame.status is None else frame.status, frame=frame)
        logger.debug(f"Cell {cell_id} accepted value {value}")

    async def toggle(self, cell_id: int, cancel_event: Optional[asyncio.Event]=None) -> None:
        await self.send_device_event(cell_id, encode_toggle(), cancel_event=cancel_event)

    async def set_lighting(self, cell_id: int, percent: int, cancel_event: Optional[asyncio.Event]=None) -> None:
        """Sets the level of a dimmable light. Values outside 0..100 are clamped."""
        await self.send_device_event(cell_id, encode_lighting(percent), cancel_event=cancel_event)

    async def set_temperature(self, cell_id: int, celsius: float, cancel_event: Optional[asyncio.Event]=None) -> None:
        """Sets a thermostat set point. Values outside 12..28 °C are clamped."""
        await self.send_device_event(cell_id, encode_temperature(celsius), cancel_event=cancel_event)

    async def get_status_snapshot(self, cancel_event: Optional[asyncio.Event]=None) -> FhomeFrame:
        """Requests the current values of all cells. Use responses.parse_cell_values() on the result."""
        return await self.send_action(ACTION_STATUS_TOUCHES, cancel_event=cancel_event)

    async def read_any_message(self, cancel_event: Optional[asyncio.Event]=None) -> FhomeFrame:
        """Returns the next frame received on the resource connection, whatever it is.

        Raises RemoteError if that frame carries a non-ok status."""
        correlator = self.authenticator.require_resource_session()
        return await correlator.wait_for(cancel_event=cancel_event)

    async def iter_messages(self, cancel_event: Optional[asyncio.Event]=None) -> AsyncIterator[FhomeFrame]:
        """Yields every frame received on the resource connection until the client is closed or
           cancel_event is set, either of which ends the iteration normally.

        Raises StreamClosed if the resource connection fails, after every frame received before the
        failure has been yielded, and RemoteError for a frame with a non-ok status.

        Usage:
            async for frame in client.iter_messages():
                if frame.action_name == "statustoucheschanged":
                    for cell_value in parse_cell_values(frame):
                        print(cell_value)
        """
        correlator = self.authenticator.require_resource_session()
        frames = correlator.iter_frames(cancel_event=cancel_event)
        try:
            async for frame in frames:
                yield frame
        except Cancelled as e:
            logger.debug(f"{self}: message iteration ended: {e}")
        finally:
            await frames.aclose()

    async def close(self) -> None:
        """Cancels pending waits, stops the router, and closes both connections. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        self.shutdown_event.set()
        await self.authenticator.close()
        logger.debug(f"{self}: closed")

    async def __aenter__(self) -> FhomeClient:
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        await self.close()
        return False

async def connect(
        email: str,
        password: str,
        resource_password: str,
        url: str=FHOME_URL,
        handshake_timeout: float=DEFAULT_HANDSHAKE_TIMEOUT,
        connect_func: Optional[ConnectFunc]=None,
        rng: Optional[random.Random]=None,
        close_setup_connection: bool=True,
      ) -> FhomeClient:
    """Creates a client and runs all three login stages. The caller owns the returned client
       and must close it.

    Usage:
        async with await connect(email, password, resource_password) as client:
            await client.set_lighting(260, 50)
    """
    client = FhomeClient(url=url, handshake_timeout=handshake_timeout, connect_func=connect_func, rng=rng)
    try:
        await client.open_cloud_session(email, password)
        logger.debug(f"Opened client session for {email}")
        resource = await client.discover_resource()
        logger.debug(f"Got resource {resource.friendly_name!r} ({resource.unique_id}, type {resource.resource_type!r})")
        if close_setup_connection:
            await client.close_setup_connection()
        await client.open_resource_session(resource_password)
        logger.debug("Opened client to resource session")
    except BaseException:
        await client.close()
        raise
    return client
