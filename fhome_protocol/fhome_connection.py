#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
FhomeConnection -- One WebSocket connection to the F&Home service that can:

  1. Dial the service endpoint with compression and a bounded handshake timeout
  2. Read and validate the greeting frame the service sends on every new connection
  3. Send FhomeRequests, one at a time
  4. Receive and decode FhomeFrames

  A client uses two of these: a "setup" connection for the cloud login stages, and a
  "resource" connection for everything after it.
"""

from __future__ import annotations

import asyncio

import websockets
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidStatus, WebSocketException

from .internal_types import *
from .pkg_logging import logger
from .constants import FHOME_URL, DEFAULT_HANDSHAKE_TIMEOUT, GREETING_ACTION
from .exceptions import ConnectFailed, UnexpectedGreeting, StreamClosed
from .fhome_frame import FhomeFrame, FhomeRequest
from .util import headers_to_dict, redact_json_text

ConnectFunc = Callable[..., Awaitable[Any]]
"""A function with the signature of websockets.connect() that returns an open client connection
   supporting send(), recv() and close()."""

class FhomeConnection(AsyncContextManager['FhomeConnection']):
    name: str
    """A name for the connection as it should be displayed in logs, e.g. "setup" or "resource"."""

    url: str
    """The service URL. Must end with a trailing slash."""

    handshake_timeout: float
    """Maximum time (in seconds) allowed for the WebSocket opening handshake."""

    _connect_func: ConnectFunc
    _ws: Optional[Any] = None
    _send_lock: asyncio.Lock
    _closed: bool = False
    _close_called: bool = False
    _greeting_read: bool = False

    def __init__(
            self,
            name: str,
            url: str=FHOME_URL,
            handshake_timeout: float=DEFAULT_HANDSHAKE_TIMEOUT,
            connect_func: Optional[ConnectFunc]=None,
          ) -> None:
        self.name = name
        self.url = url
        self.handshake_timeout = handshake_timeout
        self._connect_func = websockets.connect if connect_func is None else connect_func
        self._send_lock = asyncio.Lock()

    def __str__(self) -> str:
        return f"FhomeConnection({self.name}: {self.url})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def is_open(self) -> bool:
        """True iff the connection has been opened and has not been closed or failed."""
        return self._ws is not None and not self._closed

    async def open(self) -> None:
        """Dials the service. Raises ConnectFailed if the transport or handshake fails."""
        assert self._ws is None
        logger.debug(f"{self}: connecting")
        try:
            self._ws = await self._connect_func(
                self.url,
                compression="deflate",
                open_timeout=self.handshake_timeout,
              )
        except InvalidStatus as e:
            response = e.response
            headers = headers_to_dict(response.headers)
            logger.warning(f"{self}: handshake rejected, status: {response.status_code} {response.reason_phrase}, headers: {len(headers)}")
            for name, value in headers.items():
                logger.warning(f"{self}: header {name}: {value}")
            raise ConnectFailed(f"failed to dial {self.url}: {e}", status_code=response.status_code, headers=headers) from e
        except (InvalidHandshake, WebSocketException, OSError, asyncio.TimeoutError) as e:
            logger.warning(f"{self}: failed to dial: {e!r}")
            raise ConnectFailed(f"failed to dial {self.url}: {e!r}") from e
        logger.info(f"{self}: connected")

    async def read_greeting(self) -> FhomeFrame:
        """Reads the greeting frame that the service sends on every new connection.

        Must be called exactly once, before any other read. If the greeting is not what the
        service is expected to send, the connection is closed and UnexpectedGreeting is raised.
        """
        assert not self._greeting_read
        self._greeting_read = True
        try:
            frame = await self.receive_frame()
        except BaseException:
            await self.close()
            raise
        if frame.action_name != GREETING_ACTION or not (frame.status is None or frame.status == ""):
            await self.close()
            raise UnexpectedGreeting(f"{self}: wrong first message received: {frame}", frame=frame)
        logger.debug(f"{self}: received greeting")
        return frame

    async def send_frame(self, request: FhomeRequest) -> None:
        """Sends a single request. Concurrent senders are serialized."""
        async with self._send_lock:
            if not self.is_open:
                raise StreamClosed(f"{self}: cannot send {request.action_name}; connection is not open")
            assert self._ws is not None
            logger.debug(f"{self}: sending {request}")
            try:
                await self._ws.send(request.to_json())
            except (ConnectionClosed, OSError) as e:
                self._closed = True
                raise StreamClosed(f"{self}: failed to write {request.action_name}: {e!r}") from e

    async def receive_frame(self) -> FhomeFrame:
        """Reads and decodes the next frame.

        Raises StreamClosed if the connection fails or is closed, or ParseError if the message is
        not a valid frame (the connection remains usable in that case).
        """
        if self._ws is None or self._closed:
            raise StreamClosed(f"{self}: connection is not open")
        try:
            data = await self._ws.recv()
        except (ConnectionClosed, OSError) as e:
            self._closed = True
            raise StreamClosed(f"{self}: failed to read: {e!r}") from e
        logger.debug(f"{self}: received {redact_json_text(data)}")
        return FhomeFrame(data)

    async def close(self) -> None:
        """Closes the connection. Safe to call more than once."""
        ws = self._ws
        self._closed = True
        if ws is not None and not self._close_called:
            self._close_called = True
            try:
                await ws.close()
            except Exception as e:
                logger.warning(f"{self}: error while closing: {e!r}")
            logger.info(f"{self}: closed")

    async def __aenter__(self) -> FhomeConnection:
        await self.open()
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        await self.close()
        return False
