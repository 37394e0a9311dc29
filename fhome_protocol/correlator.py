#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Request/response correlation on top of a MessageRouter.

The router broadcasts every frame to every waiter, so each correlated wait does its own
filtering: it takes the next frame delivered to its waiter, and if that frame is not the
one it is looking for, it registers a fresh waiter and tries again.
"""

from __future__ import annotations

import asyncio
import random

from .internal_types import *
from .pkg_logging import logger
from .constants import REQUEST_TOKEN_LENGTH, REQUEST_TOKEN_ALPHABET
from .exceptions import Cancelled, RemoteError
from .fhome_frame import FhomeFrame, FhomeRequest
from .fhome_connection import FhomeConnection
from .message_router import MessageRouter, FrameWaiter, FrameSubscriber

class TokenGenerator:
    """Generates random request tokens from an injected random number generator."""

    rng: random.Random
    length: int
    alphabet: str

    def __init__(
            self,
            rng: Optional[random.Random]=None,
            length: int=REQUEST_TOKEN_LENGTH,
            alphabet: str=REQUEST_TOKEN_ALPHABET
          ):
        self.rng = random.Random() if rng is None else rng
        self.length = length
        self.alphabet = alphabet

    def generate(self) -> str:
        return ''.join(self.rng.choice(self.alphabet) for _ in range(self.length))

class RequestCorrelator:
    """Sends requests on a connection and waits for the matching responses delivered by its router."""

    router: MessageRouter
    connection: FhomeConnection
    token_generator: TokenGenerator

    shutdown_event: asyncio.Event
    """When set, every pending and future wait fails with Cancelled."""

    def __init__(
            self,
            router: MessageRouter,
            token_generator: Optional[TokenGenerator]=None,
            shutdown_event: Optional[asyncio.Event]=None
          ):
        self.router = router
        self.connection = router.connection
        self.token_generator = TokenGenerator() if token_generator is None else token_generator
        self.shutdown_event = asyncio.Event() if shutdown_event is None else shutdown_event

    def new_token(self) -> str:
        return self.token_generator.generate()

    async def transact(self, request: FhomeRequest, cancel_event: Optional[asyncio.Event]=None) -> FhomeFrame:
        """Sends a request and waits for the response with the same action name and request token.

        The waiter is registered before the request is written, so the response cannot arrive
        before anyone is listening for it.

        Raises:
            RemoteError:   A frame addressed to this request carried a non-ok status.
            Cancelled:     cancel_event or the shutdown event was set before the response arrived.
            StreamClosed:  The connection failed before the response arrived.
        """
        waiter = self.router.register()
        try:
            await self.connection.send_frame(request)
        except BaseException:
            self.router.cancel(waiter)
            raise
        return await self.wait_for(
            request.action_name,
            request.request_token,
            cancel_event=cancel_event,
            waiter=waiter
          )

    async def wait_for(
            self,
            action_name: Optional[str]=None,
            request_token: Optional[str]=None,
            cancel_event: Optional[asyncio.Event]=None,
            waiter: Optional[FrameWaiter]=None
          ) -> FhomeFrame:
        """Waits for a frame that matches action_name and request_token. A None filter is not checked,
           so wait_for() with no filters returns the next frame the router sees.

           If waiter is provided, it must have been registered with this correlator's router; ownership
           passes to this call.
        """
        if waiter is None:
            waiter = self.router.register()
        try:
            while True:
                frame = await self._receive(waiter.receive, cancel_event)
                if frame.has_error_status and frame.is_addressed_to(action_name, request_token):
                    status = frame.status
                    assert status is not None
                    raise RemoteError(status, frame=frame)
                if frame.matches(action_name, request_token):
                    return frame
                logger.debug(f"{waiter}: waiting for {action_name}/{request_token}; skipping {frame}")
                # the replacement must be registered before the router is allowed to move on
                next_waiter = self.router.register()
                self.router.release(waiter)
                waiter = next_waiter
        finally:
            self.router.cancel(waiter)

    async def iter_frames(self, cancel_event: Optional[asyncio.Event]=None) -> AsyncIterator[FhomeFrame]:
        """Yields every frame the router sees from the first iteration on, in order.

        Raises RemoteError for a frame with a non-ok status, Cancelled when cancel_event or the
        shutdown event is set, and StreamClosed when the connection ends.
        """
        async with FrameSubscriber(self.router) as subscriber:
            while True:
                frame = await self._receive(subscriber.receive, cancel_event)
                if frame.has_error_status:
                    status = frame.status
                    assert status is not None
                    raise RemoteError(status, frame=frame)
                yield frame

    async def _receive(
            self,
            receive: Callable[[], Awaitable[FhomeFrame]],
            cancel_event: Optional[asyncio.Event]
          ) -> FhomeFrame:
        """Awaits receive(), unless cancel_event or the shutdown event is set first."""
        events: List[asyncio.Event] = [ self.shutdown_event ]
        if cancel_event is not None:
            events.append(cancel_event)
        self._check_cancelled(events)
        receive_future = asyncio.ensure_future(receive())
        if not receive_future.done():
            event_tasks = [ asyncio.create_task(event.wait()) for event in events ]
            try:
                await asyncio.wait([receive_future, *event_tasks], return_when=asyncio.FIRST_COMPLETED)
            finally:
                for task in event_tasks:
                    task.cancel()
                if not receive_future.done():
                    receive_future.cancel()
        try:
            self._check_cancelled(events)
        except Cancelled:
            if receive_future.done() and not receive_future.cancelled():
                receive_future.exception()
            raise
        return receive_future.result()

    def _check_cancelled(self, events: List[asyncio.Event]) -> None:
        if self.shutdown_event.is_set():
            raise Cancelled()
        for event in events:
            if event.is_set():
                raise Cancelled("wait cancelled")
