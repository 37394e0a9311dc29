#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
MessageRouter -- A background task that reads every frame received on a connection and
broadcasts it to whoever is currently listening.

There are two kinds of listeners:

  FrameWaiter      Single-use: receives the very next frame the router observes after it was
                   registered (whether or not that frame is addressed to it), and is then
                   removed. Deciding whether a frame is the one a caller wants is the caller's
                   business (see correlator.py); a caller that wants more frames registers a
                   new waiter.

  FrameSubscriber  Long-lived: receives every frame, through a queue, until it is removed.
                   Used to watch the unsolicited frames the service pushes.

Registration window: after handing a frame to a set of waiters, the router does not read
the next frame until each of those waiters has been released by its owner. An owner that
wants to keep listening registers its next waiter before releasing the current one, so no
frame can slip past between two registrations. Subscribers never hold up the router.
"""

from __future__ import annotations

import asyncio
import itertools
from asyncio import Future

from .internal_types import *
from .pkg_logging import logger
from .exceptions import StreamClosed, ParseError
from .fhome_frame import FhomeFrame
from .fhome_connection import FhomeConnection

MAX_QUEUE_SIZE = 1000
"""The number of frames a FrameSubscriber can hold before newer frames are dropped."""

class FrameWaiter:
    """A single-use registration for the next frame delivered by a MessageRouter."""

    waiter_id: int

    handoff: Future[FhomeFrame]
    """Single-slot handoff; resolved with the delivered frame, or failed with StreamClosed."""

    consumed: Future[None]
    """Resolved when the owner is done with the waiter (released or cancelled)."""

    def __init__(self, waiter_id: int):
        loop = asyncio.get_running_loop()
        self.waiter_id = waiter_id
        self.handoff = loop.create_future()
        self.consumed = loop.create_future()

    def __str__(self) -> str:
        return f"FrameWaiter({self.waiter_id})"

    def __repr__(self) -> str:
        return str(self)

    def deliver(self, frame: FhomeFrame) -> bool:
        """Hands a frame to the waiter. Returns False if the waiter was already resolved or cancelled."""
        if self.handoff.done():
            return False
        self.handoff.set_result(frame)
        return True

    def end_of_stream(self, exc: StreamClosed) -> None:
        if not self.handoff.done():
            self.handoff.set_exception(exc)
        # nobody will ever deliver to this waiter again, so the router must not wait for it
        self.release()

    def release(self) -> None:
        if not self.consumed.done():
            self.consumed.set_result(None)

    def cancel(self) -> None:
        if self.handoff.done():
            if not self.handoff.cancelled():
                # mark a StreamClosed that nobody will await as retrieved
                self.handoff.exception()
        else:
            self.handoff.cancel()
        self.release()

    async def receive(self) -> FhomeFrame:
        return await self.handoff

class FrameSubscriber(
        AsyncContextManager['FrameSubscriber'],
        AsyncIterable[FhomeFrame]
      ):
    """Receives every frame seen by a MessageRouter while it is subscribed.

    Usage:
        async with FrameSubscriber(router) as subscriber:
            async for frame in subscriber:
                ...
    """

    router: MessageRouter
    queue: asyncio.Queue[Optional[FhomeFrame]]
    eos_exc: Optional[StreamClosed] = None
    frames_dropped: int = 0

    def __init__(self, router: MessageRouter, max_queue_size: int=MAX_QUEUE_SIZE):
        self.router = router
        self.queue = asyncio.Queue(max_queue_size)

    async def __aenter__(self) -> FrameSubscriber:
        self.router.add_subscriber(self)
        return self

    async def __aexit__(
            self,
            exc_type: Optional[type[BaseException]],
            exc: Optional[BaseException],
            tb: Optional[TracebackType]
      ) -> bool:
        self.router.remove_subscriber(self)
        return False

    def on_frame(self, frame: FhomeFrame) -> None:
        if self.eos_exc is None:
            try:
                self.queue.put_nowait(frame)
            except asyncio.QueueFull:
                self.frames_dropped += 1
                logger.warning(f"Subscriber queue full, dropping {frame}")

    def on_end_of_stream(self, exc: StreamClosed) -> None:
        if self.eos_exc is None:
            self.eos_exc = exc
            try:
                # wake up any waiting tasks
                self.queue.put_nowait(None)
            except asyncio.QueueFull:
                # queue is full so waiters will wake up soon
                pass

    async def receive(self) -> FhomeFrame:
        """Returns the next frame. Raises StreamClosed once the stream has ended and every
           queued frame has been received."""
        if self.eos_exc is not None and self.queue.empty():
            raise StreamClosed(str(self.eos_exc))
        frame = await self.queue.get()
        self.queue.task_done()
        if frame is None:
            assert self.eos_exc is not None
            raise StreamClosed(str(self.eos_exc))
        return frame

    async def iter_frames(self) -> AsyncIterator[FhomeFrame]:
        while True:
            try:
                frame = await self.receive()
            except StreamClosed:
                break
            yield frame

    def __aiter__(self) -> AsyncIterator[FhomeFrame]:
        return self.iter_frames()

class MessageRouter:
    """Reads frames from a connection and broadcasts each one to all registered waiters and subscribers."""

    connection: FhomeConnection

    final_result: Future[None]
    """Resolved when the router task has stopped, for any reason."""

    router_task: Optional[asyncio.Task[None]] = None

    stream_closed_exc: Optional[StreamClosed] = None
    """Set once the stream has ended. Every later registration fails with this exception."""

    frames_routed: int = 0
    frames_dropped: int = 0

    _waiters: Dict[int, FrameWaiter]
    _waiter_ids: Iterator[int]
    _subscribers: Set[FrameSubscriber]

    def __init__(self, connection: FhomeConnection):
        self.connection = connection
        self.final_result = asyncio.get_running_loop().create_future()
        self._waiters = {}
        self._waiter_ids = itertools.count(1)
        self._subscribers = set()

    def __str__(self) -> str:
        return f"MessageRouter({self.connection.name})"

    def __repr__(self) -> str:
        return str(self)

    @property
    def waiter_count(self) -> int:
        """The number of currently registered waiters."""
        return len(self._waiters)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def is_running(self) -> bool:
        return self.router_task is not None and not self.router_task.done()

    def start(self) -> None:
        assert self.router_task is None
        self.router_task = asyncio.create_task(self._run_router_task())

    def _check_open(self) -> None:
        if self.stream_closed_exc is not None:
            raise StreamClosed(str(self.stream_closed_exc))

    def register(self) -> FrameWaiter:
        """Registers a new waiter for the next frame. Raises StreamClosed if the stream has ended."""
        self._check_open()
        waiter = FrameWaiter(next(self._waiter_ids))
        self._waiters[waiter.waiter_id] = waiter
        return waiter

    def release(self, waiter: FrameWaiter) -> None:
        """Called by the owner of a waiter when it has finished with it."""
        self._waiters.pop(waiter.waiter_id, None)
        waiter.release()

    def cancel(self, waiter: FrameWaiter) -> None:
        """Abandons a waiter that has not (or may not have) received a frame."""
        self._waiters.pop(waiter.waiter_id, None)
        waiter.cancel()

    def add_subscriber(self, subscriber: FrameSubscriber) -> None:
        self._check_open()
        self._subscribers.add(subscriber)

    def remove_subscriber(self, subscriber: FrameSubscriber) -> None:
        self._subscribers.discard(subscriber)

    def broadcast(self, frame: FhomeFrame) -> List[FrameWaiter]:
        """Delivers a frame to every subscriber and every registered waiter, and removes all of the waiters.

        Returns the waiters that accepted the frame."""
        for subscriber in list(self._subscribers):
            subscriber.on_frame(frame)
        waiters = list(self._waiters.values())
        self._waiters.clear()
        delivered: List[FrameWaiter] = []
        for waiter in waiters:
            if waiter.deliver(frame):
                delivered.append(waiter)
        self.frames_routed += 1
        logger.debug(f"{self}: delivered {frame} to {len(delivered)} waiters")
        return delivered

    def _end_of_stream(self, exc: StreamClosed) -> None:
        if self.stream_closed_exc is None:
            self.stream_closed_exc = exc
        waiters = list(self._waiters.values())
        self._waiters.clear()
        for waiter in waiters:
            waiter.end_of_stream(exc)
        subscribers = list(self._subscribers)
        self._subscribers.clear()
        for subscriber in subscribers:
            subscriber.on_end_of_stream(exc)
        if not self.final_result.done():
            self.final_result.set_result(None)

    async def _run_router_task(self) -> None:
        logger.debug(f"{self}: router task starting")
        try:
            while True:
                try:
                    frame = await self.connection.receive_frame()
                except ParseError as e:
                    self.frames_dropped += 1
                    logger.warning(f"{self}: dropping unparseable frame: {e}")
                    continue
                delivered = self.broadcast(frame)
                if len(delivered) > 0:
                    await asyncio.wait([waiter.consumed for waiter in delivered])
        except StreamClosed as e:
            logger.info(f"{self}: stream closed, releasing {len(self._waiters)} pending waiters: {e}")
            self._end_of_stream(e)
        except asyncio.CancelledError:
            logger.debug(f"{self}: router task cancelled; exiting")
            self._end_of_stream(StreamClosed(f"{self.connection}: router stopped"))
            raise
        except BaseException as e:
            logger.warning(f"{self}: router task exiting with exception: {e!r}")
            self._end_of_stream(StreamClosed(f"{self.connection}: router failed: {e!r}"))
            raise
        logger.debug(f"{self}: router task exiting")

    async def stop(self) -> None:
        """Stops the router task. Pending waiters are released with StreamClosed."""
        task = self.router_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except BaseException as e:
                logger.warning(f"{self}: exception while stopping router task: {e!r}")
        self._end_of_stream(StreamClosed(f"{self.connection}: router stopped"))

    async def wait_for_done(self) -> None:
        await asyncio.shield(self.final_result)
