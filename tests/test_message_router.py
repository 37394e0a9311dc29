import asyncio

import pytest

from fhome_protocol import FhomeConnection, FrameSubscriber, MessageRouter, StreamClosed


async def wait_until(predicate, timeout=1.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


async def start_router(service):
    conn = FhomeConnection("resource", connect_func=service.connect)
    await conn.open()
    await conn.read_greeting()
    router = MessageRouter(conn)
    router.start()
    return conn, router, service.connections[-1]


@pytest.mark.asyncio
async def test_every_waiter_receives_the_frame(service):
    conn, router, ws = await start_router(service)
    try:
        waiters = [router.register() for _ in range(5)]
        assert router.waiter_count == 5
        ws.push({"action_name": "statustoucheschanged", "source": "server"})
        frames = [await w.receive() for w in waiters]
        assert all(f.action_name == "statustoucheschanged" for f in frames)
        assert router.waiter_count == 0
        for w in waiters:
            router.release(w)
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_replacement_waiter_gets_the_next_frame(service):
    conn, router, ws = await start_router(service)
    try:
        first = router.register()
        ws.push({"action_name": "one"})
        ws.push({"action_name": "two"})
        frame = await first.receive()
        assert frame.action_name == "one"
        # the router does not read "two" until "first" is released
        await asyncio.sleep(0.01)
        assert router.frames_routed == 1
        second = router.register()
        router.release(first)
        frame = await second.receive()
        assert frame.action_name == "two"
        router.release(second)
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_frames_with_no_waiters_are_not_queued(service):
    conn, router, ws = await start_router(service)
    try:
        ws.push({"action_name": "unheard"})
        await wait_until(lambda: router.frames_routed == 1)
        waiter = router.register()
        ws.push({"action_name": "heard"})
        frame = await waiter.receive()
        assert frame.action_name == "heard"
        router.release(waiter)
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_unparseable_frame_is_dropped(service):
    conn, router, ws = await start_router(service)
    try:
        waiter = router.register()
        ws.push("this is not json")
        ws.push({"action_name": "valid"})
        frame = await waiter.receive()
        assert frame.action_name == "valid"
        assert router.frames_dropped == 1
        router.release(waiter)
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_stream_close_releases_waiters(service):
    conn, router, ws = await start_router(service)
    try:
        waiters = [router.register() for _ in range(3)]
        ws.drop()
        for w in waiters:
            with pytest.raises(StreamClosed):
                await w.receive()
        await asyncio.wait_for(router.wait_for_done(), 1.0)
        assert router.waiter_count == 0
        assert not router.is_running
        with pytest.raises(StreamClosed):
            router.register()
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_stop_releases_waiters(service):
    conn, router, ws = await start_router(service)
    waiter = router.register()
    await router.stop()
    with pytest.raises(StreamClosed):
        await waiter.receive()
    with pytest.raises(StreamClosed):
        router.register()
    await conn.close()


@pytest.mark.asyncio
async def test_cancelled_waiter_is_skipped(service):
    conn, router, ws = await start_router(service)
    try:
        abandoned = router.register()
        kept = router.register()
        router.cancel(abandoned)
        assert router.waiter_count == 1
        ws.push({"action_name": "frame"})
        frame = await kept.receive()
        assert frame.action_name == "frame"
        router.release(kept)
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_subscriber_does_not_hold_up_waiters(service):
    conn, router, ws = await start_router(service)
    try:
        async with FrameSubscriber(router) as subscriber:
            assert router.subscriber_count == 1
            waiter = router.register()
            ws.push({"action_name": "one"})
            ws.push({"action_name": "two"})
            ws.push({"action_name": "three"})
            frame = await waiter.receive()
            assert frame.action_name == "one"
            router.release(waiter)
            await wait_until(lambda: router.frames_routed == 3)
            names = [(await subscriber.receive()).action_name for _ in range(3)]
            assert names == ["one", "two", "three"]
        assert router.subscriber_count == 0
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_subscriber_drains_queue_then_ends(service):
    conn, router, ws = await start_router(service)
    try:
        async with FrameSubscriber(router) as subscriber:
            ws.push({"action_name": "last"})
            ws.drop()
            names = [frame.action_name async for frame in subscriber]
            assert names == ["last"]
            with pytest.raises(StreamClosed):
                await subscriber.receive()
        with pytest.raises(StreamClosed):
            router.add_subscriber(FrameSubscriber(router))
    finally:
        await router.stop()
        await conn.close()


@pytest.mark.asyncio
async def test_full_subscriber_queue_drops_frames(service):
    conn, router, ws = await start_router(service)
    try:
        async with FrameSubscriber(router, max_queue_size=1) as subscriber:
            ws.push({"action_name": "kept"})
            ws.push({"action_name": "dropped"})
            await wait_until(lambda: router.frames_routed == 2)
            assert subscriber.frames_dropped == 1
            frame = await subscriber.receive()
            assert frame.action_name == "kept"
    finally:
        await router.stop()
        await conn.close()
