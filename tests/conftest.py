import asyncio
import json
import random

import pytest
from websockets.exceptions import ConnectionClosedOK

from fhome_protocol import FhomeClient


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, service, name):
        self.service = service
        self.name = name
        self.sent = []
        self.closed = False
        self._incoming = asyncio.Queue()

    def push(self, data):
        """Queues a message for the client to receive. dicts are sent as JSON."""
        if isinstance(data, dict):
            data = json.dumps(data)
        self._incoming.put_nowait(data)

    def drop(self):
        """Simulates the service closing the connection."""
        self._incoming.put_nowait(None)

    async def send(self, text):
        if self.closed:
            raise ConnectionClosedOK(None, None)
        request = json.loads(text)
        self.sent.append(request)
        await self.service.handle(self, request)

    async def recv(self):
        item = await self._incoming.get()
        if item is None:
            self._incoming.put_nowait(None)
            raise ConnectionClosedOK(None, None)
        return item

    async def close(self):
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(None)


class FakeFhomeService:
    """Answers every request with a matching "ok" response unless a handler for the action is set.

    Handlers are called as handler(ws, request) and may be plain functions or coroutines.
    """

    def __init__(self):
        self.connections = []
        self.dials = []
        self.handlers = {}
        self.greeting = {"action_name": "authentication_required", "status": "", "source": "server"}
        self.connect_error = None
        self.resource = {
            "unique_id_0": "RES-0001",
            "friendly_name_0": "Home",
            "resource_type_0": "fhome",
            "avatar_id_0": "1",
        }

    async def connect(self, url, **kwargs):
        self.dials.append((url, kwargs))
        if self.connect_error is not None:
            raise self.connect_error
        ws = FakeWebSocket(self, f"conn{len(self.connections)}")
        self.connections.append(ws)
        ws.push(self.greeting)
        return ws

    @property
    def setup_ws(self):
        return self.connections[0]

    @property
    def resource_ws(self):
        return self.connections[-1]

    def reply(self, ws, request, status="ok", **fields):
        response = {
            "action_name": request["action_name"],
            "request_token": request["request_token"],
            "status": status,
            "source": "server",
        }
        response.update(fields)
        ws.push(response)

    async def handle(self, ws, request):
        handler = self.handlers.get(request["action_name"])
        if handler is None:
            if request["action_name"] == "get_my_resources":
                self.reply(ws, request, **self.resource)
            else:
                self.reply(ws, request)
            return
        result = handler(ws, request)
        if asyncio.iscoroutine(result):
            await result

    def sent_requests(self, action_name):
        return [r for ws in self.connections for r in ws.sent if r["action_name"] == action_name]


@pytest.fixture
def service():
    return FakeFhomeService()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def login(service, rng):
    """Returns a coroutine function that creates a client and runs all three login stages."""

    async def _login(email="a@b.com", password="pw", resource_password="rpw"):
        client = FhomeClient(connect_func=service.connect, rng=rng)
        await client.open_cloud_session(email, password)
        await client.discover_resource()
        await client.open_resource_session(resource_password)
        return client

    return _login
