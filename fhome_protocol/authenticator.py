#
# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""
Authenticator -- Drives the three-stage login against the F&Home service:

  1. open_cloud_session()     Log in to the cloud with email and password, on the "setup" connection
  2. discover_resource()      Find the unique ID of the user's resource, on the setup connection
  3. open_resource_session()  Log in to the resource on a brand-new "resource" connection, and
                              start its message router

Each stage requires the previous one. The resulting Session supplies the credentials that are
attached to every request made on the resource connection.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
from enum import Enum

from .internal_types import *
from .pkg_logging import logger
from .constants import (
    FHOME_URL,
    DEFAULT_HANDSHAKE_TIMEOUT,
    STATUS_OK,
    ACTION_OPEN_CLIENT_SESSION,
    ACTION_GET_MY_RESOURCES,
    ACTION_OPEN_CLIENT_TO_RESOURCE_SESSION,
    PASSWORD_HASH_SALT,
    PASSWORD_HASH_ITERATIONS,
    PASSWORD_HASH_LENGTH,
  )
from .exceptions import FhomeError, AuthenticationFailed, NotAuthenticated, RemoteError, ParseError
from .fhome_frame import FhomeFrame, FhomeRequest
from .fhome_connection import FhomeConnection, ConnectFunc
from .message_router import MessageRouter
from .correlator import RequestCorrelator, TokenGenerator
from .responses import ResourceInfo

class AuthState(Enum):
    UNAUTHENTICATED = "unauthenticated"
    CLOUD_AUTHENTICATED = "cloud_authenticated"
    RESOURCE_DISCOVERED = "resource_discovered"
    RESOURCE_AUTHENTICATED = "resource_authenticated"

def generate_password_hash(password: str) -> str:
    """Derives the credential sent with every request on the resource connection:
       base64(PBKDF2-HMAC-SHA1(password, "fhome123", 10000 iterations, 32 bytes))."""
    key = hashlib.pbkdf2_hmac(
        'sha1',
        password.encode('utf-8'),
        PASSWORD_HASH_SALT,
        PASSWORD_HASH_ITERATIONS,
        dklen=PASSWORD_HASH_LENGTH
      )
    return base64.b64encode(key).decode('ascii')

class Session:
    """The identity established by the login stages. Each field can be assigned only once."""

    _email: Optional[str] = None
    _unique_resource_id: Optional[str] = None
    _resource_password_hash: Optional[str] = None

    def _check_unset(self, name: str) -> None:
        if getattr(self, f"_{name}") is not None:
            raise FhomeError(f"Session {name} has already been set")

    @property
    def email(self) -> Optional[str]:
        return self._email

    @email.setter
    def email(self, value: str) -> None:
        self._check_unset('email')
        self._email = value

    @property
    def unique_resource_id(self) -> Optional[str]:
        return self._unique_resource_id

    @unique_resource_id.setter
    def unique_resource_id(self, value: str) -> None:
        self._check_unset('unique_resource_id')
        self._unique_resource_id = value

    @property
    def resource_password_hash(self) -> Optional[str]:
        return self._resource_password_hash

    @resource_password_hash.setter
    def resource_password_hash(self, value: str) -> None:
        self._check_unset('resource_password_hash')
        self._resource_password_hash = value

    def __str__(self) -> str:
        return f"Session(email={self._email!r}, unique_resource_id={self._unique_resource_id!r})"

    def __repr__(self) -> str:
        return str(self)

class Authenticator:
    session: Session
    state: AuthState = AuthState.UNAUTHENTICATED

    url: str
    handshake_timeout: float
    connect_func: Optional[ConnectFunc]

    token_generator: TokenGenerator

    shutdown_event: asyncio.Event
    """Shared with the correlator; set when the owning client is closed."""

    setup_connection: Optional[FhomeConnection] = None
    resource_connection: Optional[FhomeConnection] = None
    router: Optional[MessageRouter] = None
    correlator: Optional[RequestCorrelator] = None
    resource: Optional[ResourceInfo] = None

    def __init__(
            self,
            url: str=FHOME_URL,
            handshake_timeout: float=DEFAULT_HANDSHAKE_TIMEOUT,
            connect_func: Optional[ConnectFunc]=None,
            token_generator: Optional[TokenGenerator]=None,
            shutdown_event: Optional[asyncio.Event]=None,
          ):
        self.session = Session()
        self.url = url
        self.handshake_timeout = handshake_timeout
        self.connect_func = connect_func
        self.token_generator = TokenGenerator() if token_generator is None else token_generator
        self.shutdown_event = asyncio.Event() if shutdown_event is None else shutdown_event

    def _require_state(self, state: AuthState, operation: str) -> None:
        if self.state != state:
            raise NotAuthenticated(f"{operation} requires state {state.value}; current state is {self.state.value}")

    def _new_connection(self, name: str) -> FhomeConnection:
        return FhomeConnection(
            name,
            url=self.url,
            handshake_timeout=self.handshake_timeout,
            connect_func=self.connect_func
          )

    async def _setup_transact(self, request: FhomeRequest) -> FhomeFrame:
        """Sends a login request on the setup connection and reads frames until its response arrives.
           There is no router on the setup connection; frames are read directly."""
        conn = self.setup_connection
        assert conn is not None
        await conn.send_frame(request)
        while True:
            try:
                frame = await conn.receive_frame()
            except ParseError as e:
                logger.warning(f"{conn}: dropping unparseable frame: {e}")
                continue
            if frame.has_error_status and frame.is_addressed_to(request.action_name, request.request_token):
                raise AuthenticationFailed(request.action_name, frame.status)
            if frame.matches(request.action_name, request.request_token):
                if frame.status != STATUS_OK:
                    raise AuthenticationFailed(request.action_name, frame.status)
                return frame
            logger.debug(f"{conn}: waiting for {request.action_name}; skipping {frame}")

    async def open_cloud_session(self, email: str, password: str) -> None:
        """Opens the setup connection and logs in to the cloud."""
        self._require_state(AuthState.UNAUTHENTICATED, "open_cloud_session")
        conn = self._new_connection("setup")
        await conn.open()
        try:
            await conn.read_greeting()
            self.setup_connection = conn
            request = FhomeRequest(
                ACTION_OPEN_CLIENT_SESSION,
                self.token_generator.generate(),
                email=email,
                password=password
              )
            await self._setup_transact(request)
        except BaseException:
            self.setup_connection = None
            await conn.close()
            raise
        self.session.email = email
        self.state = AuthState.CLOUD_AUTHENTICATED
        logger.info(f"Opened cloud session for {email}")

    async def discover_resource(self) -> ResourceInfo:
        """Looks up the user's resource. Only the first listed resource is used."""
        self._require_state(AuthState.CLOUD_AUTHENTICATED, "discover_resource")
        email = self.session.email
        assert email is not None
        request = FhomeRequest(ACTION_GET_MY_RESOURCES, self.token_generator.generate(), email=email)
        frame = await self._setup_transact(request)
        resource = ResourceInfo.from_frame(frame)
        self.session.unique_resource_id = resource.unique_id
        self.resource = resource
        self.state = AuthState.RESOURCE_DISCOVERED
        logger.info(f"Discovered {resource}")
        return resource

    async def open_resource_session(self, resource_password: str, cancel_event: Optional[asyncio.Event]=None) -> None:
        """Opens the resource connection, starts its router, and logs in to the resource."""
        self._require_state(AuthState.RESOURCE_DISCOVERED, "open_resource_session")
        email = self.session.email
        unique_id = self.session.unique_resource_id
        assert email is not None and unique_id is not None
        conn = self._new_connection("resource")
        await conn.open()
        router: Optional[MessageRouter] = None
        try:
            await conn.read_greeting()
            router = MessageRouter(conn)
            router.start()
            correlator = RequestCorrelator(router, token_generator=self.token_generator, shutdown_event=self.shutdown_event)
            request = FhomeRequest(
                ACTION_OPEN_CLIENT_TO_RESOURCE_SESSION,
                correlator.new_token(),
                email=email,
                unique_id=unique_id
              )
            try:
                frame = await correlator.transact(request, cancel_event=cancel_event)
            except RemoteError as e:
                raise AuthenticationFailed(request.action_name, e.status) from e
            if frame.status != STATUS_OK:
                raise AuthenticationFailed(request.action_name, frame.status)
        except BaseException:
            if router is not None:
                await router.stop()
            await conn.close()
            raise
        self.resource_connection = conn
        self.router = router
        self.correlator = correlator
        self.session.resource_password_hash = generate_password_hash(resource_password)
        self.state = AuthState.RESOURCE_AUTHENTICATED
        logger.info(f"Opened resource session on {unique_id}")

    async def close_setup_connection(self) -> None:
        """Closes the setup connection. Only the resource connection is needed after discovery."""
        conn = self.setup_connection
        if conn is not None:
            await conn.close()

    def require_resource_session(self) -> RequestCorrelator:
        """Returns the correlator for the resource connection. Raises NotAuthenticated if the
           resource session has not been opened."""
        self._require_state(AuthState.RESOURCE_AUTHENTICATED, "this operation")
        assert self.correlator is not None
        return self.correlator

    def new_request(self, action_name: str, **fields: Jsonable) -> FhomeRequest:
        """Creates a request carrying the resource session credentials and a fresh request token."""
        correlator = self.require_resource_session()
        email = self.session.email
        password_hash = self.session.resource_password_hash
        assert email is not None and password_hash is not None
        return FhomeRequest.authenticated(
            action_name,
            correlator.new_token(),
            login=email,
            password_hash=password_hash,
            **fields
          )

    async def close(self) -> None:
        """Stops the router and closes both connections."""
        if self.router is not None:
            await self.router.stop()
        if self.resource_connection is not None:
            await self.resource_connection.close()
        await self.close_setup_connection()
