# Copyright (c) 2023 Samuel J. McKelvie
#
# MIT License - See LICENSE file accompanying this package.
#

"""Constants used by this package"""

FHOME_URL = "wss://fhome.cloud/webapp-interface/"
"""The URL at which the F&Home service lives. It must end with a trailing slash, or the
   WebSocket handshake fails."""

DEFAULT_HANDSHAKE_TIMEOUT = 5.0
"""The default WebSocket handshake timeout, in seconds."""

GREETING_ACTION = "authentication_required"
"""The action name of the frame the service sends unsolicited on every new connection."""

ACTION_OPEN_CLIENT_SESSION = "open_client_session"
ACTION_GET_MY_RESOURCES = "get_my_resources"
ACTION_OPEN_CLIENT_TO_RESOURCE_SESSION = "open_client_to_resource_session"
ACTION_GET_SYSTEM_CONFIG = "touches"
ACTION_GET_USER_CONFIG = "get_user_config"
ACTION_EVENT = "xevent"

ACTION_STATUS_TOUCHES = "statustouches"
"""Returns the current values of all cells."""

ACTION_STATUS_TOUCHES_CHANGED = "statustoucheschanged"
"""Pushed by the service when the value of one (usually) or more cells changes."""

STATUS_OK = "ok"

EVENT_VALUE_TYPE = "HEX"
"""The value type attached to every xevent. Values are always hex strings with a 0x prefix."""

REQUEST_TOKEN_LENGTH = 13
REQUEST_TOKEN_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"

PASSWORD_HASH_SALT = b"fhome123"
PASSWORD_HASH_ITERATIONS = 10000
PASSWORD_HASH_LENGTH = 32
"""Resource password hash parameters: PBKDF2-HMAC-SHA1 with a fixed salt, 32 byte key, base64 encoded."""

ENV_EMAIL = "FHOME_EMAIL"
ENV_CLOUD_PASSWORD = "FHOME_CLOUD_PASSWORD"
ENV_RESOURCE_PASSWORD = "FHOME_RESOURCE_PASSWORD"
"""Environment variables consulted by FhomeClientConfig.from_env()"""

KEYRING_SERVICE = "fhome"
"""Default keyring service name for stored passwords."""
