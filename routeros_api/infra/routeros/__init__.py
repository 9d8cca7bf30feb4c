"""RouterOS API protocol engine.

Provides a blocking client for the MikroTik RouterOS API (TCP 8728):
- wire: length-prefixed word and sentence framing
- auth: login handshake (challenge-response and plain)
- reply / request: received sentences and outstanding commands
- connection: session state machine and tag-multiplexed dispatch loop
- exceptions: Strongly-typed error handling
"""

from routeros_api.infra.routeros.auth import Authenticator, challenge_response
from routeros_api.infra.routeros.connection import Connection, ConnectionState
from routeros_api.infra.routeros.exceptions import (
    RouterOSAuthenticationError,
    RouterOSConnectionError,
    RouterOSError,
    RouterOSFatalError,
    RouterOSProtocolError,
    RouterOSTimeoutError,
    RouterOSTrapError,
)
from routeros_api.infra.routeros.reply import Reply, ReplyKind
from routeros_api.infra.routeros.request import Request, RequestState

__all__ = [
    # Engine
    "Authenticator",
    "Connection",
    "ConnectionState",
    "Reply",
    "ReplyKind",
    "Request",
    "RequestState",
    "challenge_response",
    # Exceptions
    "RouterOSError",
    "RouterOSConnectionError",
    "RouterOSProtocolError",
    "RouterOSTimeoutError",
    "RouterOSFatalError",
    "RouterOSAuthenticationError",
    "RouterOSTrapError",
]
