"""RouterOS API client - blocking client for the MikroTik RouterOS API protocol.

This package implements the sentence-based RouterOS API (TCP 8728): word
framing, the login handshake, and a session engine that multiplexes many
outstanding commands over one connection by tag.
"""

__version__ = "0.1.0"
__author__ = "RouterOS API Client Contributors"

from routeros_api.command import command
from routeros_api.config import Settings, get_settings, load_settings_from_file, set_settings
from routeros_api.infra.routeros import (
    Connection,
    ConnectionState,
    Reply,
    ReplyKind,
    Request,
    RequestState,
    RouterOSAuthenticationError,
    RouterOSConnectionError,
    RouterOSError,
    RouterOSFatalError,
    RouterOSProtocolError,
    RouterOSTimeoutError,
    RouterOSTrapError,
)

__all__ = [
    "Connection",
    "ConnectionState",
    "Reply",
    "ReplyKind",
    "Request",
    "RequestState",
    "RouterOSAuthenticationError",
    "RouterOSConnectionError",
    "RouterOSError",
    "RouterOSFatalError",
    "RouterOSProtocolError",
    "RouterOSTimeoutError",
    "RouterOSTrapError",
    "Settings",
    "__version__",
    "command",
    "get_settings",
    "load_settings_from_file",
    "set_settings",
]
