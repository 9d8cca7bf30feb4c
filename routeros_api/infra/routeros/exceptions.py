"""RouterOS API client exceptions.

Strongly-typed exceptions for the RouterOS API protocol engine.
Maps socket failures and device notices to client-level exceptions.

Exception hierarchy:
- RouterOSError (base)
  - RouterOSConnectionError (cannot connect, peer closed, not ready)
  - RouterOSProtocolError (malformed framing, unattributable sentence)
  - RouterOSTimeoutError (no complete sentence within the command timeout)
  - RouterOSFatalError (device-issued !fatal, or its absence where expected)
    - RouterOSAuthenticationError (login rejected or malformed handshake)
  - RouterOSTrapError (command answered with !trap, strict callers only)
"""


class RouterOSError(Exception):
    """Base exception for all RouterOS API client errors."""

    pass


class RouterOSConnectionError(RouterOSError):
    """Raised when the device cannot be reached or the session is unusable."""

    pass


class RouterOSProtocolError(RouterOSError):
    """Raised for malformed framing or a sentence that matches no request.

    The connection must be closed and re-established after this error.
    """

    pass


class RouterOSTimeoutError(RouterOSError):
    """Raised when no complete sentence arrives within the command timeout.

    Timeouts are per-read and retryable: receive buffers and the request
    registry are left untouched.
    """

    pass


class RouterOSFatalError(RouterOSError):
    """Raised for a device-issued session-ending notice.

    Attributes:
        device_message: Text supplied by the device, if any
    """

    def __init__(self, message: str, device_message: str | None = None):
        super().__init__(message)
        self.device_message = device_message


class RouterOSAuthenticationError(RouterOSFatalError, RouterOSConnectionError):
    """Raised when the login handshake is rejected or malformed."""

    def __init__(
        self, message: str = "Authentication failed", device_message: str | None = None
    ):
        super().__init__(message, device_message)


class RouterOSTrapError(RouterOSError):
    """Raised when a command is answered with !trap.

    Attributes:
        command: Command path that trapped
        device_message: Trap message supplied by the device, if any
        category: Trap category attribute, if any
    """

    def __init__(
        self,
        message: str,
        command: str | None = None,
        device_message: str | None = None,
        category: str | None = None,
    ):
        super().__init__(message)
        self.command = command
        self.device_message = device_message
        self.category = category
