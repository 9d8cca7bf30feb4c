"""RouterOS API connection and session engine.

Provides a blocking client for the RouterOS API (TCP 8728) with:
- Login handshake on connect and on explicit re-login
- Many outstanding commands multiplexed over one socket by tag
- Streaming replies delivered to per-request callbacks
- Cooperative, protocol-level cancellation
- Per-read command timeouts

Design principles:
- Single reader: sentences are only read inside receive_and_dispatch(),
  there is no background thread. All progress happens while a caller is
  blocked in a wait primitive.
- Strict arrival order: callbacks run in the order sentences arrive,
  globally and per tag.
- No internal locking: a connection shared between threads must be
  guarded by the caller.
- Completed requests leave the registry as soon as they are delivered.

Session states:
    DISCONNECTED -> CONNECTING -> AUTHENTICATING -> READY -> CLOSED
Any failure while connecting or authenticating returns to DISCONNECTED.
A device !fatal or a broken stream also returns a READY session to
DISCONNECTED; login() recovers from there. CLOSED is terminal.
"""

import logging
import socket
from collections.abc import Sequence
from enum import Enum
from typing import Any, Final

from routeros_api.config import Settings, get_settings
from routeros_api.infra.observability.logging import SessionLoggerAdapter, new_session_id
from routeros_api.infra.routeros.auth import Authenticator, LoginMethod
from routeros_api.infra.routeros.exceptions import (
    RouterOSConnectionError,
    RouterOSFatalError,
    RouterOSProtocolError,
    RouterOSTimeoutError,
)
from routeros_api.infra.routeros.reply import Reply, ReplyKind
from routeros_api.infra.routeros.request import ReplyCallback, Request
from routeros_api.infra.routeros.wire import SentenceReader, encode_sentence

CANCEL_COMMAND: Final[str] = "/cancel"
QUIT_COMMAND: Final[str] = "/quit"

# Tags cycle through 1 .. TAG_LIMIT, skipping any still pending
TAG_LIMIT: Final[int] = 2**63


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATING = "authenticating"
    READY = "ready"
    CLOSED = "closed"


class Connection:
    """Blocking RouterOS API session.

    Example:
        with Connection("192.168.88.1", "admin", "secret") as conn:
            req = conn.send_request(False, "/system/identity/print")
            conn.wait_all()
            print(req.rows[0]["name"])
            conn.quit()

    Streaming with a callback and cancellation:
        def on_reply(req, reply):
            if reply.kind is ReplyKind.ROW and len(req.rows) == 10:
                conn.cancel(req)

        req = conn.send_request(False, "/interface/monitor-traffic",
                                ["=interface=ether1"], on_reply)
        while not req.done:
            conn.wait_for_reply()
    """

    def __init__(
        self,
        host: str | None = None,
        username: str | None = None,
        password: str | None = None,
        port: int | None = None,
        conn_timeout: float | None = None,
        cmd_timeout: float | None = None,
        *,
        settings: Settings | None = None,
        login_method: LoginMethod | None = None,
        encoding: str | None = None,
        logger: logging.Logger | None = None,
        auto_login: bool = True,
    ) -> None:
        """Initialize a connection and, by default, log in.

        Explicit arguments override values from settings.

        Args:
            host: RouterOS device hostname or IP
            username: RouterOS username
            password: RouterOS password
            port: API port (default: 8728)
            conn_timeout: TCP connect timeout in seconds
            cmd_timeout: Maximum seconds to wait for one reply sentence
            settings: Settings to take defaults from (default: global settings)
            login_method: Login handshake ("challenge", "plain" or "auto")
            encoding: Text encoding of API words
            logger: Logger to report through (default: this module's logger)
            auto_login: Connect and authenticate before returning

        Raises:
            ValueError: If no host is configured
            RouterOSConnectionError: If auto_login fails to connect
            RouterOSAuthenticationError: If auto_login is rejected
        """
        settings = settings or get_settings()

        self.host = host if host is not None else settings.host
        if not self.host:
            raise ValueError("RouterOS host is required")
        self.port = port if port is not None else settings.port
        self.username = username if username is not None else settings.username
        self.password = password if password is not None else settings.password
        self.conn_timeout = conn_timeout if conn_timeout is not None else settings.conn_timeout
        self.cmd_timeout = cmd_timeout if cmd_timeout is not None else settings.cmd_timeout
        self.encoding = encoding or settings.encoding

        self.session_id = new_session_id()
        self.logger = SessionLoggerAdapter(
            logger or logging.getLogger(__name__),
            {"session_id": self.session_id, "host": self.host, "port": self.port},
        )

        self.authenticator = Authenticator(
            self.username,
            self.password,
            method=login_method or settings.login_method,
            encoding=self.encoding,
        )

        self.state = ConnectionState.DISCONNECTED
        self._sock: socket.socket | None = None
        self._reader: SentenceReader | None = None
        self._requests: dict[str, Request] = {}
        self._next_tag = 1
        self._fatal: Reply | None = None

        if auto_login:
            self.login()

    def __repr__(self) -> str:
        return (
            f"Connection(host={self.host!r}, port={self.port}, "
            f"state={self.state.value}, pending={len(self._requests)})"
        )

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # ========================================
    # Session lifecycle
    # ========================================

    @property
    def connected(self) -> bool:
        """True while the socket is open, not closed, and no !fatal was seen."""
        return (
            self._sock is not None
            and self.state is not ConnectionState.CLOSED
            and self._fatal is None
        )

    @property
    def pending(self) -> tuple[Request, ...]:
        """Requests still awaiting completion, in start order."""
        return tuple(self._requests.values())

    @property
    def fatal(self) -> Reply | None:
        """The session-ending !fatal reply, if one was received."""
        return self._fatal

    def login(self) -> None:
        """Open a fresh socket and run the login handshake.

        Used at construction and to recover after a device-initiated
        disconnect. Requests left pending by a previous session are
        discarded.

        Raises:
            RouterOSConnectionError: If the connection is closed or the
                device cannot be reached
            RouterOSAuthenticationError: If the device rejects the login
            RouterOSTimeoutError: If the device stops answering mid-login
        """
        if self.state is ConnectionState.CLOSED:
            raise RouterOSConnectionError("Connection is closed")

        self._drop_socket()
        if self._requests:
            self.logger.warning(
                f"Discarding {len(self._requests)} requests pending from previous session"
            )
            self._requests.clear()
        self._fatal = None

        self._set_state(ConnectionState.CONNECTING)
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.conn_timeout)
        except OSError as e:
            self._set_state(ConnectionState.DISCONNECTED)
            raise RouterOSConnectionError(
                f"Cannot connect to {self.host}:{self.port}: {e}"
            ) from e

        self._sock = sock
        self._reader = SentenceReader(sock)

        self._set_state(ConnectionState.AUTHENTICATING)
        try:
            self.authenticator.login(self._write_sentence, self._read_reply)
        except Exception:
            self._drop_socket()
            self._set_state(ConnectionState.DISCONNECTED)
            raise

        self._set_state(ConnectionState.READY)

    def close(self) -> None:
        """Close the socket and end the session for good.

        Idempotent. Requests still pending are dropped from the registry
        and stay PENDING.
        """
        if self.state is ConnectionState.CLOSED:
            return
        if self._requests:
            self.logger.info(f"Closing with {len(self._requests)} requests pending")
            self._requests.clear()
        self._drop_socket()
        self._set_state(ConnectionState.CLOSED)

    # ========================================
    # Requests
    # ========================================

    def send_request(
        self,
        synchronous: bool,
        command: str,
        arguments: Sequence[str] | str = (),
        callback: ReplyCallback | None = None,
    ) -> Request:
        """Send a command and register it as pending. Does not wait.

        Args:
            synchronous: Advisory flag for layered callers; no engine effect
            command: Command path (e.g., "/ip/address/print")
            arguments: Argument words (e.g., ["=.proplist=address", "?disabled=false"])
            callback: Invoked with (request, reply) for every reply sentence

        Returns:
            The new pending Request

        Raises:
            ValueError: If command is not a "/"-rooted path, or a word cannot
                be encoded
            RouterOSConnectionError: If the session is not ready
        """
        self._require_ready()
        if not command.startswith("/"):
            raise ValueError(f"Command must be an absolute path, got {command!r}")
        if isinstance(arguments, str):
            arguments = [arguments]

        request = Request(self._allocate_tag(), command, arguments, synchronous, callback)
        self._write_sentence(request.to_words())
        self._requests[request.tag] = request

        self.logger.debug(
            f"Sent {command} with {len(request.arguments)} arguments",
            extra={"tag": request.tag, "command": command},
        )
        return request

    def cancel(self, request: Request | str, callback: ReplyCallback | None = None) -> Request:
        """Ask the device to stop a pending command.

        Cancellation is cooperative: the device answers the target with a
        !trap followed by !done, which the caller must still dispatch.

        Args:
            request: Target request or its tag
            callback: Callback for the /cancel request itself

        Returns:
            The /cancel Request

        Raises:
            ValueError: If the target is not pending on this connection
        """
        tag = request.tag if isinstance(request, Request) else request
        if tag not in self._requests:
            raise ValueError(f"Request tag {tag} is not pending")
        return self.send_request(True, CANCEL_COMMAND, [f"=tag={tag}"], callback)

    # ========================================
    # Dispatch
    # ========================================

    def receive_and_dispatch(self) -> bool:
        """Read one sentence and deliver it to its request.

        Blocks for at most cmd_timeout waiting for a complete sentence.

        Returns:
            True if any request completed during this call

        Raises:
            RouterOSTimeoutError: No complete sentence in time (retryable)
            RouterOSProtocolError: Malformed framing or unattributable sentence
            RouterOSConnectionError: Session not ready or stream closed
        """
        self._require_ready()

        try:
            reply = self._read_reply()
        except RouterOSTimeoutError:
            raise
        except (RouterOSProtocolError, RouterOSConnectionError) as e:
            self.logger.warning(f"Session lost: {e}")
            self._disconnect()
            raise

        request = self._requests.get(reply.tag) if reply.tag is not None else None

        match reply.kind:
            case ReplyKind.FATAL:
                return self._dispatch_fatal(reply, request)
            case ReplyKind.DONE | ReplyKind.ROW | ReplyKind.TRAP:
                if request is None:
                    raise RouterOSProtocolError(
                        f"Reply {reply.kind.value} with unknown tag {reply.tag!r}"
                    )
                return self._deliver(request, reply)

        raise RouterOSProtocolError(f"Unhandled reply kind {reply.kind!r}")

    def wait_for_reply(self) -> bool:
        """Dispatch exactly one sentence. See receive_and_dispatch()."""
        return self.receive_and_dispatch()

    def wait_all(self) -> None:
        """Dispatch until every registered request is done.

        The timeout applies per sentence, so the total wait may be up to
        (undelivered sentences) x cmd_timeout.
        """
        while self._requests:
            self.receive_and_dispatch()

    def get_reply(self, command: str) -> list[Reply]:
        """Send a command with no arguments and wait for its completion.

        Returns:
            All replies for the command, in arrival order
        """
        request = self.send_request(True, command)
        while not request.done:
            self.wait_for_reply()
        return list(request.reply)

    def quit(self) -> Reply:
        """Run the /quit shutdown handshake.

        The device answers /quit with a single !fatal and drops the
        session, so here !fatal is the expected answer.

        Returns:
            The !fatal reply

        Raises:
            RouterOSFatalError: If the answer is anything but one !fatal
        """
        replies = self.get_reply(QUIT_COMMAND)
        if len(replies) != 1 or replies[0].kind is not ReplyKind.FATAL:
            kinds = ", ".join(r.kind.value for r in replies)
            raise RouterOSFatalError(
                f"Unexpected response to '{QUIT_COMMAND}' command: {kinds}",
                replies[-1].message if replies else None,
            )
        return replies[0]

    def _deliver(self, request: Request, reply: Reply) -> bool:
        completed = request.record(reply)
        if completed:
            del self._requests[request.tag]
        self._invoke(request, reply)
        return completed

    def _dispatch_fatal(self, reply: Reply, request: Request | None) -> bool:
        """Handle a !fatal: complete its own request, then every other one.

        A !fatal ends the whole session. Untagged, it also answers an
        in-flight /quit, which sits in the registry like any other request.
        """
        self._fatal = reply
        self.logger.warning(
            f"Device sent !fatal: {reply.message or 'no message'}",
            extra={"tag": reply.tag, "reply_kind": reply.kind.value},
        )

        targets = [request] if request is not None else []
        targets.extend(r for r in self._requests.values() if r is not request)
        self._requests.clear()
        for target in targets:
            target.record(reply)

        self._disconnect()

        for target in targets:
            self._invoke(target, reply)
        return bool(targets)

    def _invoke(self, request: Request, reply: Reply) -> None:
        if request.callback is not None:
            request.callback(request, reply)

    # ========================================
    # Stream helpers
    # ========================================

    def _allocate_tag(self) -> str:
        for _ in range(len(self._requests) + 1):
            tag = str(self._next_tag)
            self._next_tag = self._next_tag % TAG_LIMIT + 1
            if tag not in self._requests:
                return tag
        raise RuntimeError("No free request tag")

    def _write_sentence(self, words: list[str]) -> None:
        if self._sock is None:
            raise RouterOSConnectionError("Not connected")
        try:
            data = encode_sentence(words, self.encoding)
        except UnicodeError as e:
            raise ValueError(f"Cannot encode sentence as {self.encoding}: {e}") from e
        try:
            self._sock.settimeout(self.cmd_timeout)
            self._sock.sendall(data)
        except OSError as e:
            self._disconnect()
            raise RouterOSConnectionError(f"Socket error while writing: {e}") from e

    def _read_reply(self) -> Reply:
        if self._reader is None:
            raise RouterOSConnectionError("Not connected")
        words = self._reader.read_sentence(self.cmd_timeout)
        reply = Reply.from_words([w.decode(self.encoding, errors="replace") for w in words])
        self.logger.debug(
            f"Received {reply.kind.value} with {len(reply.attributes)} attributes",
            extra={"tag": reply.tag, "reply_kind": reply.kind.value},
        )
        return reply

    def _require_ready(self) -> None:
        if self.state is ConnectionState.CLOSED:
            raise RouterOSConnectionError("Connection is closed")
        if self.state is not ConnectionState.READY:
            raise RouterOSConnectionError(f"Connection not ready (state: {self.state.value})")

    def _set_state(self, state: ConnectionState) -> None:
        if state is not self.state:
            self.logger.info(
                f"Session {self.state.value} -> {state.value}", extra={"state": state.value}
            )
            self.state = state

    def _disconnect(self) -> None:
        self._drop_socket()
        if self.state is not ConnectionState.CLOSED:
            self._set_state(ConnectionState.DISCONNECTED)

    def _drop_socket(self) -> None:
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError as e:
                self.logger.debug(f"Ignoring error while closing socket: {e}")
        self._sock = None
        self._reader = None
