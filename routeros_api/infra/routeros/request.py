"""Outstanding command state for the RouterOS API.

A Request is created by ``Connection.send_request`` and only mutated by the
connection's dispatch step. It accumulates reply sentences in arrival order
until a ``!done`` (or a session-level ``!fatal``) completes it.
"""

from collections.abc import Callable, Sequence
from enum import Enum

from routeros_api.infra.routeros.exceptions import RouterOSProtocolError
from routeros_api.infra.routeros.reply import TAG_ATTRIBUTE, Reply, ReplyKind

ReplyCallback = Callable[["Request", Reply], None]


class RequestState(str, Enum):
    PENDING = "pending"
    DONE = "done"


class Request:
    """One command sent to the device and the replies it has produced.

    Example:
        req = conn.send_request(False, "/interface/print")
        conn.wait_all()
        for row in req.rows:
            print(row["name"])
    """

    def __init__(
        self,
        tag: str,
        command: str,
        arguments: Sequence[str] = (),
        synchronous: bool = False,
        callback: ReplyCallback | None = None,
    ) -> None:
        """Initialize a pending request.

        Args:
            tag: Correlation tag, unique among the connection's pending requests
            command: Command path (e.g., "/system/identity/print")
            arguments: Attribute, API attribute or query words
            synchronous: Advisory flag for callers layered on the connection
            callback: Invoked once per reply sentence with (request, reply)
        """
        self.tag = tag
        self.command = command
        self.arguments = tuple(arguments)
        self.synchronous = synchronous
        self.callback = callback
        self.state = RequestState.PENDING
        self._replies: list[Reply] = []

    def __repr__(self) -> str:
        return (
            f"Request(tag={self.tag!r}, command={self.command!r}, "
            f"state={self.state.value}, replies={len(self._replies)})"
        )

    @property
    def done(self) -> bool:
        return self.state is RequestState.DONE

    @property
    def reply(self) -> tuple[Reply, ...]:
        """Snapshot of the replies received so far, in arrival order."""
        return tuple(self._replies)

    @property
    def rows(self) -> tuple[Reply, ...]:
        return tuple(r for r in self._replies if r.kind is ReplyKind.ROW)

    @property
    def traps(self) -> tuple[Reply, ...]:
        return tuple(r for r in self._replies if r.kind is ReplyKind.TRAP)

    def to_words(self) -> list[str]:
        """Words of the sentence that carries this request on the wire."""
        return [self.command, *self.arguments, f"{TAG_ATTRIBUTE}={self.tag}"]

    def record(self, reply: Reply) -> bool:
        """Append a reply and complete the request on a terminal kind.

        Returns:
            True if this reply completed the request

        Raises:
            RouterOSProtocolError: If the request is already done
        """
        if self.done:
            raise RouterOSProtocolError(
                f"Reply {reply.kind.value} for completed request tag {self.tag}"
            )
        self._replies.append(reply)
        if reply.is_terminal:
            self.state = RequestState.DONE
            return True
        return False
