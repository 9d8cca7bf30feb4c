"""One-shot RouterOS API calls.

Connects, sends one or more commands, waits for all of them to complete,
runs the /quit handshake, closes, and returns the replies.

WARNING: commands that stream until cancelled (e.g. /tool/fetch,
/interface/monitor-traffic without =once=) never reach !done on their
own, so this call would wait on them forever. Use a Connection and
cancel() for those.
"""

from collections.abc import Sequence

from routeros_api.config import Settings
from routeros_api.infra.routeros.connection import Connection
from routeros_api.infra.routeros.exceptions import RouterOSTrapError
from routeros_api.infra.routeros.reply import Reply

CommandSpec = str | Sequence[str] | Sequence[Sequence[str]]


def normalize_commands(commands: CommandSpec) -> list[tuple[str, list[str]]]:
    """Turn the accepted command shapes into (path, arguments) pairs.

    Accepted shapes:
        "/system/identity/print"                          one command
        ["/interface/print", "?type=ether"]               one command with arguments
        [["/interface/print"], ["/ip/route/print", ...]]  several commands

    Raises:
        ValueError: On any other shape
    """
    if isinstance(commands, str):
        return [(commands, [])]

    if not isinstance(commands, Sequence) or not commands:
        raise ValueError("invalid command argument")

    if isinstance(commands[0], str):
        if not all(isinstance(word, str) for word in commands):
            raise ValueError("invalid command argument")
        return [(commands[0], list(commands[1:]))]

    result: list[tuple[str, list[str]]] = []
    for item in commands:
        if (
            isinstance(item, str)
            or not isinstance(item, Sequence)
            or not item
            or not all(isinstance(word, str) for word in item)
        ):
            raise ValueError("invalid command argument")
        result.append((item[0], list(item[1:])))
    return result


def command(
    host: str | None,
    commands: CommandSpec,
    username: str | None = None,
    password: str | None = None,
    port: int | None = None,
    conn_timeout: float | None = None,
    cmd_timeout: float | None = None,
    *,
    settings: Settings | None = None,
    strict: bool = False,
) -> list[tuple[Reply, ...]]:
    """Run commands on a device over a short-lived connection.

    Args:
        host: RouterOS device hostname or IP (None uses settings.host)
        commands: One command, one command with arguments, or several commands
        username: RouterOS username
        password: RouterOS password
        port: API port
        conn_timeout: TCP connect timeout in seconds
        cmd_timeout: Maximum seconds to wait for one reply sentence
        settings: Settings to take defaults from
        strict: Raise RouterOSTrapError if any command answers with !trap

    Returns:
        One tuple of replies per command, in command order

    Raises:
        ValueError: If commands has an unsupported shape
        RouterOSTrapError: In strict mode, for the first trapped command
        RouterOSFatalError: If /quit is answered with anything but one !fatal
        RouterOSError: On connection, protocol or timeout failures

    Example:
        replies = command("192.168.88.1", "/system/identity/print",
                          username="admin", password="secret")
        print(replies[0][0]["name"])
    """
    pairs = normalize_commands(commands)

    conn = Connection(
        host,
        username,
        password,
        port,
        conn_timeout,
        cmd_timeout,
        settings=settings,
    )
    try:
        requests = [conn.send_request(True, path, args) for path, args in pairs]
        conn.wait_all()

        conn.quit()
    finally:
        conn.close()

    results = [request.reply for request in requests]

    if strict:
        for request in requests:
            for trap in request.traps:
                raise RouterOSTrapError(
                    f"{request.command} failed: {trap.message or 'no message'}",
                    command=request.command,
                    device_message=trap.message,
                    category=trap.get("category"),
                )

    return results
