"""Interactive RouterOS API console.

Reads one command per line, sends it, and prints replies as they stream
in. Input format:

    [N:]/command/path [argument words...]

An optional ``N:`` prefix cancels the command after N rows. ``/tool/fetch``
is cancelled automatically once it reports ``status=finished``. ``/quit``
(or end of input) ends the session with the /quit handshake.
"""

import re
from typing import TextIO

from rich.console import Console
from rich.markup import escape

from routeros_api.config import Settings
from routeros_api.infra.routeros.connection import Connection
from routeros_api.infra.routeros.exceptions import RouterOSError
from routeros_api.infra.routeros.reply import Reply, ReplyKind
from routeros_api.infra.routeros.request import Request

PROMPT = "\nCommand (/quit to end): "
COMMAND_PATTERN = re.compile(r"^(?:/[a-zA-Z0-9-]+)+$")
ROW_LIMIT_PATTERN = re.compile(r"^(\d+):")
FETCH_COMMAND = "/tool/fetch"


class InteractiveShell:
    """Line-oriented console driving one Connection.

    Example:
        conn = Connection("192.168.88.1", "admin", "secret")
        InteractiveShell(conn).run()
    """

    def __init__(
        self,
        connection: Connection,
        input_stream: TextIO | None = None,
        console: Console | None = None,
    ) -> None:
        """Initialize the shell.

        Args:
            connection: Logged-in connection to drive
            input_stream: Where to read commands from (default: console input)
            console: Where to print output (default: stdout console)
        """
        self.connection = connection
        self.input_stream = input_stream
        self.console = console or Console(highlight=False)

    def run(self) -> Reply | None:
        """Read and execute commands until /quit or end of input.

        Returns:
            The device's !fatal answer to /quit, or None if the session
            could not be shut down cleanly
        """
        while True:
            line = self._read_line()
            if line is None:
                break

            line = line.strip()
            max_rows = 0
            match = ROW_LIMIT_PATTERN.match(line)
            if match:
                max_rows = int(match.group(1))
                line = line[match.end() :]

            words = line.split()
            if not words:
                continue
            cmd, args = words[0], words[1:]
            if cmd == "/quit":
                break
            if not COMMAND_PATTERN.match(cmd):
                self._say(f"INVALID COMMAND: {cmd}", "red")
                break

            self._say(f"COMMAND: {cmd}", "cyan")
            try:
                self.execute(cmd, args, max_rows)
            except (RouterOSError, ValueError) as e:
                self._say(f"ERROR: {e}", "red")

            if not self.connection.connected:
                try:
                    self.connection.login()
                except RouterOSError as e:
                    self._say(f"LOGIN ERROR: {e}", "red")
                    self.connection.close()
                    return None

        return self.shutdown()

    def execute(self, cmd: str, args: list[str], max_rows: int = 0) -> Request:
        """Send one command and dispatch until it (and any cancel) completes.

        Args:
            cmd: Command path
            args: Argument words
            max_rows: Cancel after this many rows (0 = never)

        Returns:
            The completed request
        """
        cancels: list[Request] = []

        def on_reply(request: Request, reply: Reply) -> None:
            match reply.kind:
                case ReplyKind.TRAP:
                    self._say(f"TRAP: '{reply.message or 'UNKNOWN'}'", "yellow")
                case ReplyKind.ROW:
                    self._print_row(reply)
                    count = len(request.rows)
                    fetch_finished = cmd == FETCH_COMMAND and reply.get("status") == "finished"
                    if not cancels and (fetch_finished or (max_rows > 0 and count == max_rows)):
                        cancels.append(self.connection.cancel(request))
                case ReplyKind.DONE:
                    self._say(f"DONE ({len(request.rows)} rows)", "green")
                case ReplyKind.FATAL:
                    self._say(f"FATAL: '{reply.message or 'UNKNOWN'}'", "red")

        request = self.connection.send_request(False, cmd, args, on_reply)
        while not request.done or any(not c.done for c in cancels):
            self.connection.wait_for_reply()
        return request

    def shutdown(self) -> Reply | None:
        """Run the /quit handshake and report how the session ended."""
        try:
            reply = self.connection.quit()
        except RouterOSError as e:
            self._say(f"ERROR: {e}", "red")
            self.connection.close()
            return None

        message = describe_fatal(reply)
        if message:
            self._say(f"SESSION TERMINATED: {message}", "bold")
        else:
            self._say("SESSION TERMINATED ===", "bold")

        if not self.connection.connected:
            self._say("Disconnected ===", "bold")
        self.connection.close()
        return reply

    def _read_line(self) -> str | None:
        if self.input_stream is None:
            try:
                return self.console.input(PROMPT)
            except EOFError:
                return None
        self.console.print(PROMPT, end="", markup=False)
        line = self.input_stream.readline()
        return line if line else None

    def _print_row(self, reply: Reply) -> None:
        for name, value in reply.attributes.items():
            self.console.print(f"  [bold]{escape(name)}[/bold]={escape(value)}")
        self.console.print()

    def _say(self, text: str, style: str) -> None:
        self.console.print(f"=== {text}", style=style, markup=False)


def describe_fatal(reply: Reply) -> str:
    """Render the device-provided content of a !fatal reply."""
    parts = [f"'{word}'" for word in reply.text]
    parts.extend(f"'{name}' => '{value}'" for name, value in reply.attributes.items())
    return " ".join(parts)


def interactive_client(
    host: str | None,
    username: str | None = None,
    password: str | None = None,
    *,
    settings: Settings | None = None,
    console: Console | None = None,
    input_stream: TextIO | None = None,
) -> int:
    """Log in and run an interactive shell.

    Returns:
        Process exit code (0 after a clean session, 1 on login failure)
    """
    console = console or Console(highlight=False)
    try:
        conn = Connection(host, username, password, settings=settings)
    except RouterOSError as e:
        console.print(f"=== LOGIN ERROR: {e}", style="red", markup=False)
        return 1

    shell = InteractiveShell(conn, input_stream=input_stream, console=console)
    return 0 if shell.run() is not None else 1
