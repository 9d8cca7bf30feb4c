"""Shared pytest fixtures.

These fixtures live at `tests/` scope so they are available to every test
module.

Key goals:
- Prevent the global settings singleton from leaking state across tests.
- Provide a scripted RouterOS device (``FakeRouter``) on the far end of a
  real socket pair, so the connection engine is exercised over an actual
  byte stream with real socket timeouts.
"""

from __future__ import annotations

import socket

import pytest

from routeros_api.config import Settings, set_settings
from routeros_api.infra.routeros import wire
from routeros_api.infra.routeros.connection import Connection

CHALLENGE = "0123456789abcdef0123456789abcdef"
# MD5(0x00 + b"secret" + unhex(CHALLENGE)), prefixed with "00"
CHALLENGE_RESPONSE = "00ebbe7c3df6b3d902bfd1f355c6e63289"


class FakeRouter:
    """Scripted RouterOS device.

    Every ``create_connection`` call opens a fresh socket pair, queues the
    login script on the device side and hands the client side to the
    connection under test. Replies are queued ahead of time; the client
    reads them in order as it dispatches.
    """

    def __init__(self) -> None:
        self.connections: list[tuple[tuple[str, int], float | None]] = []
        self.login_script: list[list[str]] = [["!done", f"=ret={CHALLENGE}"], ["!done"]]
        self.refuse = False
        self.client_sock: socket.socket | None = None
        self.device_sock: socket.socket | None = None
        self._reader: wire.SentenceReader | None = None
        self._sockets: list[socket.socket] = []

    def create_connection(self, address, timeout=None, *args, **kwargs) -> socket.socket:
        self.connections.append((address, timeout))
        if self.refuse:
            raise ConnectionRefusedError(111, "Connection refused")

        self.client_sock, self.device_sock = socket.socketpair()
        self._sockets.extend([self.client_sock, self.device_sock])
        self._reader = wire.SentenceReader(self.device_sock)
        for words in self.login_script:
            self.reply(*words)
        return self.client_sock

    def reply(self, *words: str) -> None:
        """Queue one sentence for the client."""
        self.device_sock.sendall(wire.encode_sentence(words))

    def send_raw(self, data: bytes) -> None:
        self.device_sock.sendall(data)

    def expect_sentence(self, timeout: float = 2.0) -> list[str]:
        """Read the next sentence the client sent."""
        return [w.decode() for w in self._reader.read_sentence(timeout)]

    def hang_up(self) -> None:
        self.device_sock.close()

    def close(self) -> None:
        for sock in self._sockets:
            sock.close()


@pytest.fixture(autouse=True)
def _reset_global_settings() -> None:
    """Ensure the settings singleton does not leak between tests."""
    set_settings(None)
    yield
    set_settings(None)


@pytest.fixture
def router(monkeypatch: pytest.MonkeyPatch) -> FakeRouter:
    """Fake device wired into socket.create_connection."""
    fake = FakeRouter()
    monkeypatch.setattr(socket, "create_connection", fake.create_connection)
    yield fake
    fake.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        host="192.0.2.1",
        username="admin",
        password="secret",
        conn_timeout=5.0,
        cmd_timeout=2.0,
    )


@pytest.fixture
def conn(router: FakeRouter, settings: Settings) -> Connection:
    """Logged-in connection with the login sentences already drained."""
    connection = Connection(settings=settings)
    router.expect_sentence()
    router.expect_sentence()
    yield connection
    connection.close()
