"""RouterOS API login handshake.

Supported methods:
- challenge: pre-6.43 MD5 challenge-response
    -> /login
    <- !done =ret=<hex challenge>
    -> /login =name=<user> =response=00<md5(0x00 + password + challenge)>
    <- !done
- plain: 6.43+ cleartext login
    -> /login =name=<user> =password=<password>
    <- !done
- auto: plain first, answering a challenge if an older device sends one

Credentials and computed responses are never logged.
"""

import hashlib
import logging
from collections.abc import Callable
from typing import Final, Literal

from routeros_api.infra.routeros.exceptions import RouterOSAuthenticationError
from routeros_api.infra.routeros.reply import Reply, ReplyKind

logger = logging.getLogger(__name__)

LOGIN_COMMAND: Final[str] = "/login"
RESPONSE_PREFIX: Final[str] = "00"

LoginMethod = Literal["challenge", "plain", "auto"]
LOGIN_METHODS: Final[tuple[str, ...]] = ("challenge", "plain", "auto")


def challenge_response(password: str, challenge_hex: str, encoding: str = "utf-8") -> str:
    """Compute the login response for a device challenge.

    MD5(0x00 + password_bytes + challenge_bytes), hex encoded and prefixed
    with "00".

    Raises:
        ValueError: If the challenge is not valid hex, or the password
            cannot be encoded
    """
    try:
        challenge = bytes.fromhex(challenge_hex)
    except ValueError as e:
        raise ValueError(f"malformed challenge {challenge_hex!r}") from e
    try:
        secret = password.encode(encoding)
    except UnicodeError as e:
        raise ValueError(f"password cannot be encoded as {encoding}") from e

    digest = hashlib.md5()
    digest.update(b"\x00")
    digest.update(secret)
    digest.update(challenge)
    return RESPONSE_PREFIX + digest.hexdigest()


class Authenticator:
    """Runs the login handshake over an established sentence stream.

    The authenticator owns no socket. It is handed two callables by the
    connection: one that writes a sentence and one that reads the next
    reply sentence.

    Example:
        auth = Authenticator("admin", "secret")
        auth.login(send=conn_send_words, receive=conn_read_reply)
    """

    def __init__(
        self,
        username: str,
        password: str,
        method: LoginMethod = "challenge",
        encoding: str = "utf-8",
    ) -> None:
        if method not in LOGIN_METHODS:
            raise ValueError(f"Unknown login method: {method!r}")
        self.username = username
        self.password = password
        self.method = method
        self.encoding = encoding

    def login(
        self,
        send: Callable[[list[str]], None],
        receive: Callable[[], Reply],
    ) -> Reply:
        """Run the handshake.

        Returns:
            The final !done reply from the device

        Raises:
            RouterOSAuthenticationError: On rejection, an unexpected reply, or
                credentials the configured encoding cannot represent
        """
        logger.debug(f"Starting {self.method} login as {self.username!r}")
        self._check_encodable()

        if self.method == "challenge":
            send([LOGIN_COMMAND])
            reply = receive()
            return self._answer_challenge(reply, send, receive)

        send([LOGIN_COMMAND, f"=name={self.username}", f"=password={self.password}"])
        reply = receive()

        if reply.kind is ReplyKind.DONE and "ret" in reply:
            if self.method == "plain":
                raise RouterOSAuthenticationError(
                    "Device requires challenge login (use login_method 'challenge' or 'auto')"
                )
            logger.debug("Device answered plain login with a challenge, falling back")
            return self._answer_challenge(reply, send, receive)

        return self._check_result(reply)

    def _answer_challenge(
        self,
        reply: Reply,
        send: Callable[[list[str]], None],
        receive: Callable[[], Reply],
    ) -> Reply:
        if reply.kind is not ReplyKind.DONE or "ret" not in reply:
            raise RouterOSAuthenticationError(
                f"Login failed: expected challenge, got {reply.kind.value}"
                + (f": {reply.message}" if reply.message else ""),
                reply.message,
            )

        try:
            response = challenge_response(self.password, reply["ret"], self.encoding)
        except ValueError as e:
            raise RouterOSAuthenticationError(f"Login failed: {e}") from e

        send([LOGIN_COMMAND, f"=name={self.username}", f"=response={response}"])
        return self._check_result(receive())

    def _check_encodable(self) -> None:
        for name, value in (("username", self.username), ("password", self.password)):
            try:
                value.encode(self.encoding)
            except UnicodeError as e:
                raise RouterOSAuthenticationError(
                    f"Login failed: {name} cannot be encoded as {self.encoding}"
                ) from e

    def _check_result(self, reply: Reply) -> Reply:
        if reply.kind is ReplyKind.DONE and "message" not in reply:
            logger.debug(f"Login accepted for {self.username!r}")
            return reply

        message = reply.message
        raise RouterOSAuthenticationError(
            f"Login failed: {message}" if message else f"Login failed: {reply.kind.value}",
            message,
        )
