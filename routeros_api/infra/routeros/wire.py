"""RouterOS API wire codec.

Wire format:
  Sentence = Word* + ZeroWord
  Word     = Length + Data
  ZeroWord = 0x00
  Length   = variable (1-5 bytes)

Length prefix size classes (the shortest form is always written):
  < 0x80        1 byte   0xxxxxxx
  < 0x4000      2 bytes  10xxxxxx xxxxxxxx
  < 0x200000    3 bytes  110xxxxx ...
  < 0x10000000  4 bytes  1110xxxx ...
  < 0x100000000 5 bytes  11110000 + 4 bytes big-endian

First bytes 0xF1-0xFF never start a length (0xF8-0xFF are reserved control
bytes); decoding one is a protocol error.
"""

import socket
import struct
import time
from collections.abc import Iterable

from routeros_api.infra.routeros.exceptions import (
    RouterOSConnectionError,
    RouterOSProtocolError,
    RouterOSTimeoutError,
)

MAX_WORD_LENGTH = 0xFFFFFFFF

DEFAULT_CHUNK_SIZE = 4096


class IncompleteSentence(Exception):
    """Buffer ends before the current length prefix, word or sentence does."""

    pass


# ─── Length Encoding ──────────────────────────────────────────────────────────


def encode_length(length: int) -> bytes:
    """Encode a word length as a variable-width prefix.

    Raises:
        ValueError: If length is negative or does not fit in 32 bits
    """
    if length < 0:
        raise ValueError(f"Word length must be non-negative, got {length}")
    if length < 0x80:
        return struct.pack("B", length)
    elif length < 0x4000:
        return struct.pack(">H", length | 0x8000)
    elif length < 0x200000:
        return struct.pack(">I", length | 0xC00000)[1:]
    elif length < 0x10000000:
        return struct.pack(">I", length | 0xE0000000)
    elif length <= MAX_WORD_LENGTH:
        return b"\xf0" + struct.pack(">I", length)
    raise ValueError(f"Word length {length} exceeds protocol maximum {MAX_WORD_LENGTH}")


def decode_length(data: bytes | bytearray, offset: int = 0) -> tuple[int, int]:
    """Decode a length prefix starting at offset.

    Returns:
        (length, new_offset)

    Raises:
        IncompleteSentence: If data ends inside the prefix
        RouterOSProtocolError: If the first byte is not a valid prefix byte
    """
    if offset >= len(data):
        raise IncompleteSentence("no length prefix")

    first = data[offset]
    if first < 0x80:
        return first, offset + 1
    elif first < 0xC0:
        width, mask = 2, 0x3FFF
    elif first < 0xE0:
        width, mask = 3, 0x1FFFFF
    elif first < 0xF0:
        width, mask = 4, 0x0FFFFFFF
    elif first == 0xF0:
        width, mask = 5, 0xFFFFFFFF
    else:
        raise RouterOSProtocolError(f"Malformed length prefix byte 0x{first:02x}")

    end = offset + width
    if end > len(data):
        raise IncompleteSentence("truncated length prefix")

    raw = bytes(data[offset:end])
    if width == 5:
        value = struct.unpack(">I", raw[1:])[0]
    else:
        value = int.from_bytes(raw, "big") & mask
    return value, end


# ─── Word / Sentence Encoding ─────────────────────────────────────────────────


def encode_word(word: str | bytes, encoding: str = "utf-8") -> bytes:
    data = word.encode(encoding) if isinstance(word, str) else bytes(word)
    return encode_length(len(data)) + data


def encode_sentence(words: Iterable[str | bytes], encoding: str = "utf-8") -> bytes:
    """Encode words followed by the zero-length terminator."""
    return b"".join(encode_word(w, encoding) for w in words) + b"\x00"


# ─── Sentence Decoding ────────────────────────────────────────────────────────


def decode_sentence(data: bytes | bytearray, offset: int = 0) -> tuple[list[bytes], int]:
    """Decode one complete sentence from a byte buffer.

    Returns:
        (words, new_offset) where new_offset points just past the terminator

    Raises:
        IncompleteSentence: If the buffer ends before the terminator
        RouterOSProtocolError: On a malformed length prefix
    """
    words: list[bytes] = []
    while True:
        length, offset = decode_length(data, offset)
        if length == 0:
            return words, offset
        end = offset + length
        if end > len(data):
            raise IncompleteSentence("truncated word")
        words.append(bytes(data[offset:end]))
        offset = end


class SentenceReader:
    """Buffered sentence reader over a connected socket.

    Bytes received before a timeout stay buffered, so a later call resumes
    the partially received sentence instead of losing it.

    Example:
        reader = SentenceReader(sock)
        words = reader.read_sentence(timeout=60.0)
    """

    def __init__(self, sock: socket.socket, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._sock = sock
        self._buffer = bytearray()
        self.chunk_size = chunk_size

    @property
    def buffered(self) -> int:
        """Number of received bytes not yet consumed as a sentence."""
        return len(self._buffer)

    def read_sentence(self, timeout: float | None = None) -> list[bytes]:
        """Block until one complete sentence is available and return its words.

        Args:
            timeout: Seconds to wait for the whole sentence (None waits forever)

        Raises:
            RouterOSTimeoutError: If no complete sentence arrives in time
            RouterOSProtocolError: On malformed framing or EOF mid-sentence
            RouterOSConnectionError: On EOF between sentences or socket errors
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            try:
                words, consumed = decode_sentence(self._buffer)
            except IncompleteSentence:
                self._fill(deadline, timeout)
                continue
            del self._buffer[:consumed]
            return words

    def _fill(self, deadline: float | None, timeout: float | None) -> None:
        if deadline is None:
            self._sock.settimeout(None)
        else:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise RouterOSTimeoutError(f"No complete sentence received within {timeout}s")
            self._sock.settimeout(remaining)

        try:
            chunk = self._sock.recv(self.chunk_size)
        except TimeoutError as e:
            raise RouterOSTimeoutError(f"No complete sentence received within {timeout}s") from e
        except OSError as e:
            raise RouterOSConnectionError(f"Socket error while reading: {e}") from e

        if not chunk:
            if self._buffer:
                raise RouterOSProtocolError(
                    f"Connection closed mid-sentence ({len(self._buffer)} bytes buffered)"
                )
            raise RouterOSConnectionError("Connection closed by device")

        self._buffer.extend(chunk)
