"""Low-level socket read/write utilities."""

from __future__ import annotations

import socket
from dataclasses import dataclass

from config import DRAIN_CHUNK_SIZE, MAX_HEADER_BYTES, READ_CHUNK_SIZE
from response import HTTPResponse


class HTTPReadError(Exception):
    """Raised when a client request cannot be safely read from the socket."""


class MalformedRequestError(HTTPReadError):
    """Raised when the request line bytes are not valid UTF-8."""


class RequestLineTooLongError(HTTPReadError):
    """Raised when the request line fills the read budget without a line break."""


class SocketTimeoutError(HTTPReadError):
    """Raised when a client times out while sending request bytes."""


@dataclass(slots=True)
class RequestLineRead:
    text: str
    leftover: bytes = b""

    def bytes_after_request_line(self) -> bytes:
        """Everything received past the first CRLF, still undecoded."""
        _line, separator, rest = self.text.partition("\r\n")
        if not separator:
            return self.leftover
        return rest.encode("utf-8") + self.leftover


def read_request_line(
    client_socket: socket.socket,
    max_bytes: int,
    *,
    chunk_size: int = READ_CHUNK_SIZE,
) -> RequestLineRead | None:
    """Read until a line feed arrives or ``max_bytes`` have been buffered.

    Returns None when the peer closes before sending anything.
    """
    if max_bytes <= 0:
        raise ValueError("max_bytes must be positive")

    buffer = bytearray()
    while b"\n" not in buffer:
        if len(buffer) >= max_bytes:
            raise RequestLineTooLongError("Request line exceeded read budget")
        try:
            chunk = client_socket.recv(min(chunk_size, max_bytes - len(buffer)))
        except socket.timeout as exc:
            raise SocketTimeoutError("Timed out waiting for request line") from exc

        if not chunk:
            if not buffer:
                return None
            break
        buffer.extend(chunk)

    line_end = buffer.rfind(b"\n") + 1
    if line_end == 0:
        line_end = len(buffer)

    try:
        text = bytes(buffer[:line_end]).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedRequestError("Request line is not valid UTF-8") from exc
    return RequestLineRead(text=text, leftover=bytes(buffer[line_end:]))


def discard_header_block(
    client_socket: socket.socket,
    buffered: bytes = b"",
    *,
    max_bytes: int = MAX_HEADER_BYTES,
    chunk_size: int = READ_CHUNK_SIZE,
) -> int:
    """Drop header lines up to the blank line that ends the request head.

    Stops early at end of stream, after ``max_bytes`` or on read timeout.
    Returns the number of bytes consumed from the socket.
    """
    # The request line's CRLF is already consumed; restore it so an
    # immediately following CRLF counts as the blank line.
    tail = b"\r\n" + buffered
    consumed = 0
    while b"\r\n\r\n" not in tail and consumed < max_bytes:
        try:
            chunk = client_socket.recv(min(chunk_size, max_bytes - consumed))
        except socket.timeout:
            break
        if not chunk:
            break
        consumed += len(chunk)
        # Only the last three bytes can still start a terminator.
        tail = tail[-3:] + chunk
    return consumed


def drain_unread_input(
    client_socket: socket.socket,
    *,
    max_bytes: int = MAX_HEADER_BYTES,
    chunk_size: int = DRAIN_CHUNK_SIZE,
) -> int:
    """Half-close the socket, then read and drop whatever the peer still sends.

    Closing with unread bytes makes the kernel reset the connection, which can
    destroy a response the peer has not read yet. Stops at end of stream,
    after ``max_bytes`` or on read timeout. Returns the bytes dropped.
    """
    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        return 0

    consumed = 0
    while consumed < max_bytes:
        try:
            chunk = client_socket.recv(min(chunk_size, max_bytes - consumed))
        except OSError:
            break
        if not chunk:
            break
        consumed += len(chunk)
    return consumed


def write_http_response(client_socket: socket.socket, response: HTTPResponse) -> int:
    """Write the complete response and return the number of bytes sent."""
    payload = response.to_bytes()
    client_socket.sendall(payload)
    return len(payload)
