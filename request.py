"""HTTP request-line model and parser."""

from dataclasses import dataclass

from response import ResponseKind

ACCEPTED_METHOD = "GET"


class HTTPRequestParseError(ValueError):
    """Request parse error carrying the response kind to answer with."""

    def __init__(self, message: str, *, kind: ResponseKind = ResponseKind.BAD_REQUEST) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(slots=True, frozen=True)
class HTTPRequest:
    method: str
    target: str
    version: str

    @property
    def token(self) -> str:
        """Short-link key: the target without its leading slash."""
        return self.target.removeprefix("/")


def parse_request_line(text: str) -> HTTPRequest:
    """Parse the first CRLF-terminated line of ``text`` into a GET request."""
    if "\r\n" not in text:
        raise HTTPRequestParseError(
            "Request line is not CRLF terminated",
            kind=ResponseKind.REQUEST_TARGET_TOO_LONG,
        )

    line = text.split("\r\n", 1)[0]
    if "\r" in line or "\n" in line:
        raise HTTPRequestParseError("Stray line break in request line")

    parts = line.split(" ")
    if len(parts) != 3:
        raise HTTPRequestParseError("Invalid request line")

    method, target, version = parts
    # Anything but GET gets a plain 404, not 405.
    if method != ACCEPTED_METHOD:
        raise HTTPRequestParseError("Unsupported method", kind=ResponseKind.NOT_FOUND)

    return HTTPRequest(method=method, target=target, version=version)
