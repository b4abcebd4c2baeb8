"""HTTP response model and serializer."""

from dataclasses import dataclass, field
from enum import Enum

HTTP_VERSION = "HTTP/1.1"


class ResponseKind(Enum):
    """Every outcome the server can produce, keyed to its fixed status line."""

    OK = (200, "OK")
    TEMPORARY_REDIRECT = (307, "TEMPORARY REDIRECT")
    PERMANENT_REDIRECT = (307, "PERMANENT REDIRECT")
    BAD_REQUEST = (400, "BAD REQUEST")
    REQUEST_TARGET_TOO_LONG = (414, "REQUEST-URI TOO LONG")
    NOT_FOUND = (404, "NOT FOUND")

    @property
    def status_code(self) -> int:
        return self.value[0]

    @property
    def reason(self) -> str:
        return self.value[1]

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason}"


@dataclass(slots=True)
class HTTPResponse:
    kind: ResponseKind
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def body_bytes(self) -> bytes:
        """Body as sent on the wire; defaults to the status line text."""
        if self.body is None:
            return self.kind.status_line.encode("utf-8")
        return self.body.encode("utf-8")

    def to_bytes(self) -> bytes:
        """Serialize the response into HTTP/1.1 wire format bytes."""
        body = self.body_bytes()
        header_lines = [f"{HTTP_VERSION} {self.kind.status_line}"]
        header_lines.extend(
            f"{name}: {value}"
            for name, value in self.headers.items()
            if name.lower() != "content-length"
        )
        header_lines.append(f"Content-Length: {len(body)}")
        head = "\r\n".join(header_lines).encode("utf-8") + b"\r\n\r\n"
        return head + body
