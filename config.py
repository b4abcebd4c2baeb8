"""Configuration constants for the link shortener server."""

HOST: str = "127.0.0.1"
PORT: int = 8080
LINKS_FILE: str = "links.json"
READ_CHUNK_SIZE: int = 128
MAX_REQUEST_LINE_BYTES: int = 8_192
MAX_HEADER_BYTES: int = 16_384
DRAIN_CHUNK_SIZE: int = 4_096
SOCKET_TIMEOUT_SECS: float = 0.5
ACCEPT_TIMEOUT_SECS: float = 0.2
LISTEN_BACKLOG: int = 128
ALLOW_CLIENT_CACHE: bool = True
DISCARD_REQUEST_HEADERS: bool = True
LOG_FORMAT: str = "plain"
