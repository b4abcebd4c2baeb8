"""Link shortener server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import sys
import time

from config import (
    ACCEPT_TIMEOUT_SECS,
    ALLOW_CLIENT_CACHE,
    DISCARD_REQUEST_HEADERS,
    HOST,
    LINKS_FILE,
    LISTEN_BACKLOG,
    LOG_FORMAT,
    MAX_REQUEST_LINE_BYTES,
    PORT,
    SOCKET_TIMEOUT_SECS,
)
from handlers.link_handlers import index, not_found, redirect, stylesheet
from request import HTTPRequest, HTTPRequestParseError, parse_request_line
from response import HTTPResponse, ResponseKind
from router import Router
from socket_handler import (
    MalformedRequestError,
    RequestLineTooLongError,
    SocketTimeoutError,
    discard_header_block,
    drain_unread_input,
    read_request_line,
    write_http_response,
)
from store import LinkSource, LinkStore, StoreError

logger = logging.getLogger(__name__)


class LinkServer:
    def __init__(
        self,
        store: LinkSource,
        host: str = HOST,
        port: int = PORT,
        router: Router | None = None,
        *,
        allow_client_cache: bool = ALLOW_CLIENT_CACHE,
        max_request_line_bytes: int = MAX_REQUEST_LINE_BYTES,
        socket_timeout_secs: float = SOCKET_TIMEOUT_SECS,
        discard_request_headers: bool = DISCARD_REQUEST_HEADERS,
        log_format: str = LOG_FORMAT,
    ) -> None:
        if max_request_line_bytes <= 0:
            raise ValueError("max_request_line_bytes must be positive")
        if socket_timeout_secs <= 0:
            raise ValueError("socket_timeout_secs must be positive")

        self.store = store
        self.host = host
        self.port = port
        self.router = router or self._build_default_router()
        self.allow_client_cache = allow_client_cache
        self.max_request_line_bytes = max_request_line_bytes
        self.socket_timeout_secs = socket_timeout_secs
        self.discard_request_headers = discard_request_headers
        self.log_format = log_format

        self._server_socket: socket.socket | None = None
        self._running = False

    def _build_default_router(self) -> Router:
        router = Router()
        router.add_route("/", index)
        router.add_route("/index.html", index)
        router.add_route("/style.css", stylesheet)
        return router

    def start(self) -> None:
        """Bind, listen and serve one connection at a time until stopped."""
        # Set before binding so a stop() racing startup is never overwritten.
        self._running = True
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
                self._server_socket = server_socket
                server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                server_socket.bind((self.host, self.port))
                server_socket.listen(LISTEN_BACKLOG)
                server_socket.settimeout(ACCEPT_TIMEOUT_SECS)
                self.port = server_socket.getsockname()[1]
                logger.info("Serving %d links on %s:%s", len(self.store), self.host, self.port)

                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError as exc:
                        if not self._running or self._server_socket is None:
                            break
                        logger.warning("Failed to accept connection: %s", exc)
                        continue

                    self._maybe_reload_store()
                    self._handle_client(client_socket, address)
        finally:
            self._running = False

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None

    def _maybe_reload_store(self) -> None:
        try:
            changed = self.store.has_changed()
        except StoreError as exc:
            logger.warning("Could not check store for changes: %s", exc)
            return
        if not changed:
            return

        try:
            self.store.refresh()
        except StoreError as exc:
            logger.warning("Reloading store failed, keeping %d links: %s", len(self.store), exc)
            return
        logger.info("Reloaded store (%d links)", len(self.store))

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            started_at = time.perf_counter()
            try:
                client_socket.settimeout(self.socket_timeout_secs)
                request, response, input_pending = self._read_and_route(client_socket)
                if response is None:
                    return
                bytes_sent = write_http_response(client_socket, response)
                if input_pending:
                    drain_unread_input(client_socket)
            except (SocketTimeoutError, OSError) as exc:
                logger.debug("Abandoning connection from %s: %s", address[0], exc)
                return

            self._record_and_log(
                address=address,
                method=request.method if request else "-",
                path=request.target if request else "-",
                response=response,
                bytes_sent=bytes_sent,
                started_at=started_at,
            )

    def _read_and_route(
        self, client_socket: socket.socket
    ) -> tuple[HTTPRequest | None, HTTPResponse | None, bool]:
        """Return the request, its response and whether unread input may remain."""
        try:
            line = read_request_line(client_socket, self.max_request_line_bytes)
        except RequestLineTooLongError:
            return None, HTTPResponse(kind=ResponseKind.REQUEST_TARGET_TOO_LONG), True
        except MalformedRequestError:
            return None, HTTPResponse(kind=ResponseKind.BAD_REQUEST), True

        if line is None:
            return None, None, False

        if self.discard_request_headers and "\r\n" in line.text:
            discard_header_block(client_socket, line.bytes_after_request_line())

        try:
            request = parse_request_line(line.text)
        except HTTPRequestParseError as exc:
            return None, HTTPResponse(kind=exc.kind), False

        return request, self._dispatch(request), False

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        token = request.token
        link = self.store.get(token)
        if link is not None:
            logger.info("Token requested: %s", token)
            return redirect(token, link, allow_client_cache=self.allow_client_cache)

        handler = self.router.resolve(request.target)
        if handler is not None:
            return handler(request)
        return not_found(token)

    def _record_and_log(
        self,
        *,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_sent: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_out": bytes_sent,
            "latency_ms": round(duration_ms, 3),
        }
        if self.log_format == "json":
            logger.info(json.dumps(event, sort_keys=True))
            return

        logger.info(
            "client=%s method=%s path=%s status=%s bytes_out=%s duration_ms=%.2f",
            event["client"],
            event["method"],
            event["path"],
            event["status"],
            event["bytes_out"],
            duration_ms,
        )


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the link shortener server")
    parser.add_argument("--host", default=HOST)
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--links", default=LINKS_FILE, help="JSON file mapping tokens to URLs")
    parser.add_argument("--max-request-line", type=int, default=MAX_REQUEST_LINE_BYTES)
    parser.add_argument("--timeout", type=float, default=SOCKET_TIMEOUT_SECS)
    parser.add_argument(
        "--no-client-cache",
        dest="allow_client_cache",
        action="store_false",
        help="answer hits with a temporary instead of a permanent redirect",
    )
    parser.add_argument("--log-format", choices=["plain", "json"], default=LOG_FORMAT)
    return parser.parse_args()


if __name__ == "__main__":
    args = _parse_args()
    logging.basicConfig(level=logging.INFO)
    try:
        link_store = LinkStore(links_file=args.links)
    except StoreError as exc:
        logger.error("Cannot load links: %s", exc)
        sys.exit(1)

    server = LinkServer(
        link_store,
        host=args.host,
        port=args.port,
        allow_client_cache=args.allow_client_cache,
        max_request_line_bytes=args.max_request_line,
        socket_timeout_secs=args.timeout,
        log_format=args.log_format,
    )
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
