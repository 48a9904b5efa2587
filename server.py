"""Static site server entry point and connection lifecycle orchestration."""

from __future__ import annotations

import argparse
import json
import logging
import socket
import time
from collections.abc import Sequence

from config import LOG_FORMATS, ConfigError, ServerConfig, load_config
from connection_threads import ConnectionThreads
from handlers.static_site import handle
from request import HTTPRequest, HTTPRequestParseError
from response import REASON_PHRASES, HTTPResponse
from socket_handler import (
    HeaderTooLargeError,
    HTTPReadError,
    MalformedRequestError,
    PayloadTooLargeError,
    SocketTimeoutError,
    URITooLongError,
    linger_close,
    read_http_request_message,
    write_http_response_message,
)

logger = logging.getLogger(__name__)

READ_ERROR_STATUS: dict[type[HTTPReadError], int] = {
    MalformedRequestError: 400,
    SocketTimeoutError: 408,
    PayloadTooLargeError: 413,
    URITooLongError: 414,
    HeaderTooLargeError: 431,
}


class HTTPServer:
    def __init__(self, config: ServerConfig | None = None) -> None:
        self.config = config or load_config()
        self.host = self.config.host
        self.port = self.config.port

        self._server_socket: socket.socket | None = None
        self._connections: ConnectionThreads | None = None
        self._running = False

    def start(self) -> None:
        """Bind the listening socket and serve until stop() is called."""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as server_socket:
            self._server_socket = server_socket
            server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            server_socket.bind((self.host, self.port))
            server_socket.listen(128)
            server_socket.settimeout(0.2)
            self._connections = ConnectionThreads(
                max_active=self.config.max_active_connections,
                handler=self._handle_client,
            )
            self.port = server_socket.getsockname()[1]
            logger.info(
                "[static] listening on http://localhost:%s (root=%s)",
                self.port,
                self.config.document_root,
            )

            self._running = True
            try:
                while self._running:
                    try:
                        client_socket, address = server_socket.accept()
                    except socket.timeout:
                        continue
                    except OSError:
                        break

                    if not self._connections.submit(client_socket, address):
                        self._send_unavailable(client_socket, address)
            finally:
                self._connections.shutdown()
                self._connections = None

    def stop(self) -> None:
        self._running = False
        if self._server_socket is not None:
            self._server_socket.close()
            self._server_socket = None

    def _send_unavailable(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            started_at = time.perf_counter()
            response = HTTPResponse(
                status_code=503,
                headers={"Connection": "close"},
                body="Service Unavailable",
            )
            try:
                bytes_sent = write_http_response_message(client_socket, response)
            except OSError:
                return
            self._log_access(address, "-", "-", response, bytes_sent, started_at)

    def _handle_client(self, client_socket: socket.socket, address: tuple[str, int]) -> None:
        with client_socket:
            client_socket.settimeout(self.config.socket_timeout_secs)
            carry = b""
            request_count = 0
            while request_count < self.config.max_keepalive_requests:
                started_at = time.perf_counter()
                try:
                    raw_request, carry = read_http_request_message(
                        client_socket,
                        carry,
                        request_timeout=self.config.request_timeout_secs,
                    )
                except HTTPReadError as exc:
                    status_code = READ_ERROR_STATUS.get(type(exc), 400)
                    self._reject(client_socket, address, status_code, started_at)
                    return
                except OSError:
                    return

                if not raw_request:
                    return

                try:
                    request = HTTPRequest.from_bytes(raw_request)
                except HTTPRequestParseError as exc:
                    self._reject(client_socket, address, exc.status_code, started_at)
                    return

                request_count += 1
                response = self._dispatch(request)
                should_close = (
                    not request.keep_alive
                    or request_count >= self.config.max_keepalive_requests
                )
                response.headers["Connection"] = "close" if should_close else "keep-alive"

                try:
                    bytes_sent = write_http_response_message(
                        client_socket, response, head_only=request.is_head
                    )
                except OSError:
                    logger.debug("Client %s went away mid-response", address[0])
                    return

                self._log_access(
                    address, request.method, request.path, response, bytes_sent, started_at
                )
                if should_close:
                    return

    def _dispatch(self, request: HTTPRequest) -> HTTPResponse:
        # Every method goes through the same resolution pipeline.
        return handle(request.path, self.config)

    def _reject(
        self,
        client_socket: socket.socket,
        address: tuple[str, int],
        status_code: int,
        started_at: float,
    ) -> None:
        response = HTTPResponse(
            status_code=status_code,
            headers={"Connection": "close"},
            body=REASON_PHRASES.get(status_code, "Bad Request"),
        )
        try:
            bytes_sent = write_http_response_message(client_socket, response)
        except OSError:
            return
        self._log_access(address, "-", "-", response, bytes_sent, started_at)
        linger_close(client_socket)

    def _log_access(
        self,
        address: tuple[str, int],
        method: str,
        path: str,
        response: HTTPResponse,
        bytes_out: int,
        started_at: float,
    ) -> None:
        duration_ms = (time.perf_counter() - started_at) * 1000
        event = {
            "client": address[0],
            "method": method,
            "path": path,
            "status": response.status_code,
            "bytes_out": bytes_out,
            "latency_ms": round(duration_ms, 3),
        }
        if self.config.log_format == "json":
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


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve a pre-built static site")
    parser.add_argument("--host", default=None, help="bind address (env HOST)")
    parser.add_argument("--port", type=int, default=None, help="listening port (env PORT)")
    parser.add_argument(
        "--root",
        dest="document_root",
        default=None,
        help="directory to serve (env DOCUMENT_ROOT, default: current directory)",
    )
    parser.add_argument(
        "--max-connections", dest="max_active_connections", type=int, default=None
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, default=None)
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO)
    try:
        config = load_config(**vars(args))
    except ConfigError as exc:
        logger.error("Invalid configuration: %s", exc)
        return 2

    server = HTTPServer(config)
    try:
        server.start()
    except KeyboardInterrupt:
        server.stop()
    except OSError as exc:
        logger.error("Could not listen on %s:%s: %s", config.host, config.port, exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
