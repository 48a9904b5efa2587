"""One daemon thread per accepted client connection, capped by a live count."""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

ClientAddress = tuple[str, int]
ConnectionHandler = Callable[[socket.socket, ClientAddress], None]


class ConnectionThreads:
    """Runs each connection on its own thread so idle clients never block others.

    ``submit`` refuses new work once ``max_active`` connections are live or
    after ``shutdown``; the caller answers those with 503.
    """

    def __init__(self, max_active: int, handler: ConnectionHandler) -> None:
        if max_active <= 0:
            raise ValueError("max_active must be positive")

        self._handler = handler
        self._max_active = max_active
        self._active: set[threading.Thread] = set()
        self._lock = threading.Lock()
        self._stopped = False
        self._sequence = 0

    @property
    def max_active(self) -> int:
        return self._max_active

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._active)

    def submit(self, client_socket: socket.socket, address: ClientAddress) -> bool:
        with self._lock:
            if self._stopped or len(self._active) >= self._max_active:
                return False
            self._sequence += 1
            worker = threading.Thread(
                target=self._run,
                args=(client_socket, address),
                name=f"static-conn-{self._sequence}",
                daemon=True,
            )
            self._active.add(worker)
            worker.start()
        return True

    def shutdown(self, timeout: float = 1.0) -> None:
        """Refuse new connections and wait up to ``timeout`` in total for live ones.

        Threads still running afterwards are daemons and die with the process.
        """
        with self._lock:
            self._stopped = True
            workers = list(self._active)
        deadline = time.monotonic() + timeout
        for worker in workers:
            worker.join(timeout=max(0.0, deadline - time.monotonic()))

    def _run(self, client_socket: socket.socket, address: ClientAddress) -> None:
        try:
            self._handler(client_socket, address)
        except Exception:
            logger.exception("Connection handler failed for %s", address[0])
        finally:
            with self._lock:
                self._active.discard(threading.current_thread())
