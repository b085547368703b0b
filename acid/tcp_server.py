"""A threaded TCP server that accepts on every bound address."""

from __future__ import annotations

import logging
import select
import threading
from functools import partial
from typing import Any, Iterable

from .address import Address
from .sockets import Socket
from .thread import Thread

__all__ = ["DEFAULT_NAME", "DEFAULT_RECV_TIMEOUT", "TcpServer"]

DEFAULT_NAME = "acid/1.0.0"
#: Receive timeout given to accepted clients, in milliseconds.
DEFAULT_RECV_TIMEOUT = 60 * 1000 * 2

_POLL_SECONDS = 0.1

logger = logging.getLogger("acid.system")


class TcpServer:
    """Listens on bound addresses and hands each client to :meth:`handle_client`.

    Each listening socket gets its own accept thread and each client its own
    worker thread; the client socket is closed once the handler returns.
    """

    def __init__(
        self, name: str = DEFAULT_NAME, recv_timeout: int = DEFAULT_RECV_TIMEOUT
    ) -> None:
        self.name = name
        self.recv_timeout = recv_timeout
        self._listens: list[Socket] = []
        self._accept_threads: list[Thread] = []
        self._stopped = True
        self._lock = threading.Lock()

    @property
    def is_stop(self) -> bool:
        return self._stopped

    @property
    def sockets(self) -> list[Socket]:
        """The listening sockets."""
        return list(self._listens)

    def bind(self, address: Address) -> bool:
        """Listen on ``address``; False if that failed."""
        return not self.bind_all([address])

    def bind_all(self, addresses: Iterable[Address]) -> list[Address]:
        """Listen on every address and return those that failed.

        If any fails, no address is kept listening.
        """
        failed: list[Address] = []
        for address in addresses:
            sock = Socket.create_tcp(address)
            try:
                sock.bind(address)
                sock.listen()
            except (OSError, ValueError) as exc:
                logger.error("bind fail: %s addr=[%s]", exc, address)
                sock.close()
                failed.append(address)
                continue
            self._listens.append(sock)
        if failed:
            for sock in self._listens:
                sock.close()
            self._listens.clear()
            return failed
        for sock in self._listens:
            logger.info("Server name=%s bind:%s success", self.name, sock)
        return []

    def start(self) -> bool:
        """Begin accepting; False if the server is already running."""
        with self._lock:
            if not self._stopped:
                return False
            self._stopped = False
            for sock in self._listens:
                self._accept_threads.append(
                    Thread(f"{self.name}_accept", partial(self._accept_loop, sock))
                )
        logger.debug("TcpServer start")
        return True

    def stop(self) -> None:
        """Stop accepting and close the listening sockets."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            threads, self._accept_threads = self._accept_threads, []
        for thread in threads:
            thread.join()
        for sock in self._listens:
            sock.close()
        self._listens.clear()

    def handle_client(self, client: Socket) -> None:
        """Serve one accepted client; override to do real work."""
        logger.info("handleClient: %s", client)

    def __enter__(self) -> "TcpServer":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()

    def _accept_loop(self, sock: Socket) -> None:
        while not self._stopped:
            try:
                ready, _, _ = select.select([sock.fd], [], [], _POLL_SECONDS)
            except (OSError, ValueError):
                break
            if not ready or self._stopped:
                continue
            try:
                client = sock.accept()
            except OSError as exc:
                if self._stopped:
                    break
                logger.error("accept fail: %s", exc)
                continue
            client.recv_timeout = self.recv_timeout
            Thread(f"{self.name}_client", partial(self._serve, client))

    def _serve(self, client: Socket) -> None:
        try:
            self.handle_client(client)
        except Exception:
            logger.exception("client handler failed: %s", client)
        finally:
            client.close()