"""Mock provider server lifecycle.

Runs the FastAPI app from `pactmock.http.app` under uvicorn on a background
thread, bound to an ephemeral port. State moves
STOPPED -> STARTING -> LISTENING -> STOPPED; the registry is sealed for as
long as the server is not STOPPED.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from typing import Iterable, Optional

import uvicorn

from pactmock.errors import ServerStartError
from pactmock.http.app import create_app
from pactmock.logic.registry import InteractionRegistry
from pactmock.output import Output

logger = logging.getLogger(__name__)

DEFAULT_BIND_TIMEOUT = 5.0
_POLL_INTERVAL = 0.01


class ServerState:
    STOPPED = "stopped"
    STARTING = "starting"
    LISTENING = "listening"


class MockServer:
    def __init__(
        self,
        registry: InteractionRegistry,
        *,
        host: str = "127.0.0.1",
        bind_timeout: float = DEFAULT_BIND_TIMEOUT,
        outputs: Iterable[Output] = (),
    ) -> None:
        self.registry = registry
        self.host = host
        self.bind_timeout = float(bind_timeout)
        self.outputs = tuple(outputs)
        self._state = ServerState.STOPPED
        self._server: Optional[uvicorn.Server] = None
        self._thread: Optional[threading.Thread] = None
        self._socket: Optional[socket.socket] = None
        self._port: Optional[int] = None

    @property
    def state(self) -> str:
        return self._state

    @property
    def port(self) -> Optional[int]:
        return self._port

    @property
    def base_url(self) -> str:
        if self._port is None:
            raise RuntimeError("mock server is not running")
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"http://{host}:{self._port}"

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.bind((self.host, 0))
        except OSError:
            sock.close()
            raise
        return sock

    def start(self) -> str:
        """Bind, serve, and block until accepting connections; return the base URL."""
        if self._state != ServerState.STOPPED:
            raise ServerStartError(f"mock server is already {self._state}")
        self._state = ServerState.STARTING
        try:
            sock = self._bind()
        except OSError as e:
            self._state = ServerState.STOPPED
            raise ServerStartError(f"could not bind mock server on {self.host}: {e}") from e

        self._socket = sock
        self._port = int(sock.getsockname()[1])
        config = uvicorn.Config(
            create_app(self.registry, self.outputs),
            log_config=None,
            log_level="warning",
            access_log=False,
            lifespan="off",
            server_header=False,
            date_header=False,
        )
        self._server = uvicorn.Server(config)
        self._thread = threading.Thread(
            target=self._server.run,
            kwargs={"sockets": [sock]},
            name=f"pactmock-server-{self._port}",
            daemon=True,
        )
        self.registry.seal()
        self._thread.start()

        deadline = time.monotonic() + self.bind_timeout
        while not self._server.started:
            if not self._thread.is_alive():
                self._abort_start()
                raise ServerStartError("mock server exited during startup")
            if time.monotonic() >= deadline:
                self._abort_start()
                raise ServerStartError(f"mock server did not start within {self.bind_timeout}s")
            time.sleep(_POLL_INTERVAL)

        self._state = ServerState.LISTENING
        logger.info("mock_server.started url=%s interactions=%s", self.base_url, len(self.registry))
        return self.base_url

    def _abort_start(self) -> None:
        logger.error("mock_server.start_failed host=%s port=%s", self.host, self._port)
        self._shutdown()

    def _shutdown(self) -> None:
        if self._server is not None:
            self._server.should_exit = True
            self._server.force_exit = True
        if self._thread is not None:
            self._thread.join(timeout=self.bind_timeout)
            if self._thread.is_alive():
                logger.warning("mock_server.thread_still_running port=%s", self._port)
        if self._socket is not None:
            self._socket.close()
        self.registry.unseal()
        self._server = None
        self._thread = None
        self._socket = None
        self._port = None
        self._state = ServerState.STOPPED

    def stop(self) -> None:
        """Close the listener immediately; requests still in flight fail client-side."""
        if self._state == ServerState.STOPPED:
            return
        port = self._port
        self._shutdown()
        logger.info("mock_server.stopped port=%s", port)

    def __enter__(self) -> "MockServer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.stop()


__all__ = ["ServerState", "MockServer", "DEFAULT_BIND_TIMEOUT"]
