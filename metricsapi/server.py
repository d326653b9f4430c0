"""Embeddable reporting server: runs the metrics API on a background thread.

Typical use from a long-running application::

    collector = Collector({"messages": {"incoming": "counter"}})
    server = MetricsServer(collector, listen="*:8200")
    server.start()
    ...
    server.stop()
"""

from __future__ import annotations

import threading
import time

import uvicorn

from metricsapi.collector import Collector
from metricsapi.config import Settings, get_settings
from metricsapi.lib.logger import get_logger
from metricsapi.main import create_app

logger = get_logger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8200
_ALL_INTERFACES = "0.0.0.0"


def parse_listen(listen: str | None) -> tuple[str, int]:
    """Split a ``host:port`` listen string; ``*`` means every interface."""

    if listen is None or not listen.strip():
        return DEFAULT_HOST, DEFAULT_PORT

    listen = listen.strip()
    host, sep, port_raw = listen.rpartition(":")
    if not sep:
        host, port_raw = listen, ""

    host = host.strip("[]") or DEFAULT_HOST
    if host == "*":
        host = _ALL_INTERFACES

    if not port_raw:
        return host, DEFAULT_PORT
    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"listen port must be an integer (got {port_raw!r})") from None
    if not 0 < port < 65536:
        raise ValueError(f"listen port out of range (got {port})")
    return host, port


class MetricsServer:
    """Serve a collector over HTTP from a daemon thread."""

    def __init__(
        self,
        collector: Collector | None = None,
        *,
        listen: str | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.host, self.port = parse_listen(listen if listen is not None else self._settings.listen)
        self.app = create_app(collector, self._settings, host=self.host, port=self.port)
        self._server: uvicorn.Server | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, timeout: float = 5.0) -> None:
        """Start serving and block until the socket is bound.

        Raises ``RuntimeError`` when uvicorn cannot bind within ``timeout``
        seconds; the server is left stopped in that case.
        """

        if self.running:
            return
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level=self._settings.log_level.lower(),
            log_config=None,
        )
        server = uvicorn.Server(config)
        thread = threading.Thread(target=server.run, name="metricsapi-server", daemon=True)
        self._server, self._thread = server, thread
        thread.start()

        deadline = time.monotonic() + timeout
        while not server.started:
            if not thread.is_alive() or time.monotonic() >= deadline:
                server.should_exit = True
                thread.join(timeout)
                self._server = None
                self._thread = None
                logger.error("server.start_failed", extra={"host": self.host, "port": self.port})
                raise RuntimeError(f"metrics server could not listen on {self.host}:{self.port}")
            time.sleep(0.01)
        logger.info("server.started", extra={"host": self.host, "port": self.port})

    def stop(self, timeout: float = 5.0) -> None:
        if self._server is None or self._thread is None:
            return
        self._server.should_exit = True
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("server.stop_timeout", extra={"host": self.host, "port": self.port})
        else:
            logger.info("server.stopped", extra={"host": self.host, "port": self.port})
        self._server = None
        self._thread = None
