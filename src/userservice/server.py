"""
=============================================================================
USER SERVICE SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   ServiceConfig ──► UserServer.run()                                │
    │                        │                                            │
    │                        ├── 1. setup logging                         │
    │                        ├── 2. Database.bootstrap() (table exists)   │
    │                        └── 3. SocketServer.start() (blocks)         │
    │                                  │                                  │
    │                                  └── for each connection:           │
    │                                        read_request()               │
    │                                        Dispatcher.handle()          │
    │                                        send_response()              │
    │                                        close()                      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT CAN GO WRONG, AND WHERE IT IS HANDLED
=============================================================================

    Bad request / storage failure   Dispatcher → 404 or 500 response
    Read reset / timeout / too big  here → logged, connection dropped
    Write failure                   here → logged, connection dropped
    Anything unexpected             here → logged with traceback, dropped

No single connection can stop the accept loop.

=============================================================================
"""

import logging
import time
from typing import Optional

from .access_log import AccessLogger
from .config import ServiceConfig
from .core import SocketServer, Connection, ConnectionState
from .db import Database
from .dispatcher import Dispatcher


logger = logging.getLogger(__name__)


class UserServer:
    """
    The user-record service.

    Usage:
        server = UserServer(ServiceConfig(database_url="sqlite:///users.db"))
        server.run()  # Blocks until SIGINT/SIGTERM
    """

    def __init__(self, config: Optional[ServiceConfig] = None):
        """
        Args:
            config: Service configuration. Defaults come from the environment.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ServiceConfig.from_env()
        self.config.validate()

        self.database = Database(self.config.database_url)
        self.dispatcher = Dispatcher(self.database)

        self._socket_server = SocketServer(self.config)
        self._access_log = AccessLogger(self.config.log_format)

    @property
    def address(self):
        """The (host, port) the server is bound to."""
        return self._socket_server.address

    def run(self, setup_logging: bool = True):
        """
        Bootstrap storage and serve requests (blocking).

        Args:
            setup_logging: Configure the root logger from config.log_level.
                           Embedders that manage logging pass False.

        Raises:
            StorageError: If the users table can't be created.
            OSError: If the address can't be bound.
        """
        if setup_logging:
            self._setup_logging()

        self.database.bootstrap()

        try:
            self._socket_server.start(self.handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

        logger.info("Server stopped")

    def shutdown(self):
        """Stop accepting connections. The current one is finished first."""
        self._socket_server.shutdown()

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is listening."""
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket has been closed."""
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("userservice").setLevel(level)

    def handle_connection(self, conn: Connection):
        """
        Serve one connection from start to finish.

        The connection is always closed on return.
        """
        with conn:
            try:
                raw_request = conn.read_request()
            except (TimeoutError, ValueError, OSError) as e:
                logger.warning(f"[{conn.id}] Dropping request from {conn.client_ip}: {e}")
                return

            if raw_request is None:
                logger.debug(f"[{conn.id}] Client closed without sending a request")
                return

            start_time = time.perf_counter()
            conn.state = ConnectionState.PROCESSING

            try:
                response = self.dispatcher.handle(raw_request)
            except Exception as e:
                logger.exception(f"[{conn.id}] Unexpected error, dropping request: {e}")
                return

            if not conn.send_response(response.to_bytes()):
                return

            duration_ms = (time.perf_counter() - start_time) * 1000
            self._access_log.log(self._access_log.build_entry(
                conn.id,
                conn.client_ip,
                raw_request,
                response.status,
                len(response.body.encode("utf-8")),
                duration_ms,
            ))
