"""
=============================================================================
CORE NETWORKING
=============================================================================

Socket plumbing underneath the dispatcher:

    socket_server.py   bind, listen, sequential accept loop, signals
    connection.py      read one request, write one response, close

Nothing in here knows about users or SQL.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = [
    "SocketServer",     # Accept loop - one connection at a time
    "Connection",       # Wrapper for client socket - handles I/O
    "ConnectionState",  # Enum for connection lifecycle states
]
