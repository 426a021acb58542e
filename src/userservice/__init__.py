"""
=============================================================================
USERSERVICE - Minimal User-Record Service over Raw Sockets
=============================================================================

Accepts HTTP-like text requests on a TCP socket and performs CRUD on a
single SQLite `users` table.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    userservice/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m userservice)
    ├── server.py            # UserServer: bootstrap + accept loop + dispatch
    ├── config.py            # ServiceConfig dataclass
    ├── dispatcher.py        # Selector → one storage call → response
    ├── db.py                # Database sessions + UserGateway (SQLite)
    ├── models.py            # User record and JSON encoding
    ├── access_log.py        # One log line per request
    ├── core/                # Socket plumbing
    │   ├── socket_server.py # Sequential accept loop
    │   └── connection.py    # One request, one response
    └── http/                # Wire protocol
        ├── request.py       # Request classification and extraction
        ├── response.py      # Response encoding
        └── status_codes.py  # 200 / 404 / 500

=============================================================================
QUICK START
=============================================================================

    DATABASE_URL=sqlite:///users.db python -m userservice

    curl -X POST localhost:8080/users -d '{"name": "Ann", "email": "ann@example.com"}'
    curl localhost:8080/users/1
    curl localhost:8080/users
    curl -X PUT localhost:8080/users/1 -d '{"name": "Ann B", "email": "ann@example.com"}'
    curl -X DELETE localhost:8080/users/1

=============================================================================
"""

__version__ = "1.0.0"

from .server import UserServer
from .config import ServiceConfig

__all__ = ["UserServer", "ServiceConfig", "__version__"]
