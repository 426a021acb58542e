"""
=============================================================================
RESPONSE ENCODER
=============================================================================

Turns a (status, body) pair into the bytes written back on the socket.

=============================================================================
WIRE FORMAT
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  HTTP/1.1 200 OK\\r\\n                     ◄── fixed status block     │
    │  Content-Type: application/json\\r\\n                                 │
    │  \\r\\n                                                               │
    │  {"id":1,"name":"A","email":"a@x.com"}   ◄── body, verbatim           │
    └─────────────────────────────────────────────────────────────────────┘

There is no Content-Length and no chunking. The client knows the body is
complete when the server closes the connection. One request, one
response, one connection.

=============================================================================
HELPER FUNCTIONS
=============================================================================

    ok("User deleted")          → 200 + plain message
    ok_json(user)               → 200 + JSON of a User or list of Users
    not_found("User not found") → 404
    internal_error()            → 500 + "Error"

=============================================================================
"""

from dataclasses import dataclass
from typing import Any

from .status_codes import HTTPStatus
from ..models import to_json


ERROR_BODY = "Error"


@dataclass
class HTTPResponse:
    """
    A response ready to be encoded.

    Attributes:
        status: One of the three statuses the service emits.
        body: Response body text (JSON or a plain message).
    """

    status: HTTPStatus = HTTPStatus.OK
    body: str = ""

    def to_bytes(self) -> bytes:
        """Encode as status block + body, UTF-8."""
        return (self.status.status_block + self.body).encode("utf-8")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def ok(message: str) -> HTTPResponse:
    """200 with a plain-text message body."""
    return HTTPResponse(HTTPStatus.OK, message)


def ok_json(data: Any) -> HTTPResponse:
    """200 with a compact JSON body."""
    return HTTPResponse(HTTPStatus.OK, to_json(data))


def not_found(message: str = "404 Not Found") -> HTTPResponse:
    """404 with a plain-text message body."""
    return HTTPResponse(HTTPStatus.NOT_FOUND, message)


def internal_error(message: str = ERROR_BODY) -> HTTPResponse:
    """500 with a generic message body."""
    return HTTPResponse(HTTPStatus.INTERNAL_SERVER_ERROR, message)
