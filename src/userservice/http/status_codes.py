"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The service only ever answers with three statuses. Each one maps to a
FIXED status block that existing clients match byte-for-byte:

    ┌──────┬───────────────────────────────────────────────────────────────┐
    │ Code │ Bytes on the wire (before the body)                           │
    ├──────┼───────────────────────────────────────────────────────────────┤
    │ 200  │ HTTP/1.1 200 OK\\r\\nContent-Type: application/json\\r\\n\\r\\n  │
    │ 404  │ HTTP/1.1 404 Not Found\\r\\n\\r\\n                               │
    │ 500  │ HTTP/1.1 500 Internal Server Error\\r\\n\\r\\n                   │
    └──────┴───────────────────────────────────────────────────────────────┘

Note that 200 ALWAYS claims application/json, even when the body is a
plain message such as "User deleted". That is the historical format and
it is kept as-is.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the service.

    IntEnum, so statuses compare equal to plain integers:
        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200                        # Operation succeeded
    NOT_FOUND = 404                 # Unknown operation, or no such user
    INTERNAL_SERVER_ERROR = 500     # Everything else (parse and storage errors)

    @property
    def phrase(self) -> str:
        """Reason phrase as it appears in the status line."""
        return _STATUS_PHRASES[self]

    @property
    def status_block(self) -> str:
        """
        Status line plus headers, up to and including the blank line.

        The response body is appended directly after this block.
        """
        headers = "".join(f"{line}\r\n" for line in _STATUS_HEADERS.get(self, ()))
        return f"HTTP/1.1 {int(self)} {self.phrase}\r\n{headers}\r\n"


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}

_STATUS_HEADERS = {
    HTTPStatus.OK: ("Content-Type: application/json",),
}
