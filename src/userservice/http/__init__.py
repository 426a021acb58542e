"""
=============================================================================
WIRE PROTOCOL
=============================================================================

The small slice of HTTP the service speaks:

    request.py       raw text → RequestEnvelope (selector, id, body)
    response.py      (status, body) → bytes
    status_codes.py  the three statuses and their fixed status blocks

=============================================================================
"""

from .request import (
    RequestEnvelope,
    RequestError,
    UnrecognizedOperation,
    InvalidIdentifier,
    MalformedBody,
    UserNotFound,
    Selector,
    parse_request,
)
from .response import (
    HTTPResponse,
    ok,
    ok_json,
    not_found,
    internal_error,
)
from .status_codes import HTTPStatus

__all__ = [
    # Request parsing
    "RequestEnvelope",
    "RequestError",
    "UnrecognizedOperation",
    "InvalidIdentifier",
    "MalformedBody",
    "UserNotFound",
    "Selector",
    "parse_request",

    # Response encoding
    "HTTPResponse",
    "ok",
    "ok_json",
    "not_found",
    "internal_error",

    # Status codes
    "HTTPStatus",
]
