"""
=============================================================================
WIRE PARSER
=============================================================================

This module turns the raw text of one inbound request into a
RequestEnvelope: WHICH operation the client asked for, plus lazy access to
the record id and JSON body that operation needs.

It deliberately understands only a sliver of HTTP. There is no header
parsing and no content negotiation. The request line picks the operation,
the path carries the id, and everything after the first blank line is the
JSON body.

=============================================================================
CLASSIFICATION ORDER
=============================================================================

Selectors are tested top to bottom. The FIRST match wins:

    ┌───┬──────────┬──────────────────────┬───────────┐
    │ # │ Method   │ Target starts with   │ Selector  │
    ├───┼──────────┼──────────────────────┼───────────┤
    │ 1 │ POST     │ /users               │ CREATE    │
    │ 2 │ GET      │ /users/              │ READ_ONE  │
    │ 3 │ GET      │ /users               │ READ_ALL  │
    │ 4 │ PUT      │ /users               │ UPDATE    │
    │ 5 │ DELETE   │ /users/              │ DELETE    │
    │ - │ anything else                   │ 404       │
    └───┴─────────────────────────────────┴───────────┘

Row 2 is checked before row 3, so "GET /users/" (trailing slash, no id)
is a READ_ONE with an invalid id, NOT a READ_ALL.

=============================================================================
EXTRACTION
=============================================================================

    PUT /users/42 HTTP/1.1\\r\\n
    Content-Type: application/json\\r\\n
    \\r\\n                                 ◄── first blank line
    {"name": "Ann", "email": "a@x.com"}   ◄── body

    target.split("/")  →  ["", "users", "42"]
                                         ▲
                                         └── segment 2 is the id

Extraction is LAZY. A READ_ALL request never looks at the body or the id,
so garbage there can't make it fail.

=============================================================================
"""

import re
import json
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Union

from .status_codes import HTTPStatus
from ..models import User


# Signed 32-bit range of the `id` column
MIN_ID = -(2 ** 31)
MAX_ID = 2 ** 31 - 1

BODY_SEPARATOR = "\r\n\r\n"


class RequestError(Exception):
    """
    Raised when a request can't be turned into a storage call.

    Like any HTTP-level error, it carries the status code and body that
    should be sent back to the client:

        UnrecognizedOperation  → 404 "404 Not Found"
        UserNotFound           → 404 "User not found"
        InvalidIdentifier      → 500 "Error"
        MalformedBody          → 500 "Error"

    The message (str(e)) is for the logs only. Clients never see it.
    """

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    body = "Error"

    def __init__(self, message: str):
        super().__init__(message)


class UnrecognizedOperation(RequestError):
    """No selector matched the request line."""

    status_code = HTTPStatus.NOT_FOUND
    body = "404 Not Found"


class InvalidIdentifier(RequestError):
    """The id path segment is missing or not a 32-bit integer."""


class MalformedBody(RequestError):
    """The body is not a JSON object with string `name` and `email`."""


class UserNotFound(RequestError):
    """Storage has no row for the requested id."""

    status_code = HTTPStatus.NOT_FOUND
    body = "User not found"


class Selector(Enum):
    """The operation kinds a request can be classified as."""

    CREATE = "create"
    READ_ONE = "read_one"
    READ_ALL = "read_all"
    UPDATE = "update"
    DELETE = "delete"
    UNRECOGNIZED = "unrecognized"


# (method, target prefix, selector), in precedence order
_SELECTOR_RULES = (
    ("POST", "/users", Selector.CREATE),
    ("GET", "/users/", Selector.READ_ONE),
    ("GET", "/users", Selector.READ_ALL),
    ("PUT", "/users", Selector.UPDATE),
    ("DELETE", "/users/", Selector.DELETE),
)

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


@dataclass
class RequestEnvelope:
    """
    The parsed form of one inbound request.

    Only `selector`, `method` and `target` are computed up front. `user_id`
    and `user` are lazy properties: they are evaluated (and may raise) only
    when the dispatcher asks for them.

    Attributes:
        selector: The classified operation.
        method: Request method as sent ("GET", "POST", ...).
        target: Request target as sent ("/users/42").
        raw: The full decoded request text.
    """

    selector: Selector
    method: str
    target: str
    raw: str = field(default="", repr=False)

    _user_id: Optional[int] = field(default=None, repr=False)
    _user: Optional[User] = field(default=None, repr=False)

    @property
    def body(self) -> str:
        """Everything after the first blank line, or "" if there is none."""
        _, separator, body = self.raw.partition(BODY_SEPARATOR)
        return body if separator else ""

    @property
    def user_id(self) -> int:
        """
        The record id from the third path segment.

        Raises:
            InvalidIdentifier: If the segment is missing, empty, not an
                               integer, or outside the 32-bit range.
        """
        if self._user_id is None:
            self._user_id = extract_id(self.target)
        return self._user_id

    @property
    def user(self) -> User:
        """
        The unsaved User decoded from the JSON body.

        Raises:
            MalformedBody: If the body is missing or not a valid user object.
        """
        if self._user is None:
            self._user = extract_user(self.body)
        return self._user


def split_request_line(raw: str) -> tuple[str, str]:
    """
    Pull the method and target out of the first line of a request.

    The line is split on single spaces, the same way the bytes arrive:

        "GET /users/7 HTTP/1.1"  →  ("GET", "/users/7")
        "GET /users"             →  ("GET", "/users")
        "GARBAGE"                →  ("GARBAGE", "")
    """
    line = raw.split("\n", 1)[0].rstrip("\r")
    method, _, rest = line.partition(" ")
    target = rest.split(" ", 1)[0]
    return method, target


def classify(method: str, target: str) -> Selector:
    """Map a method and target to a Selector, in precedence order."""
    for rule_method, prefix, selector in _SELECTOR_RULES:
        if method == rule_method and target.startswith(prefix):
            return selector
    return Selector.UNRECOGNIZED


def extract_id(target: str) -> int:
    """
    Parse the record id out of a request target.

    Args:
        target: Request target such as "/users/42".

    Returns:
        The id as an int.

    Raises:
        InvalidIdentifier: If there is no usable id segment.
    """
    segments = target.split("/")
    segment = segments[2] if len(segments) > 2 else ""
    token = segment.split(maxsplit=1)[0] if segment.strip() else ""

    if not _INTEGER_PATTERN.fullmatch(token):
        raise InvalidIdentifier(f"Invalid user id: {token!r}")

    user_id = int(token)
    if not MIN_ID <= user_id <= MAX_ID:
        raise InvalidIdentifier(f"User id out of range: {token}")
    return user_id


def extract_user(body: str) -> User:
    """
    Decode a request body into an unsaved User.

    Raises:
        MalformedBody: If the body is not JSON or lacks string name/email.
    """
    try:
        return User.from_json_dict(json.loads(body))
    except ValueError as e:
        # json.JSONDecodeError is a ValueError subclass
        raise MalformedBody(f"Invalid user body: {e}") from e


def parse_request(data: Union[bytes, str]) -> RequestEnvelope:
    """
    Parse one raw request buffer into a RequestEnvelope.

    Bytes are decoded as UTF-8; invalid sequences become U+FFFD instead of
    failing the request.

    Raises:
        UnrecognizedOperation: If no selector matches the request line.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8", errors="replace")

    method, target = split_request_line(data)
    selector = classify(method, target)

    if selector is Selector.UNRECOGNIZED:
        raise UnrecognizedOperation(f"No operation for {method!r} {target!r}")

    return RequestEnvelope(selector=selector, method=method, target=target, raw=data)
