"""
=============================================================================
USER RECORD
=============================================================================

The one entity this service knows about. A User travels in two directions:

    Wire (JSON text)  ──from_json_dict()──►  User  ──insert/update──►  SQLite
    SQLite row        ──from_row()────────►  User  ──to_json()───────►  Wire

=============================================================================
ID OWNERSHIP
=============================================================================

The storage engine owns the identifier:

    POST body:   {"id": 99, "name": "A", "email": "a@x.com"}
                   └── ignored, the table assigns the id

    Stored row:  (7, "A", "a@x.com")
                  └── always present once the row exists

=============================================================================
"""

import json
from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class User:
    """
    A user record.

    Attributes:
        name: Display name of the user.
        email: Email address. Not unique, the table has no constraint on it.
        id: Primary key assigned by storage. None for records that came
            from the wire and have not been stored yet.
    """

    name: str
    email: str
    id: Optional[int] = None

    @classmethod
    def from_row(cls, row: tuple) -> "User":
        """Build a User from a ``(id, name, email)`` table row."""
        user_id, name, email = row
        return cls(id=user_id, name=name, email=email)

    @classmethod
    def from_json_dict(cls, data: Any) -> "User":
        """
        Build an unsaved User from decoded JSON.

        Only type parsing happens here: ``name`` and ``email`` must be
        strings. Any other key, ``id`` included, is dropped.

        Raises:
            ValueError: If data is not an object or a field is missing
                        or not a string.
        """
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        for key in ("name", "email"):
            if key not in data:
                raise ValueError(f"missing field `{key}`")
            if not isinstance(data[key], str):
                raise ValueError(f"field `{key}` must be a string")

        return cls(name=data["name"], email=data["email"])

    def to_dict(self) -> dict:
        """Field mapping in wire order: id, name, email."""
        return {"id": self.id, "name": self.name, "email": self.email}


def to_json(data: Any) -> str:
    """
    Serialize a User, a list of Users, or plain data to compact JSON.

    Output is compact (no spaces after separators) and keeps non-ASCII
    characters as-is, so existing clients see the same bytes as before:

        >>> to_json(User(id=1, name="A", email="a@x.com"))
        '{"id":1,"name":"A","email":"a@x.com"}'
    """
    if isinstance(data, User):
        data = data.to_dict()
    elif isinstance(data, list):
        data = [item.to_dict() if isinstance(item, User) else item for item in data]

    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)
