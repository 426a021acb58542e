"""
=============================================================================
DISPATCHER
=============================================================================

The decision layer. One request in, exactly one storage call, one response
out. There are no intermediate states and no multi-step transactions.

=============================================================================
DISPATCH TABLE
=============================================================================

    ┌───────────┬─────────────┬──────────────────┬───────────────────────────┐
    │ Selector  │ Needs       │ Storage call     │ Response                  │
    ├───────────┼─────────────┼──────────────────┼───────────────────────────┤
    │ CREATE    │ body        │ insert           │ 200 "user created"        │
    │ READ_ONE  │ id          │ select_by_id     │ 200 JSON / 404            │
    │ READ_ALL  │ -           │ select_all       │ 200 JSON array            │
    │ UPDATE    │ id, body    │ update_by_id     │ 200 "User updated"        │
    │ DELETE    │ id          │ delete_by_id     │ 200 "User deleted" / 404  │
    │ (none)    │ -           │ -                │ 404 "404 Not Found"       │
    └───────────┴─────────────┴──────────────────┴───────────────────────────┘

=============================================================================
FAILURE POLICY
=============================================================================

Only two outcomes besides success:

    404  the operation is unknown, or READ_ONE/DELETE found no row
    500  EVERYTHING else: bad id, bad JSON, can't connect, query failed

UPDATE never reports 404. It is a single blind write with no existence
check, so updating a missing id still answers 200.

Handlers raise, handle() catches. Every failure becomes a response at this
boundary, so nothing a client sends can take the server down.

=============================================================================
"""

import logging
from typing import Callable, Union

from .db import Database, StorageError
from .http.request import (
    RequestEnvelope,
    RequestError,
    Selector,
    UnrecognizedOperation,
    UserNotFound,
    parse_request,
)
from .http.response import HTTPResponse, ok, ok_json, not_found, internal_error


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Maps parsed requests to storage operations.

    Usage:
        dispatcher = Dispatcher(Database("sqlite:///users.db"))
        response = dispatcher.handle(b"GET /users HTTP/1.1\\r\\n\\r\\n")
        conn.send_response(response.to_bytes())
    """

    def __init__(self, database: Database):
        self._database = database
        self._handlers: dict[Selector, Callable[[RequestEnvelope], HTTPResponse]] = {
            Selector.CREATE: self._create,
            Selector.READ_ONE: self._read_one,
            Selector.READ_ALL: self._read_all,
            Selector.UPDATE: self._update,
            Selector.DELETE: self._delete,
        }

    def handle(self, data: Union[bytes, str]) -> HTTPResponse:
        """
        Parse a raw request, run it, and build the response.

        Never raises for anything the client sent or the storage did.
        """
        try:
            envelope = parse_request(data)
        except UnrecognizedOperation as e:
            logger.debug(str(e))
            return not_found(e.body)

        return self.dispatch(envelope)

    def dispatch(self, envelope: RequestEnvelope) -> HTTPResponse:
        """Run the storage operation for an already parsed request."""
        handler = self._handlers[envelope.selector]

        try:
            return handler(envelope)
        except UserNotFound as e:
            logger.info(str(e))
            return not_found(e.body)
        except RequestError as e:
            logger.warning(f"{envelope.selector.value} rejected: {e}")
            return HTTPResponse(e.status_code, e.body)
        except StorageError as e:
            logger.error(f"{envelope.selector.value} failed in storage: {e}")
            return internal_error()

    # =========================================================================
    # HANDLERS
    # =========================================================================
    # Each one reads only the envelope fields it needs, in the order shown,
    # then makes its single storage call inside a fresh session.

    def _create(self, envelope: RequestEnvelope) -> HTTPResponse:
        user = envelope.user
        with self._database.session() as users:
            user_id = users.insert(user.name, user.email)
        logger.debug(f"Created user {user_id}")
        return ok("user created")

    def _read_one(self, envelope: RequestEnvelope) -> HTTPResponse:
        user_id = envelope.user_id
        with self._database.session() as users:
            user = users.select_by_id(user_id)
        if user is None:
            raise UserNotFound(f"User {user_id} not found")
        return ok_json(user)

    def _read_all(self, envelope: RequestEnvelope) -> HTTPResponse:
        with self._database.session() as users:
            all_users = users.select_all()
        return ok_json(all_users)

    def _update(self, envelope: RequestEnvelope) -> HTTPResponse:
        user_id = envelope.user_id
        user = envelope.user
        with self._database.session() as users:
            users.update_by_id(user_id, user.name, user.email)
        return ok("User updated")

    def _delete(self, envelope: RequestEnvelope) -> HTTPResponse:
        user_id = envelope.user_id
        with self._database.session() as users:
            deleted = users.delete_by_id(user_id)
        if deleted == 0:
            raise UserNotFound(f"User {user_id} not found")
        return ok("User deleted")
