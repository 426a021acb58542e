"""
End-to-end tests over a real TCP socket.
"""

import json
import socket

from conftest import TestServer, build_request


OK_HEAD = b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n\r\n"
NOT_FOUND_HEAD = b"HTTP/1.1 404 Not Found\r\n\r\n"
ERROR_HEAD = b"HTTP/1.1 500 Internal Server Error\r\n\r\n"


class TestServerRoundTrip:
    """Full request/response cycles against a running server."""

    def test_crud_cycle(self, test_server: TestServer):
        """Test create, read, update and delete through the socket."""
        body = '{"name": "Ann", "email": "ann@example.com"}'

        assert test_server.send(build_request("POST", "/users", body)) == OK_HEAD + b"user created"

        listing = test_server.send(build_request("GET", "/users"))
        assert listing.startswith(OK_HEAD)
        users = json.loads(listing[len(OK_HEAD):])
        assert len(users) == 1
        user_id = users[0]["id"]

        one = test_server.send(build_request("GET", f"/users/{user_id}"))
        assert one == OK_HEAD + f'{{"id":{user_id},"name":"Ann","email":"ann@example.com"}}'.encode()

        update = '{"name": "Ann B", "email": "annb@example.com"}'
        assert test_server.send(build_request("PUT", f"/users/{user_id}", update)) == OK_HEAD + b"User updated"

        assert test_server.send(build_request("DELETE", f"/users/{user_id}")) == OK_HEAD + b"User deleted"
        assert test_server.send(build_request("DELETE", f"/users/{user_id}")) == NOT_FOUND_HEAD + b"User not found"

    def test_empty_listing(self, test_server: TestServer):
        """Test that an empty table lists as []."""
        assert test_server.send(build_request("GET", "/users")) == OK_HEAD + b"[]"

    def test_unknown_route(self, test_server: TestServer):
        """Test the 404 for unrecognized operations."""
        assert test_server.send(build_request("GET", "/")) == NOT_FOUND_HEAD + b"404 Not Found"

    def test_invalid_id(self, test_server: TestServer):
        """Test that GET /users/ answers 500."""
        assert test_server.send(build_request("GET", "/users/")) == ERROR_HEAD + b"Error"

    def test_bare_request_line(self, test_server: TestServer):
        """Test a request with no headers, ended by closing the write side."""
        response = test_server.send(b"GET /users", close_write=True)
        assert response == OK_HEAD + b"[]"

    def test_body_split_across_writes(self, test_server: TestServer):
        """Test that a body arriving after the headers is still read."""
        body = b'{"name": "Ann", "email": "ann@example.com"}'
        head = (
            b"POST /users HTTP/1.1\r\n"
            b"Content-Length: " + str(len(body)).encode() + b"\r\n\r\n"
        )

        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0) as s:
            s.sendall(head)
            s.sendall(body)

            response = b""
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                response += chunk

        assert response.startswith(OK_HEAD)

    def test_server_survives_dropped_client(self, test_server: TestServer):
        """Test that a client that connects and leaves doesn't stop the server."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5.0):
            pass

        assert test_server.send(build_request("GET", "/users")) == OK_HEAD + b"[]"

    def test_bodies_without_content_length(self, test_server: TestServer):
        """Test create and update from a client that sends no Content-Length."""
        create = b'POST /users HTTP/1.1\r\n\r\n{"name": "A", "email": "a@x.com"}'
        assert test_server.send(create) == OK_HEAD + b"user created"

        listing = test_server.send(build_request("GET", "/users"))
        user_id = json.loads(listing[len(OK_HEAD):])[0]["id"]

        update = f'PUT /users/{user_id} HTTP/1.1\r\n\r\n{{"name": "B", "email": "b@x.com"}}'.encode()
        assert test_server.send(update) == OK_HEAD + b"User updated"

        one = test_server.send(build_request("GET", f"/users/{user_id}"))
        assert one == OK_HEAD + f'{{"id":{user_id},"name":"B","email":"b@x.com"}}'.encode()


class TestServerLifecycle:
    """Tests for starting and stopping the server."""

    def test_shutdown_closes_listener(self, test_server: TestServer):
        """Test that shutdown stops the accept loop and frees the port."""
        assert test_server.server.is_running

        assert test_server.stop() is True
        assert not test_server.server.is_running

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind(("127.0.0.1", test_server.port))
