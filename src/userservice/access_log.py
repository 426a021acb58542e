"""
=============================================================================
ACCESS LOG
=============================================================================

One line per served request on the "userservice.access" logger, separate
from the diagnostic module loggers so it can be routed on its own:

    logging.getLogger("userservice.access").addHandler(file_handler)

TEXT FORMAT (default):

    127.0.0.1 - - [18/Oct/2026:10:00:00 +0000] "GET /users/7" read_one 200 38 1.27ms

JSON FORMAT (for log aggregators):

    {"connection_id": "1f3a9c2e", "client_ip": "127.0.0.1", "method": "GET",
     "target": "/users/7", "selector": "read_one", "status_code": 200,
     "content_length": 38, "duration_ms": 1.27, "timestamp": "..."}

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timezone

from .http.request import split_request_line, classify


logger = logging.getLogger("userservice.access")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    connection_id: str
    client_ip: str
    method: str
    target: str
    selector: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.target}" {self.selector} {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Writes RequestLog entries in the configured format.

    Usage:
        access = AccessLogger(log_format="json")
        entry = access.build_entry(conn.id, conn.client_ip, raw_request,
                                   response.status, len(response.body), duration_ms)
        access.log(entry)
    """

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def build_entry(
        self,
        connection_id: str,
        client_ip: str,
        raw_request: bytes,
        status_code: int,
        content_length: int,
        duration_ms: float,
    ) -> RequestLog:
        """Summarize one request. Re-reads only the request line."""
        method, target = split_request_line(raw_request.decode("utf-8", errors="replace"))
        return RequestLog(
            connection_id=connection_id,
            client_ip=client_ip,
            method=method,
            target=target,
            selector=classify(method, target).value,
            status_code=int(status_code),
            content_length=content_length,
            duration_ms=duration_ms,
            timestamp=datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

    def log(self, entry: RequestLog):
        if self.log_format == "json":
            logger.info(json.dumps(entry.to_dict()))
        else:
            logger.info(entry.to_text())
