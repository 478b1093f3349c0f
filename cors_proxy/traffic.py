"""Request/response traffic logging.

The logger only observes: the body handed to the client is the same
iterator output it would have been without it, each chunk is merely copied
into a per-request buffer on its way out.
"""

from __future__ import annotations

from flask import Response
from loguru import logger

from .forwarder import raw_path


def dump_request(request) -> str:
    """Serialise ``request`` the way it looks on the wire (HTTP/1.x)."""
    target = raw_path(request)
    if request.query_string:
        target += "?" + request.query_string.decode("latin-1")
    protocol = request.environ.get("SERVER_PROTOCOL", "HTTP/1.1")

    lines = [f"{request.method} {target} {protocol}", f"Host: {request.host}"]
    lines.extend(f"{k}: {v}" for k, v in request.headers if k.lower() != "host")
    body = request.get_data(cache=True).decode("utf-8", errors="replace")
    return "\r\n".join(lines) + "\r\n\r\n" + body


class ResponseCapture:
    """Remembers the status and every body chunk written to the client."""

    def __init__(self):
        self.status_code = 200
        self._body = bytearray()

    def set_status(self, code: int) -> None:
        self.status_code = code

    def write(self, data: bytes) -> None:
        self._body.extend(data)

    @property
    def body(self) -> bytes:
        return bytes(self._body)

    def tee(self, chunks):
        for chunk in chunks:
            self.write(chunk)
            yield chunk

    def attach(self, response: Response) -> Response:
        self.set_status(response.status_code)
        response.response = self.tee(response.iter_encoded())
        return response


class TrafficLogger:
    def __init__(self, handler):
        self.handler = handler

    def __call__(self, request) -> Response:
        try:
            logger.info("Incoming Request:\n{}", dump_request(request))
        except Exception as exc:  # pylint: disable=broad-except
            logger.opt(exception=exc).error("Failed to dump request")

        capture = ResponseCapture()
        response = capture.attach(self.handler(request))
        response.call_on_close(lambda: self._log_response(capture))
        return response

    @staticmethod
    def _log_response(capture: ResponseCapture) -> None:
        logger.info(
            "Outgoing Response: Status {}, Body: {}",
            capture.status_code,
            capture.body.decode("utf-8", errors="replace"),
        )
