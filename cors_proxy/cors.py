"""Origin gate: CORS headers, allow-list enforcement and preflight handling."""

from __future__ import annotations

from flask import Response

from .config import CorsAuthority

ALLOW_ORIGIN = "Access-Control-Allow-Origin"
ALLOW_CREDENTIALS = "Access-Control-Allow-Credentials"
ALLOW_METHODS = "Access-Control-Allow-Methods"
ALLOW_HEADERS = "Access-Control-Allow-Headers"

ALLOWED_METHODS = "GET, POST, PUT, DELETE, OPTIONS"


def denied():
    response = Response("CORS origin denied\n", 403, mimetype="text/plain")
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


class OriginGate:
    """Wraps the forwarding handler with the CORS decision for each request.

    With a non-empty ``allowed_origins`` only exact matches are let through and
    the origin is echoed back together with ``Allow-Credentials: true``.
    Otherwise every origin is accepted under ``Allow-Origin: *`` and no
    credentials header is sent.

    ``authority`` decides what happens to CORS headers the backend sets itself:
    with ``GATE`` they are removed and replaced, with ``BACKEND`` they are kept
    and the gate only fills in the missing ones.
    """

    def __init__(
        self,
        forward,
        allowed_origins=frozenset(),
        allow_headers: str = "Content-Type, Authorization",
        authority: CorsAuthority = CorsAuthority.GATE,
    ):
        self.forward = forward
        self.allowed_origins = frozenset(allowed_origins)
        self.allow_headers = allow_headers
        self.authority = CorsAuthority(authority)

    @property
    def wildcard(self) -> bool:
        return not self.allowed_origins

    def cors_headers(self, origin: str) -> dict[str, str] | None:
        """Headers for a permitted ``origin``; None when it must be refused."""
        if self.wildcard:
            headers = {ALLOW_ORIGIN: "*"}
        elif origin in self.allowed_origins:
            headers = {ALLOW_ORIGIN: origin, ALLOW_CREDENTIALS: "true"}
        else:
            return None
        headers[ALLOW_METHODS] = ALLOWED_METHODS
        headers[ALLOW_HEADERS] = self.allow_headers
        return headers

    def __call__(self, request) -> Response:
        headers = self.cors_headers(request.headers.get("Origin", ""))
        if headers is None:
            return denied()

        if request.method == "OPTIONS":
            response = Response(b"", 200)
            response.headers.update(headers)
            return response

        response = self.forward(request)
        if self.authority is CorsAuthority.GATE:
            response.headers.pop(ALLOW_ORIGIN, None)
            response.headers.pop(ALLOW_CREDENTIALS, None)
            for name, value in headers.items():
                response.headers[name] = value
        else:
            for name, value in headers.items():
                response.headers.setdefault(name, value)
        return response
