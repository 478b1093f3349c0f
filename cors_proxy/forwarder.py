from __future__ import annotations

from http.cookiejar import DefaultCookiePolicy
from urllib.parse import quote, urlsplit, urlunsplit

import requests
import urllib3
from flask import Response
from loguru import logger

# Hop-by-hop headers are meaningful for a single connection only.
HOP_BY_HOP = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-connection",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailer",
        "transfer-encoding",
        "upgrade",
    }
)

CHUNK_SIZE = 8192

# Characters left unescaped when re-encoding the request path.
PATH_SAFE = "/:@!$&'()*+,;=~"


def build_session() -> requests.Session:
    """Session for backend calls that never keeps cookies between requests."""
    session = requests.Session()
    # requests would otherwise add Accept, Accept-Encoding and Connection.
    session.headers.clear()
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return session


def join_path(base: str, path: str) -> str:
    if base.endswith("/") and path.startswith("/"):
        return base + path[1:]
    if not base.endswith("/") and not path.startswith("/"):
        return base + "/" + path
    return base + path


def target_url(backend: str, path: str, query: str = "") -> str:
    parts = urlsplit(backend)
    if parts.query and query:
        query = parts.query + "&" + query
    else:
        query = parts.query or query
    return urlunsplit((parts.scheme, parts.netloc, join_path(parts.path, path), query, ""))


def raw_path(request) -> str:
    """Request path exactly as the client sent it, escapes included."""
    raw = request.environ.get("RAW_URI") or request.environ.get("REQUEST_URI")
    if raw and raw.startswith("/"):
        return raw.split("?", 1)[0]
    return quote(request.path, safe=PATH_SAFE)


def _connection_tokens(headers) -> set[str]:
    tokens = set()
    for value in headers.getlist("Connection"):
        tokens.update(t.strip().lower() for t in (value or "").split(",") if t.strip())
    return tokens


def outbound_headers(request) -> dict[str, str]:
    drop = HOP_BY_HOP | _connection_tokens(request.headers) | {"host"}
    headers = {k: v for k, v in request.headers if k.lower() not in drop}

    client = request.remote_addr
    if client:
        prior = request.headers.get("X-Forwarded-For")
        headers["X-Forwarded-For"] = f"{prior}, {client}" if prior else client
    return headers


def bad_gateway():
    return Response("Proxy error\n", 502, mimetype="text/plain")


class ProxyForwarder:
    """Relays a request to the single configured backend.

    The backend URL is fixed at construction. Transport failures (refused
    connections, DNS errors, timeouts) become a 502; HTTP error statuses from
    the backend are passed through like any other response.
    """

    def __init__(self, backend_url: str, session: requests.Session | None = None, timeout: float = 30.0):
        self.backend_url = backend_url
        self.session = session if session is not None else build_session()
        self.timeout = timeout

    def url_for(self, request) -> str:
        return target_url(
            self.backend_url,
            raw_path(request),
            request.query_string.decode("latin-1"),
        )

    def __call__(self, request) -> Response:
        try:
            upstream = self.session.request(
                method=request.method,
                url=self.url_for(request),
                headers=outbound_headers(request),
                data=request.get_data(),
                allow_redirects=False,
                stream=True,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.opt(exception=exc).error("Proxy error: {} {}", request.method, request.path)
            return bad_gateway()

        drop = HOP_BY_HOP | _connection_tokens(upstream.raw.headers)
        headers = [(k, v) for k, v in upstream.raw.headers.items() if k.lower() not in drop]
        response = Response(
            self._relay(upstream, request.method, request.path),
            upstream.status_code,
            headers,
        )
        if "Content-Type" not in upstream.raw.headers:
            del response.headers["Content-Type"]
        response.call_on_close(upstream.close)
        return response

    @staticmethod
    def _relay(upstream, method, path):
        try:
            yield from upstream.raw.stream(CHUNK_SIZE, decode_content=False)
        except (requests.RequestException, urllib3.exceptions.HTTPError, OSError) as exc:
            # Status and headers are already out; all that is left is to stop.
            logger.opt(exception=exc).error("Proxy error: {} {}", method, path)
