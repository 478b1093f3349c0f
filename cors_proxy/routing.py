"""First-match dispatch over an explicit, ordered route table."""

from __future__ import annotations

from typing import Callable, NamedTuple

from flask import Request, Response

Handler = Callable[[Request], Response]
Matcher = Callable[[str], bool]


class Route(NamedTuple):
    matcher: Matcher
    handler: Handler


def exact(path: str) -> Matcher:
    def match(candidate: str) -> bool:
        return candidate == path

    match.__name__ = f"exact({path})"
    return match


def any_path(candidate: str) -> bool:
    return True


def dispatch(routes, request: Request) -> Response:
    for route in routes:
        if route.matcher(request.path):
            return route.handler(request)
    return Response("404 page not found\n", 404, mimetype="text/plain")
