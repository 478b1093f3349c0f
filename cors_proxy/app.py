from flask import Flask, request
from werkzeug.routing import Rule

from .config import ProxySettings
from .cors import OriginGate
from .forwarder import ProxyForwarder
from .health import healthz, ready
from .routing import Route, any_path, dispatch, exact
from .traffic import TrafficLogger

def build_routes(settings: ProxySettings, session=None):
    forward = ProxyForwarder(
        settings.backend_api_url,
        session=session,
        timeout=settings.backend_timeout_seconds,
    )
    pipeline = OriginGate(
        forward,
        allowed_origins=settings.allowed_origins,
        allow_headers=settings.cors_allow_headers,
        authority=settings.cors_authority,
    )
    if settings.traffic_log:
        pipeline = TrafficLogger(pipeline)

    return (
        Route(exact("/healthz"), healthz),
        Route(exact("/ready"), ready),
        Route(any_path, pipeline),
    )


def create_app(settings: ProxySettings | None = None, session=None) -> Flask:
    settings = settings or ProxySettings()
    routes = build_routes(settings, session=session)

    app = Flask(__name__, static_folder=None)
    app.config["PROXY_SETTINGS"] = settings
    app.url_map.merge_slashes = False

    def proxy(path):
        return dispatch(routes, request)

    # Rules without a method list match every verb, WebDAV and custom ones too.
    app.url_map.add(Rule("/", defaults={"path": ""}, endpoint="proxy"))
    app.url_map.add(Rule("/<path:path>", endpoint="proxy"))
    app.view_functions["proxy"] = proxy

    return app
