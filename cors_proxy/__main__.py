import sys

from loguru import logger
from pydantic import ValidationError
from werkzeug.serving import make_server

from .app import create_app
from .config import ProxySettings
from .logs import configure_logging


def main():
    try:
        settings = ProxySettings()
    except ValidationError as exc:
        configure_logging("info", sink=sys.stderr)
        logger.critical("Failed to parse configuration: {}", exc)
        sys.exit(1)

    configure_logging(settings.log_level)
    app = create_app(settings)

    try:
        server = make_server(settings.host, settings.port, app, threaded=True)
    except SystemExit:
        # werkzeug prints the bind error itself before exiting
        logger.critical("Failed to start server on {}:{}", settings.host, settings.port)
        raise

    logger.info(
        "Starting proxy server on port {}, forwarding to {}",
        settings.port,
        settings.backend_api_url,
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Shutting down")
    finally:
        server.server_close()


if __name__ == "__main__":
    main()
