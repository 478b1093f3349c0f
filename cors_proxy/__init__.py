"""Single-backend reverse proxy with origin-gated CORS and traffic logging."""

from .app import create_app
from .config import CorsAuthority, ProxySettings

__all__ = ["CorsAuthority", "ProxySettings", "create_app"]
__version__ = "0.1.0"
