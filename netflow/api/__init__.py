"""Read-only HTTP API over the netflow store."""

from .server import create_app, start_api_server, stop_api_server

__all__ = ["create_app", "start_api_server", "stop_api_server"]
