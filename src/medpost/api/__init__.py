"""FastAPI server for MedPost."""

from medpost.api.server import APIServer, create_app

__all__ = ["APIServer", "create_app"]
