"""HTTP API for exports."""

from .api import create_app

__all__ = ["create_app"]
