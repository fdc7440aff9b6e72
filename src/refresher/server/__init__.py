"""Refresher webhook server."""

from refresher.server.app import create_app
from refresher.server.config import Settings

__all__ = ["create_app", "Settings"]
