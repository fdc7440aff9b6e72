"""Refresher: keeps merge requests in sync with pushed branches."""

__version__ = "0.1.0"
