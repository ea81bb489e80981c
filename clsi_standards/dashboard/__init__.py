"""REST API for breakpoint standards, expert rules and lab results."""

from .app import create_app

__all__ = ["create_app"]
