"""HTTP surface of the folio service."""

from .app import create_app

__all__ = ["create_app"]
