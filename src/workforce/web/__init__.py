"""HTTP interface for external front ends."""

from .server import create_app

__all__ = ["create_app"]
