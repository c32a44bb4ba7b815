"""API routers."""

from sheetsink.api.routers import data

__all__ = ["data"]
