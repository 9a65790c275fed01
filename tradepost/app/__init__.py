"""Application layer: configuration, FastAPI dependencies and the HTTP API."""

from . import config

__all__ = ["config"]
