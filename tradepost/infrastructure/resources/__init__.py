"""Image resource store adapters (marketplace CDN collaborator)."""

from .base import (
    DEFAULT_ALLOWED_DOMAINS,
    ResourceStoreError,
    hostname_allowed,
    is_under_base,
)
from .local import LocalResourceStore
from .remote import RemoteResourceStore

__all__ = [
    "DEFAULT_ALLOWED_DOMAINS",
    "LocalResourceStore",
    "RemoteResourceStore",
    "ResourceStoreError",
    "hostname_allowed",
    "is_under_base",
]
