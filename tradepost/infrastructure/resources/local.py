"""Table-backed resource store.

External photos are recorded in ``image_resources`` with their original URL.
Uploaded files are written under ``upload_dir`` and served from
``cdn_base_url``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from tradepost.infrastructure.db.repositories import ImageResourceRepository
from tradepost.infrastructure.observability import get_logger

from .base import (
    DEFAULT_ALLOWED_DOMAINS,
    ResourceStoreError,
    check_image_type,
    hostname_allowed,
    is_under_base,
)

_logger = get_logger(__name__)


class LocalResourceStore:
    def __init__(
        self,
        repository: ImageResourceRepository,
        *,
        cdn_base_url: str,
        allowed_domains: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_DOMAINS,
        upload_dir: Path | str | None = None,
    ) -> None:
        self._repository = repository
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self.allowed_domains = tuple(allowed_domains)
        self.upload_dir = Path(upload_dir) if upload_dir is not None else None

    def is_cdn_uri(self, uri: str) -> bool:
        return is_under_base(uri, self.cdn_base_url)

    def verify_external_resource(self, url: str) -> bool:
        return hostname_allowed(url, self.allowed_domains)

    def create_external_resource(self, url: str, tag: str) -> dict[str, Any]:
        if not self.verify_external_resource(url):
            raise ResourceStoreError("Invalid external URL")
        resource = self._repository.insert(filename=tag, external_url=url)
        _logger.debug("Created external resource %s for %s", resource["resource_id"], url)
        return {"resource_id": resource["resource_id"]}

    def upload_file(self, filename: str, content: bytes, content_type: str) -> dict[str, Any]:
        """Write an image below ``upload_dir`` and record it as a CDN resource."""
        check_image_type(content_type)
        if self.upload_dir is None:
            raise ResourceStoreError("Uploads are not configured")
        if not content:
            raise ResourceStoreError("Missing required fields: empty file")
        target = self.upload_dir / Path(filename).name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        resource = self._repository.insert(filename=target.name, external_url=None)
        _logger.debug("Stored upload %s as %s", target.name, resource["resource_id"])
        return {"resource_id": resource["resource_id"]}

    def remove_resource(self, resource_id: str) -> None:
        resource = self._repository.get(resource_id)
        if resource is None or not self._repository.delete(resource_id):
            raise ResourceStoreError(f"Unknown resource {resource_id}")
        if not resource["external_url"] and self.upload_dir is not None:
            (self.upload_dir / resource["filename"]).unlink(missing_ok=True)

    def get_file_link_resource(self, resource_id: str | None) -> str | None:
        if not resource_id:
            return None
        resource = self._repository.get(resource_id)
        if resource is None:
            return None
        if resource["external_url"]:
            return resource["external_url"]
        return f"{self.cdn_base_url}/{resource['filename']}"
