"""HTTP adapter for a standalone resource (CDN) service."""

from __future__ import annotations

from typing import Any

import httpx

from tradepost.infrastructure.observability import get_logger

from .base import (
    DEFAULT_ALLOWED_DOMAINS,
    ResourceStoreError,
    check_image_type,
    hostname_allowed,
    is_under_base,
)

logger = get_logger(__name__)


class RemoteResourceStore:
    """Synchronous client for the resource service.

    The service exposes::

        POST   /resources/external       {"url", "tag"} -> {"resource_id"}
        POST   /resources/upload         multipart "file" -> {"resource_id"}
        GET    /resources/{id}/link      -> {"url"}
        DELETE /resources/{id}

    URL verification happens locally against the domain allow-list so a
    rejected photo never costs a round trip.

    Attributes:
        base_url: Base URL of the resource service.
        cdn_base_url: Prefix of URIs served by the marketplace CDN.
    """

    def __init__(
        self,
        base_url: str,
        *,
        cdn_base_url: str,
        allowed_domains: tuple[str, ...] | list[str] = DEFAULT_ALLOWED_DOMAINS,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.cdn_base_url = cdn_base_url.rstrip("/")
        self.allowed_domains = tuple(allowed_domains)
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)

    def __enter__(self) -> "RemoteResourceStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def is_cdn_uri(self, uri: str) -> bool:
        return is_under_base(uri, self.cdn_base_url)

    def verify_external_resource(self, url: str) -> bool:
        return hostname_allowed(url, self.allowed_domains)

    def create_external_resource(self, url: str, tag: str) -> dict[str, Any]:
        if not self.verify_external_resource(url):
            raise ResourceStoreError("Invalid external URL")
        data = self._request("POST", "/resources/external", json={"url": url, "tag": tag})
        return {"resource_id": self._resource_id(data)}

    def upload_file(self, filename: str, content: bytes, content_type: str) -> dict[str, Any]:
        check_image_type(content_type)
        data = self._request(
            "POST", "/resources/upload", files={"file": (filename, content, content_type)}
        )
        return {"resource_id": self._resource_id(data)}

    def remove_resource(self, resource_id: str) -> None:
        self._request("DELETE", f"/resources/{resource_id}")

    def get_file_link_resource(self, resource_id: str | None) -> str | None:
        if not resource_id:
            return None
        try:
            response = self._client.get(f"/resources/{resource_id}/link")
        except httpx.HTTPError as exc:
            raise ResourceStoreError(f"Resource service not reachable: {exc}") from exc
        if response.status_code == 404:
            return None
        self._raise_for_status(response)
        return response.json().get("url")

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("Resource service not reachable at %s: %s", self.base_url, exc)
            raise ResourceStoreError(f"Resource service not reachable: {exc}") from exc
        self._raise_for_status(response)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _resource_id(data: Any) -> str:
        resource_id = data.get("resource_id") if isinstance(data, dict) else None
        if not resource_id:
            raise ResourceStoreError("Resource service returned no resource id")
        return str(resource_id)

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Resource service error: status=%d, url=%s",
                exc.response.status_code,
                exc.request.url,
            )
            raise ResourceStoreError(
                f"Resource service error: {exc.response.status_code}"
            ) from exc
