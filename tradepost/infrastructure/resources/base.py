"""Shared pieces of the image resource store adapters."""

from __future__ import annotations

from urllib.parse import urlparse

DEFAULT_ALLOWED_DOMAINS: tuple[str, ...] = (
    "media.robertsspaceindustries.com",
    "cdn.robertsspaceindustries.com",
    "robertsspaceindustries.com",
    "starcitizen.tools",
    "media.starcitizen.tools",
    "i.imgur.com",
    "cstone.space",
)

SUPPORTED_IMAGE_TYPES: tuple[str, ...] = ("image/png", "image/jpeg", "image/webp")


class ResourceStoreError(Exception):
    """Raised when the resource store rejects or fails an operation."""


def check_image_type(content_type: str) -> None:
    if content_type.lower() not in SUPPORTED_IMAGE_TYPES:
        raise ResourceStoreError(f"Unsupported MIME type: {content_type}")


def is_under_base(uri: str, base_url: str) -> bool:
    """Return True when ``uri`` points below ``base_url`` (same scheme and host)."""
    if not base_url:
        return False
    base = urlparse(base_url.rstrip("/") + "/")
    target = urlparse(uri)
    return (
        target.scheme == base.scheme
        and target.netloc.lower() == base.netloc.lower()
        and target.path.startswith(base.path)
    )


def hostname_allowed(url: str, allowed_domains: tuple[str, ...] | list[str]) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False
    return parsed.hostname.lower() in {d.lower() for d in allowed_domains}
