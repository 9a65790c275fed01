"""Keeps a details row's photos in line with a desired list of photo URIs.

Marketplace CDN URIs must already belong to the listing and are preserved;
any other URI becomes a new external resource. Resources that are no longer
wanted are dissociated and then removed from the resource store. Uploaded
files are added next to the current photos, replacing the placeholder and
the oldest photos when the listing is full.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tradepost.infrastructure.db import MarketStore, new_id
from tradepost.infrastructure.observability import get_logger, log_context, record_photo_sync
from tradepost.infrastructure.resources import ResourceStoreError
from tradepost.services.collaborators import ResourceStore
from tradepost.services.dto import PhotoUploadDTO
from tradepost.services.errors import MarketValidationError

_logger = get_logger(__name__)


@dataclass
class PhotoPlan:
    details_id: str
    tag: str
    preserved: list[str] = field(default_factory=list)
    to_create: list[str] = field(default_factory=list)
    to_delete: list[str] = field(default_factory=list)
    created: list[str] = field(default_factory=list)


class PhotoReconciler:
    """Diffs desired photo URIs against current resources.

    The steps are exposed separately so callers can put :meth:`associate`
    inside a larger transaction; :meth:`reconcile` runs them all.
    """

    def __init__(self, store: MarketStore, resources: ResourceStore, *, max_photos: int = 5) -> None:
        self._store = store
        self._resources = resources
        self.max_photos = max_photos

    def reconcile(self, details_id: str, desired: list[str], *, tag: str) -> PhotoPlan:
        plan = self.plan(details_id, desired, tag=tag)
        self.create_resources(plan)
        try:
            with self._store.atomic():
                self.associate(plan)
        except Exception:
            self.discard(plan)
            raise
        self.cleanup(plan)
        return plan

    def plan(self, details_id: str, desired: list[str], *, tag: str) -> PhotoPlan:
        """Validate the desired photos without side effects."""
        if len(desired) > self.max_photos:
            raise MarketValidationError(f"A listing can have at most {self.max_photos} photos")

        current = self._current(details_id)
        links: dict[str, str] = {}
        for resource_id in current:
            url = self._link(resource_id)
            if url:
                links[resource_id] = url

        plan = PhotoPlan(details_id=details_id, tag=tag)
        for uri in desired:
            if not uri:
                raise MarketValidationError("Invalid photo!")
            if self._resources.is_cdn_uri(uri):
                match = next(
                    (rid for rid, url in links.items() if url == uri and rid not in plan.preserved),
                    None,
                )
                if match is None:
                    raise MarketValidationError(
                        "Cannot use image from the marketplace CDN that is not already "
                        "associated with this listing"
                    )
                plan.preserved.append(match)
                continue
            if not self._resources.verify_external_resource(uri):
                raise MarketValidationError("Invalid photo!")
            plan.to_create.append(uri)

        plan.to_delete = [rid for rid in current if rid not in plan.preserved]
        return plan

    def plan_additions(
        self, details_id: str, count: int, *, tag: str, placeholder_url: str
    ) -> PhotoPlan:
        """Make room for ``count`` uploads next to the current photos.

        The placeholder photo always goes; beyond ``max_photos`` the oldest
        remaining photos are dropped.
        """
        if count < 1:
            raise MarketValidationError("No photos provided")
        if count > self.max_photos:
            raise MarketValidationError(
                f"Maximum {self.max_photos} photos can be uploaded at once"
            )
        current = self._current(details_id)
        placeholders = [rid for rid in current if self._link(rid) == placeholder_url]
        kept = [rid for rid in current if rid not in placeholders]
        overflow = max(0, len(kept) + count - self.max_photos)
        return PhotoPlan(
            details_id=details_id,
            tag=tag,
            preserved=kept[overflow:],
            to_delete=placeholders + kept[:overflow],
        )

    def create_resources(self, plan: PhotoPlan) -> None:
        """Create the external resources; on failure undo the ones already created."""
        for index, url in enumerate(plan.to_create):
            try:
                resource = self._resources.create_external_resource(url, f"{plan.tag}_photo_{index}")
            except Exception as exc:
                _logger.warning("Creating photo resource for %s failed: %s", url, exc)
                self.discard(plan)
                raise MarketValidationError("Invalid photo!") from exc
            plan.created.append(str(resource["resource_id"]))

    def upload_resources(self, plan: PhotoPlan, uploads: list[PhotoUploadDTO]) -> None:
        """Store the uploaded files on the CDN; on failure undo the ones already stored."""
        for index, upload in enumerate(uploads):
            extension = upload.content_type.split("/")[-1] or "png"
            filename = f"{plan.tag}-photos-{index}-{new_id()}.{extension}"
            try:
                resource = self._resources.upload_file(
                    filename, upload.content, upload.content_type
                )
            except ResourceStoreError as exc:
                _logger.warning("Upload of photo %d failed: %s", index + 1, exc)
                self.discard(plan)
                raise MarketValidationError(f"Photo {index + 1} failed validation: {exc}") from exc
            except Exception:
                self.discard(plan)
                raise
            plan.created.append(str(resource["resource_id"]))

    def associate(self, plan: PhotoPlan) -> None:
        """Write the association changes; runs in the caller's transaction."""
        if plan.created:
            self._store.photos.add(plan.details_id, plan.created)
        for resource_id in plan.to_delete:
            self._store.photos.remove(plan.details_id, resource_id)

    def discard(self, plan: PhotoPlan) -> None:
        """Compensate for :meth:`create_resources` after a failed update."""
        for resource_id in plan.created:
            try:
                self._resources.remove_resource(resource_id)
            except Exception as exc:
                _logger.error("Could not remove orphaned photo %s: %s", resource_id, exc)
        plan.created = []

    def cleanup(self, plan: PhotoPlan) -> None:
        """Best-effort removal of dropped resources once the update is committed."""
        with log_context(details_id=plan.details_id):
            for resource_id in plan.to_delete:
                try:
                    self._resources.remove_resource(resource_id)
                except Exception as exc:
                    _logger.warning("Removing photo resource %s failed: %s", resource_id, exc)
            _logger.info(
                "Photos synced: %d created, %d preserved, %d deleted",
                len(plan.created),
                len(plan.preserved),
                len(plan.to_delete),
            )
        record_photo_sync(len(plan.created), len(plan.preserved), len(plan.to_delete))

    def _current(self, details_id: str) -> list[str]:
        return [str(p["resource_id"]) for p in self._store.photos.list_for_details(details_id)]

    def _link(self, resource_id: str) -> str | None:
        try:
            return self._resources.get_file_link_resource(resource_id)
        except Exception as exc:
            _logger.warning("Could not resolve photo %s: %s", resource_id, exc)
            return None


__all__ = ["PhotoPlan", "PhotoReconciler"]
