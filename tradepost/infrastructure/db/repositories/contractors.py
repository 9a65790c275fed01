from __future__ import annotations

from typing import Any, Iterable

from ..connection import new_id
from .base import BaseRepository


class ContractorRepository(BaseRepository):
    """Organisations that can own listings, with per-member capabilities.

    Implements the permission-check collaborator used by the market
    services (``has_permission`` / ``is_member``).
    """

    def add(self, spectrum_id: str, *, name: str | None = None, archived: bool = False) -> str:
        contractor_id = new_id()
        self._execute(
            "INSERT INTO contractors (contractor_id, spectrum_id, name, archived) VALUES (?, ?, ?, ?)",
            (contractor_id, spectrum_id, name, 1 if archived else 0),
        )
        return contractor_id

    def get(
        self, *, contractor_id: str | None = None, spectrum_id: str | None = None
    ) -> dict[str, Any] | None:
        if contractor_id is not None:
            return self._fetch_one_as_dict(
                "SELECT contractor_id, spectrum_id, name, archived FROM contractors WHERE contractor_id = ?",
                (contractor_id,),
            )
        if spectrum_id is not None:
            return self._fetch_one_as_dict(
                "SELECT contractor_id, spectrum_id, name, archived FROM contractors WHERE spectrum_id = ?",
                (spectrum_id,),
            )
        return None

    def add_member(
        self, contractor_id: str, user_id: str, capabilities: Iterable[str] = ()
    ) -> None:
        self._execute(
            """
            INSERT INTO contractor_members (contractor_id, user_id, capabilities)
            VALUES (?, ?, ?)
            ON CONFLICT (contractor_id, user_id) DO UPDATE SET capabilities = excluded.capabilities
            """,
            (contractor_id, user_id, ",".join(sorted(set(capabilities)))),
        )

    def is_member(self, contractor_id: str, user_id: str) -> bool:
        return (
            self._fetch_scalar(
                "SELECT 1 FROM contractor_members WHERE contractor_id = ? AND user_id = ?",
                (contractor_id, user_id),
            )
            is not None
        )

    def has_permission(self, contractor_id: str, user_id: str, capability: str) -> bool:
        raw = self._fetch_scalar(
            "SELECT capabilities FROM contractor_members WHERE contractor_id = ? AND user_id = ?",
            (contractor_id, user_id),
        )
        if raw is None:
            return False
        return capability in {c for c in str(raw).split(",") if c}
