"""Multiple-listing membership arithmetic."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True)
class MembershipDiff:
    removed: frozenset[str]
    added: frozenset[str]
    kept: frozenset[str]

    @property
    def is_empty(self) -> bool:
        return not self.removed and not self.added


def desired_members(listings: Iterable[str], default_listing_id: str | None) -> list[str]:
    """Requested member ids with the default listing included, duplicates dropped, order kept."""
    ordered = list(dict.fromkeys(listings))
    if default_listing_id is not None and default_listing_id not in ordered:
        ordered.append(default_listing_id)
    return ordered


def membership_diff(old: Iterable[str], new: Iterable[str]) -> MembershipDiff:
    old_set, new_set = frozenset(old), frozenset(new)
    return MembershipDiff(
        removed=old_set - new_set,
        added=new_set - old_set,
        kept=old_set & new_set,
    )


__all__ = ["MembershipDiff", "desired_members", "membership_diff"]
