"""Small value types shared by the market domain models."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO timestamp (``Z`` suffix allowed) into an aware datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def add_months(value: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month's length."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def refresh_threshold(now: datetime, window_days: int = 3) -> datetime:
    """Latest expiration that may still be refreshed: one month ahead minus the window."""
    return add_months(now, 1) - timedelta(days=window_days)


@dataclass(frozen=True)
class Owner:
    """A seller: exactly one of a user or a contractor."""

    user_id: str | None = None
    contractor_id: str | None = None

    def __post_init__(self) -> None:
        if self.user_id and self.contractor_id:
            raise ValueError("A listing owner is a user or a contractor, never both")

    @property
    def is_contractor(self) -> bool:
        return self.contractor_id is not None

    @property
    def is_empty(self) -> bool:
        return self.user_id is None and self.contractor_id is None

    def as_columns(self) -> dict[str, str | None]:
        return {"user_seller_id": self.user_id, "contractor_seller_id": self.contractor_id}

    @classmethod
    def from_row(cls, row: dict) -> "Owner":
        return cls(
            user_id=row.get("user_seller_id"), contractor_id=row.get("contractor_seller_id")
        )


__all__ = ["Owner", "add_months", "parse_datetime", "refresh_threshold"]
