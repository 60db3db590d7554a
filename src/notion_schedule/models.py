"""Schedule value types handed to the presentation layer."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class MonthLabelStyle(StrEnum):
    """Label format used when grouping events by month."""

    SHORT = "short"  # 2026.02
    LONG = "long"  # 2026年2月


class ScheduleEvent(BaseModel):
    """Canonical schedule entry derived from one Notion page.

    ``is_upcoming`` and ``is_past`` are computed against the reference instant
    of the fetch that produced the event and are not refreshed afterwards.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    date: str = ""
    end_date: str = ""
    description: str = ""
    location: str = ""
    is_upcoming: bool = False
    is_past: bool = False

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "date": self.date,
            "endDate": self.end_date,
            "description": self.description,
            "location": self.location,
            "isUpcoming": self.is_upcoming,
            "isPast": self.is_past,
        }


class MonthGroup(BaseModel):
    """Events sharing one ``YYYY-MM`` month key, in query order."""

    month: str
    label: str
    events: list[ScheduleEvent] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "label": self.label,
            "events": [event.to_payload() for event in self.events],
        }


class FutureSchedule(BaseModel):
    """Result of the future schedule fetch: the next event plus the rest by month."""

    next_up: ScheduleEvent | None = None
    monthly_events: list[MonthGroup] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "nextUp": self.next_up.to_payload() if self.next_up is not None else None,
            "monthlyEvents": [group.to_payload() for group in self.monthly_events],
        }
