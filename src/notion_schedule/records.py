"""Typed decoding of raw Notion schedule pages.

A Notion page stores every column under ``properties`` keyed by display name,
each wrapped in a type-tagged object.  ``ScheduleRecord`` pulls out the few
columns the schedule needs and represents each as either a typed value or
``None`` when the column is absent or has an unexpected shape.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict

from notion_schedule.config import PropertyNames
from notion_schedule.notion import extract_plain_text


class NotionDateValue(BaseModel):
    """Value of a Notion ``date`` property: a start and an optional range end."""

    model_config = ConfigDict(frozen=True)

    start: str | None = None
    end: str | None = None


class ScheduleRecord(BaseModel):
    """The schedule-relevant columns of one Notion page."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str | None = None
    date: NotionDateValue | None = None
    category: str | None = None

    @classmethod
    def from_page(
        cls,
        page: Mapping[str, Any],
        properties: PropertyNames | None = None,
    ) -> ScheduleRecord:
        names = properties or PropertyNames()
        page_id = page.get("id")
        raw_properties = page.get("properties")
        if not isinstance(raw_properties, Mapping):
            raw_properties = {}

        return cls(
            id=str(page_id) if page_id is not None else "",
            title=_extract_title(raw_properties.get(names.title)),
            date=_extract_date(raw_properties.get(names.date)),
            category=_extract_select_name(raw_properties.get(names.category)),
        )


def _extract_title(prop: Any) -> str | None:
    if not isinstance(prop, Mapping):
        return None
    rich_text = prop.get("title")
    if not isinstance(rich_text, list):
        return None
    return extract_plain_text(rich_text)


def _extract_date(prop: Any) -> NotionDateValue | None:
    if not isinstance(prop, Mapping):
        return None
    value = prop.get("date")
    if not isinstance(value, Mapping):
        return None
    start = value.get("start")
    end = value.get("end")
    return NotionDateValue(
        start=start if isinstance(start, str) else None,
        end=end if isinstance(end, str) else None,
    )


def _extract_select_name(prop: Any) -> str | None:
    if not isinstance(prop, Mapping):
        return None
    select = prop.get("select")
    if not isinstance(select, Mapping):
        return None
    name = select.get("name")
    return name if isinstance(name, str) else None


def parse_notion_datetime(value: str) -> datetime | None:
    """Parse a Notion date or date-time string into an aware datetime.

    Date-only values resolve to midnight UTC, as do naive date-times.
    Returns ``None`` for anything that is not ISO-8601.
    """
    normalized = value.strip()
    if not normalized:
        return None
    if normalized.endswith("Z"):
        normalized = f"{normalized[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)


def format_notion_date(value: datetime) -> str:
    """Return the UTC calendar date of *value* as ``YYYY-MM-DD``."""
    normalized = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    return normalized.astimezone(UTC).date().isoformat()
