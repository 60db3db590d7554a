"""Future/past schedule fetches over a Notion schedule database.

Both fetches follow the same shape: query the database with a visibility
plus date filter (falling back to the date filter alone when the database
has no visibility column), map every page to a ``ScheduleEvent``, then group
the events by ``YYYY-MM`` month key.

The reference instant ``now`` is an explicit argument everywhere so callers
and tests control the future/past boundary.  Both public fetches are
fail-open: any remote failure is logged and an empty result is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from notion_schedule.config import (
    DEFAULT_FUTURE_PAGE_SIZE,
    DEFAULT_PUBLISHED_VALUE,
    PropertyNames,
)
from notion_schedule.models import FutureSchedule, MonthGroup, MonthLabelStyle, ScheduleEvent
from notion_schedule.notion import NotionSchemaMismatchError
from notion_schedule.records import (
    ScheduleRecord,
    format_notion_date,
    parse_notion_datetime,
)

logger = logging.getLogger(__name__)

# Receives (filter, sorts, page_size) and returns the raw Notion pages.
QueryFn = Callable[
    [dict[str, Any], list[dict[str, Any]], int | None],
    Awaitable[list[dict[str, Any]]],
]


class SortDirection(StrEnum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


# ---------------------------------------------------------------------------
# Record mapping
# ---------------------------------------------------------------------------


def _ensure_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def record_to_event(record: ScheduleRecord, now: datetime) -> ScheduleEvent:
    """Map a decoded record to a ``ScheduleEvent`` relative to *now*.

    Absent columns become empty strings.  An empty or unparseable date leaves
    both ``is_upcoming`` and ``is_past`` false.
    """
    title = record.title if record.title is not None else ""

    if record.date is not None and record.date.start is not None:
        date = record.date.start
    else:
        date = ""

    if record.date is not None and record.date.end is not None:
        end_date = record.date.end
    else:
        end_date = ""

    description = record.category if record.category is not None else ""

    event_at = parse_notion_datetime(date) if date else None
    reference = _ensure_aware(now)
    is_upcoming = event_at is not None and event_at >= reference
    is_past = event_at is not None and event_at < reference

    return ScheduleEvent(
        id=record.id,
        title=title,
        date=date,
        end_date=end_date,
        description=description,
        location="",
        is_upcoming=is_upcoming,
        is_past=is_past,
    )


def parse_schedule_event(
    page: Mapping[str, Any],
    now: datetime,
    *,
    properties: PropertyNames | None = None,
) -> ScheduleEvent:
    """Map one raw Notion page to a ``ScheduleEvent``."""
    return record_to_event(ScheduleRecord.from_page(page, properties), now)


# ---------------------------------------------------------------------------
# Month grouping
# ---------------------------------------------------------------------------


def format_month_label(value: datetime, style: MonthLabelStyle) -> str:
    if style is MonthLabelStyle.SHORT:
        return f"{value.year:04d}.{value.month:02d}"
    return f"{value.year}年{value.month}月"


def _month_label(date: str, month_key: str, style: MonthLabelStyle) -> str:
    parsed = parse_notion_datetime(date)
    if parsed is None:
        try:
            parsed = datetime.strptime(month_key, "%Y-%m")
        except ValueError:
            return month_key
    return format_month_label(parsed, style)


def group_events_by_month(
    events: Iterable[ScheduleEvent],
    style: MonthLabelStyle,
) -> list[MonthGroup]:
    """Group events by the ``YYYY-MM`` prefix of their date.

    Groups appear in first-seen order and keep the input order of their
    events.  Events without a date are skipped.
    """
    grouped: dict[str, MonthGroup] = {}
    for event in events:
        if not event.date:
            continue
        month_key = event.date[:7]
        group = grouped.get(month_key)
        if group is None:
            group = MonthGroup(
                month=month_key,
                label=_month_label(event.date, month_key, style),
            )
            grouped[month_key] = group
        group.events.append(event)
    return list(grouped.values())


def split_future_events(events: list[ScheduleEvent]) -> FutureSchedule:
    """Take the first event as ``next_up`` and group the rest by month."""
    if not events:
        return FutureSchedule()
    return FutureSchedule(
        next_up=events[0],
        monthly_events=group_events_by_month(events[1:], MonthLabelStyle.SHORT),
    )


# ---------------------------------------------------------------------------
# Query building and fallback
# ---------------------------------------------------------------------------


def build_published_filter(visibility_property: str, published_value: str) -> dict[str, Any]:
    return {"property": visibility_property, "select": {"equals": published_value}}


def build_date_filter(
    date_property: str,
    *,
    before: str | None = None,
    on_or_after: str | None = None,
) -> dict[str, Any]:
    if (before is None) == (on_or_after is None):
        raise ValueError("exactly one of before/on_or_after must be set")
    condition = {"before": before} if before is not None else {"on_or_after": on_or_after}
    return {"property": date_property, "date": condition}


def build_date_sorts(date_property: str, direction: SortDirection) -> list[dict[str, Any]]:
    return [{"property": date_property, "direction": direction.value}]


async def query_with_fallback(
    query: QueryFn,
    *,
    primary_filter: dict[str, Any],
    fallback_filter: dict[str, Any],
    sorts: list[dict[str, Any]],
    page_size: int | None = None,
) -> list[dict[str, Any]]:
    """Run *primary_filter*, retrying once with *fallback_filter* on failure.

    Some schedule databases have no visibility column, in which case Notion
    rejects the enriched filter.  Any failure of the primary query triggers the
    retry; errors from the fallback query propagate.
    """
    try:
        return await query(primary_filter, sorts, page_size)
    except NotionSchemaMismatchError as exc:
        logger.info("Schedule query rejected filter, retrying with reduced filter: %s", exc)
    except Exception as exc:
        logger.warning("Schedule query failed, retrying with reduced filter: %s", exc)
    return await query(fallback_filter, sorts, page_size)


# ---------------------------------------------------------------------------
# Public fetches
# ---------------------------------------------------------------------------


async def get_future_schedule(
    query: QueryFn,
    *,
    now: datetime | None = None,
    properties: PropertyNames | None = None,
    published_value: str = DEFAULT_PUBLISHED_VALUE,
    page_size: int = DEFAULT_FUTURE_PAGE_SIZE,
) -> FutureSchedule:
    """Fetch events dated today or later.

    The earliest event becomes ``next_up``; the remainder are grouped by month
    with ``YYYY.MM`` labels.  Only the first *page_size* events are read.
    """
    names = properties or PropertyNames()
    reference = _ensure_aware(now) if now is not None else datetime.now(UTC)
    try:
        date_filter = build_date_filter(names.date, on_or_after=format_notion_date(reference))
        pages = await query_with_fallback(
            query,
            primary_filter={
                "and": [build_published_filter(names.visibility, published_value), date_filter]
            },
            fallback_filter=date_filter,
            sorts=build_date_sorts(names.date, SortDirection.ASCENDING),
            page_size=page_size,
        )
        events = [parse_schedule_event(page, reference, properties=names) for page in pages]
    except Exception:
        logger.exception("Error fetching future schedule")
        return FutureSchedule()
    return split_future_events(events)


async def get_past_events_by_month(
    query: QueryFn,
    *,
    now: datetime | None = None,
    properties: PropertyNames | None = None,
    published_value: str = DEFAULT_PUBLISHED_VALUE,
) -> list[MonthGroup]:
    """Fetch events dated before today, most recent month first.

    No page size is sent, so Notion's default page limit applies.
    """
    names = properties or PropertyNames()
    reference = _ensure_aware(now) if now is not None else datetime.now(UTC)
    try:
        date_filter = build_date_filter(names.date, before=format_notion_date(reference))
        pages = await query_with_fallback(
            query,
            primary_filter={
                "and": [build_published_filter(names.visibility, published_value), date_filter]
            },
            fallback_filter=date_filter,
            sorts=build_date_sorts(names.date, SortDirection.DESCENDING),
        )
        events = [parse_schedule_event(page, reference, properties=names) for page in pages]
    except Exception:
        logger.exception("Error fetching past events")
        return []
    return group_events_by_month(events, MonthLabelStyle.LONG)
