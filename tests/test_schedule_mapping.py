"""Unit tests for page-to-event mapping and month grouping.

Covered helpers:
- `parse_schedule_event` / `record_to_event` — Notion page to ScheduleEvent
- `group_events_by_month` — first-seen month grouping
- `format_month_label` — short and long month labels
- `split_future_events` — next-up selection
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest

from notion_schedule.models import MonthLabelStyle, ScheduleEvent
from notion_schedule.records import ScheduleRecord
from notion_schedule.schedule import (
    format_month_label,
    group_events_by_month,
    parse_schedule_event,
    record_to_event,
    split_future_events,
)

pytestmark = pytest.mark.unit

NOW = datetime(2026, 2, 10, 12, 0, tzinfo=UTC)


def _event(event_id: str, date: str) -> ScheduleEvent:
    return ScheduleEvent(id=event_id, title=event_id, date=date)


class TestParseScheduleEvent:
    def test_fields_pass_through_unmodified(self, page_factory):
        page = page_factory(
            "page-1",
            title="  Spring Live 2026 ",
            start="2026-02-15T19:00:00.000+09:00",
            end="2026-02-15T21:00:00.000+09:00",
            category="ライブ",
        )

        event = parse_schedule_event(page, NOW)

        assert event.id == "page-1"
        assert event.title == "  Spring Live 2026 "
        assert event.date == "2026-02-15T19:00:00.000+09:00"
        assert event.end_date == "2026-02-15T21:00:00.000+09:00"
        assert event.description == "ライブ"
        assert event.location == ""

    def test_missing_fields_default_to_empty(self, page_factory):
        event = parse_schedule_event(page_factory("page-2"), NOW)

        assert event.title == ""
        assert event.date == ""
        assert event.end_date == ""
        assert event.description == ""
        assert event.is_upcoming is False
        assert event.is_past is False

    def test_future_date_is_upcoming(self, page_factory):
        event = parse_schedule_event(page_factory("p", start="2026-02-15"), NOW)
        assert event.is_upcoming is True
        assert event.is_past is False

    def test_past_date_is_past(self, page_factory):
        event = parse_schedule_event(page_factory("p", start="2026-01-05"), NOW)
        assert event.is_upcoming is False
        assert event.is_past is True

    def test_instant_equal_to_now_is_upcoming(self, page_factory):
        event = parse_schedule_event(page_factory("p", start="2026-02-10T12:00:00Z"), NOW)
        assert event.is_upcoming is True
        assert event.is_past is False

    def test_todays_date_only_value_is_past_after_midnight(self, page_factory):
        event = parse_schedule_event(page_factory("p", start="2026-02-10"), NOW)
        assert event.is_past is True

    def test_unparseable_date_is_neither(self, page_factory):
        event = parse_schedule_event(page_factory("p", start="sometime"), NOW)
        assert event.date == "sometime"
        assert event.is_upcoming is False
        assert event.is_past is False

    def test_naive_now_is_treated_as_utc(self, page_factory):
        event = parse_schedule_event(
            page_factory("p", start="2026-02-10T13:00:00Z"),
            datetime(2026, 2, 10, 12, 0),
        )
        assert event.is_upcoming is True

    @pytest.mark.parametrize(
        "start",
        ["2026-02-09", "2026-02-10T11:59:59Z", "2026-02-10T20:00:00+09:00", "2026-03-01"],
    )
    def test_exactly_one_flag_for_parseable_dates(self, page_factory, start):
        event = parse_schedule_event(page_factory("p", start=start), NOW)
        assert event.is_upcoming != event.is_past


class TestRecordToEvent:
    def test_date_without_end(self):
        record = ScheduleRecord.model_validate(
            {"id": "r", "date": {"start": "2026-02-15", "end": None}}
        )
        event = record_to_event(record, NOW)
        assert event.date == "2026-02-15"
        assert event.end_date == ""

    def test_end_without_start(self):
        record = ScheduleRecord.model_validate(
            {"id": "r", "date": {"start": None, "end": "2026-02-16"}}
        )
        event = record_to_event(record, NOW)
        assert event.date == ""
        assert event.end_date == "2026-02-16"
        assert event.is_upcoming is False
        assert event.is_past is False


class TestFormatMonthLabel:
    def test_short_label(self):
        assert format_month_label(datetime(2026, 2, 1), MonthLabelStyle.SHORT) == "2026.02"

    def test_long_label(self):
        assert format_month_label(datetime(2026, 2, 1), MonthLabelStyle.LONG) == "2026年2月"

    def test_long_label_two_digit_month(self):
        assert format_month_label(datetime(2025, 12, 1), MonthLabelStyle.LONG) == "2025年12月"


class TestGroupEventsByMonth:
    def test_preserves_first_seen_month_order(self):
        events = [
            _event("a", "2026-03-02"),
            _event("b", "2026-03-20"),
            _event("c", "2026-04-01"),
            _event("d", "2026-05-11"),
        ]

        groups = group_events_by_month(events, MonthLabelStyle.SHORT)

        assert [g.month for g in groups] == ["2026-03", "2026-04", "2026-05"]
        assert [g.label for g in groups] == ["2026.03", "2026.04", "2026.05"]
        assert [e.id for e in groups[0].events] == ["a", "b"]

    def test_descending_input_keeps_descending_groups(self):
        events = [
            _event("a", "2026-01-28"),
            _event("b", "2026-01-05"),
            _event("c", "2025-12-24"),
        ]

        groups = group_events_by_month(events, MonthLabelStyle.LONG)

        assert [g.month for g in groups] == ["2026-01", "2025-12"]
        assert [g.label for g in groups] == ["2026年1月", "2025年12月"]
        assert [e.id for e in groups[0].events] == ["a", "b"]

    def test_each_event_in_exactly_one_matching_group(self):
        events = [
            _event("a", "2026-03-02"),
            _event("b", "2026-04-01T10:00:00+09:00"),
            _event("c", "2026-03-30"),
        ]

        groups = group_events_by_month(events, MonthLabelStyle.SHORT)

        placed = [(g.month, e.id) for g in groups for e in g.events]
        assert sorted(e for _, e in placed) == ["a", "b", "c"]
        for month, event_id in placed:
            event = next(e for e in events if e.id == event_id)
            assert event.date[:7] == month

    def test_skips_events_without_date(self):
        events = [_event("a", ""), _event("b", "2026-03-02")]

        groups = group_events_by_month(events, MonthLabelStyle.SHORT)

        assert len(groups) == 1
        assert [e.id for e in groups[0].events] == ["b"]

    def test_label_uses_wall_clock_month_of_offset_date(self):
        # 2026-03-01 00:30 +09:00 is still February in UTC; the label follows the key.
        jst = timezone(timedelta(hours=9))
        assert datetime(2026, 3, 1, 0, 30, tzinfo=jst).astimezone(UTC).month == 2

        groups = group_events_by_month(
            [_event("a", "2026-03-01T00:30:00+09:00")], MonthLabelStyle.SHORT
        )

        assert groups[0].month == "2026-03"
        assert groups[0].label == "2026.03"

    def test_unparseable_date_labels_from_month_key(self):
        groups = group_events_by_month([_event("a", "2026-03-xx")], MonthLabelStyle.LONG)
        assert groups[0].month == "2026-03"
        assert groups[0].label == "2026年3月"

    def test_empty_input(self):
        assert group_events_by_month([], MonthLabelStyle.SHORT) == []

    def test_groups_are_fresh_per_call(self):
        events = [_event("a", "2026-03-02")]
        first = group_events_by_month(events, MonthLabelStyle.SHORT)
        second = group_events_by_month(events, MonthLabelStyle.SHORT)
        first[0].events.clear()
        assert [e.id for e in second[0].events] == ["a"]


class TestSplitFutureEvents:
    def test_first_event_is_next_up(self):
        events = [
            _event("a", "2026-02-15"),
            _event("b", "2026-02-20"),
            _event("c", "2026-03-01"),
        ]

        schedule = split_future_events(events)

        assert schedule.next_up is not None
        assert schedule.next_up.id == "a"
        assert [g.month for g in schedule.monthly_events] == ["2026-02", "2026-03"]
        assert [e.id for e in schedule.monthly_events[0].events] == ["b"]

    def test_empty_events(self):
        schedule = split_future_events([])
        assert schedule.next_up is None
        assert schedule.monthly_events == []

    def test_dateless_first_event_still_becomes_next_up(self):
        events = [_event("pinned", ""), _event("b", "2026-02-20")]

        schedule = split_future_events(events)

        assert schedule.next_up is not None
        assert schedule.next_up.id == "pinned"
        assert [e.id for e in schedule.monthly_events[0].events] == ["b"]
