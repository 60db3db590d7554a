"""Notion-backed schedule data layer: future/past events grouped by month."""

from notion_schedule.config import ConfigError, ScheduleConfig, load_config
from notion_schedule.models import FutureSchedule, MonthGroup, MonthLabelStyle, ScheduleEvent
from notion_schedule.notion import (
    NotionClient,
    NotionError,
    NotionRequestError,
    NotionSchemaMismatchError,
)
from notion_schedule.schedule import (
    get_future_schedule,
    get_past_events_by_month,
    group_events_by_month,
    parse_schedule_event,
    query_with_fallback,
)
from notion_schedule.service import ScheduleService, open_schedule_service

__all__ = [
    "ConfigError",
    "FutureSchedule",
    "MonthGroup",
    "MonthLabelStyle",
    "NotionClient",
    "NotionError",
    "NotionRequestError",
    "NotionSchemaMismatchError",
    "ScheduleConfig",
    "ScheduleEvent",
    "ScheduleService",
    "get_future_schedule",
    "get_past_events_by_month",
    "group_events_by_month",
    "load_config",
    "open_schedule_service",
    "parse_schedule_event",
    "query_with_fallback",
]
