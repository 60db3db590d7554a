"""Schedule service bound to one Notion database."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import httpx

from notion_schedule.config import ScheduleConfig, load_config
from notion_schedule.logging import bind_database, configure_logging
from notion_schedule.models import FutureSchedule, MonthGroup
from notion_schedule.notion import NotionClient
from notion_schedule.schedule import get_future_schedule, get_past_events_by_month


class ScheduleService:
    """Runs the schedule fetches against the configured database.

    The future and past fetches share no state and may be awaited
    concurrently.
    """

    def __init__(self, client: NotionClient, config: ScheduleConfig) -> None:
        self._client = client
        self._config = config

    @classmethod
    def from_config(
        cls,
        config: ScheduleConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> ScheduleService:
        return cls(NotionClient.from_config(config.notion, http_client=http_client), config)

    async def __aenter__(self) -> ScheduleService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _query(
        self,
        filter_: dict[str, Any],
        sorts: list[dict[str, Any]],
        page_size: int | None,
    ) -> list[dict[str, Any]]:
        return await self._client.query_database(
            self._config.notion.database_id,
            filter=filter_,
            sorts=sorts,
            page_size=page_size,
        )

    async def get_future_schedule(self, *, now: datetime | None = None) -> FutureSchedule:
        with bind_database(self._config.notion.database_id):
            return await get_future_schedule(
                self._query,
                now=now,
                properties=self._config.properties,
                published_value=self._config.published_value,
                page_size=self._config.future_page_size,
            )

    async def get_past_events_by_month(self, *, now: datetime | None = None) -> list[MonthGroup]:
        with bind_database(self._config.notion.database_id):
            return await get_past_events_by_month(
                self._query,
                now=now,
                properties=self._config.properties,
                published_value=self._config.published_value,
            )


def open_schedule_service(
    config_dir: Path,
    *,
    http_client: httpx.AsyncClient | None = None,
) -> ScheduleService:
    """Load ``schedule.toml`` from *config_dir*, apply its logging settings,
    and return a service for the configured database.

    Raises ``ConfigError`` when the configuration is missing or invalid.
    """
    config = load_config(config_dir)
    configure_logging(config.logging)
    return ScheduleService.from_config(config, http_client=http_client)
