"""Shared fixtures for schedule tests: Notion page builders and fake queries."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import pytest

from notion_schedule.notion import NotionError


def make_page(
    page_id: str,
    *,
    title: str | None = None,
    start: str | None = None,
    end: str | None = None,
    category: str | None = None,
    visibility: str | None = "公開",
) -> dict[str, Any]:
    """Build a Notion page dict shaped like the schedule database rows."""
    properties: dict[str, Any] = {}
    if title is not None:
        properties["名前"] = {
            "id": "title",
            "type": "title",
            "title": [
                {
                    "type": "text",
                    "text": {"content": title, "link": None},
                    "plain_text": title,
                }
            ],
        }
    if start is not None:
        properties["日付"] = {
            "id": "date",
            "type": "date",
            "date": {"start": start, "end": end, "time_zone": None},
        }
    if category is not None:
        properties["種類"] = {
            "id": "kind",
            "type": "select",
            "select": {"id": "opt", "name": category, "color": "blue"},
        }
    if visibility is not None:
        properties["Web公開"] = {
            "id": "pub",
            "type": "select",
            "select": {"id": "pub-opt", "name": visibility, "color": "green"},
        }
    return {"object": "page", "id": page_id, "properties": properties}


@dataclass
class FakeQuery:
    """Async query stand-in that records calls and replays scripted outcomes.

    ``outcomes`` is consumed in order; each entry is either a list of pages to
    return or an exception to raise.  Once exhausted, the last outcome repeats.
    """

    outcomes: list[list[dict[str, Any]] | Exception]
    calls: list[dict[str, Any]] = field(default_factory=list)

    async def __call__(
        self,
        filter_: dict[str, Any],
        sorts: list[dict[str, Any]],
        page_size: int | None,
    ) -> list[dict[str, Any]]:
        self.calls.append({"filter": filter_, "sorts": sorts, "page_size": page_size})
        index = min(len(self.calls) - 1, len(self.outcomes) - 1)
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return list(outcome)


@pytest.fixture
def page_factory() -> Callable[..., dict[str, Any]]:
    return make_page


@pytest.fixture
def fake_query_factory() -> Callable[..., FakeQuery]:
    def _factory(*outcomes: list[dict[str, Any]] | Exception) -> FakeQuery:
        return FakeQuery(outcomes=list(outcomes) or [[]])

    return _factory


@pytest.fixture
def failing_query(fake_query_factory) -> FakeQuery:
    return fake_query_factory(NotionError("network down"))
