"""Minimal async Notion API client used by the schedule data layer.

Only database queries are supported.  Results are returned as raw page
dicts; decoding into typed records happens in ``notion_schedule.records``.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import quote

import httpx

from notion_schedule.config import (
    DEFAULT_NOTION_API_BASE_URL,
    DEFAULT_NOTION_VERSION,
    DEFAULT_TIMEOUT_S,
    MAX_PAGE_SIZE,
    NotionConfig,
)

logger = logging.getLogger(__name__)

NOTION_VALIDATION_ERROR_CODE = "validation_error"

# Notion reports filters/sorts on unknown columns as a 400 validation_error
# whose message names the property.
_MISSING_PROPERTY_PATTERN = re.compile(
    r"(?i)(could not find (?:sort )?property|property .* does not exist)"
)


class NotionError(RuntimeError):
    """Base error raised by the Notion client."""


class NotionRequestError(NotionError):
    """Raised when the Notion API answers with a non-2xx status."""

    def __init__(self, *, status_code: int, message: str, code: str | None = None) -> None:
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"Notion API request failed ({status_code}): {message}")


class NotionSchemaMismatchError(NotionRequestError):
    """Raised when a query references a property the database does not have."""


def _safe_notion_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message.strip():
            return " ".join(message.split())[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return "Request failed without an error payload"


def _notion_error_code(response: httpx.Response) -> str | None:
    try:
        payload = response.json()
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    code = payload.get("code")
    return code if isinstance(code, str) else None


def _build_request_error(response: httpx.Response) -> NotionRequestError:
    message = _safe_notion_error_message(response)
    code = _notion_error_code(response)
    if (
        response.status_code == 400
        and code == NOTION_VALIDATION_ERROR_CODE
        and _MISSING_PROPERTY_PATTERN.search(message)
    ):
        return NotionSchemaMismatchError(
            status_code=response.status_code, message=message, code=code
        )
    return NotionRequestError(status_code=response.status_code, message=message, code=code)


def extract_plain_text(rich_text: Any) -> str:
    """Concatenate the plain text of a Notion rich-text array.

    Items without ``plain_text`` fall back to ``text.content``.  Anything that
    is not a list yields an empty string.
    """
    if not isinstance(rich_text, list):
        return ""

    parts: list[str] = []
    for item in rich_text:
        if not isinstance(item, dict):
            continue
        plain = item.get("plain_text")
        if isinstance(plain, str):
            parts.append(plain)
            continue
        text = item.get("text")
        if isinstance(text, dict) and isinstance(text.get("content"), str):
            parts.append(text["content"])
    return "".join(parts)


class NotionClient:
    """Bearer-token Notion client with a single ``query_database`` operation."""

    def __init__(
        self,
        token: str,
        *,
        api_base_url: str = DEFAULT_NOTION_API_BASE_URL,
        notion_version: str = DEFAULT_NOTION_VERSION,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not token.strip():
            raise ValueError("token must be a non-empty string")
        self._token = token.strip()
        self._api_base_url = api_base_url.rstrip("/")
        self._notion_version = notion_version
        self._owns_http_client = http_client is None
        self._http_client = http_client or httpx.AsyncClient(timeout=timeout_s)

    @classmethod
    def from_config(
        cls,
        config: NotionConfig,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> NotionClient:
        return cls(
            config.token,
            api_base_url=config.api_base_url,
            notion_version=config.notion_version,
            timeout_s=config.timeout_s,
            http_client=http_client,
        )

    async def __aenter__(self) -> NotionClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client:
            await self._http_client.aclose()

    async def query_database(
        self,
        database_id: str,
        *,
        filter: dict[str, Any] | None = None,
        sorts: list[dict[str, Any]] | None = None,
        page_size: int | None = None,
    ) -> list[dict[str, Any]]:
        """Run one database query and return the first page of results.

        Pages beyond the first are never requested; callers that need more
        results must narrow their filter.
        """
        normalized_database_id = database_id.strip()
        if not normalized_database_id:
            raise ValueError("database_id must be a non-empty string")

        body: dict[str, Any] = {}
        if filter is not None:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        if page_size is not None:
            body["page_size"] = max(1, min(page_size, MAX_PAGE_SIZE))

        payload = await self._request_json(
            "POST",
            f"/databases/{quote(normalized_database_id, safe='')}/query",
            json_body=body,
        )
        results = payload.get("results")
        if not isinstance(results, list):
            raise NotionError("Notion database query response missing results array")

        if payload.get("has_more"):
            logger.debug(
                "Notion query for database %s truncated at %d results",
                normalized_database_id,
                len(results),
            )
        return [item for item in results if isinstance(item, dict)]

    async def _request_json(
        self,
        method: str,
        path: str,
        *,
        json_body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self._api_base_url}{path}"
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Notion-Version": self._notion_version,
            "Accept": "application/json",
        }
        try:
            response = await self._http_client.request(
                method,
                url,
                json=json_body,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise NotionError(f"Notion request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            raise _build_request_error(response)

        try:
            payload = response.json()
        except ValueError as exc:
            raise NotionError("Notion API returned invalid JSON for a successful response") from exc

        if not isinstance(payload, dict):
            raise NotionError("Notion API returned an unexpected JSON payload shape")
        return payload
