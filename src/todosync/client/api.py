"""HTTP client for the external todo API.

This module provides:
- RemoteTodoClient: HTTP client for the external service, with retry
- RemoteList, RemoteItem: Typed views of the external schema
- RemoteListInput, RemoteItemInput, RemoteListPatch, RemoteItemPatch: Request bodies
- APIError and subclasses: NotFoundError is distinguishable from other failures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import httpx

from todosync.client.retry import retry_with_backoff
from todosync.core.config import RemoteApiConfig
from todosync.core.types import as_utc

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(APIError):
    """Resource not found."""


class TransientAPIError(APIError):
    """Network failure, timeout, throttling or server-side error (retryable)."""


class RemotePayloadError(APIError):
    """Response body could not be parsed."""


def _parse_datetime(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp; unparseable values become None."""
    if not value:
        return None
    try:
        return as_utc(datetime.fromisoformat(str(value)))
    except ValueError:
        logger.warning("Ignoring unparseable remote timestamp %r", value)
        return None


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass
class RemoteItem:
    """Todo item as returned by the external API."""

    id: str | None
    description: str | None = None
    completed: bool = False
    source_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Any) -> RemoteItem:
        """Create from API response dictionary.

        A non-object entry becomes an id-less item, which the sync engine
        reports as malformed.
        """
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed remote item entry %r", data)
            return cls(id=None)
        return cls(
            id=_optional_str(data.get("id")),
            description=_optional_str(data.get("description")),
            completed=bool(data.get("completed", False)),
            source_id=_optional_str(data.get("source_id")),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
        )


@dataclass
class RemoteList:
    """Todo list as returned by the external API, with its items."""

    id: str | None
    name: str | None = None
    source_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    items: list[RemoteItem] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> RemoteList:
        """Create from API response dictionary.

        A non-object entry becomes an id-less list, which the sync engine
        reports as malformed.
        """
        if not isinstance(data, dict):
            logger.warning("Ignoring malformed remote list entry %r", data)
            return cls(id=None)
        items = data.get("items") or []
        if not isinstance(items, list):
            logger.warning("Remote list %s has a non-array items field", data.get("id"))
            items = [None]
        return cls(
            id=_optional_str(data.get("id")),
            name=_optional_str(data.get("name")),
            source_id=_optional_str(data.get("source_id")),
            created_at=_parse_datetime(data.get("created_at")),
            updated_at=_parse_datetime(data.get("updated_at")),
            items=[RemoteItem.from_dict(i) for i in items],
        )


@dataclass
class RemoteItemInput:
    """Item payload inside a list creation request."""

    description: str
    completed: bool = False
    source_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "description": self.description,
            "completed": self.completed,
        }


@dataclass
class RemoteListInput:
    """Request body for list creation (list and all its items)."""

    name: str
    source_id: str | None = None
    items: list[RemoteItemInput] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_id": self.source_id,
            "name": self.name,
            "items": [i.to_dict() for i in self.items],
        }


@dataclass
class RemoteListPatch:
    """Request body for list update."""

    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name}


@dataclass
class RemoteItemPatch:
    """Request body for item update."""

    description: str
    completed: bool

    def to_dict(self) -> dict[str, Any]:
        return {"description": self.description, "completed": self.completed}


class RemoteTodoClient:
    """HTTP client for the external todo API.

    Every call retries transient failures (transport errors, timeouts,
    429 and 5xx responses) with exponential backoff. 404 responses raise
    NotFoundError and are never retried.
    """

    def __init__(
        self,
        config: RemoteApiConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: External API configuration.
            transport: Optional httpx transport (used by tests).
        """
        self._config = config
        self._client = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> RemoteTodoClient:
        """Context manager entry."""
        return self

    def __exit__(self, *args: object) -> None:
        """Context manager exit."""
        self.close()

    def _handle_response(self, response: httpx.Response) -> httpx.Response:
        """Handle API response and raise appropriate exceptions."""
        status = response.status_code
        if status == 404:
            raise NotFoundError(f"Resource not found: {response.request.url.path}", 404)
        if status == 429 or status >= 500:
            raise TransientAPIError(f"Remote API returned {status}", status)
        if status >= 400:
            raise APIError(f"Remote API returned {status}: {_detail(response)}", status)
        return response

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request with retry on transient failures."""

        def send() -> httpx.Response:
            try:
                response = self._client.request(method, url, **kwargs)
            except httpx.TransportError as e:
                raise TransientAPIError(f"{method} {url} failed: {e}") from e
            return self._handle_response(response)

        return retry_with_backoff(
            send,
            max_retries=self._config.retry_count,
            initial_backoff=self._config.retry_delay,
            retryable_exceptions=(TransientAPIError,),
        )

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RemotePayloadError(
                "Failed to parse external API response", response.status_code
            ) from e

    # === List operations ===

    def list_all(self) -> list[RemoteList]:
        """Fetch all lists with their items.

        Returns:
            Lists in the order returned by the remote API.
        """
        logger.info("Fetching all todo lists from external API")
        data = self._json(self._request("GET", "/todolists"))
        if not isinstance(data, list):
            raise RemotePayloadError("Expected a JSON array of todo lists")
        lists = [RemoteList.from_dict(d) for d in data]
        logger.info("Fetched %d todo lists from external API", len(lists))
        return lists

    def create(self, payload: RemoteListInput) -> RemoteList:
        """Create a list (with its items) on the remote side.

        Returns:
            The created list, items in request order.
        """
        response = self._request("POST", "/todolists", json=payload.to_dict())
        return RemoteList.from_dict(self._json(response))

    def update(self, remote_list_id: str, patch: RemoteListPatch) -> RemoteList:
        """Update a list.

        Raises:
            NotFoundError: If the list does not exist remotely.
        """
        response = self._request(
            "PATCH", f"/todolists/{remote_list_id}", json=patch.to_dict()
        )
        return RemoteList.from_dict(self._json(response))

    def delete(self, remote_list_id: str) -> None:
        """Delete a list.

        Raises:
            NotFoundError: If the list does not exist remotely.
        """
        self._request("DELETE", f"/todolists/{remote_list_id}")

    # === Item operations ===

    def update_item(
        self,
        remote_list_id: str,
        remote_item_id: str,
        patch: RemoteItemPatch,
    ) -> RemoteItem:
        """Update an item.

        Raises:
            NotFoundError: If the list or item does not exist remotely.
        """
        response = self._request(
            "PATCH",
            f"/todolists/{remote_list_id}/todoitems/{remote_item_id}",
            json=patch.to_dict(),
        )
        return RemoteItem.from_dict(self._json(response))

    def delete_item(self, remote_list_id: str, remote_item_id: str) -> None:
        """Delete an item.

        Raises:
            NotFoundError: If the list or item does not exist remotely.
        """
        self._request("DELETE", f"/todolists/{remote_list_id}/todoitems/{remote_item_id}")


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or "Unknown error"
    if isinstance(body, dict):
        return str(body.get("detail", body))
    return str(body)
