"""Client for the external todo API."""

from todosync.client.api import (
    APIError,
    NotFoundError,
    RemoteItem,
    RemoteItemInput,
    RemoteItemPatch,
    RemoteList,
    RemoteListInput,
    RemoteListPatch,
    RemotePayloadError,
    RemoteTodoClient,
    TransientAPIError,
)
from todosync.client.retry import backoff_delays, retry_with_backoff

__all__ = [
    "APIError",
    "NotFoundError",
    "RemoteItem",
    "RemoteItemInput",
    "RemoteItemPatch",
    "RemoteList",
    "RemoteListInput",
    "RemoteListPatch",
    "RemotePayloadError",
    "RemoteTodoClient",
    "TransientAPIError",
    "backoff_delays",
    "retry_with_backoff",
]
