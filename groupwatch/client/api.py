"""Async HTTP client for the Group Watch API."""

from __future__ import annotations

import logging
import uuid
from typing import Any

import httpx

from groupwatch.client.config import ClientSettings
from groupwatch.core.errors import error_from_payload

logger = logging.getLogger(__name__)

JSON = dict[str, Any]


class GroupWatchApiClient:
    """
    Thin wrapper over ``httpx.AsyncClient``.

    Responses are returned as decoded JSON. Error responses are rebuilt into
    the same error classes the service raises, so callers can branch on
    ``NotFoundError`` or ``ConflictError`` rather than status codes.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> GroupWatchApiClient:
        token = settings.api_token.get_secret_value() if settings.api_token else None
        return cls(settings.api_base_url, token, timeout=settings.request_timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GroupWatchApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: JSON | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        response = await self._client.request(method, path, json=json, params=params)
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            error = error_from_payload(response.status_code, payload)
            logger.debug(
                "API request failed",
                extra={"path": path, "status_code": response.status_code, "code": error.code},
            )
            raise error
        if response.status_code == httpx.codes.NO_CONTENT or not response.content:
            return None
        return response.json()

    # groups and memberships

    async def list_groups(self) -> list[JSON]:
        return (await self._request("GET", "/groups"))["data"]

    async def create_group(self, name: str, description: str | None = None) -> JSON:
        return await self._request("POST", "/groups", json={"name": name, "description": description})

    async def rename_group(
        self,
        group_id: uuid.UUID,
        name: str,
        description: str | None = None,
    ) -> JSON:
        return await self._request(
            "PATCH",
            f"/groups/{group_id}",
            json={"name": name, "description": description},
        )

    async def delete_group(self, group_id: uuid.UUID) -> None:
        await self._request("DELETE", f"/groups/{group_id}")

    async def leave_group(self, group_id: uuid.UUID) -> None:
        await self._request("POST", f"/groups/{group_id}/leave")

    async def list_members(self, group_id: uuid.UUID) -> list[JSON]:
        return (await self._request("GET", f"/groups/{group_id}/members"))["data"]

    async def remove_member(self, group_id: uuid.UUID, member_id: uuid.UUID) -> None:
        await self._request("DELETE", f"/groups/{group_id}/members/{member_id}")

    # invites

    async def invite_member(self, group_id: uuid.UUID, user_id: uuid.UUID) -> JSON:
        return await self._request(
            "POST",
            f"/groups/{group_id}/invites",
            json={"user_id": str(user_id)},
        )

    async def list_pending_invites(self, group_id: uuid.UUID) -> list[JSON]:
        return (await self._request("GET", f"/groups/{group_id}/invites"))["data"]

    async def list_incoming_invites(self) -> list[JSON]:
        return (await self._request("GET", "/groups/invites/incoming"))["data"]

    async def respond_to_invite(self, invite_id: uuid.UUID, decision: str) -> JSON:
        return await self._request(
            "POST",
            f"/groups/invites/{invite_id}/respond",
            json={"decision": decision},
        )

    # picks

    async def list_picks(self, group_id: uuid.UUID, sort: str = "score") -> list[JSON]:
        return (await self._request("GET", f"/groups/{group_id}/picks", params={"sort": sort}))[
            "data"
        ]

    async def add_pick(self, group_id: uuid.UUID, pick: JSON) -> JSON:
        return await self._request("POST", f"/groups/{group_id}/picks", json=pick)

    async def vote_on_pick(self, group_id: uuid.UUID, pick_id: uuid.UUID, value: int) -> JSON:
        return await self._request(
            "PUT",
            f"/groups/{group_id}/picks/{pick_id}/vote",
            json={"value": value},
        )

    async def clear_vote(self, group_id: uuid.UUID, pick_id: uuid.UUID) -> JSON:
        return await self._request("DELETE", f"/groups/{group_id}/picks/{pick_id}/vote")

    async def mark_watched(self, group_id: uuid.UUID, pick_id: uuid.UUID) -> JSON:
        return await self._request("POST", f"/groups/{group_id}/picks/{pick_id}/watched")

    # chat

    async def list_messages(self, group_id: uuid.UUID, limit: int | None = None) -> list[JSON]:
        params = {"limit": limit} if limit is not None else None
        return (await self._request("GET", f"/groups/{group_id}/messages", params=params))["data"]

    async def send_message(
        self,
        group_id: uuid.UUID,
        body: str | None,
        *,
        shared_media: JSON | None = None,
        reply_to_id: uuid.UUID | None = None,
    ) -> JSON:
        return await self._request(
            "POST",
            f"/groups/{group_id}/messages",
            json={
                "body": body,
                "shared_media": shared_media,
                "reply_to_id": str(reply_to_id) if reply_to_id else None,
            },
        )

    async def toggle_reaction(
        self,
        group_id: uuid.UUID,
        message_id: uuid.UUID,
        value: str,
    ) -> JSON:
        return await self._request(
            "POST",
            f"/groups/{group_id}/messages/{message_id}/reactions",
            json={"value": value},
        )


__all__ = ["GroupWatchApiClient"]
