"""
Polling synchronization for an open group view.

There is no server push: a ``GroupSyncDriver`` keeps a ``GroupViewState``
approximately fresh with independent timers per collection and re-pulls the
affected collection right after every local mutation. The compose buffer is a
separate slice of state that pulls never touch.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Protocol

from groupwatch.client.config import ClientSettings, get_client_settings
from groupwatch.services.mentions import (
    MentionQuery,
    MentionTarget,
    apply_mention_target,
    filter_mention_targets,
    get_mention_query_state,
)

logger = logging.getLogger(__name__)

JSON = dict[str, Any]

MEMBERS = "members"
PICKS = "picks"
MESSAGES = "messages"
INVITES = "invites"
PENDING_INVITES = "pending_invites"


class GroupApi(Protocol):
    """The subset of ``GroupWatchApiClient`` the driver relies on."""

    async def list_members(self, group_id: uuid.UUID) -> list[JSON]: ...

    async def list_picks(self, group_id: uuid.UUID, sort: str = ...) -> list[JSON]: ...

    async def list_messages(self, group_id: uuid.UUID, limit: int | None = ...) -> list[JSON]: ...

    async def list_incoming_invites(self) -> list[JSON]: ...

    async def list_pending_invites(self, group_id: uuid.UUID) -> list[JSON]: ...

    async def send_message(
        self,
        group_id: uuid.UUID,
        body: str | None,
        *,
        shared_media: JSON | None = ...,
        reply_to_id: uuid.UUID | None = ...,
    ) -> JSON: ...

    async def add_pick(self, group_id: uuid.UUID, pick: JSON) -> JSON: ...

    async def vote_on_pick(self, group_id: uuid.UUID, pick_id: uuid.UUID, value: int) -> JSON: ...

    async def clear_vote(self, group_id: uuid.UUID, pick_id: uuid.UUID) -> JSON: ...

    async def mark_watched(self, group_id: uuid.UUID, pick_id: uuid.UUID) -> JSON: ...

    async def invite_member(self, group_id: uuid.UUID, user_id: uuid.UUID) -> JSON: ...

    async def respond_to_invite(self, invite_id: uuid.UUID, decision: str) -> JSON: ...

    async def toggle_reaction(
        self,
        group_id: uuid.UUID,
        message_id: uuid.UUID,
        value: str,
    ) -> JSON: ...


@dataclass(slots=True)
class ComposeBuffer:
    """Local-only draft state: text, cursor, mention query, staged attachment and reply target."""

    text: str = ""
    cursor: int = 0
    mention_query: MentionQuery | None = None
    attachment: JSON | None = None
    reply_to_id: uuid.UUID | None = None

    def edit(self, text: str, cursor: int | None = None) -> None:
        self.text = text
        self.move_cursor(len(text) if cursor is None else cursor)

    def move_cursor(self, cursor: int) -> None:
        self.cursor = max(0, min(cursor, len(self.text)))
        self.mention_query = get_mention_query_state(self.text, self.cursor)

    def suggestions(
        self,
        members: list[MentionTarget],
        exclude_user_id: uuid.UUID | None = None,
    ) -> list[MentionTarget]:
        if self.mention_query is None:
            return []
        return filter_mention_targets(members, self.mention_query.query, exclude_user_id)

    def apply_mention(self, target: MentionTarget) -> None:
        if self.mention_query is None:
            return
        applied = apply_mention_target(self.text, self.mention_query, target)
        self.edit(applied.text, applied.cursor)

    def stage_attachment(self, media: JSON | None) -> None:
        self.attachment = media

    def reply_to(self, message_id: uuid.UUID | None) -> None:
        self.reply_to_id = message_id

    @property
    def is_sendable(self) -> bool:
        return bool(self.text.strip()) or self.attachment is not None

    def clear(self) -> None:
        self.text = ""
        self.cursor = 0
        self.mention_query = None
        self.attachment = None
        self.reply_to_id = None

    def snapshot(self) -> ComposeBuffer:
        return replace(self)

    def discard_sent(self, sent: ComposeBuffer) -> None:
        """Drop only the parts of the draft that went out with ``sent``; later edits survive."""
        if self.text == sent.text:
            self.text = ""
            self.move_cursor(0)
        if self.attachment == sent.attachment:
            self.attachment = None
        if self.reply_to_id == sent.reply_to_id:
            self.reply_to_id = None


@dataclass(slots=True)
class GroupViewState:
    """Server-confirmed collections for one group plus per-collection pull errors."""

    group_id: uuid.UUID
    viewer_id: uuid.UUID
    members: list[JSON] = field(default_factory=list)
    picks: list[JSON] = field(default_factory=list)
    messages: list[JSON] = field(default_factory=list)
    incoming_invites: list[JSON] = field(default_factory=list)
    pending_invites: list[JSON] = field(default_factory=list)
    errors: dict[str, Exception] = field(default_factory=dict)
    pulled_at: dict[str, datetime] = field(default_factory=dict)

    @property
    def viewer_is_owner(self) -> bool:
        return any(
            member.get("role") == "owner" and str(member.get("user_id")) == str(self.viewer_id)
            for member in self.members
        )

    def mention_targets(self) -> list[MentionTarget]:
        return [
            MentionTarget(
                id=uuid.UUID(str(member["user_id"])),
                name=member.get("name") or "",
                username=member.get("username"),
            )
            for member in self.members
        ]


class PollingTimer:
    """Invoke an async callback every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        name: str,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
    ) -> None:
        self.name = name
        self.interval_seconds = interval_seconds
        self._callback = callback
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._task is not None:
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._run(), name=f"group-sync-{self.name}")
        logger.debug(
            "Polling timer scheduled",
            extra={"timer": self.name, "interval_seconds": self.interval_seconds},
        )

    async def stop(self) -> None:
        """Stop the loop and cancel a tick that is still in flight."""
        if self._task is None:
            return
        self._stop_event.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
            else:
                break

            try:
                await self._callback()
            except Exception:  # noqa: BLE001
                logger.exception("Polling tick failed", extra={"timer": self.name})


class GroupSyncDriver:
    """
    Per-view scheduler that owns the timers for one open group.

    ``open()`` pulls members, picks and messages concurrently; a failure in one
    pull is stored in ``state.errors`` and never aborts its siblings. Pulls of
    the same collection are serialized so a timer tick and a post-mutation
    re-pull cannot interleave their writes.

    ``close()`` may run at any point, including while ``open()`` is still
    waiting on its first pulls: in-flight pulls are cancelled and no timer
    outlives the view.
    """

    def __init__(
        self,
        api: GroupApi,
        group_id: uuid.UUID,
        viewer_id: uuid.UUID,
        *,
        settings: ClientSettings | None = None,
        pick_sort: str = "score",
    ) -> None:
        self.api = api
        self.settings = settings or get_client_settings()
        self.pick_sort = pick_sort
        self.state = GroupViewState(group_id=group_id, viewer_id=viewer_id)
        self.compose = ComposeBuffer()
        self._locks: dict[str, asyncio.Lock] = {
            name: asyncio.Lock() for name in (MEMBERS, PICKS, MESSAGES, INVITES, PENDING_INVITES)
        }
        self._timers: list[PollingTimer] = []
        self._pulls: set[asyncio.Task[None]] = set()
        self._opened = False
        self._closed = False

    @property
    def group_id(self) -> uuid.UUID:
        return self.state.group_id

    @property
    def timers(self) -> list[PollingTimer]:
        return list(self._timers)

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> GroupViewState:
        if self._opened:
            return self.state
        self._opened = True
        self._closed = False

        await self._tracked(self._initial_pull)
        if self._closed:
            logger.info("Group view closed while opening", extra={"group_id": str(self.group_id)})
            return self.state

        self._timers = [
            PollingTimer(MESSAGES, self.settings.messages_interval_seconds, self.refresh_messages),
            PollingTimer(PICKS, self.settings.picks_interval_seconds, self._refresh_picks_and_members),
            PollingTimer(INVITES, self.settings.invites_interval_seconds, self.refresh_invites),
        ]
        for timer in self._timers:
            timer.start()
        logger.info("Group view opened", extra={"group_id": str(self.group_id)})
        return self.state

    async def close(self) -> None:
        self._closed = True
        self._opened = False
        pulls, self._pulls = list(self._pulls), set()
        for task in pulls:
            task.cancel()
        timers, self._timers = self._timers, []
        await asyncio.gather(
            *pulls,
            *(timer.stop() for timer in timers),
            return_exceptions=True,
        )
        logger.info("Group view closed", extra={"group_id": str(self.group_id)})

    async def __aenter__(self) -> GroupSyncDriver:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _tracked(self, pull: Callable[[], Awaitable[None]]) -> None:
        """Run ``pull`` as a task that ``close()`` can cancel; a no-op once closed."""
        if self._closed:
            return
        task = asyncio.ensure_future(pull())
        self._pulls.add(task)
        task.add_done_callback(self._pulls.discard)
        try:
            await task
        except asyncio.CancelledError:
            # cancelled by close(); anything else is the caller's own cancellation
            if not (self._closed and task.cancelled()):
                raise

    # pulls

    async def _initial_pull(self) -> None:
        await asyncio.gather(
            self.refresh_members(),
            self.refresh_picks(),
            self.refresh_messages(),
            return_exceptions=True,
        )
        await self.refresh_invites()

    async def refresh_members(self) -> None:
        await self._pull(MEMBERS, lambda: self.api.list_members(self.group_id), "members")

    async def refresh_picks(self) -> None:
        await self._pull(PICKS, lambda: self.api.list_picks(self.group_id, self.pick_sort), "picks")

    async def refresh_messages(self) -> None:
        await self._pull(MESSAGES, lambda: self.api.list_messages(self.group_id), "messages")

    async def refresh_invites(self) -> None:
        await self._pull(INVITES, self.api.list_incoming_invites, "incoming_invites")
        if self.state.viewer_is_owner:
            await self._pull(
                PENDING_INVITES,
                lambda: self.api.list_pending_invites(self.group_id),
                "pending_invites",
            )

    async def _refresh_picks_and_members(self) -> None:
        await asyncio.gather(self.refresh_picks(), self.refresh_members(), return_exceptions=True)

    async def _pull(
        self,
        collection: str,
        fetch: Callable[[], Awaitable[list[JSON]]],
        attribute: str,
    ) -> None:
        async with self._locks[collection]:
            try:
                data = await fetch()
            except Exception as exc:  # noqa: BLE001
                self.state.errors[collection] = exc
                logger.warning(
                    "Group pull failed",
                    extra={"group_id": str(self.group_id), "collection": collection},
                    exc_info=True,
                )
                return
            setattr(self.state, attribute, data)
            self.state.errors.pop(collection, None)
            self.state.pulled_at[collection] = datetime.now(tz=timezone.utc)

    # mutations: each re-pulls only the collection it touched

    async def send_message(self) -> JSON:
        """
        Send the compose buffer as it is right now.

        On success only what was sent is discarded, so text typed, a reply
        target picked or an attachment staged while the request was in flight
        stays in the draft. A failed send leaves the buffer untouched.
        """
        sent = self.compose.snapshot()
        result = await self.api.send_message(
            self.group_id,
            sent.text if sent.text.strip() else None,
            shared_media=sent.attachment,
            reply_to_id=sent.reply_to_id,
        )
        self.compose.discard_sent(sent)
        await self._tracked(self.refresh_messages)
        return result

    async def toggle_reaction(self, message_id: uuid.UUID, value: str) -> JSON:
        result = await self.api.toggle_reaction(self.group_id, message_id, value)
        await self._tracked(self.refresh_messages)
        return result

    async def add_pick(self, pick: JSON) -> JSON:
        result = await self.api.add_pick(self.group_id, pick)
        await self._tracked(self.refresh_picks)
        return result

    async def vote(self, pick_id: uuid.UUID, value: int) -> JSON:
        result = await self.api.vote_on_pick(self.group_id, pick_id, value)
        await self._tracked(self.refresh_picks)
        return result

    async def clear_vote(self, pick_id: uuid.UUID) -> JSON:
        result = await self.api.clear_vote(self.group_id, pick_id)
        await self._tracked(self.refresh_picks)
        return result

    async def mark_watched(self, pick_id: uuid.UUID) -> JSON:
        result = await self.api.mark_watched(self.group_id, pick_id)
        await self._tracked(self.refresh_picks)
        return result

    async def invite_member(self, user_id: uuid.UUID) -> JSON:
        result = await self.api.invite_member(self.group_id, user_id)
        await self._tracked(self.refresh_invites)
        return result

    async def respond_to_invite(self, invite_id: uuid.UUID, decision: str) -> JSON:
        result = await self.api.respond_to_invite(invite_id, decision)
        await self._tracked(self.refresh_invites)
        if result.get("group_id") is not None and str(result["group_id"]) == str(self.group_id):
            await self._tracked(self.refresh_members)
        return result


__all__ = [
    "ComposeBuffer",
    "GroupApi",
    "GroupSyncDriver",
    "GroupViewState",
    "PollingTimer",
]
