"""
Mention handling for the group chat.

All functions here are pure: they operate on compose-buffer text, a cursor
position and the current member roster. A mention carries no delivery
guarantee and no link to the message row; it is resolved at render time from
the ``@handle`` text pattern against whoever is a member right now.
"""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass

HANDLE_MAX_LENGTH = 32
SUGGESTION_LIMIT = 6
FALLBACK_HANDLE = "member"

_HANDLE_CHAR = re.compile(r"[a-zA-Z0-9._-]")
_MENTION_TOKEN = re.compile(r"@[a-zA-Z0-9._-]{1,32}")
_OPENING_PUNCTUATION = frozenset("([{'\"`")


@dataclass(frozen=True, slots=True)
class MentionTarget:
    """A member that can be mentioned."""

    id: uuid.UUID
    name: str
    username: str | None = None

    @property
    def handle(self) -> str:
        return mention_handle(self)


@dataclass(frozen=True, slots=True)
class MentionQuery:
    """An in-progress ``@`` query: the span ``[start, end)`` and the lowercased query."""

    start: int
    end: int
    query: str


@dataclass(frozen=True, slots=True)
class MentionSegment:
    text: str
    is_mention: bool


@dataclass(frozen=True, slots=True)
class AppliedMention:
    text: str
    cursor: int


def _normalize_handle(raw: str) -> str:
    lowered = re.sub(r"\s+", "_", raw.lower())
    return re.sub(r"[^a-z0-9._-]", "", lowered)[:HANDLE_MAX_LENGTH]


def mention_handle(target: MentionTarget) -> str:
    """Handle used after ``@``: the username if usable, else the name, else ``member``."""
    preferred = _normalize_handle(target.username or "")
    if preferred:
        return preferred
    return _normalize_handle(target.name) or FALLBACK_HANDLE


def get_mention_query_state(text: str, cursor: int) -> MentionQuery | None:
    """
    Detect an ``@`` query ending at the cursor.

    Scans back from the cursor to the nearest ``@`` without crossing
    whitespace. The ``@`` has to open a word (start of text, whitespace or an
    opening bracket/quote before it), and everything typed after it must be
    handle characters. Evaluated on every cursor move, so moving out of the
    span cancels the suggestion state.
    """
    cursor = max(0, min(cursor, len(text)))
    start = cursor - 1
    while start >= 0 and text[start] != "@":
        if text[start].isspace():
            return None
        start -= 1
    if start < 0:
        return None

    if start > 0:
        before = text[start - 1]
        if not before.isspace() and before not in _OPENING_PUNCTUATION:
            return None

    token = text[start + 1 : cursor]
    if len(token) > HANDLE_MAX_LENGTH:
        return None
    if not all(_HANDLE_CHAR.fullmatch(char) for char in token):
        return None
    return MentionQuery(start=start, end=cursor, query=token.lower())


def filter_mention_targets(
    targets: Iterable[MentionTarget],
    query: str,
    exclude_user_id: uuid.UUID | None = None,
    limit: int = SUGGESTION_LIMIT,
) -> list[MentionTarget]:
    """
    Rank members for an ``@`` query.

    Handle prefix beats name prefix, which beats handle substring, which beats
    name substring; ties are broken by name. The composer is excluded and each
    member appears once.
    """
    needle = query.strip().lower()
    unique: dict[uuid.UUID, MentionTarget] = {}
    for target in targets:
        if target.id in unique or target.id == exclude_user_id:
            continue
        unique[target.id] = target

    scored: list[tuple[int, str, MentionTarget]] = []
    for target in unique.values():
        rank = _match_rank(target, needle)
        if rank is not None:
            scored.append((rank, target.name.casefold(), target))
    scored.sort(key=lambda entry: (entry[0], entry[1]))
    return [target for _, _, target in scored[: max(0, limit)]]


def _match_rank(target: MentionTarget, needle: str) -> int | None:
    if not needle:
        return 3
    handle = mention_handle(target)
    name = target.name.lower()
    if handle.startswith(needle):
        return 0
    if name.startswith(needle):
        return 1
    if needle in handle:
        return 2
    if needle in name:
        return 3
    return None


def apply_mention_target(text: str, query: MentionQuery, target: MentionTarget) -> AppliedMention:
    """
    Replace the query span with ``@handle`` followed by a space.

    Existing whitespace right after the span is reused instead of doubling it.
    The returned cursor sits immediately after that space.
    """
    before = text[: query.start]
    after = text[query.end :]
    token = f"@{mention_handle(target)}"
    separator = "" if after[:1].isspace() else " "
    return AppliedMention(
        text=f"{before}{token}{separator}{after}",
        cursor=len(before) + len(token) + 1,
    )


class MentionSegments(Sequence[MentionSegment]):
    """
    Lazy, restartable split of a message body into plain and mention spans.

    Each iteration re-scans the text, so it can be iterated any number of
    times. A token only counts as a mention when it names a current member
    (case-insensitive); anything else stays plain text and is merged with its
    neighbours.
    """

    def __init__(self, text: str, handles: Iterable[str]) -> None:
        self.text = text
        self.handles = frozenset(handle.lower() for handle in handles)
        self._materialized: list[MentionSegment] | None = None

    def __iter__(self) -> Iterator[MentionSegment]:
        return self._scan()

    def _scan(self) -> Iterator[MentionSegment]:
        if not self.text:
            yield MentionSegment(text="", is_mention=False)
            return

        plain_start = 0
        for match in _MENTION_TOKEN.finditer(self.text):
            index = match.start()
            if index > 0 and _HANDLE_CHAR.fullmatch(self.text[index - 1]):
                continue
            token_end = self._resolve_token_end(match)
            if token_end is None:
                continue
            if index > plain_start:
                yield MentionSegment(text=self.text[plain_start:index], is_mention=False)
            yield MentionSegment(text=self.text[index:token_end], is_mention=True)
            plain_start = token_end

        if plain_start < len(self.text):
            yield MentionSegment(text=self.text[plain_start:], is_mention=False)

    def _resolve_token_end(self, match: re.Match[str]) -> int | None:
        # "@bob." at the end of a sentence still mentions bob
        token = match.group(0)[1:]
        while token:
            if token.lower() in self.handles:
                return match.start() + 1 + len(token)
            if token[-1] not in "._-":
                return None
            token = token[:-1]
        return None

    def _segments(self) -> list[MentionSegment]:
        if self._materialized is None:
            # not list(self): list() asks __len__ for a size hint
            self._materialized = list(self._scan())
        return self._materialized

    def __len__(self) -> int:
        return len(self._segments())

    def __getitem__(self, index):  # type: ignore[no-untyped-def]
        return self._segments()[index]

    def __repr__(self) -> str:
        return f"MentionSegments({self.text!r})"


def split_mention_segments(text: str, members: Iterable[MentionTarget]) -> MentionSegments:
    """Split ``text`` for rendering against the current member roster."""
    return MentionSegments(text, (mention_handle(member) for member in members))


__all__ = [
    "AppliedMention",
    "HANDLE_MAX_LENGTH",
    "MentionQuery",
    "MentionSegment",
    "MentionSegments",
    "MentionTarget",
    "SUGGESTION_LIMIT",
    "apply_mention_target",
    "filter_mention_targets",
    "get_mention_query_state",
    "mention_handle",
    "split_mention_segments",
]
