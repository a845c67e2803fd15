"""
Conversation summaries for a user's active matches.

Unread state is derived from a single read watermark per (match, user): a
conversation is unread when its newest message came from the other side after
the viewer's ``last_read_at``. Nothing about unread state is stored.

Reads degrade instead of failing: a store error drops or blanks the affected
entry, and an unreachable match list reads as no conversations.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from app import repo
from app.config import MESSAGE_MAX_LENGTH
from app.errors import InvalidOperation, NotAuthenticated, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass
class ConversationSummary:
    match_id: str
    other_user: dict[str, Any]
    last_message: str | None
    last_message_time: datetime
    has_unread: bool
    last_message_sender_id: str | None = None


def has_unread(message: dict[str, Any] | None, receipt: dict[str, Any] | None, viewer_id: str) -> bool:
    if not message:
        return False
    if str(message.get("sender_id")) == str(viewer_id):
        return False
    if not receipt or receipt.get("last_read_at") is None:
        return True
    return message["created_at"] > receipt["last_read_at"]


def _latest_message_or_none(match_id: str) -> dict[str, Any] | None:
    try:
        return repo.get_latest_message(match_id)
    except StoreUnavailable:
        logger.warning("[conversations] last message unavailable match_id=%s", match_id)
        return None


def _other_user_or_none(match: dict[str, Any], viewer_id: str) -> dict[str, Any] | None:
    other_id = repo.other_participant(match, viewer_id)
    try:
        other = repo.get_user_by_id(other_id)
    except StoreUnavailable:
        logger.warning("[conversations] skipping match_id=%s, other user %s unavailable", match["id"], other_id)
        return None
    if other is None:
        logger.info("[conversations] skipping match_id=%s, other user %s missing", match["id"], other_id)
    return other


def _active_matches_or_empty(viewer_id: str) -> list[dict[str, Any]]:
    try:
        return repo.list_active_matches_for_user(viewer_id)
    except StoreUnavailable:
        logger.warning("[conversations] matches unavailable user_id=%s", viewer_id)
        return []


def _summarize(match: dict[str, Any], viewer_id: str) -> ConversationSummary | None:
    other = _other_user_or_none(match, viewer_id)
    if other is None:
        return None

    message = _latest_message_or_none(str(match["id"]))
    unread = False
    if message:
        try:
            receipt = repo.get_read_receipt(str(match["id"]), viewer_id)
            unread = has_unread(message, receipt, viewer_id)
        except StoreUnavailable:
            logger.warning("[conversations] read receipt unavailable match_id=%s", match["id"])

    return ConversationSummary(
        match_id=str(match["id"]),
        other_user=other,
        last_message=message["content"] if message else None,
        last_message_time=message["created_at"] if message else match["created_at"],
        has_unread=unread,
        last_message_sender_id=str(message["sender_id"]) if message else None,
    )


def list_conversations(viewer_id: str | None) -> list[ConversationSummary]:
    if not viewer_id:
        return []
    viewer = str(viewer_id)
    chats: list[ConversationSummary] = []
    for match in _active_matches_or_empty(viewer):
        summary = _summarize(match, viewer)
        if summary is not None:
            chats.append(summary)
    chats.sort(key=lambda c: c.match_id)
    chats.sort(key=lambda c: c.last_message_time, reverse=True)
    return chats


def count_unread_conversations(viewer_id: str | None) -> int:
    return sum(1 for c in list_conversations(viewer_id) if c.has_unread)


def list_matches(viewer_id: str | None) -> list[dict[str, Any]]:
    if not viewer_id:
        return []
    viewer = str(viewer_id)
    out: list[dict[str, Any]] = []
    for match in _active_matches_or_empty(viewer):
        other = _other_user_or_none(match, viewer)
        if other is None:
            continue
        out.append({"match_id": str(match["id"]), "other_user": other, "matched_at": match["created_at"]})
    return out


def _require_participant(viewer_id: str | None, match_id: str) -> dict[str, Any]:
    if not viewer_id:
        raise NotAuthenticated("Authentication required")
    match = repo.get_match_by_id(match_id)
    if not repo.is_match_participant(match, viewer_id):
        raise NotFound("Conversation not found")
    return match


def mark_conversation_read(viewer_id: str | None, match_id: str, now: datetime | None = None) -> dict[str, Any]:
    _require_participant(viewer_id, match_id)
    read_at = now or datetime.now(timezone.utc)
    receipt = repo.upsert_read_receipt(str(match_id), str(viewer_id), read_at)
    return receipt or {"match_id": str(match_id), "user_id": str(viewer_id), "last_read_at": read_at}


def post_message(viewer_id: str | None, match_id: str, content: str, now: datetime | None = None) -> dict[str, Any]:
    match = _require_participant(viewer_id, match_id)
    if not match.get("is_active"):
        raise NotFound("Conversation not found")
    body = str(content or "").strip()
    if not body:
        raise InvalidOperation("Message body required")
    if len(body) > MESSAGE_MAX_LENGTH:
        raise InvalidOperation("Message too long")
    return repo.insert_chat_message(str(match_id), str(viewer_id), body, now=now)


def deactivate_match(viewer_id: str | None, match_id: str) -> dict[str, Any]:
    match = _require_participant(viewer_id, match_id)
    if not match.get("is_active"):
        return match
    logger.info("[conversations] match_id=%s deactivated by user_id=%s", match_id, viewer_id)
    return repo.deactivate_match(str(match_id)) or match
