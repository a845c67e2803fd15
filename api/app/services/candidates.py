import logging
from dataclasses import dataclass, field
from typing import Any

from app import repo
from app.config import CANDIDATE_USER_LIMIT
from app.errors import NotAuthenticated, NotFound, StoreUnavailable

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    user: dict[str, Any]
    items: list[dict[str, Any]] = field(default_factory=list)


def build_exclusion_set(viewer_id: str) -> set[str]:
    return {str(viewer_id)} | repo.list_interest_target_ids(viewer_id)


def group_items_by_owner(items: list[dict[str, Any]]) -> dict[str, list[dict[str, Any]]]:
    grouped: dict[str, list[dict[str, Any]]] = {}
    for item in items:
        owner = str(item.get("owner_id") or "")
        if not owner:
            continue
        grouped.setdefault(owner, []).append(item)
    for owner_items in grouped.values():
        owner_items.sort(key=lambda i: str(i["id"]))
        owner_items.sort(key=lambda i: i["created_at"], reverse=True)
    return grouped


def _owner_order(grouped: dict[str, list[dict[str, Any]]]) -> list[str]:
    owners = sorted(grouped)
    # stable sort keeps owner id order among equal newest-item timestamps
    owners.sort(key=lambda o: grouped[o][0]["created_at"], reverse=True)
    return owners


def _collect_candidates(viewer: str, limit: int) -> list[Candidate]:
    excluded = build_exclusion_set(viewer)
    categories = repo.get_user_preferred_categories(viewer)
    items = repo.list_available_items(excluded, categories=categories or None)
    if not items:
        return []

    grouped = group_items_by_owner(items)
    owners = [o for o in _owner_order(grouped) if o not in excluded][: max(0, int(limit))]
    profiles = {str(u["id"]): u for u in repo.get_users_by_ids(owners)}

    out: list[Candidate] = []
    for owner in owners:
        profile = profiles.get(owner)
        if profile is None:
            continue
        out.append(Candidate(user=profile, items=grouped[owner]))
    logger.debug("[candidates] viewer=%s categories=%s candidates=%s", viewer, categories, len(out))
    return out


def list_candidates(viewer_id: str | None, limit: int = CANDIDATE_USER_LIMIT) -> list[Candidate]:
    """Users worth showing to ``viewer_id`` together with their qualifying items.

    This is a filter: users already liked or passed are excluded, and when the
    viewer has preferred categories only items in those categories qualify.
    An unavailable store yields an empty list.
    """
    if not viewer_id:
        return []
    try:
        return _collect_candidates(str(viewer_id), limit)
    except StoreUnavailable:
        logger.warning("[candidates] store unavailable, returning no candidates viewer=%s", viewer_id)
        return []


def update_preferred_categories(viewer_id: str | None, categories: list[str]) -> list[str]:
    if not viewer_id:
        raise NotAuthenticated("Authentication required")
    normalized = repo.normalize_categories(categories)
    row = repo.update_user_preferences(str(viewer_id), {"preferred_categories": normalized})
    if row is None:
        raise NotFound("User not found")
    return normalized
