import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app import repo
from app.errors import ConstraintConflict, StoreUnavailable
from app.models import LIKE

logger = logging.getLogger(__name__)


@dataclass
class MatchOutcome:
    matched: bool
    match_id: str | None = None
    matched_user: dict[str, Any] | None = None
    created: bool = False


def _insert_or_fetch_match(user_a: str, user_b: str, now: datetime | None = None) -> tuple[dict[str, Any], bool]:
    """Return the pair's match row and whether this call inserted it.

    A unique violation means a concurrent writer won the insert; its row is
    fetched and returned instead.
    """
    try:
        return repo.insert_match(user_a, user_b, now=now), True
    except ConstraintConflict:
        winner = repo.get_match_by_pair(user_a, user_b)
        if winner is None:
            logger.error("[match] insert conflict but no row for pair %s", repo.canonical_pair(user_a, user_b))
            raise StoreUnavailable("Match row not visible after conflict")
        logger.info("[match] lost insert race, reusing match_id=%s", winner["id"])
        return winner, False


def form_match(viewer_id: str, target_id: str, now: datetime | None = None) -> MatchOutcome:
    """Create the pair's match if ``target_id`` already likes ``viewer_id``."""
    reciprocal = repo.get_interest_edge(target_id, viewer_id, LIKE)
    if not reciprocal:
        return MatchOutcome(matched=False)

    match = repo.get_match_by_pair(viewer_id, target_id)
    created = False
    if match is None:
        match, created = _insert_or_fetch_match(viewer_id, target_id, now=now)

    if not match.get("is_active"):
        logger.info("[match] pair %s has a deactivated match_id=%s", repo.canonical_pair(viewer_id, target_id), match["id"])
        return MatchOutcome(matched=False, match_id=None)

    matched_user = repo.get_user_by_id(target_id)
    if created:
        logger.info("[match] created match_id=%s users=%s", match["id"], repo.canonical_pair(viewer_id, target_id))
    return MatchOutcome(matched=True, match_id=str(match["id"]), matched_user=matched_user, created=created)
