import logging
from datetime import datetime
from typing import Any

from app import repo
from app.errors import ConstraintConflict, InvalidOperation, NotAuthenticated
from app.models import LIKE, PASS
from app.services.match_formation import MatchOutcome, form_match
from app.services.notifications import Scheduler, dispatch_match_created

logger = logging.getLogger(__name__)


def _check_actor(viewer_id: str | None, target_id: str) -> str:
    if not viewer_id:
        raise NotAuthenticated("Authentication required")
    target = str(target_id or "").strip()
    if not target:
        raise InvalidOperation("Target user required")
    if str(viewer_id) == target:
        raise InvalidOperation("You cannot like or pass yourself", reason="self_target")
    return target


def _check_item(item_id: str | None, target_id: str) -> str | None:
    item = str(item_id or "").strip()
    if not item:
        return None
    row = repo.get_item_by_id(item)
    if row is None or str(row["owner_id"]) != target_id:
        raise InvalidOperation("Item does not belong to the liked user", reason="item_not_owned_by_target")
    return item


def _record_edge(viewer_id: str, target_id: str, kind: str, item_id: str | None = None, now: datetime | None = None) -> bool:
    """Insert the edge; return False when it was already recorded."""
    try:
        repo.insert_interest_edge(viewer_id, target_id, kind, item_id=item_id, now=now)
        return True
    except ConstraintConflict as exc:
        if repo.get_interest_edge(viewer_id, target_id, kind) is None:
            logger.warning("[interest] %s %s->%s rejected: %s", kind, viewer_id, target_id, exc.detail)
            raise InvalidOperation("Interest could not be recorded", reason="constraint_rejected") from exc
        logger.debug("[interest] %s %s->%s already recorded", kind, viewer_id, target_id)
        return False


def record_like(
    viewer_id: str | None,
    target_id: str,
    item_id: str | None = None,
    schedule: Scheduler | None = None,
    now: datetime | None = None,
) -> MatchOutcome:
    target = _check_actor(viewer_id, target_id)
    if repo.get_user_by_id(target) is None:
        logger.warning("[interest] like target missing viewer=%s target=%s", viewer_id, target)
        return MatchOutcome(matched=False)

    item = _check_item(item_id, target)
    _record_edge(str(viewer_id), target, LIKE, item_id=item, now=now)
    outcome = form_match(str(viewer_id), target, now=now)
    if outcome.created and outcome.match_id:
        dispatch_match_created(outcome.match_id, [str(viewer_id), target], schedule=schedule)
    return outcome


def record_pass(viewer_id: str | None, target_id: str, now: datetime | None = None) -> dict[str, Any]:
    target = _check_actor(viewer_id, target_id)
    if repo.get_user_by_id(target) is None:
        logger.warning("[interest] pass target missing viewer=%s target=%s", viewer_id, target)
        return {"ok": True}
    _record_edge(str(viewer_id), target, PASS, now=now)
    return {"ok": True}
