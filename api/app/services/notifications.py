import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable

from app import repo
from app.config import NOTIFICATION_WORKERS

logger = logging.getLogger(__name__)

MATCH_CREATED = "match_created"

Scheduler = Callable[..., Any]

_executor = ThreadPoolExecutor(max_workers=max(1, NOTIFICATION_WORKERS), thread_name_prefix="notify")


def build_match_notification_key(match_id: str, user_id: str) -> str:
    return f"match:{match_id}:{user_id}"


def notify_match_created(match_id: str, user_ids: list[str]) -> int:
    """Write one "new match" notification per participant.

    Runs detached from the request that formed the match. Every failure is
    logged and dropped; the match itself is already committed.
    """
    written = 0
    for user_id in user_ids:
        try:
            created = repo.insert_notification_once(
                user_id=user_id,
                kind=MATCH_CREATED,
                title="It's a match!",
                body="You both want to swap. Start a conversation.",
                payload={"match_id": str(match_id)},
                idempotency_key=build_match_notification_key(match_id, user_id),
            )
        except Exception:
            logger.exception("[notify] match notification failed match_id=%s user_id=%s", match_id, user_id)
            continue
        if created:
            written += 1
    logger.info("[notify] match_id=%s notifications_written=%s", match_id, written)
    return written


def schedule_in_background(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
    future = _executor.submit(fn, *args, **kwargs)
    future.add_done_callback(_log_background_failure)


def _log_background_failure(future) -> None:
    exc = future.exception()
    if exc is not None:
        logger.error("[notify] background task failed: %r", exc)


def dispatch_match_created(match_id: str, user_ids: list[str], schedule: Scheduler | None = None) -> None:
    """Hand the notification write to ``schedule`` without waiting for it.

    ``schedule`` has the ``BackgroundTasks.add_task`` signature; the module
    thread pool is used when none is given.
    """
    scheduler = schedule or schedule_in_background
    try:
        scheduler(notify_match_created, str(match_id), [str(u) for u in user_ids])
    except Exception:
        logger.exception("[notify] could not schedule match notifications match_id=%s", match_id)


def shutdown_executor() -> None:
    """Stop the worker pool; queued notifications are abandoned, not awaited."""
    _executor.shutdown(wait=False)
    logger.info("[notify] worker pool shut down")
