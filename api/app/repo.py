import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator

from sqlalchemy import select, text, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.database import SessionLocal
from app.errors import ConstraintConflict, StoreUnavailable
from app.models import LIKE, ChatMessage, ChatRead, InterestEdge, Item, Match, UserAccount, UserNotification, new_id

logger = logging.getLogger(__name__)


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def normalize_categories(values: Any) -> list[str]:
    if not isinstance(values, (list, tuple, set)):
        return []
    out: list[str] = []
    for value in values:
        v = str(value or "").strip()
        if not v:
            continue
        if v not in out:
            out.append(v)
    return sorted(out)


def canonical_pair(user_a: str, user_b: str) -> tuple[str, str]:
    a, b = str(user_a), str(user_b)
    return (a, b) if a < b else (b, a)


def _as_dict(obj: Any) -> dict[str, Any]:
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


def _typed_sql(sql: str, model):
    # SQLite only decodes datetimes, booleans and JSON for typed result columns
    return text(sql).columns(**{column.name: column.type for column in model.__table__.columns})


@contextmanager
def _store_session() -> Iterator[Session]:
    try:
        with SessionLocal() as db:
            yield db
    except (OperationalError, PoolTimeoutError) as exc:
        logger.warning("[store] unavailable: %s", exc.__class__.__name__)
        raise StoreUnavailable("Store temporarily unavailable") from exc


def _upsert_insert(db: Session, table):
    if db.get_bind().dialect.name == "postgresql":
        return pg_insert(table)
    return sqlite_insert(table)


# Users and items


def create_user(
    display_name: str | None = None,
    username: str | None = None,
    preferences: dict[str, Any] | None = None,
    user_id: str | None = None,
    avatar_url: str | None = None,
    bio: str | None = None,
    city: str | None = None,
) -> dict[str, Any]:
    with _store_session() as db:
        user = UserAccount(
            username=username,
            display_name=display_name,
            avatar_url=avatar_url,
            bio=bio,
            city=city,
            preferences=dict(preferences or {}),
            created_at=_now_utc(),
        )
        if user_id:
            user.id = user_id
        db.add(user)
        db.flush()
        row = _as_dict(user)
        db.commit()
    return row


def get_user_by_id(user_id: str) -> dict[str, Any] | None:
    with _store_session() as db:
        row = db.execute(
            _typed_sql("SELECT * FROM user_account WHERE id=:id", UserAccount),
            {"id": str(user_id)},
        ).mappings().first()
        return dict(row) if row else None


def get_users_by_ids(user_ids: Iterable[str], limit: int | None = None) -> list[dict[str, Any]]:
    ids = sorted({str(u) for u in user_ids})
    if not ids:
        return []
    stmt = select(UserAccount).where(UserAccount.id.in_(ids)).order_by(UserAccount.id.asc())
    if limit:
        stmt = stmt.limit(limit)
    with _store_session() as db:
        return [_as_dict(u) for u in db.execute(stmt).scalars().all()]


def get_user_preferred_categories(user_id: str) -> list[str]:
    user = get_user_by_id(user_id)
    if not user:
        return []
    prefs = user.get("preferences") if isinstance(user.get("preferences"), dict) else {}
    return normalize_categories(prefs.get("preferred_categories"))


def update_user_preferences(user_id: str, changes: dict[str, Any]) -> dict[str, Any] | None:
    with _store_session() as db:
        user = db.get(UserAccount, str(user_id))
        if not user:
            return None
        current = dict(user.preferences) if isinstance(user.preferences, dict) else {}
        current.update(changes)
        # JSON columns only notice reassignment
        user.preferences = current
        row = _as_dict(user)
        db.commit()
    return row


def create_item(
    owner_id: str,
    title: str,
    category: str,
    is_available: bool = True,
    description: str | None = None,
    condition: str | None = None,
    created_at: datetime | None = None,
) -> dict[str, Any]:
    with _store_session() as db:
        item = Item(
            owner_id=str(owner_id),
            title=title,
            category=category,
            description=description,
            condition=condition,
            is_available=is_available,
            created_at=created_at or _now_utc(),
        )
        db.add(item)
        db.flush()
        row = _as_dict(item)
        db.commit()
    return row


def get_item_by_id(item_id: str) -> dict[str, Any] | None:
    with _store_session() as db:
        row = db.execute(
            _typed_sql("SELECT * FROM item WHERE id=:id", Item),
            {"id": str(item_id)},
        ).mappings().first()
        return dict(row) if row else None


def list_available_items(exclude_owner_ids: Iterable[str], categories: list[str] | None = None) -> list[dict[str, Any]]:
    excluded = sorted({str(u) for u in exclude_owner_ids})
    stmt = select(Item).where(Item.is_available.is_(True))
    if excluded:
        stmt = stmt.where(Item.owner_id.not_in(excluded))
    if categories:
        stmt = stmt.where(Item.category.in_(categories))
    stmt = stmt.order_by(Item.created_at.desc(), Item.id.asc())
    with _store_session() as db:
        return [_as_dict(i) for i in db.execute(stmt).scalars().all()]


def list_items_liked_by(from_user_id: str, owner_id: str) -> list[dict[str, Any]]:
    """Items owned by ``owner_id`` that ``from_user_id`` liked with an item attached."""
    with _store_session() as db:
        rows = db.execute(
            _typed_sql(
                """
                SELECT i.*
                FROM item i
                JOIN interest_edge e ON e.item_id = i.id
                WHERE e.from_user_id = :from_user_id
                  AND e.to_user_id = :owner_id
                  AND e.kind = :kind
                  AND i.owner_id = :owner_id
                ORDER BY i.created_at DESC, i.id ASC
                """,
                Item,
            ),
            {"from_user_id": str(from_user_id), "owner_id": str(owner_id), "kind": LIKE},
        ).mappings().all()
    return [dict(r) for r in rows]


# Interest edges


def insert_interest_edge(
    from_user_id: str,
    to_user_id: str,
    kind: str,
    item_id: str | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    try:
        with _store_session() as db:
            edge = InterestEdge(
                from_user_id=str(from_user_id),
                to_user_id=str(to_user_id),
                item_id=str(item_id) if item_id else None,
                kind=kind,
                created_at=now or _now_utc(),
            )
            db.add(edge)
            db.flush()
            row = _as_dict(edge)
            db.commit()
    except IntegrityError as exc:
        raise ConstraintConflict(f"interest_edge {kind} {from_user_id}->{to_user_id} rejected by a constraint") from exc
    return row


def get_interest_edge(from_user_id: str, to_user_id: str, kind: str) -> dict[str, Any] | None:
    with _store_session() as db:
        row = db.execute(
            _typed_sql(
                """
                SELECT * FROM interest_edge
                WHERE from_user_id=:from_user_id AND to_user_id=:to_user_id AND kind=:kind
                """,
                InterestEdge,
            ),
            {"from_user_id": str(from_user_id), "to_user_id": str(to_user_id), "kind": kind},
        ).mappings().first()
        return dict(row) if row else None


def list_interest_target_ids(from_user_id: str) -> set[str]:
    with _store_session() as db:
        rows = db.execute(
            text("SELECT DISTINCT to_user_id FROM interest_edge WHERE from_user_id=:from_user_id"),
            {"from_user_id": str(from_user_id)},
        ).scalars().all()
    return {str(r) for r in rows}


# Matches


def get_match_by_pair(user1_id: str, user2_id: str) -> dict[str, Any] | None:
    a, b = canonical_pair(user1_id, user2_id)
    with _store_session() as db:
        row = db.execute(
            _typed_sql("SELECT * FROM user_match WHERE user1_id=:a AND user2_id=:b", Match),
            {"a": a, "b": b},
        ).mappings().first()
        return dict(row) if row else None


def insert_match(user1_id: str, user2_id: str, now: datetime | None = None) -> dict[str, Any]:
    a, b = canonical_pair(user1_id, user2_id)
    try:
        with _store_session() as db:
            match = Match(user1_id=a, user2_id=b, is_active=True, created_at=now or _now_utc())
            db.add(match)
            db.flush()
            row = _as_dict(match)
            db.commit()
    except IntegrityError as exc:
        raise ConstraintConflict(f"user_match {a}:{b} already exists") from exc
    return row


def get_match_by_id(match_id: str) -> dict[str, Any] | None:
    with _store_session() as db:
        row = db.execute(
            _typed_sql("SELECT * FROM user_match WHERE id=:id", Match),
            {"id": str(match_id)},
        ).mappings().first()
        return dict(row) if row else None


def list_active_matches_for_user(user_id: str) -> list[dict[str, Any]]:
    with _store_session() as db:
        rows = db.execute(
            _typed_sql(
                """
                SELECT * FROM user_match
                WHERE is_active = :active AND (user1_id = :uid OR user2_id = :uid)
                ORDER BY created_at DESC, id ASC
                """,
                Match,
            ),
            {"active": True, "uid": str(user_id)},
        ).mappings().all()
    return [dict(r) for r in rows]


def deactivate_match(match_id: str) -> dict[str, Any] | None:
    with _store_session() as db:
        db.execute(update(Match).where(Match.id == str(match_id)).values(is_active=False))
        db.commit()
    return get_match_by_id(match_id)


# Chat messages and read receipts


def insert_chat_message(match_id: str, sender_id: str, content: str, now: datetime | None = None) -> dict[str, Any]:
    with _store_session() as db:
        message = ChatMessage(
            match_id=str(match_id),
            sender_id=str(sender_id),
            content=content,
            created_at=now or _now_utc(),
        )
        db.add(message)
        db.flush()
        row = _as_dict(message)
        db.commit()
    return row


def get_latest_message(match_id: str) -> dict[str, Any] | None:
    with _store_session() as db:
        row = db.execute(
            _typed_sql(
                """
                SELECT * FROM chat_message
                WHERE match_id=:match_id
                ORDER BY created_at DESC, id DESC
                LIMIT 1
                """,
                ChatMessage,
            ),
            {"match_id": str(match_id)},
        ).mappings().first()
        return dict(row) if row else None


def get_read_receipt(match_id: str, user_id: str) -> dict[str, Any] | None:
    with _store_session() as db:
        row = db.execute(
            _typed_sql("SELECT * FROM chat_read WHERE match_id=:match_id AND user_id=:user_id", ChatRead),
            {"match_id": str(match_id), "user_id": str(user_id)},
        ).mappings().first()
        return dict(row) if row else None


def upsert_read_receipt(match_id: str, user_id: str, read_at: datetime) -> dict[str, Any] | None:
    """Advance the (match, user) watermark; an older ``read_at`` leaves it untouched."""
    table = ChatRead.__table__
    with _store_session() as db:
        stmt = _upsert_insert(db, table).values(match_id=str(match_id), user_id=str(user_id), last_read_at=read_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.match_id, table.c.user_id],
            set_={"last_read_at": stmt.excluded.last_read_at},
            where=table.c.last_read_at < stmt.excluded.last_read_at,
        )
        db.execute(stmt)
        db.commit()
    return get_read_receipt(match_id, user_id)


# Notifications


def insert_notification_once(
    *,
    user_id: str,
    kind: str,
    title: str,
    body: str | None,
    payload: dict[str, Any],
    idempotency_key: str,
    now: datetime | None = None,
) -> bool:
    table = UserNotification.__table__
    with _store_session() as db:
        stmt = _upsert_insert(db, table).values(
            id=new_id(),
            user_id=str(user_id),
            kind=kind,
            title=title,
            body=body,
            payload=payload,
            is_read=False,
            idempotency_key=idempotency_key,
            created_at=now or _now_utc(),
        )
        stmt = stmt.on_conflict_do_nothing(index_elements=[table.c.idempotency_key])
        res = db.execute(stmt)
        db.commit()
        return bool(res.rowcount)


def list_notifications_for_user(user_id: str) -> list[dict[str, Any]]:
    stmt = (
        select(UserNotification)
        .where(UserNotification.user_id == str(user_id))
        .order_by(UserNotification.created_at.desc(), UserNotification.id.asc())
    )
    with _store_session() as db:
        return [_as_dict(n) for n in db.execute(stmt).scalars().all()]


def is_match_participant(match: dict[str, Any] | None, user_id: str) -> bool:
    if not match:
        return False
    return str(user_id) in {str(match["user1_id"]), str(match["user2_id"])}


def other_participant(match: dict[str, Any], user_id: str) -> str:
    a, b = str(match["user1_id"]), str(match["user2_id"])
    return b if str(user_id) == a else a
