import uuid
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from .database import Base

JSONDocument = JSON().with_variant(JSONB(), "postgresql")

LIKE = "like"
PASS = "pass"


def new_id() -> str:
    return str(uuid.uuid4())


class UserAccount(Base):
    __tablename__ = "user_account"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String, nullable=True)
    display_name = Column(String, nullable=True)
    avatar_url = Column(String, nullable=True)
    bio = Column(Text, nullable=True)
    city = Column(String, nullable=True)
    preferences = Column(JSONDocument, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False)


class Item(Base):
    __tablename__ = "item"

    id = Column(String(36), primary_key=True, default=new_id)
    owner_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    category = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    condition = Column(String, nullable=True)
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_item_owner_id", "owner_id"),
        Index("idx_item_available_category", "is_available", "category"),
    )


class InterestEdge(Base):
    __tablename__ = "interest_edge"

    id = Column(String(36), primary_key=True, default=new_id)
    from_user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    to_user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    item_id = Column(String(36), ForeignKey("item.id", ondelete="SET NULL"), nullable=True)
    kind = Column(String(8), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("from_user_id", "to_user_id", "kind", name="uq_interest_edge_pair_kind"),
        CheckConstraint("from_user_id <> to_user_id", name="ck_interest_edge_no_self"),
        CheckConstraint("kind IN ('like', 'pass')", name="ck_interest_edge_kind"),
        Index("idx_interest_edge_to_user", "to_user_id", "kind"),
    )


class Match(Base):
    __tablename__ = "user_match"

    id = Column(String(36), primary_key=True, default=new_id)
    user1_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    user2_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("user1_id", "user2_id", name="uq_user_match_pair"),
        CheckConstraint("user1_id < user2_id", name="ck_user_match_canonical_order"),
        Index("idx_user_match_user2", "user2_id"),
    )


class ChatMessage(Base):
    __tablename__ = "chat_message"

    id = Column(String(36), primary_key=True, default=new_id)
    match_id = Column(String(36), ForeignKey("user_match.id", ondelete="CASCADE"), nullable=False)
    sender_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_chat_message_match_created", "match_id", "created_at"),
    )


class ChatRead(Base):
    __tablename__ = "chat_read"

    match_id = Column(String(36), ForeignKey("user_match.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), primary_key=True)
    last_read_at = Column(DateTime(timezone=True), nullable=False)


class UserNotification(Base):
    __tablename__ = "user_notification"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("user_account.id", ondelete="CASCADE"), nullable=False)
    kind = Column(String, nullable=False)
    title = Column(String, nullable=False)
    body = Column(Text, nullable=True)
    payload = Column(JSONDocument, nullable=False, default=dict)
    is_read = Column(Boolean, nullable=False, default=False)
    idempotency_key = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("idempotency_key", name="uq_user_notification_idempotency_key"),
        Index("idx_user_notification_user_id", "user_id"),
    )
