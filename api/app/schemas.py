from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field


class UserOut(BaseModel):
    id: str
    username: str | None = None
    display_name: str | None = None
    avatar_url: str | None = None
    bio: str | None = None
    city: str | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "UserOut":
        return cls(
            id=str(row["id"]),
            username=row.get("username"),
            display_name=row.get("display_name") or row.get("username"),
            avatar_url=row.get("avatar_url"),
            bio=row.get("bio"),
            city=row.get("city"),
        )


class ItemOut(BaseModel):
    id: str
    owner_id: str
    title: str
    category: str
    description: str | None = None
    condition: str | None = None
    created_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "ItemOut":
        return cls(
            id=str(row["id"]),
            owner_id=str(row["owner_id"]),
            title=row["title"],
            category=row["category"],
            description=row.get("description"),
            condition=row.get("condition"),
            created_at=row.get("created_at"),
        )


class CandidateOut(BaseModel):
    user: UserOut
    items: list[ItemOut] = Field(default_factory=list)


class CandidatesResponse(BaseModel):
    candidates: list[CandidateOut]


class LikeRequest(BaseModel):
    target_user_id: str
    item_id: str | None = None


class LikeResponse(BaseModel):
    matched: bool
    match_id: str | None = None
    matched_user: UserOut | None = None


class PassRequest(BaseModel):
    target_user_id: str


class OkResponse(BaseModel):
    ok: bool = True


class ConversationOut(BaseModel):
    match_id: str
    other_user: UserOut
    last_message: str | None = None
    last_message_time: datetime
    has_unread: bool


class ConversationsResponse(BaseModel):
    conversations: list[ConversationOut]


class UnreadCountResponse(BaseModel):
    count: int


class MatchOut(BaseModel):
    match_id: str
    other_user: UserOut
    matched_at: datetime


class MatchesResponse(BaseModel):
    matches: list[MatchOut]


class SwapContextResponse(BaseModel):
    mine: list[ItemOut]
    theirs: list[ItemOut]


class MessageRequest(BaseModel):
    content: str


class MessageOut(BaseModel):
    id: str
    match_id: str
    sender_id: str
    content: str
    created_at: datetime


class ReadReceiptOut(BaseModel):
    match_id: str
    last_read_at: datetime


class PreferredCategoriesRequest(BaseModel):
    categories: list[str] = Field(default_factory=list)


class PreferredCategoriesResponse(BaseModel):
    preferred_categories: list[str]
