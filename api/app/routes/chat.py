from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user_id, require_user_id
from ..config import RL_MESSAGE_LIMIT, RL_WINDOW_SECONDS
from ..schemas import (
    ConversationOut,
    ConversationsResponse,
    ItemOut,
    MessageOut,
    MessageRequest,
    ReadReceiptOut,
    SwapContextResponse,
    UnreadCountResponse,
    UserOut,
)
from ..services import conversations
from ..services.rate_limit import rate_limit_dependency
from ..services.swap_context import get_swap_context

router = APIRouter()
scaffold_router = APIRouter()

RL_MESSAGE = rate_limit_dependency("message", RL_MESSAGE_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def chat_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "chat"}


@router.get("/conversations", response_model=ConversationsResponse)
def list_conversations(user_id: str | None = Depends(get_current_user_id)) -> ConversationsResponse:
    chats = conversations.list_conversations(user_id)
    return ConversationsResponse(
        conversations=[
            ConversationOut(
                match_id=c.match_id,
                other_user=UserOut.from_row(c.other_user),
                last_message=c.last_message,
                last_message_time=c.last_message_time,
                has_unread=c.has_unread,
            )
            for c in chats
        ]
    )


@router.get("/conversations/unread-count", response_model=UnreadCountResponse)
def unread_count(user_id: str | None = Depends(get_current_user_id)) -> UnreadCountResponse:
    return UnreadCountResponse(count=conversations.count_unread_conversations(user_id))


@router.get("/conversations/swap-context/{other_user_id}", response_model=SwapContextResponse)
def swap_context(other_user_id: str, user_id: str = Depends(require_user_id)) -> SwapContextResponse:
    ctx = get_swap_context(user_id, other_user_id)
    return SwapContextResponse(
        mine=[ItemOut.from_row(i) for i in ctx.mine],
        theirs=[ItemOut.from_row(i) for i in ctx.theirs],
    )


@router.post("/conversations/{match_id}/read", response_model=ReadReceiptOut)
def mark_read(match_id: str, user_id: str = Depends(require_user_id)) -> ReadReceiptOut:
    receipt = conversations.mark_conversation_read(user_id, match_id)
    return ReadReceiptOut(match_id=str(receipt["match_id"]), last_read_at=receipt["last_read_at"])


@router.post("/conversations/{match_id}/messages", response_model=MessageOut, dependencies=[RL_MESSAGE])
def send_message(match_id: str, payload: MessageRequest, user_id: str = Depends(require_user_id)) -> MessageOut:
    message = conversations.post_message(user_id, match_id, payload.content)
    return MessageOut(
        id=str(message["id"]),
        match_id=str(message["match_id"]),
        sender_id=str(message["sender_id"]),
        content=message["content"],
        created_at=message["created_at"],
    )
