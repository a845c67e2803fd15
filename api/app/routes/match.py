from fastapi import APIRouter, BackgroundTasks, Depends

from ..auth.deps import get_current_user_id, require_user_id
from ..config import RL_LIKE_LIMIT, RL_PASS_LIMIT, RL_WINDOW_SECONDS
from ..schemas import LikeRequest, LikeResponse, MatchesResponse, MatchOut, OkResponse, PassRequest, UserOut
from ..services import conversations, interest
from ..services.rate_limit import rate_limit_dependency

router = APIRouter()
scaffold_router = APIRouter()

RL_LIKE = rate_limit_dependency("like", RL_LIKE_LIMIT, RL_WINDOW_SECONDS)
RL_PASS = rate_limit_dependency("pass", RL_PASS_LIMIT, RL_WINDOW_SECONDS)


@scaffold_router.get("/health")
def match_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "match"}


@router.post("/likes", response_model=LikeResponse, dependencies=[RL_LIKE])
def like_user(
    payload: LikeRequest,
    background_tasks: BackgroundTasks,
    user_id: str = Depends(require_user_id),
) -> LikeResponse:
    outcome = interest.record_like(
        user_id,
        payload.target_user_id,
        item_id=payload.item_id,
        schedule=background_tasks.add_task,
    )
    return LikeResponse(
        matched=outcome.matched,
        match_id=outcome.match_id,
        matched_user=UserOut.from_row(outcome.matched_user) if outcome.matched_user else None,
    )


@router.post("/passes", response_model=OkResponse, dependencies=[RL_PASS])
def pass_user(payload: PassRequest, user_id: str = Depends(require_user_id)) -> OkResponse:
    result = interest.record_pass(user_id, payload.target_user_id)
    return OkResponse(ok=bool(result.get("ok")))


@router.get("/matches", response_model=MatchesResponse)
def list_matches(user_id: str | None = Depends(get_current_user_id)) -> MatchesResponse:
    rows = conversations.list_matches(user_id)
    return MatchesResponse(
        matches=[
            MatchOut(match_id=r["match_id"], other_user=UserOut.from_row(r["other_user"]), matched_at=r["matched_at"])
            for r in rows
        ]
    )


@router.post("/matches/{match_id}/deactivate", response_model=OkResponse)
def deactivate_match(match_id: str, user_id: str = Depends(require_user_id)) -> OkResponse:
    conversations.deactivate_match(user_id, match_id)
    return OkResponse(ok=True)
