from fastapi import APIRouter, Depends

from ..auth.deps import get_current_user_id, require_user_id
from ..schemas import (
    CandidateOut,
    CandidatesResponse,
    ItemOut,
    PreferredCategoriesRequest,
    PreferredCategoriesResponse,
    UserOut,
)
from ..services import candidates

router = APIRouter()
scaffold_router = APIRouter()


@scaffold_router.get("/health")
def candidates_scaffold_health() -> dict[str, str]:
    return {"status": "ok", "module": "candidates"}


@router.get("/candidates", response_model=CandidatesResponse)
def list_candidates(user_id: str | None = Depends(get_current_user_id)) -> CandidatesResponse:
    rows = candidates.list_candidates(user_id)
    return CandidatesResponse(
        candidates=[
            CandidateOut(user=UserOut.from_row(c.user), items=[ItemOut.from_row(i) for i in c.items])
            for c in rows
        ]
    )


@router.put("/me/preferences/categories", response_model=PreferredCategoriesResponse)
def update_preferred_categories(
    payload: PreferredCategoriesRequest,
    user_id: str = Depends(require_user_id),
) -> PreferredCategoriesResponse:
    saved = candidates.update_preferred_categories(user_id, payload.categories)
    return PreferredCategoriesResponse(preferred_categories=saved)
