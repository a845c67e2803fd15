from dataclasses import dataclass, field
from typing import Any

from app import repo
from app.errors import NotAuthenticated


@dataclass
class SwapContext:
    mine: list[dict[str, Any]] = field(default_factory=list)
    theirs: list[dict[str, Any]] = field(default_factory=list)


def get_swap_context(viewer_id: str | None, other_id: str) -> SwapContext:
    """Items each side of a pair liked from the other.

    ``mine`` holds the other user's items the viewer liked, ``theirs`` holds the
    viewer's items the other user liked. Whether the two are matched is left
    to the caller.
    """
    if not viewer_id:
        raise NotAuthenticated("Authentication required")
    viewer, other = str(viewer_id), str(other_id)
    if viewer == other:
        return SwapContext()
    return SwapContext(
        mine=repo.list_items_liked_by(viewer, other),
        theirs=repo.list_items_liked_by(other, viewer),
    )
