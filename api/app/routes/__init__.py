from fastapi import APIRouter, FastAPI

from .candidates import router as candidates_router, scaffold_router as candidates_scaffold_router
from .chat import router as chat_router, scaffold_router as chat_scaffold_router
from .match import router as match_router, scaffold_router as match_scaffold_router


def include_modular_routers(app: FastAPI) -> None:
    app.include_router(candidates_router, tags=["candidates"])
    app.include_router(match_router, tags=["matches"])
    app.include_router(chat_router, tags=["conversations"])

    app.include_router(candidates_scaffold_router, prefix="/_scaffold/candidates", tags=["scaffold-candidates"])
    app.include_router(match_scaffold_router, prefix="/_scaffold/match", tags=["scaffold-match"])
    app.include_router(chat_scaffold_router, prefix="/_scaffold/chat", tags=["scaffold-chat"])


__all__ = ["include_modular_routers", "APIRouter"]
