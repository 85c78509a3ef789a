"""FastAPI application entry point."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from api.routers import bookmarks, health, tags
from core.config import get_settings
from db.session import engine


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - release pooled connections on shutdown."""
    yield
    await engine.dispose()


class TrimTrailingSlashMiddleware:
    """Route ``/api/bookmarks/`` and ``/api/bookmarks`` to the same endpoint."""

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Strip trailing slashes from the request path before routing."""
        if scope["type"] == "http":
            path = scope["path"]
            if len(path) > 1 and path.endswith("/"):
                scope = dict(scope)
                scope["path"] = path.rstrip("/") or "/"
        await self.app(scope, receive, send)


app_settings = get_settings()

app = FastAPI(
    title="Bookmarks API",
    description="A linkding-compatible bookmark service with tagging and full-text search.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(TrimTrailingSlashMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(bookmarks.router, prefix="/api")
app.include_router(tags.router, prefix="/api")
