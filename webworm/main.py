"""Entry point for the FastAPI-powered bookmark service."""

from __future__ import annotations

import logging
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, Awaitable, Callable, TypeVar

import httpx
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .catalog import DetailsNotLoadedError, SeasonNotFoundError
from .config import settings
from .database import Database
from .links import InvalidLinkError
from .models import BookmarkCreate, LinkUpdate, ProgressAction
from .services.bookmarks import BookmarkService
from .services.tmdb import TMDBClient

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

T = TypeVar("T")

app: FastAPI


@asynccontextmanager
async def lifespan(_: FastAPI):
    exit_stack = AsyncExitStack()
    tmdb: TMDBClient | None = None
    if settings.tmdb_api_token:
        tmdb_http_client = await exit_stack.enter_async_context(
            httpx.AsyncClient(
                base_url=str(settings.tmdb_api_url),
                timeout=httpx.Timeout(15.0, connect=5.0),
            )
        )
        tmdb = TMDBClient(settings, tmdb_http_client)
    else:
        logger.warning("TMDB_API_TOKEN is not set; catalog sync is disabled")

    database = Database(settings.database_url)
    await database.create_all()

    app.state.bookmark_service = BookmarkService(
        settings, tmdb, database.session_factory
    )
    app.state.database = database

    try:
        yield
    finally:  # pragma: no cover - teardown path exercised at runtime
        await database.dispose()
        await exit_stack.aclose()


def create_app() -> FastAPI:
    fastapi_app = FastAPI(
        title=settings.app_name,
        description="Track TV show progress and open the next episode",
        version="1.0.0",
        lifespan=lifespan,
    )

    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )

    register_routes(fastapi_app)
    return fastapi_app


def get_bookmark_service(app: FastAPI) -> BookmarkService:
    service = getattr(app.state, "bookmark_service", None)
    if not isinstance(service, BookmarkService):
        raise RuntimeError("Bookmark service not initialised")
    return service


async def _guard(call: Callable[[], Awaitable[T]]) -> T:
    """Translate service errors into HTTP responses."""

    try:
        return await call()
    except InvalidLinkError as exc:
        raise HTTPException(
            status_code=400, detail={"error": exc.error.value, "message": str(exc)}
        ) from exc
    except SeasonNotFoundError as exc:
        logger.warning("Catalog inconsistency: %s", exc)
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except DetailsNotLoadedError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except KeyError as exc:
        detail = str(exc.args[0]) if exc.args else "Not found"
        raise HTTPException(status_code=404, detail=detail) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def register_routes(fastapi_app: FastAPI) -> None:
    @fastapi_app.get("/healthz")
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    @fastapi_app.get("/api/search")
    async def search(query: str = "") -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        results = await service.search(query)
        return {
            "results": [
                {**show.model_dump(mode="json"), "rating": show.rating()}
                for show in results
            ]
        }

    @fastapi_app.get("/api/bookmarks")
    async def list_bookmarks() -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        bookmarks = await service.list_bookmarks()
        return {"bookmarks": [service.to_payload(bookmark) for bookmark in bookmarks]}

    @fastapi_app.post("/api/bookmarks", status_code=201)
    async def add_bookmark(payload: BookmarkCreate) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        bookmark = await _guard(lambda: service.add_bookmark(payload.show_id))
        return service.to_payload(bookmark)

    @fastapi_app.get("/api/bookmarks/{show_id}")
    async def get_bookmark(show_id: int) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        bookmark = await _guard(lambda: service.get_bookmark(show_id))
        return service.to_payload(bookmark)

    @fastapi_app.delete("/api/bookmarks/{show_id}")
    async def remove_bookmark(show_id: int) -> dict[str, str]:
        service = get_bookmark_service(fastapi_app)
        await _guard(lambda: service.remove_bookmark(show_id))
        return {"status": "removed"}

    @fastapi_app.post("/api/bookmarks/{show_id}/actions")
    async def apply_action(show_id: int, action: ProgressAction) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        bookmark = await _guard(lambda: service.apply_action(show_id, action))
        return service.to_payload(bookmark)

    @fastapi_app.put("/api/bookmarks/{show_id}/link")
    async def set_link(show_id: int, payload: LinkUpdate) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        bookmark = await _guard(lambda: service.set_link(show_id, payload.link))
        return service.to_payload(bookmark)

    @fastapi_app.post("/api/bookmarks/{show_id}/play")
    async def play(show_id: int, advance: bool = True) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        url, bookmark = await _guard(lambda: service.play(show_id, advance=advance))
        return {"url": url, "bookmark": service.to_payload(bookmark)}

    @fastapi_app.post("/api/bookmarks/{show_id}/refresh")
    async def refresh(show_id: int) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        bookmark = await _guard(lambda: service.refresh_details(show_id))
        return service.to_payload(bookmark)

    @fastapi_app.get("/api/bookmarks/{show_id}/episode")
    async def current_episode(show_id: int) -> dict[str, Any]:
        service = get_bookmark_service(fastapi_app)
        details = await _guard(lambda: service.current_episode_details(show_id))
        if details is None:
            raise HTTPException(status_code=404, detail="Episode details unavailable")
        return details.model_dump(mode="json")


app = create_app()
