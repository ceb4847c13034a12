"""Coordinates stored bookmarks, TMDB details and progress actions."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .. import episodes
from ..catalog import CatalogDetails, EpisodeDetails, SeasonNotFoundError
from ..config import Settings
from ..db_models import BookmarkRecord
from ..links import LinkTemplate
from ..models import Bookmark, ProgressAction, ShowSummary
from ..progress import ProgressController
from .tmdb import TMDBClient

logger = logging.getLogger(__name__)


class BookmarkService:
    """Owns the bookmark store and the per-show catalog details cache.

    Actions on the same show are serialised; details are replaced wholesale
    whenever a show is refreshed.
    """

    def __init__(
        self,
        settings: Settings,
        tmdb_client: TMDBClient | None,
        session_factory: async_sessionmaker[AsyncSession],
    ):
        self._settings = settings
        self._tmdb = tmdb_client
        self._session_factory = session_factory
        self._details: dict[int, CatalogDetails] = {}
        self._locks: dict[int, asyncio.Lock] = {}

    def _lock(self, show_id: int) -> asyncio.Lock:
        lock = self._locks.get(show_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[show_id] = lock
        return lock

    def cached_details(self, show_id: int) -> CatalogDetails | None:
        return self._details.get(show_id)

    async def search(self, query: str) -> list[ShowSummary]:
        if self._tmdb is None:
            logger.info("TMDB token missing, search for %r skipped", query)
            return []
        return await self._tmdb.search_tv(query)

    async def list_bookmarks(self) -> list[Bookmark]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(BookmarkRecord).order_by(BookmarkRecord.created_at)
            )
            return [record.to_bookmark() for record in result.scalars()]

    async def get_bookmark(self, show_id: int) -> Bookmark:
        async with self._session_factory() as session:
            record = await session.get(BookmarkRecord, show_id)
            if record is None:
                raise KeyError(f"No bookmark for show {show_id}")
            return record.to_bookmark()

    async def _save(self, bookmark: Bookmark) -> None:
        async with self._session_factory() as session:
            record = await session.get(BookmarkRecord, bookmark.show_id)
            if record is None:
                record = BookmarkRecord(show_id=bookmark.show_id)
                session.add(record)
            record.update_from(bookmark)
            await session.commit()

    async def add_bookmark(self, show_id: int) -> Bookmark:
        """Create a bookmark at season 1 episode 1 for a TMDB show."""

        async with self._lock(show_id):
            async with self._session_factory() as session:
                if await session.get(BookmarkRecord, show_id) is not None:
                    logger.info("Bookmark for show %s already exists", show_id)
                    return await self.get_bookmark(show_id)

            if self._tmdb is None:
                raise KeyError(f"Show {show_id} cannot be looked up without a TMDB token")
            show = await self._tmdb.fetch_show(show_id)
            if show is None:
                raise KeyError(f"Show {show_id} was not found on TMDB")

            bookmark = Bookmark.from_show(
                show.summary, sync_mode=self._settings.default_sync_mode
            )
            self._details[show_id] = show.details
            await self._save(bookmark)
            logger.info("Added bookmark for %s", bookmark.name)
            return bookmark

    async def remove_bookmark(self, show_id: int) -> None:
        async with self._lock(show_id):
            async with self._session_factory() as session:
                record = await session.get(BookmarkRecord, show_id)
                if record is None:
                    raise KeyError(f"No bookmark for show {show_id}")
                await session.delete(record)
                await session.commit()
            self._details.pop(show_id, None)
        self._locks.pop(show_id, None)
        logger.debug("Removed bookmark for show %s", show_id)

    async def _ensure_details(self, show_id: int) -> CatalogDetails | None:
        details = self._details.get(show_id)
        if details is None and self._tmdb is not None:
            details = await self._tmdb.fetch_details(show_id)
            if details is not None:
                self._details[show_id] = details
        return details

    async def refresh_details(self, show_id: int) -> Bookmark:
        """Re-fetch the show's details and let the bookmark catch up with them."""

        async with self._lock(show_id):
            bookmark = await self.get_bookmark(show_id)
            if self._tmdb is None:
                return bookmark
            details = await self._tmdb.fetch_details(show_id)
            if details is None:
                logger.warning("Keeping cached details for show %s after failed refresh", show_id)
                return bookmark
            self._details[show_id] = details
            controller = ProgressController(bookmark, details)
            if controller.refresh(details):
                await self._save(bookmark)
            return bookmark

    async def apply_action(self, show_id: int, action: ProgressAction) -> Bookmark:
        async with self._lock(show_id):
            bookmark = await self.get_bookmark(show_id)
            details = await self._ensure_details(show_id)
            controller = ProgressController(bookmark, details)
            controller.apply(action)
            await self._save(bookmark)
            logger.debug(
                "Applied %s to %s, now at %s",
                action.command.value,
                bookmark.name,
                episodes.describe(bookmark.current_episode),
            )
            return bookmark

    async def set_link(self, show_id: int, raw: str) -> Bookmark:
        link = LinkTemplate.parse(raw)
        async with self._lock(show_id):
            bookmark = await self.get_bookmark(show_id)
            bookmark.link = link
            await self._save(bookmark)
            return bookmark

    async def play(self, show_id: int, *, advance: bool = True) -> tuple[str, Bookmark]:
        """Resolve the link for the current episode, advancing unless told not to."""

        async with self._lock(show_id):
            bookmark = await self.get_bookmark(show_id)
            details = await self._ensure_details(show_id)
            controller = ProgressController(bookmark, details)
            url = controller.play(advance=advance)
            if advance:
                await self._save(bookmark)
            return url, bookmark

    async def current_episode_details(self, show_id: int) -> EpisodeDetails | None:
        bookmark = await self.get_bookmark(show_id)
        if self._tmdb is None:
            return None
        details = await self._ensure_details(show_id)
        return await self._tmdb.fetch_episode(
            show_id, bookmark.current_episode, details
        )

    def to_payload(self, bookmark: Bookmark) -> dict[str, Any]:
        """Bookmark fields plus what the cached details say about the show."""

        payload = bookmark.model_dump(mode="json")
        payload["progress"] = episodes.describe(bookmark.current_episode)
        details = self._details.get(bookmark.show_id)
        if self._tmdb is not None:
            payload["poster_url"] = self._tmdb.poster_url(bookmark.poster_path)
        if details is None:
            payload["latest"] = None
            payload["upcoming"] = None
            return payload

        try:
            latest = details.last_published()
        except SeasonNotFoundError as exc:
            logger.warning("Cannot determine latest episode of %s: %s", bookmark.name, exc)
            latest = None
        payload["latest"] = latest.model_dump(mode="json") if latest else None
        upcoming = details.next_episode_to_air
        payload["upcoming"] = upcoming.model_dump(mode="json") if upcoming else None
        return payload
