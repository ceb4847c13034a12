"""Apply user actions to a bookmark's episode progress."""

from __future__ import annotations

import logging

from . import episodes
from .catalog import CatalogDetails, SeasonNotFoundError
from .episodes import SeasonalEpisode, TotalEpisode
from .models import Bookmark, ProgressAction, ProgressCommand, SyncMode
from .utils import parse_positive_int

logger = logging.getLogger(__name__)


class ProgressController:
    """Resolves progress actions for one bookmark.

    In ``SyncMode.TMDB`` every step goes through the show's
    :class:`CatalogDetails` so the bookmark always points at an episode the
    catalog knows about. In ``SyncMode.NO_SYNC``, or while details are still
    loading, the unchecked local primitives are used instead.

    Actions either complete or raise; a raised error leaves the bookmark as
    it was.
    """

    def __init__(self, bookmark: Bookmark, details: CatalogDetails | None = None):
        self.bookmark = bookmark
        self.details = details

    def _synced_details(self) -> CatalogDetails | None:
        if self.bookmark.sync_mode is SyncMode.TMDB:
            return self.details
        return None

    def apply(self, action: ProgressAction) -> SeasonalEpisode | TotalEpisode:
        command = action.command
        if command is ProgressCommand.INCREMENT:
            self.increment()
        elif command is ProgressCommand.DECREMENT:
            self.decrement()
        elif command is ProgressCommand.SET_EPISODE:
            self.set_episode(action.value)
        elif command is ProgressCommand.SET_SEASON:
            self.set_season(action.value)
        elif command is ProgressCommand.TOGGLE_SYNC:
            self.toggle_sync()
        else:
            raise ValueError(f"Unsupported progress command: {command!r}")
        return self.bookmark.current_episode

    def increment(self) -> None:
        current = self.bookmark.current_episode
        details = self._synced_details()
        if details is not None:
            updated = details.next_episode(current)
        else:
            self._log_unsynced("increment")
            updated = episodes.next_episode(current)

        reached = self._reached_last(updated)
        self.bookmark.current_episode = updated
        if reached:
            if not self.bookmark.finished:
                logger.info("%s reached the last published episode", self.bookmark.name)
            self.bookmark.finished = True

    def _reached_last(self, updated: SeasonalEpisode | TotalEpisode) -> bool:
        if self.details is None:
            return False
        try:
            return self.details.is_last_published(updated)
        except SeasonNotFoundError as exc:
            logger.warning(
                "Cannot tell whether %s is finished: %s", self.bookmark.name, exc
            )
            return False

    def decrement(self) -> None:
        current = self.bookmark.current_episode
        details = self._synced_details()
        if details is not None:
            updated = details.previous_episode(current)
        else:
            self._log_unsynced("decrement")
            updated = episodes.previous_episode(current)
        self.bookmark.current_episode = updated
        self.bookmark.finished = False

    def set_episode(self, raw: object) -> None:
        number = parse_positive_int(raw, field="episode")
        updated = episodes.set_episode(self.bookmark.current_episode, number)
        self._store_set(updated)

    def set_season(self, raw: object) -> None:
        number = parse_positive_int(raw, field="season")
        updated = episodes.set_season(self.bookmark.current_episode, number)
        self._store_set(updated)

    def _store_set(self, updated: SeasonalEpisode | TotalEpisode) -> None:
        details = self._synced_details()
        if details is not None:
            updated = details.clamp_episode(updated)
        self.bookmark.current_episode = updated
        self.bookmark.finished = False

    def toggle_sync(self) -> None:
        self.bookmark.sync_mode = self.bookmark.sync_mode.toggled()
        logger.debug(
            "Sync mode for %s is now %s", self.bookmark.name, self.bookmark.sync_mode.value
        )

    def refresh(self, details: CatalogDetails) -> bool:
        """Adopt freshly fetched details.

        Total progress is placed into its season, and a finished bookmark
        moves on when the catalog now lists a newer episode. Returns whether
        the bookmark changed.
        """

        current = self.bookmark.current_episode
        if isinstance(current, TotalEpisode):
            current = details.as_seasonal_episode(current)
        finished = self.bookmark.finished
        if finished:
            following = details.next_episode(current)
            if following != current:
                logger.info(
                    "Found new episode for %s: %s",
                    self.bookmark.name,
                    episodes.describe(following),
                )
                current = following
                finished = False

        self.details = details
        changed = (
            current != self.bookmark.current_episode
            or finished != self.bookmark.finished
        )
        self.bookmark.current_episode = current
        self.bookmark.finished = finished
        return changed

    def play(self, *, advance: bool = True) -> str:
        """Return the link for the current episode and move on to the next one."""

        link = self.bookmark.link
        if link is None:
            raise ValueError(f"No link template configured for {self.bookmark.name}")
        url = link.url_for(self.bookmark.current_episode, self.details)
        logger.debug("Resolved %s for %s", url, self.bookmark.name)
        if advance:
            self.increment()
        else:
            logger.debug("Not advancing %s after play", self.bookmark.name)
        return url

    def _log_unsynced(self, action: str) -> None:
        if self.bookmark.sync_mode is SyncMode.TMDB:
            logger.debug(
                "Details for %s not loaded yet, applying %s locally",
                self.bookmark.name,
                action,
            )
