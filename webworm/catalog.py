"""Show details fetched from TMDB and episode-numbering reconciliation."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from .episodes import SeasonalEpisode, TotalEpisode

logger = logging.getLogger(__name__)

SPECIALS_MARKER = "Specials"
EXTRAS_MARKER = "Extras"


class SeasonNotFoundError(LookupError):
    """Raised when a season number is referenced that the catalog does not list."""

    def __init__(self, show_id: int, season_number: int):
        super().__init__(f"Show {show_id} has no season {season_number}")
        self.show_id = show_id
        self.season_number = season_number


class DetailsNotLoadedError(RuntimeError):
    """Raised when an operation needs catalog details that are not available yet."""


class Season(BaseModel):
    """A single season entry of a TMDB show."""

    id: int | None = None
    name: str = ""
    episode_count: int = Field(default=0, ge=0)
    season_number: int = Field(ge=0)
    overview: str | None = None
    poster_path: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _blank_name(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("episode_count", mode="before")
    @classmethod
    def _missing_count(cls, value: object) -> object:
        return 0 if value is None else value

    @property
    def is_specials(self) -> bool:
        return SPECIALS_MARKER in self.name

    @property
    def is_extras(self) -> bool:
        return EXTRAS_MARKER in self.name


class EpisodeDetails(BaseModel):
    """An episode document as returned by TMDB.

    TMDB reports ``episode_number`` and ``season_number`` as flat fields; they
    are gathered into a seasonal ``episode`` value on validation.
    """

    id: int | None = None
    episode: SeasonalEpisode
    name: str = ""
    air_date: str | None = None
    overview: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_episode_numbers(cls, data: Any) -> Any:
        if isinstance(data, dict) and "episode" not in data:
            data = dict(data)
            data["episode"] = {
                "episode_number": data.pop("episode_number", None) or 0,
                "season_number": data.pop("season_number", None) or 0,
            }
        return data

    @field_validator("name", mode="before")
    @classmethod
    def _blank_name(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("air_date", mode="before")
    @classmethod
    def _blank_air_date(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CatalogDetails(BaseModel):
    """Season layout and air schedule of one show.

    Instances are created from a fetched ``tv/{id}`` document, repaired once
    by :meth:`fix_episode_formats` and treated as read-only afterwards; a
    refresh replaces the whole object.
    """

    id: int
    name: str = ""
    seasons: list[Season] = Field(default_factory=list)
    in_production: bool = False
    last_air_date: str | None = None
    number_of_seasons: int = 0
    number_of_episodes: int = 0
    last_episode_to_air: EpisodeDetails | None = None
    next_episode_to_air: EpisodeDetails | None = None
    # Whether fix_episode_formats changed the incoming data.
    fixed: bool = False

    @field_validator("number_of_seasons", "number_of_episodes", mode="before")
    @classmethod
    def _missing_counts(cls, value: object) -> object:
        return 0 if value is None else value

    @field_validator("in_production", mode="before")
    @classmethod
    def _missing_flag(cls, value: object) -> object:
        return False if value is None else value

    @classmethod
    def from_document(cls, data: dict[str, Any]) -> "CatalogDetails":
        """Parse a TMDB details document and repair its episode numbering."""

        payload = {key: value for key, value in data.items() if key != "fixed"}
        details = cls.model_validate(payload)
        details.fix_episode_formats()
        return details

    def season(self, season_number: int) -> Season:
        for season in self.seasons:
            if season.season_number == season_number:
                return season
        raise SeasonNotFoundError(self.id, season_number)

    def _episodes_before(self, season_number: int, *, skip_extras: bool) -> int:
        total = 0
        for season in self.seasons:
            if season.season_number >= season_number or season.is_specials:
                continue
            if skip_extras and season.is_extras:
                continue
            total += season.episode_count
        return total

    def fix_episode_formats(self) -> None:
        """Repair last/next episodes that carry an absolute episode number.

        Some shows report ``last_episode_to_air`` or ``next_episode_to_air``
        with an episode number counted from the start of the show while still
        claiming a season. Such an entry is detected by an episode number that
        exceeds the claimed season's episode count and is rebased onto its
        season. Running the pass again is a no-op.
        """

        if self.fixed or len(self.seasons) < 2:
            return
        for field in ("last_episode_to_air", "next_episode_to_air"):
            details: EpisodeDetails | None = getattr(self, field)
            if details is None:
                continue
            repaired = self._repair_episode(details)
            if repaired is not None:
                setattr(self, field, repaired)
                self.fixed = True

    def _repair_episode(self, details: EpisodeDetails) -> EpisodeDetails | None:
        episode = details.episode
        try:
            season = self.season(episode.season_number)
        except SeasonNotFoundError:
            logger.warning(
                "Show %s references season %s which is not listed; leaving %s untouched",
                self.id,
                episode.season_number,
                episode,
            )
            return None
        if episode.episode_number <= season.episode_count:
            return None

        offset = self._episodes_before(episode.season_number, skip_extras=True)
        if offset >= episode.episode_number:
            logger.warning(
                "Show %s reports episode %s for season %s (%s episodes) but cannot be rebased",
                self.id,
                episode.episode_number,
                episode.season_number,
                season.episode_count,
            )
            return None

        repaired = episode.model_copy(
            update={"episode_number": episode.episode_number - offset}
        )
        logger.info(
            "Show %s: rebased absolute episode %s to season %s episode %s",
            self.id,
            episode.episode_number,
            repaired.season_number,
            repaired.episode_number,
        )
        return details.model_copy(update={"episode": repaired})

    def reformat_for_request(
        self, episode: SeasonalEpisode | TotalEpisode
    ) -> SeasonalEpisode:
        """Return the episode numbered the way the source numbers it.

        When :meth:`fix_episode_formats` rebased this show, lookups against
        TMDB have to use its absolute numbering again.
        """

        seasonal = self.as_seasonal_episode(episode)
        if not self.fixed:
            return seasonal
        offset = self._episodes_before(seasonal.season_number, skip_extras=True)
        return seasonal.model_copy(
            update={"episode_number": seasonal.episode_number + offset}
        )

    def as_total_episodes(self, episode: SeasonalEpisode | TotalEpisode) -> TotalEpisode:
        if isinstance(episode, TotalEpisode):
            return episode
        if isinstance(episode, SeasonalEpisode):
            before = self._episodes_before(episode.season_number, skip_extras=False)
            return TotalEpisode(episode=before + episode.episode_number)
        raise TypeError(f"Unsupported episode value: {episode!r}")

    def as_seasonal_episode(
        self, episode: SeasonalEpisode | TotalEpisode
    ) -> SeasonalEpisode:
        """Place an absolute episode count into its season.

        Counts past the end of the listed seasons land in the last regular
        season, numbered from that season's first episode.
        """

        if isinstance(episode, SeasonalEpisode):
            return episode
        if not isinstance(episode, TotalEpisode):
            raise TypeError(f"Unsupported episode value: {episode!r}")

        remaining = episode.episode
        regular = [season for season in self.seasons if not season.is_specials]
        if not regular:
            return SeasonalEpisode(episode_number=remaining, season_number=1)
        for season in regular[:-1]:
            if remaining <= season.episode_count:
                return SeasonalEpisode(
                    episode_number=remaining, season_number=season.season_number
                )
            remaining -= season.episode_count
        return SeasonalEpisode(
            episode_number=remaining, season_number=regular[-1].season_number
        )

    def last_published(self) -> EpisodeDetails | None:
        """Return the most recent episode known to have aired.

        Falls back to the episode before ``next_episode_to_air`` and then to
        the summary counts of the show. ``None`` means the catalog has no
        episodes at all.
        """

        if self.last_episode_to_air is not None:
            return self.last_episode_to_air

        upcoming = self.next_episode_to_air
        if upcoming is not None:
            episode = upcoming.episode
            if episode.episode_number > 1:
                previous = episode.model_copy(
                    update={"episode_number": episode.episode_number - 1}
                )
            elif episode.season_number <= 1:
                return upcoming
            else:
                season = self.season(episode.season_number - 1)
                previous = SeasonalEpisode(
                    episode_number=season.episode_count,
                    season_number=season.season_number,
                )
            return EpisodeDetails(episode=previous)

        if not self.number_of_episodes:
            return None
        return EpisodeDetails(
            episode=SeasonalEpisode(
                episode_number=self.number_of_episodes,
                season_number=self.number_of_seasons,
            ),
            air_date=self.last_air_date,
        )

    def total_published(self) -> TotalEpisode | None:
        last = self.last_published()
        if last is None:
            return None
        return self.as_total_episodes(last.episode)

    def is_last_published(self, episode: SeasonalEpisode | TotalEpisode) -> bool:
        """Whether ``episode`` is at (or past) the last published episode."""

        total = self.total_published()
        if total is None:
            return False
        return self.as_total_episodes(episode).episode >= total.episode

    def previous_episode(
        self, episode: SeasonalEpisode | TotalEpisode
    ) -> SeasonalEpisode | TotalEpisode:
        if isinstance(episode, SeasonalEpisode):
            if episode.episode_number > 1:
                return episode.model_copy(
                    update={"episode_number": episode.episode_number - 1}
                )
            if episode.season_number > 1:
                season = self.season(episode.season_number - 1)
                return SeasonalEpisode(
                    episode_number=season.episode_count,
                    season_number=season.season_number,
                )
            return episode
        if isinstance(episode, TotalEpisode):
            return episode.model_copy(update={"episode": max(episode.episode - 1, 1)})
        raise TypeError(f"Unsupported episode value: {episode!r}")

    def _following_season(self, season_number: int) -> Season | None:
        later = [
            season
            for season in self.seasons
            if season.season_number > season_number and not season.is_specials
        ]
        return min(later, key=lambda season: season.season_number, default=None)

    def next_episode(
        self, episode: SeasonalEpisode | TotalEpisode
    ) -> SeasonalEpisode | TotalEpisode:
        """Step forward, rolling over seasons and never passing the last published episode."""

        if isinstance(episode, SeasonalEpisode):
            if self.is_last_published(episode):
                return episode
            season = self.season(episode.season_number)
            if episode.episode_number >= season.episode_count:
                following = self._following_season(episode.season_number)
                if following is None:
                    return episode
                return SeasonalEpisode(
                    episode_number=1, season_number=following.season_number
                )
            return episode.model_copy(
                update={"episode_number": episode.episode_number + 1}
            )
        if isinstance(episode, TotalEpisode):
            total = self.total_published()
            if total is not None and episode.episode >= total.episode:
                return episode
            return episode.model_copy(update={"episode": episode.episode + 1})
        raise TypeError(f"Unsupported episode value: {episode!r}")

    def clamp_episode(
        self, episode: SeasonalEpisode | TotalEpisode
    ) -> SeasonalEpisode | TotalEpisode:
        """Fit a user supplied value into the episodes this catalog knows about."""

        if isinstance(episode, SeasonalEpisode):
            season = self.season(episode.season_number)
            number = min(max(episode.episode_number, 1), max(season.episode_count, 1))
            clamped: SeasonalEpisode | TotalEpisode = episode.model_copy(
                update={"episode_number": number}
            )
        elif isinstance(episode, TotalEpisode):
            clamped = episode.model_copy(update={"episode": max(episode.episode, 1)})
        else:
            raise TypeError(f"Unsupported episode value: {episode!r}")

        last = self.last_published()
        if last is None:
            return clamped
        total = self.as_total_episodes(last.episode)
        if self.as_total_episodes(clamped).episode <= total.episode:
            return clamped
        if isinstance(clamped, TotalEpisode):
            return total
        return last.episode
