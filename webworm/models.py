"""Pydantic models describing bookmarks and API payloads."""

from __future__ import annotations

from enum import Enum

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
)

from .episodes import Episode, SeasonalEpisode
from .links import LinkTemplate


class SyncMode(str, Enum):
    """How progress actions resolve the next value."""

    NO_SYNC = "nosync"
    TMDB = "tmdb"

    @classmethod
    def parse(cls, value: object) -> "SyncMode":
        if isinstance(value, SyncMode):
            return value
        lowered = str(value or "").strip().lower()
        if lowered in {"tmdb", "sync", "synced"}:
            return cls.TMDB
        if lowered in {"nosync", "no-sync", "no_sync", "local"}:
            return cls.NO_SYNC
        raise ValueError("sync mode must be 'tmdb' or 'nosync'")

    def toggled(self) -> "SyncMode":
        return SyncMode.NO_SYNC if self is SyncMode.TMDB else SyncMode.TMDB


class ShowSummary(BaseModel):
    """A TV show as returned by the TMDB search endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    name: str = Field(validation_alias=AliasChoices("name", "title"))
    original_name: str | None = Field(
        default=None, validation_alias=AliasChoices("original_name", "original_title")
    )
    overview: str | None = None
    poster_path: str | None = None
    vote_average: float | None = None
    first_air_date: str | None = None

    def rating(self) -> int:
        """Vote average as a percentage."""

        if self.vote_average is None:
            return 0
        return round(self.vote_average * 10)

    def year(self) -> int | None:
        if not self.first_air_date or len(self.first_air_date) < 4:
            return None
        try:
            return int(self.first_air_date[:4])
        except ValueError:
            return None


class Bookmark(BaseModel):
    """Watch progress for a single show."""

    model_config = ConfigDict(arbitrary_types_allowed=True, validate_assignment=True)

    show_id: int
    name: str
    original_name: str | None = None
    poster_path: str | None = None
    current_episode: Episode = Field(
        default_factory=lambda: SeasonalEpisode(episode_number=1, season_number=1)
    )
    finished: bool = False
    sync_mode: SyncMode = SyncMode.TMDB
    link: LinkTemplate | None = None

    @classmethod
    def from_show(cls, show: ShowSummary, *, sync_mode: SyncMode = SyncMode.TMDB) -> "Bookmark":
        return cls(
            show_id=show.id,
            name=show.name,
            original_name=show.original_name,
            poster_path=show.poster_path,
            sync_mode=sync_mode,
        )

    @field_validator("sync_mode", mode="before")
    @classmethod
    def _parse_sync_mode(cls, value: object) -> SyncMode:
        return SyncMode.parse(value)

    @field_validator("link", mode="before")
    @classmethod
    def _parse_link(cls, value: object) -> object:
        # Only the raw template is stored; rebuild the parts on load.
        if value is None or isinstance(value, LinkTemplate):
            return value
        raw = str(value)
        if not raw.strip():
            return None
        return LinkTemplate.parse(raw)

    @field_serializer("link")
    def _serialize_link(self, link: LinkTemplate | None) -> str | None:
        return link.raw if link is not None else None


class ProgressCommand(str, Enum):
    INCREMENT = "increment"
    DECREMENT = "decrement"
    SET_EPISODE = "set_episode"
    SET_SEASON = "set_season"
    TOGGLE_SYNC = "toggle_sync"


class ProgressAction(BaseModel):
    """A single user action applied to a bookmark's progress."""

    command: ProgressCommand
    value: str | int | None = None


class BookmarkCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_id: int = Field(validation_alias=AliasChoices("show_id", "showId", "id"))


class LinkUpdate(BaseModel):
    link: str
