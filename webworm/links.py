"""Link templates turning episode progress into playable URLs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Union

from .catalog import CatalogDetails, DetailsNotLoadedError
from .episodes import SeasonalEpisode, TotalEpisode

logger = logging.getLogger(__name__)

EPISODE_PLACEHOLDER = "{e}"
SEASON_PLACEHOLDER = "{s}"


@dataclass(frozen=True, slots=True)
class ConstPart:
    """Literal text copied into the URL verbatim."""

    text: str


@dataclass(frozen=True, slots=True)
class EpisodePlaceholder:
    pass


@dataclass(frozen=True, slots=True)
class SeasonPlaceholder:
    pass


LinkPart = Union[ConstPart, EpisodePlaceholder, SeasonPlaceholder]


class LinkError(str, Enum):
    NO_CONST_PART = "no_const_part"
    NO_EPISODE = "no_episode"
    TO_MANY_EPISODES = "to_many_episodes"
    TO_MANY_SEASONS = "to_many_seasons"


_LINK_ERROR_MESSAGES = {
    LinkError.NO_CONST_PART: "a link should always include some literal text",
    LinkError.NO_EPISODE: "a link should always include one {e} placeholder",
    LinkError.TO_MANY_EPISODES: "a link should include exactly one {e} placeholder",
    LinkError.TO_MANY_SEASONS: "a link shouldn't include more than one {s} placeholder",
}


class InvalidLinkError(ValueError):
    """Raised when a link template fails validation."""

    def __init__(self, error: LinkError):
        super().__init__(_LINK_ERROR_MESSAGES[error])
        self.error = error


def parse_link(link: str) -> tuple[LinkPart, ...]:
    """Split ``link`` into literal text and placeholders, left to right.

    When both placeholders start at the same index the season placeholder is
    taken first.
    """

    parts: list[LinkPart] = []
    rest = link
    while rest:
        episode_at = rest.find(EPISODE_PLACEHOLDER)
        season_at = rest.find(SEASON_PLACEHOLDER)
        if episode_at < 0 and season_at < 0:
            parts.append(ConstPart(rest))
            break
        if season_at == 0:
            parts.append(SeasonPlaceholder())
            rest = rest[len(SEASON_PLACEHOLDER):]
            continue
        if episode_at == 0:
            parts.append(EpisodePlaceholder())
            rest = rest[len(EPISODE_PLACEHOLDER):]
            continue
        candidates = [index for index in (episode_at, season_at) if index >= 0]
        cut = min(candidates)
        parts.append(ConstPart(rest[:cut]))
        rest = rest[cut:]
    return tuple(parts)


def is_valid_link(parts: Iterable[LinkPart]) -> None:
    """Check a parsed link.

    A link is valid if it contains:
    * at least one const part
    * exactly one episode
    * a maximum of one season
    """

    consts = episodes = seasons = 0
    for part in parts:
        if isinstance(part, ConstPart):
            consts += 1
        elif isinstance(part, EpisodePlaceholder):
            episodes += 1
        elif isinstance(part, SeasonPlaceholder):
            seasons += 1
        else:
            raise TypeError(f"Unsupported link part: {part!r}")

    error: LinkError | None = None
    if episodes > 1:
        error = LinkError.TO_MANY_EPISODES
    elif consts == 0:
        error = LinkError.NO_CONST_PART
    elif episodes == 0:
        error = LinkError.NO_EPISODE
    elif seasons > 1:
        error = LinkError.TO_MANY_SEASONS
    if error is not None:
        logger.warning("Rejected link template: %s", _LINK_ERROR_MESSAGES[error])
        raise InvalidLinkError(error)


@dataclass(frozen=True, slots=True)
class LinkTemplate:
    """A validated URL pattern such as ``https://host/show/{s}/{e}``.

    Only ``raw`` is persisted; the parts are rebuilt with :meth:`parse`.
    """

    parts: tuple[LinkPart, ...]
    raw: str

    @classmethod
    def parse(cls, raw: str) -> "LinkTemplate":
        parts = parse_link(raw)
        is_valid_link(parts)
        return cls(parts=parts, raw=raw)

    def has_season(self) -> bool:
        return any(isinstance(part, SeasonPlaceholder) for part in self.parts)

    def url(self, episode: int, season: int) -> str:
        pieces: list[str] = []
        for part in self.parts:
            if isinstance(part, ConstPart):
                pieces.append(part.text)
            elif isinstance(part, EpisodePlaceholder):
                pieces.append(str(episode))
            elif isinstance(part, SeasonPlaceholder):
                pieces.append(str(season))
            else:
                raise TypeError(f"Unsupported link part: {part!r}")
        return "".join(pieces)

    def url_for(
        self,
        episode: SeasonalEpisode | TotalEpisode,
        details: CatalogDetails | None = None,
    ) -> str:
        """Build the URL for ``episode``, converting its numbering when the
        template counts episodes differently than the bookmark does."""

        if isinstance(episode, SeasonalEpisode):
            if self.has_season():
                return self.url(episode.episode_number, episode.season_number)
            if details is None:
                raise DetailsNotLoadedError(
                    "Show details are required to number episodes without a season"
                )
            return self.url(details.as_total_episodes(episode).episode, 1)
        if isinstance(episode, TotalEpisode):
            if not self.has_season():
                return self.url(episode.episode, 1)
            if details is None:
                raise DetailsNotLoadedError(
                    "Show details are required to place an episode into its season"
                )
            seasonal = details.as_seasonal_episode(episode)
            return self.url(seasonal.episode_number, seasonal.season_number)
        raise TypeError(f"Unsupported episode value: {episode!r}")

    def __str__(self) -> str:
        return self.raw
