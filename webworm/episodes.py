"""Episode progress values.

A bookmark's progress is either *seasonal* (season + episode within that
season) or *total* (an absolute episode count across the whole show). The two
forms are a closed union discriminated by ``kind``; every helper below matches
both variants explicitly.

The stepping helpers in this module never consult a catalog. They are the
unchecked primitives used when syncing is disabled or once catalog-aware
logic has already decided that a step is legal.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

# Floor applied by the unchecked ``previous_episode`` primitive.
MIN_EPISODE = 1


class SeasonalEpisode(BaseModel):
    """Progress expressed as season and episode within that season."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["Seasonal"] = "Seasonal"
    episode_number: int = Field(ge=0)
    season_number: int = Field(ge=0)


class TotalEpisode(BaseModel):
    """Progress expressed as an absolute episode count."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["Total"] = "Total"
    episode: int = Field(ge=0)


Episode = Annotated[Union[SeasonalEpisode, TotalEpisode], Field(discriminator="kind")]

_EPISODE_ADAPTER: TypeAdapter[SeasonalEpisode | TotalEpisode] = TypeAdapter(Episode)


def _unknown(value: object) -> TypeError:
    return TypeError(f"Unsupported episode value: {value!r}")


def parse_episode(data: Any) -> SeasonalEpisode | TotalEpisode:
    """Validate a persisted ``{"kind": ..., ...}`` mapping into an episode."""

    return _EPISODE_ADAPTER.validate_python(data)


def episode_number(value: SeasonalEpisode | TotalEpisode) -> int:
    if isinstance(value, SeasonalEpisode):
        return value.episode_number
    if isinstance(value, TotalEpisode):
        return value.episode
    raise _unknown(value)


def season_number(value: SeasonalEpisode | TotalEpisode) -> int:
    """Return the season; total values have no seasons and always report 1."""

    if isinstance(value, SeasonalEpisode):
        return value.season_number
    if isinstance(value, TotalEpisode):
        return 1
    raise _unknown(value)


def next_episode(value: SeasonalEpisode | TotalEpisode) -> SeasonalEpisode | TotalEpisode:
    """Step one episode forward without any bounds checking."""

    if isinstance(value, SeasonalEpisode):
        return value.model_copy(update={"episode_number": value.episode_number + 1})
    if isinstance(value, TotalEpisode):
        return value.model_copy(update={"episode": value.episode + 1})
    raise _unknown(value)


def previous_episode(
    value: SeasonalEpisode | TotalEpisode,
) -> SeasonalEpisode | TotalEpisode:
    """Step one episode back, saturating at ``MIN_EPISODE``.

    Seasonal values never cross into the previous season here; that needs a
    catalog to know how long the previous season is.
    """

    if isinstance(value, SeasonalEpisode):
        return value.model_copy(
            update={"episode_number": max(value.episode_number - 1, MIN_EPISODE)}
        )
    if isinstance(value, TotalEpisode):
        return value.model_copy(update={"episode": max(value.episode - 1, MIN_EPISODE)})
    raise _unknown(value)


def set_episode(
    value: SeasonalEpisode | TotalEpisode, number: int
) -> SeasonalEpisode | TotalEpisode:
    if isinstance(value, SeasonalEpisode):
        return value.model_copy(update={"episode_number": number})
    if isinstance(value, TotalEpisode):
        return value.model_copy(update={"episode": number})
    raise _unknown(value)


def set_season(value: SeasonalEpisode | TotalEpisode, number: int) -> SeasonalEpisode:
    """Overwrite the season.

    A total value has no season to overwrite, so it is upgraded to a seasonal
    one that keeps the total count as its episode number.
    """

    if isinstance(value, SeasonalEpisode):
        return value.model_copy(update={"season_number": number})
    if isinstance(value, TotalEpisode):
        return SeasonalEpisode(episode_number=value.episode, season_number=number)
    raise _unknown(value)


def describe(value: SeasonalEpisode | TotalEpisode) -> str:
    """Short human readable label such as ``S2 E3`` or ``E13``."""

    if isinstance(value, SeasonalEpisode):
        return f"S{value.season_number} E{value.episode_number}"
    if isinstance(value, TotalEpisode):
        return f"E{value.episode}"
    raise _unknown(value)
