"""Client for show metadata from The Movie Database (TMDB)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import ValidationError

from ..catalog import CatalogDetails, EpisodeDetails
from ..config import Settings
from ..episodes import SeasonalEpisode, TotalEpisode
from ..models import ShowSummary
from ..utils import build_image_url

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TMDBShow:
    """A fetched ``tv/{id}`` document split into its summary and season layout."""

    summary: ShowSummary
    details: CatalogDetails


class TMDBClient:
    """Client responsible for TV show lookups against the TMDB v3 API."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        if not settings.tmdb_api_token:
            raise ValueError("TMDB API token is required when initialising TMDBClient")
        self._settings = settings
        self._client = http_client

    def _headers(self) -> dict[str, str]:
        return {
            "accept": "application/json",
            "Authorization": f"Bearer {self._settings.tmdb_api_token}",
        }

    async def _get_json(
        self, endpoint: str, params: dict[str, Any] | None = None
    ) -> Any | None:
        query = {"language": self._settings.tmdb_language}
        if params:
            query.update(params)
        try:
            response = await self._client.get(
                endpoint, params=query, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            logger.warning("TMDB request to %s failed: %s", endpoint, exc)
            return None
        if response.status_code >= 400:
            logger.warning(
                "TMDB request to %s failed (%s): %s",
                endpoint,
                response.status_code,
                response.text,
            )
            return None
        try:
            return response.json()
        except ValueError:
            logger.warning("TMDB returned invalid JSON for %s", endpoint)
            return None

    async def search_tv(self, query: str) -> list[ShowSummary]:
        """Search TV shows by title."""

        cleaned = (query or "").strip()
        if not cleaned:
            return []
        data = await self._get_json("/search/tv", {"query": cleaned, "page": 1})
        if not isinstance(data, dict):
            return []

        results: list[ShowSummary] = []
        for entry in data.get("results", []):
            if not isinstance(entry, dict):
                continue
            try:
                results.append(ShowSummary.model_validate(entry))
            except ValidationError as exc:
                logger.debug("Skipping malformed TMDB search result: %s", exc)
        return results

    async def fetch_show(self, show_id: int) -> TMDBShow | None:
        """Fetch a show and repair its episode numbering."""

        data = await self._get_json(f"/tv/{show_id}")
        if not isinstance(data, dict):
            return None
        try:
            summary = ShowSummary.model_validate(data)
            details = CatalogDetails.from_document(data)
        except ValidationError as exc:
            logger.warning("Failed to parse TMDB details for show %s: %s", show_id, exc)
            return None
        if details.fixed:
            logger.info("Repaired episode numbering reported for show %s", show_id)
        return TMDBShow(summary=summary, details=details)

    async def fetch_details(self, show_id: int) -> CatalogDetails | None:
        show = await self.fetch_show(show_id)
        return show.details if show is not None else None

    async def fetch_episode(
        self,
        show_id: int,
        episode: SeasonalEpisode | TotalEpisode,
        details: CatalogDetails | None = None,
    ) -> EpisodeDetails | None:
        """Fetch a single episode.

        With ``details`` the request is numbered the way TMDB numbers the
        show, and the response is rebased onto the progress numbering.
        """

        if details is not None:
            requested = details.reformat_for_request(episode)
        elif isinstance(episode, SeasonalEpisode):
            requested = episode
        else:
            logger.debug("Cannot request total episode %s without details", episode)
            return None

        endpoint = (
            f"/tv/{show_id}/season/{requested.season_number}"
            f"/episode/{requested.episode_number}"
        )
        data = await self._get_json(endpoint)
        if not isinstance(data, dict):
            return None
        try:
            result = EpisodeDetails.model_validate(data)
        except ValidationError as exc:
            logger.warning("Failed to parse TMDB episode %s: %s", endpoint, exc)
            return None
        if details is not None:
            result = result.model_copy(update={"episode": details.as_seasonal_episode(episode)})
        return result

    def poster_url(self, path: str | None) -> str | None:
        return build_image_url(path, str(self._settings.tmdb_image_url))
