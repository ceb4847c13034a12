from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from webworm.catalog import CatalogDetails
from webworm.main import register_routes
from webworm.models import Bookmark, ShowSummary
from webworm.services.bookmarks import BookmarkService


def build_details() -> CatalogDetails:
    return CatalogDetails.from_document(
        {
            "id": 42,
            "name": "Example Show",
            "seasons": [
                {"name": "Season 1", "season_number": 1, "episode_count": 10},
                {"name": "Season 2", "season_number": 2, "episode_count": 8},
            ],
            "last_episode_to_air": {"episode_number": 5, "season_number": 2},
        }
    )


class DummyBookmarkService(BookmarkService):
    """In-memory BookmarkService keeping the real progress handling."""

    def __init__(self) -> None:
        # Deliberately skip super().__init__ to avoid touching external systems.
        self._settings = None
        self._tmdb = None
        self._session_factory = None
        self._details = {42: build_details()}
        self._locks = {}
        self.stored: dict[int, Bookmark] = {}

    async def search(self, query: str) -> list[ShowSummary]:
        return [ShowSummary(id=42, name=f"{query} show", vote_average=7.5)]

    async def list_bookmarks(self) -> list[Bookmark]:
        return list(self.stored.values())

    async def get_bookmark(self, show_id: int) -> Bookmark:
        if show_id not in self.stored:
            raise KeyError(f"No bookmark for show {show_id}")
        return self.stored[show_id].model_copy()

    async def _save(self, bookmark: Bookmark) -> None:
        self.stored[bookmark.show_id] = bookmark

    async def add_bookmark(self, show_id: int) -> Bookmark:
        if show_id != 42:
            raise KeyError(f"Show {show_id} was not found on TMDB")
        bookmark = Bookmark(show_id=42, name="Example Show")
        await self._save(bookmark)
        return bookmark

    async def remove_bookmark(self, show_id: int) -> None:
        if self.stored.pop(show_id, None) is None:
            raise KeyError(f"No bookmark for show {show_id}")


def build_client() -> tuple[TestClient, DummyBookmarkService]:
    app = FastAPI()
    register_routes(app)
    service = DummyBookmarkService()
    app.state.bookmark_service = service
    return TestClient(app), service


def test_healthcheck() -> None:
    client, _ = build_client()

    with client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_reports_rating() -> None:
    client, _ = build_client()

    with client:
        response = client.get("/api/search", params={"query": "Example"})

    assert response.status_code == 200
    assert response.json()["results"][0]["rating"] == 75


def test_add_and_step_bookmark() -> None:
    client, service = build_client()

    with client:
        created = client.post("/api/bookmarks", json={"showId": 42})
        stepped = client.post(
            "/api/bookmarks/42/actions", json={"command": "set_episode", "value": "10"}
        )
        rolled = client.post("/api/bookmarks/42/actions", json={"command": "increment"})

    assert created.status_code == 201
    assert created.json()["progress"] == "S1 E1"
    assert stepped.json()["progress"] == "S1 E10"
    assert rolled.json()["current_episode"] == {
        "kind": "Seasonal",
        "episode_number": 1,
        "season_number": 2,
    }
    assert rolled.json()["latest"]["episode"]["episode_number"] == 5
    assert service.stored[42].current_episode.season_number == 2


def test_invalid_action_value_is_bad_request() -> None:
    client, _ = build_client()

    with client:
        client.post("/api/bookmarks", json={"show_id": 42})
        response = client.post(
            "/api/bookmarks/42/actions", json={"command": "set_episode", "value": "abc"}
        )

    assert response.status_code == 400
    assert "positive number" in response.json()["detail"]


def test_invalid_link_reports_error_kind() -> None:
    client, _ = build_client()

    with client:
        client.post("/api/bookmarks", json={"show_id": 42})
        response = client.put("/api/bookmarks/42/link", json={"link": "no placeholders"})

    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "no_episode"


def test_play_returns_url() -> None:
    client, service = build_client()

    with client:
        client.post("/api/bookmarks", json={"show_id": 42})
        client.put("/api/bookmarks/42/link", json={"link": "https://x.test/{s}x{e}"})
        response = client.post("/api/bookmarks/42/play", params={"advance": "false"})

    assert response.status_code == 200
    assert response.json()["url"] == "https://x.test/1x1"
    assert response.json()["bookmark"]["link"] == "https://x.test/{s}x{e}"
    assert service.stored[42].current_episode.episode_number == 1


def test_play_without_link_is_bad_request() -> None:
    client, _ = build_client()

    with client:
        client.post("/api/bookmarks", json={"show_id": 42})
        response = client.post("/api/bookmarks/42/play")

    assert response.status_code == 400


def test_missing_bookmark_is_not_found() -> None:
    client, _ = build_client()

    with client:
        missing = client.get("/api/bookmarks/7")
        unknown_show = client.post("/api/bookmarks", json={"show_id": 7})
        removed = client.delete("/api/bookmarks/7")

    assert missing.status_code == 404
    assert unknown_show.status_code == 404
    assert removed.status_code == 404


def test_episode_details_unavailable_without_tmdb() -> None:
    client, _ = build_client()

    with client:
        client.post("/api/bookmarks", json={"show_id": 42})
        response = client.get("/api/bookmarks/42/episode")

    assert response.status_code == 404
