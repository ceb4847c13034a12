"""Progress actions under both sync modes."""

from __future__ import annotations

from typing import Any

import pytest

from webworm.catalog import CatalogDetails, DetailsNotLoadedError, SeasonNotFoundError
from webworm.episodes import SeasonalEpisode, TotalEpisode
from webworm.models import Bookmark, ProgressAction, SyncMode
from webworm.progress import ProgressController


def seasonal(episode: int, season: int) -> SeasonalEpisode:
    return SeasonalEpisode(episode_number=episode, season_number=season)


def build_details(last: tuple[int, int] = (5, 2)) -> CatalogDetails:
    episode, season = last
    document: dict[str, Any] = {
        "id": 7,
        "name": "Example Show",
        "seasons": [
            {"name": "Season 1", "season_number": 1, "episode_count": 10},
            {"name": "Season 2", "season_number": 2, "episode_count": 8},
        ],
        "last_episode_to_air": {"episode_number": episode, "season_number": season},
    }
    return CatalogDetails.from_document(document)


def build_bookmark(**overrides: Any) -> Bookmark:
    values: dict[str, Any] = {"show_id": 7, "name": "Example Show"}
    values.update(overrides)
    return Bookmark(**values)


def test_synced_increment_rolls_over_season() -> None:
    bookmark = build_bookmark(current_episode=seasonal(10, 1))
    controller = ProgressController(bookmark, build_details())

    controller.increment()

    assert bookmark.current_episode == seasonal(1, 2)
    assert bookmark.finished is False


def test_unsynced_increment_ignores_catalog() -> None:
    bookmark = build_bookmark(current_episode=seasonal(10, 1), sync_mode=SyncMode.NO_SYNC)
    controller = ProgressController(bookmark, build_details())

    controller.increment()

    assert bookmark.current_episode == seasonal(11, 1)


def test_synced_without_details_falls_back_to_local_step() -> None:
    bookmark = build_bookmark(current_episode=seasonal(10, 1))

    ProgressController(bookmark).increment()

    assert bookmark.current_episode == seasonal(11, 1)
    assert bookmark.finished is False


def test_reaching_last_published_marks_finished() -> None:
    bookmark = build_bookmark(current_episode=seasonal(4, 2))
    controller = ProgressController(bookmark, build_details())

    controller.increment()
    assert bookmark.current_episode == seasonal(5, 2)
    assert bookmark.finished is True

    controller.increment()
    assert bookmark.current_episode == seasonal(5, 2)
    assert bookmark.finished is True


def test_decrement_clears_finished() -> None:
    bookmark = build_bookmark(current_episode=seasonal(1, 2), finished=True)
    controller = ProgressController(bookmark, build_details())

    controller.decrement()

    assert bookmark.current_episode == seasonal(10, 1)
    assert bookmark.finished is False


def test_unsynced_decrement_stays_within_season() -> None:
    bookmark = build_bookmark(current_episode=seasonal(1, 2), sync_mode="nosync")

    ProgressController(bookmark, build_details()).decrement()

    assert bookmark.current_episode == seasonal(1, 2)


@pytest.mark.parametrize("raw", ["abc", "0", "-3", "", None, "2.5"])
def test_set_episode_rejects_invalid_input(raw: object) -> None:
    bookmark = build_bookmark(current_episode=seasonal(3, 1))

    with pytest.raises(ValueError, match="episode must be a positive number"):
        ProgressController(bookmark).set_episode(raw)

    assert bookmark.current_episode == seasonal(3, 1)


def test_set_episode_parses_user_text() -> None:
    bookmark = build_bookmark(current_episode=seasonal(3, 1), finished=True)

    ProgressController(bookmark).set_episode(" 7 ")

    assert bookmark.current_episode == seasonal(7, 1)
    assert bookmark.finished is False


def test_synced_set_episode_is_clamped() -> None:
    bookmark = build_bookmark(current_episode=seasonal(3, 2))
    controller = ProgressController(bookmark, build_details())

    controller.set_episode("8")

    assert bookmark.current_episode == seasonal(5, 2)


def test_set_season_upgrades_total_progress() -> None:
    bookmark = build_bookmark(
        current_episode=TotalEpisode(episode=4), sync_mode=SyncMode.NO_SYNC
    )

    ProgressController(bookmark).set_season(2)

    assert bookmark.current_episode == seasonal(4, 2)


def test_apply_dispatches_commands() -> None:
    bookmark = build_bookmark()
    controller = ProgressController(bookmark, build_details())

    controller.apply(ProgressAction(command="increment"))
    controller.apply(ProgressAction(command="set_season", value="2"))
    result = controller.apply(ProgressAction(command="toggle_sync"))

    assert result == seasonal(2, 2)
    assert bookmark.sync_mode is SyncMode.NO_SYNC

    controller.apply(ProgressAction(command="toggle_sync"))
    assert bookmark.sync_mode is SyncMode.TMDB


def test_refresh_moves_finished_bookmark_to_new_episode() -> None:
    bookmark = build_bookmark(current_episode=seasonal(5, 2), finished=True)
    controller = ProgressController(bookmark, build_details(last=(5, 2)))

    changed = controller.refresh(build_details(last=(7, 2)))

    assert changed is True
    assert bookmark.current_episode == seasonal(6, 2)
    assert bookmark.finished is False


def test_refresh_without_new_episodes_changes_nothing() -> None:
    bookmark = build_bookmark(current_episode=seasonal(5, 2), finished=True)
    controller = ProgressController(bookmark)

    assert controller.refresh(build_details(last=(5, 2))) is False
    assert bookmark.finished is True
    assert controller.details is not None


def test_refresh_places_total_progress_into_season() -> None:
    bookmark = build_bookmark(current_episode=TotalEpisode(episode=13))

    assert ProgressController(bookmark).refresh(build_details()) is True
    assert bookmark.current_episode == seasonal(3, 2)


def test_play_builds_url_and_advances() -> None:
    bookmark = build_bookmark(
        current_episode=seasonal(3, 1), link="https://x.test/{s}/{e}"
    )
    controller = ProgressController(bookmark, build_details())

    assert controller.play() == "https://x.test/1/3"
    assert bookmark.current_episode == seasonal(4, 1)

    assert controller.play(advance=False) == "https://x.test/1/4"
    assert bookmark.current_episode == seasonal(4, 1)


def test_play_without_link_raises() -> None:
    bookmark = build_bookmark()

    with pytest.raises(ValueError):
        ProgressController(bookmark).play()


def test_play_needing_details_leaves_progress_alone() -> None:
    bookmark = build_bookmark(current_episode=seasonal(3, 2), link="https://x.test/{e}")

    with pytest.raises(DetailsNotLoadedError):
        ProgressController(bookmark).play()

    assert bookmark.current_episode == seasonal(3, 2)


def test_missing_season_leaves_bookmark_unchanged() -> None:
    bookmark = build_bookmark(current_episode=seasonal(1, 4), finished=True)
    controller = ProgressController(bookmark, build_details(last=(5, 2)))

    with pytest.raises(SeasonNotFoundError):
        controller.decrement()
    with pytest.raises(SeasonNotFoundError):
        controller.set_episode("3")

    assert bookmark.current_episode == seasonal(1, 4)
    assert bookmark.finished is True


def test_unsynced_increment_tolerates_inconsistent_catalog() -> None:
    details = CatalogDetails.from_document(
        {
            "id": 7,
            "seasons": [
                {"name": "Season 1", "season_number": 1, "episode_count": 10},
                {"name": "Season 3", "season_number": 3, "episode_count": 6},
            ],
            "next_episode_to_air": {"episode_number": 1, "season_number": 3},
        }
    )
    bookmark = build_bookmark(sync_mode=SyncMode.NO_SYNC)

    ProgressController(bookmark, details).increment()

    assert bookmark.current_episode == seasonal(2, 1)
    assert bookmark.finished is False
