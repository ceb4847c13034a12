"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base
from .episodes import parse_episode
from .models import Bookmark


class BookmarkRecord(Base):
    """A persisted bookmark.

    ``episode`` keeps the tagged episode value (``{"kind": "Seasonal", ...}``
    or ``{"kind": "Total", ...}``) and ``link_template`` only the raw template
    string; parsing happens when the record is turned back into a bookmark.
    """

    __tablename__ = "bookmarks"

    show_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(255))
    original_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    poster_path: Mapped[str | None] = mapped_column(String(255), nullable=True)
    episode: Mapped[dict[str, Any]] = mapped_column(JSON)
    finished: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    sync_mode: Mapped[str] = mapped_column(String(16), default="tmdb")
    link_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    def to_bookmark(self) -> Bookmark:
        return Bookmark(
            show_id=self.show_id,
            name=self.name,
            original_name=self.original_name,
            poster_path=self.poster_path,
            current_episode=parse_episode(self.episode),
            finished=bool(self.finished),
            sync_mode=self.sync_mode or "tmdb",
            link=self.link_template,
        )

    def update_from(self, bookmark: Bookmark) -> None:
        self.name = bookmark.name
        self.original_name = bookmark.original_name
        self.poster_path = bookmark.poster_path
        self.episode = bookmark.current_episode.model_dump(mode="json")
        self.finished = bookmark.finished
        self.sync_mode = bookmark.sync_mode.value
        self.link_template = bookmark.link.raw if bookmark.link is not None else None
