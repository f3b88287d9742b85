"""Shared in-memory database fixture and row builders for the API tests."""

from __future__ import annotations

import itertools
import unittest
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from models import LIKE, Base, Subscription, User, Video, VideoReaction, VideoTag, WatchHistory

NOW = datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc)
OLD = NOW - timedelta(days=120)

_seq = itertools.count(1)


def make_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    return engine


class DbTestCase(unittest.TestCase):
    """Fresh schema per test plus helpers that commit rows immediately."""

    def setUp(self) -> None:
        """Create an isolated in-memory database and session."""
        self.engine = make_engine()
        self.db = sessionmaker(bind=self.engine, autoflush=False, future=True)()

    def tearDown(self) -> None:
        """Release the session and drop the in-memory database."""
        self.db.close()
        self.engine.dispose()

    def make_user(self, name: Optional[str] = None, channel_name: Optional[str] = None) -> User:
        n = next(_seq)
        name = name or f"user{n}"
        user = User(
            username=name,
            email=f"{name}@example.com",
            password_hash="x",
            channel_name=channel_name or f"{name} channel",
            created_at=OLD - timedelta(minutes=n),
        )
        self.db.add(user)
        self.db.commit()
        return user

    def make_video(
        self,
        owner: User,
        title: Optional[str] = None,
        category: str = "General",
        tags: Iterable[str] = (),
        views: int = 0,
        created_at: Optional[datetime] = None,
        duration: float = 300.0,
        published: bool = True,
        description: str = "",
    ) -> Video:
        n = next(_seq)
        created = created_at or OLD
        video = Video(
            user_id=owner.id,
            title=title or f"video {n}",
            description=description,
            category=category,
            duration_seconds=duration,
            views=views,
            is_published=published,
            created_at=created,
            updated_at=created,
        )
        video.tags = [VideoTag(tag=t) for t in tags]
        self.db.add(video)
        self.db.commit()
        return video

    def subscribe(self, subscriber: User, channel: User) -> None:
        self.db.add(Subscription(subscriber_id=subscriber.id, channel_id=channel.id))
        self.db.commit()

    def react(self, user: User, video: Video, value: int = LIKE) -> None:
        self.db.add(VideoReaction(user_id=user.id, video_id=video.id, value=value, created_at=NOW))
        self.db.commit()

    def watch(self, user: User, video: Video, at: Optional[datetime] = None) -> None:
        self.db.add(
            WatchHistory(
                user_id=user.id,
                video_id=video.id,
                last_position_seconds=10.0,
                watched_seconds=10.0,
                last_watched_at=at or NOW,
            )
        )
        self.db.commit()
