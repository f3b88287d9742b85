# apps/api/models.py
import uuid
from typing import List

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    SmallInteger,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship

# Naming convention helps Alembic autogenerate predictable constraint names
naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
metadata = MetaData(naming_convention=naming_convention)
Base = declarative_base(metadata=metadata)

DEFAULT_CATEGORY = "General"
CATEGORIES = (
    "General",
    "Education",
    "Entertainment",
    "Gaming",
    "Music",
    "News",
    "Sports",
    "Technology",
    "Travel",
    "Vlog",
)

LIKE = 1
DISLIKE = -1


def normalize_category(value) -> str:
    """Map an incoming category label onto the closed set, falling back to General."""
    label = (value or "").strip()
    return label if label in CATEGORIES else DEFAULT_CATEGORY


class User(Base):
    __tablename__ = "users"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    username = Column(String(64), unique=True, nullable=False)
    email = Column(String(320), unique=True, nullable=False)  # store lowercase
    password_hash = Column(String, nullable=False)

    channel_name = Column(String, nullable=False)
    channel_description = Column(Text, nullable=False, default="", server_default="")
    avatar_ref = Column(String, nullable=True)  # storage key or absolute URL

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    videos = relationship("Video", back_populates="uploader")


class Subscription(Base):
    """A single row backs both "subscribed-to" and "subscribers" views."""

    __tablename__ = "subscriptions"

    subscriber_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    channel_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("subscriber_id <> channel_id", name="not_self"),
        Index("ix_subscriptions_channel_id", "channel_id"),
    )


class Video(Base):
    __tablename__ = "videos"

    id = Column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False
    )
    user_id = Column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    title = Column(String, nullable=False, default="", server_default="")
    description = Column(String, nullable=False, default="", server_default="")
    category = Column(
        String, nullable=False, default=DEFAULT_CATEGORY, server_default=DEFAULT_CATEGORY
    )

    video_ref = Column(String, nullable=True)
    thumbnail_ref = Column(String, nullable=True)
    duration_seconds = Column(Float, nullable=False, default=0, server_default="0")
    views = Column(Integer, nullable=False, default=0, server_default="0")
    is_published = Column(Boolean, nullable=False, default=True, server_default="true")

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    uploader = relationship("User", back_populates="videos", lazy="joined")
    tags = relationship(
        "VideoTag",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="VideoTag.tag",
    )

    __table_args__ = (
        Index("ix_videos_user_id_created_at", "user_id", "created_at"),
        Index("ix_videos_category_views", "category", "views"),
        Index("ix_videos_published_created_at", "is_published", "created_at"),
    )

    @property
    def tag_names(self) -> List[str]:
        return [t.tag for t in (self.tags or [])]


class VideoTag(Base):
    __tablename__ = "video_tags"

    video_id = Column(UUID(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    tag = Column(Text, primary_key=True, nullable=False)

    __table_args__ = (
        Index("ix_video_tags_tag", "tag"),
    )


class VideoReaction(Base):
    """One row per (user, video): a like and a dislike can never coexist."""

    __tablename__ = "video_reactions"

    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    video_id = Column(UUID(as_uuid=True), ForeignKey("videos.id", ondelete="CASCADE"), primary_key=True, nullable=False)
    value = Column(SmallInteger, nullable=False)  # 1 like | -1 dislike
    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("value IN (-1, 1)", name="value"),
        Index("ix_video_reactions_video_value", "video_id", "value"),
        Index("ix_video_reactions_user_created", "user_id", "created_at"),
    )


class WatchHistory(Base):
    __tablename__ = "watch_history"

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )
    video_id = Column(
        UUID(as_uuid=True),
        ForeignKey("videos.id", ondelete="CASCADE"),
        primary_key=True,
        nullable=False,
    )

    last_position_seconds = Column(Float, nullable=False, server_default="0")
    watched_seconds = Column(Float, nullable=False, default=0, server_default="0")
    last_watched_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    video = relationship("Video")

    __table_args__ = (
        Index("ix_watch_history_user_lastwatched", "user_id", "last_watched_at"),
    )
