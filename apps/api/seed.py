#!/usr/bin/env python3
"""Load demo channels, videos and interactions into the configured database.

Run from apps/api: ``python seed.py --reset``. Every account gets the
password ``password123``.
"""
from __future__ import annotations

import argparse
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple
from urllib.parse import quote

from sqlalchemy.orm import Session

from auth import hash_password
from models import (
    Base,
    LIKE,
    Subscription,
    User,
    Video,
    VideoReaction,
    VideoTag,
    WatchHistory,
    normalize_category,
)

log = logging.getLogger("seed")

DEMO_PASSWORD = "password123"

SAMPLE_USERS = [
    ("techguru", "tech@example.com", "Tech Guru", "Technology reviews and tutorials"),
    ("gamerpro", "gamer@example.com", "Pro Gamer", "Gaming walkthroughs and reviews"),
    ("musiclover", "music@example.com", "Music Vibes", "Music covers and originals"),
    ("travelvlog", "travel@example.com", "Travel Explorer", "Travel vlogs from around the world"),
    ("cookingtips", "cooking@example.com", "Chef's Kitchen", "Cooking recipes and tips"),
    ("fitnesscoach", "fitness@example.com", "Fitness Hub", "Workout routines and health tips"),
    ("artcreator", "art@example.com", "Art Studio", "Digital art tutorials"),
    ("sciencefacts", "science@example.com", "Science Daily", "Interesting science facts"),
    ("comedycentral", "comedy@example.com", "Laugh Factory", "Comedy sketches and stand-up"),
    ("newsupdates", "news@example.com", "News Flash", "Latest news and updates"),
]

SampleVideo = Tuple[str, str, str, Tuple[str, ...]]

SAMPLE_VIDEOS: List[SampleVideo] = [
    ("Building a Full Stack App", "Complete guide to building modern web applications", "Technology", ("programming", "tutorial", "web dev")),
    ("React Best Practices", "Learn the latest React patterns and practices", "Technology", ("react", "javascript", "frontend")),
    ("AI Tools That Will Change Everything", "Exploring the latest AI innovations", "Technology", ("ai", "tools", "future")),
    ("Cloud Computing Explained", "Understanding cloud platforms and services", "Technology", ("cloud", "aws", "devops")),
    ("Top 10 Games of the Year", "The best games released this year", "Gaming", ("gaming", "reviews", "top10")),
    ("Speedrun World Record Attempt", "Attempting to break the speedrun record", "Gaming", ("speedrun", "gaming", "challenge")),
    ("Gaming Setup Tour", "My complete gaming setup revealed", "Gaming", ("setup", "gaming", "tech")),
    ("Indie Games You Must Play", "Hidden gem indie games worth your time", "Gaming", ("indie", "gaming", "recommendations")),
    ("Learn Guitar in 30 Days", "Complete beginner guitar course", "Music", ("guitar", "tutorial", "music")),
    ("Top Songs of the Month", "The hottest tracks right now", "Music", ("music", "playlist", "trending")),
    ("Music Production Tips", "How to produce professional sounding music", "Music", ("production", "daw", "tutorial")),
    ("Classical Music for Focus", "2 hours of relaxing classical music", "Music", ("classical", "study", "relaxing")),
    ("Python Programming for Beginners", "Start your coding journey with Python", "Education", ("python", "programming", "tutorial")),
    ("Math Made Easy: Calculus", "Understanding calculus concepts simply", "Education", ("math", "calculus", "education")),
    ("History of Ancient Rome", "Exploring the Roman Empire", "Education", ("history", "rome", "documentary")),
    ("Science Experiments at Home", "Fun experiments you can do at home", "Education", ("science", "experiments", "fun")),
    ("Exploring Tokyo Japan", "A week in Tokyo - travel vlog", "Travel", ("japan", "travel", "vlog")),
    ("Budget Travel Tips Europe", "How to travel Europe on a budget", "Travel", ("travel", "budget", "europe")),
    ("Best Beaches in Thailand", "Top beach destinations in Thailand", "Travel", ("thailand", "beach", "travel")),
    ("Solo Travel Guide", "Everything you need to know about solo travel", "Travel", ("solo", "travel", "tips")),
    ("Movie Reviews: Latest Releases", "Reviewing the newest movies", "Entertainment", ("movies", "reviews", "entertainment")),
    ("Stand Up Comedy Special", "Full stand-up comedy show", "Entertainment", ("comedy", "standup", "funny")),
    ("Celebrity Interviews", "Exclusive celebrity conversations", "Entertainment", ("celebrity", "interview", "entertainment")),
    ("Magic Tricks Revealed", "Learn amazing magic tricks", "Entertainment", ("magic", "tricks", "tutorial")),
    ("Best Football Goals", "Top goals from this season", "Sports", ("football", "goals", "highlights")),
    ("Basketball Training Drills", "Improve your basketball skills", "Sports", ("basketball", "training", "sports")),
    ("Extreme Sports Compilation", "The most extreme sports moments", "Sports", ("extreme", "sports", "action")),
    ("Yoga for Beginners", "Start your yoga journey", "Sports", ("yoga", "fitness", "wellness")),
    ("A Day in My Life", "Come spend the day with me", "Vlog", ("vlog", "daily", "lifestyle")),
    ("Morning Routine", "My productive morning routine", "Vlog", ("morning", "routine", "productivity")),
    ("Weekly Vlog #47", "What I did this week", "Vlog", ("weekly", "vlog", "life")),
    ("Moving to a New City", "My moving experience and tips", "Vlog", ("moving", "vlog", "life")),
]

SAMPLE_THUMBNAILS = [
    "https://images.unsplash.com/photo-1498050108023-c5249f4df085?w=400",
    "https://images.unsplash.com/photo-1511512578047-dfb367046420?w=400",
    "https://images.unsplash.com/photo-1496065187959-7f07b8353c55?w=400",
    "https://images.unsplash.com/photo-1542831371-29b0f74f9713?w=400",
    "https://images.unsplash.com/photo-1470225620780-dba8ba36b745?w=400",
    "https://images.unsplash.com/photo-1551434678-e076c223a692?w=400",
    "https://images.unsplash.com/photo-1493711662062-fa541adb3fc8?w=400",
    "https://images.unsplash.com/photo-1492619375914-88005aa9e8fb?w=400",
]

SAMPLE_VIDEO_URLS = [
    "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/BigBuckBunny.mp4",
    "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ElephantsDream.mp4",
    "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4",
    "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerEscapes.mp4",
]


@dataclass
class SeedSummary:
    users: int = 0
    videos: int = 0
    subscriptions: int = 0
    reactions: int = 0
    history: int = 0


def clear_data(db: Session) -> None:
    # Children first; SQLite does not enforce ON DELETE CASCADE by default
    for model in (WatchHistory, VideoReaction, VideoTag, Video, Subscription, User):
        db.query(model).delete(synchronize_session=False)
    db.commit()


def _avatar_url(channel_name: str) -> str:
    return f"https://ui-avatars.com/api/?name={quote(channel_name)}&background=random&size=200"


def seed_database(
    db: Session,
    rng: random.Random,
    now: Optional[datetime] = None,
    password_hash: Optional[str] = None,
    sample_videos: Sequence[SampleVideo] = SAMPLE_VIDEOS,
) -> SeedSummary:
    now = now or datetime.now(timezone.utc)
    pw_hash = password_hash or hash_password(DEMO_PASSWORD)
    summary = SeedSummary()

    users: List[User] = []
    for username, email, channel_name, description in SAMPLE_USERS:
        user = User(
            username=username,
            email=email,
            password_hash=pw_hash,
            channel_name=channel_name,
            channel_description=description,
            avatar_ref=_avatar_url(channel_name),
            created_at=now - timedelta(days=365),
        )
        db.add(user)
        users.append(user)
    db.flush()
    summary.users = len(users)

    pairs = set()
    for i, user in enumerate(users):
        for _ in range(rng.randint(2, 6)):
            j = rng.randrange(len(users))
            if j != i:
                pairs.add((user.id, users[j].id))
    for subscriber_id, channel_id in sorted(pairs, key=lambda p: (str(p[0]), str(p[1]))):
        db.add(Subscription(subscriber_id=subscriber_id, channel_id=channel_id))
    summary.subscriptions = len(pairs)

    videos: List[Video] = []
    for title, description, category, tags in sample_videos:
        created = now - timedelta(days=rng.randrange(180), hours=rng.randrange(24))
        video = Video(
            user_id=rng.choice(users).id,
            title=title,
            description=description,
            category=normalize_category(category),
            video_ref=rng.choice(SAMPLE_VIDEO_URLS),
            thumbnail_ref=rng.choice(SAMPLE_THUMBNAILS),
            duration_seconds=float(rng.randint(60, 1259)),
            views=rng.randrange(100000),
            is_published=True,
            created_at=created,
            updated_at=created,
        )
        video.tags = [VideoTag(tag=t) for t in tags]
        db.add(video)
        videos.append(video)
    db.flush()
    summary.videos = len(videos)

    for video in videos:
        likers = {rng.choice(users).id for _ in range(rng.randint(0, len(users)))}
        for user_id in likers:
            db.add(VideoReaction(user_id=user_id, video_id=video.id, value=LIKE))
        summary.reactions += len(likers)

    for user in users:
        watched = rng.sample(videos, k=min(len(videos), rng.randint(3, 8)))
        for offset, video in enumerate(watched):
            db.add(
                WatchHistory(
                    user_id=user.id,
                    video_id=video.id,
                    last_position_seconds=float(rng.randint(0, int(video.duration_seconds))),
                    watched_seconds=float(rng.randint(30, int(video.duration_seconds))),
                    last_watched_at=now - timedelta(hours=offset * 6 + 1),
                )
            )
        summary.history += len(watched)

    db.commit()
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Seed the database with demo data.")
    parser.add_argument("--reset", action="store_true", help="Delete existing rows first.")
    parser.add_argument("--create-tables", action="store_true", help="Create tables without running migrations.")
    parser.add_argument("--random-seed", type=int, default=None, help="Seed for reproducible data.")
    args = parser.parse_args(argv)

    from config import settings
    from db import SessionLocal, engine

    logging.basicConfig(level=settings.log_level, format="%(levelname)s %(name)s %(message)s")

    if args.create_tables:
        Base.metadata.create_all(engine)

    db = SessionLocal()
    try:
        if args.reset:
            clear_data(db)
            log.info("seed_cleared")
        summary = seed_database(db, random.Random(args.random_seed))
    finally:
        db.close()

    log.info(
        "seed_done users=%d videos=%d subscriptions=%d reactions=%d history=%d",
        summary.users, summary.videos, summary.subscriptions, summary.reactions, summary.history,
    )
    log.info("seed_login password=%s sample=%s", DEMO_PASSWORD, ", ".join(u[1] for u in SAMPLE_USERS[:5]))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
