"""Tests for shared catalog reads and error translation."""

from __future__ import annotations

import unittest
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import OperationalError

from factories import DbTestCase

from catalog import as_utc, parse_id, reaction_counts, store_read, videos_by_uploader
from errors import StoreQueryError, ValidationError
from models import DISLIKE


class StoreReadTests(unittest.TestCase):
    """Driver failures surface as StoreQueryError."""

    def test_sqlalchemy_errors_are_wrapped(self) -> None:
        """The failing operation name is kept on the error."""
        with self.assertRaises(StoreQueryError) as ctx:
            with store_read("list_videos"):
                raise OperationalError("SELECT 1", {}, Exception("canceling statement due to statement timeout"))
        self.assertEqual(ctx.exception.operation, "list_videos")
        self.assertEqual(ctx.exception.status_code, 500)

    def test_other_errors_pass_through(self) -> None:
        """Only store errors are translated."""
        with self.assertRaises(KeyError):
            with store_read("noop"):
                raise KeyError("x")


class HelperTests(unittest.TestCase):
    """Id parsing and timestamp normalization."""

    def test_parse_id(self) -> None:
        """UUID strings parse; anything else is a validation error."""
        value = uuid.uuid4()
        self.assertEqual(parse_id(str(value)), value)
        self.assertIs(parse_id(value), value)
        for bad in ("", "abc", None):
            with self.assertRaises(ValidationError):
                parse_id(bad)

    def test_as_utc(self) -> None:
        """Naive values are read as UTC."""
        naive = datetime(2026, 1, 1, 12, 0)
        self.assertEqual(as_utc(naive).tzinfo, timezone.utc)
        self.assertIsNone(as_utc(None))


class CatalogQueryTests(DbTestCase):
    """Batched counts and uploader listings."""

    def test_reaction_counts_per_video(self) -> None:
        """Likes and dislikes are counted per video; unreacted videos are absent."""
        owner = self.make_user()
        a = self.make_video(owner)
        b = self.make_video(owner)
        fans = [self.make_user() for _ in range(3)]
        self.react(fans[0], a)
        self.react(fans[1], a)
        self.react(fans[2], a, DISLIKE)

        counts = reaction_counts(self.db, [a.id, b.id])

        self.assertEqual(counts, {a.id: (2, 1)})

    def test_videos_by_uploader_rejects_bad_id(self) -> None:
        """Channel ids must be UUIDs."""
        with self.assertRaises(ValidationError):
            videos_by_uploader(self.db, "nope")
