"""HTTP-level tests: status mapping, response shapes and auth/CSRF wiring."""

from __future__ import annotations

import uuid
from unittest.mock import patch

from fastapi import HTTPException
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from factories import DbTestCase

import main
import recommendations
from catalog import store_read
from config import settings
from db import get_db
from session import get_current_user, get_optional_user


class RouteTestCase(DbTestCase):
    """Serve the app against the test session with a switchable current user."""

    def setUp(self) -> None:
        """Install dependency overrides; no lifespan, so startup tasks do not run."""
        super().setUp()
        self.user = None

        def _db():
            yield self.db

        main.app.dependency_overrides[get_db] = _db
        main.app.dependency_overrides[get_current_user] = self._current_user
        main.app.dependency_overrides[get_optional_user] = lambda: self.user
        self.client = TestClient(main.app)

    def tearDown(self) -> None:
        """Drop overrides so other test modules see the real dependencies."""
        main.app.dependency_overrides.clear()
        super().tearDown()

    def _current_user(self):
        if self.user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return self.user

    def csrf_headers(self) -> dict:
        token = self.client.get("/auth/csrf").json()["csrf"]
        return {"x-csrf-token": token}


class VideoRouteTests(RouteTestCase):
    """Listing, search, detail and counters."""

    def test_listing_shape_and_order(self) -> None:
        """Category + popular sort with the page envelope."""
        owner = self.make_user()
        for views in (100, 5000, 50):
            self.make_video(owner, category="Music", views=views)

        resp = self.client.get("/videos", params={"category": "Music", "sortBy": "popular"})

        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual([v["views"] for v in body["videos"]], [5000, 100, 50])
        self.assertEqual((body["totalPages"], body["currentPage"], body["totalVideos"]), (1, 1, 3))

    def test_unknown_filter_values_are_400(self) -> None:
        """Validation errors surface as 400 with a detail message."""
        for params in ({"category": "Cooking"}, {"sortBy": "random"}, {"uploadDate": "decade"}):
            with self.subTest(params=params):
                resp = self.client.get("/videos", params=params)
                self.assertEqual(resp.status_code, 400)
                self.assertIn("detail", resp.json())

    def test_search_requires_query(self) -> None:
        """The search endpoint refuses an empty query; listing does not."""
        self.assertEqual(self.client.get("/videos/search").status_code, 400)
        self.assertEqual(self.client.get("/videos", params={"search": ""}).status_code, 200)

    def test_search_echoes_query(self) -> None:
        """Search responses carry the trimmed query."""
        owner = self.make_user()
        self.make_video(owner, title="Guitar basics")

        body = self.client.get("/videos/search", params={"q": " guitar "}).json()

        self.assertEqual(body["query"], "guitar")
        self.assertEqual(body["totalVideos"], 1)

    def test_detail_status_codes(self) -> None:
        """Malformed id 400, unknown 404, unpublished 404, published 200."""
        owner = self.make_user()
        fan = self.make_user()
        live = self.make_video(owner, tags=("js",))
        hidden = self.make_video(owner, published=False)
        self.subscribe(fan, owner)
        self.react(fan, live)

        self.assertEqual(self.client.get("/videos/not-a-uuid").status_code, 400)
        self.assertEqual(self.client.get(f"/videos/{uuid.uuid4()}").status_code, 404)
        self.assertEqual(self.client.get(f"/videos/{hidden.id}").status_code, 404)

        resp = self.client.get(f"/videos/{live.id}")
        self.assertEqual(resp.status_code, 200)
        video = resp.json()["video"]
        self.assertEqual(video["likes"], 1)
        self.assertEqual(video["tags"], ["js"])
        self.assertEqual(video["uploader_subscribers"], 1)

    def test_view_counter(self) -> None:
        """Each view call adds one."""
        video = self.make_video(self.make_user(), views=41)

        resp = self.client.put(f"/videos/{video.id}/view")

        self.assertEqual(resp.json(), {"views": 42})
        self.assertEqual(self.client.put(f"/videos/{uuid.uuid4()}/view").status_code, 404)

    def test_reactions_need_csrf_and_stay_exclusive(self) -> None:
        """Like then dislike leaves only the dislike."""
        self.user = self.make_user()
        video = self.make_video(self.make_user())

        self.assertEqual(self.client.put(f"/videos/{video.id}/like").status_code, 403)

        headers = self.csrf_headers()
        liked = self.client.put(f"/videos/{video.id}/like", headers=headers).json()
        disliked = self.client.put(f"/videos/{video.id}/dislike", headers=headers).json()

        self.assertEqual(liked, {"active": True, "likes": 1, "dislikes": 0})
        self.assertEqual(disliked, {"active": True, "likes": 0, "dislikes": 1})

    def test_channel_videos(self) -> None:
        """Uploader listing shows published videos only."""
        owner = self.make_user()
        self.make_video(owner)
        self.make_video(owner, published=False)

        body = self.client.get(f"/videos/user/{owner.id}").json()

        self.assertEqual(body["count"], 1)


class RecommendationRouteTests(RouteTestCase):
    """Feed, related videos and channel suggestions over HTTP."""

    def test_anonymous_feed_falls_back_to_public(self) -> None:
        """No session means the most-viewed list."""
        owner = self.make_user()
        for views in (10, 30, 20):
            self.make_video(owner, views=views)

        body = self.client.get("/recommendations", params={"limit": 2}).json()

        self.assertEqual([v["views"] for v in body["recommendations"]], [30, 20])
        self.assertEqual(body["count"], 2)

    def test_signed_in_feed_honours_exclude(self) -> None:
        """The exclude parameter drops one video from the personalized feed."""
        self.user = self.make_user()
        owner = self.make_user()
        videos = [self.make_video(owner, views=i) for i in range(5)]

        body = self.client.get(
            "/recommendations", params={"limit": 5, "exclude": str(videos[-1].id)}
        ).json()

        ids = [v["id"] for v in body["recommendations"]]
        self.assertNotIn(str(videos[-1].id), ids)
        self.assertEqual(len(ids), 4)

    def test_malformed_exclude_is_400(self) -> None:
        """exclude must be a video id."""
        self.user = self.make_user()
        resp = self.client.get("/recommendations", params={"exclude": "nope"})
        self.assertEqual(resp.status_code, 400)

    def test_similar_status_and_shape(self) -> None:
        """Unknown seed 404; known seed lists related videos."""
        owner = self.make_user()
        seed = self.make_video(owner, category="Gaming")
        related = self.make_video(owner, category="Travel")

        self.assertEqual(
            self.client.get(f"/recommendations/similar/{uuid.uuid4()}").status_code, 404
        )
        body = self.client.get(f"/recommendations/similar/{seed.id}").json()
        self.assertEqual([v["id"] for v in body["similar"]], [str(related.id)])

    def test_channel_suggestions_require_login(self) -> None:
        """Anonymous callers get 401; signed-in callers get channels."""
        self.assertEqual(self.client.get("/recommendations/channels").status_code, 401)

        self.user = self.make_user()
        other = self.make_user()
        body = self.client.get("/recommendations/channels").json()
        self.assertEqual([c["id"] for c in body["channels"]], [str(other.id)])

    def test_failed_stage_read_fails_the_whole_feed(self) -> None:
        """A store error in one stage is a 500, never a partial feed."""
        self.user = self.make_user()
        owner = self.make_user()
        for views in range(6):
            self.make_video(owner, views=views)
        original = recommendations._take

        def failing_take(stage, q, excluded, quota):
            if stage == recommendations.STAGE_TRENDING:
                with store_read(f"recommendations_{stage}"):
                    raise OperationalError("SELECT 1", {}, Exception("statement timeout"))
            return original(stage, q, excluded, quota)

        with patch.object(recommendations, "_take", failing_take):
            resp = self.client.get("/recommendations", params={"limit": 10})

        self.assertEqual(resp.status_code, 500)
        body = resp.json()
        self.assertEqual(body["detail"], "Store query failed: recommendations_trending")
        self.assertNotIn("recommendations", body)

    def test_signed_in_feed_validates_category(self) -> None:
        """category does not filter the personalized feed but must still be known."""
        self.user = self.make_user()
        owner = self.make_user()
        self.make_video(owner, category="Gaming")

        self.assertEqual(
            self.client.get("/recommendations", params={"category": "Cooking"}).status_code, 400
        )
        body = self.client.get("/recommendations", params={"category": "Music"}).json()
        self.assertEqual(body["count"], 1)

    def test_unpublished_seed_has_no_similar_videos(self) -> None:
        """A hidden seed is 404 here just as it is on the video page."""
        owner = self.make_user()
        hidden = self.make_video(owner, category="Gaming", published=False)
        self.make_video(owner, category="Gaming")

        self.assertEqual(self.client.get(f"/videos/{hidden.id}").status_code, 404)
        self.assertEqual(
            self.client.get(f"/recommendations/similar/{hidden.id}").status_code, 404
        )

    def test_limit_above_page_cap_is_rejected_everywhere(self) -> None:
        """Every list endpoint answers 422 past the page cap instead of clamping."""
        self.user = self.make_user()
        cap = settings.max_page_size
        seed = self.make_video(self.make_user())
        paths = (
            "/videos",
            "/videos/trending",
            "/recommendations",
            "/recommendations/public",
            f"/recommendations/similar/{seed.id}",
            "/recommendations/channels",
            "/history",
        )
        for path in paths:
            with self.subTest(path=path):
                self.assertEqual(self.client.get(path, params={"limit": cap + 1}).status_code, 422)
                self.assertEqual(self.client.get(path, params={"limit": cap}).status_code, 200)
        resp = self.client.get("/videos/search", params={"q": "video", "limit": cap + 1})
        self.assertEqual(resp.status_code, 422)


class ChannelAndHistoryRouteTests(RouteTestCase):
    """Subscriptions and watch history endpoints."""

    def test_channel_lookup(self) -> None:
        """Known channels return their summary; unknown ones 404."""
        channel = self.make_user(channel_name="Science Daily")

        body = self.client.get(f"/users/{channel.id}").json()

        self.assertEqual(body["channel_name"], "Science Daily")
        self.assertEqual(body["subscriber_count"], 0)
        self.assertEqual(self.client.get(f"/users/{uuid.uuid4()}").status_code, 404)

    def test_subscribe_toggle(self) -> None:
        """Two posts subscribe then unsubscribe; self-subscription is 400."""
        self.user = self.make_user()
        channel = self.make_user()
        headers = self.csrf_headers()

        first = self.client.post(f"/users/{channel.id}/subscribe", headers=headers).json()
        second = self.client.post(f"/users/{channel.id}/subscribe", headers=headers).json()
        own = self.client.post(f"/users/{self.user.id}/subscribe", headers=headers)

        self.assertEqual(first, {"subscribed": True, "subscriber_count": 1})
        self.assertEqual(second, {"subscribed": False, "subscriber_count": 0})
        self.assertEqual(own.status_code, 400)

    def test_heartbeat_then_list(self) -> None:
        """A heartbeat creates a history entry with progress."""
        self.user = self.make_user()
        video = self.make_video(self.make_user(), duration=200.0)
        headers = self.csrf_headers()

        resp = self.client.post(
            "/history/heartbeat",
            json={"video_id": str(video.id), "position_seconds": 50, "watched_seconds": 50},
            headers=headers,
        )
        self.assertEqual(resp.status_code, 200)

        items = self.client.get("/history").json()["items"]
        self.assertEqual(len(items), 1)
        self.assertEqual(items[0]["video"]["id"], str(video.id))
        self.assertEqual(items[0]["progress_percent"], 25.0)

        self.client.delete("/history", headers=headers)
        self.assertEqual(self.client.get("/history").json()["items"], [])


class HealthRouteTests(RouteTestCase):
    """Overall health tracks the required backends only."""

    def test_storage_failure_does_not_fail_health(self) -> None:
        """Object storage is optional; the database and cache are not."""
        with (
            patch("health.db_healthcheck", return_value=None),
            patch("health.cache_healthcheck", return_value=True),
            patch("health.storage_client", side_effect=RuntimeError("down")),
        ):
            body = self.client.get("/healthz").json()

        self.assertTrue(body["ok"])
        self.assertEqual(body["checks"]["object_storage"]["error"], "down")

    def test_cache_failure_fails_health(self) -> None:
        """A failed Redis ping marks the service unhealthy."""
        with (
            patch("health.db_healthcheck", return_value=None),
            patch("health.cache_healthcheck", return_value=False),
        ):
            body = self.client.get("/healthz", params={"include_optional": "false"}).json()

        self.assertFalse(body["ok"])
        self.assertTrue(body["checks"]["object_storage"]["skipped"])
