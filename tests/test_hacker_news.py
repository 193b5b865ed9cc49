from __future__ import annotations

import asyncio
import re
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from gaze.config import HackerNewsConfig
from gaze.widgets import hacker_news

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _story(score, comments, age_hours):
    posted = NOW - timedelta(hours=age_hours)
    return {"score": score, "comment_count": comments, "time_posted": posted.isoformat()}


def test_engagement_formula():
    now = NOW.timestamp()
    assert hacker_news.engagement(_story(100, 10, 1), now) == pytest.approx(120)
    assert hacker_news.engagement(_story(100, 10, 6), now) == pytest.approx(120)
    assert hacker_news.engagement(_story(100, 10, 12), now) == pytest.approx(60)
    assert hacker_news.engagement(_story(100, 10, 24), now) == pytest.approx(30)


def test_younger_story_ranks_higher():
    old, young = _story(50, 5, 30), _story(50, 5, 8)
    ranked = hacker_news.sort_by_engagement([old, young], NOW.timestamp())
    assert ranked == [young, old]


def test_engagement_decays_smoothly_without_hitting_zero():
    now = NOW.timestamp()
    values = [hacker_news.engagement(_story(10, 1, h), now) for h in range(6, 24 * 365, 6)]
    assert all(v > 0 for v in values)
    assert all(a > b for a, b in zip(values, values[1:]))
    # no jump at the point where decay starts
    assert hacker_news.engagement(_story(10, 1, 6.01), now) == pytest.approx(12, rel=1e-2)


def test_comments_url_template():
    post = {"id": 42, "title": "Ask HN", "score": 1, "time": 0}
    story = hacker_news.normalize_post(post, "https://hn.example/{POST-ID}")
    assert story["comments_url"] == "https://hn.example/42"
    assert story["url"] == "https://hn.example/42"
    assert story["domain"] == ""


def _hn_handler(requested):
    def handler(request):
        path = request.url.path
        if path.endswith("topstories.json"):
            return httpx.Response(200, json=list(range(1, 51)))
        m = re.search(r"/item/(\d+)\.json$", path)
        post_id = int(m.group(1))
        requested.append(post_id)
        if post_id == 3:
            return httpx.Response(404)
        if post_id == 5:
            return httpx.Response(200, json=None)
        posted = NOW - timedelta(hours=post_id)
        return httpx.Response(200, json={
            "id": post_id,
            "title": f"Story {post_id}",
            "url": f"https://www.site{post_id}.com/post",
            "score": post_id * 10,
            "descendants": post_id,
            "time": int(posted.timestamp()),
        })
    return handler


def test_collect_keeps_native_order_and_drops_failures(make_client):
    requested = []
    client = make_client(_hn_handler(requested))
    cfg = HackerNewsConfig(limit=5)

    data = asyncio.run(hacker_news.collect(cfg, client))

    assert sorted(requested) == list(range(1, 41))
    assert [s["id"] for s in data["stories"]] == [1, 2, 4, 6, 7]
    first = data["stories"][0]
    assert first["domain"] == "site1.com"
    assert first["comments_url"] == "https://news.ycombinator.com/item?id=1"
    assert first["comment_count"] == 1


def test_collect_engagement_sort(make_client):
    client = make_client(_hn_handler([]))
    cfg = HackerNewsConfig(limit=40, extra_sort_by="engagement")

    stories = asyncio.run(hacker_news.collect(cfg, client))["stories"]

    scores = [hacker_news.engagement(s) for s in stories]
    assert scores == sorted(scores, reverse=True)
    assert len(stories) == 38


def test_collect_returns_empty_when_ids_fail(make_client):
    client = make_client(lambda request: httpx.Response(404))
    assert asyncio.run(hacker_news.collect(HackerNewsConfig(), client)) == {"stories": []}


def test_malformed_item_is_dropped_alone(make_client):
    items = {
        1: {"id": 1, "title": "One", "score": 5, "time": int(NOW.timestamp())},
        2: {"id": 2, "title": "No time", "time": None},
        3: "not an item",
        4: {"id": 4, "title": "Four", "score": 1, "time": int(NOW.timestamp())},
    }

    def handler(request):
        if request.url.path.endswith("topstories.json"):
            return httpx.Response(200, json=list(items))
        post_id = int(re.search(r"/item/(\d+)\.json$", request.url.path).group(1))
        return httpx.Response(200, json=items[post_id])

    stories = asyncio.run(hacker_news.collect(HackerNewsConfig(), make_client(handler)))["stories"]

    assert [s["id"] for s in stories] == [1, 2, 4]
    assert stories[1]["time_posted"] == "1970-01-01T00:00:00+00:00"
