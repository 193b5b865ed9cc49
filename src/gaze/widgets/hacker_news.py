from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from ..fanout import HACKER_NEWS_CONCURRENCY, fan_out
from .base import extract_domain, parse_iso

name = "hacker-news"
title = "Hacker News"

logger = logging.getLogger(__name__)

API_URL = "https://hacker-news.firebaseio.com/v0"
COMMENTS_URL = "https://news.ycombinator.com/item?id={id}"
# Extra stories are fetched to cover failures and re-ranking.
FETCH_LIMIT = 40


def engagement(story: dict[str, Any], now: float | None = None) -> float:
    """Points plus double-weighted comments, decayed per six hours of age."""
    now = time.time() if now is None else now
    posted = parse_iso(story["time_posted"]).timestamp()
    age_hours = (now - posted) / 3600
    decay = max(1.0, age_hours / 6)
    return (story["score"] + story["comment_count"] * 2) / decay


def sort_by_engagement(stories: list[dict[str, Any]], now: float | None = None) -> list[dict[str, Any]]:
    now = time.time() if now is None else now
    return sorted(stories, key=lambda s: engagement(s, now), reverse=True)


def normalize_post(post: dict, comments_url_template: str = "") -> dict[str, Any]:
    if comments_url_template:
        comments_url = comments_url_template.replace("{POST-ID}", str(post["id"]))
    else:
        comments_url = COMMENTS_URL.format(id=post["id"])
    url = post.get("url") or ""
    return {
        "id": post["id"],
        "title": post.get("title", ""),
        # Ask HN / Show HN posts have no url of their own.
        "url": url or comments_url,
        "comments_url": comments_url,
        "domain": extract_domain(url),
        "score": post.get("score", 0),
        "comment_count": post.get("descendants") or 0,
        "time_posted": datetime.fromtimestamp(post.get("time") or 0, tz=timezone.utc).isoformat(),
    }


async def _fetch_post(client, post_id: int, comments_url_template: str) -> dict[str, Any] | None:
    post = await client.fetch_json(f"{API_URL}/item/{post_id}.json")
    # Deleted items come back as null.
    if not post:
        return None
    return normalize_post(post, comments_url_template)


async def fetch_posts(client, ids: list[int], comments_url_template: str = "") -> list[dict[str, Any]]:
    results = await fan_out(
        [lambda i=i: _fetch_post(client, i, comments_url_template) for i in ids],
        concurrency=HACKER_NEWS_CONCURRENCY,
    )
    stories = []
    for post_id, res in zip(ids, results):
        if not res.ok:
            logger.error("Failed to fetch post %s: %s", post_id, res.error)
        elif res.value is not None:
            stories.append(res.value)
    return stories


async def collect(cfg, client, registry=None) -> dict[str, Any]:
    logger.info("Fetching %s stories", cfg.sort_by)
    try:
        ids = await client.fetch_json(f"{API_URL}/{cfg.sort_by}stories.json")
        stories = await fetch_posts(client, list(ids)[:FETCH_LIMIT], cfg.comments_url_template)
    except Exception as e:
        logger.error("Failed to fetch stories: %s", e)
        return {"stories": []}

    if not stories:
        logger.warning("No stories fetched")
        return {"stories": []}

    if cfg.extra_sort_by == "engagement":
        stories = sort_by_engagement(stories)

    stories = stories[: cfg.limit]
    logger.info("Fetched %d stories", len(stories))
    return {"stories": stories}
