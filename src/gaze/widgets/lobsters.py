from __future__ import annotations

import logging
from typing import Any

from .base import extract_domain

name = "lobsters"
title = "Lobsters"

logger = logging.getLogger(__name__)


def build_feed_url(cfg) -> str:
    if cfg.custom_url:
        return cfg.custom_url
    instance = (cfg.instance_url or "https://lobste.rs/").rstrip("/") + "/"
    if cfg.tags:
        return f"{instance}t/{','.join(cfg.tags)}.json"
    # The API names sort orders hottest/newest.
    sort = "newest" if cfg.sort_by == "new" else "hottest"
    return f"{instance}{sort}.json"


def normalize_story(post: dict) -> dict[str, Any]:
    url = post.get("url") or ""
    return {
        "title": post.get("title", ""),
        "url": url or post.get("comments_url", ""),
        "comments_url": post.get("comments_url", ""),
        "domain": extract_domain(url),
        "score": post.get("score", 0),
        "comment_count": post.get("comment_count", 0),
        "time_posted": post.get("created_at", ""),
        "tags": list(post.get("tags") or []),
    }


async def collect(cfg, client, registry=None) -> dict[str, Any]:
    feed_url = build_feed_url(cfg)
    logger.info("Fetching from: %s", feed_url)
    try:
        posts = await client.fetch_json(feed_url, headers={"Accept": "application/json"})
        stories = [normalize_story(p) for p in posts][: cfg.limit]
    except Exception as e:
        logger.error("Failed to fetch from %s: %s", feed_url, e)
        return {"stories": []}
    logger.info("Fetched %d stories", len(stories))
    return {"stories": stories}
