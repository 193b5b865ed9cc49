from __future__ import annotations

import logging
from typing import Any
from urllib.parse import parse_qs, urlparse

from ..fanout import SPLIT_COLUMN_CONCURRENCY, fan_out
from .base import now_iso, parse_iso
from .rss import entry_date

name = "youtube"
title = "YouTube"

logger = logging.getLogger(__name__)

FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"
THUMBNAIL_URL = "https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"


def video_id_from_link(link: str) -> str:
    if not link:
        return ""
    if "/shorts/" in link:
        return link.split("/shorts/", 1)[1].split("?", 1)[0].split("/", 1)[0]
    ids = parse_qs(urlparse(link).query).get("v")
    return ids[0] if ids else ""


def _thumbnail(entry: dict, video_id: str) -> str:
    for thumb in entry.get("media_thumbnail") or []:
        if thumb.get("url"):
            return thumb["url"]
    return THUMBNAIL_URL.format(video_id=video_id) if video_id else ""


def normalize_video(entry: dict, feed_title: str | None) -> dict[str, Any]:
    video_id = entry.get("yt_videoid") or video_id_from_link(entry.get("link", ""))
    return {
        "title": (entry.get("title") or "").strip() or "Untitled Video",
        "video_id": video_id,
        "channel_title": entry.get("author") or feed_title or "Unknown Channel",
        "thumbnail": _thumbnail(entry, video_id),
        "published_at": entry_date(entry) or now_iso(),
    }


async def _channel_videos(client, channel_id: str) -> list[dict[str, Any]]:
    feed = await client.fetch_feed(FEED_URL.format(channel_id=channel_id))
    feed_title = feed.feed.get("title")
    videos = [normalize_video(e, feed_title) for e in feed.entries]
    logger.info("Fetched %d videos from %s", len(videos), channel_id)
    return videos


async def collect(cfg, client, registry=None) -> dict[str, Any]:
    logger.info("Fetching videos from %d channels", len(cfg.channels))
    results = await fan_out(
        [lambda c=c: _channel_videos(client, c) for c in cfg.channels],
        concurrency=SPLIT_COLUMN_CONCURRENCY,
    )

    videos: list[dict[str, Any]] = []
    for channel_id, res in zip(cfg.channels, results):
        if res.ok:
            videos.extend(res.value)
        else:
            logger.error("Failed to fetch channel %s: %s", channel_id, res.error)

    videos.sort(key=lambda v: parse_iso(v["published_at"]), reverse=True)
    limited = videos[: cfg.limit]
    logger.info("Fetched %d videos total (from %d available)", len(limited), len(videos))
    return {"videos": limited}
