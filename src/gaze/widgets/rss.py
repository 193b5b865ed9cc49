from __future__ import annotations

import logging
import re
from typing import Any, Callable

from .base import now_iso, parse_iso, to_iso

name = "rss"
title = "RSS Feed"

logger = logging.getLogger(__name__)

Entry = dict[str, Any]


def _enclosure_image(entry: Entry) -> str | None:
    for enc in entry.get("enclosures") or []:
        if str(enc.get("type", "")).startswith("image/") and enc.get("href"):
            return enc["href"]
    return None


def _itunes_image(entry: Entry) -> str | None:
    img = entry.get("image")
    if isinstance(img, dict):
        return img.get("href")
    return None


def _media_content(entry: Entry) -> str | None:
    for media in entry.get("media_content") or []:
        if media.get("url"):
            return media["url"]
    return None


def _media_thumbnail(entry: Entry) -> str | None:
    for thumb in entry.get("media_thumbnail") or []:
        if thumb.get("url"):
            return thumb["url"]
    return None


# Tried in order; the first rule that finds something wins.
IMAGE_RULES: tuple[tuple[str, Callable[[Entry], str | None]], ...] = (
    ("enclosure", _enclosure_image),
    ("itunes:image", _itunes_image),
    ("media:content", _media_content),
    ("media:thumbnail", _media_thumbnail),
)


def extract_image(entry: Entry, rules=IMAGE_RULES) -> str | None:
    for _, rule in rules:
        found = rule(entry)
        if found:
            return found
    return None


def strip_html(text: str) -> str:
    text = re.sub(r"<[^>]+>", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def _content(entry: Entry) -> str:
    for part in entry.get("content") or []:
        if part.get("value"):
            return part["value"]
    return ""


def _description(entry: Entry, field: str) -> str | None:
    if field == "content":
        text = _content(entry) or entry.get("summary", "")
    else:
        text = strip_html(entry.get("summary") or _content(entry))
    return text or None


def entry_date(entry: Entry) -> str | None:
    for key in ("published_parsed", "updated_parsed", "published", "updated"):
        iso = to_iso(entry.get(key))
        if iso:
            return iso
    return None


def normalize_entry(entry: Entry, description_field: str = "snippet") -> dict[str, Any]:
    return {
        "title": (entry.get("title") or "").strip() or "Untitled",
        "link": entry.get("link") or "#",
        "pub_date": entry_date(entry) or now_iso(),
        "description": _description(entry, description_field),
        "image": extract_image(entry),
    }


async def collect(cfg, client, registry=None) -> dict[str, Any]:
    logger.info("Fetching feed: %s", cfg.feed_url)
    fallback_title = cfg.title or title
    try:
        feed = await client.fetch_feed(cfg.feed_url)
        items = [normalize_entry(e, cfg.description_field) for e in feed.entries]
        if cfg.sort_by_date:
            items.sort(key=lambda i: parse_iso(i["pub_date"]), reverse=True)
        items = items[: cfg.limit]
        logger.info("Fetched %d items from %s", len(items), cfg.feed_url)
        return {
            "feed_title": feed.feed.get("title") or fallback_title,
            "items": items,
        }
    except Exception as e:
        logger.error("Failed to fetch %s: %s", cfg.feed_url, e)
        return {"feed_title": fallback_title, "items": []}
