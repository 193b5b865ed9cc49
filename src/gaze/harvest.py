"""Raw data snapshot.

Fetches each configured JSON source once and stores the responses, untouched,
in a single document for the site build to pick up::

    {"timestamp": "...", "data": {"<source>": <payload>, ...}}
"""
from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

from .config import HarvestSource
from .errors import ConfigError
from .http import HttpClient

logger = logging.getLogger(__name__)


def validate_snapshot(snapshot: Any) -> dict[str, Any]:
    if not isinstance(snapshot, dict):
        raise ConfigError("snapshot must be a mapping")
    if not isinstance(snapshot.get("timestamp"), str):
        raise ConfigError("snapshot.timestamp must be a string")
    if not isinstance(snapshot.get("data"), dict):
        raise ConfigError("snapshot.data must be a mapping")
    return snapshot


async def harvest(sources: Mapping[str, HarvestSource], client: HttpClient) -> dict[str, Any]:
    timestamp = datetime.now(timezone.utc).isoformat()
    collected: dict[str, Any] = {}

    for name, src in sources.items():
        logger.info("Fetching data from %s", name)
        try:
            collected[name] = await client.fetch_json(src.url, headers=src.headers)
        except Exception as e:
            logger.warning("Skipping %s due to error: %s", name, e)
            continue
        logger.info("Fetched %s", name)

    if not collected:
        logger.info("No data sources produced data, writing placeholder")
        collected["placeholder"] = {
            "message": "Add your API endpoints under harvest.sources in config.yaml",
            "timestamp": timestamp,
        }

    return validate_snapshot({"timestamp": timestamp, "data": collected})


def save_snapshot(snapshot: dict[str, Any], out_path: Path) -> Path:
    validate_snapshot(snapshot)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(snapshot, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Snapshot saved to %s", out_path)
    return out_path
