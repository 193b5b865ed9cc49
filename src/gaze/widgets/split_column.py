from __future__ import annotations

import logging
from typing import Any

from ..fanout import SPLIT_COLUMN_CONCURRENCY, fan_out
from .base import WidgetResult, fetch_widget_data

name = "split-column"
title = ""
frameless = True

logger = logging.getLogger(__name__)


def _placeholder(child) -> WidgetResult:
    return WidgetResult(
        name=child.type, title=child.title or child.type, data={}, ok=False,
        error="Failed to fetch", config=child,
    )


async def collect(cfg, client, registry) -> dict[str, Any]:
    children = list(cfg.widgets)
    if not children:
        logger.warning("No child widgets configured")
        return {"child_widgets": [], "max_columns": cfg.max_columns}

    logger.info("Fetching data for %d child widgets", len(children))
    results = await fan_out(
        [lambda c=c: fetch_widget_data(c, registry, client) for c in children],
        concurrency=SPLIT_COLUMN_CONCURRENCY,
        on_error=lambda i, e: _placeholder(children[i]),
    )
    logger.info("Fetched %d child widgets", len(results))
    return {
        "child_widgets": [r.value.to_dict() for r in results],
        "max_columns": cfg.max_columns,
    }
