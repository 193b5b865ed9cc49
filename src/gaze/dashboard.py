from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Sequence

from .config import Config, Page, WidgetConfig
from .fanout import fan_out
from .http import HttpClient
from .widgets import Registry, WidgetResult, fetch_widget_data

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColumnData:
    size: str
    widgets: list[WidgetResult]


@dataclass(frozen=True)
class PageData:
    name: str
    slug: str
    width: str
    head_widgets: list[WidgetResult]
    columns: list[ColumnData]


@dataclass(frozen=True)
class DashboardData:
    pages: list[PageData]
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self, registry: Registry | None = None) -> dict[str, Any]:
        def widget(r: WidgetResult) -> dict[str, Any]:
            out = r.to_dict()
            definition = registry.get(r.name) if registry is not None else None
            out["frameless"] = bool(definition and definition.frameless)
            return out

        return {
            "timestamp": self.timestamp,
            "pages": [
                {
                    "name": p.name,
                    "slug": p.slug,
                    "width": p.width,
                    "head_widgets": [widget(w) for w in p.head_widgets],
                    "columns": [
                        {"size": c.size, "widgets": [widget(w) for w in c.widgets]}
                        for c in p.columns
                    ],
                }
                for p in self.pages
            ],
        }


def _failed(cfg: WidgetConfig, error: Exception) -> WidgetResult:
    return WidgetResult(
        name=cfg.type, title=cfg.title or cfg.type, data={}, ok=False, error=str(error), config=cfg,
    )


async def collect_widgets(
    configs: Sequence[WidgetConfig],
    registry: Registry,
    client: HttpClient,
    concurrency: int,
) -> list[WidgetResult]:
    results = await fan_out(
        [lambda c=c: fetch_widget_data(c, registry, client) for c in configs],
        concurrency=concurrency,
        on_error=lambda i, e: _failed(configs[i], e),
    )
    return [r.value for r in results]


async def collect_page(page: Page, registry: Registry, client: HttpClient, concurrency: int) -> PageData:
    # One flat fan-out per page; slices are cut back into head and columns afterwards.
    configs = list(page.head_widgets)
    bounds = []
    for col in page.columns:
        start = len(configs)
        configs.extend(col.widgets)
        bounds.append((start, len(configs)))

    results = await collect_widgets(configs, registry, client, concurrency)
    head = results[: len(page.head_widgets)]
    columns = [
        ColumnData(size=col.size, widgets=results[start:end])
        for col, (start, end) in zip(page.columns, bounds)
    ]
    failed = sum(1 for r in results if not r.ok)
    logger.info("Page %r: %d widgets, %d failed", page.name, len(results), failed)
    return PageData(name=page.name, slug=page.slug, width=page.width, head_widgets=head, columns=columns)


async def collect_all(cfg: Config, registry: Registry, client: HttpClient) -> DashboardData:
    pages = [await collect_page(p, registry, client, cfg.concurrency) for p in cfg.pages]
    return DashboardData(pages=pages)


def write_snapshot(payload: dict[str, Any], out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return out_path
