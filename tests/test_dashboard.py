from __future__ import annotations

import asyncio
import json

import pytest

from gaze.config import Config, HackerNewsConfig, RSSConfig, SplitColumnConfig, WeatherConfig
from gaze.dashboard import collect_all, write_snapshot
from gaze.widgets import WidgetDefinition, build_registry, fetch_widget_data, split_column


async def _echo(cfg, client, registry):
    # Earlier widgets take longer so completion order is reversed.
    await asyncio.sleep(0.001 * len(cfg.title))
    return {"echo": cfg.title}


async def _boom(cfg, client, registry):
    raise RuntimeError("upstream down")


def _registry():
    return {
        **build_registry((split_column,)),
        "rss": WidgetDefinition(type="rss", fetcher=_echo),
        "weather": WidgetDefinition(type="weather", fetcher=_boom),
    }


def test_unknown_widget_is_marked_failed():
    result = asyncio.run(fetch_widget_data(HackerNewsConfig(title="HN"), _registry(), client=None))
    assert not result.ok
    assert result.error == "Unknown widget"


def test_split_column_keeps_order_and_isolates_failures():
    children = tuple(RSSConfig(title="x" * (10 - i), feed_url="u") for i in range(5))
    cfg = SplitColumnConfig(widgets=children[:2] + (WeatherConfig(title="Weather"),) + children[2:])

    result = asyncio.run(fetch_widget_data(cfg, _registry(), client=None))

    assert result.ok
    kids = result.data["child_widgets"]
    assert [k["ok"] for k in kids] == [True, True, False, True, True, True]
    assert [k["data"].get("echo") for k in kids] == [c.title for c in children[:2]] + [None] + [c.title for c in children[2:]]
    assert kids[2]["error"] == "upstream down"
    assert kids[2]["config"]["title"] == "Weather"
    assert result.data["max_columns"] == 2


def test_collect_all_preserves_layout(tmp_path):
    cfg = Config(raw={
        "concurrency": 2,
        "pages": [
            {
                "name": "Home",
                "headWidgets": [{"type": "rss", "title": "head", "feed_url": "u"}],
                "columns": [
                    {"size": "small", "widgets": [
                        {"type": "rss", "title": "aaaaaaaa", "feed_url": "u"},
                        {"type": "weather", "title": "Weather"},
                        {"type": "rss", "title": "a", "feed_url": "u"},
                    ]},
                    {"size": "full", "widgets": [
                        {"type": "lobsters", "title": "Lobsters"},
                    ]},
                ],
            },
        ],
    })
    registry = _registry()

    dash = asyncio.run(collect_all(cfg, registry, client=None))
    page = dash.pages[0]

    assert [w.title for w in page.head_widgets] == ["head"]
    assert [w.title for w in page.columns[0].widgets] == ["aaaaaaaa", "Weather", "a"]
    assert [w.ok for w in page.columns[0].widgets] == [True, False, True]
    assert page.columns[1].widgets[0].error == "Unknown widget"

    out = write_snapshot(dash.to_dict(registry), tmp_path / "dist" / "dashboard.json")
    doc = json.loads(out.read_text(encoding="utf-8"))
    assert doc["timestamp"]
    col = doc["pages"][0]["columns"][0]
    assert col["size"] == "small"
    assert col["widgets"][0]["data"] == {"echo": "aaaaaaaa"}
    assert col["widgets"][1]["ok"] is False


def test_registry_is_read_only():
    registry = build_registry()
    assert set(registry) == {"weather", "rss", "youtube", "lobsters", "hacker-news", "split-column"}
    assert registry["split-column"].frameless
    with pytest.raises(TypeError):
        registry["rss"] = None
