from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Union

import yaml

from .errors import ConfigError

COLUMN_SIZES = ("small", "full")
PAGE_WIDTHS = ("default", "wide", "slim")


def _expand(path: str) -> str:
    return os.path.expanduser(os.path.expandvars(path))


def _get(raw: dict, key: str, default: Any = None) -> Any:
    """Look up ``key`` in snake_case, falling back to its camelCase spelling."""
    if key in raw:
        return raw[key]
    camel = re.sub(r"_([a-z])", lambda m: m.group(1).upper(), key)
    return raw.get(camel, default)


def _positive_int(raw: dict, key: str, default: int) -> int:
    try:
        value = int(_get(raw, key, default))
    except (TypeError, ValueError):
        return default
    return value if value > 0 else default


def _int(raw: dict, key: str, default: int, where: str) -> int:
    value = _get(raw, key, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{where}: {key} must be an integer, got {value!r}") from None


def _choice(raw: dict, key: str, choices: tuple[str, ...], default: str) -> str:
    value = str(_get(raw, key, default)).strip().lower()
    return value if value in choices else default


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


# Widget configurations. ``type`` is the tag used in YAML and in the registry.

@dataclass(frozen=True)
class _Common:
    title: str = ""
    slug: str = ""
    hide_header: bool = False


@dataclass(frozen=True)
class WeatherConfig(_Common):
    type: ClassVar[str] = "weather"
    location: str = "San Francisco"
    units: str = "metric"
    hour_format: str = "12h"
    show_area_name: bool = False


@dataclass(frozen=True)
class RSSConfig(_Common):
    type: ClassVar[str] = "rss"
    feed_url: str = ""
    limit: int = 10
    style: str = "vertical-list"
    collapse_after: int = 5
    hide_date: bool = False
    description_field: str = "snippet"
    sort_by_date: bool = False


@dataclass(frozen=True)
class YouTubeConfig(_Common):
    type: ClassVar[str] = "youtube"
    channels: tuple[str, ...] = ()
    limit: int = 8
    style: str = "horizontal-cards"
    collapse_after: int = 5


@dataclass(frozen=True)
class LobstersConfig(_Common):
    type: ClassVar[str] = "lobsters"
    instance_url: str = "https://lobste.rs/"
    custom_url: str = ""
    sort_by: str = "hot"
    tags: tuple[str, ...] = ()
    limit: int = 15
    collapse_after: int = 5


@dataclass(frozen=True)
class HackerNewsConfig(_Common):
    type: ClassVar[str] = "hacker-news"
    sort_by: str = "top"
    limit: int = 15
    comments_url_template: str = ""
    extra_sort_by: str = ""
    collapse_after: int = 5


@dataclass(frozen=True)
class SplitColumnConfig(_Common):
    type: ClassVar[str] = "split-column"
    widgets: tuple[WidgetConfig, ...] = ()
    max_columns: int = 2


WidgetConfig = Union[
    WeatherConfig,
    RSSConfig,
    YouTubeConfig,
    LobstersConfig,
    HackerNewsConfig,
    SplitColumnConfig,
]

TYPE_ALIASES = {"group": SplitColumnConfig.type}


def _common(raw: dict, default_title: str) -> dict[str, Any]:
    return {
        "title": str(_get(raw, "title") or default_title),
        "slug": str(_get(raw, "slug") or ""),
        "hide_header": bool(_get(raw, "hide_header", False)),
    }


def _parse_weather(raw: dict, where: str) -> WeatherConfig:
    return WeatherConfig(
        **_common(raw, "Weather"),
        location=str(_get(raw, "location", "San Francisco")),
        units=_choice(raw, "units", ("metric", "imperial"), "metric"),
        hour_format=_choice(raw, "hour_format", ("12h", "24h"), "12h"),
        show_area_name=bool(_get(raw, "show_area_name", False)),
    )


def _parse_rss(raw: dict, where: str) -> RSSConfig:
    feed_url = str(_get(raw, "feed_url", "")).strip()
    if not feed_url:
        raise ConfigError(f"{where}: rss widget requires feed_url")
    return RSSConfig(
        **_common(raw, "RSS Feed"),
        feed_url=feed_url,
        limit=_positive_int(raw, "limit", 10),
        style=_choice(raw, "style", ("vertical-list", "detailed-list"), "vertical-list"),
        collapse_after=_int(raw, "collapse_after", 5, where),
        hide_date=bool(_get(raw, "hide_date", False)),
        description_field=_choice(raw, "description_field", ("snippet", "content"), "snippet"),
        sort_by_date=bool(_get(raw, "sort_by_date", False)),
    )


def _parse_youtube(raw: dict, where: str) -> YouTubeConfig:
    channels = _get(raw, "channels") or []
    if isinstance(channels, str):
        channels = [channels]
    channels = tuple(str(c).strip() for c in channels if str(c).strip())
    if not channels:
        raise ConfigError(f"{where}: youtube widget requires at least one channel")
    return YouTubeConfig(
        **_common(raw, "YouTube"),
        channels=channels,
        limit=_positive_int(raw, "limit", 8),
        style=_choice(raw, "style", ("horizontal-cards", "vertical-list", "grid-cards"), "horizontal-cards"),
        collapse_after=_int(raw, "collapse_after", 5, where),
    )


def _parse_lobsters(raw: dict, where: str) -> LobstersConfig:
    tags = _get(raw, "tags") or []
    if isinstance(tags, str):
        tags = tags.split(",")
    return LobstersConfig(
        **_common(raw, "Lobsters"),
        instance_url=str(_get(raw, "instance_url", "") or "https://lobste.rs/"),
        custom_url=str(_get(raw, "custom_url", "") or ""),
        sort_by=_choice(raw, "sort_by", ("hot", "new"), "hot"),
        tags=tuple(str(t).strip() for t in tags if str(t).strip()),
        limit=_positive_int(raw, "limit", 15),
        collapse_after=_int(raw, "collapse_after", 5, where),
    )


def _parse_hacker_news(raw: dict, where: str) -> HackerNewsConfig:
    return HackerNewsConfig(
        **_common(raw, "Hacker News"),
        sort_by=_choice(raw, "sort_by", ("top", "new", "best"), "top"),
        limit=_positive_int(raw, "limit", 15),
        comments_url_template=str(_get(raw, "comments_url_template", "") or ""),
        extra_sort_by=_choice(raw, "extra_sort_by", ("engagement",), ""),
        collapse_after=_int(raw, "collapse_after", 5, where),
    )


def _parse_split_column(raw: dict, where: str) -> SplitColumnConfig:
    children = _get(raw, "widgets") or []
    if not isinstance(children, list):
        raise ConfigError(f"{where}: split-column widgets must be a list")
    try:
        max_columns = int(_get(raw, "max_columns", 2))
    except (TypeError, ValueError):
        max_columns = 2
    return SplitColumnConfig(
        **_common(raw, ""),
        widgets=tuple(parse_widget(c, f"{where}.widgets[{i}]") for i, c in enumerate(children)),
        max_columns=min(5, max(1, max_columns)),
    )


_PARSERS = {
    WeatherConfig.type: _parse_weather,
    RSSConfig.type: _parse_rss,
    YouTubeConfig.type: _parse_youtube,
    LobstersConfig.type: _parse_lobsters,
    HackerNewsConfig.type: _parse_hacker_news,
    SplitColumnConfig.type: _parse_split_column,
}


def parse_widget(raw: Any, where: str = "widget") -> WidgetConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: widget entry must be a mapping")
    kind = str(raw.get("type", "")).strip().lower()
    kind = TYPE_ALIASES.get(kind, kind)
    parser = _PARSERS.get(kind)
    if parser is None:
        raise ConfigError(f"{where}: unknown widget type {kind!r}. Supported: {sorted(_PARSERS)}")
    return parser(raw, where)


@dataclass(frozen=True)
class Column:
    size: str
    widgets: tuple[WidgetConfig, ...]


@dataclass(frozen=True)
class Page:
    name: str
    slug: str
    width: str = "default"
    head_widgets: tuple[WidgetConfig, ...] = ()
    columns: tuple[Column, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class HarvestSource:
    url: str
    headers: dict[str, str] = field(default_factory=dict)


def _parse_page(raw: Any, index: int) -> Page:
    where = f"pages[{index}]"
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: page must be a mapping")
    name = str(raw.get("name", "")).strip()
    if not name:
        raise ConfigError(f"{where}: page requires a name")
    slug = _get(raw, "slug")
    if slug is None:
        slug = "" if index == 0 else slugify(name)

    columns = []
    for ci, col in enumerate(raw.get("columns") or []):
        cwhere = f"{where}.columns[{ci}]"
        if not isinstance(col, dict):
            raise ConfigError(f"{cwhere}: column must be a mapping")
        size = str(col.get("size", "full")).lower()
        if size not in COLUMN_SIZES:
            raise ConfigError(f"{cwhere}: unsupported column size {size!r}. Supported: {list(COLUMN_SIZES)}")
        widgets = tuple(
            parse_widget(w, f"{cwhere}.widgets[{wi}]") for wi, w in enumerate(col.get("widgets") or [])
        )
        columns.append(Column(size=size, widgets=widgets))

    head = tuple(
        parse_widget(w, f"{where}.head_widgets[{wi}]")
        for wi, w in enumerate(_get(raw, "head_widgets") or [])
    )
    width = str(raw.get("width", "default")).lower()
    return Page(
        name=name,
        slug=str(slug),
        width=width if width in PAGE_WIDTHS else "default",
        head_widgets=head,
        columns=tuple(columns),
    )


@dataclass(frozen=True)
class Config:
    raw: dict

    @property
    def pages(self) -> list[Page]:
        pages = self.raw.get("pages") or []
        if not isinstance(pages, list):
            raise ConfigError("pages must be a list")
        return [_parse_page(p, i) for i, p in enumerate(pages)]

    @property
    def output_path(self) -> Path:
        out = self.raw.get("output", {}).get("path", "dist/dashboard.json")
        return Path(_expand(out))

    @property
    def harvest_path(self) -> Path:
        out = self.raw.get("output", {}).get("harvest_path", "src/content/dashboard/data.json")
        return Path(_expand(out))

    @property
    def concurrency(self) -> int:
        return max(1, int(self.raw.get("concurrency", 10)))

    @property
    def log_level(self) -> str:
        return str(self.raw.get("log_level", "INFO")).upper()

    @property
    def harvest_sources(self) -> dict[str, HarvestSource]:
        sources = (self.raw.get("harvest") or {}).get("sources") or {}
        out = {}
        for name, src in sources.items():
            if not isinstance(src, dict) or not src.get("url"):
                raise ConfigError(f"harvest.sources.{name}: url is required")
            headers = {str(k): _expand(str(v)) for k, v in (src.get("headers") or {}).items()}
            out[str(name)] = HarvestSource(url=str(src["url"]), headers=headers)
        return out


def load_config(path: str | Path) -> Config:
    p = Path(_expand(str(path)))
    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config {p}: {e}") from e
    if not isinstance(raw, dict):
        raise ConfigError("config.yaml must contain a YAML mapping at top level.")
    return Config(raw=raw)
