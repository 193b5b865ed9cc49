from __future__ import annotations

import dataclasses
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping
from urllib.parse import urlparse

from dateutil import parser as dtparser

if TYPE_CHECKING:
    from ..config import WidgetConfig
    from ..http import HttpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WidgetResult:
    name: str
    title: str
    data: dict[str, Any]
    ok: bool = True
    error: str | None = None
    config: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "type": self.name,
            "title": self.title,
            "ok": self.ok,
            "error": self.error,
            "data": self.data,
        }
        if self.config is not None:
            cfg = dataclasses.asdict(self.config)
            cfg.pop("widgets", None)
            out["config"] = cfg
        return out


Fetcher = Callable[[Any, "HttpClient", "Registry"], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class WidgetDefinition:
    type: str
    fetcher: Fetcher
    # Container widgets draw their own layout instead of the standard card.
    frameless: bool = False


Registry = Mapping[str, WidgetDefinition]


def extract_domain(url: str) -> str:
    if not url:
        return ""
    try:
        host = urlparse(url).hostname or ""
    except ValueError:
        return ""
    return host[4:] if host.startswith("www.") else host


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def to_iso(value: Any) -> str | None:
    """Normalize a feed timestamp (struct_time, epoch or string) to ISO-8601 UTC."""
    if value is None or value == "":
        return None
    try:
        if isinstance(value, time.struct_time):
            dt = datetime(*value[:6], tzinfo=timezone.utc)
        elif isinstance(value, (int, float)):
            dt = datetime.fromtimestamp(value, tz=timezone.utc)
        else:
            dt = dtparser.parse(str(value))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
    except (ValueError, OverflowError, TypeError):
        return None
    return dt.astimezone(timezone.utc).isoformat()


def parse_iso(value: str) -> datetime:
    dt = dtparser.isoparse(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


async def fetch_widget_data(cfg: WidgetConfig, registry: Registry, client: HttpClient) -> WidgetResult:
    name = cfg.type
    title = cfg.title or name
    definition = registry.get(name)
    if definition is None:
        return WidgetResult(name=name, title=title, data={}, ok=False, error="Unknown widget", config=cfg)
    try:
        data = await definition.fetcher(cfg, client, registry)
    except Exception as e:
        logger.error("Widget %r (%s) failed: %s", title, name, e)
        return WidgetResult(name=name, title=title, data={}, ok=False, error=str(e) or type(e).__name__, config=cfg)
    return WidgetResult(name=name, title=title, data=data, config=cfg)
