from __future__ import annotations

from types import MappingProxyType

from . import hacker_news, lobsters, rss, split_column, weather, youtube
from .base import Registry, WidgetDefinition, WidgetResult, fetch_widget_data

WIDGET_MODULES = (weather, rss, youtube, lobsters, hacker_news, split_column)


def build_registry(modules=WIDGET_MODULES) -> Registry:
    return MappingProxyType({
        mod.name: WidgetDefinition(
            type=mod.name,
            fetcher=mod.collect,
            frameless=getattr(mod, "frameless", False),
        )
        for mod in modules
    })


__all__ = ["Registry", "WidgetDefinition", "WidgetResult", "build_registry", "fetch_widget_data"]
