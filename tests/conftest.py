from __future__ import annotations

import httpx
import pytest

from gaze.http import HttpClient


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def make_client(sleeper):
    def factory(handler, **kwargs) -> HttpClient:
        transport = httpx.MockTransport(handler)
        return HttpClient(httpx.AsyncClient(transport=transport), sleep=sleeper, **kwargs)
    return factory


def rss_document(n: int, title: str = "Example Feed") -> str:
    items = "".join(
        f"""
        <item>
          <title>Item {i}</title>
          <link>https://example.com/{i}</link>
          <pubDate>Mon, {i + 1:02d} Jan 2024 10:00:00 GMT</pubDate>
          <description>&lt;p&gt;Body {i}&lt;/p&gt;</description>
        </item>"""
        for i in range(n)
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>{title}</title>
    <link>https://example.com/</link>
    <description>test</description>{items}
  </channel>
</rss>"""
