from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from gaze.cli import main
from gaze.config import HarvestSource
from gaze.errors import ConfigError
from gaze.harvest import harvest, save_snapshot, validate_snapshot


def test_harvest_skips_failing_sources(make_client):
    def handler(request):
        if request.url.host == "good.test":
            assert request.headers["authorization"] == "token abc"
            return httpx.Response(200, json={"stars": 5})
        return httpx.Response(404)

    sources = {
        "good": HarvestSource(url="https://good.test/api", headers={"Authorization": "token abc"}),
        "bad": HarvestSource(url="https://bad.test/api"),
    }
    snapshot = asyncio.run(harvest(sources, make_client(handler)))

    assert snapshot["data"] == {"good": {"stars": 5}}
    assert isinstance(snapshot["timestamp"], str)


def test_harvest_without_sources_writes_placeholder(make_client):
    snapshot = asyncio.run(harvest({}, make_client(lambda request: httpx.Response(500))))
    assert set(snapshot["data"]) == {"placeholder"}


def test_save_snapshot(tmp_path):
    out = save_snapshot({"timestamp": "t", "data": {"a": 1}}, tmp_path / "content" / "data.json")
    assert json.loads(out.read_text(encoding="utf-8")) == {"timestamp": "t", "data": {"a": 1}}


@pytest.mark.parametrize("bad", [[], {"timestamp": 1, "data": {}}, {"timestamp": "t", "data": []}])
def test_validate_snapshot_rejects(bad):
    with pytest.raises(ConfigError):
        validate_snapshot(bad)


def test_cli_build_and_harvest(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("pages: []\n", encoding="utf-8")

    assert main(["--config", str(config), "build", "--output", str(tmp_path / "dash.json")]) == 0
    assert json.loads((tmp_path / "dash.json").read_text(encoding="utf-8"))["pages"] == []

    assert main(["--config", str(config), "harvest", "--output", str(tmp_path / "data.json")]) == 0
    assert "placeholder" in json.loads((tmp_path / "data.json").read_text(encoding="utf-8"))["data"]


def test_cli_reports_config_errors(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text("pages:\n  - name: Home\n    columns:\n      - widgets:\n          - type: rss\n", encoding="utf-8")
    assert main(["--config", str(config), "build", "--output", str(tmp_path / "x.json")]) == 1


def test_cli_reports_bad_collapse_after(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "pages:\n  - name: Home\n    columns:\n      - widgets:\n"
        "          - type: rss\n            feed_url: https://x.test/feed\n            collapse_after: null\n",
        encoding="utf-8",
    )
    assert main(["--config", str(config), "build", "--output", str(tmp_path / "x.json")]) == 1
    assert not (tmp_path / "x.json").exists()
