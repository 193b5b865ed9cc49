from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .config import Config, load_config
from .dashboard import collect_all, write_snapshot
from .errors import GazeError
from .harvest import harvest, save_snapshot
from .http import HttpClient
from .widgets import build_registry

logger = logging.getLogger("gaze")


async def _build(cfg: Config, out_path: Path) -> Path:
    registry = build_registry()
    async with HttpClient() as client:
        dash = await collect_all(cfg, registry, client)
    return write_snapshot(dash.to_dict(registry), out_path)


async def _harvest(cfg: Config, out_path: Path) -> Path:
    async with HttpClient() as client:
        snapshot = await harvest(cfg.harvest_sources, client)
    return save_snapshot(snapshot, out_path)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(prog="gaze")
    ap.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    ap.add_argument("--log-level", help="Override log_level from config")
    sub = ap.add_subparsers(dest="command", required=True)

    b = sub.add_parser("build", help="Fetch every widget and write the dashboard JSON")
    b.add_argument("--output", help="Override output.path from config")

    h = sub.add_parser("harvest", help="Fetch raw harvest sources into a snapshot")
    h.add_argument("--output", help="Override output.harvest_path from config")

    args = ap.parse_args(argv)

    try:
        cfg = load_config(args.config)
        logging.basicConfig(
            level=(args.log_level or cfg.log_level).upper(),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
        if args.command == "build":
            out = asyncio.run(_build(cfg, Path(args.output) if args.output else cfg.output_path))
        else:
            out = asyncio.run(_harvest(cfg, Path(args.output) if args.output else cfg.harvest_path))
    except GazeError as e:
        logging.basicConfig()
        logger.error("%s", e)
        return 1

    logger.info("Wrote %s", out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
