#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
import tempfile
import time
from pathlib import Path

from feeds.queue_source import QueueSource
from prefetcher.supplier import PrefetchingSupplier
from prefetcher.updates import Put
from prefetcher.utils.logger import (
    get_logger,
    init_logging,
    log_debug,
    log_exception,
    log_info,
    log_warn,
)


def _load_config(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _write_temp_config(config: dict, temp_dir: Path) -> Path:
    temp_dir.mkdir(parents=True, exist_ok=True)
    temp_path = temp_dir / "logging_smoke.json"
    temp_path.write_text(json.dumps(config, indent=2), encoding="utf-8")
    return temp_path


async def _drive_supplier(n: int) -> None:
    source = QueueSource()
    async with PrefetchingSupplier.with_initial_value({}, source, 2, 0.05, name="smoke") as supplier:
        for idx in range(n):
            await source.offer(Put(f"k{idx % 3}", idx))
        await asyncio.sleep(0.2)
        source.fail(ConnectionError("smoke feed lost"))
        await supplier.wait_closed()


def main() -> None:
    parser = argparse.ArgumentParser(description="Prefetcher logging smoke script.")
    parser.add_argument("--mode", default=None, help="logging profile name")
    parser.add_argument("--run-id", default=None, help="run id for log context")
    parser.add_argument("--file-path", default=None, help="file path template override")
    parser.add_argument("--n", type=int, default=5, help="number of updates to feed")
    args = parser.parse_args()

    config_path = Path("configs/logging.json").resolve()
    cfg = _load_config(config_path)

    profiles = cfg.get("profiles", {})
    if not isinstance(profiles, dict):
        raise TypeError("logging.json 'profiles' must be a dict")

    mode = args.mode or str(cfg.get("active_profile") or "default")
    if mode not in profiles:
        raise KeyError(f"logging profile not found: {mode}")

    run_id = args.run_id or f"smoke_{int(time.time())}"
    profile = dict(profiles[mode])
    handlers_cfg = dict(profile.get("handlers", {}))
    file_cfg = dict(handlers_cfg.get("file", {}) or {})
    file_cfg["enabled"] = True
    file_cfg["path"] = args.file_path or "artifacts/runs/test_{run_id}/logs/smoke_{mode}.jsonl"
    handlers_cfg["file"] = file_cfg
    profile["handlers"] = handlers_cfg
    profiles[mode] = profile
    cfg["profiles"] = profiles

    with tempfile.TemporaryDirectory(prefix="prefetcher_logging_smoke_") as temp_dir:
        temp_config = _write_temp_config(cfg, Path(temp_dir))
        init_logging(config_path=str(temp_config), run_id=run_id, mode=mode)

        logger = get_logger("prefetcher.smoke")
        log_info(logger, "smoke.start", updates=args.n)
        log_warn(logger, "smoke.warn", detail="watchlist")
        try:
            raise ValueError("smoke exception")
        except ValueError:
            log_exception(logger, "smoke.exception", detail="handled")
        log_debug(logger, "smoke.debug", detail="debug path")

        asyncio.run(_drive_supplier(args.n))

        resolved = Path(file_cfg["path"].format(run_id=run_id, mode=mode))
        print(f"logging mode: {mode}")
        print(f"file logging: enabled -> {resolved}")


if __name__ == "__main__":
    main()
