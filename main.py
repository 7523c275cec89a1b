"""CLI entrypoint for scan-and-download runs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict

from config import get_settings
from orchestrator import Notifier, ProgressStreamer, RunOrchestrator, remove_empty_directories
from core import RunState
from sources import UpstreamSession, build_item_fetcher
from storage import InMemoryDownloadQueue, load_manifest
from utils import DownloaderError, configure_logging


async def _run_manifest(manifest: Path, output_dir: Path) -> Dict[str, Any]:
    settings = get_settings()
    session = UpstreamSession(settings.upstream)
    queue = InMemoryDownloadQueue(fetch=build_item_fetcher(output_dir, session))
    store = load_manifest(manifest, queue)
    orchestrator = RunOrchestrator(
        store=store,
        downloader=queue,
        intake=queue,
        backlog=queue,
        session=session,
        notifier=Notifier(out_dir=settings.notification.out_dir),
        output_root=lambda: output_dir,
        streamer=ProgressStreamer(RunState.with_slots(settings.downloader.download_slots)),
        settings=settings.downloader,
    )
    orchestrator.start_run(lambda snapshot: logging.getLogger("rmd").debug("progress %s", snapshot))
    try:
        await orchestrator.join()
    finally:
        await session.aclose()
    result = orchestrator.state.snapshot()
    result["saved"] = len(queue.saved_ids())
    result["downloaded"] = len(queue.processed_ids())
    result["failed"] = queue.failed()
    return result


def main() -> None:
    parser = argparse.ArgumentParser(description="RMD scan-and-download CLI")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--log-file", default="")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run")
    run.add_argument("--manifest", required=True)
    run.add_argument("--output-dir", default="")

    prune = sub.add_parser("prune")
    prune.add_argument("directory")

    serve = sub.add_parser("serve")
    serve.add_argument("--host", default="")
    serve.add_argument("--port", type=int, default=0)
    serve.add_argument("--manifest", default="")

    args = parser.parse_args()
    configure_logging(verbose=args.verbose, log_file=args.log_file or None)
    settings = get_settings()

    if args.command == "run":
        output_dir = Path(args.output_dir or settings.downloader.output_dir)
        try:
            result = asyncio.run(_run_manifest(Path(args.manifest), output_dir))
        except DownloaderError as exc:
            parser.exit(1, f"error: {exc}\n")
        print(json.dumps(result, ensure_ascii=False, indent=2))
        return

    if args.command == "prune":
        removed = asyncio.run(remove_empty_directories(args.directory, verbose=args.verbose))
        print(json.dumps({"directory": args.directory, "removed": removed}, ensure_ascii=False))
        return

    if args.command == "serve":
        import uvicorn

        if args.manifest:
            from webapp.runtime import load_groups

            try:
                load_groups(args.manifest)
            except DownloaderError as exc:
                parser.exit(1, f"error: {exc}\n")
        uvicorn.run(
            "webapp.app:app",
            host=args.host or settings.web.host,
            port=args.port or settings.web.port,
        )


if __name__ == "__main__":
    main()
