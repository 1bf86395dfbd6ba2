#!/usr/bin/env python3
"""CLI helper that places a transcript file (text or WAV) on the configured board."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path


def _load_dotenv() -> None:
    from dotenv import load_dotenv

    project_root = Path(__file__).resolve().parents[1]
    env_file = project_root / ".env"
    if env_file.exists():
        load_dotenv(dotenv_path=env_file)
    else:  # pragma: no cover - fallback path
        load_dotenv()


def _configure_logging() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="Transcript .txt/.md file or .wav recording")
    parser.add_argument("--mode", choices=("decision", "response"), default="decision")
    parser.add_argument("--region", default=None, help="Target region title")
    parser.add_argument("--structured", action="store_true", help="Split on ## headings or ** markers")
    parser.add_argument("--session", default=None, help="Session identifier")
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> int:
    from boardflow.capture import WaveFileCaptureDevice
    from boardflow.errors import BoardflowError
    from boardflow.pipeline import BoardPipeline

    pipeline = BoardPipeline.from_settings()
    try:
        if args.path.suffix.lower() == ".wav":
            run = await pipeline.run_capture(
                args.session,
                WaveFileCaptureDevice(args.path),
                mode=args.mode,
                region_name=args.region,
            )
        else:
            run = await pipeline.process_text(
                args.session,
                args.path.read_text(encoding="utf-8"),
                mode=args.mode,
                region_name=args.region,
                structured=args.structured,
            )
    except BoardflowError as error:
        logging.error("Placement failed: %s", error)
        return 1
    finally:
        await pipeline.gateway.platform.close()

    if run.capture.no_content:
        logging.warning("No content captured from %s", args.path)
        return 2
    report = run.report
    logging.info(
        "Placed %s of %s points (%s duplicates, %s failed, %s cards)",
        report.placed,
        report.attempted,
        report.duplicates,
        report.failed,
        report.cards_created,
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    _load_dotenv()
    _configure_logging()
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    if not args.path.exists():
        logging.error("File not found: %s", args.path)
        return 1
    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
