#!/usr/bin/env python3
"""
Live Session Run Script
=======================

Standalone script to exercise a full monitoring session without the API.

This script:
    1. Loads reference faces from a directory (file stem = name)
    2. Opens the camera (or replays a still image)
    3. Monitors for a configurable duration
    4. Logs pipeline stats every report interval
    5. Reports the activity log at the end

Prerequisites:
    - A camera, or --image for a still frame
    - GEMINI_API_KEY set (or --oracle mock)
    - Install dependencies: pip install -e .

Usage:
    python scripts/run_session.py --references ./faces --duration 60
    python scripts/run_session.py --references ./faces --image group.jpg --oracle mock
"""

import argparse
import asyncio
import logging
import os
import sys
import time
from datetime import datetime

from sentinel_id.capture import OpenCVVideoSource, StaticVideoSource
from sentinel_id.oracle import GeminiOracleClient, MockOracleClient
from sentinel_id.session import MonitoringSession, SessionError
from sentinel_id.store import ReferenceRepository


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


async def run_session(
    references_dir: str,
    image: str,
    device: str,
    oracle_backend: str,
    duration: int,
    interval: float,
    report_interval: int,
) -> dict:
    """
    Run one monitoring session.

    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("SentinelID Live Session")
    logger.info("=" * 60)
    logger.info(f"References: {references_dir}")
    logger.info(f"Source: {image or device}")
    logger.info(f"Oracle: {oracle_backend}")
    logger.info(f"Duration: {duration} seconds, interval: {interval}s")
    logger.info("=" * 60)

    references = ReferenceRepository()
    references.load_directory(references_dir)

    if image:
        source = StaticVideoSource.from_file(image)
    else:
        source = OpenCVVideoSource(device=int(device) if device.isdigit() else device)

    if oracle_backend == "mock":
        oracle = MockOracleClient()
    else:
        oracle = GeminiOracleClient(api_key=os.environ.get("GEMINI_API_KEY"))

    session = MonitoringSession(
        source=source,
        oracle=oracle,
        references=references,
        capture_interval=interval,
    )
    session.activity_log.subscribe(
        lambda entry: logger.info(
            f"LOGGED: {entry.matched_name} "
            f"(confidence={entry.confidence:.2f}, mask={entry.mask_detected})"
        )
    )

    try:
        await session.start()
    except SessionError as e:
        logger.error(f"Cannot start: {e}")
        return {"entries": 0, "started": False}

    start_time = time.time()
    last_report_time = start_time

    try:
        while time.time() - start_time < duration:
            if time.time() - last_report_time >= report_interval:
                metrics = session.pipeline.get_metrics()
                sampler = session.sampler.metrics

                logger.info("-" * 40)
                logger.info(f"Progress Report (elapsed: {time.time() - start_time:.0f}s)")
                logger.info(f"  Ticks fired: {sampler.ticks_fired}")
                logger.info(f"  Skipped (in flight): {sampler.skipped_in_flight}")
                logger.info(f"  Oracle calls: {metrics['oracle_calls']}")
                logger.info(f"  Oracle errors: {metrics['oracle_errors']}")
                logger.info(f"  Admitted: {metrics['admitted']}")
                logger.info(f"  Suppressed: {metrics['suppressed']}")

                last_report_time = time.time()

            await asyncio.sleep(0.5)

    except asyncio.CancelledError:
        logger.info("Session interrupted by user")
    finally:
        await session.shutdown(drain_timeout=30.0)

    entries = session.activity_log.list()

    logger.info("=" * 60)
    logger.info("ACTIVITY LOG")
    logger.info("=" * 60)
    for entry in entries:
        stamp = datetime.fromtimestamp(entry.timestamp).strftime("%H:%M:%S")
        mask = " [mask]" if entry.mask_detected else ""
        logger.info(f"{stamp}  {entry.matched_name}  {entry.confidence:.0%}{mask}")
    if not entries:
        logger.info("No matches logged")
    logger.info("=" * 60)

    return {
        "started": True,
        "duration": time.time() - start_time,
        "entries": len(entries),
        **session.pipeline.get_metrics(),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Run a SentinelID monitoring session from the command line"
    )
    parser.add_argument(
        "--references",
        type=str,
        default=os.environ.get("SENTINEL_REFERENCE_DIR", "faces"),
        help="Directory of reference face images (default: faces)",
    )
    parser.add_argument(
        "--image",
        type=str,
        default=None,
        help="Replay this still image instead of opening a camera",
    )
    parser.add_argument(
        "--device",
        type=str,
        default="0",
        help="Camera index or stream URL (default: 0)",
    )
    parser.add_argument(
        "--oracle",
        choices=["gemini", "mock"],
        default="gemini",
        help="Oracle backend (default: gemini)",
    )
    parser.add_argument(
        "--duration",
        type=int,
        default=60,
        help="Session duration in seconds (default: 60)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=4.0,
        help="Capture interval in seconds (default: 4.0)",
    )
    parser.add_argument(
        "--report-interval",
        type=int,
        default=10,
        help="Seconds between progress reports (default: 10)",
    )

    args = parser.parse_args()

    result = asyncio.run(run_session(
        references_dir=args.references,
        image=args.image,
        device=args.device,
        oracle_backend=args.oracle,
        duration=args.duration,
        interval=args.interval,
        report_interval=args.report_interval,
    ))

    sys.exit(0 if result["started"] else 1)


if __name__ == "__main__":
    main()
