"""Run a bulk sync to completion, resuming across runtime-boxed invocations.

Intended for cron-style schedulers: each ``start_sync`` call works until its
runtime budget is spent and pauses, and this driver resumes it until the run
completes or fails.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import settings
from oraclemint.models import SyncFailed, SyncProgress, SyncStatus, SyncType
from oraclemint.services.bulk_sync import BulkSyncService, get_bulk_sync_service

logger = logging.getLogger("oraclemint.run_sync")


async def drive_sync(
    service: BulkSyncService,
    sync_type: SyncType,
    force: bool = False,
    resume_id: Optional[str] = None,
    max_invocations: Optional[int] = None,
) -> SyncProgress:
    """Call ``start_sync`` and keep resuming while the run is paused."""
    progress = await service.start_sync(sync_type, force=force, resume_id=resume_id)
    invocations = 1

    while progress.status is SyncStatus.PAUSED:
        if max_invocations is not None and invocations >= max_invocations:
            logger.info(f"Stopping after {invocations} invocations; resume with --resume {progress.sync_run_id}")
            break
        logger.info(
            f"Run {progress.sync_run_id} paused at {progress.last_oracle_id} "
            f"({progress.processed:,} processed), resuming"
        )
        progress = await service.start_sync(sync_type, resume_id=progress.sync_run_id)
        invocations += 1

    return progress


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync Scryfall bulk data into the local card store.")
    parser.add_argument(
        "--type",
        choices=[sync_type.value for sync_type in SyncType],
        default=SyncType.ORACLE_CARDS.value,
        help="Bulk dataset to sync (default: oracle_cards)",
    )
    parser.add_argument("--force", action="store_true", help="Sync even if the local cache is current")
    parser.add_argument("--resume", metavar="SYNC_RUN_ID", help="Resume a paused sync run")
    parser.add_argument(
        "--max-invocations",
        type=int,
        default=None,
        help="Stop after this many runtime-boxed invocations",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        progress = asyncio.run(
            drive_sync(
                get_bulk_sync_service(),
                SyncType(args.type),
                force=args.force,
                resume_id=args.resume,
                max_invocations=args.max_invocations,
            )
        )
    except SyncFailed as exc:
        logger.error(
            f"Sync run {exc.sync_run_id} failed: {exc.message} "
            f"({exc.processed:,} processed, checkpoint {exc.last_oracle_id})"
        )
        return 1

    print(
        f"Sync run {progress.sync_run_id}: {progress.status.value}, "
        f"{progress.processed:,} processed, {progress.failed:,} failed"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
