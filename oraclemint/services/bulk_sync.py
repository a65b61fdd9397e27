"""Bulk sync from Scryfall to the card store.

Handles streaming downloads, batched upserts and checkpoints for resume.
A run works until its runtime budget is spent, then pauses; calling
``start_sync(..., resume_id=run_id)`` continues from the last checkpoint.
The stream cannot be seeked, so a resumed run re-reads the already
committed prefix and discards it without writing.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from config import settings
from oraclemint.models.cards import Card, Ruling, ScryfallCard, ScryfallRuling
from oraclemint.models.errors import (
    BulkLineParseError,
    InvalidResumeState,
    SyncFailed,
    SyncRunNotFound,
)
from oraclemint.models.sync import SyncProgress, SyncRun, SyncStatus, SyncType, ensure_transition
from oraclemint.services.bulk_stream import BulkLineTokenizer, parse_bulk_line
from oraclemint.services.card_store import CardStore, get_card_store
from oraclemint.services.scryfall import ScryfallClient, get_scryfall_client

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
# ``None`` entries stand for malformed lines, kept in stream order
Batch = List[Optional[Record]]


def _last_oracle_id(entries: Sequence[Optional[Record]]) -> Optional[str]:
    return next((e.get("oracle_id") for e in reversed(entries) if e and e.get("oracle_id")), None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass
class BatchResult:
    success: int = 0
    failures: int = 0
    skipped: int = 0


class ResumeCursor:
    """Discards records up to and including the checkpoint record.

    Records sharing the checkpoint's oracle id are discarded too; a
    checkpoint is only taken after a card's last ruling, so they were all
    committed with it. Malformed lines before the last checkpoint record
    were counted by an earlier invocation. Those after it were not, and are
    handed back through ``take_trailing_failures`` once the cursor passes.
    """

    def __init__(self, checkpoint: Optional[str]):
        self.checkpoint = checkpoint
        self._reached = False
        self._trailing_failures = 0

    @property
    def seeking(self) -> bool:
        return self.checkpoint is not None

    def should_skip(self, oracle_id: Optional[str]) -> bool:
        if self.checkpoint is None:
            return False
        if oracle_id == self.checkpoint:
            self._reached = True
            self._trailing_failures = 0
            return True
        if self._reached:
            self.checkpoint = None
            return False
        return True

    def skip_failure(self) -> bool:
        """Whether a malformed line falls inside the committed prefix."""
        if self.checkpoint is None:
            return False
        if self._reached:
            self._trailing_failures += 1
        return True

    def take_trailing_failures(self) -> int:
        count, self._trailing_failures = self._trailing_failures, 0
        return count


class BulkSyncService:
    """Stream a Scryfall bulk file into the store, pausing on a time budget."""

    def __init__(
        self,
        store: CardStore,
        client: ScryfallClient,
        batch_size: Optional[int] = None,
        max_runtime: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.client = client
        self.batch_size = batch_size or settings.sync_batch_size
        self.max_runtime = settings.sync_max_runtime_seconds if max_runtime is None else max_runtime
        self._clock = clock
        self._locks: Dict[SyncType, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def start_sync(
        self,
        sync_type: Union[SyncType, str],
        force: bool = False,
        resume_id: Optional[str] = None,
    ) -> SyncProgress:
        """Start a new sync run or resume a paused one.

        Runs of the same type are serialized within this process. Raises
        ``SyncRunNotFound``/``InvalidResumeState`` for a bad ``resume_id``
        and ``SyncFailed`` when the run fails.
        """
        if resume_id:
            return await self._resume(resume_id)

        sync_type = SyncType(sync_type)
        async with self._locks[sync_type]:
            bulk_info = None

            # Skip the download when the last completed run is newer than Scryfall's file
            if not force:
                last_completed = await self.store.get_latest_sync_run(sync_type, SyncStatus.COMPLETED)
                if last_completed and last_completed.completed_at:
                    bulk_info = await self.client.get_bulk_data_info(sync_type.value)
                    if _as_utc(last_completed.completed_at) >= _as_utc(bulk_info.updated_at):
                        logger.info(
                            f"{sync_type.value} already up to date (synced {last_completed.completed_at.isoformat()}, "
                            f"Scryfall updated {bulk_info.updated_at.isoformat()})"
                        )
                        return last_completed.to_progress()

            run = await self.store.create_sync_run(
                SyncRun(
                    id=uuid.uuid4().hex,
                    type=sync_type,
                    status=SyncStatus.DOWNLOADING,
                    started_at=_utcnow(),
                )
            )
            logger.info(f"Created sync run {run.id} for {sync_type.value}")

            try:
                if bulk_info is None:
                    bulk_info = await self.client.get_bulk_data_info(sync_type.value)
                run.blob_url = bulk_info.download_uri
                run.blob_size = bulk_info.size
                await self.store.save_sync_run(run)
            except Exception as exc:
                await self._fail(run, exc)
                raise SyncFailed(run.id, str(exc), run.processed, run.last_oracle_id) from exc

            return await self._process_sync_run(run)

    async def _resume(self, resume_id: str) -> SyncProgress:
        run = await self.store.get_sync_run(resume_id)
        if run is None:
            raise SyncRunNotFound(resume_id)

        async with self._locks[run.type]:
            # Re-read under the lock; another task may have resumed it first
            run = await self.store.get_sync_run(resume_id)
            if run.status is not SyncStatus.PAUSED:
                raise InvalidResumeState(resume_id, run.status.value)

            logger.info(
                f"Resuming sync run {run.id} from checkpoint {run.last_oracle_id} ({run.processed:,} processed)"
            )
            return await self._process_sync_run(run)

    async def _process_sync_run(self, run: SyncRun) -> SyncProgress:
        """Stream, parse and upsert until the file ends or the time budget runs out."""
        if not run.blob_url:
            error = ValueError(f"Sync run {run.id} has no download URL")
            await self._fail(run, error)
            raise SyncFailed(run.id, str(error), run.processed, run.last_oracle_id)

        ensure_transition(run.status, SyncStatus.PROCESSING)
        run.status = SyncStatus.PROCESSING
        run.error_message = None
        await self.store.save_sync_run(run)

        started = self._clock()
        cursor = ResumeCursor(run.last_oracle_id)
        tokenizer = BulkLineTokenizer()
        batch: Batch = []

        try:
            async with self.client.stream_bulk_data(run.blob_url) as chunks:
                iterator = chunks.__aiter__()
                while True:
                    # Pausing before passing the checkpoint would make no progress
                    if not cursor.seeking and self._clock() - started > self.max_runtime:
                        # The held back tail is re-read on resume
                        await self._flush(run, batch, self._commit_boundary(run, batch, pausing=True))
                        return await self._pause(run)

                    try:
                        chunk = await iterator.__anext__()
                    except StopAsyncIteration:
                        break

                    for line in tokenizer.feed(chunk):
                        await self._handle_line(run, line, batch, cursor)

            for line in tokenizer.close():
                await self._handle_line(run, line, batch, cursor)

            batch.extend([None] * cursor.take_trailing_failures())
            await self._flush(run, batch)
            if cursor.seeking:
                logger.warning(f"Sync run {run.id} never reached checkpoint {cursor.checkpoint}")
            return await self._complete(run)

        except Exception as exc:
            await self._fail(run, exc)
            raise SyncFailed(run.id, str(exc), run.processed, run.last_oracle_id) from exc

    async def _handle_line(self, run: SyncRun, line: str, batch: Batch, cursor: ResumeCursor) -> None:
        try:
            record = parse_bulk_line(line)
        except BulkLineParseError as exc:
            if cursor.skip_failure():
                return
            logger.debug(f"Skipping malformed line in run {run.id}: {exc.message}")
            # Counted when its batch is committed
            batch.append(None)
            return

        if record is None:
            return

        oracle_id = record.get("oracle_id")
        if cursor.should_skip(oracle_id):
            return
        batch.extend([None] * cursor.take_trailing_failures())

        # One card's rulings must land in the same batch, so rulings batches only cut between cards
        if (
            run.type is SyncType.RULINGS
            and len(batch) >= self.batch_size
            and oracle_id != _last_oracle_id(batch)
        ):
            await self._flush(run, batch, self._commit_boundary(run, batch, pausing=False))

        batch.append(record)

        if run.type is SyncType.ORACLE_CARDS and len(batch) >= self.batch_size:
            await self._flush(run, batch)

    def _commit_boundary(self, run: SyncRun, batch: Batch, pausing: bool) -> int:
        """How much of ``batch`` can be committed while the stream is still open.

        Malformed lines after the last record stay behind, since a resumed
        run re-reads everything after the checkpoint. When pausing a rulings
        run, the last card's group stays behind too: its remaining rulings
        may still be unread.
        """
        end = len(batch)
        while end and batch[end - 1] is None:
            end -= 1

        if pausing and run.type is SyncType.RULINGS and end:
            open_oracle_id = batch[end - 1].get("oracle_id")
            while end and (batch[end - 1] is None or batch[end - 1].get("oracle_id") == open_oracle_id):
                end -= 1

        return end

    async def _flush(self, run: SyncRun, batch: Batch, end: Optional[int] = None) -> None:
        """Upsert ``batch[:end]``, then record the checkpoint; the rest stays in ``batch``."""
        end = len(batch) if end is None else end
        entries = batch[:end]
        del batch[:end]
        if not entries:
            return

        records = [entry for entry in entries if entry is not None]
        if run.type is SyncType.RULINGS:
            result = await self.sync_rulings(records)
        else:
            result = await self.upsert_card_batch(records)

        run.processed += result.success + result.skipped
        run.failed += result.failures + len(entries) - len(records)

        last_oracle_id = _last_oracle_id(records)
        if last_oracle_id:
            run.last_oracle_id = last_oracle_id

        # Checkpoint strictly after the batch is committed
        await self.store.save_sync_run(run)
        logger.debug(f"Sync run {run.id} checkpoint: {run.processed:,} processed, {run.failed:,} failed")

    async def _pause(self, run: SyncRun) -> SyncProgress:
        ensure_transition(run.status, SyncStatus.PAUSED)
        run.status = SyncStatus.PAUSED
        await self.store.save_sync_run(run)
        logger.info(
            f"Sync run {run.id} paused after {self.max_runtime:.0f}s at {run.last_oracle_id} "
            f"({run.processed:,} processed, {run.failed:,} failed)"
        )
        return run.to_progress()

    async def _complete(self, run: SyncRun) -> SyncProgress:
        ensure_transition(run.status, SyncStatus.COMPLETED)
        run.status = SyncStatus.COMPLETED
        run.completed_at = _utcnow()
        run.total_records = run.processed + run.failed
        await self.store.save_sync_run(run)
        logger.info(f"Sync run {run.id} completed: {run.processed:,} processed, {run.failed:,} failed")
        return run.to_progress()

    async def _fail(self, run: SyncRun, exc: Exception) -> None:
        logger.error(f"Sync run {run.id} failed at {run.last_oracle_id}: {exc}")
        run.status = SyncStatus.FAILED
        run.error_message = str(exc) or type(exc).__name__
        await self.store.save_sync_run(run)

    async def upsert_card_batch(self, records: Sequence[Record]) -> BatchResult:
        """Upsert a batch of cards; a bad record is counted and skipped."""
        result = BatchResult()

        for record in records:
            try:
                card = Card.from_scryfall(ScryfallCard.model_validate(record))
                await self.store.upsert_card(card)
                result.success += 1
            except Exception as exc:
                logger.error(f"Failed to upsert card {record.get('name', 'unknown')}: {exc}")
                result.failures += 1

        return result

    async def sync_rulings(self, records: Sequence[Union[Record, ScryfallRuling]]) -> BatchResult:
        """Replace rulings for every card in ``records`` that exists locally.

        Rulings never create cards: rulings for unknown oracle ids are
        counted as skipped.
        """
        result = BatchResult()
        grouped: Dict[str, List[Ruling]] = defaultdict(list)

        for record in records:
            try:
                ruling = record if isinstance(record, ScryfallRuling) else ScryfallRuling.model_validate(record)
            except Exception as exc:
                logger.error(f"Failed to parse ruling: {exc}")
                result.failures += 1
                continue
            grouped[ruling.oracle_id].append(Ruling(**ruling.model_dump()))

        for oracle_id, rulings in grouped.items():
            try:
                if not await self.store.card_exists(oracle_id):
                    result.skipped += len(rulings)
                    continue
                await self.store.replace_rulings(oracle_id, rulings)
                result.success += len(rulings)
            except Exception as exc:
                logger.error(f"Failed to sync rulings for {oracle_id}: {exc}")
                result.failures += len(rulings)

        return result

    async def get_sync_status(self, sync_run_id: str) -> Optional[SyncProgress]:
        """Get the status of a sync run."""
        run = await self.store.get_sync_run(sync_run_id)
        return run.to_progress() if run else None

    async def get_latest_sync_run(
        self, sync_type: Union[SyncType, str], status: Optional[SyncStatus] = None
    ) -> Optional[SyncProgress]:
        """Get the latest sync run for a type, optionally only runs in ``status``."""
        run = await self.store.get_latest_sync_run(SyncType(sync_type), status)
        return run.to_progress() if run else None


# Global singleton instance
_bulk_sync_service: Optional[BulkSyncService] = None


def get_bulk_sync_service() -> BulkSyncService:
    """Get the global bulk sync service instance."""
    global _bulk_sync_service
    if _bulk_sync_service is None:
        _bulk_sync_service = BulkSyncService(get_card_store(), get_scryfall_client())
    return _bulk_sync_service
