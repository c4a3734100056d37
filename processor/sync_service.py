"""Orchestration of MySideline carnival synchronization runs."""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Union

from processor.carnival_creator import CarnivalCreator
from processor.carnival_matcher import CarnivalMatcher
from processor.carnival_merger import CarnivalMerger
from processor.carnival_normalizer import CarnivalNormalizer
from processor.models import (
    DeactivationResult,
    ScrapedCarnival,
    SyncResult,
    SyncRunContext,
)
from storage.carnival_table import CarnivalTable
from storage.sync_log_table import SyncLogTable

logger = logging.getLogger(__name__)


class MySidelineSyncService:
    """
    Drive a sync run: throttle check, match/merge/create per event, and
    sync log bookkeeping.

    Per-event failures are logged and collected on the run context; the
    batch carries on and the run is still recorded as completed, with the
    collected errors kept on its sync log entry. Only failures outside the
    per-event loop mark the run failed.
    """

    SYNC_TYPE = 'mysideline'

    def __init__(
        self,
        carnival_table: CarnivalTable,
        sync_log_table: SyncLogTable,
        sync_interval_hours: float = 24,
        environment: str = 'production',
        normalizer: Optional[CarnivalNormalizer] = None,
        matcher: Optional[CarnivalMatcher] = None,
        merger: Optional[CarnivalMerger] = None,
        creator: Optional[CarnivalCreator] = None
    ):
        self.carnival_table = carnival_table
        self.sync_log_table = sync_log_table
        self.sync_interval_hours = sync_interval_hours
        self.environment = environment
        self.normalizer = normalizer or CarnivalNormalizer()
        self.matcher = matcher or CarnivalMatcher(carnival_table)
        self.merger = merger or CarnivalMerger(carnival_table)
        self.creator = creator or CarnivalCreator(carnival_table)

    def should_run_initial_sync(self) -> bool:
        """
        Check the sync log to see whether a sync is due.

        Returns:
            True if a sync should run; False when a recent sync exists or
            the check itself fails
        """
        try:
            should_sync = self.sync_log_table.should_run_sync(
                self.SYNC_TYPE,
                self.sync_interval_hours
            )
            last_sync = self.sync_log_table.get_last_successful_sync(self.SYNC_TYPE)
        except Exception as e:
            logger.error(f"Failed to check whether a sync is due: {e}", exc_info=True)
            return False

        if last_sync is None:
            logger.info("Running initial MySideline sync (no previous sync found)")
            return should_sync

        hours_since = (
            datetime.now(timezone.utc) - last_sync.completed_at
        ).total_seconds() / 3600
        if should_sync:
            logger.info(f"Running MySideline sync (last sync was {hours_since:.1f} hours ago)")
        else:
            logger.info(f"MySideline sync skipped - recent sync found ({hours_since:.1f} hours ago)")
        return should_sync

    def process_scraped_events(
        self,
        scraped_events: List[Union[ScrapedCarnival, dict]],
        context: Optional[SyncRunContext] = None
    ) -> SyncRunContext:
        """
        Match each scraped carnival and merge it or create a new record.

        Args:
            scraped_events: Raw scraped carnivals
            context: Run context to accumulate into; a new one is created
                when omitted

        Returns:
            The run context holding counts and per-event errors
        """
        if context is None:
            context = SyncRunContext(synced_at=datetime.now(timezone.utc))

        logger.info(f"Processing {len(scraped_events)} scraped MySideline carnivals")

        for raw_event in scraped_events:
            try:
                self._process_event(raw_event, context)
            except Exception as e:
                label = self._event_label(raw_event)
                logger.error(f"Failed to process carnival {label}: {e}", exc_info=True)
                context.record_error(label, e)
                continue

        logger.info(
            f"Processed {context.events_processed} carnivals "
            f"({context.events_created} new, {context.events_updated} updated, "
            f"{context.events_skipped} skipped, {len(context.errors)} failed)"
        )
        return context

    def deactivate_past_carnivals(self, today: Optional[date] = None) -> DeactivationResult:
        """
        Deactivate every active carnival dated before today.

        Manually entered carnivals are included; a past carnival is past
        whatever its origin.

        Args:
            today: Reference date, defaults to the current date

        Returns:
            DeactivationResult with the number of carnivals deactivated
        """
        today = today or date.today()
        logger.info("Checking for past carnivals to deactivate")

        try:
            past_carnivals = self.carnival_table.find_active_carnivals_before(today)
            if not past_carnivals:
                logger.info("No past carnivals found to deactivate")
                return DeactivationResult(success=True, deactivated_count=0)

            for carnival in past_carnivals:
                days_past = (today - carnival.date).days
                logger.info(
                    f"Deactivating '{carnival.title}' ({carnival.state}) - "
                    f"{days_past} days past"
                )

            count = self.carnival_table.deactivate_carnivals(
                [carnival.id for carnival in past_carnivals]
            )
        except Exception as e:
            logger.error(f"Error deactivating past carnivals: {e}", exc_info=True)
            return DeactivationResult(success=False, error=str(e))

        return DeactivationResult(
            success=True,
            deactivated_count=count,
            carnivals=[
                {
                    'id': carnival.id,
                    'title': carnival.title,
                    'date': carnival.date.isoformat(),
                    'state': carnival.state,
                    'is_manually_entered': carnival.is_manually_entered,
                }
                for carnival in past_carnivals
            ]
        )

    def run_sync(self, scraper, trigger_source: str = 'scheduled') -> SyncResult:
        """
        Run a full sync: fetch, process, and record the outcome.

        Never raises; failures come back as SyncResult(success=False).

        Args:
            scraper: Object whose fetch_events() returns scraped carnivals
            trigger_source: What started the run (scheduled, manual, ...)

        Returns:
            SyncResult describing the run
        """
        log_id = None

        try:
            log_entry = self.sync_log_table.record_start(
                self.SYNC_TYPE,
                {'trigger_source': trigger_source, 'environment': self.environment}
            )
            log_id = log_entry.id

            scraped_events = scraper.fetch_events()
            if not scraped_events:
                logger.info("No carnivals found from MySideline scraper")
                self.sync_log_table.record_completion(
                    log_id,
                    SyncRunContext(synced_at=datetime.now(timezone.utc)).to_counts()
                )
                return SyncResult(
                    success=True,
                    message='No carnivals found',
                    sync_log_id=log_id
                )

            context = self.process_scraped_events(scraped_events)
            self.sync_log_table.record_completion(
                log_id,
                context.to_counts(),
                errors=context.errors
            )

            return SyncResult(
                success=True,
                events_processed=context.events_processed,
                events_created=context.events_created,
                events_updated=context.events_updated,
                events_skipped=context.events_skipped,
                errors=context.errors,
                message='Sync completed',
                sync_log_id=log_id
            )

        except Exception as e:
            logger.error(f"MySideline sync failed: {e}", exc_info=True)
            if log_id is not None:
                self._record_failure(log_id, e)
            return SyncResult(success=False, error=str(e), sync_log_id=log_id)

    def get_sync_status(self) -> Dict[str, Any]:
        """Report the last successful sync and recent sync statistics."""
        last_sync = self.sync_log_table.get_last_successful_sync(self.SYNC_TYPE)
        return {
            'sync_type': self.SYNC_TYPE,
            'sync_interval_hours': self.sync_interval_hours,
            'last_successful_sync': last_sync.completed_at if last_sync else None,
            'stats': self.sync_log_table.get_sync_stats(self.SYNC_TYPE),
        }

    def _process_event(
        self,
        raw_event: Union[ScrapedCarnival, dict],
        context: SyncRunContext
    ) -> None:
        event = self.normalizer.normalize_event(raw_event)
        existing = self.matcher.find_existing_carnival(event)

        if existing is None:
            self.creator.create(event, synced_at=context.synced_at)
            context.record_created()
            return

        if event.is_active is False and not existing.is_active:
            logger.info(f"Skipping update of inactive carnival {existing.id}: '{existing.title}'")
            context.record_skipped()
            return

        self.merger.merge(existing, event, synced_at=context.synced_at)
        context.record_updated()

    def _record_failure(self, log_id: str, error: Exception) -> None:
        try:
            self.sync_log_table.record_failure(log_id, str(error))
        except Exception as log_error:
            logger.error(
                f"Could not mark sync log entry {log_id} as failed: {log_error}",
                exc_info=True
            )

    def _event_label(self, raw_event: Union[ScrapedCarnival, dict]) -> str:
        if isinstance(raw_event, dict):
            title = raw_event.get('title') or raw_event.get('mySidelineTitle')
        else:
            title = raw_event.title or raw_event.mysideline_title
        return f"'{title}'"
