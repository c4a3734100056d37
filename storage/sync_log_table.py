"""DynamoDB-backed audit log of sync runs."""
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import SyncLogEntry
from storage.dynamodb_manager import (
    DynamoDBManager,
    from_dynamodb_value,
    to_dynamodb_value,
)

logger = logging.getLogger(__name__)

STATUS_STARTED = 'started'
STATUS_COMPLETED = 'completed'
STATUS_FAILED = 'failed'


class SyncLogTable(DynamoDBManager):
    """
    Append/update-only log of sync attempts.

    Entries are created when a sync starts and closed exactly once, either
    as completed or failed. Nothing here deletes entries.
    """

    def record_start(
        self,
        sync_type: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> SyncLogEntry:
        """
        Create a new sync log entry in the started state.

        Args:
            sync_type: Type of sync (e.g. "mysideline")
            metadata: Optional free-form metadata

        Returns:
            The created SyncLogEntry
        """
        entry = SyncLogEntry(
            id=uuid.uuid4().hex,
            sync_type=sync_type,
            status=STATUS_STARTED,
            started_at=datetime.now(timezone.utc),
            metadata=dict(metadata or {})
        )

        try:
            self.table.put_item(Item=self._entry_to_item(entry))
        except ClientError as e:
            logger.error(f"Error recording start of {sync_type} sync: {e}")
            raise

        logger.info(f"Started {sync_type} sync log entry {entry.id}")
        return entry

    def record_completion(
        self,
        log_id: str,
        counts: Dict[str, int],
        errors: Optional[List[str]] = None
    ) -> SyncLogEntry:
        """
        Close a sync log entry as completed.

        Per-event errors do not fail the run; they are kept in the error
        message and under metadata["event_errors"].

        Args:
            log_id: Id returned by record_start
            counts: events_processed/events_created/events_updated and any
                extra counters, which are stored in metadata
            errors: Per-event error messages collected during the run

        Returns:
            The updated SyncLogEntry
        """
        current = self.get_entry(log_id)
        metadata = dict(current.metadata) if current else {}
        extra_counts = {
            name: value for name, value in counts.items()
            if name not in ('events_processed', 'events_created', 'events_updated')
        }
        metadata.update(extra_counts)

        updates = {
            'status': STATUS_COMPLETED,
            'completed_at': datetime.now(timezone.utc).isoformat(),
            'events_processed': counts.get('events_processed', 0),
            'events_created': counts.get('events_created', 0),
            'events_updated': counts.get('events_updated', 0),
        }
        if errors:
            metadata['event_errors'] = list(errors)
            updates['error_message'] = '; '.join(errors)
        updates['metadata'] = metadata

        item = self.update_attributes(
            {'id': log_id},
            updates,
            condition=Attr('status').eq(STATUS_STARTED)
        )
        logger.info(
            f"Completed sync log entry {log_id}",
            extra={'counts': counts, 'event_errors': len(errors or [])}
        )
        return self._item_to_entry(item)

    def record_failure(self, log_id: str, error: str) -> SyncLogEntry:
        """
        Close a sync log entry as failed.

        Args:
            log_id: Id returned by record_start
            error: Error message describing the failure

        Returns:
            The updated SyncLogEntry
        """
        item = self.update_attributes(
            {'id': log_id},
            {
                'status': STATUS_FAILED,
                'completed_at': datetime.now(timezone.utc).isoformat(),
                'error_message': str(error),
            },
            condition=Attr('status').eq(STATUS_STARTED)
        )
        logger.warning(f"Sync log entry {log_id} marked failed: {error}")
        return self._item_to_entry(item)

    def get_entry(self, log_id: str) -> Optional[SyncLogEntry]:
        """Fetch a sync log entry by id, or None."""
        try:
            response = self.table.get_item(Key={'id': log_id})
        except ClientError as e:
            logger.error(f"Error fetching sync log entry {log_id}: {e}")
            raise

        item = response.get('Item')
        return self._item_to_entry(item) if item else None

    def get_entries(self, sync_type: str) -> List[SyncLogEntry]:
        """Return all entries of a sync type, newest first."""
        items = self.scan_items(Attr('sync_type').eq(sync_type))
        entries = [self._item_to_entry(item) for item in items]
        return sorted(entries, key=lambda entry: entry.started_at, reverse=True)

    def get_last_successful_sync(self, sync_type: str) -> Optional[SyncLogEntry]:
        """
        Get the most recently completed sync of a given type.

        Args:
            sync_type: Type of sync to check

        Returns:
            SyncLogEntry or None if no sync has completed
        """
        items = self.scan_items(
            Attr('sync_type').eq(sync_type) & Attr('status').eq(STATUS_COMPLETED)
        )
        if not items:
            return None

        entries = [self._item_to_entry(item) for item in items]
        return max(entries, key=lambda entry: entry.completed_at)

    def should_run_sync(self, sync_type: str, interval_hours: float = 24) -> bool:
        """
        Decide whether enough time has passed since the last successful sync.

        Args:
            sync_type: Type of sync to check
            interval_hours: Minimum hours between successful syncs

        Returns:
            True if no sync has completed or the interval has elapsed
        """
        last_sync = self.get_last_successful_sync(sync_type)
        if last_sync is None:
            return True

        elapsed = datetime.now(timezone.utc) - last_sync.completed_at
        return elapsed >= timedelta(hours=interval_hours)

    def get_sync_stats(self, sync_type: str, days: int = 30) -> Dict[str, Any]:
        """
        Summarize sync activity over a recent window.

        Args:
            sync_type: Type of sync to report on
            days: Number of days to look back

        Returns:
            Dictionary of totals and last success/failure timestamps
        """
        since = datetime.now(timezone.utc) - timedelta(days=days)
        entries = [
            entry for entry in self.get_entries(sync_type)
            if entry.started_at >= since
        ]

        completed = [e for e in entries if e.status == STATUS_COMPLETED]
        failed = [e for e in entries if e.status == STATUS_FAILED]

        return {
            'total_syncs': len(entries),
            'successful_syncs': len(completed),
            'failed_syncs': len(failed),
            'total_events_processed': sum(e.events_processed for e in entries),
            'total_events_created': sum(e.events_created for e in entries),
            'total_events_updated': sum(e.events_updated for e in entries),
            'last_successful_sync': completed[0].completed_at if completed else None,
            'last_failed_sync': failed[0].completed_at if failed else None,
        }

    def _entry_to_item(self, entry: SyncLogEntry) -> dict:
        item = {
            'id': entry.id,
            'sync_type': entry.sync_type,
            'status': entry.status,
            'started_at': entry.started_at.isoformat(),
            'events_processed': entry.events_processed,
            'events_created': entry.events_created,
            'events_updated': entry.events_updated,
            'metadata': to_dynamodb_value(entry.metadata),
        }
        if entry.completed_at:
            item['completed_at'] = entry.completed_at.isoformat()
        if entry.error_message:
            item['error_message'] = entry.error_message
        return item

    def _item_to_entry(self, item: dict) -> SyncLogEntry:
        item = from_dynamodb_value(item)
        completed_at = item.get('completed_at')
        return SyncLogEntry(
            id=item['id'],
            sync_type=item['sync_type'],
            status=item['status'],
            started_at=datetime.fromisoformat(item['started_at']),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            events_processed=int(item.get('events_processed', 0)),
            events_created=int(item.get('events_created', 0)),
            events_updated=int(item.get('events_updated', 0)),
            error_message=item.get('error_message'),
            metadata=item.get('metadata') or {}
        )
