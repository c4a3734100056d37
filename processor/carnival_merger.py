"""Non-destructive merging of scraped data into stored carnivals."""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from processor.models import CONTENT_FIELDS, LEGACY_MATCH_FIELDS, Carnival, ScrapedCarnival
from storage.carnival_table import CarnivalTable

logger = logging.getLogger(__name__)

# mysideline_id is filled once and then never changes
MERGEABLE_FIELDS = ('mysideline_id',) + LEGACY_MATCH_FIELDS + CONTENT_FIELDS


def is_empty(value: Any) -> bool:
    """True for None and blank strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


class CarnivalMerger:
    """Fill empty fields of stored carnivals from fresh scrape data."""

    def __init__(self, carnival_table: CarnivalTable):
        self.carnival_table = carnival_table

    def build_updates(
        self,
        existing: Carnival,
        scraped: ScrapedCarnival
    ) -> Dict[str, Any]:
        """
        Work out which fields the scraped record may fill.

        A field is taken from the scrape only when the stored value is empty
        and the scraped value is not; user edits are never overwritten.

        Args:
            existing: Stored carnival
            scraped: Normalized scraped carnival

        Returns:
            Field names mapped to values to store
        """
        updates = {}
        for name in MERGEABLE_FIELDS:
            new_value = getattr(scraped, name)
            if is_empty(new_value):
                continue
            if is_empty(getattr(existing, name)):
                updates[name] = new_value
        return updates

    def merge(
        self,
        existing: Carnival,
        scraped: ScrapedCarnival,
        synced_at: Optional[datetime] = None
    ) -> Carnival:
        """
        Merge a scraped carnival into its stored record.

        The sync timestamp is always stamped, even when nothing else changed.

        Args:
            existing: Stored carnival matched to the scrape
            scraped: Normalized scraped carnival
            synced_at: Sync timestamp, defaults to now

        Returns:
            The carnival as stored after the merge
        """
        updates = self.build_updates(existing, scraped)
        if updates:
            logger.info(
                f"Updating {len(updates)} empty fields for carnival "
                f"{existing.id}: {sorted(updates)}"
            )

        updates['last_mysideline_sync'] = synced_at or datetime.now(timezone.utc)
        return self.carnival_table.update_carnival(existing.id, updates)
