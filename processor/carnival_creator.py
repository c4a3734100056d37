"""Creation of carnival records for newly scraped MySideline events."""
import logging
from datetime import datetime, timezone
from typing import Optional

from processor.models import CONTENT_FIELDS, LEGACY_MATCH_FIELDS, Carnival, ScrapedCarnival
from storage.carnival_table import CarnivalTable

logger = logging.getLogger(__name__)


class InvalidCarnivalError(ValueError):
    """Raised when a scraped record cannot become a carnival."""


class CarnivalCreator:
    """Build and store new carnivals from scraped records."""

    SOURCE = 'MySideline'
    DEFAULT_COUNTRY = 'Australia'

    def __init__(self, carnival_table: CarnivalTable):
        self.carnival_table = carnival_table

    def build_carnival(
        self,
        scraped: ScrapedCarnival,
        synced_at: datetime
    ) -> Carnival:
        """
        Build an unsaved Carnival from a scraped record.

        Args:
            scraped: Normalized scraped carnival
            synced_at: Sync timestamp to stamp on the record

        Returns:
            Carnival without an id

        Raises:
            InvalidCarnivalError: If the scraped record has no title
        """
        if not scraped.title or not scraped.title.strip():
            raise InvalidCarnivalError("Scraped carnival is missing a title")

        values = {
            name: getattr(scraped, name)
            for name in CONTENT_FIELDS + LEGACY_MATCH_FIELDS
        }
        values['location_country'] = values['location_country'] or self.DEFAULT_COUNTRY

        return Carnival(
            mysideline_id=scraped.mysideline_id,
            is_active=True,
            is_manually_entered=False,
            is_registration_open=bool(scraped.is_registration_open),
            source=self.SOURCE,
            last_mysideline_sync=synced_at,
            **values
        )

    def create(
        self,
        scraped: ScrapedCarnival,
        synced_at: Optional[datetime] = None
    ) -> Carnival:
        """
        Store a new carnival for a scraped record with no existing match.

        Args:
            scraped: Normalized scraped carnival
            synced_at: Sync timestamp, defaults to now

        Returns:
            The stored Carnival
        """
        carnival = self.build_carnival(
            scraped,
            synced_at or datetime.now(timezone.utc)
        )
        stored = self.carnival_table.create_carnival(carnival)
        logger.info(f"Created new MySideline carnival {stored.id}: '{stored.title}'")
        return stored
