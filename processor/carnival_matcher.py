"""Matching of scraped carnivals against stored carnival records."""
import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple

from processor.models import Carnival, ScrapedCarnival
from storage.carnival_table import CarnivalTable

logger = logging.getLogger(__name__)


class MatchStrategy:
    """
    One tier of the matching cascade.

    build_criteria is pure: it only looks at the scraped carnival and says
    which stored attributes must match, or None when the tier does not apply.
    """

    name = 'base'

    def build_criteria(self, event: ScrapedCarnival) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class MySidelineIdStrategy(MatchStrategy):
    """Match on the stable external MySideline id."""

    name = 'mysideline_id'

    def build_criteria(self, event: ScrapedCarnival) -> Optional[Dict[str, Any]]:
        if not event.mysideline_id:
            return None
        return {
            'mysideline_id': str(event.mysideline_id),
            'is_manually_entered': False,
        }


class LegacyFieldsStrategy(MatchStrategy):
    """Match on the title/date/address snapshot taken at first import."""

    name = 'legacy_fields'

    def build_criteria(self, event: ScrapedCarnival) -> Optional[Dict[str, Any]]:
        if not event.mysideline_title:
            return None

        criteria = {
            'mysideline_title': event.mysideline_title,
            'is_manually_entered': False,
        }

        # An unparseable date drops the date constraint; a missing one keeps it
        mysideline_date = event.mysideline_date
        if 'mysideline_date' in event.unparsed_dates:
            mysideline_date = event.unparsed_dates['mysideline_date']
        if mysideline_date is None or isinstance(mysideline_date, date):
            criteria['mysideline_date'] = mysideline_date
        else:
            logger.warning(
                f"Invalid mysideline_date for carnival "
                f"'{event.mysideline_title}': {mysideline_date}. "
                f"Matching without date."
            )

        if event.mysideline_address:
            criteria['mysideline_address'] = event.mysideline_address
        return criteria


class DateAndTitleStrategy(MatchStrategy):
    """Fallback match on display date and title."""

    name = 'date_and_title'

    def build_criteria(self, event: ScrapedCarnival) -> Optional[Dict[str, Any]]:
        if not event.title or event.date is None:
            return None
        if not isinstance(event.date, date):
            logger.warning(
                f"Invalid date for carnival '{event.title}': {event.date}. "
                f"Skipping date-based matching."
            )
            return None
        return {
            'date': event.date,
            'title': event.title,
            'is_manually_entered': False,
        }


DEFAULT_STRATEGIES = (
    MySidelineIdStrategy(),
    LegacyFieldsStrategy(),
    DateAndTitleStrategy(),
)


class CarnivalMatcher:
    """Find the stored carnival a scraped record represents."""

    def __init__(
        self,
        carnival_table: CarnivalTable,
        strategies: Sequence[MatchStrategy] = DEFAULT_STRATEGIES
    ):
        self.carnival_table = carnival_table
        self.strategies: List[MatchStrategy] = list(strategies)

    def find_match(
        self,
        event: ScrapedCarnival
    ) -> Tuple[Optional[Carnival], Optional[str]]:
        """
        Run the strategies in priority order, stopping at the first hit.

        Args:
            event: Normalized scraped carnival

        Returns:
            Tuple of (matching Carnival, strategy name), or (None, None)
        """
        for strategy in self.strategies:
            criteria = strategy.build_criteria(event)
            if criteria is None:
                continue

            match = self.carnival_table.find_carnival(criteria)
            if match is not None:
                logger.info(
                    f"Found existing carnival {match.id} by {strategy.name}: "
                    f"'{event.title}'"
                )
                return match, strategy.name

        return None, None

    def find_existing_carnival(self, event: ScrapedCarnival) -> Optional[Carnival]:
        """
        Find the stored carnival matching a scraped record.

        Args:
            event: Normalized scraped carnival

        Returns:
            Matching Carnival or None if the carnival is new
        """
        match, _ = self.find_match(event)
        return match
