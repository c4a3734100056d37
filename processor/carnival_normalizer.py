"""Normalizer for cleaning scraped MySideline carnival data."""
import dataclasses
import logging
import re
from datetime import date, datetime
from typing import Optional, Tuple, Union

from processor.models import DATE_FIELDS, ScrapedCarnival

logger = logging.getLogger(__name__)

AUSTRALIAN_STATES = ('ACT', 'NSW', 'NT', 'QLD', 'SA', 'TAS', 'VIC', 'WA')

MONTHS = {
    'january': 1, 'february': 2, 'march': 3, 'april': 4, 'may': 5, 'june': 6,
    'july': 7, 'august': 8, 'september': 9, 'october': 10, 'november': 11,
    'december': 12,
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'jun': 6, 'jul': 7, 'aug': 8,
    'sep': 9, 'sept': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

_ORDINAL_SUFFIX = re.compile(r'(\d+)(st|nd|rd|th)\b', re.IGNORECASE)
_NUMERIC_DATE = re.compile(r'^(\d{1,2})[\s/\-](\d{1,2})[\s/\-](\d{4})$')
_DAY_MONTH_YEAR = re.compile(r'^(\d{1,2})\s+([a-z]{3,})\.?\s+(\d{4})$', re.IGNORECASE)
_MONTH_DAY_YEAR = re.compile(r'^([a-z]{3,})\.?\s+(\d{1,2}),?\s+(\d{4})$', re.IGNORECASE)
_EMAIL = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')

# Any of the supported date shapes, as they appear inside a title
_TITLE_DATE = (
    r'(?:\d{1,2}[\s/\-]\d{1,2}[\s/\-]\d{4})'
    r'|(?:\d{1,2}(?:st|nd|rd|th)?\s+[a-zA-Z]{3,}\s+\d{4})'
    r'|(?:[a-zA-Z]{3,}\s+\d{1,2},?\s+\d{4})'
)
_TITLE_DATE_PATTERNS = (
    re.compile(r'\s*\((' + _TITLE_DATE + r')\)\s*', re.IGNORECASE),
    re.compile(r'\s*[\-|]\s*(' + _TITLE_DATE + r')\s*', re.IGNORECASE),
    re.compile(r'\s+(' + _TITLE_DATE + r')\s*$', re.IGNORECASE),
)

STRING_FIELDS = (
    'title',
    'mysideline_title',
    'mysideline_address',
    'state',
    'venue_name',
    'location_address',
    'location_address_line1',
    'location_address_line2',
    'location_suburb',
    'location_postcode',
    'location_country',
    'google_maps_url',
    'organiser_contact_name',
    'organiser_contact_email',
    'organiser_contact_phone',
    'description',
    'schedule_details',
    'fees_description',
    'registration_link',
    'club_logo_url',
    'social_media_facebook',
    'social_media_website',
)


class CarnivalNormalizer:
    """Normalizer for validating and cleaning scraped carnival records."""

    DEFAULT_TITLE = 'Masters Rugby League Event'

    def normalize_event(
        self,
        event: Union[ScrapedCarnival, dict]
    ) -> ScrapedCarnival:
        """
        Clean fields and convert date strings to date values.

        Args:
            event: Scraped carnival

        Returns:
            New ScrapedCarnival with cleaned fields and parsed dates
        """
        if isinstance(event, dict):
            event = ScrapedCarnival.from_dict(event)

        cleaned = self.validate_and_clean(event)

        parsed_dates = {}
        unparsed_dates = dict(cleaned.unparsed_dates)
        for name in DATE_FIELDS:
            value = getattr(cleaned, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                parsed_dates[name] = None
                continue
            parsed = self.parse_date(value)
            if parsed is None:
                logger.warning(
                    f"Invalid {name} for carnival '{cleaned.title}': {value}"
                )
                parsed_dates[name] = None
                unparsed_dates[name] = value
            else:
                parsed_dates[name] = parsed.date()

        title = cleaned.title
        if parsed_dates['date'] is None:
            clean_title, extracted = self.extract_and_strip_date_from_title(title)
            if extracted is not None:
                parsed_dates['date'] = extracted.date()
                unparsed_dates.pop('date', None)
                title = clean_title or title

        return dataclasses.replace(
            cleaned,
            title=title,
            unparsed_dates=unparsed_dates,
            **parsed_dates
        )

    def validate_and_clean(self, event: ScrapedCarnival) -> ScrapedCarnival:
        """
        Trim strings and drop values that fail validation.

        Args:
            event: Scraped carnival

        Returns:
            Cleaned copy of the carnival
        """
        changes = {}

        for name in STRING_FIELDS:
            value = getattr(event, name)
            if isinstance(value, str):
                value = value.strip()
                changes[name] = value or None

        if not changes.get('title', event.title):
            logger.warning("No title provided, using default")
            changes['title'] = self.DEFAULT_TITLE

        email = changes.get('organiser_contact_email')
        if email:
            if _EMAIL.match(email):
                changes['organiser_contact_email'] = email.lower()
            else:
                logger.warning(f"Invalid email format: {email}")
                changes['organiser_contact_email'] = None

        state = changes.get('state')
        if state:
            state = state.upper()
            if state in AUSTRALIAN_STATES:
                changes['state'] = state
            else:
                logger.warning(f"Unknown state for carnival '{event.title}': {state}")
                changes['state'] = None

        if event.mysideline_id is not None:
            mysideline_id = str(event.mysideline_id).strip()
            changes['mysideline_id'] = mysideline_id or None

        return dataclasses.replace(event, **changes)

    def parse_date(self, value) -> Optional[datetime]:
        """
        Parse the date formats MySideline listings use.

        Handles DD/MM/YYYY (day first), "27th July 2024", "July 27, 2024"
        and ISO 8601 strings. Never raises.

        Args:
            value: Date string, date or datetime

        Returns:
            datetime or None if the value cannot be parsed
        """
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day)
        if not isinstance(value, str) or not value.strip():
            return None

        text = _ORDINAL_SUFFIX.sub(r'\1', value.strip())

        match = _NUMERIC_DATE.match(text)
        if match:
            day, month, year = (int(part) for part in match.groups())
            return self._build_date(year, month, day)

        match = _DAY_MONTH_YEAR.match(text)
        if match:
            month = self._month_number(match.group(2))
            if month:
                return self._build_date(
                    int(match.group(3)), month, int(match.group(1))
                )

        match = _MONTH_DAY_YEAR.match(text)
        if match:
            month = self._month_number(match.group(1))
            if month:
                return self._build_date(
                    int(match.group(3)), month, int(match.group(2))
                )

        try:
            return datetime.fromisoformat(text.replace('Z', '+00:00'))
        except ValueError:
            return None

    def extract_and_strip_date_from_title(
        self,
        title: Optional[str]
    ) -> Tuple[Optional[str], Optional[datetime]]:
        """
        Pull an embedded date out of a carnival title.

        Args:
            title: Title such as "Masters Carnival (27th July 2024)"

        Returns:
            Tuple of (clean title, extracted datetime or None)
        """
        if not title or not isinstance(title, str):
            return title, None

        clean_title = title.strip()
        extracted = None

        for pattern in _TITLE_DATE_PATTERNS:
            match = pattern.search(clean_title)
            if not match:
                continue
            extracted = self.parse_date(match.group(1).strip())
            if extracted is None:
                logger.warning(f"Failed to parse date from string: '{match.group(1)}'")
                continue
            clean_title = pattern.sub(' ', clean_title, count=1)
            clean_title = re.sub(r'\s+', ' ', clean_title).strip()
            logger.debug(f"Extracted date '{match.group(1)}' from title '{title}'")
            break

        clean_title = re.sub(r'\s*[\-|]\s*$', '', clean_title)
        clean_title = re.sub(r'^\s*[\-|]\s*', '', clean_title)
        clean_title = re.sub(r'\s+', ' ', clean_title).strip()

        if not clean_title:
            bracketed = re.search(r'\(([^\d)]+)\)', title)
            clean_title = bracketed.group(1).strip() if bracketed else title.strip()

        return clean_title, extracted

    def _month_number(self, name: str) -> Optional[int]:
        return MONTHS.get(name.lower())

    def _build_date(self, year: int, month: int, day: int) -> Optional[datetime]:
        try:
            return datetime(year, month, day)
        except ValueError:
            return None
