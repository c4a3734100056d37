"""Scraper for MySideline rugby league Masters carnival listings."""
import logging
import time
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

from processor.carnival_normalizer import CarnivalNormalizer
from processor.models import ScrapedCarnival
from scraper.mock_data import MOCK_API_RESPONSE, MOCK_SEARCH_HTML

logger = logging.getLogger(__name__)


class MySidelineScraper:
    """Fetch Masters carnivals from the MySideline registration search."""

    SEARCH_URL = (
        'https://profile.mysideline.com.au/register/clubsearch/'
        '?criteria=Masters&source=rugby-league'
    )
    API_URL = 'https://api.mysideline.xyz/nrl/api/v1/portal-public/registration/search'
    EVENT_URL = (
        'https://profile.mysideline.com.au/register/clubsearch/'
        '?source=rugby-league&entityType=team&isEntityIdSearch=true'
        '&entity=true&criteria='
    )
    DEFAULT_COUNTRY = 'Australia'

    def __init__(
        self,
        timeout: int = 60,
        use_mock: bool = False,
        enable_scraping: bool = True,
        search_url: Optional[str] = None,
        api_url: Optional[str] = None,
        event_url: Optional[str] = None,
        max_retries: int = 3
    ):
        """
        Initialize the MySideline scraper.

        Args:
            timeout: HTTP request timeout in seconds
            use_mock: Return the canned response instead of calling MySideline
            enable_scraping: When False, fetch_events returns nothing
            search_url: Club search page used for logo lookup
            api_url: Registration search API endpoint
            event_url: Prefix for per-carnival registration links
            max_retries: Attempts made for the API request
        """
        self.timeout = timeout
        self.use_mock = use_mock
        self.enable_scraping = enable_scraping
        self.search_url = search_url or self.SEARCH_URL
        self.api_url = api_url or self.API_URL
        self.event_url = event_url or self.EVENT_URL
        self.max_retries = max_retries
        self.normalizer = CarnivalNormalizer()

    def fetch_events(self) -> List[ScrapedCarnival]:
        """
        Fetch Masters carnivals from MySideline.

        Returns:
            List of ScrapedCarnival objects

        Raises:
            requests.RequestException: If the API cannot be reached after retries
        """
        if not self.enable_scraping:
            logger.info("MySideline scraping is disabled via configuration")
            return []

        if self.use_mock:
            logger.info("Using mock MySideline data")
            return self.process_api_response(
                MOCK_API_RESPONSE,
                self.extract_image_dictionary(MOCK_SEARCH_HTML)
            )

        logger.info("Fetching MySideline Masters carnivals")
        api_response = self._fetch_api_response()
        image_dictionary = self._fetch_image_dictionary()

        events = self.process_api_response(api_response, image_dictionary)
        logger.info(f"Found {len(events)} Masters carnivals from MySideline")
        return events

    def _fetch_api_response(self) -> Dict[str, Any]:
        """
        Call the registration search API with retry logic.

        Returns:
            Decoded JSON response

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        payload = {'criteria': 'Masters', 'source': 'rugby-league'}
        base_delay = 1  # seconds

        for attempt in range(self.max_retries):
            try:
                logger.info(
                    f"Requesting MySideline API (attempt {attempt + 1}/{self.max_retries})"
                )
                response = requests.post(
                    self.api_url,
                    json=payload,
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.json()

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    # Calculate exponential backoff delay
                    delay = base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} retry attempts failed. Last error: {e}"
                    )
                    raise

    def _fetch_image_dictionary(self) -> Dict[str, str]:
        """Load the club search page for logos; failures only lose logos."""
        try:
            response = requests.get(self.search_url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Could not load MySideline search page for logos: {e}")
            return {}
        return self.extract_image_dictionary(response.text)

    def extract_image_dictionary(self, html_content: str) -> Dict[str, str]:
        """
        Map image alt text to image URL on the club search page.

        Args:
            html_content: HTML of the club search page

        Returns:
            Dictionary of alt text to image URL (last one wins)
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        images = {}

        for img in soup.find_all('img', alt=True):
            source = img.get('data-url') or img.get('src')
            if img['alt'] and source:
                images[img['alt']] = source

        logger.info(f"Found {len(images)} unique images with alt tags")
        return images

    def process_api_response(
        self,
        api_response: Dict[str, Any],
        image_dictionary: Optional[Dict[str, str]] = None
    ) -> List[ScrapedCarnival]:
        """
        Convert the API response into scraped carnivals.

        Args:
            api_response: Decoded registration search response
            image_dictionary: Alt text to logo URL lookup

        Returns:
            List of ScrapedCarnival objects for relevant Masters carnivals
        """
        items = api_response.get('data') if isinstance(api_response, dict) else None
        if not isinstance(items, list):
            logger.warning("Invalid API response structure")
            return []

        image_dictionary = image_dictionary or {}
        events = []

        for item in items:
            try:
                if not self.is_relevant_masters_event(item):
                    continue

                event = self.convert_api_item_to_event(item)
                logo = image_dictionary.get(event.mysideline_title)
                if logo:
                    event.club_logo_url = logo
                events.append(event)

            except (KeyError, TypeError, ValueError) as e:
                item_id = item.get('_id', 'unknown') if isinstance(item, dict) else 'unknown'
                logger.warning(f"Failed to process API item {item_id}: {e}")
                continue

        return events

    def is_relevant_masters_event(self, item: Any) -> bool:
        """
        Decide whether an API item is a Masters (non-touch) listing.

        Args:
            item: API response item

        Returns:
            True if the item should be imported
        """
        if not isinstance(item, dict) or not item.get('name'):
            return False

        age_level = (item.get('ageLvl') or '').lower()
        region = self._nested_name(item.get('orgtree'), 'region')
        association = self._nested_name(item, 'association')
        competition = self._nested_name(item, 'competition')
        club = self._nested_name(item, 'club')

        if 'touch' in association or 'touch' in competition or 'all ages' in age_level:
            return False

        return (
            'masters' in age_level
            or 'nrl masters' in region
            or 'nrl masters' in association
            or 'masters' in competition
            or 'masters' in club
        )

    def convert_api_item_to_event(self, item: Dict[str, Any]) -> ScrapedCarnival:
        """
        Convert an API item into a ScrapedCarnival.

        Args:
            item: API response item

        Returns:
            ScrapedCarnival

        Raises:
            ValueError: If the item lacks a name or id
        """
        if not item.get('name'):
            raise ValueError("Item missing required name property")
        if not item.get('_id'):
            raise ValueError("Item missing required _id property")

        venue = item.get('venue') or {}
        contact = item.get('contact') or {}
        meta = item.get('meta') or {}
        orgtree_venue = (item.get('orgtree') or {}).get('venue') or {}
        address = venue.get('address') or contact.get('address') or {}

        location_address = address.get('formatted') or None
        latitude = address.get('lat')
        longitude = address.get('lng')

        google_maps_url = None
        if latitude and longitude:
            google_maps_url = (
                f"https://www.google.com/maps/search/?api=1&query={latitude},{longitude}"
            )
        elif location_address:
            google_maps_url = (
                f"https://www.google.com/maps/search/?api=1&query={quote(location_address)}"
            )

        title, event_date = self.normalizer.extract_and_strip_date_from_title(item['name'])
        if not title or not title.strip():
            title = item['name']
        event_date = event_date.date() if event_date else None

        registration_open = bool(item.get('regoOpen'))

        return ScrapedCarnival(
            title=title,
            date=event_date,
            location_address=location_address,
            state=address.get('state') or None,
            mysideline_id=str(item['_id']),
            mysideline_title=item['name'],
            mysideline_address=location_address,
            mysideline_date=event_date,
            venue_name=venue.get('name') or orgtree_venue.get('name') or None,
            location_address_line1=address.get('addressLine1') or None,
            location_address_line2=address.get('addressLine2') or None,
            location_suburb=address.get('suburb') or None,
            location_postcode=address.get('postcode') or None,
            location_country=address.get('country') or self.DEFAULT_COUNTRY,
            location_latitude=latitude or None,
            location_longitude=longitude or None,
            google_maps_url=google_maps_url,
            organiser_contact_name=contact.get('name') or None,
            organiser_contact_phone=contact.get('number') or None,
            organiser_contact_email=contact.get('email') or None,
            registration_link=f"{self.event_url}{item['_id']}",
            social_media_website=meta.get('website') or None,
            social_media_facebook=meta.get('facebook') or None,
            schedule_details=(item.get('finderDetails') or {}).get('description') or None,
            source='MySideline',
            is_active=registration_open,
            is_registration_open=registration_open
        )

    def _nested_name(self, container: Any, key: str) -> str:
        if not isinstance(container, dict):
            return ''
        value = container.get(key)
        if not isinstance(value, dict):
            return ''
        return (value.get('name') or '').lower()
