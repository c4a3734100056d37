"""Unit tests for MySidelineScraper."""
import json
from datetime import date
from unittest.mock import call, patch

import pytest
import responses
from requests.exceptions import RequestException, Timeout

from scraper.mock_data import MOCK_API_RESPONSE, MOCK_SEARCH_HTML
from scraper.mysideline_scraper import MySidelineScraper

API_URL = MySidelineScraper.API_URL
SEARCH_URL = MySidelineScraper.SEARCH_URL


class TestMySidelineScraper:
    """Test cases for MySidelineScraper class."""

    @responses.activate
    def test_fetch_events_success(self):
        """Test successful fetch of API listings with logos."""
        responses.add(responses.POST, API_URL, json=MOCK_API_RESPONSE, status=200)
        responses.add(responses.GET, SEARCH_URL, body=MOCK_SEARCH_HTML, status=200)

        scraper = MySidelineScraper(timeout=30)
        events = scraper.fetch_events()

        assert len(events) == 2
        assert json.loads(responses.calls[0].request.body) == {
            'criteria': 'Masters',
            'source': 'rugby-league',
        }

        # Verify first event
        assert events[0].title == 'Masters Rugby League Carnival'
        assert events[0].date == date(2027, 11, 15)
        assert events[0].mysideline_id == '64b7f0c2a1d3e40012345678'
        assert events[0].mysideline_title == 'Masters Rugby League Carnival (15/11/2027)'
        assert events[0].club_logo_url == 'https://cdn.mysideline.com.au/logos/redcliffe.png'
        assert events[0].is_registration_open is True
        assert events[0].is_active is True

        # Verify second event
        assert events[1].title == 'NSW Masters Championship'
        assert events[1].date == date(2028, 3, 20)
        assert events[1].club_logo_url == 'https://cdn.mysideline.com.au/logos/nsw-masters.png'
        assert events[1].is_registration_open is False

    @responses.activate
    @patch('scraper.mysideline_scraper.time.sleep')
    def test_fetch_events_with_retry_success(self, mock_sleep):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.POST, API_URL, body='Server Error', status=500)
        responses.add(responses.POST, API_URL, body='Server Error', status=500)
        responses.add(responses.POST, API_URL, json=MOCK_API_RESPONSE, status=200)
        responses.add(responses.GET, SEARCH_URL, body=MOCK_SEARCH_HTML, status=200)

        scraper = MySidelineScraper(timeout=30)
        events = scraper.fetch_events()

        assert len(events) == 2
        assert mock_sleep.call_args_list == [call(1), call(2)]

    @responses.activate
    @patch('scraper.mysideline_scraper.time.sleep')
    def test_fetch_events_all_retries_fail(self, mock_sleep):
        """Test that exception is raised when all retries fail."""
        for _ in range(3):
            responses.add(responses.POST, API_URL, body='Server Error', status=500)

        scraper = MySidelineScraper(timeout=30)

        with pytest.raises(RequestException):
            scraper.fetch_events()

        assert len(responses.calls) == 3

    @responses.activate
    @patch('scraper.mysideline_scraper.time.sleep')
    def test_fetch_events_timeout(self, mock_sleep):
        """Test timeout handling."""
        for _ in range(3):
            responses.add(responses.POST, API_URL, body=Timeout('Request timed out'))

        scraper = MySidelineScraper(timeout=30)

        with pytest.raises(Timeout):
            scraper.fetch_events()

        assert len(responses.calls) == 3

    @responses.activate
    def test_logo_page_failure_is_not_fatal(self):
        """Test carnivals are still returned when the logo page fails."""
        responses.add(responses.POST, API_URL, json=MOCK_API_RESPONSE, status=200)
        responses.add(responses.GET, SEARCH_URL, body='Unavailable', status=503)

        scraper = MySidelineScraper(timeout=30)
        events = scraper.fetch_events()

        assert len(events) == 2
        assert all(event.club_logo_url is None for event in events)

    @responses.activate
    def test_fetch_events_mock_mode(self):
        """Test mock mode never touches the network."""
        scraper = MySidelineScraper(use_mock=True)
        events = scraper.fetch_events()

        assert [event.title for event in events] == [
            'Masters Rugby League Carnival',
            'NSW Masters Championship',
        ]
        assert len(responses.calls) == 0

    @responses.activate
    def test_fetch_events_disabled(self):
        """Test disabled scraping returns nothing."""
        scraper = MySidelineScraper(enable_scraping=False, use_mock=True)

        assert scraper.fetch_events() == []
        assert len(responses.calls) == 0

    def test_extract_image_dictionary_prefers_data_url(self):
        """Test lazy-loaded logos use the data-url attribute."""
        scraper = MySidelineScraper()
        images = scraper.extract_image_dictionary(MOCK_SEARCH_HTML)

        assert images == {
            'Masters Rugby League Carnival (15/11/2027)':
                'https://cdn.mysideline.com.au/logos/redcliffe.png',
            'NSW Masters Championship - 20th March 2028':
                'https://cdn.mysideline.com.au/logos/nsw-masters.png',
        }

    def test_process_api_response_invalid_structure(self):
        """Test a response without a data list yields no carnivals."""
        scraper = MySidelineScraper()

        assert scraper.process_api_response({'items': []}) == []
        assert scraper.process_api_response(None) == []

    def test_process_api_response_skips_invalid_items(self):
        """Test that items missing an id are skipped."""
        scraper = MySidelineScraper()
        response = {
            'data': [
                {'name': 'Broken Masters Carnival', 'ageLvl': 'Masters'},
                {'_id': 'ok-1', 'name': 'Valid Masters Carnival', 'ageLvl': 'Masters'},
            ]
        }

        events = scraper.process_api_response(response)

        assert [event.mysideline_id for event in events] == ['ok-1']


class TestMastersRelevance:
    """Test cases for the Masters listing filter."""

    @pytest.mark.parametrize('item', [
        {'name': 'A', 'ageLvl': 'Masters'},
        {'name': 'A', 'orgtree': {'region': {'name': 'NRL Masters QLD'}}},
        {'name': 'A', 'association': {'name': 'NRL Masters NSW'}},
        {'name': 'A', 'competition': {'name': 'Masters Series'}},
        {'name': 'A', 'club': {'name': 'Redcliffe Masters'}},
    ])
    def test_masters_listings_included(self, item):
        """Test each Masters signal is enough on its own."""
        assert MySidelineScraper().is_relevant_masters_event(item) is True

    @pytest.mark.parametrize('item', [
        {'name': 'A', 'ageLvl': 'Masters', 'association': {'name': 'Touch Football'}},
        {'name': 'A', 'ageLvl': 'Masters', 'competition': {'name': 'Masters Touch'}},
        {'name': 'A', 'ageLvl': 'All Ages', 'club': {'name': 'Masters Club'}},
        {'name': 'A', 'ageLvl': 'Under 12s'},
        {'ageLvl': 'Masters'},
        'not a dict',
    ])
    def test_other_listings_excluded(self, item):
        """Test touch, all-ages, junior and malformed listings are dropped."""
        assert MySidelineScraper().is_relevant_masters_event(item) is False


class TestConvertApiItem:
    """Test cases for API item conversion."""

    def test_convert_venue_address(self):
        """Test venue details, coordinates and contacts are mapped."""
        scraper = MySidelineScraper()
        event = scraper.convert_api_item_to_event(MOCK_API_RESPONSE['data'][0])

        assert event.venue_name == 'Redcliffe Recreation Reserve'
        assert event.location_address == 'Redcliffe Recreation Reserve, Redcliffe QLD 4020'
        assert event.mysideline_address == event.location_address
        assert event.location_suburb == 'Redcliffe'
        assert event.location_postcode == '4020'
        assert event.state == 'QLD'
        assert event.location_latitude == -27.2303
        assert event.google_maps_url == (
            'https://www.google.com/maps/search/?api=1&query=-27.2303,153.1125'
        )
        assert event.organiser_contact_name == 'Jane Citizen'
        assert event.organiser_contact_email == 'Carnivals@RedcliffeMasters.com.au'
        assert event.social_media_website == 'https://redcliffemasters.com.au'
        assert event.schedule_details == 'Annual Masters carnival, 9am start.'
        assert event.registration_link == (
            MySidelineScraper.EVENT_URL + '64b7f0c2a1d3e40012345678'
        )
        assert event.source == 'MySideline'

    def test_convert_contact_address(self):
        """Test the contact address is used when there is no venue."""
        scraper = MySidelineScraper()
        event = scraper.convert_api_item_to_event(MOCK_API_RESPONSE['data'][1])

        assert event.location_address == 'Accor Stadium, Sydney Olympic Park NSW 2127'
        assert event.state == 'NSW'
        assert event.location_country == 'Australia'
        assert event.google_maps_url.startswith(
            'https://www.google.com/maps/search/?api=1&query=Accor%20Stadium'
        )
        assert event.is_active is False

    def test_convert_without_address(self):
        """Test a listing without any address leaves the address empty."""
        scraper = MySidelineScraper()
        event = scraper.convert_api_item_to_event(
            {'_id': 'x1', 'name': 'Masters Carnival'}
        )

        assert event.location_address is None
        assert event.mysideline_address is None
        assert event.google_maps_url is None
        assert event.date is None

    def test_convert_requires_id(self):
        """Test items without an id are rejected."""
        with pytest.raises(ValueError):
            MySidelineScraper().convert_api_item_to_event({'name': 'Masters Carnival'})
