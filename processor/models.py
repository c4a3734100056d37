"""Data models for MySideline carnival synchronization."""
from dataclasses import asdict, dataclass, field, fields
from datetime import date as date_type, datetime
from typing import Any, Dict, List, Optional


# Fields users may edit after import; sync only ever fills them when empty
CONTENT_FIELDS = (
    'title',
    'date',
    'end_date',
    'state',
    'venue_name',
    'location_address',
    'location_address_line1',
    'location_address_line2',
    'location_suburb',
    'location_postcode',
    'location_country',
    'location_latitude',
    'location_longitude',
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

# Snapshot fields captured at first import and used only for matching
LEGACY_MATCH_FIELDS = (
    'mysideline_title',
    'mysideline_date',
    'mysideline_address',
)

DATE_FIELDS = ('date', 'end_date', 'mysideline_date')


@dataclass
class ScrapedCarnival:
    """Raw carnival record produced by the MySideline scraper."""
    title: Optional[str] = None
    date: Any = None
    end_date: Any = None
    mysideline_id: Optional[str] = None
    mysideline_title: Optional[str] = None
    mysideline_date: Any = None
    mysideline_address: Optional[str] = None
    state: Optional[str] = None
    venue_name: Optional[str] = None
    location_address: Optional[str] = None
    location_address_line1: Optional[str] = None
    location_address_line2: Optional[str] = None
    location_suburb: Optional[str] = None
    location_postcode: Optional[str] = None
    location_country: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    google_maps_url: Optional[str] = None
    organiser_contact_name: Optional[str] = None
    organiser_contact_email: Optional[str] = None
    organiser_contact_phone: Optional[str] = None
    description: Optional[str] = None
    schedule_details: Optional[str] = None
    fees_description: Optional[str] = None
    registration_link: Optional[str] = None
    club_logo_url: Optional[str] = None
    social_media_facebook: Optional[str] = None
    social_media_website: Optional[str] = None
    is_active: Optional[bool] = None
    is_registration_open: Optional[bool] = None
    source: Optional[str] = None
    # Date fields that were scraped but could not be parsed, with raw values
    unparsed_dates: Dict[str, Any] = field(default_factory=dict)

    # camelCase keys as captured from MySideline
    _ALIASES = {
        'mySidelineId': 'mysideline_id',
        'mySidelineTitle': 'mysideline_title',
        'mySidelineDate': 'mysideline_date',
        'mySidelineAddress': 'mysideline_address',
        'endDate': 'end_date',
        'venueName': 'venue_name',
        'locationAddress': 'location_address',
        'locationAddressLine1': 'location_address_line1',
        'locationAddressLine2': 'location_address_line2',
        'locationSuburb': 'location_suburb',
        'locationPostcode': 'location_postcode',
        'locationCountry': 'location_country',
        'locationLatitude': 'location_latitude',
        'locationLongitude': 'location_longitude',
        'googleMapsUrl': 'google_maps_url',
        'organiserContactName': 'organiser_contact_name',
        'organiserContactEmail': 'organiser_contact_email',
        'organiserContactPhone': 'organiser_contact_phone',
        'scheduleDetails': 'schedule_details',
        'feesDescription': 'fees_description',
        'registrationLink': 'registration_link',
        'clubLogoURL': 'club_logo_url',
        'socialMediaFacebook': 'social_media_facebook',
        'socialMediaWebsite': 'social_media_website',
        'isActive': 'is_active',
        'isRegistrationOpen': 'is_registration_open',
    }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScrapedCarnival':
        """
        Build a ScrapedCarnival from a raw dictionary.

        Accepts either camelCase or snake_case keys; unknown keys are ignored.

        Args:
            data: Raw scraped record

        Returns:
            ScrapedCarnival instance
        """
        known = {f.name for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = cls._ALIASES.get(key, key)
            if name in known:
                values[name] = value
        return cls(**values)


@dataclass
class Carnival:
    """Carnival record persisted in storage."""
    id: Optional[int] = None
    title: Optional[str] = None
    date: Optional[date_type] = None
    end_date: Optional[date_type] = None
    mysideline_id: Optional[str] = None
    mysideline_title: Optional[str] = None
    mysideline_date: Optional[date_type] = None
    mysideline_address: Optional[str] = None
    state: Optional[str] = None
    venue_name: Optional[str] = None
    location_address: Optional[str] = None
    location_address_line1: Optional[str] = None
    location_address_line2: Optional[str] = None
    location_suburb: Optional[str] = None
    location_postcode: Optional[str] = None
    location_country: Optional[str] = None
    location_latitude: Optional[float] = None
    location_longitude: Optional[float] = None
    google_maps_url: Optional[str] = None
    organiser_contact_name: Optional[str] = None
    organiser_contact_email: Optional[str] = None
    organiser_contact_phone: Optional[str] = None
    description: Optional[str] = None
    schedule_details: Optional[str] = None
    fees_description: Optional[str] = None
    registration_link: Optional[str] = None
    club_logo_url: Optional[str] = None
    social_media_facebook: Optional[str] = None
    social_media_website: Optional[str] = None
    is_active: bool = True
    is_manually_entered: bool = False
    is_registration_open: bool = False
    source: Optional[str] = None
    last_mysideline_sync: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class SyncLogEntry:
    """One sync attempt recorded in the sync log."""
    id: str
    sync_type: str
    status: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    events_processed: int = 0
    events_created: int = 0
    events_updated: int = 0
    error_message: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SyncRunContext:
    """Per-run accumulator threaded through event processing."""
    synced_at: datetime
    events_processed: int = 0
    events_created: int = 0
    events_updated: int = 0
    events_skipped: int = 0
    errors: List[str] = field(default_factory=list)

    def record_created(self) -> None:
        self.events_created += 1
        self.events_processed += 1

    def record_updated(self) -> None:
        self.events_updated += 1
        self.events_processed += 1

    def record_skipped(self) -> None:
        self.events_skipped += 1

    def record_error(self, label: str, error: Exception) -> None:
        self.errors.append(f"{label}: {error}")

    def to_counts(self) -> Dict[str, int]:
        return {
            'events_processed': self.events_processed,
            'events_created': self.events_created,
            'events_updated': self.events_updated,
            'events_skipped': self.events_skipped,
        }


@dataclass
class SyncResult:
    """Result of a sync run returned to the caller."""
    success: bool
    events_processed: int = 0
    events_created: int = 0
    events_updated: int = 0
    events_skipped: int = 0
    errors: List[str] = field(default_factory=list)
    error: Optional[str] = None
    message: Optional[str] = None
    sync_log_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = asdict(self)
        if result['error'] is None:
            del result['error']
        return result


@dataclass
class DeactivationResult:
    """Result of the past-carnival deactivation sweep."""
    success: bool
    deactivated_count: int = 0
    carnivals: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class SyncSettings:
    """Runtime configuration for the sync job."""
    carnivals_table_name: str = 'carnivals'
    sync_log_table_name: str = 'sync-logs'
    region_name: Optional[str] = None
    log_level: str = 'INFO'
    sync_enabled: bool = True
    use_mock: bool = False
    enable_scraping: bool = True
    sync_interval_hours: float = 24
    request_timeout: int = 60
    search_url: Optional[str] = None
    api_url: Optional[str] = None
    event_url: Optional[str] = None
    environment: str = 'production'
