"""Shared fixtures: moto-backed DynamoDB tables for carnivals and sync logs."""
from datetime import date, timedelta

import boto3
import pytest
from moto import mock_aws

from processor.models import Carnival, ScrapedCarnival
from storage.carnival_table import CarnivalTable
from storage.sync_log_table import SyncLogTable

REGION = 'ap-southeast-2'
CARNIVALS_TABLE = 'test-carnivals'
SYNC_LOG_TABLE = 'test-sync-logs'


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so nothing can reach a real AWS account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', REGION)


@pytest.fixture
def dynamodb_tables():
    """Create mock carnivals and sync log tables."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name=REGION)

        dynamodb.create_table(
            TableName=CARNIVALS_TABLE,
            KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'N'}],
            BillingMode='PAY_PER_REQUEST'
        )
        dynamodb.create_table(
            TableName=SYNC_LOG_TABLE,
            KeySchema=[{'AttributeName': 'id', 'KeyType': 'HASH'}],
            AttributeDefinitions=[{'AttributeName': 'id', 'AttributeType': 'S'}],
            BillingMode='PAY_PER_REQUEST'
        )

        yield dynamodb


@pytest.fixture
def carnival_table(dynamodb_tables):
    """CarnivalTable bound to the mock table."""
    return CarnivalTable(CARNIVALS_TABLE, region_name=REGION)


@pytest.fixture
def sync_log_table(dynamodb_tables):
    """SyncLogTable bound to the mock table."""
    return SyncLogTable(SYNC_LOG_TABLE, region_name=REGION)


@pytest.fixture
def future_date():
    return date.today() + timedelta(days=60)


@pytest.fixture
def make_carnival(carnival_table, future_date):
    """Store a carnival with sensible defaults, overridable per test."""
    def _make(**overrides):
        values = {
            'title': 'Redcliffe Masters Carnival',
            'date': future_date,
            'state': 'QLD',
            'source': 'MySideline',
        }
        values.update(overrides)
        return carnival_table.create_carnival(Carnival(**values))
    return _make


@pytest.fixture
def scraped_event(future_date):
    """A normalized scraped carnival as the matcher and merger see it."""
    return ScrapedCarnival(
        title='Redcliffe Masters Carnival',
        date=future_date,
        mysideline_id='ms-1001',
        mysideline_title='Redcliffe Masters Carnival (15/11/2027)',
        mysideline_date=future_date,
        mysideline_address='Redcliffe Recreation Reserve, Redcliffe QLD 4020',
        location_address='Redcliffe Recreation Reserve, Redcliffe QLD 4020',
        state='QLD',
        organiser_contact_email='carnivals@redcliffemasters.com.au',
        description='Annual Masters carnival',
        club_logo_url='https://cdn.mysideline.com.au/logos/redcliffe.png',
        registration_link='https://profile.mysideline.com.au/register/ms-1001'
    )


@pytest.fixture
def raw_event():
    """Build raw camelCase records as the scraper collaborator hands them over."""
    def _raw(title: str, mysideline_id: str, event_date: date) -> dict:
        return {
            'title': title,
            'mySidelineId': mysideline_id,
            'mySidelineTitle': f"{title} ({event_date.strftime('%d/%m/%Y')})",
            'mySidelineDate': event_date.strftime('%d/%m/%Y'),
            'mySidelineAddress': f"{title} Oval",
            'date': event_date.strftime('%d/%m/%Y'),
            'locationAddress': f"{title} Oval",
            'state': 'nsw',
            'organiserContactEmail': 'Organiser@Example.com',
            'description': f"{title} description",
            'registrationLink': f"https://profile.mysideline.com.au/register/{mysideline_id}",
        }
    return _raw
