"""Unit tests for DynamoDB manager."""
from decimal import Decimal
from unittest.mock import Mock

import pytest
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from storage.dynamodb_manager import DynamoDBManager, from_dynamodb_value, to_dynamodb_value


@pytest.fixture
def dynamodb_manager(dynamodb_tables):
    """Create DynamoDBManager instance with mock table."""
    manager = DynamoDBManager('test-sync-logs', region_name='ap-southeast-2')
    for key, status in (('a', 'started'), ('b', 'completed'), ('c', 'completed')):
        manager.table.put_item(Item={'id': key, 'status': status, 'count': 1})
    return manager


def test_to_dynamodb_value():
    """Test floats become Decimal and None is dropped from mappings."""
    value = to_dynamodb_value({
        'lat': -27.2303,
        'count': 3,
        'flag': True,
        'missing': None,
        'nested': [1.5, {'inner': None}],
    })

    assert value == {
        'lat': Decimal('-27.2303'),
        'count': 3,
        'flag': True,
        'nested': [Decimal('1.5'), {}],
    }


def test_from_dynamodb_value():
    """Test Decimal values come back as int or float."""
    value = from_dynamodb_value({
        'count': Decimal('4'),
        'lat': Decimal('-27.2303'),
        'items': [Decimal('2'), 'text'],
    })

    assert value == {'count': 4, 'lat': -27.2303, 'items': [2, 'text']}
    assert isinstance(value['count'], int)


def test_scan_items_with_filter(dynamodb_manager):
    """Test scan returns only items matching the filter."""
    items = dynamodb_manager.scan_items(Attr('status').eq('completed'))

    assert sorted(item['id'] for item in items) == ['b', 'c']


def test_scan_items_follows_pagination(dynamodb_manager):
    """Test every page of a scan is collected."""
    dynamodb_manager.table = Mock()
    dynamodb_manager.table.scan.side_effect = [
        {'Items': [{'id': 'a'}], 'LastEvaluatedKey': {'id': 'a'}},
        {'Items': [{'id': 'b'}]},
    ]

    items = dynamodb_manager.scan_items()

    assert [item['id'] for item in items] == ['a', 'b']
    assert dynamodb_manager.table.scan.call_count == 2
    assert dynamodb_manager.table.scan.call_args.kwargs == {'ExclusiveStartKey': {'id': 'a'}}


def test_update_attributes(dynamodb_manager):
    """Test attributes are set and the full item is returned."""
    item = dynamodb_manager.update_attributes(
        {'id': 'a'},
        {'status': 'completed', 'ratio': 0.5}
    )

    assert item['status'] == 'completed'
    assert item['ratio'] == Decimal('0.5')
    assert item['count'] == 1


def test_update_attributes_with_condition_on_updated_field(dynamodb_manager):
    """Test the new value is written when the condition reads the same field."""
    item = dynamodb_manager.update_attributes(
        {'id': 'a'},
        {'status': 'completed', 'count': 2},
        condition=Attr('status').eq('started') & Attr('count').eq(1)
    )

    assert item['status'] == 'completed'
    assert item['count'] == 2
    stored = dynamodb_manager.table.get_item(Key={'id': 'a'})['Item']
    assert stored['status'] == 'completed'


def test_update_attributes_condition_failure(dynamodb_manager):
    """Test a failed condition raises and leaves the item alone."""
    with pytest.raises(ClientError) as exc_info:
        dynamodb_manager.update_attributes(
            {'id': 'b'},
            {'status': 'failed'},
            condition=Attr('status').eq('started')
        )

    assert exc_info.value.response['Error']['Code'] == 'ConditionalCheckFailedException'
    assert dynamodb_manager.table.get_item(Key={'id': 'b'})['Item']['status'] == 'completed'


def test_batch_update_skips_failed_conditions(dynamodb_manager):
    """Test items failing the condition are skipped, not fatal."""
    count = dynamodb_manager.batch_update(
        [{'id': 'a'}, {'id': 'b'}, {'id': 'c'}],
        {'status': 'failed'},
        condition=Attr('status').eq('started')
    )

    assert count == 1
    assert dynamodb_manager.table.get_item(Key={'id': 'a'})['Item']['status'] == 'failed'


def test_batch_update_empty(dynamodb_manager):
    """Test an empty key list does nothing."""
    assert dynamodb_manager.batch_update([], {'status': 'failed'}) == 0


def test_batch_update_raises_other_errors(dynamodb_manager):
    """Test errors other than failed conditions propagate."""
    dynamodb_manager.table = Mock()
    dynamodb_manager.table.update_item.side_effect = ClientError(
        {'Error': {'Code': 'ProvisionedThroughputExceededException', 'Message': 'Slow down'}},
        'UpdateItem'
    )

    with pytest.raises(ClientError):
        dynamodb_manager.batch_update([{'id': 'a'}], {'status': 'failed'})
