"""Shared DynamoDB table access for carnival and sync log storage."""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import ConditionBase
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


def to_dynamodb_value(value: Any) -> Any:
    """
    Convert a Python value into something boto3 can serialize.

    Floats become Decimal, None values are dropped from mappings.

    Args:
        value: Value to convert

    Returns:
        DynamoDB compatible value
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {
            key: to_dynamodb_value(item)
            for key, item in value.items()
            if item is not None
        }
    if isinstance(value, (list, tuple)):
        return [to_dynamodb_value(item) for item in value]
    return value


def from_dynamodb_value(value: Any) -> Any:
    """
    Convert a value read from DynamoDB back into plain Python types.

    Args:
        value: Value returned by boto3

    Returns:
        Value with Decimal replaced by int or float
    """
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {key: from_dynamodb_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [from_dynamodb_value(item) for item in value]
    return value


class DynamoDBManager:
    """Base manager for a single DynamoDB table."""

    def __init__(self, table_name: str, region_name: Optional[str] = None):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table
            region_name: AWS region, defaults to the environment's region
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb', region_name=region_name)
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized {type(self).__name__} for table: {table_name}")

    def scan_items(
        self,
        filter_expression: Optional[ConditionBase] = None
    ) -> List[Dict[str, Any]]:
        """
        Scan the table, following pagination until exhausted.

        Args:
            filter_expression: Optional boto3 condition to filter items

        Returns:
            List of raw DynamoDB items
        """
        scan_kwargs = {}
        if filter_expression is not None:
            scan_kwargs['FilterExpression'] = filter_expression

        try:
            response = self.table.scan(**scan_kwargs)
            items = response.get('Items', [])

            # Handle pagination
            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey'],
                    **scan_kwargs
                )
                items.extend(response.get('Items', []))

            return items

        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table {self.table_name}: {e}")
            raise

    def update_attributes(
        self,
        key: Dict[str, Any],
        updates: Dict[str, Any],
        condition: Optional[ConditionBase] = None
    ) -> Dict[str, Any]:
        """
        Set attributes on a single item in one atomic update.

        Args:
            key: Primary key of the item
            updates: Attribute names mapped to new values
            condition: Optional condition that must hold for the write

        Returns:
            The full item after the update
        """
        # boto3 names condition placeholders #n0/:v0..., so ours must differ
        names = {}
        values = {}
        assignments = []
        for index, (name, value) in enumerate(updates.items()):
            names[f'#attr{index}'] = name
            values[f':val{index}'] = to_dynamodb_value(value)
            assignments.append(f'#attr{index} = :val{index}')

        update_kwargs = {
            'Key': key,
            'UpdateExpression': 'SET ' + ', '.join(assignments),
            'ExpressionAttributeNames': names,
            'ExpressionAttributeValues': values,
            'ReturnValues': 'ALL_NEW',
        }
        if condition is not None:
            update_kwargs['ConditionExpression'] = condition

        try:
            response = self.table.update_item(**update_kwargs)
            return response['Attributes']
        except ClientError as e:
            logger.error(f"Error updating item {key} in {self.table_name}: {e}")
            raise

    def batch_update(
        self,
        keys: List[Dict[str, Any]],
        updates: Dict[str, Any],
        condition: Optional[ConditionBase] = None
    ) -> int:
        """
        Apply the same conditional update to many items.

        Items whose condition no longer holds are skipped.

        Args:
            keys: Primary keys of items to update
            updates: Attribute names mapped to new values
            condition: Optional condition checked per item

        Returns:
            Count of successfully updated items
        """
        if not keys:
            return 0

        success_count = 0
        for key in keys:
            try:
                self.update_attributes(key, updates, condition=condition)
                success_count += 1
            except ClientError as e:
                if e.response['Error']['Code'] == 'ConditionalCheckFailedException':
                    logger.info(f"Skipping item {key}: condition no longer holds")
                    continue
                raise

        return success_count
