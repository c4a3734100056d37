"""DynamoDB storage for carnival records."""
import dataclasses
import logging
from datetime import date, datetime, timezone
from functools import reduce
from typing import Any, Dict, List, Optional

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from processor.models import DATE_FIELDS, Carnival
from storage.dynamodb_manager import (
    DynamoDBManager,
    from_dynamodb_value,
    to_dynamodb_value,
)

logger = logging.getLogger(__name__)

TIMESTAMP_FIELDS = ('last_mysideline_sync', 'created_at', 'updated_at')
FLOAT_FIELDS = ('location_latitude', 'location_longitude')


class CarnivalTable(DynamoDBManager):
    """Manager for the carnivals table."""

    # Reserved key of the atomic counter item that hands out carnival ids
    COUNTER_ID = 0

    def create_carnival(self, carnival: Carnival) -> Carnival:
        """
        Store a new carnival, assigning its numeric id.

        Args:
            carnival: Carnival to store; its id is ignored

        Returns:
            The stored Carnival with id and timestamps set
        """
        now = datetime.now(timezone.utc)
        stored = dataclasses.replace(
            carnival,
            id=self._next_id(),
            created_at=now,
            updated_at=now
        )

        try:
            self.table.put_item(
                Item=self._carnival_to_item(stored),
                ConditionExpression=Attr('id').not_exists()
            )
        except ClientError as e:
            logger.error(f"Error creating carnival '{carnival.title}': {e}")
            raise

        logger.debug(f"Stored carnival {stored.id}: '{stored.title}'")
        return stored

    def get_carnival(self, carnival_id: int) -> Optional[Carnival]:
        """
        Fetch a carnival by id.

        Args:
            carnival_id: Internal carnival id

        Returns:
            Carnival or None if not found
        """
        try:
            response = self.table.get_item(Key={'id': carnival_id})
        except ClientError as e:
            logger.error(f"Error fetching carnival {carnival_id}: {e}")
            raise

        item = response.get('Item')
        return self._item_to_carnival(item) if item else None

    def get_all_carnivals(self) -> List[Carnival]:
        """Return every stored carnival ordered by id."""
        return self.find_carnivals({})

    def find_carnivals(self, criteria: Dict[str, Any]) -> List[Carnival]:
        """
        Find carnivals whose attributes equal the given values.

        A criterion of None matches carnivals without that attribute.

        Args:
            criteria: Attribute names mapped to required values

        Returns:
            Matching carnivals ordered by id
        """
        conditions = [Attr('id').gt(self.COUNTER_ID)]
        for name, value in criteria.items():
            if value is None:
                conditions.append(Attr(name).not_exists())
            else:
                conditions.append(Attr(name).eq(self._to_stored_value(value)))

        items = self.scan_items(reduce(lambda left, right: left & right, conditions))
        carnivals = [self._item_to_carnival(item) for item in items]
        return sorted(carnivals, key=lambda carnival: carnival.id)

    def find_carnival(self, criteria: Dict[str, Any]) -> Optional[Carnival]:
        """
        Find the first carnival matching the criteria.

        Args:
            criteria: Attribute names mapped to required values

        Returns:
            Carnival with the lowest id among matches, or None
        """
        matches = self.find_carnivals(criteria)
        return matches[0] if matches else None

    def update_carnival(self, carnival_id: int, updates: Dict[str, Any]) -> Carnival:
        """
        Apply field updates to an existing carnival in one write.

        Args:
            carnival_id: Internal carnival id
            updates: Field names mapped to new values

        Returns:
            The carnival as stored after the update
        """
        values = {
            name: self._to_stored_value(value)
            for name, value in updates.items()
        }
        values['updated_at'] = datetime.now(timezone.utc).isoformat()

        item = self.update_attributes(
            {'id': carnival_id},
            values,
            condition=Attr('id').exists()
        )
        return self._item_to_carnival(item)

    def find_active_carnivals_before(self, cutoff: date) -> List[Carnival]:
        """
        Find active carnivals dated strictly before the cutoff.

        Args:
            cutoff: First date that is not considered past

        Returns:
            Matching carnivals ordered by id
        """
        items = self.scan_items(
            Attr('id').gt(self.COUNTER_ID)
            & Attr('is_active').eq(True)
            & Attr('date').lt(cutoff.isoformat())
        )
        carnivals = [self._item_to_carnival(item) for item in items]
        return sorted(carnivals, key=lambda carnival: carnival.id)

    def deactivate_carnivals(self, carnival_ids: List[int]) -> int:
        """
        Mark carnivals inactive, skipping any already inactive.

        Args:
            carnival_ids: Ids of carnivals to deactivate

        Returns:
            Count of carnivals actually deactivated
        """
        if not carnival_ids:
            return 0

        logger.info(f"Deactivating {len(carnival_ids)} carnivals")
        count = self.batch_update(
            [{'id': carnival_id} for carnival_id in carnival_ids],
            {
                'is_active': False,
                'updated_at': datetime.now(timezone.utc).isoformat(),
            },
            condition=Attr('is_active').eq(True)
        )
        logger.info(f"Successfully deactivated {count} carnivals")
        return count

    def _next_id(self) -> int:
        response = self.table.update_item(
            Key={'id': self.COUNTER_ID},
            UpdateExpression='ADD #sequence :one',
            ExpressionAttributeNames={'#sequence': 'sequence'},
            ExpressionAttributeValues={':one': 1},
            ReturnValues='UPDATED_NEW'
        )
        return int(response['Attributes']['sequence'])

    def _to_stored_value(self, value: Any) -> Any:
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, date):
            return value.isoformat()
        return to_dynamodb_value(value)

    def _carnival_to_item(self, carnival: Carnival) -> dict:
        """
        Convert Carnival object to DynamoDB item.

        Args:
            carnival: Carnival object

        Returns:
            DynamoDB item dictionary without empty attributes
        """
        item = {}
        for name, value in dataclasses.asdict(carnival).items():
            if value is None:
                continue
            item[name] = self._to_stored_value(value)
        return item

    def _item_to_carnival(self, item: dict) -> Carnival:
        """
        Convert DynamoDB item to Carnival object.

        Args:
            item: DynamoDB item dictionary

        Returns:
            Carnival object
        """
        known = {f.name for f in dataclasses.fields(Carnival)}
        values = {}
        for name, value in from_dynamodb_value(item).items():
            if name not in known:
                continue
            if name in DATE_FIELDS:
                value = date.fromisoformat(value)
            elif name in TIMESTAMP_FIELDS:
                value = datetime.fromisoformat(value)
            elif name in FLOAT_FIELDS:
                value = float(value)
            elif name == 'mysideline_id':
                value = str(value)
            values[name] = value
        return Carnival(**values)
