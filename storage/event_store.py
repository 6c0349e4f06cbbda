"""DynamoDB event store with insert-only deduplication."""
import hashlib
import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional

import boto3
from botocore.exceptions import ClientError

from processor.models import Event

logger = logging.getLogger(__name__)

# Errors that mean the whole table is unusable rather than one bad item
FATAL_ERROR_CODES = ('ResourceNotFoundException', 'AccessDeniedException')


class DynamoDBEventStore:
    """Persistence sink for extracted events."""

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB resource and table reference.

        Args:
            table_name: Name of the DynamoDB table (hash key `event_id`)
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBEventStore for table: {table_name}")

    @staticmethod
    def generate_event_id(event: Event) -> str:
        """
        Stable id from the (name, date, location) triple.

        Location is compared case-insensitively; contact and source URL are
        not part of the identity.
        """
        name, date, location = event.dedup_key()
        key = f"{name}|{date.isoformat()}|{location}"
        return hashlib.sha256(key.encode('utf-8')).hexdigest()

    def save(self, events: List[Event]) -> int:
        """
        Insert events whose triple is not stored yet.

        Args:
            events: Events to persist

        Returns:
            Number of newly inserted events

        Raises:
            ClientError: If the table is missing or not accessible
        """
        if not events:
            return 0

        logger.info(f"Saving {len(events)} events to DynamoDB")
        saved = 0
        duplicates = 0

        for event in events:
            try:
                self.table.put_item(
                    Item=self._event_to_item(event),
                    ConditionExpression='attribute_not_exists(event_id)'
                )
                saved += 1
            except ClientError as e:
                code = e.response.get('Error', {}).get('Code')
                if code == 'ConditionalCheckFailedException':
                    duplicates += 1
                    continue
                if code in FATAL_ERROR_CODES:
                    logger.error(f"Error writing to {self.table_name}: {e}")
                    raise
                logger.error(f"Error saving event '{event.name}': {e}")

        logger.info(
            f"Saved {saved} new events, skipped {duplicates} duplicates",
            extra={'saved': saved, 'duplicates': duplicates, 'total': len(events)}
        )
        return saved

    def get_all_events(self) -> Dict[str, Event]:
        """
        Retrieve all events using a paginated Scan.

        Returns:
            Dictionary mapping event_id to Event objects
        """
        return self._scan()

    def get_events_without_messages(self) -> Dict[str, Event]:
        """Events the notification pipeline has not contacted yet."""
        return self._scan(message_sent=False)

    def mark_message_sent(self, event_id: str) -> None:
        self._set_flag(event_id, 'message_sent')

    def mark_response_received(self, event_id: str) -> None:
        self._set_flag(event_id, 'response_received')

    def _set_flag(self, event_id: str, flag: str) -> None:
        try:
            self.table.update_item(
                Key={'event_id': event_id},
                UpdateExpression=f'SET {flag} = :true',
                ConditionExpression='attribute_exists(event_id)',
                ExpressionAttributeValues={':true': True}
            )
            logger.info(f"Set {flag} on event {event_id}")
        except ClientError as e:
            logger.error(f"Error setting {flag} on event {event_id}: {e}")
            raise

    def _scan(self, message_sent: Optional[bool] = None) -> Dict[str, Event]:
        logger.info(f"Scanning DynamoDB table {self.table_name}")
        events = {}

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        for item in items:
            if message_sent is not None and bool(item.get('message_sent')) != message_sent:
                continue
            event = self._item_to_event(item)
            if event:
                events[item['event_id']] = event

        logger.info(f"Retrieved {len(events)} events from DynamoDB")
        return events

    def _event_to_item(self, event: Event) -> dict:
        item = {
            'event_id': self.generate_event_id(event),
            'name': event.name,
            'date': event.date.isoformat(),
            'location': event.location,
            'organizer_contact': event.organizer_contact,
            'source_url': event.source_url,
            'message_sent': event.message_sent,
            'response_received': event.response_received,
            'created_at': datetime.now().isoformat(timespec='seconds'),
        }

        if event.price is not None:
            item['price'] = event.price
        if event.participants_count is not None:
            item['participants_count'] = event.participants_count
        if event.organizer_name:
            item['organizer_name'] = event.organizer_name

        return item

    def _item_to_event(self, item: dict) -> Optional[Event]:
        try:
            price = item.get('price')
            participants = item.get('participants_count')
            return Event(
                name=item['name'],
                date=datetime.fromisoformat(item['date']),
                location=item['location'],
                organizer_contact=item['organizer_contact'],
                source_url=item.get('source_url', ''),
                price=Decimal(price) if price is not None else None,
                participants_count=int(participants) if participants is not None else None,
                organizer_name=item.get('organizer_name'),
                message_sent=bool(item.get('message_sent', False)),
                response_received=bool(item.get('response_received', False)),
            )
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to convert item to Event: {e}")
            return None
