"""Unit tests for DynamoDBEventStore."""
from datetime import datetime
from decimal import Decimal

import boto3
import pytest
from botocore.exceptions import ClientError
from moto import mock_aws

from processor.models import Event
from storage.event_store import DynamoDBEventStore


@pytest.fixture
def dynamodb_table():
    """Create a mock DynamoDB table for testing."""
    with mock_aws():
        dynamodb = boto3.resource('dynamodb', region_name='us-east-1')

        table = dynamodb.create_table(
            TableName='test-events',
            KeySchema=[
                {'AttributeName': 'event_id', 'KeyType': 'HASH'}
            ],
            AttributeDefinitions=[
                {'AttributeName': 'event_id', 'AttributeType': 'S'}
            ],
            BillingMode='PAY_PER_REQUEST'
        )

        yield table


@pytest.fixture
def event_store(dynamodb_table):
    """Create DynamoDBEventStore instance with mock table."""
    return DynamoDBEventStore('test-events')


@pytest.fixture
def sample_event():
    return Event(
        name='Фестиваль уличной еды',
        date=datetime(2025, 6, 15, 19, 0),
        location='Москва',
        organizer_contact='info@food.ru',
        source_url='https://example.com/food',
        price=Decimal('350.50'),
        participants_count=2000,
        organizer_name='Food Fest'
    )


def test_save_twice_inserts_once(event_store, sample_event):
    """The second save of the same triple is skipped."""
    assert event_store.save([sample_event]) == 1
    assert event_store.save([sample_event]) == 0


def test_duplicates_within_one_call(event_store, sample_event):
    assert event_store.save([sample_event, sample_event]) == 1


def test_location_compared_case_insensitively(event_store, sample_event):
    event_store.save([sample_event])
    same = Event(
        name=sample_event.name,
        date=sample_event.date,
        location='МОСКВА',
        organizer_contact='other@food.ru',
        source_url='https://mirror.example.com/food'
    )

    assert event_store.save([same]) == 0


def test_different_date_is_new(event_store, sample_event):
    event_store.save([sample_event])
    later = Event(
        name=sample_event.name,
        date=datetime(2025, 6, 16, 19, 0),
        location=sample_event.location,
        organizer_contact=sample_event.organizer_contact,
        source_url=sample_event.source_url
    )

    assert event_store.save([later]) == 1


def test_save_empty(event_store):
    assert event_store.save([]) == 0


def test_generate_event_id_stable(sample_event):
    first = DynamoDBEventStore.generate_event_id(sample_event)

    assert first == DynamoDBEventStore.generate_event_id(sample_event)
    assert len(first) == 64


def test_get_all_events_round_trip(event_store, sample_event):
    event_store.save([sample_event])

    events = event_store.get_all_events()

    assert len(events) == 1
    event_id = DynamoDBEventStore.generate_event_id(sample_event)
    stored = events[event_id]
    assert stored.name == sample_event.name
    assert stored.date == sample_event.date
    assert stored.price == Decimal('350.50')
    assert stored.participants_count == 2000
    assert stored.organizer_name == 'Food Fest'
    assert stored.message_sent is False


def test_get_all_events_empty_table(event_store):
    assert event_store.get_all_events() == {}


def test_message_lifecycle(event_store, sample_event):
    other = Event(
        name='Другое событие',
        date=datetime(2025, 7, 1, 10, 0),
        location='Казань',
        organizer_contact='@kazan_events',
        source_url='https://example.com/kazan'
    )
    event_store.save([sample_event, other])
    event_id = DynamoDBEventStore.generate_event_id(sample_event)

    event_store.mark_message_sent(event_id)
    event_store.mark_response_received(event_id)

    pending = event_store.get_events_without_messages()
    assert list(pending.values())[0].name == 'Другое событие'
    assert len(pending) == 1

    stored = event_store.get_all_events()[event_id]
    assert stored.message_sent is True
    assert stored.response_received is True


def test_mark_unknown_event_raises(event_store):
    with pytest.raises(ClientError):
        event_store.mark_message_sent('missing')


def test_missing_table_raises(sample_event):
    with mock_aws():
        store = DynamoDBEventStore('does-not-exist')

        with pytest.raises(ClientError):
            store.save([sample_event])
