"""Integration tests for Lambda handler."""
import json
import logging
import os
from datetime import datetime
from unittest.mock import Mock, patch

import pytest

from lambda_function import JsonFormatter, lambda_handler, load_settings, setup_logging
from pipeline.orchestrator import NoSourcesConfigured
from pipeline.sources import UnknownSourceKind
from processor.models import Event


@pytest.fixture
def mock_env():
    """Set up environment variables for testing."""
    env_vars = {
        'EVENT_SOURCES': 'https://afisha.yandex.ru/moscow, api:kudago/spb,,api:timepad',
        'TABLE_NAME': 'test-events',
        'LOG_LEVEL': 'INFO',
        'WORKER_POOL_SIZE': '3',
        'TIMEOUT_SECONDS': '5',
        'MIN_DELAY_SECONDS': '0',
        'MAX_DELAY_SECONDS': '0'
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars


@pytest.fixture
def mock_context():
    """Create a mock Lambda context."""
    context = Mock()
    context.function_name = 'test-function'
    context.memory_limit_in_mb = 512
    context.invoked_function_arn = 'arn:aws:lambda:us-east-1:123456789012:function:test-function'
    context.aws_request_id = 'test-request-id'
    return context


@pytest.fixture
def sample_events():
    """Create sample parsed events."""
    return [
        Event(
            name='Концерт',
            date=datetime(2025, 6, 15, 19, 0),
            location='Москва',
            organizer_contact='info@yandex.ru',
            source_url='https://afisha.yandex.ru/moscow/concert/1'
        ),
        Event(
            name='Выставка',
            date=datetime(2025, 6, 16, 10, 0),
            location='Эрмитаж',
            organizer_contact='info@kudago.com',
            source_url='https://kudago.com/spb/event/2/'
        )
    ]


class TestLoadSettings:
    """Test cases for configuration loading."""

    def test_values_from_environment(self, mock_env):
        settings = load_settings()

        assert settings['sources'] == ['https://afisha.yandex.ru/moscow', 'api:kudago/spb', 'api:timepad']
        assert settings['table_name'] == 'test-events'
        assert settings['worker_pool_size'] == 3
        assert settings['timeout_seconds'] == 5.0
        assert settings['min_delay_seconds'] == 0.0

    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings()

        assert settings['sources'] == []
        assert settings['table_name'] == 'events'
        assert settings['worker_pool_size'] == 5
        assert settings['timeout_seconds'] == 10.0
        assert (settings['min_delay_seconds'], settings['max_delay_seconds']) == (1.0, 3.0)
        assert settings['default_city'] == 'Москва'


class TestLambdaHandler:
    """Test cases for Lambda handler."""

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_scheduled_run(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_events
    ):
        """Test successful end-to-end run over configured sources."""
        mock_orchestrator = Mock()
        mock_orchestrator.parse_all.return_value = sample_events
        mock_orchestrator_class.return_value = mock_orchestrator

        mock_store = Mock()
        mock_store.save.return_value = 1
        mock_store_class.return_value = mock_store

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['events_parsed'] == 2
        assert body['events_saved'] == 1
        assert body['sources'] == 3
        assert 'duration_seconds' in body

        mock_orchestrator.parse_all.assert_called_once_with(
            ['https://afisha.yandex.ru/moscow', 'api:kudago/spb', 'api:timepad']
        )
        mock_store_class.assert_called_once_with(table_name='test-events')
        mock_store.save.assert_called_once_with(sample_events)

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_on_demand_single_source(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_events
    ):
        mock_orchestrator = Mock()
        mock_orchestrator.parse_one.return_value = sample_events[:1]
        mock_orchestrator_class.return_value = mock_orchestrator
        mock_store_class.return_value.save.return_value = 1

        response = lambda_handler({'source': 'expomap.ru/expo'}, mock_context)

        assert response['statusCode'] == 200
        body = json.loads(response['body'])
        assert body['events_parsed'] == 1
        assert body['sources'] == 1
        mock_orchestrator.parse_one.assert_called_once_with('expomap.ru/expo')
        mock_orchestrator.parse_all.assert_not_called()

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_eventbridge_payload_runs_all_sources(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        mock_orchestrator_class.return_value.parse_all.return_value = []
        mock_store_class.return_value.save.return_value = 0
        event = {'source': 'aws.events', 'detail-type': 'Scheduled Event', 'detail': {}}

        response = lambda_handler(event, mock_context)

        assert response['statusCode'] == 200
        mock_orchestrator_class.return_value.parse_all.assert_called_once()
        mock_orchestrator_class.return_value.parse_one.assert_not_called()

    @patch('lambda_function.DynamoDBEventStore')
    def test_no_sources_configured(self, mock_store_class, mock_context):
        """An empty source list is reported distinctly from zero results."""
        with patch.dict(os.environ, {'EVENT_SOURCES': '', 'MIN_DELAY_SECONDS': '0', 'MAX_DELAY_SECONDS': '0'}):
            response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body'])['message'] == 'No sources configured'
        mock_store_class.assert_not_called()

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_zero_results_is_success(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        mock_orchestrator_class.return_value.parse_all.return_value = []
        mock_store_class.return_value.save.return_value = 0

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        assert json.loads(response['body'])['events_parsed'] == 0

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_unknown_source_kind(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        mock_orchestrator_class.return_value.parse_one.side_effect = UnknownSourceKind('nope')

        response = lambda_handler({'source': 'nope|https://x.example.com'}, mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body'])['error_type'] == 'UnknownSourceKind'
        mock_store_class.assert_not_called()

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_blank_on_demand_source(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        response = lambda_handler({'source': '   '}, mock_context)

        assert response['statusCode'] == 400
        assert json.loads(response['body'])['message'] == 'Empty source descriptor'
        mock_orchestrator_class.assert_not_called()
        mock_store_class.assert_not_called()

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_no_sources_signal_from_orchestrator(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        mock_orchestrator_class.return_value.parse_all.side_effect = NoSourcesConfigured()

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 400

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_storage_failure(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_events
    ):
        """Test error handling for DynamoDB failures."""
        mock_orchestrator_class.return_value.parse_all.return_value = sample_events
        mock_store_class.return_value.save.side_effect = Exception('DynamoDB error')

        response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 500
        body = json.loads(response['body'])
        assert body['message'] == 'Failed to save events'
        assert 'DynamoDB error' in body['error']
        assert body['events_parsed'] == 2

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    def test_unexpected_parse_failure(
        self,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context
    ):
        mock_orchestrator_class.return_value.parse_one.side_effect = RuntimeError('boom')

        response = lambda_handler({'source': 'https://x.example.com'}, mock_context)

        assert response['statusCode'] == 500
        assert json.loads(response['body'])['message'] == 'Parsing failed'
        mock_store_class.assert_not_called()

    @patch('lambda_function.DynamoDBEventStore')
    @patch('lambda_function.Orchestrator')
    @patch('lambda_function.setup_logging')
    def test_logging_output(
        self,
        mock_setup_logging,
        mock_orchestrator_class,
        mock_store_class,
        mock_env,
        mock_context,
        sample_events,
        caplog
    ):
        """Test that logging output is generated correctly."""
        mock_orchestrator_class.return_value.parse_all.return_value = sample_events
        mock_store_class.return_value.save.return_value = 2

        with caplog.at_level(logging.INFO, logger='lambda_function'):
            response = lambda_handler({}, mock_context)

        assert response['statusCode'] == 200
        log_messages = [record.message for record in caplog.records]
        assert any('Lambda execution started' in msg for msg in log_messages)
        assert any('Lambda execution completed successfully' in msg for msg in log_messages)
        mock_setup_logging.assert_called_once_with('INFO')


class TestSetupLogging:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self):
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug_level(self):
        setup_logging('DEBUG')
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_unknown_level(self):
        setup_logging('LOUD')
        assert logging.getLogger().level == logging.INFO


class TestJsonFormatter:
    """Test cases for the JSON log formatter."""

    def test_includes_extra_fields(self):
        record = logging.LogRecord('scraper.base_adapter', logging.INFO, __file__, 1, 'Parsed %d events', (3,), None)
        record.source = 'api:timepad'

        payload = json.loads(JsonFormatter().format(record))

        assert payload['message'] == 'Parsed 3 events'
        assert payload['level'] == 'INFO'
        assert payload['logger'] == 'scraper.base_adapter'
        assert payload['source'] == 'api:timepad'
        assert 'args' not in payload
