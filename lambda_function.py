"""AWS Lambda handler for the event extraction pipeline."""
import json
import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List

from pipeline.orchestrator import NoSourcesConfigured, Orchestrator
from pipeline.sources import UnknownSourceKind
from scraper.fetch_client import FetchClient
from storage.event_store import DynamoDBEventStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """JSON formatter that also emits fields passed through `extra`."""

    RESERVED = set(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime'}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in self.RESERVED and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def load_settings() -> Dict[str, Any]:
    """Read configuration from environment variables."""
    sources = os.environ.get('EVENT_SOURCES', '')
    return {
        'sources': [source.strip() for source in sources.split(',') if source.strip()],
        'table_name': os.environ.get('TABLE_NAME', 'events'),
        'log_level': os.environ.get('LOG_LEVEL', 'INFO'),
        'worker_pool_size': int(os.environ.get('WORKER_POOL_SIZE', '5')),
        'timeout_seconds': float(os.environ.get('TIMEOUT_SECONDS', '10')),
        'min_delay_seconds': float(os.environ.get('MIN_DELAY_SECONDS', '1.0')),
        'max_delay_seconds': float(os.environ.get('MAX_DELAY_SECONDS', '3.0')),
        'default_city': os.environ.get('DEFAULT_CITY', 'Москва'),
    }


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps(body, ensure_ascii=False)
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Parse configured sources and save new events.

    Args:
        event: Scheduled trigger payload, or {"source": "<descriptor>"}
            for an on-demand run of a single source
        context: Lambda context object

    Returns:
        Response dict with statusCode and summary statistics
    """
    settings = load_settings()

    setup_logging(settings['log_level'])
    logger = logging.getLogger(__name__)

    start_time = time.time()
    payload = event or {}
    # EventBridge envelopes carry their own `source` field ("aws.events")
    single_source = None if 'detail-type' in payload else payload.get('source')
    if isinstance(single_source, str):
        single_source = single_source.strip()
    if single_source is not None and not single_source:
        logger.warning("On-demand request with an empty source")
        return _response(400, {'message': 'Empty source descriptor', 'error_type': 'ValueError'})
    sources: List[str] = [single_source] if single_source else settings['sources']

    logger.info(
        "Lambda execution started",
        extra={
            'table_name': settings['table_name'],
            'sources': len(sources),
            'on_demand': bool(single_source)
        }
    )

    fetch_client = FetchClient(
        timeout=settings['timeout_seconds'],
        delay_range=(settings['min_delay_seconds'], settings['max_delay_seconds'])
    )

    with ThreadPoolExecutor(max_workers=settings['worker_pool_size']) as executor:
        orchestrator = Orchestrator(
            executor,
            fetch_client,
            default_city=settings['default_city']
        )
        try:
            if single_source:
                events = orchestrator.parse_one(single_source)
            else:
                events = orchestrator.parse_all(sources)
        except NoSourcesConfigured as e:
            logger.warning(str(e))
            return _response(400, {'message': 'No sources configured'})
        except UnknownSourceKind as e:
            logger.warning(str(e))
            return _response(400, {'message': str(e), 'error_type': type(e).__name__})
        except Exception as e:
            logger.error(
                f"Parsing failed: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _response(500, {
                'message': 'Parsing failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(time.time() - start_time, 2)
            })

    try:
        store = DynamoDBEventStore(table_name=settings['table_name'])
        saved = store.save(events)
    except Exception as e:
        logger.error(
            f"Error saving events to DynamoDB: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        duration = time.time() - start_time
        return _response(500, {
            'message': 'Failed to save events',
            'error': str(e),
            'error_type': type(e).__name__,
            'events_parsed': len(events),
            'duration_seconds': round(duration, 2)
        })

    duration = time.time() - start_time
    logger.info(
        "Lambda execution completed successfully",
        extra={
            'duration_seconds': round(duration, 2),
            'events_parsed': len(events),
            'events_saved': saved
        }
    )

    return _response(200, {
        'message': 'Parsing completed successfully',
        'events_parsed': len(events),
        'events_saved': saved,
        'sources': len(sources),
        'duration_seconds': round(duration, 2)
    })
