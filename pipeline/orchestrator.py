"""Concurrent fan-out of source adapters with per-source failure isolation."""
import logging
import time
from concurrent.futures import ALL_COMPLETED, Executor, Future, wait
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Union

from pipeline.sources import parse_source_descriptor
from processor.event_processor import EventProcessor
from processor.models import Event, SourceDescriptor, SourceKind
from scraper.base_adapter import SourceAdapter
from scraper.fetch_client import FetchClient
from scraper.registry import get_adapter_class

logger = logging.getLogger(__name__)

Source = Union[str, SourceDescriptor]


class NoSourcesConfigured(Exception):
    """parse_all was called with an empty source list."""

    def __init__(self):
        super().__init__("No sources configured")


class Orchestrator:
    """
    Runs one extraction task per source on an injected executor.

    The executor is owned by the caller; the orchestrator never shuts it
    down. Results are concatenated in source order once every task is
    done, and a failing source contributes no events.
    """

    def __init__(
        self,
        executor: Executor,
        fetch_client: FetchClient,
        default_city: str = 'Москва',
        processor: Optional[EventProcessor] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.executor = executor
        self.fetch_client = fetch_client
        self.default_city = default_city
        self.processor = processor or EventProcessor()
        self.clock = clock
        self._adapters: Dict[SourceKind, SourceAdapter] = {}

    def get_adapter(self, kind: SourceKind) -> SourceAdapter:
        """Adapter instance for a kind, built once per orchestrator."""
        if kind not in self._adapters:
            adapter_class = get_adapter_class(kind)
            self._adapters[kind] = adapter_class(
                self.fetch_client,
                default_city=self.default_city,
                processor=self.processor,
                clock=self.clock,
            )
        return self._adapters[kind]

    @staticmethod
    def resolve(source: Source) -> SourceDescriptor:
        if isinstance(source, SourceDescriptor):
            return source
        return parse_source_descriptor(source)

    def parse_one(self, source: Source) -> List[Event]:
        """
        Parse a single source synchronously on the calling thread.

        Args:
            source: Descriptor string or resolved SourceDescriptor

        Returns:
            Events extracted from the source

        Raises:
            UnknownSourceKind: If the descriptor names an unknown kind
        """
        descriptor = self.resolve(source)
        return self.get_adapter(descriptor.kind).parse(descriptor)

    def parse_all(self, sources: Sequence[Source]) -> List[Event]:
        """
        Parse every source concurrently and aggregate the results.

        Args:
            sources: Descriptor strings or resolved SourceDescriptors

        Returns:
            Events from all sources, grouped in the order of `sources`

        Raises:
            NoSourcesConfigured: If `sources` is empty
        """
        if not sources:
            raise NoSourcesConfigured()

        start_time = time.time()
        futures: List[Optional[Future]] = []
        labels: List[str] = []

        for source in sources:
            label = source.raw if isinstance(source, SourceDescriptor) else source
            labels.append(label)
            try:
                descriptor = self.resolve(source)
            except ValueError as e:
                logger.error(f"Skipping source {label!r}: {e}", extra={'source': label})
                futures.append(None)
                continue
            # Adapters are built here so worker threads only read the cache
            adapter = self.get_adapter(descriptor.kind)
            futures.append(self.executor.submit(adapter.parse, descriptor))

        wait([future for future in futures if future is not None], return_when=ALL_COMPLETED)

        events: List[Event] = []
        failed = 0
        for label, future in zip(labels, futures):
            if future is None:
                failed += 1
                continue
            try:
                events.extend(future.result())
            except Exception as e:
                failed += 1
                logger.error(
                    f"Source {label} failed: {e}",
                    exc_info=True,
                    extra={'source': label, 'error_type': type(e).__name__}
                )

        duration = time.time() - start_time
        logger.info(
            f"Parsed {len(events)} events from {len(sources)} sources ({failed} failed)",
            extra={
                'sources': len(sources),
                'failed_sources': failed,
                'events': len(events),
                'duration_seconds': round(duration, 2),
            }
        )
        return events
