"""Base classes shared by all source adapters."""
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup, Tag

from processor.contacts import extract_contact
from processor.event_processor import EventProcessor
from processor.models import DraftEvent, Event, SourceDescriptor, SourceKind
from processor.normalizers import normalize_date, normalize_participants, normalize_price
from scraper.fetch_client import FetchClient, FetchError
from scraper.selector_cascade import ElementFilter, FieldRule, Rule, first_match

logger = logging.getLogger(__name__)

LARGE_EVENT_THRESHOLD = 500


def filter_large_events(events: List[Event], threshold: int = LARGE_EVENT_THRESHOLD) -> List[Event]:
    """Keep events with an unknown participant count or one at/above threshold."""
    kept = [
        event for event in events
        if event.participants_count is None or event.participants_count >= threshold
    ]
    if len(kept) < len(events):
        logger.info(f"Large-event filter kept {len(kept)} of {len(events)} events")
    return kept


def outermost(elements: List[Tag]) -> List[Tag]:
    """Drop elements nested inside another element of the same list."""
    # Tag equality compares markup, so membership is checked by identity
    selected = {id(element) for element in elements}
    return [
        element for element in elements
        if not any(id(parent) in selected for parent in element.parents)
    ]


class SourceAdapter(ABC):
    """Extraction strategy for one family of sources."""

    KIND: SourceKind
    DEFAULT_CONTACT: Optional[str] = None
    DEFAULT_ORGANIZER: Optional[str] = None
    DEFAULT_LOCATION: Optional[str] = None
    DATE_FALLBACK_DAYS = 1
    DATE_FALLBACK_TIME: Optional[Tuple[int, int]] = None
    MAX_PAGES = 5
    LARGE_EVENT_THRESHOLD: Optional[int] = None

    def __init__(
        self,
        fetch_client: FetchClient,
        default_city: str = 'Москва',
        processor: Optional[EventProcessor] = None,
        clock: Callable[[], datetime] = datetime.now
    ):
        self.fetch_client = fetch_client
        self.default_city = default_city
        self.processor = processor or EventProcessor()
        self.clock = clock

    @property
    def default_location(self) -> str:
        return self.DEFAULT_LOCATION or self.default_city

    def parse(self, source: SourceDescriptor) -> List[Event]:
        """
        Extract, validate and (for large-event sources) filter events.

        Args:
            source: Resolved source descriptor

        Returns:
            Events that satisfy the required-field rules
        """
        logger.info(f"Parsing {source.raw} with {type(self).__name__}")
        drafts = self.extract(source)
        events = self.processor.process_drafts(drafts)
        if self.LARGE_EVENT_THRESHOLD is not None:
            events = filter_large_events(events, self.LARGE_EVENT_THRESHOLD)
        logger.info(
            f"Parsed {len(events)} events from {source.raw}",
            extra={'source': source.raw, 'drafts': len(drafts), 'events': len(events)}
        )
        return events

    @abstractmethod
    def extract(self, source: SourceDescriptor) -> List[DraftEvent]:
        """Produce draft events for a source; must not raise on fetch errors."""

    def parse_date(self, text: Optional[str]) -> datetime:
        return normalize_date(
            text,
            now=self.clock(),
            fallback_days=self.DATE_FALLBACK_DAYS,
            fallback_time=self.DATE_FALLBACK_TIME
        )


class HtmlSourceAdapter(SourceAdapter):
    """
    Listing-page scraper driven by selector tables.

    Subclasses configure CARD_SELECTORS, FIELD_RULES, ELEMENT_FILTER and
    the defaults; the page loop, pagination and link resolution live here.
    """

    BASE_URL = ''
    CARD_SELECTORS: Sequence[str] = ()
    GENERIC_CARD_SELECTORS: Sequence[str] = (
        'article',
        "div[class*='event']",
        "li[class*='event']",
    )
    NEXT_PAGE_SELECTORS: Sequence[str] = (
        "a[rel='next']",
        '.pagination a.next',
        '.pagination__next a',
        "a[class*='pagination'][class*='next']",
        'a.next',
    )
    LINK_RULES: Sequence[Rule] = (FieldRule('a[href]', attr='href'),)
    ELEMENT_FILTER = ElementFilter()
    FIELD_RULES: Dict[str, Sequence[Rule]] = {}

    def extract(self, source: SourceDescriptor) -> List[DraftEvent]:
        drafts: List[DraftEvent] = []
        seen = set()
        visited = set()
        url: Optional[str] = source.url

        while url and len(visited) < self.MAX_PAGES:
            visited.add(url)
            try:
                soup = self.fetch_client.fetch(url)
            except FetchError as e:
                logger.warning(
                    f"Fetch failed for {source.raw}, stopping at {url}: {e}",
                    extra={'source': source.raw, 'error_type': type(e).__name__}
                )
                break

            new_drafts = []
            for draft in self.extract_page(soup, url):
                key = self._draft_key(draft)
                if key not in seen:
                    seen.add(key)
                    new_drafts.append(draft)

            if not new_drafts:
                logger.info(f"No new events on {url}, stopping pagination")
                break
            drafts.extend(new_drafts)

            next_url = self.find_next_page(soup, url)
            if next_url in visited:
                break
            url = next_url

        logger.info(f"Fetched {len(visited)} page(s) for {source.raw}")
        return drafts

    @staticmethod
    def _draft_key(draft: DraftEvent) -> Tuple:
        return (draft.name, draft.date, draft.location)

    def locate_candidates(self, soup: BeautifulSoup) -> List[Tag]:
        """First card selector tier that yields non-noise elements."""
        for selector in list(self.CARD_SELECTORS) + list(self.GENERIC_CARD_SELECTORS):
            elements = [element for element in soup.select(selector) if self.ELEMENT_FILTER(element)]
            elements = outermost(elements)
            if elements:
                logger.debug(f"Card selector '{selector}' yielded {len(elements)} candidates")
                return elements
        return []

    def extract_page(self, soup: BeautifulSoup, page_url: str) -> List[DraftEvent]:
        drafts = []
        candidates = self.locate_candidates(soup)
        logger.info(f"Found {len(candidates)} event candidates on {page_url}")

        for card in candidates:
            try:
                drafts.append(self.extract_draft(card, page_url))
            except Exception as e:
                logger.warning(f"Failed to parse event element on {page_url}: {e}")
                continue
        return drafts

    def rules(self, field: str) -> Sequence[Rule]:
        return self.FIELD_RULES.get(field, ())

    def extract_draft(self, card: Tag, page_url: str) -> DraftEvent:
        return DraftEvent(
            name=self.extract_name(card),
            date=self.parse_date(first_match(card, self.rules('date'))),
            location=first_match(card, self.rules('location')) or self.default_location,
            price=normalize_price(first_match(card, self.rules('price'))),
            participants_count=self.extract_participants(card),
            organizer_name=first_match(card, self.rules('organizer')) or self.DEFAULT_ORGANIZER,
            organizer_contact=self.extract_contact(card),
            source_url=self.extract_link(card, page_url),
        )

    def extract_name(self, card: Tag) -> Optional[str]:
        return first_match(card, self.rules('name'))

    def extract_participants(self, card: Tag) -> Optional[int]:
        return normalize_participants(first_match(card, self.rules('participants')))

    def extract_contact(self, card: Tag) -> Optional[str]:
        """Dedicated contact nodes first, then the whole card text, then the source default."""
        contact = extract_contact(first_match(card, self.rules('contact')))
        if not contact:
            contact = extract_contact(card.get_text(' ', strip=True))
        return contact or self.DEFAULT_CONTACT

    def extract_link(self, card: Tag, page_url: str) -> str:
        href = card.get('href') if card.name == 'a' else None
        if not href:
            href = first_match(card, self.LINK_RULES)
        return self.resolve_url(href, self.BASE_URL or page_url) or page_url

    def resolve_url(self, href: Optional[str], base: str) -> Optional[str]:
        """Absolute URL for href, joined onto base when relative."""
        if not href:
            return None
        href = href.strip()
        if href.startswith(('#', 'javascript:', 'mailto:', 'tel:')):
            return None
        if urlparse(href).scheme in ('http', 'https'):
            return href
        return urljoin(base, href)

    def find_next_page(self, soup: BeautifulSoup, page_url: str) -> Optional[str]:
        href = first_match(soup, [FieldRule(selector, attr='href') for selector in self.NEXT_PAGE_SELECTORS])
        return self.resolve_url(href, page_url)
