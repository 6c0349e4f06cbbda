"""TimePad public API adapter, keeping large events only."""
import logging
from typing import Any, Dict, List, Optional

from processor.models import DraftEvent, SourceDescriptor, SourceKind
from processor.normalizers import infer_participants, normalize_iso_datetime, normalize_price
from scraper.base_adapter import LARGE_EVENT_THRESHOLD, SourceAdapter
from scraper.fetch_client import FetchError
from scraper.registry import register_adapter

logger = logging.getLogger(__name__)

API_URL = 'https://api.timepad.ru/v1/events.json'
API_FIELDS = 'name,description_short,description_html,starts_at,location,organization,ticket_types,url'
PAGE_LIMIT = 100


@register_adapter(SourceKind.TIMEPAD_API)
class TimepadApiAdapter(SourceAdapter):
    """Paged `values` listing from the TimePad events endpoint."""

    DEFAULT_CONTACT = 'info@timepad.ru'
    DEFAULT_ORGANIZER = 'TimePad Организатор'
    DATE_FALLBACK_DAYS = 7
    LARGE_EVENT_THRESHOLD = LARGE_EVENT_THRESHOLD

    def extract(self, source: SourceDescriptor) -> List[DraftEvent]:
        drafts: List[DraftEvent] = []

        for page in range(self.MAX_PAGES):
            params = {
                'cities': self.default_city,
                'limit': PAGE_LIMIT,
                'skip': page * PAGE_LIMIT,
                'sort': '+starts_at',
                'fields': API_FIELDS,
            }
            try:
                payload = self.fetch_client.fetch_json(API_URL, params=params)
            except FetchError as e:
                logger.warning(
                    f"TimePad API request failed for {source.raw}: {e}",
                    extra={'source': source.raw, 'error_type': type(e).__name__}
                )
                break

            if not isinstance(payload, dict):
                logger.warning(
                    f"Unexpected TimePad API response for {source.raw}: {type(payload).__name__}",
                    extra={'source': source.raw}
                )
                break

            values = payload.get('values') or []
            logger.info(f"Received {len(values)} events from TimePad API (skip {params['skip']})")
            for item in values:
                try:
                    drafts.append(self.to_draft(item))
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.warning(f"Skipping malformed TimePad event {item.get('id')}: {e}")

            total = payload.get('total')
            if len(values) < PAGE_LIMIT or (total is not None and (page + 1) * PAGE_LIMIT >= total):
                break

        return drafts

    def to_draft(self, item: Dict[str, Any]) -> DraftEvent:
        """Map one API value to a draft event."""
        description = item.get('description_short') or item.get('description')
        organization = item.get('organization') or {}

        return DraftEvent(
            name=item.get('name'),
            date=normalize_iso_datetime(
                item.get('starts_at'),
                now=self.clock(),
                fallback_days=self.DATE_FALLBACK_DAYS,
                fallback_time=self.DATE_FALLBACK_TIME
            ),
            location=self.location_for(item.get('location')),
            price=self.price_for(item.get('ticket_types')),
            participants_count=infer_participants(None, description, floor=LARGE_EVENT_THRESHOLD),
            organizer_name=organization.get('name') or self.DEFAULT_ORGANIZER,
            organizer_contact=self.DEFAULT_CONTACT,
            source_url=item.get('url') or 'https://timepad.ru',
        )

    def location_for(self, location: Any) -> str:
        if isinstance(location, dict) and location.get('city'):
            if location.get('address'):
                return f"{location['city']}, {location['address']}"
            return location['city']
        return self.default_location

    @staticmethod
    def price_for(ticket_types: Optional[List[Dict[str, Any]]]):
        """Price of the first ticket type that has a numeric one."""
        for ticket in ticket_types or []:
            price = ticket.get('price')
            if isinstance(price, (int, float)) and not isinstance(price, bool):
                return normalize_price(price)
        return None
