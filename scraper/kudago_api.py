"""KudaGo public API adapter."""
import logging
import re
from typing import Any, Dict, List, Optional

from processor.models import DraftEvent, SourceDescriptor, SourceKind
from processor.normalizers import normalize_price, normalize_timestamp
from scraper.base_adapter import SourceAdapter
from scraper.fetch_client import FetchError
from scraper.registry import register_adapter

logger = logging.getLogger(__name__)

API_URL = 'https://kudago.com/public-api/v1.4/events/'
API_FIELDS = 'id,title,description,dates,place,price,site_url'
PAGE_SIZE = 100

DEFAULT_CITY_CODE = 'msk'
CITY_NAMES = {
    'msk': 'Москва',
    'spb': 'Санкт-Петербург',
    'nsk': 'Новосибирск',
    'ekb': 'Екатеринбург',
    'kzn': 'Казань',
    'nnv': 'Нижний Новгород',
}

PRICE_NUMBER = re.compile(r'\d[\d\s]*(?:[.,]\d+)?')


def city_code_from_descriptor(raw: str) -> str:
    """Pick a known city code out of "api:kudago/spb"-style descriptors."""
    for token in re.split(r'[/:?&=\s]+', raw.lower()):
        if token in CITY_NAMES:
            return token
    return DEFAULT_CITY_CODE


def price_from_text(text: Optional[str]):
    """First number in free price text ("от 500 до 1500 рублей" -> 500)."""
    if not text:
        return None
    match = PRICE_NUMBER.search(text)
    if not match:
        return None
    return normalize_price(match.group().replace(' ', '').replace(',', '.'))


@register_adapter(SourceKind.KUDAGO_API)
class KudagoApiAdapter(SourceAdapter):
    """Events from the KudaGo JSON API, following `next` links."""

    DEFAULT_CONTACT = 'info@kudago.com'
    DEFAULT_ORGANIZER = 'KudaGo'

    def extract(self, source: SourceDescriptor) -> List[DraftEvent]:
        city = city_code_from_descriptor(source.raw)
        url: Optional[str] = API_URL
        params: Optional[Dict[str, Any]] = {
            'location': city,
            'fields': API_FIELDS,
            'expand': 'place',
            'page_size': PAGE_SIZE,
        }
        drafts: List[DraftEvent] = []
        pages = 0

        while url and pages < self.MAX_PAGES:
            pages += 1
            try:
                payload = self.fetch_client.fetch_json(url, params=params)
            except FetchError as e:
                logger.warning(
                    f"KudaGo API request failed for {source.raw}: {e}",
                    extra={'source': source.raw, 'error_type': type(e).__name__}
                )
                break

            if not isinstance(payload, dict):
                logger.warning(
                    f"Unexpected KudaGo API response for {source.raw}: {type(payload).__name__}",
                    extra={'source': source.raw}
                )
                break

            results = payload.get('results') or []
            logger.info(f"Received {len(results)} events from KudaGo API (page {pages})")
            for item in results:
                try:
                    drafts.append(self.to_draft(item, city))
                except (KeyError, TypeError, ValueError, AttributeError) as e:
                    logger.warning(f"Skipping malformed KudaGo event {item.get('id')}: {e}")

            # `next` already carries the query string
            url = payload.get('next')
            params = None

        return drafts

    def to_draft(self, item: Dict[str, Any], city: str) -> DraftEvent:
        """Map one API result to a draft event."""
        dates = item.get('dates') or []
        start = dates[0].get('start') if dates else None

        return DraftEvent(
            name=item.get('title'),
            date=normalize_timestamp(
                start,
                now=self.clock(),
                fallback_days=self.DATE_FALLBACK_DAYS,
                fallback_time=self.DATE_FALLBACK_TIME
            ),
            location=self.location_for(item.get('place'), city),
            price=self.price_for(item.get('price')),
            organizer_name=self.DEFAULT_ORGANIZER,
            organizer_contact=self.DEFAULT_CONTACT,
            source_url=item.get('site_url') or f"https://kudago.com/{city}/event/{item.get('id')}/",
        )

    @staticmethod
    def location_for(place: Any, city: str) -> str:
        if isinstance(place, dict) and place.get('title'):
            location = place['title']
            if place.get('address'):
                location += f", {place['address']}"
            return location
        return CITY_NAMES.get(city, CITY_NAMES[DEFAULT_CITY_CODE])

    @staticmethod
    def price_for(price: Any):
        if isinstance(price, dict):
            return normalize_price(price.get('min'))
        if isinstance(price, (int, float)):
            return normalize_price(price)
        return price_from_text(price)
