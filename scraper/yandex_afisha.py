"""Scraper for Yandex Afisha city listings."""
import re
from typing import Optional
from urllib.parse import urlparse

from processor.models import SourceKind
from scraper.base_adapter import HtmlSourceAdapter
from scraper.registry import register_adapter
from scraper.selector_cascade import ElementFilter, FieldRule


def title_from_slug(href: str) -> Optional[str]:
    """Turn "/moscow/concert/bolshoi-kontsert?x=1" into "Bolshoi kontsert"."""
    path = urlparse(href).path.rstrip('/')
    slug = path.rsplit('/', 1)[-1]
    words = re.sub(r'[-_]+', ' ', slug).strip()
    if not words or words.isdigit():
        return None
    return words[0].upper() + words[1:]


@register_adapter(SourceKind.YANDEX_AFISHA)
class YandexAfishaAdapter(HtmlSourceAdapter):
    """Event cards rendered with data-component/data-test-id attributes."""

    BASE_URL = 'https://afisha.yandex.ru'
    DEFAULT_CONTACT = 'info@yandex.ru'
    DEFAULT_ORGANIZER = 'Яндекс Афиша'

    CARD_SELECTORS = (
        "div[data-component='EventCard']",
        "[data-test-id='eventCard']",
        "div[class*='event-card']",
    )
    NEXT_PAGE_SELECTORS = (
        "a[data-test-id='paginationNext']",
        "a[rel='next']",
        "a[class*='pagination'][class*='next']",
    )
    ELEMENT_FILTER = ElementFilter(
        class_denylist=('nav', 'menu', 'filter', 'tabs', 'breadcrumb', 'rubric'),
        text_denylist=('Все события', 'Фильтры', 'Выбрать дату', 'Показать ещё'),
    )
    FIELD_RULES = {
        'name': (
            'h1',
            'h2',
            'h3',
            "[data-test-id='eventTitle']",
            'a',
            FieldRule('a[href]', attr='href', postprocess=title_from_slug),
        ),
        'date': (
            FieldRule('time[datetime]', attr='datetime'),
            'time',
            "[data-test-id='eventDate']",
            'span:-soup-contains("Сегодня")',
            'span:-soup-contains("сегодня")',
            'span:-soup-contains("Завтра")',
            'span:-soup-contains("завтра")',
        ),
        'location': (
            "[data-test-id='eventLocation']",
            "[data-test-id='eventPlace']",
            'span:-soup-contains("Москва")',
            'span:-soup-contains("ул.")',
            'span:-soup-contains("пр-т")',
        ),
        'price': (
            "[data-test-id='eventPrice']",
            'span:-soup-contains("₽")',
            'span:-soup-contains("руб")',
        ),
        'organizer': ("[data-test-id='eventOrganizer']",),
        'contact': ("[data-test-id='eventContact']",),
    }
