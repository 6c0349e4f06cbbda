"""Scraper for expomap.ru exhibition listings."""
from typing import Optional

from bs4 import Tag

from processor.models import SourceKind
from scraper.base_adapter import HtmlSourceAdapter
from scraper.registry import register_adapter
from scraper.selector_cascade import ElementFilter, FieldRule, first_match


@register_adapter(SourceKind.EXPOMAP)
class ExpomapAdapter(HtmlSourceAdapter):
    """
    Exhibition cards. Dates are usually ranges ("15 – 17 июня 2025"), of
    which the first day is kept. Category/city filter blocks share the
    expo-* class prefix with real cards and are excluded by the filter.
    """

    BASE_URL = 'https://expomap.ru'
    DEFAULT_CONTACT = 'info@expomap.ru'
    DEFAULT_ORGANIZER = 'Expomap Организатор'

    CARD_SELECTORS = (
        '.expo-item',
        '.expo-card',
        '.event-card',
        "div[class*='expo']",
        '.event-list-item',
        '.event-item',
        '.item',
        '.card',
    )
    NEXT_PAGE_SELECTORS = (
        "a[rel='next']",
        '.pagination a.next',
        '.pager .next a',
        '.pagination li.next a',
    )
    ELEMENT_FILTER = ElementFilter(
        class_denylist=('nav', 'menu', 'filter', 'sort', 'search', 'banner', 'pagination', 'pager'),
        text_denylist=('Все выставки', 'Выставки по отраслям', 'Выставки по городам', 'Фильтр'),
        min_text_length=5,
    )
    FIELD_RULES = {
        'name': (
            'h2',
            '.expo-title',
            '.expo-name',
            '.title',
            '.name',
            FieldRule('a[title]', attr='title'),
        ),
        'date': ('.expo-date', '.date', '.event-date', 'time'),
        'location': ('.expo-place', '.place', '.location', '.venue', '.address'),
        'price': ('.expo-price', '.price'),
        'participants': ('.expo-participants', '.participants', '.exhibitors'),
        'organizer': ('.expo-organizer', '.organizer'),
        'contact': ('.expo-contacts', '.contacts', '.contact'),
    }

    def extract_name(self, card: Tag) -> Optional[str]:
        # Some cards are bare links whose only text is the exhibition name
        return first_match(card, self.rules('name')) or card.get_text(' ', strip=True)
