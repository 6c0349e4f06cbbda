"""Scraper for Eventbrite city listings, keeping large events only."""
from typing import Optional

from bs4 import Tag

from processor.models import SourceKind
from processor.normalizers import infer_participants
from scraper.base_adapter import LARGE_EVENT_THRESHOLD, HtmlSourceAdapter
from scraper.registry import register_adapter
from scraper.selector_cascade import ElementFilter, FieldRule, first_match


@register_adapter(SourceKind.EVENTBRITE)
class EventbriteAdapter(HtmlSourceAdapter):
    """
    Eventbrite lists few explicit attendee counts, so any card without one
    is assumed to meet the large-event floor.
    """

    BASE_URL = 'https://www.eventbrite.com'
    DEFAULT_CONTACT = 'info@eventbrite.com'
    DEFAULT_ORGANIZER = 'EventBrite Организатор'
    DATE_FALLBACK_DAYS = 7
    LARGE_EVENT_THRESHOLD = LARGE_EVENT_THRESHOLD

    CARD_SELECTORS = (
        'div.eds-event-card-content',
        "[data-testid='search-event']",
        'article.eds-l-pad-all-4',
    )
    ELEMENT_FILTER = ElementFilter(
        class_denylist=('nav', 'menu', 'filter', 'pagination', 'promoted-banner'),
        text_denylist=('Browse events', 'Filters', 'Date', 'Category'),
    )
    NEXT_PAGE_SELECTORS = (
        "a[data-spec='page-next']",
        "a[rel='next']",
        "a[aria-label='Next Page']",
    )
    LINK_RULES = (
        FieldRule('a.eds-event-card-content__action-link', attr='href'),
        FieldRule('a.event-card-link', attr='href'),
        FieldRule('a[href]', attr='href'),
    )
    FIELD_RULES = {
        'name': (
            'h2.eds-event-card-content__title',
            '.eds-event-card__formatted-name--is-clamped',
            'h3',
            'h2',
        ),
        'date': (
            '.eds-event-card-content__sub-title',
            "[class*='event-card__date']",
            'time',
        ),
        'location': (
            '.card-text--truncated__content',
            "[class*='event-card__location']",
        ),
        'price': (
            '.eds-event-card-content__sub-title--price',
            "[class*='event-card__price']",
        ),
        'participants': ('.eds-event-card__sub-content',),
        'description': ('.eds-event-card-content__description',),
        'organizer': (
            '.eds-event-card__sub-content--organizer',
            "[class*='event-card__organizer']",
        ),
    }

    def extract_participants(self, card: Tag) -> Optional[int]:
        return infer_participants(
            first_match(card, self.rules('participants')),
            first_match(card, self.rules('description')),
            floor=LARGE_EVENT_THRESHOLD,
            impute_without_description=True,
        )
