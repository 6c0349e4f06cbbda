"""Fallback scraper for event listing pages without a dedicated adapter."""
from processor.models import SourceKind
from scraper.base_adapter import HtmlSourceAdapter
from scraper.registry import register_adapter
from scraper.selector_cascade import FieldRule


@register_adapter(SourceKind.GENERIC_HTML)
class GenericHtmlAdapter(HtmlSourceAdapter):
    """
    Works on common event markup: `.event`/`.event-item` cards and
    schema.org Event microdata. There is no default contact, so cards
    without an email, chat handle or phone number are dropped.
    """

    CARD_SELECTORS = (
        "[itemtype='http://schema.org/Event']",
        "[itemtype='https://schema.org/Event']",
        '.event',
        '.event-item',
    )
    FIELD_RULES = {
        'name': (
            "[itemprop='name']",
            '.event-name',
            '.title',
            'h1',
            'h2',
            'h3',
        ),
        'date': (
            FieldRule("[itemprop='startDate']", attr='content'),
            FieldRule('time[datetime]', attr='datetime'),
            '.event-date',
            '.date',
            'time',
        ),
        'location': (
            "[itemprop='location'] [itemprop='name']",
            "[itemprop='location']",
            '.event-location',
            '.location',
            '.venue',
        ),
        'price': (
            FieldRule("[itemprop='price']", attr='content'),
            '.event-price',
            '.price',
        ),
        'participants': ('.event-participants', '.participants'),
        'organizer': (
            "[itemprop='organizer'] [itemprop='name']",
            '.event-organizer',
            '.organizer',
        ),
        'contact': ('.event-contact', '.contact', '.email', '.phone'),
    }
