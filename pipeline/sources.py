"""Source descriptor parsing.

Descriptors come from configuration as plain strings:

    https://afisha.yandex.ru/moscow      host match -> Yandex Afisha
    expomap|https://mirror.example/expo  explicit kind tag
    api:kudago/spb                       KudaGo API for a city
    api:timepad                          TimePad API
"""
import logging
from typing import Dict
from urllib.parse import urlparse

from processor.models import SourceDescriptor, SourceKind

logger = logging.getLogger(__name__)

API_PREFIX = 'api:'
KIND_SEPARATOR = '|'

KUDAGO_API_URL = 'https://kudago.com/public-api/v1.4/events/'
TIMEPAD_API_URL = 'https://api.timepad.ru/v1/events.json'

# Substring of the host -> kind; checked in order
HOST_KINDS = [
    ('afisha.yandex.ru', SourceKind.YANDEX_AFISHA),
    ('expomap.ru', SourceKind.EXPOMAP),
    ('eventbrite.', SourceKind.EVENTBRITE),
    ('timepad.ru', SourceKind.TIMEPAD),
]

KIND_TAGS: Dict[str, SourceKind] = {kind.value: kind for kind in SourceKind}


class UnknownSourceKind(ValueError):
    """An explicit `<kind>|<url>` descriptor named a kind that does not exist."""

    def __init__(self, tag: str):
        super().__init__(f"Unknown source kind '{tag}' (known: {', '.join(sorted(KIND_TAGS))})")
        self.tag = tag


def _with_scheme(url: str) -> str:
    if '://' not in url:
        return f"https://{url.lstrip('/')}"
    return url


def parse_source_descriptor(raw: str) -> SourceDescriptor:
    """
    Resolve a configured source string to its adapter kind and URL.

    Args:
        raw: Source descriptor as configured

    Returns:
        SourceDescriptor with the kind resolved once

    Raises:
        UnknownSourceKind: For an explicit tag that names no known kind
        ValueError: For an empty descriptor
    """
    descriptor = raw.strip()
    if not descriptor:
        raise ValueError("Empty source descriptor")

    if descriptor.lower().startswith(API_PREFIX):
        rest = descriptor[len(API_PREFIX):].lower()
        if rest.startswith('timepad'):
            return SourceDescriptor(SourceKind.TIMEPAD_API, TIMEPAD_API_URL, descriptor)
        return SourceDescriptor(SourceKind.KUDAGO_API, KUDAGO_API_URL, descriptor)

    if KIND_SEPARATOR in descriptor:
        tag, url = descriptor.split(KIND_SEPARATOR, 1)
        tag = tag.strip().lower()
        if tag not in KIND_TAGS:
            raise UnknownSourceKind(tag)
        return SourceDescriptor(KIND_TAGS[tag], _with_scheme(url.strip()), descriptor)

    url = _with_scheme(descriptor)
    host = (urlparse(url).hostname or '').lower()
    for marker, kind in HOST_KINDS:
        if marker in host:
            return SourceDescriptor(kind, url, descriptor)

    logger.debug(f"No dedicated adapter for {host}, using generic HTML")
    return SourceDescriptor(SourceKind.GENERIC_HTML, url, descriptor)
