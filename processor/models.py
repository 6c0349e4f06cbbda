"""Data models for event extraction."""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class SourceKind(Enum):
    """Adapter family a source descriptor is routed to."""
    GENERIC_HTML = 'generic'
    YANDEX_AFISHA = 'yandex_afisha'
    EXPOMAP = 'expomap'
    EVENTBRITE = 'eventbrite'
    TIMEPAD = 'timepad'
    KUDAGO_API = 'kudago_api'
    TIMEPAD_API = 'timepad_api'


@dataclass(frozen=True)
class SourceDescriptor:
    """Resolved source: where to fetch and which adapter handles it."""
    kind: SourceKind
    url: str
    raw: str


@dataclass
class DraftEvent:
    """Event candidate before required-field validation."""
    name: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    price: Optional[Decimal] = None
    participants_count: Optional[int] = None
    organizer_name: Optional[str] = None
    organizer_contact: Optional[str] = None
    source_url: Optional[str] = None


@dataclass
class Event:
    """Validated event record handed to the sink."""
    name: str
    date: datetime
    location: str
    organizer_contact: str
    source_url: str
    price: Optional[Decimal] = None
    participants_count: Optional[int] = None
    organizer_name: Optional[str] = None
    message_sent: bool = False
    response_received: bool = False

    def dedup_key(self) -> Tuple[str, datetime, str]:
        """Identity used by the sink to skip already stored events."""
        return (self.name, self.date, self.location.casefold())
