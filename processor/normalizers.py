"""Field normalizers turning noisy listing text into typed values.

None of these functions raise on bad input: each one has an explicit
fallback (a default date, or None for optional fields).
"""
import logging
import re
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

# Longest spellings first so "сентября" wins over "сен"
MONTH_NAMES = {
    1: ['января', 'январь', 'янв', 'january', 'jan'],
    2: ['февраля', 'февраль', 'фев', 'february', 'feb'],
    3: ['марта', 'март', 'мар', 'march', 'mar'],
    4: ['апреля', 'апрель', 'апр', 'april', 'apr'],
    5: ['мая', 'май', 'may'],
    6: ['июня', 'июнь', 'июн', 'june', 'jun'],
    7: ['июля', 'июль', 'июл', 'july', 'jul'],
    8: ['августа', 'август', 'авг', 'august', 'aug'],
    9: ['сентября', 'сентябрь', 'сент', 'сен', 'september', 'sept', 'sep'],
    10: ['октября', 'октябрь', 'окт', 'october', 'oct'],
    11: ['ноября', 'ноябрь', 'ноя', 'november', 'nov'],
    12: ['декабря', 'декабрь', 'дек', 'december', 'dec'],
}

MONTH_SUBSTITUTIONS = [
    (re.compile(r'\b' + name + r'\b\.?', re.IGNORECASE), f' {month:02d} ')
    for month, names in MONTH_NAMES.items()
    for name in names
]

# Whole words only: "завтра" must not match "Завтрак"
RELATIVE_DAYS = [
    (re.compile(r'\b' + keyword + r'\b'), offset)
    for keyword, offset in [
        ('послезавтра', 2),
        ('сегодня', 0),
        ('today', 0),
        ('завтра', 1),
        ('tomorrow', 1),
    ]
]

TIME_PATTERN = re.compile(r'(?<!\d)(\d{1,2}):(\d{2})(?:\s*([ap])\.?m\.?)?', re.IGNORECASE)
ISO_DATE_PATTERN = re.compile(r'\b(\d{4})-(\d{1,2})-(\d{1,2})')
DOTTED_DATE_PATTERN = re.compile(r'\b(\d{1,2})\.(\d{1,2})\.(\d{4})\b')
MONTH_FIRST_PATTERN = re.compile(
    r'\b(jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+(\d{1,2})(?:st|nd|rd|th)?\b'
    r'(?:,?\s+(\d{4})\b)?',
    re.IGNORECASE,
)
# Applied after month substitution: "15 06 2025" or a range "15 – 17 06"
DAY_MONTH_PATTERN = re.compile(
    r'\b(\d{1,2})(?:\s*[–—-]\s*\d{1,2})?\s+(\d{2})(?!\d)(?:\s+(\d{4})\b)?'
)

ENGLISH_MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
}

ATTENDEES_PATTERN = re.compile(
    r'(\d{1,3}(?:\s\d{3})+|\d+)\+?\s*'
    r'(?:участник|человек|гост|посетител|participant|attendee|people|guest|visitor)',
    re.IGNORECASE,
)

LARGE_EVENT_KEYWORDS = (
    'масштабн', 'крупн', 'конференц', 'фестивал', 'форум',
    'festival', 'conference', 'summit', 'forum',
)


def fallback_date(
    now: datetime,
    fallback_days: int,
    fallback_time: Optional[Tuple[int, int]] = None
) -> datetime:
    """Default date used when nothing parseable was found."""
    value = now + timedelta(days=fallback_days)
    if fallback_time:
        return value.replace(
            hour=fallback_time[0], minute=fallback_time[1], second=0, microsecond=0
        )
    return value.replace(second=0, microsecond=0)


def _find_time(text: str, after: int = 0, before: int = 0) -> Optional[Tuple[int, int]]:
    """Find an "HH:MM" (optionally am/pm) time, preferring text after the date."""
    match = TIME_PATTERN.search(text, after)
    if not match and before:
        match = TIME_PATTERN.search(text[:before])
    if not match:
        return None

    hour = int(match.group(1))
    minute = int(match.group(2))
    meridiem = (match.group(3) or '').lower()
    if meridiem == 'p' and hour < 12:
        hour += 12
    elif meridiem == 'a' and hour == 12:
        hour = 0
    return hour, minute


def _build(year: int, month: int, day: int, clock: Optional[Tuple[int, int]]) -> datetime:
    hour, minute = clock if clock else (0, 0)
    return datetime(year, month, day, hour, minute)


def _parse_relative(lowered: str, now: datetime) -> Optional[datetime]:
    for pattern, offset in RELATIVE_DAYS:
        if pattern.search(lowered):
            day = now + timedelta(days=offset)
            clock = _find_time(lowered)
            if clock:
                return day.replace(hour=clock[0], minute=clock[1], second=0, microsecond=0)
            return day.replace(second=0, microsecond=0)
    return None


def _parse_absolute(text: str, now: datetime) -> Optional[datetime]:
    match = ISO_DATE_PATTERN.search(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _build(year, month, day, _find_time(text, match.end(), match.start()))

    match = DOTTED_DATE_PATTERN.search(text)
    if match:
        day, month, year = (int(g) for g in match.groups())
        return _build(year, month, day, _find_time(text, match.end(), match.start()))

    match = MONTH_FIRST_PATTERN.search(text)
    if match:
        month = ENGLISH_MONTHS[match.group(1).lower()]
        day = int(match.group(2))
        year = int(match.group(3)) if match.group(3) else now.year
        return _build(year, month, day, _find_time(text, match.end(), match.start()))

    substituted = text
    for pattern, code in MONTH_SUBSTITUTIONS:
        substituted = pattern.sub(code, substituted)

    match = DAY_MONTH_PATTERN.search(substituted)
    if match:
        day = int(match.group(1))
        month = int(match.group(2))
        year = int(match.group(3)) if match.group(3) else now.year
        return _build(year, month, day, _find_time(substituted, match.end(), match.start()))

    return None


def normalize_date(
    text: Optional[str],
    now: Optional[datetime] = None,
    fallback_days: int = 1,
    fallback_time: Optional[Tuple[int, int]] = None
) -> datetime:
    """
    Parse a localized (Russian or English) listing date.

    Handles "сегодня/завтра, 19:00", "15 июня, 19:00", "15 – 17 июня 2025",
    "Sat, Aug 17, 7:00 PM", "2025-06-15 19:00" and "15.06.2025 19:00". For
    ranges only the first date is used and a missing year means the current
    year.

    Args:
        text: Raw date text extracted from the page
        now: Reference instant (defaults to the current local time)
        fallback_days: Offset from now used when the text cannot be parsed
        fallback_time: Optional fixed (hour, minute) for the fallback date

    Returns:
        Parsed datetime, or the fallback date; never None
    """
    now = now or datetime.now()
    if not text or not text.strip():
        return fallback_date(now, fallback_days, fallback_time)

    try:
        result = _parse_relative(text.lower(), now) or _parse_absolute(text, now)
    except ValueError as e:
        logger.debug(f"Date out of range in '{text}': {e}")
        result = None

    if result is None:
        logger.debug(f"Could not parse date '{text}', using fallback")
        return fallback_date(now, fallback_days, fallback_time)
    return result


def normalize_timestamp(
    value: Union[int, float, str, None],
    now: Optional[datetime] = None,
    fallback_days: int = 1,
    fallback_time: Optional[Tuple[int, int]] = None
) -> datetime:
    """Convert epoch seconds to a local datetime, falling back like normalize_date."""
    now = now or datetime.now()
    try:
        return datetime.fromtimestamp(int(value))
    except (TypeError, ValueError, OverflowError, OSError):
        logger.debug(f"Invalid epoch timestamp {value!r}, using fallback")
        return fallback_date(now, fallback_days, fallback_time)


def normalize_iso_datetime(
    value: Optional[str],
    now: Optional[datetime] = None,
    fallback_days: int = 1,
    fallback_time: Optional[Tuple[int, int]] = None
) -> datetime:
    """Parse an ISO 8601 timestamp keeping its wall-clock time."""
    now = now or datetime.now()
    if not value:
        return fallback_date(now, fallback_days, fallback_time)
    # "+0300" offsets are normalized to "+03:00"
    cleaned = re.sub(r'([+-]\d{2})(\d{2})$', r'\1:\2', value.strip().replace('Z', '+00:00'))
    try:
        return datetime.fromisoformat(cleaned).replace(tzinfo=None)
    except ValueError:
        logger.debug(f"Invalid ISO timestamp {value!r}, using fallback")
        return fallback_date(now, fallback_days, fallback_time)


def normalize_price(value: Union[str, int, float, None]) -> Optional[Decimal]:
    """
    Convert a price string such as "от 1 500 ₽" to a Decimal.

    Args:
        value: Raw price text or a number from an API payload

    Returns:
        Decimal price, or None if absent or unparseable
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    cleaned = re.sub(r'[^0-9.]', '', value)
    if not cleaned:
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        logger.debug(f"Could not parse price: {value}")
        return None


def normalize_participants(value: Optional[str]) -> Optional[int]:
    """Keep only the digits of a participant count; None if there are none."""
    if not value:
        return None
    cleaned = re.sub(r'[^0-9]', '', value)
    if not cleaned:
        return None
    try:
        return int(cleaned)
    except ValueError:
        return None


def parse_attendees_count(text: Optional[str]) -> Optional[int]:
    """Find a "<number> участников/people" style count in free text."""
    if not text:
        return None
    match = ATTENDEES_PATTERN.search(text)
    if not match:
        return None
    return normalize_participants(match.group(1))


def looks_like_large_event(text: Optional[str]) -> bool:
    if not text:
        return False
    lowered = text.lower()
    return any(keyword in lowered for keyword in LARGE_EVENT_KEYWORDS)


def infer_participants(
    count_text: Optional[str],
    description: Optional[str],
    floor: int = 500,
    large_default: int = 1000,
    impute_without_description: bool = False
) -> Optional[int]:
    """
    Estimate the participant count for sources that list large events.

    An explicit count in count_text or description wins. Otherwise a
    description mentioning a festival/conference/forum implies large_default,
    and any other description implies floor. Without a description the count
    stays unknown unless impute_without_description is set.
    """
    count = parse_attendees_count(count_text)
    if count is None:
        count = parse_attendees_count(description)
    if count is not None:
        return count

    if not description and not impute_without_description:
        return None

    if looks_like_large_event(description) or looks_like_large_event(count_text):
        return large_default
    return floor
