"""Unit tests for field normalizers."""
from datetime import datetime
from decimal import Decimal

import pytest

from processor.normalizers import (
    fallback_date,
    infer_participants,
    looks_like_large_event,
    normalize_date,
    normalize_iso_datetime,
    normalize_participants,
    normalize_price,
    normalize_timestamp,
    parse_attendees_count,
)

NOW = datetime(2025, 3, 10, 12, 34, 56)


class TestNormalizeDate:
    """Test cases for normalize_date."""

    def test_today_with_time(self):
        assert normalize_date("сегодня, 19:00", now=NOW) == datetime(2025, 3, 10, 19, 0)

    def test_tomorrow_with_time(self):
        assert normalize_date("Завтра, 19:00", now=NOW) == datetime(2025, 3, 11, 19, 0)

    def test_day_after_tomorrow(self):
        assert normalize_date("послезавтра в 18:30", now=NOW) == datetime(2025, 3, 12, 18, 30)

    def test_english_tomorrow(self):
        assert normalize_date("Tomorrow at 8:00 PM", now=NOW) == datetime(2025, 3, 11, 20, 0)

    def test_word_starting_with_tomorrow_is_not_relative(self):
        result = normalize_date("Завтрак с шефом, 15 июня, 10:00", now=NOW)

        assert result == datetime(2025, 6, 15, 10, 0)

    def test_relative_keyword_inside_name_ignored(self):
        assert normalize_date("Todayfest 2025-07-01 18:00", now=NOW) == datetime(2025, 7, 1, 18, 0)

    def test_russian_day_month_uses_current_year(self):
        assert normalize_date("15 июня, 19:00", now=NOW) == datetime(2025, 6, 15, 19, 0)

    def test_russian_day_month_with_year(self):
        assert normalize_date("3 декабря 2026", now=NOW) == datetime(2026, 12, 3, 0, 0)

    def test_range_uses_first_date(self):
        assert normalize_date("15 – 17 июня 2025", now=NOW) == datetime(2025, 6, 15, 0, 0)

    def test_abbreviated_month(self):
        assert normalize_date("5 сент. 10:00", now=NOW) == datetime(2025, 9, 5, 10, 0)

    def test_english_month_first(self):
        assert normalize_date("Sat, Aug 17, 7:00 PM", now=NOW) == datetime(2025, 8, 17, 19, 0)

    def test_iso_datetime_text(self):
        assert normalize_date("2025-06-15T19:30:00", now=NOW) == datetime(2025, 6, 15, 19, 30)

    def test_dotted_date(self):
        assert normalize_date("15.06.2025 19:00", now=NOW) == datetime(2025, 6, 15, 19, 0)

    def test_unparsable_uses_fallback_offset(self):
        assert normalize_date("скоро", now=NOW) == datetime(2025, 3, 11, 12, 34)

    def test_large_event_fallback_offset(self):
        assert normalize_date("TBA", now=NOW, fallback_days=7) == datetime(2025, 3, 17, 12, 34)

    def test_fallback_with_fixed_time(self):
        result = normalize_date(None, now=NOW, fallback_time=(19, 0))

        assert result == datetime(2025, 3, 11, 19, 0)

    def test_invalid_calendar_date_falls_back(self):
        assert normalize_date("31 февраля", now=NOW) == datetime(2025, 3, 11, 12, 34)

    @pytest.mark.parametrize('text', [None, '', '   '])
    def test_empty_never_none(self, text):
        assert normalize_date(text, now=NOW) is not None


def test_fallback_date_truncates_seconds():
    assert fallback_date(NOW, 1) == datetime(2025, 3, 11, 12, 34)


class TestTimestamps:
    """Test cases for API timestamp conversion."""

    def test_epoch_seconds(self):
        expected = datetime.fromtimestamp(1750000000)

        assert normalize_timestamp(1750000000, now=NOW) == expected

    def test_epoch_string(self):
        assert normalize_timestamp("1750000000", now=NOW) == datetime.fromtimestamp(1750000000)

    def test_invalid_epoch_falls_back(self):
        assert normalize_timestamp(None, now=NOW) == datetime(2025, 3, 11, 12, 34)

    def test_invalid_epoch_uses_fixed_fallback_time(self):
        result = normalize_timestamp("soon", now=NOW, fallback_days=7, fallback_time=(10, 0))

        assert result == datetime(2025, 3, 17, 10, 0)

    def test_iso_with_compact_offset(self):
        result = normalize_iso_datetime("2025-06-15T19:00:00+0300", now=NOW)

        assert result == datetime(2025, 6, 15, 19, 0)

    def test_iso_invalid_falls_back(self):
        result = normalize_iso_datetime("not a date", now=NOW, fallback_days=7)

        assert result == datetime(2025, 3, 17, 12, 34)


class TestNormalizePrice:
    """Test cases for normalize_price."""

    def test_rubles_with_spaces(self):
        assert normalize_price("от 1 500 ₽") == Decimal('1500')

    def test_decimal_point(self):
        assert normalize_price("$25.50") == Decimal('25.50')

    def test_number(self):
        assert normalize_price(700) == Decimal('700')

    @pytest.mark.parametrize('value', [None, '', 'Бесплатно', '...'])
    def test_unparseable_is_none(self, value):
        assert normalize_price(value) is None


class TestParticipants:
    """Test cases for participant count helpers."""

    def test_digits_only(self):
        assert normalize_participants("1 200 участников") == 1200

    def test_no_digits(self):
        assert normalize_participants("много") is None

    def test_attendees_count_russian(self):
        assert parse_attendees_count("Ожидается более 3 000 участников") == 3000

    def test_attendees_count_english(self):
        assert parse_attendees_count("Join 750+ attendees") == 750

    def test_attendees_count_absent(self):
        assert parse_attendees_count("Встреча клуба") is None

    def test_large_event_keywords(self):
        assert looks_like_large_event("Международный ФОРУМ")
        assert not looks_like_large_event("Камерный вечер")

    def test_infer_explicit_count_wins(self):
        assert infer_participants("120 участников", "Крупный фестиваль") == 120

    def test_infer_keyword_default(self):
        assert infer_participants(None, "Крупнейшая конференция года") == 1000

    def test_infer_floor_with_plain_description(self):
        assert infer_participants(None, "Лекция о космосе") == 500

    def test_infer_unknown_without_description(self):
        assert infer_participants(None, None) is None

    def test_infer_imputes_without_description(self):
        assert infer_participants(None, None, impute_without_description=True) == 500
