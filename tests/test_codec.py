"""Tests for the entry value and timestamp codec."""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone

import pytest

from vice.core.codec import (
    EntryValue,
    QuotedString,
    ValueKind,
    decode_value,
    dump_yaml,
    encode_value,
    format_timestamp,
    is_valid_date,
    load_yaml,
    parse_date,
    parse_rfc3339,
    parse_time_of_day,
    parse_timestamp,
)
from vice.errors import FormatError


# ---------------------------------------------------------------------------
# EntryValue
# ---------------------------------------------------------------------------

class TestEntryValue:
    def test_of_tags_by_runtime_type(self):
        assert EntryValue.of(True).kind is ValueKind.boolean
        assert EntryValue.of(5).kind is ValueKind.integer
        assert EntryValue.of(2.5).kind is ValueKind.floating
        assert EntryValue.of("3.0").kind is ValueKind.string
        assert EntryValue.of(time(8, 30)).kind is ValueKind.time_of_day

    def test_of_datetime_keeps_clock_time(self):
        value = EntryValue.of(datetime(2025, 7, 15, 8, 30, tzinfo=timezone.utc))
        assert value.is_time_of_day
        assert value.data == time(8, 30)

    def test_of_unsupported(self):
        with pytest.raises(FormatError, match="unsupported value type: list"):
            EntryValue.of([1, 2])

    def test_kind_must_match_data(self):
        with pytest.raises(ValueError):
            EntryValue(kind=ValueKind.integer, data="seven")

    def test_str(self):
        assert str(EntryValue.time_of_day(7, 5)) == "07:05"
        assert str(EntryValue.boolean(False)) == "false"
        assert str(EntryValue.floating(2.5)) == "2.5"


# ---------------------------------------------------------------------------
# encode / decode
# ---------------------------------------------------------------------------

class TestEncodeValue:
    def test_time_of_day(self):
        encoded = encode_value(EntryValue.time_of_day(8, 30))
        assert encoded == "08:30"
        assert isinstance(encoded, QuotedString)

    def test_whole_float_keeps_decimal(self):
        encoded = encode_value(EntryValue.floating(3.0))
        assert encoded == "3.0"
        assert isinstance(encoded, QuotedString)

    def test_fractional_float_native(self):
        assert encode_value(EntryValue.floating(2.75)) == 2.75

    def test_int_and_bool_native(self):
        assert encode_value(EntryValue.integer(7)) == 7
        assert encode_value(EntryValue.boolean(True)) is True

    def test_yaml_output_is_quoted(self):
        doc = {"value": encode_value(EntryValue.time_of_day(8, 30))}
        assert dump_yaml(doc) == 'value: "08:30"\n'


class TestDecodeValueHeuristic:
    """Without a field type the value text is sniffed."""

    def test_colon_means_time(self):
        assert decode_value("08:30") == EntryValue.time_of_day(8, 30)

    def test_seconds_accepted(self):
        assert decode_value("08:30:15").data == time(8, 30, 15)

    def test_dot_means_float(self):
        assert decode_value("3.5") == EntryValue.floating(3.5)

    def test_numeric_looking_text_becomes_float(self):
        assert decode_value("3.0").kind is ValueKind.floating

    def test_sentence_with_dot_stays_string(self):
        assert decode_value("done. felt good") == EntryValue.string("done. felt good")

    def test_bad_time_stays_string(self):
        assert decode_value("note: later") == EntryValue.string("note: later")

    def test_native_values_pass_through(self):
        assert decode_value(True) == EntryValue.boolean(True)
        assert decode_value(42) == EntryValue.integer(42)

    def test_none(self):
        assert decode_value(None) is None

    def test_collections_rejected(self):
        with pytest.raises(FormatError):
            decode_value({"a": 1})

    def test_unknown_field_type_falls_back(self):
        assert decode_value("07:15", "mystery").is_time_of_day


class TestDecodeValueByFieldType:
    """The field type decides, diverging from sniffing where they disagree."""

    def test_text_keeps_numeric_looking_string(self):
        assert decode_value("3.0", "text") == EntryValue.string("3.0")

    def test_text_keeps_time_looking_string(self):
        assert decode_value("08:30", "text") == EntryValue.string("08:30")

    def test_text_from_native_number(self):
        assert decode_value(12, "text") == EntryValue.string("12")

    def test_decimal_from_int_is_float(self):
        value = decode_value(5, "decimal")
        assert value == EntryValue.floating(5.0)
        assert encode_value(value) == "5.0"

    def test_decimal_from_quoted_text(self):
        assert decode_value("3.0", "unsigned_decimal") == EntryValue.floating(3.0)

    def test_unsigned_int_from_text(self):
        assert decode_value("7", "unsigned_int") == EntryValue.integer(7)

    def test_unsigned_int_rejects_fraction(self):
        with pytest.raises(FormatError):
            decode_value("7.5", "unsigned_int")

    def test_boolean_from_text(self):
        assert decode_value("true", "boolean") == EntryValue.boolean(True)

    def test_boolean_rejects_number(self):
        with pytest.raises(FormatError):
            decode_value(1, "boolean")

    def test_time_field(self):
        assert decode_value("21:45", "time") == EntryValue.time_of_day(21, 45)

    def test_time_field_from_full_timestamp(self):
        assert decode_value("2025-07-15 06:10:00", "time") == EntryValue.time_of_day(6, 10)

    def test_duration_is_native(self):
        assert decode_value("1h30m", "duration") == EntryValue.string("1h30m")
        assert decode_value(45, "duration") == EntryValue.integer(45)


class TestParseTimeOfDay:
    def test_invalid(self):
        with pytest.raises(FormatError, match="expected HH:MM format"):
            parse_time_of_day("25:99")


# ---------------------------------------------------------------------------
# Timestamps and dates
# ---------------------------------------------------------------------------

class TestParseTimestamp:
    def test_human_readable(self):
        assert parse_timestamp("2025-07-15 09:11:27") == datetime(2025, 7, 15, 9, 11, 27, tzinfo=timezone.utc)

    def test_human_readable_without_seconds(self):
        assert parse_timestamp("2025-07-15 09:11") == datetime(2025, 7, 15, 9, 11, tzinfo=timezone.utc)

    def test_rfc3339_utc(self):
        assert parse_timestamp("2025-07-15T09:11:27Z") == datetime(2025, 7, 15, 9, 11, 27, tzinfo=timezone.utc)

    def test_nanoseconds_truncated(self):
        parsed = parse_timestamp("2025-07-15T09:11:27.123456789+02:00")
        assert parsed.microsecond == 123456
        assert parsed.utcoffset() == timedelta(hours=2)

    def test_iso_without_zone_is_utc(self):
        assert parse_timestamp("2025-07-15T09:11:27").tzinfo == timezone.utc

    def test_bare_clock_time(self):
        parsed = parse_timestamp("09:11")
        assert (parsed.hour, parsed.minute) == (9, 11)

    def test_unix_epoch_text(self):
        assert parse_timestamp("0") == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_unix_epoch_int(self):
        assert parse_timestamp(86400) == datetime(1970, 1, 2, tzinfo=timezone.utc)

    def test_datetime_passes_through(self):
        naive = datetime(2025, 1, 1, 12, 0)
        assert parse_timestamp(naive) == naive.replace(tzinfo=timezone.utc)

    def test_garbage(self):
        with pytest.raises(FormatError, match="unable to parse time value: yesterday"):
            parse_timestamp("yesterday")

    def test_wrong_type(self):
        with pytest.raises(FormatError):
            parse_timestamp(1.5)


class TestFormatTimestamp:
    def test_no_zone_no_fraction(self):
        ts = datetime(2025, 7, 15, 9, 11, 27, 999, tzinfo=timezone.utc)
        assert format_timestamp(ts) == "2025-07-15 09:11:27"


class TestDates:
    def test_parse_date(self):
        assert parse_date("2024-02-29").day == 29

    @pytest.mark.parametrize("value", ["2024-1-5", "2024-02-30", "01/02/2024", ""])
    def test_invalid_dates(self, value):
        assert not is_valid_date(value)

    def test_error_message(self):
        with pytest.raises(FormatError, match="invalid date format, expected YYYY-MM-DD: 2024/01/01"):
            parse_date("2024/01/01")


class TestParseRfc3339:
    def test_valid(self):
        assert parse_rfc3339("2024-01-01T10:00:00Z").tzinfo == timezone.utc

    def test_offset(self):
        assert parse_rfc3339("2024-01-01T10:00:00-05:00").utcoffset() == timedelta(hours=-5)

    def test_zone_required(self):
        with pytest.raises(FormatError):
            parse_rfc3339("2024-01-01T10:00:00")

    def test_human_form_rejected(self):
        with pytest.raises(FormatError):
            parse_rfc3339("2024-01-01 10:00:00")


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------

class TestYaml:
    def test_dates_stay_text(self):
        assert load_yaml("date: 2024-01-01\nat: 2024-01-01T10:00:00Z\n") == {
            "date": "2024-01-01",
            "at": "2024-01-01T10:00:00Z",
        }

    def test_base60_and_word_booleans_stay_text(self):
        assert load_yaml("a: 8:30\nb: yes\nc: off\nd: No\n") == {
            "a": "8:30",
            "b": "yes",
            "c": "off",
            "d": "No",
        }

    def test_word_keys_stay_text(self):
        assert load_yaml("yes: true\non: false\n") == {"yes": True, "on": False}

    def test_core_scalars(self):
        assert load_yaml("a: true\nb: False\nc: 010\nd: 0x1F\ne: 1e3\nf: -2.5\ng: ~\n") == {
            "a": True,
            "b": False,
            "c": 10,
            "d": 31,
            "e": 1000.0,
            "f": -2.5,
            "g": None,
        }

    def test_underscored_number_stays_text(self):
        assert load_yaml("a: 1_000\n") == {"a": "1_000"}

    def test_parse_error(self):
        with pytest.raises(FormatError, match="failed to parse YAML"):
            load_yaml("a: [1, 2\n")

    def test_sequences_indented(self):
        assert dump_yaml({"items": ["a", "b"]}) == "items:\n  - a\n  - b\n"

    def test_insertion_order_when_unsorted(self):
        assert dump_yaml({"b": 1, "a": 2}, sort_keys=False) == "b: 1\na: 2\n"
