from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone

import pytest

from qubit_commons.converters import (
    DEFAULT_CONVERTERS,
    ConversionError,
    ConverterRegistry,
    Instant,
    IsoDateParser,
    IsoInstantParser,
    IsoLocalDateParser,
    IsoLocalDateTimeParser,
    IsoLocalTimeParser,
    LocalDateParser,
    UtcDateTime,
    build_default_registry,
)


def test_iso_instant_parser_normalizes_to_utc():
    parser = IsoInstantParser()
    assert parser.convert("2023-10-26T10:15:30.123Z") == datetime(
        2023, 10, 26, 10, 15, 30, 123000, tzinfo=timezone.utc
    )
    value = parser.convert("2023-10-26T18:15:30+08:00")
    assert value == datetime(2023, 10, 26, 10, 15, 30, tzinfo=timezone.utc)
    assert value.utcoffset() == timedelta(0)


def test_iso_instant_parser_requires_offset():
    with pytest.raises(ConversionError):
        IsoInstantParser().convert("2023-10-26T10:15:30")


def test_iso_date_parser_treats_naive_values_as_utc():
    parser = IsoDateParser()
    assert parser.convert("2023-10-26T10:15:30") == datetime(
        2023, 10, 26, 10, 15, 30, tzinfo=timezone.utc
    )
    assert parser.convert("2023-10-26T12:15:30+02:00") == datetime(
        2023, 10, 26, 10, 15, 30, tzinfo=timezone.utc
    )


def test_iso_local_parsers():
    assert IsoLocalDateParser().convert("2017-01-01") == date(2017, 1, 1)
    assert IsoLocalDateTimeParser().convert("2017-01-01T08:30:00") == datetime(2017, 1, 1, 8, 30)
    assert IsoLocalTimeParser().convert("08:30:15.5") == time(8, 30, 15, 500000)


@pytest.mark.parametrize(
    ("parser", "source"),
    [
        (IsoInstantParser(), "yesterday"),
        (IsoDateParser(), "2023-13-01T00:00:00"),
        (IsoLocalDateParser(), "2017/01/01"),
        (IsoLocalDateTimeParser(), "2017-01-01T08:30:00Z"),
        (IsoLocalTimeParser(), "25:00"),
        (IsoLocalTimeParser(), "08:30+01:00"),
    ],
)
def test_iso_parsers_raise_conversion_error(parser: object, source: str):
    with pytest.raises(ConversionError) as excinfo:
        parser.convert(source)  # type: ignore[attr-defined]
    assert excinfo.value.source == source
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("source", ["2017-01-01", "2017-1-1", "2017/01/01", "2017/1/1", " 2017-1-01 "])
def test_local_date_parser_accepts_lenient_formats(source: str):
    assert LocalDateParser().convert(source) == date(2017, 1, 1)


@pytest.mark.parametrize("source", [None, "", "   "])
def test_local_date_parser_blank_is_none(source: str | None, caplog: pytest.LogCaptureFixture):
    assert LocalDateParser().convert(source) is None
    assert caplog.records == []


@pytest.mark.parametrize("source", ["2017.01.01", "17-1-1", "2017-02-30", "abc"])
def test_local_date_parser_logs_invalid_input(source: str, caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.ERROR, logger="qubit_commons.converters")
    assert LocalDateParser().convert(source) is None
    assert [r.getMessage() for r in caplog.records] == [f"Invalid date format: {source}"]


def test_local_date_parser_format():
    parser = LocalDateParser()
    assert parser.format(date(2017, 1, 2)) == "2017-01-02"
    assert parser.format(None) is None


def test_registry_logs_registered_converters(caplog: pytest.LogCaptureFixture):
    caplog.set_level(logging.INFO, logger="qubit_commons.converters")
    registry = build_default_registry()

    expected = ", ".join(cls.__name__ for cls in DEFAULT_CONVERTERS)
    assert registry.converter_names() == expected
    assert f"Register customized converters: {expected}" in [r.getMessage() for r in caplog.records]


def test_registry_later_converter_wins():
    registry = build_default_registry()

    assert date in registry
    assert datetime in registry
    assert time in registry
    assert len(registry) == 5
    assert isinstance(registry.get(date), LocalDateParser)
    assert isinstance(registry.get(datetime), IsoLocalDateTimeParser)
    assert registry.convert("2017/1/1", date) == date(2017, 1, 1)


def test_registry_uses_explicit_converters_only():
    registry = ConverterRegistry([IsoInstantParser()])
    assert registry.convert("2020-01-01T00:00:00Z", Instant) == datetime(
        2020, 1, 1, tzinfo=timezone.utc
    )
    with pytest.raises(ConversionError):
        registry.convert("2020-01-01", date)


def test_default_registry_keeps_utc_parsers_reachable():
    registry = build_default_registry()

    assert isinstance(registry.get(Instant), IsoInstantParser)
    assert isinstance(registry.get(UtcDateTime), IsoDateParser)

    instant = registry.convert("2020-01-01T08:00:00+08:00", Instant)
    assert instant == datetime(2020, 1, 1, tzinfo=timezone.utc)
    assert instant.tzinfo is timezone.utc
    assert registry.convert("2020-01-01T00:00:00Z", UtcDateTime) == datetime(
        2020, 1, 1, tzinfo=timezone.utc
    )
    assert registry.convert("2020-01-01T00:00:00", UtcDateTime) == datetime(
        2020, 1, 1, tzinfo=timezone.utc
    )

    # Local date-times still go through the naive parser.
    assert registry.convert("2020-01-01T08:30:00", datetime) == datetime(2020, 1, 1, 8, 30)
    with pytest.raises(ConversionError):
        registry.convert("2020-01-01T00:00:00Z", datetime)
