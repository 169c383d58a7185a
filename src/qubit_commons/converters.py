"""String to date/time converters and the registry that collects them.

Parsing itself is delegated to the ISO-8601 support of :mod:`datetime`; the
converters only pin down which flavour of value each one produces.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import date, datetime, time, timezone
from typing import Any, ClassVar, NewType, Protocol

logger = logging.getLogger(__name__)

# Registry keys for the UTC-aware parsers; plain `datetime` is the naive local date-time.
Instant = NewType("Instant", datetime)
UtcDateTime = NewType("UtcDateTime", datetime)


def _type_name(target_type: object) -> str:
    return getattr(target_type, "__name__", repr(target_type))


class ConversionError(ValueError):
    def __init__(self, message: str, source: object = None) -> None:
        super().__init__(message)
        self.source = source


class Converter(Protocol):
    target_type: ClassVar[object]

    def convert(self, source: str) -> Any: ...


class IsoInstantParser:
    """Parses an ISO-8601 instant such as ``2023-10-26T10:15:30.123Z`` into a UTC datetime."""

    target_type: ClassVar[object] = Instant

    def convert(self, source: str) -> datetime:
        try:
            value = datetime.fromisoformat(source)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid ISO instant: {source!r}", source) from e
        if value.tzinfo is None:
            raise ConversionError(f"ISO instant requires an offset: {source!r}", source)
        return value.astimezone(timezone.utc)


class IsoDateParser:
    """Parses an ISO-8601 date-time into a UTC datetime; values without an offset are UTC."""

    target_type: ClassVar[object] = UtcDateTime

    def convert(self, source: str) -> datetime:
        try:
            value = datetime.fromisoformat(source)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid ISO date-time: {source!r}", source) from e
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class IsoLocalDateParser:
    target_type: ClassVar[object] = date

    def convert(self, source: str) -> date:
        try:
            return date.fromisoformat(source)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid ISO local date: {source!r}", source) from e


class IsoLocalDateTimeParser:
    target_type: ClassVar[object] = datetime

    def convert(self, source: str) -> datetime:
        try:
            value = datetime.fromisoformat(source)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid ISO local date-time: {source!r}", source) from e
        if value.tzinfo is not None:
            raise ConversionError(f"ISO local date-time must not have an offset: {source!r}", source)
        return value


class IsoLocalTimeParser:
    target_type: ClassVar[object] = time

    def convert(self, source: str) -> time:
        try:
            value = time.fromisoformat(source)
        except (TypeError, ValueError) as e:
            raise ConversionError(f"Invalid ISO local time: {source!r}", source) from e
        if value.tzinfo is not None:
            raise ConversionError(f"ISO local time must not have an offset: {source!r}", source)
        return value


_LOCAL_DATE_RE = re.compile(r"^(\d{4})[-/](\d{1,2})[-/](\d{1,2})$")


class LocalDateParser:
    """Lenient date parser.

    Accepts ``2017-01-01``, ``2017-1-1``, ``2017/01/01`` and ``2017/1/1``.
    ``None``, empty and blank strings convert to ``None``. Anything else that
    does not parse is logged and also converts to ``None``.
    """

    target_type: ClassVar[object] = date

    ENCODE_PATTERN: ClassVar[str] = "%Y-%m-%d"

    def convert(self, source: str | None) -> date | None:
        if source is None or not source.strip():
            return None
        m = _LOCAL_DATE_RE.match(source.strip())
        if m is None:
            logger.error("Invalid date format: %s", source)
            return None
        try:
            return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
        except ValueError:
            logger.error("Invalid date format: %s", source)
            return None

    def format(self, value: date | None) -> str | None:
        if value is None:
            return None
        return value.strftime(self.ENCODE_PATTERN)


DEFAULT_CONVERTERS: tuple[type[Converter], ...] = (
    IsoInstantParser,
    IsoDateParser,
    IsoLocalDateParser,
    IsoLocalDateTimeParser,
    IsoLocalTimeParser,
    LocalDateParser,
)


class ConverterRegistry:
    """Maps target types to converters.

    Converters are passed in explicitly; when two target the same type the
    later one wins. The UTC-aware parsers register under ``Instant`` and
    ``UtcDateTime`` so they do not shadow the local ``datetime`` parser.
    """

    def __init__(self, converters: Iterable[Converter]) -> None:
        self._converters: list[Converter] = list(converters)
        self._by_type: dict[object, Converter] = {}
        for converter in self._converters:
            previous = self._by_type.get(converter.target_type)
            if previous is not None:
                logger.debug(
                    "converter %s replaces %s for %s",
                    type(converter).__name__,
                    type(previous).__name__,
                    _type_name(converter.target_type),
                )
            self._by_type[converter.target_type] = converter
        logger.info("Register customized converters: %s", self.converter_names())

    def converter_names(self) -> str:
        return ", ".join(type(c).__name__ for c in self._converters)

    def get(self, target_type: object) -> Converter | None:
        return self._by_type.get(target_type)

    def convert(self, source: str, target_type: object) -> Any:
        converter = self._by_type.get(target_type)
        if converter is None:
            raise ConversionError(f"No converter registered for {_type_name(target_type)}", source)
        return converter.convert(source)

    def __contains__(self, target_type: object) -> bool:
        return target_type in self._by_type

    def __len__(self) -> int:
        return len(self._by_type)


def build_default_registry() -> ConverterRegistry:
    return ConverterRegistry(cls() for cls in DEFAULT_CONVERTERS)
