"""Entry value and timestamp codec.

Values are carried as an explicit tagged variant (``EntryValue``). On load the
owning habit's field type decides the variant; only when no field type is
known does the decoder fall back to sniffing the text (``:`` → time of day,
``.`` → float). On save the canonical human-readable form is always written:

* time of day       → ``"HH:MM"``
* whole float       → ``"3.0"`` (so it is not read back as an integer)
* timestamps        → ``"YYYY-MM-DD HH:MM:SS"``
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any, Union

import yaml
from pydantic import BaseModel, ConfigDict, model_validator

from vice.errors import FormatError

_LOGGER = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
DATE_FORMAT = "%Y-%m-%d"
TIME_OF_DAY_FORMAT = "%H:%M"

# Tried in order; the first one that parses wins.
_HUMAN_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%H:%M:%S",
    "%H:%M",
)
_TIME_OF_DAY_FORMATS = ("%H:%M:%S", "%H:%M")

_ISO_TIMESTAMP = re.compile(
    r"(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<zone>Z|[+-]\d{2}:\d{2})?"
)
_UNIX_TIMESTAMP = re.compile(r"[+-]?\d+")
_DECIMAL_TEXT = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INTEGER_TEXT = re.compile(r"[+-]?\d+")
_ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")

Scalar = Union[bool, int, float, str, time]


class ValueKind(str, Enum):
    boolean = "boolean"
    integer = "integer"
    floating = "float"
    string = "string"
    time_of_day = "time"


_PYTHON_TYPES: dict[ValueKind, type] = {
    ValueKind.boolean: bool,
    ValueKind.integer: int,
    ValueKind.floating: float,
    ValueKind.string: str,
    ValueKind.time_of_day: time,
}


class EntryValue(BaseModel):
    """A habit entry value together with its discriminant."""

    model_config = ConfigDict(frozen=True)

    kind: ValueKind
    data: Scalar

    @model_validator(mode="after")
    def _data_matches_kind(self) -> EntryValue:
        expected = _PYTHON_TYPES[self.kind]
        if type(self.data) is not expected:
            raise ValueError(f"{self.kind.value} value cannot hold {type(self.data).__name__}")
        return self

    @classmethod
    def boolean(cls, value: bool) -> EntryValue:
        return cls(kind=ValueKind.boolean, data=bool(value))

    @classmethod
    def integer(cls, value: int) -> EntryValue:
        return cls(kind=ValueKind.integer, data=int(value))

    @classmethod
    def floating(cls, value: float) -> EntryValue:
        return cls(kind=ValueKind.floating, data=float(value))

    @classmethod
    def string(cls, value: str) -> EntryValue:
        return cls(kind=ValueKind.string, data=str(value))

    @classmethod
    def time_of_day(cls, hour: int, minute: int, second: int = 0) -> EntryValue:
        return cls(kind=ValueKind.time_of_day, data=time(hour, minute, second))

    @classmethod
    def of(cls, value: Any) -> EntryValue:
        """Tag a native Python value by its runtime type (never by its text)."""
        if isinstance(value, EntryValue):
            return value
        if isinstance(value, bool):
            return cls.boolean(value)
        if isinstance(value, int):
            return cls.integer(value)
        if isinstance(value, float):
            return cls.floating(value)
        if isinstance(value, str):
            return cls.string(value)
        if isinstance(value, datetime):
            return cls(kind=ValueKind.time_of_day, data=value.time())
        if isinstance(value, time):
            return cls(kind=ValueKind.time_of_day, data=value.replace(tzinfo=None))
        raise FormatError(f"unsupported value type: {type(value).__name__}")

    @property
    def is_time_of_day(self) -> bool:
        return self.kind is ValueKind.time_of_day

    def __str__(self) -> str:
        if self.kind is ValueKind.time_of_day:
            return self.data.strftime(TIME_OF_DAY_FORMAT)
        if self.kind is ValueKind.boolean:
            return "true" if self.data else "false"
        return str(self.data)


# ---------------------------------------------------------------------------
# YAML emission
# ---------------------------------------------------------------------------


class QuotedString(str):
    """A string the emitter always writes double-quoted."""


class _Dumper(yaml.SafeDumper):
    # Indent block sequences under their parent key.
    def increase_indent(self, flow: bool = False, indentless: bool = False):
        return super().increase_indent(flow, False)


def _represent_quoted(dumper: yaml.SafeDumper, data: QuotedString):
    return dumper.represent_scalar("tag:yaml.org,2002:str", str(data), style='"')


_Dumper.add_representer(QuotedString, _represent_quoted)


def dump_yaml(data: Any, *, sort_keys: bool = True) -> str:
    return yaml.dump(
        data,
        Dumper=_Dumper,
        sort_keys=sort_keys,
        allow_unicode=True,
        default_flow_style=False,
        width=4096,
    )


class _Loader(yaml.SafeLoader):
    """Safe loader resolving plain scalars by the YAML 1.2 core schema.

    Dates, base-60 numbers (``8:30``) and ``yes``/``no``/``on``/``off`` stay
    text; only ``true``/``false`` are booleans.
    """


# Resolvers that only exist in YAML 1.1.
_YAML11_TAGS = frozenset(
    "tag:yaml.org,2002:" + name for name in ("bool", "int", "float", "timestamp", "value")
)

_Loader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _YAML11_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
_Loader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
_Loader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?[0-9]+|0o[0-7]+|0x[0-9a-fA-F]+)$"),
    list("-+0123456789"),
)
_Loader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(
        r"^(?:[-+]?(?:\.[0-9]+|[0-9]+(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
        r"|[-+]?\.(?:inf|Inf|INF)|\.(?:nan|NaN|NAN))$"
    ),
    list("-+0123456789."),
)


def _construct_int(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> int:
    # Leading zeros are decimal here, not octal.
    text = loader.construct_scalar(node)
    if text.startswith(("0o", "0x")):
        return int(text, 0)
    return int(text)


_Loader.add_constructor("tag:yaml.org,2002:int", _construct_int)


def load_yaml(text: str) -> Any:
    try:
        return yaml.load(text, Loader=_Loader)
    except yaml.YAMLError as exc:
        raise FormatError(f"failed to parse YAML: {exc}") from exc


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------


def encode_value(value: EntryValue) -> Any:
    """Canonical on-disk form of an entry value."""
    if value.kind is ValueKind.time_of_day:
        return QuotedString(value.data.strftime(TIME_OF_DAY_FORMAT))
    if value.kind is ValueKind.floating and value.data.is_integer():
        return QuotedString(f"{value.data:.1f}")
    return value.data


def parse_time_of_day(text: str) -> time:
    for fmt in _TIME_OF_DAY_FORMATS:
        try:
            return datetime.strptime(text.strip(), fmt).time()
        except ValueError:
            continue
    raise FormatError(f"cannot parse time: {text} (expected HH:MM format)")


def _native(raw: Any) -> EntryValue:
    if isinstance(raw, (date, datetime)):
        return EntryValue.string(raw.isoformat(sep=" ") if isinstance(raw, datetime) else raw.isoformat())
    return EntryValue.of(raw)


def _sniff(raw: Any) -> EntryValue:
    """Legacy content sniffing used when the field type is unknown."""
    if not isinstance(raw, str):
        return _native(raw)
    if ":" in raw:
        try:
            return EntryValue(kind=ValueKind.time_of_day, data=parse_time_of_day(raw))
        except FormatError:
            pass
    if "." in raw and _DECIMAL_TEXT.fullmatch(raw.strip()):
        return EntryValue.floating(float(raw))
    return EntryValue.string(raw)


def _as_text(raw: Any) -> str:
    if isinstance(raw, bool):
        return "true" if raw else "false"
    if isinstance(raw, datetime):
        return raw.isoformat(sep=" ")
    return str(raw)


def _as_boolean(raw: Any) -> EntryValue:
    if isinstance(raw, bool):
        return EntryValue.boolean(raw)
    if isinstance(raw, str) and raw.strip().lower() in ("true", "false"):
        return EntryValue.boolean(raw.strip().lower() == "true")
    raise FormatError(f"expected boolean value, got {raw!r}")


def _as_integer(raw: Any) -> EntryValue:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return EntryValue.integer(raw)
    if isinstance(raw, float) and raw.is_integer():
        return EntryValue.integer(int(raw))
    if isinstance(raw, str):
        text = raw.strip()
        if _INTEGER_TEXT.fullmatch(text):
            return EntryValue.integer(int(text))
        if _DECIMAL_TEXT.fullmatch(text) and float(text).is_integer():
            return EntryValue.integer(int(float(text)))
    raise FormatError(f"expected integer value, got {raw!r}")


def _as_float(raw: Any) -> EntryValue:
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        return EntryValue.floating(float(raw))
    if isinstance(raw, str):
        text = raw.strip()
        if _DECIMAL_TEXT.fullmatch(text) or _INTEGER_TEXT.fullmatch(text):
            return EntryValue.floating(float(text))
    raise FormatError(f"expected decimal value, got {raw!r}")


def _as_time_of_day(raw: Any) -> EntryValue:
    if isinstance(raw, (datetime, time)):
        return EntryValue.of(raw)
    if isinstance(raw, str):
        try:
            return EntryValue(kind=ValueKind.time_of_day, data=parse_time_of_day(raw))
        except FormatError:
            return EntryValue(kind=ValueKind.time_of_day, data=parse_timestamp(raw).time().replace(tzinfo=None))
    raise FormatError(f"expected time value, got {raw!r}")


_DECODERS = {
    "text": lambda raw: EntryValue.string(_as_text(raw)),
    "boolean": _as_boolean,
    "unsigned_int": _as_integer,
    "unsigned_decimal": _as_float,
    "decimal": _as_float,
    "time": _as_time_of_day,
    "duration": _native,
    "checklist": _native,
}


def decode_value(raw: Any, field_type: str | None = None) -> EntryValue | None:
    """Decode a stored value, using ``field_type`` as the discriminant when known."""
    if raw is None:
        return None
    if isinstance(raw, (list, dict)):
        raise FormatError(f"unsupported value type: {type(raw).__name__}")
    decoder = _DECODERS.get(field_type or "")
    if decoder is None:
        if field_type:
            _LOGGER.warning("Unknown field type %r; decoding value heuristically", field_type)
        return _sniff(raw)
    return decoder(raw)


# ---------------------------------------------------------------------------
# Timestamps and dates
# ---------------------------------------------------------------------------


def _parse_iso(text: str) -> datetime | None:
    match = _ISO_TIMESTAMP.fullmatch(text)
    if match is None:
        return None
    frac = (match.group("frac") or "")[:6].ljust(6, "0")
    zone = match.group("zone")
    parsed = datetime.strptime(f"{match.group('base')}.{frac}", "%Y-%m-%dT%H:%M:%S.%f")
    if zone is None or zone == "Z":
        return parsed.replace(tzinfo=timezone.utc)
    return datetime.fromisoformat(f"{parsed.isoformat()}{zone}")


def parse_timestamp(raw: Any) -> datetime:
    """Parse a stored timestamp, accepting every historical on-disk format.

    Human-readable forms come first, then RFC 3339 / ISO 8601 variants, and
    finally a bare Unix epoch. Forms without a zone are read as UTC.
    """
    if isinstance(raw, datetime):
        return raw if raw.tzinfo is not None else raw.replace(tzinfo=timezone.utc)
    if isinstance(raw, int) and not isinstance(raw, bool):
        return datetime.fromtimestamp(raw, tz=timezone.utc)
    if not isinstance(raw, str):
        raise FormatError(f"time value must be string, got {type(raw).__name__}")

    text = raw.strip()
    for fmt in _HUMAN_TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    try:
        parsed = _parse_iso(text)
    except ValueError:
        parsed = None
    if parsed is not None:
        return parsed

    if _UNIX_TIMESTAMP.fullmatch(text):
        try:
            return datetime.fromtimestamp(int(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            pass

    raise FormatError(f"unable to parse time value: {raw}")


def format_timestamp(value: datetime) -> QuotedString:
    return QuotedString(value.strftime(TIMESTAMP_FORMAT))


def parse_date(value: str) -> date:
    """Strict ``YYYY-MM-DD``."""
    try:
        if not _ISO_DATE.fullmatch(value):
            raise ValueError(value)
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as exc:
        raise FormatError(f"invalid date format, expected YYYY-MM-DD: {value}") from exc


def is_valid_date(value: str) -> bool:
    try:
        parse_date(value)
    except FormatError:
        return False
    return True


_RFC3339 = re.compile(
    r"\d{4}-\d{2}-\d{2}[Tt]\d{2}:\d{2}:\d{2}(?:\.\d{1,9})?(?:[Zz]|[+-]\d{2}:\d{2})"
)


def parse_rfc3339(text: str) -> datetime:
    """Strict RFC 3339: a zone designator is mandatory."""
    if not isinstance(text, str) or not _RFC3339.fullmatch(text):
        raise FormatError(f"expected RFC3339 timestamp, got {text!r}")
    try:
        parsed = _parse_iso(text.replace("t", "T").replace("z", "Z"))
    except ValueError:
        parsed = None
    if parsed is None:
        raise FormatError(f"expected RFC3339 timestamp, got {text!r}")
    return parsed
