"""Primitive text scanners.

Pure functions turning one text token into one builtin value. The default
scanner of the coercion engine and the generated adapters both call these,
so both accept exactly the same literals.

Blank text scans to the zero value of every kind except text and bytes.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from typing import TYPE_CHECKING

import orjson

from callcase.foundation.errors import LengthMismatch
from callcase.foundation.types import IntBits

if TYPE_CHECKING:
    from callcase.foundation.types import SequenceType

NIL_LITERALS = frozenset({"nil", "null"})
TRUE_LITERALS = frozenset({"1", "t", "T", "TRUE", "true", "True"})
FALSE_LITERALS = frozenset({"0", "f", "F", "FALSE", "false", "False"})

# Tried in order; the first format that parses wins.
TIME_FORMATS: tuple[str, ...] = (
    "%Y-%m-%dT%H:%M:%S.%f%z",  # RFC 3339 with fraction
    "%Y-%m-%dT%H:%M:%S%z",  # RFC 3339
    "%Y-%m-%d %H:%M:%S.%f%z",  # str(datetime), aware
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S.%f",  # str(datetime), naive
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M",  # browser datetime-local input
    "%Y-%m-%d",
)

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_DURATION_PART = re.compile(r"([0-9]+(?:\.[0-9]*)?|\.[0-9]+)(ns|us|µs|μs|ms|s|m|h)")
_TIMEDELTA_STR = re.compile(
    r"(?:(?P<days>-?[0-9]+) days?, )?(?P<hours>[0-9]+):(?P<minutes>[0-9]{2}):(?P<seconds>[0-9]{2})"
    r"(?:\.(?P<fraction>[0-9]{1,6}))?"
)
_UNIT_MICROSECONDS: dict[str, Decimal] = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1_000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}


def is_blank(text: str) -> bool:
    return not text.strip()


def is_nil(text: str) -> bool:
    """Blank text or one of the nil literals (case-sensitive)."""
    stripped = text.strip()
    return not stripped or stripped in NIL_LITERALS


# ─────────────────────────────────────────────────────────────────────────────
# Scalars
# ─────────────────────────────────────────────────────────────────────────────


def scan_bool(text: str) -> bool:
    s = text.strip()
    if not s or s in FALSE_LITERALS:
        return False
    if s in TRUE_LITERALS:
        return True
    raise ValueError(f"invalid syntax for bool: {text!r}")


def scan_int(text: str, bits: int | None = None, unsigned: bool = False) -> int:
    """Decimal integer with optional sign, range-checked when ``bits`` is given."""
    s = text.strip()
    if not s:
        return 0
    if not _INT_PATTERN.fullmatch(s):
        raise ValueError(f"invalid syntax for int: {text!r}")
    value = int(s)
    if bits:
        lo, hi = IntBits(bits, unsigned).bounds
        if not lo <= value <= hi:
            raise OverflowError(f"value {s} out of range for {'u' if unsigned else ''}int{bits}")
    return value


def scan_float(text: str) -> float:
    s = text.strip()
    return float(s) if s else 0.0


def scan_instant(text: str) -> datetime:
    """Parse with the first matching entry of ``TIME_FORMATS``."""
    s = text.strip()
    if not s:
        return datetime.min
    for fmt in TIME_FORMATS:
        try:
            return datetime.strptime(s, fmt)
        except ValueError:
            continue
    raise ValueError(f"can't parse {text!r} as time, expected RFC 3339 or 'YYYY-MM-DD[ HH:MM[:SS]]'")


def scan_date(text: str) -> date:
    s = text.strip()
    return scan_instant(s).date() if s else date.min


def scan_duration(text: str) -> timedelta:
    """Unit-suffixed duration like ``1h30m`` or ``-1.5s``, or ``str(timedelta)`` output."""
    s = text.strip()
    if not s:
        return timedelta(0)
    if m := _TIMEDELTA_STR.fullmatch(s):
        return timedelta(
            days=int(m["days"] or 0),
            hours=int(m["hours"]),
            minutes=int(m["minutes"]),
            seconds=int(m["seconds"]),
            microseconds=int((m["fraction"] or "0").ljust(6, "0")),
        )
    sign, body = (-1, s[1:]) if s[0] == "-" else (1, s[1:] if s[0] == "+" else s)
    if body == "0":
        return timedelta(0)
    total, pos = Decimal(0), 0
    while pos < len(body) and (m := _DURATION_PART.match(body, pos)):
        try:
            total += Decimal(m[1]) * _UNIT_MICROSECONDS[m[2]]
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {text!r}") from exc
        pos = m.end()
    if not body or pos != len(body):
        raise ValueError(f"invalid duration {text!r}")
    return timedelta(microseconds=sign * int(total.to_integral_value(ROUND_HALF_EVEN)))


def format_duration(value: timedelta) -> str:
    """Render a timedelta in the unit-suffixed form ``scan_duration`` reads."""
    micros = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    if micros == 0:
        return "0s"
    sign, micros = ("-", -micros) if micros < 0 else ("", micros)
    hours, micros = divmod(micros, 3_600_000_000)
    minutes, micros = divmod(micros, 60_000_000)
    seconds = format(Decimal(micros).scaleb(-6), "f")
    if "." in seconds:
        seconds = seconds.rstrip("0").rstrip(".")
    parts = (f"{hours}h" if hours else "") + (f"{minutes}m" if hours or minutes else "")
    return f"{sign}{parts}{seconds}s"


def scan_bytes(text: str) -> bytes:
    """UTF-8 encoding; undecodable input smuggled in as surrogates round-trips."""
    return text.encode("utf-8", "surrogateescape")


# ─────────────────────────────────────────────────────────────────────────────
# Sequence Literals
# ─────────────────────────────────────────────────────────────────────────────


def split_sequence(text: str) -> list[str]:
    """Split a bracketed literal into raw, stripped element texts.

    Commas separate elements only at bracket depth 1 and brace depth 0 and
    outside double quotes, so nested sequences, JSON objects and quoted
    strings stay intact:

        >>> split_sequence('[[1,2],[3,4]]')
        ['[1,2]', '[3,4]']
        >>> split_sequence('[{"a": 1, "b": 2}, "x,y"]')
        ['{"a": 1, "b": 2}', '"x,y"']

    Raises:
        ValueError: If the text is not one balanced bracketed literal
    """
    s = text.strip()
    if len(s) < 2 or s[0] != "[" or s[-1] != "]":
        raise ValueError(f"sequence literal must be enclosed in brackets: {text!r}")
    fields: list[str] = []
    brackets = braces = 0
    quoted = escaped = False
    start = 1
    for i, ch in enumerate(s):
        if quoted:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                quoted = False
            continue
        match ch:
            case '"':
                quoted = True
            case "{":
                braces += 1
            case "}":
                braces -= 1
                if braces < 0:
                    raise ValueError(f"sequence literal has too many '}}': {text!r}")
            case "[":
                brackets += 1
            case "]":
                brackets -= 1
                if brackets < 0:
                    raise ValueError(f"sequence literal has too many ']': {text!r}")
                if brackets == 0:
                    if i != len(s) - 1:
                        raise ValueError(f"unexpected content after closing bracket: {text!r}")
                    fields.append(s[start:i].strip())
            case "," if brackets == 1 and braces == 0:
                fields.append(s[start:i].strip())
                start = i + 1
    if quoted or brackets or braces:
        raise ValueError(f"unbalanced sequence literal: {text!r}")
    return [] if fields == [""] else fields


def unquote(field: str) -> str:
    """Decode a JSON string literal element; other elements pass through."""
    if len(field) >= 2 and field[0] == '"' and field[-1] == '"':
        return orjson.loads(field)
    return field


def sequence_items(text: str) -> list[str]:
    """Element texts of a variable-length sequence literal; blank text is empty."""
    if is_blank(text):
        return []
    return [unquote(f) for f in split_sequence(text)]


def fixed_sequence_items(text: str, target: SequenceType) -> list[str]:
    """Element texts of a fixed-length sequence literal.

    Blank text yields ``target.length`` blank elements, which scan to zeros.

    Raises:
        LengthMismatch: If the element count differs from ``target.length``
    """
    n = target.length or 0
    if is_blank(text):
        return [""] * n
    items = sequence_items(text)
    if len(items) != n:
        raise LengthMismatch(text, target, n, len(items))
    return items
