# flowstore/normalizers/decoders.py
import re
from datetime import datetime, timedelta, timezone
from ipaddress import IPv4Address
from typing import Optional

from .errors import MalformedHexAddress, MalformedTimestamp

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
NS_PER_SECOND = 1_000_000_000

# Range of the signed 64-bit integer columns the records are stored in
INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1

_RFC3339 = re.compile(
    r"([0-9]{4})-([0-9]{2})-([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})"
    r"(?:\.([0-9]{1,9}))?"
    r"(Z|[+-][0-9]{2}:[0-9]{2})"
)
_HEX_WORD = re.compile(r"[0-9A-Fa-f]{8}")


# --- Timestamps ---

def parse_timestamp(s: str) -> int:
    """
    Parse an RFC 3339 / ISO-8601 extended timestamp with up to nanosecond
    precision and an explicit offset ("Z" or "+HH:MM").
    Returns nanoseconds since the Unix epoch, UTC.
    """
    m = _RFC3339.fullmatch(s) if isinstance(s, str) else None
    if m is None:
        raise MalformedTimestamp(f"not an ISO-8601 timestamp with offset: {s!r}")
    year, month, day, hour, minute, second, frac, offset = m.groups()

    if offset == "Z":
        tz = timezone.utc
    else:
        oh, om = int(offset[1:3]), int(offset[4:6])
        if oh > 23 or om > 59:
            raise MalformedTimestamp(f"bad UTC offset {offset!r} in {s!r}")
        delta = timedelta(hours=oh, minutes=om)
        tz = timezone(-delta if offset[0] == "-" else delta)

    try:
        dt = datetime(int(year), int(month), int(day),
                      int(hour), int(minute), int(second), tzinfo=tz)
    except ValueError as e:
        raise MalformedTimestamp(f"out-of-range component in {s!r}: {e}") from e

    # timedelta arithmetic is exact at whole seconds
    whole = (dt - EPOCH) // timedelta(seconds=1)
    nanos = int((frac or "").ljust(9, "0"))
    ns = whole * NS_PER_SECOND + nanos
    if not INT64_MIN <= ns <= INT64_MAX:
        raise MalformedTimestamp(f"{s!r} is outside the 64-bit nanosecond range (1677..2262)")
    return ns


def format_timestamp(ns: int) -> str:
    """Render epoch nanoseconds as "YYYY-MM-DDTHH:MM:SS.nnnnnnnnnZ"."""
    whole, nanos = divmod(ns, NS_PER_SECOND)
    dt = EPOCH + timedelta(seconds=whole)
    return f"{dt:%Y-%m-%dT%H:%M:%S}.{nanos:09d}Z"


def timestamp_to_datetime(ns: int) -> datetime:
    """Aware UTC datetime; sub-microsecond digits are truncated."""
    return EPOCH + timedelta(microseconds=ns // 1000)


# --- Post-NAT addresses ---

def decode_hex_ipv4(s: str) -> IPv4Address:
    """Decode a packed big-endian IPv4 word, e.g. "6799ef23" -> 103.153.239.35."""
    if not isinstance(s, str) or not _HEX_WORD.fullmatch(s):
        raise MalformedHexAddress(f"expected 8 hex digits, got {s!r}")
    return IPv4Address(int(s, 16))


def decode_optional_hex_ipv4(s: Optional[str]) -> Optional[IPv4Address]:
    """None means no NAT was applied and stays None."""
    if s is None:
        return None
    return decode_hex_ipv4(s)
