"""
Value Codec
===========

Canonical text rendering of MySQL column values.

pymysql hands back plain Python objects (int, float, Decimal, date,
datetime, timedelta, bytes, str). Every one of them is mapped to a
deterministic string so downstream consumers never see driver types.
"""

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

import numpy as np


def _format_date(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _format_datetime(value: datetime) -> str:
    day = _format_date(value)
    if value.microsecond:
        return (
            f"'{day} {value.hour:02d}:{value.minute:02d}:{value.second:02d}"
            f".{value.microsecond:06d}'"
        )
    if value.hour == 0 and value.minute == 0 and value.second == 0:
        return day
    return f"{day} {value.hour:02d}:{value.minute:02d}:{value.second:02d}"


def _format_duration(negative: bool, hours: int, minutes: int, seconds: int,
                     microseconds: int) -> str:
    text = f"{hours:03d}:{minutes:02d}:{seconds:02d}"
    if microseconds:
        text += f".{microseconds:06d}"
    return f"-{text}" if negative else text


def _format_timedelta(value: timedelta) -> str:
    negative = value < timedelta(0)
    magnitude = -value if negative else value
    # timedelta normalizes to (days, seconds < 86400, microseconds)
    hours = magnitude.days * 24 + magnitude.seconds // 3600
    minutes = (magnitude.seconds % 3600) // 60
    seconds = magnitude.seconds % 60
    return _format_duration(negative, hours, minutes, seconds, magnitude.microseconds)


def _format_bytes(value: bytes) -> str:
    try:
        return value.decode("utf-8")
    except UnicodeDecodeError:
        return "0x" + value.hex().upper()


def to_sql_string(value: Any) -> str:
    """
    Convert a single column value to its canonical string form.

    Args:
        value: Value as returned by the MySQL driver

    Returns:
        Canonical text. Never raises.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return np.format_float_positional(value, trim="-")
    if isinstance(value, Decimal):
        return format(value, "f")
    # datetime is a subclass of date, check it first
    if isinstance(value, datetime):
        return _format_datetime(value)
    if isinstance(value, date):
        return _format_date(value)
    if isinstance(value, timedelta):
        return _format_timedelta(value)
    if isinstance(value, time):
        return _format_duration(False, value.hour, value.minute, value.second, value.microsecond)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return _format_bytes(bytes(value))
    if isinstance(value, str):
        return value
    return str(value)


def row_to_strings(row) -> list:
    """Convert every column of a result row, preserving column order."""
    return [to_sql_string(val) for val in row]
