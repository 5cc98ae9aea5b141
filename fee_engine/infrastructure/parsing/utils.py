"""Shared parsing utilities for CSV ingestion."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path
import hashlib
import re

_CURRENCY_CODE = re.compile(r"[A-Z]{3}")
_DECIMAL = re.compile(r"\d+(\.\d+)?")
_MONEY = re.compile(r"\d+(\.\d{1,2})?")

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def ensure_bytes(source: BytesIO | Path | bytes) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, Path):
        return source.read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def clean(value: object) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    if s.upper() == "NAN":
        return ""
    return s


def is_currency_code(code: str) -> bool:
    return _CURRENCY_CODE.fullmatch(code) is not None


def _positive(text: str) -> bool:
    try:
        return Decimal(text) > 0
    except InvalidOperation:
        return False


def is_positive_decimal(value: str) -> bool:
    return _DECIMAL.fullmatch(value) is not None and _positive(value)


def is_money(value: str) -> bool:
    """Unsigned amount with at most two fractional digits."""
    return _MONEY.fullmatch(value) is not None


def is_positive_money(value: str) -> bool:
    return is_money(value) and _positive(value)


def parse_date(value: str) -> date | None:
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def parse_datetime(value: str) -> datetime | None:
    try:
        return datetime.strptime(value, DATETIME_FORMAT)
    except ValueError:
        return None
