# src/hubscraper/parsers/data_cleaner.py
import re
from datetime import date
from typing import Optional, Any
from dateutil import parser as date_parser
import logging

from ..constants import PRICE_UNIT_MULTIPLIER, PRICE_DECIMALS, SLUG_MAX_LENGTH

logger = logging.getLogger(__name__)

_ISO_DATE_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}")
_RELATIVE_DATE = re.compile(r"\d+\s*[mhd]\s+ago", re.IGNORECASE)
_NON_ALNUM_RUN = re.compile(r"[^a-z0-9]+")


def clean_text(text: Optional[str]) -> Optional[str]:
    """Removes leading/trailing whitespace and multiple spaces. Returns None if input is None or empty after strip."""
    if text is None:
        return None
    text = str(text).strip()
    if not text:
        return None
    text = re.sub(r'\s+', ' ', text)
    return text if text else None


def parse_int(value: Optional[Any]) -> Optional[int]:
    """Converts a value to an integer, removing commas and handling None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)

    text_value = clean_text(str(value))
    if text_value is None:
        return None

    text_value = text_value.replace(',', '').split('.')[0]
    if not text_value:
        return None
    try:
        return int(text_value)
    except ValueError:
        logger.debug(f"Could not parse '{value}' as int.")
        return None


def parse_float(value: Optional[Any]) -> Optional[float]:
    """
    Converts a value to a float, removing commas and currency symbols, handling None.
    A trailing '%' is dropped and the number kept as-is (leaderboards print "85.2%" for 85.2).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (float, int)):
        return float(value)

    text_value = clean_text(str(value))
    if text_value is None:
        return None

    text_value = text_value.replace(',', '').replace('$', '').strip()
    if text_value.endswith('%'):
        text_value = text_value[:-1].strip()

    if not text_value or text_value.lower() == 'nan' or text_value == '-':
        return None

    try:
        return float(text_value)
    except ValueError:
        logger.debug(f"Could not parse '{value}' as float.")
        return None


def per_token_to_per_million(value: Optional[Any]) -> Optional[float]:
    """
    Converts a per-token USD price (usually a string such as "0.0000025") to USD per 1M tokens,
    rounded to 3 decimals. Returns None when the value does not parse.
    """
    per_token = parse_float(value)
    if per_token is None:
        return None
    return round(per_token * PRICE_UNIT_MULTIPLIER, PRICE_DECIMALS)


def parse_date_flexible(date_string: Optional[str], default_to_none: bool = True) -> Optional[date]:
    """
    Parses a date string using dateutil.parser for flexibility.
    Returns a datetime.date object or None.
    """
    if date_string is None:
        return None
    if isinstance(date_string, date):
        return date_string

    cleaned_date_string = clean_text(date_string)
    if not cleaned_date_string:
        return None

    try:
        # "2025-02-14", "Feb 14, 2025", "14 February 2025"
        dt_obj = date_parser.parse(cleaned_date_string)
        return dt_obj.date()
    except (ValueError, TypeError, OverflowError) as e:
        logger.debug(f"Could not parse date string '{date_string}': {e}")
        if default_to_none:
            return None
        raise


def to_iso_date(value: Optional[Any]) -> Optional[str]:
    parsed = parse_date_flexible(value)
    return parsed.isoformat() if parsed else None


def normalize_digest_date(marker: Optional[str], file_date: str) -> str:
    """
    Resolves the optional ``_date_`` marker of a digest item.
    Relative markers ("8h ago") and anything unrecognised fall back to the digest's own date.
    """
    marker = clean_text(marker)
    if not marker:
        return file_date
    if _RELATIVE_DATE.search(marker):
        return file_date
    iso_match = _ISO_DATE_PREFIX.match(marker)
    if iso_match:
        return iso_match.group(0)
    return file_date


def slugify(text: str, max_length: int = SLUG_MAX_LENGTH) -> str:
    slug = _NON_ALNUM_RUN.sub('-', text.lower()).strip('-')
    return slug[:max_length]
