"""
Field Extractor

Pulls typed values out of a sheet row using the operator's column
mapping. Cleaning rules:

- phone: digits only
- gender: male/m/男 -> 1, female/f/女 -> 2, anything else -> 1
- dates: ISO timestamp, M/D/YY or M/D/YYYY; unparseable -> None
- age: mapped column when numeric, otherwise completed years since birth
- note: mapped post-it columns joined by newlines, blanks dropped

In the DEV environment email and phone are rewritten so imports never
collide with real contacts. The rewrite happens here, before duplicate
detection, so every later comparison sees the same values.
"""

import logging
import re
from datetime import date, datetime
from typing import Optional, Tuple

from .types import ColumnMapping, ExtractedRecord, RawRow

logger = logging.getLogger(__name__)

MALE = 1
FEMALE = 2

_MALE_VALUES = {'male', 'm', '男'}
_FEMALE_VALUES = {'female', 'f', '女'}

_SLASH_DATE = re.compile(r'^\s*(\d{1,2})/(\d{1,2})/(\d{4}|\d{2})(?!\d)')

DEV_ENVIRONMENT = 'DEV'


def clean_phone(value: Optional[str]) -> str:
    """
    Strip every non-digit character.

    Examples:
        "+1 (555) 123-4567" -> "15551234567"
    """
    if not value:
        return ''
    return re.sub(r'\D', '', value)


def map_gender(raw_gender: Optional[str]) -> int:
    """Map a free-text gender cell to the central numeric code."""
    if not raw_gender or not raw_gender.strip():
        return MALE

    normalized = raw_gender.strip().lower()
    if normalized in _MALE_VALUES:
        return MALE
    if normalized in _FEMALE_VALUES:
        return FEMALE

    logger.warning(f"Unknown gender value: {raw_gender!r}, defaulting to male ({MALE})")
    return MALE


def parse_date(value: Optional[str]) -> Optional[date]:
    """
    Parse the date formats that show up in lead sheets.

    Tried in order, first match wins:
        "2025-01-04T00:34:25+08:00" -> 2025-01-04 (date part as written)
        "5/31/25"                   -> 2025-05-31 (YY < 50 is 20YY, else 19YY)
        "11/18/1976"                -> 1976-11-18

    Returns:
        A date, or None when the string is empty or unparseable
    """
    if not value or not value.strip():
        return None
    text = value.strip()

    if 'T' in text or '+' in text:
        try:
            return datetime.fromisoformat(text.replace('Z', '+00:00')).date()
        except ValueError:
            logger.warning(f"Could not parse timestamp: {value!r}")
            return None

    match = _SLASH_DATE.match(text)
    if match:
        month, day, year = (int(part) for part in match.groups())
        if len(match.group(3)) == 2:
            year += 2000 if year < 50 else 1900
        try:
            return date(year, month, day)
        except ValueError:
            logger.warning(f"Date out of range: {value!r}")
            return None

    logger.warning(f"Could not parse date: {value!r}")
    return None


def calculate_age(birth_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Completed years between birth_date and today."""
    if birth_date is None:
        return None
    today = today or date.today()

    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def parse_age(value: Optional[str]) -> Optional[int]:
    """Whole years from a numeric cell such as "30" or "30.0"; None otherwise."""
    if not value or not value.strip():
        return None
    try:
        return int(float(value.strip()))
    except (ValueError, OverflowError):
        return None


def build_note_text(raw_row: RawRow, columns) -> str:
    parts = [raw_row.cell(index) for index in columns]
    return '\n'.join(part for part in parts if part.strip())


def obfuscate_contact(email: Optional[str], phone: Optional[str],
                      environment: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Rewrite contact details for the DEV environment.

    email: jane@example.com -> a1b2c3_jane_dev@example.com
    phone: 85291234567     -> 85291231234
    Other environments get the values back unchanged.
    """
    if (environment or '').upper() != DEV_ENVIRONMENT:
        return email, phone

    if email and '@' in email:
        local_part, _, domain = email.partition('@')
        email = f"a1b2c3_{local_part}_dev@{domain}"
    if phone and len(phone) >= 4:
        phone = f"{phone[:-4]}1234"
    return email, phone


def extract_record(raw_row: RawRow, mapping: ColumnMapping, environment: str = 'PROD',
                   today: Optional[date] = None) -> ExtractedRecord:
    """
    Build the typed record for one row.

    Args:
        raw_row: Row as fetched from the sheet
        mapping: Column index per field
        environment: 'DEV' enables contact obfuscation
        today: Reference date for age derivation (defaults to date.today())

    Returns:
        ExtractedRecord
    """
    source_email = raw_row.cell(mapping.email)
    source_phone = raw_row.cell(mapping.phone)

    email = source_email.strip() or None
    phone = clean_phone(source_phone) or None
    if phone and phone != source_phone:
        logger.debug(f"Row {raw_row.row_index}: phone cleaned {source_phone!r} -> {phone!r}")
    email, phone = obfuscate_contact(email, phone, environment)

    birth_date = parse_date(raw_row.cell(mapping.birth_date))
    age = parse_age(raw_row.cell(mapping.age))
    if age is None and birth_date is not None:
        age = calculate_age(birth_date, today)

    hear_us_from = raw_row.cell(mapping.hear_us_from).strip() or None

    return ExtractedRecord(
        row_index=raw_row.row_index,
        first_name=raw_row.cell(mapping.first_name).strip(),
        last_name=raw_row.cell(mapping.last_name).strip(),
        email=email,
        phone=phone,
        gender_code=map_gender(raw_row.cell(mapping.gender)),
        birth_date=birth_date,
        age=age,
        occupation=raw_row.cell(mapping.occupation).strip(),
        registration_date=parse_date(raw_row.cell(mapping.registration_date)),
        hear_us_from=hear_us_from,
        note_text=build_note_text(raw_row, mapping.post_it_columns),
        source_email=source_email,
        source_phone=source_phone,
    )


def extract_records(raw_rows, mapping: ColumnMapping, environment: str = 'PROD',
                    today: Optional[date] = None):
    """Extract every row, preserving order."""
    return [extract_record(row, mapping, environment, today) for row in raw_rows]
