"""
Duplicate Detector

Decides which extracted records already exist in the central database
(by email or phone) and which repeat an earlier record in the same
batch. Existing contacts are fetched with one IN (...) query per
contact type rather than one query per row.
"""

import logging
from typing import Dict, Iterable, List, Tuple

from models import ProfileEmail, ProfilePhone

from .types import DuplicateReason, DuplicateReport, DuplicateVerdict, ExtractedRecord

logger = logging.getLogger(__name__)


def find_existing_contacts(session, records: Iterable[ExtractedRecord]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Look up which of the batch's emails and phones are already stored.

    Args:
        session: SQLAlchemy session bound to the central database
        records: Extracted records of the batch

    Returns:
        Tuple of ({email: profile_id}, {phone: profile_id})
    """
    records = list(records)
    emails = sorted({record.email for record in records if record.email})
    phones = sorted({record.phone for record in records if record.phone})

    existing_emails = {}
    if emails:
        rows = (session.query(ProfileEmail.address, ProfileEmail.profile_id)
                .filter(ProfileEmail.address.in_(emails))
                .all())
        for address, profile_id in rows:
            existing_emails.setdefault(address, profile_id)

    existing_phones = {}
    if phones:
        rows = (session.query(ProfilePhone.number, ProfilePhone.profile_id)
                .filter(ProfilePhone.number.in_(phones))
                .all())
        for number, profile_id in rows:
            existing_phones.setdefault(number, profile_id)

    logger.info(
        f"Duplicate lookup: {len(emails)} emails ({len(existing_emails)} stored), "
        f"{len(phones)} phones ({len(existing_phones)} stored)"
    )
    return existing_emails, existing_phones


def detect_duplicates(records: Iterable[ExtractedRecord], existing_emails: Dict[str, str],
                      existing_phones: Dict[str, str]) -> DuplicateReport:
    """
    Partition records into new and duplicate.

    A stored email wins over a stored phone when both match. Within the
    batch the first importable occurrence of an email or phone wins and
    later rows sharing either value are flagged. Empty values never match.
    This function does no I/O, so repeated calls give identical verdicts.
    """
    report = DuplicateReport()
    seen_emails = set()
    seen_phones = set()

    for record in records:
        verdict = _judge(record, existing_emails, existing_phones, seen_emails, seen_phones)
        report.verdicts.append(verdict)

        if verdict.is_duplicate:
            report.duplicates.append(verdict)
            logger.info(f"Row {record.row_index}: duplicate ({verdict.reason.value})")
            continue

        report.new_records.append(record)
        if record.email:
            seen_emails.add(record.email)
        if record.phone:
            seen_phones.add(record.phone)

    return report


def _judge(record, existing_emails, existing_phones, seen_emails, seen_phones):
    if record.email and record.email in existing_emails:
        return DuplicateVerdict(record.row_index, True, DuplicateReason.EMAIL_EXISTS,
                                existing_emails[record.email])
    if record.phone and record.phone in existing_phones:
        return DuplicateVerdict(record.row_index, True, DuplicateReason.PHONE_EXISTS,
                                existing_phones[record.phone])
    if (record.email and record.email in seen_emails) or (record.phone and record.phone in seen_phones):
        return DuplicateVerdict(record.row_index, True, DuplicateReason.DUPLICATE_IN_BATCH)
    return DuplicateVerdict(record.row_index, False)


def check_duplicates(session, records: List[ExtractedRecord]) -> DuplicateReport:
    """Fetch stored contacts for the batch and run detect_duplicates against them."""
    existing_emails, existing_phones = find_existing_contacts(session, records)
    return detect_duplicates(records, existing_emails, existing_phones)
