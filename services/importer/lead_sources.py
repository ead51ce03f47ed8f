"""
Lead-Source Validator

Every hear_us_from value in a batch must already exist as an active
reference record in the import branch before anything is written.
For missing values this module produces the INSERT an operator can run
by hand; it never creates reference data itself.
"""

import logging
import re
from typing import Iterable, List

from models import HearUsFrom

from .types import ExtractedRecord, LeadSourceMatch, LeadSourceReport

logger = logging.getLogger(__name__)

# Defaults used for lead sources created from the remediation statement.
LEAD_SOURCE_TYPE = 2
LEAD_SOURCE_GROUP = 38
LEAD_SOURCE_PRODUCT = 1
LEAD_SOURCE_STATUS = 1
LEAD_SOURCE_ID_PREFIX = 'HDHK_'

_STATEMENT_TEMPLATE = (
    "INSERT INTO `hear_us_from` (`id`, `type`, `lead_group`, `hear_us_from`, `product`, "
    "`deleted`, `version`, `created_by`, `updated_by`, `created_on`, `updated_on`, "
    "`branch`, `status`, `lead_source_id`) VALUES (uuid(), {type}, {lead_group}, {value}, "
    "{product}, 0, 0, {user}, {user}, now(), now(), {branch}, {status}, {lead_source_id});"
)


def sql_literal(value) -> str:
    """Quote a value as a MySQL string literal."""
    if value is None:
        return 'NULL'
    text = str(value).replace('\\', '\\\\').replace("'", "''")
    return f"'{text}'"


def build_creation_statement(value: str, branch, system_user_id) -> str:
    """
    Return the INSERT that would create the missing lead source.

    Advisory output only. Nothing in the import pipeline executes it.
    """
    lead_source_id = LEAD_SOURCE_ID_PREFIX + re.sub(r'[^a-zA-Z0-9]', '_', value)
    branch_literal = str(branch) if isinstance(branch, int) else sql_literal(branch)
    return _STATEMENT_TEMPLATE.format(
        type=LEAD_SOURCE_TYPE,
        lead_group=LEAD_SOURCE_GROUP,
        value=sql_literal(value),
        product=LEAD_SOURCE_PRODUCT,
        user=sql_literal(system_user_id),
        branch=branch_literal,
        status=LEAD_SOURCE_STATUS,
        lead_source_id=sql_literal(lead_source_id),
    )


def distinct_lead_sources(records: Iterable[ExtractedRecord]) -> List[str]:
    """Non-blank hear_us_from values, trimmed, case-sensitive, in first-seen order."""
    values = []
    seen = set()
    for record in records:
        value = (record.hear_us_from or '').strip()
        if value and value not in seen:
            seen.add(value)
            values.append(value)
    return values


def validate_lead_sources(session, records: Iterable[ExtractedRecord], branch,
                          system_user_id=None) -> LeadSourceReport:
    """
    Check every distinct lead source of the batch against the branch's reference data.

    Args:
        session: SQLAlchemy session bound to the central database
        records: Extracted records of the batch
        branch: Branch the import writes to
        system_user_id: Owner written into suggested statements

    Returns:
        LeadSourceReport; can_proceed is False when any value is missing
    """
    report = LeadSourceReport()

    for value in distinct_lead_sources(records):
        lead_source = HearUsFrom.find_active(session, value, branch)
        if lead_source is not None:
            report.existing.append(LeadSourceMatch(value, lead_source.id, lead_source.lead_group))
            continue

        logger.warning(f"Lead source {value!r} not found in branch {branch}")
        report.missing.append(value)
        report.suggested_statements.append(build_creation_statement(value, branch, system_user_id))

    logger.info(
        f"Lead source validation: {len(report.existing)} found, {len(report.missing)} missing"
    )
    return report
