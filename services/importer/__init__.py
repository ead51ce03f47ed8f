"""
Sheet Import Pipeline

Turns selected Google Sheets rows into central profiles.

Usage:
    from services.importer import ColumnMapping, RawRow, run_import

    mapping = ColumnMapping.from_payload(request_json['columnMapping'])
    rows = [RawRow.from_payload(row) for row in request_json['selectedRows']]
    report = run_import(db.session, rows, mapping, branch, system_user_id)
    return jsonify(report.to_dict())
"""

from .types import (
    DuplicateReason,
    ImportStage,
    RawRow,
    ColumnMapping,
    ExtractedRecord,
    DuplicateVerdict,
    DuplicateReport,
    LeadSourceMatch,
    LeadSourceReport,
    RowOutcome,
    ImportBatchResult,
    ImportReport,
)

from .exceptions import (
    ImportPipelineError,
    ConfigurationError,
    InvalidRequestError,
    LeadSourceMissingError,
    TransportError,
    RowImportError,
)

from .extractor import extract_record, extract_records
from .duplicates import check_duplicates, detect_duplicates, find_existing_contacts
from .lead_sources import build_creation_statement, validate_lead_sources
from .row_importer import IMPORTED_TABLES, RowImporter
from .orchestrator import ImportOrchestrator, central_today, run_import

__all__ = [
    # Types
    'DuplicateReason',
    'ImportStage',
    'RawRow',
    'ColumnMapping',
    'ExtractedRecord',
    'DuplicateVerdict',
    'DuplicateReport',
    'LeadSourceMatch',
    'LeadSourceReport',
    'RowOutcome',
    'ImportBatchResult',
    'ImportReport',

    # Exceptions
    'ImportPipelineError',
    'ConfigurationError',
    'InvalidRequestError',
    'LeadSourceMissingError',
    'TransportError',
    'RowImportError',

    # Stages
    'extract_record',
    'extract_records',
    'check_duplicates',
    'detect_duplicates',
    'find_existing_contacts',
    'build_creation_statement',
    'validate_lead_sources',
    'RowImporter',
    'IMPORTED_TABLES',
    'ImportOrchestrator',
    'central_today',
    'run_import',
]
