"""
Import Orchestrator

Runs one import request through its stages, strictly in order:

    VALIDATING_LEAD_SOURCES -> ABORTED          (a lead source is missing)
                            -> DETECTING_DUPLICATES
    DETECTING_DUPLICATES    -> NO_OP_COMPLETED  (every row is a duplicate)
                            -> IMPORTING
    IMPORTING               -> COMPLETED
                            -> ABORTED          (lead source vanished mid-batch)
    any stage               -> FAILED           (database unreachable)

No stage is retried. The report tells the operator what to fix before
re-submitting the same selection.
"""

import logging
from datetime import date, datetime
from typing import Iterable, Optional

import pytz
from sqlalchemy.exc import InterfaceError, OperationalError

from .duplicates import check_duplicates
from .exceptions import LeadSourceMissingError, TransportError
from .extractor import extract_records
from .lead_sources import validate_lead_sources
from .row_importer import RowImporter
from .types import ColumnMapping, ImportReport, ImportStage, LeadSourceReport, RawRow

logger = logging.getLogger(__name__)


def central_today(timezone_name: str = 'UTC') -> date:
    """Today's date in the central database's timezone."""
    return datetime.now(pytz.timezone(timezone_name)).date()


class ImportOrchestrator:
    """Sequences lead-source validation, duplicate detection and the batch insert."""

    def __init__(self, session, branch, system_user_id: str, environment: str = 'PROD',
                 today: Optional[date] = None):
        self.session = session
        self.branch = branch
        self.system_user_id = system_user_id
        self.environment = environment
        self.today = today or date.today()
        self.stage = None

    def run(self, raw_rows: Iterable[RawRow], mapping: ColumnMapping) -> ImportReport:
        raw_rows = list(raw_rows)
        total = len(raw_rows)
        records = extract_records(raw_rows, mapping, self.environment, self.today)
        logger.info(f"Import started: {total} rows, branch {self.branch}, env {self.environment}")

        try:
            self._enter(ImportStage.VALIDATING_LEAD_SOURCES)
            lead_sources = validate_lead_sources(self.session, records, self.branch, self.system_user_id)
            if not lead_sources.can_proceed:
                self.session.rollback()
                self._enter(ImportStage.ABORTED)
                return ImportReport(
                    stage=ImportStage.ABORTED,
                    total_rows=total,
                    lead_sources=lead_sources,
                    message=(
                        f"Missing lead sources: {', '.join(lead_sources.missing)}. "
                        "Run the suggested SQL, then re-submit the import."
                    ),
                )

            self._enter(ImportStage.DETECTING_DUPLICATES)
            duplicates = check_duplicates(self.session, records)
            if not duplicates.new_records:
                self.session.rollback()
                self._enter(ImportStage.NO_OP_COMPLETED)
                return ImportReport(
                    stage=ImportStage.NO_OP_COMPLETED,
                    total_rows=total,
                    duplicates=duplicates.duplicates,
                    lead_sources=lead_sources,
                    message=f"All {total} rows are duplicates; nothing to import",
                )

            self._enter(ImportStage.IMPORTING)
            importer = RowImporter(self.session, self.branch, self.system_user_id, self.today)
            results = importer.import_batch(duplicates.new_records)

        except LeadSourceMissingError as e:
            self._enter(ImportStage.ABORTED)
            return ImportReport(
                stage=ImportStage.ABORTED,
                total_rows=total,
                lead_sources=LeadSourceReport(missing=e.values, suggested_statements=e.statements),
                message=str(e),
                error='Lead source not found',
            )
        except TransportError as e:
            return self._failed(total, e)
        except (OperationalError, InterfaceError) as e:
            self.session.rollback()
            return self._failed(total, TransportError(f"Database unavailable: {e}"))

        self._enter(ImportStage.COMPLETED)
        return ImportReport(
            stage=ImportStage.COMPLETED,
            total_rows=total,
            results=results,
            duplicates=duplicates.duplicates,
            lead_sources=lead_sources,
            message=f"Processed {total} rows with detailed results",
        )

    def _enter(self, stage: ImportStage):
        logger.info(f"Import stage: {self.stage.value if self.stage else 'start'} -> {stage.value}")
        self.stage = stage

    def _failed(self, total, error: TransportError):
        logger.error(f"Import failed during {self.stage.value if self.stage else 'start'}: {error}")
        self._enter(ImportStage.FAILED)
        return ImportReport(
            stage=ImportStage.FAILED,
            total_rows=total,
            message=str(error),
            error='Data insertion failed',
            suggestion=error.suggestion,
        )


def run_import(session, raw_rows, column_mapping: ColumnMapping, branch, system_user_id: str,
               environment: str = 'PROD', today: Optional[date] = None) -> ImportReport:
    """
    Run one import request end to end.

    Args:
        session: SQLAlchemy session bound to the central database
        raw_rows: Selected sheet rows
        column_mapping: Column index per field
        branch: Branch scoping phones, hits and lead sources
        system_user_id: Owner recorded on every created row
        environment: 'DEV' obfuscates contact details
        today: Reference date (defaults to the local date)

    Returns:
        ImportReport
    """
    orchestrator = ImportOrchestrator(session, branch, system_user_id, environment, today)
    return orchestrator.run(raw_rows, column_mapping)
