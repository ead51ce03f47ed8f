"""
Row Importer

Writes one profile graph per record inside a single batch transaction:

    profile -> email -> phone -> hit/followup/product leads -> post-it -> satellites

Each row runs inside its own SAVEPOINT. A failing row is rolled back
to that savepoint and reported; earlier rows stay pending. A missing
lead source is different: it rolls back the entire batch and stops,
because every later row depends on the same reference data.

The batch commits when at least one row succeeded, otherwise it is
rolled back.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from models import (
    SATELLITE_MODELS,
    Followup,
    HearUsFrom,
    Hit,
    PostIt,
    Profile,
    ProfileEmail,
    ProfileInterestedInDating,
    ProfilePhone,
    ProfileProductLead,
    ProfileSpokenLanguage,
)

from .exceptions import LeadSourceMissingError, RowImportError, TransportError
from .lead_sources import build_creation_statement
from .types import ExtractedRecord, ImportBatchResult, RowOutcome

logger = logging.getLogger(__name__)

# Followup defaults for freshly imported leads.
FOLLOWUP_TIME = time(9, 0)
FOLLOWUP_METHOD = 1
FOLLOWUP_RESULT = 2
FOLLOWUP_TYPE = 1
FOLLOWUP_PRODUCT = 1

# Every hit gets one lead for each product; only the first references the hit.
PRODUCT_WITH_HIT = 1
PRODUCT_WITHOUT_HIT = 2
PRODUCT_LEAD_STATUS = 1

DEFAULT_LANGUAGE = 1

DUPLICATE_ENTRY_REASON = 'Duplicate entry - already exists in database'
PROCESSING_ERROR_REASON = 'Processing error'
SUCCESS_MESSAGE = 'Successfully inserted all records'

IMPORTED_TABLES = [
    'profile', 'profile_email', 'profile_phone', 'hit', 'followup',
    'profile_product_lead', 'post_it',
] + [model.__tablename__ for model in SATELLITE_MODELS]


class RowImporter:
    """
    Materialises extracted records as central profiles.

    The session is owned by the importer for the duration of import_batch
    and is always committed or rolled back before it returns.
    """

    def __init__(self, session, branch, system_user_id: str, today: Optional[date] = None):
        self.session = session
        self.branch = branch
        self.system_user_id = system_user_id
        self.today = today or date.today()

    def import_batch(self, records: Iterable[ExtractedRecord]) -> ImportBatchResult:
        """
        Import non-duplicate records.

        Returns:
            ImportBatchResult with successful, failed and skipped rows

        Raises:
            LeadSourceMissingError: a row's hear_us_from has no reference record;
                nothing from this batch is kept
            TransportError: the database went away mid-batch; nothing is kept
        """
        result = ImportBatchResult()
        try:
            for record in records:
                self._import_isolated(record, result)
        except (LeadSourceMissingError, TransportError):
            self.session.rollback()
            logger.warning(f"Batch rolled back; {len(result.successful)} imported rows discarded")
            raise

        if result.successful:
            self._commit()
            logger.info(
                f"Batch committed: {len(result.successful)} imported, "
                f"{len(result.failed)} failed, {len(result.skipped)} skipped"
            )
        else:
            self.session.rollback()
            logger.info("Batch rolled back: no row imported")
        return result

    def _import_isolated(self, record: ExtractedRecord, result: ImportBatchResult):
        try:
            with self.session.begin_nested():
                self.import_row(record)
        except (LeadSourceMissingError, TransportError):
            raise
        except (OperationalError, InterfaceError) as e:
            raise TransportError(f"Row {record.row_index}: database unavailable: {e}") from e
        except IntegrityError as e:
            logger.warning(f"Row {record.row_index}: duplicate entry: {e.orig}")
            result.skipped.append(self._outcome(record, reason=DUPLICATE_ENTRY_REASON, error=str(e.orig)))
        except Exception as e:
            logger.warning(f"Row {record.row_index}: error processing row: {e}")
            result.failed.append(self._outcome(record, reason=PROCESSING_ERROR_REASON, error=str(e)))
        else:
            result.successful.append(RowOutcome(
                row_index=record.row_index,
                email=record.email or '',
                phone=record.phone or '',
                message=SUCCESS_MESSAGE,
            ))

    def import_row(self, record: ExtractedRecord) -> str:
        """Write the full profile graph for one record and return the profile id."""
        created_on = self._created_on(record)

        profile_id = self._insert_profile(record, created_on)

        if record.email:
            self._add(ProfileEmail(profile_id=profile_id, address=record.email), created_on)

        if record.phone:
            self._add(ProfilePhone(profile_id=profile_id, number=record.phone,
                                   branch_id=self.branch), created_on)

        if record.hear_us_from:
            self._insert_lead(record, profile_id, created_on)

        if record.note_text:
            self._insert_note(record, profile_id, created_on)

        self._insert_satellites(profile_id, created_on)
        self.session.flush()
        return profile_id

    def _insert_profile(self, record, created_on):
        profile = Profile(
            first_name=record.first_name,
            last_name=record.last_name,
            gender=record.gender_code,
            birthdate=record.birth_date,
            age=record.age,
            job_text=record.occupation,
        )
        self._add(profile, created_on)
        self.session.flush()

        if not profile.id:
            raise RowImportError(f"Row {record.row_index}: profile insert failed", record.row_index)
        return profile.id

    def _insert_lead(self, record, profile_id, created_on):
        lead_source = HearUsFrom.find_active(self.session, record.hear_us_from, self.branch)
        if lead_source is None:
            statement = build_creation_statement(record.hear_us_from, self.branch, self.system_user_id)
            logger.error(
                f"Row {record.row_index}: cannot find hear_us_from {record.hear_us_from!r} "
                f"in branch {self.branch}; aborting batch"
            )
            raise LeadSourceMissingError(
                f'Row {record.row_index}: Cannot find hear_us_from "{record.hear_us_from}" '
                f'in branch {self.branch}.\n\n'
                f'Run this SQL query, then restart the insertion process:\n\n{statement}',
                values=[record.hear_us_from],
                statements=[statement],
                row_index=record.row_index,
            )

        hit = Hit(profile_id=profile_id, hear_us_from=lead_source.id,
                  hit_type=Hit.WEBSITE, branch=self.branch)
        self._add(hit, created_on)
        self.session.flush()

        self._add(Followup(
            todo_date=created_on.date() + timedelta(days=1),
            todo_time=FOLLOWUP_TIME,
            method=FOLLOWUP_METHOD,
            result=FOLLOWUP_RESULT,
            assigned_consultant=self.system_user_id,
            product=FOLLOWUP_PRODUCT,
            branch=self.branch,
            profile_id=profile_id,
            hit_id=hit.id,
            followup_type=FOLLOWUP_TYPE,
        ), created_on)

        self._add(ProfileProductLead(status=PRODUCT_LEAD_STATUS, product=PRODUCT_WITH_HIT,
                                     profile_id=profile_id, hit_id=hit.id), created_on)
        self._add(ProfileProductLead(status=PRODUCT_LEAD_STATUS, product=PRODUCT_WITHOUT_HIT,
                                     profile_id=profile_id, hit_id=None), created_on)

    def _insert_note(self, record, profile_id, created_on):
        # Prefix ties the note to its profile.
        post_it = PostIt(comment=f"[Profile ID: {profile_id}]\n\n{record.note_text}")
        self._add(post_it, created_on)
        self.session.flush()

        profile = self.session.get(Profile, profile_id)
        profile.post_it = post_it.id

    def _insert_satellites(self, profile_id, created_on):
        for model in SATELLITE_MODELS:
            satellite = model(profile_id=profile_id)
            if model is ProfileSpokenLanguage:
                satellite.language = DEFAULT_LANGUAGE
            elif model is ProfileInterestedInDating:
                satellite.interested_in_dating = 1
            self._add(satellite, created_on)

    def _add(self, instance, created_on):
        instance.created_on = created_on
        instance.updated_on = created_on
        instance.created_by = self.system_user_id
        instance.updated_by = self.system_user_id
        instance.deleted = 0
        instance.version = 0
        self.session.add(instance)
        return instance

    def _created_on(self, record):
        return datetime.combine(record.registration_date or self.today, time.min)

    def _commit(self):
        try:
            self.session.commit()
        except (OperationalError, InterfaceError) as e:
            self.session.rollback()
            raise TransportError(f"Commit failed: {e}") from e

    @staticmethod
    def _outcome(record, reason, error):
        return RowOutcome(
            row_index=record.row_index,
            email=record.source_email,
            phone=record.source_phone,
            reason=reason,
            error=error,
        )
