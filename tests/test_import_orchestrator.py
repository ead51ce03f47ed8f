"""
Import Orchestrator Tests

Run with: python -m pytest tests/test_import_orchestrator.py -v
"""

from datetime import date

from sqlalchemy.exc import OperationalError

from conftest import BRANCH, SYSTEM_USER_ID, TODAY
from models import Profile, ProfileEmail
from services.importer import ImportOrchestrator, ImportStage, RowImporter, run_import
from services.importer.orchestrator import central_today


def run(session, rows, mapping, **kwargs):
    return run_import(session, rows, mapping, BRANCH, SYSTEM_USER_ID, today=TODAY, **kwargs)


class TestImportOrchestrator:
    def test_completed_import(self, session, make_row, mapping):
        report = run(session, [
            make_row(1, email='a@x.com', phone='1001'),
            make_row(2, email='b@x.com', phone='1002'),
        ], mapping)

        assert report.stage is ImportStage.COMPLETED
        assert report.success
        assert len(report.results.successful) == 2
        assert session.query(Profile).count() == 2

        data = report.to_dict()
        assert data['success'] is True
        assert data['status'] == 'completed'
        assert data['message'] == 'Processed 2 rows with detailed results'
        assert (data['totalRows'], data['successfulRows'], data['failedRows'],
                data['skippedRows'], data['duplicateRows']) == (2, 2, 0, 0, 0)
        assert data['leadSourceData']['canProceed'] is True

    def test_missing_lead_source_aborts_before_any_write(self, session, make_row, mapping):
        report = run(session, [
            make_row(1, email='a@x.com', phone='1001'),
            make_row(2, email='b@x.com', phone='1002', hear_us_from='TikTok'),
        ], mapping)

        assert report.stage is ImportStage.ABORTED
        assert not report.success
        assert report.lead_sources.missing == ['TikTok']
        assert 'TikTok' in report.message
        assert session.query(Profile).count() == 0

        data = report.to_dict()
        assert data['leadSourceData']['canProceed'] is False
        assert len(data['leadSourceData']['sqlQueries']) == 1

    def test_all_duplicates_is_a_no_op(self, session, make_row, mapping):
        session.add(ProfileEmail(profile_id='existing', address='a@x.com'))
        session.commit()

        report = run(session, [
            make_row(1, email='a@x.com', phone='1001'),
            make_row(2, email='a@x.com', phone='1002'),
        ], mapping)

        assert report.stage is ImportStage.NO_OP_COMPLETED
        assert report.success
        assert session.query(Profile).count() == 0
        data = report.to_dict()
        assert data['duplicateRows'] == 2
        assert data['successfulRows'] == 0
        assert [d['reason'] for d in data['duplicateDetails']] == ['email exists', 'email exists']

    def test_duplicates_are_reported_and_rest_imported(self, session, make_row, mapping):
        session.add(ProfileEmail(profile_id='existing', address='a@x.com'))
        session.commit()

        report = run(session, [
            make_row(1, email='a@x.com', phone='1001'),
            make_row(2, email='b@x.com', phone='1002'),
            make_row(3, email='c@x.com', phone='1002'),
        ], mapping)

        assert report.stage is ImportStage.COMPLETED
        assert [o.row_index for o in report.results.successful] == [2]
        assert [(v.row_index, v.reason.value) for v in report.duplicates] == [
            (1, 'email exists'), (3, 'duplicate in batch'),
        ]
        assert session.query(Profile).count() == 1

    def test_dev_environment_checks_obfuscated_contacts(self, session, make_row, mapping):
        session.add(ProfileEmail(profile_id='existing', address='jane@example.com'))
        session.commit()

        report = run(session, [make_row(1)], mapping, environment='DEV')

        assert report.stage is ImportStage.COMPLETED
        stored = {e.address for e in session.query(ProfileEmail)}
        assert 'a1b2c3_jane_dev@example.com' in stored

    def test_database_unavailable_fails(self, session, make_row, mapping, monkeypatch):
        def gone(self, record):
            raise OperationalError('INSERT', {}, Exception('Lost connection'))

        monkeypatch.setattr(RowImporter, 'import_row', gone)

        orchestrator = ImportOrchestrator(session, BRANCH, SYSTEM_USER_ID, today=TODAY)
        report = orchestrator.run([make_row(1)], mapping)

        assert report.stage is ImportStage.FAILED
        assert orchestrator.stage is ImportStage.FAILED
        data = report.to_dict()
        assert data['success'] is False
        assert data['error'] == 'Data insertion failed'
        assert data['suggestion'] == 'Please check your database connection and try again.'
        assert session.query(Profile).count() == 0

    def test_lead_source_removed_mid_import_aborts(self, session, make_row, mapping, monkeypatch):
        from models import HearUsFrom

        original = RowImporter.import_batch

        def delete_then_import(self, records):
            HearUsFrom.find_active(session, 'Facebook', BRANCH).deleted = 1
            return original(self, records)

        monkeypatch.setattr(RowImporter, 'import_batch', delete_then_import)

        report = run(session, [make_row(1)], mapping)

        assert report.stage is ImportStage.ABORTED
        assert report.error == 'Lead source not found'
        assert report.lead_sources.missing == ['Facebook']
        assert session.query(Profile).count() == 0


class TestCentralToday:
    def test_returns_a_date(self):
        assert isinstance(central_today('Asia/Hong_Kong'), date)
