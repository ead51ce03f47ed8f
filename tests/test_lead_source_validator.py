"""
Lead-Source Validator Tests

Run with: python -m pytest tests/test_lead_source_validator.py -v
"""

from conftest import BRANCH, SYSTEM_USER_ID
from models import HearUsFrom
from services.importer import ExtractedRecord, build_creation_statement, validate_lead_sources
from services.importer.lead_sources import distinct_lead_sources, sql_literal


def records(*values):
    return [ExtractedRecord(row_index=i, hear_us_from=value) for i, value in enumerate(values)]


class TestDistinctValues:
    def test_first_seen_order_without_blanks(self):
        assert distinct_lead_sources(records('B', None, 'A', ' B ', '', 'a')) == ['B', 'A', 'a']


class TestCreationStatement:
    def test_statement_defaults(self):
        statement = build_creation_statement('Walk-in Event', 7, 'user-1')

        assert statement.startswith('INSERT INTO `hear_us_from`')
        assert "VALUES (uuid(), 2, 38, 'Walk-in Event', 1, 0, 0, 'user-1', 'user-1', now(), now(), 7, 1, 'HDHK_Walk_in_Event');" in statement

    def test_values_are_escaped(self):
        statement = build_creation_statement("Bob's \\ Fair", 'HK', 'user-1')
        assert "'Bob''s \\\\ Fair'" in statement
        assert "now(), 'HK', 1," in statement

    def test_sql_literal(self):
        assert sql_literal(None) == 'NULL'
        assert sql_literal("it's") == "'it''s'"


class TestValidateLeadSources:
    def test_all_present(self, session):
        report = validate_lead_sources(session, records('Facebook', 'Facebook', None), BRANCH)

        assert report.can_proceed
        assert report.missing == []
        assert [match.value for match in report.existing] == ['Facebook']
        assert report.existing[0].lead_group == 38

    def test_missing_values_get_statements(self, session):
        report = validate_lead_sources(session, records('Facebook', 'TikTok'), BRANCH, SYSTEM_USER_ID)

        assert not report.can_proceed
        assert report.missing == ['TikTok']
        assert len(report.suggested_statements) == 1
        assert "'TikTok'" in report.suggested_statements[0]
        assert f"'{SYSTEM_USER_ID}'" in report.suggested_statements[0]

    def test_deleted_and_other_branch_count_as_missing(self, session):
        report = validate_lead_sources(session, records('Instagram', 'Google'), BRANCH)
        assert report.missing == ['Instagram', 'Google']

    def test_no_values(self, session):
        report = validate_lead_sources(session, records(None, ''), BRANCH)
        assert report.can_proceed
        assert report.total_values == 0

    def test_report_payload(self, session):
        facebook = HearUsFrom.find_active(session, 'Facebook', BRANCH)
        data = validate_lead_sources(session, records('Facebook', 'TikTok'), BRANCH).to_dict()

        assert data['totalValues'] == 2
        assert data['existingValues'] == [{'value': 'Facebook', 'id': facebook.id, 'leadGroup': 38}]
        assert data['missingValues'] == ['TikTok']
        assert len(data['sqlQueries']) == 1
        assert data['canProceed'] is False
