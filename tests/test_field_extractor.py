"""
Field Extractor Tests

Run with: python -m pytest tests/test_field_extractor.py -v
"""

from datetime import date

import pytest

from conftest import TODAY
from services.importer import ColumnMapping, InvalidRequestError, RawRow, extract_record
from services.importer.extractor import (
    build_note_text,
    calculate_age,
    clean_phone,
    map_gender,
    obfuscate_contact,
    parse_age,
    parse_date,
)


class TestCleaning:
    def test_clean_phone_keeps_digits_only(self):
        assert clean_phone('+1 (555) 123-4567') == '15551234567'
        assert clean_phone('') == ''
        assert clean_phone(None) == ''

    @pytest.mark.parametrize('raw, code', [
        ('Male', 1), ('m', 1), (' M ', 1), ('男', 1),
        ('Female', 2), ('f', 2), ('女', 2),
        ('', 1), (None, 1), ('other', 1),
    ])
    def test_map_gender(self, raw, code):
        assert map_gender(raw) == code

    def test_unknown_gender_is_logged(self, caplog):
        map_gender('unspecified')
        assert 'Unknown gender value' in caplog.text


class TestDates:
    def test_iso_timestamp_keeps_written_date(self):
        assert parse_date('2025-01-04T00:34:25+08:00') == date(2025, 1, 4)
        assert parse_date('2025-01-04T23:59:00Z') == date(2025, 1, 4)

    def test_two_digit_year_pivot(self):
        assert parse_date('5/31/25') == date(2025, 5, 31)
        assert parse_date('5/31/49') == date(2049, 5, 31)
        assert parse_date('5/31/50') == date(1950, 5, 31)

    def test_four_digit_year(self):
        assert parse_date('11/18/1976') == date(1976, 11, 18)

    @pytest.mark.parametrize('value', ['', '   ', None, 'not a date', '2025-01-04', '13/45/2020'])
    def test_unparseable_is_none(self, value):
        assert parse_date(value) is None

    def test_calculate_age_before_and_after_birthday(self):
        assert calculate_age(date(1990, 6, 15), date(2025, 6, 15)) == 35
        assert calculate_age(date(1990, 6, 16), date(2025, 6, 15)) == 34
        assert calculate_age(None, date(2025, 6, 15)) is None


class TestNoteText:
    def test_blank_cells_are_dropped(self):
        row = RawRow(0, ('a', '', 'b', '  ', 'c'))
        assert build_note_text(row, [0, 1, 2, 3, 4, 9]) == 'a\nb\nc'

    def test_all_blank_gives_empty_note(self):
        assert build_note_text(RawRow(0, ('', '')), [0, 1]) == ''


class TestObfuscation:
    def test_dev_rewrites_email_and_phone(self):
        assert obfuscate_contact('jane@example.com', '85291234567', 'DEV') == (
            'a1b2c3_jane_dev@example.com', '85291231234'
        )

    def test_other_environments_untouched(self):
        assert obfuscate_contact('jane@example.com', '85291234567', 'PROD') == (
            'jane@example.com', '85291234567'
        )

    def test_short_phone_and_missing_values(self):
        assert obfuscate_contact(None, '123', 'dev') == (None, '123')


class TestExtractRecord:
    def test_full_row(self, make_row, mapping):
        record = extract_record(make_row(3), mapping, today=TODAY)

        assert record.row_index == 3
        assert record.first_name == 'Jane'
        assert record.last_name == 'Doe'
        assert record.email == 'jane@example.com'
        assert record.phone == '85291234567'
        assert record.gender_code == 2
        assert record.birth_date == date(1976, 11, 18)
        assert record.age == 48
        assert record.occupation == 'Nurse'
        assert record.registration_date == date(2025, 1, 4)
        assert record.hear_us_from == 'Facebook'
        assert record.note_text == 'Likes hiking'
        assert record.source_phone == '+852 9123-4567'

    def test_mapped_age_wins_over_birth_date(self, make_row, mapping):
        record = extract_record(make_row(1, age='30'), mapping, today=TODAY)
        assert record.age == 30

    def test_decimal_age_cell_is_read_as_whole_years(self, make_row, mapping):
        record = extract_record(make_row(1, age='30.0', birth=''), mapping, today=TODAY)
        assert record.age == 30

    @pytest.mark.parametrize('value, age', [('30', 30), (' 42.7 ', 42), ('thirty', None), ('', None), ('nan', None)])
    def test_parse_age(self, value, age):
        assert parse_age(value) == age

    def test_non_numeric_age_falls_back_to_birth_date(self, make_row, mapping):
        record = extract_record(make_row(1, age='thirty'), mapping, today=TODAY)
        assert record.age == 48

    def test_empty_contacts_become_none(self, make_row, mapping):
        record = extract_record(make_row(1, email='  ', phone='n/a', hear_us_from=' '), mapping)
        assert record.email is None
        assert record.phone is None
        assert record.hear_us_from is None

    def test_values_are_trimmed(self, make_row, mapping):
        record = extract_record(make_row(1, email=' jane@example.com ', hear_us_from=' Facebook '),
                                mapping)
        assert record.email == 'jane@example.com'
        assert record.hear_us_from == 'Facebook'

    def test_unmapped_and_out_of_range_columns(self):
        mapping = ColumnMapping(first_name=0, email=40)
        record = extract_record(RawRow(0, ('Solo',)), mapping)
        assert record.first_name == 'Solo'
        assert record.last_name == ''
        assert record.email is None
        assert record.age is None
        assert record.gender_code == 1

    def test_dev_environment_obfuscates_before_detection(self, make_row, mapping):
        record = extract_record(make_row(1), mapping, environment='DEV')
        assert record.email == 'a1b2c3_jane_dev@example.com'
        assert record.phone == '85291231234'
        assert record.source_email == 'jane@example.com'


class TestPayloadParsing:
    def test_mapping_from_payload_uses_default_post_it(self):
        mapping = ColumnMapping.from_payload({'firstName': '1', 'email': 3},
                                             default_post_it_columns=[1, 13])
        assert mapping.first_name == 1
        assert mapping.email == 3
        assert mapping.phone is None
        assert mapping.post_it_columns == (1, 13)

    def test_negative_index_rejected(self):
        with pytest.raises(InvalidRequestError):
            ColumnMapping.from_payload({'email': -1})

    def test_non_integer_index_rejected(self):
        with pytest.raises(InvalidRequestError):
            ColumnMapping.from_payload({'email': 'C'})

    def test_raw_row_from_payload(self):
        row = RawRow.from_payload({'rowIndex': 4, 'data': {'values': [
            {'formattedValue': 'Jane'}, {}, {'formattedValue': 7},
        ]}})
        assert row.row_index == 4
        assert row.values == ('Jane', '', '7')

    def test_raw_row_requires_index(self):
        with pytest.raises(InvalidRequestError):
            RawRow.from_payload({'data': {'values': []}})

    @pytest.mark.parametrize('row_index', ['abc', None, [1]])
    def test_raw_row_index_must_be_integer(self, row_index):
        with pytest.raises(InvalidRequestError):
            RawRow.from_payload({'rowIndex': row_index, 'data': {'values': []}})

    def test_null_post_it_column_rejected(self):
        with pytest.raises(InvalidRequestError):
            ColumnMapping.from_payload({'postItColumns': [10, None]})
