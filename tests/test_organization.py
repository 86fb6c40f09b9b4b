"""Tests for the employee/week file layout."""

import re
from datetime import date, datetime

import pytest
from fastapi import HTTPException

from glo_cloud.services.organization import (
    MAX_BASE_NAME,
    current_week_number,
    employee_identifier,
    employee_upload_path,
    is_valid_employee_id,
    split_extension,
    unique_filename,
    week_number,
)


class TestWeekNumber:
    """Week of year counted from Jan 1 with Sunday-based weeks."""

    @pytest.mark.parametrize('year', [2023, 2024, 2025, 2026])
    def test_jan_first_is_week_one(self, year):
        assert week_number(date(year, 1, 1)) == 1

    def test_week_rolls_over_on_sunday(self):
        """2024 starts on a Monday; the first Sunday opens week 2."""
        assert week_number(date(2024, 1, 6)) == 1
        assert week_number(date(2024, 1, 7)) == 2

    def test_year_starting_on_sunday(self):
        assert week_number(date(2023, 1, 7)) == 1
        assert week_number(date(2023, 1, 8)) == 2

    def test_end_of_leap_year(self):
        assert week_number(date(2024, 12, 31)) == 53

    def test_accepts_datetime(self):
        assert week_number(datetime(2024, 1, 7, 23, 59)) == 2


class TestEmployeePaths:
    """Upload directories per employee and week."""

    def test_path_layout(self):
        path = employee_upload_path('E100', '1234567890abcdef', 5)
        assert path == 'uploads/emp_E100_12345678/week-5'

    def test_defaults_to_current_week(self):
        expected = current_week_number()
        assert employee_upload_path('E1', 'abcdefghij').endswith(f'/week-{expected}')

    def test_identifier_prefers_employee_id(self):
        class Person:
            id = 'user-uuid'
            employee_id = 'E42'

        assert employee_identifier(Person()) == 'E42'
        Person.employee_id = None
        assert employee_identifier(Person()) == 'user-uuid'

    @pytest.mark.parametrize('employee_id', ['..', 'a/b', 'a\\b', 'E.1', 'E1\n', ''])
    def test_rejects_ids_that_are_not_one_segment(self, employee_id):
        assert not is_valid_employee_id(employee_id)
        with pytest.raises(HTTPException) as exc_info:
            employee_upload_path(employee_id, 'abcdefghij', 1)
        assert exc_info.value.status_code == 400

    def test_user_uuid_is_a_valid_identifier(self):
        assert is_valid_employee_id('3d26d9a1-0b5c-4c1e-9f57-1f2d3c4b5a69')


class TestUniqueFilename:
    """Stored names keep the extension and add a timestamp and random tag."""

    def test_keeps_last_extension(self):
        name = unique_filename('report.final.pdf')
        assert re.fullmatch(r'report\.final_\d{13}_[a-z0-9]{6}\.pdf', name)

    def test_name_without_extension(self):
        assert re.fullmatch(r'README_\d{13}_[a-z0-9]{6}', unique_filename('README'))

    def test_dotfile_has_no_extension(self):
        assert split_extension('.env') == ('.env', '')
        assert re.fullmatch(r'\.env_\d{13}_[a-z0-9]{6}', unique_filename('.env'))

    def test_long_base_is_truncated(self):
        name = unique_filename('x' * 80 + '.txt')
        base = name.split('_')[0]
        assert len(base) == MAX_BASE_NAME
        assert name.endswith('.txt')

    def test_names_do_not_collide(self):
        names = {unique_filename('a.txt') for _ in range(50)}
        assert len(names) == 50
