"""
Shared fixtures: builders for CSV exports and student records.
"""

import pytest

from school_directory.models import StudentRecord
from school_directory.parsers import COLUMN_MAP

HEADERS = list(COLUMN_MAP)


def _cell(value):
    if value is None:
        return ""
    value = str(value)
    return f'"{value}"' if "," in value else value


def _row(first="Alice", last="Smith", grade="1", **labels):
    row = {
        "First Name": first,
        "Last Name": last,
        "Gr": grade,
        "Gender": "F",
        "Teacher First Name": "Ann",
        "Teacher Last Name": "Teach",
        "Teacher Room": "101",
        "F1 Address Line 1": "1 Elm St",
        "F1 City": "Springfield",
        "F1 State": "IL",
        "F1 Zip": "62701",
    }
    row.update(labels)
    return row


def _csv(rows, headers=None):
    headers = headers or HEADERS
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join(_cell(row.get(h)) for h in headers))
    return "\n".join(lines) + "\n"


def _student(id="student-1", first_name="Alice", last_name="Smith", grade="1", **fields):
    defaults = {
        "teacher_first_name": "Ann",
        "teacher_last_name": "Teach",
        "teacher_room": "101",
        "f1_address_line1": "1 Elm St",
        "f1_city": "Springfield",
        "f1_state": "IL",
        "f1_zip": "62701",
    }
    defaults.update(fields)
    return StudentRecord(id=id, first_name=first_name, last_name=last_name, grade=grade, **defaults)


@pytest.fixture
def make_row():
    """Build one CSV row (header label -> value) with a filled primary household."""
    return _row


@pytest.fixture
def make_csv():
    """Render rows into export text using the full header."""
    return _csv


@pytest.fixture
def make_student():
    """Build a StudentRecord with a filled primary household."""
    return _student


@pytest.fixture
def family_students(make_student):
    """Two Lee siblings (listed under different slots), a step-household child and an unrelated student."""
    return [
        make_student(
            id="student-1", first_name="Mia", last_name="Lee",
            f1g1_first_name="Sam", f1g1_last_name="Lee", f1g1_phone="(555) 111-2222",
            f1g1_email="sam@lee.test",
            f1g2_first_name="Kim", f1g2_last_name="Lee", f1g2_phone="555-333-4444",
        ),
        make_student(
            id="student-2", first_name="Leo", last_name="Lee", grade="3",
            f1g1_first_name="Kim", f1g1_last_name="Lee",
            f1g2_first_name="Sam", f1g2_last_name="Lee", f1g2_email="sam.work@lee.test",
        ),
        make_student(
            id="student-3", first_name="Ava", last_name="Stone", grade="K",
            f1_address_line1="9 Oak Ave",
            f1g1_first_name="Pat", f1g1_last_name="Stone",
            f2_address_line1="4 Pine Rd", f2_city="Springfield", f2_state="IL", f2_zip="62702",
            f2g1_first_name="Kim", f2g1_last_name="Lee",
        ),
        make_student(
            id="student-4", first_name="Zed", last_name="Adams", grade="2",
            f1_address_line1="7 Birch Ct",
            f1g1_first_name="Jo", f1g1_last_name="Adams",
        ),
    ]
