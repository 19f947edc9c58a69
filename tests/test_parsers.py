"""
Tests for the directory CSV parser and the calendar feed parser.
"""

import logging
from datetime import datetime

from school_directory.parsers import COLUMN_MAP, parse_csv_line, parse_directory_csv, parse_ical


# --- CSV lines ---

def test_parse_csv_line_splits_on_commas():
    assert parse_csv_line("a,b,,d") == ["a", "b", "", "d"]


def test_parse_csv_line_keeps_commas_inside_quotes():
    """Quotes toggle quoting and are dropped from the value."""
    assert parse_csv_line('x,"Springfield, IL",y') == ["x", "Springfield, IL", "y"]


def test_parse_csv_line_doubled_quotes_just_toggle():
    """No "" escape: each quote flips the mode and disappears."""
    assert parse_csv_line('"say ""hi""",z') == ["say hi", "z"]


# --- Whole documents ---

def test_parse_maps_every_row(make_row, make_csv):
    text = make_csv([
        make_row("Alice", "Smith"),
        make_row("Bob", "Jones", grade="K"),
        make_row("Cara", "Diaz", grade="4"),
    ])

    students = parse_directory_csv(text)

    assert len(students) == 3
    assert [s.first_name for s in students] == ["Alice", "Bob", "Cara"]
    assert students[1].grade == "K"
    assert students[0].teacher_last_name == "Teach"
    assert students[0].f1_address_line1 == "1 Elm St"


def test_parse_maps_guardian_columns(make_row, make_csv):
    text = make_csv([make_row(**{
        "F1/G1 First Name": "Jane",
        "F1/G1 Last Name": "Doe",
        "F1/G1 Phone": "555-0100",
        "F1/G1 2nd Phone": "555-0101",
        "F1/G1 E-Mail": "jane@doe.test",
        "F2 Address Line 1": "2 Oak St",
        "F2/G2 First Name": "John",
    })])

    student = parse_directory_csv(text)[0]

    assert student.f1g1_first_name == "Jane"
    assert student.f1g1_second_phone == "555-0101"
    assert student.f1g1_email == "jane@doe.test"
    assert student.f2_address_line1 == "2 Oak St"
    assert student.f2g2_first_name == "John"


def test_empty_cells_become_none(make_row, make_csv):
    student = parse_directory_csv(make_csv([make_row(Nickname="  ")]))[0]

    assert student.nickname is None
    assert student.f1g1_first_name is None
    assert student.f2_address_line1 is None


def test_quoted_cell_with_comma(make_row, make_csv):
    student = parse_directory_csv(make_csv([make_row(**{"F1 Address Line 1": "1 Elm St, Apt 2"})]))[0]

    assert student.f1_address_line1 == "1 Elm St, Apt 2"


def test_ids_follow_line_index(make_row, make_csv):
    """Ids are student-<line>; blank lines still consume a line number."""
    text = make_csv([make_row("A", "One")]) + "\n" + make_csv([make_row("B", "Two")]).split("\n", 1)[1]

    students = parse_directory_csv(text)

    assert [s.id for s in students] == ["student-1", "student-3"]


def test_row_with_wrong_field_count_is_skipped(make_row, make_csv, caplog):
    """A short row is dropped with a warning; the rest still load."""
    rows = [make_row("A", "One"), make_row("B", "Two"), make_row("C", "Three"), make_row("D", "Four")]
    lines = make_csv(rows).split("\n")
    lines[3] = lines[3].rsplit(",", 1)[0]  # row 3 loses its last cell

    with caplog.at_level(logging.WARNING, logger="school_directory.parsers"):
        students = parse_directory_csv("\n".join(lines))

    assert [s.first_name for s in students] == ["A", "B", "D"]
    assert "Line 3" in caplog.text


def test_unknown_columns_are_ignored(make_csv):
    headers = ["First Name", "Last Name", "Gr", "Shoe Size"]
    text = make_csv([{"First Name": "Al", "Last Name": "Bo", "Gr": "2", "Shoe Size": "9"}], headers=headers)

    student = parse_directory_csv(text)[0]

    assert (student.first_name, student.last_name, student.grade) == ("Al", "Bo", "2")
    assert student.phone is None


def test_windows_line_endings_and_bom(make_row, make_csv):
    text = "\ufeff" + make_csv([make_row("Alice", "Smith")]).replace("\n", "\r\n")

    students = parse_directory_csv(text)

    assert len(students) == 1
    assert students[0].first_name == "Alice"
    assert students[0].f1_zip == "62701"


def test_empty_document():
    assert parse_directory_csv("") == []


def test_header_mapping_covers_every_guardian_slot():
    fields = set(COLUMN_MAP.values())
    for slot in ("f1g1", "f1g2", "f2g1", "f2g2"):
        for suffix in ("first_name", "last_name", "phone", "second_phone", "email"):
            assert f"{slot}_{suffix}" in fields


# --- Calendar ---

ICS = """BEGIN:VCALENDAR
BEGIN:VEVENT
SUMMARY:PTA Meeting
DESCRIPTION:Monthly meeting to discuss
  fundraising
LOCATION:School Library
DTSTART:20250308T190000Z
DTEND:20250308T203000Z
END:VEVENT
BEGIN:VEVENT
SUMMARY:Spring Break
DTSTART;VALUE=DATE:20250320
DTEND;VALUE=DATE:20250327
END:VEVENT
BEGIN:VEVENT
SUMMARY:No end date
DTSTART:20250301T090000
END:VEVENT
END:VCALENDAR
"""


def test_parse_ical_reads_events():
    events = parse_ical(ICS)

    assert [e.title for e in events] == ["PTA Meeting", "Spring Break"]
    assert events[0].id == "event-0"
    assert events[0].start == datetime(2025, 3, 8, 19, 0)
    assert events[0].location == "School Library"
    assert events[0].all_day is False


def test_parse_ical_folded_lines_and_all_day():
    events = parse_ical(ICS.replace("\n", "\r\n"))

    assert events[0].description == "Monthly meeting to discuss fundraising"
    assert events[1].all_day is True
    assert events[1].end == datetime(2025, 3, 27)


def test_reparsing_rendered_records_is_stable(make_row, make_csv):
    text = make_csv([
        make_row("Alice", "Smith", Nickname="Ali", **{"F1 Address Line 1": "1 Elm St, Apt 2"}),
        make_row("Bob", "Jones", grade="K", **{
            "F1/G1 First Name": "Jane", "F1/G1 Last Name": "Jones", "F1/G1 Phone": "555-0100",
            "F2 Address Line 1": "2 Oak St", "F2/G1 First Name": "John", "F2/G1 Last Name": "Jones",
        }),
    ])
    first = parse_directory_csv(text)

    rendered = make_csv([
        {header: getattr(student, field) for header, field in COLUMN_MAP.items()} for student in first
    ])
    second = parse_directory_csv(rendered)

    assert second == first


def test_missing_first_name_is_left_out_of_names(make_row, make_csv):
    student = parse_directory_csv(make_csv([make_row(first="", last="Smith", Nickname="Smitty")]))[0]

    assert student.first_name is None
    assert student.full_name == "Smith"
    assert student.display_name == '"Smitty" Smith'
