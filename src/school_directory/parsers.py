"""Parsers for the directory CSV export and the school calendar feed."""

import logging
import re
from datetime import datetime
from typing import Optional

from .models import CalendarEvent, StudentRecord

logger = logging.getLogger(__name__)

# Header label in the export -> StudentRecord field
COLUMN_MAP = {
    "First Name": "first_name",
    "Last Name": "last_name",
    "Nickname": "nickname",
    "Gr": "grade",
    "Gender": "gender",
    "Student School Email": "student_email",
    "Phone": "phone",
    "Teacher First Name": "teacher_first_name",
    "Teacher Last Name": "teacher_last_name",
    "Teacher Room": "teacher_room",
    "F1 Address Line 1": "f1_address_line1",
    "F1 City": "f1_city",
    "F1 State": "f1_state",
    "F1 Zip": "f1_zip",
    "F1/G1 First Name": "f1g1_first_name",
    "F1/G1 Last Name": "f1g1_last_name",
    "F1/G1 Phone": "f1g1_phone",
    "F1/G1 2nd Phone": "f1g1_second_phone",
    "F1/G1 E-Mail": "f1g1_email",
    "F1/G2 First Name": "f1g2_first_name",
    "F1/G2 Last Name": "f1g2_last_name",
    "F1/G2 Phone": "f1g2_phone",
    "F1/G2 2nd Phone": "f1g2_second_phone",
    "F1/G2 E-Mail": "f1g2_email",
    "F2 Address Line 1": "f2_address_line1",
    "F2 City": "f2_city",
    "F2 State": "f2_state",
    "F2 Zip": "f2_zip",
    "F2/G1 First Name": "f2g1_first_name",
    "F2/G1 Last Name": "f2g1_last_name",
    "F2/G1 Phone": "f2g1_phone",
    "F2/G1 2nd Phone": "f2g1_second_phone",
    "F2/G1 E-Mail": "f2g1_email",
    "F2/G2 First Name": "f2g2_first_name",
    "F2/G2 Last Name": "f2g2_last_name",
    "F2/G2 Phone": "f2g2_phone",
    "F2/G2 2nd Phone": "f2g2_second_phone",
    "F2/G2 E-Mail": "f2g2_email",
}


def _clean_cell(value: str) -> str:
    """Trim a cell and strip one leading and one trailing double quote."""
    return re.sub(r'^"|"$', "", value.strip())


def parse_csv_line(line: str) -> list[str]:
    """Split one CSV line into raw cell values.

    A double quote toggles "inside quotes" mode and is not kept; commas inside
    quotes are kept literally. Doubled quotes are not treated as an escape.

    Args:
        line: A single line of the export

    Returns:
        List of cell values, untrimmed
    """
    values = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            values.append("".join(current))
            current = []
        else:
            current.append(char)

    values.append("".join(current))
    return values


def parse_directory_csv(text: str) -> list[StudentRecord]:
    """Parse the directory export into student records.

    Rows whose cell count does not match the header are skipped with a
    warning. Record ids are ``student-<line index>``.

    Args:
        text: Raw CSV text, header row first

    Returns:
        Student records in file order
    """
    lines = text.lstrip("\ufeff").split("\n")
    if not lines or not lines[0].strip():
        return []

    headers = [_clean_cell(header) for header in parse_csv_line(lines[0])]
    students = []

    for index in range(1, len(lines)):
        line = lines[index]
        if not line.strip():
            continue

        values = parse_csv_line(line)
        if len(values) != len(headers):
            logger.warning(
                "Line %d has %d values, expected %d; skipping",
                index,
                len(values),
                len(headers),
            )
            continue

        record = {"id": f"student-{index}"}
        for header, raw in zip(headers, values):
            field_name = COLUMN_MAP.get(header)
            if field_name:
                value = _clean_cell(raw)
                record[field_name] = value if value != "" else None

        students.append(StudentRecord(**record))

    logger.debug("Parsed %d student records", len(students))
    return students


def _parse_ical_date(value: str) -> Optional[datetime]:
    """Parse an iCalendar DATE or DATE-TIME value (UTC marker is dropped)."""
    value = value.strip().rstrip("Z")
    for fmt in ("%Y%m%dT%H%M%S", "%Y%m%d"):
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    logger.warning("Unrecognized calendar date: %s", value)
    return None


def parse_ical(text: str) -> list[CalendarEvent]:
    """Parse VEVENT blocks from an iCalendar feed.

    Only SUMMARY, DESCRIPTION, LOCATION, DTSTART and DTEND are read. Events
    without a title, start or end are dropped.

    Args:
        text: Raw .ics content

    Returns:
        List of CalendarEvent objects in feed order
    """
    events: list[CalendarEvent] = []
    current: Optional[dict] = None
    last_key: Optional[str] = None

    for raw_line in text.split("\n"):
        raw_line = raw_line.rstrip("\r")

        # Folded continuation of the previous property
        if raw_line.startswith((" ", "\t")) and current is not None:
            if last_key in ("title", "description", "location") and current.get(last_key):
                current[last_key] += raw_line[1:]
            continue

        line = raw_line.strip()
        if line == "BEGIN:VEVENT":
            current = {"all_day": False}
            last_key = None
            continue
        if line == "END:VEVENT":
            if current is not None and current.get("title") and current.get("start") and current.get("end"):
                events.append(CalendarEvent(id=f"event-{len(events)}", **current))
            current = None
            continue
        if current is None or ":" not in line:
            continue

        key, value = line.split(":", 1)
        name, _, params = key.partition(";")
        last_key = None

        if name == "SUMMARY":
            current["title"] = value
            last_key = "title"
        elif name == "DESCRIPTION":
            current["description"] = value
            last_key = "description"
        elif name == "LOCATION":
            current["location"] = value
            last_key = "location"
        elif name == "DTSTART":
            current["start"] = _parse_ical_date(value)
            if ("VALUE=DATE" in params and "VALUE=DATE-TIME" not in params) or len(value.strip()) == 8:
                current["all_day"] = True
        elif name == "DTEND":
            current["end"] = _parse_ical_date(value)

    return events
