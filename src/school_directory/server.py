"""School Directory MCP Server - FastMCP server for the family/school directory."""

import logging
from datetime import date, datetime
from typing import Optional

from dotenv import load_dotenv
from fastmcp import FastMCP

from . import config
from .client import DirectoryClient, DirectoryLoadError
from .directory import DirectoryIndex
from .events import events_for_day, events_for_month
from .favorites import (
    FavoritesStore,
    FileStorage,
    build_group_message_target,
    derive_contact_options,
    group_by_address,
    select_all,
)
from .formatting import (
    format_contact_option,
    format_event,
    format_favorite,
    format_parent,
    format_student,
    format_student_line,
    format_teacher,
    grade_label,
)
from .models import ContactFilters
from .search import search_directory

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

# Create FastMCP server
mcp = FastMCP(
    "School Directory",
    instructions="MCP server for a school family directory. Look up students, parents and teachers, "
    "manage favorites, build group text/email links and read the school calendar.",
)

# Global instances (initialized on first use)
_directory: Optional[DirectoryIndex] = None
_favorites: Optional[FavoritesStore] = None


async def _get_directory() -> DirectoryIndex:
    """Load the directory once per process."""
    global _directory
    if _directory is None:
        source = config.csv_source()
        if not source:
            raise DirectoryLoadError(
                f"Missing directory source. Please set the {config.CSV_SOURCE_ENV} environment variable."
            )
        client = DirectoryClient(source)
        try:
            _directory = await client.load_directory()
        finally:
            await client.close()
    return _directory


def _get_favorites() -> FavoritesStore:
    global _favorites
    if _favorites is None:
        _favorites = FavoritesStore(FileStorage(config.data_dir()))
    else:
        # Pick up favorites saved by other processes since the last call
        _favorites.reload()
    return _favorites


@mcp.tool()
async def search(query: str) -> str:
    """Search students and parents by name.

    Args:
        query: First name, last name, nickname or "first last-prefix" (e.g. "john sm")

    Returns:
        Up to 10 matching students and 10 matching parents.
    """
    if not query.strip():
        return "Please enter a name to search for."

    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    results = search_directory(query, directory.students)
    if not results.students and not results.parents:
        return f"No matches for '{query}'."

    lines = []
    if results.students:
        lines.append("Students:")
        lines.extend(f"  {format_student_line(s)}" for s in results.students)
    if results.parents:
        if lines:
            lines.append("")
        lines.append("Parents:")
        for parent in results.parents:
            children = ", ".join(s.first_name or s.full_name for s in parent.students)
            lines.append(f"  {parent.full_name} (parent of {children})")
    return "\n".join(lines)


@mcp.tool()
async def list_grades() -> str:
    """List the grades present in the directory (K first)."""
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    grades = directory.grades_sorted()
    if not grades:
        return "No grades found."
    return "\n".join(grade_label(g) for g in grades)


@mcp.tool()
async def list_teachers(grade: Optional[str] = None) -> str:
    """List teachers, optionally only those teaching one grade.

    Args:
        grade: "K" or a grade number. Lists every teacher when omitted.
    """
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    teachers = directory.teachers_for_grade(grade) if grade else directory.all_teachers()
    if not teachers:
        return f"No teachers found for {grade_label(grade)}." if grade else "No teachers found."
    return "\n".join(format_teacher(t) for t in teachers)


@mcp.tool()
async def get_class_list(teacher_first_name: str, teacher_last_name: str, grade: Optional[str] = None) -> str:
    """List the students in a teacher's class.

    Args:
        teacher_first_name: Teacher's first name, exactly as listed
        teacher_last_name: Teacher's last name, exactly as listed
        grade: Restrict to one grade (optional)
    """
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    students = directory.students_for_teacher(teacher_first_name, teacher_last_name, grade)
    if not students:
        return f"No students found for {teacher_first_name} {teacher_last_name}."

    grade = grade or directory.grade_for_teacher(teacher_first_name, teacher_last_name)
    lines = [f"{teacher_first_name} {teacher_last_name} ({grade}) - {len(students)} students:", ""]
    lines.extend(f"  {format_student_line(s)}" for s in students)
    return "\n".join(lines)


@mcp.tool()
async def get_student(student_id: str) -> str:
    """Show a student's details, guardians and siblings.

    Args:
        student_id: Student ID as shown in search results (e.g. "student-12")
    """
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    student = directory.get_student(student_id)
    if student is None:
        return f"Student not found: {student_id}"

    lines = [format_student(student)]
    siblings = directory.siblings_of(student)
    if siblings:
        lines.extend(["", "Siblings:"])
        lines.extend(f"  {format_student_line(s)}" for s in siblings)
    return "\n".join(lines)


@mcp.tool()
async def get_parent(first_name: str, last_name: str) -> str:
    """Show a parent's contact details and their students.

    Args:
        first_name: Parent first name (exact, case-sensitive)
        last_name: Parent last name (exact, case-sensitive)
    """
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    parent = directory.resolve_parent(first_name, last_name)
    if parent is None:
        return f"Parent not found: {first_name} {last_name}"
    return format_parent(parent)


@mcp.tool()
async def get_siblings(student_id: str) -> str:
    """List students who share a guardian with the given student."""
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    student = directory.get_student(student_id)
    if student is None:
        return f"Student not found: {student_id}"

    siblings = directory.siblings_of(student)
    if not siblings:
        return f"No siblings found for {student.full_name}."
    return "\n".join(format_student_line(s) for s in siblings)


@mcp.tool()
async def list_favorites() -> str:
    """List favorited students and parents."""
    store = _get_favorites()
    if not len(store):
        return "No favorites yet."
    return "\n".join(format_favorite(item) for item in store.items)


@mcp.tool()
async def add_favorite_student(student_id: str) -> str:
    """Add a student to favorites.

    Args:
        student_id: Student ID as shown in search results
    """
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    student = directory.get_student(student_id)
    if student is None:
        return f"Student not found: {student_id}"

    store = _get_favorites()
    if store.is_student_favorited(student.id):
        return f"{student.full_name} is already a favorite."
    store.add_student(student)
    return f"Added {student.full_name} to favorites."


@mcp.tool()
async def add_favorite_parent(first_name: str, last_name: str) -> str:
    """Add a parent to favorites.

    Args:
        first_name: Parent first name (exact)
        last_name: Parent last name (exact)
    """
    try:
        directory = await _get_directory()
    except DirectoryLoadError as e:
        return f"Load error: {e}"

    parent = directory.resolve_parent(first_name, last_name)
    if parent is None:
        return f"Parent not found: {first_name} {last_name}"

    store = _get_favorites()
    if store.is_parent_favorited(parent.id):
        return f"{parent.full_name} is already a favorite."
    store.add_parent(parent)
    return f"Added {parent.full_name} to favorites."


@mcp.tool()
async def remove_favorite(favorite_id: str) -> str:
    """Remove a favorite by its ID (e.g. "student-fav-student-12")."""
    store = _get_favorites()
    if favorite_id not in store:
        return f"No favorite with ID {favorite_id}."
    store.remove(favorite_id)
    return f"Removed {favorite_id} from favorites."


@mcp.tool()
async def get_contact_options(
    primary_phones: bool = True,
    secondary_phones: bool = True,
    emails: bool = True,
    addresses: bool = True,
) -> str:
    """List contact options for all favorites, grouped by address.

    Args:
        primary_phones: Include primary phone numbers
        secondary_phones: Include second phone numbers
        emails: Include email addresses
        addresses: Include home addresses
    """
    filters = ContactFilters(primary_phones, secondary_phones, emails, addresses)
    options = derive_contact_options(_get_favorites().items, filters)
    if not options:
        return "No contact options. Add favorites first."

    lines = []
    for group in group_by_address(options):
        lines.append(group.address or "(no address)")
        lines.extend(f"  {format_contact_option(o)}" for o in group.contacts)
        lines.append("")
    return "\n".join(lines).rstrip()


@mcp.tool()
async def get_group_message_link(channel: str = "phone") -> str:
    """Build a group text or email link to every phone/email of the favorites.

    Args:
        channel: "phone" for a group text, "email" for a group email
    """
    if channel not in ("phone", "email"):
        return f"Invalid channel: {channel}. Use 'phone' or 'email'."

    options = select_all(o for o in derive_contact_options(_get_favorites().items) if o.type == channel)
    link = build_group_message_target(options, channel)
    if link is None:
        return f"No favorites have a {channel} on file."
    return link


@mcp.tool()
async def get_events(date_str: Optional[str] = None) -> str:
    """List school calendar events for a month or a single day.

    Args:
        date_str: "YYYY-MM" for a month or "YYYY-MM-DD" for one day (default: this month)
    """
    url = config.calendar_url()
    if not url:
        return f"No calendar configured. Set {config.CALENDAR_URL_ENV}."

    try:
        if date_str and len(date_str) > 7:
            target, single_day = datetime.strptime(date_str, "%Y-%m-%d").date(), True
        elif date_str:
            target, single_day = datetime.strptime(date_str, "%Y-%m").date(), False
        else:
            target, single_day = date.today(), False
    except ValueError:
        return f"Could not parse date: {date_str}"

    client = DirectoryClient(url)
    try:
        events = await client.fetch_calendar(url)
    finally:
        await client.close()

    selected = events_for_day(events, target) if single_day else events_for_month(events, target)
    if not selected:
        return "No events found."
    return "\n".join(format_event(e) for e in sorted(selected, key=lambda e: e.start))


def main():
    """Run the MCP server."""
    logging.basicConfig(level=config.log_level())
    mcp.run()


if __name__ == "__main__":
    main()
