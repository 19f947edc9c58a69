"""School Directory CLI - Command-line interface for the family/school directory.

Usage:
    python -m school_directory.cli <command> [options]

Commands:
    search <query>                     Search students and parents by name
    grades                             List grades
    teachers [grade]                   List teachers (all, or for one grade)
    class <first> <last> [grade]       List a teacher's students
    student <id>                       Show a student with guardians and siblings
    parent <first> <last>              Show a parent and their students
    siblings <id>                      List a student's siblings
    favorites                          List favorites
    fav-student <id>                   Add a student to favorites
    fav-parent <first> <last>          Add a parent to favorites
    unfav <favorite_id>                Remove a favorite
    contacts [--no-phones ...]         List contact options for favorites
    group-text                         Print a group text link for favorites
    group-email                        Print a group email link for favorites
    events [YYYY-MM | YYYY-MM-DD]      List calendar events
    download <dest> [--force]          Save the CSV export to a file
"""

import asyncio
import logging
import sys
from datetime import date, datetime
from pathlib import Path

from dotenv import load_dotenv


def _load_env():
    """Load .env from the project directory."""
    # Try the directory containing this file first, then walk up
    here = Path(__file__).resolve().parent
    for candidate in [here / ".env", here.parent / ".env", here.parent.parent / ".env"]:
        if candidate.exists():
            load_dotenv(candidate)
            return
    # Fallback: let dotenv search from cwd
    load_dotenv()


def _fail(message: str):
    print(f"Error: {message}", file=sys.stderr)
    sys.exit(1)


def _get_client():
    from . import config
    from .client import DirectoryClient

    source = config.csv_source()
    if not source:
        _fail(f"Missing directory source. Set {config.CSV_SOURCE_ENV} in the environment or in a .env file.")
    return DirectoryClient(source)


async def _load_directory():
    from .client import DirectoryLoadError

    client = _get_client()
    try:
        return await client.load_directory()
    except DirectoryLoadError as e:
        _fail(f"{e}. Please try again later.")
    finally:
        await client.close()


def _get_favorites():
    from . import config
    from .favorites import FavoritesStore, FileStorage

    return FavoritesStore(FileStorage(config.data_dir()))


async def cmd_search(args):
    from .formatting import format_student_line
    from .search import search_directory

    if not args:
        _fail("search query is required")
    query = " ".join(args)
    directory = await _load_directory()
    results = search_directory(query, directory.students)
    if not results.students and not results.parents:
        print(f"No matches for '{query}'.")
        return
    if results.students:
        print("Students:")
        for student in results.students:
            print(f"  {format_student_line(student)}")
    if results.parents:
        print("Parents:")
        for parent in results.parents:
            children = ", ".join(s.first_name or s.full_name for s in parent.students)
            print(f"  {parent.full_name} (parent of {children})")


async def cmd_grades(args):
    from .formatting import grade_label

    directory = await _load_directory()
    for grade in directory.grades_sorted():
        print(grade_label(grade))


async def cmd_teachers(args):
    from .formatting import format_teacher

    directory = await _load_directory()
    teachers = directory.teachers_for_grade(args[0]) if args else directory.all_teachers()
    if not teachers:
        print("No teachers found.")
        return
    for teacher in teachers:
        print(format_teacher(teacher))


async def cmd_class(args):
    from .formatting import format_student_line

    if len(args) < 2:
        _fail("requires <teacher_first_name> <teacher_last_name> [grade]")
    first_name, last_name = args[0], args[1]
    grade = args[2] if len(args) > 2 else None
    directory = await _load_directory()
    students = directory.students_for_teacher(first_name, last_name, grade)
    if not students:
        print(f"No students found for {first_name} {last_name}.")
        return
    grade = grade or directory.grade_for_teacher(first_name, last_name)
    print(f"{first_name} {last_name} ({grade}) - {len(students)} students:")
    for student in students:
        print(f"  {format_student_line(student)}")


async def cmd_student(args):
    from .formatting import format_student, format_student_line

    if not args:
        _fail("student_id is required")
    directory = await _load_directory()
    student = directory.get_student(args[0])
    if student is None:
        _fail(f"Student not found: {args[0]}")
    print(format_student(student))
    siblings = directory.siblings_of(student)
    if siblings:
        print()
        print("Siblings:")
        for sibling in siblings:
            print(f"  {format_student_line(sibling)}")


async def cmd_parent(args):
    from .formatting import format_parent

    if len(args) < 2:
        _fail("requires <first_name> <last_name>")
    directory = await _load_directory()
    parent = directory.resolve_parent(args[0], args[1])
    if parent is None:
        _fail(f"Parent not found: {args[0]} {args[1]}")
    print(format_parent(parent))


async def cmd_siblings(args):
    from .formatting import format_student_line

    if not args:
        _fail("student_id is required")
    directory = await _load_directory()
    student = directory.get_student(args[0])
    if student is None:
        _fail(f"Student not found: {args[0]}")
    siblings = directory.siblings_of(student)
    if not siblings:
        print(f"No siblings found for {student.full_name}.")
        return
    for sibling in siblings:
        print(format_student_line(sibling))


async def cmd_favorites(args):
    from .formatting import format_favorite

    store = _get_favorites()
    if not len(store):
        print("No favorites yet.")
        return
    for item in store.items:
        print(format_favorite(item))


async def cmd_fav_student(args):
    if not args:
        _fail("student_id is required")
    directory = await _load_directory()
    student = directory.get_student(args[0])
    if student is None:
        _fail(f"Student not found: {args[0]}")
    _get_favorites().add_student(student)
    print(f"{student.full_name} is in your favorites.")


async def cmd_fav_parent(args):
    if len(args) < 2:
        _fail("requires <first_name> <last_name>")
    directory = await _load_directory()
    parent = directory.resolve_parent(args[0], args[1])
    if parent is None:
        _fail(f"Parent not found: {args[0]} {args[1]}")
    _get_favorites().add_parent(parent)
    print(f"{parent.full_name} is in your favorites.")


async def cmd_unfav(args):
    if not args:
        _fail("favorite_id is required")
    store = _get_favorites()
    if args[0] not in store:
        print(f"No favorite with ID {args[0]}.")
        return
    store.remove(args[0])
    print(f"Removed {args[0]} from favorites.")


def _parse_filters(args):
    from .models import ContactFilters

    flags = set(args)
    unknown = flags - {"--no-phones", "--no-second-phones", "--no-emails", "--no-addresses"}
    if unknown:
        _fail(f"Unknown option(s): {', '.join(sorted(unknown))}")
    return ContactFilters(
        primary_phones="--no-phones" not in flags,
        secondary_phones="--no-second-phones" not in flags,
        emails="--no-emails" not in flags,
        addresses="--no-addresses" not in flags,
    )


async def cmd_contacts(args):
    from .favorites import derive_contact_options, group_by_address
    from .formatting import format_contact_option

    filters = _parse_filters(args)
    options = derive_contact_options(_get_favorites().items, filters)
    if not options:
        print("No contact options. Add favorites first.")
        return
    for group in group_by_address(options):
        print(group.address or "(no address)")
        for option in group.contacts:
            print(f"  {format_contact_option(option)}")
        print()


async def _group_link(channel):
    from .favorites import build_group_message_target, derive_contact_options, select_all

    options = select_all(o for o in derive_contact_options(_get_favorites().items) if o.type == channel)
    link = build_group_message_target(options, channel)
    if link is None:
        print(f"No favorites have a {channel} on file.")
        return
    print(link)


async def cmd_group_text(args):
    await _group_link("phone")


async def cmd_group_email(args):
    await _group_link("email")


async def cmd_events(args):
    from . import config
    from .client import DirectoryClient
    from .events import events_for_day, events_for_month
    from .formatting import format_event

    url = config.calendar_url()
    if not url:
        _fail(f"No calendar configured. Set {config.CALENDAR_URL_ENV}.")

    single_day = False
    target = date.today()
    if args:
        try:
            if len(args[0]) > 7:
                target, single_day = datetime.strptime(args[0], "%Y-%m-%d").date(), True
            else:
                target = datetime.strptime(args[0], "%Y-%m").date()
        except ValueError:
            _fail(f"Could not parse date: {args[0]}")

    client = DirectoryClient(url)
    try:
        events = await client.fetch_calendar(url)
    finally:
        await client.close()

    selected = events_for_day(events, target) if single_day else events_for_month(events, target)
    if not selected:
        print("No events found.")
        return
    for event in sorted(selected, key=lambda e: e.start):
        print(format_event(event))


async def cmd_download(args):
    from .client import DirectoryLoadError

    if not args:
        _fail("destination path is required")
    client = _get_client()
    try:
        written = await client.download(args[0], overwrite="--force" in args[1:])
    except DirectoryLoadError as e:
        _fail(str(e))
    finally:
        await client.close()
    if written:
        print(f"Download completed: {args[0]}")
    else:
        print(f"Data file already exists at {args[0]} (use --force to overwrite)")


COMMANDS = {
    "search": cmd_search,
    "grades": cmd_grades,
    "teachers": cmd_teachers,
    "class": cmd_class,
    "student": cmd_student,
    "parent": cmd_parent,
    "siblings": cmd_siblings,
    "favorites": cmd_favorites,
    "fav-student": cmd_fav_student,
    "fav-parent": cmd_fav_parent,
    "unfav": cmd_unfav,
    "contacts": cmd_contacts,
    "group-text": cmd_group_text,
    "group-email": cmd_group_email,
    "events": cmd_events,
    "download": cmd_download,
}

USAGE = """\
Usage: python -m school_directory.cli <command> [options]

Commands:
  search <query>                     Search students and parents by name
  grades                             List grades
  teachers [grade]                   List teachers (all, or for one grade)
  class <first> <last> [grade]       List a teacher's students
  student <id>                       Show a student with guardians and siblings
  parent <first> <last>              Show a parent and their students
  siblings <id>                      List a student's siblings
  favorites                          List favorites
  fav-student <id>                   Add a student to favorites
  fav-parent <first> <last>          Add a parent to favorites
  unfav <favorite_id>                Remove a favorite
  contacts [--no-phones] [--no-second-phones] [--no-emails] [--no-addresses]
                                     List contact options for favorites
  group-text                         Print a group text link for favorites
  group-email                        Print a group email link for favorites
  events [YYYY-MM | YYYY-MM-DD]      List calendar events (default: this month)
  download <dest> [--force]          Save the CSV export to a file

Environment: DIRECTORY_CSV_SOURCE (URL or path), DIRECTORY_DATA_DIR,
DIRECTORY_CALENDAR_URL, DIRECTORY_LOG_LEVEL"""


def main():
    _load_env()

    from . import config

    logging.basicConfig(level=config.log_level(), format="%(levelname)s %(name)s: %(message)s")

    args = sys.argv[1:]
    if not args or args[0] in ("-h", "--help", "help"):
        print(USAGE)
        sys.exit(0)

    command = args[0]
    if command not in COMMANDS:
        print(f"Error: Unknown command '{command}'", file=sys.stderr)
        print(USAGE, file=sys.stderr)
        sys.exit(1)

    asyncio.run(COMMANDS[command](args[1:]))


if __name__ == "__main__":
    main()
