"""Name search over students and the parents derived from their guardian slots."""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .config import SEARCH_RESULT_LIMIT
from .directory import guardians_of, name_sort_key, parent_id_for, student_sort_key
from .models import ParentIdentity, StudentRecord


@dataclass
class SearchResults:
    """Matches for one query, each list sorted and capped."""

    students: list[StudentRecord] = field(default_factory=list)
    parents: list[ParentIdentity] = field(default_factory=list)


def _matches(term: str, first_name: str, last_name: str, nickname: Optional[str] = None) -> bool:
    """Check a lower-cased, trimmed term against one person's names.

    Matches when the term is a prefix of the first name, last name, nickname
    or "first last", or when the term is "<first name> <last name prefix>".
    """
    first = first_name.lower()
    last = last_name.lower()

    if first.startswith(term) or last.startswith(term) or f"{first} {last}".startswith(term):
        return True
    if nickname and nickname.lower().startswith(term):
        return True

    if " " in term:
        head, rest = term.split(" ", 1)
        if first == head and last.startswith(rest):
            return True
    return False


def search_directory(
    query: str, students: Iterable[StudentRecord], limit: int = SEARCH_RESULT_LIMIT
) -> SearchResults:
    """Find students and parents whose names match ``query``.

    A blank query returns empty results rather than everything. Parent
    contact details come from the first matching guardian slot; every student
    with a matching slot is attached to that parent.

    Args:
        query: Free text as typed
        students: Records to search
        limit: Maximum entries per result list

    Returns:
        SearchResults sorted by last name then first name
    """
    term = query.lower().strip()
    if not term:
        return SearchResults()

    student_matches: dict[str, StudentRecord] = {}
    parent_matches: dict[str, ParentIdentity] = {}

    for student in students:
        if student.id not in student_matches and _matches(
            term, student.first_name or "", student.last_name or "", student.nickname
        ):
            student_matches[student.id] = student

        for guardian in guardians_of(student):
            if not _matches(term, guardian.first_name, guardian.last_name):
                continue

            parent_id = parent_id_for(guardian.first_name, guardian.last_name)
            parent = parent_matches.get(parent_id)
            if parent is None:
                parent = ParentIdentity(
                    id=parent_id,
                    first_name=guardian.first_name,
                    last_name=guardian.last_name,
                    email=guardian.email,
                    phone=guardian.phone,
                    second_phone=guardian.second_phone,
                )
                parent_matches[parent_id] = parent

            if not any(s.id == student.id for s in parent.students):
                parent.students.append(student)

    sorted_students = sorted(student_matches.values(), key=student_sort_key)
    sorted_parents = sorted(
        parent_matches.values(),
        key=lambda p: (name_sort_key(p.last_name), name_sort_key(p.first_name)),
    )

    return SearchResults(students=sorted_students[:limit], parents=sorted_parents[:limit])
