"""Derived views over the student records.

Parents, siblings and address groups are not present in the export; they are
inferred from repeated guardian names and formatted address strings. Matching
is literal: names and addresses are compared exactly as they appear, so two
different people with the same name are treated as one parent, and the same
address typed two different ways forms two groups.
"""

import logging
import unicodedata
from typing import Any, Iterable, Optional

from .models import (
    GUARDIAN_SLOTS,
    AddressGroup,
    GuardianContact,
    ParentIdentity,
    StudentRecord,
    TeacherInfo,
)

logger = logging.getLogger(__name__)


def name_sort_key(value: Optional[str]) -> tuple[str, str]:
    """Accent- and case-insensitive sort key with the raw value as tiebreaker."""
    value = value or ""
    decomposed = unicodedata.normalize("NFKD", value)
    base = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return base, value


def student_sort_key(student: StudentRecord) -> tuple:
    return name_sort_key(student.last_name), name_sort_key(student.first_name)


def _grade_key(grade: Optional[str]) -> tuple:
    if grade == "K":
        return 0, 0, ""
    try:
        return 1, int(grade), ""  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 2, 0, grade or ""


def sort_grades(grades: Iterable[str]) -> list[str]:
    """Order grades as K, then numerically; anything else goes last."""
    return sorted(grades, key=_grade_key)


def format_address(line: Optional[str], city: Optional[str], state: Optional[str], zip_code: Optional[str]) -> str:
    return f"{line}, {city}, {state} {zip_code}"


def student_address(student: StudentRecord) -> str:
    """Formatted primary address of a student."""
    return format_address(student.f1_address_line1, student.f1_city, student.f1_state, student.f1_zip)


def secondary_address(student: StudentRecord) -> Optional[str]:
    """Formatted secondary address, or None when the student has only one."""
    if not student.f2_address_line1:
        return None
    return format_address(student.f2_address_line1, student.f2_city, student.f2_state, student.f2_zip)


def parent_address(parent: ParentIdentity) -> str:
    """A parent's address is the primary address of their first student."""
    if parent.students:
        return student_address(parent.students[0])
    return ""


def address_groups_for(entries: Iterable[tuple[str, Any]]) -> list[AddressGroup]:
    """Group (formatted address, contact) pairs by exact address string.

    Groups come back in order of first appearance.
    """
    groups: dict[str, AddressGroup] = {}
    for address, contact in entries:
        if address not in groups:
            groups[address] = AddressGroup(address=address)
        groups[address].contacts.append(contact)
    return list(groups.values())


def guardians_of(student: StudentRecord) -> list[GuardianContact]:
    """Return the filled guardian slots of a student.

    A slot counts as filled when both first and last name are present.
    Household 2 guardians are anchored at the secondary address when there
    is one, otherwise at the primary address.
    """
    primary = student_address(student)
    secondary = secondary_address(student) or primary

    guardians = []
    for slot in GUARDIAN_SLOTS:
        first_name, last_name = student.guardian_name(slot)
        if not (first_name and last_name):
            continue
        guardians.append(
            GuardianContact(
                slot=slot,
                first_name=first_name,
                last_name=last_name,
                phone=getattr(student, f"{slot}_phone"),
                second_phone=getattr(student, f"{slot}_second_phone"),
                email=getattr(student, f"{slot}_email"),
                address=primary if slot.startswith("f1") else secondary,
            )
        )
    return guardians


def _guardian_pairs(student: StudentRecord) -> list[tuple[str, str]]:
    return [(g.first_name, g.last_name) for g in guardians_of(student)]


def parent_id_for(first_name: str, last_name: str) -> str:
    return f"{first_name}-{last_name}".lower()


class DirectoryIndex:
    """Read-only queries over one load of student records.

    Every query is a full scan of the record list; the index is rebuilt by
    constructing a new instance when the data is reloaded.
    """

    def __init__(self, students: Iterable[StudentRecord]):
        self._students = tuple(students)
        logger.debug("Directory index built over %d students", len(self._students))

    @property
    def students(self) -> tuple[StudentRecord, ...]:
        return self._students

    def __len__(self) -> int:
        return len(self._students)

    address_groups_for = staticmethod(address_groups_for)
    guardians_of = staticmethod(guardians_of)

    def get_student(self, student_id: str) -> Optional[StudentRecord]:
        for student in self._students:
            if student.id == student_id:
                return student
        return None

    def grades_sorted(self) -> list[str]:
        """Distinct grades, K first and then ascending."""
        return sort_grades({s.grade for s in self._students if s.grade})

    def students_for_grade(self, grade: str) -> list[StudentRecord]:
        return sorted((s for s in self._students if s.grade == grade), key=student_sort_key)

    def teachers_for_grade(self, grade: str) -> list[TeacherInfo]:
        """Distinct (first, last, room) teachers of a grade, ordered by last name."""
        teachers: dict[tuple, TeacherInfo] = {}
        for student in self._students:
            if student.grade != grade:
                continue
            key = (student.teacher_first_name, student.teacher_last_name, student.teacher_room)
            if key not in teachers:
                teachers[key] = TeacherInfo(
                    first_name=student.teacher_first_name,
                    last_name=student.teacher_last_name,
                    room=student.teacher_room,
                    grade=grade,
                )
        return sorted(teachers.values(), key=lambda t: name_sort_key(t.last_name))

    def all_teachers(self) -> list[TeacherInfo]:
        """One entry per teacher name, ordered by grade and then last name.

        Grade and room come from the first student found in the class.
        """
        teachers: dict[tuple, TeacherInfo] = {}
        for student in self._students:
            key = (student.teacher_first_name, student.teacher_last_name)
            if key not in teachers:
                teachers[key] = TeacherInfo(
                    first_name=student.teacher_first_name,
                    last_name=student.teacher_last_name,
                    room=student.teacher_room,
                    grade=student.grade,
                )
        return sorted(
            teachers.values(),
            key=lambda t: (_grade_key(t.grade), name_sort_key(t.last_name)),
        )

    def grade_for_teacher(self, first_name: str, last_name: str) -> Optional[str]:
        for student in self._students:
            if student.teacher_first_name == first_name and student.teacher_last_name == last_name:
                return student.grade
        return None

    def students_for_teacher(
        self, first_name: str, last_name: str, grade: Optional[str] = None
    ) -> list[StudentRecord]:
        """Students whose teacher name matches exactly, optionally within one grade."""
        matches = [
            s
            for s in self._students
            if s.teacher_first_name == first_name
            and s.teacher_last_name == last_name
            and (grade is None or s.grade == grade)
        ]
        return sorted(matches, key=student_sort_key)

    def resolve_parent(self, first_name: str, last_name: str) -> Optional[ParentIdentity]:
        """Build the parent identity for an exact, case-sensitive name pair.

        Contact details come from the first guardian slot found with that
        name. Students of every guardian with the same name are merged into
        one identity, even when the contact details disagree.
        """
        parent: Optional[ParentIdentity] = None
        seen: set[str] = set()

        for student in self._students:
            for guardian in guardians_of(student):
                if guardian.first_name != first_name or guardian.last_name != last_name:
                    continue
                if parent is None:
                    parent = ParentIdentity(
                        id=parent_id_for(first_name, last_name),
                        first_name=first_name,
                        last_name=last_name,
                        email=guardian.email,
                        phone=guardian.phone,
                        second_phone=guardian.second_phone,
                    )
                if student.id not in seen:
                    seen.add(student.id)
                    parent.students.append(student)

        return parent

    def siblings_of(self, student: StudentRecord) -> list[StudentRecord]:
        """Other students sharing any guardian name pair with ``student``."""
        pairs = set(_guardian_pairs(student))
        if not pairs:
            return []

        siblings = [
            other
            for other in self._students
            if other.id != student.id and pairs.intersection(_guardian_pairs(other))
        ]
        return sorted(siblings, key=student_sort_key)
