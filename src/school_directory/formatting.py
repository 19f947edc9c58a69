"""Plain-text rendering shared by the CLI and the MCP server."""

from .directory import guardians_of, secondary_address, student_address
from .events import format_event_time
from .models import CalendarEvent, ContactOption, FavoriteEntry, ParentIdentity, StudentRecord, TeacherInfo


def grade_label(grade: str) -> str:
    return "Kindergarten" if grade == "K" else f"Grade {grade}"


def format_student_line(student: StudentRecord) -> str:
    """One-line summary used in lists."""
    return f"[{student.id}] {student.display_name} - {student.grade} ({student.teacher_first_name} {student.teacher_last_name})"


def format_teacher(teacher: TeacherInfo) -> str:
    return f"{teacher.full_name} - {teacher.grade} (Room {teacher.room})"


def format_student(student: StudentRecord) -> str:
    """Full student card with households and guardian contacts."""
    lines = [
        student.display_name,
        f"{student.grade} | {student.teacher_first_name} {student.teacher_last_name} | Room {student.teacher_room}",
    ]
    if student.student_email:
        lines.append(f"Email: {student.student_email}")
    if student.phone:
        lines.append(f"Phone: {student.phone}")

    households = [("Primary address", student_address(student), "f1")]
    second = secondary_address(student)
    if second:
        households.append(("Secondary address", second, "f2"))

    guardians = guardians_of(student)
    for label, address, prefix in households:
        lines.extend(["", f"{label}: {address}"])
        for guardian in guardians:
            if not guardian.slot.startswith(prefix):
                continue
            lines.append(f"  {guardian.first_name} {guardian.last_name}")
            if guardian.phone:
                lines.append(f"    Phone: {guardian.phone}")
            if guardian.second_phone:
                lines.append(f"    2nd phone: {guardian.second_phone}")
            if guardian.email:
                lines.append(f"    Email: {guardian.email}")
    return "\n".join(lines)


def format_parent(parent: ParentIdentity) -> str:
    lines = [parent.full_name]
    if parent.phone:
        lines.append(f"Phone: {parent.phone}")
    if parent.second_phone:
        lines.append(f"2nd phone: {parent.second_phone}")
    if parent.email:
        lines.append(f"Email: {parent.email}")
    lines.extend(["", "Students:"])
    lines.extend(f"  {format_student_line(s)}" for s in parent.students)
    return "\n".join(lines)


def format_favorite(entry: FavoriteEntry) -> str:
    if entry.type == "student" and entry.student is not None:
        return f"[{entry.id}] Student: {entry.student.display_name}"
    if entry.parent is not None:
        return f"[{entry.id}] Parent: {entry.parent.full_name} ({len(entry.parent.students)} students)"
    return f"[{entry.id}] {entry.type}"


def format_contact_option(option: ContactOption) -> str:
    mark = "x" if option.selected else " "
    return f"[{mark}] {option.name}: {option.value}"


def format_event(event: CalendarEvent) -> str:
    parts = [f"{event.start.strftime('%Y-%m-%d')} {format_event_time(event)}: {event.title}"]
    if event.location:
        parts.append(f"@ {event.location}")
    return " ".join(parts)
