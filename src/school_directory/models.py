"""Data models for the school directory."""

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, Optional

# Guardian slots in the order they are scanned: household 1 guardians, then household 2.
GUARDIAN_SLOTS = ("f1g1", "f1g2", "f2g1", "f2g2")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


@dataclass(frozen=True)
class StudentRecord:
    """A single student row from the directory export.

    Every field except ``id`` comes straight from the CSV; empty cells are None.
    """

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    nickname: Optional[str] = None
    grade: Optional[str] = None
    gender: Optional[str] = None
    student_email: Optional[str] = None
    phone: Optional[str] = None

    teacher_first_name: Optional[str] = None
    teacher_last_name: Optional[str] = None
    teacher_room: Optional[str] = None

    # Primary household
    f1_address_line1: Optional[str] = None
    f1_city: Optional[str] = None
    f1_state: Optional[str] = None
    f1_zip: Optional[str] = None

    f1g1_first_name: Optional[str] = None
    f1g1_last_name: Optional[str] = None
    f1g1_phone: Optional[str] = None
    f1g1_second_phone: Optional[str] = None
    f1g1_email: Optional[str] = None

    f1g2_first_name: Optional[str] = None
    f1g2_last_name: Optional[str] = None
    f1g2_phone: Optional[str] = None
    f1g2_second_phone: Optional[str] = None
    f1g2_email: Optional[str] = None

    # Secondary household (optional)
    f2_address_line1: Optional[str] = None
    f2_city: Optional[str] = None
    f2_state: Optional[str] = None
    f2_zip: Optional[str] = None

    f2g1_first_name: Optional[str] = None
    f2g1_last_name: Optional[str] = None
    f2g1_phone: Optional[str] = None
    f2g1_second_phone: Optional[str] = None
    f2g1_email: Optional[str] = None

    f2g2_first_name: Optional[str] = None
    f2g2_last_name: Optional[str] = None
    f2g2_phone: Optional[str] = None
    f2g2_second_phone: Optional[str] = None
    f2g2_email: Optional[str] = None

    @property
    def full_name(self) -> str:
        """First and last name; a missing part is left out."""
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    @property
    def display_name(self) -> str:
        """Full name with the nickname quoted between first and last name."""
        nickname = f'"{self.nickname}"' if self.nickname else None
        return " ".join(part for part in (self.first_name, nickname, self.last_name) if part)

    @property
    def has_secondary_address(self) -> bool:
        return bool(self.f2_address_line1)

    def guardian_name(self, slot: str) -> tuple[Optional[str], Optional[str]]:
        """Return the (first, last) name pair stored in a guardian slot."""
        return getattr(self, f"{slot}_first_name"), getattr(self, f"{slot}_last_name")

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the camelCase keys of the persisted favorites format."""
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StudentRecord":
        known = {_camel(f.name): f.name for f in fields(cls)}
        return cls(**{known[key]: value for key, value in data.items() if key in known})


@dataclass(frozen=True)
class GuardianContact:
    """A filled guardian slot on a student record."""

    slot: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    second_phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


@dataclass
class ParentIdentity:
    """A parent derived from guardian slots sharing the same name pair."""

    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    second_phone: Optional[str] = None
    students: list[StudentRecord] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "secondPhone": self.second_phone,
            "students": [student.to_dict() for student in self.students],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ParentIdentity":
        return cls(
            id=data["id"],
            first_name=data.get("firstName") or "",
            last_name=data.get("lastName") or "",
            email=data.get("email"),
            phone=data.get("phone"),
            second_phone=data.get("secondPhone"),
            students=[StudentRecord.from_dict(s) for s in data.get("students") or []],
        )


@dataclass(frozen=True)
class TeacherInfo:
    """A teacher as seen through the class lists."""

    first_name: Optional[str]
    last_name: Optional[str]
    room: Optional[str] = None
    grade: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass(frozen=True)
class ContactOption:
    """A selectable contact channel derived from a favorite."""

    id: str
    name: str
    type: str  # "phone", "email" or "address"
    value: str
    selected: bool = False
    phone_type: Optional[str] = None  # "primary" or "secondary"
    address: Optional[str] = None
    parent_id: Optional[str] = None
    student_id: Optional[str] = None


@dataclass(frozen=True)
class ContactFilters:
    """Which contact channels to expand favorites into."""

    primary_phones: bool = True
    secondary_phones: bool = True
    emails: bool = True
    addresses: bool = True


@dataclass
class AddressGroup:
    """Entries sharing a byte-identical formatted address."""

    address: str
    contacts: list[Any] = field(default_factory=list)


@dataclass
class FavoriteEntry:
    """A favorited student or parent snapshot."""

    id: str
    type: str  # "student" or "parent"
    date_added: str
    student_id: Optional[str] = None
    student_name: Optional[str] = None
    student: Optional[StudentRecord] = None
    parent: Optional[ParentIdentity] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "type": self.type}
        if self.student_id is not None:
            data["studentId"] = self.student_id
        if self.student_name is not None:
            data["studentName"] = self.student_name
        if self.student is not None:
            data["student"] = self.student.to_dict()
        if self.parent is not None:
            data["parent"] = self.parent.to_dict()
        data["dateAdded"] = self.date_added
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FavoriteEntry":
        student = data.get("student")
        parent = data.get("parent")
        return cls(
            id=data["id"],
            type=data["type"],
            date_added=data.get("dateAdded", ""),
            student_id=data.get("studentId"),
            student_name=data.get("studentName"),
            student=StudentRecord.from_dict(student) if student else None,
            parent=ParentIdentity.from_dict(parent) if parent else None,
        )


@dataclass
class FavoritesState:
    """The persisted favorites collection."""

    items: list[FavoriteEntry] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"items": [item.to_dict() for item in self.items]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FavoritesState":
        return cls(items=[FavoriteEntry.from_dict(item) for item in data.get("items", [])])


@dataclass
class CalendarEvent:
    """A school calendar event."""

    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    description: Optional[str] = None
    location: Optional[str] = None
