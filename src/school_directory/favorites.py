"""Favorites persistence and contact expansion for group messages."""

import json
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional, Protocol, Union

from .config import FAVORITES_STORAGE_KEY
from .directory import address_groups_for, guardians_of, parent_address, secondary_address, student_address
from .models import (
    AddressGroup,
    ContactFilters,
    ContactOption,
    FavoriteEntry,
    FavoritesState,
    ParentIdentity,
    StudentRecord,
)

logger = logging.getLogger(__name__)


class Storage(Protocol):
    """Key/value string storage the favorites store persists into."""

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage, used for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage:
    """Stores each key as ``<directory>/<key>.json``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)
        self._path(key).write_text(value, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


def _timestamp() -> str:
    """Current UTC time as ISO 8601 with milliseconds, e.g. 2025-02-10T18:04:05.123Z."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"


def student_favorite_id(student_id: str) -> str:
    return f"student-fav-{student_id}"


def parent_favorite_id(parent_id: str) -> str:
    return f"parent-fav-{parent_id}"


class FavoritesStore:
    """The user's favorited students and parents.

    Every mutation re-reads storage, applies the change and writes it back,
    so stores in other processes sharing the same storage are not clobbered.
    A failed write is logged and the in-memory change stands. There is no
    locking: the last writer wins.
    """

    def __init__(self, storage: Storage, key: str = FAVORITES_STORAGE_KEY):
        self.storage = storage
        self.key = key
        self._state = self._load()

    def _load(self) -> FavoritesState:
        try:
            raw = self.storage.get(self.key)
            if raw:
                return FavoritesState.from_dict(json.loads(raw))
        except Exception as e:
            logger.error("Error loading favorites: %s", e)
        return FavoritesState()

    def _save(self) -> None:
        try:
            self.storage.set(self.key, json.dumps(self._state.to_dict()))
        except Exception as e:
            logger.error("Error saving favorites: %s", e)

    def reload(self) -> FavoritesState:
        """Replace the in-memory state with what storage currently holds."""
        self._state = self._load()
        return self._state

    @property
    def state(self) -> FavoritesState:
        return self._state

    @property
    def items(self) -> list[FavoriteEntry]:
        return list(self._state.items)

    def __len__(self) -> int:
        return len(self._state.items)

    def __contains__(self, favorite_id: object) -> bool:
        return any(item.id == favorite_id for item in self._state.items)

    def add_student(self, student: StudentRecord) -> FavoritesState:
        """Favorite a student; a student already favorited is left untouched."""
        self.reload()
        if self.is_student_favorited(student.id):
            return self._state

        entry = FavoriteEntry(
            id=student_favorite_id(student.id),
            type="student",
            date_added=_timestamp(),
            student_id=student.id,
            student_name=student.full_name,
            student=student,
        )
        self._state = FavoritesState(items=[*self._state.items, entry])
        self._save()
        return self._state

    def add_parent(self, parent: ParentIdentity) -> FavoritesState:
        """Favorite a parent; a parent already favorited is left untouched."""
        self.reload()
        if self.is_parent_favorited(parent.id):
            return self._state

        entry = FavoriteEntry(
            id=parent_favorite_id(parent.id),
            type="parent",
            date_added=_timestamp(),
            parent=parent,
        )
        self._state = FavoritesState(items=[*self._state.items, entry])
        self._save()
        return self._state

    def remove(self, favorite_id: str) -> FavoritesState:
        """Remove a favorite by its entry id. Unknown ids are ignored."""
        self.reload()
        remaining = [item for item in self._state.items if item.id != favorite_id]
        if len(remaining) == len(self._state.items):
            return self._state

        self._state = FavoritesState(items=remaining)
        self._save()
        return self._state

    def is_student_favorited(self, student_id: str) -> bool:
        return any(item.type == "student" and item.student_id == student_id for item in self._state.items)

    def is_parent_favorited(self, parent_id: str) -> bool:
        return any(
            item.type == "parent" and item.parent is not None and item.parent.id == parent_id
            for item in self._state.items
        )


def _student_options(
    entry: FavoriteEntry, student: StudentRecord, filters: ContactFilters, seen_addresses: set[str]
) -> list[ContactOption]:
    options = []
    primary = student_address(student)

    if filters.addresses:
        if primary not in seen_addresses:
            seen_addresses.add(primary)
            options.append(
                ContactOption(
                    id=f"{entry.id}-address-primary",
                    name=f"{student.full_name}'s Address",
                    type="address",
                    value=primary,
                    selected=True,
                    student_id=student.id,
                )
            )

        secondary = secondary_address(student)
        if secondary and secondary != primary and secondary not in seen_addresses:
            seen_addresses.add(secondary)
            options.append(
                ContactOption(
                    id=f"{entry.id}-address-secondary",
                    name=f"{student.full_name}'s Secondary Address",
                    type="address",
                    value=secondary,
                    selected=False,
                    student_id=student.id,
                )
            )

    for guardian in guardians_of(student):
        name = f"{guardian.first_name} {guardian.last_name}"
        prefix = f"{entry.id}-{guardian.slot}"

        if guardian.phone and filters.primary_phones:
            options.append(
                ContactOption(
                    id=f"{prefix}-phone",
                    name=f"{name} ({student.first_name or student.full_name}'s parent)",
                    type="phone",
                    phone_type="primary",
                    value=guardian.phone,
                    address=guardian.address,
                )
            )
        if guardian.second_phone and filters.secondary_phones:
            options.append(
                ContactOption(
                    id=f"{prefix}-second-phone",
                    name=f"{name} (2nd phone)",
                    type="phone",
                    phone_type="secondary",
                    value=guardian.second_phone,
                    address=guardian.address,
                )
            )
        if guardian.email and filters.emails:
            options.append(
                ContactOption(
                    id=f"{prefix}-email",
                    name=f"{name} (email)",
                    type="email",
                    value=guardian.email,
                    address=guardian.address,
                )
            )

    return options


def _parent_options(
    entry: FavoriteEntry, parent: ParentIdentity, filters: ContactFilters, seen_addresses: set[str]
) -> list[ContactOption]:
    options = []
    address = parent_address(parent)

    if filters.addresses and address and address not in seen_addresses:
        seen_addresses.add(address)
        options.append(
            ContactOption(
                id=f"{entry.id}-address",
                name=f"{parent.full_name}'s Address",
                type="address",
                value=address,
                selected=True,
                parent_id=parent.id,
            )
        )

    if parent.phone and filters.primary_phones:
        options.append(
            ContactOption(
                id=f"{entry.id}-phone",
                name=parent.full_name,
                type="phone",
                phone_type="primary",
                value=parent.phone,
                address=address,
            )
        )
    if parent.second_phone and filters.secondary_phones:
        options.append(
            ContactOption(
                id=f"{entry.id}-second-phone",
                name=f"{parent.full_name} (2nd phone)",
                type="phone",
                phone_type="secondary",
                value=parent.second_phone,
                address=address,
            )
        )
    if parent.email and filters.emails:
        options.append(
            ContactOption(
                id=f"{entry.id}-email",
                name=f"{parent.full_name} (email)",
                type="email",
                value=parent.email,
                address=address,
            )
        )

    return options


def derive_contact_options(
    favorites: Iterable[FavoriteEntry], filters: Optional[ContactFilters] = None
) -> list[ContactOption]:
    """Expand favorites into selectable contact options.

    Each favorite's primary address starts selected; everything else starts
    unselected. An address already listed for an earlier favorite is not
    listed again.

    Args:
        favorites: Favorite entries in display order
        filters: Channels to include (all by default)

    Returns:
        Contact options in favorite order
    """
    filters = filters or ContactFilters()
    seen_addresses: set[str] = set()
    options: list[ContactOption] = []

    for entry in favorites:
        if entry.type == "student" and entry.student is not None:
            options.extend(_student_options(entry, entry.student, filters, seen_addresses))
        elif entry.type == "parent" and entry.parent is not None:
            options.extend(_parent_options(entry, entry.parent, filters, seen_addresses))

    return options


def group_by_address(options: Iterable[ContactOption]) -> list[AddressGroup]:
    """Group options under the address they belong to."""
    return address_groups_for(
        (option.value if option.type == "address" else option.address or "", option) for option in options
    )


def toggle_selection(options: Iterable[ContactOption], option_id: str) -> list[ContactOption]:
    return [replace(o, selected=not o.selected) if o.id == option_id else o for o in options]


def select_all(options: Iterable[ContactOption]) -> list[ContactOption]:
    return [replace(o, selected=True) for o in options]


def deselect_all(options: Iterable[ContactOption]) -> list[ContactOption]:
    return [replace(o, selected=False) for o in options]


def build_group_message_target(options: Iterable[ContactOption], channel: str) -> Optional[str]:
    """Build an ``sms:`` or ``mailto:`` link addressed to every selected contact.

    Args:
        options: Contact options; only selected ones of the channel's type are used
        channel: "phone" or "email"

    Returns:
        The link, or None when no option qualifies
    """
    if channel not in ("phone", "email"):
        raise ValueError(f"Unknown channel: {channel}")

    chosen = [o.value for o in options if o.selected and o.type == channel]
    if not chosen:
        return None

    if channel == "phone":
        return "sms:" + ",".join(re.sub(r"\D", "", value) for value in chosen)
    return "mailto:" + ",".join(chosen)
