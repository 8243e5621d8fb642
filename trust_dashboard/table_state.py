"""Immutable view state for the donor table and the recipient picker.

Each change produces a new state object; nothing here is mutated in place, so
the Streamlit session can hold these values and swap them on every action.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Iterable, Sequence

from .models import Donor


SORTABLE_COLUMNS = ("name", "email", "phone", "type", "status", "created_at")


def matches_search(donor: Donor, query: str) -> bool:
    needle = query.strip().lower()
    if not needle:
        return True
    return needle in donor.name.lower() or needle in (donor.email or "").lower()


def _sort_value(donor: Donor, column: str) -> Any:
    value = getattr(donor, column, None)
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value.lower()
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class DonorTableState:
    search_query: str = ""
    sort_column: str | None = None
    ascending: bool = True

    def with_search(self, query: str) -> "DonorTableState":
        return replace(self, search_query=query)

    def toggle_sort(self, column: str) -> "DonorTableState":
        if column not in SORTABLE_COLUMNS:
            raise ValueError(f"Cannot sort donors by {column!r}.")
        if column == self.sort_column:
            return replace(self, ascending=not self.ascending)
        return replace(self, sort_column=column, ascending=True)

    def apply(self, donors: Iterable[Donor]) -> list[Donor]:
        visible = [donor for donor in donors if matches_search(donor, self.search_query)]
        if self.sort_column is None:
            return visible

        column = self.sort_column
        present = [donor for donor in visible if _sort_value(donor, column) is not None]
        # Rows without a value stay at the bottom in either direction.
        missing = [donor for donor in visible if _sort_value(donor, column) is None]
        present.sort(key=lambda donor: _sort_value(donor, column), reverse=not self.ascending)
        return present + missing


def has_channel_contact(donor: Donor, channel: str) -> bool:
    if channel == "Email":
        return bool(donor.email)
    return bool(donor.phone)


def eligible_recipients(donors: Iterable[Donor], channel: str, query: str = "") -> list[Donor]:
    needle = query.strip().lower()
    found: list[Donor] = []
    for donor in donors:
        if not has_channel_contact(donor, channel):
            continue
        if needle and not (
            needle in donor.name.lower()
            or needle in (donor.email or "").lower()
            or needle in (donor.phone or "")
        ):
            continue
        found.append(donor)
    return found


@dataclass(frozen=True)
class RecipientSelection:
    selected: frozenset[int] = frozenset()

    def __contains__(self, donor_id: object) -> bool:
        return donor_id in self.selected

    def __len__(self) -> int:
        return len(self.selected)

    def toggle(self, donor_id: int) -> "RecipientSelection":
        if donor_id in self.selected:
            return RecipientSelection(self.selected - {donor_id})
        return RecipientSelection(self.selected | {donor_id})

    def all_selected(self, donor_ids: Sequence[int]) -> bool:
        return bool(donor_ids) and all(donor_id in self.selected for donor_id in donor_ids)

    def toggle_all(self, donor_ids: Sequence[int]) -> "RecipientSelection":
        if self.all_selected(donor_ids):
            return RecipientSelection(self.selected - set(donor_ids))
        return RecipientSelection(self.selected | set(donor_ids))

    def clear(self) -> "RecipientSelection":
        return RecipientSelection()

    def pick(self, donors: Iterable[Donor]) -> list[Donor]:
        return [donor for donor in donors if donor.id in self.selected]
