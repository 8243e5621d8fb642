"""Birthday, anniversary, and memorial events projected onto a calendar year."""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .models import Donor


EVENT_TYPES = ("birthday", "anniversary", "memorial")


@dataclass(frozen=True)
class CalendarEvent:
    id: str
    donor_id: int
    donor_name: str
    date: date
    type: str
    description: str


def project_to_year(value: date, year: int) -> date:
    """Keep month and day, replace the year. Feb 29 falls back to Feb 28."""

    if value.month == 2 and value.day == 29 and not calendar.isleap(year):
        return date(year, 2, 28)
    return value.replace(year=year)


def build_events(donors: Iterable[Donor], year: int | None = None) -> list[CalendarEvent]:
    target_year = year if year is not None else date.today().year
    events: list[CalendarEvent] = []

    for donor in donors:
        if donor.birth_date is not None:
            events.append(
                CalendarEvent(
                    id=f"b-{donor.id}",
                    donor_id=donor.id,
                    donor_name=donor.name,
                    date=project_to_year(donor.birth_date, target_year),
                    type="birthday",
                    description=f"{donor.name}'s Birthday",
                )
            )

        if donor.anniversary_date is not None:
            events.append(
                CalendarEvent(
                    id=f"a-{donor.id}",
                    donor_id=donor.id,
                    donor_name=donor.name,
                    date=project_to_year(donor.anniversary_date, target_year),
                    type="anniversary",
                    description=f"{donor.name}'s Anniversary",
                )
            )

        for index, memorial in enumerate(donor.memorial_dates):
            if memorial.date is None:
                continue
            events.append(
                CalendarEvent(
                    id=f"m-{donor.id}-{index}",
                    donor_id=donor.id,
                    donor_name=donor.name,
                    date=project_to_year(memorial.date, target_year),
                    type="memorial",
                    description=f"{memorial.tag or 'Memorial'} for {donor.name}",
                )
            )

    return events


class EventCalendar:
    """Events indexed by day for calendar-cell badges and day lookups."""

    def __init__(self, events: Iterable[CalendarEvent]) -> None:
        self._by_day: dict[date, list[CalendarEvent]] = {}
        for event in events:
            self._by_day.setdefault(event.date, []).append(event)

    @classmethod
    def for_donors(cls, donors: Iterable[Donor], year: int | None = None) -> "EventCalendar":
        return cls(build_events(donors, year=year))

    def __len__(self) -> int:
        return sum(len(events) for events in self._by_day.values())

    def events_on_date(self, day: date) -> list[CalendarEvent]:
        return list(self._by_day.get(day, []))

    def has_events(self, day: date) -> bool:
        return day in self._by_day

    def upcoming(self, today: date | None = None, days: int = 30) -> list[CalendarEvent]:
        anchor = today or date.today()
        last_day = anchor + timedelta(days=days)
        found: list[CalendarEvent] = []
        for day in sorted(self._by_day):
            if anchor <= day <= last_day:
                found.extend(self._by_day[day])
        return found

    def month_grid(self, year: int, month: int) -> list[list[dict | None]]:
        """Sunday-first week rows; ``None`` pads days outside the month."""

        weeks: list[list[dict | None]] = []
        for week in calendar.Calendar(firstweekday=calendar.SUNDAY).monthdatescalendar(year, month):
            row: list[dict | None] = []
            for day in week:
                if day.month != month:
                    row.append(None)
                    continue
                row.append({"date": day, "event_count": len(self._by_day.get(day, []))})
            weeks.append(row)
        return weeks


def upcoming_events(donors: Iterable[Donor], today: date | None = None, days: int = 30) -> list[CalendarEvent]:
    """Events in ``[today, today + days]``, crossing into the next year when needed."""

    anchor = today or date.today()
    last_day = anchor + timedelta(days=days)
    people = list(donors)
    events: list[CalendarEvent] = []
    for year in range(anchor.year, last_day.year + 1):
        events.extend(build_events(people, year=year))
    return EventCalendar(events).upcoming(today=anchor, days=days)
