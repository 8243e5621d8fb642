from __future__ import annotations

from datetime import date

from trust_dashboard.calendar_events import EventCalendar, build_events, project_to_year, upcoming_events
from trust_dashboard.models import Donor


def test_birthday_projects_onto_current_year() -> None:
    donor = Donor(id=1, name="Asha Rao", birth_date="1990-07-04")
    this_year = date.today().year

    events = build_events([donor])

    assert len(events) == 1
    event = events[0]
    assert event.id == "b-1"
    assert event.type == "birthday"
    assert event.date == date(this_year, 7, 4)
    assert event.description == "Asha Rao's Birthday"

    calendar = EventCalendar(events)
    assert calendar.events_on_date(date(this_year, 7, 4)) == [event]
    assert calendar.events_on_date(date(1990, 7, 4)) == []


def test_anniversary_and_memorial_events() -> None:
    donor = Donor(
        id=4,
        name="Kiran",
        anniversary_date="2010-11-20",
        memorial_dates=[
            {"tag": "Father's Remembrance", "date": "2015-01-09"},
            {"tag": "", "date": None},
            {"tag": "", "date": "2018-06-01"},
        ],
    )

    events = build_events([donor], year=2024)

    assert [event.id for event in events] == ["a-4", "m-4-0", "m-4-2"]
    assert events[0].description == "Kiran's Anniversary"
    assert events[1].description == "Father's Remembrance for Kiran"
    assert events[1].date == date(2024, 1, 9)
    assert events[2].description == "Memorial for Kiran"


def test_leap_day_falls_back_to_february_28() -> None:
    assert project_to_year(date(2000, 2, 29), 2023) == date(2023, 2, 28)
    assert project_to_year(date(2000, 2, 29), 2024) == date(2024, 2, 29)


def test_donor_without_dates_has_no_events() -> None:
    assert build_events([Donor(id=9, name="Nobody")], year=2024) == []


def test_upcoming_window_is_inclusive() -> None:
    donors = [
        Donor(id=1, name="A", birth_date="1980-03-01"),
        Donor(id=2, name="B", birth_date="1985-03-31"),
        Donor(id=3, name="C", birth_date="1970-04-01"),
    ]
    calendar = EventCalendar.for_donors(donors, year=2024)

    upcoming = calendar.upcoming(today=date(2024, 3, 1), days=30)

    assert [event.donor_id for event in upcoming] == [1, 2]
    assert len(calendar) == 3
    assert calendar.has_events(date(2024, 4, 1))


def test_month_grid_starts_on_sunday_and_counts_events() -> None:
    donors = [
        Donor(id=1, name="A", birth_date="1980-09-03"),
        Donor(id=2, name="B", anniversary_date="2001-09-03"),
    ]
    calendar = EventCalendar.for_donors(donors, year=2024)

    # September 2024 starts on a Sunday.
    grid = calendar.month_grid(2024, 9)

    assert grid[0][0] == {"date": date(2024, 9, 1), "event_count": 0}
    assert grid[0][2] == {"date": date(2024, 9, 3), "event_count": 2}
    assert all(len(week) == 7 for week in grid)
    assert grid[-1][-1] is None


def test_upcoming_events_cross_new_year() -> None:
    donors = [
        Donor(id=1, name="Asha", birth_date="1990-01-05"),
        Donor(id=2, name="Bala", birth_date="1985-12-28", anniversary_date="2010-03-01"),
    ]

    upcoming = upcoming_events(donors, today=date(2026, 12, 20), days=30)

    assert [(event.id, event.date) for event in upcoming] == [
        ("b-2", date(2026, 12, 28)),
        ("b-1", date(2027, 1, 5)),
    ]
    assert EventCalendar.for_donors(donors, year=2026).upcoming(today=date(2026, 12, 20), days=30)[0].id == "b-2"


def test_upcoming_events_window_is_inclusive() -> None:
    donor = Donor(id=3, name="Chitra", birth_date="1992-07-31")

    assert [event.date for event in upcoming_events([donor], today=date(2026, 7, 1), days=30)] == [date(2026, 7, 31)]
    assert upcoming_events([donor], today=date(2026, 8, 1), days=30) == []
