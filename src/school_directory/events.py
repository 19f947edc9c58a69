"""Helpers for showing calendar events by month and day."""

import calendar
from datetime import date, datetime, time

from .models import CalendarEvent


def _month_bounds(day: date) -> tuple[datetime, datetime]:
    last_day = calendar.monthrange(day.year, day.month)[1]
    start = datetime(day.year, day.month, 1)
    end = datetime.combine(date(day.year, day.month, last_day), time.max)
    return start, end


def _covers(event: CalendarEvent, day: date) -> bool:
    # All-day events span their whole date range; timed events belong to their start day.
    if event.all_day:
        return event.start.date() <= day <= event.end.date()
    return event.start.date() == day


def events_for_month(events: list[CalendarEvent], day: date) -> list[CalendarEvent]:
    """Events that start, end or span across the month containing ``day``."""
    month_start, month_end = _month_bounds(day)
    return [
        e
        for e in events
        if month_start <= e.start <= month_end
        or month_start <= e.end <= month_end
        or (e.start <= month_start and e.end >= month_end)
    ]


def events_for_day(events: list[CalendarEvent], day: date) -> list[CalendarEvent]:
    return [e for e in events if _covers(e, day)]


def days_with_events(events: list[CalendarEvent], day: date) -> list[date]:
    """Dates in the month of ``day`` that have at least one event."""
    month_events = events_for_month(events, day)
    last_day = calendar.monthrange(day.year, day.month)[1]
    days = [date(day.year, day.month, d) for d in range(1, last_day + 1)]
    return [d for d in days if any(_covers(e, d) for e in month_events)]


def _clock(moment: datetime) -> str:
    return moment.strftime("%I:%M %p").lstrip("0")


def format_event_time(event: CalendarEvent) -> str:
    if event.all_day:
        return "All day"
    return f"{_clock(event.start)} - {_clock(event.end)}"
