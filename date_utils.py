"""
Date helpers for the weekly meal plan.
"""
from datetime import date, datetime, timedelta

WEEKDAY_SHORT_NAMES = {
    "de": ["Mo", "Di", "Mi", "Do", "Fr", "Sa", "So"],
    "en": ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"],
}

WEEK_LABELS = {
    "de": ("Diese Woche", "Nächste Woche"),
    "en": ("This week", "Next week"),
}


def parse_timestamp(value):
    """Parses a date or ISO timestamp string from the API into a date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(value.replace("Z", "+00:00")).date()


def get_adjusted_day(day):
    """Returns the following Monday for days on a weekend, the day itself otherwise."""
    if day.weekday() >= 5:
        return day + timedelta(days=7 - day.weekday())
    return day


def get_monday_of_week(day):
    return day - timedelta(days=day.weekday())


def add_week(day, delta):
    return day + timedelta(weeks=delta)


def get_week(day):
    """Returns the Monday starting the week of the given day and the Monday after it."""
    start = get_monday_of_week(day)
    return start, add_week(start, 1)


def get_friendly_week(day, today=None, locale="en"):
    """Describes the week containing day relative to today."""
    if today is None:
        today = date.today()
    labels = WEEK_LABELS.get(locale, WEEK_LABELS["en"])

    curr_start, curr_end = get_week(today)
    next_start, next_end = get_week(add_week(today, 1))

    if curr_start <= day < curr_end:
        return labels[0]
    if next_start <= day < next_end:
        return labels[1]

    start, end = get_week(day)
    friday = end - timedelta(days=3)
    return f"{start.strftime('%d.%m.')} - {friday.strftime('%d.%m.')}"


def weekday_tab_label(day, locale="en"):
    """Short weekday name and date shown on a day tab, e.g. 'Mo 13.05.'."""
    names = WEEKDAY_SHORT_NAMES.get(locale, WEEKDAY_SHORT_NAMES["en"])
    return f"{names[day.weekday()]} {day.strftime('%d.%m.')}"
