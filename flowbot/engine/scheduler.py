import calendar
import logging
from datetime import date
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

MONTHS = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]
DAY_LABELS = ["Mo", "Tu", "We", "Th", "Fr", "Sa", "Su"]

TIME_SLOTS = [
    "10:00 AM", "11:00 AM", "12:00 PM", "1:00 PM", "2:00 PM", "3:00 PM", "4:00 PM",
]

TIMEZONES = {
    "UTC+05:30": "Asia/Calcutta",
    "UTC-08:00": "America/Los_Angeles",
    "UTC-05:00": "America/New_York",
    "UTC+00:00": "Europe/London",
}
DEFAULT_TIMEZONE = "UTC+05:30"
MEETING_DURATION_MINUTES = 60

# Номера дней недели, недоступные в чётную и нечётную неделю месяца
EVEN_WEEK_BLOCKED = frozenset({calendar.MONDAY, calendar.WEDNESDAY})
ODD_WEEK_BLOCKED = frozenset({calendar.TUESDAY, calendar.THURSDAY})


class InterviewScheduler:
    """Выбор даты, времени и часового пояса для интервью."""

    def __init__(self, today: Optional[date] = None):
        today = today or date.today()
        self.displayed_month = today.month
        self.displayed_year = today.year
        self.selected_date: Optional[date] = None
        self.selected_time: Optional[str] = None
        self.timezone = DEFAULT_TIMEZONE

    @property
    def month_title(self) -> str:
        return f"{MONTHS[self.displayed_month - 1]} {self.displayed_year}"

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.displayed_year, self.displayed_month)[1]

    def next_month(self) -> None:
        if self.displayed_month == 12:
            self.displayed_month = 1
            self.displayed_year += 1
        else:
            self.displayed_month += 1

    def previous_month(self) -> None:
        if self.displayed_month == 1:
            self.displayed_month = 12
            self.displayed_year -= 1
        else:
            self.displayed_month -= 1

    def is_available(self, day: int) -> bool:
        """Доступность дня отображаемого месяца по фиксированному правилу."""
        if not 1 <= day <= self.days_in_month:
            return False
        weekday = date(self.displayed_year, self.displayed_month, day).weekday()
        if weekday >= calendar.SATURDAY:
            return False
        week = (day - 1) // 7
        blocked = EVEN_WEEK_BLOCKED if week % 2 == 0 else ODD_WEEK_BLOCKED
        return weekday not in blocked

    def select_date(self, day: int) -> bool:
        if not self.is_available(day):
            logger.debug(f"Ignoring unavailable day {day} of {self.month_title}")
            return False
        self.selected_date = date(self.displayed_year, self.displayed_month, day)
        return True

    def select_time(self, slot: str) -> None:
        if slot not in TIME_SLOTS:
            raise ValueError(f"Unknown time slot: {slot}")
        self.selected_time = slot

    def set_timezone(self, timezone: str) -> None:
        if timezone not in TIMEZONES:
            raise ValueError(f"Unknown timezone: {timezone}")
        self.timezone = timezone

    def validate(self) -> Dict[str, str]:
        errors = {}
        if self.selected_date is None:
            errors["date"] = "Please select a date"
        if self.selected_time is None:
            errors["time"] = "Please select a time"
        return errors

    @property
    def is_complete(self) -> bool:
        return not self.validate()

    def is_selected(self, day: int) -> bool:
        return (self.selected_date is not None
                and self.selected_date.year == self.displayed_year
                and self.selected_date.month == self.displayed_month
                and self.selected_date.day == day)

    def calendar_weeks(self) -> List[List[int]]:
        """Сетка месяца с понедельника; 0 означает пустую клетку."""
        return calendar.Calendar(firstweekday=calendar.MONDAY).monthdayscalendar(
            self.displayed_year, self.displayed_month
        )

    def to_data(self) -> Dict[str, Optional[str]]:
        return {
            "selected_date": self.selected_date.isoformat() if self.selected_date else None,
            "selected_time": self.selected_time,
            "timezone": self.timezone,
            "timezone_name": TIMEZONES[self.timezone],
            "duration_minutes": str(MEETING_DURATION_MINUTES),
        }

    def restore(self, data: Dict[str, Optional[str]]) -> None:
        """Восстановление выбора; календарь открывается на выбранном месяце."""
        if data.get("selected_date"):
            self.selected_date = date.fromisoformat(data["selected_date"])
            self.displayed_month = self.selected_date.month
            self.displayed_year = self.selected_date.year
        if data.get("selected_time") in TIME_SLOTS:
            self.selected_time = data["selected_time"]
        if data.get("timezone") in TIMEZONES:
            self.timezone = data["timezone"]
