"""
Рабочий календарь магазина: часы работы на дату и сетка слотов
"""
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable, List, Optional

from ..errors import ValidationError
from .shop_config import WEEKDAY_KEYS, WEEKDAY_NAMES, WeeklySchedule, is_valid_date, is_valid_time

# Причины закрытия дня
CLOSED_ONE_OFF = "one_off_closure"
CLOSED_WEEKLY = "weekly_closure"


@dataclass(frozen=True)
class DayHours:
    """Результат разрешения календаря на одну дату"""
    closed: bool
    open: Optional[time] = None
    close: Optional[time] = None
    reason: Optional[str] = None
    message: Optional[str] = None


def time_to_minutes(value) -> int:
    """time или "HH:MM" -> минуты от полуночи"""
    if isinstance(value, str):
        h, m = map(int, value.split(":"))
        return h * 60 + m
    return value.hour * 60 + value.minute


def minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def parse_date(value: str, field: str = "date") -> date:
    """YYYY-MM-DD -> date (дата настенного календаря, без часовых поясов)"""
    if not is_valid_date(value):
        raise ValidationError("Неверный формат даты. Используйте YYYY-MM-DD", field=field)
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_time(value: str, field: str = "time") -> time:
    """HH:MM (24 часа) -> time"""
    if not is_valid_time(value):
        raise ValidationError("Неверный формат времени. Используйте HH:MM", field=field)
    return datetime.strptime(value, "%H:%M").time()


def weekday_index(target_date: date) -> int:
    """0=Вс ... 6=Сб"""
    return (target_date.weekday() + 1) % 7


def resolve_day(schedule: WeeklySchedule, closed_dates: Iterable[str], target_date: date) -> DayHours:
    """
    Часы работы на конкретную дату.
    Разовый выходной важнее недельного расписания.
    """
    if target_date.strftime("%Y-%m-%d") in set(closed_dates):
        return DayHours(closed=True, reason=CLOSED_ONE_OFF, message="Временный выходной")

    index = weekday_index(target_date)
    day = schedule.for_weekday(index)
    if day.closed:
        day_name = WEEKDAY_NAMES[WEEKDAY_KEYS[index]]
        return DayHours(
            closed=True,
            reason=CLOSED_WEEKLY,
            message=f"Постоянный выходной ({day_name})"
        )

    return DayHours(
        closed=False,
        open=datetime.strptime(day.open, "%H:%M").time(),
        close=datetime.strptime(day.close, "%H:%M").time()
    )


def generate_time_slots(start: time, end: time, interval_minutes: int = 30) -> List[time]:
    """
    Начала слотов от открытия с шагом interval_minutes.
    Слот с началом >= закрытия не выдаётся; длительность услуги здесь не учитывается.
    """
    slots = []
    current = time_to_minutes(start)
    end_minutes = time_to_minutes(end)

    while current < end_minutes:
        slots.append(minutes_to_time(current))
        current += interval_minutes

    return slots
