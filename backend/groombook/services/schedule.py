"""
Сервис для работы с расписанием и слотами
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import ValidationError
from ..models.shop import Shop
from .calendar import DayHours, format_time, generate_time_slots, resolve_day, time_to_minutes
from .clock import ShopClock, get_clock
from .conflicts import OccupiedRange, find_conflict, load_occupied_ranges
from .overrides import SlotOverrides, get_overrides
from .shop_config import load_closed_dates, load_weekly_schedule

settings = get_settings()

# Причины недоступности слота
REASON_PAST = "past"
REASON_BLOCKED = "blocked"
REASON_EXCEEDS_HOURS = "exceeds_business_hours"
REASON_BOOKED = "already_booked"
REASON_OFF_GRID = "off_grid"


@dataclass(frozen=True)
class SlotVerdict:
    """Доступность одного слота"""
    time: str
    available: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class Availability:
    """Доступность на дату: либо день закрыт целиком, либо список слотов"""
    date: date
    closed: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    open: Optional[time] = None
    close: Optional[time] = None
    slots: List[SlotVerdict] = field(default_factory=list)


def evaluate_slot(
    slot_time: time,
    target_date: date,
    close: time,
    overrides: SlotOverrides,
    ranges: List[OccupiedRange],
    duration: int,
    now: datetime
) -> SlotVerdict:
    """
    Вердикт по слоту открытого дня. Проверки идут по приоритету,
    срабатывает первая. Принудительное открытие снимает только пересечение
    с записями: прошедшее время и выход за часы работы оно не отменяет.
    """
    slot_str = format_time(slot_time)
    start = time_to_minutes(slot_time)

    if target_date < now.date() or (target_date == now.date() and slot_time <= now.time()):
        return SlotVerdict(slot_str, False, REASON_PAST)

    if slot_str in overrides.blocked:
        return SlotVerdict(slot_str, False, REASON_BLOCKED)

    if start + duration > time_to_minutes(close):
        return SlotVerdict(slot_str, False, REASON_EXCEEDS_HOURS)

    if slot_str not in overrides.force_open and find_conflict(ranges, start, duration):
        return SlotVerdict(slot_str, False, REASON_BOOKED)

    return SlotVerdict(slot_str, True)


def assemble_availability(
    target_date: date,
    day_hours: DayHours,
    overrides: SlotOverrides,
    ranges: List[OccupiedRange],
    duration: int,
    now: datetime,
    interval_minutes: int = 30
) -> Availability:
    """Собрать итоговую доступность из календаря, переопределений и занятых интервалов"""
    if day_hours.closed:
        return Availability(
            date=target_date,
            closed=True,
            reason=day_hours.reason,
            message=day_hours.message
        )

    slots = [
        evaluate_slot(slot, target_date, day_hours.close, overrides, ranges, duration, now)
        for slot in generate_time_slots(day_hours.open, day_hours.close, interval_minutes)
    ]
    return Availability(
        date=target_date,
        closed=False,
        open=day_hours.open,
        close=day_hours.close,
        slots=slots
    )


class ScheduleService:
    """Сервис управления расписанием"""

    def __init__(self, db: Session, clock: Optional[ShopClock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self.slot_interval = settings.SLOT_INTERVAL_MINUTES

    def get_day_hours(self, shop: Shop, target_date: date) -> DayHours:
        """Часы работы магазина на дату с учётом разовых выходных"""
        schedule = load_weekly_schedule(shop.business_days, shop.id)
        closed_dates = load_closed_dates(shop.closed_dates, shop.id)
        return resolve_day(schedule, closed_dates, target_date)

    def get_availability(
        self,
        shop: Shop,
        target_date: date,
        service_duration: Optional[int] = None
    ) -> Availability:
        """
        Доступность всех слотов на дату для услуги заданной длительности
        """
        duration = self._check_duration(service_duration)
        day_hours = self.get_day_hours(shop, target_date)
        if day_hours.closed:
            return assemble_availability(target_date, day_hours, SlotOverrides(), [], duration, self.clock.now())

        overrides = get_overrides(shop, target_date.strftime("%Y-%m-%d"))
        ranges = load_occupied_ranges(self.db, shop.id, target_date)
        return assemble_availability(
            target_date,
            day_hours,
            overrides,
            ranges,
            duration,
            self.clock.now(),
            self.slot_interval
        )

    def check_slot(
        self,
        shop: Shop,
        target_date: date,
        slot_time: time,
        service_duration: int
    ) -> SlotVerdict:
        """
        Проверить время для клиентской записи.
        Для закрытого дня причина - причина закрытия.
        Начало внутри часов работы должно лежать на сетке слотов.
        """
        day_hours = self.get_day_hours(shop, target_date)
        if day_hours.closed:
            return SlotVerdict(format_time(slot_time), False, day_hours.reason)

        if slot_time < day_hours.open:
            return SlotVerdict(format_time(slot_time), False, REASON_EXCEEDS_HOURS)

        if slot_time < day_hours.close and slot_time not in generate_time_slots(
            day_hours.open, day_hours.close, self.slot_interval
        ):
            return SlotVerdict(format_time(slot_time), False, REASON_OFF_GRID)

        overrides = get_overrides(shop, target_date.strftime("%Y-%m-%d"))
        ranges = load_occupied_ranges(self.db, shop.id, target_date)
        return evaluate_slot(
            slot_time,
            target_date,
            day_hours.close,
            overrides,
            ranges,
            service_duration,
            self.clock.now()
        )

    def get_available_dates(
        self,
        shop: Shop,
        service_duration: Optional[int] = None,
        days_ahead: Optional[int] = None
    ) -> List[date]:
        """
        Получить список дат с хотя бы одним свободным слотом
        """
        if days_ahead is None:
            days_ahead = settings.BOOKING_DAYS_AHEAD

        available_dates = []
        today = self.clock.today()

        for i in range(days_ahead):
            check_date = today + timedelta(days=i)
            availability = self.get_availability(shop, check_date, service_duration)
            if any(slot.available for slot in availability.slots):
                available_dates.append(check_date)

        return available_dates

    @staticmethod
    def _check_duration(service_duration: Optional[int]) -> int:
        if service_duration is None:
            return settings.DEFAULT_SERVICE_DURATION_MINUTES
        if service_duration <= 0:
            raise ValidationError("Длительность услуги должна быть больше нуля", field="duration")
        return service_duration
