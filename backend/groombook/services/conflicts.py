"""
Поиск пересечений записи с уже существующими записями
"""
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..models.booking import ACTIVE_STATUSES, Booking
from .calendar import time_to_minutes


@dataclass(frozen=True)
class OccupiedRange:
    """Занятый интервал [start, end) в минутах от полуночи"""
    start: int
    end: int
    booking_id: Optional[int] = None

    def overlaps(self, start: int, end: int) -> bool:
        # Полуоткрытые интервалы: касание концами не пересечение
        return start < self.end and self.start < end


def occupied_ranges(bookings: Iterable[Booking], exclude_booking_id: Optional[int] = None) -> List[OccupiedRange]:
    """Интервалы активных записей; отклонённые и отменённые не занимают время"""
    ranges = []
    for booking in bookings:
        if booking.status not in ACTIVE_STATUSES:
            continue
        if exclude_booking_id is not None and booking.id == exclude_booking_id:
            continue
        start = time_to_minutes(booking.booking_time)
        ranges.append(OccupiedRange(start, start + booking.duration_minutes, booking.id))
    return ranges


def find_conflict(ranges: Iterable[OccupiedRange], start: int, duration: int) -> Optional[OccupiedRange]:
    """Первый интервал, пересекающийся с [start, start + duration)"""
    end = start + duration
    for occupied in ranges:
        if occupied.overlaps(start, end):
            return occupied
    return None


def load_occupied_ranges(
    db: Session,
    shop_id: int,
    target_date: date,
    exclude_booking_id: Optional[int] = None
) -> List[OccupiedRange]:
    """Занятые интервалы магазина на дату из БД"""
    bookings = db.query(Booking).filter(
        Booking.shop_id == shop_id,
        Booking.booking_date == target_date,
        Booking.status.in_(ACTIVE_STATUSES)
    ).all()
    return occupied_ranges(bookings, exclude_booking_id)
