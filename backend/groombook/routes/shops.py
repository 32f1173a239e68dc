"""
API роутер магазина: публичная страница, доступность и настройки расписания
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import Dict, List, Optional

from ..database import get_db
from ..errors import ConfigurationError, NotFoundError, ValidationError
from ..models.service import Service
from ..services.bookings import BookingService
from ..services.calendar import format_time, parse_date, parse_time
from ..services.clock import ShopClock, get_clock
from ..services.overrides import clear_date, toggle_slot
from ..services.schedule import Availability, ScheduleService
from ..services.shop_config import (
    is_valid_date,
    load_closed_dates,
    load_slot_map,
    load_weekly_schedule,
    validate_weekly_schedule
)

router = APIRouter(prefix="/api/shops", tags=["shops"])


# ==================== Pydantic Schemas ====================

class ShopResponse(BaseModel):
    id: int
    name: str
    slug: str
    phone: Optional[str]
    address: Optional[str]
    deposit_required: bool
    deposit_amount: int
    business_days: dict
    closed_dates: List[str]


class ServiceResponse(BaseModel):
    id: int
    name: str
    duration_minutes: int
    price: int

    class Config:
        from_attributes = True


class TimeSlotResponse(BaseModel):
    time: str  # "HH:MM"
    available: bool
    reason: Optional[str] = None


class ScheduleResponse(BaseModel):
    date: str  # "YYYY-MM-DD"
    closed: bool
    reason: Optional[str] = None
    message: Optional[str] = None
    business_hours: Optional[dict] = None  # {"open": "09:00", "close": "18:00"}
    slots: List[TimeSlotResponse]


class WeeklyScheduleUpdate(BaseModel):
    business_days: dict


class ClosedDatesUpdate(BaseModel):
    closed_dates: List[str]


class OverridesResponse(BaseModel):
    date: str
    blocked: List[str]
    force_open: List[str]


class ShopSettingsResponse(BaseModel):
    business_days: dict
    closed_dates: List[str]
    blocked_slots: Dict[str, List[str]]
    force_open_slots: Dict[str, List[str]]


def availability_response(availability: Availability) -> ScheduleResponse:
    business_hours = None
    if not availability.closed:
        business_hours = {
            "open": format_time(availability.open),
            "close": format_time(availability.close)
        }
    return ScheduleResponse(
        date=availability.date.strftime("%Y-%m-%d"),
        closed=availability.closed,
        reason=availability.reason,
        message=availability.message,
        business_hours=business_hours,
        slots=[
            TimeSlotResponse(time=slot.time, available=slot.available, reason=slot.reason)
            for slot in availability.slots
        ]
    )


def resolve_duration(db: Session, shop_id: int, duration: Optional[int], service_id: Optional[int]) -> Optional[int]:
    """Длительность из параметра или из услуги; None - длительность по умолчанию"""
    if service_id is None:
        return duration
    service = db.query(Service).filter(
        Service.id == service_id,
        Service.shop_id == shop_id
    ).first()
    if not service:
        raise NotFoundError("Услуга не найдена", field="service_id")
    return service.duration_minutes


def settings_response(shop) -> ShopSettingsResponse:
    return ShopSettingsResponse(
        business_days=load_weekly_schedule(shop.business_days, shop.id).model_dump(),
        closed_dates=sorted(load_closed_dates(shop.closed_dates, shop.id)),
        blocked_slots=load_slot_map(shop.blocked_slots, shop.id),
        force_open_slots=load_slot_map(shop.force_open_slots, shop.id)
    )


def overrides_response(shop, date_str: str) -> OverridesResponse:
    return OverridesResponse(
        date=date_str,
        blocked=load_slot_map(shop.blocked_slots, shop.id).get(date_str, []),
        force_open=load_slot_map(shop.force_open_slots, shop.id).get(date_str, [])
    )


# ==================== Публичная страница ====================

@router.get("/{slug}", response_model=ShopResponse)
async def get_shop(slug: str, db: Session = Depends(get_db)):
    """Публичная информация о магазине с часами работы"""
    shop = BookingService(db).get_shop_by_slug(slug)
    return ShopResponse(
        id=shop.id,
        name=shop.name,
        slug=shop.slug,
        phone=shop.phone,
        address=shop.address,
        deposit_required=bool(shop.deposit_required),
        deposit_amount=shop.deposit_amount or 0,
        business_days=load_weekly_schedule(shop.business_days, shop.id).model_dump(),
        closed_dates=sorted(load_closed_dates(shop.closed_dates, shop.id))
    )


@router.get("/{slug}/services", response_model=List[ServiceResponse])
async def get_services(slug: str, db: Session = Depends(get_db)):
    """Получить список активных услуг магазина"""
    shop = BookingService(db).get_shop_by_slug(slug)
    return db.query(Service).filter(
        Service.shop_id == shop.id,
        Service.is_active == True  # noqa: E712
    ).order_by(Service.id).all()


@router.get("/{slug}/available-times/{date_str}", response_model=ScheduleResponse)
async def get_available_times(
    slug: str,
    date_str: str,
    duration: Optional[int] = Query(None, description="Длительность услуги в минутах"),
    service_id: Optional[int] = Query(None, description="ID услуги вместо длительности"),
    db: Session = Depends(get_db),
    clock: ShopClock = Depends(get_clock)
):
    """Получить расписание на дату с доступностью каждого слота"""
    target_date = parse_date(date_str)
    shop = BookingService(db, clock).get_shop_by_slug(slug)
    service_duration = resolve_duration(db, shop.id, duration, service_id)

    availability = ScheduleService(db, clock).get_availability(shop, target_date, service_duration)
    return availability_response(availability)


@router.get("/{slug}/available-dates", response_model=List[str])
async def get_available_dates(
    slug: str,
    duration: Optional[int] = Query(None),
    service_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    clock: ShopClock = Depends(get_clock)
):
    """Получить список дат с хотя бы одним свободным слотом"""
    shop = BookingService(db, clock).get_shop_by_slug(slug)
    service_duration = resolve_duration(db, shop.id, duration, service_id)

    dates = ScheduleService(db, clock).get_available_dates(shop, service_duration)
    return [d.strftime("%Y-%m-%d") for d in dates]


# ==================== Настройки расписания (персонал) ====================

@router.get("/{shop_id}/settings", response_model=ShopSettingsResponse)
async def get_shop_settings(shop_id: int, db: Session = Depends(get_db)):
    """Текущее расписание, выходные и переопределения слотов"""
    shop = BookingService(db).get_shop(shop_id)
    return settings_response(shop)


@router.put("/{shop_id}/schedule", response_model=ShopSettingsResponse)
async def update_schedule(shop_id: int, data: WeeklyScheduleUpdate, db: Session = Depends(get_db)):
    """Заменить недельное расписание"""
    shop = BookingService(db).get_shop(shop_id)
    try:
        schedule = validate_weekly_schedule(data.business_days)
    except ConfigurationError as e:
        raise ValidationError(f"Некорректное расписание: {e}", field="business_days")

    shop.business_days = schedule.model_dump()
    db.commit()
    db.refresh(shop)
    return settings_response(shop)


@router.put("/{shop_id}/closed-dates", response_model=ShopSettingsResponse)
async def update_closed_dates(shop_id: int, data: ClosedDatesUpdate, db: Session = Depends(get_db)):
    """Заменить список разовых выходных"""
    shop = BookingService(db).get_shop(shop_id)
    invalid = [d for d in data.closed_dates if not is_valid_date(d)]
    if invalid:
        raise ValidationError(f"Неверные даты: {', '.join(invalid)}", field="closed_dates")

    shop.closed_dates = sorted(set(data.closed_dates))
    db.commit()
    db.refresh(shop)
    return settings_response(shop)


@router.post("/{shop_id}/overrides/{date_str}/blocked/{time_str}", response_model=OverridesResponse)
async def toggle_blocked_slot(shop_id: int, date_str: str, time_str: str, db: Session = Depends(get_db)):
    """Закрыть слот для записи или снять блокировку"""
    parse_date(date_str)
    parse_time(time_str)
    shop = BookingService(db).get_shop(shop_id)

    shop.blocked_slots = toggle_slot(load_slot_map(shop.blocked_slots, shop.id), date_str, time_str)
    db.commit()
    db.refresh(shop)
    return overrides_response(shop, date_str)


@router.post("/{shop_id}/overrides/{date_str}/force-open/{time_str}", response_model=OverridesResponse)
async def toggle_force_open_slot(shop_id: int, date_str: str, time_str: str, db: Session = Depends(get_db)):
    """Открыть слот поверх занятости или снять принудительное открытие"""
    parse_date(date_str)
    parse_time(time_str)
    shop = BookingService(db).get_shop(shop_id)

    shop.force_open_slots = toggle_slot(load_slot_map(shop.force_open_slots, shop.id), date_str, time_str)
    db.commit()
    db.refresh(shop)
    return overrides_response(shop, date_str)


@router.delete("/{shop_id}/overrides/{date_str}", response_model=OverridesResponse)
async def clear_overrides(shop_id: int, date_str: str, db: Session = Depends(get_db)):
    """Убрать все переопределения на дату"""
    parse_date(date_str)
    shop = BookingService(db).get_shop(shop_id)

    shop.blocked_slots = clear_date(load_slot_map(shop.blocked_slots, shop.id), date_str)
    shop.force_open_slots = clear_date(load_slot_map(shop.force_open_slots, shop.id), date_str)
    db.commit()
    db.refresh(shop)
    return overrides_response(shop, date_str)
