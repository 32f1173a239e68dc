"""
API роутер для записей: создание клиентом и персоналом, смена статусов, перенос
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List, Optional

from ..database import get_db
from ..models.booking import Booking
from ..services.bookings import BookingService
from ..services.calendar import format_time
from ..services.clock import ShopClock, get_clock
from ..services.lifecycle import allowed_operations
from ..services.notifications import (
    notify_cancelled_booking,
    notify_deposit_paid,
    notify_new_booking,
    notify_rescheduled_booking
)

router = APIRouter(prefix="/api", tags=["bookings"])


# ==================== Pydantic Schemas ====================

class BookingCreate(BaseModel):
    service_id: int
    date: str = Field(..., description="YYYY-MM-DD")
    time: str = Field(..., description="HH:MM")
    customer_name: str = Field(..., max_length=100)
    customer_phone: str = Field(..., max_length=20)
    pet_name: Optional[str] = Field(None, max_length=100)
    pet_breed: Optional[str] = Field(None, max_length=100)
    pet_age: Optional[str] = Field(None, max_length=20)
    pet_weight: Optional[str] = Field(None, max_length=20)
    memo: Optional[str] = None


class PublicBookingCreate(BookingCreate):
    shop_id: int


class BookingReschedule(BaseModel):
    date: Optional[str] = None
    time: Optional[str] = None
    service_id: Optional[int] = None


class BookingCustomerUpdate(BaseModel):
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None


class BookingResponse(BaseModel):
    id: int
    shop_id: int
    service_id: int
    service_name: Optional[str]
    date: str
    time: str
    duration_minutes: int
    customer_name: str
    customer_phone: str
    pet_name: Optional[str]
    pet_breed: Optional[str]
    memo: Optional[str]
    status: str
    deposit_status: str
    deposit_deadline: Optional[str]
    visit_completed: bool
    reminder_sent: bool
    is_first_visit: bool
    allowed_actions: List[str]


def to_response(booking: Booking) -> BookingResponse:
    return BookingResponse(
        id=booking.id,
        shop_id=booking.shop_id,
        service_id=booking.service_id,
        service_name=booking.service.name if booking.service else None,
        date=booking.booking_date.strftime("%Y-%m-%d"),
        time=format_time(booking.booking_time),
        duration_minutes=booking.duration_minutes,
        customer_name=booking.customer_name,
        customer_phone=booking.customer_phone,
        pet_name=booking.pet_name,
        pet_breed=booking.pet_breed,
        memo=booking.memo,
        status=booking.status,
        deposit_status=booking.deposit_status,
        deposit_deadline=(
            booking.deposit_deadline.strftime("%Y-%m-%d %H:%M")
            if booking.deposit_deadline else None
        ),
        visit_completed=booking.visit_completed,
        reminder_sent=booking.reminder_sent,
        is_first_visit=booking.is_first_visit,
        allowed_actions=[op.value for op in allowed_operations(booking)]
    )


def get_booking_service(
    db: Session = Depends(get_db),
    clock: ShopClock = Depends(get_clock)
) -> BookingService:
    return BookingService(db, clock)


def _create(service: BookingService, shop_id: int, data: BookingCreate, manual: bool) -> Booking:
    return service.create_booking(
        shop_id=shop_id,
        service_id=data.service_id,
        date_str=data.date,
        time_str=data.time,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        pet_name=data.pet_name,
        pet_breed=data.pet_breed,
        pet_age=data.pet_age,
        pet_weight=data.pet_weight,
        memo=data.memo,
        manual=manual
    )


# ==================== API Endpoints ====================

@router.post("/bookings", response_model=BookingResponse, status_code=201)
async def create_booking(data: PublicBookingCreate, service: BookingService = Depends(get_booking_service)):
    """Создать запись со страницы магазина (ожидает подтверждения)"""
    booking = _create(service, data.shop_id, data, manual=False)
    await notify_new_booking(booking)
    return to_response(booking)


@router.post("/shops/{shop_id}/bookings/manual", response_model=BookingResponse, status_code=201)
async def create_manual_booking(
    shop_id: int,
    data: BookingCreate,
    service: BookingService = Depends(get_booking_service)
):
    """Запись, внесённая персоналом (по телефону, на месте); сразу подтверждена"""
    booking = _create(service, shop_id, data, manual=True)
    return to_response(booking)


@router.get("/shops/{shop_id}/bookings", response_model=List[BookingResponse])
async def list_bookings(
    shop_id: int,
    status: Optional[str] = Query(None, description="Фильтр по статусу"),
    service: BookingService = Depends(get_booking_service)
):
    """Все записи магазина по дате и времени"""
    return [to_response(b) for b in service.list_bookings(shop_id, status)]


@router.get("/shops/{shop_id}/bookings/tomorrow", response_model=List[BookingResponse])
async def list_tomorrow_bookings(shop_id: int, service: BookingService = Depends(get_booking_service)):
    """Подтверждённые записи на завтра для рассылки напоминаний"""
    return [to_response(b) for b in service.list_tomorrow(shop_id)]


@router.get("/bookings/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return to_response(service.get_booking(booking_id))


@router.patch("/bookings/{booking_id}/approve", response_model=BookingResponse)
async def approve_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return to_response(service.approve(booking_id))


@router.patch("/bookings/{booking_id}/reject", response_model=BookingResponse)
async def reject_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return to_response(service.reject(booking_id))


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(booking_id: int, service: BookingService = Depends(get_booking_service)):
    booking = service.cancel(booking_id)
    await notify_cancelled_booking(booking)
    return to_response(booking)


@router.patch("/bookings/{booking_id}/deposit-request", response_model=BookingResponse)
async def request_deposit(booking_id: int, service: BookingService = Depends(get_booking_service)):
    """Запросить предоплату; срок оплаты - DEPOSIT_WINDOW_HOURS от текущего момента"""
    return to_response(service.request_deposit(booking_id))


@router.patch("/bookings/{booking_id}/deposit-confirm", response_model=BookingResponse)
async def confirm_deposit(booking_id: int, service: BookingService = Depends(get_booking_service)):
    booking = service.confirm_deposit(booking_id)
    await notify_deposit_paid(booking)
    return to_response(booking)


@router.patch("/bookings/{booking_id}/admin-confirm-deposit", response_model=BookingResponse)
async def admin_confirm_deposit(booking_id: int, service: BookingService = Depends(get_booking_service)):
    """Оплата получена на месте: отметить предоплату и подтвердить запись"""
    return to_response(service.admin_confirm_deposit(booking_id))


@router.patch("/bookings/{booking_id}/remind", response_model=BookingResponse)
async def mark_reminded(booking_id: int, service: BookingService = Depends(get_booking_service)):
    return to_response(service.mark_reminded(booking_id))


@router.patch("/bookings/{booking_id}/customer", response_model=BookingResponse)
async def update_booking_customer(
    booking_id: int,
    data: BookingCustomerUpdate,
    service: BookingService = Depends(get_booking_service)
):
    """Исправить имя или телефон клиента в записи"""
    return to_response(service.update_customer(booking_id, data.customer_name, data.customer_phone))


@router.patch("/bookings/{booking_id}", response_model=BookingResponse)
async def reschedule_booking(
    booking_id: int,
    data: BookingReschedule,
    service: BookingService = Depends(get_booking_service)
):
    """Перенести запись или сменить услугу"""
    current = service.get_booking(booking_id)
    old_date = current.booking_date.strftime("%Y-%m-%d")
    old_time = format_time(current.booking_time)

    booking = service.reschedule(booking_id, data.date, data.time, data.service_id)
    await notify_rescheduled_booking(booking, old_date, old_time)
    return to_response(booking)
