"""
API роутер клиентов: проверка постоянного клиента и история записей
"""
from datetime import datetime
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from pydantic import BaseModel
from typing import List, Optional

from ..database import get_db
from ..errors import NotFoundError
from ..services.bookings import BookingService
from ..services.customers import customer_history, get_customer_by_phone, normalize_phone
from .bookings import BookingResponse, to_response

router = APIRouter(prefix="/api/shops", tags=["customers"])


class CustomerCheckResponse(BaseModel):
    """Для автозаполнения формы записи"""
    exists: bool
    name: Optional[str] = None
    pet_name: Optional[str] = None
    pet_breed: Optional[str] = None
    pet_age: Optional[str] = None
    pet_weight: Optional[str] = None
    visit_count: int = 0


class CustomerNoteResponse(BaseModel):
    text: str
    created_at: datetime


class CustomerHistoryResponse(BaseModel):
    name: str
    phone: str
    pet_name: Optional[str]
    pet_breed: Optional[str]
    pet_age: Optional[str]
    pet_weight: Optional[str]
    visit_count: int
    last_visit: Optional[datetime]
    first_visit_date: Optional[str]
    notes: List[CustomerNoteResponse]
    bookings: List[BookingResponse]


@router.get("/{slug}/customers/check", response_model=CustomerCheckResponse)
async def check_customer(
    slug: str,
    phone: str = Query(..., description="Номер телефона"),
    db: Session = Depends(get_db)
):
    """Проверить, есть ли клиент с таким телефоном"""
    shop = BookingService(db).get_shop_by_slug(slug)
    customer = get_customer_by_phone(db, shop.id, normalize_phone(phone, field="phone"))
    if not customer:
        return CustomerCheckResponse(exists=False)

    return CustomerCheckResponse(
        exists=True,
        name=customer.name,
        pet_name=customer.pet_name,
        pet_breed=customer.pet_breed,
        pet_age=customer.pet_age,
        pet_weight=customer.pet_weight,
        visit_count=customer.visit_count
    )


@router.get("/{shop_id}/customers/{phone}/history", response_model=CustomerHistoryResponse)
async def get_customer_history(shop_id: int, phone: str, db: Session = Depends(get_db)):
    """Профиль клиента, журнал заметок и все его записи"""
    BookingService(db).get_shop(shop_id)
    phone = normalize_phone(phone, field="phone")
    customer = get_customer_by_phone(db, shop_id, phone)
    if not customer:
        raise NotFoundError("Клиент не найден")

    return CustomerHistoryResponse(
        name=customer.name,
        phone=customer.phone,
        pet_name=customer.pet_name,
        pet_breed=customer.pet_breed,
        pet_age=customer.pet_age,
        pet_weight=customer.pet_weight,
        visit_count=customer.visit_count,
        last_visit=customer.last_visit,
        first_visit_date=(
            customer.first_visit_date.strftime("%Y-%m-%d")
            if customer.first_visit_date else None
        ),
        notes=[CustomerNoteResponse(text=note.text, created_at=note.created_at) for note in customer.notes],
        bookings=[to_response(b) for b in customer_history(db, shop_id, phone)]
    )
