"""
Клиенты магазина: создание по первой записи, история и счётчик визитов
"""
import logging
import re
from datetime import date, datetime
from typing import List, Optional, Tuple

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..models.booking import Booking
from ..models.customer import Customer, CustomerNote

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\+?[\d\s\-()]+$")
PET_FIELDS = ("pet_name", "pet_breed", "pet_age", "pet_weight")


def normalize_phone(value: Optional[str], field: str = "customer_phone") -> str:
    """
    Оставить только цифры. Допускаются пробелы, дефисы и скобки.

    Examples:
        >>> normalize_phone("010-1234-5678")
        '01012345678'
    """
    value = (value or "").strip()
    if not value or not PHONE_RE.match(value):
        raise ValidationError("Неверный формат телефона", field=field)

    digits = re.sub(r"\D", "", value)
    if not 9 <= len(digits) <= 11:
        raise ValidationError("Телефон должен содержать от 9 до 11 цифр", field=field)
    return digits


def get_customer_by_phone(db: Session, shop_id: int, phone: str) -> Optional[Customer]:
    return db.query(Customer).filter(
        Customer.shop_id == shop_id,
        Customer.phone == phone
    ).first()


def upsert_customer_from_booking(
    db: Session,
    shop_id: int,
    name: str,
    phone: str,
    pet_fields: dict,
    memo: Optional[str],
    now: datetime
) -> Tuple[Customer, bool]:
    """
    Найти клиента по телефону или создать нового.
    Новые непустые поля питомца заменяют старые, заметка дописывается в журнал.
    Счётчик визитов здесь не меняется.

    Returns:
        (клиент, первый ли это визит)
    """
    customer = get_customer_by_phone(db, shop_id, phone)
    is_first_visit = customer is None

    if customer is None:
        customer = Customer(shop_id=shop_id, name=name, phone=phone, visit_count=0)
        db.add(customer)
        logger.info("Новый клиент магазина %s: %s", shop_id, phone)
    elif name and name != customer.name:
        customer.name = name

    for key in PET_FIELDS:
        value = pet_fields.get(key)
        if value is not None and str(value).strip():
            setattr(customer, key, str(value).strip())

    if memo and memo.strip():
        customer.notes.append(CustomerNote(text=memo.strip(), created_at=now))

    db.flush()
    return customer, is_first_visit


def record_visit(db: Session, customer_id: int, visit_date: date, now: datetime) -> None:
    """
    Засчитать состоявшийся визит.
    Счётчик меняется одним UPDATE в базе, а не через прочитанное значение.
    """
    db.query(Customer).filter(Customer.id == customer_id).update(
        {
            Customer.visit_count: Customer.visit_count + 1,
            Customer.last_visit: now,
            Customer.first_visit_date: func.coalesce(Customer.first_visit_date, visit_date),
        },
        synchronize_session="fetch"
    )


def revert_visit(db: Session, customer_id: int) -> None:
    """Компенсация: визит отменён задним числом, счётчик не уходит ниже нуля"""
    db.query(Customer).filter(Customer.id == customer_id).update(
        {Customer.visit_count: case((Customer.visit_count > 0, Customer.visit_count - 1), else_=0)},
        synchronize_session="fetch"
    )


def customer_history(db: Session, shop_id: int, phone: str) -> List[Booking]:
    """Все записи клиента в магазине, новые сверху"""
    return db.query(Booking).filter(
        Booking.shop_id == shop_id,
        Booking.customer_phone == phone
    ).order_by(Booking.booking_date.desc(), Booking.booking_time.desc()).all()
