"""
Модель записи на прием
"""
from enum import Enum

from sqlalchemy import Column, Integer, ForeignKey, Date, Time, DateTime, String, Text, Boolean, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class BookingStatus(str, Enum):
    """Статусы записи"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class DepositStatus(str, Enum):
    """Статус предоплаты, не зависит от статуса записи"""
    NONE = "none"
    WAITING = "waiting"
    PAID = "paid"


# Записи в этих статусах занимают время в расписании
ACTIVE_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class Booking(Base):
    """Запись на прием"""

    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    service_id = Column(Integer, ForeignKey("services.id"), nullable=False)

    booking_date = Column(Date, nullable=False, index=True)
    booking_time = Column(Time, nullable=False)
    # Длительность фиксируется при создании: правка услуги не сдвигает старые записи
    duration_minutes = Column(Integer, nullable=False)

    customer_name = Column(String(100), nullable=False)
    customer_phone = Column(String(20), nullable=False)
    pet_name = Column(String(100), nullable=True)
    pet_breed = Column(String(100), nullable=True)
    memo = Column(Text, nullable=True)

    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False, index=True)
    deposit_status = Column(String(20), default=DepositStatus.NONE.value, nullable=False)
    deposit_deadline = Column(DateTime, nullable=True)  # локальное время магазина
    visit_completed = Column(Boolean, default=False, nullable=False)
    reminder_sent = Column(Boolean, default=False, nullable=False)
    reminder_sent_at = Column(DateTime, nullable=True)
    is_first_visit = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())

    shop = relationship("Shop", back_populates="bookings")
    customer = relationship("Customer")
    service = relationship("Service")

    def __repr__(self):
        return f"<Booking {self.booking_date} {self.booking_time} (Status: {self.status})>"
