"""
Модель магазина (тенант)
"""
from sqlalchemy import Column, Integer, String, Boolean, JSON, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Shop(Base):
    """Магазин груминга со своей публичной страницей записи"""

    __tablename__ = "shops"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    phone = Column(String(20), nullable=True)
    address = Column(String(255), nullable=True)
    is_approved = Column(Boolean, default=True)

    # Конфигурация расписания, редактируется персоналом (в т.ч. через админку).
    # Читается только через services/shop_config.py
    business_days = Column(JSON, nullable=True)  # {"mon": {"open": "09:00", "close": "18:00", "closed": false}, ...}
    closed_dates = Column(JSON, nullable=True)  # ["2026-10-21", ...]
    blocked_slots = Column(JSON, nullable=True)  # {"2026-10-21": ["14:00"]}
    force_open_slots = Column(JSON, nullable=True)  # {"2026-10-21": ["10:00"]}

    deposit_required = Column(Boolean, default=False)
    deposit_amount = Column(Integer, default=0)
    created_at = Column(TIMESTAMP, server_default=func.now())

    services = relationship("Service", back_populates="shop", cascade="all, delete-orphan")
    customers = relationship("Customer", back_populates="shop", cascade="all, delete-orphan")
    bookings = relationship("Booking", back_populates="shop", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Shop {self.slug}>"


# Расписание по умолчанию: Пн-Сб 09:00-18:00, Вс выходной
DEFAULT_BUSINESS_DAYS = {
    "sun": {"open": "09:00", "close": "18:00", "closed": True},
    "mon": {"open": "09:00", "close": "18:00", "closed": False},
    "tue": {"open": "09:00", "close": "18:00", "closed": False},
    "wed": {"open": "09:00", "close": "18:00", "closed": False},
    "thu": {"open": "09:00", "close": "18:00", "closed": False},
    "fri": {"open": "09:00", "close": "18:00", "closed": False},
    "sat": {"open": "09:00", "close": "18:00", "closed": False},
}
