"""
SQLAlchemy модели для базы данных
"""
from .shop import Shop
from .service import Service
from .customer import Customer, CustomerNote
from .booking import Booking, BookingStatus, DepositStatus

__all__ = [
    "Shop",
    "Service",
    "Customer",
    "CustomerNote",
    "Booking",
    "BookingStatus",
    "DepositStatus"
]
