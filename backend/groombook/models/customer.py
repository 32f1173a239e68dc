"""
Модель клиента и журнала заметок
"""
from sqlalchemy import Column, Integer, String, Date, DateTime, Text, ForeignKey, TIMESTAMP, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Customer(Base):
    """Клиент магазина, уникален по (магазин, телефон)"""

    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    phone = Column(String(20), nullable=False, index=True)

    # Профиль питомца
    pet_name = Column(String(100), nullable=True)
    pet_breed = Column(String(100), nullable=True)
    pet_age = Column(String(20), nullable=True)
    pet_weight = Column(String(20), nullable=True)

    visit_count = Column(Integer, default=0, nullable=False)
    last_visit = Column(DateTime, nullable=True)
    first_visit_date = Column(Date, nullable=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    shop = relationship("Shop", back_populates="customers")
    notes = relationship(
        "CustomerNote",
        back_populates="customer",
        cascade="all, delete-orphan",
        order_by="CustomerNote.id"
    )

    __table_args__ = (
        UniqueConstraint("shop_id", "phone", name="unique_customer_phone_per_shop"),
    )

    def __repr__(self):
        return f"<Customer {self.name} ({self.phone})>"


class CustomerNote(Base):
    """Запись в журнале заметок клиента (только добавление)"""

    __tablename__ = "customer_notes"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False)  # локальное время магазина

    customer = relationship("Customer", back_populates="notes")

    def __repr__(self):
        return f"<CustomerNote {self.created_at:%Y-%m-%d %H:%M}>"
