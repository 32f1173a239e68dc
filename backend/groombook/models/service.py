"""
Модель услуги
"""
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ..database import Base


class Service(Base):
    """Услуга магазина"""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    shop_id = Column(Integer, ForeignKey("shops.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)  # в вонах, без копеек
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, server_default=func.now())

    shop = relationship("Shop", back_populates="services")

    def __repr__(self):
        return f"<Service {self.name} ({self.duration_minutes} мин)>"
