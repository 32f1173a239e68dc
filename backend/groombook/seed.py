"""
Демо-данные: один магазин с услугами для локальной разработки
"""
import logging

from sqlalchemy.orm import Session

from .models.service import Service
from .models.shop import DEFAULT_BUSINESS_DAYS, Shop

logger = logging.getLogger(__name__)

DEMO_SHOP = {
    "name": "Груминг Каннам",
    "slug": "gangnam",
    "phone": "02-555-0123",
    "address": "Сеул, Каннам-гу, Тегеран-ро 123",
    "deposit_required": True,
    "deposit_amount": 10000,
}

# Начальные услуги
INITIAL_SERVICES = [
    {"name": "Гигиеническая стрижка", "duration_minutes": 60, "price": 35000},
    {"name": "Полный груминг", "duration_minutes": 120, "price": 70000},
    {"name": "Купание и сушка", "duration_minutes": 90, "price": 45000},
    {"name": "Стрижка когтей", "duration_minutes": 30, "price": 10000},
]


def seed_demo_shop(db: Session) -> Shop:
    """Создать демо-магазин, если его ещё нет"""
    shop = db.query(Shop).filter(Shop.slug == DEMO_SHOP["slug"]).first()
    if shop:
        logger.info("Демо-магазин уже существует: %s", shop.slug)
        return shop

    shop = Shop(business_days=dict(DEFAULT_BUSINESS_DAYS), **DEMO_SHOP)
    for data in INITIAL_SERVICES:
        shop.services.append(Service(**data))

    db.add(shop)
    db.commit()
    db.refresh(shop)
    logger.info("Создан демо-магазин %s с %s услугами", shop.slug, len(INITIAL_SERVICES))
    return shop
