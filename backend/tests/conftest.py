"""
Общие фикстуры тестов

SQLite в памяти с одним соединением (StaticPool), чтобы сессии теста
и запросов через TestClient видели одни и те же данные.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_STAFF_CHAT_ID"] = ""

from datetime import date, datetime, time  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from groombook.database import Base, get_db, init_db  # noqa: E402
from groombook.main import app  # noqa: E402
from groombook.models import Booking, Customer, Service, Shop  # noqa: E402
from groombook.models.shop import DEFAULT_BUSINESS_DAYS  # noqa: E402
from groombook.services.bookings import BookingService  # noqa: E402
from groombook.services.clock import FrozenClock, get_clock  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Понедельник 2026-10-19, 08:00 по времени магазина
NOW = datetime(2026, 10, 19, 8, 0)
WEDNESDAY = date(2026, 10, 21)


@pytest.fixture(autouse=True)
def setup_db():
    """Создать таблицы перед каждым тестом и удалить после"""
    init_db(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def client(clock):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def shop(db):
    shop = Shop(
        name="Happy Paws",
        slug="happy-paws",
        phone="02-555-0100",
        business_days=dict(DEFAULT_BUSINESS_DAYS),
    )
    shop.services = [
        Service(name="Стрижка когтей", duration_minutes=30, price=10000),
        Service(name="Гигиеническая стрижка", duration_minutes=60, price=35000),
        Service(name="Полный груминг", duration_minutes=120, price=70000),
        Service(name="Архивная услуга", duration_minutes=60, price=1000, is_active=False),
    ]
    db.add(shop)
    db.commit()
    db.refresh(shop)
    return shop


@pytest.fixture
def services(shop):
    """Услуги по названию: nails (30), trim (60), full (120), archived"""
    by_name = {s.name: s for s in shop.services}
    return {
        "nails": by_name["Стрижка когтей"],
        "trim": by_name["Гигиеническая стрижка"],
        "full": by_name["Полный груминг"],
        "archived": by_name["Архивная услуга"],
    }


@pytest.fixture
def booking_service(db, clock):
    return BookingService(db, clock)


@pytest.fixture
def make_booking(booking_service, shop, services):
    """Создать запись через сервис (по умолчанию - клиентскую, 60 минут)"""
    def _make(
        time_str="10:00",
        date_str=WEDNESDAY.isoformat(),
        service="trim",
        phone="010-1234-5678",
        name="Ким Минджи",
        manual=False,
        **kwargs
    ) -> Booking:
        return booking_service.create_booking(
            shop_id=shop.id,
            service_id=services[service].id,
            date_str=date_str,
            time_str=time_str,
            customer_name=name,
            customer_phone=phone,
            manual=manual,
            **kwargs
        )
    return _make


@pytest.fixture
def make_past_booking(db, shop, services):
    """Подтверждённая запись в прошлом, минуя проверки слота"""
    def _make(service="trim", customer_phone="01099998888", day=date(2026, 10, 16), at=time(10, 0)) -> Booking:
        service = services[service]
        customer = db.query(Customer).filter(
            Customer.shop_id == shop.id,
            Customer.phone == customer_phone
        ).first()
        if customer is None:
            customer = Customer(shop_id=shop.id, name="Пак Джису", phone=customer_phone, visit_count=0)
            db.add(customer)
            db.flush()

        booking = Booking(
            shop_id=shop.id,
            customer_id=customer.id,
            service_id=service.id,
            booking_date=day,
            booking_time=at,
            duration_minutes=service.duration_minutes,
            customer_name=customer.name,
            customer_phone=customer_phone,
            status="confirmed",
        )
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking
    return _make
