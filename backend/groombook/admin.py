"""
Админ-панель платформы
Доступ: http://localhost:8000/admin
Логин: admin / Пароль: из .env (ADMIN_PASSWORD)

Расписание и переопределения слотов хранятся в JSON-полях магазина и
правятся здесь напрямую, поэтому движок записи читает их с откатом
на значения по умолчанию (services/shop_config.py).
"""
import hmac

from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from starlette.requests import Request
from .config import get_settings
from .models.booking import Booking
from .models.customer import Customer, CustomerNote
from .models.service import Service
from .models.shop import Shop

settings = get_settings()

ADMIN_USERNAME = "admin"


class AdminAuth(AuthenticationBackend):
    """Простая авторизация для админки"""

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = str(form.get("username") or "")
        password = str(form.get("password") or "")

        if username == ADMIN_USERNAME and hmac.compare_digest(password.encode(), settings.ADMIN_PASSWORD.encode()):
            request.session.update({"authenticated": True})
            return True
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        return request.session.get("authenticated", False)


# ==================== МОДЕЛИ ДЛЯ АДМИНКИ ====================

class ShopAdmin(ModelView, model=Shop):
    """Магазины"""
    name = "Магазин"
    name_plural = "Магазины"
    icon = "fa-solid fa-store"

    column_list = [
        Shop.id,
        Shop.name,
        Shop.slug,
        Shop.phone,
        Shop.is_approved,
        Shop.deposit_required,
        Shop.created_at
    ]
    column_searchable_list = [Shop.name, Shop.slug]
    column_sortable_list = [Shop.id, Shop.name, Shop.created_at]
    form_excluded_columns = [Shop.services, Shop.customers, Shop.bookings]

    column_labels = {
        "id": "ID",
        "name": "Название",
        "slug": "Адрес страницы",
        "phone": "Телефон",
        "address": "Адрес",
        "is_approved": "Одобрен",
        "business_days": "Часы работы",
        "closed_dates": "Разовые выходные",
        "blocked_slots": "Закрытые слоты",
        "force_open_slots": "Открытые слоты",
        "deposit_required": "Предоплата",
        "deposit_amount": "Сумма предоплаты",
        "created_at": "Создан"
    }


class ServiceAdmin(ModelView, model=Service):
    """Услуги"""
    name = "Услуга"
    name_plural = "Услуги"
    icon = "fa-solid fa-scissors"

    column_list = [
        Service.id,
        Service.shop_id,
        Service.name,
        Service.duration_minutes,
        Service.price,
        Service.is_active
    ]
    column_searchable_list = [Service.name]
    column_sortable_list = [Service.shop_id, Service.name, Service.price]

    column_labels = {
        "id": "ID",
        "shop_id": "Магазин",
        "name": "Название",
        "duration_minutes": "Длительность (мин)",
        "price": "Цена",
        "is_active": "Активна",
        "created_at": "Создано"
    }


class CustomerAdmin(ModelView, model=Customer):
    """Клиенты"""
    name = "Клиент"
    name_plural = "Клиенты"
    icon = "fa-solid fa-users"

    column_list = [
        Customer.id,
        Customer.shop_id,
        Customer.name,
        Customer.phone,
        Customer.pet_name,
        Customer.pet_breed,
        Customer.visit_count,
        Customer.last_visit
    ]
    column_searchable_list = [Customer.name, Customer.phone, Customer.pet_name]
    column_sortable_list = [Customer.name, Customer.visit_count, Customer.last_visit]
    column_default_sort = [(Customer.last_visit, True)]

    column_labels = {
        "id": "ID",
        "shop_id": "Магазин",
        "name": "Имя",
        "phone": "Телефон",
        "pet_name": "Питомец",
        "pet_breed": "Порода",
        "pet_age": "Возраст",
        "pet_weight": "Вес",
        "visit_count": "Визитов",
        "last_visit": "Последний визит",
        "first_visit_date": "Первый визит",
        "created_at": "Создан"
    }


class CustomerNoteAdmin(ModelView, model=CustomerNote):
    """Журнал заметок о клиентах"""
    name = "Заметка"
    name_plural = "Заметки"
    icon = "fa-solid fa-note-sticky"
    can_edit = False

    column_list = [CustomerNote.id, CustomerNote.customer_id, CustomerNote.text, CustomerNote.created_at]
    column_default_sort = [(CustomerNote.created_at, True)]


class BookingAdmin(ModelView, model=Booking):
    """Записи"""
    name = "Запись"
    name_plural = "Записи"
    icon = "fa-solid fa-calendar-check"

    column_list = [
        Booking.id,
        Booking.shop_id,
        Booking.booking_date,
        Booking.booking_time,
        Booking.customer_name,
        Booking.pet_name,
        Booking.status,
        Booking.deposit_status,
        Booking.visit_completed
    ]
    column_searchable_list = [Booking.customer_name, Booking.customer_phone, Booking.status]
    column_sortable_list = [Booking.booking_date, Booking.created_at, Booking.status]
    column_default_sort = [(Booking.booking_date, True)]

    column_labels = {
        "id": "ID",
        "shop_id": "Магазин",
        "booking_date": "Дата",
        "booking_time": "Время",
        "duration_minutes": "Длительность",
        "customer_name": "Клиент",
        "customer_phone": "Телефон",
        "pet_name": "Питомец",
        "status": "Статус",
        "deposit_status": "Предоплата",
        "deposit_deadline": "Оплатить до",
        "visit_completed": "Визит засчитан",
        "memo": "Заметка",
        "created_at": "Создано"
    }


def setup_admin(app, engine):
    """Настройка админ-панели"""
    authentication_backend = AdminAuth(secret_key=settings.SECRET_KEY)

    admin = Admin(
        app,
        engine,
        authentication_backend=authentication_backend,
        title="GroomBook Admin",
        base_url="/admin"
    )

    # Регистрация моделей
    admin.add_view(ShopAdmin)
    admin.add_view(ServiceAdmin)
    admin.add_view(CustomerAdmin)
    admin.add_view(CustomerNoteAdmin)
    admin.add_view(BookingAdmin)

    return admin
