"""
Жизненный цикл записи: создание, переходы статусов, перенос и учёт визитов
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from ..config import get_settings
from ..errors import ConflictError, NotFoundError, ValidationError
from ..models.booking import Booking, BookingStatus
from ..models.service import Service
from ..models.shop import Shop
from .calendar import format_time, parse_date, parse_time, time_to_minutes
from .clock import ShopClock, get_clock
from .conflicts import find_conflict, load_occupied_ranges
from .customers import normalize_phone, record_visit, revert_visit, upsert_customer_from_booking
from .lifecycle import Operation, find_transition
from .overrides import get_overrides
from .schedule import (
    REASON_BLOCKED,
    REASON_BOOKED,
    REASON_EXCEEDS_HOURS,
    REASON_OFF_GRID,
    REASON_PAST,
    ScheduleService,
)

settings = get_settings()
logger = logging.getLogger(__name__)

SLOT_ERRORS = {
    REASON_PAST: "Нельзя записаться на прошедшее время",
    REASON_BLOCKED: "Это время закрыто для записи",
    REASON_EXCEEDS_HOURS: "Услуга не укладывается в часы работы магазина",
    REASON_OFF_GRID: "Запись возможна только на начало слота",
}
CLOSED_DAY_ERROR = "В этот день магазин не работает"
CONFLICT_ERROR = "Это время уже занято. Пожалуйста, выберите другое время"


class BookingService:
    """Сервис управления записями"""

    def __init__(self, db: Session, clock: Optional[ShopClock] = None):
        self.db = db
        self.clock = clock or get_clock()
        self.schedule = ScheduleService(db, self.clock)

    # --- Поиск ---

    def get_shop(self, shop_id: int) -> Shop:
        shop = self.db.query(Shop).filter(Shop.id == shop_id).first()
        if not shop:
            raise NotFoundError("Магазин не найден")
        return shop

    def get_shop_by_slug(self, slug: str) -> Shop:
        """Публичная страница доступна только одобренным магазинам"""
        shop = self.db.query(Shop).filter(
            Shop.slug == slug,
            Shop.is_approved == True  # noqa: E712
        ).first()
        if not shop:
            raise NotFoundError("Магазин не найден")
        return shop

    def get_booking(self, booking_id: int, lock: bool = False) -> Booking:
        query = self.db.query(Booking).filter(Booking.id == booking_id)
        if lock:
            query = query.with_for_update()
        booking = query.first()
        if not booking:
            raise NotFoundError("Запись не найдена")
        return booking

    def _get_active_service(self, shop_id: int, service_id: int) -> Service:
        service = self.db.query(Service).filter(
            Service.id == service_id,
            Service.shop_id == shop_id,
            Service.is_active == True  # noqa: E712
        ).first()
        if not service:
            raise NotFoundError("Услуга не найдена", field="service_id")
        return service

    def _lock_shop(self, shop_id: int) -> Shop:
        """
        Блокировка строки магазина сериализует проверку и вставку записи
        для одного магазина (в PostgreSQL; SQLite пишет последовательно и так)
        """
        shop = self.db.query(Shop).filter(Shop.id == shop_id).with_for_update().first()
        if not shop:
            raise NotFoundError("Магазин не найден")
        return shop

    # --- Проверка времени ---

    def _check_public_slot(self, shop: Shop, target_date: date, slot_time: time, duration: int):
        """Клиентская запись проходит все проверки слота"""
        verdict = self.schedule.check_slot(shop, target_date, slot_time, duration)
        if verdict.available:
            return
        if verdict.reason == REASON_BOOKED:
            raise ConflictError(CONFLICT_ERROR, field="time")
        raise ValidationError(SLOT_ERRORS.get(verdict.reason, CLOSED_DAY_ERROR), field="time")

    def _check_overlap(
        self,
        shop: Shop,
        target_date: date,
        slot_time: time,
        duration: int,
        exclude_booking_id: Optional[int] = None
    ):
        """Персонал может записать в любое время, но не поверх другой записи"""
        overrides = get_overrides(shop, target_date.strftime("%Y-%m-%d"))
        if format_time(slot_time) in overrides.force_open:
            return

        ranges = load_occupied_ranges(self.db, shop.id, target_date, exclude_booking_id)
        conflict = find_conflict(ranges, time_to_minutes(slot_time), duration)
        if conflict:
            logger.info(
                "Пересечение с записью #%s: магазин %s, %s %s",
                conflict.booking_id, shop.id, target_date, format_time(slot_time)
            )
            raise ConflictError(CONFLICT_ERROR, field="time")

    # --- Создание ---

    def create_booking(
        self,
        shop_id: int,
        service_id: int,
        date_str: str,
        time_str: str,
        customer_name: str,
        customer_phone: str,
        pet_name: Optional[str] = None,
        pet_breed: Optional[str] = None,
        pet_age: Optional[str] = None,
        pet_weight: Optional[str] = None,
        memo: Optional[str] = None,
        manual: bool = False
    ) -> Booking:
        """
        Создать запись.

        Args:
            manual: запись внёс персонал; она сразу подтверждена и проверяется
                только на пересечение с другими записями

        Raises:
            ValidationError: неверные данные или время недоступно
            ConflictError: время пересекается с активной записью
            NotFoundError: магазин или услуга не найдены
        """
        target_date = parse_date(date_str)
        slot_time = parse_time(time_str)
        name = (customer_name or "").strip()
        if not name:
            raise ValidationError("Укажите имя", field="customer_name")
        phone = normalize_phone(customer_phone)

        now = self.clock.now()
        try:
            shop = self._lock_shop(shop_id)
            service = self._get_active_service(shop.id, service_id)
            duration = service.duration_minutes

            if manual:
                self._check_overlap(shop, target_date, slot_time, duration)
            else:
                self._check_public_slot(shop, target_date, slot_time, duration)

            customer, is_first_visit = upsert_customer_from_booking(
                self.db,
                shop.id,
                name,
                phone,
                {
                    "pet_name": pet_name,
                    "pet_breed": pet_breed,
                    "pet_age": pet_age,
                    "pet_weight": pet_weight,
                },
                memo,
                now
            )

            booking = Booking(
                shop_id=shop.id,
                customer_id=customer.id,
                service_id=service.id,
                booking_date=target_date,
                booking_time=slot_time,
                duration_minutes=duration,
                customer_name=name,
                customer_phone=phone,
                pet_name=pet_name,
                pet_breed=pet_breed,
                memo=memo,
                status=BookingStatus.CONFIRMED.value if manual else BookingStatus.PENDING.value,
                is_first_visit=is_first_visit
            )
            self.db.add(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            "Создана запись #%s: магазин %s, %s %s, %s (%s)",
            booking.id, shop_id, booking.booking_date, format_time(booking.booking_time),
            booking.status, "персонал" if manual else "клиент"
        )
        return booking

    # --- Переходы статусов ---

    def _apply(self, booking: Booking, operation: Operation) -> str:
        """Применить переход из таблицы; возвращает прежний статус"""
        transition = find_transition(booking, operation)
        previous = booking.status

        if transition.to_status:
            booking.status = transition.to_status
        if transition.to_deposit:
            booking.deposit_status = transition.to_deposit

        # Засчитанный визит живёт только у подтверждённой записи
        if booking.status != BookingStatus.CONFIRMED.value and booking.visit_completed:
            self._undo_visit(booking)
        return previous

    def _save(self, booking: Booking, operation: Operation, previous: str) -> Booking:
        self.db.commit()
        self.db.refresh(booking)
        logger.info(
            "Запись #%s: %s (%s -> %s, предоплата: %s)",
            booking.id, operation.value, previous, booking.status, booking.deposit_status
        )
        return booking

    def _transition(self, booking_id: int, operation: Operation) -> Booking:
        booking = self.get_booking(booking_id, lock=True)
        previous = self._apply(booking, operation)
        return self._save(booking, operation, previous)

    def approve(self, booking_id: int) -> Booking:
        return self._transition(booking_id, Operation.APPROVE)

    def reject(self, booking_id: int) -> Booking:
        return self._transition(booking_id, Operation.REJECT)

    def cancel(self, booking_id: int) -> Booking:
        return self._transition(booking_id, Operation.CANCEL)

    def request_deposit(self, booking_id: int) -> Booking:
        """Запросить предоплату; срок отсчитывается от текущего момента"""
        booking = self.get_booking(booking_id, lock=True)
        previous = self._apply(booking, Operation.REQUEST_DEPOSIT)
        booking.deposit_deadline = self.clock.now() + timedelta(hours=settings.DEPOSIT_WINDOW_HOURS)
        return self._save(booking, Operation.REQUEST_DEPOSIT, previous)

    def confirm_deposit(self, booking_id: int) -> Booking:
        return self._transition(booking_id, Operation.CONFIRM_DEPOSIT)

    def admin_confirm_deposit(self, booking_id: int) -> Booking:
        """Персонал отмечает оплату и подтверждает запись одним действием"""
        return self._transition(booking_id, Operation.ADMIN_CONFIRM_DEPOSIT)

    def mark_reminded(self, booking_id: int) -> Booking:
        booking = self.get_booking(booking_id, lock=True)
        previous = self._apply(booking, Operation.MARK_REMINDED)
        booking.reminder_sent = True
        booking.reminder_sent_at = self.clock.now()
        return self._save(booking, Operation.MARK_REMINDED, previous)

    # --- Перенос ---

    def reschedule(
        self,
        booking_id: int,
        date_str: Optional[str] = None,
        time_str: Optional[str] = None,
        service_id: Optional[int] = None
    ) -> Booking:
        """
        Перенести запись на другую дату/время или сменить услугу.
        Пересечение проверяется без учёта самой записи.
        Засчитанный визит при переносе снимается.
        """
        if date_str is None and time_str is None and service_id is None:
            raise ValidationError("Не указано, что изменить")

        booking = self.get_booking(booking_id, lock=True)
        find_transition(booking, Operation.RESCHEDULE)

        new_date = parse_date(date_str) if date_str is not None else booking.booking_date
        new_time = parse_time(time_str) if time_str is not None else booking.booking_time

        duration = booking.duration_minutes
        new_service_id = booking.service_id
        if service_id is not None and service_id != booking.service_id:
            service = self._get_active_service(booking.shop_id, service_id)
            duration = service.duration_minutes
            new_service_id = service.id

        try:
            shop = self._lock_shop(booking.shop_id)
            self._check_overlap(shop, new_date, new_time, duration, exclude_booking_id=booking.id)

            old = f"{booking.booking_date} {format_time(booking.booking_time)}"
            booking.booking_date = new_date
            booking.booking_time = new_time
            booking.service_id = new_service_id
            booking.duration_minutes = duration
            if booking.visit_completed:
                self._undo_visit(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            "Запись #%s перенесена: %s -> %s %s (%s мин)",
            booking.id, old, booking.booking_date, format_time(booking.booking_time), duration
        )
        return booking

    def update_customer(
        self,
        booking_id: int,
        customer_name: Optional[str] = None,
        customer_phone: Optional[str] = None
    ) -> Booking:
        """Исправить имя или телефон в самой записи (профиль клиента не трогаем)"""
        booking = self.get_booking(booking_id)

        if customer_name is not None:
            name = customer_name.strip()
            if not name:
                raise ValidationError("Укажите имя", field="customer_name")
            booking.customer_name = name
        if customer_phone is not None:
            booking.customer_phone = normalize_phone(customer_phone)

        self.db.commit()
        self.db.refresh(booking)
        logger.info("Запись #%s: обновлены данные клиента", booking.id)
        return booking

    # --- Учёт визитов ---

    def _undo_visit(self, booking: Booking):
        booking.visit_completed = False
        if booking.customer_id is not None:
            revert_visit(self.db, booking.customer_id)
        logger.info("Запись #%s: засчитанный визит снят", booking.id)

    def _complete(self, booking: Booking, now: datetime) -> bool:
        """
        Засчитать визит один раз. Условный UPDATE не даёт двум
        параллельным проходам засчитать одну запись дважды.
        """
        if booking.status != BookingStatus.CONFIRMED.value or booking.visit_completed:
            return False
        if datetime.combine(booking.booking_date, booking.booking_time) >= now:
            return False

        updated = self.db.query(Booking).filter(
            Booking.id == booking.id,
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.visit_completed == False  # noqa: E712
        ).update({Booking.visit_completed: True}, synchronize_session="fetch")
        if updated != 1:
            return False

        if booking.customer_id is not None:
            record_visit(self.db, booking.customer_id, booking.booking_date, now)
        return True

    def complete_visit(self, booking_id: int) -> bool:
        """Засчитать визит по прошедшей подтверждённой записи"""
        booking = self.get_booking(booking_id)
        completed = self._complete(booking, self.clock.now())
        if completed:
            self.db.commit()
            logger.info("Запись #%s: визит засчитан", booking.id)
        return completed

    def sweep_completed(self, shop_id: Optional[int] = None) -> int:
        """Засчитать все прошедшие подтверждённые записи; возвращает количество"""
        now = self.clock.now()
        query = self.db.query(Booking).filter(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.visit_completed == False,  # noqa: E712
            Booking.booking_date <= now.date()
        )
        if shop_id is not None:
            query = query.filter(Booking.shop_id == shop_id)

        count = 0
        for booking in query.order_by(Booking.id).all():
            if self._complete(booking, now):
                count += 1

        if count:
            self.db.commit()
            logger.info("Засчитано визитов: %s (магазин: %s)", count, shop_id or "все")
        return count

    # --- Списки ---

    def list_bookings(self, shop_id: int, status: Optional[str] = None) -> List[Booking]:
        """Записи магазина; перед выдачей засчитываются прошедшие визиты"""
        self.get_shop(shop_id)
        self.sweep_completed(shop_id)

        query = self.db.query(Booking).filter(Booking.shop_id == shop_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.booking_date, Booking.booking_time).all()

    def list_tomorrow(self, shop_id: int) -> List[Booking]:
        """Подтверждённые записи на завтра (для напоминаний)"""
        self.get_shop(shop_id)
        tomorrow = self.clock.today() + timedelta(days=1)
        return self.db.query(Booking).filter(
            Booking.shop_id == shop_id,
            Booking.booking_date == tomorrow,
            Booking.status == BookingStatus.CONFIRMED.value
        ).order_by(Booking.booking_time).all()
