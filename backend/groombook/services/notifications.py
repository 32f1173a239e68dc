"""
Уведомления персонала магазина в Telegram
Ошибки отправки только логируются и никогда не прерывают операцию с записью
"""
import logging
from enum import Enum
from typing import Optional

import httpx

from ..config import get_settings
from ..models.booking import Booking
from .calendar import format_time

settings = get_settings()
logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Типы уведомлений"""
    NEW_BOOKING = "new_booking"
    CANCELLED_BOOKING = "cancelled_booking"
    RESCHEDULED_BOOKING = "rescheduled_booking"
    DEPOSIT_PAID = "deposit_paid"


ICONS = {
    NotificationType.NEW_BOOKING: "🔔",
    NotificationType.CANCELLED_BOOKING: "❌",
    NotificationType.RESCHEDULED_BOOKING: "🔄",
    NotificationType.DEPOSIT_PAID: "💰",
}


class NotificationService:
    """Сервис для отправки уведомлений в Telegram"""

    def __init__(self, bot_token: Optional[str] = None, chat_id: Optional[str] = None):
        self.bot_token = bot_token if bot_token is not None else settings.TELEGRAM_BOT_TOKEN
        self.chat_id = chat_id if chat_id is not None else settings.TELEGRAM_STAFF_CHAT_ID
        self.api_url = f"https://api.telegram.org/bot{self.bot_token}"

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send_telegram_message(self, text: str, parse_mode: str = "Markdown") -> bool:
        """
        Отправить сообщение в чат персонала

        Returns:
            bool: True если отправлено успешно
        """
        if not self.configured:
            logger.warning("Telegram не настроен, пропускаем отправку")
            return False

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    f"{self.api_url}/sendMessage",
                    json={
                        "chat_id": self.chat_id,
                        "text": text,
                        "parse_mode": parse_mode
                    },
                    timeout=10.0
                )

            if response.status_code == 200:
                logger.info(f"Уведомление отправлено в чат {self.chat_id}")
                return True
            logger.error(f"Ошибка отправки в Telegram: {response.text}")
            return False

        except httpx.HTTPError as e:
            logger.error(f"Исключение при отправке в Telegram: {e}")
            return False

    async def send_staff_notification(self, notification_type: NotificationType, message: str) -> bool:
        icon = ICONS.get(notification_type, "📢")
        full_message = f"{icon} *{notification_type.value.upper()}*\n\n{message}"
        return await self.send_telegram_message(full_message)


# Глобальный экземпляр сервиса
notification_service = NotificationService()


def describe_booking(booking: Booking) -> str:
    service_name = booking.service.name if booking.service else "-"
    lines = [
        f"👤 Клиент: {booking.customer_name}",
        f"📱 Телефон: {booking.customer_phone}",
    ]
    if booking.pet_name:
        pet = booking.pet_name
        if booking.pet_breed:
            pet += f" ({booking.pet_breed})"
        lines.append(f"🐶 Питомец: {pet}")
    lines += [
        "",
        f"✂️ Услуга: {service_name} ({booking.duration_minutes} мин)",
        f"📅 Дата: {booking.booking_date:%Y-%m-%d}",
        f"🕐 Время: {format_time(booking.booking_time)}",
    ]
    if booking.is_first_visit:
        lines.append("⭐ Первый визит")
    return "\n".join(lines)


async def notify_new_booking(booking: Booking) -> bool:
    """Уведомление о новой записи"""
    return await notification_service.send_staff_notification(
        NotificationType.NEW_BOOKING,
        describe_booking(booking)
    )


async def notify_cancelled_booking(booking: Booking) -> bool:
    """Уведомление об отмене записи"""
    return await notification_service.send_staff_notification(
        NotificationType.CANCELLED_BOOKING,
        describe_booking(booking)
    )


async def notify_rescheduled_booking(booking: Booking, old_date: str, old_time: str) -> bool:
    """Уведомление о переносе записи"""
    message = (
        f"{describe_booking(booking)}\n\n"
        f"📅 Было: {old_date} в {old_time}"
    )
    return await notification_service.send_staff_notification(
        NotificationType.RESCHEDULED_BOOKING,
        message
    )


async def notify_deposit_paid(booking: Booking) -> bool:
    """Уведомление об оплате предоплаты"""
    return await notification_service.send_staff_notification(
        NotificationType.DEPOSIT_PAID,
        describe_booking(booking)
    )
