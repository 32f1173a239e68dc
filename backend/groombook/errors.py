"""
Доменные ошибки движка записи

Все ошибки восстановимы в рамках одного запроса: роутеры не ловят их,
а обработчик в main.py превращает их в JSON-ответ с нужным статусом.
"""
from typing import Optional


class BookingError(Exception):
    """Базовая ошибка записи"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.field = field

    def to_dict(self) -> dict:
        payload = {"detail": self.message}
        if self.field:
            payload["field"] = self.field
        return payload


class ValidationError(BookingError):
    """Некорректные входные данные (формат даты, телефон, пустое имя)"""

    status_code = 400


class NotFoundError(BookingError):
    """Магазин, услуга, клиент или запись не найдены"""

    status_code = 404


class ConflictError(BookingError):
    """Выбранное время пересекается с активной записью"""

    status_code = 409


class TransitionError(BookingError):
    """Операция не разрешена из текущего статуса записи"""

    status_code = 409


class ConfigurationError(Exception):
    """
    Повреждённая конфигурация магазина (JSON расписания или переопределений).
    Наружу не пробрасывается: services/shop_config.py откатывается на значения
    по умолчанию.
    """
