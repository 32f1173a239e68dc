"""
Часы магазина с фиксированным смещением от UTC
"""
from datetime import date, datetime, timedelta, timezone

from ..config import get_settings

settings = get_settings()


class ShopClock:
    """
    Источник "сейчас" для движка записи.
    Возвращает локальное время магазина без tzinfo: в таком виде хранятся
    все моменты в БД (дедлайн предоплаты, последний визит, напоминания).
    """

    def __init__(self, utc_offset_hours: int = 9):
        self.utc_offset_hours = utc_offset_hours
        self.tz = timezone(timedelta(hours=utc_offset_hours))

    def now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None)

    def today(self) -> date:
        return self.now().date()


class FrozenClock(ShopClock):
    """Часы с зафиксированным моментом (тесты, ручные пересчёты)"""

    def __init__(self, moment: datetime, utc_offset_hours: int = 9):
        super().__init__(utc_offset_hours)
        self.moment = moment

    def now(self) -> datetime:
        return self.moment

    def advance(self, **delta) -> datetime:
        self.moment = self.moment + timedelta(**delta)
        return self.moment


def get_clock() -> ShopClock:
    """Dependency для FastAPI, в тестах подменяется на FrozenClock"""
    return ShopClock(settings.SHOP_UTC_OFFSET_HOURS)
