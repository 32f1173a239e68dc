"""
Разбор конфигурации расписания магазина

Единственное место, где сырые JSON-поля магазина (business_days,
closed_dates, blocked_slots, force_open_slots) превращаются в типы.
Повреждённые данные не должны ломать страницу записи, поэтому при любой
ошибке разбора пишем warning и возвращаем безопасное значение по умолчанию.
"""
import json
import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from ..errors import ConfigurationError
from ..models.shop import DEFAULT_BUSINESS_DAYS

logger = logging.getLogger(__name__)

# 0=Вс ... 6=Сб, как getDay() в браузере
WEEKDAY_KEYS = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]
WEEKDAY_NAMES = {
    "sun": "воскресенье",
    "mon": "понедельник",
    "tue": "вторник",
    "wed": "среда",
    "thu": "четверг",
    "fri": "пятница",
    "sat": "суббота",
}

TIME_RE = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")
DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_valid_time(value: Any) -> bool:
    return isinstance(value, str) and bool(TIME_RE.match(value))


def is_valid_date(value: Any) -> bool:
    if not isinstance(value, str) or not DATE_RE.match(value):
        return False
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


class DaySchedule(BaseModel):
    """Часы работы в один день недели"""
    open: str = "09:00"
    close: str = "18:00"
    closed: bool = False

    @field_validator("open", "close")
    @classmethod
    def check_time_format(cls, value: str) -> str:
        if not is_valid_time(value):
            raise ValueError("время должно быть в формате HH:MM")
        return value

    @model_validator(mode="after")
    def check_bounds(self) -> "DaySchedule":
        if not self.closed and self.open >= self.close:
            raise ValueError("время открытия должно быть раньше закрытия")
        return self


class WeeklySchedule(BaseModel):
    """Недельное расписание: по одному DaySchedule на каждый день"""
    sun: DaySchedule
    mon: DaySchedule
    tue: DaySchedule
    wed: DaySchedule
    thu: DaySchedule
    fri: DaySchedule
    sat: DaySchedule

    @classmethod
    def default(cls) -> "WeeklySchedule":
        return cls.model_validate(DEFAULT_BUSINESS_DAYS)

    def for_weekday(self, index: int) -> DaySchedule:
        """index: 0=Вс ... 6=Сб"""
        return getattr(self, WEEKDAY_KEYS[index])


def _decode(raw: Any) -> Any:
    """Старые записи хранят JSON строкой, новые - уже объектом"""
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError as e:
            raise ConfigurationError(f"невалидный JSON: {e}") from e
    return raw


def validate_weekly_schedule(raw: Any) -> WeeklySchedule:
    """
    Строгая проверка расписания (для сохранения из настроек магазина).
    Отсутствующие дни берутся из расписания по умолчанию.

    Raises:
        ConfigurationError: если расписание не разбирается
    """
    data = _decode(raw)
    if not isinstance(data, dict):
        raise ConfigurationError("расписание должно быть объектом")

    merged = dict(DEFAULT_BUSINESS_DAYS)
    for key in WEEKDAY_KEYS:
        if key in data:
            merged[key] = data[key]

    try:
        return WeeklySchedule.model_validate(merged)
    except PydanticValidationError as e:
        raise ConfigurationError(str(e)) from e


def load_weekly_schedule(raw: Any, shop_id: Optional[int] = None) -> WeeklySchedule:
    """Расписание магазина или расписание по умолчанию"""
    if raw in (None, "", {}):
        return WeeklySchedule.default()
    try:
        return validate_weekly_schedule(raw)
    except ConfigurationError as e:
        logger.warning("Магазин %s: повреждённое расписание, используем по умолчанию (%s)", shop_id, e)
        return WeeklySchedule.default()


def load_closed_dates(raw: Any, shop_id: Optional[int] = None) -> Set[str]:
    """Разовые выходные дни (YYYY-MM-DD)"""
    if raw in (None, ""):
        return set()
    try:
        data = _decode(raw)
        if not isinstance(data, list):
            raise ConfigurationError("список выходных должен быть массивом")
    except ConfigurationError as e:
        logger.warning("Магазин %s: повреждённый список выходных (%s)", shop_id, e)
        return set()
    return {item for item in data if is_valid_date(item)}


def load_slot_map(raw: Any, shop_id: Optional[int] = None) -> Dict[str, List[str]]:
    """
    Карта переопределений слотов: дата -> список времени.
    Даты с невалидным значением (не массив) просто пропускаются.
    """
    if raw in (None, ""):
        return {}
    try:
        data = _decode(raw)
        if not isinstance(data, dict):
            raise ConfigurationError("переопределения слотов должны быть объектом")
    except ConfigurationError as e:
        logger.warning("Магазин %s: повреждённые переопределения слотов (%s)", shop_id, e)
        return {}

    result = {}
    for date_str, times in data.items():
        if not isinstance(times, list):
            logger.warning("Магазин %s: переопределения на %s не массив, пропускаем", shop_id, date_str)
            continue
        result[date_str] = sorted({t for t in times if is_valid_time(t)})
    return result
