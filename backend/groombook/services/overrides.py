"""
Ручные переопределения слотов: заблокированные и принудительно открытые
"""
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

from ..models.shop import Shop
from .shop_config import load_slot_map


@dataclass(frozen=True)
class SlotOverrides:
    """Переопределения на одну дату (время в формате HH:MM)"""
    blocked: FrozenSet[str] = field(default_factory=frozenset)
    force_open: FrozenSet[str] = field(default_factory=frozenset)


def get_overrides(shop: Shop, date_str: str) -> SlotOverrides:
    """Переопределения магазина на дату; пустые множества, если их нет"""
    blocked = load_slot_map(shop.blocked_slots, shop.id)
    force_open = load_slot_map(shop.force_open_slots, shop.id)
    return SlotOverrides(
        blocked=frozenset(blocked.get(date_str, [])),
        force_open=frozenset(force_open.get(date_str, []))
    )


def toggle_slot(slot_map: Dict[str, List[str]], date_str: str, time_str: str) -> Dict[str, List[str]]:
    """
    Добавить время в список даты или убрать, если оно там уже есть.
    Возвращает новую карту: JSON-колонка должна получить новый объект.
    Дата с пустым списком удаляется.
    """
    result = {key: list(value) for key, value in slot_map.items()}
    current = set(result.get(date_str, []))

    if time_str in current:
        current.discard(time_str)
    else:
        current.add(time_str)

    if current:
        result[date_str] = sorted(current)
    else:
        result.pop(date_str, None)
    return result


def clear_date(slot_map: Dict[str, List[str]], date_str: str) -> Dict[str, List[str]]:
    """Убрать все переопределения на дату"""
    return {key: list(value) for key, value in slot_map.items() if key != date_str}
