"""
Таблица переходов состояний записи

Каждая операция разрешена только из перечисленных статусов записи и
предоплаты. Всё, чего нет в таблице, отклоняется с TransitionError.
"""
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..errors import TransitionError
from ..models.booking import Booking, BookingStatus, DepositStatus

ACTIVE = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)
UNPAID = (DepositStatus.NONE.value, DepositStatus.WAITING.value)


class Operation(str, Enum):
    """Операции персонала и клиента над записью"""
    APPROVE = "approve"
    REJECT = "reject"
    CANCEL = "cancel"
    REQUEST_DEPOSIT = "request_deposit"
    CONFIRM_DEPOSIT = "confirm_deposit"
    ADMIN_CONFIRM_DEPOSIT = "admin_confirm_deposit"
    RESCHEDULE = "reschedule"
    MARK_REMINDED = "mark_reminded"


@dataclass(frozen=True)
class Transition:
    """Допустимый переход; None в to_* - поле не меняется, в from_deposit - любой статус"""
    operation: Operation
    from_statuses: Tuple[str, ...]
    from_deposit: Optional[Tuple[str, ...]] = None
    to_status: Optional[str] = None
    to_deposit: Optional[str] = None


TRANSITIONS: List[Transition] = [
    Transition(Operation.APPROVE, (BookingStatus.PENDING.value,),
               to_status=BookingStatus.CONFIRMED.value),
    Transition(Operation.REJECT, ACTIVE, to_status=BookingStatus.REJECTED.value),
    Transition(Operation.CANCEL, ACTIVE, to_status=BookingStatus.CANCELLED.value),

    # --- Предоплата ---
    Transition(Operation.REQUEST_DEPOSIT, ACTIVE, UNPAID,
               to_deposit=DepositStatus.WAITING.value),
    Transition(Operation.CONFIRM_DEPOSIT, ACTIVE, UNPAID,
               to_deposit=DepositStatus.PAID.value),
    Transition(Operation.ADMIN_CONFIRM_DEPOSIT, ACTIVE, UNPAID,
               to_status=BookingStatus.CONFIRMED.value, to_deposit=DepositStatus.PAID.value),

    Transition(Operation.RESCHEDULE, ACTIVE),
    Transition(Operation.MARK_REMINDED, (BookingStatus.CONFIRMED.value,)),
]


def find_transition(booking: Booking, operation: Operation) -> Transition:
    """
    Найти переход для операции из текущего состояния записи.

    Raises:
        TransitionError: если операция из этого состояния недопустима
    """
    for t in TRANSITIONS:
        if t.operation != operation or booking.status not in t.from_statuses:
            continue
        if t.from_deposit is not None and booking.deposit_status not in t.from_deposit:
            continue
        return t

    raise TransitionError(
        f"Операция '{operation.value}' недоступна для записи в статусе "
        f"'{booking.status}' (предоплата: '{booking.deposit_status}')"
    )


def allowed_operations(booking: Booking) -> List[Operation]:
    """Операции, доступные из текущего состояния (для кнопок в интерфейсе)"""
    result = []
    for t in TRANSITIONS:
        if booking.status not in t.from_statuses:
            continue
        if t.from_deposit is not None and booking.deposit_status not in t.from_deposit:
            continue
        if t.operation not in result:
            result.append(t.operation)
    return result
