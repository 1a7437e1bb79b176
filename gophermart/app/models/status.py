from __future__ import annotations

from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    INVALID = "INVALID"
    PROCESSED = "PROCESSED"


TERMINAL_STATUSES = frozenset({OrderStatus.INVALID, OrderStatus.PROCESSED})
PENDING_STATUSES = frozenset({OrderStatus.NEW, OrderStatus.PROCESSING})

_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.NEW: frozenset(
        {OrderStatus.PROCESSING, OrderStatus.INVALID, OrderStatus.PROCESSED}
    ),
    OrderStatus.PROCESSING: frozenset({OrderStatus.INVALID, OrderStatus.PROCESSED}),
    OrderStatus.INVALID: frozenset(),
    OrderStatus.PROCESSED: frozenset(),
}

# Oracle vocabulary -> order vocabulary. Anything else means "no transition".
ORACLE_STATUS_MAP: dict[str, OrderStatus] = {
    "REGISTERED": OrderStatus.PROCESSING,
    "PROCESSING": OrderStatus.PROCESSING,
    "INVALID": OrderStatus.INVALID,
    "PROCESSED": OrderStatus.PROCESSED,
}


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return new in _TRANSITIONS[current]


def map_oracle_status(raw: str) -> Optional[OrderStatus]:
    return ORACLE_STATUS_MAP.get(raw.strip().upper()) if raw else None
