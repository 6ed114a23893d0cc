"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created."""

    customer_id: str = ""
    total_amount: str = "0.00"


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order is cancelled."""

    previous_status: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderDeleted(DomainEvent):
    """Raised when an order is soft-deleted."""
