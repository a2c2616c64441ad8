"""Order timeline — the human-facing milestone list shown on the tracking page.

A pure projection over an order record: it reads ``status``, ``status_history``
and ``updated_at`` from either the ``Order`` aggregate or the wire-level
``OrderRecordSchema`` and never writes anything back. Malformed records
(unknown statuses, histories out of canonical order, missing timestamps)
are rendered as far as they can be understood instead of raising.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog

from ordering.order.order import BRANCH_STATUSES, CANONICAL_FLOW, OrderStatus, canonical_position

logger = structlog.get_logger(__name__)

AWAITING = "Awaiting"

STEP_TITLES = {
    OrderStatus.PENDING: ("Order received", "We have received your order."),
    OrderStatus.CONFIRMED: ("Confirmed", "Payment confirmed and artwork approved."),
    OrderStatus.PROCESSING: ("In production", "Your packaging is being printed and assembled."),
    OrderStatus.SHIPPED: ("Shipped", "Your order is on its way."),
    OrderStatus.DELIVERED: ("Delivered", "Your order has been delivered."),
}

TERMINAL_TITLES = {
    OrderStatus.CANCELLED: ("Cancelled", "This order was cancelled."),
    OrderStatus.REFUNDED: ("Refunded", "This order was refunded."),
}


class StepState(Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"


@dataclass(frozen=True)
class TimelineStep:
    status: str
    title: str
    description: str
    completed: bool
    current: bool
    timestamp: datetime | None = None

    @property
    def state(self) -> StepState:
        if self.current:
            return StepState.CURRENT
        return StepState.COMPLETED if self.completed else StepState.PENDING

    @property
    def label(self) -> str:
        """Display text for the step's time: ISO timestamp or "Awaiting"."""
        return self.timestamp.isoformat() if self.timestamp else AWAITING


@dataclass(frozen=True)
class TerminalMarker:
    status: str
    title: str
    description: str
    timestamp: datetime | None = None


@dataclass(frozen=True)
class OrderTimeline:
    current_status: str | None
    steps: tuple[TimelineStep, ...]
    terminal: TerminalMarker | None = None

    @property
    def current_step(self) -> TimelineStep | None:
        return next((step for step in self.steps if step.current), None)

    def to_dict(self) -> dict:
        return {
            "current_status": self.current_status,
            "steps": [
                {
                    "status": step.status,
                    "title": step.title,
                    "description": step.description,
                    "state": step.state.value,
                    "timestamp": step.timestamp.isoformat() if step.timestamp else None,
                    "label": step.label,
                }
                for step in self.steps
            ],
            "terminal": (
                {
                    "status": self.terminal.status,
                    "title": self.terminal.title,
                    "description": self.terminal.description,
                    "timestamp": self.terminal.timestamp.isoformat() if self.terminal.timestamp else None,
                }
                if self.terminal
                else None
            ),
        }


def _status(value) -> OrderStatus | None:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except (ValueError, AttributeError):
        return None


def _timestamp(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def _latest(history, status: OrderStatus) -> datetime | None:
    """Most recent transition into ``status``; later entries win ties and gaps."""
    found = None
    for transition in history:
        if _status(getattr(transition, "new_status", None)) != status:
            continue
        when = _timestamp(getattr(transition, "created_at", None))
        if when is not None and (found is None or when >= found):
            found = when
    return found


def build_timeline(order) -> OrderTimeline:
    """Project an order record into canonical steps plus an optional terminal marker."""
    history = list(getattr(order, "status_history", None) or [])
    raw_status = getattr(order, "status", None)
    current = _status(raw_status)
    updated_at = _timestamp(getattr(order, "updated_at", None))

    if raw_status is not None and current is None:
        logger.warning("Unrecognized order status in timeline", status=raw_status)

    # Effective position: furthest canonical status seen in the record
    positions = [canonical_position(current)] if current is not None else []
    positions += [canonical_position(_status(getattr(t, "new_status", None))) for t in history]
    positions = [p for p in positions if p is not None]
    effective = max(positions) if positions else None

    is_branch = current in BRANCH_STATUSES

    steps = []
    for position, status in enumerate(CANONICAL_FLOW):
        completed = effective is not None and position <= effective
        title, description = STEP_TITLES[status]
        timestamp = _latest(history, status)
        if timestamp is None and completed:
            timestamp = updated_at
        steps.append(
            TimelineStep(
                status=status.value,
                title=title,
                description=description,
                completed=completed,
                current=completed and position == effective and not is_branch,
                timestamp=timestamp,
            )
        )

    terminal = None
    if is_branch:
        title, description = TERMINAL_TITLES[current]
        terminal = TerminalMarker(
            status=current.value,
            title=title,
            description=description,
            timestamp=_latest(history, current) or updated_at,
        )

    return OrderTimeline(
        current_status=current.value if current else None,
        steps=tuple(steps),
        terminal=terminal,
    )
