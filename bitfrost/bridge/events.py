"""
Bitfrost Transfer Events

Lifecycle events emitted while a transfer is checked, built, submitted and
tracked, plus the in-process bus that fans them out to listeners.

Delivery is synchronous and best-effort: a listener that raises is logged and
skipped, and never affects the producer or the remaining listeners.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Type, TypeVar

from ..logger import get_logger
from .errors import BridgeError, ProviderError
from .types import CanTransferDecision, TransferHandle, TransferRef, TransferRequest

logger = get_logger(__name__)


# ══════════════════════════════════════════════════════════════════════
#  EVENTS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """
    Base of all lifecycle events.

    Attributes:
        correlation_id: Shared by every event of one logical operation
        ts: Emission time (unix seconds), non-decreasing per bus
    """
    correlation_id: str
    ts: float


@dataclass(frozen=True)
class PreflightStarted(TransferEvent):
    req: TransferRequest


@dataclass(frozen=True)
class DecisionMade(TransferEvent):
    req: TransferRequest
    decision: CanTransferDecision


@dataclass(frozen=True)
class TransactionBuilt(TransferEvent):
    req: TransferRequest
    built: Any


@dataclass(frozen=True)
class TransactionSubmitted(TransferEvent):
    handle: TransferHandle
    req: Optional[TransferRequest] = None


@dataclass(frozen=True)
class TransferConfirmed(TransferEvent):
    ref: TransferRef


@dataclass(frozen=True)
class TransferFailed(TransferEvent):
    error: BridgeError
    ref: Optional[TransferRef] = None


Listener = Callable[[TransferEvent], None]
EventT = TypeVar("EventT", bound=TransferEvent)


def new_correlation_id() -> str:
    return str(uuid.uuid4())


# ══════════════════════════════════════════════════════════════════════
#  EVENT BUS
# ══════════════════════════════════════════════════════════════════════

class EventBus:
    """
    Synchronous publish/subscribe for transfer events.

    Each emission iterates a copy of the listener set, so listeners may
    subscribe or unsubscribe (themselves included) while being notified.
    """

    def __init__(self, log: Optional[logging.Logger] = None):
        self._listeners: Dict[Listener, None] = {}
        self._last_ts = 0.0
        self._log = log or logger

    def __len__(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], bool]:
        """Register a listener; returns a callable that removes it."""
        self._listeners[listener] = None
        return lambda: self.unsubscribe(listener)

    def unsubscribe(self, listener: Listener) -> bool:
        if listener not in self._listeners:
            return False
        del self._listeners[listener]
        return True

    def clear(self) -> None:
        self._listeners.clear()

    def _next_ts(self) -> float:
        now = time.time()
        if now < self._last_ts:
            now = self._last_ts
        self._last_ts = now
        return now

    def emit(self, event_cls: Type[EventT], correlation_id: str, **fields: Any) -> EventT:
        """Stamp and dispatch a new event of ``event_cls``."""
        event = event_cls(correlation_id=correlation_id, ts=self._next_ts(), **fields)
        self.dispatch(event)
        return event

    def dispatch(self, event: TransferEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                err = e if isinstance(e, ProviderError) else ProviderError("listener threw", details=e)
                self._log.warning(
                    f"Listener threw on {type(event).__name__} "
                    f"(cid={event.correlation_id}): {err}: {e!r}"
                )
