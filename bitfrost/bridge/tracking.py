"""
Bitfrost Transfer Tracking

Polls the query service for one ``TransferRef`` until the transfer reaches a
terminal state, then emits exactly one ``TransferConfirmed`` or
``TransferFailed``.

Terminal states per reference kind:

    NativeTxRef           tx found, code 0      → confirmed
                          tx found, code != 0   → failed
    OutboundTransferRef   FINALIZED             → confirmed
                          FAILED / UNRECOGNIZED → failed
    InboundTransferRef    FINALIZED             → confirmed
                          UNRECOGNIZED          → failed
    ExternalRef           not polled; tracking belongs to the foreign chain

Anything else is "not yet observed": wait one interval and poll again, with
no backoff. Lookup errors propagate to the caller of ``track``.
"""

import asyncio
import logging
from typing import Optional, Tuple

from ..constants import DEFAULT_TRACK_POLL_INTERVAL_MS
from ..logger import get_logger
from ..query.client import BridgeQueryService
from ..query.types import InboundTransferStatus, OutboundTransferStatus
from .errors import BridgeError, ProviderError
from .events import (
    EventBus,
    TransferConfirmed,
    TransferEvent,
    TransferFailed,
    new_correlation_id,
)
from .types import (
    ExternalRef,
    InboundTransferRef,
    NativeTxRef,
    OutboundTransferRef,
    TransferRef,
)

logger = get_logger(__name__)

# (succeeded, error); error is None on success
_Outcome = Optional[Tuple[bool, Optional[BridgeError]]]

_PENDING: _Outcome = None
_CONFIRMED: _Outcome = (True, None)


class TrackingStateMachine:
    """One polling loop per ``track`` call; loops share nothing but the bus."""

    def __init__(
        self,
        service: BridgeQueryService,
        bus: EventBus,
        poll_interval_ms: int = DEFAULT_TRACK_POLL_INTERVAL_MS,
        log: Optional[logging.Logger] = None,
    ):
        if poll_interval_ms < 0:
            raise ValueError("poll_interval_ms must not be negative")
        self._service = service
        self._bus = bus
        self._interval = poll_interval_ms / 1000
        self._log = log or logger

    async def track(
        self,
        ref: TransferRef,
        cancel: Optional[asyncio.Event] = None,
        max_attempts: Optional[int] = None,
        correlation_id: Optional[str] = None,
    ) -> Optional[TransferEvent]:
        """
        Poll ``ref`` until terminal.

        Args:
            ref: What to poll
            cancel: Set it to stop the loop; nothing is emitted
            max_attempts: Give up (without emitting) after this many polls
            correlation_id: Tag for the terminal event; a new one if None

        Returns:
            The terminal event, or None when cancelled, exhausted, or the
            reference is external.
        """
        if isinstance(ref, ExternalRef):
            self._log.info(
                f"External transfer {ref.external_tx_id} on chain={ref.external_chain_id} "
                f"is tracked by its own chain; not polling"
            )
            return None

        cid = correlation_id or new_correlation_id()
        attempts = 0
        while True:
            if cancel is not None and cancel.is_set():
                self._log.debug(f"Tracking cancelled for {ref} cid={cid}")
                return None

            outcome = await self._poll(ref)
            attempts += 1

            if outcome is not _PENDING:
                succeeded, error = outcome
                if succeeded:
                    self._log.info(f"Transfer confirmed: {ref} cid={cid}")
                    return self._bus.emit(TransferConfirmed, cid, ref=ref)
                self._log.warning(f"Transfer failed: {ref} cid={cid}: {error}")
                return self._bus.emit(TransferFailed, cid, error=error, ref=ref)

            if max_attempts is not None and attempts >= max_attempts:
                self._log.info(f"Tracking gave up after {attempts} attempts: {ref} cid={cid}")
                return None

            if await self._wait(cancel):
                self._log.debug(f"Tracking cancelled for {ref} cid={cid}")
                return None

    async def _wait(self, cancel: Optional[asyncio.Event]) -> bool:
        """Sleep one interval; True if ``cancel`` was set meanwhile."""
        if cancel is None:
            await asyncio.sleep(self._interval)
            return False
        try:
            await asyncio.wait_for(cancel.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return False
        return True

    # ── Per-kind polls ──────────────────────────────────────────────

    async def _poll(self, ref: TransferRef) -> _Outcome:
        if isinstance(ref, NativeTxRef):
            return await self._poll_native(ref)
        if isinstance(ref, OutboundTransferRef):
            return await self._poll_outbound(ref)
        if isinstance(ref, InboundTransferRef):
            return await self._poll_inbound(ref)
        raise TypeError(f"unsupported transfer reference: {ref!r}")

    async def _poll_native(self, ref: NativeTxRef) -> _Outcome:
        tx = await self._service.get_tx(ref.tx_hash)
        if tx is None:
            return _PENDING
        if tx.succeeded:
            return _CONFIRMED
        return (False, ProviderError(
            f"transaction {ref.tx_hash} failed with code {tx.code}",
            details=tx,
        ))

    async def _poll_outbound(self, ref: OutboundTransferRef) -> _Outcome:
        transfer = await self._service.get_outbound_transfer(ref.outbound_id)
        if transfer is None:
            return _PENDING
        if transfer.status == OutboundTransferStatus.FINALIZED:
            return _CONFIRMED
        if transfer.status in (OutboundTransferStatus.FAILED, OutboundTransferStatus.UNRECOGNIZED):
            return (False, ProviderError(
                f"outbound transfer {ref.outbound_id} {transfer.status.name.lower()}",
                details=transfer,
            ))
        return _PENDING

    async def _poll_inbound(self, ref: InboundTransferRef) -> _Outcome:
        transfer = await self._service.get_inbound_transfer(ref.inbound_id)
        if transfer is None:
            return _PENDING
        if transfer.status == InboundTransferStatus.FINALIZED:
            return _CONFIRMED
        if transfer.status == InboundTransferStatus.UNRECOGNIZED:
            return (False, ProviderError(
                f"inbound transfer {ref.inbound_id} unrecognized",
                details=transfer,
            ))
        return _PENDING
