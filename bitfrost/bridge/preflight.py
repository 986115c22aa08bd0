"""
Bitfrost Preflight Engine

Decides whether a transfer may proceed. Rules run in a fixed order and the
first failing rule determines the decision:

    1. global bridge status
    2. asset exists and is not blocked
    3. source and destination chains exist
    4. source not outbound-blocked, destination not inbound-blocked
    5. amount is an integer at or above the asset minimum
    6. online CanTransfer query, bounded by a timeout

Denials are returned, never raised. When the online query fails or times out
the engine allows the transfer and logs a warning (fail-open), so a transfer
the cached configuration permits may occasionally be rejected later by the
chain itself.
"""

import asyncio
import logging
import re
from typing import Optional

from ..logger import get_logger
from ..query.client import BridgeQueryService
from ..query.types import AssetStatus
from .errors import (
    AmountTooLowError,
    AssetBlockedError,
    BridgeBlockedError,
    ChainAssetDirectionBlockedError,
    ChainUnavailableError,
    ProviderError,
)
from .events import DecisionMade, EventBus, PreflightStarted, new_correlation_id
from .registry import RegistrySnapshotCache
from .types import CanTransferDecision, RegistrySnapshot, Timeouts, TransferRequest

logger = get_logger(__name__)

_AMOUNT_RE = re.compile(r'^[0-9]+$')


def parse_amount(value: Optional[str]) -> Optional[int]:
    """Parse a decimal-string non-negative integer; None if malformed."""
    if value is None:
        return None
    text = str(value).strip()
    if not _AMOUNT_RE.match(text):
        return None
    return int(text)


def _deny(reason: str) -> CanTransferDecision:
    return CanTransferDecision(allowed=False, reason=reason)


class PreflightEngine:
    """Evaluates transfer requests against the registry and the chain."""

    def __init__(
        self,
        registry: RegistrySnapshotCache,
        service: BridgeQueryService,
        bus: EventBus,
        timeouts: Optional[Timeouts] = None,
        log: Optional[logging.Logger] = None,
    ):
        self._registry = registry
        self._service = service
        self._bus = bus
        self._timeouts = timeouts or Timeouts()
        self._log = log or logger

    async def can_transfer(
        self,
        req: TransferRequest,
        correlation_id: Optional[str] = None,
    ) -> CanTransferDecision:
        """
        Run the rule cascade for ``req``.

        Emits ``PreflightStarted`` then exactly one ``DecisionMade`` under the
        same correlation id. Raises only ``RegistryUninitializedError``, before
        any event is emitted.

        Args:
            req: The transfer to check
            correlation_id: Reuse an operation's id; a new one is drawn if None

        Returns:
            CanTransferDecision
        """
        snapshot = self._registry.get_snapshot()
        cid = correlation_id or new_correlation_id()
        self._bus.emit(PreflightStarted, cid, req=req)

        decision = self.evaluate_local(req, snapshot)
        if decision is None:
            # The chain judges the same asset the local rules resolved
            asset = snapshot.find_asset(req.asset_id, req.from_chain_id)
            decision = await self._check_online(req, asset.id.key, cid)

        self._log.debug(
            f"Preflight {req.from_chain_id}->{req.to_chain_id} {req.asset_id} "
            f"allowed={decision.allowed} reason={decision.reason!r} cid={cid}"
        )
        self._bus.emit(DecisionMade, cid, req=req, decision=decision)
        return decision

    # ── Local rules ─────────────────────────────────────────────────

    def evaluate_local(
        self,
        req: TransferRequest,
        snapshot: RegistrySnapshot,
    ) -> Optional[CanTransferDecision]:
        """Rules 1-5. Returns the denial, or None when every rule passes."""
        if not snapshot.bridge_ok:
            return _deny(BridgeBlockedError().message)

        asset = snapshot.find_asset(req.asset_id, req.from_chain_id)
        if asset is None:
            return _deny(f"asset {req.asset_id} not found")
        if asset.status != AssetStatus.OK:
            return _deny(AssetBlockedError().message)

        src = snapshot.chains.get(req.from_chain_id)
        dst = snapshot.chains.get(req.to_chain_id)
        if src is None or dst is None:
            return _deny(
                ChainUnavailableError("source or destination chain not found").message
            )

        if src.status.outbound_blocked:
            return _deny(ChainAssetDirectionBlockedError(
                f"source chain {req.from_chain_id} outbound blocked"
            ).message)
        if dst.status.inbound_blocked:
            return _deny(ChainAssetDirectionBlockedError(
                f"destination chain {req.to_chain_id} inbound blocked"
            ).message)

        minimum = asset.min_transfer_amount or "0"
        amount = parse_amount(req.amount)
        min_amount = parse_amount(minimum)
        if amount is None or min_amount is None:
            return _deny(AmountTooLowError("invalid amount").message)
        if amount < min_amount:
            return _deny(AmountTooLowError(f"amount below minimum: min={minimum}").message)

        return None

    # ── Online rule ─────────────────────────────────────────────────

    async def _check_online(
        self,
        req: TransferRequest,
        asset_id: str,
        cid: str,
    ) -> CanTransferDecision:
        timeout = self._timeouts.can_transfer_ms / 1000
        try:
            response = await asyncio.wait_for(
                self._service.can_transfer(
                    src_chain_id=req.from_chain_id,
                    dest_chain_id=req.to_chain_id,
                    asset_id=asset_id,
                    amount=req.amount,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            err = ProviderError("canTransfer timeout", details=e)
            self._log.warning(
                f"canTransfer RPC timed out after {timeout:g}s, "
                f"falling back to local allow (cid={cid}): {err}"
            )
            return CanTransferDecision(allowed=True)
        except Exception as e:
            err = e if isinstance(e, ProviderError) else ProviderError("canTransfer RPC failed", details=e)
            self._log.warning(
                f"canTransfer RPC failed, falling back to local allow (cid={cid}): {err}: {e!r}"
            )
            return CanTransferDecision(allowed=True)

        return CanTransferDecision(allowed=response.can_transfer, reason=response.reason)
