"""
Bitfrost Bridge Client

Top-level façade over the bridge components:

    BridgeClient
      ├── RegistrySnapshotCache   cached chains/assets/status, periodic refresh
      ├── PreflightEngine         ordered allow/deny cascade
      ├── AdapterRegistry         chain kind → transaction builder
      ├── EventBus                correlation-tagged lifecycle events
      └── TrackingStateMachine    post-submission polling

``transfer`` checks and builds but never submits. Submission happens only
through ``submit`` with a caller-supplied ``Signer``, and repeating it is the
caller's responsibility to avoid.
"""

import asyncio
import logging
from typing import Iterable, Mapping, Optional, Tuple, Union

from ..config import BridgeConfig
from ..constants import DEFAULT_REGISTRY_POLL_INTERVAL_MS, DEFAULT_TRACK_POLL_INTERVAL_MS
from ..logger import get_logger
from ..query.client import BridgeQueryService, HttpBridgeQueryClient
from ..query.types import AssetId
from .adapters import (
    AdapterContext,
    AdapterRegistry,
    BuiltTransaction,
    ChainAdapter,
    Signer,
    chain_type_to_kind,
)
from .errors import (
    BridgeError,
    CanTransferDeclinedError,
    ChainUnavailableError,
    NoUsableAdapterError,
    ProviderError,
)
from .events import (
    EventBus,
    Listener,
    TransactionBuilt,
    TransactionSubmitted,
    TransferEvent,
    new_correlation_id,
)
from .preflight import PreflightEngine
from .registry import RegistrySnapshotCache
from .tracking import TrackingStateMachine
from .types import (
    CanTransferDecision,
    Estimate,
    Network,
    RegistrySnapshot,
    Timeouts,
    TransferHandle,
    TransferRef,
    TransferRequest,
)

logger = get_logger(__name__)

AdaptersArg = Union[AdapterRegistry, Mapping, Iterable[ChainAdapter], None]


def _as_adapter_registry(adapters: AdaptersArg) -> AdapterRegistry:
    if adapters is None:
        return AdapterRegistry()
    if isinstance(adapters, AdapterRegistry):
        return adapters
    if isinstance(adapters, Mapping):
        return AdapterRegistry(adapters)
    return AdapterRegistry.from_adapters(adapters)


class BridgeClient:
    """
    Orchestrates preflight, adapter dispatch, submission and tracking.

    Use ``BridgeClient.create`` to get an initialized instance; the
    constructor alone does not fetch the registry.
    """

    def __init__(
        self,
        service: BridgeQueryService,
        network: Union[Network, str] = Network.MAINNET,
        adapters: AdaptersArg = None,
        log: Optional[logging.Logger] = None,
        timeouts: Optional[Timeouts] = None,
        track_poll_interval_ms: int = DEFAULT_TRACK_POLL_INTERVAL_MS,
    ):
        self._service = service
        self._owns_service = False
        self.network = Network(network)
        self._log = log or logger
        self._timeouts = timeouts or Timeouts()
        self._adapters = _as_adapter_registry(adapters)

        self._bus = EventBus(self._log)
        self._registry = RegistrySnapshotCache(service, self._log)
        self._preflight = PreflightEngine(
            self._registry, service, self._bus, self._timeouts, self._log
        )
        self._tracker = TrackingStateMachine(
            service, self._bus, track_poll_interval_ms, self._log
        )
        self._destroyed = False

    # ══════════════════════════════════════════════════════════════════
    #  LIFECYCLE
    # ══════════════════════════════════════════════════════════════════

    @classmethod
    async def create(
        cls,
        service: Optional[BridgeQueryService] = None,
        config: Optional[BridgeConfig] = None,
        adapters: AdaptersArg = None,
        log: Optional[logging.Logger] = None,
        timeouts: Optional[Timeouts] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> "BridgeClient":
        """
        Build a client, load the registry, and start its refresh timer.

        Without a ``service`` an ``HttpBridgeQueryClient`` is opened against
        ``config.query.endpoint`` and closed again by ``aclose``.

        Without a ``config`` the defaults apply, overridden by any
        ``BITFROST_*`` environment variables.

        Raises:
            ConfigurationError: ``config`` fails validation; nothing is opened
            Whatever the initial registry refresh raises. The timer is not
            started in that case.
        """
        if config is None:
            config = BridgeConfig()
            config.apply_env()
        config.validate()
        owns_service = service is None
        if service is None:
            service = HttpBridgeQueryClient(
                config.query.endpoint,
                timeout=config.query.request_timeout,
            )

        client = cls(
            service,
            network=config.bridge.network,
            adapters=adapters,
            log=log,
            timeouts=timeouts or Timeouts(
                can_transfer_ms=config.timeouts.can_transfer_ms,
                execute_ms=config.timeouts.execute_ms,
            ),
            track_poll_interval_ms=config.tracking.poll_interval_ms,
        )
        client._owns_service = owns_service

        try:
            await client._registry.refresh()
        except Exception:
            if owns_service:
                await service.aclose()
            raise

        interval = poll_interval_ms or config.bridge.registry_poll_interval_ms or DEFAULT_REGISTRY_POLL_INTERVAL_MS
        client._registry.start(interval)
        client._log.info(
            f"Bridge client ready on {client.network.value}: "
            f"{len(client._registry.get_snapshot().chains)} chains, "
            f"adapters={[k.value for k in client._adapters.kinds]}"
        )
        return client

    def destroy(self) -> None:
        """Stop the refresh timer and drop all listeners. Idempotent."""
        if self._destroyed:
            return
        self._destroyed = True
        self._registry.stop()
        self._bus.clear()
        self._log.debug("Bridge client destroyed")

    async def aclose(self) -> None:
        """``destroy`` plus closing a query client opened by ``create``."""
        self.destroy()
        if self._owns_service:
            self._owns_service = False
            await self._service.aclose()

    async def __aenter__(self) -> "BridgeClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ══════════════════════════════════════════════════════════════════
    #  REGISTRY & EVENTS
    # ══════════════════════════════════════════════════════════════════

    @property
    def adapters(self) -> AdapterRegistry:
        return self._adapters

    async def refresh(self) -> RegistrySnapshot:
        return await self._registry.refresh()

    def get_registry(self) -> RegistrySnapshot:
        return self._registry.get_snapshot()

    def on(self, listener: Listener):
        """Subscribe to lifecycle events; returns the unsubscribe callable."""
        return self._bus.subscribe(listener)

    # ══════════════════════════════════════════════════════════════════
    #  OPERATIONS
    # ══════════════════════════════════════════════════════════════════

    async def can_transfer(self, req: TransferRequest) -> CanTransferDecision:
        return await self._preflight.can_transfer(req)

    async def estimate(self, req: TransferRequest) -> Estimate:
        """Bridge fee rate for ``req``; an empty estimate if it cannot be had."""
        try:
            asset = self._registry.get_snapshot().find_asset(req.asset_id, req.from_chain_id)
            asset_id = asset.id if asset is not None and asset.id is not None else AssetId.parse(req.asset_id)
            fee = await self._service.estimate_fee(
                src_chain_id=req.from_chain_id,
                dst_chain_id=req.to_chain_id,
                source_chain=asset_id.source_chain,
                denom=asset_id.denom,
            )
        except Exception as e:
            self._log.warning(f"Fee estimation failed for {req.asset_id}: {e!r}")
            return Estimate()
        return Estimate(bridge_fee_rate=fee.fee_rate)

    async def transfer(self, req: TransferRequest) -> Tuple[BuiltTransaction, TransferHandle]:
        """
        Check and build a transfer. Nothing is submitted.

        Returns:
            (built transaction, handle); the handle's ``tx_id`` is the
            correlation id shared by every event of this call.

        Raises:
            CanTransferDeclinedError: preflight denied
            ChainUnavailableError: source chain vanished after preflight
            NoUsableAdapterError: no adapter for the source chain's kind
            ProviderError: the adapter failed with a non-bridge error
        """
        cid = new_correlation_id()
        decision = await self._preflight.can_transfer(req, correlation_id=cid)
        if not decision.allowed:
            raise CanTransferDeclinedError(decision.reason, details=decision)

        snapshot = self._registry.get_snapshot()
        src = snapshot.chains.get(req.from_chain_id)
        if src is None:
            raise ChainUnavailableError(
                f"source chain {req.from_chain_id} not found", details=req.from_chain_id
            )

        kind = chain_type_to_kind(src.type, self._log)
        ctx = AdapterContext(
            registry=snapshot,
            network=self.network,
            logger=self._log,
            timeouts=self._timeouts,
        )
        adapter = self._adapters.get(kind)
        if adapter is None or not adapter.can_handle(req.from_chain_id, ctx):
            raise NoUsableAdapterError(
                f"no usable adapter for chain {req.from_chain_id} (kind={kind.value})",
                details=kind,
            )

        try:
            built = await adapter.build(req, ctx)
        except BridgeError:
            raise
        except Exception as e:
            raise ProviderError(f"adapter build failed: {e}", details=e) from e

        self._bus.emit(TransactionBuilt, cid, req=req, built=built)
        handle = TransferHandle(
            from_chain_id=req.from_chain_id,
            to_chain_id=req.to_chain_id,
            asset_id=req.asset_id,
            tx_id=cid,
        )
        self._log.info(
            f"Built {kind.value} transfer {req.asset_id} {req.amount} "
            f"{req.from_chain_id}->{req.to_chain_id} cid={cid}"
        )
        return built, handle

    async def submit(
        self,
        built: BuiltTransaction,
        handle: TransferHandle,
        signer: Signer,
        req: Optional[TransferRequest] = None,
    ) -> TransferHandle:
        """
        Broadcast a built transaction through its adapter's ``send``.

        Returns a copy of ``handle`` carrying ``submit_tx_hash``.
        """
        adapter = self._adapters.get(built.kind)
        if adapter is None or not adapter.supports_send:
            raise NoUsableAdapterError(
                f"no adapter able to send {built.kind.value} transactions", details=built.kind
            )

        try:
            tx_hash = await adapter.send(built, signer)
        except BridgeError:
            raise
        except Exception as e:
            raise ProviderError(f"submission failed: {e}", details=e) from e

        submitted = handle.with_submit_hash(tx_hash)
        self._bus.emit(TransactionSubmitted, handle.tx_id, handle=submitted, req=req)
        self._log.info(f"Submitted transfer tx_hash={tx_hash} cid={handle.tx_id}")
        return submitted

    async def track(
        self,
        ref: TransferRef,
        cancel: Optional[asyncio.Event] = None,
        max_attempts: Optional[int] = None,
        correlation_id: Optional[str] = None,
    ) -> Optional[TransferEvent]:
        """Poll ``ref`` until terminal; see ``TrackingStateMachine.track``."""
        return await self._tracker.track(
            ref, cancel=cancel, max_attempts=max_attempts, correlation_id=correlation_id
        )
