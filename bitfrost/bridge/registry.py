"""
Bitfrost Registry Snapshot Cache

Keeps the last-known bridge configuration (chains, assets, global status)
as an immutable ``RegistrySnapshot``.

Refreshes are single-flight: while one is running, further ``refresh()``
calls await the same task, so every caller observes the same snapshot object
(or the same exception). A failed refresh leaves the previous snapshot
visible. An optional background task refreshes on a fixed interval; its
failures are logged and the loop keeps going.
"""

import asyncio
import logging
from typing import Optional

from ..constants import DEFAULT_REGISTRY_POLL_INTERVAL_MS
from ..logger import get_logger
from ..query.client import BridgeQueryService
from ..query.types import Asset, BridgeStatus, Chain
from .errors import RegistryUninitializedError
from .types import RegistrySnapshot

logger = get_logger(__name__)


class RegistrySnapshotCache:
    """Single-flight cache of the bridge module's parameters."""

    def __init__(self, service: BridgeQueryService, log: Optional[logging.Logger] = None):
        self._service = service
        self._log = log or logger
        self._snapshot: Optional[RegistrySnapshot] = None
        self._inflight: Optional[asyncio.Task] = None
        self._timer_task: Optional[asyncio.Task] = None

    @classmethod
    async def create(
        cls,
        service: BridgeQueryService,
        log: Optional[logging.Logger] = None,
    ) -> "RegistrySnapshotCache":
        """Build a cache and wait for its first snapshot."""
        cache = cls(service, log)
        await cache.refresh()
        return cache

    # ── Snapshot access ─────────────────────────────────────────────

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    def get_snapshot(self) -> RegistrySnapshot:
        if self._snapshot is None:
            raise RegistryUninitializedError()
        return self._snapshot

    def get_chain(self, chain_id: str) -> Optional[Chain]:
        return self.get_snapshot().chains.get(chain_id)

    def get_asset(self, key: str) -> Optional[Asset]:
        return self.get_snapshot().assets.get(key)

    # ── Refresh ─────────────────────────────────────────────────────

    async def refresh(self) -> RegistrySnapshot:
        """
        Fetch parameters and publish a new snapshot.

        Joins the in-flight refresh if there is one. Each caller awaits
        through ``asyncio.shield`` so cancelling one waiter does not abort
        the fetch for the others.
        """
        if self._inflight is None:
            task = asyncio.get_running_loop().create_task(self._refresh())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the exception retrieved; waiters still receive it.
        if not task.cancelled():
            task.exception()

    async def _refresh(self) -> RegistrySnapshot:
        params = await self._service.get_params()

        assets = {}
        for asset in params.assets:
            if asset.id is None:
                continue
            assets[asset.id.key] = asset

        chains = {chain.id: chain for chain in params.chains if chain.id}

        bridge_status = params.bridge_status
        if bridge_status is None:
            bridge_status = BridgeStatus.BLOCKED

        snapshot = RegistrySnapshot(chains=chains, assets=assets, bridge_status=bridge_status)
        self._snapshot = snapshot

        dropped = (len(params.assets) - len(assets)) + (len(params.chains) - len(chains))
        self._log.debug(
            f"Registry refreshed: {len(chains)} chains, {len(assets)} assets, "
            f"bridge={bridge_status.name}"
            + (f" ({dropped} entries without id dropped)" if dropped else "")
        )
        return snapshot

    # ── Background refresh ──────────────────────────────────────────

    @property
    def is_polling(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def start(self, interval_ms: int = DEFAULT_REGISTRY_POLL_INTERVAL_MS) -> None:
        """Start the periodic refresh task on the running loop."""
        if self.is_polling:
            return
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self._timer_task = asyncio.get_running_loop().create_task(
            self._poll_loop(interval_ms / 1000)
        )

    def stop(self) -> None:
        """Cancel the periodic refresh task. Safe to call repeatedly."""
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def _poll_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh()
            except Exception as e:
                self._log.warning(f"Registry refresh failed: {e!r}")
