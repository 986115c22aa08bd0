"""
Shared fixtures for the bridge client test suite.

``FakeBridgeQuery`` stands in for the chain: every response is a plain
attribute the test can set, and lookups replay a scripted sequence.
"""

import asyncio
import os
import sys
from typing import List, Optional

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from bitfrost.bridge.types import RegistrySnapshot, TransferRequest
from bitfrost.query.client import BridgeQueryService
from bitfrost.query.types import (
    Asset,
    AssetId,
    AssetStatus,
    BridgeParams,
    BridgeStatus,
    CanTransferResponse,
    Chain,
    ChainStatus,
    ChainType,
    FeeEstimate,
)


def build_params(
    bridge_status: Optional[BridgeStatus] = BridgeStatus.OK,
    asset_status: AssetStatus = AssetStatus.OK,
    min_amount: Optional[str] = "100",
    int3_status: ChainStatus = ChainStatus.OK,
    btc_status: ChainStatus = ChainStatus.OK,
) -> BridgeParams:
    """int3 (cosmos), btc (utxo) and eth (evm); assets btc-btc and int3-uint3."""
    return BridgeParams(
        chains=[
            Chain(id="int3", type=int(ChainType.COSMOS), status=int3_status),
            Chain(id="btc", type=int(ChainType.UTXO), status=btc_status),
            Chain(id="eth", type=int(ChainType.EVM), status=ChainStatus.OK),
        ],
        assets=[
            Asset(id=AssetId("btc", "btc"), status=asset_status, min_transfer_amount=min_amount),
            Asset(id=AssetId("int3", "uint3"), status=AssetStatus.OK),
        ],
        bridge_status=bridge_status,
    )


def build_snapshot(params: Optional[BridgeParams] = None) -> RegistrySnapshot:
    params = params or build_params()
    return RegistrySnapshot(
        chains={c.id: c for c in params.chains},
        assets={a.id.key: a for a in params.assets if a.id is not None},
        bridge_status=params.bridge_status or BridgeStatus.BLOCKED,
    )


def build_request(**overrides) -> TransferRequest:
    fields = dict(
        from_chain_id="int3",
        to_chain_id="btc",
        asset_id="btc-btc",
        amount="100",
        to_address="bc1qrecipient",
    )
    fields.update(overrides)
    return TransferRequest(**fields)


class FakeBridgeQuery(BridgeQueryService):
    """Scriptable in-memory query service."""

    def __init__(self, params: Optional[BridgeParams] = None):
        self.params = params or build_params()
        self.params_calls = 0
        self.params_delay = 0.0
        self.params_error: Optional[Exception] = None

        self.can_transfer_response = CanTransferResponse(can_transfer=True)
        self.can_transfer_delay = 0.0
        self.can_transfer_error: Optional[Exception] = None
        self.can_transfer_calls: List[dict] = []

        self.fee = FeeEstimate(fee_rate="0.001")
        self.fee_error: Optional[Exception] = None
        self.fee_calls: List[dict] = []

        # Lookup scripts: consumed front to back, the last entry repeats
        self.txs: list = []
        self.outbound: list = []
        self.inbound: list = []
        self.lookup_error: Optional[Exception] = None
        self.lookup_calls = 0

    @staticmethod
    def _next(script: list):
        if not script:
            return None
        if len(script) > 1:
            return script.pop(0)
        return script[0]

    async def get_params(self) -> BridgeParams:
        self.params_calls += 1
        if self.params_delay:
            await asyncio.sleep(self.params_delay)
        if self.params_error is not None:
            raise self.params_error
        return self.params

    async def can_transfer(self, src_chain_id, dest_chain_id, asset_id, amount):
        self.can_transfer_calls.append(dict(
            src_chain_id=src_chain_id,
            dest_chain_id=dest_chain_id,
            asset_id=asset_id,
            amount=amount,
        ))
        if self.can_transfer_delay:
            await asyncio.sleep(self.can_transfer_delay)
        if self.can_transfer_error is not None:
            raise self.can_transfer_error
        return self.can_transfer_response

    async def estimate_fee(self, src_chain_id, dst_chain_id, source_chain, denom):
        self.fee_calls.append(dict(
            src_chain_id=src_chain_id,
            dst_chain_id=dst_chain_id,
            source_chain=source_chain,
            denom=denom,
        ))
        if self.fee_error is not None:
            raise self.fee_error
        return self.fee

    async def _lookup(self, script: list):
        self.lookup_calls += 1
        if self.lookup_error is not None:
            raise self.lookup_error
        return self._next(script)

    async def get_tx(self, tx_hash):
        return await self._lookup(self.txs)

    async def get_outbound_transfer(self, outbound_id):
        return await self._lookup(self.outbound)

    async def get_inbound_transfer(self, inbound_id):
        return await self._lookup(self.inbound)


@pytest.fixture
def fake_service():
    return FakeBridgeQuery()


@pytest.fixture
def make_params():
    return build_params


@pytest.fixture
def make_request():
    return build_request


@pytest.fixture
def snapshot():
    return build_snapshot()


@pytest.fixture
def recorded_events():
    """A list plus a listener appending to it."""
    events = []
    return events, events.append


@pytest.fixture
def make_snapshot():
    return build_snapshot
