"""
Bridge Client Tests

Coverage:
  - create / destroy lifecycle and registry timer
  - End-to-end preflight through the façade
  - transfer: declined, unavailable chain, adapter resolution, build errors
  - estimate, submit, track delegation
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from bitfrost.bridge.adapters import (
    BuiltTransaction,
    ChainAdapter,
    NativeOutboundAdapter,
    Signer,
)
from bitfrost.bridge.client import BridgeClient
from bitfrost.bridge.errors import (
    AmountTooLowError,
    CanTransferDeclinedError,
    ChainUnavailableError,
    NoUsableAdapterError,
    ProviderError,
)
from bitfrost.bridge.events import (
    DecisionMade,
    PreflightStarted,
    TransactionBuilt,
    TransactionSubmitted,
    TransferConfirmed,
)
from bitfrost.bridge.types import (
    CanTransferDecision,
    ChainKind,
    Estimate,
    Network,
    OutboundTransferRef,
    Timeouts,
)
from bitfrost.config import BridgeConfig
from bitfrost.exceptions import ConfigurationError, NetworkError
from bitfrost.query.types import (
    CanTransferResponse,
    OutboundTransfer,
    OutboundTransferStatus,
)


SENDER = "int31sender"


class StaticSigner(Signer):
    def __init__(self, address=SENDER, tx_hash="FEED01"):
        self._address = address
        self.tx_hash = tx_hash

    @property
    def address(self):
        return self._address

    async def sign_and_broadcast(self, messages, memo=""):
        return self.tx_hash


class ExplodingAdapter(ChainAdapter):
    def __init__(self, error):
        self.error = error

    @property
    def kind(self):
        return ChainKind.COSMOS

    def can_handle(self, chain_id, ctx):
        return True

    async def build(self, req, ctx):
        raise self.error


async def make_client(service, adapters=None, **kwargs):
    if adapters is None:
        adapters = {ChainKind.COSMOS: NativeOutboundAdapter(sender=SENDER)}
    kwargs.setdefault("timeouts", Timeouts(can_transfer_ms=50))
    return await BridgeClient.create(service, adapters=adapters, **kwargs)


# ══════════════════════════════════════════════════════════════════════
#  SECTION 1: LIFECYCLE
# ══════════════════════════════════════════════════════════════════════

class TestLifecycle:

    @pytest.mark.asyncio
    async def test_create_refreshes_and_starts_timer(self, fake_service):
        client = await make_client(fake_service)
        try:
            assert fake_service.params_calls == 1
            assert client._registry.is_polling
            assert set(client.get_registry().chains) == {"int3", "btc", "eth"}
        finally:
            client.destroy()
        assert not client._registry.is_polling

    @pytest.mark.asyncio
    async def test_create_fails_when_first_refresh_fails(self, fake_service):
        fake_service.params_error = NetworkError("gateway down")
        with pytest.raises(NetworkError):
            await make_client(fake_service)

    @pytest.mark.asyncio
    async def test_destroy_is_idempotent_and_drops_listeners(self, fake_service):
        client = await make_client(fake_service)
        client.on(lambda e: None)
        client.destroy()
        client.destroy()
        assert len(client._bus) == 0

    @pytest.mark.asyncio
    async def test_async_context_manager(self, fake_service):
        async with await make_client(fake_service) as client:
            assert client._registry.is_polling
        assert not client._registry.is_polling

    @pytest.mark.asyncio
    async def test_network_from_config(self, fake_service):
        config = BridgeConfig()
        config.bridge.network = "testnet"
        client = await make_client(fake_service, config=config)
        try:
            assert client.network == Network.TESTNET
        finally:
            client.destroy()

    @pytest.mark.asyncio
    async def test_invalid_config_rejected_before_refresh(self, fake_service):
        config = BridgeConfig()
        config.bridge.network = "devnet"
        with pytest.raises(ConfigurationError):
            await make_client(fake_service, config=config)
        assert fake_service.params_calls == 0

    @pytest.mark.asyncio
    async def test_env_applies_without_config(self, fake_service, monkeypatch):
        monkeypatch.setenv("BITFROST_NETWORK", "testnet")
        client = await make_client(fake_service)
        try:
            assert client.network == Network.TESTNET
        finally:
            client.destroy()

    @pytest.mark.asyncio
    async def test_timer_refreshes_registry(self, fake_service):
        client = await make_client(fake_service, poll_interval_ms=10)
        try:
            await asyncio.sleep(0.06)
            assert fake_service.params_calls >= 3
        finally:
            client.destroy()

    @pytest.mark.asyncio
    async def test_manual_refresh(self, fake_service):
        client = await make_client(fake_service)
        try:
            old = client.get_registry()
            new = await client.refresh()
            assert new is not old
            assert client.get_registry() is new
        finally:
            client.destroy()


# ══════════════════════════════════════════════════════════════════════
#  SECTION 2: PREFLIGHT THROUGH THE FAÇADE
# ══════════════════════════════════════════════════════════════════════

class TestCanTransfer:

    @pytest.mark.asyncio
    async def test_quota_exceeded_end_to_end(self, fake_service, make_request):
        fake_service.can_transfer_response = CanTransferResponse(
            can_transfer=False, reason="quota exceeded"
        )
        client = await make_client(fake_service)
        try:
            decision = await client.can_transfer(make_request())
        finally:
            client.destroy()
        assert decision == CanTransferDecision(allowed=False, reason="quota exceeded")

    @pytest.mark.asyncio
    async def test_listener_receives_preflight_events(self, fake_service, make_request):
        client = await make_client(fake_service)
        seen = []
        unsubscribe = client.on(seen.append)
        try:
            await client.can_transfer(make_request())
            assert [type(e) for e in seen] == [PreflightStarted, DecisionMade]
            assert unsubscribe() is True
            await client.can_transfer(make_request())
            assert len(seen) == 2
        finally:
            client.destroy()


# ══════════════════════════════════════════════════════════════════════
#  SECTION 3: TRANSFER
# ══════════════════════════════════════════════════════════════════════

class TestTransfer:

    @pytest.mark.asyncio
    async def test_successful_build(self, fake_service, make_request):
        client = await make_client(fake_service)
        seen = []
        client.on(seen.append)
        try:
            built, handle = await client.transfer(make_request())
        finally:
            client.destroy()

        assert built.kind == ChainKind.COSMOS
        assert built.raw[0].value["sender"] == SENDER
        assert handle.from_chain_id == "int3"
        assert handle.to_chain_id == "btc"
        assert handle.asset_id == "btc-btc"
        assert handle.submit_tx_hash is None

        assert [type(e) for e in seen] == [PreflightStarted, DecisionMade, TransactionBuilt]
        assert {e.correlation_id for e in seen} == {handle.tx_id}
        assert seen[2].built is built

    @pytest.mark.asyncio
    async def test_each_transfer_gets_a_fresh_tx_id(self, fake_service, make_request):
        client = await make_client(fake_service)
        try:
            _, first = await client.transfer(make_request())
            _, second = await client.transfer(make_request())
        finally:
            client.destroy()
        assert first.tx_id != second.tx_id

    @pytest.mark.asyncio
    async def test_denied_raises_declined_with_reason(self, fake_service, make_request):
        fake_service.can_transfer_response = CanTransferResponse(
            can_transfer=False, reason="quota exceeded"
        )
        client = await make_client(fake_service)
        try:
            with pytest.raises(CanTransferDeclinedError) as exc:
                await client.transfer(make_request())
        finally:
            client.destroy()
        assert exc.value.message == "quota exceeded"
        assert exc.value.code == "CAN_TRANSFER_DECLINED"

    @pytest.mark.asyncio
    async def test_denied_without_reason_uses_default(self, fake_service, make_request):
        fake_service.can_transfer_response = CanTransferResponse(can_transfer=False)
        client = await make_client(fake_service)
        try:
            with pytest.raises(CanTransferDeclinedError) as exc:
                await client.transfer(make_request())
        finally:
            client.destroy()
        assert exc.value.message == "transfer not allowed"

    @pytest.mark.asyncio
    async def test_source_chain_gone_after_preflight(self, fake_service, make_request):
        client = await make_client(fake_service)
        client._preflight.can_transfer = AsyncMock(return_value=CanTransferDecision(allowed=True))
        try:
            with pytest.raises(ChainUnavailableError):
                await client.transfer(make_request(from_chain_id="ghost"))
        finally:
            client.destroy()

    @pytest.mark.asyncio
    async def test_no_adapter_for_kind(self, fake_service, make_request):
        client = await make_client(fake_service, adapters={})
        try:
            with pytest.raises(NoUsableAdapterError) as exc:
                await client.transfer(make_request())
        finally:
            client.destroy()
        assert isinstance(exc.value, ProviderError)
        assert exc.value.code == "PROVIDER_ERROR"

    @pytest.mark.asyncio
    async def test_adapter_for_other_kind_is_not_used(self, fake_service, make_request):
        client = await make_client(fake_service)
        try:
            with pytest.raises(NoUsableAdapterError):
                await client.transfer(
                    make_request(from_chain_id="btc", to_chain_id="int3", asset_id="btc-btc")
                )
        finally:
            client.destroy()

    @pytest.mark.asyncio
    async def test_foreign_build_error_wrapped(self, fake_service, make_request):
        boom = RuntimeError("encoder exploded")
        client = await make_client(fake_service, adapters=[ExplodingAdapter(boom)])
        try:
            with pytest.raises(ProviderError) as exc:
                await client.transfer(make_request())
        finally:
            client.destroy()
        assert exc.value.__cause__ is boom
        assert exc.value.details is boom

    @pytest.mark.asyncio
    async def test_bridge_build_error_propagates_unchanged(self, fake_service, make_request):
        err = AmountTooLowError("dust")
        client = await make_client(fake_service, adapters=[ExplodingAdapter(err)])
        try:
            with pytest.raises(AmountTooLowError) as exc:
                await client.transfer(make_request())
        finally:
            client.destroy()
        assert exc.value is err


# ══════════════════════════════════════════════════════════════════════
#  SECTION 4: ESTIMATE, SUBMIT, TRACK
# ══════════════════════════════════════════════════════════════════════

class TestEstimate:

    @pytest.mark.asyncio
    async def test_fee_rate_returned(self, fake_service, make_request):
        client = await make_client(fake_service)
        try:
            estimate = await client.estimate(make_request())
        finally:
            client.destroy()
        assert estimate == Estimate(bridge_fee_rate="0.001")
        assert fake_service.fee_calls == [dict(
            src_chain_id="int3", dst_chain_id="btc", source_chain="btc", denom="btc",
        )]

    @pytest.mark.asyncio
    async def test_failure_yields_empty_estimate(self, fake_service, make_request):
        fake_service.fee_error = NetworkError("gateway down")
        client = await make_client(fake_service)
        try:
            estimate = await client.estimate(make_request())
        finally:
            client.destroy()
        assert estimate == Estimate()
        assert estimate.bridge_fee_rate is None


class TestSubmitAndTrack:

    @pytest.mark.asyncio
    async def test_submit_records_hash_and_emits(self, fake_service, make_request):
        client = await make_client(fake_service)
        seen = []
        client.on(seen.append)
        try:
            req = make_request()
            built, handle = await client.transfer(req)
            submitted = await client.submit(built, handle, StaticSigner(), req=req)
        finally:
            client.destroy()

        assert submitted.submit_tx_hash == "FEED01"
        assert submitted.tx_id == handle.tx_id
        assert handle.submit_tx_hash is None
        event = seen[-1]
        assert isinstance(event, TransactionSubmitted)
        assert event.handle == submitted
        assert event.req is req
        assert event.correlation_id == handle.tx_id

    @pytest.mark.asyncio
    async def test_submit_without_capable_adapter(self, fake_service, make_request):
        client = await make_client(fake_service)
        try:
            built, handle = await client.transfer(make_request())
            foreign = BuiltTransaction(kind=ChainKind.EVM, raw=b"")
            with pytest.raises(NoUsableAdapterError):
                await client.submit(foreign, handle, StaticSigner())
        finally:
            client.destroy()

    @pytest.mark.asyncio
    async def test_submit_signer_mismatch_wrapped(self, fake_service, make_request):
        client = await make_client(fake_service)
        try:
            built, handle = await client.transfer(make_request())
            with pytest.raises(ProviderError) as exc:
                await client.submit(built, handle, StaticSigner(address="int31other"))
        finally:
            client.destroy()
        assert isinstance(exc.value.__cause__, ValueError)

    @pytest.mark.asyncio
    async def test_track_delegates(self, fake_service):
        config = BridgeConfig()
        config.tracking.poll_interval_ms = 1
        fake_service.outbound = [
            OutboundTransfer(id="FEED01", status=OutboundTransferStatus.PENDING),
            OutboundTransfer(id="FEED01", status=OutboundTransferStatus.FINALIZED),
        ]
        client = await make_client(fake_service, config=config)
        seen = []
        client.on(seen.append)
        try:
            result = await client.track(OutboundTransferRef("FEED01"), correlation_id="op-1")
        finally:
            client.destroy()
        assert isinstance(result, TransferConfirmed)
        assert seen == [result]
        assert result.correlation_id == "op-1"
