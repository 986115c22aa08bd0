"""
Chain Adapter Tests

Coverage:
  - Chain type ordinal → kind mapping, unknown ordinal fallback
  - AdapterRegistry lookup and registration
  - NativeOutboundAdapter: capability check, message building, send
"""

import logging
import os
import sys

import pytest

# ── Path setup ────────────────────────────────────────────────────────
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from bitfrost.bridge.adapters import (
    AdapterContext,
    AdapterRegistry,
    BuiltTransaction,
    ChainAdapter,
    EncodeObject,
    NativeOutboundAdapter,
    Signer,
    chain_type_to_kind,
)
from bitfrost.bridge.errors import UnsupportedAssetError
from bitfrost.bridge.types import ChainKind, Network
from bitfrost.constants import MSG_OUTBOUND_TYPE_URL


class RecordingSigner(Signer):
    def __init__(self, address="int31sender", tx_hash="A1B2C3"):
        self._address = address
        self.tx_hash = tx_hash
        self.calls = []

    @property
    def address(self):
        return self._address

    async def sign_and_broadcast(self, messages, memo=""):
        self.calls.append((messages, memo))
        return self.tx_hash


class BuildOnlyAdapter(ChainAdapter):
    """An adapter without ``send``."""

    def __init__(self, kind=ChainKind.UTXO):
        self._kind = kind

    @property
    def kind(self):
        return self._kind

    def can_handle(self, chain_id, ctx):
        return True

    async def build(self, req, ctx):
        return BuiltTransaction(kind=self._kind, raw={"psbt": "..."})


@pytest.fixture
def ctx(snapshot):
    return AdapterContext(
        registry=snapshot,
        network=Network.TESTNET,
        logger=logging.getLogger("test.adapters"),
    )


# ══════════════════════════════════════════════════════════════════════
#  SECTION 1: KIND MAPPING
# ══════════════════════════════════════════════════════════════════════

class TestChainTypeToKind:

    def test_known_ordinals(self):
        expected = [
            ChainKind.COSMOS,
            ChainKind.UTXO,
            ChainKind.PAYMENT,
            ChainKind.TON,
            ChainKind.SOLANA,
            ChainKind.EVM,
        ]
        assert [chain_type_to_kind(i) for i in range(6)] == expected

    def test_unknown_ordinal_falls_back_to_cosmos_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert chain_type_to_kind(9) == ChainKind.COSMOS
            assert chain_type_to_kind(-1) == ChainKind.COSMOS
        assert "Unknown chain type ordinal 9" in caplog.text
        assert "Unknown chain type ordinal -1" in caplog.text

    def test_known_ordinal_does_not_warn(self, caplog):
        with caplog.at_level(logging.WARNING):
            chain_type_to_kind(5)
        assert caplog.text == ""


# ══════════════════════════════════════════════════════════════════════
#  SECTION 2: ADAPTER REGISTRY
# ══════════════════════════════════════════════════════════════════════

class TestAdapterRegistry:

    def test_empty_lookup(self):
        assert AdapterRegistry().get(ChainKind.COSMOS) is None

    def test_built_from_mapping(self):
        native = NativeOutboundAdapter(sender="int31sender")
        registry = AdapterRegistry({ChainKind.COSMOS: native})
        assert registry.get(ChainKind.COSMOS) is native
        assert registry.get(ChainKind.EVM) is None
        assert ChainKind.COSMOS in registry
        assert len(registry) == 1

    def test_mapping_accepts_kind_values(self):
        native = NativeOutboundAdapter(sender="int31sender")
        registry = AdapterRegistry({"cosmos": native})
        assert registry.get(ChainKind.COSMOS) is native

    def test_register_and_replace(self):
        registry = AdapterRegistry.from_adapters([BuildOnlyAdapter()])
        replacement = BuildOnlyAdapter()
        registry.register(replacement)
        assert registry.get(ChainKind.UTXO) is replacement
        assert registry.kinds == [ChainKind.UTXO]

    def test_mismatched_kind_rejected(self):
        with pytest.raises(ValueError):
            AdapterRegistry({ChainKind.EVM: NativeOutboundAdapter(sender="int31sender")})


# ══════════════════════════════════════════════════════════════════════
#  SECTION 3: NATIVE OUTBOUND ADAPTER
# ══════════════════════════════════════════════════════════════════════

class TestNativeOutboundAdapter:

    def test_can_handle_cosmos_chains_only(self, ctx):
        adapter = NativeOutboundAdapter(sender="int31sender")
        assert adapter.kind == ChainKind.COSMOS
        assert adapter.can_handle("int3", ctx)
        assert not adapter.can_handle("btc", ctx)
        assert not adapter.can_handle("missing", ctx)

    @pytest.mark.asyncio
    async def test_build_outbound_message(self, ctx, make_request):
        adapter = NativeOutboundAdapter(sender="int31sender", memo="hello")
        built = await adapter.build(make_request(amount="2500"), ctx)

        assert built.kind == ChainKind.COSMOS
        assert built.meta["memo"] == "hello"
        assert built.meta["network"] == "testnet"
        (msg,) = built.raw
        assert isinstance(msg, EncodeObject)
        assert msg.type_url == MSG_OUTBOUND_TYPE_URL
        assert msg.type_url == "/int3face.bridge.v1beta1.MsgOutboundTransfer"
        assert msg.value == {
            "sender": "int31sender",
            "dest_chain_id": "btc",
            "asset_id": {"source_chain": "btc", "denom": "btc"},
            "amount": "2500",
            "receiver": "bc1qrecipient",
        }
        assert msg.to_dict()["typeUrl"] == MSG_OUTBOUND_TYPE_URL

    @pytest.mark.asyncio
    async def test_build_resolves_bare_denom(self, ctx, make_request):
        adapter = NativeOutboundAdapter(sender="int31sender")
        built = await adapter.build(make_request(asset_id="uint3", to_chain_id="eth"), ctx)
        assert built.raw[0].value["asset_id"] == {"source_chain": "int3", "denom": "uint3"}

    @pytest.mark.asyncio
    async def test_build_parses_unregistered_asset_key(self, ctx, make_request):
        adapter = NativeOutboundAdapter(sender="int31sender")
        built = await adapter.build(make_request(asset_id="eth-usdc"), ctx)
        assert built.raw[0].value["asset_id"] == {"source_chain": "eth", "denom": "usdc"}

    @pytest.mark.asyncio
    async def test_build_rejects_unparseable_asset(self, ctx, make_request):
        adapter = NativeOutboundAdapter(sender="int31sender")
        with pytest.raises(UnsupportedAssetError):
            await adapter.build(make_request(asset_id="nodash"), ctx)

    @pytest.mark.asyncio
    async def test_send_broadcasts_through_signer(self, ctx, make_request):
        adapter = NativeOutboundAdapter(sender="int31sender", memo="m")
        signer = RecordingSigner()
        built = await adapter.build(make_request(), ctx)

        tx_hash = await adapter.send(built, signer)

        assert tx_hash == "A1B2C3"
        messages, memo = signer.calls[0]
        assert messages == list(built.raw)
        assert memo == "m"

    @pytest.mark.asyncio
    async def test_send_rejects_foreign_signer(self, ctx, make_request):
        adapter = NativeOutboundAdapter(sender="int31sender")
        built = await adapter.build(make_request(), ctx)
        with pytest.raises(ValueError):
            await adapter.send(built, RecordingSigner(address="int31other"))

    def test_supports_send(self):
        assert NativeOutboundAdapter(sender="int31sender").supports_send
        assert not BuildOnlyAdapter().supports_send

    @pytest.mark.asyncio
    async def test_default_send_not_implemented(self):
        adapter = BuildOnlyAdapter()
        built = await adapter.build(None, None)
        with pytest.raises(NotImplementedError):
            await adapter.send(built, RecordingSigner())
