"""
Bitfrost Chain Adapters: Transaction Building Layer

Each adapter turns a ``TransferRequest`` into a chain-specific transaction
for one chain kind. Adapters build; they never submit on their own. An
adapter may also implement ``send`` so that a caller holding a ``Signer``
can broadcast what was built.

The source chain's wire type ordinal selects the kind (and thus the
adapter) through ``chain_type_to_kind``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..constants import MSG_OUTBOUND_TYPE_URL
from ..logger import get_logger
from ..query.types import AssetId
from .errors import UnsupportedAssetError
from .types import ChainKind, Network, RegistrySnapshot, Timeouts, TransferRequest

logger = get_logger(__name__)


# Wire ordinal → kind. Order matches the chain type enum on-chain.
CHAIN_KIND_BY_ORDINAL = (
    ChainKind.COSMOS,
    ChainKind.UTXO,
    ChainKind.PAYMENT,
    ChainKind.TON,
    ChainKind.SOLANA,
    ChainKind.EVM,
)


def chain_type_to_kind(ordinal: int, log: Optional[logging.Logger] = None) -> ChainKind:
    """
    Map a chain type ordinal to its kind.

    Ordinals outside the table fall back to the first kind (cosmos) with a
    warning, so a chain type added on-chain after this client was released
    is reported instead of silently routed.
    """
    if 0 <= ordinal < len(CHAIN_KIND_BY_ORDINAL):
        return CHAIN_KIND_BY_ORDINAL[ordinal]
    (log or logger).warning(
        f"Unknown chain type ordinal {ordinal}; defaulting to '{CHAIN_KIND_BY_ORDINAL[0].value}'"
    )
    return CHAIN_KIND_BY_ORDINAL[0]


# ══════════════════════════════════════════════════════════════════════
#  CONTRACT
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AdapterContext:
    """What an adapter may consult while deciding and building."""
    registry: RegistrySnapshot
    network: Network
    logger: logging.Logger
    timeouts: Timeouts = field(default_factory=Timeouts)


@dataclass(frozen=True)
class BuiltTransaction:
    """
    An unsigned, unsubmitted transaction.

    Attributes:
        kind: Chain kind of the adapter that built it
        raw: Adapter-specific payload (messages, PSBT, serialized tx, ...)
        meta: Free-form details (memo, fee hints, ...)
    """
    kind: ChainKind
    raw: Any = None
    meta: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EncodeObject:
    """A protobuf message addressed by its type URL, ready for signing."""
    type_url: str
    value: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"typeUrl": self.type_url, "value": dict(self.value)}


class Signer(ABC):
    """
    Account that can sign and broadcast native transactions.

    Key material stays behind this interface.
    """

    @property
    @abstractmethod
    def address(self) -> str:
        ...

    @abstractmethod
    async def sign_and_broadcast(self, messages: List[EncodeObject], memo: str = "") -> str:
        """Sign, broadcast, and return the transaction hash."""
        ...


class ChainAdapter(ABC):
    """Builds transactions for every chain of one ``ChainKind``."""

    @property
    @abstractmethod
    def kind(self) -> ChainKind:
        ...

    @abstractmethod
    def can_handle(self, chain_id: str, ctx: AdapterContext) -> bool:
        """Pure capability check for a source chain."""
        ...

    @abstractmethod
    async def build(self, req: TransferRequest, ctx: AdapterContext) -> BuiltTransaction:
        """Build (but do not submit) the transaction for ``req``."""
        ...

    async def send(self, built: BuiltTransaction, signer: Signer) -> str:
        """Submit a built transaction; returns its hash. Optional."""
        raise NotImplementedError(f"{type(self).__name__} does not support send")

    @property
    def supports_send(self) -> bool:
        return type(self).send is not ChainAdapter.send


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY
# ══════════════════════════════════════════════════════════════════════

class AdapterRegistry:
    """Lookup table from chain kind to its adapter (zero or one per kind)."""

    def __init__(self, adapters: Optional[Mapping[ChainKind, ChainAdapter]] = None):
        self._adapters: Dict[ChainKind, ChainAdapter] = {}
        for kind, adapter in (adapters or {}).items():
            self.register(adapter, kind=ChainKind(kind))

    @classmethod
    def from_adapters(cls, adapters: Iterable[ChainAdapter]) -> "AdapterRegistry":
        registry = cls()
        for adapter in adapters:
            registry.register(adapter)
        return registry

    def register(self, adapter: ChainAdapter, kind: Optional[ChainKind] = None) -> None:
        kind = kind or adapter.kind
        if kind != adapter.kind:
            raise ValueError(f"adapter of kind {adapter.kind.value} registered as {kind.value}")
        if kind in self._adapters:
            logger.info(f"Replacing adapter for kind '{kind.value}'")
        self._adapters[kind] = adapter

    def get(self, kind: ChainKind) -> Optional[ChainAdapter]:
        return self._adapters.get(kind)

    def __contains__(self, kind: ChainKind) -> bool:
        return kind in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    @property
    def kinds(self) -> List[ChainKind]:
        return list(self._adapters)


# ══════════════════════════════════════════════════════════════════════
#  NATIVE OUTBOUND ADAPTER
# ══════════════════════════════════════════════════════════════════════

class NativeOutboundAdapter(ChainAdapter):
    """
    Cosmos-kind adapter producing a bridge ``MsgOutboundTransfer``.

    The message moves ``amount`` of the asset from ``sender`` on the bridge
    chain to ``to_address`` on the destination chain. ``send`` broadcasts it
    through the caller's ``Signer``.
    """

    def __init__(self, sender: str, memo: str = ""):
        self.sender = sender
        self.memo = memo

    @property
    def kind(self) -> ChainKind:
        return ChainKind.COSMOS

    def can_handle(self, chain_id: str, ctx: AdapterContext) -> bool:
        chain = ctx.registry.chains.get(chain_id)
        if chain is None:
            return False
        return chain_type_to_kind(chain.type, ctx.logger) == ChainKind.COSMOS

    async def build(self, req: TransferRequest, ctx: AdapterContext) -> BuiltTransaction:
        asset = ctx.registry.find_asset(req.asset_id, req.from_chain_id)
        if asset is not None and asset.id is not None:
            asset_id = asset.id
        else:
            try:
                asset_id = AssetId.parse(req.asset_id)
            except ValueError as e:
                raise UnsupportedAssetError(str(e), details=req.asset_id) from e

        msg = EncodeObject(
            type_url=MSG_OUTBOUND_TYPE_URL,
            value={
                "sender": self.sender,
                "dest_chain_id": req.to_chain_id,
                "asset_id": {
                    "source_chain": asset_id.source_chain,
                    "denom": asset_id.denom,
                },
                "amount": req.amount,
                "receiver": req.to_address,
            },
        )
        ctx.logger.debug(
            f"Built MsgOutboundTransfer {asset_id.key} {req.amount} "
            f"{req.from_chain_id}->{req.to_chain_id} on {ctx.network.value}"
        )
        return BuiltTransaction(
            kind=ChainKind.COSMOS,
            raw=[msg],
            meta={"memo": self.memo, "network": ctx.network.value},
        )

    async def send(self, built: BuiltTransaction, signer: Signer) -> str:
        if signer.address != self.sender:
            raise ValueError(
                f"signer {signer.address} does not match message sender {self.sender}"
            )
        return await signer.sign_and_broadcast(list(built.raw), memo=built.meta.get("memo", ""))
