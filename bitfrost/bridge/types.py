"""
Bitfrost Bridge Types

Core data structures for the transfer orchestration layer.

Defines:
  - ChainKind / Network enums
  - RegistrySnapshot, the immutable view of on-chain bridge configuration
  - TransferRequest, CanTransferDecision, TransferHandle, Estimate
  - TransferRef variants naming what a tracking loop polls
"""

import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

from ..constants import DEFAULT_CAN_TRANSFER_TIMEOUT_MS
from ..query.types import Asset, BridgeStatus, Chain


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class ChainKind(str, Enum):
    """Transaction-building family of a chain; selects the adapter."""
    COSMOS  = "cosmos"
    UTXO    = "utxo"
    PAYMENT = "payment"
    TON     = "ton"
    SOLANA  = "solana"
    EVM     = "evm"


class Network(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY SNAPSHOT
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True, eq=False)
class RegistrySnapshot:
    """
    Point-in-time copy of bridge configuration.

    Never mutated after publication: the mappings are read-only proxies over
    dicts private to this snapshot, and a refresh builds a new instance.

    Attributes:
        chains: chain id → Chain
        assets: ``<source_chain>-<denom>`` → Asset
        bridge_status: Global bridge switch
    """
    chains: Mapping[str, Chain]
    assets: Mapping[str, Asset]
    bridge_status: BridgeStatus

    def __post_init__(self):
        object.__setattr__(self, "chains", MappingProxyType(dict(self.chains)))
        object.__setattr__(self, "assets", MappingProxyType(dict(self.assets)))

    @property
    def bridge_ok(self) -> bool:
        return self.bridge_status == BridgeStatus.OK

    def find_asset(self, asset_id: str, from_chain_id: str) -> Optional[Asset]:
        """Look up by key, falling back to ``<from_chain_id>-<asset_id>``."""
        asset = self.assets.get(asset_id)
        if asset is None:
            asset = self.assets.get(f"{from_chain_id}-{asset_id}")
        return asset


# ══════════════════════════════════════════════════════════════════════
#  TRANSFERS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferRequest:
    """
    A caller's request to move an asset between chains.

    Attributes:
        from_chain_id: Source chain id
        to_chain_id: Destination chain id
        asset_id: Registry key (``<source_chain>-<denom>``) or bare denom
        amount: Decimal-string integer in the asset's smallest unit
        to_address: Recipient on the destination chain
    """
    from_chain_id: str
    to_chain_id: str
    asset_id: str
    amount: str
    to_address: str


@dataclass(frozen=True)
class CanTransferDecision:
    allowed: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class TransferHandle:
    """Identifies a built transfer for later submission and tracking."""
    from_chain_id: str
    to_chain_id: str
    asset_id: str
    tx_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    submit_tx_hash: Optional[str] = None

    def with_submit_hash(self, tx_hash: str) -> "TransferHandle":
        return replace(self, submit_tx_hash=tx_hash)


@dataclass(frozen=True)
class Estimate:
    bridge_fee_rate: Optional[str] = None


@dataclass(frozen=True)
class Timeouts:
    """Per-operation timeouts in milliseconds; ``execute_ms`` is advisory."""
    can_transfer_ms: int = DEFAULT_CAN_TRANSFER_TIMEOUT_MS
    execute_ms: Optional[int] = None


# ══════════════════════════════════════════════════════════════════════
#  TRANSFER REFERENCES
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NativeTxRef:
    """A transaction on the bridge's own chain."""
    tx_hash: str


@dataclass(frozen=True)
class OutboundTransferRef:
    """A bridge outbound transfer, keyed by the submitting tx hash."""
    outbound_id: str


@dataclass(frozen=True)
class InboundTransferRef:
    inbound_id: str


@dataclass(frozen=True)
class ExternalRef:
    """A transaction on a foreign chain; tracking is delegated elsewhere."""
    external_chain_id: str
    external_tx_id: str


TransferRef = Union[NativeTxRef, OutboundTransferRef, InboundTransferRef, ExternalRef]
