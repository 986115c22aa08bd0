"""
Bitfrost Bridge Transfer Orchestration

Provides:
  - types: Core data structures (RegistrySnapshot, TransferRequest, TransferRef, ...)
  - errors: Bridge error taxonomy with stable codes
  - registry: RegistrySnapshotCache with single-flight refresh
  - preflight: PreflightEngine, the ordered allow/deny cascade
  - adapters: ChainAdapter contract, AdapterRegistry, NativeOutboundAdapter
  - events: Lifecycle events and the EventBus
  - tracking: TrackingStateMachine polling to terminal state
  - client: BridgeClient façade
"""

from .types import (
    CanTransferDecision,
    ChainKind,
    Estimate,
    ExternalRef,
    InboundTransferRef,
    NativeTxRef,
    Network,
    OutboundTransferRef,
    RegistrySnapshot,
    Timeouts,
    TransferHandle,
    TransferRef,
    TransferRequest,
)

from .errors import (
    AmountTooLowError,
    AssetBlockedError,
    BridgeBlockedError,
    BridgeError,
    CanTransferDeclinedError,
    ChainAssetDirectionBlockedError,
    ChainUnavailableError,
    NoUsableAdapterError,
    ProviderError,
    RegistryUninitializedError,
    UnsupportedAssetError,
)

from .events import (
    DecisionMade,
    EventBus,
    PreflightStarted,
    TransactionBuilt,
    TransactionSubmitted,
    TransferConfirmed,
    TransferEvent,
    TransferFailed,
)

from .registry import RegistrySnapshotCache
from .preflight import PreflightEngine

from .adapters import (
    AdapterContext,
    AdapterRegistry,
    BuiltTransaction,
    ChainAdapter,
    EncodeObject,
    NativeOutboundAdapter,
    Signer,
    chain_type_to_kind,
)

from .tracking import TrackingStateMachine
from .client import BridgeClient

__all__ = [
    # Types
    "CanTransferDecision",
    "ChainKind",
    "Estimate",
    "ExternalRef",
    "InboundTransferRef",
    "NativeTxRef",
    "Network",
    "OutboundTransferRef",
    "RegistrySnapshot",
    "Timeouts",
    "TransferHandle",
    "TransferRef",
    "TransferRequest",
    # Errors
    "AmountTooLowError",
    "AssetBlockedError",
    "BridgeBlockedError",
    "BridgeError",
    "CanTransferDeclinedError",
    "ChainAssetDirectionBlockedError",
    "ChainUnavailableError",
    "NoUsableAdapterError",
    "ProviderError",
    "RegistryUninitializedError",
    "UnsupportedAssetError",
    # Events
    "DecisionMade",
    "EventBus",
    "PreflightStarted",
    "TransactionBuilt",
    "TransactionSubmitted",
    "TransferConfirmed",
    "TransferEvent",
    "TransferFailed",
    # Components
    "RegistrySnapshotCache",
    "PreflightEngine",
    "AdapterContext",
    "AdapterRegistry",
    "BuiltTransaction",
    "ChainAdapter",
    "EncodeObject",
    "NativeOutboundAdapter",
    "Signer",
    "chain_type_to_kind",
    "TrackingStateMachine",
    "BridgeClient",
]
