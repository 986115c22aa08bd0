"""
Bitfrost Query Layer

Provides:
  - types: Typed query responses and proto enums (BridgeParams, Chain, Asset, ...)
  - client: BridgeQueryService interface and its HTTP gateway implementation
"""

from .types import (
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
    InboundTransfer,
    InboundTransferStatus,
    OutboundTransfer,
    OutboundTransferStatus,
    TxResult,
    parse_enum,
)

from .client import BridgeQueryService, HttpBridgeQueryClient

__all__ = [
    # Types
    "Asset",
    "AssetId",
    "AssetStatus",
    "BridgeParams",
    "BridgeStatus",
    "CanTransferResponse",
    "Chain",
    "ChainStatus",
    "ChainType",
    "FeeEstimate",
    "InboundTransfer",
    "InboundTransferStatus",
    "OutboundTransfer",
    "OutboundTransferStatus",
    "TxResult",
    "parse_enum",
    # Client
    "BridgeQueryService",
    "HttpBridgeQueryClient",
]
