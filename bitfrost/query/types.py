"""
Bitfrost Query Types

Typed views of the bridge module's query responses as served by the chain's
REST gateway. Enum fields accept either their proto JSON names
(``"BRIDGE_STATUS_OK"``) or raw integers; values outside the known range map
to ``UNRECOGNIZED`` instead of raising.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Optional, Type, TypeVar

E = TypeVar("E", bound=IntEnum)


# ══════════════════════════════════════════════════════════════════════
#  ENUMS
# ══════════════════════════════════════════════════════════════════════

class BridgeStatus(IntEnum):
    """Global bridge switch."""
    UNSPECIFIED  = 0
    OK           = 1
    BLOCKED      = 2
    UNRECOGNIZED = -1


class AssetStatus(IntEnum):
    """Asset-level switch; anything other than OK blocks transfers."""
    UNSPECIFIED  = 0
    OK           = 1
    BLOCKED      = 2
    UNRECOGNIZED = -1


class ChainStatus(IntEnum):
    """
    Per-chain switch. Inbound and outbound directions are blocked
    independently; BLOCKED halts both.
    """
    UNSPECIFIED      = 0
    OK               = 1
    BLOCKED          = 2
    INBOUND_BLOCKED  = 3
    OUTBOUND_BLOCKED = 4
    UNRECOGNIZED     = -1

    @property
    def outbound_blocked(self) -> bool:
        return self in (ChainStatus.BLOCKED, ChainStatus.OUTBOUND_BLOCKED)

    @property
    def inbound_blocked(self) -> bool:
        return self in (ChainStatus.BLOCKED, ChainStatus.INBOUND_BLOCKED)


class ChainType(IntEnum):
    """Wire ordinal of a chain's family."""
    COSMOS  = 0
    UTXO    = 1
    PAYMENT = 2
    TON     = 3
    SOLANA  = 4
    EVM     = 5


class OutboundTransferStatus(IntEnum):
    UNSPECIFIED  = 0
    PENDING      = 1
    SUBMITTED    = 2
    FINALIZED    = 3
    FAILED       = 4
    UNRECOGNIZED = -1


class InboundTransferStatus(IntEnum):
    UNSPECIFIED  = 0
    PENDING      = 1
    FINALIZED    = 2
    UNRECOGNIZED = -1


_ENUM_PREFIXES = {
    BridgeStatus: "BRIDGE_STATUS_",
    AssetStatus: "ASSET_STATUS_",
    ChainStatus: "CHAIN_STATUS_",
    OutboundTransferStatus: "OUTBOUND_TRANSFER_STATUS_",
    InboundTransferStatus: "INBOUND_TRANSFER_STATUS_",
}


def parse_enum(enum_cls: Type[E], value: Any) -> E:
    """
    Decode a proto enum from its JSON representation.

    Accepts an int, a numeric string, or the proto name with or without its
    type prefix. Unknown values decode to ``UNRECOGNIZED``.
    """
    if value is None:
        return enum_cls(0)
    if isinstance(value, str):
        text = value.strip()
        number = _int_or_none(text)
        if number is not None:
            value = number
        else:
            prefix = _ENUM_PREFIXES.get(enum_cls, "")
            name = text[len(prefix):] if prefix and text.startswith(prefix) else text
            try:
                return enum_cls[name]
            except KeyError:
                return enum_cls["UNRECOGNIZED"]
    try:
        return enum_cls(int(value))
    except (TypeError, ValueError):
        return enum_cls["UNRECOGNIZED"]


def _int_or_none(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def _chain_ordinal(raw: Any) -> int:
    """Wire ordinal of a chain type; -1 when it names nothing this client knows."""
    if isinstance(raw, bool):
        return -1
    if isinstance(raw, int):
        return raw
    if not isinstance(raw, str):
        return -1
    text = raw.strip()
    number = _int_or_none(text)
    if number is not None:
        return number
    name = text[len("CHAIN_TYPE_"):] if text.startswith("CHAIN_TYPE_") else text
    return int(ChainType[name]) if name in ChainType.__members__ else -1


def _get(d: Dict[str, Any], snake: str, camel: str, default: Any = None) -> Any:
    """Read a field the gateway may emit in snake_case or camelCase."""
    if snake in d:
        return d[snake]
    return d.get(camel, default)


# ══════════════════════════════════════════════════════════════════════
#  REGISTRY RECORDS
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AssetId:
    """Identifies an asset by its origin chain and denom."""
    source_chain: str
    denom: str

    @property
    def key(self) -> str:
        """Composite registry key, ``<source_chain>-<denom>``."""
        return f"{self.source_chain}-{self.denom}"

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> Optional['AssetId']:
        if not d:
            return None
        source_chain = _get(d, "source_chain", "sourceChain", "")
        denom = d.get("denom", "")
        if not source_chain or not denom:
            return None
        return cls(source_chain=source_chain, denom=denom)

    @classmethod
    def parse(cls, asset_id: str) -> 'AssetId':
        """Split ``<source_chain>-<denom>`` at the first dash."""
        source_chain, sep, denom = asset_id.partition("-")
        if not sep or not source_chain or not denom:
            raise ValueError(f"invalid asset id: {asset_id}")
        return cls(source_chain=source_chain, denom=denom)


@dataclass(frozen=True)
class Asset:
    """
    A bridgeable asset.

    Attributes:
        id: Origin chain and denom (None when the gateway omitted it)
        status: Asset-level switch
        min_transfer_amount: Decimal-string integer floor, None if unset
    """
    id: Optional[AssetId]
    status: AssetStatus = AssetStatus.UNSPECIFIED
    min_transfer_amount: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Asset':
        min_amount = _get(d, "min_transfer_amount", "minTransferAmount")
        return cls(
            id=AssetId.from_dict(d.get("id")),
            status=parse_enum(AssetStatus, d.get("status")),
            min_transfer_amount=str(min_amount) if min_amount not in (None, "") else None,
        )


@dataclass(frozen=True)
class Chain:
    """
    A chain known to the bridge.

    ``type`` keeps the raw wire ordinal so that values newer than this
    client can still be reported when mapped to a chain kind.
    """
    id: str
    type: int = int(ChainType.COSMOS)
    status: ChainStatus = ChainStatus.UNSPECIFIED

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'Chain':
        return cls(
            id=d.get("id") or "",
            type=_chain_ordinal(d.get("type", 0)),
            status=parse_enum(ChainStatus, d.get("status")),
        )


@dataclass(frozen=True)
class BridgeParams:
    """Response of the bridge ``Params`` query."""
    chains: List[Chain] = field(default_factory=list)
    assets: List[Asset] = field(default_factory=list)
    bridge_status: Optional[BridgeStatus] = None

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> 'BridgeParams':
        d = d or {}
        raw_status = _get(d, "bridge_status", "bridgeStatus")
        return cls(
            chains=[Chain.from_dict(c) for c in d.get("chains") or [] if c],
            assets=[Asset.from_dict(a) for a in d.get("assets") or [] if a],
            bridge_status=parse_enum(BridgeStatus, raw_status) if raw_status is not None else None,
        )


# ══════════════════════════════════════════════════════════════════════
#  QUERY RESPONSES
# ══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class CanTransferResponse:
    can_transfer: bool
    reason: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'CanTransferResponse':
        return cls(
            can_transfer=bool(_get(d, "can_transfer", "canTransfer", False)),
            reason=d.get("reason") or None,
        )


@dataclass(frozen=True)
class FeeEstimate:
    fee_rate: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'FeeEstimate':
        rate = _get(d, "fee_rate", "feeRate")
        return cls(fee_rate=str(rate) if rate is not None else None)


@dataclass(frozen=True)
class TxResult:
    """A native-chain transaction as returned by the tx lookup."""
    tx_hash: str
    code: int = 0
    height: int = 0
    raw_log: str = ""

    @property
    def succeeded(self) -> bool:
        return self.code == 0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'TxResult':
        return cls(
            tx_hash=d.get("txhash") or d.get("tx_hash") or "",
            code=int(d.get("code") or 0),
            height=int(d.get("height") or 0),
            raw_log=d.get("raw_log") or "",
        )


@dataclass(frozen=True)
class OutboundTransfer:
    id: str
    status: OutboundTransferStatus
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'OutboundTransfer':
        return cls(
            id=str(d.get("id") or _get(d, "tx_hash", "txHash", "")),
            status=parse_enum(OutboundTransferStatus, d.get("status")),
            raw=dict(d),
        )


@dataclass(frozen=True)
class InboundTransfer:
    id: str
    status: InboundTransferStatus
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> 'InboundTransfer':
        return cls(
            id=str(d.get("id") or _get(d, "transfer_id", "transferId", "")),
            status=parse_enum(InboundTransferStatus, d.get("status")),
            raw=dict(d),
        )
