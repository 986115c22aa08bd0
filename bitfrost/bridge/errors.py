"""
Bitfrost Bridge Errors

Each error carries a stable ``code`` so callers can branch on the kind of
failure without matching message text. ``details`` holds whatever context
the raiser had (a response object, the offending chain id, ...).
"""

from typing import Any, Optional

from ..exceptions import BitfrostException


class BridgeError(BitfrostException):
    """Base class for bridge failures."""
    code: str = "BRIDGE_ERROR"
    default_message: str = "bridge error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message or self.default_message)
        self.details = details

    @property
    def message(self) -> str:
        return str(self)


class BridgeBlockedError(BridgeError):
    """The bridge is globally halted."""
    code = "BRIDGE_BLOCKED"
    default_message = "bridge is blocked"


class AssetBlockedError(BridgeError):
    """The asset is halted."""
    code = "ASSET_BLOCKED"
    default_message = "asset is blocked"


class UnsupportedAssetError(BridgeError):
    code = "UNSUPPORTED_ASSET"
    default_message = "asset is not supported"


class AmountTooLowError(BridgeError):
    code = "AMOUNT_TOO_LOW"
    default_message = "amount is below the transfer minimum"


class ChainUnavailableError(BridgeError):
    """A chain is missing from the registry."""
    code = "CHAIN_UNAVAILABLE"
    default_message = "chain unavailable"


class ChainAssetDirectionBlockedError(BridgeError):
    """Inbound or outbound traffic is halted on a chain."""
    code = "DIRECTION_BLOCKED"
    default_message = "transfer direction is blocked"


class CanTransferDeclinedError(BridgeError):
    """Preflight denied the transfer at execution time."""
    code = "CAN_TRANSFER_DECLINED"
    default_message = "transfer not allowed"


class ProviderError(BridgeError):
    """Catch-all for network, adapter and listener failures."""
    code = "PROVIDER_ERROR"
    default_message = "provider error"


class NoUsableAdapterError(ProviderError):
    """No adapter is registered for a chain kind, or it refused the chain."""
    default_message = "no usable adapter"


class RegistryUninitializedError(BridgeError):
    """No registry snapshot has been published yet."""
    code = "REGISTRY_UNINITIALIZED"
    default_message = "registry is not initialized yet"
