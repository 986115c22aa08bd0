"""
Bitfrost Bridge Client Package

Core imports are lazily loaded so that importing a submodule does not pull in
the whole client. For direct module access, import from submodules:

    from bitfrost.bridge import BridgeClient, TransferRequest
    from bitfrost.query import HttpBridgeQueryClient
    from bitfrost.config import load_config
"""

# Lazy imports to avoid loading everything at package import
def __getattr__(name):
    """Lazy module loading."""
    if name == 'BridgeClient':
        from .bridge import BridgeClient
        return BridgeClient
    elif name == 'HttpBridgeQueryClient':
        from .query import HttpBridgeQueryClient
        return HttpBridgeQueryClient
    elif name == 'load_config':
        from .config import load_config
        return load_config
    elif name == 'BitfrostException':
        from .exceptions import BitfrostException
        return BitfrostException
    raise AttributeError(f"module 'bitfrost' has no attribute {name!r}")

__all__ = ['BridgeClient', 'HttpBridgeQueryClient', 'load_config', 'BitfrostException']
