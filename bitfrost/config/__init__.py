"""
Bitfrost Client Configuration

Loads config.toml at startup.
Environment variables override TOML values.
"""

from .loader import (
    BridgeConfig,
    BridgeSectionConfig,
    QueryConfig,
    TimeoutsConfig,
    TrackingConfig,
    load_config,
)

__all__ = [
    "BridgeConfig",
    "BridgeSectionConfig",
    "QueryConfig",
    "TimeoutsConfig",
    "TrackingConfig",
    "load_config",
]
