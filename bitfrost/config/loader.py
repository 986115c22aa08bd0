"""
Bitfrost TOML Configuration Loader

Loads every section of config.toml with environment variable overrides,
as dataclasses with from_dict / from_file / apply_env.

Environment variable mapping:
    [bridge] network                     → BITFROST_NETWORK
    [bridge] registry_poll_interval_ms   → BITFROST_REGISTRY_POLL_INTERVAL_MS
    [timeouts] can_transfer_ms           → BITFROST_CAN_TRANSFER_TIMEOUT_MS
    [timeouts] execute_ms                → BITFROST_EXECUTE_TIMEOUT_MS
    [query] endpoint                     → BITFROST_QUERY_ENDPOINT
    [query] request_timeout              → BITFROST_QUERY_TIMEOUT
    [tracking] poll_interval_ms          → BITFROST_TRACK_POLL_INTERVAL_MS

Signing keys are never read from configuration.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    DEFAULT_CAN_TRANSFER_TIMEOUT_MS,
    DEFAULT_QUERY_ENDPOINT,
    DEFAULT_REGISTRY_POLL_INTERVAL_MS,
    DEFAULT_TRACK_POLL_INTERVAL_MS,
    QUERY_REQUEST_TIMEOUT,
    SUPPORTED_NETWORKS,
)
from ..exceptions import ConfigurationError
from ..logger import get_logger

logger = get_logger(__name__)


def _env_int(name: str) -> Optional[int]:
    v = os.environ.get(name)
    if not v:
        return None
    try:
        return int(v)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {v!r}") from e


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------

@dataclass
class BridgeSectionConfig:
    """[bridge] section."""
    network: str = "mainnet"
    registry_poll_interval_ms: int = DEFAULT_REGISTRY_POLL_INTERVAL_MS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeSectionConfig":
        return cls(
            network=data.get("network", "mainnet"),
            registry_poll_interval_ms=data.get(
                "registry_poll_interval_ms", DEFAULT_REGISTRY_POLL_INTERVAL_MS
            ),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BITFROST_NETWORK"):
            self.network = v
        if (v := _env_int("BITFROST_REGISTRY_POLL_INTERVAL_MS")) is not None:
            self.registry_poll_interval_ms = v


@dataclass
class TimeoutsConfig:
    """[timeouts] section. ``execute_ms`` is advisory and may be unset."""
    can_transfer_ms: int = DEFAULT_CAN_TRANSFER_TIMEOUT_MS
    execute_ms: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimeoutsConfig":
        return cls(
            can_transfer_ms=data.get("can_transfer_ms", DEFAULT_CAN_TRANSFER_TIMEOUT_MS),
            execute_ms=data.get("execute_ms"),
        )

    def apply_env(self) -> None:
        if (v := _env_int("BITFROST_CAN_TRANSFER_TIMEOUT_MS")) is not None:
            self.can_transfer_ms = v
        if (v := _env_int("BITFROST_EXECUTE_TIMEOUT_MS")) is not None:
            self.execute_ms = v


@dataclass
class QueryConfig:
    """[query] section: the chain's REST gateway."""
    endpoint: str = DEFAULT_QUERY_ENDPOINT
    request_timeout: float = QUERY_REQUEST_TIMEOUT

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryConfig":
        return cls(
            endpoint=data.get("endpoint", DEFAULT_QUERY_ENDPOINT),
            request_timeout=float(data.get("request_timeout", QUERY_REQUEST_TIMEOUT)),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("BITFROST_QUERY_ENDPOINT"):
            self.endpoint = v
        if v := os.environ.get("BITFROST_QUERY_TIMEOUT"):
            try:
                self.request_timeout = float(v)
            except ValueError as e:
                raise ConfigurationError(f"BITFROST_QUERY_TIMEOUT must be a number, got {v!r}") from e


@dataclass
class TrackingConfig:
    """[tracking] section."""
    poll_interval_ms: int = DEFAULT_TRACK_POLL_INTERVAL_MS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TrackingConfig":
        return cls(
            poll_interval_ms=data.get("poll_interval_ms", DEFAULT_TRACK_POLL_INTERVAL_MS),
        )

    def apply_env(self) -> None:
        if (v := _env_int("BITFROST_TRACK_POLL_INTERVAL_MS")) is not None:
            self.poll_interval_ms = v


# -----------------------------------------------------------------------
# Top-level config
# -----------------------------------------------------------------------

@dataclass
class BridgeConfig:
    """
    Unified client configuration.

    Loads every section of config.toml and applies environment variable
    overrides.
    """
    bridge: BridgeSectionConfig = field(default_factory=BridgeSectionConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    tracking: TrackingConfig = field(default_factory=TrackingConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BridgeConfig":
        """Create BridgeConfig from a parsed TOML dict."""
        return cls(
            bridge=BridgeSectionConfig.from_dict(data.get("bridge", {})),
            timeouts=TimeoutsConfig.from_dict(data.get("timeouts", {})),
            query=QueryConfig.from_dict(data.get("query", {})),
            tracking=TrackingConfig.from_dict(data.get("tracking", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "BridgeConfig":
        """
        Load configuration from a TOML file.

        A missing file yields the defaults (plus env overrides); a file that
        is not valid TOML raises ConfigurationError.

        Args:
            config_path: Path to config.toml

        Returns:
            BridgeConfig instance
        """
        path = Path(config_path)
        if not path.exists():
            logger.info(f"Config file not found: {config_path}, using defaults")
            cfg = cls()
            cfg.apply_env()
            return cfg

        try:
            with open(path, "rb") as f:
                raw = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.bridge.apply_env()
        self.timeouts.apply_env()
        self.query.apply_env()
        self.tracking.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Returns:
            True if all valid

        Raises:
            ConfigurationError: on invalid config
        """
        if self.bridge.network not in SUPPORTED_NETWORKS:
            raise ConfigurationError(
                f"Invalid network: {self.bridge.network} (expected one of {', '.join(SUPPORTED_NETWORKS)})"
            )
        if self.bridge.registry_poll_interval_ms <= 0:
            raise ConfigurationError("registry_poll_interval_ms must be > 0")
        if self.timeouts.can_transfer_ms <= 0:
            raise ConfigurationError("can_transfer_ms must be > 0")
        if self.timeouts.execute_ms is not None and self.timeouts.execute_ms <= 0:
            raise ConfigurationError("execute_ms must be > 0 when set")
        if not self.query.endpoint.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid query endpoint: {self.query.endpoint}")
        if self.query.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be > 0")
        if self.tracking.poll_interval_ms < 0:
            raise ConfigurationError("tracking poll_interval_ms must be >= 0")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        timeouts: Dict[str, Any] = {"can_transfer_ms": self.timeouts.can_transfer_ms}
        if self.timeouts.execute_ms is not None:
            timeouts["execute_ms"] = self.timeouts.execute_ms
        return {
            "bridge": {
                "network": self.bridge.network,
                "registry_poll_interval_ms": self.bridge.registry_poll_interval_ms,
            },
            "timeouts": timeouts,
            "query": {
                "endpoint": self.query.endpoint,
                "request_timeout": self.query.request_timeout,
            },
            "tracking": {
                "poll_interval_ms": self.tracking.poll_interval_ms,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> BridgeConfig:
    """
    Load and validate client configuration.

    Resolution order:
        1. Explicit *path* argument
        2. BITFROST_CONFIG env var
        3. ./config.toml in current directory
        4. Defaults (with env overrides)
    """
    if path is None:
        path = os.environ.get("BITFROST_CONFIG", "config.toml")

    cfg = BridgeConfig.from_file(path)
    cfg.validate()
    return cfg
