"""
Bitfrost Query Client

``BridgeQueryService`` is the network surface the bridge client depends on.
``HttpBridgeQueryClient`` implements it against the chain's REST gateway.

All network calls are async via httpx. Lookups that the gateway answers with
HTTP 404 are reported as ``None`` ("not yet observed"); any other transport or
HTTP failure raises ``NetworkError``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx

from ..constants import (
    BRIDGE_QUERY_PREFIX,
    DEFAULT_QUERY_ENDPOINT,
    FEES_QUERY_PREFIX,
    QUERY_REQUEST_TIMEOUT,
    TX_QUERY_PREFIX,
)
from ..exceptions import NetworkError
from ..logger import get_logger
from .types import (
    BridgeParams,
    CanTransferResponse,
    FeeEstimate,
    InboundTransfer,
    OutboundTransfer,
    TxResult,
)

logger = get_logger(__name__)


class BridgeQueryService(ABC):
    """Asynchronous request/response operations exposed by the chain."""

    @abstractmethod
    async def get_params(self) -> BridgeParams:
        """Fetch bridge parameters: chains, assets and the global status."""
        ...

    @abstractmethod
    async def can_transfer(
        self,
        src_chain_id: str,
        dest_chain_id: str,
        asset_id: str,
        amount: str,
    ) -> CanTransferResponse:
        """Ask the chain whether a transfer would currently be accepted."""
        ...

    @abstractmethod
    async def estimate_fee(
        self,
        src_chain_id: str,
        dst_chain_id: str,
        source_chain: str,
        denom: str,
    ) -> FeeEstimate:
        ...

    @abstractmethod
    async def get_tx(self, tx_hash: str) -> Optional[TxResult]:
        """Look up a native transaction; None until it is indexed."""
        ...

    @abstractmethod
    async def get_outbound_transfer(self, outbound_id: str) -> Optional[OutboundTransfer]:
        ...

    @abstractmethod
    async def get_inbound_transfer(self, inbound_id: str) -> Optional[InboundTransfer]:
        ...


class HttpBridgeQueryClient(BridgeQueryService):
    """
    REST gateway implementation of ``BridgeQueryService``.

    The httpx client can be injected so that connection pooling is shared
    with the rest of the application; when omitted one is created and owned
    by this instance (closed by ``aclose``).
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_QUERY_ENDPOINT,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: float = QUERY_REQUEST_TIMEOUT,
    ):
        self.endpoint = endpoint.rstrip('/')
        self.timeout = timeout
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpBridgeQueryClient":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def _get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        allow_missing: bool = False,
    ) -> Optional[Dict[str, Any]]:
        url = f"{self.endpoint}{path}"
        try:
            response = await self._client.get(url, params=params, timeout=self.timeout)
        except httpx.RequestError as e:
            raise NetworkError(f"GET {path} failed: {e}") from e

        if allow_missing and response.status_code == 404:
            logger.debug(f"GET {path} -> 404, not yet observed")
            return None

        try:
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"GET {path} returned {response.status_code}") from e
        except ValueError as e:
            raise NetworkError(f"GET {path} returned a non-JSON body") from e

    # ── Bridge module ───────────────────────────────────────────────

    async def get_params(self) -> BridgeParams:
        body = await self._get(f"{BRIDGE_QUERY_PREFIX}/params")
        return BridgeParams.from_dict((body or {}).get("params"))

    async def can_transfer(
        self,
        src_chain_id: str,
        dest_chain_id: str,
        asset_id: str,
        amount: str,
    ) -> CanTransferResponse:
        body = await self._get(
            f"{BRIDGE_QUERY_PREFIX}/can_transfer",
            params={
                "src_chain_id": src_chain_id,
                "dest_chain_id": dest_chain_id,
                "asset_id": asset_id,
                "amount": amount,
            },
        )
        return CanTransferResponse.from_dict(body or {})

    async def get_outbound_transfer(self, outbound_id: str) -> Optional[OutboundTransfer]:
        body = await self._get(
            f"{BRIDGE_QUERY_PREFIX}/outbound_transfer/{outbound_id}",
            allow_missing=True,
        )
        transfer = (body or {}).get("outbound_transfer")
        return OutboundTransfer.from_dict(transfer) if transfer else None

    async def get_inbound_transfer(self, inbound_id: str) -> Optional[InboundTransfer]:
        body = await self._get(
            f"{BRIDGE_QUERY_PREFIX}/inbound_transfer/{inbound_id}",
            allow_missing=True,
        )
        transfer = (body or {}).get("inbound_transfer")
        return InboundTransfer.from_dict(transfer) if transfer else None

    # ── Fees module ─────────────────────────────────────────────────

    async def estimate_fee(
        self,
        src_chain_id: str,
        dst_chain_id: str,
        source_chain: str,
        denom: str,
    ) -> FeeEstimate:
        body = await self._get(
            f"{FEES_QUERY_PREFIX}/fee_estimation",
            params={
                "src_chain_id": src_chain_id,
                "dst_chain_id": dst_chain_id,
                "asset_id.source_chain": source_chain,
                "asset_id.denom": denom,
            },
        )
        return FeeEstimate.from_dict(body or {})

    # ── Tx service ──────────────────────────────────────────────────

    async def get_tx(self, tx_hash: str) -> Optional[TxResult]:
        body = await self._get(f"{TX_QUERY_PREFIX}/txs/{tx_hash}", allow_missing=True)
        tx_response = (body or {}).get("tx_response")
        return TxResult.from_dict(tx_response) if tx_response else None
