"""
Thin HTTP client for the Amadeus node API.

Read-only queries and transaction submission go through one ``httpx``
``AsyncClient`` per network. Node failures are mapped to ``UpstreamError`` with
a stable ``reason`` so the tool layer can report them without leaking node
internals.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from amadeus_mcp.config import AmadeusConfig, default_config
from amadeus_mcp.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

NETWORKS = ("mainnet", "testnet")

_SUBMIT_REASONS = (
    ("insufficient", "insufficient_funds"),
    ("balance", "insufficient_funds"),
    ("signature", "invalid_signature"),
    ("nonce", "invalid_nonce"),
)


def _normalize_url(url: str) -> str:
    return url.rstrip("/")


def _submit_reason(error_code: str) -> str:
    lowered = error_code.lower()
    for marker, reason in _SUBMIT_REASONS:
        if marker in lowered:
            return reason
    return "rejected"


class AmadeusClient:
    """Async client for the Amadeus node endpoints the gateway needs."""

    def __init__(
        self,
        config: AmadeusConfig | None = None,
        *,
        async_client: Optional[httpx.AsyncClient] = None,
        testnet_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.config = config or default_config
        self._clients: Dict[str, Optional[httpx.AsyncClient]] = {
            "mainnet": async_client,
            "testnet": testnet_client,
        }
        self._owned: set[str] = {
            network for network, client in self._clients.items() if client is None
        }

    async def _get_client(self, network: str = "mainnet") -> httpx.AsyncClient:
        client = self._clients.get(network)
        if client is not None:
            return client
        base_url = self.config.network_url(network)
        if not base_url:
            raise ConfigurationError(
                f"No node URL configured for {network}.", setting="AMADEUS_TESTNET_RPC"
            )
        client = httpx.AsyncClient(base_url=_normalize_url(base_url), timeout=self.config.timeout)
        self._clients[network] = client
        self._owned.add(network)
        return client

    async def aclose(self) -> None:
        for network in list(self._owned):
            client = self._clients.get(network)
            if client is not None:
                await client.aclose()
                self._clients[network] = None

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.config.api_key:
            headers["X-API-KEY"] = self.config.api_key
        return headers

    def _process_response(self, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code in {401, 403}:
            raise UpstreamError(
                "Unauthorized or API key required.",
                reason="unauthorized",
                status_code=response.status_code,
            )
        if response.status_code == 404:
            raise UpstreamError("Resource not found.", reason="not_found", status_code=404)
        if response.status_code >= 500:
            raise UpstreamError(
                "Amadeus node error.",
                reason="upstream_error",
                transient=True,
                status_code=response.status_code,
            )
        if response.status_code >= 400:
            raise UpstreamError(
                "Amadeus node rejected the request.",
                reason="rejected",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise UpstreamError(
                "Unexpected response from node.",
                reason="invalid_response",
                status_code=response.status_code,
            )
        return data

    async def _request(self, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET ``path``; one retry on a pure connection failure, none on timeouts."""
        client = await self._get_client()
        headers = self._build_headers()
        attempts = 2
        for attempt in range(1, attempts + 1):
            try:
                response = await client.get(path, params=params, headers=headers)
            except httpx.TimeoutException as exc:
                logger.warning("Amadeus node timed out for path %s", path)
                raise UpstreamError("Node request timed out.", reason="timeout", transient=True) from exc
            except httpx.RequestError as exc:
                if attempt < attempts:
                    logger.info("Retrying Amadeus node request for path %s", path)
                    continue
                logger.warning("Amadeus node unreachable for path %s", path)
                raise UpstreamError("Node unreachable.", reason="unreachable", transient=True) from exc
            return self._process_response(response)
        raise AssertionError("unreachable")

    @staticmethod
    def _require_ok(data: Dict[str, Any], what: str) -> None:
        error = data.get("error")
        if error == "ok":
            return
        if error == "not_found":
            raise UpstreamError(f"{what} not found.", reason="not_found")
        raise UpstreamError(f"Failed to get {what}.", reason="invalid_response")

    @staticmethod
    def _field(data: Dict[str, Any], name: str) -> Any:
        if name not in data:
            raise UpstreamError(f"Node response missing '{name}'.", reason="invalid_response")
        return data[name]

    async def fetch_account_balance(self, address: str) -> List[Any]:
        """Retrieve every token balance held by an account."""
        data = await self._request(f"/api/wallet/balance_all/{quote(address, safe='')}")
        if data.get("error") != "ok":
            raise UpstreamError("Account not found.", reason="not_found")
        return self._field(data, "balances")

    async def fetch_chain_stats(self) -> Dict[str, Any]:
        data = await self._request("/api/chain/stats")
        self._require_ok(data, "chain stats")
        stats = self._field(data, "stats")
        if not isinstance(stats, dict):
            raise UpstreamError("Unexpected chain stats payload.", reason="invalid_response")
        return stats

    async def fetch_block_by_height(self, height: int) -> List[Any]:
        """Retrieve the block entries recorded at ``height``."""
        data = await self._request(f"/api/chain/height/{int(height)}")
        self._require_ok(data, "block entries")
        return self._field(data, "entries")

    async def fetch_transaction(self, tx_hash: str) -> Dict[str, Any]:
        data = await self._request(f"/api/chain/tx/{quote(tx_hash, safe='')}")
        if data.get("error") == "not_found":
            raise UpstreamError("Transaction not found.", reason="not_found")
        return self._field(data, "transaction")

    async def fetch_transaction_history(
        self,
        address: str,
        *,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        sort: Optional[str] = None,
    ) -> List[Any]:
        """Retrieve transaction events touching an account."""
        params: Dict[str, Any] = {}
        if limit is not None:
            params["limit"] = limit
        if offset is not None:
            params["offset"] = offset
        if sort is not None:
            params["sort"] = sort
        data = await self._request(
            f"/api/chain/tx_events_by_account/{quote(address, safe='')}", params=params or None
        )
        return self._field(data, "txs")

    async def fetch_validators(self) -> List[Any]:
        data = await self._request("/api/peer/trainers")
        self._require_ok(data, "validators")
        return self._field(data, "trainers")

    async def fetch_contract_state(self, address: str, key: str) -> Any:
        data = await self._request(
            f"/api/contract/get/{quote(address, safe='')}/{quote(key, safe='')}"
        )
        if data.get("error") == "not_found":
            raise UpstreamError("Contract key not found.", reason="not_found")
        return data.get("value", data)

    async def submit_transaction(self, packed_b58: str, network: str = "mainnet") -> Dict[str, Any]:
        """
        POST a packed, signed transaction to the selected network.

        Never retried: a submission that may have reached the node must not be
        sent twice.
        """
        if network not in NETWORKS:
            raise ConfigurationError(f"Unknown network: {network}")
        client = await self._get_client(network)
        headers = {"Content-Type": "text/plain", **self._build_headers()}
        try:
            response = await client.post("/api/tx/submit", content=packed_b58, headers=headers)
        except httpx.TimeoutException as exc:
            logger.warning("Transaction submission to %s timed out", network)
            raise UpstreamError("Node request timed out.", reason="timeout", transient=True) from exc
        except httpx.RequestError as exc:
            logger.warning("Amadeus %s node unreachable for submission", network)
            raise UpstreamError("Node unreachable.", reason="unreachable", transient=True) from exc
        data = self._process_response(response)
        error = data.get("error")
        if error != "ok":
            code = str(error) if error is not None else "unknown"
            raise UpstreamError(
                f"Transaction rejected by node: {code}",
                reason=_submit_reason(code),
                node_error=code,
            )
        return data


default_client = AmadeusClient()
