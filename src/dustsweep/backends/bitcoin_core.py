"""
Bitcoin Core RPC node backend.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from typing import Any

import httpx
from loguru import logger

from dustsweep.backends.base import NodeBackend, ScanResult, WalletUnspent
from dustsweep.errors import NodeRPCError

# Timeout for regular RPC calls (seconds)
DEFAULT_RPC_TIMEOUT = 30.0

# Timeout for scantxoutset calls - scanning a 10k address range on mainnet
# can take several minutes
SCAN_RPC_TIMEOUT = 900.0

# Environment variable to enable sensitive logging (descriptors, addresses, etc.)
# WARNING: Enabling this will log wallet descriptors and addresses to the log
SENSITIVE_LOGGING = os.environ.get("SENSITIVE_LOGGING", "").lower() in ("1", "true", "yes")


class BitcoinCoreBackend(NodeBackend):
    """
    Node backend using Bitcoin Core JSON-RPC.

    ``scantxoutset`` needs no wallet. ``listunspent`` runs against
    ``rpc_wallet`` when one is given, otherwise against the node's default
    wallet.
    """

    def __init__(
        self,
        rpc_url: str = "http://127.0.0.1:8332",
        rpc_user: str = "",
        rpc_password: str = "",
        rpc_wallet: str | None = None,
        scan_timeout: float = SCAN_RPC_TIMEOUT,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.rpc_wallet = rpc_wallet
        self.scan_timeout = scan_timeout
        auth = (rpc_user, rpc_password) if rpc_user or rpc_password else None
        # Client for regular RPC calls
        self.client = httpx.AsyncClient(timeout=DEFAULT_RPC_TIMEOUT, auth=auth)
        # Separate client for long-running scans
        self._scan_client = httpx.AsyncClient(timeout=scan_timeout, auth=auth)
        self._request_id = 0

    @property
    def wallet_url(self) -> str:
        if self.rpc_wallet:
            return f"{self.rpc_url}/wallet/{self.rpc_wallet}"
        return self.rpc_url

    async def _rpc_call(
        self,
        method: str,
        params: list | None = None,
        client: httpx.AsyncClient | None = None,
        url: str | None = None,
    ) -> Any:
        """
        Make an RPC call to Bitcoin Core.

        Raises:
            NodeRPCError: On RPC error payloads
            httpx.HTTPError: On connection/timeout errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "1.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }

        use_client = client or self.client

        try:
            response = await use_client.post(url or self.rpc_url, json=payload)
        except httpx.TimeoutException as e:
            logger.error(f"RPC call timed out: {method} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"RPC call failed: {method} - {e}")
            raise

        # Bitcoin Core reports RPC errors with a non-2xx status and a JSON body
        try:
            data = response.json()
        except ValueError:
            response.raise_for_status()
            raise NodeRPCError(method, "unknown", "Response is not JSON") from None

        if isinstance(data, dict) and data.get("error"):
            error_info = data["error"]
            raise NodeRPCError(
                method,
                error_info.get("code", "unknown"),
                error_info.get("message", str(error_info)),
            )

        response.raise_for_status()
        return data.get("result")

    async def scan_descriptors(self, descriptors: Sequence[str | dict[str, Any]]) -> ScanResult:
        """
        Scan the UTXO set using output descriptors.

        Example descriptors:
            - "tr([fp/86'/0'/0']xpub.../0/*)" - ranged, default range 0-1000
            - {"desc": "tr([fp/86'/0'/0']xpub.../0/*)", "range": 9999} - explicit range

        Returns:
            The matching unspents (txid, vout, scriptPubKey, desc, amount, height)
            and their total in BTC
        """
        if not descriptors:
            return ScanResult(total_amount=0)

        logger.debug(f"Starting UTXO scan for {len(descriptors)} descriptor(s)...")
        if SENSITIVE_LOGGING:
            logger.debug(f"Descriptors for scan: {descriptors}")

        result = await self._rpc_call(
            "scantxoutset", ["start", list(descriptors)], client=self._scan_client
        )
        if not result or not result.get("success", True):
            raise NodeRPCError("scantxoutset", "unknown", "Scan did not complete")

        scan = ScanResult(
            total_amount=result.get("total_amount", 0),
            unspents=result.get("unspents", []),
        )
        logger.debug(
            f"Scan completed: found {len(scan.unspents)} UTXOs, "
            f"total {scan.total_amount:.8f} BTC"
        )
        return scan

    async def list_unspent(self) -> list[WalletUnspent]:
        result = await self._rpc_call("listunspent", [], url=self.wallet_url)
        unspents = [
            WalletUnspent(
                txid=entry["txid"],
                vout=entry["vout"],
                address=entry.get("address", ""),
                amount=entry.get("amount", 0),
                parent_descs=list(entry.get("parent_descs", [])),
            )
            for entry in result or []
        ]
        logger.debug(f"Wallet reports {len(unspents)} unspent outputs")
        return unspents

    async def close(self) -> None:
        await self.client.aclose()
        await self._scan_client.aclose()
