"""
Transaction relay through the mempool.space API.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from loguru import logger

from dustsweep.errors import BroadcastError
from dustsweep.models import NetworkType

RELAY_URLS: dict[NetworkType, str] = {
    NetworkType.MAINNET: "https://mempool.space/api",
    NetworkType.TESTNET: "https://mempool.space/testnet/api",
    NetworkType.SIGNET: "https://mempool.space/signet/api",
}


@dataclass
class BroadcastResult:
    status_code: int
    body: str

    @property
    def txid(self) -> str:
        return self.body.strip()


class MempoolBroadcaster:
    """
    Posts raw transactions to a mempool.space compatible ``/tx`` endpoint.
    Regtest has no public relay, so ``base_url`` is required there.
    """

    def __init__(
        self,
        network: NetworkType | str = "mainnet",
        base_url: str | None = None,
        timeout: float = 30.0,
    ):
        self.network = NetworkType(network)
        if base_url is None:
            if self.network not in RELAY_URLS:
                raise ValueError(f"No default relay for {self.network.value}; set a relay URL")
            base_url = RELAY_URLS[self.network]

        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout)

    async def broadcast(self, tx_hex: str) -> BroadcastResult:
        """
        Broadcast a signed transaction.

        Raises:
            BroadcastError: The relay answered non-2xx or could not be reached.
                The relay's response body, if any, is kept verbatim on the error.
        """
        try:
            response = await self.client.post(f"{self.base_url}/tx", content=tx_hex)
        except httpx.HTTPError as e:
            logger.error(f"Failed to broadcast transaction: {e}")
            raise BroadcastError(f"Broadcast failed: {e}") from e

        if not response.is_success:
            logger.error(f"Relay rejected transaction with status {response.status_code}")
            raise BroadcastError(
                f"Broadcast failed with status {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )

        result = BroadcastResult(status_code=response.status_code, body=response.text)
        logger.info(f"Broadcast transaction: {result.txid}")
        return result

    async def close(self) -> None:
        await self.client.aclose()
