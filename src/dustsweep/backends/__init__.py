"""
Node and relay backends.

Available backends:
- BitcoinCoreBackend: Full node via Bitcoin Core RPC (scantxoutset, listunspent)
- MempoolBroadcaster: Transaction relay via the mempool.space API
"""

from dustsweep.backends.base import NodeBackend, ScanResult, WalletUnspent
from dustsweep.backends.bitcoin_core import BitcoinCoreBackend
from dustsweep.backends.mempool import BroadcastResult, MempoolBroadcaster

__all__ = [
    "BitcoinCoreBackend",
    "BroadcastResult",
    "MempoolBroadcaster",
    "NodeBackend",
    "ScanResult",
    "WalletUnspent",
]
