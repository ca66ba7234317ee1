"""
dustsweep - Dust consolidation for BIP86 taproot wallets

Sweeps every output of a single-key taproot account into one destination,
paying the fee from a dedicated fee-funding output.
"""

__version__ = "0.1.0"

from dustsweep.catalog import UtxoCatalog, discover_account_template, scan_wallet
from dustsweep.errors import (
    BroadcastError,
    ConfigurationError,
    DescriptorParseError,
    InsufficientFundsError,
    NodeRPCError,
    SweepError,
)
from dustsweep.models import NetworkType, Satpoint, ScannedUTXO
from dustsweep.planner import ConsolidationPlan, FeeConverger, compute_input_limit
from dustsweep.tx_builder import BuildResult, ConsolidationBuilder

__all__ = [
    "BroadcastError",
    "BuildResult",
    "ConfigurationError",
    "ConsolidationBuilder",
    "ConsolidationPlan",
    "DescriptorParseError",
    "FeeConverger",
    "InsufficientFundsError",
    "NetworkType",
    "NodeRPCError",
    "Satpoint",
    "ScannedUTXO",
    "SweepError",
    "UtxoCatalog",
    "compute_input_limit",
    "discover_account_template",
    "scan_wallet",
]
