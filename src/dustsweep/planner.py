"""
Two-pass planning: measure an unlimited sweep, then rebuild it capped.

The first pass signs every candidate input to learn the real virtual size.
Its input density is extrapolated to ``SIZE_DIVISOR`` vbytes and reduced by
``SIZE_MARGIN``, and the second pass is built with that many inputs at most.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from dustsweep.constants import SIZE_DIVISOR, SIZE_MARGIN, round_half_up
from dustsweep.models import Satpoint, ScannedUTXO
from dustsweep.tx_builder import ConsolidationBuilder
from dustsweep.wallet.signing import Transaction


@dataclass
class ConsolidationPlan:
    transaction: Transaction
    selected_count: int
    total_candidates: int
    limit: int
    measured_vsize: int
    fee: int

    @property
    def fee_output_index(self) -> int:
        return len(self.transaction.outputs) - 1

    @property
    def next_fee_satpoint(self) -> str:
        """Where the fee-funding output lives once this transaction confirms."""
        return f"{self.transaction.txid}:{self.fee_output_index}"


def compute_input_limit(
    amount: int,
    vsize: int,
    divisor: int = SIZE_DIVISOR,
    margin: float = SIZE_MARGIN,
) -> int:
    """How many non-fee inputs fit, given ``amount`` inputs measured at ``vsize``."""
    if vsize <= 0:
        raise ValueError(f"Measured vsize must be positive, got {vsize}")
    return round_half_up((amount / (vsize / divisor)) * margin)


class FeeConverger:
    def __init__(self, builder: ConsolidationBuilder):
        self.builder = builder

    def plan(
        self,
        utxos: Sequence[ScannedUTXO],
        fee_satpoint: Satpoint,
        destination_address: str,
        fee_refund_address: str,
        fee_rate: float,
    ) -> ConsolidationPlan:
        measurement = self.builder.build(
            utxos, fee_satpoint, destination_address, fee_refund_address, fee_rate
        )
        amount = measurement.selected_count
        size = measurement.transaction.vsize
        limit = compute_input_limit(amount, size)

        logger.info(f"There are a total of {amount} UTXO's that need to be transferred")
        logger.info(f"Creating transaction to transfer {min(limit, amount)} of them...")

        final = self.builder.build(
            utxos,
            fee_satpoint,
            destination_address,
            fee_refund_address,
            fee_rate,
            limit=min(limit, amount),
        )
        return ConsolidationPlan(
            transaction=final.transaction,
            selected_count=final.selected_count,
            total_candidates=amount,
            limit=limit,
            measured_vsize=size,
            fee=final.fee,
        )
