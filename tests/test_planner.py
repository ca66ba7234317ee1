"""
Tests for the two-pass input limit planner.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from dustsweep.constants import round_half_up
from dustsweep.errors import ConfigurationError
from dustsweep.models import Satpoint
from dustsweep.planner import FeeConverger, compute_input_limit
from dustsweep.tx_builder import BuildResult, ConsolidationBuilder


@dataclass
class FakeTransaction:
    vsize: int
    outputs: list = field(default_factory=list)
    txid: str = "ab" * 32


class FixedSizeBuilder:
    """Builder double that reports a fixed vsize per input count."""

    def __init__(self, vsize_for):
        self.vsize_for = vsize_for
        self.limits: list[int | None] = []

    def build(self, utxos, fee_satpoint, destination, refund, fee_rate, limit=None):
        self.limits.append(limit)
        fee_utxo = next(u for u in utxos if u.matches(fee_satpoint))
        candidates = [u for u in utxos if u is not fee_utxo]
        if limit is not None:
            candidates = candidates[:limit]
        vsize = self.vsize_for(len(candidates))
        fee = round_half_up(vsize * fee_rate)
        tx = FakeTransaction(vsize=vsize, outputs=[None] * (len(candidates) + 1))
        return BuildResult(transaction=tx, selected_count=len(candidates), fee=fee)


class TestComputeInputLimit:
    @pytest.mark.parametrize(
        "amount,vsize,expected",
        [
            (3, 300, 950),
            (1000, 100_000, 950),
            (1000, 200_000, 475),
            (1, 150, 633),
            (0, 100, 0),
        ],
    )
    def test_values(self, amount, vsize, expected):
        assert compute_input_limit(amount, vsize) == expected

    def test_custom_divisor_and_margin(self):
        assert compute_input_limit(10, 1000, divisor=1000, margin=1.0) == 10

    def test_non_positive_vsize(self):
        with pytest.raises(ValueError):
            compute_input_limit(3, 0)


class TestFeeConverger:
    def test_small_wallet_fits_in_one_pass(self, dust_utxos, fee_utxo, fee_satpoint):
        builder = FixedSizeBuilder(lambda n: 300)
        plan = FeeConverger(builder).plan(
            [*dust_utxos, fee_utxo], fee_satpoint, "dest", "refund", 1.0
        )

        assert builder.limits == [None, 3]
        assert plan.limit == 950
        assert plan.total_candidates == 3
        assert plan.selected_count == 3
        assert plan.measured_vsize == 300
        assert plan.fee == 300
        assert fee_utxo.value - plan.fee == 9700

    def test_large_wallet_is_capped(self, make_utxo, fee_utxo, fee_satpoint):
        utxos = [make_utxo(546, n) for n in range(1, 201)]
        # 200 inputs measured at 100000 vB
        builder = FixedSizeBuilder(lambda n: n * 500)
        plan = FeeConverger(builder).plan([*utxos, fee_utxo], fee_satpoint, "dest", "refund", 2.0)

        assert builder.limits == [None, 190]
        assert plan.total_candidates == 200
        assert plan.selected_count == 190
        assert plan.fee == 190 * 500 * 2

    def test_second_pass_never_exceeds_first(self, make_utxo, fee_utxo, fee_satpoint):
        utxos = [make_utxo(546, n) for n in range(1, 51)]
        builder = FixedSizeBuilder(lambda n: 40 + n * 58)
        plan = FeeConverger(builder).plan([*utxos, fee_utxo], fee_satpoint, "dest", "refund", 1.0)
        assert plan.selected_count <= plan.total_candidates
        assert builder.limits[1] == min(plan.limit, plan.total_candidates)

    def test_next_fee_satpoint(self, dust_utxos, fee_utxo, fee_satpoint):
        plan = FeeConverger(FixedSizeBuilder(lambda n: 300)).plan(
            [*dust_utxos, fee_utxo], fee_satpoint, "dest", "refund", 1.0
        )
        assert plan.fee_output_index == 3
        assert plan.next_fee_satpoint == f"{'ab' * 32}:3"

    def test_end_to_end_with_signing(
        self, keys, dust_utxos, fee_utxo, fee_satpoint, external_address, refund_address
    ):
        plan = FeeConverger(ConsolidationBuilder(keys)).plan(
            [*dust_utxos, fee_utxo], fee_satpoint, external_address, refund_address, 1.0
        )
        tx = plan.transaction

        assert plan.selected_count == 3
        assert plan.fee == tx.vsize
        assert tx.outputs[-1].value == 10_000 - plan.fee
        assert tx.inputs[-1].txid == fee_utxo.txid
        assert plan.next_fee_satpoint == f"{tx.txid}:3"

    def test_missing_fee_utxo_propagates(self, keys, dust_utxos, external_address, refund_address):
        with pytest.raises(ConfigurationError):
            FeeConverger(ConsolidationBuilder(keys)).plan(
                dust_utxos, Satpoint(txid="ee" * 32, vout=0), external_address, refund_address, 1.0
            )
