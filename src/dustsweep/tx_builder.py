"""
Transaction builder for dust consolidation.

Every selected input is paid out in full to the destination address, one
output per input. The fee-funding output is always the last input and funds
the last output, which goes to the fee-refund address minus the fee.

The fee depends on the finalized size, so each build signs a trial
transaction first, prices it, then signs again with the adjusted refund.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from dustsweep.constants import RBF_SEQUENCE, round_half_up
from dustsweep.descriptors import parse_output_suffix
from dustsweep.errors import ConfigurationError, InsufficientFundsError
from dustsweep.models import NetworkType, Satpoint, ScannedUTXO
from dustsweep.wallet.address import address_to_scriptpubkey
from dustsweep.wallet.keys import DerivedKey, KeyDeriver
from dustsweep.wallet.signing import (
    TaprootSharedFields,
    Transaction,
    TxInput,
    TxOutput,
    sign_taproot_input,
)


@dataclass
class BuildResult:
    transaction: Transaction
    selected_count: int  # non-fee inputs
    fee: int


class ConsolidationBuilder:
    """
    Builds and signs consolidation transactions.

    The key cache is shared across builds, so both passes of a plan sign
    with the same keys.
    """

    def __init__(self, keys: KeyDeriver):
        self.keys = keys

    @property
    def network(self) -> NetworkType:
        return self.keys.network

    def build(
        self,
        utxos: Sequence[ScannedUTXO],
        fee_satpoint: Satpoint,
        destination_address: str,
        fee_refund_address: str,
        fee_rate: float,
        limit: int | None = None,
    ) -> BuildResult:
        """
        Build a signed consolidation transaction.

        Args:
            utxos: Every scanned output, including the fee-funding one
            fee_satpoint: Location of the fee-funding output
            destination_address: Where swept outputs are sent
            fee_refund_address: Where the fee-funding remainder is sent
            fee_rate: Fee rate in sat/vB
            limit: Maximum number of non-fee inputs, None for all

        Raises:
            ConfigurationError: The fee-funding output is not among ``utxos``
            DescriptorParseError: A descriptor cannot be mapped to a key
            InsufficientFundsError: The fee exceeds the fee-funding value
        """
        fee_utxo = next((utxo for utxo in utxos if utxo.matches(fee_satpoint)), None)
        if fee_utxo is None:
            raise ConfigurationError(
                f"Unable to find fees UTXO {fee_satpoint}. Is the fee satpoint set correctly?"
            )

        keys = {utxo.outpoint: self._attach_key(utxo) for utxo in utxos}

        try:
            destination_script = address_to_scriptpubkey(destination_address, self.network)
            refund_script = address_to_scriptpubkey(fee_refund_address, self.network)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        candidates = [
            utxo
            for utxo in utxos
            if utxo is not fee_utxo and utxo.script_pubkey != destination_script
        ]
        excluded = len(utxos) - 1 - len(candidates)
        if excluded:
            logger.debug(f"Skipping {excluded} UTXO(s) already at the destination address")

        if limit is not None and limit < len(candidates):
            candidates = candidates[:limit]
        selected = [*candidates, fee_utxo]

        outputs = [
            TxOutput(
                value=utxo.value, script_pubkey=destination_script, address=destination_address
            )
            for utxo in selected
        ]
        outputs[-1] = TxOutput(
            value=fee_utxo.value, script_pubkey=refund_script, address=fee_refund_address
        )

        trial = self._sign(selected, outputs, keys)
        fee = round_half_up(trial.vsize * fee_rate)
        refund = fee_utxo.value - fee
        if refund < 0:
            raise InsufficientFundsError(fee=fee, available=fee_utxo.value)

        outputs[-1] = TxOutput(
            value=refund, script_pubkey=refund_script, address=fee_refund_address
        )
        transaction = self._sign(selected, outputs, keys)

        logger.debug(
            f"Built transaction with {len(selected)} inputs, "
            f"vsize {transaction.vsize} vB, fee {fee} sats"
        )
        return BuildResult(transaction=transaction, selected_count=len(candidates), fee=fee)

    def _attach_key(self, utxo: ScannedUTXO) -> DerivedKey:
        suffix = parse_output_suffix(utxo.desc)
        key = self.keys.derive_and_cache(suffix)
        utxo.path = suffix
        utxo.script_pubkey = key.script_pubkey
        return key

    def _sign(
        self,
        selected: Sequence[ScannedUTXO],
        outputs: Sequence[TxOutput],
        keys: dict[str, DerivedKey],
    ) -> Transaction:
        tx = Transaction(
            inputs=[
                TxInput(
                    txid=utxo.txid,
                    vout=utxo.vout,
                    value=utxo.value,
                    script_pubkey=keys[utxo.outpoint].script_pubkey,
                    sequence=RBF_SEQUENCE,
                )
                for utxo in selected
            ],
            outputs=list(outputs),
        )
        shared = TaprootSharedFields.from_tx(tx)
        for i, utxo in enumerate(selected):
            # Key-path witness is the bare signature
            signature = sign_taproot_input(tx, i, keys[utxo.outpoint].signing_key, shared=shared)
            tx.inputs[i].witness = [signature]
        return tx
