"""
Tests for the dustsweep command-line interface.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from dustsweep.backends.base import ScanResult, WalletUnspent
from dustsweep.backends.mempool import BroadcastResult
from dustsweep.cli import app
from dustsweep.errors import BroadcastError

runner = CliRunner()

FEE_TXID = "ff" * 32
TEMPLATE = (
    "tr([73c5da0a/86'/0'/0']"
    "xpub6BgBgsespWvERF3LHQu6CnqdvfEvtMcQjYrcRzx53QJjSxarj2afYWcLteoGVky7D3UKDP9QyrLprQ3VCECoY49yfdDEHGCtMMj92pReUsQ"
)


def scan_entry(txid: str, chain: int, index: int, amount: float) -> dict:
    return {
        "txid": txid,
        "vout": 0,
        "scriptPubKey": "",
        "desc": f"tr([73c5da0a/86'/0'/0'/{chain}/{index}]{'ab' * 32})#qwer1234",
        "amount": amount,
        "height": 850_000,
    }


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("NO_INTERACTIVE", raising=False)
    for name in ("SWEEP_MNEMONIC", "SWEEP_NETWORK", "SWEEP_FEE_RATE", "SWEEP_RELAY_URL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def node(keys):
    """Patched node backend holding three dust outputs and the fee output."""
    with patch("dustsweep.cli.BitcoinCoreBackend") as backend_cls:
        backend = backend_cls.return_value
        backend.list_unspent = AsyncMock(
            return_value=[
                WalletUnspent(
                    txid="11" * 32,
                    vout=0,
                    address=keys.address_for(chain=0, index=1),
                    amount=0.00001,
                    parent_descs=[f"{TEMPLATE}/0/*)#h9c8d2mx"],
                )
            ]
        )
        backend.scan_descriptors = AsyncMock(
            side_effect=[
                ScanResult(
                    total_amount=0.00006,
                    unspents=[
                        scan_entry("11" * 32, 0, 1, 0.00001),
                        scan_entry("22" * 32, 0, 2, 0.00002),
                        scan_entry("33" * 32, 0, 3, 0.00003),
                    ],
                ),
                ScanResult(total_amount=0.0001, unspents=[scan_entry(FEE_TXID, 1, 5, 0.0001)]),
            ]
        )
        backend.close = AsyncMock()
        yield backend


@pytest.fixture
def sweep_args(sample_mnemonic, external_address, refund_address):
    return [
        "sweep",
        "--mnemonic",
        sample_mnemonic,
        "--destination",
        external_address,
        "--fees-satpoint",
        f"{FEE_TXID}:0",
        "--fees-destination",
        refund_address,
        "--fee-rate",
        "1",
        "--addresses-to-scan",
        "5",
    ]


class TestAddressCommand:
    def test_first_receive_address(self, sample_mnemonic):
        result = runner.invoke(app, ["address", "--mnemonic", sample_mnemonic])
        assert result.exit_code == 0
        assert "bc1p5cyxnuxmeuwuvkwfem96lqzszd02n6xdcjrs20cac6yqjjwudpxqkedrcr" in result.stdout

    def test_testnet(self, sample_mnemonic):
        result = runner.invoke(
            app, ["address", "--mnemonic", sample_mnemonic, "--network", "testnet", "--chain", "1"]
        )
        assert result.exit_code == 0
        assert result.stdout.strip().startswith("tb1p")


class TestSweepCommand:
    def test_dry_run(self, node, sweep_args):
        result = runner.invoke(app, [*sweep_args, "--yes", "--dry-run"])

        assert result.exit_code == 0, result.output
        assert "0.00016000BTC found across 4 UTXO's" in result.stdout
        assert "Total UTXO's transferred: 3" in result.stdout
        assert "Total fees: 377 sats" in result.stdout
        assert "Total size: 377 vBytes" in result.stdout
        assert "02000000000104" in result.stdout
        node.close.assert_awaited_once()

        scanned = [call.args[0][0] for call in node.scan_descriptors.await_args_list]
        assert scanned == [
            {"desc": f"{TEMPLATE}/0/*)", "range": 5},
            {"desc": f"{TEMPLATE}/1/*)", "range": 5},
        ]

    def test_broadcast(self, node, sweep_args):
        with patch("dustsweep.cli.MempoolBroadcaster") as relay_cls:
            relay = relay_cls.return_value
            relay.broadcast = AsyncMock(return_value=BroadcastResult(status_code=200, body="ab" * 32))
            relay.close = AsyncMock()
            result = runner.invoke(app, [*sweep_args, "--yes"])

        assert result.exit_code == 0, result.output
        assert "Successfully Broadcasted" in result.stdout
        assert "Your fees UTXO is now located at " in result.stdout
        assert result.stdout.strip().endswith(":3")
        tx_hex = relay.broadcast.await_args.args[0]
        assert tx_hex.startswith("02000000000104")
        relay.close.assert_awaited_once()

    def test_broadcast_rejected(self, node, sweep_args):
        with patch("dustsweep.cli.MempoolBroadcaster") as relay_cls:
            relay = relay_cls.return_value
            relay.broadcast = AsyncMock(
                side_effect=BroadcastError("rejected", status_code=400, body="min relay fee not met")
            )
            relay.close = AsyncMock()
            result = runner.invoke(app, [*sweep_args, "--yes"])

        assert result.exit_code == 0, result.output
        assert "Failed to broadcast" in result.stdout
        assert "min relay fee not met" in result.stdout
        assert "Your fees UTXO" not in result.stdout

    def test_missing_fee_utxo(self, node, sweep_args):
        args = [a if a != f"{FEE_TXID}:0" else f"{FEE_TXID}:1" for a in sweep_args]
        result = runner.invoke(app, [*args, "--yes", "--dry-run"])
        assert result.exit_code == 1

    def test_non_interactive_without_yes(self, node, sweep_args):
        result = runner.invoke(app, [*sweep_args, "--dry-run"])
        assert result.exit_code == 1
        assert "Total UTXO's transferred" not in result.stdout

    def test_declined_scan_total(self, node, sweep_args):
        with patch("dustsweep.confirmation.is_interactive_mode", return_value=True):
            result = runner.invoke(app, sweep_args, input="n\n")

        assert result.exit_code == 0, result.output
        assert "Total UTXO's transferred" not in result.stdout

    def test_declined_broadcast(self, node, sweep_args):
        with (
            patch("dustsweep.confirmation.is_interactive_mode", return_value=True),
            patch("dustsweep.cli.MempoolBroadcaster") as relay_cls,
        ):
            result = runner.invoke(app, sweep_args, input="y\nn\n")

        assert result.exit_code == 0, result.output
        assert "Total UTXO's transferred: 3" in result.stdout
        relay_cls.assert_not_called()

    def test_invalid_configuration(self, sample_mnemonic):
        result = runner.invoke(app, ["sweep", "--mnemonic", sample_mnemonic, "--yes"])
        assert result.exit_code == 1
