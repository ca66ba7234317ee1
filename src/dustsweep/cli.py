"""
Command-line interface for dustsweep.
"""

from __future__ import annotations

import asyncio
import sys
from typing import Annotated

import httpx
import typer
from loguru import logger
from pydantic import ValidationError

from dustsweep.backends.bitcoin_core import BitcoinCoreBackend
from dustsweep.backends.mempool import MempoolBroadcaster
from dustsweep.catalog import discover_account_template, scan_wallet
from dustsweep.config import SweepSettings, get_settings
from dustsweep.confirmation import confirm_broadcast, confirm_scan_total
from dustsweep.constants import SATS_PER_BTC
from dustsweep.errors import BroadcastError, SweepError
from dustsweep.models import NetworkType
from dustsweep.planner import FeeConverger
from dustsweep.tx_builder import ConsolidationBuilder
from dustsweep.wallet.bip32 import HDKey
from dustsweep.wallet.keys import KeyDeriver

app = typer.Typer(
    name="dustsweep",
    help="Consolidate the dust of a BIP86 taproot wallet into one address",
    add_completion=False,
)

# Highest unhardened BIP32 child index
MAX_INDEX = 0x7FFFFFFF


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


@app.command()
def sweep(
    destination: Annotated[
        str | None,
        typer.Option(
            "--destination",
            "-d",
            envvar="SWEEP_DESTINATION_ADDRESS",
            help="Address receiving the consolidated funds",
        ),
    ] = None,
    fees_satpoint: Annotated[
        str | None,
        typer.Option(
            "--fees-satpoint",
            envvar="SWEEP_FEES_SATPOINT",
            help="Output paying the fee, as txid:vout",
        ),
    ] = None,
    fees_destination: Annotated[
        str | None,
        typer.Option(
            "--fees-destination",
            envvar="SWEEP_FEES_DESTINATION_ADDRESS",
            help="Address receiving the fee change",
        ),
    ] = None,
    fee_rate: Annotated[
        float | None,
        typer.Option("--fee-rate", "-r", envvar="SWEEP_FEE_RATE", help="Fee rate in sat/vB"),
    ] = None,
    mnemonic: Annotated[
        str | None,
        typer.Option("--mnemonic", envvar="SWEEP_MNEMONIC", help="Wallet mnemonic phrase"),
    ] = None,
    passphrase: Annotated[
        str | None,
        typer.Option("--passphrase", envvar="SWEEP_PASSPHRASE", help="BIP39 passphrase"),
    ] = None,
    network: Annotated[
        NetworkType | None,
        typer.Option("--network", "-n", envvar="SWEEP_NETWORK", help="Bitcoin network"),
    ] = None,
    addresses_to_scan: Annotated[
        int | None,
        typer.Option(
            "--addresses-to-scan",
            envvar="SWEEP_ADDRESSES_TO_SCAN",
            help="Addresses scanned per chain",
        ),
    ] = None,
    rpc_url: Annotated[
        str | None,
        typer.Option("--rpc-url", envvar="SWEEP_RPC_URL", help="Bitcoin full node RPC URL"),
    ] = None,
    rpc_user: Annotated[
        str | None,
        typer.Option("--rpc-user", envvar="SWEEP_RPC_USER", help="Bitcoin full node RPC user"),
    ] = None,
    rpc_password: Annotated[
        str | None,
        typer.Option(
            "--rpc-password", envvar="SWEEP_RPC_PASSWORD", help="Bitcoin full node RPC password"
        ),
    ] = None,
    rpc_wallet: Annotated[
        str | None,
        typer.Option(
            "--rpc-wallet", envvar="SWEEP_RPC_WALLET", help="Node wallet holding the account"
        ),
    ] = None,
    relay_url: Annotated[
        str | None,
        typer.Option(
            "--relay-url",
            envvar="SWEEP_RELAY_URL",
            help="mempool.space compatible API base URL (defaults per network)",
        ),
    ] = None,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation prompts")] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the signed transaction instead of broadcasting"),
    ] = False,
    log_level: Annotated[str, typer.Option("--log-level", "-l", help="Log level")] = "INFO",
) -> None:
    """Scan the wallet, build one consolidation transaction and broadcast it."""
    setup_logging(log_level)

    try:
        settings = get_settings(
            destination_address=destination,
            fees_satpoint=fees_satpoint,
            fees_destination_address=fees_destination,
            fee_rate=fee_rate,
            mnemonic=mnemonic,
            passphrase=passphrase,
            network=network,
            addresses_to_scan=addresses_to_scan,
            rpc_url=rpc_url,
            rpc_user=rpc_user,
            rpc_password=rpc_password,
            rpc_wallet=rpc_wallet,
            relay_url=relay_url,
        )
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)

    try:
        asyncio.run(_run_sweep(settings, yes, dry_run))
    except (SweepError, RuntimeError, ValueError, httpx.HTTPError) as e:
        logger.error(str(e))
        raise typer.Exit(1)


async def _run_sweep(settings: SweepSettings, skip_confirmation: bool, dry_run: bool) -> None:
    """Run the sweep end to end."""
    master = HDKey.from_mnemonic(settings.mnemonic, settings.passphrase)
    keys = KeyDeriver(master, settings.network)

    backend = BitcoinCoreBackend(
        rpc_url=settings.rpc_url,
        rpc_user=settings.rpc_user,
        rpc_password=settings.rpc_password,
        rpc_wallet=settings.rpc_wallet,
        scan_timeout=settings.scan_timeout,
    )

    try:
        logger.info("Scanning addresses for UTXO's. This may take a while...")
        unspent = await backend.list_unspent()
        template = discover_account_template(unspent, keys, settings.addresses_to_scan)
        catalog = await scan_wallet(backend, template, settings.addresses_to_scan)
    finally:
        await backend.close()

    if not confirm_scan_total(catalog.total_value / SATS_PER_BTC, len(catalog), skip_confirmation):
        logger.info("Aborted, nothing was broadcast")
        return

    typer.echo("Preparing transaction UTXO's...")
    plan = FeeConverger(ConsolidationBuilder(keys)).plan(
        catalog.utxos,
        settings.fee_satpoint,
        settings.destination_address,
        settings.fees_destination_address,
        settings.fee_rate,
    )

    tx = plan.transaction
    typer.echo(f"Total UTXO's transferred: {plan.selected_count}")
    typer.echo(f"Feerate: {tx.fee_rate:.2f} sats/vbyte")
    typer.echo(f"Total fees: {tx.fee} sats")
    typer.echo(f"Total size: {tx.vsize} vBytes")

    if dry_run:
        typer.echo(tx.to_hex())
        typer.echo(f"Your fees UTXO would be located at {plan.next_fee_satpoint}")
        return

    if not confirm_broadcast(skip_confirmation):
        logger.info("Aborted, nothing was broadcast")
        return

    broadcaster = MempoolBroadcaster(settings.network, base_url=settings.relay_url)
    try:
        result = await broadcaster.broadcast(tx.to_hex())
    except BroadcastError as e:
        typer.echo("Failed to broadcast")
        typer.echo(e.body or str(e))
        return
    finally:
        await broadcaster.close()

    typer.echo("Successfully Broadcasted")
    typer.echo(result.body)
    typer.echo(f"Your fees UTXO is now located at {plan.next_fee_satpoint}")


@app.command()
def address(
    mnemonic: Annotated[
        str, typer.Option("--mnemonic", envvar="SWEEP_MNEMONIC", help="Wallet mnemonic phrase")
    ],
    passphrase: Annotated[
        str, typer.Option("--passphrase", envvar="SWEEP_PASSPHRASE", help="BIP39 passphrase")
    ] = "",
    network: Annotated[
        NetworkType,
        typer.Option("--network", "-n", envvar="SWEEP_NETWORK", help="Bitcoin network"),
    ] = NetworkType.MAINNET,
    account: Annotated[
        int, typer.Option("--account", "-a", min=0, max=MAX_INDEX, help="Account number")
    ] = 0,
    chain: Annotated[
        int, typer.Option("--chain", "-c", min=0, max=1, help="0 for receive, 1 for change")
    ] = 0,
    index: Annotated[
        int, typer.Option("--index", "-i", min=0, max=MAX_INDEX, help="Address index")
    ] = 0,
    log_level: Annotated[str, typer.Option("--log-level", "-l", help="Log level")] = "WARNING",
) -> None:
    """Show the taproot address at account'/chain/index."""
    setup_logging(log_level)

    keys = KeyDeriver(HDKey.from_mnemonic(mnemonic, passphrase), network)
    try:
        addr = keys.address_for(chain=chain, index=index, account=account)
    except ValueError as e:
        logger.error(str(e))
        raise typer.Exit(1)

    typer.echo(addr)


def main() -> None:
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
