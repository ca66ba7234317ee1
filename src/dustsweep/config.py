"""
Configuration management using pydantic-settings.

Every field can come from the environment (``SWEEP_`` prefix), a ``.env``
file, or CLI overrides passed to the constructor, in increasing priority.
"""

from __future__ import annotations

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dustsweep.constants import DEFAULT_ADDRESSES_TO_SCAN
from dustsweep.models import NetworkType, Satpoint
from dustsweep.wallet.address import address_to_scriptpubkey


class SweepSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SWEEP_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    # Wallet
    mnemonic: str = Field(..., min_length=1)
    passphrase: str = ""
    network: NetworkType = NetworkType.MAINNET

    # Consolidation
    destination_address: str = Field(..., min_length=1)
    fees_satpoint: str = Field(..., description="Fee-funding output as txid:vout")
    fees_destination_address: str = Field(..., min_length=1)
    fee_rate: float = Field(default=1.0, gt=0, description="Fee rate in sat/vB")
    addresses_to_scan: int = Field(default=DEFAULT_ADDRESSES_TO_SCAN, ge=1)

    # Node
    rpc_url: str = "http://127.0.0.1:8332"
    rpc_user: str = ""
    rpc_password: str = ""
    rpc_wallet: str | None = None
    scan_timeout: float = Field(default=900.0, gt=0)

    # Relay, None for the network's mempool.space endpoint
    relay_url: str | None = None

    log_level: str = "INFO"

    @field_validator("fees_satpoint")
    @classmethod
    def validate_satpoint(cls, v: str) -> str:
        return str(Satpoint.parse(v))

    @property
    def fee_satpoint(self) -> Satpoint:
        return Satpoint.parse(self.fees_satpoint)

    @model_validator(mode="after")
    def validate_addresses(self) -> SweepSettings:
        """Both addresses must decode for the configured network."""
        for name in ("destination_address", "fees_destination_address"):
            address_to_scriptpubkey(getattr(self, name), self.network)
        return self


def get_settings(**overrides: object) -> SweepSettings:
    """Load settings, dropping overrides that were not given."""
    return SweepSettings(**{k: v for k, v in overrides.items() if v is not None})
