"""Signing wallet: keypair holder and ATA derivation.

The secret key is supplied by the host (env / .env) and never logged.
Only the public key appears in logs and __repr__.
"""

from __future__ import annotations

from loguru import logger
from solders.keypair import Keypair  # type: ignore[import-untyped]
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumptrade import pda
from pumptrade.constants import TOKEN_PROGRAM_ID, WSOL_MINT


class SolanaWallet:
    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair
        logger.info(f"[WALLET] Loaded wallet: {self.pubkey_str}")

    @classmethod
    def from_base58(cls, private_key_base58: str) -> SolanaWallet:
        if not private_key_base58:
            raise ValueError("Wallet private key is empty")
        return cls(Keypair.from_base58_string(private_key_base58))

    def __repr__(self) -> str:
        return f"SolanaWallet(pubkey={self.pubkey_str})"

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def pubkey_str(self) -> str:
        return str(self._keypair.pubkey())

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    def ata_address(self, mint: Pubkey, token_program: Pubkey = TOKEN_PROGRAM_ID) -> Pubkey:
        return pda.associated_token_address(self.pubkey, mint, token_program)

    @property
    def wsol_ata(self) -> Pubkey:
        return self.ata_address(WSOL_MINT, TOKEN_PROGRAM_ID)
