# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Holds the sponsor keypair and exposes only its public key and a signing operation."""

import os
from typing import Optional

import msgspec
from dotenv import load_dotenv
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

load_dotenv()

SPONSOR_SECRET_ENV = "SPONSOR_SECRET_KEY"


class SponsorCredential:
    """Process-wide sponsor credential. Immutable once constructed."""

    __slots__ = ("_keypair", "_pubkey")

    def __init__(self, keypair: Keypair):
        self._keypair = keypair
        self._pubkey = keypair.pubkey()

    @classmethod
    def from_secret(cls, secret: str) -> "SponsorCredential":
        """Loads a 64-byte secret given as base58 or as a Solana CLI JSON byte array.

        Raises:
            ValueError: if the secret cannot be parsed into a keypair
        """
        secret = secret.strip()
        try:
            if secret.startswith("["):
                key_bytes = bytes(msgspec.json.decode(secret, type=list[int]))
                return cls(Keypair.from_bytes(key_bytes))
            return cls(Keypair.from_base58_string(secret))
        except Exception as e:
            # the secret itself must never end up in the message
            raise ValueError(f"{SPONSOR_SECRET_ENV} is not a valid keypair secret ({type(e).__name__})") from None

    @classmethod
    def from_env(cls, env_var: str = SPONSOR_SECRET_ENV) -> "SponsorCredential":
        secret: Optional[str] = os.getenv(env_var)
        if not secret:
            raise ValueError(f"Sponsor secret must be provided in the {env_var} environment variable")
        return cls.from_secret(secret)

    def public_key(self) -> Pubkey:
        return self._pubkey

    def sign(self, message: bytes) -> Signature:
        return self._keypair.sign_message(message)

    def __repr__(self) -> str:
        return f"SponsorCredential(pubkey={self._pubkey})"
