# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Fee sponsorship: decode, make the sponsor the fee payer, re-encode and co-sign."""

import base64
from typing import Any, Optional

from loguru import logger
from msgspec import Struct
from solders.signature import Signature

from ionic_solana_sponsor.message.codec import decode_transaction
from ionic_solana_sponsor.message.message_structs import Transaction, TransactionMessage
from ionic_solana_sponsor.message.sponsor_errors import FeePayerMismatch, SigningFailed
from ionic_solana_sponsor.rewrite.account_table import IndexPermutation
from ionic_solana_sponsor.rewrite.remapper import RewrittenMessage, rewrite_message
from ionic_solana_sponsor.rewrite.sponsor_guard import SponsorGuard
from ionic_solana_sponsor.signing.credential import SponsorCredential
from ionic_solana_sponsor.signing.signer import sign_as_sponsor


class SponsoredTransaction(Struct):
    transaction: bytes
    """Serialized v0 transaction, sponsor signature in slot 0"""

    sponsorSignature: Signature

    message: TransactionMessage

    permutation: IndexPermutation

    @property
    def transaction_base64(self) -> str:
        return base64.b64encode(self.transaction).decode("utf-8")

    def to_response(self) -> dict[str, Any]:
        return {
            "status": "ok",
            "transaction": self.transaction_base64,
            "sponsorSignature": str(self.sponsorSignature),
        }


class FeeSponsor:
    """Rewrites user transactions so the sponsor pays their fees.

    Holds no per-request state; every call allocates its own message, permutation
    and signature slots.
    """

    def __init__(self, credential: Optional[SponsorCredential], guard: Optional[SponsorGuard] = None):
        """Initialize the sponsor.

        Args:
            credential: Sponsor credential used for signing
            guard: Optional check run on every rewritten message before signing
        """
        self.credential = credential
        self.guard = guard

    @property
    def sponsor_key(self):
        return self.credential.public_key() if self.credential else None

    def rewrite(self, message: TransactionMessage) -> RewrittenMessage:
        if self.credential is None:
            raise SigningFailed("Sponsor credential is unavailable")
        return rewrite_message(message, self.sponsor_key)

    def sponsor(self, raw: bytes) -> SponsoredTransaction:
        """Makes the sponsor the fee payer of `raw` and signs the result.

        User signatures are kept only when the message is unchanged, since any
        rewrite invalidates them.
        """
        transaction = decode_transaction(raw)
        rewritten = self.rewrite(transaction.message)
        logger.info(
            f"Rewrote fee payer {transaction.message.fee_payer} -> {rewritten.message.fee_payer} "
            f"(sponsor index {rewritten.sponsorIndex}, {len(rewritten.message.accountKeys)} keys)")
        existing = transaction.signatures if rewritten.is_identity else None
        return self._sign(rewritten, existing)

    def cosign(self, raw: bytes) -> SponsoredTransaction:
        """Adds the sponsor signature to a transaction that already names the sponsor as fee payer."""
        transaction: Transaction = decode_transaction(raw)
        rewritten = self.rewrite(transaction.message)
        if not rewritten.is_identity:
            raise FeePayerMismatch(
                f"Fee payer {transaction.message.fee_payer} is not the sponsor",
                fee_payer=str(transaction.message.fee_payer),
            )
        return self._sign(rewritten, transaction.signatures)

    def _sign(self, rewritten: RewrittenMessage, existing_signatures) -> SponsoredTransaction:
        if self.guard is not None:
            self.guard.check(rewritten.message, self.sponsor_key)

        signed = sign_as_sponsor(rewritten.message, self.credential, existing_signatures)
        logger.success(f"Sponsored transaction {signed.sponsorSignature}")

        return SponsoredTransaction(
            transaction=signed.transaction,
            sponsorSignature=signed.sponsorSignature,
            message=rewritten.message,
            permutation=rewritten.permutation,
        )
