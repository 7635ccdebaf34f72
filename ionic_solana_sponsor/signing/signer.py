# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Signs a rewritten message with the sponsor key and assembles the transaction bytes."""

from typing import Optional, Sequence

from loguru import logger
from msgspec import Struct
from solders.signature import Signature

from ionic_solana_sponsor.message.codec import empty_signatures, encode_message, encode_transaction
from ionic_solana_sponsor.message.message_structs import TransactionMessage
from ionic_solana_sponsor.message.sponsor_errors import SigningFailed
from ionic_solana_sponsor.signing.credential import SponsorCredential

# Maximum serialized transaction size accepted by the cluster (IPv6 MTU minus headers)
PACKET_DATA_SIZE = 1232

FEE_PAYER_SLOT = 0


class SignedTransaction(Struct):
    transaction: bytes
    """Serialized transaction with the sponsor signature in slot 0"""

    sponsorSignature: Signature

    signatures: list[Signature]


def sign_as_sponsor(
        message: TransactionMessage,
        credential: Optional[SponsorCredential],
        existing_signatures: Optional[Sequence[Signature]] = None
) -> SignedTransaction:
    """Signs `message` with the sponsor key, which must be its fee payer.

    Args:
        message: The rewritten message, sponsor at index 0
        credential: Sponsor credential; None means it is unavailable
        existing_signatures: Signatures to keep in the non-sponsor slots. Only valid
            when the message bytes are unchanged from what the user signed.

    Returns:
        The serialized transaction, the sponsor signature and all signature slots

    Raises:
        SigningFailed: credential missing or mismatched, or the transaction exceeds a packet
    """
    if credential is None:
        raise SigningFailed("Sponsor credential is unavailable")

    sponsor = credential.public_key()
    if message.fee_payer != sponsor:
        raise SigningFailed(f"Fee payer {message.fee_payer} is not the sponsor {sponsor}")

    num_required = message.header.numRequiredSignatures
    if existing_signatures is not None and len(existing_signatures) == num_required:
        signatures = list(existing_signatures)
    else:
        signatures = empty_signatures(num_required)

    size = len(encode_transaction(message, signatures))
    if size > PACKET_DATA_SIZE:
        raise SigningFailed(
            f"Signed transaction would be {size} bytes, above the {PACKET_DATA_SIZE} byte limit",
            size=size,
            limit=PACKET_DATA_SIZE,
        )

    payload = encode_message(message)
    try:
        signature = credential.sign(payload)
    except Exception as e:
        raise SigningFailed(f"Sponsor signing failed: {type(e).__name__}") from e

    if not signature.verify(sponsor, payload):
        raise SigningFailed("Sponsor signature does not verify against the sponsor key")

    signatures[FEE_PAYER_SLOT] = signature
    logger.debug(f"Sponsor {sponsor} signed {len(payload)} byte message")

    return SignedTransaction(
        transaction=encode_transaction(message, signatures),
        sponsorSignature=signature,
        signatures=signatures,
    )
