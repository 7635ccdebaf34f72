# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Converts between wire bytes and the structural v0 message representation."""

from typing import List, Sequence

from loguru import logger
from solders.instruction import CompiledInstruction as SoldersCompiledInstruction
from solders.message import (
    MessageAddressTableLookup,
    MessageHeader as SoldersMessageHeader,
    MessageV0,
    from_bytes_versioned,
    to_bytes_versioned,
)
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ionic_solana_sponsor.message.message_structs import (
    AddressTableLookup,
    CompiledInstruction,
    MessageHeader,
    Transaction,
    TransactionMessage,
)
from ionic_solana_sponsor.message.sponsor_errors import (
    DanglingAccountIndex,
    DecodeError,
    SponsorErrorKind,
)


def from_solders_message(message: MessageV0) -> TransactionMessage:
    """Copies a solders `MessageV0` into a freshly allocated `TransactionMessage`."""
    header = MessageHeader(
        numRequiredSignatures=message.header.num_required_signatures,
        numReadonlySignedAccounts=message.header.num_readonly_signed_accounts,
        numReadonlyUnsignedAccounts=message.header.num_readonly_unsigned_accounts,
    )

    instructions = [
        CompiledInstruction(
            programIdIndex=instruction.program_id_index,
            accounts=list(instruction.accounts),
            data=bytes(instruction.data),
        )
        for instruction in message.instructions
    ]

    lookups = [
        AddressTableLookup(
            accountKey=lookup.account_key,
            writableIndexes=list(lookup.writable_indexes),
            readonlyIndexes=list(lookup.readonly_indexes),
        )
        for lookup in message.address_table_lookups
    ]

    return TransactionMessage(
        header=header,
        accountKeys=list(message.account_keys),
        recentBlockhash=message.recent_blockhash,
        instructions=instructions,
        addressTableLookups=lookups,
    )


def to_solders_message(message: TransactionMessage) -> MessageV0:
    header = SoldersMessageHeader(
        message.header.numRequiredSignatures,
        message.header.numReadonlySignedAccounts,
        message.header.numReadonlyUnsignedAccounts,
    )
    instructions = [
        SoldersCompiledInstruction(instruction.programIdIndex, instruction.data, bytes(instruction.accounts))
        for instruction in message.instructions
    ]
    lookups = [
        MessageAddressTableLookup(lookup.accountKey, bytes(lookup.writableIndexes), bytes(lookup.readonlyIndexes))
        for lookup in message.addressTableLookups
    ]
    return MessageV0(header, list(message.accountKeys), message.recentBlockhash, instructions, lookups)


def sanitize_message(message: TransactionMessage) -> None:
    """Rejects messages whose header, key table or instruction indexes are inconsistent.

    Args:
        message: The decoded message to check

    Raises:
        DecodeError: header counts, fee payer or key uniqueness are invalid
        DanglingAccountIndex: an instruction index falls outside the addressable accounts
    """
    header = message.header
    num_keys = len(message.accountKeys)

    if header.numRequiredSignatures == 0:
        raise DecodeError("Message has no fee payer signature", SponsorErrorKind.INVALID_HEADER)
    if header.numRequiredSignatures > num_keys:
        raise DecodeError(
            f"Header requires {header.numRequiredSignatures} signatures but only {num_keys} keys are present",
            SponsorErrorKind.INVALID_HEADER,
            num_required_signatures=header.numRequiredSignatures,
            num_account_keys=num_keys,
        )
    if header.numReadonlySignedAccounts >= header.numRequiredSignatures:
        raise DecodeError("Fee payer cannot be read-only", SponsorErrorKind.INVALID_HEADER)
    if header.numReadonlyUnsignedAccounts > num_keys - header.numRequiredSignatures:
        raise DecodeError(
            "Read-only unsigned count exceeds the unsigned accounts",
            SponsorErrorKind.INVALID_HEADER,
            num_readonly_unsigned_accounts=header.numReadonlyUnsignedAccounts,
        )

    seen: dict = {}
    for i, key in enumerate(message.accountKeys):
        if key in seen:
            raise DecodeError(
                f"Account key {key} appears at indexes {seen[key]} and {i}",
                SponsorErrorKind.DUPLICATE_ACCOUNT_KEY,
                account_key=str(key),
                index=i,
            )
        seen[key] = i

    address_space = message.address_space
    for position, instruction in enumerate(message.instructions):
        # program ids can never be loaded through a lookup table
        if instruction.programIdIndex >= num_keys:
            raise DanglingAccountIndex(instruction.programIdIndex, num_keys, position)
        for index in instruction.accounts:
            if index >= address_space:
                raise DanglingAccountIndex(index, address_space, position)


def decode_message(raw: bytes) -> TransactionMessage:
    """Decodes a serialized versioned message (with its 0x80 version prefix)."""
    try:
        versioned_message = from_bytes_versioned(raw)
    except Exception as e:
        raise DecodeError(f"Malformed message: {e}") from e

    if not isinstance(versioned_message, MessageV0):
        raise DecodeError("Only versioned transactions are supported", SponsorErrorKind.UNSUPPORTED_VERSION)

    message = from_solders_message(versioned_message)
    sanitize_message(message)
    return message


def encode_message(message: TransactionMessage) -> bytes:
    """Serializes a message into the exact bytes that signers sign."""
    return to_bytes_versioned(to_solders_message(message))


def decode_transaction(raw: bytes) -> Transaction:
    """Decodes a full transaction: signature slots followed by a v0 message."""
    try:
        versioned_tx = VersionedTransaction.from_bytes(raw)
    except Exception as e:
        raise DecodeError(f"Malformed transaction: {e}") from e

    if bytes(versioned_tx) != raw:
        raise DecodeError("Transaction has trailing bytes", length=len(raw))

    if not isinstance(versioned_tx.message, MessageV0):
        raise DecodeError("Only versioned transactions are supported", SponsorErrorKind.UNSUPPORTED_VERSION)

    message = from_solders_message(versioned_tx.message)
    sanitize_message(message)

    signatures = list(versioned_tx.signatures)
    if len(signatures) != message.header.numRequiredSignatures:
        raise DecodeError(
            f"Transaction carries {len(signatures)} signatures, "
            f"header requires {message.header.numRequiredSignatures}",
            SponsorErrorKind.SIGNATURE_COUNT_MISMATCH,
            signatures=len(signatures),
            num_required_signatures=message.header.numRequiredSignatures,
        )

    logger.debug(
        f"Decoded v0 transaction: {len(signatures)} signatures, {len(message.accountKeys)} keys, "
        f"{len(message.instructions)} instructions, {len(message.addressTableLookups)} lookups")

    return Transaction(signatures=signatures, message=message)


def encode_transaction(message: TransactionMessage, signatures: Sequence[Signature]) -> bytes:
    return bytes(VersionedTransaction.populate(to_solders_message(message), list(signatures)))


def empty_signatures(count: int) -> List[Signature]:
    return [Signature.default() for _ in range(count)]
