# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Applies an account index permutation to instructions and recomputes the message header."""
from __future__ import annotations

from typing import Optional

from msgspec import Struct, structs
from solders.pubkey import Pubkey

from ionic_solana_sponsor.message.message_structs import (
    AddressTableLookup,
    CompiledInstruction,
    MessageHeader,
    TransactionMessage,
)
from ionic_solana_sponsor.message.sponsor_errors import DanglingAccountIndex
from ionic_solana_sponsor.rewrite.account_table import (
    AccountTableRewrite,
    IndexPermutation,
    rewrite_account_table,
)


def remap_instructions(
        instructions: list[CompiledInstruction],
        permutation: IndexPermutation
) -> list[CompiledInstruction]:
    """Returns new instructions whose indexes point at the same keys in the rewritten table."""
    remapped = []
    for position, instruction in enumerate(instructions):
        try:
            remapped.append(CompiledInstruction(
                programIdIndex=permutation[instruction.programIdIndex],
                accounts=[permutation[index] for index in instruction.accounts],
                data=instruction.data,
            ))
        except DanglingAccountIndex as e:
            raise DanglingAccountIndex(e.detail["index"], len(permutation), position) from e
    return remapped


def remap_header(message: TransactionMessage, sponsor_index: Optional[int]) -> MessageHeader:
    """Header for the table produced by moving the sponsor from `sponsor_index` to 0.

    The sponsor always lands as a writable signer. A sponsor that was not a signer
    adds one required signature. When it leaves a read-only zone, that zone
    shrinks by one so every other key keeps its signer and writable status.
    """
    header = message.header
    num_required = header.numRequiredSignatures
    readonly_signed = header.numReadonlySignedAccounts
    readonly_unsigned = header.numReadonlyUnsignedAccounts

    if sponsor_index is None:
        num_required += 1
    elif sponsor_index != 0:
        if message.is_signer(sponsor_index):
            if not message.is_writable(sponsor_index):
                readonly_signed -= 1
        else:
            num_required += 1
            if not message.is_writable(sponsor_index):
                readonly_unsigned -= 1

    return MessageHeader(
        numRequiredSignatures=num_required,
        numReadonlySignedAccounts=readonly_signed,
        numReadonlyUnsignedAccounts=readonly_unsigned,
    )


class RewrittenMessage(Struct, frozen=True):
    message: TransactionMessage

    permutation: IndexPermutation

    sponsorIndex: Optional[int]

    @property
    def is_identity(self) -> bool:
        return self.sponsorIndex == 0


def rewrite_message(message: TransactionMessage, sponsor: Pubkey | str) -> RewrittenMessage:
    """Rewrites `message` so that `sponsor` is the fee payer.

    The input message is left untouched; the result shares no mutable state with it.
    """
    table: AccountTableRewrite = rewrite_account_table(message, sponsor)
    new_message = structs.replace(
        message,
        header=remap_header(message, table.sponsorIndex),
        accountKeys=table.accountKeys,
        instructions=remap_instructions(message.instructions, table.permutation),
        addressTableLookups=[
            AddressTableLookup(
                accountKey=lookup.accountKey,
                writableIndexes=list(lookup.writableIndexes),
                readonlyIndexes=list(lookup.readonlyIndexes),
            )
            for lookup in message.addressTableLookups
        ],
    )
    return RewrittenMessage(message=new_message, permutation=table.permutation, sponsorIndex=table.sponsorIndex)
