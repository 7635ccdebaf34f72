# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Structural representation of a v0 transaction message, mirroring the agave wire layout"""
from __future__ import annotations

from msgspec import Struct, field
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature


class MessageHeader(Struct, frozen=True):
    numRequiredSignatures: int
    """
    The first `numRequiredSignatures` keys of `accountKeys` must sign the transaction.
    The first of them is the fee payer.
    """

    numReadonlySignedAccounts: int
    """The last `numReadonlySignedAccounts` of the signed keys are read-only"""

    numReadonlyUnsignedAccounts: int
    """The last `numReadonlyUnsignedAccounts` of the unsigned keys are read-only"""


class CompiledInstruction(Struct):
    programIdIndex: int
    """Index of the program account, always inside the static account keys"""

    accounts: list[int]
    """
    Ordered account indexes passed to the program.
    Indexes past the static keys address accounts loaded from lookup tables,
    writable lookups first, then read-only lookups.
    """

    data: bytes


class AddressTableLookup(Struct):
    accountKey: Pubkey

    writableIndexes: list[int]
    """Indexes into the lookup table's own address list, not into `accountKeys`"""

    readonlyIndexes: list[int]


class TransactionMessage(Struct):
    header: MessageHeader

    accountKeys: list[Pubkey]
    """Static account keys. Unique; position decides signer and writable status through `header`."""

    recentBlockhash: Hash

    instructions: list[CompiledInstruction]

    addressTableLookups: list[AddressTableLookup] = field(default_factory=list)

    @property
    def fee_payer(self) -> Pubkey:
        return self.accountKeys[0]

    @property
    def lookup_address_count(self) -> int:
        return sum(
            len(lookup.writableIndexes) + len(lookup.readonlyIndexes)
            for lookup in self.addressTableLookups
        )

    @property
    def address_space(self) -> int:
        """Number of addressable accounts: static keys plus lookup-loaded addresses."""
        return len(self.accountKeys) + self.lookup_address_count

    def is_signer(self, index: int) -> bool:
        return index < self.header.numRequiredSignatures

    def is_writable(self, index: int) -> bool:
        """Writable status of a static account key, derived from the header zones."""
        header = self.header
        if self.is_signer(index):
            return index < header.numRequiredSignatures - header.numReadonlySignedAccounts
        return index < len(self.accountKeys) - header.numReadonlyUnsignedAccounts

    def resolve(self, index: int) -> Pubkey | None:
        """Returns the static key at `index`, or None for lookup-loaded addresses."""
        if index < len(self.accountKeys):
            return self.accountKeys[index]
        return None


class Transaction(Struct):
    signatures: list[Signature]
    """
    Signature slots aligned with the first `numRequiredSignatures` account keys.
    An empty slot is the all-zero signature.
    """

    message: TransactionMessage
