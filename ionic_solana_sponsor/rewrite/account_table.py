# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Moves the sponsor key to the fee payer slot and derives the resulting index permutation."""
from __future__ import annotations

from typing import Optional

from msgspec import Struct
from solders.pubkey import Pubkey

from ionic_solana_sponsor.message.message_structs import TransactionMessage
from ionic_solana_sponsor.message.sponsor_errors import DanglingAccountIndex, SponsorNotInsertable

# Account indexes are encoded as a single byte on the wire
MAX_ADDRESS_SPACE = 256


class IndexPermutation(Struct, frozen=True):
    """Old account index -> new account index, covering static and lookup-loaded accounts."""

    mapping: tuple[int, ...]

    def __getitem__(self, old_index: int) -> int:
        if not 0 <= old_index < len(self.mapping):
            raise DanglingAccountIndex(old_index, len(self.mapping))
        return self.mapping[old_index]

    def __len__(self) -> int:
        return len(self.mapping)

    @property
    def is_identity(self) -> bool:
        return all(old == new for old, new in enumerate(self.mapping))

    @classmethod
    def identity(cls, size: int) -> IndexPermutation:
        return cls(mapping=tuple(range(size)))


class AccountTableRewrite(Struct, frozen=True):
    accountKeys: list[Pubkey]
    """New static account keys with the sponsor at index 0"""

    permutation: IndexPermutation

    sponsorIndex: Optional[int]
    """Position of the sponsor in the original table, None if it was absent"""


def as_sponsor_key(sponsor: Pubkey | str) -> Pubkey:
    """Normalizes the sponsor key, failing with `SponsorNotInsertable` when it is malformed."""
    if isinstance(sponsor, Pubkey):
        return sponsor
    if isinstance(sponsor, str):
        try:
            return Pubkey.from_string(sponsor)
        except ValueError as e:
            raise SponsorNotInsertable(f"Sponsor key {sponsor!r} is not a valid public key") from e
    raise SponsorNotInsertable(f"Sponsor key of type {type(sponsor).__name__} is not a public key")


def rewrite_account_table(message: TransactionMessage, sponsor: Pubkey | str) -> AccountTableRewrite:
    """Builds the account table with the sponsor as fee payer.

    The sponsor is prepended, or moved to the front if already present. Every
    other key keeps its relative order, so the permutation is monotonic outside
    the sponsor's own entry. Lookup-loaded indexes shift by the growth of the
    static table.

    Args:
        message: The original, sanitized message
        sponsor: The sponsor public key

    Returns:
        The new static account keys, the permutation and the sponsor's old position
    """
    sponsor = as_sponsor_key(sponsor)
    keys = message.accountKeys
    lookup_count = message.lookup_address_count

    if keys[0] == sponsor:
        return AccountTableRewrite(
            accountKeys=list(keys),
            permutation=IndexPermutation.identity(len(keys) + lookup_count),
            sponsorIndex=0,
        )

    try:
        sponsor_index: Optional[int] = keys.index(sponsor)
    except ValueError:
        sponsor_index = None

    new_keys = [sponsor] + [key for key in keys if key != sponsor]
    if len(new_keys) + lookup_count > MAX_ADDRESS_SPACE:
        raise SponsorNotInsertable(
            f"No room for the sponsor: {len(new_keys) + lookup_count} accounts exceed {MAX_ADDRESS_SPACE}",
            address_space=len(new_keys) + lookup_count,
        )

    new_position = {key: i for i, key in enumerate(new_keys)}
    growth = len(new_keys) - len(keys)
    mapping = [new_position[key] for key in keys]
    mapping.extend(len(keys) + growth + i for i in range(lookup_count))

    return AccountTableRewrite(
        accountKeys=new_keys,
        permutation=IndexPermutation(mapping=tuple(mapping)),
        sponsorIndex=sponsor_index,
    )
