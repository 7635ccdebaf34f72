"""
Pytest fixtures for the sponsor service tests. Transactions are built with solders
so the wire bytes match what wallets submit.
"""

from __future__ import annotations

import pytest
from solders.hash import Hash
from solders.instruction import CompiledInstruction
from solders.keypair import Keypair
from solders.message import MessageAddressTableLookup, MessageHeader, MessageV0
from solders.signature import Signature
from solders.transaction import VersionedTransaction

from ionic_solana_sponsor.rewrite.fee_sponsor import FeeSponsor
from ionic_solana_sponsor.rewrite.sponsor_guard import SponsorGuard
from ionic_solana_sponsor.signing.credential import SponsorCredential

BLOCKHASH = Hash.new_unique()


@pytest.fixture
def sponsor_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def user_keypair() -> Keypair:
    return Keypair()


@pytest.fixture
def credential(sponsor_keypair) -> SponsorCredential:
    return SponsorCredential(sponsor_keypair)


@pytest.fixture
def fee_sponsor(credential) -> FeeSponsor:
    return FeeSponsor(credential, SponsorGuard())


@pytest.fixture
def make_message():
    """
    Build a solders MessageV0.
    instructions: (program_id_index, [account indexes], data) tuples.
    lookups: (table key, [writable indexes], [readonly indexes]) tuples.
    """

    def _make(account_keys, header=(1, 0, 1), instructions=(), lookups=()) -> MessageV0:
        return MessageV0(
            MessageHeader(*header),
            list(account_keys),
            BLOCKHASH,
            [CompiledInstruction(program_id_index, bytes(data), bytes(accounts))
             for program_id_index, accounts, data in instructions],
            [MessageAddressTableLookup(key, bytes(writable), bytes(readonly))
             for key, writable, readonly in lookups],
        )

    return _make


@pytest.fixture
def serialize():
    """Serialize a message with the given signatures (empty slots by default)."""

    def _serialize(message: MessageV0, signatures=None) -> bytes:
        if signatures is None:
            signatures = [Signature.default()] * message.header.num_required_signatures
        return bytes(VersionedTransaction.populate(message, signatures))

    return _serialize


@pytest.fixture
def make_transaction(make_message, serialize):
    """Build and serialize an unsigned transaction in one step."""

    def _make(account_keys, header=(1, 0, 1), instructions=(), lookups=()) -> bytes:
        return serialize(make_message(account_keys, header, instructions, lookups))

    return _make
