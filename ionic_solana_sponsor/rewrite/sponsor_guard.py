# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Rejects rewritten messages whose instructions spend from the sponsor account."""
from __future__ import annotations

from typing import Optional

from loguru import logger
from solders.pubkey import Pubkey

from ionic_solana_sponsor.coders.associated_token_coder import AssociatedTokenCoder
from ionic_solana_sponsor.coders.base_coder import CoderRegistry
from ionic_solana_sponsor.coders.spl_token_coder import SplTokenCoder
from ionic_solana_sponsor.coders.system_program_coder import SystemProgramCoder
from ionic_solana_sponsor.message.message_structs import TransactionMessage
from ionic_solana_sponsor.message.sponsor_errors import SponsorDebitRejected
from ionic_solana_sponsor.utils.known_programs import get_program_by_name


def default_registry() -> CoderRegistry:
    registry = CoderRegistry()
    registry.register(SystemProgramCoder())
    registry.register(SplTokenCoder())
    registry.register(AssociatedTokenCoder())
    return registry


class SponsorGuard:
    """Fails a sponsorship when any instruction debits, re-owns or delegates from the sponsor.

    The sponsor only pays fees; the signature it adds as fee payer would otherwise
    also authorise these instructions.
    """

    def __init__(self, registry: Optional[CoderRegistry] = None):
        self.registry = registry or default_registry()
        logger.debug(f"Sponsor guard using coders: {[coder.name for coder in self.registry.get_all_coders()]}")

    def check(self, message: TransactionMessage, sponsor: Pubkey) -> None:
        for parsed in self.registry.parse_message(message):
            debit = parsed.parsed_data
            if debit.debited_account != sponsor:
                continue
            program = get_program_by_name(message.accountKeys[parsed.instruction.programIdIndex])
            logger.warning(
                f"Rejecting {program} {debit.instruction} at instruction "
                f"{parsed.instruction_index} spending from sponsor {sponsor}")
            raise SponsorDebitRejected(
                f"Instruction {parsed.instruction_index} ({parsed.coder_name} {debit.instruction}) "
                f"spends from the sponsor account",
                instruction_index=parsed.instruction_index,
                program=parsed.coder_name,
                instruction=debit.instruction,
                amount=debit.amount,
            )
