"""System program coder reporting instructions that debit or re-own an account."""

from __future__ import annotations
from typing import Optional

from borsh_construct import CStruct, U32, U64
from construct import Bytes, ConstructError
from loguru import logger

from ionic_solana_sponsor.coders.base_coder import (
    AccountDebit,
    BaseCoder,
    MessageContext,
    ParsedInstruction,
)
from ionic_solana_sponsor.message.message_structs import CompiledInstruction
from ionic_solana_sponsor.utils.known_programs import SYSTEM_PROGRAM_ID

# Borsh layouts for System program instructions (u32 little-endian discriminator)
discriminator_layout = CStruct(
    "discriminator" / U32,
)

create_account_layout = CStruct(
    "discriminator" / U32,
    "lamports" / U64,
    "space" / U64,
    "owner" / Bytes(32),
)

assign_layout = CStruct(
    "discriminator" / U32,
    "owner" / Bytes(32),
)

transfer_layout = CStruct(
    "discriminator" / U32,
    "lamports" / U64,
)

allocate_layout = CStruct(
    "discriminator" / U32,
    "space" / U64,
)

CREATE_ACCOUNT = 0
ASSIGN = 1
TRANSFER = 2
CREATE_ACCOUNT_WITH_SEED = 3
WITHDRAW_NONCE_ACCOUNT = 5
ALLOCATE = 8
ALLOCATE_WITH_SEED = 9
ASSIGN_WITH_SEED = 10
TRANSFER_WITH_SEED = 11

# discriminator -> (name, position of the debited account or the signing authority over it).
# Seeded variants are authorised by their base account, nonce withdrawals by the nonce authority.
DEBITING_INSTRUCTIONS = {
    CREATE_ACCOUNT: ("CreateAccount", 0),
    ASSIGN: ("Assign", 0),
    TRANSFER: ("Transfer", 0),
    CREATE_ACCOUNT_WITH_SEED: ("CreateAccountWithSeed", 0),
    WITHDRAW_NONCE_ACCOUNT: ("WithdrawNonceAccount", 4),
    ALLOCATE: ("Allocate", 0),
    ALLOCATE_WITH_SEED: ("AllocateWithSeed", 1),
    ASSIGN_WITH_SEED: ("AssignWithSeed", 1),
    TRANSFER_WITH_SEED: ("TransferWithSeed", 1),
}


class SystemProgramCoder(BaseCoder):
    """Coder for System program instructions."""

    def __init__(self):
        super().__init__("System", [SYSTEM_PROGRAM_ID])

    def can_handle(self, instruction: CompiledInstruction, context: MessageContext) -> bool:
        return self.supports_program(context.program_id(instruction)) and len(instruction.data) >= 4

    def parse_instruction(
            self,
            instruction: CompiledInstruction,
            instruction_index: int,
            context: MessageContext
    ) -> Optional[ParsedInstruction]:
        """Parse a System instruction that takes lamports or ownership from an account the signer controls."""
        discriminator = discriminator_layout.parse(instruction.data).discriminator
        if discriminator not in DEBITING_INSTRUCTIONS:
            return None

        name, position = DEBITING_INSTRUCTIONS[discriminator]
        debited = context.account(instruction, position)
        if debited is None:
            return None

        amount = None
        try:
            match discriminator:
                case 0:  # CreateAccount
                    amount = create_account_layout.parse(instruction.data).lamports
                case 2 | 5 | 11:  # Transfer, WithdrawNonceAccount, TransferWithSeed
                    amount = transfer_layout.parse(instruction.data).lamports
                case 1:  # Assign
                    assign_layout.parse(instruction.data)
                case 8:  # Allocate
                    allocate_layout.parse(instruction.data)
        except ConstructError as e:
            # the runtime rejects short data, the debit is still reported
            logger.warning(f"Short {name} data in instruction {instruction_index}: {e}")

        return ParsedInstruction(
            instruction=instruction,
            instruction_index=instruction_index,
            parsed_data=AccountDebit(
                discriminator=discriminator,
                instruction=name,
                debited_account=debited,
                amount=amount,
            ),
            coder_name=self.name,
        )
