"""Associated Token Account coder reporting the payer funding a new token account."""

from __future__ import annotations
from typing import Optional

from ionic_solana_sponsor.coders.base_coder import (
    AccountDebit,
    BaseCoder,
    MessageContext,
    ParsedInstruction,
)
from ionic_solana_sponsor.message.message_structs import CompiledInstruction
from ionic_solana_sponsor.utils.known_programs import ASSOCIATED_TOKEN_PROGRAM_ID

CREATE = 0
CREATE_IDEMPOTENT = 1

# Both instructions fund the rent of the new account from the payer at position 0
PAYER_POSITION = 0

FUNDED_INSTRUCTIONS = {
    CREATE: "Create",
    CREATE_IDEMPOTENT: "CreateIdempotent",
}


class AssociatedTokenCoder(BaseCoder):
    """Coder for Associated Token Account program instructions."""

    def __init__(self):
        super().__init__("Associated_Token", [ASSOCIATED_TOKEN_PROGRAM_ID])

    def can_handle(self, instruction: CompiledInstruction, context: MessageContext) -> bool:
        return self.supports_program(context.program_id(instruction))

    def parse_instruction(
            self,
            instruction: CompiledInstruction,
            instruction_index: int,
            context: MessageContext
    ) -> Optional[ParsedInstruction]:
        # empty data is the legacy encoding of Create
        discriminator = instruction.data[0] if instruction.data else CREATE
        if discriminator not in FUNDED_INSTRUCTIONS:
            return None

        payer = context.account(instruction, PAYER_POSITION)
        if payer is None:
            return None

        return ParsedInstruction(
            instruction=instruction,
            instruction_index=instruction_index,
            parsed_data=AccountDebit(
                discriminator=discriminator,
                instruction=FUNDED_INSTRUCTIONS[discriminator],
                debited_account=payer,
            ),
            coder_name=self.name,
        )
