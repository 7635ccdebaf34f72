"""SPL Token coder reporting instructions authorised by a token account owner or delegate."""

from __future__ import annotations
from typing import Optional

from borsh_construct import CStruct, U8, U64
from construct import ConstructError
from loguru import logger

from ionic_solana_sponsor.coders.base_coder import (
    AccountDebit,
    BaseCoder,
    MessageContext,
    ParsedInstruction,
)
from ionic_solana_sponsor.message.message_structs import CompiledInstruction
from ionic_solana_sponsor.utils.known_programs import SPL_TOKEN_2022_PROGRAM_ID, SPL_TOKEN_PROGRAM_ID

# Borsh layouts for SPL Token instructions
amount_layout = CStruct(
    "discriminator" / U8,
    "amount" / U64,
)

checked_amount_layout = CStruct(
    "discriminator" / U8,
    "amount" / U64,
    "decimals" / U8,
)

# discriminator -> (name, position of the authority account, layout carrying an amount)
AUTHORISED_INSTRUCTIONS = {
    3: ("Transfer", 2, amount_layout),
    4: ("Approve", 2, amount_layout),
    6: ("SetAuthority", 1, None),
    8: ("Burn", 2, amount_layout),
    9: ("CloseAccount", 2, None),
    12: ("TransferChecked", 3, checked_amount_layout),
    13: ("ApproveChecked", 3, checked_amount_layout),
    15: ("BurnChecked", 2, checked_amount_layout),
}


class SplTokenCoder(BaseCoder):
    """Coder for SPL Token and Token-2022 program instructions."""

    def __init__(self):
        super().__init__("SPL_Token", [SPL_TOKEN_PROGRAM_ID, SPL_TOKEN_2022_PROGRAM_ID])

    def can_handle(self, instruction: CompiledInstruction, context: MessageContext) -> bool:
        """Check if this coder can handle the instruction."""
        return self.supports_program(context.program_id(instruction)) and len(instruction.data) > 0

    def parse_instruction(
            self,
            instruction: CompiledInstruction,
            instruction_index: int,
            context: MessageContext
    ) -> Optional[ParsedInstruction]:
        """Parse an SPL Token instruction that spends through an owner or delegate."""
        discriminator = instruction.data[0]
        if discriminator not in AUTHORISED_INSTRUCTIONS:
            return None

        name, position, layout = AUTHORISED_INSTRUCTIONS[discriminator]
        authority = context.account(instruction, position)
        if authority is None:
            return None

        amount = None
        if layout is not None:
            try:
                amount = layout.parse(instruction.data).amount
            except ConstructError as e:
                logger.warning(f"Short {name} data in instruction {instruction_index}: {e}")

        return ParsedInstruction(
            instruction=instruction,
            instruction_index=instruction_index,
            parsed_data=AccountDebit(
                discriminator=discriminator,
                instruction=name,
                debited_account=authority,
                amount=amount,
            ),
            coder_name=self.name,
        )
