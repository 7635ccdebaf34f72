# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Abstract base class for compiled instruction coders."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from msgspec import Struct
from solders.pubkey import Pubkey

from ionic_solana_sponsor.message.message_structs import CompiledInstruction, TransactionMessage


class AccountDebit(Struct):
    """An instruction that moves value or ownership away from `debited_account`."""
    discriminator: int
    instruction: str
    debited_account: Pubkey
    amount: Optional[int] = None


class ParsedInstruction:
    """Container for a parsed instruction with metadata."""

    def __init__(
            self,
            instruction: CompiledInstruction,
            instruction_index: int,
            parsed_data: AccountDebit,
            coder_name: str
    ):
        self.instruction = instruction
        self.instruction_index = instruction_index
        self.parsed_data = parsed_data
        self.coder_name = coder_name


class MessageContext:
    """Context information available to coders during parsing."""

    def __init__(self, message: TransactionMessage):
        self.message = message

    def program_id(self, instruction: CompiledInstruction) -> Pubkey:
        return self.message.accountKeys[instruction.programIdIndex]

    def account(self, instruction: CompiledInstruction, position: int) -> Optional[Pubkey]:
        """Resolves the instruction's `position`-th account; None when absent or lookup-loaded."""
        if position >= len(instruction.accounts):
            return None
        return self.message.resolve(instruction.accounts[position])


class BaseCoder(ABC):
    """Abstract base class for instruction coders.

    Each coder is responsible for:
    1. Detecting if it can handle a specific instruction
    2. Decoding the instruction data with the program's layouts
    3. Reporting which account the instruction debits, if any
    """

    def __init__(self, name: str, program_ids: list[str]):
        """Initialize the coder.

        Args:
            name: Human-readable name for this coder
            program_ids: List of base58 program IDs this coder can handle
        """
        self.name = name
        self.program_ids = {Pubkey.from_string(program_id) for program_id in program_ids}

    @abstractmethod
    def can_handle(self, instruction: CompiledInstruction, context: MessageContext) -> bool:
        """Check if this coder can handle the given instruction.

        Args:
            instruction: The instruction to check
            context: Message the instruction belongs to

        Returns:
            True if this coder can handle the instruction, False otherwise
        """
        pass

    @abstractmethod
    def parse_instruction(
            self,
            instruction: CompiledInstruction,
            instruction_index: int,
            context: MessageContext
    ) -> Optional[ParsedInstruction]:
        """Parse an instruction into structured data.

        Args:
            instruction: The instruction to parse
            instruction_index: Index of this instruction in the message
            context: Message context for resolving account indexes

        Returns:
            ParsedInstruction if the instruction debits an account, None otherwise
        """
        pass

    def supports_program(self, program_id: Pubkey) -> bool:
        """Check if this coder supports a specific program ID."""
        return program_id in self.program_ids

    def parse_message(self, message: TransactionMessage) -> list[ParsedInstruction]:
        """Parse all relevant instructions in a message.

        Args:
            message: The message to parse

        Returns:
            List of parsed instructions
        """
        context = MessageContext(message)
        parsed_instructions = []

        for i, instruction in enumerate(message.instructions):
            if self.can_handle(instruction, context):
                parsed = self.parse_instruction(instruction, i, context)
                if parsed:
                    parsed_instructions.append(parsed)

        return parsed_instructions


class CoderRegistry:
    """Registry for managing and accessing coders."""

    def __init__(self):
        self._coders: list[BaseCoder] = []
        self._program_to_coders: dict[Pubkey, list[BaseCoder]] = {}

    def register(self, coder: BaseCoder) -> None:
        """Register a new coder.

        Args:
            coder: The coder to register
        """
        self._coders.append(coder)

        # Update program ID mapping
        for program_id in coder.program_ids:
            if program_id not in self._program_to_coders:
                self._program_to_coders[program_id] = []
            self._program_to_coders[program_id].append(coder)

    def get_coders_for_program(self, program_id: Pubkey) -> list[BaseCoder]:
        return self._program_to_coders.get(program_id, [])

    def get_all_coders(self) -> list[BaseCoder]:
        return self._coders.copy()

    def parse_message(self, message: TransactionMessage) -> list[ParsedInstruction]:
        """Parse a message with the coders registered for each instruction's program.

        Args:
            message: The message to parse

        Returns:
            Parsed instructions in message order
        """
        context = MessageContext(message)
        results = []

        for i, instruction in enumerate(message.instructions):
            for coder in self.get_coders_for_program(context.program_id(instruction)):
                if coder.can_handle(instruction, context):
                    parsed = coder.parse_instruction(instruction, i, context)
                    if parsed:
                        results.append(parsed)

        return results
