# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""List of known solana programs"""

from solders.pubkey import Pubkey

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
SPL_TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
SPL_TOKEN_2022_PROGRAM_ID = "TokenzQdBNbLqP5VEhdkAS6EPFLC1PHnBqCXEpPxuEb"
ASSOCIATED_TOKEN_PROGRAM_ID = "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL"

KNOWN_PROGRAMS = {
    "system": SYSTEM_PROGRAM_ID,
    "compute_budget": "ComputeBudget111111111111111111111111111111",
    "spl_token": SPL_TOKEN_PROGRAM_ID,
    "spl_token_2022": SPL_TOKEN_2022_PROGRAM_ID,
    "associated_token": ASSOCIATED_TOKEN_PROGRAM_ID,
    "memo": "MemoSq4gqABAXKb96qnH8TyNNRWQZkBRLMUpkW5KbQz",
}

def get_program_by_name(pubkey: Pubkey | str) -> str:
    pubkey = str(pubkey)
    for name, key in KNOWN_PROGRAMS.items():
        if key == pubkey:
            return name
    return pubkey
