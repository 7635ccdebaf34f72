# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""SponsorErrorKind enumeration and the exceptions raised while sponsoring a transaction"""
from __future__ import annotations

from enum import IntEnum
from typing import Any


class SponsorErrorKind(IntEnum):
    """
    Enumeration of the ways a sponsorship request can fail.
    """

    MALFORMED_TRANSACTION = 0
    """The request bytes are not a decodable transaction (truncated, trailing bytes, bad base64)"""

    UNSUPPORTED_VERSION = 1
    """The transaction uses the legacy message format. Only v0 messages are sponsored"""

    INVALID_HEADER = 2
    """The message header counts are inconsistent with the account key table,
    or the fee payer slot is not a writable signer"""

    SIGNATURE_COUNT_MISMATCH = 3
    """The number of signature slots differs from `numRequiredSignatures`"""

    DUPLICATE_ACCOUNT_KEY = 4
    """A `Pubkey` appears twice in the static account keys"""

    DANGLING_ACCOUNT_INDEX = 5
    """An instruction references an account index outside the addressable account space"""

    SPONSOR_NOT_INSERTABLE = 6
    """The sponsor key is malformed, or the account table has no room for it"""

    SIGNING_FAILED = 7
    """The sponsor credential could not produce a valid signature, or the signed
    transaction would not fit in a packet"""

    SIMULATION_FAILED = 8
    """The rewritten transaction failed simulation against the cluster"""

    FEE_PAYER_MISMATCH = 9
    """A co-sign request was made for a transaction whose fee payer is not the sponsor"""

    SPONSOR_DEBIT_REJECTED = 10
    """An instruction would move funds or ownership away from the sponsor account"""


class SponsorError(Exception):
    """Base class of every failure the sponsorship core reports to its caller."""

    kind: SponsorErrorKind = SponsorErrorKind.MALFORMED_TRANSACTION
    http_status: int = 400
    retryable: bool = False

    def __init__(self, message: str, kind: SponsorErrorKind | None = None, **detail: Any):
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind
        self.detail = detail

    def to_response(self) -> dict[str, Any]:
        body: dict[str, Any] = {"status": "error", "message": self.message, "kind": self.kind.name}
        if self.detail:
            body["detail"] = self.detail
        return body


class DecodeError(SponsorError):
    kind = SponsorErrorKind.MALFORMED_TRANSACTION


class DanglingAccountIndex(SponsorError):
    kind = SponsorErrorKind.DANGLING_ACCOUNT_INDEX

    def __init__(self, index: int, address_space: int, instruction_index: int | None = None):
        location = f" in instruction {instruction_index}" if instruction_index is not None else ""
        super().__init__(
            f"Account index {index}{location} is outside the {address_space} addressable accounts",
            index=index,
            address_space=address_space,
            instruction_index=instruction_index,
        )


class SponsorNotInsertable(SponsorError):
    kind = SponsorErrorKind.SPONSOR_NOT_INSERTABLE
    http_status = 500


class SigningFailed(SponsorError):
    kind = SponsorErrorKind.SIGNING_FAILED
    http_status = 503
    retryable = True


class SimulationFailed(SponsorError):
    kind = SponsorErrorKind.SIMULATION_FAILED
    http_status = 502
    retryable = True


class FeePayerMismatch(SponsorError):
    kind = SponsorErrorKind.FEE_PAYER_MISMATCH


class SponsorDebitRejected(SponsorError):
    kind = SponsorErrorKind.SPONSOR_DEBIT_REJECTED
    http_status = 403
