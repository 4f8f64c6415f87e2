"""
Solana Transaction and Instruction Model

Transactions are what a client actually sends to the cluster:
- Instructions name a program, the accounts it touches, and opaque data
- All account access is declared upfront, in one ordered key list
- The message is signed by every required signer, fee payer first
- Lengths on the wire use the compact-u16 ("shortvec") encoding

Based on: https://solana.com/docs/core/transactions
"""

import base64
from dataclasses import dataclass
from typing import Dict, List, Sequence

from .keys import Keypair, b58encode, pubkey_to_bytes, verify_signature

SIGNATURE_LENGTH = 64
MAX_TRANSACTION_SIZE = 1232


def encode_length(length: int) -> bytes:
    """Compact-u16: 7 bits per byte, high bit set while more bytes follow."""
    if not 0 <= length <= 0xFFFF:
        raise ValueError(f"Length {length} does not fit compact-u16")
    out = bytearray()
    while True:
        byte = length & 0x7F
        length >>= 7
        if length:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def decode_length(data: bytes, offset: int = 0) -> tuple:
    """
    Read a compact-u16 length.

    Returns:
        Tuple of (length, next_offset)
    """
    length = shift = 0
    for i in range(3):
        if offset + i >= len(data):
            raise ValueError("Truncated compact-u16 length")
        byte = data[offset + i]
        length |= (byte & 0x7F) << shift
        shift += 7
        if not byte & 0x80:
            return length, offset + i + 1
    raise ValueError("Compact-u16 length longer than 3 bytes")


@dataclass
class AccountMeta:
    """
    How an instruction wants to access one account.

    Declaring signer/writable upfront is what lets the runtime lock
    accounts and run non-conflicting transactions in parallel.
    """
    pubkey: str
    is_signer: bool
    is_writable: bool

    def __str__(self) -> str:
        flags = []
        if self.is_signer:
            flags.append("signer")
        if self.is_writable:
            flags.append("writable")
        flag_str = f"({', '.join(flags)})" if flags else "(readonly)"
        return f"{self.pubkey[:8]}...{flag_str}"


@dataclass
class Instruction:
    """Developer-facing instruction, before keys are turned into indices."""
    program_id: str
    accounts: List[AccountMeta]
    data: bytes

    def __str__(self) -> str:
        return f"Instruction({self.program_id[:8]}..., {len(self.accounts)} accounts, {len(self.data)} bytes)"


@dataclass
class MessageHeader:
    """
    Tells the runtime how to read the account key list.

    Keys are ordered: writable signers, readonly signers, writable
    non-signers, readonly non-signers. The three counts mark the cuts.
    """
    num_required_signatures: int
    num_readonly_signed_accounts: int
    num_readonly_unsigned_accounts: int


@dataclass
class CompiledInstruction:
    """Instruction referencing accounts by position in the message key list."""
    program_id_index: int
    accounts: List[int]
    data: bytes

    def __str__(self) -> str:
        return f"Instruction(program_id_index={self.program_id_index}, accounts={self.accounts}, data_len={len(self.data)})"


@dataclass
class TransactionMessage:
    """The signed part of a legacy transaction."""
    header: MessageHeader
    account_keys: List[str]
    recent_blockhash: str
    instructions: List[CompiledInstruction]

    def serialize(self) -> bytes:
        """Serialize in the legacy message wire format."""
        parts = [
            bytes([
                self.header.num_required_signatures,
                self.header.num_readonly_signed_accounts,
                self.header.num_readonly_unsigned_accounts,
            ]),
            encode_length(len(self.account_keys)),
        ]
        parts.extend(pubkey_to_bytes(key) for key in self.account_keys)
        parts.append(pubkey_to_bytes(self.recent_blockhash))

        parts.append(encode_length(len(self.instructions)))
        for instruction in self.instructions:
            parts.append(bytes([instruction.program_id_index]))
            parts.append(encode_length(len(instruction.accounts)))
            parts.append(bytes(instruction.accounts))
            parts.append(encode_length(len(instruction.data)))
            parts.append(instruction.data)

        return b"".join(parts)

    def signer_keys(self) -> List[str]:
        return self.account_keys[:self.header.num_required_signatures]

    def is_writable(self, index: int) -> bool:
        header = self.header
        if index < header.num_required_signatures:
            return index < header.num_required_signatures - header.num_readonly_signed_accounts
        return index < len(self.account_keys) - header.num_readonly_unsigned_accounts


@dataclass
class Transaction:
    """Signatures plus the message they cover."""
    signatures: List[bytes]
    message: TransactionMessage

    def signature(self) -> str:
        """Transaction id: base58 of the fee payer's signature."""
        if not self.signatures:
            raise ValueError("Transaction is not signed")
        return b58encode(self.signatures[0])

    def serialize(self) -> bytes:
        if any(len(sig) != SIGNATURE_LENGTH for sig in self.signatures):
            raise ValueError(f"Signatures must be {SIGNATURE_LENGTH} bytes")
        wire = encode_length(len(self.signatures)) + b"".join(self.signatures) + self.message.serialize()
        if len(wire) > MAX_TRANSACTION_SIZE:
            raise ValueError(f"Transaction too large: {len(wire)} > {MAX_TRANSACTION_SIZE} bytes")
        return wire

    def to_base64(self) -> str:
        return base64.b64encode(self.serialize()).decode("ascii")

    def verify_signatures(self) -> bool:
        """Every required signer must have signed the serialized message."""
        message_data = self.message.serialize()
        signers = self.message.signer_keys()
        if len(self.signatures) != len(signers):
            return False
        return all(
            verify_signature(pubkey, message_data, signature)
            for pubkey, signature in zip(signers, self.signatures)
        )

    def get_fee_payer(self) -> str:
        if not self.message.account_keys:
            raise ValueError("Transaction has no accounts")
        return self.message.account_keys[0]


class TransactionBuilder:
    """
    Builder for constructing transactions.

    Handles merging duplicate account references, ordering keys the way
    the runtime expects and compiling instructions to key indices.
    """

    def __init__(self, fee_payer: str, recent_blockhash: str):
        """
        Initialize transaction builder.

        Args:
            fee_payer: Account that pays transaction fees (must be signer)
            recent_blockhash: Recent blockhash for replay protection
        """
        self.fee_payer = fee_payer
        self.recent_blockhash = recent_blockhash
        self.instructions: List[Instruction] = []

    def add_instruction(self, instruction: Instruction) -> 'TransactionBuilder':
        """Add an instruction to the transaction (fluent interface)."""
        self.instructions.append(instruction)
        return self

    def add_instructions(self, instructions: Sequence[Instruction]) -> 'TransactionBuilder':
        self.instructions.extend(instructions)
        return self

    def build(self) -> TransactionMessage:
        """
        Build the final transaction message.

        1. Merge every account reference, keeping first-seen order
        2. Order keys by signer/writable class, fee payer first
        3. Compile instructions to use indices
        4. Create the message header
        """
        if not self.instructions:
            raise ValueError("Transaction needs at least one instruction")

        metas: Dict[str, AccountMeta] = {
            self.fee_payer: AccountMeta(self.fee_payer, is_signer=True, is_writable=True)
        }

        def merge(pubkey: str, is_signer: bool, is_writable: bool) -> None:
            meta = metas.setdefault(pubkey, AccountMeta(pubkey, False, False))
            meta.is_signer = meta.is_signer or is_signer
            meta.is_writable = meta.is_writable or is_writable

        for instruction in self.instructions:
            for account in instruction.accounts:
                merge(account.pubkey, account.is_signer, account.is_writable)
            merge(instruction.program_id, False, False)

        ordered = list(metas.values())
        writable_signers = [m.pubkey for m in ordered if m.is_signer and m.is_writable]
        readonly_signers = [m.pubkey for m in ordered if m.is_signer and not m.is_writable]
        writable_non_signers = [m.pubkey for m in ordered if not m.is_signer and m.is_writable]
        readonly_non_signers = [m.pubkey for m in ordered if not m.is_signer and not m.is_writable]

        account_keys = writable_signers + readonly_signers + writable_non_signers + readonly_non_signers
        if len(account_keys) > 256:
            raise ValueError(f"Too many accounts in transaction: {len(account_keys)}")
        account_index = {key: i for i, key in enumerate(account_keys)}

        compiled_instructions = [
            CompiledInstruction(
                program_id_index=account_index[instruction.program_id],
                accounts=[account_index[acc.pubkey] for acc in instruction.accounts],
                data=instruction.data,
            )
            for instruction in self.instructions
        ]

        header = MessageHeader(
            num_required_signatures=len(writable_signers) + len(readonly_signers),
            num_readonly_signed_accounts=len(readonly_signers),
            num_readonly_unsigned_accounts=len(readonly_non_signers),
        )

        return TransactionMessage(
            header=header,
            account_keys=account_keys,
            recent_blockhash=self.recent_blockhash,
            instructions=compiled_instructions,
        )


def sign_transaction(message: TransactionMessage, signers: Sequence[Keypair]) -> Transaction:
    """
    Sign a transaction message with the provided keypairs.

    Signers may come in any order; signatures are placed to match the
    message's signer keys.

    Raises:
        ValueError: if a required signer is missing or an extra one is given
    """
    by_pubkey = {signer.public_key: signer for signer in signers}
    required = message.signer_keys()

    missing = [key for key in required if key not in by_pubkey]
    if missing:
        raise ValueError(f"Missing signers: {missing}")
    extra = set(by_pubkey) - set(required)
    if extra:
        raise ValueError(f"Unexpected signers: {sorted(extra)}")

    message_data = message.serialize()
    signatures = [by_pubkey[key].sign(message_data) for key in required]
    return Transaction(signatures=signatures, message=message)
