"""
Addresses, Keypairs and Program Derived Addresses

Solana identifies everything by a 32-byte Ed25519 public key, written in
base58. This module covers the three things a client needs around keys:

- Keypairs: generate, sign, and round-trip the Solana CLI keypair file
  (a JSON array of 64 integers: 32-byte seed followed by 32-byte pubkey)
- Base58: the textual form of every address
- PDAs: addresses derived from seeds that deliberately fall *off* the
  Ed25519 curve, so no private key can ever sign for them

Based on: https://solana.com/docs/core/pda
"""

import hashlib
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from ecdsa import SigningKey, VerifyingKey, BadSignatureError
from ecdsa.curves import Ed25519
from ecdsa.ellipticcurve import PointEdwards
from ecdsa.errors import MalformedPointError

from ..errors import KeypairError

PUBKEY_LENGTH = 32
SECRET_KEY_LENGTH = 64
MAX_SEEDS = 16
MAX_SEED_LENGTH = 32
PDA_MARKER = b"ProgramDerivedAddress"

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX = {char: index for index, char in enumerate(BASE58_ALPHABET)}


def b58encode(data: bytes) -> str:
    """Encode bytes with the Bitcoin base58 alphabet (leading zeros -> '1')."""
    number = int.from_bytes(data, "big")
    encoded = ""
    while number > 0:
        number, remainder = divmod(number, 58)
        encoded = BASE58_ALPHABET[remainder] + encoded
    leading_zeros = len(data) - len(data.lstrip(b"\0"))
    return "1" * leading_zeros + encoded


def b58decode(text: str) -> bytes:
    """Decode a base58 string back to bytes."""
    number = 0
    for char in text:
        if char not in _BASE58_INDEX:
            raise ValueError(f"Invalid base58 character: {char!r}")
        number = number * 58 + _BASE58_INDEX[char]
    body = number.to_bytes((number.bit_length() + 7) // 8, "big") if number else b""
    leading_ones = len(text) - len(text.lstrip("1"))
    return b"\0" * leading_ones + body


def pubkey_to_bytes(pubkey: Union[str, bytes]) -> bytes:
    """Normalize a base58 address (or raw bytes) to 32 raw bytes."""
    raw = pubkey if isinstance(pubkey, bytes) else b58decode(pubkey)
    if len(raw) != PUBKEY_LENGTH:
        raise ValueError(f"Public key must be {PUBKEY_LENGTH} bytes, got {len(raw)}")
    return raw


def is_on_curve(pubkey: Union[str, bytes]) -> bool:
    """True when the 32 bytes decompress to a valid Ed25519 point."""
    try:
        PointEdwards.from_bytes(Ed25519.curve, pubkey_to_bytes(pubkey))
    except (MalformedPointError, ValueError):
        return False
    return True


@dataclass(frozen=True)
class Keypair:
    """
    An Ed25519 signing key and its public address.

    The seed is the 32-byte private scalar source; Solana stores it
    concatenated with the public key as the 64-byte "secret key".
    """
    seed: bytes

    def __post_init__(self):
        if len(self.seed) != 32:
            raise KeypairError(f"Ed25519 seed must be 32 bytes, got {len(self.seed)}")

    @classmethod
    def generate(cls) -> "Keypair":
        return cls(seed=SigningKey.generate(curve=Ed25519).to_string())

    @classmethod
    def from_seed(cls, seed: bytes) -> "Keypair":
        return cls(seed=bytes(seed))

    @classmethod
    def from_secret_key(cls, secret_key: Sequence[int]) -> "Keypair":
        """Rebuild from the 64-byte CLI format, checking the embedded pubkey."""
        secret = bytes(secret_key)
        if len(secret) != SECRET_KEY_LENGTH:
            raise KeypairError(f"Secret key must be {SECRET_KEY_LENGTH} bytes, got {len(secret)}")
        keypair = cls(seed=secret[:32])
        if keypair.public_key_bytes != secret[32:]:
            raise KeypairError("Secret key does not match its embedded public key")
        return keypair

    @property
    def _signing_key(self) -> SigningKey:
        return SigningKey.from_string(self.seed, curve=Ed25519)

    @property
    def public_key_bytes(self) -> bytes:
        return self._signing_key.verifying_key.to_string()

    @property
    def public_key(self) -> str:
        return b58encode(self.public_key_bytes)

    @property
    def secret_key(self) -> bytes:
        return self.seed + self.public_key_bytes

    def sign(self, message: bytes) -> bytes:
        """Produce a 64-byte Ed25519 signature."""
        return self._signing_key.sign(message)

    def verify(self, message: bytes, signature: bytes) -> bool:
        return verify_signature(self.public_key_bytes, message, signature)

    def __repr__(self) -> str:
        return f"Keypair({self.public_key})"


def verify_signature(pubkey: Union[str, bytes], message: bytes, signature: bytes) -> bool:
    """Check an Ed25519 signature against a public key."""
    try:
        verifying_key = VerifyingKey.from_string(pubkey_to_bytes(pubkey), curve=Ed25519)
        return verifying_key.verify(signature, message)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False


def save_keypair(keypair: Keypair, path: Union[str, Path]) -> Path:
    """Write a keypair in the Solana CLI JSON format, readable only by the owner."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(list(keypair.secret_key), f)
    os.chmod(path, 0o600)
    return path


def load_keypair(path: Union[str, Path]) -> Keypair:
    """Read a keypair written by solana-keygen or save_keypair."""
    path = Path(path)
    if not path.exists():
        raise KeypairError(f"Keypair file not found: {path}")
    try:
        with open(path) as f:
            values = json.load(f)
    except json.JSONDecodeError as e:
        raise KeypairError(f"Keypair file {path} is not valid JSON: {e}") from e
    if not isinstance(values, list) or not all(isinstance(v, int) and 0 <= v < 256 for v in values):
        raise KeypairError(f"Keypair file {path} must hold a list of byte values")
    return Keypair.from_secret_key(values)


def create_keypair_file(path: Union[str, Path]) -> Tuple[Keypair, bool]:
    """
    Load the keypair at path, creating it first if absent.

    Returns:
        Tuple of (keypair, created) where created is False if the file existed
    """
    path = Path(path)
    if path.exists():
        return load_keypair(path), False
    keypair = Keypair.generate()
    save_keypair(keypair, path)
    return keypair, True


def _hash_seeds(seeds: Sequence[bytes], program_id: Union[str, bytes]) -> bytes:
    if len(seeds) > MAX_SEEDS:
        raise ValueError(f"At most {MAX_SEEDS} seeds allowed, got {len(seeds)}")

    hasher = hashlib.sha256()
    for seed in seeds:
        if len(seed) > MAX_SEED_LENGTH:
            raise ValueError(f"Seed exceeds {MAX_SEED_LENGTH} bytes: {seed!r}")
        hasher.update(seed)
    hasher.update(pubkey_to_bytes(program_id))
    hasher.update(PDA_MARKER)
    return hasher.digest()


def create_program_address(seeds: Sequence[bytes], program_id: Union[str, bytes]) -> str:
    """
    Hash seeds and program id into an address; reject it if on the curve.

    Raises:
        ValueError: if seeds are too many or too long, or the result is on-curve
    """
    candidate = _hash_seeds(seeds, program_id)
    if is_on_curve(candidate):
        raise ValueError("Derived address lies on the Ed25519 curve")
    return b58encode(candidate)


def find_program_address(seeds: Sequence[bytes], program_id: Union[str, bytes]) -> Tuple[str, int]:
    """
    Find the first off-curve address, trying bump seeds from 255 down to 0.

    Returns:
        Tuple of (address, bump_seed)
    """
    seeds: List[bytes] = list(seeds)
    for bump in range(255, -1, -1):
        candidate = _hash_seeds(seeds + [bytes([bump])], program_id)
        if not is_on_curve(candidate):
            return b58encode(candidate), bump
    raise ValueError("Unable to find a viable program address bump seed")
